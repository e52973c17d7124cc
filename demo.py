#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Lending and Staking on the Ledger

Walks through a collateralized lending market and a staking pool built on
the double-entry ledger. Each step builds on the previous one. Press Enter
to advance.

WHAT YOU'LL LEARN:
  1-3:  Foundation  - Tokens, issuance, allowances
  4-7:  Lending     - Deposit, borrow to the limit, price crash, liquidation
  8-10: Staking     - Accrual over a year, the cooldown window, claiming
  11:   Stress      - Seeded price paths against a loaded market
  12:   Proof       - Conservation and replay

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import sys

from defiledger import (
    Ledger, OwnerGate, PRECISION, SYSTEM_WALLET,
    CollateralLedger, RewardAccrualEngine,
    create_token_unit, compute_issue, compute_approve,
    generate_price_path, run_price_path,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

ONE = 10 ** 18


@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)
    operator: str = "operator"

    btc_price: int = 50_000 * PRECISION
    crash_price: int = 10_000 * PRECISION
    ltv_percent: int = 50
    market_liquidity: int = 1_000_000 * ONE

    apy_percent: int = 10
    reward_reserve: int = 100_000 * ONE
    stake_amount: int = 100 * ONE

    stress_steps: int = 200
    stress_volatility: float = 0.03
    stress_seed: int = 2025


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def fmt(amount) -> str:
    """1e18-scaled integer as a human number."""
    return f"{int(amount) / ONE:,.4f}"


def mint(ledger: Ledger, token: str, wallet: str, amount: int):
    ledger.execute(compute_issue(ledger, token, wallet, amount))


def approve(ledger: Ledger, token: str, owner: str, spender: str, amount: int):
    ledger.execute(compute_approve(ledger, token, owner, spender, amount))


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_tokens():
    step_header(1, "Tokens",
        "Tokens are units with a zero floor: nobody but the system can go negative.")

    ledger = Ledger("tutorial", CONFIG.start_time, verbose=True)
    for symbol, name in (("WBTC", "Wrapped Bitcoin"), ("USDC", "USD Coin"),
                         ("STK", "Stake Token"), ("RWD", "Reward Token")):
        ledger.register_unit(create_token_unit(symbol, name))
    for wallet in ("alice", "bob", CONFIG.operator):
        ledger.register_wallet(wallet)

    print(f"Units:   {ledger.list_units()}")
    print(f"Wallets: {ledger.list_wallets()}")
    return ledger


def step_02_issuance(ledger: Ledger):
    step_header(2, "Issuance",
        "New tokens leave the system wallet, so every total stays at zero.")

    mint(ledger, "WBTC", "alice", 2 * ONE)
    mint(ledger, "USDC", CONFIG.operator, CONFIG.market_liquidity)
    mint(ledger, "STK", "bob", CONFIG.stake_amount)
    mint(ledger, "RWD", CONFIG.operator, CONFIG.reward_reserve)

    section_header("Balances")
    for wallet in ("alice", "bob", CONFIG.operator, SYSTEM_WALLET):
        balances = {u: fmt(q) for u, q in ledger.get_wallet_balances(wallet).items() if q}
        print(f"{wallet:10} {balances}")
    return ledger


def step_03_markets(ledger: Ledger):
    step_header(3, "Allowances and Protocol Wallets",
        "A protocol can only pull what an owner approved for its wallet.")

    gate = OwnerGate(CONFIG.operator)
    market = CollateralLedger.create(
        ledger, "WBTC_USDC", "WBTC", "USDC",
        price=CONFIG.btc_price, ltv_percent=CONFIG.ltv_percent, gate=gate,
    )
    pool = RewardAccrualEngine.create(
        ledger, "STK_POOL", "STK", "RWD", gate=gate, apy_percent=CONFIG.apy_percent,
    )

    approve(ledger, "USDC", CONFIG.operator, market.market_wallet, CONFIG.market_liquidity)
    print(f">>> market.fund_pool(operator, 1,000,000 USDC) -> {market.fund_pool(CONFIG.operator, CONFIG.market_liquidity)}")
    approve(ledger, "RWD", CONFIG.operator, pool.pool_wallet, CONFIG.reward_reserve)
    print(f">>> pool.fund_rewards(operator, 100,000 RWD)   -> {pool.fund_rewards(CONFIG.operator, CONFIG.reward_reserve)}")
    return market, pool


# ============================================================================
# PHASE 2: LENDING (Steps 4-7)
# ============================================================================

def step_04_deposit(ledger: Ledger, market: CollateralLedger):
    step_header(4, "Depositing Collateral",
        "Collateral moves into the market wallet and is tracked per account.")

    print(">>> market.deposit_collateral('alice', 1 WBTC) without approval")
    print(f"    {market.deposit_collateral('alice', ONE)}")

    approve(ledger, "WBTC", "alice", market.market_wallet, ONE)
    print(">>> approve, then deposit again")
    print(f"    {market.deposit_collateral('alice', ONE)}")
    print(f"\nPosition: {market.get_position('alice')}")


def step_05_borrow(ledger: Ledger, market: CollateralLedger):
    step_header(5, "Borrowing to the Limit",
        "Debt may reach collateral value x LTV, and not one unit more.")

    limit = market.get_max_borrowable("alice")
    print(f"Max borrowable: {fmt(limit)} USDC")
    print(f">>> borrow(limit + 1) -> {market.borrow('alice', limit + 1)}")
    print(f">>> borrow(limit)     -> {market.borrow('alice', limit)}")
    print(f"Health factor: {fmt(market.get_account_health('alice'))}")


def step_06_crash(ledger: Ledger, market: CollateralLedger):
    step_header(6, "A Price Crash",
        "Health below 1 blocks withdrawals; value below debt allows liquidation.")

    ledger.advance_time(ledger.current_time + timedelta(hours=1))
    print(f">>> set_price(10,000) -> {market.set_price(CONFIG.operator, CONFIG.crash_price)}")
    print(f"Health factor: {fmt(market.get_account_health('alice'))}")
    print(f"Liquidatable:  {market.find_liquidatable()}")


def step_07_liquidate(ledger: Ledger, market: CollateralLedger):
    step_header(7, "Liquidation",
        "The operator clears the debt and the collateral stays with the market.")

    print(f">>> liquidate('bob', 'alice')      -> {market.liquidate('bob', 'alice')}")
    print(f">>> liquidate(operator, 'alice')   -> {market.liquidate(CONFIG.operator, 'alice')}")
    stats = market.get_market_stats()
    print(f"\nPosition after: {market.get_position('alice')}")
    print(f"Seized collateral: {fmt(stats.seized_collateral)} WBTC")
    for note in ledger.notifications(unit_symbol=market.symbol):
        print(f"  {note.name:22} {note.account:10} {fmt(note.amount)}")


# ============================================================================
# PHASE 3: STAKING (Steps 8-10)
# ============================================================================

def step_08_accrual(ledger: Ledger, pool: RewardAccrualEngine):
    step_header(8, "Continuous Accrual",
        "Rewards grow with staked amount and elapsed ledger time.")

    approve(ledger, "STK", "bob", pool.pool_wallet, CONFIG.stake_amount)
    print(f">>> pool.stake('bob', 100 STK) -> {pool.stake('bob', CONFIG.stake_amount)}")
    for days in (1, 30, 365):
        later = ledger.clone()
        later.advance_time(ledger.current_time + timedelta(days=days))
        peek = RewardAccrualEngine(later, pool.symbol, pool.gate)
        print(f"  after {days:3} days: {fmt(peek.get_pending_rewards('bob'))} RWD")
    ledger.advance_time(ledger.current_time + timedelta(days=365))


def step_09_cooldown(ledger: Ledger, pool: RewardAccrualEngine):
    step_header(9, "The Cooldown Window",
        "Unstaking needs a 7 day cooldown and must happen within the next day.")

    print(f">>> start_cooldown('bob') -> {pool.start_cooldown('bob')}")
    for label, delta in (("6 days", timedelta(days=6)), ("7 days", timedelta(days=1))):
        ledger.advance_time(ledger.current_time + delta)
        info = pool.get_user_info("bob")
        print(f"  {label}: status={info.status.value}, can_unstake={info.can_unstake}")
    print(f">>> unstake('bob', 40 STK) -> {pool.unstake('bob', 40 * ONE)}")


def step_10_claim(ledger: Ledger, pool: RewardAccrualEngine):
    step_header(10, "Claiming",
        "Claims pay from the reward reserve and reset pending rewards to zero.")

    print(f"Pending: {fmt(pool.get_pending_rewards('bob'))} RWD")
    print(f">>> claim_rewards('bob') -> {pool.claim_rewards('bob')}")
    print(f"Pending: {fmt(pool.get_pending_rewards('bob'))} RWD")
    print(f"Stats:   {pool.get_contract_stats()}")


# ============================================================================
# PHASE 4: STRESS AND PROOF (Steps 11-12)
# ============================================================================

def step_11_stress():
    step_header(11, "Stress Testing an LTV",
        "Replay seeded price paths and count what liquidations leave uncovered.")

    for ltv in (30, 50, 80):
        ledger = Ledger("stress", CONFIG.start_time, verbose=False)
        for symbol in ("WBTC", "USDC"):
            ledger.register_unit(create_token_unit(symbol, symbol))
        ledger.register_wallet(CONFIG.operator)
        market = CollateralLedger.create(
            ledger, "WBTC_USDC", "WBTC", "USDC",
            price=CONFIG.btc_price, ltv_percent=ltv, gate=OwnerGate(CONFIG.operator),
        )
        mint(ledger, "USDC", CONFIG.operator, CONFIG.market_liquidity)
        approve(ledger, "USDC", CONFIG.operator, market.market_wallet, CONFIG.market_liquidity)
        market.fund_pool(CONFIG.operator, CONFIG.market_liquidity)

        for i in range(10):
            borrower = f"borrower_{i}"
            ledger.register_wallet(borrower)
            mint(ledger, "WBTC", borrower, ONE)
            approve(ledger, "WBTC", borrower, market.market_wallet, ONE)
            market.deposit_collateral(borrower, ONE)
            market.borrow(borrower, market.get_max_borrowable(borrower) * (5 + i) // 15)

        prices = generate_price_path(CONFIG.btc_price, CONFIG.stress_steps,
                                     volatility=CONFIG.stress_volatility, seed=CONFIG.stress_seed)
        report = run_price_path(market, CONFIG.operator, prices)
        print(f"LTV {ltv:2}%: {len(report.liquidations):2} liquidations, "
              f"debt cleared {fmt(report.debt_cleared)}, bad debt {fmt(report.bad_debt)}")


def step_12_proof(ledger: Ledger):
    step_header(12, "Conservation and Replay",
        "Every token total is zero and the log alone rebuilds the ledger.")

    check = ledger.verify_double_entry({u: 0 for u in ("WBTC", "USDC", "STK", "RWD")})
    print(f"Conservation valid: {check['valid']}")
    replayed = ledger.replay()
    same = all(replayed.get_wallet_balances(w) == ledger.get_wallet_balances(w)
               for w in ledger.list_wallets())
    print(f"Replay matches:     {same}")
    print(f"Transactions:       {len(ledger.transaction_log)}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       DEFI LEDGER - INTERACTIVE TUTORIAL")
    print("=" * 70)
    print("Running in QUICK mode (no pauses)" if QUICK_MODE
          else "Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    ledger = step_01_tokens()
    wait_for_enter()
    step_02_issuance(ledger)
    wait_for_enter()
    market, pool = step_03_markets(ledger)
    ledger.verbose = False
    wait_for_enter()

    step_04_deposit(ledger, market)
    wait_for_enter()
    step_05_borrow(ledger, market)
    wait_for_enter()
    step_06_crash(ledger, market)
    wait_for_enter()
    step_07_liquidate(ledger, market)
    wait_for_enter()

    step_08_accrual(ledger, pool)
    wait_for_enter()
    step_09_cooldown(ledger, pool)
    wait_for_enter()
    step_10_claim(ledger, pool)
    wait_for_enter()

    step_11_stress()
    wait_for_enter()
    step_12_proof(ledger)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See defiledger/units/*.py for the pure protocol logic
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
