"""
helpers.py - Protocol setup shared by the test suites

Builds ledgers, markets and pools the way a deployment would: tokens are
minted through the system wallet and approved before every pull.
"""

from datetime import datetime, timedelta

from defiledger import (
    Ledger, ExecuteResult, OwnerGate,
    CollateralLedger, RewardAccrualEngine,
    create_token_unit, compute_issue, compute_approve,
    PRECISION,
)


T0 = datetime(2025, 1, 1)
ONE = 10 ** 18
BTC_PRICE = 50_000 * PRECISION
OPERATOR = "operator"
USERS = ("alice", "bob", "carol")


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def mint(ledger: Ledger, token: str, wallet: str, amount: int) -> None:
    """Issue `amount` of `token` to `wallet` through the system wallet."""
    assert ledger.execute(compute_issue(ledger, token, wallet, amount)) == ExecuteResult.APPLIED


def approve(ledger: Ledger, token: str, owner: str, spender: str, amount: int) -> None:
    assert ledger.execute(compute_approve(ledger, token, owner, spender, amount)) == ExecuteResult.APPLIED


def mint_and_approve(ledger: Ledger, token: str, owner: str, spender: str, amount: int) -> None:
    mint(ledger, token, owner, amount)
    approve(ledger, token, owner, spender, amount)


def balance(ledger: Ledger, wallet: str, token: str) -> int:
    return int(ledger.get_balance(wallet, token))


def advance(ledger: Ledger, **delta) -> None:
    ledger.advance_time(ledger.current_time + timedelta(**delta))


def build_ledger() -> Ledger:
    ledger = Ledger("test", T0, verbose=False)
    for symbol, name in (("WBTC", "Wrapped Bitcoin"), ("USDC", "USD Coin"),
                         ("STK", "Stake Token"), ("RWD", "Reward Token")):
        ledger.register_unit(create_token_unit(symbol, name))
    for wallet in USERS + (OPERATOR,):
        ledger.register_wallet(wallet)
    return ledger


def build_market(ledger: Ledger, liquidity: int = 1_000_000 * ONE,
                 price: int = BTC_PRICE, ltv_percent: int = 50) -> CollateralLedger:
    market = CollateralLedger.create(
        ledger, "WBTC_USDC", "WBTC", "USDC",
        price=price, ltv_percent=ltv_percent, gate=OwnerGate(OPERATOR),
    )
    if liquidity:
        mint_and_approve(ledger, "USDC", OPERATOR, market.market_wallet, liquidity)
        assert market.fund_pool(OPERATOR, liquidity).ok
    return market


def build_pool(ledger: Ledger, symbol: str = "STK_POOL", reward_token: str = "RWD",
               reserve: int = 1_000_000 * ONE, apy_percent: int = 10) -> RewardAccrualEngine:
    pool = RewardAccrualEngine.create(
        ledger, symbol, "STK", reward_token, gate=OwnerGate(OPERATOR), apy_percent=apy_percent,
    )
    if reserve:
        mint_and_approve(ledger, reward_token, OPERATOR, pool.pool_wallet, reserve)
        assert pool.fund_rewards(OPERATOR, reserve).ok
    return pool


