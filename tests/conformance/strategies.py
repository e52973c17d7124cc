"""
Hypothesis strategies and drivers for protocol operation sequences.

A sequence is a list of (operation, account, size) tuples. The drivers map
each tuple onto a facade call with amounts scaled to the market or pool, so
every drawn sequence mixes valid calls with ones the protocol must refuse.
"""

from hypothesis import strategies as st

from defiledger import PRECISION
from tests.helpers import (
    ONE, OPERATOR, USERS, advance, approve, build_ledger, build_market, build_pool,
    mint_and_approve,
)


MARKET_OPS = ("deposit", "borrow", "repay", "withdraw", "price", "liquidate")
POOL_OPS = ("stake", "cooldown", "unstake", "claim", "wait")


market_steps = st.lists(
    st.tuples(st.sampled_from(MARKET_OPS), st.sampled_from(USERS), st.integers(0, 60)),
    min_size=1, max_size=25,
)

pool_steps = st.lists(
    st.tuples(st.sampled_from(POOL_OPS), st.sampled_from(USERS), st.integers(0, 60)),
    min_size=1, max_size=25,
)


def market_setup():
    """Ledger and market where every user holds 10 WBTC and has approved repayments."""
    ledger = build_ledger()
    market = build_market(ledger)
    for user in USERS:
        mint_and_approve(ledger, "WBTC", user, market.market_wallet, 10 * ONE)
        approve(ledger, "USDC", user, market.market_wallet, 10 ** 30)
    return ledger, market


def pool_setup():
    """Ledger and pool where every user holds 100 STK approved for staking."""
    ledger = build_ledger()
    pool = build_pool(ledger)
    for user in USERS:
        mint_and_approve(ledger, "STK", user, pool.pool_wallet, 100 * ONE)
    return ledger, pool


def apply_market_step(market, step):
    op, who, n = step
    if op == "deposit":
        return market.deposit_collateral(who, n * ONE // 10)
    if op == "borrow":
        return market.borrow(who, n * 1_000 * ONE)
    if op == "repay":
        return market.repay(who, n * 1_000 * ONE)
    if op == "withdraw":
        return market.withdraw_collateral(who, n * ONE // 10)
    if op == "price":
        return market.set_price(OPERATOR, (n + 1) * 1_000 * PRECISION)
    return market.liquidate(OPERATOR, who)


def apply_pool_step(ledger, pool, step):
    op, who, n = step
    if op == "stake":
        return pool.stake(who, n * ONE)
    if op == "cooldown":
        return pool.start_cooldown(who)
    if op == "unstake":
        return pool.unstake(who, n * ONE // 2)
    if op == "claim":
        return pool.claim_rewards(who)
    advance(ledger, hours=4 * n)
    return None
