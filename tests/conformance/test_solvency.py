"""
Solvency Conformance Tests

INVARIANT: A borrower can never leave a position under-backed by their own action.

    ∀ successful borrow or withdraw_collateral by account a:
        collateral_value(a) * ltv / 100 ≥ debt(a)

Only a price or LTV change can push a position past its limit, and only
liquidation can clear a position whose collateral is worth less than its debt.
"""

import pytest
from hypothesis import given, settings, HealthCheck
from hypothesis import strategies as st

from defiledger import PRECISION, HEALTH_FACTOR_INFINITE
from defiledger.units.lending_market import calculate_max_borrow, calculate_collateral_value
from tests.conformance.strategies import market_steps, market_setup, apply_market_step
from tests.helpers import ONE


class TestSolvencyAfterUserActions:

    @given(market_steps)
    @settings(max_examples=60, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_borrow_and_withdraw_keep_position_backed(self, steps):
        ledger, market = market_setup()
        for step in steps:
            result = apply_market_step(market, step)
            op, who, _ = step
            if result.ok and op in ("borrow", "withdraw"):
                position = market.get_position(who)
                stats = market.get_market_stats()
                limit = calculate_max_borrow(position.collateral, stats.price, stats.ltv_percent)
                assert limit >= position.debt
                assert market.get_account_health(who) >= PRECISION

    @given(st.integers(min_value=1, max_value=10 ** 21), st.integers(min_value=1, max_value=80))
    @settings(max_examples=100, deadline=None)
    def test_max_withdrawable_is_safe_and_tight(self, debt, ltv):
        ledger, market = market_setup()
        market.set_ltv("operator", ltv)
        market.deposit_collateral("alice", 10 * ONE)
        if not market.borrow("alice", debt).ok:
            return
        maximum = market.get_max_withdrawable("alice")
        if maximum < 10 * ONE:
            assert not market.withdraw_collateral("alice", maximum + 1).ok
        if maximum:
            assert market.withdraw_collateral("alice", maximum).ok


class TestLiquidationBoundary:

    @given(st.integers(min_value=1, max_value=60))
    @settings(max_examples=60, deadline=None)
    def test_liquidation_only_below_debt(self, thousands):
        ledger, market = market_setup()
        market.deposit_collateral("alice", ONE)
        market.borrow("alice", 25_000 * ONE)
        price = thousands * 1_000 * PRECISION
        market.set_price("operator", price)

        insolvent = calculate_collateral_value(ONE, price) < 25_000 * ONE
        assert market.is_liquidatable("alice") == insolvent
        assert market.liquidate("operator", "alice").ok == insolvent
        if insolvent:
            assert market.get_account_health("alice") == HEALTH_FACTOR_INFINITE


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
