"""
Conservation Law Conformance Tests

INVARIANT: For all tokens u, at all times t:
    Σ_{w ∈ wallets} balance(w, u, t) = 0

Tokens enter circulation only by issuance out of the system wallet, whose
balance goes negative by the amount issued. Lending, staking and
liquidation redistribute tokens and never create or destroy them.

Protocol bookkeeping must agree with custody:
    market wallet collateral = Σ position collateral + seized collateral
    market total_debt        = Σ position debt
    pool wallet stake token ≥ Σ account stake = total_staked
"""

import pytest
from hypothesis import given, settings, HealthCheck

from defiledger import SYSTEM_WALLET
from tests.conformance.strategies import (
    market_steps, pool_steps, market_setup, pool_setup, apply_market_step, apply_pool_step,
)
from tests.helpers import ONE, balance


TOKENS = ("WBTC", "USDC", "STK", "RWD")
ZERO_SUPPLY = {token: 0 for token in TOKENS}


def _assert_conserved(ledger):
    report = ledger.verify_double_entry(ZERO_SUPPLY)
    assert report['valid'], report['discrepancies']


class TestTokenConservation:

    @given(market_steps)
    @settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_market_sequences_conserve(self, steps):
        ledger, market = market_setup()
        for step in steps:
            apply_market_step(market, step)
            _assert_conserved(ledger)

    @given(pool_steps)
    @settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_pool_sequences_conserve(self, steps):
        ledger, pool = pool_setup()
        for step in steps:
            apply_pool_step(ledger, pool, step)
            _assert_conserved(ledger)

    def test_system_wallet_mirrors_issuance(self):
        ledger, market = market_setup()
        issued = ledger.get_unit_state("WBTC")['total_issued']
        assert issued == 30 * ONE
        assert balance(ledger, SYSTEM_WALLET, "WBTC") == -issued


class TestBookkeepingMatchesCustody:

    @given(market_steps)
    @settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_market_books(self, steps):
        ledger, market = market_setup()
        for step in steps:
            apply_market_step(market, step)
            positions = [market.get_position(a) for a in market.list_accounts()]
            stats = market.get_market_stats()
            assert stats.total_collateral == sum(p.collateral for p in positions)
            assert stats.total_debt == sum(p.debt for p in positions)
            assert balance(ledger, market.market_wallet, "WBTC") == \
                stats.total_collateral + stats.seized_collateral

    @given(pool_steps)
    @settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_pool_books(self, steps):
        ledger, pool = pool_setup()
        for step in steps:
            apply_pool_step(ledger, pool, step)
            stats = pool.get_contract_stats()
            staked = [pool.get_user_info(u).staked for u in ("alice", "bob", "carol")]
            assert stats.total_staked == sum(staked)
            assert balance(ledger, pool.pool_wallet, "STK") == stats.total_staked
            assert stats.reward_reserve + stats.total_rewards_claimed == 1_000_000 * ONE


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
