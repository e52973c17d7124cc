"""
Idempotency Conformance Tests

INVARIANT: Duplicate execution is detected and queries never mutate.

    ∀ pending transaction T:
        execute(T) = APPLIED ⟹ execute(T) again = ALREADY_APPLIED
        state after the second execute = state after the first

    ∀ query Q: state before Q = state after Q

Retrying a submitted transaction is always safe, while two separate calls
with the same arguments are two separate operations.
"""

import pytest
from hypothesis import given, settings, HealthCheck
from hypothesis import strategies as st

from defiledger import ExecuteResult
from defiledger.units import lending_market as lm
from defiledger.units import staking_pool as sp
from tests.conformance.strategies import (
    market_steps, pool_steps, market_setup, pool_setup, apply_market_step, apply_pool_step,
)
from tests.helpers import ONE, USERS, advance


def _state(ledger):
    return (
        {w: ledger.get_wallet_balances(w) for w in sorted(ledger.list_wallets())},
        {u: ledger.get_unit_state(u) for u in ledger.list_units()},
        {u: ledger.get_unit_records(u) for u in ledger.list_units()},
        len(ledger.transaction_log),
    )


class TestDuplicateExecution:

    @given(st.integers(min_value=1, max_value=5))
    @settings(max_examples=20, deadline=None)
    def test_resubmitted_borrow_applies_once(self, repeats):
        ledger, market = market_setup()
        assert market.deposit_collateral("alice", ONE).ok
        pending = lm.compute_borrow(ledger, market.symbol, "alice", 1_000 * ONE)

        assert ledger.execute(pending) == ExecuteResult.APPLIED
        after_first = _state(ledger)
        for _ in range(repeats):
            assert ledger.execute(pending) == ExecuteResult.ALREADY_APPLIED
        assert _state(ledger) == after_first

    def test_resubmitted_claim_pays_once(self):
        ledger, pool = pool_setup()
        pool.stake("alice", 10 * ONE)
        advance(ledger, days=30)
        pending = sp.compute_claim_rewards(ledger, pool.symbol, "alice")
        assert ledger.execute(pending) == ExecuteResult.APPLIED
        paid = ledger.get_balance("alice", "RWD")
        assert ledger.execute(pending) == ExecuteResult.ALREADY_APPLIED
        assert ledger.get_balance("alice", "RWD") == paid

    def test_repeated_calls_are_distinct(self):
        ledger, market = market_setup()
        market.deposit_collateral("alice", ONE)
        first = market.borrow("alice", 100 * ONE)
        second = market.borrow("alice", 100 * ONE)
        assert first.ok and second.ok
        assert first.transaction.intent_id != second.transaction.intent_id
        assert market.get_position("alice").debt == 200 * ONE


class TestQueriesDoNotMutate:

    @given(market_steps)
    @settings(max_examples=30, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_market_queries(self, steps):
        ledger, market = market_setup()
        for step in steps:
            apply_market_step(market, step)
        before = _state(ledger)
        for user in USERS:
            market.get_position(user)
            market.get_account_health(user)
            market.get_max_borrowable(user)
            market.get_max_withdrawable(user)
            market.is_liquidatable(user)
        market.find_liquidatable()
        market.get_market_stats()
        assert _state(ledger) == before

    @given(pool_steps)
    @settings(max_examples=30, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_pool_queries(self, steps):
        ledger, pool = pool_setup()
        for step in steps:
            apply_pool_step(ledger, pool, step)
        before = _state(ledger)
        first = [pool.get_pending_rewards(u) for u in USERS]
        for user in USERS:
            pool.get_user_info(user)
        pool.get_contract_stats()
        pool.get_acc_reward_per_share()
        pool.calculate_yearly_rewards(ONE)
        assert [pool.get_pending_rewards(u) for u in USERS] == first
        assert _state(ledger) == before


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
