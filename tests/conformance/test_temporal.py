"""
Temporal Conformance Tests

INVARIANT: Protocol time is the ledger's logical clock and only moves forward.

    ∀ transactions t1 logged before t2: timestamp(t1) ≤ timestamp(t2)

Reward accrual and cooldown windows read nothing but the ledger clock, so
the same calls at the same logical times always give the same answers.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from datetime import datetime, timedelta

from defiledger import ExecuteResult
from defiledger.units import staking_pool as sp
from tests.conformance.strategies import pool_setup
from tests.helpers import ONE, T0, advance


class TestClock:

    def test_backwards_rejected(self):
        ledger, _ = pool_setup()
        with pytest.raises(ValueError, match="backwards"):
            ledger.advance_time(T0 - timedelta(seconds=1))

    def test_same_time_allowed(self):
        ledger, _ = pool_setup()
        ledger.advance_time(T0)
        assert ledger.current_time == T0

    def test_default_epoch(self):
        from defiledger import Ledger
        assert Ledger("clock", verbose=False).current_time == datetime(1970, 1, 1)

    def test_transaction_from_the_future_rejected(self):
        ledger, pool = pool_setup()
        advance(ledger, days=1)
        ahead = ledger.clone()
        advance(ahead, days=1)
        pending = sp.compute_stake(ahead, pool.symbol, "alice", ONE)
        assert ledger.execute(pending) == ExecuteResult.REJECTED
        assert "future" in ledger.last_rejection_reason


class TestOrdering:

    @given(st.lists(st.integers(min_value=0, max_value=72), min_size=1, max_size=10))
    @settings(max_examples=30, deadline=None)
    def test_log_timestamps_non_decreasing(self, gaps):
        ledger, pool = pool_setup()
        for i, hours in enumerate(gaps):
            advance(ledger, hours=hours)
            pool.stake("alice", ONE)
        stamps = [tx.timestamp for tx in ledger.transaction_log]
        assert stamps == sorted(stamps)


class TestTimeDrivenBehavior:

    @given(st.integers(min_value=0, max_value=400 * 86_400))
    @settings(max_examples=40, deadline=None)
    def test_rewards_depend_only_on_elapsed_time(self, seconds):
        results = []
        for split in (False, True):
            ledger, pool = pool_setup()
            pool.stake("alice", 50 * ONE)
            if split:
                advance(ledger, seconds=seconds // 2)
                pool.get_pending_rewards("alice")
                advance(ledger, seconds=seconds - seconds // 2)
            else:
                advance(ledger, seconds=seconds)
            results.append(pool.get_pending_rewards("alice"))
        assert results[0] == results[1]

    @given(st.lists(st.tuples(st.integers(min_value=0, max_value=30 * 86_400),
                              st.sampled_from(("wait", "stake", "rate"))),
                    min_size=1, max_size=12))
    @settings(max_examples=40, deadline=None)
    def test_pending_rewards_never_decrease_without_claim(self, steps):
        ledger, pool = pool_setup()
        pool.stake("alice", 10 * ONE)
        last = pool.get_pending_rewards("alice")
        for seconds, action in steps:
            advance(ledger, seconds=seconds)
            if action == "stake":
                pool.stake("bob", ONE)
            elif action == "rate":
                pool.update_reward_rate("operator", 1 + seconds % 100)
            current = pool.get_pending_rewards("alice")
            assert current >= last
            last = current

    @given(st.integers(min_value=0, max_value=10 * 86_400))
    @settings(max_examples=60, deadline=None)
    def test_unstake_allowed_exactly_inside_window(self, seconds):
        ledger, pool = pool_setup()
        pool.stake("alice", ONE)
        pool.start_cooldown("alice")
        advance(ledger, seconds=seconds)
        opens = sp.COOLDOWN_PERIOD.total_seconds()
        closes = opens + sp.UNSTAKE_WINDOW.total_seconds()
        assert pool.unstake("alice").ok == (opens <= seconds <= closes)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
