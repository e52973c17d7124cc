"""
test_execution.py - Unit tests for OperationRunner, ReentrancyGuard and access gates

Tests:
- Protocol errors become tagged OperationResults
- Ledger-level rejections map to TRANSFER_FAILED
- Re-entry for a held account is refused and markers are always released
- OwnerGate and RoleGate
"""

import threading

import pytest
from decimal import Decimal

from defiledger import (
    ErrorCode, ExecuteResult, Move, OperationResult, OperationRunner, ReentrancyGuard,
    OwnerGate, RoleGate, AccessGate, Unauthorized, ExceedsBorrowLimit, ReentrantCall,
    build_transaction,
)
from tests.helpers import mint, balance


def _pay(amount, cid="p"):
    def build(view):
        return build_transaction(view, [Move(Decimal(amount), "USDC", "alice", "bob", cid)])
    return build


class TestOperationRunner:

    def test_applied(self, ledger):
        mint(ledger, "USDC", "alice", 10)
        result = OperationRunner(ledger).run(["alice"], _pay(4))
        assert result.ok and bool(result)
        assert result.transaction is ledger.transaction_log[-1]
        assert balance(ledger, "bob", "USDC") == 4

    def test_protocol_error_is_tagged(self, ledger):
        def build(view):
            raise ExceedsBorrowLimit("too much")
        result = OperationRunner(ledger).run(["alice"], build)
        assert result.status == ExecuteResult.REJECTED
        assert result.error == ErrorCode.EXCEEDS_BORROW_LIMIT
        assert result.reason == "too much"
        assert not result

    def test_ledger_rejection_is_transfer_failed(self, ledger):
        result = OperationRunner(ledger).run(["alice"], _pay(1))
        assert result.error == ErrorCode.TRANSFER_FAILED
        assert "min" in result.reason

    def test_unknown_wallet_is_transfer_failed(self, ledger):
        def build(view):
            view.get_balance("mallory", "USDC")
        result = OperationRunner(ledger).run(["mallory"], build)
        assert result.error == ErrorCode.TRANSFER_FAILED

    def test_duplicate_intent_passes_through(self, ledger):
        mint(ledger, "USDC", "alice", 10)
        runner = OperationRunner(ledger)
        assert runner.run(["alice"], _pay(1)).ok
        again = runner.run(["alice"], _pay(1))
        assert again.status == ExecuteResult.ALREADY_APPLIED
        assert balance(ledger, "bob", "USDC") == 1

    def test_nested_call_for_same_account_refused(self, ledger):
        mint(ledger, "USDC", "alice", 10)
        runner = OperationRunner(ledger)
        inner = []

        def build(view):
            inner.append(runner.run(["alice"], _pay(1, "inner")))
            return _pay(2, "outer")(view)

        outer = runner.run(["alice"], build)
        assert outer.ok
        assert inner[0].error == ErrorCode.REENTRANT_CALL
        assert balance(ledger, "bob", "USDC") == 2
        assert not runner.guard.is_held("alice")

    def test_markers_released_after_error(self, ledger):
        runner = OperationRunner(ledger)

        def build(view):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            runner.run(["alice"], build)
        assert not runner.guard.is_held("alice")

    def test_concurrent_runs_serialize(self, ledger):
        mint(ledger, "USDC", "alice", 1_000)
        runner = OperationRunner(ledger)
        results = []

        def worker(i):
            results.append(runner.run(["alice"], _pay(1, f"c{i}")))

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert all(r.ok for r in results)
        assert balance(ledger, "bob", "USDC") == 20


class TestReentrancyGuard:

    def test_hold_is_all_or_nothing(self):
        guard = ReentrancyGuard()
        with guard.hold("a"):
            with pytest.raises(ReentrantCall):
                with guard.hold("b", "a"):
                    pass
            assert not guard.is_held("b")
        assert not guard.is_held("a")


class TestOperationResult:

    def test_repr(self):
        assert "exceeds_borrow_limit" in repr(OperationResult.rejected(ErrorCode.EXCEEDS_BORROW_LIMIT, "x"))
        assert "APPLIED" in repr(OperationResult.applied(None))


class TestAccessGates:

    def test_owner_gate(self):
        gate = OwnerGate("op")
        assert isinstance(gate, AccessGate)
        gate.require_privileged("op")
        with pytest.raises(Unauthorized):
            gate.require_privileged("alice")

    def test_transfer_ownership(self):
        gate = OwnerGate("op")
        with pytest.raises(Unauthorized):
            gate.transfer_ownership("alice", "alice")
        gate.transfer_ownership("op", "new_op")
        assert gate.owner == "new_op"
        assert not gate.is_privileged("op")

    def test_owner_required(self):
        with pytest.raises(ValueError):
            OwnerGate(" ")

    def test_role_gate(self):
        gate = RoleGate(["op", "keeper"])
        assert gate.is_privileged("keeper")
        with pytest.raises(Unauthorized):
            gate.require_privileged("alice")
        with pytest.raises(ValueError):
            RoleGate([])
