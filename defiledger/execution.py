"""
execution.py - Running protocol operations against a Ledger

Every public entry point of CollateralLedger and RewardAccrualEngine goes
through OperationRunner.run():

1. Take the ledger's write lock (one writer per ledger).
2. Mark the touched accounts as in progress (nested re-entry is refused).
3. Build the PendingTransaction from the current view. All checks happen
   here, then effects, then the transfer legs; nothing is committed yet.
4. Execute it atomically.
5. Release the markers on every exit path and report an OperationResult.

Protocol errors never escape run(); they come back as a tagged result.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Sequence, Set
import threading

from .core import (
    ErrorCode, ExecuteResult, LedgerView, PendingTransaction, ProtocolError,
    ReentrantCall, Transaction, UnitNotRegistered, WalletNotRegistered,
)
from .ledger import Ledger


@dataclass(frozen=True, slots=True)
class OperationResult:
    """
    Outcome of one entry-point call.

    Attributes:
        status: APPLIED, ALREADY_APPLIED or REJECTED
        error: Why the call was rejected (None when applied)
        reason: Human-readable detail for the error
        transaction: The committed transaction, when one was applied
    """
    status: ExecuteResult
    error: Optional[ErrorCode] = None
    reason: str = ""
    transaction: Optional[Transaction] = None

    @property
    def ok(self) -> bool:
        return self.status == ExecuteResult.APPLIED

    @classmethod
    def applied(cls, transaction: Optional[Transaction]) -> OperationResult:
        return cls(status=ExecuteResult.APPLIED, transaction=transaction)

    @classmethod
    def rejected(cls, error: ErrorCode, reason: str = "") -> OperationResult:
        return cls(status=ExecuteResult.REJECTED, error=error, reason=reason)

    def __bool__(self) -> bool:
        return self.ok

    def __repr__(self) -> str:
        if self.ok:
            tx_id = self.transaction.exec_id if self.transaction else "-"
            return f"OperationResult(APPLIED {tx_id})"
        if self.error is None:
            return f"OperationResult({self.status.name})"
        return f"OperationResult({self.status.name} {self.error.value}: {self.reason})"


class ReentrancyGuard:
    """
    Per-key in-progress markers.

    hold() claims all keys or none; a key already held makes it raise
    ReentrantCall. Markers are released when the with-block exits, however
    it exits.
    """

    def __init__(self):
        self._active: Set[str] = set()
        self._lock = threading.Lock()

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        with self._lock:
            busy = [k for k in keys if k in self._active]
            if busy:
                raise ReentrantCall(f"operation already in progress for {', '.join(sorted(busy))}")
            self._active.update(keys)
        try:
            yield
        finally:
            with self._lock:
                self._active.difference_update(keys)

    def is_held(self, key: str) -> bool:
        with self._lock:
            return key in self._active


Builder = Callable[[LedgerView], PendingTransaction]


class OperationRunner:
    """
    Builds and executes one operation at a time on a ledger.

    Facades sharing a ledger may share a runner; each facade may also own
    its own, since the write lock lives on the ledger itself.
    """

    def __init__(self, ledger: Ledger, guard: Optional[ReentrancyGuard] = None):
        self.ledger = ledger
        self.guard = guard or ReentrancyGuard()

    def run(self, keys: Sequence[str], build: Builder) -> OperationResult:
        """
        Build and execute one operation under the write lock and re-entry markers.

        Args:
            keys: In-progress marker keys (one per account the operation touches)
            build: Pure function from a view to the operation's PendingTransaction
        """
        try:
            with self.ledger.write_lock, self.guard.hold(*keys):
                pending = build(self.ledger)
                result = self.ledger.execute(pending)
                transaction = self.ledger.transaction_log[-1] if (
                    result == ExecuteResult.APPLIED and not pending.is_empty()
                ) else None
        except ProtocolError as exc:
            if self.ledger.verbose:
                print(f"✗ REJECTED: {exc.code.value}: {exc}")
            return OperationResult.rejected(exc.code, str(exc))
        except (WalletNotRegistered, UnitNotRegistered) as exc:
            # An unknown counterparty can neither send nor receive tokens.
            if self.ledger.verbose:
                print(f"✗ REJECTED: {exc}")
            return OperationResult.rejected(ErrorCode.TRANSFER_FAILED, str(exc))

        if result == ExecuteResult.APPLIED:
            return OperationResult.applied(transaction)
        if result == ExecuteResult.ALREADY_APPLIED:
            return OperationResult(status=ExecuteResult.ALREADY_APPLIED)
        return OperationResult.rejected(ErrorCode.TRANSFER_FAILED, self.ledger.last_rejection_reason)
