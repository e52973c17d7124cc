"""
ledger.py - Stateful Double-Entry Ledger for Protocol Accounting

The Ledger class is the central state manager. It is the only module that
mutates state, ensuring controlled and auditable changes.

Key responsibilities:
    - Implements LedgerView protocol for safe read-only access by pure functions
    - Executes transactions atomically (all moves and state changes, or none)
    - Rejects state changes built against a stale snapshot of a unit
    - Publishes notifications only after a transaction has fully committed
    - Tracks the logical clock used by every time-dependent calculation
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Set, Optional, Tuple, Any
import copy
import threading

from .core import (
    # Types
    Move, Notification, Transaction, Unit,
    PendingTransaction,
    ExecuteResult,
    Positions, UnitState, UnitRecord, BalanceMap,
    # Constants
    SYSTEM_WALLET,
    # Exceptions
    LedgerError, UnitNotRegistered, WalletNotRegistered,
    # Helper functions
    _freeze_state,
)


class Ledger:
    """
    Double-entry ledger with full validation and audit trail.

    Implements the LedgerView protocol, allowing the ledger to be passed to pure
    functions that access only read-only methods.

    Design Principles:
        - Always validates: balance bounds, registration, timestamps and
          unit-state preconditions are checked before anything is applied.
        - Always logs: every applied transaction is recorded, and its
          notifications are appended to the notification log after commit.

    Thread Safety:
        execute() holds write_lock for its whole duration. Callers that read
        state to build a transaction should hold write_lock across the build
        and the execute (see OperationRunner), so one writer runs at a time.

    Example:
        ledger = Ledger("main")
        ledger.register_unit(create_token_unit("USDC", "USD Coin", decimals=6))
        ledger.register_wallet("alice")
        ledger.execute(compute_issue(ledger, "USDC", "alice", 1_000_000))
    """

    def __init__(
        self,
        name: str,
        initial_time: Optional[datetime] = None,
        verbose: bool = True,
        test_mode: bool = False
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            initial_time: Starting time for the ledger (default: 1970-01-01)
            verbose: Print registrations and transaction outcomes (default: True)
            test_mode: Allow set_balance() calls (default: False)
        """
        self.name = name
        self.balances: Dict[str, Dict[str, Decimal]] = {}
        self.units: Dict[str, Unit] = {}
        self.registered_wallets: Set[str] = set()
        self.seen_intent_ids: Set[str] = set()
        self.transaction_log: List[Transaction] = []
        self.notification_log: List[Notification] = []
        self.last_rejection_reason: str = ""
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)
        self.verbose = verbose
        self._test_mode = test_mode
        self._next_sequence: int = 0
        # unit -> {wallet -> quantity} for O(1) position lookups
        self._positions_by_unit: Dict[str, Dict[str, Decimal]] = defaultdict(dict)
        # unit -> {key -> record}: per-account data, read and written one key at a time
        self._records: Dict[str, Dict[str, UnitRecord]] = defaultdict(dict)
        self._write_lock = threading.RLock()

        self.registered_wallets.add(SYSTEM_WALLET)
        self.balances[SYSTEM_WALLET] = defaultdict(lambda: Decimal("0"))

    @property
    def write_lock(self) -> threading.RLock:
        """Re-entrant lock serializing every mutating call on this ledger."""
        return self._write_lock

    # ========================================================================
    # LedgerView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Current logical time of the ledger."""
        return self._current_time

    def get_balance(self, wallet_id: str, unit_symbol: str) -> Decimal:
        """
        Get the balance of a specific unit in a wallet.

        Raises:
            WalletNotRegistered: If wallet is not registered
            UnitNotRegistered: If unit is not registered
        """
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        return self.balances[wallet_id].get(unit_symbol, Decimal("0"))

    def get_unit_state(self, unit_symbol: str) -> UnitState:
        """
        Get a deep copy of a unit's internal state.

        The returned dictionary can be mutated freely without affecting
        the ledger.
        """
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        state = self.units[unit_symbol].state
        return copy.deepcopy(state) if state else {}

    def get_unit_record(self, unit_symbol: str, key: str) -> Optional[UnitRecord]:
        """Deep copy of one keyed record of a unit, or None if the unit holds no such record."""
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        record = self._records.get(unit_symbol, {}).get(key)
        return copy.deepcopy(record) if record is not None else None

    def list_unit_records(self, unit_symbol: str) -> List[str]:
        """Sorted keys of every record a unit holds."""
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        return sorted(self._records.get(unit_symbol, {}))

    def get_unit_records(self, unit_symbol: str) -> Dict[str, UnitRecord]:
        """
        Deep copy of every record of a unit, keyed.

        Reads all accounts; meant for audits, snapshots and reporting, not
        for building transactions.
        """
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        return copy.deepcopy(dict(self._records.get(unit_symbol, {})))

    def get_positions(self, unit_symbol: str) -> Positions:
        """All non-zero positions for a unit across all wallets."""
        return dict(self._positions_by_unit.get(unit_symbol, {}))

    def list_wallets(self) -> Set[str]:
        """List all registered wallet IDs."""
        return self.registered_wallets.copy()

    def list_units(self) -> List[str]:
        """List all registered unit symbols."""
        return sorted(self.units.keys())

    def get_unit(self, symbol: str) -> Unit:
        """Return the Unit object for a given symbol."""
        if symbol not in self.units:
            raise UnitNotRegistered(f"Unit {symbol} not registered")
        return self.units[symbol]

    def get_wallet_balances(self, wallet_id: str) -> BalanceMap:
        """Get all balances for a wallet."""
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        return dict(self.balances[wallet_id])

    def total_supply(self, unit_symbol: str) -> Decimal:
        """
        Total supply of a unit across all wallets, the system wallet included.

        Wallets are summed in sorted order for deterministic accumulation.
        """
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        return sum(
            (self.balances[w].get(unit_symbol, Decimal("0")) for w in sorted(self.registered_wallets)),
            Decimal("0"),
        )

    def verify_double_entry(
        self,
        expected_supplies: Optional[Dict[str, Decimal]] = None,
    ) -> Dict[str, Any]:
        """
        Verify that conservation laws hold for all units.

        Every move debits one wallet and credits another, so the total of
        each unit across all wallets never changes. Issuance is a move out
        of the system wallet, whose balance goes negative by the amount
        issued, so the totals stay at zero for units created by issuance.

        Args:
            expected_supplies: Optional dict mapping unit symbols to expected totals.

        Returns:
            Dict with keys:
            - 'valid': bool - True if all conservation laws hold
            - 'supplies': Dict[str, Decimal] - Current total for each unit
            - 'discrepancies': List[Dict] - unit, expected, actual
        """
        supplies = {}
        discrepancies = []

        for unit_symbol in sorted(self.units):
            current_supply = self.total_supply(unit_symbol)
            supplies[unit_symbol] = current_supply
            if expected_supplies and unit_symbol in expected_supplies:
                expected = Decimal(expected_supplies[unit_symbol])
                if current_supply != expected:
                    discrepancies.append({
                        'unit': unit_symbol,
                        'expected': expected,
                        'actual': current_supply,
                    })

        if expected_supplies:
            for unit_symbol, expected in expected_supplies.items():
                if unit_symbol not in supplies:
                    discrepancies.append({
                        'unit': unit_symbol,
                        'expected': Decimal(expected),
                        'actual': Decimal("0"),
                        'error': 'unit not registered',
                    })

        return {
            'valid': len(discrepancies) == 0,
            'supplies': supplies,
            'discrepancies': discrepancies,
        }

    def is_registered(self, wallet_id: str) -> bool:
        """Check if a wallet is registered."""
        return wallet_id in self.registered_wallets

    def notifications(
        self,
        name: Optional[str] = None,
        unit_symbol: Optional[str] = None,
    ) -> Tuple[Notification, ...]:
        """Snapshot of the notification log, optionally filtered by name and emitter."""
        return tuple(
            n for n in self.notification_log
            if (name is None or n.name == name)
            and (unit_symbol is None or n.unit_symbol == unit_symbol)
        )

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: datetime) -> None:
        """
        Advance the ledger's logical clock to a new time.

        Time can only move forward, never backward.

        Raises:
            ValueError: If new_time is before the current time
        """
        with self._write_lock:
            if new_time < self._current_time:
                raise ValueError(
                    f"Cannot move time backwards: {new_time} < {self._current_time}"
                )
            self._current_time = new_time

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def register_wallet(self, wallet_id: str) -> str:
        """
        Register a new wallet in the ledger.

        Raises:
            ValueError: If wallet is already registered
        """
        if wallet_id in self.registered_wallets:
            raise ValueError(f"Wallet {wallet_id} already registered")
        self.registered_wallets.add(wallet_id)
        self.balances[wallet_id] = defaultdict(lambda: Decimal("0"))
        return wallet_id

    def ensure_wallet(self, wallet_id: str) -> str:
        """Register a wallet unless it already exists."""
        if wallet_id not in self.registered_wallets:
            self.register_wallet(wallet_id)
        return wallet_id

    def register_unit(self, unit: Unit) -> None:
        """
        Register a new unit (token, market or pool) in the ledger.

        Raises:
            ValueError: If unit symbol is already registered
        """
        if unit.symbol in self.units:
            raise ValueError(f"Unit {unit.symbol} already registered")
        self.units[unit.symbol] = unit
        if self.verbose:
            print(f"📝 Registered: {unit.symbol} ({unit.name}) [{unit.unit_type}]")

    def set_balance(self, wallet_id: str, unit_symbol: str, quantity: Decimal) -> None:
        """
        Set a wallet's balance for a unit directly.

        WARNING: bypasses double-entry accounting; only available in test mode.
        Production code funds wallets with compute_issue() and execute().

        Raises:
            LedgerError: If called when test_mode is False
        """
        if not self._test_mode:
            raise LedgerError(
                "set_balance() is disabled in production mode. "
                "Use compute_issue() and execute() to fund wallets. "
                "Set test_mode=True when creating Ledger for testing."
            )
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        if not isinstance(quantity, Decimal):
            quantity = Decimal(quantity)
        self.balances[wallet_id][unit_symbol] = quantity
        self._update_position_index(wallet_id, unit_symbol, quantity)

    # ========================================================================
    # TRANSACTION EXECUTION (Mutating)
    # ========================================================================

    def _generate_exec_id(self, sequence: int) -> str:
        """Format: exec:{ledger_name}:{sequence:012d}:{timestamp_micros}"""
        micros = int(self._current_time.timestamp() * 1_000_000)
        return f"exec:{self.name}:{sequence:012d}:{micros}"

    def execute(self, pending: PendingTransaction) -> ExecuteResult:
        """
        Execute a PendingTransaction atomically.

        Validation runs to completion before the first mutation, so a
        rejected transaction leaves balances, unit states and logs untouched.
        A pending transaction with an already-applied intent_id is not
        applied twice.

        Returns:
            ExecuteResult.APPLIED if successful
            ExecuteResult.ALREADY_APPLIED if the intent was already executed
            ExecuteResult.REJECTED if validation failed (see last_rejection_reason)
        """
        with self._write_lock:
            if pending.is_empty():
                return ExecuteResult.APPLIED

            if pending.intent_id in self.seen_intent_ids:
                if self.verbose:
                    print(f"⚠️  ALREADY_APPLIED: intent_id={pending.intent_id}")
                return ExecuteResult.ALREADY_APPLIED

            valid, reason = self._validate_pending(pending)
            if not valid:
                self.last_rejection_reason = reason
                if self.verbose:
                    print(f"✗ REJECTED: {reason}")
                return ExecuteResult.REJECTED
            self.last_rejection_reason = ""

            sequence = self._next_sequence
            self._next_sequence += 1

            tx = Transaction(
                moves=pending.moves,
                state_changes=pending.state_changes,
                origin=pending.origin,
                timestamp=pending.timestamp,
                intent_id=pending.intent_id,
                exec_id=self._generate_exec_id(sequence),
                ledger_name=self.name,
                execution_time=self._current_time,
                sequence_number=sequence,
                notifications=pending.notifications,
            )

            self._execute_moves(tx.moves)
            for sc in tx.state_changes:
                if sc.key is not None:
                    self._apply_record(sc.unit, sc.key, sc.new_state)
                    continue
                new_state = copy.deepcopy(sc.new_state if isinstance(sc.new_state, dict) else {})
                self.units[sc.unit] = replace(self.units[sc.unit], _frozen_state=_freeze_state(new_state))

            self.transaction_log.append(tx)
            self.seen_intent_ids.add(pending.intent_id)
            # Notifications go out strictly after every effect is in place.
            self.notification_log.extend(tx.notifications)

            if self.verbose:
                print(f"✓ APPLIED {tx.exec_id} {tx.origin}")
                for note in tx.notifications:
                    print(f"    → {note!r}")
            return ExecuteResult.APPLIED

    def _validate_pending(self, pending: PendingTransaction) -> Tuple[bool, str]:
        """
        Validate a pending transaction against all constraints.

        Checks performed:
        1. Timestamp (transaction must not be from the future)
        2. Unit and wallet registration
        3. Unit state preconditions (old_state must match current state,
           per unit or per keyed record)
        4. Balance bounds for every (wallet, unit) touched

        Returns:
            (True, "") on success, (False, reason) otherwise.
        """
        if pending.timestamp > self._current_time:
            return False, "future timestamp"

        for move in pending.moves:
            if move.unit_symbol not in self.units:
                return False, f"unit not registered: {move.unit_symbol}"
            if not self.is_registered(move.source):
                return False, f"wallet not registered: {move.source}"
            if not self.is_registered(move.dest):
                return False, f"wallet not registered: {move.dest}"

        seen_targets: Set[Tuple[str, Optional[str]]] = set()
        for sc in pending.state_changes:
            if sc.unit not in self.units:
                return False, f"unit not registered: {sc.unit}"
            target = (sc.unit, sc.key)
            label = sc.unit if sc.key is None else f"{sc.unit}:{sc.key}"
            if target in seen_targets:
                return False, f"multiple state changes for {label}"
            seen_targets.add(target)
            if sc.key is not None:
                if sc.old_state != self._records.get(sc.unit, {}).get(sc.key):
                    return False, f"stale state for {label}"
            elif sc.old_state is not None and sc.old_state != self.units[sc.unit].state:
                return False, f"stale state for {label}"

        net: Dict[Tuple[str, str], Decimal] = {}
        for move in pending.moves:
            unit = self.units[move.unit_symbol]
            key_src = (move.source, move.unit_symbol)
            key_dst = (move.dest, move.unit_symbol)
            net[key_src] = unit.round(net.get(key_src, Decimal("0")) - move.quantity)
            net[key_dst] = unit.round(net.get(key_dst, Decimal("0")) + move.quantity)

        for (wallet, unit_sym), delta in net.items():
            if wallet == SYSTEM_WALLET:
                continue
            unit = self.units[unit_sym]
            proposed = unit.round(self.balances[wallet][unit_sym] + delta)
            if proposed < unit.min_balance:
                return False, f"{wallet} {unit_sym}: {proposed} < min {unit.min_balance}"
            if proposed > unit.max_balance:
                return False, f"{wallet} {unit_sym}: {proposed} > max {unit.max_balance}"

        return True, ""

    def _apply_record(self, unit_symbol: str, key: str, record: Optional[UnitRecord]) -> None:
        """Store a keyed record; None removes it."""
        if record is None:
            self._records[unit_symbol].pop(key, None)
        else:
            self._records[unit_symbol][key] = copy.deepcopy(record)

    def _update_position_index(self, wallet_id: str, unit_symbol: str, quantity: Decimal) -> None:
        """Keep the unit -> {wallet -> quantity} index in step; zero balances are dropped."""
        if quantity != 0:
            self._positions_by_unit[unit_symbol][wallet_id] = quantity
        else:
            self._positions_by_unit[unit_symbol].pop(wallet_id, None)

    def _execute_moves(self, moves) -> None:
        """Apply moves to wallet balances (debit source, credit dest) and update the index."""
        for move in moves:
            unit = self.units[move.unit_symbol]
            new_src_balance = unit.round(self.balances[move.source][move.unit_symbol] - move.quantity)
            self.balances[move.source][move.unit_symbol] = new_src_balance
            self._update_position_index(move.source, move.unit_symbol, new_src_balance)
            new_dst_balance = unit.round(self.balances[move.dest][move.unit_symbol] + move.quantity)
            self.balances[move.dest][move.unit_symbol] = new_dst_balance
            self._update_position_index(move.dest, move.unit_symbol, new_dst_balance)

    # ========================================================================
    # LEDGER OPERATIONS
    # ========================================================================

    def clone(self) -> Ledger:
        """
        Create a fully independent deep copy of this ledger.

        Units, records, balances, logs, clock and configuration are copied;
        the clone gets its own write lock.
        """
        cloned = Ledger.__new__(Ledger)
        cloned.name = self.name
        cloned._current_time = self._current_time
        cloned.verbose = self.verbose
        cloned._test_mode = self._test_mode
        cloned._write_lock = threading.RLock()
        cloned.last_rejection_reason = self.last_rejection_reason

        cloned.units = {
            symbol: replace(unit, _frozen_state=_freeze_state(copy.deepcopy(unit.state)))
            for symbol, unit in self.units.items()
        }
        cloned._records = defaultdict(dict)
        for unit_symbol, records in self._records.items():
            cloned._records[unit_symbol] = copy.deepcopy(records)
        cloned.registered_wallets = self.registered_wallets.copy()
        cloned.seen_intent_ids = self.seen_intent_ids.copy()
        cloned.transaction_log = list(self.transaction_log)
        cloned.notification_log = list(self.notification_log)
        cloned._next_sequence = self._next_sequence

        cloned.balances = {
            wallet: defaultdict(lambda: Decimal("0"), bals)
            for wallet, bals in self.balances.items()
        }
        cloned._positions_by_unit = defaultdict(dict)
        for unit_symbol, positions in self._positions_by_unit.items():
            cloned._positions_by_unit[unit_symbol] = dict(positions)

        return cloned

    def replay(self, from_tx: int = 0) -> Ledger:
        """
        Create a new ledger by re-executing the transaction log.

        Each unit, and each keyed record, starts from the state its first
        logged change expected (old_state), or its current state if the log
        never touches it. Every replayed transaction passes the same
        validation as the original, so a successful replay proves the log
        alone reproduces the final state.

        Note: balances set via set_balance() are not part of the log and are
        therefore not reproduced. Fund wallets through issuance when the
        history must be replayable.

        Raises:
            LedgerError: If any logged transaction is rejected on replay
        """
        new_ledger = Ledger(
            name=f"{self.name}_replayed",
            initial_time=datetime(1970, 1, 1),
            verbose=self.verbose,
            test_mode=self._test_mode,
        )
        log = self.transaction_log[from_tx:]

        initial_states: Dict[str, Any] = {}
        initial_records: Dict[Tuple[str, str], Optional[UnitRecord]] = {}
        for tx in log:
            for sc in tx.state_changes:
                if sc.key is None:
                    initial_states.setdefault(sc.unit, sc.old_state)
                else:
                    initial_records.setdefault((sc.unit, sc.key), sc.old_state)

        for symbol, unit in self.units.items():
            start_state = initial_states.get(symbol, unit.state)
            new_ledger.units[symbol] = replace(
                unit, _frozen_state=_freeze_state(copy.deepcopy(start_state or {}))
            )

        # Records the log never touches keep their current value.
        for unit_symbol, records in self._records.items():
            for key, record in records.items():
                if (unit_symbol, key) not in initial_records:
                    new_ledger._apply_record(unit_symbol, key, record)
        for (unit_symbol, key), record in initial_records.items():
            new_ledger._apply_record(unit_symbol, key, record)

        for wallet in self.registered_wallets:
            if wallet != SYSTEM_WALLET:
                new_ledger.register_wallet(wallet)

        for tx in log:
            if tx.execution_time > new_ledger.current_time:
                new_ledger.advance_time(tx.execution_time)

            pending = PendingTransaction(
                moves=tx.moves,
                state_changes=tx.state_changes,
                origin=tx.origin,
                timestamp=tx.timestamp,
                notifications=tx.notifications,
            )
            if new_ledger.execute(pending) != ExecuteResult.APPLIED:
                raise LedgerError(
                    f"Replay failed at tx {tx.exec_id}: {new_ledger.last_rejection_reason}"
                )

        return new_ledger
