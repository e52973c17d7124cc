"""
Core types and pure functions for the protocol ledger.

This module provides the foundational data structures and protocols:
1. Protocols: LedgerView for read-only ledger access
2. Immutable data structures: Move, Notification, PendingTransaction, Transaction, Unit
3. Exceptions: LedgerError, ProtocolError and the protocol error taxonomy
4. Fixed-point helpers: PRECISION and integral Decimal quantities

All functions in this module are pure and operate on read-only views.
No function can mutate ledger state directly.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_DOWN, getcontext
from enum import Enum
import copy
import hashlib
from typing import (
    Dict, List, Set, Optional, Any, Protocol,
    Tuple, FrozenSet, runtime_checkable, Mapping
)


# ============================================================================
# DECIMAL CONTEXT CONFIGURATION
# ============================================================================
#
# Token quantities are integers in base units (1e18 = one whole token), but
# balances are stored as Decimal. Products such as collateral * price reach
# ~1e42, so the context carries enough digits to keep every integral value
# exact.
#
# PRECONDITION: No other code should modify the global Decimal context.
#
_LEDGER_DECIMAL_CONTEXT = getcontext()
_LEDGER_DECIMAL_CONTEXT.prec = 78
_LEDGER_DECIMAL_CONTEXT.rounding = ROUND_DOWN


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved wallet for issuance and redemption.
# The system wallet is exempt from balance validation and can hold any balance.
SYSTEM_WALLET = "system"

# Fixed-point scale: 1e18 == 1.0
PRECISION = 10 ** 18

# Unit type constants
UNIT_TYPE_TOKEN = "TOKEN"
UNIT_TYPE_LENDING_MARKET = "LENDING_MARKET"
UNIT_TYPE_STAKING_POOL = "STAKING_POOL"


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from wallet ID to quantity held by that wallet for a specific unit.
Positions = Dict[str, Decimal]

# Mapping from unit symbol to quantity held in a single wallet.
BalanceMap = Dict[str, Decimal]

# Internal state for a unit: configuration, market-wide scalars, totals.
UnitState = Dict[str, Any]

# One keyed per-account record of a unit (a position, a stake, an allowance table).
UnitRecord = Dict[str, Any]


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to ledger state.

    compute_* functions and ValueTransfer implementations receive a LedgerView
    and return a PendingTransaction. They can query balances, unit state and
    the logical clock but cannot modify anything.

    The Ledger class implements this protocol but also provides mutation
    methods. For testing, FakeView provides a truly immutable implementation.
    """

    @property
    def current_time(self) -> datetime:
        """Return the current logical time of the ledger."""
        ...

    def get_balance(self, wallet_id: str, unit_symbol: str) -> Decimal:
        """
        Return the balance of a specific unit in a wallet.

        Returns Decimal("0") if the wallet holds none of the unit.
        """
        ...

    def get_unit_state(self, unit_symbol: str) -> UnitState:
        """Return a deep copy of the unit's internal state."""
        ...

    def get_unit_record(self, unit_symbol: str, key: str) -> Optional[UnitRecord]:
        """
        Return a deep copy of one keyed record of a unit, or None if absent.

        Per-account data (positions, stakes, allowances) lives in records so
        an operation reads and rewrites only the accounts it touches.
        """
        ...

    def list_unit_records(self, unit_symbol: str) -> List[str]:
        """Return the sorted keys of every record a unit holds."""
        ...

    def get_positions(self, unit_symbol: str) -> Positions:
        """Return all non-zero positions for a unit across all wallets."""
        ...

    def list_wallets(self) -> Set[str]:
        """Return the set of all registered wallet IDs."""
        ...

    def get_unit(self, symbol: str) -> 'Unit':
        """Return the Unit object for a given symbol."""
        ...


# ============================================================================
# ENUMS
# ============================================================================

class ExecuteResult(Enum):
    """
    Outcome of a transaction execution attempt.

    APPLIED: Transaction was validated and applied to the ledger.
    ALREADY_APPLIED: Transaction ID was previously processed (idempotent behavior).
    REJECTED: Transaction failed validation (balance bounds, unknown unit or
              wallet, future timestamp, or stale unit state).
    """
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    REJECTED = "rejected"


class OriginType(Enum):
    """Classification of where a transaction originated."""
    USER_ACTION = "user_action"           # Account-initiated entry point
    PRIVILEGED = "privileged"             # Operator entry point (price, LTV, funding)
    SYSTEM = "system"                     # Issuance, initial setup


class ErrorCode(Enum):
    """
    Tag for every way a protocol operation can fail.

    Public entry points return one of these inside an OperationResult
    instead of raising.
    """
    INVALID_AMOUNT = "invalid_amount"
    INSUFFICIENT_COLLATERAL = "insufficient_collateral"
    EXCEEDS_BORROW_LIMIT = "exceeds_borrow_limit"
    INSUFFICIENT_POOL_LIQUIDITY = "insufficient_pool_liquidity"
    INSUFFICIENT_DEBT_TO_REPAY = "insufficient_debt_to_repay"
    INSUFFICIENT_COLLATERAL_AFTER_WITHDRAWAL = "insufficient_collateral_after_withdrawal"
    NOT_UNDERCOLLATERALIZED = "not_undercollateralized"
    NOT_IN_COOLDOWN = "not_in_cooldown"
    COOLDOWN_NOT_FINISHED = "cooldown_not_finished"
    UNSTAKE_WINDOW_EXPIRED = "unstake_window_expired"
    NO_REWARDS_TO_CLAIM = "no_rewards_to_claim"
    INSUFFICIENT_STAKE = "insufficient_stake"
    UNAUTHORIZED = "unauthorized"
    INVALID_CONFIGURATION = "invalid_configuration"
    TRANSFER_FAILED = "transfer_failed"
    SYSTEM_PAUSED = "system_paused"
    REENTRANT_CALL = "reentrant_call"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class UnitNotRegistered(LedgerError):
    """Raised when attempting to operate on a unit that has not been registered with the ledger."""
    pass


class WalletNotRegistered(LedgerError):
    """Raised when attempting to operate on a wallet that has not been registered with the ledger."""
    pass


class ProtocolError(LedgerError):
    """
    Base class for failures of lending and staking operations.

    Each subclass pins an ErrorCode so the entry-point layer can turn the
    exception into a tagged result without inspecting messages.
    """
    code: ErrorCode = ErrorCode.INVALID_AMOUNT


class InvalidAmount(ProtocolError):
    """Zero, negative or otherwise malformed quantity."""
    code = ErrorCode.INVALID_AMOUNT


class InsufficientCollateral(ProtocolError):
    code = ErrorCode.INSUFFICIENT_COLLATERAL


class ExceedsBorrowLimit(ProtocolError):
    code = ErrorCode.EXCEEDS_BORROW_LIMIT


class InsufficientPoolLiquidity(ProtocolError):
    code = ErrorCode.INSUFFICIENT_POOL_LIQUIDITY


class InsufficientDebtToRepay(ProtocolError):
    code = ErrorCode.INSUFFICIENT_DEBT_TO_REPAY


class InsufficientCollateralAfterWithdrawal(ProtocolError):
    code = ErrorCode.INSUFFICIENT_COLLATERAL_AFTER_WITHDRAWAL


class NotUndercollateralized(ProtocolError):
    """Liquidation attempted on a solvent position."""
    code = ErrorCode.NOT_UNDERCOLLATERALIZED


class NotInCooldown(ProtocolError):
    code = ErrorCode.NOT_IN_COOLDOWN


class CooldownNotFinished(ProtocolError):
    code = ErrorCode.COOLDOWN_NOT_FINISHED


class UnstakeWindowExpired(ProtocolError):
    """The unstake window closed; the account must start a new cooldown."""
    code = ErrorCode.UNSTAKE_WINDOW_EXPIRED


class NoRewardsToClaim(ProtocolError):
    code = ErrorCode.NO_REWARDS_TO_CLAIM


class InsufficientStake(ProtocolError):
    code = ErrorCode.INSUFFICIENT_STAKE


class Unauthorized(ProtocolError):
    """Caller lacks the privilege required by the operation."""
    code = ErrorCode.UNAUTHORIZED


class InvalidConfiguration(ProtocolError):
    """LTV, APY or another configuration value outside its bounds."""
    code = ErrorCode.INVALID_CONFIGURATION


class TransferFailed(ProtocolError):
    """A token movement could not be performed."""
    code = ErrorCode.TRANSFER_FAILED


class InsufficientAllowance(TransferFailed):
    pass


class InsufficientBalance(TransferFailed):
    pass


class InsufficientContractBalance(TransferFailed):
    """The custody wallet cannot cover a payout."""
    pass


class SystemPaused(ProtocolError):
    code = ErrorCode.SYSTEM_PAUSED


class ReentrantCall(ProtocolError):
    """An entry point was re-entered for an account it already holds."""
    code = ErrorCode.REENTRANT_CALL


# ============================================================================
# FIXED-POINT HELPERS
# ============================================================================

def to_quantity(amount: int) -> Decimal:
    """
    Convert an integer base-unit amount into a Move quantity.

    Raises:
        InvalidAmount: if amount is not a positive integer.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"Amount must be an integer, got {type(amount).__name__}")
    if amount <= 0:
        raise InvalidAmount(f"Amount must be positive, got {amount}")
    return Decimal(amount)


def to_amount(quantity: Decimal) -> int:
    """Convert a ledger balance back into an integer base-unit amount."""
    return int(quantity)


def require_positive(amount: int, what: str = "amount") -> int:
    """Validate a user-supplied quantity; returns it unchanged."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"{what} must be an integer, got {type(amount).__name__}")
    if amount <= 0:
        raise InvalidAmount(f"{what} must be positive, got {amount}")
    return amount


# ============================================================================
# TRANSACTION ORIGIN
# ============================================================================

@dataclass(frozen=True, slots=True)
class TransactionOrigin:
    """
    Immutable record of a transaction's origin for audit purposes.

    Attributes:
        origin_type: Classification of the origin source
        source_id: Identity of the caller (account or operator)
        unit_symbol: Symbol of the market or pool the operation targets
        event_type: Operation name (e.g., "borrow", "stake")
    """
    origin_type: OriginType
    source_id: str
    unit_symbol: Optional[str] = None
    event_type: Optional[str] = None

    def __repr__(self) -> str:
        parts = [f"{self.origin_type.value}:{self.source_id}"]
        if self.unit_symbol:
            parts.append(f"unit={self.unit_symbol}")
        if self.event_type:
            parts.append(f"event={self.event_type}")
        return f"Origin({', '.join(parts)})"


# ============================================================================
# UNIT STATE CHANGE
# ============================================================================

@dataclass(frozen=True, slots=True)
class UnitStateChange:
    """
    Record of a unit state change with complete before/after snapshots.

    With key=None the snapshots are the unit's own state. With a key they
    are that one record of the unit, and None stands for an absent record.

    old_state doubles as the optimistic-concurrency precondition: the
    ledger only applies new_state if the unit (or the keyed record) still
    holds old_state.
    """
    unit: str
    old_state: Any
    new_state: Any
    key: Optional[str] = None

    def changed_fields(self) -> Dict[str, Tuple[Any, Any]]:
        """Fields that differ between old and new state, as (old, new) tuples."""
        old = self.old_state if isinstance(self.old_state, dict) else {}
        new = self.new_state if isinstance(self.new_state, dict) else {}
        changes = {}
        for key in set(old.keys()) | set(new.keys()):
            old_val = old.get(key)
            new_val = new.get(key)
            if old_val != new_val:
                changes[key] = (old_val, new_val)
        return changes


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Move:
    """
    A single transfer of value between two wallets.

    Attributes:
        quantity: Integral, positive amount in base units.
        unit_symbol: The token being transferred.
        source: The wallet ID from which value is debited.
        dest: The wallet ID to which value is credited.
        contract_id: Identifier of the operation generating this move.
    """
    quantity: Decimal
    unit_symbol: str
    source: str
    dest: str
    contract_id: str

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Move source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Move dest cannot be empty")
        if not self.unit_symbol or not self.unit_symbol.strip():
            raise ValueError("Move unit_symbol cannot be empty")
        if not self.contract_id or not self.contract_id.strip():
            raise ValueError("Move contract_id cannot be empty")
        if not isinstance(self.quantity, Decimal):
            raise ValueError(f"Move quantity must be Decimal, got {type(self.quantity)}")
        if not self.quantity.is_finite():
            raise ValueError(f"Move quantity must be finite, got {self.quantity}")
        if self.quantity <= 0:
            raise ValueError(f"Move quantity must be positive, got {self.quantity}")
        if self.quantity != self.quantity.to_integral_value():
            raise ValueError(f"Move quantity must be integral base units, got {self.quantity}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.unit_symbol}: {self.source}→{self.dest})"


@dataclass(frozen=True, slots=True)
class Notification:
    """
    Observable side effect of a committed operation.

    Notifications are appended to the ledger's notification log only after
    every move and state change of their transaction has been applied.
    They form an append-only audit trail.

    Attributes:
        name: Event name (e.g., "LoanTaken", "Staked")
        unit_symbol: Market or pool that emitted it
        account: Account the event is about
        amount: Primary quantity of the event
        details: Additional event fields (e.g., liquidator, debt cleared)
    """
    name: str
    unit_symbol: str
    account: str
    amount: int
    details: Mapping[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        extra = f", {dict(self.details)}" if self.details else ""
        return f"{self.name}({self.account}, {self.amount}{extra})"


def _normalize_decimal(d: Decimal) -> str:
    """Canonical string for a Decimal: Decimal("1.0") and Decimal("1") agree."""
    normalized = d.normalize()
    if normalized == normalized.to_integral_value():
        return str(int(normalized))
    return format(normalized, 'f')


def _canonicalize(value: Any) -> str:
    """
    Produce a canonical string representation of a value for hashing.

    Independent of dict insertion order and Decimal representation.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return f"D:{_normalize_decimal(value)}"
    if isinstance(value, (int, float)):
        return f"N:{value}"
    if isinstance(value, str):
        return f"S:{value}"
    if isinstance(value, datetime):
        return f"T:{value.isoformat()}"
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        serialized = ",".join(f"{_canonicalize(k)}:{_canonicalize(v)}" for k, v in items)
        return f"{{{serialized}}}"
    if isinstance(value, (list, tuple)):
        serialized = ",".join(_canonicalize(item) for item in value)
        return f"[{serialized}]"
    if isinstance(value, set):
        serialized = ",".join(_canonicalize(item) for item in sorted(value, key=str))
        return f"<{serialized}>"
    return f"R:{repr(value)}"


def _compute_intent_id(
    moves: Tuple[Move, ...],
    state_changes: Tuple[UnitStateChange, ...],
    origin: TransactionOrigin,
) -> str:
    """
    Deterministic content hash of a transaction's intent.

    Based solely on moves, state changes and origin; never on timestamps.
    Used for idempotency: the same intent is never applied twice.
    """
    sorted_moves = tuple(sorted(
        moves,
        key=lambda m: (_normalize_decimal(m.quantity), m.unit_symbol, m.source, m.dest, m.contract_id)
    ))

    content_parts = [f"origin:{origin.origin_type.value}:{origin.source_id}"]
    if origin.unit_symbol:
        content_parts.append(f"unit:{origin.unit_symbol}")
    if origin.event_type:
        content_parts.append(f"event:{origin.event_type}")

    for m in sorted_moves:
        qty = _normalize_decimal(m.quantity)
        content_parts.append(f"move:{qty}|{m.unit_symbol}|{m.source}|{m.dest}|{m.contract_id}")

    for sc in sorted(state_changes, key=lambda s: (s.unit, s.key or "")):
        content_parts.append(
            f"state_change:{sc.unit}|{_canonicalize(sc.key)}|"
            f"{_canonicalize(sc.old_state)}|{_canonicalize(sc.new_state)}"
        )

    content = "|".join(content_parts)
    return hashlib.sha256(content.encode()).hexdigest()[:16]


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    """
    A transaction description before execution - represents INTENT.

    Built by compute_* functions from a LedgerView and submitted to
    Ledger.execute(). Nothing in it has happened yet.

    Attributes:
        moves: Token transfers between wallets
        state_changes: Unit state changes (old_state is the precondition)
        origin: Who created this transaction and why
        timestamp: Logical time at which it was built
        notifications: Events to publish once the transaction commits
        intent_id: Content-addressable hash of the intent (auto-computed)
    """
    moves: Tuple[Move, ...]
    state_changes: Tuple[UnitStateChange, ...]
    origin: TransactionOrigin
    timestamp: datetime
    notifications: Tuple[Notification, ...] = ()
    intent_id: str = field(default="")

    def __post_init__(self):
        if not self.intent_id:
            computed_id = _compute_intent_id(self.moves, self.state_changes, self.origin)
            object.__setattr__(self, 'intent_id', computed_id)

    def is_empty(self) -> bool:
        """Return True if this pending transaction has no moves and no state changes."""
        return not self.moves and not self.state_changes

    def __repr__(self) -> str:
        return (f"PendingTransaction({len(self.moves)} moves, {len(self.state_changes)} deltas, "
                f"{len(self.notifications)} events, {self.origin})")


def build_transaction(
    view: LedgerView,
    moves: List[Move],
    state_changes: Optional[List[UnitStateChange]] = None,
    origin: Optional[TransactionOrigin] = None,
    notifications: Optional[List[Notification]] = None,
) -> PendingTransaction:
    """
    Build a PendingTransaction from moves, state changes and notifications.

    State snapshots are deep-copied so later mutation of the caller's dicts
    cannot alter the intent.

    Example:
        def compute_fee(view, symbol, payer, amount):
            moves = [Move(to_quantity(amount), "USDC", payer, "treasury", "fee")]
            return build_transaction(view, moves)
    """
    if origin is None:
        origin = TransactionOrigin(origin_type=OriginType.SYSTEM, source_id="system")

    copied_changes: Tuple[UnitStateChange, ...] = ()
    if state_changes:
        copied_changes = tuple(
            UnitStateChange(
                unit=sc.unit,
                old_state=copy.deepcopy(sc.old_state),
                new_state=copy.deepcopy(sc.new_state),
                key=sc.key,
            )
            for sc in state_changes
        )

    return PendingTransaction(
        moves=tuple(moves),
        state_changes=copied_changes,
        origin=origin,
        timestamp=view.current_time,
        notifications=tuple(notifications or ()),
    )


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An executed, immutable record of ledger state changes - represents FACT.

    Attributes:
        moves: Token transfers applied
        state_changes: Unit state changes applied
        origin: Who/what created this transaction and why
        timestamp: When the PendingTransaction was built
        intent_id: Content hash from PendingTransaction
        exec_id: Unique execution identifier (ledger + sequence + time)
        ledger_name: Name of the ledger that executed this
        execution_time: When this was executed and logged
        sequence_number: Monotonic sequence within the ledger
        notifications: Events published by this transaction
        contract_ids: Set of contract IDs from moves (auto-populated)
    """
    moves: Tuple[Move, ...]
    state_changes: Tuple[UnitStateChange, ...]
    origin: TransactionOrigin
    timestamp: datetime
    intent_id: str
    exec_id: str
    ledger_name: str
    execution_time: datetime
    sequence_number: int
    notifications: Tuple[Notification, ...] = ()
    contract_ids: FrozenSet[str] = None

    def __post_init__(self):
        if not self.moves and not self.state_changes:
            raise ValueError("Transaction must have moves or state_changes")
        if self.contract_ids is None:
            object.__setattr__(
                self, 'contract_ids',
                frozenset(m.contract_id for m in self.moves)
            )

    def __repr__(self) -> str:
        lines = [
            f"Transaction {self.exec_id}",
            f"  intent_id : {self.intent_id}",
            f"  origin    : {self.origin}",
            f"  sequence  : {self.sequence_number} @ {self.execution_time}",
        ]
        for i, move in enumerate(self.moves):
            lines.append(f"  move[{i}]   : {move.quantity} {move.unit_symbol}: {move.source} → {move.dest}")
        for sc in self.state_changes:
            label = f"{sc.unit}:{sc.key}" if sc.key is not None else sc.unit
            for field_name, (old_val, new_val) in sorted(sc.changed_fields().items()):
                if isinstance(old_val, dict) or isinstance(new_val, dict):
                    lines.append(f"  [{label}] {field_name}: updated")
                else:
                    lines.append(f"  [{label}] {field_name}: {old_val!r} → {new_val!r}")
        for note in self.notifications:
            lines.append(f"  event     : {note!r}")
        return "\n".join(lines)


def _freeze_state(state: Optional[UnitState]) -> Tuple[Tuple[str, Any], ...]:
    """Convert a state dict to a tuple of (key, value) pairs sorted by key."""
    if not state:
        return ()
    return tuple(sorted(state.items()))


def _thaw_state(frozen_state: Tuple[Tuple[str, Any], ...]) -> UnitState:
    """Convert a frozen state representation back to a mutable dict."""
    return dict(frozen_state)


@dataclass(frozen=True, slots=True)
class Unit:
    """
    Definition of a unit registered with the ledger.

    Tokens carry balances; lending markets and staking pools carry only
    state (their custody balances live in ordinary token units).

    Attributes:
        symbol: Short identifier for the unit (e.g., "WBTC", "LEND").
        name: Human-readable name for the unit.
        unit_type: TOKEN, LENDING_MARKET or STAKING_POOL.
        min_balance: Minimum allowed balance in any wallet.
        max_balance: Maximum allowed balance in any wallet.
        decimal_places: Places kept when rounding balances (0 = base units).
        _frozen_state: Internal frozen state representation.
    """
    symbol: str
    name: str
    unit_type: str
    min_balance: Decimal = Decimal("0")
    max_balance: Decimal = Decimal("Infinity")
    decimal_places: Optional[int] = 0
    _frozen_state: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    @property
    def state(self) -> UnitState:
        """The unit's state as a new dict (deep-copied by the ledger on read)."""
        return _thaw_state(self._frozen_state)

    def round(self, value: Decimal) -> Decimal:
        """Truncate a value to this unit's decimal places."""
        if self.decimal_places is None:
            return value
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        quantizer = Decimal(10) ** -self.decimal_places
        return value.quantize(quantizer, rounding=ROUND_DOWN)
