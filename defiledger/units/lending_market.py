"""
lending_market.py - Collateralized Borrowing Against a Priced Asset

This module provides the lending market unit and its state transitions using
a pure function architecture with explicit inputs.

ARCHITECTURE (Pure Function Pattern):
=====================================

1. FROZEN DATACLASSES (explicit inputs):
   - MarketConfig: tokens and custody wallet (set at creation, never changes)
   - MarketState: price, LTV and totals (changes every operation)
   - Position: one account's collateral and debt, kept as a keyed record
     of the market unit so an operation rewrites only that account

2. PURE CALCULATION FUNCTIONS (calculate_*):
   - Integer fixed-point math, every input a parameter
   - No LedgerView, no hidden state

3. ADAPTER FUNCTIONS (load_market, load_position, to_state_dict):
   - The ONLY place that converts between unit state dicts and dataclasses

4. TRANSITION FUNCTIONS (compute_*):
   - Take (view, symbol, caller, ...) and return a PendingTransaction
   - Checks first, then the new state, then the token legs
   - Raise a ProtocolError subclass instead of returning a partial result

Key Formulas (PRECISION = 1e18, all divisions truncate):
    collateral_value = collateral * price / PRECISION
    max_borrow       = collateral_value * ltv / 100
    health_factor    = collateral_value * ltv * PRECISION / (100 * debt)
    liquidatable    <=> collateral > 0 and debt > 0 and collateral_value < debt

Price and LTV are read from the current state on every call. A price change
between two calls can change the outcome of the second one.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Any, List, Mapping, Optional, Tuple, Union

from ..access import AccessGate
from ..core import (
    LedgerView, Notification, PendingTransaction, Unit, UnitStateChange,
    TransactionOrigin, OriginType,
    PRECISION, UNIT_TYPE_LENDING_MARKET,
    ExceedsBorrowLimit, InsufficientCollateral, InsufficientCollateralAfterWithdrawal,
    InsufficientDebtToRepay, InsufficientPoolLiquidity, InvalidAmount,
    InvalidConfiguration, NotUndercollateralized, SystemPaused,
    build_transaction, require_positive, _freeze_state,
)
from ..transfer import TokenTransfer, TransferLeg


MIN_LTV_PERCENT = 1
MAX_LTV_PERCENT = 80

# Health factor of a position without debt.
HEALTH_FACTOR_INFINITE = Decimal("Infinity")

# Notification names
EVENT_COLLATERAL_DEPOSITED = "CollateralDeposited"
EVENT_COLLATERAL_WITHDRAWN = "CollateralWithdrawn"
EVENT_LOAN_TAKEN = "LoanTaken"
EVENT_LOAN_REPAID = "LoanRepaid"
EVENT_PRICE_UPDATED = "PriceUpdated"
EVENT_LTV_UPDATED = "LTVUpdated"
EVENT_LIQUIDATED = "Liquidated"
EVENT_POOL_FUNDED = "PoolFunded"
EVENT_PAUSED = "Paused"
EVENT_UNPAUSED = "Unpaused"

HealthFactor = Union[int, Decimal]


# ============================================================================
# FROZEN DATACLASSES - Explicit Inputs for Pure Functions
# ============================================================================

@dataclass(frozen=True, slots=True)
class MarketConfig:
    """Fixed description of a market: which tokens it handles and where it keeps them."""
    collateral_token: str
    debt_token: str
    market_wallet: str
    require_allowance: bool = True


@dataclass(frozen=True, slots=True)
class Position:
    """One account's balances in a market. Both amounts are base units, never negative."""
    collateral: int = 0
    debt: int = 0


@dataclass(frozen=True, slots=True)
class MarketState:
    """
    Immutable snapshot of everything that changes over a market's life.

    Each operation produces a NEW instance. Positions live outside it, one
    keyed record per account, and are never removed: an emptied or
    liquidated position stays as a zero record.
    """
    price: int                        # collateral priced in debt units, 1e18 scaled
    ltv_percent: int                  # 1..80
    paused: bool
    total_collateral: int             # sum of position collateral
    total_debt: int                   # sum of position debt
    seized_collateral: int            # collateral kept by the market after liquidations
    account_count: int                # position records ever created
    nonce: int                        # operations applied so far

    def with_settings(self, **changes) -> MarketState:
        """Copy of this state with market-wide fields replaced and the nonce advanced."""
        fields = {
            'price': self.price,
            'ltv_percent': self.ltv_percent,
            'paused': self.paused,
            'total_collateral': self.total_collateral,
            'total_debt': self.total_debt,
            'seized_collateral': self.seized_collateral,
            'account_count': self.account_count,
            'nonce': self.nonce + 1,
        }
        fields.update(changes)
        return MarketState(**fields)

    def with_position(self, record: Optional[Dict[str, Any]], **changes) -> MarketState:
        """Like with_settings(), also counting the account if `record` shows it is new."""
        if record is None:
            changes.setdefault('account_count', self.account_count + 1)
        return self.with_settings(**changes)


@dataclass(frozen=True, slots=True)
class MarketStats:
    """Market-wide figures for reporting."""
    price: int
    ltv_percent: int
    paused: bool
    total_collateral: int
    total_debt: int
    seized_collateral: int
    collateral_held: int
    available_liquidity: int
    account_count: int


# ============================================================================
# FACTORY
# ============================================================================

def validate_ltv(ltv_percent: int) -> int:
    """Raise InvalidConfiguration unless 1 <= ltv_percent <= 80."""
    if isinstance(ltv_percent, bool) or not isinstance(ltv_percent, int):
        raise InvalidConfiguration(f"LTV must be an integer percent, got {ltv_percent!r}")
    if not MIN_LTV_PERCENT <= ltv_percent <= MAX_LTV_PERCENT:
        raise InvalidConfiguration(
            f"LTV must be between {MIN_LTV_PERCENT} and {MAX_LTV_PERCENT}, got {ltv_percent}"
        )
    return ltv_percent


def create_lending_market(
    symbol: str,
    name: str,
    collateral_token: str,
    debt_token: str,
    market_wallet: str,
    price: int,
    ltv_percent: int,
    require_allowance: bool = True,
) -> Unit:
    """
    Create a lending market unit.

    The market unit carries no balances of its own (max_balance is zero);
    its collateral and lendable liquidity sit in `market_wallet`.

    Args:
        symbol: Market identifier (e.g., "WBTC_USDC")
        name: Human-readable name
        collateral_token: Token accepted as collateral
        debt_token: Token lent out
        market_wallet: Custody wallet for both tokens
        price: Collateral price in debt units, 1e18 scaled
        ltv_percent: Loan-to-value limit, 1..80
        require_allowance: Whether deposits and repayments consume allowances

    Raises:
        InvalidConfiguration: on an empty identifier, identical tokens,
            non-positive price or LTV outside 1..80.
    """
    if not collateral_token or not debt_token or not market_wallet:
        raise InvalidConfiguration("collateral_token, debt_token and market_wallet are required")
    if collateral_token == debt_token:
        raise InvalidConfiguration("collateral and debt token must differ")
    if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
        raise InvalidConfiguration(f"price must be a positive integer, got {price!r}")
    validate_ltv(ltv_percent)

    config = MarketConfig(collateral_token, debt_token, market_wallet, require_allowance)
    state = MarketState(
        price=price,
        ltv_percent=ltv_percent,
        paused=False,
        total_collateral=0,
        total_debt=0,
        seized_collateral=0,
        account_count=0,
        nonce=0,
    )
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_LENDING_MARKET,
        min_balance=Decimal("0"),
        max_balance=Decimal("0"),
        _frozen_state=_freeze_state(to_state_dict(config, state)),
    )


# ============================================================================
# ADAPTER FUNCTIONS - Bridge Between LedgerView and Pure Functions
# ============================================================================

def load_market(view: LedgerView, symbol: str) -> Tuple[MarketConfig, MarketState]:
    """
    Load a market from ledger state as typed frozen dataclasses.

    This is the ONLY function that reads market state from a LedgerView.
    """
    raw = view.get_unit_state(symbol)
    return _from_state_dict(raw)


def _from_state_dict(raw: Mapping[str, Any]) -> Tuple[MarketConfig, MarketState]:
    config = MarketConfig(
        collateral_token=raw['collateral_token'],
        debt_token=raw['debt_token'],
        market_wallet=raw['market_wallet'],
        require_allowance=raw.get('require_allowance', True),
    )
    state = MarketState(
        price=raw['price'],
        ltv_percent=raw['ltv_percent'],
        paused=raw.get('paused', False),
        total_collateral=raw.get('total_collateral', 0),
        total_debt=raw.get('total_debt', 0),
        seized_collateral=raw.get('seized_collateral', 0),
        account_count=raw.get('account_count', 0),
        nonce=raw.get('nonce', 0),
    )
    return config, state


def load_position(view: LedgerView, symbol: str, account: str) -> Position:
    """One account's position; an account that never used the market has a zero one."""
    return _position_from_record(view.get_unit_record(symbol, account))


def _position_from_record(record: Optional[Mapping[str, Any]]) -> Position:
    if record is None:
        return Position()
    return Position(collateral=record['collateral'], debt=record['debt'])


def position_to_record(position: Position) -> Dict[str, Any]:
    """Inverse of load_position(): the keyed record stored for an account."""
    return {'collateral': position.collateral, 'debt': position.debt}


def to_state_dict(config: MarketConfig, state: MarketState) -> Dict[str, Any]:
    """Inverse of load_market(): the dict stored as the unit's state."""
    return {
        'collateral_token': config.collateral_token,
        'debt_token': config.debt_token,
        'market_wallet': config.market_wallet,
        'require_allowance': config.require_allowance,
        'price': state.price,
        'ltv_percent': state.ltv_percent,
        'paused': state.paused,
        'total_collateral': state.total_collateral,
        'total_debt': state.total_debt,
        'seized_collateral': state.seized_collateral,
        'account_count': state.account_count,
        'nonce': state.nonce,
    }


def market_transfers(config: MarketConfig) -> Tuple[TokenTransfer, TokenTransfer]:
    """(collateral transfer, debt transfer) for a market's custody wallet."""
    return (
        TokenTransfer(config.collateral_token, config.market_wallet, config.require_allowance),
        TokenTransfer(config.debt_token, config.market_wallet, config.require_allowance),
    )


# ============================================================================
# PURE CALCULATION FUNCTIONS - No LedgerView, All Inputs Explicit
# ============================================================================

def calculate_collateral_value(collateral: int, price: int) -> int:
    """Collateral amount valued in debt units: collateral * price / 1e18."""
    return collateral * price // PRECISION


def calculate_max_borrow(collateral: int, price: int, ltv_percent: int) -> int:
    """Total debt the collateral supports: collateral_value * ltv / 100."""
    return calculate_collateral_value(collateral, price) * ltv_percent // 100


def calculate_health_factor(position: Position, price: int, ltv_percent: int) -> HealthFactor:
    """
    Risk-adjusted collateral value over debt, 1e18 scaled.

    Returns HEALTH_FACTOR_INFINITE when there is no debt. A value below
    PRECISION means the position is over its LTV limit.
    """
    if position.debt == 0:
        return HEALTH_FACTOR_INFINITE
    value = calculate_collateral_value(position.collateral, price)
    return value * ltv_percent * PRECISION // (100 * position.debt)


def covers_debt(collateral: int, debt: int, price: int, ltv_percent: int) -> bool:
    """
    True if `collateral` still backs `debt` at the current LTV.

    Compares value * ltv against debt * 100 without dividing, so a passing
    position also satisfies value * ltv / 100 >= debt after truncation.
    """
    if debt == 0:
        return True
    return calculate_collateral_value(collateral, price) * ltv_percent >= debt * 100


def calculate_max_withdrawable(position: Position, price: int, ltv_percent: int) -> int:
    """Largest collateral amount that can leave the position without breaking covers_debt()."""
    if position.debt == 0:
        return position.collateral
    # Smallest value v with v * ltv >= debt * 100, then smallest collateral worth v.
    required_value = -(-position.debt * 100 // ltv_percent)
    required_collateral = -(-required_value * PRECISION // price)
    return max(0, position.collateral - required_collateral)


def is_undercollateralized(position: Position, price: int) -> bool:
    """Outright insolvency: collateral worth strictly less than the debt."""
    if position.collateral == 0 or position.debt == 0:
        return False
    return calculate_collateral_value(position.collateral, price) < position.debt


# ============================================================================
# TRANSITION FUNCTIONS
# ============================================================================

def _build(
    view: LedgerView,
    symbol: str,
    config: MarketConfig,
    old_raw: Dict[str, Any],
    new_state: MarketState,
    caller: str,
    operation: str,
    origin_type: OriginType,
    legs: List[TransferLeg],
    notifications: List[Notification],
    account: Optional[str] = None,
    old_record: Optional[Dict[str, Any]] = None,
    position: Optional[Position] = None,
) -> PendingTransaction:
    moves = [m for leg in legs for m in leg.moves]
    state_changes = [sc for leg in legs for sc in leg.state_changes]
    state_changes.append(
        UnitStateChange(unit=symbol, old_state=old_raw, new_state=to_state_dict(config, new_state))
    )
    if account is not None:
        state_changes.append(
            UnitStateChange(unit=symbol, old_state=old_record,
                            new_state=position_to_record(position), key=account)
        )
    return build_transaction(
        view,
        moves=moves,
        state_changes=state_changes,
        origin=TransactionOrigin(origin_type, caller, symbol, operation),
        notifications=notifications,
    )


def _load(view: LedgerView, symbol: str) -> Tuple[Dict[str, Any], MarketConfig, MarketState]:
    raw = view.get_unit_state(symbol)
    config, state = _from_state_dict(raw)
    return raw, config, state


def _load_position(view: LedgerView, symbol: str, account: str) -> Tuple[Optional[Dict[str, Any]], Position]:
    record = view.get_unit_record(symbol, account)
    return record, _position_from_record(record)


def _require_active(symbol: str, state: MarketState) -> None:
    if state.paused:
        raise SystemPaused(f"market {symbol} is paused")


def _contract_id(symbol: str, operation: str, account: str, state: MarketState) -> str:
    return f"{symbol}_{operation}_{account}_{state.nonce}"


def compute_deposit_collateral(
    view: LedgerView,
    symbol: str,
    caller: str,
    amount: int,
) -> PendingTransaction:
    """
    Pull `amount` of collateral from the caller and credit their position.

    Deposits only make a position safer, so no risk check is needed.
    """
    require_positive(amount)
    raw, config, state = _load(view, symbol)
    _require_active(symbol, state)

    record, position = _load_position(view, symbol, caller)
    new_position = Position(collateral=position.collateral + amount, debt=position.debt)
    new_state = state.with_position(record, total_collateral=state.total_collateral + amount)

    collateral_transfer, _ = market_transfers(config)
    leg = collateral_transfer.pull(view, caller, amount, _contract_id(symbol, "deposit", caller, state))
    note = Notification(EVENT_COLLATERAL_DEPOSITED, symbol, caller, amount)
    return _build(view, symbol, config, raw, new_state, caller, "deposit_collateral",
                  OriginType.USER_ACTION, [leg], [note], caller, record, new_position)


def compute_borrow(
    view: LedgerView,
    symbol: str,
    caller: str,
    amount: int,
) -> PendingTransaction:
    """
    Lend `amount` of the debt token against the caller's collateral.

    Raises:
        InsufficientCollateral: the caller has no collateral
        ExceedsBorrowLimit: debt + amount > collateral_value * ltv / 100
        InsufficientPoolLiquidity: the market holds less than amount
    """
    require_positive(amount)
    raw, config, state = _load(view, symbol)
    _require_active(symbol, state)

    record, position = _load_position(view, symbol, caller)
    if position.collateral == 0:
        raise InsufficientCollateral(f"{caller} has no collateral in {symbol}")

    max_borrow = calculate_max_borrow(position.collateral, state.price, state.ltv_percent)
    if position.debt + amount > max_borrow:
        raise ExceedsBorrowLimit(
            f"{caller} debt {position.debt} + {amount} exceeds limit {max_borrow}"
        )

    _, debt_transfer = market_transfers(config)
    liquidity = debt_transfer.balance_of(view, config.market_wallet)
    if liquidity < amount:
        raise InsufficientPoolLiquidity(f"{symbol} holds {liquidity} {config.debt_token}, cannot lend {amount}")

    new_position = Position(collateral=position.collateral, debt=position.debt + amount)
    new_state = state.with_position(record, total_debt=state.total_debt + amount)
    leg = debt_transfer.push(view, caller, amount, _contract_id(symbol, "borrow", caller, state))
    note = Notification(EVENT_LOAN_TAKEN, symbol, caller, amount)
    return _build(view, symbol, config, raw, new_state, caller, "borrow",
                  OriginType.USER_ACTION, [leg], [note], caller, record, new_position)


def compute_repay(
    view: LedgerView,
    symbol: str,
    caller: str,
    amount: int,
) -> PendingTransaction:
    """
    Pull `amount` of the debt token from the caller and reduce their principal.

    Repayment stays open while the market is paused.

    Raises:
        InsufficientDebtToRepay: amount exceeds the outstanding debt
    """
    require_positive(amount)
    raw, config, state = _load(view, symbol)

    record, position = _load_position(view, symbol, caller)
    if amount > position.debt:
        raise InsufficientDebtToRepay(f"{caller} owes {position.debt}, cannot repay {amount}")

    new_position = Position(collateral=position.collateral, debt=position.debt - amount)
    new_state = state.with_position(record, total_debt=state.total_debt - amount)
    _, debt_transfer = market_transfers(config)
    leg = debt_transfer.pull(view, caller, amount, _contract_id(symbol, "repay", caller, state))
    note = Notification(EVENT_LOAN_REPAID, symbol, caller, amount)
    return _build(view, symbol, config, raw, new_state, caller, "repay",
                  OriginType.USER_ACTION, [leg], [note], caller, record, new_position)


def compute_withdraw_collateral(
    view: LedgerView,
    symbol: str,
    caller: str,
    amount: int,
) -> PendingTransaction:
    """
    Return `amount` of collateral to the caller.

    With debt outstanding, the remaining collateral must still cover the
    debt at the current price and LTV.

    Raises:
        InsufficientCollateral: amount exceeds the caller's collateral
        InsufficientCollateralAfterWithdrawal: the remainder would not cover the debt
    """
    require_positive(amount)
    raw, config, state = _load(view, symbol)
    _require_active(symbol, state)

    record, position = _load_position(view, symbol, caller)
    if amount > position.collateral:
        raise InsufficientCollateral(
            f"{caller} has {position.collateral} collateral, cannot withdraw {amount}"
        )
    remaining = position.collateral - amount
    if not covers_debt(remaining, position.debt, state.price, state.ltv_percent):
        raise InsufficientCollateralAfterWithdrawal(
            f"{remaining} collateral left would not cover debt {position.debt} at LTV {state.ltv_percent}%"
        )

    new_position = Position(collateral=remaining, debt=position.debt)
    new_state = state.with_position(record, total_collateral=state.total_collateral - amount)
    collateral_transfer, _ = market_transfers(config)
    leg = collateral_transfer.push(view, caller, amount, _contract_id(symbol, "withdraw", caller, state))
    note = Notification(EVENT_COLLATERAL_WITHDRAWN, symbol, caller, amount)
    return _build(view, symbol, config, raw, new_state, caller, "withdraw_collateral",
                  OriginType.USER_ACTION, [leg], [note], caller, record, new_position)


def compute_liquidation(
    view: LedgerView,
    symbol: str,
    caller: str,
    borrower: str,
    gate: AccessGate,
) -> PendingTransaction:
    """
    Seize all of an insolvent borrower's collateral and clear all of their debt.

    Only outright insolvency (collateral value strictly below debt) qualifies;
    being over the LTV limit is not enough. The seized collateral stays in
    the market wallet and is tracked as seized_collateral. Nothing is paid out.

    Raises:
        Unauthorized: caller is not privileged
        InsufficientCollateral: the borrower has no collateral
        NotUndercollateralized: the borrower has no debt, or is solvent
    """
    gate.require_privileged(caller)
    raw, config, state = _load(view, symbol)

    record, position = _load_position(view, symbol, borrower)
    if position.collateral == 0:
        raise InsufficientCollateral(f"{borrower} has no collateral in {symbol}")
    if position.debt == 0:
        raise NotUndercollateralized(f"{borrower} has no debt in {symbol}")
    value = calculate_collateral_value(position.collateral, state.price)
    if value >= position.debt:
        raise NotUndercollateralized(
            f"{borrower} collateral value {value} covers debt {position.debt}"
        )

    new_state = state.with_position(
        record,
        total_collateral=state.total_collateral - position.collateral,
        total_debt=state.total_debt - position.debt,
        seized_collateral=state.seized_collateral + position.collateral,
    )
    note = Notification(
        EVENT_LIQUIDATED, symbol, borrower, position.collateral,
        {'liquidator': caller, 'seized_collateral': position.collateral, 'debt_cleared': position.debt},
    )
    return _build(view, symbol, config, raw, new_state, caller, "liquidate",
                  OriginType.PRIVILEGED, [], [note], borrower, record, Position())


def compute_set_price(
    view: LedgerView,
    symbol: str,
    caller: str,
    price: int,
    gate: AccessGate,
) -> PendingTransaction:
    """Replace the collateral price (1e18 scaled debt units per collateral unit)."""
    gate.require_privileged(caller)
    if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
        raise InvalidAmount(f"price must be a positive integer, got {price!r}")
    raw, config, state = _load(view, symbol)

    new_state = state.with_settings(price=price)
    note = Notification(EVENT_PRICE_UPDATED, symbol, caller, price, {'old_price': state.price})
    return _build(view, symbol, config, raw, new_state, caller, "set_price",
                  OriginType.PRIVILEGED, [], [note])


def compute_set_ltv(
    view: LedgerView,
    symbol: str,
    caller: str,
    ltv_percent: int,
    gate: AccessGate,
) -> PendingTransaction:
    """Replace the loan-to-value limit; must stay within 1..80."""
    gate.require_privileged(caller)
    validate_ltv(ltv_percent)
    raw, config, state = _load(view, symbol)

    new_state = state.with_settings(ltv_percent=ltv_percent)
    note = Notification(EVENT_LTV_UPDATED, symbol, caller, ltv_percent, {'old_ltv': state.ltv_percent})
    return _build(view, symbol, config, raw, new_state, caller, "set_ltv",
                  OriginType.PRIVILEGED, [], [note])


def compute_fund_pool(
    view: LedgerView,
    symbol: str,
    caller: str,
    amount: int,
    gate: AccessGate,
) -> PendingTransaction:
    """Pull `amount` of the debt token from the operator into lendable liquidity."""
    gate.require_privileged(caller)
    require_positive(amount)
    raw, config, state = _load(view, symbol)

    _, debt_transfer = market_transfers(config)
    leg = debt_transfer.pull(view, caller, amount, _contract_id(symbol, "fund", caller, state))
    note = Notification(EVENT_POOL_FUNDED, symbol, caller, amount)
    return _build(view, symbol, config, raw, state.with_settings(), caller, "fund_pool",
                  OriginType.PRIVILEGED, [leg], [note])


def compute_set_paused(
    view: LedgerView,
    symbol: str,
    caller: str,
    paused: bool,
    gate: AccessGate,
) -> PendingTransaction:
    """
    Pause or unpause deposits, borrowing and withdrawals.

    Repayment and liquidation are never paused.

    Raises:
        InvalidConfiguration: the market is already in the requested state
    """
    gate.require_privileged(caller)
    raw, config, state = _load(view, symbol)
    if state.paused == paused:
        raise InvalidConfiguration(f"market {symbol} is already {'paused' if paused else 'active'}")

    note = Notification(EVENT_PAUSED if paused else EVENT_UNPAUSED, symbol, caller, 0)
    return _build(view, symbol, config, raw, state.with_settings(paused=paused), caller,
                  "pause" if paused else "unpause", OriginType.PRIVILEGED, [], [note])


# ============================================================================
# QUERIES
# ============================================================================

def get_position(view: LedgerView, symbol: str, account: str) -> Position:
    return load_position(view, symbol, account)


def get_account_health(view: LedgerView, symbol: str, account: str) -> HealthFactor:
    """Health factor of an account at the current price (see calculate_health_factor)."""
    _, state = load_market(view, symbol)
    return calculate_health_factor(load_position(view, symbol, account), state.price, state.ltv_percent)


def get_max_borrowable(view: LedgerView, symbol: str, account: str) -> int:
    """Additional debt the account could take on right now, ignoring pool liquidity."""
    _, state = load_market(view, symbol)
    position = load_position(view, symbol, account)
    limit = calculate_max_borrow(position.collateral, state.price, state.ltv_percent)
    return max(0, limit - position.debt)


def get_max_withdrawable(view: LedgerView, symbol: str, account: str) -> int:
    _, state = load_market(view, symbol)
    return calculate_max_withdrawable(load_position(view, symbol, account), state.price, state.ltv_percent)


def is_liquidatable(view: LedgerView, symbol: str, account: str) -> bool:
    _, state = load_market(view, symbol)
    return is_undercollateralized(load_position(view, symbol, account), state.price)


def list_accounts(view: LedgerView, symbol: str) -> List[str]:
    """Every account that ever held a position, zero records included, sorted."""
    return view.list_unit_records(symbol)


def get_market_stats(view: LedgerView, symbol: str) -> MarketStats:
    config, state = load_market(view, symbol)
    collateral_transfer, debt_transfer = market_transfers(config)
    return MarketStats(
        price=state.price,
        ltv_percent=state.ltv_percent,
        paused=state.paused,
        total_collateral=state.total_collateral,
        total_debt=state.total_debt,
        seized_collateral=state.seized_collateral,
        collateral_held=collateral_transfer.balance_of(view, config.market_wallet),
        available_liquidity=debt_transfer.balance_of(view, config.market_wallet),
        account_count=state.account_count,
    )


def find_liquidatable(view: LedgerView, symbol: str) -> List[str]:
    """
    Accounts whose collateral is currently worth less than their debt, sorted.

    Scans every position record, so its cost grows with the account count.
    """
    _, state = load_market(view, symbol)
    return [
        account for account in view.list_unit_records(symbol)
        if is_undercollateralized(load_position(view, symbol, account), state.price)
    ]
