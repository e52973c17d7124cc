"""
token.py - Fungible Token Units

Tokens are the only units that carry balances. Amounts are integers in base
units (for an 18-decimal token, 10**18 base units == one whole token), so
every token is registered with decimal_places=0 and a zero minimum balance.

This module provides:
1. create_token_unit() - Factory for fungible token units
2. compute_issue() - Mint new supply from the system wallet
3. compute_approve() - Record a spending allowance
4. get_allowance() - Read an allowance

Allowances are keyed records of the token unit, one per owner, and are
consumed by TokenTransfer.pull(). The unit state itself holds only the
decimals, the issued total and a `nonce` counting issuances.
"""

from __future__ import annotations
from decimal import Decimal
from typing import Dict, Any

from ..core import (
    LedgerView, Move, Notification, PendingTransaction, Unit, UnitStateChange,
    TransactionOrigin, OriginType,
    SYSTEM_WALLET, UNIT_TYPE_TOKEN,
    InvalidAmount, InvalidConfiguration,
    build_transaction, to_quantity, _freeze_state,
)
from ..transfer import allowance_change, load_allowances


EVENT_ISSUED = "Issued"
EVENT_APPROVAL = "Approval"


def create_token_unit(symbol: str, name: str, decimals: int = 18) -> Unit:
    """
    Create a fungible token unit.

    Args:
        symbol: Token symbol (e.g., "WBTC", "USDC").
        name: Human-readable name.
        decimals: Number of decimals one whole token is split into. Purely
            descriptive: all amounts handled by the ledger are base units.

    Returns:
        A Unit with integral, non-negative balances and no allowances.

    Raises:
        InvalidConfiguration: if decimals is negative or symbol is empty.
    """
    if not symbol or not symbol.strip():
        raise InvalidConfiguration("token symbol cannot be empty")
    if decimals < 0:
        raise InvalidConfiguration(f"decimals must be >= 0, got {decimals}")

    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_TOKEN,
        min_balance=Decimal("0"),
        decimal_places=0,
        _frozen_state=_freeze_state({
            'decimals': decimals,
            'total_issued': 0,
            'nonce': 0,
        }),
    )


def get_allowance(view: LedgerView, symbol: str, owner: str, spender: str) -> int:
    """Amount `spender` may still pull from `owner`."""
    _, allowances = load_allowances(view, symbol, owner)
    return allowances.get(spender, 0)


def compute_approve(
    view: LedgerView,
    symbol: str,
    owner: str,
    spender: str,
    amount: int,
) -> PendingTransaction:
    """
    Set the allowance `spender` may pull from `owner` (overwrites, not adds).

    An amount of zero revokes the allowance.
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise InvalidAmount(f"allowance must be a non-negative integer, got {amount!r}")
    if owner == spender:
        raise InvalidAmount("owner cannot approve itself")

    record, allowances = load_allowances(view, symbol, owner)
    if amount == 0:
        allowances.pop(spender, None)
    else:
        allowances[spender] = amount

    return build_transaction(
        view,
        moves=[],
        state_changes=[allowance_change(symbol, owner, record, allowances)],
        origin=TransactionOrigin(OriginType.USER_ACTION, owner, symbol, "approve"),
        notifications=[Notification(EVENT_APPROVAL, symbol, owner, amount, {'spender': spender})],
    )


def compute_issue(
    view: LedgerView,
    symbol: str,
    dest: str,
    amount: int,
) -> PendingTransaction:
    """
    Mint `amount` of a token into `dest`.

    Issuance is a move out of the system wallet, so total supply across all
    wallets (system wallet included) stays at zero and double-entry holds.
    Every issuance bumps the token nonce (and every approval the owner
    record nonce), so identical mints or approvals are distinct intents and
    never mistaken for retries.
    """
    moves = [Move(to_quantity(amount), symbol, SYSTEM_WALLET, dest, f"issue_{symbol}_{dest}")]
    state: Dict[str, Any] = view.get_unit_state(symbol)
    new_state = {
        **state,
        'total_issued': state.get('total_issued', 0) + amount,
        'nonce': state.get('nonce', 0) + 1,
    }
    return build_transaction(
        view,
        moves=moves,
        state_changes=[UnitStateChange(unit=symbol, old_state=state, new_state=new_state)],
        origin=TransactionOrigin(OriginType.SYSTEM, SYSTEM_WALLET, symbol, "issue"),
        notifications=[Notification(EVENT_ISSUED, symbol, dest, amount)],
    )
