"""
transfer.py - ValueTransfer: moving tokens between accounts and custody wallets

Lending markets and staking pools never touch balances themselves. They ask a
ValueTransfer for a TransferLeg (the moves plus any allowance bookkeeping)
and fold the leg into the pending transaction they are building. The ledger
then applies everything at once, so a transfer can never commit without the
accounting change that caused it, and vice versa.

One TokenTransfer exists per token denomination a market or pool handles.

Allowances are keyed records of the token unit, one per owner:
``{'allowances': {spender: amount}, 'nonce': n}``. The record is never
removed, so its nonce keeps counting across revocations.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable

from .core import (
    LedgerView, Move, UnitRecord, UnitStateChange,
    InsufficientAllowance, InsufficientBalance, InsufficientContractBalance, TransferFailed,
    to_amount, to_quantity,
)


@dataclass(frozen=True, slots=True)
class TransferLeg:
    """Moves and state changes that together perform one token transfer."""
    moves: Tuple[Move, ...] = ()
    state_changes: Tuple[UnitStateChange, ...] = ()


def load_allowances(view: LedgerView, symbol: str, owner: str) -> Tuple[Optional[UnitRecord], Dict[str, int]]:
    """(raw allowance record of `owner`, its spender -> amount table)."""
    record = view.get_unit_record(symbol, owner)
    allowances = dict(record['allowances']) if record else {}
    return record, allowances


def allowance_change(
    symbol: str,
    owner: str,
    old_record: Optional[UnitRecord],
    allowances: Dict[str, int],
) -> UnitStateChange:
    """State change replacing `owner`'s allowance table and bumping its nonce."""
    nonce = old_record['nonce'] if old_record else 0
    return UnitStateChange(
        unit=symbol,
        old_state=old_record,
        new_state={'allowances': allowances, 'nonce': nonce + 1},
        key=owner,
    )


@runtime_checkable
class ValueTransfer(Protocol):
    """
    Token movement between an account and the custody wallet of a market or pool.

    pull() and push() validate against the view and raise a TransferFailed
    subclass instead of returning a leg that the ledger would reject.
    """
    symbol: str
    custody_wallet: str

    def balance_of(self, view: LedgerView, holder: str) -> int:
        ...

    def pull(self, view: LedgerView, source: str, amount: int, contract_id: str) -> TransferLeg:
        ...

    def push(self, view: LedgerView, dest: str, amount: int, contract_id: str) -> TransferLeg:
        ...


class TokenTransfer:
    """
    ValueTransfer over a token unit registered with the ledger.

    Args:
        symbol: Token unit symbol
        custody_wallet: Wallet holding the tokens of the market or pool
        require_allowance: When True, pull() needs the source to have approved
            the custody wallet and consumes the allowance.
    """

    def __init__(self, symbol: str, custody_wallet: str, require_allowance: bool = True):
        self.symbol = symbol
        self.custody_wallet = custody_wallet
        self.require_allowance = require_allowance

    def balance_of(self, view: LedgerView, holder: str) -> int:
        return to_amount(view.get_balance(holder, self.symbol))

    def pull(self, view: LedgerView, source: str, amount: int, contract_id: str) -> TransferLeg:
        """
        Move `amount` from `source` into custody.

        Raises:
            InvalidAmount: amount is not a positive integer
            TransferFailed: source is the custody wallet itself
            InsufficientAllowance: source has not approved enough for custody
            InsufficientBalance: source does not hold amount
        """
        quantity = to_quantity(amount)
        if source == self.custody_wallet:
            raise TransferFailed(f"{self.custody_wallet} cannot transfer {self.symbol} to itself")
        state_changes: Tuple[UnitStateChange, ...] = ()

        if self.require_allowance:
            record, allowances = load_allowances(view, self.symbol, source)
            granted = allowances.get(self.custody_wallet, 0)
            if granted < amount:
                raise InsufficientAllowance(
                    f"{source} approved {granted} {self.symbol} for {self.custody_wallet}, needs {amount}"
                )
            if granted == amount:
                allowances.pop(self.custody_wallet)
            else:
                allowances[self.custody_wallet] = granted - amount
            state_changes = (allowance_change(self.symbol, source, record, allowances),)

        held = self.balance_of(view, source)
        if held < amount:
            raise InsufficientBalance(f"{source} holds {held} {self.symbol}, needs {amount}")

        move = Move(quantity, self.symbol, source, self.custody_wallet, contract_id)
        return TransferLeg(moves=(move,), state_changes=state_changes)

    def push(self, view: LedgerView, dest: str, amount: int, contract_id: str) -> TransferLeg:
        """
        Move `amount` out of custody to `dest`.

        Raises:
            InvalidAmount: amount is not a positive integer
            TransferFailed: dest is the custody wallet itself
            InsufficientContractBalance: custody does not hold amount
        """
        quantity = to_quantity(amount)
        if dest == self.custody_wallet:
            raise TransferFailed(f"{self.custody_wallet} cannot transfer {self.symbol} to itself")
        held = self.balance_of(view, self.custody_wallet)
        if held < amount:
            raise InsufficientContractBalance(
                f"{self.custody_wallet} holds {held} {self.symbol}, cannot pay {amount}"
            )
        move = Move(quantity, self.symbol, self.custody_wallet, dest, contract_id)
        return TransferLeg(moves=(move,))

    def __repr__(self) -> str:
        return f"TokenTransfer({self.symbol} via {self.custody_wallet})"
