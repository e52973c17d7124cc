"""
test_core_types.py - Unit tests for core data structures

Tests:
- Move validation (integral, positive, distinct wallets)
- Fixed-point helpers (to_quantity, to_amount, require_positive)
- Intent ids: content-addressed, insensitive to timestamps
- Notifications and state change diffs
- Error codes carried by protocol errors
"""

import pytest
from datetime import datetime
from decimal import Decimal

from defiledger import (
    Move, Notification, PendingTransaction, TransactionOrigin, OriginType,
    UnitStateChange, ErrorCode, ProtocolError, TransferFailed,
    InvalidAmount, InsufficientAllowance, InsufficientBalance, InsufficientContractBalance,
    ExceedsBorrowLimit, to_quantity, to_amount,
)
from defiledger.core import require_positive, _compute_intent_id


class TestMove:

    def test_valid_move(self):
        move = Move(Decimal(5), "USDC", "alice", "bob", "pay_1")
        assert move.quantity == Decimal(5)

    @pytest.mark.parametrize("quantity", [Decimal(0), Decimal(-1), Decimal("1.5"), Decimal("Infinity")])
    def test_rejects_bad_quantity(self, quantity):
        with pytest.raises(ValueError):
            Move(quantity, "USDC", "alice", "bob", "pay_1")

    def test_rejects_float_quantity(self):
        with pytest.raises(ValueError):
            Move(5.0, "USDC", "alice", "bob", "pay_1")

    def test_rejects_self_transfer(self):
        with pytest.raises(ValueError, match="different"):
            Move(Decimal(1), "USDC", "alice", "alice", "pay_1")

    def test_rejects_empty_ids(self):
        with pytest.raises(ValueError):
            Move(Decimal(1), "USDC", "", "bob", "pay_1")
        with pytest.raises(ValueError):
            Move(Decimal(1), "USDC", "alice", "bob", " ")


class TestFixedPoint:

    def test_to_quantity_roundtrip(self):
        amount = 25_000 * 10 ** 18
        assert to_amount(to_quantity(amount)) == amount

    @pytest.mark.parametrize("amount", [0, -5, True, 1.0, "10"])
    def test_to_quantity_rejects(self, amount):
        with pytest.raises(InvalidAmount):
            to_quantity(amount)

    def test_require_positive_names_field(self):
        with pytest.raises(InvalidAmount, match="price"):
            require_positive(0, "price")
        assert require_positive(7) == 7

    def test_large_products_stay_exact(self):
        # collateral * price reaches ~1e42; balances must not lose digits
        big = 10 ** 40 + 1
        assert to_quantity(big) + Decimal(1) == Decimal(10 ** 40 + 2)


class TestIntentId:

    def _origin(self):
        return TransactionOrigin(OriginType.USER_ACTION, "alice", "M", "borrow")

    def test_same_content_same_id(self):
        moves = (Move(Decimal(1), "USDC", "alice", "bob", "c1"),)
        a = PendingTransaction(moves, (), self._origin(), datetime(2025, 1, 1))
        b = PendingTransaction(moves, (), self._origin(), datetime(2026, 6, 1))
        assert a.intent_id == b.intent_id

    def test_state_change_alters_id(self):
        origin = self._origin()
        sc1 = (UnitStateChange("M", {'nonce': 0}, {'nonce': 1}),)
        sc2 = (UnitStateChange("M", {'nonce': 1}, {'nonce': 2}),)
        assert _compute_intent_id((), sc1, origin) != _compute_intent_id((), sc2, origin)

    def test_dict_order_irrelevant(self):
        origin = self._origin()
        sc1 = (UnitStateChange("M", {'a': 1, 'b': 2}, {'a': 2, 'b': 2}),)
        sc2 = (UnitStateChange("M", {'b': 2, 'a': 1}, {'b': 2, 'a': 2}),)
        assert _compute_intent_id((), sc1, origin) == _compute_intent_id((), sc2, origin)

    def test_empty(self):
        pending = PendingTransaction((), (), self._origin(), datetime(2025, 1, 1))
        assert pending.is_empty()


class TestStateChangeAndNotification:

    def test_changed_fields(self):
        sc = UnitStateChange("M", {'price': 1, 'ltv': 50}, {'price': 2, 'ltv': 50})
        assert sc.changed_fields() == {'price': (1, 2)}

    def test_changed_fields_of_new_record(self):
        sc = UnitStateChange("M", None, {'collateral': 5, 'debt': 0}, key="alice")
        assert sc.changed_fields() == {'collateral': (None, 5), 'debt': (None, 0)}

    def test_notification_repr(self):
        note = Notification("Liquidated", "M", "bob", 5, {'liquidator': 'op'})
        assert "Liquidated(bob, 5" in repr(note)
        assert "liquidator" in repr(note)


class TestErrorCodes:

    def test_codes(self):
        assert ExceedsBorrowLimit("x").code == ErrorCode.EXCEEDS_BORROW_LIMIT
        assert InvalidAmount("x").code == ErrorCode.INVALID_AMOUNT

    @pytest.mark.parametrize("exc", [InsufficientAllowance, InsufficientBalance, InsufficientContractBalance])
    def test_transfer_failures_share_code(self, exc):
        err = exc("boom")
        assert isinstance(err, TransferFailed)
        assert isinstance(err, ProtocolError)
        assert err.code == ErrorCode.TRANSFER_FAILED
