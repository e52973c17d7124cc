"""
fake_view.py - Test Helper for LedgerView

Provides a minimal LedgerView implementation for testing compute_*
functions without requiring a full Ledger instance.
"""

from __future__ import annotations
import copy
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Set, Optional, Any

from defiledger import LedgerView
from defiledger.core import Unit


# Type aliases (matching core.py)
Positions = Dict[str, Decimal]
UnitState = Dict[str, Any]
UnitRecord = Dict[str, Any]


class FakeView:
    """
    Minimal LedgerView implementation for testing pure functions.

    Balances may be given as ints; they are returned as Decimals like the
    real ledger does. Keyed records are given per unit as {key: record}.

    Example:
        view = FakeView(
            balances={'alice': {'WBTC': 10 ** 18}},
            states={'WBTC': {'decimals': 8, 'total_issued': 0, 'nonce': 0}},
            records={'WBTC': {'alice': {'allowances': {'vault': 10 ** 18}, 'nonce': 1}}},
            time=datetime(2025, 1, 1)
        )

        view.get_balance('alice', 'WBTC')
        # Returns: Decimal('1000000000000000000')
    """

    def __init__(
        self,
        balances: Dict[str, Dict[str, int]],
        states: Optional[Dict[str, UnitState]] = None,
        time: Optional[datetime] = None,
        units: Optional[Dict[str, Unit]] = None,
        records: Optional[Dict[str, Dict[str, UnitRecord]]] = None,
    ):
        self._balances = balances
        self._states = states or {}
        self._time = time or datetime(2025, 1, 1)
        self._units = units or {}
        self._records = records or {}

    @property
    def current_time(self) -> datetime:
        return self._time

    def get_balance(self, wallet: str, unit: str) -> Decimal:
        return Decimal(self._balances.get(wallet, {}).get(unit, 0))

    def get_unit_state(self, unit: str) -> UnitState:
        return copy.deepcopy(self._states.get(unit, {}))

    def get_unit_record(self, unit: str, key: str) -> Optional[UnitRecord]:
        return copy.deepcopy(self._records.get(unit, {}).get(key))

    def list_unit_records(self, unit: str) -> List[str]:
        return sorted(self._records.get(unit, {}))

    def get_positions(self, unit: str) -> Positions:
        return {
            w: Decimal(b[unit])
            for w, b in self._balances.items()
            if unit in b and b[unit] != 0
        }

    def list_wallets(self) -> Set[str]:
        return set(self._balances.keys())

    def get_unit(self, symbol: str) -> Unit:
        return self._units[symbol]
