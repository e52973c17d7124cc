"""
reward_engine.py - RewardAccrualEngine entry points

RewardAccrualEngine is the public face of one staking pool registered in a
Ledger. Mutating methods return an OperationResult and never raise protocol
errors. Time comes from the ledger's logical clock; advance it with
Ledger.advance_time().
"""

from __future__ import annotations
from datetime import timedelta
from typing import Callable, Optional, TypeVar

from .access import AccessGate
from .core import LedgerView, PendingTransaction
from .execution import OperationResult, OperationRunner
from .ledger import Ledger
from .units import staking_pool as sp
from .units.staking_pool import PoolStats, UserInfo

T = TypeVar("T")


class RewardAccrualEngine:
    """
    Staking with continuous rewards and a cooldown-gated unstake window.

    Args:
        ledger: Ledger holding the pool unit and the token balances
        symbol: Symbol of a registered staking pool unit
        gate: Who may run privileged operations
        runner: Shared runner (one is created when omitted)
    """

    def __init__(self, ledger: Ledger, symbol: str, gate: AccessGate,
                 runner: Optional[OperationRunner] = None):
        self.ledger = ledger
        self.symbol = symbol
        self.gate = gate
        self.runner = runner or OperationRunner(ledger)

    @classmethod
    def create(
        cls,
        ledger: Ledger,
        symbol: str,
        staking_token: str,
        reward_token: str,
        gate: AccessGate,
        apy_percent: int = sp.DEFAULT_APY_PERCENT,
        pool_wallet: Optional[str] = None,
        name: Optional[str] = None,
        cooldown_period: timedelta = sp.COOLDOWN_PERIOD,
        unstake_window: timedelta = sp.UNSTAKE_WINDOW,
        require_allowance: bool = True,
        runner: Optional[OperationRunner] = None,
    ) -> RewardAccrualEngine:
        """Register a new staking pool and its custody wallet. Both tokens must exist."""
        wallet = pool_wallet or f"{symbol}_pool"
        unit = sp.create_staking_pool(
            symbol, name or f"{staking_token} staking", staking_token, reward_token, wallet,
            apy_percent, cooldown_period, unstake_window, require_allowance,
        )
        for token in (staking_token, reward_token):
            ledger.get_unit(token)
        with ledger.write_lock:
            ledger.register_unit(unit)
            ledger.ensure_wallet(wallet)
        return cls(ledger, symbol, gate, runner)

    @property
    def pool_wallet(self) -> str:
        config, _ = self._read(lambda view: sp.load_pool(view, self.symbol))
        return config.pool_wallet

    def _run(self, caller: str, build: Callable[[LedgerView], PendingTransaction]) -> OperationResult:
        return self.runner.run([f"{self.symbol}:{caller}"], build)

    def _read(self, query: Callable[[LedgerView], T]) -> T:
        with self.ledger.write_lock:
            return query(self.ledger)

    # Account operations

    def stake(self, caller: str, amount: int) -> OperationResult:
        return self._run(caller, lambda view: sp.compute_stake(view, self.symbol, caller, amount))

    def start_cooldown(self, caller: str) -> OperationResult:
        return self._run(caller, lambda view: sp.compute_start_cooldown(view, self.symbol, caller))

    def unstake(self, caller: str, amount: int = 0) -> OperationResult:
        """Unstake `amount`, or everything when amount is 0."""
        return self._run(caller, lambda view: sp.compute_unstake(view, self.symbol, caller, amount))

    def claim_rewards(self, caller: str) -> OperationResult:
        return self._run(caller, lambda view: sp.compute_claim_rewards(view, self.symbol, caller))

    # Privileged operations

    def fund_rewards(self, caller: str, amount: int) -> OperationResult:
        return self._run(caller, lambda view: sp.compute_fund_rewards(view, self.symbol, caller, amount, self.gate))

    def update_reward_rate(self, caller: str, apy_percent: int) -> OperationResult:
        return self._run(
            caller, lambda view: sp.compute_update_reward_rate(view, self.symbol, caller, apy_percent, self.gate)
        )

    def emergency_withdraw(self, caller: str, amount: int) -> OperationResult:
        return self._run(
            caller, lambda view: sp.compute_emergency_withdraw(view, self.symbol, caller, amount, self.gate)
        )

    def pause(self, caller: str) -> OperationResult:
        return self._run(caller, lambda view: sp.compute_set_paused(view, self.symbol, caller, True, self.gate))

    def unpause(self, caller: str) -> OperationResult:
        return self._run(caller, lambda view: sp.compute_set_paused(view, self.symbol, caller, False, self.gate))

    # Queries

    def get_pending_rewards(self, account: str) -> int:
        return self._read(lambda view: sp.get_pending_rewards(view, self.symbol, account))

    def get_acc_reward_per_share(self) -> int:
        return self._read(lambda view: sp.get_acc_reward_per_share(view, self.symbol))

    def get_user_info(self, account: str) -> UserInfo:
        return self._read(lambda view: sp.get_user_info(view, self.symbol, account))

    def get_contract_stats(self) -> PoolStats:
        return self._read(lambda view: sp.get_contract_stats(view, self.symbol))

    def calculate_yearly_rewards(self, amount: int) -> int:
        return self._read(lambda view: sp.get_yearly_rewards(view, self.symbol, amount))

    def get_current_apr(self) -> int:
        return self._read(lambda view: sp.get_current_apr(view, self.symbol))

    def __repr__(self) -> str:
        return f"RewardAccrualEngine({self.symbol})"
