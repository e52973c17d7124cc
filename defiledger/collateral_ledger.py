"""
collateral_ledger.py - CollateralLedger entry points

CollateralLedger is the public face of one lending market registered in a
Ledger. Every mutating method runs through OperationRunner and returns an
OperationResult; protocol errors never escape. Queries read the current
ledger state under the same lock writers use, so they never see a
half-applied operation.

Usage:
    ledger = Ledger("main", verbose=False)
    ledger.register_unit(create_token_unit("WBTC", "Wrapped Bitcoin"))
    ledger.register_unit(create_token_unit("USDC", "USD Coin"))
    market = CollateralLedger.create(
        ledger, "WBTC_USDC", "WBTC", "USDC",
        price=50_000 * PRECISION, ltv_percent=50, gate=OwnerGate("operator"),
    )
    market.deposit_collateral("alice", 10 ** 18)
    market.borrow("alice", 25_000 * 10 ** 18)
"""

from __future__ import annotations
from typing import Callable, List, Optional, TypeVar

from .access import AccessGate
from .core import LedgerView, PendingTransaction
from .execution import OperationResult, OperationRunner
from .ledger import Ledger
from .units import lending_market as lm
from .units.lending_market import HealthFactor, MarketStats, Position

T = TypeVar("T")


class CollateralLedger:
    """
    Collateralized borrowing against a priced asset.

    Args:
        ledger: Ledger holding the market unit and the token balances
        symbol: Symbol of a registered lending market unit
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
        collateral_token: str,
        debt_token: str,
        price: int,
        ltv_percent: int,
        gate: AccessGate,
        market_wallet: Optional[str] = None,
        name: Optional[str] = None,
        require_allowance: bool = True,
        runner: Optional[OperationRunner] = None,
    ) -> CollateralLedger:
        """
        Register a new lending market and its custody wallet.

        Both tokens must already be registered.

        Raises:
            InvalidConfiguration: on invalid price, LTV or tokens
            UnitNotRegistered: if either token is missing
        """
        wallet = market_wallet or f"{symbol}_market"
        unit = lm.create_lending_market(
            symbol, name or f"{collateral_token}/{debt_token} market",
            collateral_token, debt_token, wallet, price, ltv_percent, require_allowance,
        )
        for token in (collateral_token, debt_token):
            ledger.get_unit(token)
        with ledger.write_lock:
            ledger.register_unit(unit)
            ledger.ensure_wallet(wallet)
        return cls(ledger, symbol, gate, runner)

    @property
    def market_wallet(self) -> str:
        config, _ = self._read(lambda view: lm.load_market(view, self.symbol))
        return config.market_wallet

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _key(self, account: str) -> str:
        return f"{self.symbol}:{account}"

    def _run(self, accounts: List[str],
             build: Callable[[LedgerView], PendingTransaction]) -> OperationResult:
        return self.runner.run([self._key(a) for a in dict.fromkeys(accounts)], build)

    def _read(self, query: Callable[[LedgerView], T]) -> T:
        with self.ledger.write_lock:
            return query(self.ledger)

    # ------------------------------------------------------------------
    # Account operations
    # ------------------------------------------------------------------

    def deposit_collateral(self, caller: str, amount: int) -> OperationResult:
        return self._run([caller], lambda view: lm.compute_deposit_collateral(view, self.symbol, caller, amount))

    def borrow(self, caller: str, amount: int) -> OperationResult:
        return self._run([caller], lambda view: lm.compute_borrow(view, self.symbol, caller, amount))

    def repay(self, caller: str, amount: int) -> OperationResult:
        return self._run([caller], lambda view: lm.compute_repay(view, self.symbol, caller, amount))

    def withdraw_collateral(self, caller: str, amount: int) -> OperationResult:
        return self._run([caller], lambda view: lm.compute_withdraw_collateral(view, self.symbol, caller, amount))

    # ------------------------------------------------------------------
    # Privileged operations
    # ------------------------------------------------------------------

    def liquidate(self, caller: str, borrower: str) -> OperationResult:
        return self._run(
            [caller, borrower],
            lambda view: lm.compute_liquidation(view, self.symbol, caller, borrower, self.gate),
        )

    def set_price(self, caller: str, price: int) -> OperationResult:
        return self._run([caller], lambda view: lm.compute_set_price(view, self.symbol, caller, price, self.gate))

    def set_ltv(self, caller: str, ltv_percent: int) -> OperationResult:
        return self._run([caller], lambda view: lm.compute_set_ltv(view, self.symbol, caller, ltv_percent, self.gate))

    def fund_pool(self, caller: str, amount: int) -> OperationResult:
        return self._run([caller], lambda view: lm.compute_fund_pool(view, self.symbol, caller, amount, self.gate))

    def pause(self, caller: str) -> OperationResult:
        return self._run([caller], lambda view: lm.compute_set_paused(view, self.symbol, caller, True, self.gate))

    def unpause(self, caller: str) -> OperationResult:
        return self._run([caller], lambda view: lm.compute_set_paused(view, self.symbol, caller, False, self.gate))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_position(self, account: str) -> Position:
        return self._read(lambda view: lm.get_position(view, self.symbol, account))

    def get_account_health(self, account: str) -> HealthFactor:
        return self._read(lambda view: lm.get_account_health(view, self.symbol, account))

    def get_max_borrowable(self, account: str) -> int:
        return self._read(lambda view: lm.get_max_borrowable(view, self.symbol, account))

    def get_max_withdrawable(self, account: str) -> int:
        return self._read(lambda view: lm.get_max_withdrawable(view, self.symbol, account))

    def is_liquidatable(self, account: str) -> bool:
        return self._read(lambda view: lm.is_liquidatable(view, self.symbol, account))

    def find_liquidatable(self) -> List[str]:
        return self._read(lambda view: lm.find_liquidatable(view, self.symbol))

    def list_accounts(self) -> List[str]:
        return self._read(lambda view: lm.list_accounts(view, self.symbol))

    def get_market_stats(self) -> MarketStats:
        return self._read(lambda view: lm.get_market_stats(view, self.symbol))

    def __repr__(self) -> str:
        return f"CollateralLedger({self.symbol})"
