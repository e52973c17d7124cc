"""
simulation.py - Price-path stress runs for a lending market

Drives a CollateralLedger through a sequence of collateral prices: each step
advances the ledger clock, publishes the new price and liquidates every
position that has become insolvent. Useful for checking how a market's LTV
holds up against volatility before choosing it.

Prices follow geometric Brownian motion in log space and are converted back
to 1e18-scaled integers. A fixed seed gives the same path every time.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional, Sequence

import numpy as np

from .collateral_ledger import CollateralLedger
from .core import InvalidConfiguration
from .units.lending_market import (
    HealthFactor, HEALTH_FACTOR_INFINITE, MarketStats, calculate_collateral_value,
)


@dataclass(frozen=True, slots=True)
class LiquidationRecord:
    step: int
    account: str
    price: int
    seized_collateral: int
    debt_cleared: int
    shortfall: int          # debt not covered by the seized collateral's value


@dataclass(frozen=True, slots=True)
class SimulationReport:
    prices: List[int]
    min_health: List[HealthFactor]
    liquidations: List[LiquidationRecord] = field(default_factory=list)
    failed_steps: List[int] = field(default_factory=list)
    final_stats: Optional[MarketStats] = None

    @property
    def debt_cleared(self) -> int:
        return sum(r.debt_cleared for r in self.liquidations)

    @property
    def bad_debt(self) -> int:
        return sum(r.shortfall for r in self.liquidations)


def generate_price_path(
    initial_price: int,
    steps: int,
    volatility: float = 0.02,
    drift: float = 0.0,
    seed: Optional[int] = None,
) -> List[int]:
    """
    Random price path starting after `initial_price`.

    Args:
        initial_price: Starting price, 1e18 scaled
        steps: Number of prices to generate
        volatility: Standard deviation of the per-step log return
        drift: Mean per-step log return
        seed: Seed for numpy's generator

    Returns:
        `steps` prices, each at least 1.
    """
    if initial_price <= 0:
        raise InvalidConfiguration(f"initial price must be positive, got {initial_price}")
    if steps < 0 or volatility < 0:
        raise InvalidConfiguration("steps and volatility cannot be negative")

    rng = np.random.default_rng(seed)
    log_returns = rng.normal(drift, volatility, steps)
    factors = np.exp(np.cumsum(log_returns))
    return [max(1, int(initial_price * float(f))) for f in factors]


def run_price_path(
    market: CollateralLedger,
    operator: str,
    prices: Sequence[int],
    step: timedelta = timedelta(hours=1),
) -> SimulationReport:
    """
    Replay `prices` against a market, liquidating insolvent positions as they appear.

    `operator` must pass the market's gate. A step whose price update is
    rejected is recorded in failed_steps and its liquidations are skipped.
    """
    ledger = market.ledger
    min_health: List[HealthFactor] = []
    liquidations: List[LiquidationRecord] = []
    failed_steps: List[int] = []

    for i, price in enumerate(prices):
        ledger.advance_time(ledger.current_time + step)
        if not market.set_price(operator, price):
            failed_steps.append(i)
            min_health.append(_min_health(market))
            continue

        for account in market.find_liquidatable():
            position = market.get_position(account)
            value = calculate_collateral_value(position.collateral, price)
            if market.liquidate(operator, account):
                liquidations.append(LiquidationRecord(
                    step=i,
                    account=account,
                    price=price,
                    seized_collateral=position.collateral,
                    debt_cleared=position.debt,
                    shortfall=max(0, position.debt - value),
                ))

        min_health.append(_min_health(market))

    return SimulationReport(
        prices=list(prices),
        min_health=min_health,
        liquidations=liquidations,
        failed_steps=failed_steps,
        final_stats=market.get_market_stats(),
    )


def _min_health(market: CollateralLedger) -> HealthFactor:
    healths = [market.get_account_health(a) for a in market.list_accounts()]
    return min(healths, default=HEALTH_FACTOR_INFINITE)
