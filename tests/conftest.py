"""
conftest.py - Shared pytest fixtures for protocol tests

Provides common fixtures used across unit, functional and conformance tests:
- A ledger with the test tokens and wallets registered
- A funded lending market (WBTC collateral, USDC debt)
- Staking pools with separate and shared reward tokens
"""

import pytest

from tests.helpers import (
    ONE, build_ledger, build_market, build_pool, mint_and_approve,
)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def ledger():
    """Ledger with WBTC, USDC, STK and RWD registered, three users and an operator."""
    return build_ledger()


@pytest.fixture
def market(ledger):
    """WBTC/USDC market at 50,000 USDC per WBTC, 50% LTV, 1M USDC lendable."""
    return build_market(ledger)


@pytest.fixture
def pool(ledger):
    """STK pool paying RWD at 10% APY, 1M RWD in reserve."""
    return build_pool(ledger)


@pytest.fixture
def shared_pool(ledger):
    """STK pool paying rewards in STK itself, 1M STK in reserve."""
    return build_pool(ledger, symbol="STK_SHARED", reward_token="STK")


@pytest.fixture
def alice_collateral(ledger, market):
    """Alice holds 1 WBTC, approved for the market."""
    mint_and_approve(ledger, "WBTC", "alice", market.market_wallet, ONE)
    return market


@pytest.fixture
def alice_staker(ledger, pool):
    """Alice holds 100 STK, approved for the pool."""
    mint_and_approve(ledger, "STK", "alice", pool.pool_wallet, 100 * ONE)
    return pool
