"""
Units module - Factory functions and state transitions for protocol units.

This module provides:
- Token units with issuance and allowances
- Lending markets (collateralized borrowing against a priced asset)
- Staking pools (continuous rewards behind a cooldown window)

All unit factories and related functions are re-exported here for convenience.
"""

# Token units
from .token import (
    create_token_unit,
    compute_issue,
    compute_approve,
    get_allowance,
)

# Lending markets
from .lending_market import (
    MarketConfig,
    MarketState,
    MarketStats,
    Position,
    HEALTH_FACTOR_INFINITE,
    MAX_LTV_PERCENT,
    create_lending_market,
    load_market,
    load_position,
    calculate_collateral_value,
    calculate_max_borrow,
    calculate_health_factor,
    calculate_max_withdrawable,
    is_undercollateralized,
)

# Staking pools
from .staking_pool import (
    PoolConfig,
    PoolState,
    PoolStats,
    StakeAccount,
    UserInfo,
    CooldownStatus,
    SECONDS_PER_YEAR,
    DEFAULT_APY_PERCENT,
    MAX_APY_PERCENT,
    COOLDOWN_PERIOD,
    UNSTAKE_WINDOW,
    create_staking_pool,
    load_pool,
    load_stake,
    calculate_reward_rate,
    calculate_yearly_rewards,
    acc_reward_per_share_now,
    pending_rewards_now,
)

__all__ = [
    'create_token_unit', 'compute_issue', 'compute_approve', 'get_allowance',
    'MarketConfig', 'MarketState', 'MarketStats', 'Position',
    'HEALTH_FACTOR_INFINITE', 'MAX_LTV_PERCENT',
    'create_lending_market', 'load_market', 'load_position',
    'calculate_collateral_value', 'calculate_max_borrow', 'calculate_health_factor',
    'calculate_max_withdrawable', 'is_undercollateralized',
    'PoolConfig', 'PoolState', 'PoolStats', 'StakeAccount', 'UserInfo', 'CooldownStatus',
    'SECONDS_PER_YEAR', 'DEFAULT_APY_PERCENT', 'MAX_APY_PERCENT',
    'COOLDOWN_PERIOD', 'UNSTAKE_WINDOW',
    'create_staking_pool', 'load_pool', 'load_stake',
    'calculate_reward_rate', 'calculate_yearly_rewards',
    'acc_reward_per_share_now', 'pending_rewards_now',
]
