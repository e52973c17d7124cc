"""
staking_pool.py - Staking With Continuous Rewards and a Cooldown Window

This module provides the staking pool unit: accounts stake a token, earn a
reward token at a fixed APY, and can only take their principal back inside
a bounded window that opens after a cooldown.

Reward accounting uses a reward-per-share accumulator, so settling one
account never requires touching any other:

    emission          = elapsed * reward_rate * total_staked / PRECISION
    acc_per_share    += emission * PRECISION / total_staked
    pending(account)  = pending_rewards + staked * acc_per_share / PRECISION - reward_debt

where reward_rate = apy_percent * PRECISION / SECONDS_PER_YEAR / 100 is the
reward per second per unit staked (1e18 scaled) and reward_debt is the
staked * acc_per_share / PRECISION snapshot taken at the last settlement.

Cooldown state machine (per account):

    IDLE --start_cooldown--> COOLING_DOWN --(+7d)--> UNSTAKEABLE --(+8d)--> EXPIRED

Both window bounds are inclusive. stake() from any state returns the
account to IDLE; a successful unstake always does. An EXPIRED account must
call start_cooldown() again.

Pure functions take `now` explicitly; compute_* functions read it from the
view's logical clock.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Dict, Any, List, Mapping, Optional, Tuple

from ..access import AccessGate
from ..core import (
    LedgerView, Notification, PendingTransaction, Unit, UnitStateChange,
    TransactionOrigin, OriginType,
    PRECISION, UNIT_TYPE_STAKING_POOL,
    CooldownNotFinished, InsufficientContractBalance, InsufficientStake,
    InvalidAmount, InvalidConfiguration, NoRewardsToClaim, NotInCooldown,
    SystemPaused, UnstakeWindowExpired,
    build_transaction, require_positive, _freeze_state,
)
from ..transfer import TokenTransfer, TransferLeg


SECONDS_PER_YEAR = 31_536_000
DEFAULT_APY_PERCENT = 10
MIN_APY_PERCENT = 1
MAX_APY_PERCENT = 100
COOLDOWN_PERIOD = timedelta(days=7)
UNSTAKE_WINDOW = timedelta(days=1)

# Notification names
EVENT_STAKED = "Staked"
EVENT_UNSTAKED = "Unstaked"
EVENT_REWARDS_CLAIMED = "RewardsClaimed"
EVENT_COOLDOWN_STARTED = "CooldownStarted"
EVENT_REWARD_RATE_UPDATED = "RewardRateUpdated"
EVENT_REWARDS_FUNDED = "RewardsFunded"
EVENT_EMERGENCY_WITHDRAWN = "EmergencyWithdrawn"
EVENT_PAUSED = "Paused"
EVENT_UNPAUSED = "Unpaused"

_ONE_SECOND = timedelta(seconds=1)


class CooldownStatus(Enum):
    IDLE = "idle"
    COOLING_DOWN = "cooling_down"
    UNSTAKEABLE = "unstakeable"
    EXPIRED = "expired"


# ============================================================================
# FROZEN DATACLASSES
# ============================================================================

@dataclass(frozen=True, slots=True)
class PoolConfig:
    staking_token: str
    reward_token: str
    pool_wallet: str
    cooldown_period: timedelta = COOLDOWN_PERIOD
    unstake_window: timedelta = UNSTAKE_WINDOW
    require_allowance: bool = True

    @property
    def shared_token(self) -> bool:
        """True when rewards are paid in the staking token itself."""
        return self.staking_token == self.reward_token


@dataclass(frozen=True, slots=True)
class StakeAccount:
    """
    One account's stake. Created on first stake and never deleted.

    Attributes:
        staked: Principal currently staked
        reward_debt: staked * acc_reward_per_share / PRECISION at last settlement
        pending_rewards: Settled, claimable rewards
        cooldown_active: Whether an unstake intent is armed
        cooldown_start: When the current cooldown was armed
        last_stake_time: Time of the latest stake
        last_settled: Time of the latest settlement
    """
    staked: int = 0
    reward_debt: int = 0
    pending_rewards: int = 0
    cooldown_active: bool = False
    cooldown_start: Optional[datetime] = None
    last_stake_time: Optional[datetime] = None
    last_settled: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class PoolState:
    """
    Pool-wide scalars. Stake accounts are keyed records of the pool unit,
    loaded one at a time with load_stake().
    """
    apy_percent: int
    reward_rate: int
    acc_reward_per_share: int
    last_update_time: Optional[datetime]
    total_staked: int
    total_rewards_claimed: int
    paused: bool
    account_count: int
    nonce: int


@dataclass(frozen=True, slots=True)
class UserInfo:
    staked: int
    pending_rewards: int
    cooldown_active: bool
    cooldown_start: Optional[datetime]
    unstake_window_start: Optional[datetime]
    unstake_window_end: Optional[datetime]
    status: CooldownStatus
    can_unstake: bool
    last_stake_time: Optional[datetime]


@dataclass(frozen=True, slots=True)
class PoolStats:
    total_staked: int
    total_rewards_claimed: int
    reward_reserve: int
    acc_reward_per_share: int
    apy_percent: int
    reward_rate: int
    account_count: int
    paused: bool
    last_update_time: Optional[datetime]


# ============================================================================
# FACTORY AND ADAPTERS
# ============================================================================

def validate_apy(apy_percent: int) -> int:
    """Raise InvalidConfiguration unless 1 <= apy_percent <= 100."""
    if isinstance(apy_percent, bool) or not isinstance(apy_percent, int):
        raise InvalidConfiguration(f"APY must be an integer percent, got {apy_percent!r}")
    if not MIN_APY_PERCENT <= apy_percent <= MAX_APY_PERCENT:
        raise InvalidConfiguration(
            f"APY must be between {MIN_APY_PERCENT} and {MAX_APY_PERCENT}, got {apy_percent}"
        )
    return apy_percent


def calculate_reward_rate(apy_percent: int) -> int:
    """Reward per second per unit staked, 1e18 scaled."""
    return apy_percent * PRECISION // SECONDS_PER_YEAR // 100


def create_staking_pool(
    symbol: str,
    name: str,
    staking_token: str,
    reward_token: str,
    pool_wallet: str,
    apy_percent: int = DEFAULT_APY_PERCENT,
    cooldown_period: timedelta = COOLDOWN_PERIOD,
    unstake_window: timedelta = UNSTAKE_WINDOW,
    require_allowance: bool = True,
) -> Unit:
    """
    Create a staking pool unit.

    The pool unit carries no balances; staked principal and the reward
    reserve sit in `pool_wallet`.

    Raises:
        InvalidConfiguration: on a missing token or wallet, APY outside
            1..100, or a negative cooldown or window.
    """
    if not staking_token or not reward_token or not pool_wallet:
        raise InvalidConfiguration("staking_token, reward_token and pool_wallet are required")
    validate_apy(apy_percent)
    if cooldown_period < timedelta(0) or unstake_window < timedelta(0):
        raise InvalidConfiguration("cooldown period and unstake window cannot be negative")

    config = PoolConfig(staking_token, reward_token, pool_wallet,
                        cooldown_period, unstake_window, require_allowance)
    state = PoolState(
        apy_percent=apy_percent,
        reward_rate=calculate_reward_rate(apy_percent),
        acc_reward_per_share=0,
        last_update_time=None,
        total_staked=0,
        total_rewards_claimed=0,
        paused=False,
        account_count=0,
        nonce=0,
    )
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_STAKING_POOL,
        min_balance=Decimal("0"),
        max_balance=Decimal("0"),
        _frozen_state=_freeze_state(to_state_dict(config, state)),
    )


def _from_state_dict(raw: Mapping[str, Any]) -> Tuple[PoolConfig, PoolState]:
    config = PoolConfig(
        staking_token=raw['staking_token'],
        reward_token=raw['reward_token'],
        pool_wallet=raw['pool_wallet'],
        cooldown_period=timedelta(seconds=raw.get('cooldown_seconds', int(COOLDOWN_PERIOD.total_seconds()))),
        unstake_window=timedelta(seconds=raw.get('window_seconds', int(UNSTAKE_WINDOW.total_seconds()))),
        require_allowance=raw.get('require_allowance', True),
    )
    state = PoolState(
        apy_percent=raw['apy_percent'],
        reward_rate=raw['reward_rate'],
        acc_reward_per_share=raw.get('acc_reward_per_share', 0),
        last_update_time=raw.get('last_update_time'),
        total_staked=raw.get('total_staked', 0),
        total_rewards_claimed=raw.get('total_rewards_claimed', 0),
        paused=raw.get('paused', False),
        account_count=raw.get('account_count', 0),
        nonce=raw.get('nonce', 0),
    )
    return config, state


def load_pool(view: LedgerView, symbol: str) -> Tuple[PoolConfig, PoolState]:
    """Load a staking pool from ledger state as typed frozen dataclasses."""
    return _from_state_dict(view.get_unit_state(symbol))


def load_stake(view: LedgerView, symbol: str, account: str) -> StakeAccount:
    """One account's stake; an account that never staked gets an empty one."""
    return _stake_from_record(view.get_unit_record(symbol, account))


def _stake_from_record(record: Optional[Mapping[str, Any]]) -> StakeAccount:
    if record is None:
        return StakeAccount()
    return StakeAccount(**record)


def stake_to_record(stake: StakeAccount) -> Dict[str, Any]:
    """Inverse of load_stake(): the keyed record stored for an account."""
    return {
        'staked': stake.staked,
        'reward_debt': stake.reward_debt,
        'pending_rewards': stake.pending_rewards,
        'cooldown_active': stake.cooldown_active,
        'cooldown_start': stake.cooldown_start,
        'last_stake_time': stake.last_stake_time,
        'last_settled': stake.last_settled,
    }


def to_state_dict(config: PoolConfig, state: PoolState) -> Dict[str, Any]:
    return {
        'staking_token': config.staking_token,
        'reward_token': config.reward_token,
        'pool_wallet': config.pool_wallet,
        'cooldown_seconds': int(config.cooldown_period.total_seconds()),
        'window_seconds': int(config.unstake_window.total_seconds()),
        'require_allowance': config.require_allowance,
        'apy_percent': state.apy_percent,
        'reward_rate': state.reward_rate,
        'acc_reward_per_share': state.acc_reward_per_share,
        'last_update_time': state.last_update_time,
        'total_staked': state.total_staked,
        'total_rewards_claimed': state.total_rewards_claimed,
        'paused': state.paused,
        'account_count': state.account_count,
        'nonce': state.nonce,
    }


def pool_transfers(config: PoolConfig) -> Tuple[TokenTransfer, TokenTransfer]:
    """(staking transfer, reward transfer) for a pool's custody wallet."""
    return (
        TokenTransfer(config.staking_token, config.pool_wallet, config.require_allowance),
        TokenTransfer(config.reward_token, config.pool_wallet, config.require_allowance),
    )


# ============================================================================
# PURE CALCULATION FUNCTIONS
# ============================================================================

def elapsed_seconds(since: Optional[datetime], now: datetime) -> int:
    """Whole seconds from `since` to `now`; zero if never set or in the future."""
    if since is None or now <= since:
        return 0
    return (now - since) // _ONE_SECOND


def acc_reward_per_share_now(state: PoolState, now: datetime) -> int:
    """
    The accumulator as it would be after settling at `now`.

    Unchanged while nothing is staked. Non-decreasing in `now`.
    """
    if state.total_staked == 0:
        return state.acc_reward_per_share
    elapsed = elapsed_seconds(state.last_update_time, now)
    emission = elapsed * state.reward_rate * state.total_staked // PRECISION
    return state.acc_reward_per_share + emission * PRECISION // state.total_staked


def pending_rewards_now(state: PoolState, stake: StakeAccount, now: datetime) -> int:
    if stake.staked == 0:
        return stake.pending_rewards
    accrued = stake.staked * acc_reward_per_share_now(state, now) // PRECISION
    return stake.pending_rewards + accrued - stake.reward_debt


def settle_pool(state: PoolState, now: datetime) -> PoolState:
    """Bring the accumulator up to `now` (no account touched)."""
    return replace(state, acc_reward_per_share=acc_reward_per_share_now(state, now), last_update_time=now)


def settle(state: PoolState, stake: StakeAccount, now: datetime) -> Tuple[PoolState, StakeAccount]:
    """
    Settle the pool and one account at `now`.

    Moves everything the account has earned into pending_rewards and
    resnapshots its reward_debt. Other accounts are untouched: their
    earnings stay implicit in the accumulator.
    """
    pending = pending_rewards_now(state, stake, now)
    settled = settle_pool(state, now)
    stake = replace(
        stake,
        pending_rewards=pending,
        reward_debt=_resnapshot(stake, settled.acc_reward_per_share),
        last_settled=now,
    )
    return settled, stake


def _resnapshot(stake: StakeAccount, acc_reward_per_share: int) -> int:
    return stake.staked * acc_reward_per_share // PRECISION


def cooldown_status(config: PoolConfig, stake: StakeAccount, now: datetime) -> CooldownStatus:
    if not stake.cooldown_active or stake.cooldown_start is None:
        return CooldownStatus.IDLE
    opens = stake.cooldown_start + config.cooldown_period
    if now < opens:
        return CooldownStatus.COOLING_DOWN
    if now <= opens + config.unstake_window:
        return CooldownStatus.UNSTAKEABLE
    return CooldownStatus.EXPIRED


def calculate_reward_reserve(config: PoolConfig, state: PoolState, reward_balance: int) -> int:
    """Reward tokens in custody that do not belong to stakers as principal."""
    if config.shared_token:
        return max(0, reward_balance - state.total_staked)
    return reward_balance


def calculate_yearly_rewards(amount: int, reward_rate: int) -> int:
    """Rewards `amount` staked earns over one year at `reward_rate`."""
    return amount * reward_rate * SECONDS_PER_YEAR // PRECISION


# ============================================================================
# TRANSITION FUNCTIONS
# ============================================================================

def _load(view: LedgerView, symbol: str) -> Tuple[Dict[str, Any], PoolConfig, PoolState]:
    raw = view.get_unit_state(symbol)
    config, state = _from_state_dict(raw)
    return raw, config, state


def _load_stake(view: LedgerView, symbol: str, account: str) -> Tuple[Optional[Dict[str, Any]], StakeAccount]:
    record = view.get_unit_record(symbol, account)
    return record, _stake_from_record(record)


def _build(
    view: LedgerView,
    symbol: str,
    config: PoolConfig,
    old_raw: Dict[str, Any],
    new_state: PoolState,
    caller: str,
    operation: str,
    origin_type: OriginType,
    legs: List[TransferLeg],
    notifications: List[Notification],
    old_record: Optional[Dict[str, Any]] = None,
    stake: Optional[StakeAccount] = None,
) -> PendingTransaction:
    """
    Assemble the transaction: token legs, the pool scalars and, when `stake`
    is given, the caller's own record. A first record counts a new account.
    """
    new_state = replace(new_state, nonce=new_state.nonce + 1)
    if stake is not None and old_record is None:
        new_state = replace(new_state, account_count=new_state.account_count + 1)
    moves = [m for leg in legs for m in leg.moves]
    state_changes = [sc for leg in legs for sc in leg.state_changes]
    state_changes.append(
        UnitStateChange(unit=symbol, old_state=old_raw, new_state=to_state_dict(config, new_state))
    )
    if stake is not None:
        state_changes.append(
            UnitStateChange(unit=symbol, old_state=old_record, new_state=stake_to_record(stake), key=caller)
        )
    return build_transaction(
        view,
        moves=moves,
        state_changes=state_changes,
        origin=TransactionOrigin(origin_type, caller, symbol, operation),
        notifications=notifications,
    )


def _require_active(symbol: str, state: PoolState) -> None:
    if state.paused:
        raise SystemPaused(f"pool {symbol} is paused")


def _contract_id(symbol: str, operation: str, account: str, state: PoolState) -> str:
    return f"{symbol}_{operation}_{account}_{state.nonce}"


def _reward_reserve(view: LedgerView, config: PoolConfig, state: PoolState) -> int:
    _, reward_transfer = pool_transfers(config)
    return calculate_reward_reserve(config, state, reward_transfer.balance_of(view, config.pool_wallet))


def compute_stake(view: LedgerView, symbol: str, caller: str, amount: int) -> PendingTransaction:
    """
    Settle, then pull `amount` of the staking token into the pool.

    Staking cancels any armed cooldown.
    """
    require_positive(amount)
    raw, config, state = _load(view, symbol)
    _require_active(symbol, state)
    now = view.current_time

    record, stake = _load_stake(view, symbol, caller)
    settled, stake = settle(state, stake, now)
    stake = replace(stake, staked=stake.staked + amount, last_stake_time=now,
                    cooldown_active=False, cooldown_start=None)
    stake = replace(stake, reward_debt=_resnapshot(stake, settled.acc_reward_per_share))
    new_state = replace(settled, total_staked=settled.total_staked + amount)

    staking_transfer, _ = pool_transfers(config)
    leg = staking_transfer.pull(view, caller, amount, _contract_id(symbol, "stake", caller, state))
    note = Notification(EVENT_STAKED, symbol, caller, amount)
    return _build(view, symbol, config, raw, new_state, caller, "stake",
                  OriginType.USER_ACTION, [leg], [note], record, stake)


def compute_start_cooldown(view: LedgerView, symbol: str, caller: str) -> PendingTransaction:
    """
    Settle, then arm the cooldown at the current time.

    Calling it again restarts the cooldown (the remedy for an expired window).

    Raises:
        InsufficientStake: the caller has nothing staked
    """
    raw, config, state = _load(view, symbol)
    _require_active(symbol, state)
    now = view.current_time

    record, stake = _load_stake(view, symbol, caller)
    settled, stake = settle(state, stake, now)
    if stake.staked == 0:
        raise InsufficientStake(f"{caller} has nothing staked in {symbol}")

    stake = replace(stake, cooldown_active=True, cooldown_start=now)
    note = Notification(EVENT_COOLDOWN_STARTED, symbol, caller, stake.staked,
                        {'unstake_window_start': now + config.cooldown_period,
                         'unstake_window_end': now + config.cooldown_period + config.unstake_window})
    return _build(view, symbol, config, raw, settled, caller, "start_cooldown",
                  OriginType.USER_ACTION, [], [note], record, stake)


def compute_unstake(view: LedgerView, symbol: str, caller: str, amount: int = 0) -> PendingTransaction:
    """
    Settle, then return staked principal inside the unstake window.

    An amount of zero unstakes everything. Any successful unstake clears the
    cooldown, partial or not.

    Raises:
        NotInCooldown: no cooldown armed
        CooldownNotFinished: the window has not opened yet
        UnstakeWindowExpired: the window has closed; restart the cooldown
        InsufficientStake: amount exceeds the staked principal
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise InvalidAmount(f"amount must be a non-negative integer, got {amount!r}")
    raw, config, state = _load(view, symbol)
    _require_active(symbol, state)
    now = view.current_time

    record, stake = _load_stake(view, symbol, caller)
    status = cooldown_status(config, stake, now)
    if status == CooldownStatus.IDLE:
        raise NotInCooldown(f"{caller} has not started a cooldown in {symbol}")
    if status == CooldownStatus.COOLING_DOWN:
        raise CooldownNotFinished(f"{caller} cooldown in {symbol} has not finished")
    if status == CooldownStatus.EXPIRED:
        raise UnstakeWindowExpired(f"{caller} unstake window in {symbol} has closed")

    settled, stake = settle(state, stake, now)
    if amount == 0:
        amount = stake.staked
    if amount == 0 or amount > stake.staked:
        raise InsufficientStake(f"{caller} has {stake.staked} staked, cannot unstake {amount}")

    stake = replace(stake, staked=stake.staked - amount, cooldown_active=False, cooldown_start=None)
    stake = replace(stake, reward_debt=_resnapshot(stake, settled.acc_reward_per_share))
    new_state = replace(settled, total_staked=settled.total_staked - amount)

    staking_transfer, _ = pool_transfers(config)
    leg = staking_transfer.push(view, caller, amount, _contract_id(symbol, "unstake", caller, state))
    note = Notification(EVENT_UNSTAKED, symbol, caller, amount)
    return _build(view, symbol, config, raw, new_state, caller, "unstake",
                  OriginType.USER_ACTION, [leg], [note], record, stake)


def compute_claim_rewards(view: LedgerView, symbol: str, caller: str) -> PendingTransaction:
    """
    Settle, then pay out all pending rewards.

    Raises:
        NoRewardsToClaim: nothing has accrued
        InsufficientContractBalance: the reward reserve cannot cover the claim
    """
    raw, config, state = _load(view, symbol)
    _require_active(symbol, state)
    now = view.current_time

    record, stake = _load_stake(view, symbol, caller)
    settled, stake = settle(state, stake, now)
    amount = stake.pending_rewards
    if amount == 0:
        raise NoRewardsToClaim(f"{caller} has no rewards to claim in {symbol}")

    reserve = _reward_reserve(view, config, state)
    if reserve < amount:
        raise InsufficientContractBalance(
            f"{symbol} reward reserve {reserve} cannot pay {amount} to {caller}"
        )

    new_state = replace(settled, total_rewards_claimed=settled.total_rewards_claimed + amount)
    _, reward_transfer = pool_transfers(config)
    leg = reward_transfer.push(view, caller, amount, _contract_id(symbol, "claim", caller, state))
    note = Notification(EVENT_REWARDS_CLAIMED, symbol, caller, amount)
    return _build(view, symbol, config, raw, new_state, caller, "claim_rewards",
                  OriginType.USER_ACTION, [leg], [note], record, replace(stake, pending_rewards=0))


def compute_fund_rewards(
    view: LedgerView, symbol: str, caller: str, amount: int, gate: AccessGate,
) -> PendingTransaction:
    """Pull `amount` of the reward token from the operator into the reward reserve."""
    gate.require_privileged(caller)
    require_positive(amount)
    raw, config, state = _load(view, symbol)

    _, reward_transfer = pool_transfers(config)
    leg = reward_transfer.pull(view, caller, amount, _contract_id(symbol, "fund", caller, state))
    note = Notification(EVENT_REWARDS_FUNDED, symbol, caller, amount)
    return _build(view, symbol, config, raw, state, caller, "fund_rewards",
                  OriginType.PRIVILEGED, [leg], [note])


def compute_update_reward_rate(
    view: LedgerView, symbol: str, caller: str, apy_percent: int, gate: AccessGate,
) -> PendingTransaction:
    """
    Change the APY. Rewards up to now accrue at the old rate.

    Raises:
        InvalidConfiguration: apy_percent outside 1..100
    """
    gate.require_privileged(caller)
    validate_apy(apy_percent)
    raw, config, state = _load(view, symbol)

    settled = settle_pool(state, view.current_time)
    new_state = replace(settled, apy_percent=apy_percent, reward_rate=calculate_reward_rate(apy_percent))
    note = Notification(EVENT_REWARD_RATE_UPDATED, symbol, caller, apy_percent,
                        {'old_apy_percent': state.apy_percent, 'reward_rate': new_state.reward_rate})
    return _build(view, symbol, config, raw, new_state, caller, "update_reward_rate",
                  OriginType.PRIVILEGED, [], [note])


def compute_emergency_withdraw(
    view: LedgerView, symbol: str, caller: str, amount: int, gate: AccessGate,
) -> PendingTransaction:
    """
    Move reward tokens out of the reserve to the operator.

    Staked principal can never be withdrawn this way.

    Raises:
        InsufficientContractBalance: amount exceeds the reward reserve
    """
    gate.require_privileged(caller)
    require_positive(amount)
    raw, config, state = _load(view, symbol)

    reserve = _reward_reserve(view, config, state)
    if amount > reserve:
        raise InsufficientContractBalance(f"{symbol} reward reserve is {reserve}, cannot withdraw {amount}")

    _, reward_transfer = pool_transfers(config)
    leg = reward_transfer.push(view, caller, amount, _contract_id(symbol, "emergency", caller, state))
    note = Notification(EVENT_EMERGENCY_WITHDRAWN, symbol, caller, amount)
    return _build(view, symbol, config, raw, state, caller, "emergency_withdraw",
                  OriginType.PRIVILEGED, [leg], [note])


def compute_set_paused(
    view: LedgerView, symbol: str, caller: str, paused: bool, gate: AccessGate,
) -> PendingTransaction:
    """
    Pause or unpause every account operation of the pool.

    Raises:
        InvalidConfiguration: the pool is already in the requested state
    """
    gate.require_privileged(caller)
    raw, config, state = _load(view, symbol)
    if state.paused == paused:
        raise InvalidConfiguration(f"pool {symbol} is already {'paused' if paused else 'active'}")

    note = Notification(EVENT_PAUSED if paused else EVENT_UNPAUSED, symbol, caller, 0)
    return _build(view, symbol, config, raw, replace(state, paused=paused), caller,
                  "pause" if paused else "unpause", OriginType.PRIVILEGED, [], [note])


# ============================================================================
# QUERIES
# ============================================================================

def get_pending_rewards(view: LedgerView, symbol: str, account: str) -> int:
    _, state = load_pool(view, symbol)
    return pending_rewards_now(state, load_stake(view, symbol, account), view.current_time)


def get_acc_reward_per_share(view: LedgerView, symbol: str) -> int:
    _, state = load_pool(view, symbol)
    return acc_reward_per_share_now(state, view.current_time)


def get_user_info(view: LedgerView, symbol: str, account: str) -> UserInfo:
    config, state = load_pool(view, symbol)
    now = view.current_time
    stake = load_stake(view, symbol, account)
    status = cooldown_status(config, stake, now)
    window_start = window_end = None
    if stake.cooldown_active and stake.cooldown_start is not None:
        window_start = stake.cooldown_start + config.cooldown_period
        window_end = window_start + config.unstake_window
    return UserInfo(
        staked=stake.staked,
        pending_rewards=pending_rewards_now(state, stake, now),
        cooldown_active=stake.cooldown_active,
        cooldown_start=stake.cooldown_start,
        unstake_window_start=window_start,
        unstake_window_end=window_end,
        status=status,
        can_unstake=status == CooldownStatus.UNSTAKEABLE and stake.staked > 0,
        last_stake_time=stake.last_stake_time,
    )


def get_contract_stats(view: LedgerView, symbol: str) -> PoolStats:
    config, state = load_pool(view, symbol)
    return PoolStats(
        total_staked=state.total_staked,
        total_rewards_claimed=state.total_rewards_claimed,
        reward_reserve=_reward_reserve(view, config, state),
        acc_reward_per_share=acc_reward_per_share_now(state, view.current_time),
        apy_percent=state.apy_percent,
        reward_rate=state.reward_rate,
        account_count=state.account_count,
        paused=state.paused,
        last_update_time=state.last_update_time,
    )


def get_yearly_rewards(view: LedgerView, symbol: str, amount: int) -> int:
    _, state = load_pool(view, symbol)
    return calculate_yearly_rewards(amount, state.reward_rate)


def get_current_apr(view: LedgerView, symbol: str) -> int:
    """Configured APY in whole percent."""
    _, state = load_pool(view, symbol)
    return state.apy_percent
