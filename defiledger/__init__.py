"""
defiledger - Collateralized Borrowing and Staking on a Double-Entry Ledger

Lending markets and staking pools are units registered in a Ledger. Token
balances are ordinary wallet balances; every operation is one atomic
transaction of token moves and unit state changes.

Usage:
    from defiledger import (
        Ledger, CollateralLedger, OwnerGate, PRECISION,
        create_token_unit, compute_issue, compute_approve,
    )

    ledger = Ledger("main", verbose=False)
    ledger.register_unit(create_token_unit("WBTC", "Wrapped Bitcoin"))
    ledger.register_unit(create_token_unit("USDC", "USD Coin"))
    for wallet in ("alice", "operator"):
        ledger.register_wallet(wallet)

    market = CollateralLedger.create(
        ledger, "WBTC_USDC", "WBTC", "USDC",
        price=50_000 * PRECISION, ltv_percent=50, gate=OwnerGate("operator"),
    )

    # Mint, approve the market wallet, deposit
    ledger.execute(compute_issue(ledger, "WBTC", "alice", 10 ** 18))
    ledger.execute(compute_approve(ledger, "WBTC", "alice", market.market_wallet, 10 ** 18))
    result = market.deposit_collateral("alice", 10 ** 18)
    assert result.ok
"""

# Core types
from .core import (
    LedgerView,
    Move,
    Notification,
    Transaction,
    PendingTransaction,
    TransactionOrigin,
    OriginType,
    build_transaction,
    Unit,
    UnitStateChange,
    ExecuteResult,
    ErrorCode,
    LedgerError,
    UnitNotRegistered,
    WalletNotRegistered,
    ProtocolError,
    InvalidAmount,
    InsufficientCollateral,
    ExceedsBorrowLimit,
    InsufficientPoolLiquidity,
    InsufficientDebtToRepay,
    InsufficientCollateralAfterWithdrawal,
    NotUndercollateralized,
    NotInCooldown,
    CooldownNotFinished,
    UnstakeWindowExpired,
    NoRewardsToClaim,
    InsufficientStake,
    Unauthorized,
    InvalidConfiguration,
    TransferFailed,
    InsufficientAllowance,
    InsufficientBalance,
    InsufficientContractBalance,
    SystemPaused,
    ReentrantCall,
    to_quantity,
    to_amount,
    SYSTEM_WALLET,
    PRECISION,
    UNIT_TYPE_TOKEN,
    UNIT_TYPE_LENDING_MARKET,
    UNIT_TYPE_STAKING_POOL,
)

# Ledger
from .ledger import Ledger

# Capabilities and execution
from .access import AccessGate, OwnerGate, RoleGate
from .transfer import ValueTransfer, TokenTransfer, TransferLeg
from .execution import OperationResult, OperationRunner, ReentrancyGuard

# Units
from .units import (
    create_token_unit,
    compute_issue,
    compute_approve,
    get_allowance,
    MarketConfig,
    MarketState,
    MarketStats,
    Position,
    HEALTH_FACTOR_INFINITE,
    MAX_LTV_PERCENT,
    create_lending_market,
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
)

# Entry points
from .collateral_ledger import CollateralLedger
from .reward_engine import RewardAccrualEngine

# Stress runs
from .simulation import (
    LiquidationRecord,
    SimulationReport,
    generate_price_path,
    run_price_path,
)

__version__ = "0.1.0"
