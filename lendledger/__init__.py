"""
lendledger - Accounting engine for a collateralized lending protocol

Addresses hold token balances, deposit tokens into pools (minting claim
tokens), borrow against those claims, repay, redeem, and liquidate
under-collateralized positions. Every operation is a pure function from an
immutable State to a new State or a Rejection.

Usage:
    from lendledger import (
        State, ProtocolConfig, addr, token,
        add_wallet, deposit, borrow, collateralization,
    )

    a, b = addr("A"), addr("B")
    t0, t1 = token("t0"), token("t1")
    config = ProtocolConfig(min_collateralization=1.5, liquidation_bonus=1.1)

    s = State.empty()
    s = add_wallet(s, a, [(t0, 100)])
    s = add_wallet(s, b, [(t1, 50)])
    s = deposit(s, a, 50, t0)
    s = deposit(s, b, 50, t1)
    s = borrow(s, config, b, 30, t0)        # State, or a Rejection
    collateralization(s, config, b)          # 50 / 30

Or through the stateful driver, which keeps an audit log:

    ledger = LendingLedger("main", config, verbose=False)
    ledger.execute(AddWallet(a, ((t0, 100),)))
    ledger.execute(Deposit(a, 50, t0))
"""

# Core types
from .core import (
    Address,
    BaseToken,
    ClaimToken,
    PairToken,
    Token,
    addr,
    token,
    mint_claim,
    mint_pair,
    is_minted_claim,
    underlying_of,
    token_sort_key,
    Rejection,
    RejectionKind,
    LendingError,
    SameAddress,
    InsufficientBalance,
    InsufficientDebt,
    UnderCollateralization,
    OverCollateralization,
    MintedLPToken,
)

# Balances and pools
from .wallet import Wallet
from .pool import LiquidityPool, empty_pool

# Configuration
from .pricing import (
    PriceFeed,
    RateModel,
    StaticPriceFeed,
    StaticRateModel,
    ProtocolConfig,
    DEFAULT_CONFIG,
    DEFAULT_MIN_COLLATERALIZATION,
    DEFAULT_LIQUIDATION_BONUS,
)

# State, queries and operations
from .state import (
    State,
    Result,
    INFINITE,
    is_rejection,
    supply,
    exchange_rate,
    price,
    value_free,
    value_collateralized,
    value_debt,
    collateralization,
    is_healthy,
    add_wallet,
    transfer,
    deposit,
    borrow,
    repay,
    redeem,
    accrue_interest,
    seized_amount,
    liquidate,
    check_invariants,
)

# Operation records
from .operations import (
    Operation,
    AddWallet,
    Transfer,
    Deposit,
    Borrow,
    Repay,
    Redeem,
    AccrueInterest,
    Liquidate,
    PriceUpdate,
)

# Driver
from .ledger import LendingLedger, ExecuteResult, Transaction

# Display
from .display import render_state, render_info, render_pools

# Stress analysis
from .stress import (
    collateralization_under_shocks,
    liquidation_price,
    liquidatable_addresses,
)

__all__ = [
    # Core
    'Address', 'BaseToken', 'ClaimToken', 'PairToken', 'Token',
    'addr', 'token', 'mint_claim', 'mint_pair', 'is_minted_claim', 'underlying_of',
    'token_sort_key',
    'Rejection', 'RejectionKind',
    'LendingError', 'SameAddress', 'InsufficientBalance', 'InsufficientDebt',
    'UnderCollateralization', 'OverCollateralization', 'MintedLPToken',
    # Balances and pools
    'Wallet', 'LiquidityPool', 'empty_pool',
    # Configuration
    'PriceFeed', 'RateModel', 'StaticPriceFeed', 'StaticRateModel',
    'ProtocolConfig', 'DEFAULT_CONFIG',
    'DEFAULT_MIN_COLLATERALIZATION', 'DEFAULT_LIQUIDATION_BONUS',
    # State
    'State', 'Result', 'INFINITE', 'is_rejection',
    'supply', 'exchange_rate', 'price',
    'value_free', 'value_collateralized', 'value_debt',
    'collateralization', 'is_healthy',
    'add_wallet', 'transfer', 'deposit', 'borrow', 'repay', 'redeem',
    'accrue_interest', 'seized_amount', 'liquidate', 'check_invariants',
    # Operations
    'Operation', 'AddWallet', 'Transfer', 'Deposit', 'Borrow', 'Repay', 'Redeem',
    'AccrueInterest', 'Liquidate', 'PriceUpdate',
    # Driver
    'LendingLedger', 'ExecuteResult', 'Transaction',
    # Display
    'render_state', 'render_info', 'render_pools',
    # Stress
    'collateralization_under_shocks', 'liquidation_price', 'liquidatable_addresses',
]

__version__ = '0.1.0'
