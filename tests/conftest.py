"""
conftest.py - Shared pytest fixtures for lendledger tests

Provides common fixtures used across unit, conformance and functional tests:
- Addresses and tokens (A, B, C / t0, t1)
- Protocol configurations (default, with interest)
- States at the main points of the reference scenario
"""

import pytest
from lendledger import (
    State, ProtocolConfig, LendingLedger,
    Address, BaseToken,
    addr, token,
    add_wallet, deposit, borrow, accrue_interest, repay,
)


# =============================================================================
# IDENTIFIERS
# =============================================================================

@pytest.fixture
def a() -> Address:
    return addr("A")


@pytest.fixture
def b() -> Address:
    return addr("B")


@pytest.fixture
def c() -> Address:
    return addr("C")


@pytest.fixture
def t0() -> BaseToken:
    return token("t0")


@pytest.fixture
def t1() -> BaseToken:
    return token("t1")


# =============================================================================
# CONFIGURATIONS
# =============================================================================

@pytest.fixture
def config() -> ProtocolConfig:
    """150% minimum, 10% bonus, every price 1.0, no interest."""
    return ProtocolConfig(min_collateralization=1.5, liquidation_bonus=1.1)


@pytest.fixture
def interest_config(config, t0) -> ProtocolConfig:
    """Same policy with 14% interest per accrual on t0."""
    return config.with_rates({t0: 0.14})


# =============================================================================
# STATES
# =============================================================================

@pytest.fixture
def funded_state(a, b, t0, t1) -> State:
    """A holds 100 t0, B holds 50 t1. No pools."""
    s = State.empty()
    s = add_wallet(s, a, [(t0, 100)])
    s = add_wallet(s, b, [(t1, 50)])
    return s


@pytest.fixture
def deposited_state(funded_state, a, b, t0, t1) -> State:
    """A deposited 50 t0, B deposited 50 t1."""
    s = deposit(funded_state, a, 50, t0)
    s = deposit(s, b, 50, t1)
    return s


@pytest.fixture
def borrowed_state(deposited_state, config, b, t0) -> State:
    """B borrowed 30 t0 against 50 LP(t1): ratio 50/30."""
    return borrow(deposited_state, config, b, 30, t0)


@pytest.fixture
def accrued_state(borrowed_state, interest_config) -> State:
    """One 14% accrual on t0: B owes int(30 * 1.14) = 34."""
    return accrue_interest(borrowed_state, interest_config)


@pytest.fixture
def unhealthy_state(accrued_state, b, t0) -> State:
    """B repaid 5 of 34 t0. Healthy at t0 = 1.0, unhealthy at t0 = 1.3."""
    return repay(accrued_state, b, 5, t0)


@pytest.fixture
def shocked_config(config, t0) -> ProtocolConfig:
    """t0 repriced to 1.3."""
    return config.with_prices({t0: 1.3})


@pytest.fixture
def quiet_ledger(config) -> LendingLedger:
    """Empty ledger that prints nothing."""
    return LendingLedger("test", config=config, verbose=False)
