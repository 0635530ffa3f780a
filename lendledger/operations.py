"""
operations.py - Operation records

Each ledger operation is an immutable record carrying its operands. Records
are what a driver submits, logs and replays:

    op = Borrow(address=b, amount=30, token=t0)
    result = op.apply(state, config)     # State or Rejection

apply() delegates to the pure functions in state.py, so applying the same
record to the same (state, config) always produces the same result.

PriceUpdate is the one record that does not touch the State: it replaces
prices in the ProtocolConfig held by the driver.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Mapping, Protocol, Tuple, runtime_checkable

from .core import Address, Token, check_amount
from .pricing import ProtocolConfig
from . import state as engine
from .state import State, Result


@runtime_checkable
class Operation(Protocol):
    """Anything that can be applied to a State under a ProtocolConfig."""

    def apply(self, state: State, config: ProtocolConfig) -> Result:
        ...

    def describe(self) -> str:
        ...


@dataclass(frozen=True, slots=True)
class AddWallet:
    """Register (or replace) the wallet of an address."""
    address: Address
    balances: Tuple[Tuple[Token, int], ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'balances', tuple((tok, amount) for tok, amount in self.balances))
        for _, amount in self.balances:
            check_amount(amount)

    def apply(self, state: State, config: ProtocolConfig) -> Result:
        return engine.add_wallet(state, self.address, self.balances)

    def describe(self) -> str:
        inner = ", ".join(f"{amount}:{tok}" for tok, amount in self.balances)
        return f"add_wallet {self.address} [{inner}]"


@dataclass(frozen=True, slots=True)
class Transfer:
    sender: Address
    receiver: Address
    amount: int
    token: Token

    def __post_init__(self):
        check_amount(self.amount)

    def apply(self, state: State, config: ProtocolConfig) -> Result:
        return engine.transfer(state, self.sender, self.receiver, self.amount, self.token)

    def describe(self) -> str:
        return f"xfer {self.amount}:{self.token} {self.sender} -> {self.receiver}"


@dataclass(frozen=True, slots=True)
class Deposit:
    address: Address
    amount: int
    token: Token

    def __post_init__(self):
        check_amount(self.amount)

    def apply(self, state: State, config: ProtocolConfig) -> Result:
        return engine.deposit(state, self.address, self.amount, self.token)

    def describe(self) -> str:
        return f"dep {self.address} {self.amount}:{self.token}"


@dataclass(frozen=True, slots=True)
class Borrow:
    address: Address
    amount: int
    token: Token

    def __post_init__(self):
        check_amount(self.amount)

    def apply(self, state: State, config: ProtocolConfig) -> Result:
        return engine.borrow(state, config, self.address, self.amount, self.token)

    def describe(self) -> str:
        return f"bor {self.address} {self.amount}:{self.token}"


@dataclass(frozen=True, slots=True)
class Repay:
    address: Address
    amount: int
    token: Token

    def __post_init__(self):
        check_amount(self.amount)

    def apply(self, state: State, config: ProtocolConfig) -> Result:
        return engine.repay(state, self.address, self.amount, self.token)

    def describe(self) -> str:
        return f"rep {self.address} {self.amount}:{self.token}"


@dataclass(frozen=True, slots=True)
class Redeem:
    """Burn claim tokens of `token` for the underlying."""
    address: Address
    amount: int
    token: Token

    def __post_init__(self):
        check_amount(self.amount)

    def apply(self, state: State, config: ProtocolConfig) -> Result:
        return engine.redeem(state, self.address, self.amount, self.token)

    def describe(self) -> str:
        return f"rdm {self.address} {self.amount}:{self.token}"


@dataclass(frozen=True, slots=True)
class AccrueInterest:
    """One global interest step over every pool."""

    def apply(self, state: State, config: ProtocolConfig) -> Result:
        return engine.accrue_interest(state, config)

    def describe(self) -> str:
        return "accrue_int"


@dataclass(frozen=True, slots=True)
class Liquidate:
    liquidator: Address
    borrower: Address
    amount: int
    debt_token: Token
    collateral_token: Token

    def __post_init__(self):
        check_amount(self.amount)

    def apply(self, state: State, config: ProtocolConfig) -> Result:
        return engine.liquidate(
            state, config, self.liquidator, self.borrower,
            self.amount, self.debt_token, self.collateral_token,
        )

    def describe(self) -> str:
        return (f"liq {self.liquidator} {self.borrower} {self.amount}:{self.debt_token} "
                f"for LP({self.collateral_token})")


@dataclass(frozen=True, slots=True)
class PriceUpdate:
    """Replace the prices of some tokens in the driver's configuration."""
    prices: Tuple[Tuple[Token, float], ...]

    def __post_init__(self):
        items = self.prices.items() if isinstance(self.prices, Mapping) else self.prices
        prices = tuple((tok, float(p)) for tok, p in items)
        for tok, price in prices:
            if price < 0:
                raise ValueError(f"Price of {tok} cannot be negative, got {price}")
        object.__setattr__(self, 'prices', prices)

    def apply(self, state: State, config: ProtocolConfig) -> Result:
        return state

    def update_config(self, config: ProtocolConfig) -> ProtocolConfig:
        return config.with_prices(dict(self.prices))

    def describe(self) -> str:
        inner = ", ".join(f"{tok}={p}" for tok, p in self.prices)
        return f"px {inner}"

