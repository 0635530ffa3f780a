"""
pricing.py - Protocol configuration and injected price/rate feeds

Price discovery is outside the engine. The engine values tokens through a
price function and scales debts through an interest-rate function, both
supplied by the caller inside a ProtocolConfig.

Classes:
- PriceFeed: Protocol for price functions (Token -> float)
- RateModel: Protocol for interest-rate functions (Token -> rate per accrual)
- StaticPriceFeed: Fixed prices with a default for unknown tokens
- StaticRateModel: Fixed per-token rates with a default
- ProtocolConfig: Minimum collateralization, liquidation bonus and both feeds

All prices are amount-independent: the value of n tokens is n * price.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Protocol, runtime_checkable

from .core import Token, token_sort_key


DEFAULT_MIN_COLLATERALIZATION = 1.5
DEFAULT_LIQUIDATION_BONUS = 1.1
DEFAULT_PRICE = 1.0


@runtime_checkable
class PriceFeed(Protocol):
    """Value of one unit of a token, in a common numeraire."""

    def __call__(self, tok: Token) -> float:
        ...


@runtime_checkable
class RateModel(Protocol):
    """Interest rate applied to a pool's debts on one accrual call (not annualized)."""

    def __call__(self, tok: Token) -> float:
        ...


@dataclass(frozen=True, slots=True)
class StaticPriceFeed:
    """
    Price feed with fixed prices.

    Tokens without an explicit price are worth `default`, so an empty feed
    prices everything at 1.0.

    Example:
        feed = StaticPriceFeed({t0: 1.0, t1: 2.5})
        feed(t1)                          # 2.5
        feed.with_prices({t1: 3.0})(t1)   # 3.0, feed itself unchanged
    """
    prices: Mapping[Token, float] = field(default_factory=dict)
    default: float = DEFAULT_PRICE

    def __post_init__(self):
        for tok, price in self.prices.items():
            if price < 0:
                raise ValueError(f"Price of {tok} cannot be negative, got {price}")
        object.__setattr__(
            self, 'prices', MappingProxyType({k: float(v) for k, v in self.prices.items()})
        )

    def __hash__(self):
        return hash((frozenset(self.prices.items()), self.default))

    def __call__(self, tok: Token) -> float:
        return self.prices.get(tok, self.default)

    def with_prices(self, updates: Mapping[Token, float]) -> StaticPriceFeed:
        """Return a feed with some prices replaced or added."""
        return StaticPriceFeed({**self.prices, **updates}, self.default)

    def __repr__(self) -> str:
        items = sorted(self.prices.items(), key=lambda kv: token_sort_key(kv[0]))
        inner = ", ".join(f"{tok}={price}" for tok, price in items)
        return f"StaticPriceFeed({inner}; default={self.default})"


@dataclass(frozen=True, slots=True)
class StaticRateModel:
    """Interest rates fixed per token, `default` for any other token."""
    rates: Mapping[Token, float] = field(default_factory=dict)
    default: float = 0.0

    def __post_init__(self):
        object.__setattr__(
            self, 'rates', MappingProxyType({k: float(v) for k, v in self.rates.items()})
        )

    def __hash__(self):
        return hash((frozenset(self.rates.items()), self.default))

    def __call__(self, tok: Token) -> float:
        return self.rates.get(tok, self.default)


@dataclass(frozen=True, slots=True)
class _OverlayPriceFeed:
    """Fixed prices layered over an arbitrary price function."""
    overrides: Mapping[Token, float]
    fallback: Callable[[Token], float]

    def __hash__(self):
        return hash((frozenset(self.overrides.items()), self.fallback))

    def __call__(self, tok: Token) -> float:
        if tok in self.overrides:
            return self.overrides[tok]
        return self.fallback(tok)


@dataclass(frozen=True, slots=True)
class ProtocolConfig:
    """
    Read-only policy threaded through every engine call.

    Attributes:
        min_collateralization: Minimum ratio of collateral value to debt value
                               (must be > 1, e.g. 1.5 for 150%)
        liquidation_bonus: Multiplier applied to the value seized by liquidators
                           (must be >= 1, e.g. 1.1 for a 10% bonus)
        price: Price function Token -> float
        interest_rate: Rate function Token -> float, applied per accrual call
    """
    min_collateralization: float = DEFAULT_MIN_COLLATERALIZATION
    liquidation_bonus: float = DEFAULT_LIQUIDATION_BONUS
    price: Callable[[Token], float] = field(default_factory=StaticPriceFeed)
    interest_rate: Callable[[Token], float] = field(default_factory=StaticRateModel)

    def __post_init__(self):
        if not self.min_collateralization > 1.0:
            raise ValueError(
                f"min_collateralization must be > 1, got {self.min_collateralization}"
            )
        if not self.liquidation_bonus >= 1.0:
            raise ValueError(
                f"liquidation_bonus must be >= 1, got {self.liquidation_bonus}"
            )
        if not callable(self.price):
            raise TypeError("price must be callable")
        if not callable(self.interest_rate):
            raise TypeError("interest_rate must be callable")

    def with_prices(self, updates: Mapping[Token, float]) -> ProtocolConfig:
        """
        Return a config with some token prices replaced.

        A StaticPriceFeed is extended in place of being wrapped, so repeated
        updates do not build up a chain of lookups.
        """
        for tok, price in updates.items():
            if price < 0:
                raise ValueError(f"Price of {tok} cannot be negative, got {price}")
        if isinstance(self.price, StaticPriceFeed):
            feed = self.price.with_prices(updates)
        elif isinstance(self.price, _OverlayPriceFeed):
            feed = _OverlayPriceFeed(
                MappingProxyType({**self.price.overrides, **updates}), self.price.fallback
            )
        else:
            feed = _OverlayPriceFeed(MappingProxyType(dict(updates)), self.price)
        return replace(self, price=feed)

    def with_rates(self, rates: Mapping[Token, float], default: Optional[float] = None) -> ProtocolConfig:
        """Return a config using fixed per-token interest rates."""
        if default is None:
            default = self.interest_rate.default if isinstance(self.interest_rate, StaticRateModel) else 0.0
        return replace(self, interest_rate=StaticRateModel(rates, default))


DEFAULT_CONFIG = ProtocolConfig()
