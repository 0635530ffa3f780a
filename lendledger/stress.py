"""
stress.py - Collateralization under price shocks

Read-only analysis on top of the engine queries. Nothing here changes a
State; prices are shocked by scaling the injected price of one token.

For an address and a shocked token t with price multiplier m:

    ratio(m) = (C_other + C_t * m) / (D_other + D_t * m)

where C_t / D_t are the collateral / debt values denominated in t and
C_other / D_other everything else. ratio(m) is vectorized over m with numpy.
"""

from __future__ import annotations
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .core import Address, BaseToken, underlying_of
from .pricing import ProtocolConfig
from .state import State, collateralization, exchange_rate, price


Numeric = Union[float, Sequence[float], np.ndarray]


def _exposure(
    state: State,
    config: ProtocolConfig,
    address: Address,
    tok: BaseToken,
) -> Tuple[float, float, float, float]:
    """
    Split an address's collateral and debt values by exposure to tok.

    Returns:
        (collateral_other, collateral_shocked, debt_other, debt_shocked)
    """
    coll_other = 0.0
    coll_shocked = 0.0
    for held, amount in state.wallet(address).to_pairs():
        base = underlying_of(held)
        if base is None:
            continue
        value = float(amount) * exchange_rate(state, base) * price(config, base)
        if base == tok:
            coll_shocked += value
        else:
            coll_other += value

    debt_other = 0.0
    debt_shocked = 0.0
    for pooled in state.pool_tokens():
        value = float(state.pools[pooled].debt_of(address)) * price(config, pooled)
        if pooled == tok:
            debt_shocked += value
        else:
            debt_other += value
    return coll_other, coll_shocked, debt_other, debt_shocked


def collateralization_under_shocks(
    state: State,
    config: ProtocolConfig,
    address: Address,
    tok: BaseToken,
    multipliers: Numeric,
) -> np.ndarray:
    """
    Collateralization of an address if tok's price were scaled by each multiplier.

    Args:
        state: Ledger state to analyse
        config: Policy providing the unshocked prices
        address: Position to stress
        tok: Token whose price is shocked
        multipliers: Price multipliers (1.0 = current price), must be >= 0

    Returns:
        Array of ratios, same shape as multipliers. np.inf where the debt
        value is zero.

    Raises:
        ValueError: If any multiplier is negative or not finite

    Example:
        # Ratio of B for a t0 price move between -50% and +50%
        ratios = collateralization_under_shocks(state, config, b, t0, np.linspace(0.5, 1.5, 11))
    """
    m = np.asarray(multipliers, dtype=float)
    if not np.all(np.isfinite(m)) or np.any(m < 0):
        raise ValueError("multipliers must be finite and non-negative")
    coll_other, coll_shocked, debt_other, debt_shocked = _exposure(state, config, address, tok)
    coll = coll_other + coll_shocked * m
    debt = debt_other + debt_shocked * m
    safe_debt = np.where(debt > 0, debt, 1.0)
    return np.where(debt > 0, coll / safe_debt, np.inf)


def liquidation_price(
    state: State,
    config: ProtocolConfig,
    address: Address,
    tok: BaseToken,
) -> Optional[float]:
    """
    Price of tok at which the address's ratio reaches the configured minimum.

    Solves ratio(m) = min_collateralization for m and scales the current price.

    Returns:
        The price, or None when no non-negative price reaches the minimum
        (no debt, no exposure to tok, or tok's price is currently zero).
    """
    current = price(config, tok)
    if current <= 0:
        return None
    coll_other, coll_shocked, debt_other, debt_shocked = _exposure(state, config, address, tok)
    if debt_other + debt_shocked <= 0:
        return None
    c_min = config.min_collateralization
    denominator = coll_shocked - c_min * debt_shocked
    if denominator == 0:
        return None
    m = (c_min * debt_other - coll_other) / denominator
    if m < 0:
        return None
    return float(m * current)


def liquidatable_addresses(state: State, config: ProtocolConfig) -> List[Address]:
    """Addresses whose collateralization is below the minimum, in order."""
    candidates = set(state.wallets)
    for pool in state.pools.values():
        candidates.update(a for a, debt in pool.debts.items() if debt > 0)
    return [
        address for address in sorted(candidates)
        if collateralization(state, config, address) < config.min_collateralization
    ]
