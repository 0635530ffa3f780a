"""
display.py - Human-readable renderings of ledger state

Pure functions of State (and ProtocolConfig for valuations). Nothing here
prints; callers decide where the text goes.

Formats:
    render_state:  A[t0:50, LP(t0):50] | B[t0:30, LP(t1):50] | (20:t0,{30/B}) | (50:t1,{})
    render_info:   one line per address with free/collateralized/debt values
                   and collateralization
"""

from __future__ import annotations
import math
from typing import List

from .pricing import ProtocolConfig
from .state import (
    State,
    collateralization, value_collateralized, value_debt, value_free,
    exchange_rate, supply,
)
from .core import mint_claim


def _format_ratio(ratio: float) -> str:
    if math.isinf(ratio):
        return "Infty"
    return f"{ratio:.4f}"


def render_state(state: State) -> str:
    """
    Render a State on one line.

    Wallets come first, in address order, skipping wallets whose balances
    are all zero; pools follow in token order. The output depends only on
    the state.
    """
    parts: List[str] = []
    for address in state.addresses():
        wallet = state.wallets[address]
        if not wallet.is_empty():
            parts.append(repr(wallet))
    for tok in state.pool_tokens():
        parts.append(repr(state.pools[tok]))
    return " | ".join(parts)


def render_pools(state: State) -> str:
    """One line per pool with reserve, total debt, claim supply and exchange rate."""
    lines = []
    for tok in state.pool_tokens():
        pool = state.pools[tok]
        lines.append(
            f"{tok}: reserve={pool.reserve} debt={pool.total_debt()} "
            f"claims={supply(state, mint_claim(tok))} er={exchange_rate(state, tok):.6f}"
        )
    return "\n".join(lines)


def render_info(state: State, config: ProtocolConfig) -> str:
    """
    Per-address valuation report.

    Example line:
        B: free=30.00 collateralized=50.00 debt=30.00 coll=1.6667
    """
    lines = []
    for address in state.addresses():
        lines.append(
            f"{address}: "
            f"free={value_free(state, config, address):.2f} "
            f"collateralized={value_collateralized(state, config, address):.2f} "
            f"debt={value_debt(state, config, address):.2f} "
            f"coll={_format_ratio(collateralization(state, config, address))}"
        )
    return "\n".join(lines)
