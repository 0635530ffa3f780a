"""
pool.py - Liquidity pools and their debt ledgers

A LiquidityPool exists for one base token. It holds:
    reserve: pooled tokens not currently lent out
    debts:   Address -> outstanding debt, in units of the base token

Key formulas:
    total_debt = sum(debts.values())
    accrue_interest(k): debt' = int(debt * k) for every borrower
"""

from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Mapping, Tuple

from .core import Address, BaseToken


DebtLedger = Mapping[Address, int]


@dataclass(frozen=True, slots=True)
class LiquidityPool:
    """
    Pooled reserve and debt ledger for one base token.

    Immutable and hashable: every update returns a new LiquidityPool.

    Attributes:
        token: Base token pooled here
        reserve: Tokens available to borrow or redeem
        debts: Read-only Address -> debt mapping. Absent addresses owe nothing.
    """
    token: BaseToken
    reserve: int = 0
    debts: DebtLedger = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.token, BaseToken):
            raise TypeError(f"Pools can only hold base tokens, got {self.token!r}")
        object.__setattr__(self, 'debts', MappingProxyType(dict(self.debts)))

    def __hash__(self):
        return hash((self.token, self.reserve, frozenset(self.debts.items())))

    def debt_of(self, address: Address) -> int:
        """Outstanding debt of an address, 0 if it never borrowed."""
        return self.debts.get(address, 0)

    def total_debt(self) -> int:
        """Sum of every borrower's outstanding debt."""
        return sum(self.debts.values())

    def update_debt(self, address: Address, delta: int) -> LiquidityPool:
        """Return a pool with delta added to the debt of address (upsert)."""
        debts = dict(self.debts)
        debts[address] = debts.get(address, 0) + delta
        return LiquidityPool(self.token, self.reserve, debts)

    def with_reserve(self, delta: int) -> LiquidityPool:
        """Return a pool with delta added to the reserve."""
        return LiquidityPool(self.token, self.reserve + delta, self.debts)

    def accrue_interest(self, factor: float) -> LiquidityPool:
        """
        Scale every debt by factor, truncating toward zero.

        Applied to all borrowers in one step. A factor of 1.0 returns the pool
        itself, so debts of any size are left exact.
        """
        if factor == 1.0:
            return self
        debts = {a: int(float(n) * factor) for a, n in self.debts.items()}
        return LiquidityPool(self.token, self.reserve, debts)

    def debt_pairs(self) -> List[Tuple[Address, int]]:
        """Debt ledger as an association list, in address order."""
        return sorted(self.debts.items())

    def __repr__(self) -> str:
        debts = ",".join(f"{n}/{a}" for a, n in self.debt_pairs())
        return f"({self.reserve}:{self.token},{{{debts}}})"


def empty_pool(tok: BaseToken) -> LiquidityPool:
    """A pool with no reserve and no borrowers."""
    return LiquidityPool(tok, 0, {})
