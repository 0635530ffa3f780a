"""
wallet.py - Per-address token balances

A Wallet is an immutable mapping from Token to integer balance, owned by one
Address. Every update returns a new Wallet.

The balance primitive does not validate: update() happily produces a negative
balance. Sufficiency checks live in the state layer, which only calls update()
after it has confirmed the debit is covered.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, List, Mapping, Tuple

from .core import Address, Token, token_sort_key


def _freeze_balances(balances: Mapping[Token, int]) -> Mapping[Token, int]:
    """Copy a balance mapping into a read-only view."""
    return MappingProxyType(dict(balances))


@dataclass(frozen=True, slots=True)
class Wallet:
    """
    Token holdings of a single address.

    Attributes:
        owner: Address holding the balances
        balances: Read-only Token -> int mapping. Absent tokens have balance 0.
    """
    owner: Address
    balances: Mapping[Token, int] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'balances', _freeze_balances(self.balances))

    def __hash__(self):
        return hash((self.owner, frozenset(self.balances.items())))

    @classmethod
    def from_pairs(cls, owner: Address, pairs: Iterable[Tuple[Token, int]]) -> Wallet:
        """
        Build a wallet from an association list.

        Duplicate tokens are not merged: a later pair overwrites an earlier one.
        """
        balances = {}
        for tok, amount in pairs:
            balances[tok] = amount
        return cls(owner, balances)

    def balance(self, tok: Token) -> int:
        """Balance of a token, 0 if the wallet never held it."""
        return self.balances.get(tok, 0)

    def update(self, tok: Token, delta: int) -> Wallet:
        """Return a wallet with delta added to the balance of tok."""
        balances = dict(self.balances)
        balances[tok] = balances.get(tok, 0) + delta
        return Wallet(self.owner, balances)

    def to_pairs(self) -> List[Tuple[Token, int]]:
        """Association list of balances, in token order."""
        return sorted(self.balances.items(), key=lambda kv: token_sort_key(kv[0]))

    def is_empty(self) -> bool:
        """True if every balance is zero."""
        return all(amount == 0 for amount in self.balances.values())

    def __repr__(self) -> str:
        inner = ", ".join(f"{tok}:{amount}" for tok, amount in self.to_pairs() if amount != 0)
        return f"{self.owner}[{inner}]"
