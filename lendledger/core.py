"""
Core types for the lending ledger.

This module provides the foundational data structures shared by every layer:
1. Identifiers: Address and the Token variants (BaseToken, ClaimToken, PairToken)
2. Token derivations: mint_claim, mint_pair, is_minted_claim, underlying_of
3. Rejections: RejectionKind and the immutable Rejection value
4. Exceptions: LendingError and one subclass per rejection kind

All types here are immutable. Nothing in this module touches ledger state.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union, Type, Dict


# ============================================================================
# IDENTIFIERS
# ============================================================================

@dataclass(frozen=True, slots=True, order=True)
class Address:
    """
    A protocol participant.

    Addresses are opaque: the name is only used for equality, ordering and
    display.
    """
    name: str

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("Address name cannot be empty")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class BaseToken:
    """A fungible asset class that can back a liquidity pool."""
    symbol: str

    def __post_init__(self):
        if not isinstance(self.symbol, str) or not self.symbol.strip():
            raise ValueError("Token symbol cannot be empty")

    def __str__(self) -> str:
        return self.symbol


@dataclass(frozen=True, slots=True)
class ClaimToken:
    """
    Token minted by a pool in exchange for a deposit of its underlying.

    Holding claim tokens is what makes an address's deposits count as
    collateral.
    """
    underlying: BaseToken

    def __post_init__(self):
        if not isinstance(self.underlying, BaseToken):
            raise TypeError(
                f"Claim tokens can only be minted for base tokens, got {self.underlying!r}"
            )

    def __str__(self) -> str:
        return f"LP({self.underlying})"


@dataclass(frozen=True, slots=True)
class PairToken:
    """Token naming two base tokens. Reserved for AMM pools."""
    first: BaseToken
    second: BaseToken

    def __post_init__(self):
        if not isinstance(self.first, BaseToken) or not isinstance(self.second, BaseToken):
            raise TypeError("Pair tokens can only be built from base tokens")

    def __str__(self) -> str:
        return f"AMM({self.first},{self.second})"


Token = Union[BaseToken, ClaimToken, PairToken]


def token_sort_key(token: Token) -> Tuple:
    """
    Total order over every token variant.

    Base tokens sort before claim tokens, which sort before pair tokens.
    Within a variant, tokens sort by their underlying symbols.
    """
    if isinstance(token, BaseToken):
        return (0, token.symbol)
    if isinstance(token, ClaimToken):
        return (1, token.underlying.symbol)
    if isinstance(token, PairToken):
        return (2, token.first.symbol, token.second.symbol)
    raise TypeError(f"Not a token: {token!r}")


def mint_claim(token: Token) -> ClaimToken:
    """Return the claim token minted by the pool of a base token."""
    if not isinstance(token, BaseToken):
        raise TypeError(f"Cannot mint a claim token for {token!r}")
    return ClaimToken(token)


def mint_pair(first: BaseToken, second: BaseToken) -> PairToken:
    """
    Return the pair token for two base tokens.

    The pair is canonical: mint_pair(a, b) == mint_pair(b, a).
    """
    if token_sort_key(second) < token_sort_key(first):
        first, second = second, first
    return PairToken(first, second)


def is_minted_claim(token: Token) -> bool:
    """True for claim tokens, False for base and pair tokens."""
    if isinstance(token, ClaimToken):
        return True
    if isinstance(token, (BaseToken, PairToken)):
        return False
    raise TypeError(f"Not a token: {token!r}")


def underlying_of(token: Token) -> Optional[BaseToken]:
    """Underlying base token of a claim token; None for any other token."""
    if isinstance(token, ClaimToken):
        return token.underlying
    if isinstance(token, (BaseToken, PairToken)):
        return None
    raise TypeError(f"Not a token: {token!r}")


def addr(name: str) -> Address:
    """Shorthand constructor for an Address."""
    return Address(name)


def token(symbol: str) -> BaseToken:
    """Shorthand constructor for a BaseToken."""
    return BaseToken(symbol)


# ============================================================================
# REJECTIONS
# ============================================================================

class RejectionKind(Enum):
    """
    Reason an operation was rejected.

    SAME_ADDRESS: Transfer or liquidation where both parties are the same.
    INSUFFICIENT_BALANCE: A wallet or a pool reserve is short.
    INSUFFICIENT_DEBT: Repayment exceeds the recorded debt.
    UNDER_COLLATERALIZATION: A borrow would leave the borrower below the minimum.
    OVER_COLLATERALIZATION: Liquidation of a healthy position, or a liquidation
                            that would push the position above the minimum.
    MINTED_LP_TOKEN: A token argument that must be a base token is not one.
    """
    SAME_ADDRESS = "SameAddress"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    INSUFFICIENT_DEBT = "InsufficientDebt"
    UNDER_COLLATERALIZATION = "UnderCollateralization"
    OVER_COLLATERALIZATION = "OverCollateralization"
    MINTED_LP_TOKEN = "MintedLPToken"


@dataclass(frozen=True, slots=True)
class Rejection:
    """
    Typed refusal of a single operation.

    An operation returns either a new State or a Rejection, never both.
    The caller keeps its pre-operation State and may retry or give up.

    Attributes:
        kind: Classification of the failure
        party: The offending address or pool, rendered as text
        detail: Human-readable explanation
    """
    kind: RejectionKind
    party: str = ""
    detail: str = ""

    def to_exception(self) -> LendingError:
        """Build the LendingError subclass matching this rejection."""
        exc_type = _EXCEPTION_BY_KIND[self.kind]
        return exc_type(self)

    def __str__(self) -> str:
        parts = [self.kind.value]
        if self.party:
            parts.append(f"({self.party})")
        if self.detail:
            parts.append(f": {self.detail}")
        return "".join(parts)


def reject(kind: RejectionKind, party: object = "", detail: str = "") -> Rejection:
    """Build a Rejection, rendering the party with str()."""
    return Rejection(kind=kind, party=str(party), detail=detail)


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LendingError(Exception):
    """
    Base exception for rejected lending operations.

    Raised only by drivers that choose exception-style handling
    (LendingLedger.execute_or_raise). The rejection is kept on the exception.
    """

    def __init__(self, rejection: Rejection):
        super().__init__(str(rejection))
        self.rejection = rejection


class SameAddress(LendingError):
    """Raised when a transfer or liquidation names the same address twice."""
    pass


class InsufficientBalance(LendingError):
    """Raised when a wallet or a pool reserve cannot cover an amount."""
    pass


class InsufficientDebt(LendingError):
    """Raised when a repayment exceeds the outstanding debt."""
    pass


class UnderCollateralization(LendingError):
    """Raised when a borrow would breach the minimum collateralization."""
    pass


class OverCollateralization(LendingError):
    """Raised when a liquidation targets, or would produce, a healthy position."""
    pass


class MintedLPToken(LendingError):
    """Raised when a claim token is given where a base token is required."""
    pass


_EXCEPTION_BY_KIND: Dict[RejectionKind, Type[LendingError]] = {
    RejectionKind.SAME_ADDRESS: SameAddress,
    RejectionKind.INSUFFICIENT_BALANCE: InsufficientBalance,
    RejectionKind.INSUFFICIENT_DEBT: InsufficientDebt,
    RejectionKind.UNDER_COLLATERALIZATION: UnderCollateralization,
    RejectionKind.OVER_COLLATERALIZATION: OverCollateralization,
    RejectionKind.MINTED_LP_TOKEN: MintedLPToken,
}


def check_amount(amount: int) -> int:
    """
    Validate an operation amount.

    Amounts are non-negative integers. Anything else is a programming error
    and raises rather than producing a Rejection.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TypeError(f"Amount must be an int, got {type(amount).__name__}")
    if amount < 0:
        raise ValueError(f"Amount cannot be negative, got {amount}")
    return amount
