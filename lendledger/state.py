"""
state.py - The ledger State and its pure transitions

The State is the unit of transition: an immutable pair of mappings
    wallets: Address -> Wallet
    pools:   BaseToken -> LiquidityPool

Every operation in this module is a pure function

    operation(state, [config,] operands...) -> State | Rejection

All checks run against the input state before anything is built. A Rejection
means nothing happened: the caller still holds the unchanged input state.
No function here prints, logs or raises for business failures; invalid
operands (negative amounts, non-token arguments) raise ValueError/TypeError.

Key formulas:
    exchange_rate(t)     = (reserve(t) + total_debt(t)) / supply(LP(t))
    value_free(a)        = sum(balance * price(t) for base and pair tokens)
    value_collateralized = sum(balance * exchange_rate(u) * price(u) for LP(u))
    value_debt(a)        = sum(debt_of(a, pool(t)) * price(t))
    collateralization(a) = value_collateralized(a) / value_debt(a), inf if no debt
    seized               = int(amount * bonus * price(debt) / (exchange_rate(coll) * price(coll)))
"""

from __future__ import annotations
from dataclasses import dataclass, field
import math
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Tuple, Union

from .core import (
    Address, BaseToken, Token, Rejection, RejectionKind,
    mint_claim, is_minted_claim, underlying_of, token_sort_key,
    check_amount, reject,
)
from .pool import LiquidityPool
from .pricing import ProtocolConfig
from .wallet import Wallet


INFINITE = math.inf


# ============================================================================
# STATE
# ============================================================================

@dataclass(frozen=True, slots=True)
class State:
    """
    Immutable, hashable snapshot of the whole ledger.

    Wallets and pools are created lazily: a pool appears on the first deposit
    of its token, a wallet on registration or on the first credit to its
    address. Lookups of absent entries return empty values.

    Attributes:
        wallets: Read-only Address -> Wallet mapping
        pools: Read-only BaseToken -> LiquidityPool mapping
    """
    wallets: Mapping[Address, Wallet] = field(default_factory=dict)
    pools: Mapping[BaseToken, LiquidityPool] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'wallets', MappingProxyType(dict(self.wallets)))
        object.__setattr__(self, 'pools', MappingProxyType(dict(self.pools)))

    def __hash__(self):
        return hash((frozenset(self.wallets.items()), frozenset(self.pools.items())))

    @classmethod
    def empty(cls) -> State:
        """A ledger with no wallets and no pools."""
        return cls({}, {})

    def wallet(self, address: Address) -> Wallet:
        """Wallet of an address; an empty wallet if it was never registered."""
        found = self.wallets.get(address)
        return found if found is not None else Wallet(address, {})

    def pool(self, tok: BaseToken) -> Optional[LiquidityPool]:
        """Pool of a base token, None if nobody has deposited it yet."""
        return self.pools.get(tok)

    def has_pool(self, tok: Token) -> bool:
        return tok in self.pools

    def balance(self, address: Address, tok: Token) -> int:
        """Balance of a token held by an address, 0 if absent."""
        return self.wallet(address).balance(tok)

    def debt_of(self, address: Address, tok: BaseToken) -> int:
        """Outstanding debt of an address in a token's pool, 0 if absent."""
        found = self.pools.get(tok)
        return found.debt_of(address) if found is not None else 0

    def addresses(self) -> List[Address]:
        """Registered addresses, in order."""
        return sorted(self.wallets)

    def pool_tokens(self) -> List[BaseToken]:
        """Tokens that have a pool, in token order."""
        return sorted(self.pools, key=token_sort_key)

    def with_wallet(self, wallet: Wallet) -> State:
        """Return a state with one wallet replaced."""
        wallets = dict(self.wallets)
        wallets[wallet.owner] = wallet
        return State(wallets, self.pools)

    def with_pool(self, pool: LiquidityPool) -> State:
        """Return a state with one pool replaced."""
        pools = dict(self.pools)
        pools[pool.token] = pool
        return State(self.wallets, pools)


Result = Union[State, Rejection]


def is_rejection(result: Result) -> bool:
    """True if an operation result is a Rejection."""
    return isinstance(result, Rejection)


# ============================================================================
# QUERIES
# ============================================================================

def supply(state: State, tok: Token) -> int:
    """
    Total quantity of a token in existence.

    Sum of every wallet's balance plus the pool reserve for the token, if it
    has a pool. Claim tokens never have a pool, so their supply is the sum
    over wallets.
    """
    total = sum(w.balance(tok) for _, w in sorted(state.wallets.items()))
    found = state.pools.get(tok)
    if found is not None:
        total += found.reserve
    return total


def exchange_rate(state: State, tok: Token) -> float:
    """
    Price of one claim token of `tok`, in units of `tok`.

    (reserve + total outstanding debt) / supply of the claim token.
    1.0 when the token has no pool yet, or when no claim token is outstanding.
    The rate grows as interest accrues on outstanding debt.
    """
    found = state.pools.get(tok)
    if found is None:
        return 1.0
    claims = supply(state, mint_claim(found.token))
    if claims == 0:
        return 1.0
    return float(found.reserve + found.total_debt()) / float(claims)


def price(config: ProtocolConfig, tok: Token) -> float:
    """Price of a token according to the injected price function."""
    return float(config.price(tok))


def value_free(state: State, config: ProtocolConfig, address: Address) -> float:
    """Value of the non-claim tokens held by an address."""
    total = 0.0
    for tok, amount in state.wallet(address).to_pairs():
        if not is_minted_claim(tok):
            total += float(amount) * price(config, tok)
    return total


def value_collateralized(state: State, config: ProtocolConfig, address: Address) -> float:
    """Value of the claim tokens held by an address, at current exchange rates."""
    total = 0.0
    for tok, amount in state.wallet(address).to_pairs():
        base = underlying_of(tok)
        if base is not None:
            total += float(amount) * exchange_rate(state, base) * price(config, base)
    return total


def value_debt(state: State, config: ProtocolConfig, address: Address) -> float:
    """Value of an address's outstanding debt across every pool."""
    total = 0.0
    for tok in state.pool_tokens():
        total += float(state.pools[tok].debt_of(address)) * price(config, tok)
    return total


def collateralization(state: State, config: ProtocolConfig, address: Address) -> float:
    """
    Ratio of collateral value to debt value.

    Returns math.inf (Infinite) when the address owes nothing. The infinite
    case compares as above every minimum, so `ratio < minimum` is the test
    for an unhealthy position.
    """
    debt = value_debt(state, config, address)
    if debt > 0:
        return value_collateralized(state, config, address) / debt
    return INFINITE


def is_healthy(state: State, config: ProtocolConfig, address: Address) -> bool:
    """True unless the address's collateralization is below the minimum."""
    return not collateralization(state, config, address) < config.min_collateralization


# ============================================================================
# REGISTRATION
# ============================================================================

def add_wallet(state: State, address: Address, pairs: Iterable[Tuple[Token, int]]) -> State:
    """
    Register the wallet of an address from an association list.

    An existing wallet for the address is replaced. Duplicate tokens in
    `pairs` are resolved by the last pair.

    Raises:
        ValueError: If any balance is negative
    """
    pairs = list(pairs)
    for tok, amount in pairs:
        check_amount(amount)
    return state.with_wallet(Wallet.from_pairs(address, pairs))


# ============================================================================
# OPERATIONS
# ============================================================================

def _require_base(tok: Token, role: str) -> Optional[Rejection]:
    if isinstance(tok, BaseToken):
        return None
    return reject(RejectionKind.MINTED_LP_TOKEN, tok, f"{role} must be a base token")


def _pool_party(tok: Token) -> str:
    return f"pool:{tok}"


def transfer(state: State, sender: Address, receiver: Address, amount: int, tok: Token) -> Result:
    """
    Move `amount` of `tok` from sender to receiver.

    Rejections:
        SameAddress: sender == receiver
        InsufficientBalance(sender): sender holds less than amount
    """
    check_amount(amount)
    if sender == receiver:
        return reject(RejectionKind.SAME_ADDRESS, sender, "cannot transfer to self")
    held = state.balance(sender, tok)
    if held < amount:
        return reject(
            RejectionKind.INSUFFICIENT_BALANCE, sender,
            f"holds {held} {tok}, needs {amount}",
        )
    return (state
            .with_wallet(state.wallet(sender).update(tok, -amount))
            .with_wallet(state.wallet(receiver).update(tok, amount)))


def deposit(state: State, address: Address, amount: int, tok: Token) -> Result:
    """
    Deposit `amount` of a base token into its pool.

    The wallet gives up `amount` of `tok` and receives `amount` claim tokens.
    The pool reserve grows by int(amount / rate), with the exchange rate taken
    before the deposit. The first deposit of a token creates its pool with
    reserve = amount and no debt.

    Rejections:
        MintedLPToken: tok is not a base token
        InsufficientBalance(address): wallet holds less than amount
    """
    check_amount(amount)
    rejection = _require_base(tok, "deposit token")
    if rejection is not None:
        return rejection
    held = state.balance(address, tok)
    if held < amount:
        return reject(
            RejectionKind.INSUFFICIENT_BALANCE, address,
            f"holds {held} {tok}, needs {amount}",
        )

    wallet = state.wallet(address).update(tok, -amount).update(mint_claim(tok), amount)
    current = state.pool(tok)
    if current is None:
        new_pool = LiquidityPool(tok, amount, {})
    else:
        rate = exchange_rate(state, tok)
        claim_amount = int(amount / rate) if rate > 0 else amount
        new_pool = current.with_reserve(claim_amount)
    return state.with_wallet(wallet).with_pool(new_pool)


def borrow(state: State, config: ProtocolConfig, address: Address, amount: int, tok: Token) -> Result:
    """
    Borrow `amount` of a base token from its pool.

    The wallet receives the tokens, the reserve shrinks and the address's debt
    grows by amount. The resulting state is only returned if the borrower's
    collateralization stays at or above the configured minimum.

    Rejections:
        MintedLPToken: tok is not a base token
        InsufficientBalance(pool): no pool, or reserve below amount
        UnderCollateralization(address): the borrow would breach the minimum
    """
    check_amount(amount)
    rejection = _require_base(tok, "borrow token")
    if rejection is not None:
        return rejection
    current = state.pool(tok)
    if current is None:
        return reject(RejectionKind.INSUFFICIENT_BALANCE, _pool_party(tok), "no pool for token")
    if current.reserve < amount:
        return reject(
            RejectionKind.INSUFFICIENT_BALANCE, _pool_party(tok),
            f"reserve {current.reserve} < {amount}",
        )

    tentative = (state
                 .with_wallet(state.wallet(address).update(tok, amount))
                 .with_pool(current.with_reserve(-amount).update_debt(address, amount)))

    ratio = collateralization(tentative, config, address)
    if ratio < config.min_collateralization:
        return reject(
            RejectionKind.UNDER_COLLATERALIZATION, address,
            f"collateralization {ratio:.4f} < {config.min_collateralization}",
        )
    return tentative


def repay(state: State, address: Address, amount: int, tok: Token) -> Result:
    """
    Repay `amount` of debt in a base token.

    Rejections:
        MintedLPToken: tok is not a base token
        InsufficientBalance(address): wallet holds less than amount
        InsufficientDebt(address): outstanding debt is less than amount
    """
    check_amount(amount)
    rejection = _require_base(tok, "repay token")
    if rejection is not None:
        return rejection
    held = state.balance(address, tok)
    if held < amount:
        return reject(
            RejectionKind.INSUFFICIENT_BALANCE, address,
            f"holds {held} {tok}, needs {amount}",
        )
    owed = state.debt_of(address, tok)
    if owed < amount:
        return reject(
            RejectionKind.INSUFFICIENT_DEBT, address,
            f"owes {owed} {tok}, repaying {amount}",
        )
    if amount == 0:
        return state

    current = state.pool(tok)
    return (state
            .with_wallet(state.wallet(address).update(tok, -amount))
            .with_pool(current.with_reserve(amount).update_debt(address, -amount)))


def redeem(state: State, address: Address, amount: int, tok: Token) -> Result:
    """
    Burn `amount` claim tokens of a base token for the underlying.

    The address receives int(amount * exchange_rate(tok)) tokens out of the
    pool reserve. Redeeming does not re-check collateralization.

    Rejections:
        MintedLPToken: tok is not a base token
        InsufficientBalance(address): wallet holds fewer claim tokens than amount
        InsufficientBalance(pool): no pool, or reserve below the payout
    """
    check_amount(amount)
    rejection = _require_base(tok, "redeem token")
    if rejection is not None:
        return rejection
    claim = mint_claim(tok)
    held = state.balance(address, claim)
    if held < amount:
        return reject(
            RejectionKind.INSUFFICIENT_BALANCE, address,
            f"holds {held} {claim}, needs {amount}",
        )
    current = state.pool(tok)
    if current is None:
        return reject(RejectionKind.INSUFFICIENT_BALANCE, _pool_party(tok), "no pool for token")
    payout = int(amount * exchange_rate(state, tok))
    if current.reserve < payout:
        return reject(
            RejectionKind.INSUFFICIENT_BALANCE, _pool_party(tok),
            f"reserve {current.reserve} < {payout}",
        )

    wallet = state.wallet(address).update(claim, -amount).update(tok, payout)
    return state.with_wallet(wallet).with_pool(current.with_reserve(-payout))


def accrue_interest(state: State, config: ProtocolConfig) -> State:
    """
    Apply one interest step to every pool.

    Each pool's debts are scaled by 1 + interest_rate(token), for every
    borrower at once. Never rejected.
    """
    pools = {
        tok: pool.accrue_interest(1.0 + float(config.interest_rate(tok)))
        for tok, pool in state.pools.items()
    }
    return State(state.wallets, pools)


def seized_amount(
    state: State,
    config: ProtocolConfig,
    amount: int,
    debt_token: BaseToken,
    collateral_token: BaseToken,
) -> Optional[int]:
    """
    Claim tokens of collateral_token a liquidator receives for repaying amount.

    int(amount * bonus * price(debt) / (exchange_rate(coll) * price(coll))).
    None when the collateral is worthless (zero rate or zero price).
    """
    denominator = exchange_rate(state, collateral_token) * price(config, collateral_token)
    if denominator <= 0:
        return None
    return int(amount * config.liquidation_bonus * price(config, debt_token) / denominator)


def liquidate(
    state: State,
    config: ProtocolConfig,
    liquidator: Address,
    borrower: Address,
    amount: int,
    debt_token: Token,
    collateral_token: Token,
) -> Result:
    """
    Repay part of an unhealthy borrower's debt in exchange for their collateral.

    The liquidator pays `amount` of debt_token into the pool on the borrower's
    behalf and receives claim tokens of collateral_token worth
    amount * liquidation_bonus, taken from the borrower.

    Checks, in order:
        1. SameAddress: liquidator == borrower
        2. OverCollateralization: borrower is not below the minimum
        3. MintedLPToken: collateral_token (or debt_token) is not a base token
        4. InsufficientBalance(liquidator): short of debt_token
        5. InsufficientBalance(borrower): fewer claim tokens than the seizure
        6. InsufficientDebt(borrower): borrower owes less than amount
        7. OverCollateralization: the borrower would end strictly above the
           minimum. A liquidation may move a position toward the minimum but
           never past it, so even a liquidation that fully heals the position
           is rejected.
    """
    check_amount(amount)
    if liquidator == borrower:
        return reject(RejectionKind.SAME_ADDRESS, liquidator, "cannot liquidate self")

    ratio = collateralization(state, config, borrower)
    if not ratio < config.min_collateralization:
        return reject(
            RejectionKind.OVER_COLLATERALIZATION, borrower,
            f"collateralization {ratio:.4f} >= {config.min_collateralization}",
        )

    rejection = _require_base(collateral_token, "collateral token")
    if rejection is None:
        rejection = _require_base(debt_token, "debt token")
    if rejection is not None:
        return rejection

    held = state.balance(liquidator, debt_token)
    if held < amount:
        return reject(
            RejectionKind.INSUFFICIENT_BALANCE, liquidator,
            f"holds {held} {debt_token}, needs {amount}",
        )

    claim = mint_claim(collateral_token)
    seized = seized_amount(state, config, amount, debt_token, collateral_token)
    if seized is None:
        return reject(
            RejectionKind.INSUFFICIENT_BALANCE, borrower,
            f"{collateral_token} collateral has no value",
        )
    pledged = state.balance(borrower, claim)
    if pledged < seized:
        return reject(
            RejectionKind.INSUFFICIENT_BALANCE, borrower,
            f"holds {pledged} {claim}, seizure needs {seized}",
        )

    owed = state.debt_of(borrower, debt_token)
    if owed < amount:
        return reject(
            RejectionKind.INSUFFICIENT_DEBT, borrower,
            f"owes {owed} {debt_token}, liquidating {amount}",
        )

    result = (state
              .with_wallet(state.wallet(liquidator).update(debt_token, -amount).update(claim, seized))
              .with_wallet(state.wallet(borrower).update(claim, -seized)))
    debt_pool = result.pool(debt_token)
    if debt_pool is not None:
        result = result.with_pool(debt_pool.update_debt(borrower, -amount).with_reserve(amount))

    after = collateralization(result, config, borrower)
    if after > config.min_collateralization:
        return reject(
            RejectionKind.OVER_COLLATERALIZATION, borrower,
            f"liquidation would leave collateralization {after:.4f} > {config.min_collateralization}",
        )
    return result


# ============================================================================
# INVARIANTS
# ============================================================================

def check_invariants(state: State) -> List[str]:
    """
    List every structural invariant the state violates.

    Checked:
    - no negative wallet balance
    - wallets are keyed by their owner
    - pools are keyed by their own base token
    - no negative reserve and no negative debt

    Returns:
        Human-readable violations; empty when the state is consistent.
    """
    violations = []
    for address, wallet in sorted(state.wallets.items()):
        if wallet.owner != address:
            violations.append(f"wallet of {address} is owned by {wallet.owner}")
        for tok, amount in wallet.to_pairs():
            if amount < 0:
                violations.append(f"{address} holds negative {tok}: {amount}")
    for tok in state.pool_tokens():
        pool = state.pools[tok]
        if pool.token != tok:
            violations.append(f"pool keyed by {tok} holds {pool.token}")
        if pool.reserve < 0:
            violations.append(f"pool {tok} has negative reserve: {pool.reserve}")
        for address, debt in pool.debt_pairs():
            if debt < 0:
                violations.append(f"{address} has negative {tok} debt: {debt}")
    return violations
