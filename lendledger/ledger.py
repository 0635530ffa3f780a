"""
ledger.py - Stateful driver around the pure lending engine

The LendingLedger is the only object in the package that changes over time.
It holds the current State and ProtocolConfig and replaces them with the
result of each operation, one at a time.

Key responsibilities:
    - Applies operations strictly sequentially (all-or-nothing, per state.py)
    - Records every applied operation in an audit log
    - Reports results on stdout when verbose
    - Rebuilds history from the log (clone, replay, clone_at)
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Any, Iterable, Tuple

from .core import (
    Address, BaseToken, Token, Rejection,
    token_sort_key,
)
from .display import render_state, render_info
from .operations import Operation, PriceUpdate, AddWallet
from .pricing import ProtocolConfig, DEFAULT_CONFIG
from . import state as engine
from .state import State, check_invariants


class ExecuteResult(Enum):
    """
    Outcome of an operation submitted to the ledger.

    APPLIED: The operation produced a new state, which is now current.
    REJECTED: The operation was refused; the current state is unchanged.
    """
    APPLIED = "applied"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An applied operation, as recorded in the audit log.

    Attributes:
        operation: The operation record that was applied
        sequence_number: Position in the log, starting at 0
        ledger_name: Name of the ledger that applied it
        exec_id: Unique execution identifier (ledger + sequence)
    """
    operation: Any
    sequence_number: int
    ledger_name: str
    exec_id: str

    def __repr__(self) -> str:
        w = 100
        bar = "─" * w

        def pad(text: str) -> str:
            """Pad or truncate text to exactly w characters."""
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines = [
            "",
            f"┌{bar}┐",
            f"│{pad(' Transaction: ' + self.exec_id)}│",
            f"├{bar}┤",
            f"│{pad('   sequence       : ' + str(self.sequence_number))}│",
            f"│{pad('   ledger_name    : ' + self.ledger_name)}│",
            f"│{pad('   operation      : ' + self.operation.describe())}│",
            f"└{bar}┘",
        ]
        return "\n".join(lines)


class LendingLedger:
    """
    Sequential driver for the lending engine, with an audit trail.

    Design Principles:
        - Never mutates a State: each applied operation swaps in a new one.
        - Always logs: every applied operation is recorded, so the current
          state can be rebuilt from the initial state by replay().
        - Rejections are values: execute() returns REJECTED and keeps the
          rejection in last_rejection. execute_or_raise() raises instead.

    Thread Safety:
        Not thread-safe. One writer per LendingLedger.

    Example:
        ledger = LendingLedger("main", verbose=False)
        ledger.execute(AddWallet(a, ((t0, 100),)))
        ledger.execute(Deposit(a, 50, t0))
        ledger.exchange_rate(t0)   # 1.0
    """

    def __init__(
        self,
        name: str,
        config: Optional[ProtocolConfig] = None,
        initial_state: Optional[State] = None,
        verbose: bool = True,
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            config: Protocol policy (default: ProtocolConfig())
            initial_state: Starting state (default: empty)
            verbose: Print every result (default: True)
        """
        self.name = name
        self.verbose = verbose
        self._initial_state: State = initial_state if initial_state is not None else State.empty()
        self._initial_config: ProtocolConfig = config if config is not None else DEFAULT_CONFIG
        self._state: State = self._initial_state
        self._config: ProtocolConfig = self._initial_config
        self.transaction_log: List[Transaction] = []
        self.rejections: int = 0
        self.last_rejection: Optional[Rejection] = None

    # ========================================================================
    # READ-ONLY ACCESS
    # ========================================================================

    @property
    def state(self) -> State:
        """Current state. Immutable, safe to keep."""
        return self._state

    @property
    def config(self) -> ProtocolConfig:
        """Current protocol configuration."""
        return self._config

    def balance(self, address: Address, tok: Token) -> int:
        return self._state.balance(address, tok)

    def debt_of(self, address: Address, tok: BaseToken) -> int:
        return self._state.debt_of(address, tok)

    def reserve(self, tok: BaseToken) -> int:
        """Reserve of a token's pool, 0 if it has none."""
        pool = self._state.pool(tok)
        return pool.reserve if pool is not None else 0

    def supply(self, tok: Token) -> int:
        return engine.supply(self._state, tok)

    def exchange_rate(self, tok: Token) -> float:
        return engine.exchange_rate(self._state, tok)

    def price(self, tok: Token) -> float:
        return engine.price(self._config, tok)

    def value_free(self, address: Address) -> float:
        return engine.value_free(self._state, self._config, address)

    def value_collateralized(self, address: Address) -> float:
        return engine.value_collateralized(self._state, self._config, address)

    def value_debt(self, address: Address) -> float:
        return engine.value_debt(self._state, self._config, address)

    def collateralization(self, address: Address) -> float:
        return engine.collateralization(self._state, self._config, address)

    def verify_invariants(self) -> Dict[str, Any]:
        """
        Check the current state's structural invariants.

        Returns:
            Dict with keys:
            - 'valid': bool - True if no invariant is violated
            - 'supplies': Dict[str, int] - Supply of every token held or pooled
            - 'violations': List[str] - Description of each violation
        """
        tokens = set(self._state.pools)
        for wallet in self._state.wallets.values():
            tokens.update(wallet.balances)
        supplies = {
            str(tok): engine.supply(self._state, tok)
            for tok in sorted(tokens, key=token_sort_key)
        }
        violations = check_invariants(self._state)
        return {
            'valid': len(violations) == 0,
            'supplies': supplies,
            'violations': violations,
        }

    def __str__(self) -> str:
        return render_state(self._state)

    def info(self) -> str:
        """Per-address valuation report for the current state."""
        return render_info(self._state, self._config)

    # ========================================================================
    # EXECUTION (Mutating)
    # ========================================================================

    def _generate_exec_id(self, sequence: int) -> str:
        """Format: exec:{ledger_name}:{sequence:012d}"""
        return f"exec:{self.name}:{sequence:012d}"

    def execute(self, operation: Operation) -> ExecuteResult:
        """
        Apply one operation to the current state.

        Args:
            operation: Any operation record (see operations.py)

        Returns:
            ExecuteResult.APPLIED if the state (or config) was replaced
            ExecuteResult.REJECTED if the engine refused the operation
        """
        if isinstance(operation, PriceUpdate):
            new_config = operation.update_config(self._config)
            new_state = self._state
        else:
            new_config = self._config
            result = operation.apply(self._state, self._config)
            if isinstance(result, Rejection):
                self.rejections += 1
                self.last_rejection = result
                if self.verbose:
                    print(f"✗ REJECTED: {operation.describe()} -> {result}")
                return ExecuteResult.REJECTED
            new_state = result

        sequence = len(self.transaction_log)
        tx = Transaction(
            operation=operation,
            sequence_number=sequence,
            ledger_name=self.name,
            exec_id=self._generate_exec_id(sequence),
        )
        self._state = new_state
        self._config = new_config
        self.transaction_log.append(tx)
        self.last_rejection = None

        if self.verbose:
            self._print_tx_result(tx)
        return ExecuteResult.APPLIED

    def execute_or_raise(self, operation: Operation) -> State:
        """
        Apply one operation, raising on rejection.

        Returns:
            The new current state

        Raises:
            LendingError: The subclass matching the rejection kind
        """
        if self.execute(operation) == ExecuteResult.REJECTED:
            raise self.last_rejection.to_exception()
        return self._state

    def execute_all(self, operations: Iterable[Operation]) -> List[ExecuteResult]:
        """Apply operations in order, continuing past rejections."""
        return [self.execute(op) for op in operations]

    def register_wallet(self, address: Address, balances: Iterable[Tuple[Token, int]] = ()) -> None:
        """Register a wallet through the log (shorthand for AddWallet)."""
        self.execute(AddWallet(address, tuple(balances)))

    def _print_tx_result(self, tx: Transaction) -> None:
        """Print the boxed transaction followed by the resulting state."""
        tx_repr = repr(tx)
        lines = tx_repr.split('\n')
        w = 100
        bar = "─" * w

        def pad(text: str) -> str:
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines[-1] = f"├{bar}┤"
        lines.append(f"│{pad(' ✓ APPLIED')}│")
        lines.append(f"│{pad(' ' + render_state(self._state))}│")
        lines.append(f"└{bar}┘")
        print("\n".join(lines))

    # ========================================================================
    # HISTORY
    # ========================================================================

    def clone(self) -> LendingLedger:
        """
        Create an independent copy of this ledger.

        States and configs are immutable, so they are shared; the log list is
        copied.
        """
        cloned = LendingLedger.__new__(LendingLedger)
        cloned.name = self.name
        cloned.verbose = self.verbose
        cloned._initial_state = self._initial_state
        cloned._initial_config = self._initial_config
        cloned._state = self._state
        cloned._config = self._config
        cloned.transaction_log = list(self.transaction_log)
        cloned.rejections = self.rejections
        cloned.last_rejection = self.last_rejection
        return cloned

    def replay(self, from_tx: int = 0) -> LendingLedger:
        """
        Create a new ledger by re-applying the transaction log.

        Starting from the initial state and config, the operations
        transaction_log[from_tx:] are executed in order. Replaying the full log
        rebuilds the current state exactly, since every operation is a pure
        function of (state, config).

        Note: with from_tx > 0 the skipped operations are NOT applied, so later
        operations may be rejected against the different starting state.

        Raises:
            LendingError: If a logged operation is rejected during replay
        """
        new_ledger = LendingLedger(
            name=f"{self.name}_replayed",
            config=self._initial_config,
            initial_state=self._initial_state,
            verbose=self.verbose,
        )
        for tx in self.transaction_log[from_tx:]:
            if new_ledger.execute(tx.operation) == ExecuteResult.REJECTED:
                raise new_ledger.last_rejection.to_exception()
        return new_ledger

    def clone_at(self, sequence_number: int) -> LendingLedger:
        """
        Create a ledger as it was right after the given log entry.

        clone_at(-1) returns the initial state; clone_at(n) reflects the first
        n + 1 applied operations.

        Raises:
            ValueError: If sequence_number is outside [-1, len(log))
        """
        if sequence_number < -1 or sequence_number >= len(self.transaction_log):
            raise ValueError(
                f"Sequence {sequence_number} is outside the log ({len(self.transaction_log)} entries)"
            )
        cloned = LendingLedger(
            name=self.name,
            config=self._initial_config,
            initial_state=self._initial_state,
            verbose=False,
        )
        for tx in self.transaction_log[:sequence_number + 1]:
            if cloned.execute(tx.operation) == ExecuteResult.REJECTED:
                raise cloned.last_rejection.to_exception()
        cloned.verbose = self.verbose
        return cloned

    def state_at(self, sequence_number: int) -> State:
        """State right after the given log entry (see clone_at)."""
        return self.clone_at(sequence_number).state
