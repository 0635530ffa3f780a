"""
test_ledger.py - Unit tests for the LendingLedger driver

Tests:
- execute() applies or rejects, with the audit log and counters
- execute_or_raise() exception mapping
- PriceUpdate handling in the driver config
- clone / replay / clone_at / state_at
- verify_invariants and verbose output
"""

import pytest

from lendledger import (
    LendingLedger, ExecuteResult, Transaction, State, RejectionKind,
    AddWallet, Transfer, Deposit, Borrow, Repay, AccrueInterest, Liquidate, PriceUpdate,
    LendingError, UnderCollateralization, SameAddress,
    mint_claim, render_state, render_info,
)


def run_setup(ledger, a, b, t0, t1):
    """Wallets, deposits and one borrow: five logged operations."""
    ledger.register_wallet(a, [(t0, 100)])
    ledger.register_wallet(b, [(t1, 50)])
    ledger.execute(Deposit(a, 50, t0))
    ledger.execute(Deposit(b, 50, t1))
    ledger.execute(Borrow(b, 30, t0))
    return ledger


# ============================================================================
# EXECUTE
# ============================================================================

class TestExecute:

    def test_applied(self, quiet_ledger, a, t0):
        result = quiet_ledger.execute(AddWallet(a, ((t0, 100),)))
        assert result == ExecuteResult.APPLIED
        assert quiet_ledger.balance(a, t0) == 100
        assert len(quiet_ledger.transaction_log) == 1

    def test_transaction_record(self, quiet_ledger, a, t0):
        op = AddWallet(a, ((t0, 100),))
        quiet_ledger.execute(op)
        tx = quiet_ledger.transaction_log[0]
        assert isinstance(tx, Transaction)
        assert tx.operation is op
        assert tx.sequence_number == 0
        assert tx.ledger_name == "test"
        assert tx.exec_id == "exec:test:000000000000"
        assert tx.exec_id in repr(tx)

    def test_rejected(self, quiet_ledger, a, b, t0, t1):
        run_setup(quiet_ledger, a, b, t0, t1)
        before = quiet_ledger.state
        result = quiet_ledger.execute(Borrow(b, 10, t0))
        assert result == ExecuteResult.REJECTED
        assert quiet_ledger.state is before
        assert quiet_ledger.rejections == 1
        assert quiet_ledger.last_rejection.kind == RejectionKind.UNDER_COLLATERALIZATION
        assert len(quiet_ledger.transaction_log) == 5

    def test_success_clears_last_rejection(self, quiet_ledger, a, b, t0):
        quiet_ledger.register_wallet(a, [(t0, 10)])
        quiet_ledger.execute(Transfer(a, a, 1, t0))
        assert quiet_ledger.last_rejection is not None
        quiet_ledger.execute(Transfer(a, b, 1, t0))
        assert quiet_ledger.last_rejection is None
        assert quiet_ledger.rejections == 1

    def test_execute_all(self, quiet_ledger, a, b, t0):
        results = quiet_ledger.execute_all([
            AddWallet(a, ((t0, 10),)),
            Transfer(a, b, 20, t0),
            Transfer(a, b, 5, t0),
        ])
        assert results == [ExecuteResult.APPLIED, ExecuteResult.REJECTED, ExecuteResult.APPLIED]
        assert quiet_ledger.balance(b, t0) == 5

    def test_accrue_interest_uses_ledger_config(self, interest_config, a, b, t0, t1):
        ledger = run_setup(LendingLedger("i", config=interest_config, verbose=False), a, b, t0, t1)
        ledger.execute(AccrueInterest())
        assert ledger.debt_of(b, t0) == 34
        assert ledger.exchange_rate(t0) == pytest.approx(1.08)


class TestExecuteOrRaise:

    def test_returns_state(self, quiet_ledger, a, t0):
        s = quiet_ledger.execute_or_raise(AddWallet(a, ((t0, 1),)))
        assert isinstance(s, State)
        assert s is quiet_ledger.state

    def test_raises_matching_exception(self, quiet_ledger, a, b, t0, t1):
        run_setup(quiet_ledger, a, b, t0, t1)
        with pytest.raises(UnderCollateralization) as exc_info:
            quiet_ledger.execute_or_raise(Borrow(b, 10, t0))
        assert exc_info.value.rejection.party == "B"

    def test_exceptions_share_a_base(self, quiet_ledger, a, t0):
        with pytest.raises(LendingError):
            quiet_ledger.execute_or_raise(Transfer(a, a, 0, t0))
        with pytest.raises(SameAddress):
            quiet_ledger.execute_or_raise(Transfer(a, a, 0, t0))


class TestPriceUpdates:

    def test_updates_config_not_state(self, quiet_ledger, a, b, t0, t1):
        run_setup(quiet_ledger, a, b, t0, t1)
        before = quiet_ledger.state
        assert quiet_ledger.execute(PriceUpdate({t0: 1.3})) == ExecuteResult.APPLIED
        assert quiet_ledger.state is before
        assert quiet_ledger.price(t0) == 1.3
        assert quiet_ledger.value_debt(b) == pytest.approx(39.0)
        assert len(quiet_ledger.transaction_log) == 6

    def test_enables_liquidation(self, interest_config, a, b, t0, t1):
        ledger = run_setup(LendingLedger("liq", config=interest_config, verbose=False), a, b, t0, t1)
        ledger.execute(AccrueInterest())
        ledger.execute(Repay(b, 5, t0))
        assert ledger.execute(Liquidate(a, b, 12, t0, t1)) == ExecuteResult.REJECTED
        ledger.execute(PriceUpdate({t0: 1.3}))
        assert ledger.execute(Liquidate(a, b, 12, t0, t1)) == ExecuteResult.APPLIED
        assert ledger.balance(a, mint_claim(t1)) == 17


# ============================================================================
# HISTORY
# ============================================================================

class TestHistory:

    def test_replay_rebuilds_state(self, quiet_ledger, a, b, t0, t1):
        run_setup(quiet_ledger, a, b, t0, t1)
        quiet_ledger.execute(PriceUpdate({t0: 1.2}))
        replayed = quiet_ledger.replay()
        assert replayed.state == quiet_ledger.state
        assert replayed.price(t0) == 1.2
        assert replayed.name == "test_replayed"
        assert len(replayed.transaction_log) == len(quiet_ledger.transaction_log)

    def test_replay_partial_log_can_reject(self, quiet_ledger, a, b, t0, t1):
        run_setup(quiet_ledger, a, b, t0, t1)
        with pytest.raises(LendingError):
            quiet_ledger.replay(from_tx=1)

    def test_clone_is_independent(self, quiet_ledger, a, b, t0, t1):
        run_setup(quiet_ledger, a, b, t0, t1)
        cloned = quiet_ledger.clone()
        cloned.execute(Repay(b, 10, t0))
        assert cloned.debt_of(b, t0) == 20
        assert quiet_ledger.debt_of(b, t0) == 30
        assert len(quiet_ledger.transaction_log) == 5
        assert len(cloned.transaction_log) == 6

    def test_clone_at(self, quiet_ledger, a, b, t0, t1):
        run_setup(quiet_ledger, a, b, t0, t1)
        assert quiet_ledger.clone_at(-1).state == State.empty()
        after_deposits = quiet_ledger.clone_at(3)
        assert after_deposits.debt_of(b, t0) == 0
        assert after_deposits.reserve(t0) == 50
        assert quiet_ledger.clone_at(4).state == quiet_ledger.state

    def test_state_at(self, quiet_ledger, a, b, t0, t1):
        run_setup(quiet_ledger, a, b, t0, t1)
        assert quiet_ledger.state_at(0).balance(a, t0) == 100
        assert quiet_ledger.state_at(2).balance(a, t0) == 50

    @pytest.mark.parametrize("seq", [-2, 5, 100])
    def test_clone_at_out_of_range(self, quiet_ledger, a, b, t0, t1, seq):
        run_setup(quiet_ledger, a, b, t0, t1)
        with pytest.raises(ValueError):
            quiet_ledger.clone_at(seq)

    def test_initial_state_is_kept(self, config, funded_state, a, b, t0):
        ledger = LendingLedger("seeded", config=config, initial_state=funded_state, verbose=False)
        ledger.execute(Transfer(a, b, 10, t0))
        assert ledger.state_at(-1) is funded_state
        assert ledger.replay().state == ledger.state


# ============================================================================
# INSPECTION
# ============================================================================

class TestInspection:

    def test_queries(self, quiet_ledger, a, b, t0, t1):
        run_setup(quiet_ledger, a, b, t0, t1)
        assert quiet_ledger.reserve(t0) == 20
        assert quiet_ledger.reserve(mint_claim(t0)) == 0
        assert quiet_ledger.supply(t0) == 100
        assert quiet_ledger.value_free(b) == 30.0
        assert quiet_ledger.value_collateralized(b) == 50.0
        assert quiet_ledger.collateralization(b) == pytest.approx(50 / 30)

    def test_verify_invariants(self, quiet_ledger, a, b, t0, t1):
        run_setup(quiet_ledger, a, b, t0, t1)
        report = quiet_ledger.verify_invariants()
        assert report['valid'] is True
        assert report['violations'] == []
        assert report['supplies'] == {"t0": 100, "t1": 50, "LP(t0)": 50, "LP(t1)": 50}

    def test_str_and_info(self, quiet_ledger, a, b, t0, t1):
        run_setup(quiet_ledger, a, b, t0, t1)
        assert str(quiet_ledger) == render_state(quiet_ledger.state)
        assert quiet_ledger.info() == render_info(quiet_ledger.state, quiet_ledger.config)

    def test_verbose_output(self, config, a, b, t0, capsys):
        ledger = LendingLedger("loud", config=config)
        ledger.register_wallet(a, [(t0, 10)])
        ledger.execute(Transfer(a, a, 1, t0))
        out = capsys.readouterr().out
        assert "✓ APPLIED" in out
        assert "exec:loud:000000000000" in out
        assert "A[t0:10]" in out
        assert "✗ REJECTED" in out
        assert "SameAddress(A)" in out

    def test_quiet_ledger_prints_nothing(self, quiet_ledger, a, t0, capsys):
        quiet_ledger.register_wallet(a, [(t0, 10)])
        quiet_ledger.execute(Transfer(a, a, 1, t0))
        assert capsys.readouterr().out == ""
