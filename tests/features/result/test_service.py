"""Tests for transaction outcome reporting."""

from unittest.mock import MagicMock

import pytest

from solwallet.features.result.service import AMBIGUOUS_MESSAGE, ResultReporter
from solwallet.models import ConfirmationResult, TransactionOutcome
from solwallet.shared.errors import (
    ConfirmationTimeoutError,
    OnChainRejectionError,
    SimulationError,
    TransientNetworkError,
)

SIGNATURE = "5" * 88


class TestResultReporter:
    def test_confirmed(self):
        refresh = MagicMock()
        reporter = ResultReporter("devnet", on_balances_changed=refresh)

        report = reporter.report(
            ConfirmationResult(SIGNATURE, True, TransactionOutcome.CONFIRMED, slot=5)
        )

        assert report.title == "Transaction confirmed"
        assert report.severity == "information"
        assert report.explorer_url == f"https://explorer.solana.com/tx/{SIGNATURE}?cluster=devnet"
        refresh.assert_called_once()

    def test_timed_out_is_ambiguous(self):
        result = ConfirmationResult(
            SIGNATURE,
            False,
            TransactionOutcome.TIMED_OUT,
            error=ConfirmationTimeoutError(SIGNATURE, 100),
        )

        report = ResultReporter("mainnet-beta").report(result)

        assert report.title == "Transaction status unknown"
        assert report.message == AMBIGUOUS_MESSAGE
        assert report.severity == "warning"
        assert not report.retry_safe
        assert report.explorer_url == f"https://explorer.solana.com/tx/{SIGNATURE}"

    def test_rejected_includes_program_error(self):
        err = {"InstructionError": [0, {"Custom": 1}]}
        result = ConfirmationResult(
            SIGNATURE,
            False,
            TransactionOutcome.REJECTED,
            error=OnChainRejectionError(SIGNATURE, err),
        )

        report = ResultReporter("devnet").report(result)

        assert report.title == "Transaction failed"
        assert report.severity == "error"
        assert report.detail == '{"InstructionError": [0, {"Custom": 1}]}'
        assert report.message.startswith("A program instruction in the transaction failed.")
        assert not report.retry_safe

    def test_simulation_failure_is_retry_safe_and_shows_logs(self):
        refresh = MagicMock()
        error = SimulationError("InsufficientFundsForRent", ["Program log: rent"])
        result = ConfirmationResult(None, False, TransactionOutcome.FAILED, error=error)

        report = ResultReporter("devnet", on_balances_changed=refresh).report(result)

        assert report.title == "Transaction not sent"
        assert report.retry_safe
        assert report.signature is None
        assert report.explorer_url is None
        assert report.detail == "InsufficientFundsForRent\nProgram log: rent"
        refresh.assert_not_called()

    def test_transient_failure(self):
        error = TransientNetworkError("Transaction could not be submitted after 3 attempts", attempts=3)
        result = ConfirmationResult(None, False, TransactionOutcome.FAILED, error=error)

        report = ResultReporter("devnet").report(result)

        assert report.retry_safe
        assert report.detail == "Transaction could not be submitted after 3 attempts"


@pytest.mark.unit
def test_balance_refresh_errors_do_not_break_reporting():
    reporter = ResultReporter("devnet", on_balances_changed=MagicMock(side_effect=RuntimeError("x")))
    report = reporter.report(ConfirmationResult(SIGNATURE, True, TransactionOutcome.CONFIRMED))
    assert report.title == "Transaction confirmed"
