"""User-facing summary of a transaction outcome."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable

from solwallet.explorer import explorer_url
from solwallet.models import ConfirmationResult, TransactionOutcome
from solwallet.shared.errors import OnChainRejectionError, SimulationError
from solwallet.shared.logging import format_error_for_user

logger = logging.getLogger(__name__)

AMBIGUOUS_MESSAGE = (
    "The transaction may or may not have succeeded. "
    "Check the explorer before retrying."
)


@dataclass(frozen=True)
class TransactionReport:
    title: str
    message: str
    severity: str
    outcome: TransactionOutcome
    signature: str | None = None
    explorer_url: str | None = None
    retry_safe: bool = False
    detail: str | None = None


def _format_detail(payload: Any) -> str | None:
    if payload is None:
        return None
    if isinstance(payload, str):
        return payload
    try:
        return json.dumps(payload, default=str)
    except (TypeError, ValueError):
        return str(payload)


class ResultReporter:
    def __init__(
        self,
        network: str,
        explorer_name: str | None = None,
        on_balances_changed: Callable[[], Any] | None = None,
    ):
        self.network = network
        self.explorer_name = explorer_name
        self.on_balances_changed = on_balances_changed

    def report(self, result: ConfirmationResult) -> TransactionReport:
        link = (
            explorer_url("tx", result.signature, self.network, self.explorer_name)
            if result.signature
            else None
        )

        if result.outcome == TransactionOutcome.CONFIRMED:
            report = TransactionReport(
                title="Transaction confirmed",
                message="Your transaction was confirmed.",
                severity="information",
                outcome=result.outcome,
                signature=result.signature,
                explorer_url=link,
            )
        elif result.outcome == TransactionOutcome.TIMED_OUT:
            report = TransactionReport(
                title="Transaction status unknown",
                message=AMBIGUOUS_MESSAGE,
                severity="warning",
                outcome=result.outcome,
                signature=result.signature,
                explorer_url=link,
            )
        elif result.outcome == TransactionOutcome.REJECTED:
            err = result.error.err if isinstance(result.error, OnChainRejectionError) else None
            report = TransactionReport(
                title="Transaction failed",
                message=format_error_for_user(_format_detail(err) or str(result.error)),
                severity="error",
                outcome=result.outcome,
                signature=result.signature,
                explorer_url=link,
                detail=_format_detail(err),
            )
        else:
            detail = None
            if isinstance(result.error, SimulationError):
                detail = "\n".join(
                    [_format_detail(result.error.err) or ""] + list(result.error.logs)
                )
            report = TransactionReport(
                title="Transaction not sent",
                message=format_error_for_user(result.error or "unknown error"),
                severity="error",
                outcome=result.outcome,
                signature=result.signature,
                explorer_url=link,
                retry_safe=True,
                detail=detail or (result.error.message if result.error else None),
            )

        logger.info("Transaction outcome: %s (%s)", result.outcome.value, result.signature)

        if result.signature and self.on_balances_changed is not None:
            try:
                self.on_balances_changed()
            except Exception as e:
                logger.error("Balance refresh after transaction failed: %s", e)

        return report
