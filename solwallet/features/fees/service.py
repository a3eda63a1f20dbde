"""Network fee and priority fee estimation."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Protocol

from solders.message import MessageV0
from solders.transaction import VersionedTransaction

from solwallet.models import PendingTransaction
from solwallet.shared.errors import LedgerError
from solwallet.shared.network import NetworkError
from solwallet.transaction import compile_message, encode_message, encode_transaction

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY_FEE = 10_000


class PriorityLevel(Enum):
    MIN = "Min"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    VERY_HIGH = "VeryHigh"
    UNSAFE_MAX = "UnsafeMax"


class FeeLedgerProtocol(Protocol):
    def get_fee_for_message(self, message_b64: str) -> int | None: ...
    def get_priority_fee_estimate(
        self, transaction_b64: str, priority_level: str
    ) -> dict[str, Any]: ...


class FeeEstimator:
    def __init__(
        self, ledger: FeeLedgerProtocol, default_priority_fee: int = DEFAULT_PRIORITY_FEE
    ):
        self.ledger = ledger
        self.default_priority_fee = default_priority_fee

    def estimate(self, message: MessageV0) -> int | None:
        """Fee in lamports for ``message``, or None when it cannot be determined."""
        try:
            fee = self.ledger.get_fee_for_message(encode_message(message))
        except (NetworkError, LedgerError) as e:
            logger.warning("Fee estimation failed: %s", e)
            return None
        if fee is None:
            logger.warning("Ledger returned no fee for message (blockhash expired?)")
        return fee

    def estimate_for(self, pending: PendingTransaction) -> int | None:
        return self.estimate(compile_message(pending, pending.expiry.blockhash))

    def estimate_priority_fee(
        self,
        transaction: VersionedTransaction,
        level: PriorityLevel = PriorityLevel.MEDIUM,
    ) -> int:
        """Suggested compute unit price in micro-lamports."""
        try:
            result = self.ledger.get_priority_fee_estimate(
                encode_transaction(transaction), level.value
            )
        except (NetworkError, LedgerError) as e:
            logger.warning("Priority fee estimate failed, using default: %s", e)
            return self.default_priority_fee

        estimate = result.get("priorityFeeEstimate") if isinstance(result, dict) else None
        if not estimate:
            logger.warning("Unexpected priority fee response: %s", result)
            return self.default_priority_fee
        return int(estimate)
