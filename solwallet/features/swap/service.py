"""Turn an accepted quote into a signable swap transaction."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from solders.message import MessageV0
from solders.transaction import VersionedTransaction

from solwallet.features.fees.service import FeeEstimator
from solwallet.models import ExpiryReference, PendingTransaction, Quote
from solwallet.shared.errors import BuildError, QuoteError

logger = logging.getLogger(__name__)


@dataclass
class SwapOptions:
    wrap_and_unwrap_sol: bool = True
    priority_fee_lamports: int | None = None
    dynamic_slippage_max_bps: int | None = None


class SwapBuildSource(Protocol):
    def build_swap(self, body: dict[str, Any]) -> dict[str, Any]: ...


class SwapLedgerProtocol(Protocol):
    def get_latest_blockhash(self) -> ExpiryReference: ...


class SwapBuilder:
    def __init__(
        self,
        aggregator: SwapBuildSource,
        ledger: SwapLedgerProtocol,
        fee_estimator: FeeEstimator,
    ):
        self.aggregator = aggregator
        self.ledger = ledger
        self.fee_estimator = fee_estimator

    @staticmethod
    def request_body(quote: Quote, signer: str, options: SwapOptions) -> dict[str, Any]:
        body: dict[str, Any] = {
            "quoteResponse": quote.raw,
            "userPublicKey": signer,
            "wrapAndUnwrapSol": options.wrap_and_unwrap_sol,
            "dynamicComputeUnitLimit": True,
        }
        if options.priority_fee_lamports is not None:
            body["prioritizationFeeLamports"] = int(options.priority_fee_lamports)
        if options.dynamic_slippage_max_bps is not None:
            body["dynamicSlippage"] = {"maxBps": int(options.dynamic_slippage_max_bps)}
        return body

    def build(
        self, quote: Quote, signer: str, options: SwapOptions | None = None
    ) -> PendingTransaction:
        if quote.is_stale():
            raise QuoteError("Quote is stale. Refresh before swapping.")

        response = self.aggregator.build_swap(
            self.request_body(quote, signer, options or SwapOptions())
        )
        encoded = response.get("swapTransaction")
        if not encoded:
            raise BuildError("Swap build response has no transaction", detail=response)

        try:
            transaction = VersionedTransaction.from_bytes(base64.b64decode(encoded))
        except (binascii.Error, ValueError) as e:
            raise BuildError(f"Could not decode swap transaction: {e}") from e

        message = transaction.message
        if not isinstance(message, MessageV0):
            raise BuildError("Swap transaction is not a versioned (v0) message")
        fee_payer = str(message.account_keys[0])
        if fee_payer != signer:
            raise BuildError(
                f"Swap transaction fee payer {fee_payer} does not match wallet {signer}"
            )

        pending = PendingTransaction(
            kind="swap",
            fee_payer=fee_payer,
            expiry=self.ledger.get_latest_blockhash(),
            compiled_message=message,
            signers=[
                str(key)
                for key in message.account_keys[: message.header.num_required_signatures]
            ],
            description=f"Swap {quote.input_mint} -> {quote.output_mint}",
        )
        pending.estimated_fee = self.fee_estimator.estimate_for(pending)
        logger.info(
            "Built swap transaction: in=%d out=%d fee=%s",
            quote.in_amount,
            quote.out_amount,
            pending.estimated_fee,
        )
        return pending
