"""JSON-RPC client for the Solana ledger.

Reads go through a retrying HTTP client. ``sendTransaction`` goes through a
client without HTTP retries so that the submitter decides how many times a
transaction is broadcast.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any

from solwallet.models import ExpiryReference
from solwallet.shared.errors import LedgerError
from solwallet.shared.network import (
    NO_RETRY_CONFIG,
    NetworkClient,
    RetryConfig,
    TimeoutConfig,
)

logger = logging.getLogger(__name__)

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

# Error codes that mean "try again", not "this transaction is invalid".
TRANSIENT_RPC_CODES = frozenset({-32005, -32603})


class LedgerClient:
    def __init__(
        self,
        rpc_url: str,
        timeout_config: TimeoutConfig | None = None,
        retry_config: RetryConfig | None = None,
        commitment: str = "confirmed",
    ):
        self.rpc_url = rpc_url
        self.commitment = commitment
        headers = {"Content-Type": "application/json"}
        self._client = NetworkClient(
            rpc_url,
            timeout_config=timeout_config,
            retry_config=retry_config,
            headers=headers,
        )
        self._send_client = NetworkClient(
            rpc_url,
            timeout_config=timeout_config,
            retry_config=NO_RETRY_CONFIG,
            headers=headers,
        )
        self._ids = itertools.count(1)

    def _call(
        self, method: str, params: list[Any], client: NetworkClient | None = None
    ) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        data = (client or self._client).post("", context=method, json=payload)
        if not isinstance(data, dict):
            raise LedgerError(None, f"Malformed response to {method}")
        error = data.get("error")
        if error:
            raise LedgerError(
                error.get("code"), error.get("message", str(error)), error.get("data")
            )
        return data.get("result")

    def get_balance(self, owner: str) -> int:
        result = self._call("getBalance", [owner, {"commitment": self.commitment}])
        return int(result["value"])

    def get_token_accounts_by_owner(
        self, owner: str, program_id: str = TOKEN_PROGRAM_ID
    ) -> list[dict[str, Any]]:
        result = self._call(
            "getTokenAccountsByOwner",
            [
                owner,
                {"programId": program_id},
                {"encoding": "jsonParsed", "commitment": self.commitment},
            ],
        )
        return list(result.get("value", []))

    def get_latest_blockhash(self) -> ExpiryReference:
        result = self._call("getLatestBlockhash", [{"commitment": self.commitment}])
        value = result["value"]
        return ExpiryReference(
            blockhash=value["blockhash"],
            last_valid_block_height=int(value["lastValidBlockHeight"]),
        )

    def get_fee_for_message(self, message_b64: str) -> int | None:
        result = self._call(
            "getFeeForMessage", [message_b64, {"commitment": self.commitment}]
        )
        value = result.get("value") if isinstance(result, dict) else None
        return int(value) if value is not None else None

    def simulate_transaction(self, transaction_b64: str) -> dict[str, Any]:
        result = self._call(
            "simulateTransaction",
            [
                transaction_b64,
                {
                    "encoding": "base64",
                    "commitment": self.commitment,
                    "sigVerify": True,
                },
            ],
        )
        return result.get("value", {})

    def send_transaction(self, transaction_b64: str) -> str:
        return self._call(
            "sendTransaction",
            [
                transaction_b64,
                {
                    "encoding": "base64",
                    "skipPreflight": True,
                    "preflightCommitment": self.commitment,
                    "maxRetries": 0,
                },
            ],
            client=self._send_client,
        )

    def get_signature_status(self, signature: str) -> dict[str, Any] | None:
        result = self._call(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": False}],
        )
        statuses = result.get("value") or [None]
        return statuses[0]

    def get_block_height(self) -> int:
        return int(self._call("getBlockHeight", [{"commitment": self.commitment}]))

    def get_account_info(self, address: str) -> dict[str, Any] | None:
        result = self._call(
            "getAccountInfo",
            [address, {"encoding": "base64", "commitment": self.commitment}],
        )
        return result.get("value")

    def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        return int(self._call("getMinimumBalanceForRentExemption", [size]))

    def get_signatures_for_address(
        self, address: str, limit: int = 10, before: str | None = None
    ) -> list[dict[str, Any]]:
        options: dict[str, Any] = {"limit": limit, "commitment": self.commitment}
        if before:
            options["before"] = before
        return self._call("getSignaturesForAddress", [address, options]) or []

    def get_transaction(self, signature: str) -> dict[str, Any] | None:
        return self._call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "commitment": self.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )

    def get_priority_fee_estimate(
        self, transaction_b64: str, priority_level: str
    ) -> dict[str, Any]:
        return self._call(
            "getPriorityFeeEstimate",
            [
                {
                    "transaction": transaction_b64,
                    "options": {
                        "priorityLevel": priority_level,
                        "transactionEncoding": "Base64",
                    },
                }
            ],
        )


def is_transient_ledger_error(error: LedgerError) -> bool:
    return error.code in TRANSIENT_RPC_CODES
