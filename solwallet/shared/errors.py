"""Error taxonomy for the send/swap pipeline.

Validation and sufficiency problems are resolved locally before any network
call. Everything from simulation onward is surfaced to the user with enough
detail to decide whether a retry is safe.
"""

from __future__ import annotations

from typing import Any


class WalletError(Exception):
    """Base class for every error raised by the transaction pipeline."""

    retry_safe = False

    def __init__(self, message: str, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __str__(self) -> str:
        return self.message


class ValidationError(WalletError):
    """Bad address, non-positive or non-numeric amount, no asset selected."""

    retry_safe = True


class InsufficientFundsError(WalletError):
    """Reported when the sufficiency check fails; never raised mid-pipeline."""


class MetadataUnavailable(WalletError):
    """A metadata provider could not answer. Never escapes the resolver."""


class QuoteError(WalletError):
    """The aggregator returned no usable quote, or the quote is stale."""

    retry_safe = True


class BuildError(WalletError):
    """The aggregator build endpoint did not return an executable transaction."""

    retry_safe = True


class LedgerError(WalletError):
    """JSON-RPC error object returned by the ledger node."""

    def __init__(self, code: int | None, message: str, data: Any = None):
        super().__init__(f"RPC error {code}: {message}", detail=data)
        self.code = code
        self.rpc_message = message
        self.data = data


class SignatureNotAppliedError(WalletError):
    """A required signature slot was still empty after signing."""

    def __init__(self, missing: list[str]):
        super().__init__(
            "Transaction signature was not applied for: " + ", ".join(missing),
            detail={"missing_signers": missing},
        )
        self.missing = missing


class SimulationError(WalletError):
    """The transaction would fail on-chain. Never retried automatically."""

    retry_safe = True

    def __init__(self, err: Any, logs: list[str] | None = None):
        super().__init__(f"Transaction simulation failed: {err}", detail=err)
        self.err = err
        self.logs = list(logs or [])


class TransientNetworkError(WalletError):
    """Submission kept failing with transient network errors."""

    retry_safe = True

    def __init__(self, message: str, attempts: int, last_error: Exception | None = None):
        super().__init__(message, detail=str(last_error) if last_error else None)
        self.attempts = attempts
        self.last_error = last_error


class OnChainRejectionError(WalletError):
    """The ledger reported the transaction as failed. Never auto-retried."""

    def __init__(self, signature: str | None, err: Any):
        super().__init__(f"Transaction rejected: {err}", detail=err)
        self.signature = signature
        self.err = err


class ConfirmationTimeoutError(WalletError):
    """The expiry window elapsed without an observed outcome."""

    def __init__(self, signature: str, last_valid_block_height: int | None = None):
        super().__init__(
            "Transaction may or may not have succeeded. "
            "Check the explorer before retrying.",
            detail={
                "signature": signature,
                "last_valid_block_height": last_valid_block_height,
            },
        )
        self.signature = signature
        self.last_valid_block_height = last_valid_block_height


class KeyringError(WalletError):
    """A stored secret could not be saved, found or decrypted."""


__all__ = [
    "WalletError",
    "ValidationError",
    "InsufficientFundsError",
    "MetadataUnavailable",
    "QuoteError",
    "BuildError",
    "LedgerError",
    "SignatureNotAppliedError",
    "SimulationError",
    "TransientNetworkError",
    "OnChainRejectionError",
    "ConfirmationTimeoutError",
    "KeyringError",
]
