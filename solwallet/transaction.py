"""Signing, simulation, submission and confirmation of pending transactions."""

from __future__ import annotations

import base64
import logging
import time
from enum import Enum
from typing import Any, Callable, Iterable, Protocol

from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from solwallet.ledger import is_transient_ledger_error
from solwallet.models import (
    ConfirmationResult,
    ExpiryReference,
    PendingTransaction,
    TransactionOutcome,
)
from solwallet.shared.errors import (
    ConfirmationTimeoutError,
    LedgerError,
    OnChainRejectionError,
    SignatureNotAppliedError,
    SimulationError,
    TransientNetworkError,
)
from solwallet.shared.network import NetworkError, RetryConfig

logger = logging.getLogger(__name__)

LANDED_COMMITMENTS = frozenset({"confirmed", "finalized"})


class SubmitterState(Enum):
    IDLE = "idle"
    SIMULATING = "simulating"
    SUBMITTING = "submitting"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class SubmitterLedgerProtocol(Protocol):
    def get_latest_blockhash(self) -> ExpiryReference: ...
    def simulate_transaction(self, transaction_b64: str) -> dict[str, Any]: ...
    def send_transaction(self, transaction_b64: str) -> str: ...
    def get_signature_status(self, signature: str) -> dict[str, Any] | None: ...
    def get_block_height(self) -> int: ...


def compile_message(pending: PendingTransaction, blockhash: str) -> MessageV0:
    """Message for ``pending`` bound to ``blockhash``.

    Aggregator-built messages are opaque: only the blockhash is replaced.
    """
    recent = Hash.from_string(blockhash)
    message = pending.compiled_message
    if message is not None:
        return MessageV0(
            message.header,
            message.account_keys,
            recent,
            message.instructions,
            message.address_table_lookups,
        )
    return MessageV0.try_compile(
        Pubkey.from_string(pending.fee_payer), pending.instructions, [], recent
    )


def required_signers(message: MessageV0) -> list[Pubkey]:
    return list(message.account_keys[: message.header.num_required_signatures])


def unsigned_transaction(message: MessageV0) -> VersionedTransaction:
    placeholders = [Signature.default()] * message.header.num_required_signatures
    return VersionedTransaction.populate(message, placeholders)


def sign_message(message: MessageV0, keypairs: Iterable[Keypair]) -> VersionedTransaction:
    by_pubkey = {kp.pubkey(): kp for kp in keypairs}
    payload = to_bytes_versioned(message)
    signatures: list[Signature] = []
    missing: list[str] = []
    for signer in required_signers(message):
        keypair = by_pubkey.get(signer)
        signature = keypair.sign_message(payload) if keypair else Signature.default()
        if signature == Signature.default():
            missing.append(str(signer))
        signatures.append(signature)
    if missing:
        raise SignatureNotAppliedError(missing)
    return VersionedTransaction.populate(message, signatures)


def encode_transaction(transaction: VersionedTransaction) -> str:
    return base64.b64encode(bytes(transaction)).decode("ascii")


def encode_message(message: MessageV0) -> str:
    return base64.b64encode(to_bytes_versioned(message)).decode("ascii")


class TransactionSubmitter:
    def __init__(
        self,
        ledger: SubmitterLedgerProtocol,
        max_submit_attempts: int = 3,
        retry_config: RetryConfig | None = None,
        confirm_poll_interval: float = 2.0,
        confirm_timeout_seconds: float = 90.0,
        on_state_change: Callable[[SubmitterState, str], None] | None = None,
    ):
        if max_submit_attempts < 1:
            raise ValueError("max_submit_attempts must be at least 1")
        self.ledger = ledger
        self.max_submit_attempts = max_submit_attempts
        self.retry_config = retry_config or RetryConfig()
        self.confirm_poll_interval = confirm_poll_interval
        self.confirm_timeout_seconds = confirm_timeout_seconds
        self.on_state_change = on_state_change
        self.state = SubmitterState.IDLE

    def _transition(self, state: SubmitterState, detail: str = "") -> None:
        self.state = state
        logger.debug("Submitter state -> %s %s", state.value, detail)
        if self.on_state_change:
            try:
                self.on_state_change(state, detail)
            except Exception as e:
                logger.error("Error in submitter state callback: %s", e)

    def execute(
        self, pending: PendingTransaction, keypairs: Iterable[Keypair]
    ) -> ConfirmationResult:
        self._transition(SubmitterState.IDLE, pending.description)
        logs: tuple[str, ...] = ()
        try:
            expiry = self._fresh_expiry()
            transaction = sign_message(compile_message(pending, expiry.blockhash), keypairs)
            payload = encode_transaction(transaction)
            logs = self._simulate(payload)
            signature = self._submit(payload, str(transaction.signatures[0]))
        except (SignatureNotAppliedError, SimulationError, TransientNetworkError) as e:
            logger.warning("Transaction aborted before landing: %s", e)
            self._transition(SubmitterState.FAILED, str(e))
            return ConfirmationResult(
                signature=None,
                success=False,
                outcome=TransactionOutcome.FAILED,
                error=e,
                logs=tuple(getattr(e, "logs", ())),
            )
        except OnChainRejectionError as e:
            logger.warning("Transaction rejected on submission: %s", e)
            self._transition(SubmitterState.REJECTED, str(e))
            return ConfirmationResult(
                signature=e.signature,
                success=False,
                outcome=TransactionOutcome.REJECTED,
                error=e,
            )

        return self._confirm(signature, expiry, logs)

    def _fresh_expiry(self) -> ExpiryReference:
        # The build-time blockhash is only used for fee estimation.
        try:
            return self.ledger.get_latest_blockhash()
        except (NetworkError, LedgerError) as e:
            raise TransientNetworkError(
                "Could not fetch a recent blockhash", attempts=0, last_error=e
            ) from e

    def _simulate(self, payload: str) -> tuple[str, ...]:
        self._transition(SubmitterState.SIMULATING)
        try:
            result = self.ledger.simulate_transaction(payload)
        except NetworkError as e:
            raise TransientNetworkError(
                "Could not simulate the transaction", attempts=0, last_error=e
            ) from e
        except LedgerError as e:
            if is_transient_ledger_error(e):
                raise TransientNetworkError(
                    "Could not simulate the transaction", attempts=0, last_error=e
                ) from e
            raise SimulationError({"code": e.code, "message": e.rpc_message}) from e
        logs = tuple(result.get("logs") or ())
        if result.get("err") is not None:
            raise SimulationError(result["err"], list(logs))
        return logs

    def _submit(self, payload: str, signature: str) -> str:
        last_error: Exception | None = None
        for attempt in range(1, self.max_submit_attempts + 1):
            self._transition(
                SubmitterState.SUBMITTING,
                f"attempt {attempt}/{self.max_submit_attempts}",
            )
            try:
                returned = self.ledger.send_transaction(payload)
                logger.info("Transaction submitted: %s", returned or signature)
                return returned or signature
            except LedgerError as e:
                if not is_transient_ledger_error(e):
                    raise OnChainRejectionError(
                        signature,
                        {"code": e.code, "message": e.rpc_message, "data": e.data},
                    ) from e
                last_error = e
            except NetworkError as e:
                last_error = e

            logger.warning(
                "Submission attempt %d/%d failed: %s",
                attempt,
                self.max_submit_attempts,
                last_error,
            )
            if attempt < self.max_submit_attempts:
                time.sleep(self.retry_config.calculate_delay(attempt - 1))

        raise TransientNetworkError(
            f"Transaction could not be submitted after {self.max_submit_attempts} attempts",
            attempts=self.max_submit_attempts,
            last_error=last_error,
        )

    def _landed(
        self, signature: str, status: dict[str, Any] | None, logs: tuple[str, ...]
    ) -> ConfirmationResult | None:
        if not status:
            return None
        slot = status.get("slot")
        if status.get("err") is not None:
            error = OnChainRejectionError(signature, status["err"])
            logger.warning("Transaction %s failed on-chain: %s", signature, status["err"])
            self._transition(SubmitterState.REJECTED, str(status["err"]))
            return ConfirmationResult(
                signature=signature,
                success=False,
                outcome=TransactionOutcome.REJECTED,
                error=error,
                logs=logs,
                slot=slot,
            )
        if status.get("confirmationStatus") in LANDED_COMMITMENTS:
            logger.info("Transaction %s confirmed in slot %s", signature, slot)
            self._transition(SubmitterState.CONFIRMED, signature)
            return ConfirmationResult(
                signature=signature,
                success=True,
                outcome=TransactionOutcome.CONFIRMED,
                logs=logs,
                slot=slot,
            )
        return None

    def _timed_out(
        self, signature: str, expiry: ExpiryReference, logs: tuple[str, ...]
    ) -> ConfirmationResult:
        error = ConfirmationTimeoutError(signature, expiry.last_valid_block_height)
        logger.warning("Transaction %s not observed before expiry", signature)
        self._transition(SubmitterState.TIMED_OUT, signature)
        return ConfirmationResult(
            signature=signature,
            success=False,
            outcome=TransactionOutcome.TIMED_OUT,
            error=error,
            logs=logs,
        )

    def _confirm(
        self, signature: str, expiry: ExpiryReference, logs: tuple[str, ...]
    ) -> ConfirmationResult:
        self._transition(SubmitterState.CONFIRMING, signature)
        deadline = time.monotonic() + self.confirm_timeout_seconds

        while True:
            try:
                result = self._landed(
                    signature, self.ledger.get_signature_status(signature), logs
                )
                if result is not None:
                    return result
                if self.ledger.get_block_height() > expiry.last_valid_block_height:
                    # It may have landed between the two reads.
                    result = self._landed(
                        signature, self.ledger.get_signature_status(signature), logs
                    )
                    return result or self._timed_out(signature, expiry, logs)
            except (NetworkError, LedgerError) as e:
                logger.warning("Confirmation poll failed for %s: %s", signature, e)

            if time.monotonic() >= deadline:
                return self._timed_out(signature, expiry, logs)
            time.sleep(self.confirm_poll_interval)
