"""Transfer transaction construction for native SOL and SPL tokens."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Protocol

from solders.instruction import Instruction
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    create_associated_token_account,
    get_associated_token_address,
    transfer_checked,
)
from spl.token.models import TransferCheckedParams

from solwallet.features.fees.service import FeeEstimator
from solwallet.features.tokens.service import TokenResolver
from solwallet.models import Asset, ExpiryReference, PendingTransaction
from solwallet.shared.errors import ValidationError
from solwallet.shared.validation import AddressValidator, AmountValidator, format_display

logger = logging.getLogger(__name__)

# Size in bytes of an SPL token account, used for its rent-exempt minimum.
TOKEN_ACCOUNT_SIZE = 165


class TransferLedgerProtocol(Protocol):
    def get_latest_blockhash(self) -> ExpiryReference: ...
    def get_account_info(self, address: str) -> dict[str, Any] | None: ...
    def get_minimum_balance_for_rent_exemption(self, size: int) -> int: ...


class TransferBuilder:
    def __init__(
        self,
        ledger: TransferLedgerProtocol,
        fee_estimator: FeeEstimator,
        resolver: TokenResolver | None = None,
    ):
        self.ledger = ledger
        self.fee_estimator = fee_estimator
        self.resolver = resolver

    def build(
        self,
        sender: str,
        recipient: str,
        asset: Asset | None,
        amount: str | Decimal,
    ) -> PendingTransaction:
        address_result = AddressValidator.validate(recipient)
        if not address_result.is_valid:
            raise ValidationError(address_result.error_message or "Invalid address")
        recipient_key = Pubkey.from_string(address_result.normalized_value)
        sender_key = Pubkey.from_string(sender)

        if asset is None:
            raise ValidationError("No asset selected")

        decimals = self._decimals_for(asset)
        amount_result = AmountValidator.to_raw_units(str(amount), decimals)
        if not amount_result.is_valid:
            raise ValidationError(amount_result.error_message or "Invalid amount")
        raw_amount: int = amount_result.normalized_value

        extra_native_cost = 0
        if asset.is_native:
            instructions = [
                transfer(
                    TransferParams(
                        from_pubkey=sender_key,
                        to_pubkey=recipient_key,
                        lamports=raw_amount,
                    )
                )
            ]
        else:
            instructions, extra_native_cost = self._token_instructions(
                sender_key, recipient_key, asset, raw_amount, decimals
            )

        pending = PendingTransaction(
            kind="transfer",
            fee_payer=str(sender_key),
            expiry=self.ledger.get_latest_blockhash(),
            instructions=instructions,
            signers=[str(sender_key)],
            extra_native_cost=extra_native_cost,
            description=(
                f"Send {format_display(raw_amount, decimals)} {asset.symbol} "
                f"to {recipient_key}"
            ),
        )
        pending.estimated_fee = self.fee_estimator.estimate_for(pending)
        logger.info(
            "Built %s transfer: %d instruction(s), fee=%s",
            asset.symbol,
            len(instructions),
            pending.estimated_fee,
        )
        return pending

    def _decimals_for(self, asset: Asset) -> int:
        if asset.is_native:
            return asset.decimals

        if not AddressValidator.validate(asset.mint or "").is_valid:
            raise ValidationError(f"Invalid token mint: {asset.mint}")

        if asset.decimals is not None:
            return asset.decimals
        if self.resolver is not None:
            metadata = self.resolver.resolve(asset.mint)
            if metadata.decimals is not None:
                return metadata.decimals
        raise ValidationError(f"Token decimals unknown for {asset.mint}")

    def _token_instructions(
        self,
        sender: Pubkey,
        recipient: Pubkey,
        asset: Asset,
        raw_amount: int,
        decimals: int,
    ) -> tuple[list[Instruction], int]:
        mint = Pubkey.from_string(asset.mint)
        source = get_associated_token_address(sender, mint)
        destination = get_associated_token_address(recipient, mint)

        instructions: list[Instruction] = []
        extra_native_cost = 0
        if self.ledger.get_account_info(str(destination)) is None:
            logger.info("Recipient token account %s will be created", destination)
            instructions.append(create_associated_token_account(sender, recipient, mint))
            extra_native_cost = self.ledger.get_minimum_balance_for_rent_exemption(
                TOKEN_ACCOUNT_SIZE
            )

        instructions.append(
            transfer_checked(
                TransferCheckedParams(
                    program_id=TOKEN_PROGRAM_ID,
                    source=source,
                    mint=mint,
                    dest=destination,
                    owner=sender,
                    amount=raw_amount,
                    decimals=decimals,
                    signers=[],
                )
            )
        )
        return instructions, extra_native_cost
