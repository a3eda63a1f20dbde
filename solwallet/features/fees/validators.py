"""Pre-submission balance sufficiency check.

Only gates the submit control. A token transfer still has to leave enough
native SOL for the network fee and any rent the transaction pays.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from solwallet.models import Asset
from solwallet.shared.validation import AmountValidator


@dataclass(frozen=True)
class SufficiencyCheck:
    approved: bool
    reason: str | None = None
    raw_amount: int | None = None
    native_after: int | None = None


def check_sufficiency(
    asset: Asset | None,
    amount: str | Decimal,
    native_balance: int | None,
    estimated_fee: int | None,
    reserved_native: int = 0,
) -> SufficiencyCheck:
    if asset is None:
        return SufficiencyCheck(False, "No asset selected")
    if asset.decimals is None:
        return SufficiencyCheck(False, f"Token decimals unknown for {asset.symbol}")

    conversion = AmountValidator.to_raw_units(str(amount), asset.decimals)
    if not conversion.is_valid:
        return SufficiencyCheck(False, conversion.error_message)
    raw_amount: int = conversion.normalized_value

    if native_balance is None:
        return SufficiencyCheck(False, "SOL balance is unavailable", raw_amount)
    if estimated_fee is None:
        return SufficiencyCheck(False, "Network fee could not be estimated", raw_amount)

    native_cost = estimated_fee + reserved_native
    if asset.is_native:
        native_cost += raw_amount
    else:
        if asset.raw_balance is None or asset.raw_balance < raw_amount:
            return SufficiencyCheck(
                False, f"Insufficient {asset.symbol} balance", raw_amount
            )

    native_after = native_balance - native_cost
    if native_after < 0:
        return SufficiencyCheck(
            False, "Insufficient SOL for amount and network fees", raw_amount, native_after
        )
    return SufficiencyCheck(True, None, raw_amount, native_after)


def has_sufficient_balance(
    asset: Asset | None,
    amount: str | Decimal,
    native_balance: int | None,
    estimated_fee: int | None,
    reserved_native: int = 0,
) -> bool:
    return check_sufficiency(
        asset, amount, native_balance, estimated_fee, reserved_native
    ).approved
