"""Input validation and raw/display amount conversion."""

from dataclasses import dataclass
from decimal import (
    ROUND_DOWN,
    ROUND_HALF_UP,
    Decimal,
    DecimalException,
    InvalidOperation,
    localcontext,
)
from typing import Any

from solders.pubkey import Pubkey

U64_MAX = 2**64 - 1
MAX_DECIMALS = 18

BASE58_ALPHABET = frozenset("123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz")

# Enough digits for a u64 scaled by 10^18 with headroom.
_PRECISION = 80


@dataclass
class ValidationResult:
    is_valid: bool
    error_message: str | None = None
    normalized_value: Any = None


def _as_decimal(amount: str | int | Decimal) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        return Decimal(str(amount))
    return Decimal(amount)


def to_raw(amount: str | int | Decimal, decimals: int) -> int:
    """Convert a display amount to integer base units, rounding half up."""
    if decimals < 0:
        raise ValueError("decimals must be non-negative")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        try:
            value = _as_decimal(amount)
            if not value.is_finite():
                raise ValueError(f"not a finite number: {amount!r}")
            scaled = value * (Decimal(10) ** decimals)
            return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))
        except DecimalException as e:
            raise ValueError(f"not a representable amount: {amount!r}") from e


def to_display(raw: int, decimals: int) -> Decimal:
    """Exact display value of ``raw`` base units."""
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise TypeError("raw amount must be an integer")
    if raw < 0:
        raise ValueError("raw amount must be non-negative")
    if decimals < 0:
        raise ValueError("decimals must be non-negative")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return Decimal(raw).scaleb(-decimals)


def format_display(raw: int, decimals: int, places: int | None = None) -> str:
    value = to_display(raw, decimals)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        if places is None:
            if value == 0:
                return "0"
            return format(value.normalize(), "f")
        quantum = Decimal(1).scaleb(-places)
        return format(value.quantize(quantum, rounding=ROUND_DOWN), "f")


class AmountValidator:
    MAX_AMOUNT = U64_MAX

    @staticmethod
    def parse_human_amount(value: str) -> ValidationResult:
        if not value or not value.strip():
            return ValidationResult(
                is_valid=False,
                error_message="Amount is required",
            )

        raw_amount = value.strip().replace(",", "").replace(" ", "")

        if raw_amount.startswith("-") or raw_amount.startswith("+"):
            return ValidationResult(
                is_valid=False,
                error_message="Amount must be a positive number",
            )

        try:
            amount_decimal = Decimal(raw_amount)
        except (InvalidOperation, ValueError):
            return ValidationResult(
                is_valid=False,
                error_message="Amount must be a valid number",
            )

        if not amount_decimal.is_finite():
            return ValidationResult(
                is_valid=False,
                error_message="Invalid numeric format (special value detected)",
            )

        if amount_decimal == 0:
            return ValidationResult(
                is_valid=False,
                error_message="Amount must be greater than zero",
            )

        return ValidationResult(
            is_valid=True,
            normalized_value=amount_decimal,
        )

    @classmethod
    def to_raw_units(cls, value: str, decimals: int) -> ValidationResult:
        parse_result = cls.parse_human_amount(value)
        if not parse_result.is_valid:
            return parse_result

        amount: Decimal = parse_result.normalized_value
        # A u64 has at most 20 digits.
        if amount.adjusted() + decimals >= len(str(cls.MAX_AMOUNT)):
            return ValidationResult(
                is_valid=False,
                error_message="Amount exceeds maximum allowed value",
            )

        try:
            raw = to_raw(amount, decimals)
        except ValueError:
            return ValidationResult(
                is_valid=False,
                error_message="Amount exceeds maximum allowed value",
            )

        if raw <= 0:
            return ValidationResult(
                is_valid=False,
                error_message=f"Amount is smaller than the token precision ({decimals} decimals)",
            )

        if raw > cls.MAX_AMOUNT:
            return ValidationResult(
                is_valid=False,
                error_message="Amount exceeds maximum allowed value",
            )

        return ValidationResult(is_valid=True, normalized_value=raw)


class AddressValidator:
    MIN_ADDRESS_LENGTH = 32
    MAX_ADDRESS_LENGTH = 44

    @staticmethod
    def validate(value: str) -> ValidationResult:
        if not value or not value.strip():
            return ValidationResult(
                is_valid=False,
                error_message="Address is required",
            )

        normalized = value.strip()

        if any(c not in BASE58_ALPHABET for c in normalized):
            return ValidationResult(
                is_valid=False,
                error_message="Address contains invalid characters",
            )

        if not (
            AddressValidator.MIN_ADDRESS_LENGTH
            <= len(normalized)
            <= AddressValidator.MAX_ADDRESS_LENGTH
        ):
            return ValidationResult(
                is_valid=False,
                error_message=f"Invalid address length. Expected {AddressValidator.MIN_ADDRESS_LENGTH}-{AddressValidator.MAX_ADDRESS_LENGTH} characters",
            )

        try:
            pubkey = Pubkey.from_string(normalized)
        except ValueError:
            return ValidationResult(
                is_valid=False,
                error_message="Address is not a valid public key",
            )

        return ValidationResult(
            is_valid=True,
            normalized_value=str(pubkey),
        )
