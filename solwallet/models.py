"""Data model for balances, quotes and pending transactions."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from solders.instruction import Instruction
from solders.message import MessageV0

from solwallet.shared.errors import WalletError
from solwallet.shared.validation import to_display

NATIVE_SYMBOL = "SOL"
NATIVE_DECIMALS = 9
WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

UNKNOWN_TOKEN_NAME = "Unknown Token"


def short_address(address: str, size: int = 4) -> str:
    if len(address) <= size * 2 + 3:
        return address
    return f"{address[:size]}...{address[-size:]}"


@dataclass
class Asset:
    mint: str | None
    symbol: str
    decimals: int | None
    raw_balance: int | None = None

    @classmethod
    def native(cls, raw_balance: int | None = None) -> "Asset":
        return cls(
            mint=None,
            symbol=NATIVE_SYMBOL,
            decimals=NATIVE_DECIMALS,
            raw_balance=raw_balance,
        )

    @property
    def is_native(self) -> bool:
        return self.mint is None


@dataclass(frozen=True)
class TokenMetadata:
    mint: str
    symbol: str
    name: str
    icon: str | None = None
    decimals: int | None = None
    is_placeholder: bool = False

    @classmethod
    def unknown(cls, mint: str) -> "TokenMetadata":
        return cls(
            mint=mint,
            symbol=short_address(mint),
            name=UNKNOWN_TOKEN_NAME,
            is_placeholder=True,
        )


@dataclass
class TokenHolding:
    mint: str
    raw_balance: int
    decimals: int
    owner: str
    token_account: str
    metadata: TokenMetadata

    def __post_init__(self):
        if self.raw_balance < 0:
            raise ValueError(f"Negative token balance for {self.mint}")
        if self.decimals < 0:
            raise ValueError(f"Negative decimals for {self.mint}")

    @property
    def display_balance(self) -> Decimal:
        return to_display(self.raw_balance, self.decimals)

    @property
    def symbol(self) -> str:
        return self.metadata.symbol

    def as_asset(self) -> Asset:
        return Asset(
            mint=self.mint,
            symbol=self.metadata.symbol,
            decimals=self.decimals,
            raw_balance=self.raw_balance,
        )


@dataclass(frozen=True)
class BalanceSnapshot:
    owner: str
    network: str
    native_lamports: int | None
    holdings: tuple[TokenHolding, ...] = ()
    fetched_at: float = field(default_factory=time.time)

    @classmethod
    def unavailable(cls, owner: str, network: str) -> "BalanceSnapshot":
        return cls(owner=owner, network=network, native_lamports=None)

    @property
    def available(self) -> bool:
        return self.native_lamports is not None

    def holding(self, mint: str) -> TokenHolding | None:
        for holding in self.holdings:
            if holding.mint == mint:
                return holding
        return None

    def assets(self) -> list[Asset]:
        return [Asset.native(self.native_lamports)] + [
            holding.as_asset() for holding in self.holdings
        ]


@dataclass(frozen=True)
class RouteStep:
    label: str
    amm_key: str
    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    fee_amount: int
    fee_mint: str
    percent: int = 100

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RouteStep":
        info = data.get("swapInfo", {})
        return cls(
            label=info.get("label", ""),
            amm_key=info.get("ammKey", ""),
            input_mint=info["inputMint"],
            output_mint=info["outputMint"],
            in_amount=int(info["inAmount"]),
            out_amount=int(info["outAmount"]),
            fee_amount=int(info.get("feeAmount", 0)),
            fee_mint=info.get("feeMint", ""),
            percent=int(data.get("percent", 100)),
        )


@dataclass(frozen=True)
class Quote:
    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    other_amount_threshold: int
    slippage_bps: int
    price_impact_pct: Decimal
    route: tuple[RouteStep, ...]
    raw: dict[str, Any] = field(compare=False, repr=False)
    fetched_at: float = field(default_factory=time.monotonic)
    ttl_seconds: float = 30.0

    @classmethod
    def from_aggregator(cls, data: dict[str, Any], ttl_seconds: float = 30.0) -> "Quote":
        return cls(
            input_mint=data["inputMint"],
            output_mint=data["outputMint"],
            in_amount=int(data["inAmount"]),
            out_amount=int(data["outAmount"]),
            other_amount_threshold=int(data.get("otherAmountThreshold", 0)),
            slippage_bps=int(data.get("slippageBps", 0)),
            price_impact_pct=Decimal(str(data.get("priceImpactPct", "0"))),
            route=tuple(RouteStep.from_dict(step) for step in data.get("routePlan", [])),
            raw=data,
            ttl_seconds=ttl_seconds,
        )

    def is_stale(self, now: float | None = None) -> bool:
        current = time.monotonic() if now is None else now
        return current - self.fetched_at > self.ttl_seconds

    def total_fees(self) -> dict[str, int]:
        fees: dict[str, int] = {}
        for step in self.route:
            if step.fee_amount:
                fees[step.fee_mint] = fees.get(step.fee_mint, 0) + step.fee_amount
        return fees

    def rate(self) -> Decimal:
        if self.in_amount == 0:
            return Decimal(0)
        return Decimal(self.out_amount) / Decimal(self.in_amount)


@dataclass(frozen=True)
class ExpiryReference:
    blockhash: str
    last_valid_block_height: int
    fetched_at: float = field(default_factory=time.monotonic)


@dataclass
class PendingTransaction:
    kind: str
    fee_payer: str
    expiry: ExpiryReference
    instructions: list[Instruction] = field(default_factory=list)
    compiled_message: MessageV0 | None = None
    signers: list[str] = field(default_factory=list)
    estimated_fee: int | None = None
    extra_native_cost: int = 0
    description: str = ""
    created_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if self.kind not in ("transfer", "swap"):
            raise ValueError(f"Unknown transaction kind: {self.kind}")
        if not self.instructions and self.compiled_message is None:
            raise ValueError("A pending transaction needs instructions or a message")
        if self.signers and self.signers[0] != self.fee_payer:
            raise ValueError("The fee payer must be the first signer")


class TransactionOutcome(Enum):
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass(frozen=True)
class ConfirmationResult:
    signature: str | None
    success: bool
    outcome: TransactionOutcome
    error: WalletError | None = None
    logs: tuple[str, ...] = ()
    slot: int | None = None

    @property
    def is_ambiguous(self) -> bool:
        return self.outcome == TransactionOutcome.TIMED_OUT
