"""Swap feature module for Solana Quick Wallet."""

from solwallet.features.swap.aggregator import AggregatorClient
from solwallet.features.swap.quoter import (
    QuoteRequest,
    QuoterState,
    QuoteStatus,
    SwapQuoter,
)
from solwallet.features.swap.service import SwapBuilder, SwapOptions

__all__ = [
    "AggregatorClient",
    "QuoteRequest",
    "QuoterState",
    "QuoteStatus",
    "SwapQuoter",
    "SwapBuilder",
    "SwapOptions",
]
