"""Transaction history feature module for Solana Quick Wallet."""

from solwallet.features.history.service import (
    HistoryEntry,
    HistoryFeed,
    HistoryPage,
    HistoryService,
)

__all__ = ["HistoryEntry", "HistoryFeed", "HistoryPage", "HistoryService"]
