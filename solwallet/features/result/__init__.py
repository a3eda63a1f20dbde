"""Transaction result reporting for Solana Quick Wallet."""

from solwallet.features.result.service import ResultReporter, TransactionReport

__all__ = ["ResultReporter", "TransactionReport"]
