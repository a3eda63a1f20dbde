"""Transfer feature module for Solana Quick Wallet."""

from solwallet.features.transfer.service import TransferBuilder

__all__ = ["TransferBuilder"]
