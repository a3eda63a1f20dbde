"""Solana Quick Wallet: a terminal wallet for SOL, SPL tokens and Jupiter swaps."""

__version__ = "0.1.0"
