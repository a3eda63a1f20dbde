"""Balance feature module for Solana Quick Wallet."""

from solwallet.features.balances.service import BalanceOracle, BalancePoller

__all__ = ["BalanceOracle", "BalancePoller"]
