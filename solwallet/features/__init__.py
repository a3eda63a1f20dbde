"""Feature modules for Solana Quick Wallet."""
