"""Token metadata feature module for Solana Quick Wallet."""

from solwallet.features.tokens.service import (
    StaticTokenStore,
    TokenMetadataStore,
    TokenResolver,
    jupiter_token_provider,
    store_provider,
)

__all__ = [
    "StaticTokenStore",
    "TokenMetadataStore",
    "TokenResolver",
    "jupiter_token_provider",
    "store_provider",
]
