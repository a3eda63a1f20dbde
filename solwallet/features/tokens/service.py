"""Token metadata resolution.

Metadata comes from an ordered list of providers. The first provider that
answers wins; if none does, callers get an "Unknown Token" placeholder rather
than an error.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Iterable, Protocol

from solwallet.models import (
    NATIVE_DECIMALS,
    USDC_MINT,
    WRAPPED_SOL_MINT,
    TokenMetadata,
)
from solwallet.shared.errors import MetadataUnavailable
from solwallet.shared.network import NetworkClient, NetworkError

logger = logging.getLogger(__name__)

IPFS_GATEWAY = "https://ipfs.io/ipfs/"
JUPITER_TOKEN_HOST = "https://token.jup.ag"
TOKEN_LIST_CACHE_SECONDS = 30 * 60

MetadataProvider = Callable[[str], "TokenMetadata | None"]


class TokenMetadataStore(Protocol):
    """Local metadata lookup keyed by mint address."""

    def lookup_by_address(self, mint: str) -> TokenMetadata | None: ...


def normalize_icon_url(url: str | None) -> str | None:
    if not url:
        return None
    if url.startswith("ipfs://"):
        return IPFS_GATEWAY + url[len("ipfs://"):]
    if url.startswith("http://"):
        return "https://" + url[len("http://"):]
    if url.startswith("/"):
        return JUPITER_TOKEN_HOST + url
    return url


def metadata_from_token_list_entry(entry: dict[str, Any]) -> TokenMetadata:
    decimals = entry.get("decimals")
    return TokenMetadata(
        mint=entry["address"],
        symbol=entry.get("symbol") or "",
        name=entry.get("name") or "",
        icon=normalize_icon_url(entry.get("logoURI")),
        decimals=int(decimals) if decimals is not None else None,
    )


WELL_KNOWN_TOKENS: tuple[TokenMetadata, ...] = (
    TokenMetadata(
        mint=WRAPPED_SOL_MINT,
        symbol="SOL",
        name="Wrapped SOL",
        decimals=NATIVE_DECIMALS,
    ),
    TokenMetadata(
        mint=USDC_MINT,
        symbol="USDC",
        name="USD Coin",
        decimals=6,
    ),
)


class StaticTokenStore:
    """In-memory metadata store, optionally loaded from a Jupiter token list."""

    def __init__(self, tokens: Iterable[TokenMetadata] = WELL_KNOWN_TOKENS):
        self._tokens: dict[str, TokenMetadata] = {}
        self._lock = threading.Lock()
        self._last_updated: float | None = None
        self.add_all(tokens)

    def add_all(self, tokens: Iterable[TokenMetadata]) -> None:
        with self._lock:
            for token in tokens:
                self._tokens[token.mint] = token

    def load_entries(self, entries: Iterable[dict[str, Any]]) -> int:
        loaded = []
        for entry in entries:
            try:
                loaded.append(metadata_from_token_list_entry(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("Skipping malformed token list entry: %s", e)
        self.add_all(loaded)
        return len(loaded)

    def load_file(self, path: str | Path) -> int:
        with open(path, "r") as f:
            return self.load_entries(json.load(f))

    def is_stale(self, now: float | None = None) -> bool:
        if self._last_updated is None:
            return True
        current = time.monotonic() if now is None else now
        return current - self._last_updated > TOKEN_LIST_CACHE_SECONDS

    def refresh(self, client: NetworkClient, endpoint: str = "") -> int:
        """Reload from a remote token list unless the cache is still fresh."""
        if not self.is_stale():
            return 0
        entries = client.get(endpoint, context="Fetch token list")
        count = self.load_entries(entries)
        self._last_updated = time.monotonic()
        logger.info("Loaded %d tokens from token list", count)
        return count

    def lookup_by_address(self, mint: str) -> TokenMetadata | None:
        with self._lock:
            return self._tokens.get(mint)

    def search(self, query: str, limit: int = 20) -> list[TokenMetadata]:
        needle = query.strip().lower()
        if not needle:
            return []
        with self._lock:
            tokens = list(self._tokens.values())
        exact = [t for t in tokens if t.mint.lower() == needle or t.symbol.lower() == needle]
        partial = [
            t
            for t in tokens
            if t not in exact
            and (needle in t.symbol.lower() or needle in t.name.lower())
        ]
        return (exact + partial)[:limit]


def store_provider(store: TokenMetadataStore) -> MetadataProvider:
    def provide(mint: str) -> TokenMetadata | None:
        return store.lookup_by_address(mint)

    return provide


def jupiter_token_provider(client: NetworkClient) -> MetadataProvider:
    def provide(mint: str) -> TokenMetadata | None:
        try:
            data = client.get_optional(f"/{mint}", context="Token metadata lookup")
        except NetworkError as e:
            raise MetadataUnavailable(str(e)) from e
        if not data:
            return None
        try:
            return metadata_from_token_list_entry(data)
        except (KeyError, TypeError, ValueError) as e:
            raise MetadataUnavailable(f"Malformed token metadata for {mint}: {e}") from e

    return provide


class TokenResolver:
    def __init__(self, providers: list[MetadataProvider]):
        self.providers = list(providers)
        self._cache: dict[str, TokenMetadata] = {}
        self._lock = threading.Lock()

    def resolve(self, mint: str) -> TokenMetadata:
        with self._lock:
            cached = self._cache.get(mint)
        if cached is not None:
            return cached

        for index, provider in enumerate(self.providers):
            try:
                metadata = provider(mint)
            except Exception as e:
                logger.warning(
                    "Metadata provider %d failed for %s: %s", index, mint, e
                )
                continue
            if metadata is not None:
                metadata = TokenMetadata(
                    mint=metadata.mint,
                    symbol=metadata.symbol,
                    name=metadata.name,
                    icon=normalize_icon_url(metadata.icon),
                    decimals=metadata.decimals,
                )
                with self._lock:
                    self._cache[mint] = metadata
                return metadata

        logger.debug("No metadata found for %s", mint)
        return TokenMetadata.unknown(mint)

    def resolve_many(self, mints: Iterable[str]) -> list[TokenMetadata]:
        return [self.resolve(mint) for mint in mints]

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
