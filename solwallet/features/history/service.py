"""Paged native transfer history for the active account.

Each page lists signatures for the owner, newest first, then loads every
transaction. Only native SOL transfers that touch the owner are shown;
transactions without metadata or a block time are skipped.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from solwallet.explorer import explorer_url
from solwallet.models import NATIVE_DECIMALS
from solwallet.shared.validation import format_display

logger = logging.getLogger(__name__)

HISTORY_PAGE_SIZE = 10


class HistoryLedgerProtocol(Protocol):
    def get_signatures_for_address(
        self, address: str, limit: int = 10, before: str | None = None
    ) -> list[dict[str, Any]]: ...
    def get_transaction(self, signature: str) -> dict[str, Any] | None: ...


@dataclass(frozen=True)
class HistoryEntry:
    signature: str
    block_time: int
    direction: str
    lamports: int
    counterparty: str
    failed: bool = False

    @property
    def status(self) -> str:
        return "failed" if self.failed else "confirmed"

    @property
    def timestamp(self) -> datetime:
        return datetime.fromtimestamp(self.block_time, tz=timezone.utc)

    def display_amount(self) -> str:
        sign = "-" if self.direction == "sent" else "+"
        return f"{sign}{format_display(self.lamports, NATIVE_DECIMALS)} SOL"

    def explorer_link(self, network: str, explorer_name: str | None = None) -> str:
        return explorer_url("tx", self.signature, network, explorer_name)


@dataclass(frozen=True)
class HistoryPage:
    entries: tuple[HistoryEntry, ...]
    next_before: str | None
    has_more: bool


def _system_transfers(transaction: dict[str, Any]) -> list[dict[str, Any]]:
    message = transaction.get("transaction", {}).get("message", {})
    transfers = []
    for instruction in message.get("instructions", []):
        parsed = instruction.get("parsed")
        if instruction.get("program") != "system" or not isinstance(parsed, dict):
            continue
        if parsed.get("type") == "transfer":
            transfers.append(parsed.get("info", {}))
    return transfers


def parse_transfer(
    owner: str, signature: str, transaction: dict[str, Any] | None
) -> HistoryEntry | None:
    """First native transfer in ``transaction`` that involves ``owner``."""
    if not transaction or transaction.get("meta") is None:
        return None
    block_time = transaction.get("blockTime")
    if block_time is None:
        return None

    for info in _system_transfers(transaction):
        source = info.get("source")
        destination = info.get("destination")
        if owner == source:
            direction, counterparty = "sent", destination
        elif owner == destination:
            direction, counterparty = "received", source
        else:
            continue
        return HistoryEntry(
            signature=signature,
            block_time=int(block_time),
            direction=direction,
            lamports=int(info.get("lamports", 0)),
            counterparty=counterparty or "",
            failed=transaction["meta"].get("err") is not None,
        )
    return None


class HistoryService:
    def __init__(self, ledger: HistoryLedgerProtocol, page_size: int = HISTORY_PAGE_SIZE):
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.ledger = ledger
        self.page_size = page_size

    def load_page(self, owner: str, before: str | None = None) -> HistoryPage:
        """Load one page. Ledger and network errors propagate to the caller."""
        signatures = self.ledger.get_signatures_for_address(
            owner, limit=self.page_size, before=before
        )
        entries = []
        for info in signatures:
            signature = info["signature"]
            entry = parse_transfer(owner, signature, self.ledger.get_transaction(signature))
            if entry is not None:
                entries.append(entry)

        next_before = signatures[-1]["signature"] if signatures else before
        logger.debug(
            "Loaded %d signatures (%d transfers) for %s",
            len(signatures),
            len(entries),
            owner,
        )
        return HistoryPage(
            entries=tuple(entries),
            next_before=next_before,
            has_more=len(signatures) == self.page_size,
        )


class HistoryFeed:
    """Accumulated pages for one owner.

    ``reset`` bumps a generation so that a page requested for a previous
    owner or network is dropped when it arrives.
    """

    def __init__(self, service: HistoryService, owner: str):
        self.service = service
        self.owner = owner
        self.generation = 0
        self._entries: list[HistoryEntry] = []
        self._next_before: str | None = None
        self._has_more = True
        self._lock = threading.Lock()

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    @property
    def has_more(self) -> bool:
        with self._lock:
            return self._has_more

    def reset(self, owner: str | None = None, service: HistoryService | None = None) -> None:
        with self._lock:
            if owner is not None:
                self.owner = owner
            if service is not None:
                self.service = service
            self.generation += 1
            self._entries = []
            self._next_before = None
            self._has_more = True

    def load_more(self) -> bool:
        """Append the next page. Returns False when the page was dropped."""
        with self._lock:
            if not self._has_more:
                return True
            generation = self.generation
            service = self.service
            owner = self.owner
            before = self._next_before

        page = service.load_page(owner, before)

        with self._lock:
            if generation != self.generation:
                logger.debug("Dropping history page for %s after a context switch", owner)
                return False
            self._entries.extend(page.entries)
            self._next_before = page.next_before
            self._has_more = page.has_more
        return True

    def refresh(self) -> bool:
        self.reset()
        return self.load_more()
