"""History tab event handlers for the Solana Quick Wallet TUI."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, cast

from textual.widgets import Button, DataTable, Static

from solwallet.features.history.service import HistoryFeed
from solwallet.models import short_address
from solwallet.session import WalletSession
from solwallet.shared.clipboard import copy_text
from solwallet.shared.logging import format_error_for_user, get_logger

if TYPE_CHECKING:
    from solwallet.__main__ import WalletApp

logger = get_logger(__name__)

HISTORY_COLUMNS = ("Date", "Direction", "Amount", "Counterparty", "Status", "Signature")


class HistoryHandlersMixin:
    """Mixin class providing history-related event handlers for WalletApp."""

    session: WalletSession | None
    _history_loading: bool

    def refresh_history_async(self: "WalletApp", more: bool = False) -> None:
        if self.session is None or self._history_loading:
            return
        feed = self.session.history
        self._history_loading = True
        cast(Button, self.query_one("#history-more-button")).disabled = True
        cast(Static, self.query_one("#history-status")).update(
            "[yellow]Loading...[/yellow]"
        )

        def worker() -> None:
            try:
                current = feed.load_more() if more else feed.refresh()
                self.call_from_thread(self._on_history_loaded, feed, current, None)
            except Exception as e:
                logger.error("Loading history failed: %s", e, exc_info=True)
                self.call_from_thread(self._on_history_loaded, feed, True, e)

        threading.Thread(target=worker, daemon=True).start()

    def _on_history_loaded(
        self: "WalletApp", feed: HistoryFeed, current: bool, error: Exception | None
    ) -> None:
        self._history_loading = False
        status = cast(Static, self.query_one("#history-status"))
        if not current:
            status.update("")
            return
        if error is not None:
            status.update(f"[red]Error: {format_error_for_user(error)}[/red]")
        else:
            status.update("" if feed.entries else "No transfers found")
        cast(Button, self.query_one("#history-more-button")).disabled = not feed.has_more
        self.update_history(feed)

    def update_history(self: "WalletApp", feed: HistoryFeed) -> None:
        table = cast(DataTable, self.query_one("#history-table"))
        table.clear()
        for entry in feed.entries:
            status = "[red]failed[/red]" if entry.failed else entry.status
            table.add_row(
                entry.timestamp.strftime("%Y-%m-%d %H:%M"),
                entry.direction,
                entry.display_amount(),
                short_address(entry.counterparty, 6),
                status,
                short_address(entry.signature, 8),
                key=entry.signature,
            )

    def clear_history(self: "WalletApp") -> None:
        cast(DataTable, self.query_one("#history-table")).clear()
        cast(Static, self.query_one("#history-status")).update("")
        cast(Button, self.query_one("#history-more-button")).disabled = True

    def copy_history_link(self: "WalletApp", signature: str) -> None:
        if self.session is None:
            return
        for entry in self.session.history.entries:
            if entry.signature == signature:
                break
        else:
            return
        link = entry.explorer_link(self.session.network, self.config.explorer)
        result = copy_text(link, prefer_osc52=True)
        if result["success"]:
            self.notify("Explorer link copied to clipboard!", severity="information")
        else:
            self.notify(link, severity="information")
        logger.info("History link for %s: %s", signature, link)
