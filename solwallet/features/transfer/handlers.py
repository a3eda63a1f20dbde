"""Transfer event handlers for the Solana Quick Wallet TUI."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, cast

from textual.widgets import Button, Input, Select, Static

from solwallet.features.result.service import TransactionReport
from solwallet.features.transfer.screen import (
    TransactionConfirmScreen,
    TransactionResultScreen,
    TransactionStatusScreen,
)
from solwallet.models import Asset, BalanceSnapshot, short_address
from solwallet.session import PreparedTransaction, WalletSession
from solwallet.shared.logging import format_error_for_user, get_logger
from solwallet.shared.validation import format_display
from solwallet.transaction import SubmitterState

if TYPE_CHECKING:
    from solwallet.__main__ import WalletApp

logger = get_logger(__name__)

NATIVE_OPTION = "native"


class TransferHandlersMixin:
    """Mixin class providing transfer-related event handlers for WalletApp."""

    session: WalletSession | None
    _status_screen: TransactionStatusScreen | None
    _submitting: bool
    _asset_options: list[tuple[str, str]]

    def _set_transfer_actions_enabled(self: "WalletApp", enabled: bool) -> None:
        for button_id in ("#send-button", "#swap-button"):
            cast(Button, self.query_one(button_id)).disabled = not enabled

    def update_asset_select(self: "WalletApp", snapshot: BalanceSnapshot) -> None:
        select = cast(Select, self.query_one("#asset-select"))
        current = select.value
        options = []
        for asset in snapshot.assets():
            balance = (
                format_display(asset.raw_balance, asset.decimals)
                if asset.raw_balance is not None and asset.decimals is not None
                else "?"
            )
            key = NATIVE_OPTION if asset.is_native else asset.mint
            options.append((f"{asset.symbol} ({balance})", key))
        if options == self._asset_options:
            return
        self._asset_options = options
        select.set_options(options)
        if any(key == current for _, key in options):
            select.value = current

    def _selected_asset(self: "WalletApp") -> Asset | None:
        value = cast(Select, self.query_one("#asset-select")).value
        if not isinstance(value, str):
            return None
        snapshot = self.session.balances if self.session else None
        if value == NATIVE_OPTION:
            return Asset.native(snapshot.native_lamports if snapshot else None)
        holding = snapshot.holding(value) if snapshot else None
        if holding is None:
            return None
        return holding.as_asset()

    def send_transfer(self: "WalletApp") -> None:
        if self.session is None or self._submitting:
            return

        recipient = cast(Input, self.query_one("#recipient-input")).value.strip()
        amount = cast(Input, self.query_one("#amount-input")).value.strip()
        result = cast(Static, self.query_one("#transfer-result"))
        asset = self._selected_asset()

        if not recipient:
            result.update("[red]Error: Please enter a recipient address[/red]")
            return
        if asset is None:
            result.update("[red]Error: Please select an asset[/red]")
            return
        if not amount:
            result.update("[red]Error: Please enter an amount[/red]")
            return

        result.update("[yellow]Preparing transfer...[/yellow]")
        session = self.session
        details = [
            ("Recipient", recipient),
            ("Amount", f"{amount} {asset.symbol}"),
        ]

        def worker() -> None:
            try:
                prepared = session.prepare_transfer(recipient, asset, amount)
                self.call_from_thread(
                    self._on_transfer_prepared, prepared, details, None
                )
            except Exception as e:
                logger.error("Preparing transfer failed: %s", e, exc_info=True)
                self.call_from_thread(self._on_transfer_prepared, None, details, e)

        threading.Thread(target=worker, daemon=True).start()

    def _on_transfer_prepared(
        self: "WalletApp",
        prepared: PreparedTransaction | None,
        details: list[tuple[str, str]],
        error: Exception | None,
    ) -> None:
        result = cast(Static, self.query_one("#transfer-result"))
        if error is not None or prepared is None:
            result.update(f"[red]Error: {format_error_for_user(error or 'unknown')}[/red]")
            return

        result.update("")

        def on_confirmed(confirmed: bool | None) -> None:
            if confirmed:
                self.submit_prepared(prepared, "#transfer-result")

        self.push_screen(
            TransactionConfirmScreen("Confirm Transfer", details, prepared),
            on_confirmed,
        )

    def submit_prepared(
        self: "WalletApp", prepared: PreparedTransaction, result_id: str
    ) -> None:
        if self.session is None or self._submitting:
            return
        self._submitting = True
        self._set_transfer_actions_enabled(False)

        status_screen = TransactionStatusScreen(prepared.pending.description)
        self._status_screen = status_screen
        self.push_screen(status_screen)
        session = self.session

        def on_state_change(state: SubmitterState, detail: str) -> None:
            self.call_from_thread(status_screen.update_status, state, detail)

        def worker() -> None:
            try:
                report = session.confirm(prepared, on_state_change=on_state_change)
                self.call_from_thread(
                    self._on_submission_finished, report, None, result_id
                )
            except Exception as e:
                logger.error("Submitting transaction failed: %s", e, exc_info=True)
                self.call_from_thread(self._on_submission_finished, None, e, result_id)

        threading.Thread(target=worker, daemon=True).start()

    def _on_submission_finished(
        self: "WalletApp",
        report: TransactionReport | None,
        error: Exception | None,
        result_id: str,
    ) -> None:
        self._submitting = False
        self._set_transfer_actions_enabled(True)
        if self._status_screen is not None:
            self._status_screen.dismiss(None)
            self._status_screen = None

        result = cast(Static, self.query_one(result_id))
        if error is not None or report is None:
            result.update(f"[red]Error: {format_error_for_user(error or 'unknown')}[/red]")
            return

        if report.signature:
            result.update(f"{report.title}: {short_address(report.signature, 8)}")
        else:
            result.update(f"{report.title}: {report.message}")
        self.push_screen(TransactionResultScreen(report))
