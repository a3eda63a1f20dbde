"""Main application entry point for Solana Quick Wallet."""

import os
import threading
from typing import cast

from solders.keypair import Keypair
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.widgets import (
    Button,
    DataTable,
    Footer,
    Header,
    Input,
    Label,
    Select,
    Static,
    Tab,
    Tabs,
)

from solwallet.config import WalletConfig, load_config, save_config
from solwallet.explorer import explorer_url
from solwallet.features.history.handlers import HISTORY_COLUMNS, HistoryHandlersMixin
from solwallet.features.swap.handlers import SwapHandlersMixin
from solwallet.features.transfer.handlers import TransferHandlersMixin
from solwallet.features.transfer.screen import TransactionStatusScreen
from solwallet.models import BalanceSnapshot, TokenMetadata, short_address
from solwallet.screens import (
    AccountSelectorScreen,
    ImportKeyScreen,
    NetworkSelectorScreen,
    PasswordScreen,
)
from solwallet.session import WalletSession
from solwallet.shared.clipboard import copy_text
from solwallet.shared.errors import KeyringError, ValidationError
from solwallet.shared.keyring import KeyringService, parse_keypair
from solwallet.shared.logging import format_error_for_user, get_logger, setup_logging
from solwallet.shared.validation import format_display
from solwallet.styles import CSS

logger = get_logger(__name__)

SECRET_ENV_VAR = "SOL_WALLET_SECRET_KEY"

TABS = ("balances", "transfer", "swap", "history")


class WalletApp(
    TransferHandlersMixin, SwapHandlersMixin, HistoryHandlersMixin, App
):
    CSS = CSS
    TITLE = "Solana Quick Wallet"

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "refresh_balances", "Refresh"),
        ("n", "switch_network", "Network"),
        ("a", "switch_account", "Accounts"),
    ]

    def __init__(self, config: WalletConfig | None = None):
        super().__init__()
        self.config = config or load_config()
        self.session: WalletSession | None = None
        self.keyring: KeyringService | None = None
        self._status_screen: TransactionStatusScreen | None = None
        self._submitting = False
        self._swap_tokens: dict[str, TokenMetadata] = {}
        self._swap_options: list[tuple[str, str]] = []
        self._asset_options: list[tuple[str, str]] = []
        self._ui_thread: int | None = None
        self._history_loading = False

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("[dim]Locked[/dim]", id="account-status")
        yield Tabs(
            Tab("Balances", id="balances-tab-btn"),
            Tab("Transfer", id="transfer-tab-btn"),
            Tab("Swap", id="swap-tab-btn"),
            Tab("History", id="history-tab-btn"),
        )

        with Container(id="balances-tab"):
            yield Label("Balances", id="balances-title")
            yield Button("Loading...", id="wallet-info")
            yield DataTable(id="balance-table")
            yield Horizontal(
                Button("Refresh", id="refresh-button"),
                Button("Network", id="network-button"),
                Button("Accounts", id="accounts-button"),
                id="balances-actions-row",
            )

        with Container(id="transfer-tab"):
            yield Label("Transfer", id="transfer-title")
            yield Static(
                "Send SOL or an SPL token. Amounts are in display units.",
                id="transfer-helper",
            )
            yield Label("Recipient Address")
            yield Input(placeholder="Base58 public key", id="recipient-input")
            yield Label("Asset")
            yield Select([], id="asset-select", prompt="Select an asset...")
            yield Label("Amount")
            yield Input(placeholder="e.g. 0.5", id="amount-input")
            yield Horizontal(
                Button("Send", id="send-button", variant="primary"),
                id="transfer-actions-row",
            )
            yield Static(id="transfer-result")

        with Container(id="swap-tab"):
            yield Label("Swap", id="swap-title")
            yield Static(
                "Quotes refresh automatically while inputs are unchanged.",
                id="swap-helper",
            )
            yield Label("From")
            yield Select([], id="swap-input-select", prompt="Select input token...")
            yield Input(placeholder="Amount", id="swap-amount-input")
            yield Label("To")
            yield Select([], id="swap-output-select", prompt="Select output token...")
            yield Static("-", id="swap-output")
            yield Static("", id="quote-status")
            yield Static("", id="quote-details")
            yield Label("Slippage (%)")
            yield Input(value="0.5", id="slippage-input")
            yield Horizontal(
                Button("Swap", id="swap-button", variant="primary", disabled=True),
                id="swap-actions-row",
            )
            yield Static(id="swap-result")

        with Container(id="history-tab"):
            yield Label("History", id="history-title")
            yield Static(
                "Native SOL transfers. Select a row to copy its explorer link.",
                id="history-helper",
            )
            yield DataTable(id="history-table", cursor_type="row")
            yield Static("", id="history-status")
            yield Horizontal(
                Button("Refresh", id="refresh-history-button"),
                Button("Load More", id="history-more-button", disabled=True),
                id="history-actions-row",
            )

        yield Footer()

    def on_mount(self) -> None:
        self._ui_thread = threading.get_ident()
        table = cast(DataTable, self.query_one("#balance-table"))
        table.add_columns("Asset", "Balance", "Mint")
        cast(DataTable, self.query_one("#history-table")).add_columns(*HISTORY_COLUMNS)
        cast(Input, self.query_one("#slippage-input")).value = (
            f"{self.config.default_slippage_bps / 100:g}"
        )
        self.show_tab("balances")

        secret = os.getenv(SECRET_ENV_VAR)
        if secret:
            logger.info("Using keypair from %s", SECRET_ENV_VAR)
            try:
                self.start_session(parse_keypair(secret))
            except KeyringError as e:
                self.notify(str(e), severity="error")
                self.exit()
            return

        if KeyringService.exists():
            self.push_screen(
                PasswordScreen(title="Unlock Wallet", confirm_button_text="Unlock"),
                self._on_unlock_password,
            )
        else:
            self.push_screen(ImportKeyScreen(ask_password=True), self._on_first_import)

    def on_unmount(self) -> None:
        if self.session is not None:
            self.session.close()

    def _on_unlock_password(self, password: str | None) -> None:
        if not password:
            return
        try:
            keyring = KeyringService(password)
            keypair = keyring.load_keypair(0)
        except KeyringError as e:
            logger.warning("Unlock failed: %s", e)
            self.notify(str(e), severity="error")
            self.push_screen(
                PasswordScreen(title="Unlock Wallet", confirm_button_text="Unlock"),
                self._on_unlock_password,
            )
            return
        self.keyring = keyring
        self.start_session(keypair)

    def _on_first_import(self, result: dict | None) -> None:
        if not result:
            self.exit()
            return
        try:
            keyring = KeyringService(result["password"])
            index = keyring.save(result["secret"])
            keypair = keyring.load_keypair(index)
        except KeyringError as e:
            self.notify(str(e), severity="error")
            self.push_screen(ImportKeyScreen(ask_password=True), self._on_first_import)
            return
        self.keyring = keyring
        self.start_session(keypair)

    def start_session(self, keypair: Keypair) -> None:
        self.session = WalletSession(self.config, keypair)
        self.session.poller.on_update(
            lambda snapshot: self._from_any_thread(self.update_balances, snapshot)
        )
        self.session.quoter.on_change(
            lambda state: self._from_any_thread(self.render_quote_state, state)
        )
        self.session.start()
        self.update_account_status()

    def _from_any_thread(self, callback, *args) -> None:
        if threading.get_ident() == self._ui_thread:
            callback(*args)
        else:
            self.call_from_thread(callback, *args)

    def update_account_status(self) -> None:
        if self.session is None:
            return
        status = cast(Static, self.query_one("#account-status"))
        status.update(
            f"{short_address(self.session.owner)} | {self.session.network}"
        )
        cast(Button, self.query_one("#wallet-info")).label = (
            f"{self.session.owner} (copy)"
        )

    def update_balances(self, snapshot: BalanceSnapshot) -> None:
        table = cast(DataTable, self.query_one("#balance-table"))
        table.clear()
        if not snapshot.available:
            table.add_row("SOL", "[red]unavailable[/red]", "")
        else:
            for asset in snapshot.assets():
                balance = (
                    format_display(asset.raw_balance, asset.decimals)
                    if asset.raw_balance is not None and asset.decimals is not None
                    else "?"
                )
                table.add_row(
                    asset.symbol,
                    balance,
                    short_address(asset.mint, 6) if asset.mint else "native",
                )
        self.update_asset_select(snapshot)
        self.update_swap_token_options(snapshot)

    def show_tab(self, name: str) -> None:
        for tab in TABS:
            self.query_one(f"#{tab}-tab").display = tab == name
        session = self.session
        if name == "history" and session is not None and not session.history.entries:
            self.refresh_history_async()

    def on_tabs_tab_activated(self, event: Tabs.TabActivated) -> None:
        if event.tab and event.tab.id:
            self.show_tab(event.tab.id.replace("-tab-btn", ""))

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id in ("swap-amount-input", "slippage-input"):
            self.on_swap_inputs_changed()

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id in ("swap-input-select", "swap-output-select"):
            self.on_swap_inputs_changed()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id
        logger.debug("Button pressed: %s", button_id)
        if button_id == "send-button":
            self.send_transfer()
        elif button_id == "swap-button":
            self.swap_now()
        elif button_id == "refresh-button":
            self.action_refresh_balances()
        elif button_id == "network-button":
            self.action_switch_network()
        elif button_id == "accounts-button":
            self.action_switch_account()
        elif button_id == "wallet-info":
            self.copy_address()
        elif button_id == "refresh-history-button":
            self.refresh_history_async()
        elif button_id == "history-more-button":
            self.refresh_history_async(more=True)

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        if event.data_table.id == "history-table" and event.row_key.value:
            self.copy_history_link(event.row_key.value)

    def copy_address(self) -> None:
        if self.session is None:
            return
        result = copy_text(self.session.owner, prefer_osc52=True)
        if result["success"]:
            self.notify("Address copied to clipboard!", severity="information")
            logger.info(
                "Copied address (%s), explorer: %s",
                result["method"],
                explorer_url(
                    "address", self.session.owner, self.session.network, self.config.explorer
                ),
            )
        else:
            self.notify("Could not copy to clipboard", severity="warning")

    def action_refresh_balances(self) -> None:
        if self.session is None:
            return
        poller = self.session.poller
        threading.Thread(target=poller.refresh, daemon=True).start()
        self.notify("Refreshing balances...", severity="information")

    def action_switch_network(self) -> None:
        if self.session is None or self._submitting:
            return
        self.push_screen(NetworkSelectorScreen(self.session.network), self._on_network_selected)

    def _on_network_selected(self, network: str | None) -> None:
        if not network or self.session is None:
            return
        try:
            self.session.switch_network(network)
        except ValidationError as e:
            self.notify(e.message, severity="error")
            return
        self.config.network = network
        save_config(self.config)
        cast(DataTable, self.query_one("#balance-table")).clear()
        self.clear_history()
        self.update_account_status()
        self.notify(f"Switched to {network}", severity="information")

    def action_switch_account(self) -> None:
        if self.session is None or self._submitting:
            return
        if self.keyring is None:
            self.notify("Accounts are unavailable with an environment keypair", severity="warning")
            return
        self.push_screen(
            AccountSelectorScreen(self.keyring.list(), self.session.owner),
            self._on_account_selected,
        )

    def _on_account_selected(self, selection: int | str | None) -> None:
        if selection is None or self.session is None or self.keyring is None:
            return
        if selection == "import":
            self.push_screen(ImportKeyScreen(ask_password=False), self._on_account_imported)
            return
        try:
            keypair = self.keyring.load_keypair(int(selection))
        except KeyringError as e:
            self.notify(format_error_for_user(e), severity="error")
            return
        self._switch_to(keypair)

    def _on_account_imported(self, result: dict | None) -> None:
        if not result or self.keyring is None:
            return
        try:
            index = self.keyring.save(result["secret"])
            keypair = self.keyring.load_keypair(index)
        except KeyringError as e:
            self.notify(str(e), severity="error")
            return
        self._switch_to(keypair)

    def _switch_to(self, keypair: Keypair) -> None:
        self.session.switch_account(keypair)
        cast(DataTable, self.query_one("#balance-table")).clear()
        self.clear_history()
        self.update_account_status()
        self.notify(
            f"Switched to {short_address(str(keypair.pubkey()))}", severity="information"
        )


def main():
    """Entry point for the application."""
    setup_logging()
    logger.info("Starting Solana Quick Wallet")
    app = WalletApp()
    app.run()


if __name__ == "__main__":
    main()
