"""Application-level modal screens for Solana Quick Wallet."""

from typing import cast

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Input, Label, Select, Static

from solwallet.config import NETWORKS
from solwallet.models import short_address
from solwallet.shared.logging import get_logger

logger = get_logger(__name__)


class BaseModalScreen(ModalScreen):
    """Base modal screen with common key bindings."""

    BINDINGS = [
        ("escape", "app.pop_screen", "Close"),
        ("tab", "focus_next", "Next"),
        ("shift+tab", "focus_previous", "Previous"),
    ]


class PasswordScreen(BaseModalScreen):
    BINDINGS = [("escape", "escape", "Escape")]

    def __init__(
        self,
        title: str = "Password",
        confirm_button_text: str = "Confirm",
        screen_type: str = "unlock",
    ):
        super().__init__()
        self.dialog_title = title
        self.confirm_button_text = confirm_button_text
        self.screen_type = screen_type

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label(self.dialog_title, id="confirm-title")
            yield Input(placeholder="Password", password=True, id="password-input")
            yield Horizontal(
                Button(self.confirm_button_text, id="confirm-button", variant="primary"),
                Button("Cancel", id="cancel-button"),
            )

    def on_mount(self) -> None:
        self.query_one("#password-input").focus()

    def action_escape(self) -> None:
        if self.screen_type == "unlock":
            logger.info("Unlock cancelled, exiting application")
            self.notify(
                "Password required to access wallet. Exiting application.",
                severity="warning",
            )
            self.app.exit()
        else:
            self.dismiss(None)

    def action_confirm(self) -> None:
        password = cast(Input, self.query_one("#password-input")).value
        if not password:
            return
        self.dismiss(password)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.action_confirm()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "confirm-button":
            self.action_confirm()
        elif event.button.id == "cancel-button":
            self.action_escape()


class ImportKeyScreen(BaseModalScreen):
    """Collects a base58 secret key and, for a new keyring, its password."""

    def __init__(self, ask_password: bool = True):
        super().__init__()
        self.ask_password = ask_password

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label("Import Keypair", id="confirm-title")
            yield Label("Secret key (base58)")
            yield Input(password=True, id="secret-input")
            if self.ask_password:
                yield Label("Keyring password")
                yield Input(password=True, id="new-password-input")
                yield Label("Confirm password")
                yield Input(password=True, id="confirm-password-input")
            yield Static("", id="import-error")
            yield Horizontal(
                Button("Import", id="import-button", variant="primary"),
                Button("Cancel", id="cancel-button"),
            )

    def _show_error(self, message: str) -> None:
        cast(Static, self.query_one("#import-error")).update(f"[red]{message}[/red]")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel-button":
            self.dismiss(None)
            return
        if event.button.id != "import-button":
            return

        secret = cast(Input, self.query_one("#secret-input")).value.strip()
        if not secret:
            self._show_error("Secret key is required")
            return

        password = None
        if self.ask_password:
            password = cast(Input, self.query_one("#new-password-input")).value
            confirm = cast(Input, self.query_one("#confirm-password-input")).value
            if not password:
                self._show_error("Password is required")
                return
            if password != confirm:
                self._show_error("Passwords do not match")
                return

        self.dismiss({"secret": secret, "password": password})


class NetworkSelectorScreen(BaseModalScreen):
    def __init__(self, current: str):
        super().__init__()
        self.current = current

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label("Select Network", id="confirm-title")
            yield Select(
                [(name, name) for name in NETWORKS],
                value=self.current,
                allow_blank=False,
                id="network-select",
            )
            yield Horizontal(
                Button("Switch", id="switch-button", variant="primary"),
                Button("Cancel", id="cancel-button"),
            )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "switch-button":
            value = cast(Select, self.query_one("#network-select")).value
            self.dismiss(value if value != self.current else None)
        elif event.button.id == "cancel-button":
            self.dismiss(None)


class AccountSelectorScreen(BaseModalScreen):
    """Lists keyring accounts; dismisses with an index or ``"import"``."""

    def __init__(self, public_keys: list[str], current: str):
        super().__init__()
        self.public_keys = public_keys
        self.current = current

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label("Accounts", id="confirm-title")
            yield DataTable(id="accounts-table", cursor_type="row")
            yield Horizontal(
                Button("Import Keypair", id="import-account-button"),
                Button("Close", id="cancel-button"),
            )

    def on_mount(self) -> None:
        table = cast(DataTable, self.query_one("#accounts-table"))
        table.add_columns("#", "Address", "")
        for index, public_key in enumerate(self.public_keys):
            marker = "current" if public_key == self.current else ""
            table.add_row(str(index), short_address(public_key, 8), marker, key=str(index))

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        self.dismiss(int(event.row_key.value))

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "import-account-button":
            self.dismiss("import")
        elif event.button.id == "cancel-button":
            self.dismiss(None)
