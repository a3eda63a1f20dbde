"""Confirmation, status and result screens shared by transfers and swaps."""

from typing import cast

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Label, Static

from solwallet.features.result.service import TransactionReport
from solwallet.models import NATIVE_DECIMALS
from solwallet.screens import BaseModalScreen
from solwallet.session import PreparedTransaction
from solwallet.shared.clipboard import copy_text
from solwallet.shared.logging import get_logger
from solwallet.shared.validation import format_display
from solwallet.transaction import SubmitterState

logger = get_logger(__name__)


def format_fee(lamports: int | None) -> str:
    if lamports is None:
        return "unknown"
    return f"{format_display(lamports, NATIVE_DECIMALS)} SOL"


class TransactionConfirmScreen(BaseModalScreen):
    """Shows what will be signed; dismisses with True to submit."""

    def __init__(
        self,
        title: str,
        details: list[tuple[str, str]],
        prepared: PreparedTransaction,
    ):
        super().__init__()
        self.dialog_title = title
        self.details = details
        self.prepared = prepared

    def compose(self) -> ComposeResult:
        pending = self.prepared.pending
        with Vertical():
            yield Label(self.dialog_title, id="confirm-title")
            for label, value in self.details:
                yield Static(f"{label}: {value}")
            yield Static(f"Network fee: {format_fee(pending.estimated_fee)}", id="confirm-fee")
            if pending.extra_native_cost:
                yield Static(
                    f"Account rent: {format_fee(pending.extra_native_cost)}",
                    id="confirm-rent",
                )
            if self.prepared.approved:
                yield Static("[green]Balance is sufficient[/green]", id="confirm-check")
            else:
                yield Static(f"[red]{self.prepared.check.reason}[/red]", id="confirm-check")
            yield Horizontal(
                Button(
                    "Confirm",
                    id="confirm-button",
                    variant="primary",
                    disabled=not self.prepared.approved,
                ),
                Button("Cancel", id="cancel-button"),
            )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "confirm-button" and self.prepared.approved:
            self.dismiss(True)
        elif event.button.id == "cancel-button":
            self.dismiss(False)


STATE_LABELS = {
    SubmitterState.SIMULATING: "Simulating",
    SubmitterState.SUBMITTING: "Submitting",
    SubmitterState.CONFIRMING: "Confirming",
    SubmitterState.CONFIRMED: "Confirmed",
    SubmitterState.REJECTED: "Rejected",
    SubmitterState.TIMED_OUT: "Timed out",
    SubmitterState.FAILED: "Failed",
}


class TransactionStatusScreen(BaseModalScreen):
    BINDINGS = []

    FRAMES = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]

    def __init__(self, description: str = ""):
        super().__init__()
        self.description = description
        self._state_label = "Preparing"
        self._step = 0
        self._elapsed_seconds = 0
        self._timers: list = []

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label("Transaction Status", id="confirm-title")
            yield Static(self.description, id="tx-status-description")
            yield Static(f"[yellow]{self._state_label}...[/yellow]", id="tx-status-value")
            yield Static("", id="tx-status-detail")
            yield Static("Elapsed: 0s", id="tx-status-elapsed")

    def on_mount(self) -> None:
        self._timers.append(self.set_interval(0.1, self._spin))
        self._timers.append(self.set_interval(1.0, self._tick))

    def on_unmount(self) -> None:
        for timer in self._timers:
            timer.stop()
        self._timers.clear()

    def _spin(self) -> None:
        self._step = (self._step + 1) % len(self.FRAMES)
        cast(Static, self.query_one("#tx-status-value")).update(
            f"[yellow]{self.FRAMES[self._step]} {self._state_label}...[/yellow]"
        )

    def _tick(self) -> None:
        self._elapsed_seconds += 1
        cast(Static, self.query_one("#tx-status-elapsed")).update(
            f"Elapsed: {self._elapsed_seconds}s"
        )

    def update_status(self, state: SubmitterState, detail: str = "") -> None:
        self._state_label = STATE_LABELS.get(state, state.value.title())
        cast(Static, self.query_one("#tx-status-detail")).update(f"[dim]{detail}[/dim]")


SEVERITY_COLORS = {"information": "green", "warning": "yellow", "error": "red"}


class TransactionResultScreen(BaseModalScreen):
    def __init__(self, report: TransactionReport):
        super().__init__()
        self.report = report

    def compose(self) -> ComposeResult:
        color = SEVERITY_COLORS.get(self.report.severity, "white")
        with Vertical():
            yield Label(self.report.title, id="result-title")
            yield Static(f"[{color}]{self.report.message}[/{color}]", id="result-message")
            if self.report.signature:
                yield Label("Signature:")
                yield Static(self.report.signature, id="signature-display")
            if self.report.explorer_url:
                yield Label(f"Explorer: {self.report.explorer_url}")
            if self.report.detail:
                yield Static(self.report.detail, id="result-detail")
            if self.report.retry_safe:
                yield Static("[dim]It is safe to try again.[/dim]")
            buttons = [Button("Close", id="close-button")]
            if self.report.signature:
                buttons.insert(
                    0, Button("Copy Signature", id="copy-signature-button", variant="primary")
                )
            yield Horizontal(*buttons)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "copy-signature-button" and self.report.signature:
            result = copy_text(self.report.signature, prefer_osc52=True)
            if result["success"]:
                self.notify("Signature copied to clipboard!", severity="information")
            else:
                logger.warning("Clipboard copy failed")
                self.notify("Could not copy to clipboard", severity="warning")
        elif event.button.id == "close-button":
            self.dismiss(None)
