"""Swap event handlers for the Solana Quick Wallet TUI."""

from __future__ import annotations

import threading
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, cast

from textual.widgets import Button, Input, Select, Static

from solwallet.features.swap.quoter import QuoteRequest, QuoterState, QuoteStatus
from solwallet.features.swap.screen import SwapConfirmScreen, describe_status, quote_details
from solwallet.features.swap.service import SwapOptions
from solwallet.features.tokens.service import WELL_KNOWN_TOKENS
from solwallet.models import BalanceSnapshot, Quote, TokenMetadata
from solwallet.session import PreparedTransaction, WalletSession
from solwallet.shared.errors import ValidationError
from solwallet.shared.logging import format_error_for_user, get_logger

if TYPE_CHECKING:
    from solwallet.__main__ import WalletApp

logger = get_logger(__name__)


def parse_slippage_percent(text: str) -> int:
    """Convert a percentage such as ``"0.5"`` to basis points."""
    try:
        value = Decimal(text.strip() or "0")
    except InvalidOperation:
        raise ValidationError("Slippage must be a number")
    if not value.is_finite():
        raise ValidationError("Slippage must be a number")
    if not 0 <= value <= 100:
        raise ValidationError("Slippage must be between 0% and 100%")
    return int((value * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


class SwapHandlersMixin:
    """Mixin class providing swap-related event handlers for WalletApp."""

    session: WalletSession | None
    _swap_tokens: dict[str, TokenMetadata]
    _swap_options: list[tuple[str, str]]

    def update_swap_token_options(self: "WalletApp", snapshot: BalanceSnapshot) -> None:
        tokens = {token.mint: token for token in WELL_KNOWN_TOKENS}
        for holding in snapshot.holdings:
            tokens.setdefault(holding.mint, holding.metadata)
            if tokens[holding.mint].decimals is None:
                tokens[holding.mint] = TokenMetadata(
                    mint=holding.mint,
                    symbol=holding.symbol,
                    name=holding.metadata.name,
                    decimals=holding.decimals,
                )
        self._swap_tokens = tokens

        options = [(token.symbol, mint) for mint, token in tokens.items()]
        if options == self._swap_options:
            return
        self._swap_options = options
        for select_id in ("#swap-input-select", "#swap-output-select"):
            select = cast(Select, self.query_one(select_id))
            current = select.value
            select.set_options(options)
            if current in tokens:
                select.value = current

    def _swap_symbols(self: "WalletApp") -> dict[str, str]:
        return {mint: token.symbol for mint, token in self._swap_tokens.items()}

    def _build_quote_request(self: "WalletApp") -> QuoteRequest | None:
        input_mint = cast(Select, self.query_one("#swap-input-select")).value
        output_mint = cast(Select, self.query_one("#swap-output-select")).value
        amount = cast(Input, self.query_one("#swap-amount-input")).value.strip()
        slippage = cast(Input, self.query_one("#slippage-input")).value

        if not isinstance(input_mint, str) or not isinstance(output_mint, str):
            return None
        if not amount:
            return None

        input_token = self._swap_tokens.get(input_mint)
        output_token = self._swap_tokens.get(output_mint)
        return QuoteRequest(
            input_mint=input_mint,
            input_decimals=input_token.decimals if input_token else None,
            output_mint=output_mint,
            output_decimals=output_token.decimals if output_token else None,
            amount=amount,
            slippage_bps=parse_slippage_percent(slippage),
        )

    def on_swap_inputs_changed(self: "WalletApp") -> None:
        if self.session is None:
            return
        status = cast(Static, self.query_one("#quote-status"))
        try:
            request = self._build_quote_request()
            self.session.set_swap_inputs(request)
        except ValidationError as e:
            self.session.set_swap_inputs(None)
            status.update(f"[red]{e.message}[/red]")

    def render_quote_state(self: "WalletApp", state: QuoterState) -> None:
        cast(Static, self.query_one("#quote-status")).update(describe_status(state))
        cast(Static, self.query_one("#swap-output")).update(state.output_display or "-")

        details = cast(Static, self.query_one("#quote-details"))
        if state.status == QuoteStatus.QUOTE_READY and state.quote and state.request:
            lines = quote_details(state.quote, state.request, self._swap_symbols())
            details.update("\n".join(f"{label}: {value}" for label, value in lines[2:]))
        else:
            details.update("")

        if not self._submitting:
            cast(Button, self.query_one("#swap-button")).disabled = (
                state.status != QuoteStatus.QUOTE_READY
            )

    def swap_now(self: "WalletApp") -> None:
        if self.session is None or self._submitting:
            return

        state = self.session.quoter.state
        result = cast(Static, self.query_one("#swap-result"))
        if state.status != QuoteStatus.QUOTE_READY or state.request is None:
            result.update("[red]Error: No quote available[/red]")
            return

        result.update("[yellow]Building swap...[/yellow]")
        session = self.session
        request = state.request

        def worker() -> None:
            try:
                prepared = session.prepare_swap(SwapOptions())
                self.call_from_thread(
                    self._on_swap_prepared, prepared, prepared.quote, request, None
                )
            except Exception as e:
                logger.error("Preparing swap failed: %s", e, exc_info=True)
                self.call_from_thread(self._on_swap_prepared, None, None, request, e)

        threading.Thread(target=worker, daemon=True).start()

    def _on_swap_prepared(
        self: "WalletApp",
        prepared: PreparedTransaction | None,
        quote: Quote | None,
        request: QuoteRequest,
        error: Exception | None,
    ) -> None:
        result = cast(Static, self.query_one("#swap-result"))
        if error is not None or prepared is None or quote is None:
            result.update(f"[red]Error: {format_error_for_user(error or 'unknown')}[/red]")
            return

        result.update("")

        def on_confirmed(confirmed: bool | None) -> None:
            if confirmed:
                self.submit_prepared(prepared, "#swap-result")

        self.push_screen(
            SwapConfirmScreen(prepared, quote, request, self._swap_symbols()),
            on_confirmed,
        )
