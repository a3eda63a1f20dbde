"""Swap-specific views."""

from solwallet.features.swap.quoter import QuoteRequest, QuoterState, QuoteStatus
from solwallet.features.transfer.screen import TransactionConfirmScreen
from solwallet.models import Quote
from solwallet.session import PreparedTransaction
from solwallet.shared.validation import format_display

STATUS_TEXT = {
    QuoteStatus.IDLE: "[dim]Enter an amount to get a quote[/dim]",
    QuoteStatus.FETCHING_QUOTE: "[yellow]Fetching quote...[/yellow]",
    QuoteStatus.QUOTE_READY: "[green]Quote ready[/green]",
}


def describe_status(state: QuoterState) -> str:
    if state.status == QuoteStatus.QUOTE_ERROR:
        return f"[red]Quote failed: {state.error}[/red]"
    return STATUS_TEXT[state.status]


def quote_details(
    quote: Quote,
    request: QuoteRequest,
    symbols: dict[str, str],
) -> list[tuple[str, str]]:
    in_symbol = symbols.get(quote.input_mint, quote.input_mint)
    out_symbol = symbols.get(quote.output_mint, quote.output_mint)
    out_decimals = request.output_decimals or 0
    in_decimals = request.input_decimals or 0

    rate = quote.rate().scaleb(in_decimals - out_decimals)
    details = [
        ("You pay", f"{format_display(quote.in_amount, in_decimals)} {in_symbol}"),
        ("You receive", f"{format_display(quote.out_amount, out_decimals)} {out_symbol}"),
        (
            "Minimum received",
            f"{format_display(quote.other_amount_threshold, out_decimals)} {out_symbol}",
        ),
        ("Rate", f"1 {in_symbol} = {rate:.6f} {out_symbol}"),
        ("Price impact", f"{quote.price_impact_pct * 100:.4f}%"),
        ("Slippage", f"{quote.slippage_bps / 100:.2f}%"),
    ]
    route = " -> ".join(step.label or "?" for step in quote.route)
    if route:
        details.append(("Route", route))
    return details


class SwapConfirmScreen(TransactionConfirmScreen):
    def __init__(
        self,
        prepared: PreparedTransaction,
        quote: Quote,
        request: QuoteRequest,
        symbols: dict[str, str],
    ):
        super().__init__(
            "Confirm Swap", quote_details(quote, request, symbols), prepared
        )
        self.quote = quote
