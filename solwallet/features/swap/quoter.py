"""Swap quote negotiation.

The quoter keeps at most one live quote for the current inputs. Every input
change bumps a generation counter; a response is applied only if the
generation it was requested under is still current, so the displayed output
always belongs to the most recent inputs.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from solwallet.models import Quote
from solwallet.shared.errors import QuoteError, ValidationError
from solwallet.shared.scheduler import RepeatingTask
from solwallet.shared.validation import AmountValidator, format_display

logger = logging.getLogger(__name__)

MAX_SLIPPAGE_BPS = 10_000
HIGH_SLIPPAGE_BPS = 500


class QuoteStatus(Enum):
    IDLE = "idle"
    FETCHING_QUOTE = "fetching_quote"
    QUOTE_READY = "quote_ready"
    QUOTE_ERROR = "quote_error"


class QuoteSource(Protocol):
    def get_quote(
        self, input_mint: str, output_mint: str, amount: int, slippage_bps: int
    ) -> Quote: ...


def validate_slippage(slippage_bps: int) -> int:
    if not 0 <= slippage_bps <= MAX_SLIPPAGE_BPS:
        raise ValidationError("Slippage must be between 0% and 100%")
    if slippage_bps > HIGH_SLIPPAGE_BPS:
        logger.warning(
            "High slippage tolerance (%.2f%%) may result in front-running",
            slippage_bps / 100,
        )
    return slippage_bps


@dataclass(frozen=True)
class QuoteRequest:
    input_mint: str
    input_decimals: int | None
    output_mint: str
    output_decimals: int | None
    amount: str
    slippage_bps: int = 50

    def fingerprint(self) -> tuple[str, str, int, int]:
        return (self.input_mint, self.output_mint, self.raw_amount(), self.slippage_bps)

    def raw_amount(self) -> int:
        if self.input_decimals is None:
            raise ValidationError("Input token decimals unknown")
        result = AmountValidator.to_raw_units(self.amount, self.input_decimals)
        if not result.is_valid:
            raise ValidationError(result.error_message or "Invalid amount")
        return result.normalized_value

    def is_complete(self) -> bool:
        if not self.input_mint or not self.output_mint:
            return False
        if self.input_mint == self.output_mint:
            return False
        if self.input_decimals is None or self.output_decimals is None:
            return False
        return AmountValidator.to_raw_units(self.amount, self.input_decimals).is_valid


@dataclass(frozen=True)
class QuoterState:
    status: QuoteStatus = QuoteStatus.IDLE
    request: QuoteRequest | None = None
    quote: Quote | None = None
    error: str | None = None
    generation: int = 0

    @property
    def output_display(self) -> str | None:
        if self.quote is None or self.request is None:
            return None
        return format_display(self.quote.out_amount, self.request.output_decimals or 0)


class SwapQuoter:
    def __init__(self, aggregator: QuoteSource, interval_seconds: float = 10.0):
        self.aggregator = aggregator
        self.interval_seconds = interval_seconds
        self._state = QuoterState()
        self._lock = threading.Lock()
        self._task: RepeatingTask | None = None
        self._listeners: list[Callable[[QuoterState], None]] = []

    @property
    def state(self) -> QuoterState:
        with self._lock:
            return self._state

    @property
    def output_display(self) -> str | None:
        return self.state.output_display

    def on_change(self, listener: Callable[[QuoterState], None]) -> None:
        self._listeners.append(listener)

    def _notify(self, state: QuoterState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error("Error in quote listener: %s", e)

    def set_inputs(self, request: QuoteRequest | None) -> QuoterState:
        if request is not None:
            validate_slippage(request.slippage_bps)

        with self._lock:
            generation = self._state.generation + 1
            if request is None or not request.is_complete():
                self._state = QuoterState(generation=generation)
            else:
                self._state = QuoterState(
                    status=QuoteStatus.FETCHING_QUOTE,
                    request=request,
                    generation=generation,
                )
            state = self._state

        self._notify(state)
        return state

    def refresh(self) -> QuoterState | None:
        """Fetch a quote for the current inputs; None if the inputs changed meanwhile."""
        with self._lock:
            generation = self._state.generation
            request = self._state.request

        if request is None:
            return None

        quote: Quote | None = None
        error: str | None = None
        try:
            quote = self.aggregator.get_quote(
                request.input_mint,
                request.output_mint,
                request.raw_amount(),
                request.slippage_bps,
            )
        except (QuoteError, ValidationError) as e:
            error = str(e)
            logger.warning("Quote failed: %s", e)

        with self._lock:
            if generation != self._state.generation:
                logger.debug("Discarding quote for superseded inputs")
                return None
            if quote is not None:
                self._state = QuoterState(
                    status=QuoteStatus.QUOTE_READY,
                    request=request,
                    quote=quote,
                    generation=generation,
                )
            else:
                self._state = QuoterState(
                    status=QuoteStatus.QUOTE_ERROR,
                    request=request,
                    error=error,
                    generation=generation,
                )
            state = self._state

        self._notify(state)
        return state

    def start_auto_refresh(self) -> None:
        self.stop()
        self._task = RepeatingTask(self.refresh, self.interval_seconds, name="quote-refresh")
        self._task.start()

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def reset(self) -> None:
        self.stop()
        self.set_inputs(None)

    def accepted_quote(self) -> Quote:
        state = self.state
        if state.status != QuoteStatus.QUOTE_READY or state.quote is None:
            raise QuoteError(state.error or "No quote available")
        if state.quote.is_stale():
            raise QuoteError("Quote is stale. Refresh before swapping.")
        return state.quote
