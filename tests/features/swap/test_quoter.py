"""Tests for swap quote negotiation."""

import threading
import time
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from solwallet.features.swap.quoter import (
    QuoteRequest,
    QuoterState,
    QuoteStatus,
    SwapQuoter,
    validate_slippage,
)
from solwallet.models import USDC_MINT, WRAPPED_SOL_MINT
from solwallet.shared.errors import QuoteError, ValidationError


def _request(amount="1", slippage_bps=50):
    return QuoteRequest(
        input_mint=WRAPPED_SOL_MINT,
        input_decimals=9,
        output_mint=USDC_MINT,
        output_decimals=6,
        amount=amount,
        slippage_bps=slippage_bps,
    )


class TestQuoteRequest:
    def test_raw_amount(self):
        assert _request("1.5").raw_amount() == 1_500_000_000

    def test_fingerprint(self):
        assert _request("1").fingerprint() == (WRAPPED_SOL_MINT, USDC_MINT, 10**9, 50)

    @pytest.mark.parametrize("amount", ["", "0", "abc", "-1", "1e100", "1" + "0" * 75])
    def test_incomplete_amounts(self, amount):
        assert not _request(amount).is_complete()

    def test_same_mint_is_incomplete(self):
        assert not replace(_request(), output_mint=WRAPPED_SOL_MINT).is_complete()

    def test_unknown_decimals_is_incomplete(self):
        assert not replace(_request(), output_decimals=None).is_complete()
        with pytest.raises(ValidationError):
            replace(_request(), input_decimals=None).raw_amount()


class TestValidateSlippage:
    def test_accepts_range(self):
        assert validate_slippage(0) == 0
        assert validate_slippage(10_000) == 10_000

    @pytest.mark.parametrize("bps", [-1, 10_001])
    def test_rejects_out_of_range(self, bps):
        with pytest.raises(ValidationError):
            validate_slippage(bps)


class TestSwapQuoter:
    def test_set_inputs_moves_to_fetching(self):
        quoter = SwapQuoter(MagicMock())
        state = quoter.set_inputs(_request())
        assert state.status == QuoteStatus.FETCHING_QUOTE
        assert state.generation == 1

    def test_incomplete_inputs_go_idle(self):
        quoter = SwapQuoter(MagicMock())
        state = quoter.set_inputs(_request(""))
        assert state.status == QuoteStatus.IDLE
        assert state.request is None
        assert quoter.refresh() is None

    def test_refresh_applies_quote(self, make_quote):
        aggregator = MagicMock()
        aggregator.get_quote.return_value = make_quote()
        quoter = SwapQuoter(aggregator)
        seen = []
        quoter.on_change(seen.append)

        quoter.set_inputs(_request("1"))
        state = quoter.refresh()

        assert state.status == QuoteStatus.QUOTE_READY
        assert quoter.output_display == "150"
        aggregator.get_quote.assert_called_once_with(WRAPPED_SOL_MINT, USDC_MINT, 10**9, 50)
        assert [s.status for s in seen] == [QuoteStatus.FETCHING_QUOTE, QuoteStatus.QUOTE_READY]

    def test_quote_error_is_reported(self):
        aggregator = MagicMock()
        aggregator.get_quote.side_effect = QuoteError("No route found for this token pair")
        quoter = SwapQuoter(aggregator)

        quoter.set_inputs(_request())
        state = quoter.refresh()

        assert state.status == QuoteStatus.QUOTE_ERROR
        assert state.error == "No route found for this token pair"
        assert state.output_display is None

    def test_response_for_superseded_inputs_is_discarded(self, make_quote):
        """A slow quote for old inputs never overwrites a newer request."""
        first_started = threading.Event()
        release_first = threading.Event()

        def get_quote(input_mint, output_mint, amount, slippage_bps):
            if amount == 10**9:
                first_started.set()
                release_first.wait(2.0)
                return make_quote(in_amount=amount, out_amount=150_000_000)
            return make_quote(in_amount=amount, out_amount=300_000_000)

        aggregator = MagicMock()
        aggregator.get_quote.side_effect = get_quote
        quoter = SwapQuoter(aggregator)

        quoter.set_inputs(_request("1"))
        results = []
        worker = threading.Thread(target=lambda: results.append(quoter.refresh()))
        worker.start()
        assert first_started.wait(2.0)

        quoter.set_inputs(_request("2"))
        release_first.set()
        worker.join(2.0)

        assert results == [None]
        assert quoter.state.status == QuoteStatus.FETCHING_QUOTE
        assert quoter.output_display is None

        state = quoter.refresh()
        assert state.quote.out_amount == 300_000_000
        assert state.request.amount == "2"
        assert quoter.output_display == "300"

    def test_accepted_quote(self, make_quote):
        aggregator = MagicMock()
        aggregator.get_quote.return_value = make_quote()
        quoter = SwapQuoter(aggregator)
        quoter.set_inputs(_request())
        quoter.refresh()

        assert quoter.accepted_quote().out_amount == 150_000_000

    def test_accepted_quote_requires_ready_state(self):
        quoter = SwapQuoter(MagicMock())
        with pytest.raises(QuoteError, match="No quote available"):
            quoter.accepted_quote()

    def test_accepted_quote_rejects_stale(self, make_quote):
        aggregator = MagicMock()
        aggregator.get_quote.return_value = replace(
            make_quote(ttl_seconds=30), fetched_at=time.monotonic() - 31
        )
        quoter = SwapQuoter(aggregator)
        quoter.set_inputs(_request())
        quoter.refresh()

        with pytest.raises(QuoteError, match="stale"):
            quoter.accepted_quote()

    def test_reset_clears_state(self, make_quote):
        aggregator = MagicMock()
        aggregator.get_quote.return_value = make_quote()
        quoter = SwapQuoter(aggregator)
        quoter.set_inputs(_request())
        quoter.refresh()

        quoter.reset()

        assert quoter.state == QuoterState(generation=2)

    def test_auto_refresh_fetches_and_stops(self, make_quote):
        fetched = threading.Event()
        aggregator = MagicMock()

        def get_quote(*args):
            fetched.set()
            return make_quote()

        aggregator.get_quote.side_effect = get_quote
        quoter = SwapQuoter(aggregator, interval_seconds=60)
        quoter.set_inputs(_request())

        quoter.start_auto_refresh()
        try:
            assert fetched.wait(2.0)
        finally:
            quoter.stop()

        assert quoter._task is None

    def test_restarting_refresh_does_not_block_on_inflight_quote(self, make_quote):
        in_flight = threading.Event()
        release = threading.Event()
        aggregator = MagicMock()

        def get_quote(input_mint, output_mint, amount, slippage_bps):
            if amount == 10**9:
                in_flight.set()
                release.wait(5.0)
            return make_quote(in_amount=amount)

        aggregator.get_quote.side_effect = get_quote
        quoter = SwapQuoter(aggregator, interval_seconds=60)
        quoter.set_inputs(_request("1"))
        quoter.start_auto_refresh()
        try:
            assert in_flight.wait(2.0)

            started = time.monotonic()
            quoter.set_inputs(_request("2"))
            quoter.start_auto_refresh()
            elapsed = time.monotonic() - started
        finally:
            release.set()
            quoter.stop()

        assert elapsed < 0.5

    def test_invalid_slippage_rejected(self):
        with pytest.raises(ValidationError):
            SwapQuoter(MagicMock()).set_inputs(_request(slippage_bps=20_000))
