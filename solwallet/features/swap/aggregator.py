"""Jupiter swap aggregator client (quote and build endpoints)."""

from __future__ import annotations

import logging
from typing import Any

from solwallet.models import Quote
from solwallet.shared.errors import BuildError, QuoteError
from solwallet.shared.network import NetworkClient, NetworkError, RetryConfig, TimeoutConfig

logger = logging.getLogger(__name__)

QUOTE_PATH = "/swap/v1/quote"
SWAP_PATH = "/swap/v1/swap"


class AggregatorClient:
    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout_config: TimeoutConfig | None = None,
        retry_config: RetryConfig | None = None,
        quote_ttl_seconds: float = 30.0,
    ):
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["x-api-key"] = api_key
        self._client = NetworkClient(
            base_url,
            timeout_config=timeout_config,
            retry_config=retry_config,
            headers=headers,
        )
        self.quote_ttl_seconds = quote_ttl_seconds

    def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int,
    ) -> Quote:
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": str(slippage_bps),
            "swapMode": "ExactIn",
        }
        try:
            data = self._client.get(QUOTE_PATH, context="Swap quote", params=params)
        except NetworkError as e:
            raise QuoteError(f"Quote request failed: {e}", detail=e.response_text) from e

        if not isinstance(data, dict) or data.get("error"):
            message = data.get("error") if isinstance(data, dict) else data
            raise QuoteError(f"No quote available: {message}")
        if not data.get("routePlan"):
            raise QuoteError("No route found for this token pair")

        try:
            quote = Quote.from_aggregator(data, ttl_seconds=self.quote_ttl_seconds)
        except (KeyError, TypeError, ValueError) as e:
            raise QuoteError(f"Malformed quote response: {e}") from e
        logger.debug(
            "Quote %s -> %s: in=%d out=%d via %d step(s)",
            input_mint,
            output_mint,
            quote.in_amount,
            quote.out_amount,
            len(quote.route),
        )
        return quote

    def build_swap(self, body: dict[str, Any]) -> dict[str, Any]:
        try:
            data = self._client.post(SWAP_PATH, context="Build swap", json=body)
        except NetworkError as e:
            raise BuildError(f"Swap build request failed: {e}", detail=e.response_text) from e
        if not isinstance(data, dict):
            raise BuildError("Malformed swap build response")
        if data.get("error"):
            raise BuildError(f"Swap build failed: {data['error']}")
        return data
