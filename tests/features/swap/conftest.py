import pytest

from solwallet.models import USDC_MINT, WRAPPED_SOL_MINT, Quote


def _quote_response(in_amount=1_000_000_000, out_amount=150_000_000):
    return {
        "inputMint": WRAPPED_SOL_MINT,
        "outputMint": USDC_MINT,
        "inAmount": str(in_amount),
        "outAmount": str(out_amount),
        "otherAmountThreshold": str(out_amount * 995 // 1000),
        "swapMode": "ExactIn",
        "slippageBps": 50,
        "priceImpactPct": "0.0012",
        "routePlan": [
            {
                "swapInfo": {
                    "ammKey": "amm1",
                    "label": "Orca",
                    "inputMint": WRAPPED_SOL_MINT,
                    "outputMint": USDC_MINT,
                    "inAmount": str(in_amount),
                    "outAmount": str(out_amount),
                    "feeAmount": "2500",
                    "feeMint": WRAPPED_SOL_MINT,
                },
                "percent": 100,
            }
        ],
    }


@pytest.fixture
def quote_response():
    """Fixture providing a factory for aggregator quote payloads"""
    return _quote_response


@pytest.fixture
def make_quote():
    def factory(in_amount=1_000_000_000, out_amount=150_000_000, ttl_seconds=30.0):
        return Quote.from_aggregator(_quote_response(in_amount, out_amount), ttl_seconds)

    return factory
