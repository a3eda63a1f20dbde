"""Tests for turning quotes into swap transactions."""

import base64
import time
from dataclasses import replace
from unittest.mock import MagicMock

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message, MessageV0
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from solwallet.features.fees.service import FeeEstimator
from solwallet.features.swap.service import SwapBuilder, SwapOptions
from solwallet.shared.errors import BuildError, QuoteError


def _encoded_transaction(payer, legacy=False):
    instruction = transfer(
        TransferParams(from_pubkey=payer.pubkey(), to_pubkey=Keypair().pubkey(), lamports=1)
    )
    blockhash = Hash.new_unique()
    if legacy:
        message = Message.new_with_blockhash([instruction], payer.pubkey(), blockhash)
    else:
        message = MessageV0.try_compile(payer.pubkey(), [instruction], [], blockhash)
    transaction = VersionedTransaction.populate(message, [Signature.default()])
    return base64.b64encode(bytes(transaction)).decode()


@pytest.fixture
def aggregator():
    return MagicMock()


@pytest.fixture
def builder(aggregator, mock_ledger):
    return SwapBuilder(aggregator, mock_ledger, FeeEstimator(mock_ledger))


class TestRequestBody:
    def test_defaults(self, make_quote):
        quote = make_quote()
        body = SwapBuilder.request_body(quote, "owner", SwapOptions())

        assert body == {
            "quoteResponse": quote.raw,
            "userPublicKey": "owner",
            "wrapAndUnwrapSol": True,
            "dynamicComputeUnitLimit": True,
        }

    def test_optional_fields(self, make_quote):
        options = SwapOptions(priority_fee_lamports=1000, dynamic_slippage_max_bps=300)
        body = SwapBuilder.request_body(make_quote(), "owner", options)

        assert body["prioritizationFeeLamports"] == 1000
        assert body["dynamicSlippage"] == {"maxBps": 300}


class TestSwapBuilder:
    def test_build(self, builder, aggregator, mock_ledger, sender_keypair, make_quote):
        owner = str(sender_keypair.pubkey())
        aggregator.build_swap.return_value = {
            "swapTransaction": _encoded_transaction(sender_keypair)
        }

        pending = builder.build(make_quote(), owner)

        assert pending.kind == "swap"
        assert pending.fee_payer == owner
        assert pending.signers == [owner]
        assert isinstance(pending.compiled_message, MessageV0)
        assert pending.expiry is mock_ledger.get_latest_blockhash.return_value
        assert pending.estimated_fee == 5000
        assert aggregator.build_swap.call_args.args[0]["userPublicKey"] == owner

    def test_stale_quote_is_not_built(self, builder, aggregator, sender_keypair, make_quote):
        stale = replace(make_quote(), fetched_at=time.monotonic() - 60)

        with pytest.raises(QuoteError, match="stale"):
            builder.build(stale, str(sender_keypair.pubkey()))
        aggregator.build_swap.assert_not_called()

    def test_missing_transaction(self, builder, aggregator, sender_keypair, make_quote):
        aggregator.build_swap.return_value = {"lastValidBlockHeight": 1}
        with pytest.raises(BuildError, match="no transaction"):
            builder.build(make_quote(), str(sender_keypair.pubkey()))

    def test_undecodable_transaction(self, builder, aggregator, sender_keypair, make_quote):
        aggregator.build_swap.return_value = {"swapTransaction": "%%%not-base64"}
        with pytest.raises(BuildError, match="decode"):
            builder.build(make_quote(), str(sender_keypair.pubkey()))

    def test_wrong_fee_payer(self, builder, aggregator, sender_keypair, make_quote):
        aggregator.build_swap.return_value = {"swapTransaction": _encoded_transaction(Keypair())}
        with pytest.raises(BuildError, match="fee payer"):
            builder.build(make_quote(), str(sender_keypair.pubkey()))

    def test_legacy_message_rejected(self, builder, aggregator, sender_keypair, make_quote):
        aggregator.build_swap.return_value = {
            "swapTransaction": _encoded_transaction(sender_keypair, legacy=True)
        }
        with pytest.raises(BuildError, match="v0"):
            builder.build(make_quote(), str(sender_keypair.pubkey()))
