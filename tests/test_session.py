"""Tests for the wallet session wiring."""

import time
from unittest.mock import MagicMock, patch

import pytest
from solders.keypair import Keypair

from solwallet.config import WalletConfig
from solwallet.features.swap.quoter import QuoteRequest, QuoteStatus
from solwallet.features.tokens.service import StaticTokenStore
from solwallet.models import USDC_MINT, WRAPPED_SOL_MINT, Asset, Quote
from solwallet.session import WalletSession
from solwallet.shared.errors import InsufficientFundsError, QuoteError, ValidationError
from solwallet.transaction import SubmitterState

LAMPORTS_PER_SOL = 1_000_000_000


def _quote_data():
    return {
        "inputMint": WRAPPED_SOL_MINT,
        "outputMint": USDC_MINT,
        "inAmount": "500000000",
        "outAmount": "75000000",
        "otherAmountThreshold": "74625000",
        "slippageBps": 50,
        "priceImpactPct": "0",
        "routePlan": [
            {
                "swapInfo": {
                    "label": "Orca",
                    "inputMint": WRAPPED_SOL_MINT,
                    "outputMint": USDC_MINT,
                    "inAmount": "500000000",
                    "outAmount": "75000000",
                },
                "percent": 100,
            }
        ],
    }


@pytest.fixture
def config():
    return WalletConfig(confirm_poll_interval=0)


@pytest.fixture
def ledgers(mock_ledger):
    """Ledger per network; devnet uses the shared mock ledger."""
    created = {"devnet": mock_ledger}

    def factory(network):
        if network not in created:
            ledger = MagicMock()
            ledger.get_balance.return_value = 7
            ledger.get_token_accounts_by_owner.return_value = []
            created[network] = ledger
        return created[network]

    return created, factory


@pytest.fixture
def session(config, sender_keypair, ledgers):
    _, factory = ledgers
    token_client = MagicMock()
    token_client.get_optional.return_value = None
    session = WalletSession(
        config,
        sender_keypair,
        aggregator=MagicMock(),
        store=StaticTokenStore(),
        ledger_factory=factory,
        token_client=token_client,
    )
    yield session
    session.close()


class TestWalletSession:
    def test_owner_and_network(self, session, sender_keypair):
        assert session.owner == str(sender_keypair.pubkey())
        assert session.network == "devnet"
        assert session.balances is None

    def test_prepare_and_confirm_native_transfer(self, session, recipient_keypair, mock_ledger):
        session.poller.refresh()
        assert session.balances.native_lamports == LAMPORTS_PER_SOL

        prepared = session.prepare_transfer(
            str(recipient_keypair.pubkey()), Asset.native(), "0.5"
        )
        assert prepared.approved
        assert prepared.check.native_after == LAMPORTS_PER_SOL - 500_000_000 - 5000

        states = []
        report = session.confirm(prepared, on_state_change=lambda s, d: states.append(s))

        assert report.title == "Transaction confirmed"
        assert states[-1] == SubmitterState.CONFIRMED
        mock_ledger.send_transaction.assert_called_once()
        # Balances are re-read after a signature exists.
        assert mock_ledger.get_balance.call_count == 2

    def test_insufficient_transfer_is_not_submitted(self, session, recipient_keypair, mock_ledger):
        mock_ledger.get_balance.return_value = 500_000_000
        session.poller.refresh()

        prepared = session.prepare_transfer(
            str(recipient_keypair.pubkey()), Asset.native(), "0.5"
        )

        assert not prepared.approved
        with pytest.raises(InsufficientFundsError):
            session.confirm(prepared)
        mock_ledger.send_transaction.assert_not_called()

    def test_transfer_without_balances_is_not_approved(self, session, recipient_keypair):
        prepared = session.prepare_transfer(
            str(recipient_keypair.pubkey()), Asset.native(), "0.1"
        )
        assert prepared.check.reason == "SOL balance is unavailable"

    def test_switch_network_rewires_ledger(self, session, ledgers):
        created, _ = ledgers
        session.switch_network("mainnet-beta")

        assert session.network == "mainnet-beta"
        assert session.ledger is created["mainnet-beta"]
        assert session.reporter.network == "mainnet-beta"
        assert session.poller.context == (session.owner, "mainnet-beta")
        assert session.poller.refresh().native_lamports == 7

    def test_switch_network_rejects_unknown(self, session):
        with pytest.raises(ValidationError):
            session.switch_network("moonnet")
        assert session.network == "devnet"

    def test_switch_account_resets_swap_and_balances(self, session):
        session.poller.refresh()
        session.quoter.set_inputs(
            QuoteRequest(WRAPPED_SOL_MINT, 9, USDC_MINT, 6, "1")
        )
        other = Keypair()

        session.switch_account(other)

        assert session.owner == str(other.pubkey())
        assert session.balances is None
        assert session.quoter.state.status == QuoteStatus.IDLE

    def test_history_follows_account_and_network(self, session, ledgers, mock_ledger):
        created, _ = ledgers
        mock_ledger.get_signatures_for_address.return_value = []
        session.history.refresh()
        mock_ledger.get_signatures_for_address.assert_called_once_with(
            session.owner, limit=10, before=None
        )

        other = Keypair()
        session.switch_account(other)
        assert session.history.owner == str(other.pubkey())
        assert session.history.entries == ()

        session.switch_network("mainnet-beta")
        created["mainnet-beta"].get_signatures_for_address.return_value = []
        session.history.load_more()
        created["mainnet-beta"].get_signatures_for_address.assert_called_once_with(
            str(other.pubkey()), limit=10, before=None
        )

    def test_set_swap_inputs_starts_and_stops_refresh(self, session):
        session.aggregator.get_quote.return_value = Quote.from_aggregator(_quote_data())

        state = session.set_swap_inputs(QuoteRequest(WRAPPED_SOL_MINT, 9, USDC_MINT, 6, "0.5"))
        assert state.status == QuoteStatus.FETCHING_QUOTE
        assert session.quoter._task is not None

        session.set_swap_inputs(None)
        assert session.quoter._task is None

    def test_prepare_swap_requires_quote(self, session):
        with pytest.raises(QuoteError):
            session.prepare_swap()

    def test_prepare_swap_checks_native_input(self, session, mock_ledger):
        session.poller.refresh()
        quote = Quote.from_aggregator(_quote_data())
        session.aggregator.get_quote.return_value = quote
        session.quoter.set_inputs(QuoteRequest(WRAPPED_SOL_MINT, 9, USDC_MINT, 6, "0.5"))
        session.quoter.refresh()

        pending = MagicMock()
        pending.estimated_fee = 5000
        pending.extra_native_cost = 0
        session.swap_builder = MagicMock()
        session.swap_builder.build.return_value = pending

        prepared = session.prepare_swap()

        assert prepared.quote is quote
        assert prepared.approved
        assert prepared.check.raw_amount == 500_000_000
        session.swap_builder.build.assert_called_once_with(quote, session.owner, None)

    def _prepared_swap(self, session):
        session.poller.refresh()
        session.aggregator.get_quote.return_value = Quote.from_aggregator(_quote_data())
        session.quoter.set_inputs(QuoteRequest(WRAPPED_SOL_MINT, 9, USDC_MINT, 6, "0.5"))
        session.quoter.refresh()
        pending = MagicMock()
        pending.estimated_fee = 5000
        pending.extra_native_cost = 0
        session.swap_builder = MagicMock()
        session.swap_builder.build.return_value = pending
        session.submitter = MagicMock()
        return session.prepare_swap()

    def test_confirm_rejects_quote_that_went_stale(self, session):
        prepared = self._prepared_swap(session)
        assert prepared.approved

        with patch("solwallet.models.time.monotonic", return_value=time.monotonic() + 600):
            with pytest.raises(QuoteError, match="stale"):
                session.confirm(prepared)

        session.submitter.execute.assert_not_called()

    def test_confirm_rejects_quote_for_superseded_inputs(self, session):
        prepared = self._prepared_swap(session)

        session.quoter.set_inputs(QuoteRequest(WRAPPED_SOL_MINT, 9, USDC_MINT, 6, "0.1"))

        with pytest.raises(QuoteError, match="inputs changed"):
            session.confirm(prepared)
        session.submitter.execute.assert_not_called()

    def test_confirm_rejects_quote_after_network_switch(self, session):
        prepared = self._prepared_swap(session)
        submitter = session.submitter

        session.switch_network("mainnet-beta")

        with pytest.raises(QuoteError):
            session.confirm(prepared)
        submitter.execute.assert_not_called()

    def test_confirm_submits_current_quote(self, session):
        prepared = self._prepared_swap(session)
        session.reporter = MagicMock()

        session.confirm(prepared)

        session.submitter.execute.assert_called_once_with(
            prepared.pending, [session.keypair]
        )
