"""Tests for balance reads and the refresh poller."""

import threading
from unittest.mock import MagicMock

import pytest

from solwallet.features.balances.service import BalanceOracle, BalancePoller
from solwallet.features.tokens.service import StaticTokenStore, TokenResolver, store_provider
from solwallet.models import USDC_MINT, BalanceSnapshot
from solwallet.shared.errors import LedgerError
from solwallet.shared.network import NetworkError, NetworkErrorType

OWNER = "7EcDhSYGxXyscszYEp35KHN8vvw3svAuLKTzXwCFLtV"
OTHER_OWNER = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
UNKNOWN_MINT = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"


def _token_account(pubkey, mint, amount, decimals):
    return {
        "pubkey": pubkey,
        "account": {
            "data": {
                "parsed": {
                    "info": {
                        "mint": mint,
                        "owner": OWNER,
                        "tokenAmount": {"amount": str(amount), "decimals": decimals},
                    }
                }
            }
        },
    }


@pytest.fixture
def resolver():
    return TokenResolver([store_provider(StaticTokenStore())])


@pytest.fixture
def ledger():
    ledger = MagicMock()
    ledger.get_balance.return_value = 2_000_000_000
    ledger.get_token_accounts_by_owner.return_value = [
        _token_account("acct1", USDC_MINT, 12_500_000, 6),
        _token_account("acct2", UNKNOWN_MINT, 42, 5),
    ]
    return ledger


class TestBalanceOracle:
    def test_fetch(self, ledger, resolver):
        snapshot = BalanceOracle(ledger, resolver).fetch(OWNER, "devnet")

        assert snapshot.available
        assert snapshot.native_lamports == 2_000_000_000
        assert [h.symbol for h in snapshot.holdings] == ["USDC", "DezX...B263"]
        usdc = snapshot.holding(USDC_MINT)
        assert str(usdc.display_balance) == "12.5"
        assert usdc.token_account == "acct1"

    def test_unknown_token_keeps_on_chain_decimals(self, ledger, resolver):
        snapshot = BalanceOracle(ledger, resolver).fetch(OWNER, "devnet")
        holding = snapshot.holding(UNKNOWN_MINT)
        assert holding.metadata.is_placeholder
        assert holding.decimals == 5

    def test_duplicate_accounts_are_counted_once(self, ledger, resolver):
        account = _token_account("acct1", USDC_MINT, 1, 6)
        ledger.get_token_accounts_by_owner.return_value = [account, account]

        snapshot = BalanceOracle(ledger, resolver).fetch(OWNER, "devnet")

        assert len(snapshot.holdings) == 1

    def test_unparseable_accounts_are_skipped(self, ledger, resolver):
        ledger.get_token_accounts_by_owner.return_value = [
            {"pubkey": "broken", "account": {"data": ["base64data", "base64"]}},
        ]
        snapshot = BalanceOracle(ledger, resolver).fetch(OWNER, "devnet")
        assert snapshot.holdings == ()

    @pytest.mark.parametrize(
        "error",
        [
            NetworkError(NetworkErrorType.CONNECTION_ERROR, "down"),
            LedgerError(-32005, "Node is behind"),
        ],
    )
    def test_failure_gives_unavailable_snapshot(self, ledger, resolver, error):
        ledger.get_balance.side_effect = error

        snapshot = BalanceOracle(ledger, resolver).fetch(OWNER, "devnet")

        assert not snapshot.available
        assert snapshot.native_lamports is None
        assert snapshot.owner == OWNER


class TestBalancePoller:
    def test_refresh_notifies_listeners(self, ledger, resolver):
        poller = BalancePoller(BalanceOracle(ledger, resolver), OWNER, "devnet")
        received = []
        poller.on_update(received.append)

        snapshot = poller.refresh()

        assert received == [snapshot]
        assert poller.snapshot is snapshot

    def test_listener_errors_are_contained(self, ledger, resolver):
        poller = BalancePoller(BalanceOracle(ledger, resolver), OWNER, "devnet")

        def broken(snapshot):
            raise RuntimeError("ui gone")

        poller.on_update(broken)
        assert poller.refresh() is not None

    def test_stale_snapshot_is_discarded_after_context_switch(self):
        """A read started for the old account must never be applied."""
        started = threading.Event()
        release = threading.Event()

        oracle = MagicMock()

        def slow_fetch(owner, network):
            started.set()
            release.wait(2.0)
            return BalanceSnapshot(owner=owner, network=network, native_lamports=1)

        oracle.fetch.side_effect = slow_fetch
        poller = BalancePoller(oracle, OWNER, "devnet")
        received = []
        poller.on_update(received.append)

        results = []
        worker = threading.Thread(target=lambda: results.append(poller.refresh()))
        worker.start()
        assert started.wait(2.0)

        poller.switch_context(OTHER_OWNER, "devnet")
        release.set()
        worker.join(2.0)

        assert results == [None]
        assert received == []
        assert poller.snapshot is None
        assert poller.context == (OTHER_OWNER, "devnet")

    def test_switch_context_clears_snapshot(self, ledger, resolver):
        poller = BalancePoller(BalanceOracle(ledger, resolver), OWNER, "devnet")
        poller.refresh()

        poller.switch_context(OWNER, "mainnet-beta")

        assert poller.snapshot is None
        assert poller.refresh().network == "mainnet-beta"

    def test_start_and_stop(self, ledger, resolver):
        poller = BalancePoller(BalanceOracle(ledger, resolver), OWNER, "devnet", interval_seconds=60)
        updated = threading.Event()
        poller.on_update(lambda snapshot: updated.set())

        poller.start()
        try:
            assert updated.wait(2.0)
        finally:
            poller.stop()

        assert poller._task is None

    def test_switch_context_restarts_running_poller(self, ledger, resolver):
        poller = BalancePoller(BalanceOracle(ledger, resolver), OWNER, "devnet", interval_seconds=60)
        poller.start()
        try:
            poller.switch_context(OTHER_OWNER, "devnet")
            assert poller._task is not None
        finally:
            poller.stop()
