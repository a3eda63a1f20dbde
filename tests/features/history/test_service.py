"""Tests for paged transfer history."""

import threading
from unittest.mock import MagicMock

import pytest

from solwallet.features.history.service import (
    HistoryFeed,
    HistoryService,
    parse_transfer,
)
from solwallet.shared.network import NetworkError, NetworkErrorType

OWNER = "7EcDhSYGxXyscszYEp35KHN8vvw3svAuLKTzXwCFLtV"
OTHER = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
THIRD = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"
TOKEN_PROGRAM = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
COMPUTE_BUDGET_PROGRAM = "ComputeBudget111111111111111111111111111111"


def _transfer(source, destination, lamports):
    return {
        "program": "system",
        "programId": "11111111111111111111111111111111",
        "parsed": {
            "type": "transfer",
            "info": {"source": source, "destination": destination, "lamports": lamports},
        },
    }


def _transaction(*instructions, err=None, block_time=1_700_000_000, meta=True):
    return {
        "blockTime": block_time,
        "meta": {"err": err, "fee": 5000} if meta else None,
        "transaction": {"message": {"instructions": list(instructions)}},
    }


def _signatures(*names):
    return [{"signature": name, "err": None} for name in names]


@pytest.fixture
def ledger():
    return MagicMock()


class TestParseTransfer:
    def test_sent_transfer(self):
        transaction = _transaction(_transfer(OWNER, OTHER, 1_500_000_000))

        entry = parse_transfer(OWNER, "sig", transaction)

        assert entry.direction == "sent"
        assert entry.counterparty == OTHER
        assert entry.lamports == 1_500_000_000
        assert entry.status == "confirmed"
        assert entry.display_amount() == "-1.5 SOL"
        assert entry.timestamp.year == 2023

    def test_received_transfer(self):
        entry = parse_transfer(OWNER, "sig", _transaction(_transfer(OTHER, OWNER, 1)))

        assert entry.direction == "received"
        assert entry.counterparty == OTHER
        assert entry.display_amount() == "+0.000000001 SOL"

    def test_failed_transaction_is_marked(self):
        transaction = _transaction(
            _transfer(OWNER, OTHER, 10), err={"InstructionError": [0, "Custom"]}
        )

        entry = parse_transfer(OWNER, "sig", transaction)

        assert entry.failed
        assert entry.status == "failed"

    def test_picks_transfer_that_involves_owner(self):
        transaction = _transaction(
            _transfer(OTHER, THIRD, 99),
            _transfer(OTHER, OWNER, 5),
        )

        entry = parse_transfer(OWNER, "sig", transaction)

        assert entry.lamports == 5
        assert entry.direction == "received"

    @pytest.mark.parametrize(
        "transaction",
        [
            None,
            _transaction(_transfer(OWNER, OTHER, 1), meta=False),
            _transaction(_transfer(OWNER, OTHER, 1), block_time=None),
            _transaction(
                {
                    "program": "spl-token",
                    "programId": TOKEN_PROGRAM,
                    "parsed": {"type": "transfer", "info": {}},
                }
            ),
            _transaction({"programId": COMPUTE_BUDGET_PROGRAM, "data": "3DTZ"}),
            _transaction(_transfer(OTHER, THIRD, 1)),
        ],
    )
    def test_skips_non_transfers(self, transaction):
        assert parse_transfer(OWNER, "sig", transaction) is None

    def test_explorer_link(self):
        entry = parse_transfer(OWNER, "abc", _transaction(_transfer(OWNER, OTHER, 1)))

        assert entry.explorer_link("devnet") == "https://explorer.solana.com/tx/abc?cluster=devnet"
        assert entry.explorer_link("mainnet-beta", "Solscan") == "https://solscan.io/tx/abc"


class TestHistoryService:
    def test_page_parses_and_paginates(self, ledger):
        ledger.get_signatures_for_address.return_value = _signatures("s1", "s2")
        ledger.get_transaction.side_effect = [
            _transaction(_transfer(OWNER, OTHER, 10)),
            _transaction({"programId": COMPUTE_BUDGET_PROGRAM, "data": ""}),
        ]
        service = HistoryService(ledger, page_size=2)

        page = service.load_page(OWNER)

        ledger.get_signatures_for_address.assert_called_once_with(OWNER, limit=2, before=None)
        assert [entry.signature for entry in page.entries] == ["s1"]
        assert page.next_before == "s2"
        assert page.has_more

    def test_short_page_is_the_last(self, ledger):
        ledger.get_signatures_for_address.return_value = _signatures("s9")
        ledger.get_transaction.return_value = _transaction(_transfer(OTHER, OWNER, 1))

        page = HistoryService(ledger, page_size=10).load_page(OWNER, before="s8")

        ledger.get_signatures_for_address.assert_called_once_with(OWNER, limit=10, before="s8")
        assert not page.has_more

    def test_empty_page_keeps_cursor(self, ledger):
        ledger.get_signatures_for_address.return_value = []

        page = HistoryService(ledger).load_page(OWNER, before="s5")

        assert page.entries == ()
        assert page.next_before == "s5"
        assert not page.has_more

    def test_ledger_errors_propagate(self, ledger):
        ledger.get_signatures_for_address.side_effect = NetworkError(
            NetworkErrorType.CONNECTION_ERROR, "refused"
        )

        with pytest.raises(NetworkError):
            HistoryService(ledger).load_page(OWNER)

    def test_rejects_non_positive_page_size(self, ledger):
        with pytest.raises(ValueError):
            HistoryService(ledger, page_size=0)


class TestHistoryFeed:
    def test_load_more_uses_cursor(self, ledger):
        ledger.get_signatures_for_address.side_effect = [
            _signatures("s1", "s2"),
            _signatures("s3"),
        ]
        ledger.get_transaction.return_value = _transaction(_transfer(OWNER, OTHER, 1))
        feed = HistoryFeed(HistoryService(ledger, page_size=2), OWNER)

        assert feed.load_more()
        assert feed.has_more
        assert feed.load_more()

        assert [entry.signature for entry in feed.entries] == ["s1", "s2", "s3"]
        assert not feed.has_more
        second_call = ledger.get_signatures_for_address.call_args_list[1]
        assert second_call.kwargs["before"] == "s2"

    def test_load_more_after_last_page_does_not_call_ledger(self, ledger):
        ledger.get_signatures_for_address.return_value = []
        feed = HistoryFeed(HistoryService(ledger), OWNER)

        feed.load_more()
        feed.load_more()

        assert ledger.get_signatures_for_address.call_count == 1

    def test_refresh_starts_over(self, ledger):
        ledger.get_signatures_for_address.return_value = _signatures("s1")
        ledger.get_transaction.return_value = _transaction(_transfer(OWNER, OTHER, 1))
        feed = HistoryFeed(HistoryService(ledger), OWNER)

        feed.load_more()
        feed.refresh()

        assert [entry.signature for entry in feed.entries] == ["s1"]
        assert ledger.get_signatures_for_address.call_args.kwargs["before"] is None

    def test_failed_page_keeps_entries_and_cursor(self, ledger):
        ledger.get_signatures_for_address.side_effect = [
            _signatures("s1"),
            NetworkError(NetworkErrorType.TIMEOUT, "slow"),
        ]
        ledger.get_transaction.return_value = _transaction(_transfer(OWNER, OTHER, 1))
        feed = HistoryFeed(HistoryService(ledger, page_size=1), OWNER)

        feed.load_more()
        with pytest.raises(NetworkError):
            feed.load_more()

        assert [entry.signature for entry in feed.entries] == ["s1"]
        assert feed.has_more

    def test_page_for_previous_owner_is_dropped(self, ledger):
        started = threading.Event()
        release = threading.Event()

        def slow_signatures(address, limit=10, before=None):
            started.set()
            release.wait(2)
            return _signatures("old")

        ledger.get_signatures_for_address.side_effect = slow_signatures
        ledger.get_transaction.return_value = _transaction(_transfer(OWNER, OTHER, 1))
        feed = HistoryFeed(HistoryService(ledger), OWNER)
        results = []

        worker = threading.Thread(target=lambda: results.append(feed.load_more()))
        worker.start()
        assert started.wait(2)
        feed.reset(owner=OTHER)
        release.set()
        worker.join(2)

        assert results == [False]
        assert feed.owner == OTHER
        assert feed.entries == ()
        assert feed.has_more
