import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from solders.hash import Hash
from solders.keypair import Keypair

from solwallet.models import ExpiryReference

LAMPORTS_PER_SOL = 1_000_000_000


@pytest.fixture
def sender_keypair():
    """Fixture providing a random signing keypair"""
    return Keypair()


@pytest.fixture
def recipient_keypair():
    return Keypair()


@pytest.fixture
def expiry():
    """Fixture providing a freshly fetched blockhash"""
    return ExpiryReference(str(Hash.new_unique()), 1000)


@pytest.fixture
def mock_ledger(expiry):
    """Fixture providing a ledger that accepts and confirms everything"""
    ledger = MagicMock()
    ledger.get_latest_blockhash.return_value = expiry
    ledger.get_fee_for_message.return_value = 5000
    ledger.simulate_transaction.return_value = {"err": None, "logs": []}
    ledger.send_transaction.return_value = "5" * 88
    ledger.get_signature_status.return_value = {
        "confirmationStatus": "confirmed",
        "err": None,
        "slot": 1,
    }
    ledger.get_block_height.return_value = 10
    ledger.get_account_info.return_value = None
    ledger.get_minimum_balance_for_rent_exemption.return_value = 2039280
    ledger.get_balance.return_value = LAMPORTS_PER_SOL
    ledger.get_token_accounts_by_owner.return_value = []
    return ledger


@pytest.fixture(autouse=True)
def isolate_wallet_storage(monkeypatch, request):
    """Run tests with isolated wallet storage unless explicitly running live."""
    if request.node.get_closest_marker("integration"):
        yield
        return

    with tempfile.TemporaryDirectory(prefix="sol-wallet-test-") as tmp_dir:
        monkeypatch.setenv("SOL_WALLET_DIR", str(Path(tmp_dir)))
        yield
