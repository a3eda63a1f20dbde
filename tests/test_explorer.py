import pytest

from solwallet.explorer import EXPLORERS, explorer_url, get_explorer

SIGNATURE = "5" * 88
ADDRESS = "7EcDhSYGxXyscszYEp35KHN8vvw3svAuLKTzXwCFLtV"


class TestExplorerUrl:
    def test_mainnet_has_no_cluster_param(self):
        assert explorer_url("tx", SIGNATURE) == f"https://explorer.solana.com/tx/{SIGNATURE}"

    def test_devnet_cluster_param(self):
        url = explorer_url("tx", SIGNATURE, "devnet")
        assert url.endswith(f"/tx/{SIGNATURE}?cluster=devnet")

    def test_localnet_uses_custom_cluster(self):
        url = explorer_url("address", ADDRESS, "localnet")
        assert url == f"https://explorer.solana.com/address/{ADDRESS}?cluster=custom"

    def test_solscan_account_path(self):
        url = explorer_url("address", ADDRESS, "mainnet-beta", "Solscan")
        assert url == f"https://solscan.io/account/{ADDRESS}"

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            explorer_url("block", "1")


@pytest.mark.unit
def test_unknown_explorer_falls_back_to_default():
    assert get_explorer("Nope") is EXPLORERS[0]
    assert get_explorer(None) is EXPLORERS[0]
