"""Block explorer links for transactions and accounts."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ExplorerInfo:
    name: str
    url: str
    tx_path: str
    account_path: str
    network_param: str = "?cluster="


EXPLORERS: tuple[ExplorerInfo, ...] = (
    ExplorerInfo(
        name="Solana Explorer",
        url="https://explorer.solana.com",
        tx_path="/tx",
        account_path="/address",
    ),
    ExplorerInfo(
        name="Solscan",
        url="https://solscan.io",
        tx_path="/tx",
        account_path="/account",
    ),
    ExplorerInfo(
        name="SolanaFM",
        url="https://solana.fm",
        tx_path="/tx",
        account_path="/address",
    ),
)

MAINNET = "mainnet-beta"


def get_explorer(name: str | None) -> ExplorerInfo:
    for explorer in EXPLORERS:
        if explorer.name == name:
            return explorer
    return EXPLORERS[0]


def explorer_url(
    kind: str,
    value: str,
    network: str = MAINNET,
    explorer_name: str | None = None,
) -> str:
    """Link to a transaction (``kind="tx"``) or account (``kind="address"``)."""
    if kind not in ("tx", "address"):
        raise ValueError(f"Unknown explorer link kind: {kind}")
    explorer = get_explorer(explorer_name)
    path = explorer.tx_path if kind == "tx" else explorer.account_path
    url = f"{explorer.url}{path}/{value}"
    if network != MAINNET:
        if network == "localnet":
            # Explorers reach a local validator through a custom RPC URL.
            url += f"{explorer.network_param}custom"
        else:
            url += f"{explorer.network_param}{network}"
    return url
