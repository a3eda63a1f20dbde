"""Balance reads and periodic refresh for the active account."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Protocol

from solwallet.features.tokens.service import TokenResolver
from solwallet.ledger import TOKEN_PROGRAM_ID
from solwallet.models import BalanceSnapshot, TokenHolding
from solwallet.shared.errors import LedgerError
from solwallet.shared.network import NetworkError
from solwallet.shared.scheduler import RepeatingTask

logger = logging.getLogger(__name__)


class BalanceLedgerProtocol(Protocol):
    def get_balance(self, owner: str) -> int: ...
    def get_token_accounts_by_owner(
        self, owner: str, program_id: str = TOKEN_PROGRAM_ID
    ) -> list[dict[str, Any]]: ...


class BalanceOracle:
    def __init__(
        self,
        ledger: BalanceLedgerProtocol,
        resolver: TokenResolver,
        token_programs: tuple[str, ...] = (TOKEN_PROGRAM_ID,),
    ):
        self.ledger = ledger
        self.resolver = resolver
        self.token_programs = token_programs

    def fetch(self, owner: str, network: str) -> BalanceSnapshot:
        try:
            lamports = self.ledger.get_balance(owner)
            accounts: list[dict[str, Any]] = []
            for program_id in self.token_programs:
                accounts.extend(self.ledger.get_token_accounts_by_owner(owner, program_id))
        except (NetworkError, LedgerError) as e:
            logger.warning("Balance read failed for %s on %s: %s", owner, network, e)
            return BalanceSnapshot.unavailable(owner, network)

        holdings = self._parse_holdings(owner, accounts)
        logger.debug(
            "Fetched balances for %s on %s: %d lamports, %d token accounts",
            owner,
            network,
            lamports,
            len(holdings),
        )
        return BalanceSnapshot(
            owner=owner,
            network=network,
            native_lamports=lamports,
            holdings=tuple(holdings),
        )

    def _parse_holdings(
        self, owner: str, accounts: list[dict[str, Any]]
    ) -> list[TokenHolding]:
        holdings: list[TokenHolding] = []
        seen: set[str] = set()
        for item in accounts:
            token_account = item.get("pubkey")
            if not token_account or token_account in seen:
                continue
            data = item.get("account", {}).get("data")
            # Non-jsonParsed encodings return a [payload, encoding] list.
            info = data.get("parsed", {}).get("info", {}) if isinstance(data, dict) else {}
            token_amount = info.get("tokenAmount", {})
            mint = info.get("mint")
            try:
                raw_balance = int(token_amount["amount"])
                decimals = int(token_amount["decimals"])
            except (KeyError, TypeError, ValueError):
                logger.debug("Skipping unparseable token account %s", token_account)
                continue
            if not mint or raw_balance < 0:
                continue
            seen.add(token_account)
            holdings.append(
                TokenHolding(
                    mint=mint,
                    raw_balance=raw_balance,
                    decimals=decimals,
                    owner=info.get("owner", owner),
                    token_account=token_account,
                    metadata=self.resolver.resolve(mint),
                )
            )
        return holdings


class BalancePoller:
    def __init__(
        self,
        oracle: BalanceOracle,
        owner: str,
        network: str,
        interval_seconds: float = 30.0,
    ):
        self.oracle = oracle
        self.interval_seconds = interval_seconds
        self._owner = owner
        self._network = network
        self._generation = 0
        self._snapshot: BalanceSnapshot | None = None
        self._lock = threading.Lock()
        self._task: RepeatingTask | None = None
        self._listeners: list[Callable[[BalanceSnapshot], None]] = []

    @property
    def snapshot(self) -> BalanceSnapshot | None:
        with self._lock:
            return self._snapshot

    @property
    def context(self) -> tuple[str, str]:
        with self._lock:
            return self._owner, self._network

    def on_update(self, listener: Callable[[BalanceSnapshot], None]) -> None:
        self._listeners.append(listener)

    def refresh(self) -> BalanceSnapshot | None:
        """Read balances and apply them if the context did not change meanwhile."""
        with self._lock:
            owner, network, generation = self._owner, self._network, self._generation

        snapshot = self.oracle.fetch(owner, network)

        with self._lock:
            if generation != self._generation or (owner, network) != (
                self._owner,
                self._network,
            ):
                logger.debug("Discarding stale balance snapshot for %s", owner)
                return None
            self._snapshot = snapshot

        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error("Error in balance listener: %s", e)
        return snapshot

    def start(self, interval_seconds: float | None = None) -> None:
        if interval_seconds is not None:
            self.interval_seconds = interval_seconds
        self.stop()
        self._task = RepeatingTask(
            self.refresh, self.interval_seconds, name="balance-refresh"
        )
        self._task.start()

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def switch_context(self, owner: str, network: str, restart: bool = True) -> None:
        was_running = self._task is not None
        self.stop()
        with self._lock:
            self._owner = owner
            self._network = network
            self._generation += 1
            self._snapshot = None
        logger.info("Balance context switched to %s on %s", owner, network)
        if restart and was_running:
            self.start()
