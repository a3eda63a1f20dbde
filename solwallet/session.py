"""Wallet session: wires every component for one account on one network."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Callable

from solders.keypair import Keypair

from solwallet.config import NETWORKS, WalletConfig
from solwallet.features.balances.service import BalanceOracle, BalancePoller
from solwallet.features.fees.service import FeeEstimator
from solwallet.features.fees.validators import SufficiencyCheck, check_sufficiency
from solwallet.features.history.service import HistoryFeed, HistoryService
from solwallet.features.result.service import ResultReporter, TransactionReport
from solwallet.features.swap.aggregator import AggregatorClient
from solwallet.features.swap.quoter import QuoteRequest, QuoterState, SwapQuoter
from solwallet.features.swap.service import SwapBuilder, SwapOptions
from solwallet.features.tokens.service import (
    StaticTokenStore,
    TokenMetadataStore,
    TokenResolver,
    jupiter_token_provider,
    store_provider,
)
from solwallet.features.transfer.service import TransferBuilder
from solwallet.ledger import LedgerClient
from solwallet.models import (
    WRAPPED_SOL_MINT,
    Asset,
    BalanceSnapshot,
    PendingTransaction,
    Quote,
)
from solwallet.shared.errors import InsufficientFundsError, QuoteError, ValidationError
from solwallet.shared.network import NetworkClient
from solwallet.shared.validation import format_display
from solwallet.transaction import SubmitterState, TransactionSubmitter

logger = logging.getLogger(__name__)

LedgerFactory = Callable[[str], LedgerClient]


@dataclass
class PreparedTransaction:
    pending: PendingTransaction
    check: SufficiencyCheck
    quote: Quote | None = None
    quote_generation: int | None = None

    @property
    def approved(self) -> bool:
        return self.check.approved


class WalletSession:
    def __init__(
        self,
        config: WalletConfig,
        keypair: Keypair,
        ledger: LedgerClient | None = None,
        aggregator: AggregatorClient | None = None,
        store: TokenMetadataStore | None = None,
        ledger_factory: LedgerFactory | None = None,
        token_client: NetworkClient | None = None,
    ):
        self.config = config
        self.keypair = keypair
        self.network = config.network
        self._ledger_factory = ledger_factory or self._default_ledger
        self.store = store if store is not None else StaticTokenStore()
        self.aggregator = aggregator or AggregatorClient(
            config.aggregator_url,
            api_key=config.aggregator_api_key,
            timeout_config=config.timeout,
            retry_config=config.retry,
            quote_ttl_seconds=config.quote_ttl_seconds,
        )
        token_client = token_client or NetworkClient(
            config.token_api_url,
            timeout_config=config.timeout,
            retry_config=config.retry,
        )
        self.resolver = TokenResolver(
            [store_provider(self.store), jupiter_token_provider(token_client)]
        )
        self.quoter = SwapQuoter(self.aggregator, config.quote_refresh_seconds)
        self.poller: BalancePoller | None = None
        self.history: HistoryFeed | None = None
        self._wire(ledger or self._ledger_factory(self.network))

    def _default_ledger(self, network: str) -> LedgerClient:
        return LedgerClient(
            self.config.rpc_url(network),
            timeout_config=self.config.timeout,
            retry_config=self.config.retry,
            commitment=self.config.commitment,
        )

    def _wire(self, ledger: LedgerClient) -> None:
        self.ledger = ledger
        self.fee_estimator = FeeEstimator(ledger, self.config.default_priority_fee)
        oracle = BalanceOracle(ledger, self.resolver)
        if self.poller is None:
            self.poller = BalancePoller(
                oracle, self.owner, self.network, self.config.balance_refresh_seconds
            )
        else:
            self.poller.oracle = oracle
        self.transfer_builder = TransferBuilder(ledger, self.fee_estimator, self.resolver)
        self.swap_builder = SwapBuilder(self.aggregator, ledger, self.fee_estimator)
        self.submitter = TransactionSubmitter(
            ledger,
            max_submit_attempts=self.config.max_submit_attempts,
            retry_config=self.config.retry,
            confirm_poll_interval=self.config.confirm_poll_interval,
            confirm_timeout_seconds=self.config.confirm_timeout_seconds,
        )
        self.reporter = ResultReporter(
            self.network,
            self.config.explorer,
            on_balances_changed=self.poller.refresh,
        )
        if self.history is None:
            self.history = HistoryFeed(HistoryService(ledger), self.owner)
        else:
            self.history.reset(service=HistoryService(ledger))

    @property
    def owner(self) -> str:
        return str(self.keypair.pubkey())

    @property
    def balances(self) -> BalanceSnapshot | None:
        return self.poller.snapshot

    def start(self) -> None:
        logger.info("Session started for %s on %s", self.owner, self.network)
        self.poller.start()

    def close(self) -> None:
        self.quoter.stop()
        self.poller.stop()
        logger.info("Session closed for %s", self.owner)

    def switch_account(self, keypair: Keypair) -> None:
        self.quoter.reset()
        self.keypair = keypair
        self.poller.switch_context(self.owner, self.network)
        self.history.reset(owner=self.owner)

    def switch_network(self, network: str) -> None:
        if network not in NETWORKS:
            raise ValidationError(f"Unknown network: {network}")
        self.quoter.reset()
        self.network = network
        self._wire(self._ledger_factory(network))
        self.poller.switch_context(self.owner, network)

    def set_swap_inputs(self, request: QuoteRequest | None) -> QuoterState:
        state = self.quoter.set_inputs(request)
        if state.request is None:
            self.quoter.stop()
        else:
            self.quoter.start_auto_refresh()
        return state

    def _native_balance(self) -> int | None:
        snapshot = self.poller.snapshot
        return snapshot.native_lamports if snapshot is not None else None

    def _current_asset(self, asset: Asset) -> Asset:
        snapshot = self.poller.snapshot
        if asset.is_native:
            return Asset.native(self._native_balance())
        holding = snapshot.holding(asset.mint) if snapshot is not None else None
        if holding is None:
            return asset
        return holding.as_asset()

    def prepare_transfer(
        self, recipient: str, asset: Asset | None, amount: str | Decimal
    ) -> PreparedTransaction:
        pending = self.transfer_builder.build(self.owner, recipient, asset, amount)
        current = self._current_asset(asset)
        if current.decimals is None:
            current = replace(
                current, decimals=self.resolver.resolve(current.mint).decimals
            )
        check = check_sufficiency(
            current,
            amount,
            self._native_balance(),
            pending.estimated_fee,
            pending.extra_native_cost,
        )
        return PreparedTransaction(pending=pending, check=check)

    def prepare_swap(self, options: SwapOptions | None = None) -> PreparedTransaction:
        generation = self.quoter.state.generation
        quote = self.quoter.accepted_quote()
        request = self.quoter.state.request
        pending = self.swap_builder.build(quote, self.owner, options)

        if quote.input_mint == WRAPPED_SOL_MINT:
            asset = Asset.native(self._native_balance())
        else:
            asset = self._current_asset(
                Asset(
                    mint=quote.input_mint,
                    symbol=quote.input_mint,
                    decimals=request.input_decimals if request else None,
                )
            )
        amount = format_display(quote.in_amount, asset.decimals or 0)
        check = check_sufficiency(
            asset,
            amount,
            self._native_balance(),
            pending.estimated_fee,
            pending.extra_native_cost,
        )
        return PreparedTransaction(
            pending=pending, check=check, quote=quote, quote_generation=generation
        )

    def _ensure_quote_current(self, prepared: PreparedTransaction) -> None:
        if prepared.quote.is_stale():
            raise QuoteError("Quote is stale. Refresh before swapping.")
        if self.quoter.state.generation != prepared.quote_generation:
            raise QuoteError("Swap inputs changed. Review the new quote before swapping.")

    def confirm(
        self,
        prepared: PreparedTransaction,
        on_state_change: Callable[[SubmitterState, str], None] | None = None,
    ) -> TransactionReport:
        if not prepared.approved:
            raise InsufficientFundsError(prepared.check.reason or "Insufficient balance")
        if prepared.quote is not None:
            self._ensure_quote_current(prepared)
        self.submitter.on_state_change = on_state_change
        result = self.submitter.execute(prepared.pending, [self.keypair])
        return self.reporter.report(result)
