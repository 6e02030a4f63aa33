"""Top-level aggregator facade used by the HTTP API.

Wires token metadata, discovery, ranking, plan building, historical pricing
and health checks together. "Nothing found" becomes NoRouteFoundError so the
transport layer only has to map exceptions.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from aggregator.chain.client import ChainClientProvider
from aggregator.chains import CHAIN_CONFIGS, ChainConfig, get_chain_config
from aggregator.config import AppConfig, load_config
from aggregator.constants import DEFAULT_DEADLINE_SECONDS
from aggregator.errors import InvalidRequestError, NoRouteFoundError
from aggregator.execution.builder import BuilderConfig, ExecutionPlanBuilder, SwapRequest
from aggregator.health import HealthReport, HealthService
from aggregator.models.plan import SwapTransaction
from aggregator.models.quote import PriceQuote, QuoteResult, RoutePreference
from aggregator.models.types import checksum_address, same_address
from aggregator.pricing.discovery import PoolDiscovery
from aggregator.pricing.historical import HistoricalPrice, HistoricalPriceService
from aggregator.pricing.price_service import PriceService
from aggregator.tokens import TokenService

logger = structlog.get_logger()


@dataclass(frozen=True)
class SwapPlan:
    """A quote, the transaction executing it and when the pair expires."""

    quote: QuoteResult
    transaction: SwapTransaction
    expires_at: int


class SwapAggregator:
    """Price, quote and swap-plan operations over the configured chains."""

    def __init__(
        self,
        chain_configs: dict[str, ChainConfig],
        price_service: PriceService,
        builder: ExecutionPlanBuilder,
        quote_ttl_seconds: int,
        clock: Callable[[], float] = time.time,
        historical_service: HistoricalPriceService | None = None,
        health_service: HealthService | None = None,
    ):
        self.chain_configs = chain_configs
        self.price_service = price_service
        self.builder = builder
        self.quote_ttl_seconds = quote_ttl_seconds
        self._clock = clock
        self.historical_service = historical_service or HistoricalPriceService(
            price_service.token_service, price_service.client_provider, price_service.pool_discovery
        )
        self.health_service = health_service or HealthService(
            chain_configs, price_service.client_provider, clock=clock
        )

    def get_chain(self, chain: str) -> ChainConfig:
        return get_chain_config(chain, self.chain_configs)

    def list_chains(self) -> list[ChainConfig]:
        return list(self.chain_configs.values())

    def check_health(self) -> HealthReport:
        return self.health_service.check()

    def get_price(
        self,
        chain: str,
        token_in: str,
        token_out: str,
        amount_in: int | None = None,
        preference: RoutePreference = "auto",
    ) -> PriceQuote:
        """Best route for a raw amount (one whole token_in when omitted).

        Raises:
            InvalidRequestError: For an unknown chain or identical tokens
            NoRouteFoundError: If no venue can fill the swap
        """
        config = self.get_chain(chain)
        if same_address(token_in, token_out):
            raise InvalidRequestError("token_in and token_out must differ")
        quote = self.price_service.get_best_price(config, token_in, token_out, amount_in, preference)
        if quote is None:
            raise NoRouteFoundError(f"No route found for {token_in} -> {token_out} on {config.name}")
        return quote

    def get_price_at_block(
        self,
        chain: str,
        token_in: str,
        token_out: str,
        block_number: int,
        amount_in: int | None = None,
        preference: RoutePreference = "auto",
    ) -> HistoricalPrice:
        """Best direct route as of a past block.

        Raises:
            InvalidRequestError: For an unknown chain, identical tokens or an unmined block
            NoRouteFoundError: If no pool could fill the swap at that block
        """
        config = self.get_chain(chain)
        if same_address(token_in, token_out):
            raise InvalidRequestError("token_in and token_out must differ")
        price = self.historical_service.get_price_at_block(
            config, token_in, token_out, block_number, amount_in, preference
        )
        if price is None:
            raise NoRouteFoundError(
                f"No route found for {token_in} -> {token_out} on {config.name} at block {block_number}"
            )
        return price

    def get_quote(
        self,
        chain: str,
        token_in: str,
        token_out: str,
        amount: str,
        slippage_bps: float,
        preference: RoutePreference = "auto",
    ) -> QuoteResult:
        """Quote a human-readable amount with its slippage-bounded minimum.

        Raises:
            InvalidRequestError: For an unknown chain, identical tokens or a bad amount
            NoRouteFoundError: If no venue can fill the swap
        """
        config = self.get_chain(chain)
        if same_address(token_in, token_out):
            raise InvalidRequestError("token_in and token_out must differ")
        result = self.price_service.build_quote_result(
            config, token_in, token_out, amount, slippage_bps, preference
        )
        if result is None:
            raise NoRouteFoundError(f"No route found for {token_in} -> {token_out} on {config.name}")
        return result

    def build_swap(
        self,
        chain: str,
        token_in: str,
        token_out: str,
        amount: str,
        slippage_bps: float,
        recipient: str,
        preference: RoutePreference = "auto",
        deadline_seconds: int = DEFAULT_DEADLINE_SECONDS,
        use_native_input: bool = False,
        use_native_output: bool = False,
    ) -> SwapPlan:
        """Quote and build the executor transaction for a swap.

        Raises:
            InvalidRequestError: For a malformed request or recipient
            NoRouteFoundError: If no venue can fill the swap
            PlanningError: If the route cannot be turned into a plan
        """
        try:
            recipient = checksum_address(recipient)
        except ValueError as e:
            raise InvalidRequestError(f"Invalid recipient: {recipient}") from e

        result = self.get_quote(chain, token_in, token_out, amount, slippage_bps, preference)
        transaction = self.builder.build(
            self.get_chain(chain),
            SwapRequest(
                quote=result.quote,
                recipient=recipient,
                amount_out_min=result.amount_out_min,
                deadline_seconds=deadline_seconds,
                use_native_input=use_native_input,
                use_native_output=use_native_output,
            ),
        )
        return SwapPlan(
            quote=result,
            transaction=transaction,
            expires_at=int(self._clock()) + self.quote_ttl_seconds,
        )


def create_aggregator(
    config: AppConfig, chain_configs: dict[str, ChainConfig] | None = None
) -> SwapAggregator:
    """Assemble a SwapAggregator with live chain clients."""
    chains = CHAIN_CONFIGS if chain_configs is None else chain_configs
    token_service = TokenService(chains)
    client_provider = ChainClientProvider()
    pool_discovery = PoolDiscovery(token_service)
    price_service = PriceService(
        token_service=token_service,
        client_provider=client_provider,
        pool_discovery=pool_discovery,
    )
    logger.info(
        "aggregator_created",
        chains=list(chains),
        executors={key: value for key, value in config.executor_addresses.items() if value},
    )
    return SwapAggregator(
        chain_configs=chains,
        price_service=price_service,
        builder=ExecutionPlanBuilder(BuilderConfig.from_app_config(config)),
        quote_ttl_seconds=config.quote_ttl_seconds,
        historical_service=HistoricalPriceService(token_service, client_provider, pool_discovery),
        health_service=HealthService(chains, client_provider),
    )


_default_aggregator: SwapAggregator | None = None


def get_default_aggregator() -> SwapAggregator:
    """Process-wide aggregator built from the environment on first use."""
    global _default_aggregator
    if _default_aggregator is None:
        _default_aggregator = create_aggregator(load_config())
    return _default_aggregator


__all__ = ["SwapAggregator", "SwapPlan", "create_aggregator", "get_default_aggregator"]
