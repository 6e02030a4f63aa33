"""Best direct-route price for a pair as of a past block.

Every factory lookup and pool state read is pinned to the requested block.
Only single-hop routes are priced, with no gas estimate, and
concentrated-liquidity output comes from local in-range simulation since a
venue quoter may not have existed at that block.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from aggregator.chain.client import ChainClientProvider
from aggregator.chains import ChainConfig
from aggregator.errors import InvalidRequestError
from aggregator.models.quote import PriceQuote, RoutePreference
from aggregator.pricing.discovery import PoolDiscovery
from aggregator.pricing.planner import select_best_quote
from aggregator.pricing.price_service import resolve_allowed_versions
from aggregator.tokens import TokenService
from aggregator.units import default_amount_for_decimals

logger = structlog.get_logger()


@dataclass(frozen=True)
class HistoricalPrice:
    quote: PriceQuote
    block_number: int


class HistoricalPriceService:
    """Prices token pairs against pool state at a given block."""

    def __init__(
        self,
        token_service: TokenService,
        client_provider: ChainClientProvider,
        pool_discovery: PoolDiscovery,
    ):
        self.token_service = token_service
        self.client_provider = client_provider
        self.pool_discovery = pool_discovery

    def get_price_at_block(
        self,
        chain: ChainConfig,
        token_a: str,
        token_b: str,
        block_number: int,
        amount_in: int | None = None,
        preference: RoutePreference = "auto",
    ) -> HistoricalPrice | None:
        """Best direct quote for token_a -> token_b at block_number.

        When amount_in is missing or non-positive, one whole token_a is priced.

        Returns:
            HistoricalPrice, or None when no pool could fill the swap at that block

        Raises:
            InvalidRequestError: If the block is negative or not yet mined
        """
        if block_number < 0:
            raise InvalidRequestError(f"Invalid block number {block_number}")

        client = self.client_provider.get_client(chain)
        latest = client.get_block_number()
        if block_number > latest:
            raise InvalidRequestError(f"Block {block_number} is ahead of the chain head {latest}")

        # Token metadata does not change over time, so the current values are used
        token_in = self.token_service.get_token_metadata(chain, token_a, client)
        token_out = self.token_service.get_token_metadata(chain, token_b, client)
        effective_amount = (
            amount_in if amount_in and amount_in > 0 else default_amount_for_decimals(token_in.decimals)
        )

        quotes = self.pool_discovery.fetch_direct_quotes(
            chain,
            token_in,
            token_out,
            effective_amount,
            None,
            client,
            resolve_allowed_versions(preference),
            block_identifier=block_number,
        )
        best = select_best_quote(quotes)
        if best is None:
            logger.info(
                "no_historical_route_found",
                chain=chain.key,
                token_in=token_in.symbol,
                token_out=token_out.symbol,
                block=block_number,
            )
            return None

        logger.info(
            "historical_price_found",
            chain=chain.key,
            token_in=token_in.symbol,
            token_out=token_out.symbol,
            block=block_number,
            amount_in=str(effective_amount),
            amount_out=str(best.amount_out),
            candidates=len(quotes),
        )
        return HistoricalPrice(quote=best, block_number=block_number)


__all__ = ["HistoricalPrice", "HistoricalPriceService"]
