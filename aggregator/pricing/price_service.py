"""Best-price lookup: token resolution, discovery, ranking and slippage bounds."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import structlog

from aggregator.cache import TTLCache, gas_price_cache
from aggregator.chain.client import ChainClient, ChainClientProvider
from aggregator.chains import ChainConfig
from aggregator.errors import InvalidRequestError
from aggregator.models.quote import HopVersion, PriceQuote, QuoteResult, RoutePreference, TokenMetadata
from aggregator.models.types import same_address
from aggregator.pricing.discovery import PoolDiscovery
from aggregator.pricing.planner import select_best_quote
from aggregator.pricing.quote_math import apply_slippage, clamp_slippage_bps
from aggregator.tokens import TokenService
from aggregator.units import default_amount_for_decimals, parse_amount_to_units

logger = structlog.get_logger()


def resolve_allowed_versions(preference: RoutePreference) -> list[HopVersion]:
    """Venue versions a routing preference allows ("auto" allows both)."""
    if preference == "auto":
        return ["v3", "v2"]
    if preference in ("v2", "v3"):
        return [preference]
    raise InvalidRequestError(f"Unknown route preference '{preference}'")


class PriceService:
    """Finds the best route for a swap and derives the slippage-bounded minimum."""

    def __init__(
        self,
        token_service: TokenService,
        client_provider: ChainClientProvider,
        pool_discovery: PoolDiscovery,
        gas_cache: TTLCache = gas_price_cache,
    ):
        self.token_service = token_service
        self.client_provider = client_provider
        self.pool_discovery = pool_discovery
        self.gas_cache = gas_cache

    def _gas_price(self, chain: ChainConfig, client: ChainClient) -> int | None:
        cached = self.gas_cache.get(chain.chain_id)
        if cached is not None:
            return int(cached)
        try:
            gas_price = client.get_gas_price()
        except Exception as e:
            logger.warning("gas_price_unavailable", chain=chain.key, error=str(e))
            return None
        self.gas_cache.set(chain.chain_id, gas_price)
        return gas_price

    def get_best_price(
        self,
        chain: ChainConfig,
        token_a: str,
        token_b: str,
        amount_in: int | None = None,
        preference: RoutePreference = "auto",
    ) -> PriceQuote | None:
        """Best quote for token_a -> token_b.

        When amount_in is missing or non-positive, one whole token_a is priced.
        """
        client = self.client_provider.get_client(chain)
        token_in = self.token_service.get_token_metadata(chain, token_a, client)
        token_out = self.token_service.get_token_metadata(chain, token_b, client)
        effective_amount = (
            amount_in if amount_in and amount_in > 0 else default_amount_for_decimals(token_in.decimals)
        )
        return self.get_best_quote_for_tokens(chain, token_in, token_out, effective_amount, preference)

    def get_best_quote_for_tokens(
        self,
        chain: ChainConfig,
        token_in: TokenMetadata,
        token_out: TokenMetadata,
        amount_in: int,
        preference: RoutePreference = "auto",
    ) -> PriceQuote | None:
        """Run direct and 2-hop discovery concurrently and select the best route.

        Returns:
            The best quote with the remaining candidates attached as offers,
            or None when no venue can fill the swap
        """
        if amount_in <= 0:
            return None

        allowed_versions = resolve_allowed_versions(preference)
        client = self.client_provider.get_client(chain)
        gas_price_wei = self._gas_price(chain, client)

        with ThreadPoolExecutor(max_workers=2) as pool:
            direct = pool.submit(
                self.pool_discovery.fetch_direct_quotes,
                chain, token_in, token_out, amount_in, gas_price_wei, client, allowed_versions,
            )
            multi_hop = pool.submit(
                self.pool_discovery.fetch_multi_hop_quotes,
                chain, token_in, token_out, amount_in, gas_price_wei, client, allowed_versions,
            )
            candidates = [*direct.result(), *multi_hop.result()]

        best = select_best_quote(candidates)
        if best is None:
            logger.info(
                "no_route_found",
                chain=chain.key,
                token_in=token_in.symbol,
                token_out=token_out.symbol,
                amount_in=str(amount_in),
            )
            return None

        logger.info(
            "best_route_selected",
            chain=chain.key,
            token_in=token_in.symbol,
            token_out=token_out.symbol,
            amount_in=str(amount_in),
            amount_out=str(best.amount_out),
            hops=[source.dex_id for source in best.sources],
            candidates=len(candidates),
        )
        return best

    def build_quote_result(
        self,
        chain: ChainConfig,
        token_in_address: str,
        token_out_address: str,
        amount: str,
        slippage_bps: float,
        preference: RoutePreference = "auto",
    ) -> QuoteResult | None:
        """Quote a human-readable amount and bound it by slippage.

        Returns:
            QuoteResult, or None for a same-token request or when no route exists

        Raises:
            InvalidRequestError: If the amount is malformed or not positive
        """
        if same_address(token_in_address, token_out_address):
            return None

        client = self.client_provider.get_client(chain)
        token_in = self.token_service.get_token_metadata(chain, token_in_address, client)
        token_out = self.token_service.get_token_metadata(chain, token_out_address, client)

        amount_in = parse_amount_to_units(amount, token_in.decimals)
        if amount_in <= 0:
            raise InvalidRequestError("Amount must be greater than zero")

        quote = self.get_best_quote_for_tokens(chain, token_in, token_out, amount_in, preference)
        if quote is None:
            return None

        bounded_slippage = clamp_slippage_bps(slippage_bps)
        return QuoteResult(
            quote=quote,
            amount_out_min=apply_slippage(quote.amount_out, bounded_slippage),
            slippage_bps=bounded_slippage,
            token_in=token_in,
            token_out=token_out,
        )


__all__ = ["PriceService", "resolve_allowed_versions"]
