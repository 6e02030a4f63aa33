"""Pool discovery: find venues for a token pair and price them.

Discovery runs in three batched rounds per pair:
1. factory lookups (getPair / getPool per fee tier), skipped when cached
2. pool state reads (reserves, or slot0 + liquidity + token0/token1)
3. quoter simulations for concentrated-liquidity candidates

Every failure is local to its candidate: it is logged and the candidate is
dropped, so one bad pool never fails the request.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

import structlog

from aggregator.amm.uniswap_v2 import UniswapV2Pair, uniswap_v2
from aggregator.amm.uniswap_v3.pool import TickRangeExceeded, UniswapV3Pool
from aggregator.amm.uniswap_v3.quoter import ChainQuoter, QuoteRequest, UniswapV3Quoter
from aggregator.cache import TTLCache, pool_address_cache, pool_address_key
from aggregator.chain.client import LATEST_BLOCK, BlockIdentifier, CallResult, ChainClient, ContractCall
from aggregator.chains import ChainConfig, DexConfig
from aggregator.constants import (
    INTERMEDIATE_TOKENS,
    MIN_V2_RESERVE_THRESHOLD,
    MIN_V3_LIQUIDITY_THRESHOLD,
)
from aggregator.errors import AggregatorError
from aggregator.models.quote import HopVersion, PriceQuote, PriceSource, TokenMetadata
from aggregator.models.types import is_zero_address, normalize_address, same_address
from aggregator.pricing.planner import rank_quotes
from aggregator.pricing.quote_math import (
    compute_execution_price_q18,
    compute_mid_price_q18_from_reserves,
    compute_mid_price_q18_from_sqrt_price,
    compute_price_impact_bps,
    estimate_amount_out_from_mid_price,
    estimate_gas_for_route,
    multiply_q18,
    scale_to_q18,
)
from aggregator.tokens import TokenService

logger = structlog.get_logger()

QuoterFactory = Callable[[ChainClient, DexConfig], UniswapV3Quoter | None]


def _default_intermediates() -> dict[str, tuple[str, ...]]:
    return {
        chain: tuple(address for address, _, _, _ in tokens)
        for chain, tokens in INTERMEDIATE_TOKENS.items()
    }


@dataclass(frozen=True)
class DiscoveryConfig:
    """Discovery thresholds and intermediary tokens.

    Attributes:
        min_v2_reserve: Pairs with either raw reserve below this are rejected
        min_v3_liquidity: Pools with liquidity at or below this are rejected
        intermediate_tokens: Chain key -> intermediary token addresses for 2-hop routes
    """

    min_v2_reserve: int = MIN_V2_RESERVE_THRESHOLD
    min_v3_liquidity: int = MIN_V3_LIQUIDITY_THRESHOLD
    intermediate_tokens: dict[str, tuple[str, ...]] = field(default_factory=_default_intermediates)


DEFAULT_DISCOVERY_CONFIG = DiscoveryConfig()


def default_quoter_factory(client: ChainClient, dex: DexConfig) -> UniswapV3Quoter | None:
    """On-chain quoter for venues that deploy one."""
    if not dex.quoter_address:
        return None
    return ChainQuoter(client, dex.quoter_address)


@dataclass(frozen=True)
class _PoolRef:
    dex: DexConfig
    address: str
    fee: int | None = None


class PoolDiscovery:
    """Finds and prices direct and 2-hop routes for a token pair."""

    def __init__(
        self,
        token_service: TokenService,
        config: DiscoveryConfig = DEFAULT_DISCOVERY_CONFIG,
        quoter_factory: QuoterFactory = default_quoter_factory,
        pool_cache: TTLCache = pool_address_cache,
    ):
        self.token_service = token_service
        self.config = config
        self.quoter_factory = quoter_factory
        self.pool_cache = pool_cache

    # ------------------------------------------------------------------
    # Direct routes
    # ------------------------------------------------------------------

    def fetch_direct_quotes(
        self,
        chain: ChainConfig,
        token_in: TokenMetadata,
        token_out: TokenMetadata,
        amount_in: int,
        gas_price_wei: int | None,
        client: ChainClient,
        allowed_versions: Sequence[HopVersion],
        block_identifier: BlockIdentifier = LATEST_BLOCK,
    ) -> list[PriceQuote]:
        """Price every single-hop venue for token_in -> token_out.

        Args:
            chain: Chain configuration (venues to query)
            token_in: Input token
            token_out: Output token
            amount_in: Raw input amount
            gas_price_wei: Gas price for cost estimates, None if unknown
            client: Chain client for batched reads
            allowed_versions: Venue versions to consider
            block_identifier: Block every read is pinned to. For a past block
                the pool address cache and the venue quoters are bypassed;
                concentrated-liquidity output comes from local simulation.

        Returns:
            One quote per usable pool, in no particular order
        """
        if amount_in <= 0:
            return []

        historical = block_identifier != LATEST_BLOCK
        pools = self._resolve_pools(
            chain, token_in, token_out, client, allowed_versions, block_identifier
        )
        if not pools:
            return []

        state_calls: list[ContractCall] = []
        for pool in pools:
            if pool.dex.version == "v2":
                state_calls.append(ContractCall(pool.address, "getReserves"))
                state_calls.append(ContractCall(pool.address, "token0"))
            else:
                state_calls.append(ContractCall(pool.address, "slot0"))
                state_calls.append(ContractCall(pool.address, "liquidity"))
                state_calls.append(ContractCall(pool.address, "token0"))
                state_calls.append(ContractCall(pool.address, "token1"))
        state_results = client.multicall(state_calls, block_identifier)

        quotes: list[PriceQuote] = []
        v3_candidates: list[tuple[DexConfig, UniswapV3Pool]] = []
        cursor = 0
        for pool in pools:
            if pool.dex.version == "v2":
                results = state_results[cursor : cursor + 2]
                cursor += 2
                quote = self._price_v2(chain, pool, token_in, token_out, amount_in, gas_price_wei, results)
                if quote is not None:
                    quotes.append(quote)
            else:
                results = state_results[cursor : cursor + 4]
                cursor += 4
                snapshot = self._v3_snapshot(pool, results)
                if snapshot is not None:
                    v3_candidates.append((pool.dex, snapshot))

        if v3_candidates:
            quotes.extend(
                self._price_v3(
                    chain,
                    token_in,
                    token_out,
                    amount_in,
                    gas_price_wei,
                    client,
                    v3_candidates,
                    use_quoter=not historical,
                )
            )

        logger.debug(
            "direct_quotes_found",
            chain=chain.key,
            token_in=token_in.symbol,
            token_out=token_out.symbol,
            block=block_identifier,
            count=len(quotes),
        )
        return quotes

    def _resolve_pools(
        self,
        chain: ChainConfig,
        token_in: TokenMetadata,
        token_out: TokenMetadata,
        client: ChainClient,
        allowed_versions: Sequence[HopVersion],
        block_identifier: BlockIdentifier = LATEST_BLOCK,
    ) -> list[_PoolRef]:
        """Resolve pool addresses through the factories.

        The address cache only holds lookups at the latest block: a pool
        missing at a past block may exist now.
        """
        use_cache = block_identifier == LATEST_BLOCK
        resolved: list[_PoolRef] = []
        pending: list[tuple[DexConfig, int | None, tuple]] = []
        calls: list[ContractCall] = []

        for dex in chain.dexes:
            if dex.version not in allowed_versions:
                continue
            fees: Sequence[int | None] = (None,) if dex.version == "v2" else dex.fee_tiers
            for fee in fees:
                key = pool_address_key(
                    chain.chain_id, dex.factory_address, token_in.address, token_out.address, fee
                )
                cached = self.pool_cache.get(key) if use_cache else None
                if cached is not None:
                    if not is_zero_address(cached):
                        resolved.append(_PoolRef(dex, cached, fee))
                    continue
                if fee is None:
                    calls.append(
                        ContractCall(dex.factory_address, "getPair", (token_in.address, token_out.address))
                    )
                else:
                    calls.append(
                        ContractCall(
                            dex.factory_address, "getPool", (token_in.address, token_out.address, fee)
                        )
                    )
                pending.append((dex, fee, key))

        if calls:
            results = client.multicall(calls, block_identifier)
            for (dex, fee, key), result in zip(pending, results, strict=True):
                if not result.success:
                    logger.warning(
                        "pool_lookup_failed",
                        chain=chain.key,
                        dex=dex.id,
                        fee=fee,
                        error=result.error,
                    )
                    continue
                address = str(result.value)
                if use_cache:
                    self.pool_cache.set(key, address)
                if not is_zero_address(address):
                    resolved.append(_PoolRef(dex, address, fee))

        return resolved

    def _price_v2(
        self,
        chain: ChainConfig,
        pool: _PoolRef,
        token_in: TokenMetadata,
        token_out: TokenMetadata,
        amount_in: int,
        gas_price_wei: int | None,
        results: list[CallResult],
    ) -> PriceQuote | None:
        reserves_result, token0_result = results
        if not (reserves_result.success and token0_result.success):
            logger.warning(
                "pool_state_read_failed",
                chain=chain.key,
                dex=pool.dex.id,
                pool=pool.address,
                error=reserves_result.error or token0_result.error,
            )
            return None

        try:
            reserve0, reserve1 = int(reserves_result.value[0]), int(reserves_result.value[1])
            token0 = str(token0_result.value)
            token1 = token_out.address if same_address(token0, token_in.address) else token_in.address
            pair = UniswapV2Pair(
                address=pool.address,
                token0=token0,
                token1=token1,
                reserve0=reserve0,
                reserve1=reserve1,
                fee_bps=pool.dex.v2_fee_bps,
            )
            reserve_in, reserve_out = pair.get_reserves(token_in.address)
            if (
                reserve_in < self.config.min_v2_reserve
                or reserve_out < self.config.min_v2_reserve
            ):
                logger.debug("v2_pair_below_reserve_threshold", pool=pool.address)
                return None

            amount_out = uniswap_v2.simulate_swap(pair, token_in.address, amount_in).amount_out
        except Exception as e:
            logger.warning("pool_quote_failed", chain=chain.key, dex=pool.dex.id, pool=pool.address, error=str(e))
            return None

        if amount_out <= 0:
            return None

        mid_price_q18 = compute_mid_price_q18_from_reserves(
            reserve_in, reserve_out, token_in.decimals, token_out.decimals
        )
        liquidity_score = min(
            scale_to_q18(reserve_in, token_in.decimals),
            scale_to_q18(reserve_out, token_out.decimals),
        )
        return self._single_hop_quote(
            chain,
            pool.dex,
            pool.address,
            None,
            token_in,
            token_out,
            amount_in,
            amount_out,
            mid_price_q18,
            liquidity_score,
            gas_price_wei,
            approximate=False,
        )

    def _v3_snapshot(self, pool: _PoolRef, results: list[CallResult]) -> UniswapV3Pool | None:
        slot0_result, liquidity_result, token0_result, token1_result = results
        failed = [r for r in results if not r.success]
        if failed:
            logger.warning(
                "pool_state_read_failed",
                dex=pool.dex.id,
                pool=pool.address,
                fee=pool.fee,
                error=failed[0].error,
            )
            return None

        liquidity = int(liquidity_result.value)
        if liquidity <= self.config.min_v3_liquidity:
            logger.debug("v3_pool_below_liquidity_threshold", pool=pool.address, liquidity=liquidity)
            return None

        return UniswapV3Pool(
            address=pool.address,
            token0=str(token0_result.value),
            token1=str(token1_result.value),
            fee=int(pool.fee or 0),
            sqrt_price_x96=int(slot0_result.value[0]),
            tick=int(slot0_result.value[1]),
            liquidity=liquidity,
        )

    def _price_v3(
        self,
        chain: ChainConfig,
        token_in: TokenMetadata,
        token_out: TokenMetadata,
        amount_in: int,
        gas_price_wei: int | None,
        client: ChainClient,
        candidates: list[tuple[DexConfig, UniswapV3Pool]],
        use_quoter: bool = True,
    ) -> list[PriceQuote]:
        """Price concentrated-liquidity candidates.

        Output comes from the venue quoter when available; otherwise from an
        in-range local simulation; if the swap leaves the current tick range,
        from the mid price less the pool fee (marked approximate).
        """
        simulated: dict[int, int | None] = {}
        by_dex: dict[str, list[int]] = {}
        if use_quoter:
            for index, (dex, _) in enumerate(candidates):
                by_dex.setdefault(dex.id, []).append(index)

        for indexes in by_dex.values():
            dex = candidates[indexes[0]][0]
            quoter = self.quoter_factory(client, dex)
            if quoter is None:
                continue
            requests = [
                QuoteRequest(token_in.address, token_out.address, candidates[i][1].fee, amount_in)
                for i in indexes
            ]
            for i, amount_out in zip(indexes, quoter.quote_exact_input(requests), strict=True):
                simulated[i] = amount_out

        quotes: list[PriceQuote] = []
        for index, (dex, pool) in enumerate(candidates):
            try:
                zero_for_one = pool.is_token0(token_in.address)
                mid_price_q18 = compute_mid_price_q18_from_sqrt_price(
                    pool.sqrt_price_x96, zero_for_one, token_in.decimals, token_out.decimals
                )
                approximate = False
                amount_out = simulated.get(index)
                if amount_out is None:
                    try:
                        amount_out = pool.get_amount_out(token_in.address, amount_in)
                    except TickRangeExceeded:
                        logger.info(
                            "v3_quote_fallback_mid_price",
                            chain=chain.key,
                            dex=dex.id,
                            pool=pool.address,
                            amount_in=amount_in,
                        )
                        amount_out = estimate_amount_out_from_mid_price(
                            mid_price_q18, amount_in, token_in.decimals, token_out.decimals, pool.fee
                        )
                        approximate = True
            except Exception as e:
                logger.warning("pool_quote_failed", chain=chain.key, dex=dex.id, pool=pool.address, error=str(e))
                continue

            if amount_out <= 0:
                continue

            quotes.append(
                self._single_hop_quote(
                    chain,
                    dex,
                    pool.address,
                    pool.fee,
                    token_in,
                    token_out,
                    amount_in,
                    amount_out,
                    mid_price_q18,
                    pool.liquidity,
                    gas_price_wei,
                    approximate=approximate,
                )
            )
        return quotes

    def _single_hop_quote(
        self,
        chain: ChainConfig,
        dex: DexConfig,
        pool_address: str,
        fee_tier: int | None,
        token_in: TokenMetadata,
        token_out: TokenMetadata,
        amount_in: int,
        amount_out: int,
        mid_price_q18: int,
        liquidity_score: int,
        gas_price_wei: int | None,
        approximate: bool,
    ) -> PriceQuote:
        hop_versions: list[HopVersion] = [dex.version]
        gas_units = estimate_gas_for_route(hop_versions)
        return PriceQuote(
            chain=chain.key,
            amount_in=amount_in,
            amount_out=amount_out,
            mid_price_q18=mid_price_q18,
            execution_price_q18=compute_execution_price_q18(
                amount_in, amount_out, token_in.decimals, token_out.decimals
            ),
            price_impact_bps=compute_price_impact_bps(
                mid_price_q18, amount_in, amount_out, token_in.decimals, token_out.decimals
            ),
            path=[token_in, token_out],
            route_addresses=[token_in.address, token_out.address],
            sources=[
                PriceSource(
                    dex_id=dex.id,
                    pool_address=pool_address,
                    amount_in=amount_in,
                    amount_out=amount_out,
                    fee_tier=fee_tier,
                    approximate=approximate,
                )
            ],
            hop_versions=hop_versions,
            liquidity_score=liquidity_score,
            estimated_gas_units=gas_units,
            estimated_gas_cost_wei=gas_units * gas_price_wei if gas_price_wei else None,
            gas_price_wei=gas_price_wei,
        )

    # ------------------------------------------------------------------
    # 2-hop routes
    # ------------------------------------------------------------------

    def fetch_multi_hop_quotes(
        self,
        chain: ChainConfig,
        token_in: TokenMetadata,
        token_out: TokenMetadata,
        amount_in: int,
        gas_price_wei: int | None,
        client: ChainClient,
        allowed_versions: Sequence[HopVersion],
    ) -> list[PriceQuote]:
        """Price token_in -> mid -> token_out through each configured intermediary.

        Leg B is priced with leg A's best output as its input, so the chained
        amounts in the returned quote line up hop to hop.
        """
        if amount_in <= 0:
            return []

        quotes: list[PriceQuote] = []
        seen: set[str] = set()
        for candidate in self.config.intermediate_tokens.get(chain.key, ()):
            key = normalize_address(candidate)
            if key in seen:
                continue
            seen.add(key)
            if same_address(candidate, token_in.address) or same_address(candidate, token_out.address):
                continue

            try:
                intermediate = self.token_service.get_token_metadata(chain, candidate, client)
            except AggregatorError as e:
                logger.warning("intermediate_token_unavailable", chain=chain.key, token=candidate, error=str(e))
                continue

            leg_a = self._best(
                self.fetch_direct_quotes(
                    chain, token_in, intermediate, amount_in, gas_price_wei, client, allowed_versions
                )
            )
            if leg_a is None or leg_a.amount_out == 0:
                continue

            leg_b = self._best(
                self.fetch_direct_quotes(
                    chain, intermediate, token_out, leg_a.amount_out, gas_price_wei, client, allowed_versions
                )
            )
            if leg_b is None or leg_b.amount_out == 0:
                continue

            quotes.append(self._combine(chain, token_in, intermediate, token_out, leg_a, leg_b, gas_price_wei))

        return quotes

    @staticmethod
    def _best(quotes: list[PriceQuote]) -> PriceQuote | None:
        ranked = rank_quotes(quotes)
        return ranked[0] if ranked else None

    @staticmethod
    def _combine(
        chain: ChainConfig,
        token_in: TokenMetadata,
        intermediate: TokenMetadata,
        token_out: TokenMetadata,
        leg_a: PriceQuote,
        leg_b: PriceQuote,
        gas_price_wei: int | None,
    ) -> PriceQuote:
        mid_price_q18 = multiply_q18(leg_a.mid_price_q18, leg_b.mid_price_q18)
        hop_versions = [*leg_a.hop_versions, *leg_b.hop_versions]
        gas_units = estimate_gas_for_route(hop_versions)
        quote = PriceQuote(
            chain=chain.key,
            amount_in=leg_a.amount_in,
            amount_out=leg_b.amount_out,
            mid_price_q18=mid_price_q18,
            execution_price_q18=multiply_q18(leg_a.execution_price_q18, leg_b.execution_price_q18),
            price_impact_bps=compute_price_impact_bps(
                mid_price_q18, leg_a.amount_in, leg_b.amount_out, token_in.decimals, token_out.decimals
            ),
            path=[token_in, intermediate, token_out],
            route_addresses=[token_in.address, intermediate.address, token_out.address],
            sources=[*leg_a.sources, *leg_b.sources],
            hop_versions=hop_versions,
            liquidity_score=min(leg_a.liquidity_score, leg_b.liquidity_score),
            estimated_gas_units=gas_units,
            estimated_gas_cost_wei=gas_units * gas_price_wei if gas_price_wei else None,
            gas_price_wei=gas_price_wei,
        )
        quote.validate()
        return quote


__all__ = [
    "DiscoveryConfig",
    "DEFAULT_DISCOVERY_CONFIG",
    "PoolDiscovery",
    "QuoterFactory",
    "default_quoter_factory",
]
