"""Pytest configuration and fixtures."""

import os

import pytest

from aggregator.cache import TTLCache
from aggregator.chains import ChainConfig
from aggregator.execution.builder import BuilderConfig, ExecutionPlanBuilder
from aggregator.execution.offsets import CallShape
from aggregator.executor import (
    ChainState,
    ConcentratedLiquidityRouter,
    ConstantProductRouter,
    SwapExecutor,
    WrappedNativeToken,
)
from aggregator.pricing.discovery import DiscoveryConfig, PoolDiscovery
from aggregator.pricing.price_service import PriceService
from aggregator.service import SwapAggregator
from aggregator.tokens import TokenService
from tests.helpers import (
    DAI,
    EXECUTOR,
    OWNER,
    POOL_1,
    USDC,
    V2_FACTORY,
    V2_ROUTER,
    V3_DEADLINE_ROUTER,
    V3_ROUTER,
    WETH,
    FakeChainClient,
    FakeClientProvider,
    make_chain,
)


def pytest_collection_modifyitems(config, items):
    """Skip live-RPC tests unless RPC_URL is set."""
    if os.environ.get("RPC_URL"):
        return
    skip_rpc = pytest.mark.skip(reason="RPC_URL not set")
    for item in items:
        if "requires_rpc" in item.keywords:
            item.add_marker(skip_rpc)


# =============================================================================
# Discovery
# =============================================================================


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def chain() -> ChainConfig:
    """Test chain with a v2 venue and both v3 struct layouts."""
    return make_chain()


@pytest.fixture
def client() -> FakeChainClient:
    return FakeChainClient()


@pytest.fixture
def token_service(chain: ChainConfig) -> TokenService:
    return TokenService({chain.key: chain})


@pytest.fixture
def pool_cache() -> TTLCache:
    return TTLCache("test_pool_address", 300)


@pytest.fixture
def discovery_config() -> DiscoveryConfig:
    """Thresholds low enough for small test reserves, WETH as the only intermediary."""
    return DiscoveryConfig(
        min_v2_reserve=1_000,
        min_v3_liquidity=0,
        intermediate_tokens={"ethereum": (WETH,)},
    )


@pytest.fixture
def discovery(
    token_service: TokenService, discovery_config: DiscoveryConfig, pool_cache: TTLCache
) -> PoolDiscovery:
    return PoolDiscovery(
        token_service,
        config=discovery_config,
        quoter_factory=lambda client, dex: None,
        pool_cache=pool_cache,
    )


# =============================================================================
# Executor
# =============================================================================


@pytest.fixture
def state() -> ChainState:
    return ChainState(timestamp=1_700_000_000)


@pytest.fixture
def executor(state: ChainState) -> SwapExecutor:
    return SwapExecutor(state, EXECUTOR, OWNER)


@pytest.fixture
def weth(state: ChainState) -> WrappedNativeToken:
    contract = WrappedNativeToken(WETH)
    state.register(contract)
    return contract


@pytest.fixture
def v2_router(state: ChainState) -> ConstantProductRouter:
    router = ConstantProductRouter(V2_ROUTER)
    state.register(router)
    return router


@pytest.fixture
def v3_router(state: ChainState) -> ConcentratedLiquidityRouter:
    router = ConcentratedLiquidityRouter(V3_ROUTER, CallShape.V3_EXACT_INPUT_SINGLE)
    state.register(router)
    return router


@pytest.fixture
def v3_deadline_router(state: ChainState) -> ConcentratedLiquidityRouter:
    router = ConcentratedLiquidityRouter(V3_DEADLINE_ROUTER, CallShape.V3_EXACT_INPUT_SINGLE_DEADLINE)
    state.register(router)
    return router


# =============================================================================
# Service
# =============================================================================

# Block time shared by the aggregator's builder and clock
SERVICE_NOW = 1_700_000_000


@pytest.fixture
def aggregator(
    chain: ChainConfig,
    token_service: TokenService,
    client: FakeChainClient,
    discovery: PoolDiscovery,
    clock: FakeClock,
) -> SwapAggregator:
    """Aggregator over a single DAI/USDC pair (1M DAI / 1M USDC) on the fake chain."""
    clock.now = SERVICE_NOW
    client.add_token(DAI, "DAI", "Dai Stablecoin", 18)
    client.add_v2_pair(V2_FACTORY, POOL_1, DAI, USDC, 10**24, 10**12)
    price_service = PriceService(
        token_service,
        FakeClientProvider(client),
        discovery,
        gas_cache=TTLCache("test_gas_price", 30),
    )
    builder = ExecutionPlanBuilder(
        BuilderConfig(executor_by_chain={chain.key: EXECUTOR}, interhop_buffer_bps=3),
        now=lambda: SERVICE_NOW,
    )
    return SwapAggregator({chain.key: chain}, price_service, builder, quote_ttl_seconds=15, clock=clock)
