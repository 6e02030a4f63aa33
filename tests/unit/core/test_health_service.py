"""Tests for per-chain RPC health reporting."""

from dataclasses import replace

from aggregator.chain.client import ChainClientProvider
from aggregator.health import ChainHealth, HealthService, overall_status
from tests.helpers import FakeChainClient, FakeClientProvider, make_chain


class StepTimer:
    """perf_counter stand-in advancing a fixed step per reading."""

    def __init__(self, step: float = 0.25) -> None:
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


class TestOverallStatus:
    def test_all_available(self):
        assert overall_status({"a": ChainHealth(True, True), "b": ChainHealth(True, True)}) == "ok"

    def test_some_available(self):
        assert overall_status({"a": ChainHealth(True, True), "b": ChainHealth(True, False)}) == "degraded"

    def test_none_available(self):
        assert overall_status({"a": ChainHealth(False, False)}) == "error"

    def test_no_chains(self):
        assert overall_status({}) == "error"


class TestHealthService:
    def test_healthy_chain(self, chain, clock):
        client = FakeChainClient(block_number=19_000_123)
        service = HealthService({chain.key: chain}, FakeClientProvider(client), clock=clock, timer=StepTimer())

        report = service.check()

        assert report.status == "ok"
        assert report.chains == {
            "ethereum": ChainHealth(configured=True, rpc_available=True, block_number=19_000_123, latency_ms=250)
        }

    def test_unreachable_rpc(self, chain, clock):
        client = FakeChainClient()
        client.block_number_error = ConnectionError("connection refused")
        service = HealthService({chain.key: chain}, FakeClientProvider(client), clock=clock, timer=StepTimer())

        report = service.check()

        assert report.status == "error"
        assert report.chains["ethereum"] == ChainHealth(configured=True, rpc_available=False, latency_ms=250)

    def test_unconfigured_chain(self, clock):
        chain = replace(make_chain(), rpc_urls=())
        service = HealthService({chain.key: chain}, ChainClientProvider(client_factory=FakeChainClient), clock=clock)

        report = service.check()

        assert report.status == "error"
        assert report.chains["ethereum"] == ChainHealth(configured=False, rpc_available=False)

    def test_one_chain_down_is_degraded(self, clock):
        ethereum = make_chain()
        bsc = replace(make_chain(key="bsc", chain_id=56), rpc_urls=("http://localhost:8546",))
        clients = {
            "http://localhost:8545": FakeChainClient(),
            "http://localhost:8546": FakeChainClient(),
        }
        clients["http://localhost:8546"].block_number_error = TimeoutError("timed out")
        provider = ChainClientProvider(client_factory=clients.__getitem__)
        service = HealthService({"ethereum": ethereum, "bsc": bsc}, provider, clock=clock)

        report = service.check()

        assert report.status == "degraded"
        assert report.chains["ethereum"].rpc_available is True
        assert report.chains["bsc"].rpc_available is False
        assert report.chains["bsc"].block_number is None

    def test_uptime(self, chain, clock):
        service = HealthService({chain.key: chain}, FakeClientProvider(FakeChainClient()), clock=clock)
        clock.advance(90)

        report = service.check()

        assert report.uptime_seconds == 90
        assert report.timestamp == int(clock.now)


class TestAggregatorHealth:
    def test_check_health(self, aggregator, client):
        client.block_number = 42

        report = aggregator.check_health()

        assert report.status == "ok"
        assert report.chains["ethereum"].block_number == 42
