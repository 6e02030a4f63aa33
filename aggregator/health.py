"""Service health: RPC reachability of every configured chain.

Each chain is checked with a block-number read. The overall status is "ok"
when every chain answers, "degraded" when only some do and "error" when
none does.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Literal

import structlog

from aggregator.chain.client import ChainClientProvider
from aggregator.chains import ChainConfig
from aggregator.errors import InvalidRequestError

logger = structlog.get_logger()

HealthStatus = Literal["ok", "degraded", "error"]


@dataclass(frozen=True)
class ChainHealth:
    """Health of one chain.

    Attributes:
        configured: The chain has an RPC URL
        rpc_available: The RPC returned a block number
        block_number: Latest block, when available
        latency_ms: Duration of the block-number read, when an RPC was contacted
    """

    configured: bool
    rpc_available: bool
    block_number: int | None = None
    latency_ms: int | None = None


@dataclass(frozen=True)
class HealthReport:
    status: HealthStatus
    timestamp: int
    uptime_seconds: int
    chains: dict[str, ChainHealth]


def overall_status(chains: dict[str, ChainHealth]) -> HealthStatus:
    available = [health.rpc_available for health in chains.values()]
    if not any(available):
        return "error"
    if not all(available):
        return "degraded"
    return "ok"


class HealthService:
    """Checks chain RPCs and tracks process uptime."""

    def __init__(
        self,
        chain_configs: dict[str, ChainConfig],
        client_provider: ChainClientProvider,
        clock: Callable[[], float] = time.time,
        timer: Callable[[], float] = time.perf_counter,
    ):
        self.chain_configs = chain_configs
        self.client_provider = client_provider
        self._clock = clock
        self._timer = timer
        self.started_at = clock()

    def check_chain(self, chain: ChainConfig) -> ChainHealth:
        try:
            client = self.client_provider.get_client(chain)
        except InvalidRequestError as e:
            logger.warning("health_chain_unconfigured", chain=chain.key, error=str(e))
            return ChainHealth(configured=False, rpc_available=False)

        started = self._timer()
        try:
            block_number = client.get_block_number()
        except Exception as e:
            latency_ms = int((self._timer() - started) * 1000)
            logger.warning("health_rpc_unavailable", chain=chain.key, latency_ms=latency_ms, error=str(e))
            return ChainHealth(configured=True, rpc_available=False, latency_ms=latency_ms)

        return ChainHealth(
            configured=True,
            rpc_available=True,
            block_number=int(block_number),
            latency_ms=int((self._timer() - started) * 1000),
        )

    def check(self) -> HealthReport:
        """Check every configured chain concurrently."""
        chains = list(self.chain_configs.values())
        results: dict[str, ChainHealth] = {}
        if chains:
            with ThreadPoolExecutor(max_workers=len(chains)) as pool:
                for chain, health in zip(chains, pool.map(self.check_chain, chains), strict=True):
                    results[chain.key] = health

        now = self._clock()
        report = HealthReport(
            status=overall_status(results),
            timestamp=int(now),
            uptime_seconds=int(now - self.started_at),
            chains=results,
        )
        if report.status != "ok":
            logger.warning(
                "health_check_failed",
                status=report.status,
                unavailable=[key for key, health in results.items() if not health.rpc_available],
            )
        return report


__all__ = ["ChainHealth", "HealthReport", "HealthService", "HealthStatus", "overall_status"]
