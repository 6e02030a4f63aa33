"""Quoter implementations for exact-input swap simulation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import structlog

from aggregator.chain.client import ChainClient, ContractCall
from aggregator.models.types import normalize_address

logger = structlog.get_logger()


@dataclass(frozen=True)
class QuoteRequest:
    """One exact-input simulation request."""

    token_in: str
    token_out: str
    fee: int
    amount_in: int


class UniswapV3Quoter(Protocol):
    """Protocol for quoter implementations.

    This allows swapping between the on-chain quoter and a mock quoter for testing.
    """

    def quote_exact_input(self, requests: list[QuoteRequest]) -> list[int | None]:
        """Simulate exact-input swaps.

        Args:
            requests: Swaps to simulate

        Returns:
            Output amount per request, None where the simulation failed
        """
        ...


class MockUniswapV3Quoter:
    """Mock quoter for testing without RPC calls.

    Configure with expected quotes, and track calls for assertions.
    """

    def __init__(
        self,
        quotes: dict[QuoteRequest, int] | None = None,
        default_rate: tuple[int, int] | None = None,
    ):
        """Initialize mock quoter.

        Args:
            quotes: Mapping of QuoteRequest -> amount out for specific quotes
            default_rate: If set, (numerator, denominator) ratio for any unconfigured
                quote: amount_out = amount_in * num // denom
        """
        self.quotes = {self._key(request): amount for request, amount in (quotes or {}).items()}
        self.default_rate = default_rate
        self.calls: list[QuoteRequest] = []

    @staticmethod
    def _key(request: QuoteRequest) -> tuple[str, str, int, int]:
        return (
            normalize_address(request.token_in),
            normalize_address(request.token_out),
            request.fee,
            request.amount_in,
        )

    def quote_exact_input(self, requests: list[QuoteRequest]) -> list[int | None]:
        results: list[int | None] = []
        for request in requests:
            self.calls.append(request)
            key = self._key(request)
            if key in self.quotes:
                results.append(self.quotes[key])
            elif self.default_rate is not None:
                num, denom = self.default_rate
                results.append(request.amount_in * num // denom)
            else:
                results.append(None)
        return results


class ChainQuoter:
    """Quoter that calls the venue's QuoterV2 contract through a ChainClient.

    All requests go out as one batch.
    """

    def __init__(self, client: ChainClient, quoter_address: str):
        self.client = client
        self.quoter_address = quoter_address

    def quote_exact_input(self, requests: list[QuoteRequest]) -> list[int | None]:
        calls = [
            ContractCall(
                address=self.quoter_address,
                function="quoteExactInputSingle",
                # sqrtPriceLimitX96 = 0 means no limit
                args=((r.token_in, r.token_out, r.amount_in, r.fee, 0),),
            )
            for r in requests
        ]
        results: list[int | None] = []
        for request, result in zip(requests, self.client.multicall(calls), strict=True):
            if not result.success:
                logger.warning(
                    "v3_quote_exact_input_failed",
                    token_in=request.token_in,
                    token_out=request.token_out,
                    fee=request.fee,
                    amount_in=request.amount_in,
                    error=result.error,
                )
                results.append(None)
                continue
            # (amountOut, sqrtPriceX96After, initializedTicksCrossed, gasEstimate)
            results.append(int(result.value[0]))
        return results


__all__ = [
    "QuoteRequest",
    "UniswapV3Quoter",
    "MockUniswapV3Quoter",
    "ChainQuoter",
]
