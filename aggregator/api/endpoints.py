"""API endpoints for the swap aggregator."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Literal, TypeVar

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response

from aggregator import __version__
from aggregator.api.schemas import (
    ChainInfo,
    HealthResponse,
    HistoricalPriceResponse,
    PriceResponse,
    QuoteResponse,
    SwapRequestBody,
    SwapResponse,
)
from aggregator.errors import (
    AggregatorError,
    InvalidRequestError,
    NoRouteFoundError,
    PlanningError,
    TokenMetadataError,
)
from aggregator.service import SwapAggregator, get_default_aggregator

logger = structlog.get_logger()

router = APIRouter()

T = TypeVar("T")


def get_aggregator() -> SwapAggregator:
    """Dependency provider for the aggregator instance.

    Override this in tests to inject a fake:
        app.dependency_overrides[get_aggregator] = lambda: fake_aggregator
    """
    return get_default_aggregator()


def _status_for(error: AggregatorError) -> int:
    if isinstance(error, NoRouteFoundError):
        return 404
    if isinstance(error, TokenMetadataError):
        return 422
    if isinstance(error, PlanningError | InvalidRequestError):
        return 400
    return 500


async def _run_blocking(operation: str, func: Callable[..., T], *args: object) -> T:
    """Run a blocking aggregator call off the event loop and map its errors."""
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(None, func, *args)
    except AggregatorError as e:
        status = _status_for(e)
        if status == 500:
            logger.exception("request_failed", operation=operation)
            raise HTTPException(status_code=500, detail="Internal error") from e
        logger.info("request_rejected", operation=operation, status=status, error=str(e))
        raise HTTPException(status_code=status, detail=str(e)) from e
    except Exception as e:
        logger.exception("request_failed", operation=operation)
        raise HTTPException(status_code=500, detail="Internal error") from e


@router.get("/health")
async def health(
    response: Response, aggregator: SwapAggregator = Depends(get_aggregator)
) -> HealthResponse:
    """RPC reachability per chain; 503 when no chain is reachable."""
    report = await _run_blocking("health", aggregator.check_health)
    if report.status == "error":
        response.status_code = 503
    return HealthResponse.from_report(report, __version__)


@router.get("/health/live")
async def liveness() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness(
    response: Response, aggregator: SwapAggregator = Depends(get_aggregator)
) -> dict[str, str]:
    """Ready while at least one chain RPC answers."""
    report = await _run_blocking("health", aggregator.check_health)
    if report.status == "error":
        response.status_code = 503
        return {"status": "not_ready"}
    return {"status": "ready"}


@router.get("/chains")
async def list_chains(aggregator: SwapAggregator = Depends(get_aggregator)) -> list[ChainInfo]:
    return [ChainInfo.from_config(chain) for chain in aggregator.list_chains()]


@router.get("/price", response_model_exclude_none=True)
async def price(
    chain: str,
    token_in: str,
    token_out: str,
    amount_in: int | None = Query(default=None, ge=0, description="Raw input amount"),
    preference: Literal["auto", "v2", "v3"] = "auto",
    aggregator: SwapAggregator = Depends(get_aggregator),
) -> PriceResponse:
    """Best route for a raw amount, one whole token_in when amount_in is omitted."""
    quote = await _run_blocking(
        "price", aggregator.get_price, chain, token_in, token_out, amount_in, preference
    )
    return PriceResponse.from_quote(quote)


@router.get("/price/history", response_model_exclude_none=True)
async def price_history(
    chain: str,
    token_in: str,
    token_out: str,
    block_number: int = Query(ge=0),
    amount_in: int | None = Query(default=None, ge=0, description="Raw input amount"),
    preference: Literal["auto", "v2", "v3"] = "auto",
    aggregator: SwapAggregator = Depends(get_aggregator),
) -> HistoricalPriceResponse:
    """Best direct route with pool state as of block_number."""
    price = await _run_blocking(
        "price_history",
        aggregator.get_price_at_block,
        chain,
        token_in,
        token_out,
        block_number,
        amount_in,
        preference,
    )
    return HistoricalPriceResponse.from_price(price)


@router.get("/quote", response_model_exclude_none=True)
async def quote(
    chain: str,
    token_in: str,
    token_out: str,
    amount: str,
    slippage_bps: float = Query(default=50, ge=0),
    preference: Literal["auto", "v2", "v3"] = "auto",
    aggregator: SwapAggregator = Depends(get_aggregator),
) -> QuoteResponse:
    """Quote a human-readable amount with its slippage-bounded minimum output."""
    result = await _run_blocking(
        "quote", aggregator.get_quote, chain, token_in, token_out, amount, slippage_bps, preference
    )
    return QuoteResponse.from_result(result)


@router.post("/swap", response_model_exclude_none=True)
async def swap(
    request: SwapRequestBody,
    aggregator: SwapAggregator = Depends(get_aggregator),
) -> SwapResponse:
    """Quote a swap and build the executor transaction for it.

    Error Handling:
        - No route: 404
        - Malformed request or unplannable route: 400
        - Unreadable token metadata: 422
        - Anything else: 500, logged with traceback
    """
    logger.info(
        "received_swap_request",
        chain=request.chain,
        token_in=request.token_in,
        token_out=request.token_out,
        amount=request.amount,
    )
    swap_plan = await _run_blocking(
        "swap",
        aggregator.build_swap,
        request.chain,
        request.token_in,
        request.token_out,
        request.amount,
        request.slippage_bps,
        request.recipient,
        request.preference,
        request.deadline_seconds,
        request.use_native_input,
        request.use_native_output,
    )
    return SwapResponse.build(swap_plan.quote, swap_plan.transaction, swap_plan.expires_at)


__all__ = ["router", "get_aggregator"]
