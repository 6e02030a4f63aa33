"""Pydantic request/response models for the HTTP API.

Raw token amounts are decimal strings (Uint256) so they survive JSON
consumers without 53-bit integer precision.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from aggregator.chains import ChainConfig
from aggregator.constants import DEFAULT_DEADLINE_SECONDS
from aggregator.health import HealthReport
from aggregator.models.plan import SwapTransaction
from aggregator.models.quote import PriceQuote, QuoteResult, TokenMetadata
from aggregator.models.types import Address, Bytes, Uint256
from aggregator.pricing.historical import HistoricalPrice
from aggregator.units import format_amount_from_units


class TokenInfo(BaseModel):
    address: Address
    symbol: str
    name: str
    decimals: int

    @classmethod
    def from_metadata(cls, token: TokenMetadata) -> TokenInfo:
        return cls(address=token.address, symbol=token.symbol, name=token.name, decimals=token.decimals)


class DexInfo(BaseModel):
    id: str
    label: str
    version: Literal["v2", "v3"]
    router_address: Address


class ChainInfo(BaseModel):
    key: str
    chain_id: int
    name: str
    native_symbol: str
    wrapped_native_address: Address | None = None
    dexes: list[DexInfo]

    @classmethod
    def from_config(cls, chain: ChainConfig) -> ChainInfo:
        return cls(
            key=chain.key,
            chain_id=chain.chain_id,
            name=chain.name,
            native_symbol=chain.native_symbol,
            wrapped_native_address=chain.wrapped_native_address,
            dexes=[
                DexInfo(id=dex.id, label=dex.label, version=dex.version, router_address=dex.router_address)
                for dex in chain.dexes
            ],
        )


class Hop(BaseModel):
    """One venue in a route."""

    dex_id: str
    pool_address: Address
    token_in: Address
    token_out: Address
    version: Literal["v2", "v3"]
    fee_tier: int | None = None
    amount_in: Uint256
    amount_out: Uint256
    approximate: bool = False


class PriceResponse(BaseModel):
    """Best route for a token pair; offers holds the other candidates."""

    chain: str
    token_in: TokenInfo
    token_out: TokenInfo
    amount_in: Uint256
    amount_out: Uint256
    amount_out_formatted: str
    mid_price_q18: Uint256
    execution_price_q18: Uint256
    price_impact_bps: int
    route: list[Address]
    hops: list[Hop]
    approximate: bool
    estimated_gas_units: int | None = None
    estimated_gas_cost_wei: Uint256 | None = None
    gas_price_wei: Uint256 | None = None
    offers: list[PriceResponse] = Field(default_factory=list)

    @classmethod
    def from_quote(cls, quote: PriceQuote, include_offers: bool = True) -> PriceResponse:
        return cls(
            chain=quote.chain,
            token_in=TokenInfo.from_metadata(quote.token_in),
            token_out=TokenInfo.from_metadata(quote.token_out),
            amount_in=str(quote.amount_in),
            amount_out=str(quote.amount_out),
            amount_out_formatted=format_amount_from_units(quote.amount_out, quote.token_out.decimals),
            mid_price_q18=str(quote.mid_price_q18),
            execution_price_q18=str(quote.execution_price_q18),
            price_impact_bps=quote.price_impact_bps,
            route=list(quote.route_addresses),
            hops=[
                Hop(
                    dex_id=source.dex_id,
                    pool_address=source.pool_address,
                    token_in=quote.path[index].address,
                    token_out=quote.path[index + 1].address,
                    version=quote.hop_versions[index],
                    fee_tier=source.fee_tier,
                    amount_in=str(source.amount_in),
                    amount_out=str(source.amount_out),
                    approximate=source.approximate,
                )
                for index, source in enumerate(quote.sources)
            ],
            approximate=quote.is_approximate,
            estimated_gas_units=quote.estimated_gas_units,
            estimated_gas_cost_wei=_optional_uint(quote.estimated_gas_cost_wei),
            gas_price_wei=_optional_uint(quote.gas_price_wei),
            offers=(
                [cls.from_quote(offer, include_offers=False) for offer in quote.offers]
                if include_offers
                else []
            ),
        )


class QuoteResponse(BaseModel):
    price: PriceResponse
    amount_out_min: Uint256
    amount_out_min_formatted: str
    slippage_bps: int

    @classmethod
    def from_result(cls, result: QuoteResult) -> QuoteResponse:
        return cls(
            price=PriceResponse.from_quote(result.quote),
            amount_out_min=str(result.amount_out_min),
            amount_out_min_formatted=format_amount_from_units(
                result.amount_out_min, result.token_out.decimals
            ),
            slippage_bps=result.slippage_bps,
        )


class HistoricalPriceResponse(BaseModel):
    """Best direct route as of block_number."""

    block_number: int
    price: PriceResponse

    @classmethod
    def from_price(cls, price: HistoricalPrice) -> HistoricalPriceResponse:
        return cls(block_number=price.block_number, price=PriceResponse.from_quote(price.quote))


class ChainHealthModel(BaseModel):
    configured: bool
    rpc_available: bool
    block_number: int | None = None
    latency_ms: int | None = None


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded", "error"]
    version: str
    timestamp: int
    uptime_seconds: int
    chains: dict[str, ChainHealthModel]

    @classmethod
    def from_report(cls, report: HealthReport, version: str) -> HealthResponse:
        return cls(
            status=report.status,
            version=version,
            timestamp=report.timestamp,
            uptime_seconds=report.uptime_seconds,
            chains={
                key: ChainHealthModel(
                    configured=health.configured,
                    rpc_available=health.rpc_available,
                    block_number=health.block_number,
                    latency_ms=health.latency_ms,
                )
                for key, health in report.chains.items()
            },
        )


class SwapRequestBody(BaseModel):
    """Swap request.

    Native flags expect token_in / token_out to be the chain's wrapped
    native token; the executor wraps or unwraps around the route.
    """

    chain: str
    token_in: Address
    token_out: Address
    amount: str = Field(description="Human-readable input amount, e.g. '1.5'")
    recipient: Address
    slippage_bps: float = Field(default=50, ge=0)
    preference: Literal["auto", "v2", "v3"] = "auto"
    deadline_seconds: int = Field(default=DEFAULT_DEADLINE_SECONDS, gt=0)
    use_native_input: bool = False
    use_native_output: bool = False


class TokenPullModel(BaseModel):
    token: Address
    amount: Uint256


class ApprovalModel(BaseModel):
    token: Address
    spender: Address
    amount: Uint256


class CallModel(BaseModel):
    target: Address
    value: Uint256
    payload: Bytes
    inject_token: Address
    inject_offset: int


class PlanModel(BaseModel):
    pulls: list[TokenPullModel]
    approvals: list[ApprovalModel]
    calls: list[CallModel]
    tokens_to_flush: list[Address]


class TransactionModel(BaseModel):
    to: Address
    data: Bytes
    value: Uint256


class SwapResponse(BaseModel):
    quote: QuoteResponse
    kind: Literal["executor"]
    dex_id: str
    executor: Address
    amount_out_minimum: Uint256
    deadline: int
    expires_at: int
    plan: PlanModel
    transaction: TransactionModel

    @classmethod
    def build(cls, result: QuoteResult, tx: SwapTransaction, expires_at: int) -> SwapResponse:
        plan = tx.plan
        return cls(
            quote=QuoteResponse.from_result(result),
            kind=tx.kind,
            dex_id=tx.dex_id,
            executor=tx.executor,
            amount_out_minimum=str(tx.amount_out_minimum),
            deadline=tx.deadline,
            expires_at=expires_at,
            plan=PlanModel(
                pulls=[TokenPullModel(token=p.token, amount=str(p.amount)) for p in plan.pulls],
                approvals=[
                    ApprovalModel(token=a.token, spender=a.spender, amount=str(a.amount))
                    for a in plan.approvals
                ],
                calls=[
                    CallModel(
                        target=c.target,
                        value=str(c.value),
                        payload="0x" + c.payload.hex(),
                        inject_token=c.inject_token,
                        inject_offset=c.inject_offset,
                    )
                    for c in plan.calls
                ],
                tokens_to_flush=list(plan.tokens_to_flush),
            ),
            transaction=TransactionModel(
                to=tx.call.to, data="0x" + tx.call.data.hex(), value=str(tx.call.value)
            ),
        )


def _optional_uint(value: int | None) -> str | None:
    return None if value is None else str(value)


__all__ = [
    "TokenInfo",
    "DexInfo",
    "ChainInfo",
    "Hop",
    "PriceResponse",
    "QuoteResponse",
    "HistoricalPriceResponse",
    "ChainHealthModel",
    "HealthResponse",
    "SwapRequestBody",
    "TokenPullModel",
    "ApprovalModel",
    "CallModel",
    "PlanModel",
    "TransactionModel",
    "SwapResponse",
]
