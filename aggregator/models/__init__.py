"""Data models for quotes, execution plans and the HTTP API."""

from aggregator.models.plan import (
    Approval,
    Call,
    EncodedCall,
    ExecutionPlan,
    SwapTransaction,
    TokenPull,
)
from aggregator.models.quote import (
    HopVersion,
    PriceQuote,
    PriceSource,
    QuoteResult,
    RoutePreference,
    TokenMetadata,
)

__all__ = [
    # Quotes
    "HopVersion",
    "RoutePreference",
    "TokenMetadata",
    "PriceSource",
    "PriceQuote",
    "QuoteResult",
    # Plans
    "TokenPull",
    "Approval",
    "Call",
    "ExecutionPlan",
    "EncodedCall",
    "SwapTransaction",
]
