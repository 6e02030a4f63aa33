"""Token, price source and quote data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from aggregator.errors import InvalidQuoteError
from aggregator.models.types import same_address

# Venue version of a single hop
HopVersion = Literal["v2", "v3"]

# Caller-facing routing preference ("auto" allows every version)
RoutePreference = Literal["auto", "v2", "v3"]


@dataclass(frozen=True)
class TokenMetadata:
    """ERC-20 metadata for a token on a given chain.

    Immutable once fetched. The token cache re-fetches on expiry.
    """

    chain_id: int
    address: str  # EIP-55 checksummed
    symbol: str
    name: str
    decimals: int
    total_supply: int | None = None


@dataclass(frozen=True)
class PriceSource:
    """One venue's contribution to a quote (one hop)."""

    dex_id: str
    pool_address: str
    amount_in: int
    amount_out: int
    fee_tier: int | None = None
    # Set when amount_out was estimated from mid price instead of simulated
    approximate: bool = False


@dataclass
class PriceQuote:
    """A priced route from path[0] to path[-1].

    Prices are Q18 fixed point (output units per whole input unit, scaled by 1e18).
    """

    chain: str
    amount_in: int
    amount_out: int
    mid_price_q18: int
    execution_price_q18: int
    price_impact_bps: int
    path: list[TokenMetadata]
    route_addresses: list[str]
    sources: list[PriceSource]
    hop_versions: list[HopVersion]
    # Conservative reserve/liquidity proxy, used only for ranking
    liquidity_score: int
    estimated_gas_units: int | None = None
    estimated_gas_cost_wei: int | None = None
    gas_price_wei: int | None = None
    offers: list[PriceQuote] = field(default_factory=list)

    @property
    def token_in(self) -> TokenMetadata:
        return self.path[0]

    @property
    def token_out(self) -> TokenMetadata:
        return self.path[-1]

    @property
    def is_multihop(self) -> bool:
        """Check if this is a multi-hop route."""
        return len(self.sources) > 1

    @property
    def is_approximate(self) -> bool:
        """True if any hop output was estimated rather than simulated."""
        return any(source.approximate for source in self.sources)

    @property
    def pool_path(self) -> list[str]:
        return [source.pool_address for source in self.sources]

    def validate_route(self) -> None:
        """Check that path, sources, hop versions and route addresses line up.

        Hop amounts are not compared: a plan may be built from a quote whose
        later hops were priced for more than the earlier hops deliver.

        Raises:
            InvalidQuoteError: If the route data is inconsistent
        """
        if len(self.path) < 2:
            raise InvalidQuoteError("Quote path must contain at least two tokens")
        if len(self.path) != len(self.sources) + 1:
            raise InvalidQuoteError(
                f"Path length {len(self.path)} does not match {len(self.sources)} sources"
            )
        if len(self.hop_versions) != len(self.sources):
            raise InvalidQuoteError(
                f"{len(self.hop_versions)} hop versions for {len(self.sources)} sources"
            )
        if len(self.route_addresses) != len(self.path):
            raise InvalidQuoteError("Route addresses do not match path")
        for token, address in zip(self.path, self.route_addresses, strict=True):
            if not same_address(token.address, address):
                raise InvalidQuoteError(f"Route address {address} does not match {token.address}")

    def validate(self) -> None:
        """Check the route invariants and that each hop consumes the previous output.

        Raises:
            InvalidQuoteError: If the route data is inconsistent or chained hop
                amounts do not match.
        """
        self.validate_route()
        for index in range(1, len(self.sources)):
            previous, current = self.sources[index - 1], self.sources[index]
            if current.amount_in != previous.amount_out:
                raise InvalidQuoteError(
                    f"Hop {index} amount_in {current.amount_in} != "
                    f"hop {index - 1} amount_out {previous.amount_out}"
                )


@dataclass(frozen=True)
class QuoteResult:
    """Best quote plus the slippage-bounded minimum output."""

    quote: PriceQuote
    amount_out_min: int
    slippage_bps: int
    token_in: TokenMetadata
    token_out: TokenMetadata


__all__ = [
    "HopVersion",
    "RoutePreference",
    "TokenMetadata",
    "PriceSource",
    "PriceQuote",
    "QuoteResult",
]
