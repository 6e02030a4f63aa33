"""Route ranking and best-quote selection.

Quotes are ordered by a total key:
1. higher amount_out
2. higher liquidity_score
3. lower price_impact_bps
4. exact before approximate
5. fewer hops
6. pool-address path, lexicographically (lowercase)

The last component makes the order total for distinct routes, so ranking is
deterministic regardless of discovery order.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

import structlog

from aggregator.models.quote import PriceQuote
from aggregator.models.types import normalize_address

logger = structlog.get_logger()


def quote_sort_key(quote: PriceQuote) -> tuple[int, int, int, bool, int, tuple[str, ...]]:
    """Ascending sort key; the best quote sorts first."""
    return (
        -quote.amount_out,
        -quote.liquidity_score,
        quote.price_impact_bps,
        quote.is_approximate,
        len(quote.sources),
        tuple(normalize_address(address) for address in quote.pool_path),
    )


def compare_quotes(a: PriceQuote, b: PriceQuote) -> int:
    """Three-way comparison: -1 if a ranks better, 1 if b does, 0 if equal keys."""
    key_a, key_b = quote_sort_key(a), quote_sort_key(b)
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


def rank_quotes(quotes: Iterable[PriceQuote]) -> list[PriceQuote]:
    """Quotes sorted best first."""
    return sorted(quotes, key=quote_sort_key)


def select_best_quote(quotes: Iterable[PriceQuote]) -> PriceQuote | None:
    """Pick the best quote and attach the remaining ones as offers.

    Args:
        quotes: Candidate quotes for one (token_in, token_out, amount_in)

    Returns:
        The best quote with `offers` set to the other candidates (best first),
        or None when there are no candidates
    """
    ranked = rank_quotes(quotes)
    if not ranked:
        return None

    best, *rest = ranked
    logger.info(
        "route_rankings",
        candidates=[
            {
                "rank": index + 1,
                "hops": [source.dex_id for source in quote.sources],
                "amount_out": str(quote.amount_out),
                "liquidity_score": str(quote.liquidity_score),
                "price_impact_bps": quote.price_impact_bps,
                "approximate": quote.is_approximate,
            }
            for index, quote in enumerate(ranked)
        ],
    )
    return replace(best, offers=[replace(offer, offers=[]) for offer in rest])


__all__ = [
    "quote_sort_key",
    "compare_quotes",
    "rank_quotes",
    "select_best_quote",
]
