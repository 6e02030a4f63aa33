"""Concentrated-liquidity (UniswapV3-style) pools, encoding and quoting."""

from aggregator.amm.uniswap_v3.constants import V3_FEE_TIERS, V3_TICK_SPACING
from aggregator.amm.uniswap_v3.encoding import (
    EXACT_INPUT_SINGLE_DEADLINE_SELECTOR,
    EXACT_INPUT_SINGLE_SELECTOR,
    encode_exact_input_single,
    encode_exact_input_single_for_shape,
    encode_exact_input_single_with_deadline,
)
from aggregator.amm.uniswap_v3.pool import (
    TickRangeExceeded,
    UniswapV3Pool,
    sqrt_price_x96_at_tick,
    tick_spacing_for_fee,
)
from aggregator.amm.uniswap_v3.quoter import (
    ChainQuoter,
    MockUniswapV3Quoter,
    QuoteRequest,
    UniswapV3Quoter,
)

__all__ = [
    "V3_FEE_TIERS",
    "V3_TICK_SPACING",
    "EXACT_INPUT_SINGLE_SELECTOR",
    "EXACT_INPUT_SINGLE_DEADLINE_SELECTOR",
    "encode_exact_input_single",
    "encode_exact_input_single_with_deadline",
    "encode_exact_input_single_for_shape",
    "UniswapV3Pool",
    "TickRangeExceeded",
    "sqrt_price_x96_at_tick",
    "tick_spacing_for_fee",
    "QuoteRequest",
    "UniswapV3Quoter",
    "MockUniswapV3Quoter",
    "ChainQuoter",
]
