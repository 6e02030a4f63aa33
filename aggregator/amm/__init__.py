"""AMM (Automated Market Maker) math and router encodings."""

from aggregator.amm.base import SwapResult
from aggregator.amm.uniswap_v2 import UniswapV2, UniswapV2Pair, uniswap_v2

__all__ = [
    "SwapResult",
    "UniswapV2",
    "UniswapV2Pair",
    "uniswap_v2",
]
