"""Protocol constants for the swap aggregator.

Centralizes fixed-point scales, discovery thresholds, cache lifetimes,
gas heuristics and the well-known intermediary tokens per chain.
"""

from aggregator.models.types import is_valid_address

# Q18 fixed point: 18 fractional decimal digits
Q18 = 10**18

# Basis-point denominator
BPS_DENOMINATOR = 10_000

# Slippage is clamped to [0, MAX_SLIPPAGE_BPS]
MAX_SLIPPAGE_BPS = 5_000

# Price impact cap, guards against overflow from degenerate pools
MAX_PRICE_IMPACT_BPS = 10_000_000

# Concentrated-liquidity fees are expressed in millionths (3000 = 0.3%)
V3_FEE_DENOMINATOR = 1_000_000

# Discovery thresholds
MIN_V2_RESERVE_THRESHOLD = 10**12  # filters dust pairs
MIN_V3_LIQUIDITY_THRESHOLD = 0  # pools at or below are rejected

# Cache lifetimes (seconds)
TOKEN_CACHE_TTL_SECONDS = 5 * 60
POOL_ADDRESS_CACHE_TTL_SECONDS = 5 * 60
GAS_PRICE_CACHE_TTL_SECONDS = 30

# Gas heuristics (estimates only, never a bound)
GAS_BASE = 50_000
GAS_MULTI_HOP_OVERHEAD = 20_000
GAS_PER_HOP = {
    "v2": 70_000,
    "v3": 110_000,
}
GAS_UNKNOWN_HOP = 90_000

# Plan-builder defaults
DEFAULT_INTERHOP_BUFFER_BPS = 3
DEFAULT_DEADLINE_SECONDS = 600
DEFAULT_QUOTE_TTL_SECONDS = 15


def _validate_token_address(name: str, address: str) -> str:
    """Validate and return a token address.

    Raises:
        ValueError: If the address is invalid
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be 0x + 40 hex chars)")
    return address


# Intermediary tokens for 2-hop routing: (address, symbol, name, decimals)
# All addresses are validated at import time to catch typos early
INTERMEDIATE_TOKENS: dict[str, list[tuple[str, str, str, int]]] = {
    "ethereum": [
        (_validate_token_address("WETH", "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"), "WETH", "Wrapped Ether", 18),
        (_validate_token_address("USDC", "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"), "USDC", "USD Coin", 6),
        (_validate_token_address("USDT", "0xdAC17F958D2ee523a2206206994597C13D831ec7"), "USDT", "Tether USD", 6),
        (_validate_token_address("BUSD", "0x4Fabb145d64652a948d72533023f6E7A623C7C53"), "BUSD", "Binance USD", 18),
    ],
    "bsc": [
        (_validate_token_address("WBNB", "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c"), "WBNB", "Wrapped BNB", 18),
        (_validate_token_address("USDT", "0x55d398326f99059fF775485246999027B3197955"), "USDT", "Tether USD", 18),
        (_validate_token_address("USDC", "0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d"), "USDC", "USD Coin", 18),
        (_validate_token_address("BUSD", "0xe9e7CEA3DedcA5984780Bafc599bD69ADd087D56"), "BUSD", "Binance USD", 18),
    ],
}
