"""Concentrated-liquidity constants: fee tiers, tick spacing and fixed-point scales."""

# Fee tiers in hundredths of a basis point
# Fee = units / 1,000,000 (e.g., 3000 = 0.3%)
V3_FEE_LOWEST = 100  # 0.01% - stable pairs
V3_FEE_LOW = 500  # 0.05% - stable pairs
V3_FEE_PANCAKE = 2500  # 0.25% - PancakeSwap's medium tier
V3_FEE_MEDIUM = 3000  # 0.30% - most pairs
V3_FEE_HIGH = 10000  # 1.00% - exotic pairs

V3_FEE_TIERS = [V3_FEE_LOWEST, V3_FEE_LOW, V3_FEE_PANCAKE, V3_FEE_MEDIUM, V3_FEE_HIGH]

# Tick spacing per fee tier
V3_TICK_SPACING = {
    V3_FEE_LOWEST: 1,
    V3_FEE_LOW: 10,
    V3_FEE_PANCAKE: 50,
    V3_FEE_MEDIUM: 60,
    V3_FEE_HIGH: 200,
}

# sqrtPriceX96 fixed point
Q96 = 2**96
Q192 = 2**192

MIN_TICK = -887272
MAX_TICK = 887272

__all__ = [
    "V3_FEE_LOWEST",
    "V3_FEE_LOW",
    "V3_FEE_PANCAKE",
    "V3_FEE_MEDIUM",
    "V3_FEE_HIGH",
    "V3_FEE_TIERS",
    "V3_TICK_SPACING",
    "Q96",
    "Q192",
    "MIN_TICK",
    "MAX_TICK",
]
