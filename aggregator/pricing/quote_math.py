"""Pure integer arithmetic for pricing routes.

Prices are Q18 fixed point: whole output units per whole input unit, scaled
by 1e18. Amounts are raw token units. Every function is total: degenerate
inputs (zero amounts, zero prices) yield 0 rather than raising.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from aggregator.amm.uniswap_v3.constants import Q192
from aggregator.constants import (
    BPS_DENOMINATOR,
    GAS_BASE,
    GAS_MULTI_HOP_OVERHEAD,
    GAS_PER_HOP,
    GAS_UNKNOWN_HOP,
    MAX_PRICE_IMPACT_BPS,
    MAX_SLIPPAGE_BPS,
    Q18,
    V3_FEE_DENOMINATOR,
)


def _pow10(decimals: int) -> int:
    return 1 if decimals <= 0 else 10**decimals


def scale_to_q18(amount: int, decimals: int) -> int:
    """Rescale a raw amount to 18 decimals."""
    if decimals == 18:
        return amount
    if decimals < 18:
        return amount * 10 ** (18 - decimals)
    return amount // 10 ** (decimals - 18)


def multiply_q18(a: int, b: int) -> int:
    """Product of two Q18 values."""
    return a * b // Q18


def compute_mid_price_q18_from_reserves(
    reserve_in: int, reserve_out: int, decimals_in: int, decimals_out: int
) -> int:
    """Constant-product spot price before fees.

    Computed from the raw reserves in one division so no precision is lost
    when one side has few decimals.
    """
    if reserve_in <= 0 or reserve_out <= 0:
        return 0
    return reserve_out * _pow10(decimals_in) * Q18 // (reserve_in * _pow10(decimals_out))


def compute_mid_price_q18_from_sqrt_price(
    sqrt_price_x96: int, zero_for_one: bool, decimals_in: int, decimals_out: int
) -> int:
    """Concentrated-liquidity spot price from sqrtPriceX96.

    The raw price token1/token0 is sqrtP^2 / 2^192; it is inverted when
    token1 is the input.
    """
    price_sq = sqrt_price_x96 * sqrt_price_x96
    if price_sq == 0:
        return 0
    if zero_for_one:
        return price_sq * _pow10(decimals_in) * Q18 // (Q192 * _pow10(decimals_out))
    return Q192 * _pow10(decimals_in) * Q18 // (price_sq * _pow10(decimals_out))


def apply_price_q18(price_q18: int, amount_in: int, decimals_in: int, decimals_out: int) -> int:
    """Convert an input amount to output units at a Q18 price."""
    if price_q18 == 0 or amount_in == 0:
        return 0
    return amount_in * price_q18 * _pow10(decimals_out) // (Q18 * _pow10(decimals_in))


def compute_execution_price_q18(
    amount_in: int, amount_out: int, decimals_in: int, decimals_out: int
) -> int:
    """Realized price of a swap: out * 1e18 * 10^dec_in / (in * 10^dec_out)."""
    if amount_in == 0 or amount_out == 0:
        return 0
    return amount_out * Q18 * _pow10(decimals_in) // (amount_in * _pow10(decimals_out))


def compute_price_impact_bps(
    mid_price_q18: int,
    amount_in: int,
    amount_out: int,
    decimals_in: int,
    decimals_out: int,
) -> int:
    """Deviation of amount_out from the mid-price expectation, in basis points.

    Returns |expected - actual| * 10000 / expected, capped at 10,000,000.
    Never negative; 0 when any input is zero.
    """
    if mid_price_q18 == 0 or amount_in == 0 or amount_out == 0:
        return 0
    expected_out = apply_price_q18(mid_price_q18, amount_in, decimals_in, decimals_out)
    if expected_out == 0:
        return 0
    diff = abs(expected_out - amount_out)
    return min(diff * BPS_DENOMINATOR // expected_out, MAX_PRICE_IMPACT_BPS)


def estimate_amount_out_from_mid_price(
    mid_price_q18: int,
    amount_in: int,
    decimals_in: int,
    decimals_out: int,
    fee: int,
) -> int:
    """Approximate output: the mid price applied to the input less a flat fee.

    Args:
        fee: Pool fee in millionths (3000 = 0.3%)
    """
    if mid_price_q18 == 0 or amount_in == 0:
        return 0
    adjusted_amount_in = amount_in - amount_in * fee // V3_FEE_DENOMINATOR
    return apply_price_q18(mid_price_q18, adjusted_amount_in, decimals_in, decimals_out)


def estimate_gas_for_route(hops: Sequence[str]) -> int:
    """Heuristic gas units for a route, as a function of its hop versions."""
    if not hops:
        return GAS_BASE
    total = GAS_BASE + sum(GAS_PER_HOP.get(hop, GAS_UNKNOWN_HOP) for hop in hops)
    return total + (len(hops) - 1) * GAS_MULTI_HOP_OVERHEAD


def clamp_slippage_bps(value: float | int) -> int:
    """Clamp a slippage tolerance to [0, 5000] whole basis points.

    Non-finite and negative values become 0.
    """
    if not math.isfinite(value) or value < 0:
        return 0
    if value > MAX_SLIPPAGE_BPS:
        return MAX_SLIPPAGE_BPS
    return int(value)


def apply_slippage(amount: int, slippage_bps: int) -> int:
    """Minimum acceptable output for an expected amount, rounded down."""
    if amount <= 0:
        return 0
    return amount * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR


__all__ = [
    "scale_to_q18",
    "multiply_q18",
    "compute_mid_price_q18_from_reserves",
    "compute_mid_price_q18_from_sqrt_price",
    "apply_price_q18",
    "compute_execution_price_q18",
    "compute_price_impact_bps",
    "estimate_amount_out_from_mid_price",
    "estimate_gas_for_route",
    "clamp_slippage_bps",
    "apply_slippage",
]
