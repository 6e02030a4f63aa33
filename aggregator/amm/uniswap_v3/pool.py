"""Concentrated-liquidity pool snapshot and in-range swap math.

A pool snapshot holds only the state read from slot0/liquidity, so it can
simulate swaps that stay inside the current initialized tick range. Swaps
that would cross into a neighbouring range need tick data we do not read and
raise TickRangeExceeded instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, localcontext

from aggregator.constants import V3_FEE_DENOMINATOR
from aggregator.models.types import same_address

from .constants import MAX_TICK, MIN_TICK, Q96, V3_TICK_SPACING


class TickRangeExceeded(Exception):
    """Swap would leave the current tick range; liquidity beyond it is unknown."""

    pass


def tick_spacing_for_fee(fee: int) -> int:
    """Tick spacing for a fee tier (defaults to 60 for unknown tiers)."""
    return V3_TICK_SPACING.get(fee, 60)


def sqrt_price_x96_at_tick(tick: int) -> int:
    """sqrt(1.0001^tick) * 2^96, rounded down."""
    if tick < MIN_TICK or tick > MAX_TICK:
        raise ValueError(f"Tick {tick} out of range")
    with localcontext() as ctx:
        ctx.prec = 80
        value = (Decimal("1.0001") ** tick).sqrt() * Q96
        return int(value)


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


@dataclass
class UniswapV3Pool:
    """Snapshot of a concentrated-liquidity pool.

    Attributes:
        address: Pool address
        token0: Lower-sorted token of the pool
        token1: Higher-sorted token of the pool
        fee: Fee in millionths (e.g., 3000 for 0.3%)
        sqrt_price_x96: Current sqrt(price) * 2^96
        liquidity: Active liquidity in the current tick range
        tick: Current tick index
    """

    address: str
    token0: str
    token1: str
    fee: int
    sqrt_price_x96: int
    liquidity: int
    tick: int

    @property
    def tick_spacing(self) -> int:
        return tick_spacing_for_fee(self.fee)

    def is_token0(self, token: str) -> bool:
        """Check if token is token0 (determines swap direction)."""
        return same_address(token, self.token0)

    def get_token_out(self, token_in: str) -> str:
        if same_address(token_in, self.token0):
            return self.token1
        if same_address(token_in, self.token1):
            return self.token0
        raise ValueError(f"Token {token_in} not in pool")

    def range_bounds(self) -> tuple[int, int]:
        """sqrt prices at the lower and upper initialized-tick boundaries of the current range."""
        spacing = self.tick_spacing
        lower_tick = (self.tick // spacing) * spacing
        upper_tick = lower_tick + spacing
        lower_tick = max(lower_tick, MIN_TICK)
        upper_tick = min(upper_tick, MAX_TICK)
        return sqrt_price_x96_at_tick(lower_tick), sqrt_price_x96_at_tick(upper_tick)

    def get_amount_out(self, token_in: str, amount_in: int) -> int:
        """Exact-input output assuming the swap stays inside the current tick range.

        Raises:
            TickRangeExceeded: If the post-swap price leaves the current range
            ValueError: If token_in is not in the pool
        """
        if amount_in <= 0 or self.liquidity <= 0 or self.sqrt_price_x96 <= 0:
            return 0

        zero_for_one = self.is_token0(token_in)
        if not zero_for_one and not same_address(token_in, self.token1):
            raise ValueError(f"Token {token_in} not in pool")

        amount_less_fee = amount_in * (V3_FEE_DENOMINATOR - self.fee) // V3_FEE_DENOMINATOR
        if amount_less_fee == 0:
            return 0

        liquidity = self.liquidity
        sqrt_p = self.sqrt_price_x96
        lower_bound, upper_bound = self.range_bounds()

        if zero_for_one:
            # Price moves down: sqrtP' = L * sqrtP / (L + amount * sqrtP / Q96), rounded up
            numerator = liquidity * Q96 * sqrt_p
            denominator = liquidity * Q96 + amount_less_fee * sqrt_p
            next_sqrt_p = _ceil_div(numerator, denominator)
            if next_sqrt_p < lower_bound:
                raise TickRangeExceeded(
                    f"Swap of {amount_in} moves {self.address} below tick range"
                )
            return liquidity * (sqrt_p - next_sqrt_p) // Q96

        # Price moves up: sqrtP' = sqrtP + amount * Q96 / L, rounded down
        next_sqrt_p = sqrt_p + amount_less_fee * Q96 // liquidity
        if next_sqrt_p > upper_bound:
            raise TickRangeExceeded(f"Swap of {amount_in} moves {self.address} above tick range")
        return liquidity * Q96 * (next_sqrt_p - sqrt_p) // (next_sqrt_p * sqrt_p)


__all__ = [
    "UniswapV3Pool",
    "TickRangeExceeded",
    "tick_spacing_for_fee",
    "sqrt_price_x96_at_tick",
]
