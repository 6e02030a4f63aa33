"""Tests for Q18 quote arithmetic."""

import pytest

from aggregator.amm.uniswap_v3 import sqrt_price_x96_at_tick
from aggregator.amm.uniswap_v3.constants import Q96
from aggregator.pricing.quote_math import (
    apply_price_q18,
    apply_slippage,
    clamp_slippage_bps,
    compute_execution_price_q18,
    compute_mid_price_q18_from_reserves,
    compute_mid_price_q18_from_sqrt_price,
    compute_price_impact_bps,
    estimate_amount_out_from_mid_price,
    estimate_gas_for_route,
    multiply_q18,
    scale_to_q18,
)

Q18 = 10**18


class TestScaling:
    def test_scale_to_q18(self):
        assert scale_to_q18(1_500_000, 6) == 15 * 10**17
        assert scale_to_q18(7, 18) == 7
        assert scale_to_q18(10**20, 20) == 10**18

    def test_multiply_q18(self):
        assert multiply_q18(2 * Q18, 3 * Q18) == 6 * Q18
        assert multiply_q18(Q18 // 2, Q18 // 2) == Q18 // 4


class TestMidPrice:
    def test_from_reserves_with_mixed_decimals(self):
        """100 WETH / 250,000 USDC is 2500 USDC per WETH."""
        price = compute_mid_price_q18_from_reserves(100 * 10**18, 250_000 * 10**6, 18, 6)
        assert price == 2500 * Q18

    def test_from_reserves_inverse(self):
        price = compute_mid_price_q18_from_reserves(250_000 * 10**6, 100 * 10**18, 6, 18)
        assert price == Q18 // 2500

    def test_from_reserves_empty_pool(self):
        assert compute_mid_price_q18_from_reserves(0, 10, 18, 18) == 0

    def test_from_sqrt_price_unit(self):
        assert compute_mid_price_q18_from_sqrt_price(Q96, True, 18, 18) == Q18
        assert compute_mid_price_q18_from_sqrt_price(Q96, False, 18, 18) == Q18

    def test_from_sqrt_price_directions_are_reciprocal(self):
        sqrt_price = sqrt_price_x96_at_tick(6932)  # ~2x
        forward = compute_mid_price_q18_from_sqrt_price(sqrt_price, True, 18, 18)
        backward = compute_mid_price_q18_from_sqrt_price(sqrt_price, False, 18, 18)

        assert abs(forward - 2 * Q18) < Q18 // 1000
        assert abs(multiply_q18(forward, backward) - Q18) < Q18 // 10**6

    def test_from_sqrt_price_decimals(self):
        """Raw price 1 between an 18- and a 6-decimal token is 1e12 whole units."""
        assert compute_mid_price_q18_from_sqrt_price(Q96, True, 18, 6) == 10**12 * Q18

    def test_zero_sqrt_price(self):
        assert compute_mid_price_q18_from_sqrt_price(0, True, 18, 18) == 0


class TestExecutionPriceAndImpact:
    def test_apply_price(self):
        assert apply_price_q18(2500 * Q18, 10**18, 18, 6) == 2500 * 10**6
        assert apply_price_q18(0, 10**18, 18, 6) == 0

    def test_execution_price(self):
        assert compute_execution_price_q18(10**18, 2467 * 10**6, 18, 6) == 2467 * Q18
        assert compute_execution_price_q18(0, 5, 18, 6) == 0

    def test_price_impact(self):
        # Expected 2500, received 2475: 1% = 100 bps
        impact = compute_price_impact_bps(2500 * Q18, 10**18, 2475 * 10**6, 18, 6)
        assert impact == 100

    def test_price_impact_never_negative(self):
        assert compute_price_impact_bps(2500 * Q18, 10**18, 2600 * 10**6, 18, 6) == 400

    def test_price_impact_capped(self):
        assert compute_price_impact_bps(1, 10**18, 10**30, 18, 18) == 10_000_000

    def test_price_impact_degenerate(self):
        assert compute_price_impact_bps(0, 1, 1, 18, 18) == 0
        assert compute_price_impact_bps(Q18, 0, 1, 18, 18) == 0


class TestEstimates:
    def test_mid_price_estimate_less_fee(self):
        assert estimate_amount_out_from_mid_price(2 * Q18, 10**6, 18, 18, 3000) == 2 * 997_000

    def test_gas_estimate_grows_with_hops(self):
        single = estimate_gas_for_route(["v2"])
        double = estimate_gas_for_route(["v2", "v3"])

        assert single == 50_000 + 70_000
        assert double == 50_000 + 70_000 + 110_000 + 20_000
        assert estimate_gas_for_route([]) == 50_000


class TestSlippage:
    @pytest.mark.parametrize(
        "value,expected",
        [(50, 50), (49.9, 49), (-1, 0), (float("nan"), 0), (float("inf"), 0), (9_999, 5_000)],
    )
    def test_clamp(self, value, expected):
        assert clamp_slippage_bps(value) == expected

    def test_apply_slippage(self):
        assert apply_slippage(1992, 50) == 1982
        assert apply_slippage(1992, 0) == 1992
        assert apply_slippage(0, 50) == 0

    def test_minimum_never_exceeds_expected(self):
        for amount in (1, 7, 1992, 10**24):
            for bps in (0, 1, 50, 5_000):
                assert apply_slippage(amount, bps) <= amount
