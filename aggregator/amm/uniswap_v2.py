"""Constant-product (UniswapV2-style) AMM math and router encoding.

UniswapV2 uses the constant product formula: x * y = k
with a flat fee on input amounts (30 bps on Uniswap, 25 bps on PancakeSwap).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from eth_abi import encode  # type: ignore[attr-defined]

from aggregator.amm.base import SwapResult
from aggregator.constants import BPS_DENOMINATOR
from aggregator.models.types import address_to_bytes, is_valid_address, same_address


@dataclass
class UniswapV2Pair:
    """Reserves snapshot of a constant-product pair."""

    address: str
    token0: str
    token1: str
    reserve0: int
    reserve1: int
    # Fee in basis points (30 = 0.3%)
    fee_bps: int = 30

    @property
    def fee_multiplier(self) -> int:
        """Fee multiplier for AMM math (10000 - fee_bps).

        For 30 bps (0.3%), this returns 9970.
        For 25 bps (0.25%), this returns 9975.
        """
        return BPS_DENOMINATOR - self.fee_bps

    def get_reserves(self, token_in: str) -> tuple[int, int]:
        """Get reserves ordered as (reserve_in, reserve_out)."""
        if same_address(token_in, self.token0):
            return self.reserve0, self.reserve1
        if same_address(token_in, self.token1):
            return self.reserve1, self.reserve0
        raise ValueError(f"Token {token_in} not in pair")

    def get_token_out(self, token_in: str) -> str:
        """Get the output token for a given input token."""
        if same_address(token_in, self.token0):
            return self.token1
        if same_address(token_in, self.token1):
            return self.token0
        raise ValueError(f"Token {token_in} not in pair")


class UniswapV2:
    """Constant-product math and router calldata encoding.

    Formula: amount_out = (amount_in * fee * reserve_out) / (reserve_in * 10000 + amount_in * fee)
    """

    # swapExactTokensForTokens(uint256,uint256,address[],address,uint256)
    SWAP_EXACT_TOKENS_SELECTOR: ClassVar[bytes] = bytes.fromhex("38ed1739")
    SWAP_EXACT_TOKENS_SIGNATURE: ClassVar[str] = (
        "swapExactTokensForTokens(uint256,uint256,address[],address,uint256)"
    )

    def get_amount_out(
        self,
        amount_in: int,
        reserve_in: int,
        reserve_out: int,
        fee_multiplier: int = 9970,
    ) -> int:
        """Calculate output amount using the constant product formula.

        Args:
            amount_in: Input token amount
            reserve_in: Reserve of input token in pool
            reserve_out: Reserve of output token in pool
            fee_multiplier: 10000 - fee_bps (9970 for 0.3%, 9975 for 0.25%)

        Returns:
            Output token amount, 0 for non-positive input or empty reserves
        """
        if amount_in <= 0:
            return 0
        if reserve_in <= 0 or reserve_out <= 0:
            return 0

        amount_in_with_fee = amount_in * fee_multiplier
        numerator = amount_in_with_fee * reserve_out
        denominator = reserve_in * BPS_DENOMINATOR + amount_in_with_fee
        return numerator // denominator

    def simulate_swap(
        self,
        pair: UniswapV2Pair,
        token_in: str,
        amount_in: int,
    ) -> SwapResult:
        """Simulate an exact-input swap through a pair."""
        reserve_in, reserve_out = pair.get_reserves(token_in)
        token_out = pair.get_token_out(token_in)
        amount_out = self.get_amount_out(amount_in, reserve_in, reserve_out, pair.fee_multiplier)

        return SwapResult(
            amount_in=amount_in,
            amount_out=amount_out,
            pool_address=pair.address,
            token_in=token_in,
            token_out=token_out,
        )

    def encode_swap(
        self,
        token_in: str,
        token_out: str,
        amount_in: int,
        amount_out_min: int,
        recipient: str,
        deadline: int,
        path: list[str] | None = None,
    ) -> bytes:
        """Encode swapExactTokensForTokens calldata.

        amount_in is the first argument, so it sits at byte offset 4.

        Args:
            token_in: Input token address (0x-prefixed hex)
            token_out: Output token address (0x-prefixed hex)
            amount_in: Amount of input token
            amount_out_min: Minimum output (slippage protection)
            recipient: Address to receive output tokens
            deadline: Unix timestamp after which the router rejects the swap
            path: Optional full path. Defaults to [token_in, token_out].

        Returns:
            Calldata bytes (selector + arguments)

        Raises:
            ValueError: If any address is invalid
        """
        if path is None:
            path = [token_in, token_out]

        for i, addr in enumerate(path):
            if not is_valid_address(addr):
                raise ValueError(f"Invalid address in path[{i}]: {addr}")
        if not is_valid_address(recipient):
            raise ValueError(f"Invalid recipient address: {recipient}")

        encoded_args = encode(
            ["uint256", "uint256", "address[]", "address", "uint256"],
            [
                amount_in,
                amount_out_min,
                [address_to_bytes(addr) for addr in path],
                address_to_bytes(recipient),
                deadline,
            ],
        )
        return self.SWAP_EXACT_TOKENS_SELECTOR + encoded_args


# Singleton instance
uniswap_v2 = UniswapV2()


__all__ = ["UniswapV2", "UniswapV2Pair", "uniswap_v2"]
