"""exactInputSingle calldata encoding for concentrated-liquidity routers.

Two router generations are in use:
- SwapRouter02 (Uniswap on most chains): the params struct has no deadline.
- The original SwapRouter layout (PancakeSwap V3): deadline sits between
  recipient and amountIn, shifting amountIn by one word.
"""

from __future__ import annotations

from eth_abi import encode  # type: ignore[attr-defined]

from aggregator.execution.offsets import CallShape
from aggregator.models.types import address_to_bytes

# exactInputSingle((address,address,uint24,address,uint256,uint256,uint160))
EXACT_INPUT_SINGLE_SELECTOR = bytes.fromhex("04e45aaf")
EXACT_INPUT_SINGLE_SIGNATURE = (
    "exactInputSingle((address,address,uint24,address,uint256,uint256,uint160))"
)

# exactInputSingle((address,address,uint24,address,uint256,uint256,uint256,uint160))
EXACT_INPUT_SINGLE_DEADLINE_SELECTOR = bytes.fromhex("414bf389")
EXACT_INPUT_SINGLE_DEADLINE_SIGNATURE = (
    "exactInputSingle((address,address,uint24,address,uint256,uint256,uint256,uint160))"
)

EXACT_INPUT_SINGLE_TYPE = "(address,address,uint24,address,uint256,uint256,uint160)"
EXACT_INPUT_SINGLE_DEADLINE_TYPE = (
    "(address,address,uint24,address,uint256,uint256,uint256,uint160)"
)


def encode_exact_input_single(
    token_in: str,
    token_out: str,
    fee: int,
    recipient: str,
    amount_in: int,
    amount_out_minimum: int,
    sqrt_price_limit_x96: int = 0,
) -> bytes:
    """Encode SwapRouter02.exactInputSingle calldata.

    Args:
        token_in: Input token address
        token_out: Output token address
        fee: Pool fee tier (e.g., 3000 for 0.3%)
        recipient: Address to receive output tokens
        amount_in: Amount of input tokens
        amount_out_minimum: Minimum output amount (slippage protection)
        sqrt_price_limit_x96: Price limit (0 = no limit)

    Returns:
        Calldata bytes (selector + encoded struct)
    """
    # (address tokenIn, address tokenOut, uint24 fee, address recipient,
    #  uint256 amountIn, uint256 amountOutMinimum, uint160 sqrtPriceLimitX96)
    encoded_params = encode(
        [EXACT_INPUT_SINGLE_TYPE],
        [
            (
                address_to_bytes(token_in),
                address_to_bytes(token_out),
                fee,
                address_to_bytes(recipient),
                amount_in,
                amount_out_minimum,
                sqrt_price_limit_x96,
            )
        ],
    )
    return EXACT_INPUT_SINGLE_SELECTOR + encoded_params


def encode_exact_input_single_with_deadline(
    token_in: str,
    token_out: str,
    fee: int,
    recipient: str,
    deadline: int,
    amount_in: int,
    amount_out_minimum: int,
    sqrt_price_limit_x96: int = 0,
) -> bytes:
    """Encode exactInputSingle calldata for routers whose struct carries a deadline."""
    # (address tokenIn, address tokenOut, uint24 fee, address recipient, uint256 deadline,
    #  uint256 amountIn, uint256 amountOutMinimum, uint160 sqrtPriceLimitX96)
    encoded_params = encode(
        [EXACT_INPUT_SINGLE_DEADLINE_TYPE],
        [
            (
                address_to_bytes(token_in),
                address_to_bytes(token_out),
                fee,
                address_to_bytes(recipient),
                deadline,
                amount_in,
                amount_out_minimum,
                sqrt_price_limit_x96,
            )
        ],
    )
    return EXACT_INPUT_SINGLE_DEADLINE_SELECTOR + encoded_params


def encode_exact_input_single_for_shape(
    shape: CallShape,
    token_in: str,
    token_out: str,
    fee: int,
    recipient: str,
    amount_in: int,
    amount_out_minimum: int,
    deadline: int,
) -> bytes:
    """Encode exactInputSingle in the struct layout the venue's router expects.

    Raises:
        ValueError: If shape is not a concentrated-liquidity swap shape
    """
    if shape == CallShape.V3_EXACT_INPUT_SINGLE:
        return encode_exact_input_single(
            token_in, token_out, fee, recipient, amount_in, amount_out_minimum
        )
    if shape == CallShape.V3_EXACT_INPUT_SINGLE_DEADLINE:
        return encode_exact_input_single_with_deadline(
            token_in, token_out, fee, recipient, deadline, amount_in, amount_out_minimum
        )
    raise ValueError(f"Call shape {shape} is not an exactInputSingle shape")


__all__ = [
    "EXACT_INPUT_SINGLE_SELECTOR",
    "EXACT_INPUT_SINGLE_SIGNATURE",
    "EXACT_INPUT_SINGLE_DEADLINE_SELECTOR",
    "EXACT_INPUT_SINGLE_DEADLINE_SIGNATURE",
    "EXACT_INPUT_SINGLE_TYPE",
    "EXACT_INPUT_SINGLE_DEADLINE_TYPE",
    "encode_exact_input_single",
    "encode_exact_input_single_with_deadline",
    "encode_exact_input_single_for_shape",
]
