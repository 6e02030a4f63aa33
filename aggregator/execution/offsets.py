"""Dynamic-injection offsets, shared by the plan builder and the executor tests.

Each venue call shape has exactly one payload position holding the swap input
amount. The builder writes it into Call.inject_offset and the executor
overwrites payload[offset:offset + 32] with its live token balance. Offsets are
measured from the start of the payload, including the 4-byte selector.
"""

from __future__ import annotations

from enum import Enum

SELECTOR_SIZE = 4
WORD_SIZE = 32


class CallShape(str, Enum):
    """ABI shape of a venue's swap entry point."""

    # swapExactTokensForTokens(uint256 amountIn, uint256 amountOutMin, address[] path,
    #                          address to, uint256 deadline)
    V2_SWAP_EXACT_TOKENS = "v2_swap_exact_tokens"
    # exactInputSingle((tokenIn, tokenOut, fee, recipient, amountIn, amountOutMinimum,
    #                   sqrtPriceLimitX96)) -- SwapRouter02, no deadline in the struct
    V3_EXACT_INPUT_SINGLE = "v3_exact_input_single"
    # exactInputSingle((tokenIn, tokenOut, fee, recipient, deadline, amountIn,
    #                   amountOutMinimum, sqrtPriceLimitX96)) -- original SwapRouter layout
    V3_EXACT_INPUT_SINGLE_DEADLINE = "v3_exact_input_single_deadline"
    # withdraw(uint256 amount) on the wrapped native token
    WRAPPED_NATIVE_WITHDRAW = "wrapped_native_withdraw"


# amountIn is the first argument
V2_SWAP_AMOUNT_IN_OFFSET = SELECTOR_SIZE
# Static struct encoded inline: tokenIn, tokenOut, fee, recipient precede amountIn
V3_EXACT_INPUT_SINGLE_AMOUNT_IN_OFFSET = SELECTOR_SIZE + 4 * WORD_SIZE  # 132
# deadline adds one more word before amountIn
V3_EXACT_INPUT_SINGLE_DEADLINE_AMOUNT_IN_OFFSET = SELECTOR_SIZE + 5 * WORD_SIZE  # 164
WRAPPED_NATIVE_WITHDRAW_AMOUNT_OFFSET = SELECTOR_SIZE

INJECTION_OFFSETS: dict[CallShape, int] = {
    CallShape.V2_SWAP_EXACT_TOKENS: V2_SWAP_AMOUNT_IN_OFFSET,
    CallShape.V3_EXACT_INPUT_SINGLE: V3_EXACT_INPUT_SINGLE_AMOUNT_IN_OFFSET,
    CallShape.V3_EXACT_INPUT_SINGLE_DEADLINE: V3_EXACT_INPUT_SINGLE_DEADLINE_AMOUNT_IN_OFFSET,
    CallShape.WRAPPED_NATIVE_WITHDRAW: WRAPPED_NATIVE_WITHDRAW_AMOUNT_OFFSET,
}


def injection_offset(shape: CallShape) -> int:
    """Byte offset of the injectable amount word for a call shape."""
    return INJECTION_OFFSETS[shape]


def inject_word(payload: bytes, offset: int, value: int) -> bytes:
    """Return payload with the 32-byte word at offset replaced by value.

    Raises:
        ValueError: If the word does not fit inside the payload or value is
            not a uint256
    """
    if offset < 0 or offset + WORD_SIZE > len(payload):
        raise ValueError(f"Word at offset {offset} exceeds payload length {len(payload)}")
    if value < 0 or value >= 2**256:
        raise ValueError(f"Value {value} is not a uint256")
    return payload[:offset] + value.to_bytes(WORD_SIZE, "big") + payload[offset + WORD_SIZE :]


def read_word(payload: bytes, offset: int) -> int:
    """Read the 32-byte big-endian word at offset."""
    if offset < 0 or offset + WORD_SIZE > len(payload):
        raise ValueError(f"Word at offset {offset} exceeds payload length {len(payload)}")
    return int.from_bytes(payload[offset : offset + WORD_SIZE], "big")


__all__ = [
    "SELECTOR_SIZE",
    "WORD_SIZE",
    "CallShape",
    "INJECTION_OFFSETS",
    "injection_offset",
    "inject_word",
    "read_word",
]
