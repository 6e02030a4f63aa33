"""Wrapped native token (WETH/WBNB) calldata encoding."""

from __future__ import annotations

from eth_abi import encode  # type: ignore[attr-defined]

# deposit()
DEPOSIT_SELECTOR = bytes.fromhex("d0e30db0")
DEPOSIT_SIGNATURE = "deposit()"

# withdraw(uint256)
WITHDRAW_SELECTOR = bytes.fromhex("2e1a7d4d")
WITHDRAW_SIGNATURE = "withdraw(uint256)"


def encode_deposit() -> bytes:
    """Encode deposit(); the amount to wrap travels as call value."""
    return DEPOSIT_SELECTOR


def encode_withdraw(amount: int) -> bytes:
    """Encode withdraw(amount). The amount word sits at byte offset 4."""
    return WITHDRAW_SELECTOR + encode(["uint256"], [amount])


__all__ = [
    "DEPOSIT_SELECTOR",
    "DEPOSIT_SIGNATURE",
    "WITHDRAW_SELECTOR",
    "WITHDRAW_SIGNATURE",
    "encode_deposit",
    "encode_withdraw",
]
