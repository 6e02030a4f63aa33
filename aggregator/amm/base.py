"""Base types shared by the AMM implementations."""

from dataclasses import dataclass


@dataclass
class SwapResult:
    """Result of simulating a swap through a single pool."""

    amount_in: int
    amount_out: int
    pool_address: str
    token_in: str
    token_out: str


__all__ = ["SwapResult"]
