"""Execution-plan primitives consumed by the executor.

All primitives are built fresh per swap request, never persisted, and are
consumed exactly once by a single executor call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from aggregator.models.types import ZERO_ADDRESS, normalize_address


@dataclass(frozen=True)
class TokenPull:
    """Funds moved from the caller into executor custody."""

    token: str
    amount: int


@dataclass(frozen=True)
class Approval:
    """Scoped spending grant. The executor revokes every approval it sets."""

    token: str
    spender: str
    amount: int


@dataclass(frozen=True)
class Call:
    """External call dispatched by the executor.

    If inject_token is non-zero, the 32-byte word at
    payload[inject_offset:inject_offset + 32] is overwritten with the executor's
    live balance of inject_token right before dispatch.
    """

    target: str
    value: int
    payload: bytes
    inject_token: str = ZERO_ADDRESS
    inject_offset: int = 0

    @property
    def has_injection(self) -> bool:
        return normalize_address(self.inject_token) != ZERO_ADDRESS


@dataclass
class ExecutionPlan:
    """Ordered pulls, approvals and calls plus the de-duplicated flush set."""

    pulls: list[TokenPull] = field(default_factory=list)
    approvals: list[Approval] = field(default_factory=list)
    calls: list[Call] = field(default_factory=list)
    tokens_to_flush: list[str] = field(default_factory=list)

    def add_flush_token(self, token: str) -> None:
        """Add a token to the flush set, keeping insertion order."""
        key = normalize_address(token)
        if all(normalize_address(existing) != key for existing in self.tokens_to_flush):
            self.tokens_to_flush.append(token)


@dataclass(frozen=True)
class EncodedCall:
    """A ready-to-sign transaction call."""

    to: str
    data: bytes
    value: int


@dataclass(frozen=True)
class SwapTransaction:
    """Output of the execution-plan builder."""

    kind: Literal["executor"]
    dex_id: str
    executor: str
    amount_in: int
    amount_out: int
    amount_out_minimum: int
    deadline: int
    plan: ExecutionPlan
    call: EncodedCall


__all__ = [
    "TokenPull",
    "Approval",
    "Call",
    "ExecutionPlan",
    "EncodedCall",
    "SwapTransaction",
]
