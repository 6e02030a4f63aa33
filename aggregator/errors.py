"""Error classes for the aggregator.

Three layers fail differently:
- Discovery failures are local to one pool and never raised to callers.
- Planning failures (PlanningError) are terminal for a request and are not retried.
- Execution failures (ExecutionReverted) abort the whole executor transaction.
"""


class AggregatorError(Exception):
    """Base error for aggregator operations."""

    pass


class InvalidRequestError(AggregatorError):
    """Request parameters are malformed (bad amount, same token, unknown chain)."""

    pass


class TokenMetadataError(AggregatorError):
    """Token metadata could not be resolved (e.g. decimals() reverted)."""

    pass


class NoRouteFoundError(AggregatorError):
    """Discovery returned zero candidate quotes for the pair."""

    pass


# =============================================================================
# Planning
# =============================================================================


class PlanningError(AggregatorError):
    """Base error for execution-plan construction."""

    pass


class InvalidQuoteError(PlanningError):
    """A PriceQuote violates its structural invariants."""

    pass


class EmptyRouteError(PlanningError):
    """Quote carries no price sources."""

    pass


class DexNotConfiguredError(PlanningError):
    """A quoted source references a venue missing from the chain config."""

    pass


class MissingFeeTierError(PlanningError):
    """A concentrated-liquidity hop has no fee tier."""

    pass


class NonPositiveHopAmountError(PlanningError):
    """Hop input amount is zero or negative after clamping and buffering."""

    pass


class InsufficientRollingAmountError(PlanningError):
    """Rolling available amount ran out before all hops were consumed."""

    pass


class ExecutorNotConfiguredError(PlanningError):
    """No executor contract is configured for the chain."""

    pass


class WrappedNativeError(PlanningError):
    """Native wrap/unwrap requested but the route cannot support it."""

    pass


# =============================================================================
# Execution
# =============================================================================


class ExecutionReverted(AggregatorError):
    """An executor transaction reverted. All state changes are rolled back.

    Attributes:
        reason: Revert reason string (empty when the callee gave none)
    """

    def __init__(self, reason: str = "") -> None:
        super().__init__(reason or "execution reverted")
        self.reason = reason


class ExecutorPaused(ExecutionReverted):
    """Executor is paused."""

    def __init__(self) -> None:
        super().__init__("Pausable: paused")


class ReentrantCall(ExecutionReverted):
    """Nested call into the executor entry point."""

    def __init__(self) -> None:
        super().__init__("ReentrancyGuard: reentrant call")


class NotOwner(ExecutionReverted):
    """Administrative call from a non-owner account."""

    def __init__(self, caller: str) -> None:
        super().__init__(f"Ownable: caller {caller} is not the owner")
        self.caller = caller


class TransferFailed(ExecutionReverted):
    """Token or native transfer failed (balance or allowance too low)."""

    pass


class InjectionOutOfBounds(ExecutionReverted):
    """Injection word would be written past the end of the call payload."""

    def __init__(self, index: int, offset: int, payload_length: int) -> None:
        super().__init__(
            f"InjectionOutOfBounds: call {index} offset {offset} + 32 > {payload_length}"
        )
        self.index = index
        self.offset = offset
        self.payload_length = payload_length


class ZeroInjectionBalance(ExecutionReverted):
    """Executor holds none of the injection token at dispatch time."""

    def __init__(self, index: int, token: str) -> None:
        super().__init__(f"ZeroInjectionBalance: call {index} token {token}")
        self.index = index
        self.token = token


class CallFailed(ExecutionReverted):
    """A plan call failed without a revert reason."""

    def __init__(self, index: int) -> None:
        super().__init__(f"CallFailed({index})")
        self.index = index


__all__ = [
    "AggregatorError",
    "InvalidRequestError",
    "TokenMetadataError",
    "NoRouteFoundError",
    "InvalidQuoteError",
    "PlanningError",
    "EmptyRouteError",
    "DexNotConfiguredError",
    "MissingFeeTierError",
    "NonPositiveHopAmountError",
    "InsufficientRollingAmountError",
    "ExecutorNotConfiguredError",
    "WrappedNativeError",
    "ExecutionReverted",
    "ExecutorPaused",
    "ReentrantCall",
    "NotOwner",
    "TransferFailed",
    "InjectionOutOfBounds",
    "ZeroInjectionBalance",
    "CallFailed",
]
