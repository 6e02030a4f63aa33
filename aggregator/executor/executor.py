"""Reference executor contract.

Runs an execution plan atomically against a ChainState ledger:

1. Snapshot the executor's balances of every flush token, and its native
   balance excluding the attached value
2. Pull caller funds, which needs a prior allowance to the executor
3. Force-set every approval
4. Dispatch every call in order, injecting the live input balance where requested
5. Revoke every approval, then send each positive balance delta back to the caller

Any failure restores the ledger to its pre-call state and surfaces as
ExecutionReverted, whatever exception caused it.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog
from eth_abi import decode  # type: ignore[attr-defined]

from aggregator.errors import (
    CallFailed,
    ExecutionReverted,
    ExecutorPaused,
    InjectionOutOfBounds,
    NotOwner,
    ReentrantCall,
    ZeroInjectionBalance,
)
from aggregator.execution.builder import EXECUTE_ARG_TYPES, EXECUTE_SELECTOR
from aggregator.execution.offsets import SELECTOR_SIZE, WORD_SIZE, inject_word
from aggregator.executor.state import ChainState
from aggregator.models.plan import Approval, Call, ExecutionPlan, SwapTransaction, TokenPull
from aggregator.models.types import same_address

logger = structlog.get_logger()


class SwapExecutor:
    """Ownable, pausable, non-reentrant plan executor."""

    def __init__(self, state: ChainState, address: str, owner: str):
        self.state = state
        self.address = address
        self.owner = owner
        self.paused = False
        self._entered = False

    def execute(
        self,
        sender: str,
        pulls: Sequence[TokenPull],
        approvals: Sequence[Approval],
        calls: Sequence[Call],
        tokens_to_flush: Sequence[str],
        value: int = 0,
    ) -> list[bytes]:
        """Execute a plan on behalf of sender.

        Args:
            sender: Caller; source of pulls and receiver of flushed deltas
            pulls: Tokens moved from sender into the executor
            approvals: Spending grants set before the calls and revoked after
            calls: External calls dispatched in order
            tokens_to_flush: Tokens whose positive balance delta goes back to sender
            value: Native value attached to the transaction

        Returns:
            Raw return data of every call, in order

        Raises:
            ExecutionReverted: On any failure; the ledger is left unchanged
        """
        if self.paused:
            raise ExecutorPaused()
        if self._entered:
            raise ReentrantCall()

        self._entered = True
        snapshot = self.state.snapshot()
        try:
            results = self._run(sender, pulls, approvals, calls, tokens_to_flush, value)
        except ExecutionReverted as e:
            self.state.restore(snapshot)
            logger.info("executor_reverted", sender=sender, reason=str(e))
            raise
        except Exception as e:
            self.state.restore(snapshot)
            logger.warning("executor_failed", sender=sender, error=str(e))
            raise ExecutionReverted(f"{type(e).__name__}: {e}") from e
        finally:
            self._entered = False
        return results

    def execute_plan(self, sender: str, plan: ExecutionPlan, value: int = 0) -> list[bytes]:
        return self.execute(
            sender, plan.pulls, plan.approvals, plan.calls, plan.tokens_to_flush, value
        )

    def _run(
        self,
        sender: str,
        pulls: Sequence[TokenPull],
        approvals: Sequence[Approval],
        calls: Sequence[Call],
        tokens_to_flush: Sequence[str],
        value: int,
    ) -> list[bytes]:
        state = self.state
        native_before = state.native_balance_of(self.address)
        token_before = [state.balance_of(token, self.address) for token in tokens_to_flush]
        state.transfer_native(sender, self.address, value)

        for pull in pulls:
            state.transfer_from(pull.token, self.address, sender, self.address, pull.amount)

        for approval in approvals:
            state.approve(approval.token, self.address, approval.spender, approval.amount)

        results = [self._dispatch(index, call) for index, call in enumerate(calls)]

        for approval in approvals:
            state.approve(approval.token, self.address, approval.spender, 0)

        for token, before in zip(tokens_to_flush, token_before, strict=True):
            delta = state.balance_of(token, self.address) - before
            if delta > 0:
                state.transfer(token, self.address, sender, delta)

        native_delta = state.native_balance_of(self.address) - native_before
        if native_delta > 0:
            state.transfer_native(self.address, sender, native_delta)
        return results

    def _dispatch(self, index: int, call: Call) -> bytes:
        payload = call.payload
        if call.has_injection:
            balance = self.state.balance_of(call.inject_token, self.address)
            if balance == 0:
                raise ZeroInjectionBalance(index, call.inject_token)
            if call.inject_offset < 0 or call.inject_offset + WORD_SIZE > len(payload):
                raise InjectionOutOfBounds(index, call.inject_offset, len(payload))
            payload = inject_word(payload, call.inject_offset, balance)

        try:
            return self.state.call(self.address, call.target, call.value, payload)
        except ExecutionReverted as e:
            if e.reason:
                raise
            raise CallFailed(index) from e
        except Exception as e:
            # A callee crashing on its payload is a reasonless revert
            logger.debug("executor_call_crashed", index=index, error=str(e))
            raise CallFailed(index) from e

    # -- administration ---------------------------------------------------

    def _only_owner(self, caller: str) -> None:
        if not same_address(caller, self.owner):
            raise NotOwner(caller)

    def pause(self, caller: str) -> None:
        self._only_owner(caller)
        self.paused = True

    def unpause(self, caller: str) -> None:
        self._only_owner(caller)
        self.paused = False

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self._only_owner(caller)
        self.owner = new_owner

    def rescue_tokens(self, caller: str, token: str, to: str, amount: int) -> None:
        """Move tokens stuck in the executor. Allowed while paused."""
        self._only_owner(caller)
        self.state.transfer(token, self.address, to, amount)

    def rescue_native(self, caller: str, to: str, amount: int) -> None:
        self._only_owner(caller)
        self.state.transfer_native(self.address, to, amount)


def decode_execute_call(
    data: bytes,
) -> tuple[list[TokenPull], list[Approval], list[Call], list[str]]:
    """Decode execute() calldata back into plan primitives.

    Raises:
        ExecutionReverted: If the selector is not execute()
    """
    if data[:SELECTOR_SIZE] != EXECUTE_SELECTOR:
        raise ExecutionReverted()
    raw_pulls, raw_approvals, raw_calls, tokens_to_flush = decode(
        EXECUTE_ARG_TYPES, data[SELECTOR_SIZE:]
    )
    pulls = [TokenPull(token=token, amount=amount) for token, amount in raw_pulls]
    approvals = [
        Approval(token=token, spender=spender, amount=amount)
        for token, spender, amount in raw_approvals
    ]
    calls = [
        Call(
            target=target,
            value=value,
            payload=bytes(payload),
            inject_token=inject_token,
            inject_offset=inject_offset,
        )
        for target, value, payload, inject_token, inject_offset in raw_calls
    ]
    return pulls, approvals, calls, list(tokens_to_flush)


def simulate_transaction(
    executor: SwapExecutor, transaction: SwapTransaction, sender: str
) -> list[bytes]:
    """Run a built transaction through the reference executor.

    The encoded calldata is decoded rather than using transaction.plan, so
    the ABI encoding is exercised end to end.

    Raises:
        ExecutionReverted: If the call targets another executor or the plan reverts
    """
    if not same_address(transaction.call.to, executor.address):
        raise ExecutionReverted(f"Transaction targets {transaction.call.to}")
    pulls, approvals, calls, tokens_to_flush = decode_execute_call(transaction.call.data)
    return executor.execute(
        sender, pulls, approvals, calls, tokens_to_flush, transaction.call.value
    )


__all__ = ["SwapExecutor", "decode_execute_call", "simulate_transaction"]
