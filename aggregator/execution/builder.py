"""Execution-plan builder.

Turns a selected PriceQuote into an ExecutionPlan for the executor contract
and the ABI-encoded execute() call that carries it. Every swap goes through
the executor; there is no direct-to-router path.

Per hop i the builder:
- consumes min(quoted hop input, rolling available amount), minus an
  inter-hop buffer for i > 0 (never the whole hop)
- approves the exact hop amount on hop 0 and max uint256 on later hops,
  whose real input is injected at execution time
- scales the hop's minimum-out by its share of the total expected output;
  the last hop gets the overall minimum exactly
- injects the executor's live balance of the hop input for i > 0
- sends output to the executor unless it is the final hop and no unwrap follows
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field

import structlog
from eth_abi import encode  # type: ignore[attr-defined]
from eth_utils import function_signature_to_4byte_selector

from aggregator.amm.uniswap_v2 import uniswap_v2
from aggregator.amm.uniswap_v3.encoding import encode_exact_input_single_for_shape
from aggregator.amm.weth import encode_deposit, encode_withdraw
from aggregator.chains import ChainConfig, DexConfig
from aggregator.config import AppConfig
from aggregator.constants import DEFAULT_DEADLINE_SECONDS, DEFAULT_INTERHOP_BUFFER_BPS
from aggregator.errors import (
    DexNotConfiguredError,
    EmptyRouteError,
    ExecutorNotConfiguredError,
    InsufficientRollingAmountError,
    MissingFeeTierError,
    NonPositiveHopAmountError,
    WrappedNativeError,
)
from aggregator.execution.offsets import CallShape, injection_offset
from aggregator.models.plan import (
    Approval,
    Call,
    EncodedCall,
    ExecutionPlan,
    SwapTransaction,
    TokenPull,
)
from aggregator.models.quote import PriceQuote
from aggregator.models.types import UINT256_MAX, ZERO_ADDRESS, address_to_bytes, same_address
from aggregator.pricing.quote_math import apply_slippage, clamp_slippage_bps

logger = structlog.get_logger()

EXECUTE_SIGNATURE = (
    "execute((address,uint256)[],(address,address,uint256)[],"
    "(address,uint256,bytes,address,uint256)[],address[])"
)
EXECUTE_SELECTOR = function_signature_to_4byte_selector(EXECUTE_SIGNATURE)
EXECUTE_ARG_TYPES = [
    "(address,uint256)[]",
    "(address,address,uint256)[]",
    "(address,uint256,bytes,address,uint256)[]",
    "address[]",
]


@dataclass(frozen=True)
class BuilderConfig:
    """Builder settings.

    Attributes:
        executor_by_chain: Chain key -> executor contract address (None if not deployed)
        interhop_buffer_bps: Buffer subtracted from every hop after the first
    """

    executor_by_chain: dict[str, str | None] = field(default_factory=dict)
    interhop_buffer_bps: int = DEFAULT_INTERHOP_BUFFER_BPS

    @classmethod
    def from_app_config(cls, config: AppConfig) -> BuilderConfig:
        return cls(
            executor_by_chain=dict(config.executor_addresses),
            interhop_buffer_bps=config.interhop_buffer_bps,
        )


@dataclass(frozen=True)
class SwapRequest:
    """Parameters for building one swap.

    Attributes:
        quote: Selected route
        recipient: Final receiver of the output
        amount_out_min: Overall minimum output; derived from slippage_bps when 0
        slippage_bps: Slippage tolerance used when amount_out_min is 0
        deadline_seconds: Validity window embedded in router calls
        use_native_input: Caller pays in native currency (wrapped first)
        use_native_output: Caller receives native currency (unwrapped last)
    """

    quote: PriceQuote
    recipient: str
    amount_out_min: int = 0
    slippage_bps: int = 0
    deadline_seconds: int = DEFAULT_DEADLINE_SECONDS
    use_native_input: bool = False
    use_native_output: bool = False


def derive_hop_min_out(
    hop_expected_out: int,
    total_min_out: int,
    total_expected_out: int,
    is_last_hop: bool,
) -> int:
    """Per-hop minimum output, proportional to the hop's share of the total."""
    if is_last_hop:
        return total_min_out
    if total_expected_out == 0 or hop_expected_out == 0:
        return 0
    return hop_expected_out * total_min_out // total_expected_out


def encode_execute_call(executor: str, plan: ExecutionPlan, value: int = 0) -> EncodedCall:
    """ABI-encode executor.execute(pulls, approvals, calls, tokensToFlush)."""
    encoded_args = encode(
        EXECUTE_ARG_TYPES,
        [
            [(address_to_bytes(p.token), p.amount) for p in plan.pulls],
            [(address_to_bytes(a.token), address_to_bytes(a.spender), a.amount) for a in plan.approvals],
            [
                (
                    address_to_bytes(c.target),
                    c.value,
                    c.payload,
                    address_to_bytes(c.inject_token),
                    c.inject_offset,
                )
                for c in plan.calls
            ],
            [address_to_bytes(token) for token in plan.tokens_to_flush],
        ],
    )
    return EncodedCall(to=executor, data=EXECUTE_SELECTOR + encoded_args, value=value)


class ExecutionPlanBuilder:
    """Builds executor plans from quotes."""

    def __init__(self, config: BuilderConfig, now: Callable[[], float] = time.time):
        self.config = config
        self.interhop_buffer_bps = max(int(config.interhop_buffer_bps), 0)
        self._now = now

    def _resolve_executor(self, chain: ChainConfig) -> str:
        executor = self.config.executor_by_chain.get(chain.key)
        if not executor:
            raise ExecutorNotConfiguredError(f"Executor not configured for chain {chain.name}")
        return executor

    def _wrapped_native(self, chain: ChainConfig) -> str:
        if not chain.wrapped_native_address:
            raise WrappedNativeError(f"Wrapped native address not configured for chain {chain.name}")
        return chain.wrapped_native_address

    def _resolve_dex(self, chain: ChainConfig, dex_id: str) -> DexConfig:
        dex = chain.find_dex(dex_id)
        if dex is None:
            raise DexNotConfiguredError(f"DEX {dex_id} is not configured for chain {chain.name}")
        return dex

    def build(self, chain: ChainConfig, request: SwapRequest) -> SwapTransaction:
        """Build the executor plan and call for a quote.

        Raises:
            PlanningError: (subclasses) for empty or inconsistent routes, unknown venues,
                missing fee tiers, non-positive or exhausted hop amounts,
                a missing executor and unsupported native wrapping
        """
        quote = request.quote
        if not quote.sources:
            raise EmptyRouteError("Quote is missing source information")
        quote.validate_route()

        executor = self._resolve_executor(chain)
        deadline_seconds = (
            request.deadline_seconds if request.deadline_seconds > 0 else DEFAULT_DEADLINE_SECONDS
        )
        deadline = int(self._now()) + deadline_seconds
        amount_out_min = (
            request.amount_out_min
            if request.amount_out_min > 0
            else apply_slippage(quote.amount_out, clamp_slippage_bps(request.slippage_bps))
        )

        input_token = quote.path[0].address
        output_token = quote.path[-1].address
        wrap_token = self._wrapped_native(chain) if request.use_native_input else None
        unwrap_token = self._wrapped_native(chain) if request.use_native_output else None
        if wrap_token is not None and not same_address(input_token, wrap_token):
            raise WrappedNativeError(f"Native input requires the route to start with {wrap_token}")
        if unwrap_token is not None and not same_address(output_token, unwrap_token):
            raise WrappedNativeError(f"Native output requires the route to end with {unwrap_token}")

        plan = ExecutionPlan()

        if wrap_token is not None:
            plan.calls.append(Call(target=wrap_token, value=quote.amount_in, payload=encode_deposit()))
            plan.add_flush_token(wrap_token)
        else:
            plan.pulls.append(TokenPull(token=input_token, amount=quote.amount_in))
            plan.add_flush_token(input_token)

        available_amount = quote.amount_in
        hop_count = len(quote.sources)
        for index, source in enumerate(quote.sources):
            token_in = quote.path[index].address
            token_out = quote.path[index + 1].address
            dex = self._resolve_dex(chain, source.dex_id)

            quoted_hop_amount_in = source.amount_in
            if quoted_hop_amount_in <= 0:
                raise NonPositiveHopAmountError(f"Hop {index} has no quoted input amount")
            if available_amount <= 0:
                raise InsufficientRollingAmountError(
                    f"Rolling amount exhausted before hop {index} of {hop_count}"
                )

            hop_amount_in = min(quoted_hop_amount_in, available_amount)
            if index > 0 and self.interhop_buffer_bps > 0:
                buffer = hop_amount_in * self.interhop_buffer_bps // 10_000
                if 0 < buffer < hop_amount_in:
                    hop_amount_in -= buffer
            if hop_amount_in <= 0:
                raise NonPositiveHopAmountError(
                    f"Hop {index} amount is non-positive after buffer adjustment"
                )

            hop_expected_out = source.amount_out
            if hop_expected_out <= 0:
                raise NonPositiveHopAmountError(f"Hop {index} has no quoted output amount")
            scaled_hop_expected_out = hop_expected_out * hop_amount_in // quoted_hop_amount_in

            is_last_hop = index == hop_count - 1
            sends_to_recipient = is_last_hop and not request.use_native_output
            hop_recipient = request.recipient if sends_to_recipient else executor
            hop_min_out = derive_hop_min_out(
                scaled_hop_expected_out, amount_out_min, quote.amount_out, is_last_hop
            )

            plan.approvals.append(
                Approval(
                    token=token_in,
                    spender=dex.router_address,
                    amount=hop_amount_in if index == 0 else UINT256_MAX,
                )
            )

            payload = self._encode_hop(
                dex, token_in, token_out, source.fee_tier, hop_amount_in, hop_min_out, hop_recipient, deadline
            )
            plan.calls.append(
                Call(
                    target=dex.router_address,
                    value=0,
                    payload=payload,
                    inject_token=token_in if index > 0 else ZERO_ADDRESS,
                    inject_offset=injection_offset(dex.call_shape) if index > 0 else 0,
                )
            )

            plan.add_flush_token(token_in)
            if not sends_to_recipient:
                plan.add_flush_token(token_out)

            available_amount = scaled_hop_expected_out

        if unwrap_token is not None:
            plan.calls.append(
                Call(
                    target=unwrap_token,
                    value=0,
                    payload=encode_withdraw(0),
                    inject_token=unwrap_token,
                    inject_offset=injection_offset(CallShape.WRAPPED_NATIVE_WITHDRAW),
                )
            )
            plan.add_flush_token(unwrap_token)

        call = encode_execute_call(
            executor, plan, value=quote.amount_in if request.use_native_input else 0
        )
        dex_id = quote.sources[0].dex_id if hop_count == 1 else "multi"

        logger.info(
            "execution_plan_built",
            chain=chain.key,
            dex_id=dex_id,
            hops=hop_count,
            amount_in=str(quote.amount_in),
            amount_out_minimum=str(amount_out_min),
            native_input=request.use_native_input,
            native_output=request.use_native_output,
        )

        return SwapTransaction(
            kind="executor",
            dex_id=dex_id,
            executor=executor,
            amount_in=quote.amount_in,
            amount_out=quote.amount_out,
            amount_out_minimum=amount_out_min,
            deadline=deadline,
            plan=plan,
            call=call,
        )

    def _encode_hop(
        self,
        dex: DexConfig,
        token_in: str,
        token_out: str,
        fee_tier: int | None,
        amount_in: int,
        amount_out_min: int,
        recipient: str,
        deadline: int,
    ) -> bytes:
        if dex.version == "v2":
            return uniswap_v2.encode_swap(
                token_in, token_out, amount_in, amount_out_min, recipient, deadline
            )
        if fee_tier is None:
            raise MissingFeeTierError(f"Missing fee tier for {dex.id} hop {token_in} -> {token_out}")
        return encode_exact_input_single_for_shape(
            dex.call_shape,
            token_in,
            token_out,
            fee_tier,
            recipient,
            amount_in,
            amount_out_min,
            deadline,
        )


__all__ = [
    "BuilderConfig",
    "SwapRequest",
    "ExecutionPlanBuilder",
    "derive_hop_min_out",
    "encode_execute_call",
    "EXECUTE_SIGNATURE",
    "EXECUTE_SELECTOR",
    "EXECUTE_ARG_TYPES",
]
