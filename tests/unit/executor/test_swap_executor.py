"""Tests for the reference executor, driven by builder output."""

import pytest

from aggregator.amm.uniswap_v2 import uniswap_v2
from aggregator.amm.uniswap_v3.encoding import encode_exact_input_single
from aggregator.errors import (
    CallFailed,
    ExecutionReverted,
    ExecutorPaused,
    InjectionOutOfBounds,
    NotOwner,
    ReentrantCall,
    TransferFailed,
    ZeroInjectionBalance,
)
from aggregator.execution.builder import BuilderConfig, ExecutionPlanBuilder, SwapRequest
from aggregator.executor import SwapExecutor, decode_execute_call, simulate_transaction
from aggregator.models.plan import Approval, Call, ExecutionPlan, TokenPull
from aggregator.models.types import UINT256_MAX, normalize_address
from tests.helpers import (
    DAI,
    EXECUTOR,
    OWNER,
    POOL_1,
    POOL_2,
    RECIPIENT,
    STRANGER,
    USDC,
    USER,
    V2_ROUTER,
    V3_ROUTER,
    WETH,
    make_chain,
    make_quote,
    make_source,
    make_token,
)

NOW = 1_700_000_000


@pytest.fixture
def builder() -> ExecutionPlanBuilder:
    return ExecutionPlanBuilder(
        BuilderConfig(executor_by_chain={"ethereum": EXECUTOR}, interhop_buffer_bps=3),
        now=lambda: NOW,
    )


@pytest.fixture
def dai_usdc_pair(state, v2_router):
    """DAI/USDC constant-product pair with 1e6 / 2e6 reserves."""
    v2_router.add_pair(DAI, USDC, POOL_1)
    state.mint(DAI, POOL_1, 10**6)
    state.mint(USDC, POOL_1, 2 * 10**6)


@pytest.fixture
def two_hop_venues(state, v2_router, v3_router):
    """DAI -(v2, 1:1 reserves)-> WETH -(v3 fixed rate 2x, 0.3%)-> USDC."""
    v2_router.add_pair(DAI, WETH, POOL_1)
    state.mint(DAI, POOL_1, 10**6)
    state.mint(WETH, POOL_1, 10**6)
    v3_router.add_pool(WETH, USDC, 3000, POOL_2, rate_numerator=2, rate_denominator=1)
    state.mint(USDC, POOL_2, 10**7)


def fund_user(state, token: str = DAI, amount: int = 1000) -> None:
    state.mint(token, USER, amount)
    state.approve(token, USER, EXECUTOR, amount)


def two_hop_request(amount_out_min: int = 0, slippage_bps: int = 100) -> SwapRequest:
    """Quote overstates hop 0 (1000 vs the pair's real 996), so hop 1 relies on injection."""
    quote = make_quote(
        [make_token(DAI), make_token(WETH), make_token(USDC)],
        [
            make_source(1000, 1000, dex_id="test-v2", pool_address=POOL_1),
            make_source(1000, 1994, dex_id="test-v3", pool_address=POOL_2, fee_tier=3000),
        ],
    )
    return SwapRequest(quote, RECIPIENT, amount_out_min=amount_out_min, slippage_bps=slippage_bps)


class TestEndToEnd:
    def test_single_hop(self, state, executor, builder, dai_usdc_pair):
        fund_user(state)
        quote = make_quote([make_token(DAI), make_token(USDC)], [make_source(1000, 1992)])
        tx = builder.build(make_chain(), SwapRequest(quote, RECIPIENT, slippage_bps=50))

        results = simulate_transaction(executor, tx, USER)

        assert len(results) == 1
        assert state.balance_of(USDC, RECIPIENT) == 1992
        assert state.balance_of(DAI, USER) == 0
        assert state.balance_of(DAI, EXECUTOR) == 0
        assert state.balance_of(USDC, EXECUTOR) == 0
        assert state.allowance(DAI, EXECUTOR, V2_ROUTER) == 0

    def test_two_hop_uses_injected_balance(self, state, executor, builder, two_hop_venues):
        fund_user(state)
        tx = builder.build(make_chain(), two_hop_request())
        # Encoded hop 1 amount is the quoted 1000; the executor only receives 996
        assert uniswap_v2.get_amount_out(1000, 10**6, 10**6) == 996

        simulate_transaction(executor, tx, USER)

        # 996 less 0.3% is 993, at 2x
        assert state.balance_of(USDC, RECIPIENT) == 1986
        assert state.balance_of(WETH, EXECUTOR) == 0
        assert state.allowance(WETH, EXECUTOR, V3_ROUTER) == 0
        assert state.allowance(DAI, EXECUTOR, V2_ROUTER) == 0

    def test_failed_minimum_rolls_back_everything(self, state, executor, builder, two_hop_venues):
        fund_user(state)
        tx = builder.build(make_chain(), two_hop_request(amount_out_min=1987))
        balances, allowances = dict(state.balances), dict(state.allowances)

        with pytest.raises(ExecutionReverted, match="Too little received"):
            simulate_transaction(executor, tx, USER)

        assert state.balances == balances
        assert state.allowances == allowances

    def test_native_input(self, state, executor, builder, weth, v2_router):
        v2_router.add_pair(WETH, USDC, POOL_1)
        state.mint(WETH, POOL_1, 10**6)
        state.mint(USDC, POOL_1, 2 * 10**6)
        state.set_native_balance(USER, 1000)
        quote = make_quote([make_token(WETH), make_token(USDC)], [make_source(1000, 1992)])
        tx = builder.build(make_chain(), SwapRequest(quote, RECIPIENT, slippage_bps=50, use_native_input=True))

        simulate_transaction(executor, tx, USER)

        assert state.native_balance_of(USER) == 0
        assert state.native_balance_of(WETH) == 1000
        assert state.balance_of(USDC, RECIPIENT) == 1992
        assert state.native_balance_of(EXECUTOR) == 0
        assert state.balance_of(WETH, EXECUTOR) == 0

    def test_native_output_flushes_native_to_sender(self, state, executor, builder, weth, v2_router):
        v2_router.add_pair(USDC, WETH, POOL_1)
        state.mint(USDC, POOL_1, 10**6)
        state.mint(WETH, POOL_1, 10**6)
        state.set_native_balance(WETH, 10**6)
        fund_user(state, USDC)
        quote = make_quote([make_token(USDC), make_token(WETH)], [make_source(1000, 996)])
        tx = builder.build(make_chain(), SwapRequest(quote, RECIPIENT, slippage_bps=50, use_native_output=True))

        simulate_transaction(executor, tx, USER)

        assert state.native_balance_of(USER) == 996
        assert state.native_balance_of(EXECUTOR) == 0
        assert state.balance_of(WETH, EXECUTOR) == 0

    def test_transaction_for_other_executor_rejected(self, state, builder, dai_usdc_pair):
        other = SwapExecutor(state, STRANGER, OWNER)
        quote = make_quote([make_token(DAI), make_token(USDC)], [make_source(1000, 1992)])
        tx = builder.build(make_chain(), SwapRequest(quote, RECIPIENT))

        with pytest.raises(ExecutionReverted):
            simulate_transaction(other, tx, USER)


class TestCalldataDecoding:
    def test_decode_matches_plan(self, builder):
        tx = builder.build(make_chain(), two_hop_request())
        pulls, approvals, calls, tokens_to_flush = decode_execute_call(tx.call.data)

        assert [(normalize_address(p.token), p.amount) for p in pulls] == [
            (normalize_address(p.token), p.amount) for p in tx.plan.pulls
        ]
        assert [a.amount for a in approvals] == [a.amount for a in tx.plan.approvals]
        assert [c.payload for c in calls] == [c.payload for c in tx.plan.calls]
        assert [c.inject_offset for c in calls] == [c.inject_offset for c in tx.plan.calls]
        assert [normalize_address(t) for t in tokens_to_flush] == [
            normalize_address(t) for t in tx.plan.tokens_to_flush
        ]

    def test_wrong_selector(self):
        with pytest.raises(ExecutionReverted):
            decode_execute_call(b"\x12\x34\x56\x78")


class TestFlush:
    def test_only_positive_delta_returned(self, state, executor, dai_usdc_pair):
        """Pre-existing executor dust stays; the unspent pull goes back to the caller."""
        state.mint(DAI, EXECUTOR, 5)
        fund_user(state)
        payload = uniswap_v2.encode_swap(DAI, USDC, 600, 0, RECIPIENT, NOW + 600)

        executor.execute(
            USER,
            pulls=[TokenPull(DAI, 1000)],
            approvals=[Approval(DAI, V2_ROUTER, 600)],
            calls=[Call(V2_ROUTER, 0, payload)],
            tokens_to_flush=[DAI, USDC],
        )

        assert state.balance_of(DAI, USER) == 400
        assert state.balance_of(DAI, EXECUTOR) == 5
        assert state.balance_of(USDC, RECIPIENT) > 0

    def test_approvals_revoked_even_when_unused(self, state, executor):
        executor.execute(USER, [], [Approval(DAI, V2_ROUTER, UINT256_MAX)], [], [])
        assert state.allowance(DAI, EXECUTOR, V2_ROUTER) == 0

    def test_execute_plan(self, state, executor, dai_usdc_pair):
        fund_user(state)
        plan = ExecutionPlan(
            pulls=[TokenPull(DAI, 1000)],
            approvals=[Approval(DAI, V2_ROUTER, 1000)],
            calls=[Call(V2_ROUTER, 0, uniswap_v2.encode_swap(DAI, USDC, 1000, 0, RECIPIENT, NOW + 600))],
            tokens_to_flush=[DAI],
        )
        executor.execute_plan(USER, plan)
        assert state.balance_of(USDC, RECIPIENT) == 1992


class TestInjectionGuards:
    def test_out_of_bounds_rejected_before_dispatch(self, state, executor, dai_usdc_pair):
        fund_user(state)
        payload = uniswap_v2.encode_swap(DAI, USDC, 1000, 0, RECIPIENT, NOW + 600)
        balances = dict(state.balances)

        with pytest.raises(InjectionOutOfBounds) as exc_info:
            executor.execute(
                USER,
                pulls=[TokenPull(DAI, 1000)],
                approvals=[Approval(DAI, V2_ROUTER, UINT256_MAX)],
                calls=[Call(V2_ROUTER, 0, payload, inject_token=DAI, inject_offset=len(payload) - 31)],
                tokens_to_flush=[DAI],
            )

        assert exc_info.value.index == 0
        assert state.balances == balances
        assert state.allowance(DAI, EXECUTOR, V2_ROUTER) == 0

    def test_negative_offset_rejected(self, state, executor, dai_usdc_pair):
        fund_user(state)
        payload = uniswap_v2.encode_swap(DAI, USDC, 1000, 0, RECIPIENT, NOW + 600)

        with pytest.raises(InjectionOutOfBounds) as exc_info:
            executor.execute(
                USER,
                pulls=[TokenPull(DAI, 1000)],
                approvals=[Approval(DAI, V2_ROUTER, UINT256_MAX)],
                calls=[Call(V2_ROUTER, 0, payload, inject_token=DAI, inject_offset=-8)],
                tokens_to_flush=[DAI],
            )

        assert exc_info.value.offset == -8
        assert state.balance_of(DAI, USER) == 1000
        assert state.balance_of(DAI, EXECUTOR) == 0
        assert state.allowance(DAI, EXECUTOR, V2_ROUTER) == 0

    def test_zero_injection_balance(self, state, executor, dai_usdc_pair):
        payload = uniswap_v2.encode_swap(DAI, USDC, 1000, 0, RECIPIENT, NOW + 600)
        with pytest.raises(ZeroInjectionBalance) as exc_info:
            executor.execute(USER, [], [], [Call(V2_ROUTER, 0, payload, inject_token=DAI, inject_offset=4)], [])
        assert exc_info.value.index == 0

    def test_injection_overrides_encoded_amount(self, state, executor, dai_usdc_pair):
        fund_user(state, amount=700)
        payload = uniswap_v2.encode_swap(DAI, USDC, 10**9, 0, RECIPIENT, NOW + 600)

        executor.execute(
            USER,
            pulls=[TokenPull(DAI, 700)],
            approvals=[Approval(DAI, V2_ROUTER, UINT256_MAX)],
            calls=[Call(V2_ROUTER, 0, payload, inject_token=DAI, inject_offset=4)],
            tokens_to_flush=[DAI],
        )

        assert state.balance_of(DAI, POOL_1) == 10**6 + 700


class TestCallFailures:
    def test_reasonless_failure_reports_index(self, state, executor, dai_usdc_pair, v3_deadline_router):
        """SwapRouter02 calldata sent to a deadline-struct router has no matching selector."""
        fund_user(state)
        swap = uniswap_v2.encode_swap(DAI, USDC, 500, 0, RECIPIENT, NOW + 600)
        wrong_shape = encode_exact_input_single(DAI, USDC, 2500, RECIPIENT, 500, 0)

        with pytest.raises(CallFailed) as exc_info:
            executor.execute(
                USER,
                pulls=[TokenPull(DAI, 1000)],
                approvals=[Approval(DAI, V2_ROUTER, 500), Approval(DAI, v3_deadline_router.address, 500)],
                calls=[Call(V2_ROUTER, 0, swap), Call(v3_deadline_router.address, 0, wrong_shape)],
                tokens_to_flush=[DAI],
            )

        assert exc_info.value.index == 1
        assert state.balance_of(DAI, USER) == 1000
        assert state.balance_of(USDC, RECIPIENT) == 0

    def test_callee_reason_bubbles_up(self, state, executor, dai_usdc_pair):
        fund_user(state)
        expired = uniswap_v2.encode_swap(DAI, USDC, 1000, 0, RECIPIENT, NOW - 1)

        with pytest.raises(ExecutionReverted, match="EXPIRED") as exc_info:
            executor.execute(
                USER, [TokenPull(DAI, 1000)], [Approval(DAI, V2_ROUTER, 1000)], [Call(V2_ROUTER, 0, expired)], [DAI]
            )
        assert not isinstance(exc_info.value, CallFailed)

    def test_truncated_payload_rolls_back(self, state, executor, dai_usdc_pair):
        """The router cannot decode a selector followed by too few argument bytes."""
        fund_user(state)
        truncated = uniswap_v2.SWAP_EXACT_TOKENS_SELECTOR + bytes(40)

        with pytest.raises(CallFailed) as exc_info:
            executor.execute(
                USER, [TokenPull(DAI, 1000)], [Approval(DAI, V2_ROUTER, 1000)], [Call(V2_ROUTER, 0, truncated)], [DAI]
            )

        assert exc_info.value.index == 0
        assert state.balance_of(DAI, USER) == 1000
        assert state.balance_of(DAI, EXECUTOR) == 0
        assert state.allowance(DAI, EXECUTOR, V2_ROUTER) == 0
        assert state.allowance(DAI, USER, EXECUTOR) == 1000

    def test_unexpected_error_outside_calls_rolls_back(self, state, executor, monkeypatch):
        fund_user(state)

        def broken_approve(*args):
            raise KeyError("ledger")

        monkeypatch.setattr(state, "approve", broken_approve)

        with pytest.raises(ExecutionReverted, match="KeyError") as exc_info:
            executor.execute(USER, [TokenPull(DAI, 1000)], [Approval(DAI, V2_ROUTER, 1000)], [], [DAI])

        assert isinstance(exc_info.value.__cause__, KeyError)
        assert state.balance_of(DAI, USER) == 1000
        assert state.balance_of(DAI, EXECUTOR) == 0

    def test_pull_without_allowance(self, state, executor):
        state.mint(DAI, USER, 1000)
        with pytest.raises(TransferFailed):
            executor.execute(USER, [TokenPull(DAI, 1000)], [], [], [DAI])
        assert state.balance_of(DAI, USER) == 1000

    def test_insufficient_native_value(self, state, executor):
        with pytest.raises(TransferFailed):
            executor.execute(USER, [], [], [], [], value=1)


class Reenterer:
    """Contract that calls back into the executor when invoked."""

    def __init__(self, address: str, executor: SwapExecutor) -> None:
        self.address = address
        self.executor = executor

    def handle(self, state, caller, value, payload):
        self.executor.execute(self.address, [], [], [], [])
        return b""


class TestGuards:
    def test_reentrant_call_rejected(self, state, executor):
        state.register(Reenterer(STRANGER, executor))

        with pytest.raises(ReentrantCall):
            executor.execute(USER, [], [], [Call(STRANGER, 0, b"")], [])

        # Guard is released after the revert
        assert executor.execute(USER, [], [], [], []) == []

    def test_paused_executor_rejects_execute(self, state, executor):
        executor.pause(OWNER)
        with pytest.raises(ExecutorPaused):
            executor.execute(USER, [], [], [], [])

        executor.unpause(OWNER)
        assert executor.execute(USER, [], [], [], []) == []

    def test_admin_requires_owner(self, executor):
        with pytest.raises(NotOwner):
            executor.pause(STRANGER)
        with pytest.raises(NotOwner):
            executor.rescue_tokens(STRANGER, DAI, STRANGER, 1)
        with pytest.raises(NotOwner):
            executor.transfer_ownership(STRANGER, STRANGER)

    def test_rescue_while_paused(self, state, executor):
        state.mint(DAI, EXECUTOR, 50)
        state.set_native_balance(EXECUTOR, 7)
        executor.pause(OWNER)

        executor.rescue_tokens(OWNER, DAI, RECIPIENT, 50)
        executor.rescue_native(OWNER, RECIPIENT, 7)

        assert state.balance_of(DAI, RECIPIENT) == 50
        assert state.native_balance_of(RECIPIENT) == 7

    def test_transfer_ownership(self, executor):
        executor.transfer_ownership(OWNER, STRANGER)

        executor.pause(STRANGER)
        with pytest.raises(NotOwner):
            executor.unpause(OWNER)

