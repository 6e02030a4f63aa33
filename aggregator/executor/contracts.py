"""Simulated venues the reference executor can call.

Each venue decodes the same calldata the plan builder encodes and settles
against the ChainState ledger, so a built plan can be executed end to end
without a node. Reserves live in the ledger as the pool's own token balances.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from eth_abi import decode, encode  # type: ignore[attr-defined]

from aggregator.amm.uniswap_v2 import uniswap_v2
from aggregator.amm.uniswap_v3.encoding import (
    EXACT_INPUT_SINGLE_DEADLINE_SELECTOR,
    EXACT_INPUT_SINGLE_DEADLINE_TYPE,
    EXACT_INPUT_SINGLE_SELECTOR,
    EXACT_INPUT_SINGLE_TYPE,
)
from aggregator.amm.weth import DEPOSIT_SELECTOR, WITHDRAW_SELECTOR
from aggregator.constants import BPS_DENOMINATOR, V3_FEE_DENOMINATOR
from aggregator.errors import ExecutionReverted
from aggregator.execution.offsets import SELECTOR_SIZE, CallShape
from aggregator.executor.state import ChainState
from aggregator.models.types import normalize_address


def _split(payload: bytes) -> tuple[bytes, bytes]:
    return payload[:SELECTOR_SIZE], payload[SELECTOR_SIZE:]


@dataclass
class WrappedNativeToken:
    """WETH9-style wrapper: the token address is the contract address."""

    address: str

    def handle(self, state: ChainState, caller: str, value: int, payload: bytes) -> bytes:
        selector, args = _split(payload)
        if selector == DEPOSIT_SELECTOR:
            state.mint(self.address, caller, value)
            return b""
        if selector == WITHDRAW_SELECTOR:
            (amount,) = decode(["uint256"], args)
            state.burn(self.address, caller, amount)
            state.transfer_native(self.address, caller, amount)
            return b""
        raise ExecutionReverted()


@dataclass
class ConstantProductRouter:
    """swapExactTokensForTokens over constant-product pairs held in the ledger."""

    address: str
    fee_bps: int = 30
    pairs: dict[frozenset[str], str] = field(default_factory=dict)

    def add_pair(self, token_a: str, token_b: str, pair_address: str) -> None:
        self.pairs[frozenset((normalize_address(token_a), normalize_address(token_b)))] = (
            pair_address
        )

    def pair_for(self, token_a: str, token_b: str) -> str:
        pair = self.pairs.get(frozenset((normalize_address(token_a), normalize_address(token_b))))
        if pair is None:
            raise ExecutionReverted("UniswapV2Library: PAIR_NOT_FOUND")
        return pair

    def get_amounts_out(self, state: ChainState, amount_in: int, path: list[str]) -> list[int]:
        amounts = [amount_in]
        for token_in, token_out in zip(path, path[1:], strict=False):
            pair = self.pair_for(token_in, token_out)
            amounts.append(
                uniswap_v2.get_amount_out(
                    amounts[-1],
                    state.balance_of(token_in, pair),
                    state.balance_of(token_out, pair),
                    BPS_DENOMINATOR - self.fee_bps,
                )
            )
        return amounts

    def handle(self, state: ChainState, caller: str, value: int, payload: bytes) -> bytes:
        selector, args = _split(payload)
        if selector != uniswap_v2.SWAP_EXACT_TOKENS_SELECTOR:
            raise ExecutionReverted()
        amount_in, amount_out_min, path, to, deadline = decode(
            ["uint256", "uint256", "address[]", "address", "uint256"], args
        )
        if state.timestamp > deadline:
            raise ExecutionReverted("UniswapV2Router: EXPIRED")
        if len(path) < 2:
            raise ExecutionReverted("UniswapV2Library: INVALID_PATH")

        amounts = self.get_amounts_out(state, amount_in, path)
        if amounts[-1] < amount_out_min:
            raise ExecutionReverted("UniswapV2Router: INSUFFICIENT_OUTPUT_AMOUNT")
        if amounts[-1] == 0:
            raise ExecutionReverted("UniswapV2Library: INSUFFICIENT_OUTPUT_AMOUNT")

        state.transfer_from(path[0], self.address, caller, self.pair_for(path[0], path[1]), amount_in)
        for i in range(len(path) - 1):
            pair = self.pair_for(path[i], path[i + 1])
            receiver = self.pair_for(path[i + 1], path[i + 2]) if i < len(path) - 2 else to
            state.transfer(path[i + 1], pair, receiver, amounts[i + 1])
        return encode(["uint256[]"], [amounts])


@dataclass(frozen=True)
class FixedRatePool:
    """A concentrated-liquidity pool quoted at a constant rate.

    amount_out = amount_in * (1e6 - fee) / 1e6 * rate_numerator / rate_denominator
    """

    address: str
    rate_numerator: int
    rate_denominator: int


@dataclass
class ConcentratedLiquidityRouter:
    """exactInputSingle router for one struct layout.

    Calldata in the other layout falls through to a reasonless revert, as on
    a router that does not implement that selector.
    """

    address: str
    call_shape: CallShape = CallShape.V3_EXACT_INPUT_SINGLE
    pools: dict[tuple[str, str, int], FixedRatePool] = field(default_factory=dict)

    def add_pool(
        self,
        token_a: str,
        token_b: str,
        fee: int,
        pool_address: str,
        rate_numerator: int = 1,
        rate_denominator: int = 1,
    ) -> None:
        """Register a pool quoting token_a -> token_b at numerator/denominator."""
        a, b = normalize_address(token_a), normalize_address(token_b)
        self.pools[(a, b, fee)] = FixedRatePool(pool_address, rate_numerator, rate_denominator)
        self.pools[(b, a, fee)] = FixedRatePool(pool_address, rate_denominator, rate_numerator)

    def _decode(self, payload: bytes) -> tuple[str, str, int, str, int | None, int, int]:
        selector, args = _split(payload)
        if (
            self.call_shape == CallShape.V3_EXACT_INPUT_SINGLE
            and selector == EXACT_INPUT_SINGLE_SELECTOR
        ):
            ((token_in, token_out, fee, recipient, amount_in, amount_out_min, _),) = decode(
                [EXACT_INPUT_SINGLE_TYPE], args
            )
            return token_in, token_out, fee, recipient, None, amount_in, amount_out_min
        if (
            self.call_shape == CallShape.V3_EXACT_INPUT_SINGLE_DEADLINE
            and selector == EXACT_INPUT_SINGLE_DEADLINE_SELECTOR
        ):
            ((token_in, token_out, fee, recipient, deadline, amount_in, amount_out_min, _),) = (
                decode([EXACT_INPUT_SINGLE_DEADLINE_TYPE], args)
            )
            return token_in, token_out, fee, recipient, deadline, amount_in, amount_out_min
        raise ExecutionReverted()

    def handle(self, state: ChainState, caller: str, value: int, payload: bytes) -> bytes:
        token_in, token_out, fee, recipient, deadline, amount_in, amount_out_min = self._decode(
            payload
        )
        if deadline is not None and state.timestamp > deadline:
            raise ExecutionReverted("Transaction too old")

        pool = self.pools.get((normalize_address(token_in), normalize_address(token_out), fee))
        if pool is None:
            raise ExecutionReverted()

        amount_less_fee = amount_in * (V3_FEE_DENOMINATOR - fee) // V3_FEE_DENOMINATOR
        amount_out = amount_less_fee * pool.rate_numerator // pool.rate_denominator
        if amount_out < amount_out_min:
            raise ExecutionReverted("Too little received")

        state.transfer_from(token_in, self.address, caller, pool.address, amount_in)
        state.transfer(token_out, pool.address, recipient, amount_out)
        return encode(["uint256"], [amount_out])


__all__ = [
    "WrappedNativeToken",
    "ConstantProductRouter",
    "ConcentratedLiquidityRouter",
    "FixedRatePool",
]
