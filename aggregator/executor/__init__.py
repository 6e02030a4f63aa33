"""Reference executor: ledger, simulated venues and the executor state machine."""

from .contracts import (
    ConcentratedLiquidityRouter,
    ConstantProductRouter,
    FixedRatePool,
    WrappedNativeToken,
)
from .executor import SwapExecutor, decode_execute_call, simulate_transaction
from .state import ChainState, Contract, LedgerSnapshot

__all__ = [
    "ChainState",
    "Contract",
    "LedgerSnapshot",
    "WrappedNativeToken",
    "ConstantProductRouter",
    "ConcentratedLiquidityRouter",
    "FixedRatePool",
    "SwapExecutor",
    "decode_execute_call",
    "simulate_transaction",
]
