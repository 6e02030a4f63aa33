"""Minimal ABI fragments for the on-chain reads discovery and the token cache make.

Each entry is keyed by the name ContractCall.function refers to. Keys differ
from the ABI "name" only where one function needs two decodings (bytes32
symbol/name on legacy tokens).
"""

from __future__ import annotations

from typing import Any


def _view(name: str, inputs: list[tuple[str, str]], outputs: list[tuple[str, str]]) -> dict[str, Any]:
    return {
        "name": name,
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in outputs],
    }


# Constant-product factory / pair
V2_GET_PAIR_ABI = _view("getPair", [("tokenA", "address"), ("tokenB", "address")], [("pair", "address")])
V2_GET_RESERVES_ABI = _view(
    "getReserves",
    [],
    [("reserve0", "uint112"), ("reserve1", "uint112"), ("blockTimestampLast", "uint32")],
)

# Concentrated-liquidity factory / pool
V3_GET_POOL_ABI = _view(
    "getPool",
    [("tokenA", "address"), ("tokenB", "address"), ("fee", "uint24")],
    [("pool", "address")],
)
# feeProtocol is uint8 on Uniswap and uint32 on PancakeSwap; uint32 decodes both
V3_SLOT0_ABI = _view(
    "slot0",
    [],
    [
        ("sqrtPriceX96", "uint160"),
        ("tick", "int24"),
        ("observationIndex", "uint16"),
        ("observationCardinality", "uint16"),
        ("observationCardinalityNext", "uint16"),
        ("feeProtocol", "uint32"),
        ("unlocked", "bool"),
    ],
)
V3_LIQUIDITY_ABI = _view("liquidity", [], [("liquidity", "uint128")])

TOKEN0_ABI = _view("token0", [], [("token0", "address")])
TOKEN1_ABI = _view("token1", [], [("token1", "address")])

# QuoterV2
QUOTE_EXACT_INPUT_SINGLE_ABI = {
    "name": "quoteExactInputSingle",
    "type": "function",
    "stateMutability": "nonpayable",
    "inputs": [
        {
            "name": "params",
            "type": "tuple",
            "components": [
                {"name": "tokenIn", "type": "address"},
                {"name": "tokenOut", "type": "address"},
                {"name": "amountIn", "type": "uint256"},
                {"name": "fee", "type": "uint24"},
                {"name": "sqrtPriceLimitX96", "type": "uint160"},
            ],
        }
    ],
    "outputs": [
        {"name": "amountOut", "type": "uint256"},
        {"name": "sqrtPriceX96After", "type": "uint160"},
        {"name": "initializedTicksCrossed", "type": "uint32"},
        {"name": "gasEstimate", "type": "uint256"},
    ],
}

# ERC-20 metadata
ERC20_DECIMALS_ABI = _view("decimals", [], [("", "uint8")])
ERC20_SYMBOL_ABI = _view("symbol", [], [("", "string")])
ERC20_NAME_ABI = _view("name", [], [("", "string")])
ERC20_SYMBOL_BYTES32_ABI = _view("symbol", [], [("", "bytes32")])
ERC20_NAME_BYTES32_ABI = _view("name", [], [("", "bytes32")])
ERC20_TOTAL_SUPPLY_ABI = _view("totalSupply", [], [("", "uint256")])

FUNCTION_ABIS: dict[str, dict[str, Any]] = {
    "getPair": V2_GET_PAIR_ABI,
    "getReserves": V2_GET_RESERVES_ABI,
    "getPool": V3_GET_POOL_ABI,
    "slot0": V3_SLOT0_ABI,
    "liquidity": V3_LIQUIDITY_ABI,
    "token0": TOKEN0_ABI,
    "token1": TOKEN1_ABI,
    "quoteExactInputSingle": QUOTE_EXACT_INPUT_SINGLE_ABI,
    "decimals": ERC20_DECIMALS_ABI,
    "symbol": ERC20_SYMBOL_ABI,
    "name": ERC20_NAME_ABI,
    "symbol_bytes32": ERC20_SYMBOL_BYTES32_ABI,
    "name_bytes32": ERC20_NAME_BYTES32_ABI,
    "totalSupply": ERC20_TOTAL_SUPPLY_ABI,
}


__all__ = ["FUNCTION_ABIS"]
