"""In-memory ChainClient for discovery and token tests.

Usage:
    client = FakeChainClient()
    client.add_token(DAI, "DAI", "Dai Stablecoin", 18)
    client.add_v2_pair(V2_FACTORY, POOL_1, DAI, USDC, 10**24, 10**12)

Factory lookups for unknown pairs return the zero address, as real
factories do. Any other unconfigured call fails.
"""

from __future__ import annotations

from typing import Any

from aggregator.chain.client import LATEST_BLOCK, BlockIdentifier, CallResult, ContractCall
from aggregator.models.types import ZERO_ADDRESS, normalize_address


def _normalize(value: Any) -> Any:
    if isinstance(value, str) and value.startswith("0x"):
        return normalize_address(value)
    if isinstance(value, tuple | list):
        return tuple(_normalize(item) for item in value)
    return value


class FakeChainClient:
    """ChainClient whose responses are configured per (address, function, args)."""

    def __init__(self, gas_price: int = 20 * 10**9, block_number: int = 19_000_000) -> None:
        self.responses: dict[tuple[str, str, Any], Any] = {}
        self.block_responses: dict[tuple[BlockIdentifier, tuple[str, str, Any]], Any] = {}
        self.failures: set[tuple[str, str, Any]] = set()
        self.gas_price = gas_price
        self.block_number = block_number
        self.block_number_error: Exception | None = None
        self.calls: list[ContractCall] = []  # Track calls for assertions
        self.blocks: list[BlockIdentifier] = []  # Block of every batch
        self.batches = 0
        self.gas_price_calls = 0

    @staticmethod
    def _key(address: str, function: str, args: tuple = ()) -> tuple[str, str, Any]:
        return (normalize_address(address), function, _normalize(args))

    def set(self, address: str, function: str, value: Any, args: tuple = ()) -> None:
        self.responses[self._key(address, function, args)] = value

    def set_at_block(
        self, block: BlockIdentifier, address: str, function: str, value: Any, args: tuple = ()
    ) -> None:
        """Response that overrides set() for calls pinned to block."""
        self.block_responses[(block, self._key(address, function, args))] = value

    def fail(self, address: str, function: str, args: tuple = ()) -> None:
        self.failures.add(self._key(address, function, args))

    def add_token(
        self,
        address: str,
        symbol: Any,
        name: Any,
        decimals: int,
        total_supply: int | None = 10**27,
    ) -> None:
        self.set(address, "symbol", symbol)
        self.set(address, "name", name)
        self.set(address, "decimals", decimals)
        if total_supply is not None:
            self.set(address, "totalSupply", total_supply)

    def add_v2_pair(
        self,
        factory: str,
        pair: str,
        token_a: str,
        token_b: str,
        reserve_a: int,
        reserve_b: int,
    ) -> None:
        self.set(factory, "getPair", pair, (token_a, token_b))
        self.set(factory, "getPair", pair, (token_b, token_a))
        if normalize_address(token_a) < normalize_address(token_b):
            token0, reserves = token_a, (reserve_a, reserve_b, 0)
        else:
            token0, reserves = token_b, (reserve_b, reserve_a, 0)
        self.set(pair, "getReserves", reserves)
        self.set(pair, "token0", token0)

    def add_v3_pool(
        self,
        factory: str,
        pool: str,
        token_a: str,
        token_b: str,
        fee: int,
        sqrt_price_x96: int,
        tick: int,
        liquidity: int,
    ) -> None:
        self.set(factory, "getPool", pool, (token_a, token_b, fee))
        self.set(factory, "getPool", pool, (token_b, token_a, fee))
        token0, token1 = sorted((token_a, token_b), key=normalize_address)
        self.set(pool, "slot0", (sqrt_price_x96, tick, 0, 1, 1, 0, True))
        self.set(pool, "liquidity", liquidity)
        self.set(pool, "token0", token0)
        self.set(pool, "token1", token1)

    def multicall(
        self, calls: list[ContractCall], block_identifier: BlockIdentifier = LATEST_BLOCK
    ) -> list[CallResult]:
        self.batches += 1
        self.blocks.append(block_identifier)
        results = []
        for call in calls:
            self.calls.append(call)
            key = self._key(call.address, call.function, call.args)
            if key in self.failures:
                results.append(CallResult(success=False, error="execution reverted"))
            elif (block_identifier, key) in self.block_responses:
                results.append(CallResult(success=True, value=self.block_responses[(block_identifier, key)]))
            elif key in self.responses:
                results.append(CallResult(success=True, value=self.responses[key]))
            elif call.function in ("getPair", "getPool"):
                results.append(CallResult(success=True, value=ZERO_ADDRESS))
            else:
                results.append(CallResult(success=False, error=f"no response for {call.function}"))
        return results

    def get_gas_price(self) -> int:
        self.gas_price_calls += 1
        return self.gas_price

    def get_block_number(self) -> int:
        if self.block_number_error is not None:
            raise self.block_number_error
        return self.block_number

    def calls_to(self, function: str) -> list[ContractCall]:
        return [call for call in self.calls if call.function == function]


class FakeClientProvider:
    """ChainClientProvider returning one fixed client."""

    def __init__(self, client: FakeChainClient) -> None:
        self.client = client

    def get_client(self, chain: Any) -> FakeChainClient:
        return self.client
