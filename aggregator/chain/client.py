"""Batched read access to EVM chains.

Discovery and the token cache need a batch of view calls where each call may
fail independently, optionally pinned to a past block, plus the current gas
price and block number. ChainClient is the protocol for that;
Web3ChainClient implements it over JSON-RPC with web3, and tests substitute
an in-memory fake.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import structlog
from web3 import Web3
from web3.providers.rpc import HTTPProvider

from aggregator.chain.abi import FUNCTION_ABIS
from aggregator.errors import InvalidRequestError

if TYPE_CHECKING:
    from aggregator.chains import ChainConfig

logger = structlog.get_logger()

# Block number, or a tag such as "latest"
BlockIdentifier = int | str

LATEST_BLOCK: BlockIdentifier = "latest"


@dataclass(frozen=True)
class ContractCall:
    """A single view call.

    Attributes:
        address: Contract address
        function: Key into FUNCTION_ABIS
        args: Positional call arguments
    """

    address: str
    function: str
    args: tuple[Any, ...] = ()


@dataclass(frozen=True)
class CallResult:
    """Outcome of one call in a batch; failures never abort the batch."""

    success: bool
    value: Any = None
    error: str | None = None


class ChainClient(Protocol):
    """Protocol for batched chain reads.

    This allows swapping between a real RPC client and a fake for testing.
    """

    def multicall(
        self, calls: list[ContractCall], block_identifier: BlockIdentifier = LATEST_BLOCK
    ) -> list[CallResult]:
        """Execute calls against one block, returning one result per call in order."""
        ...

    def get_gas_price(self) -> int:
        """Current gas price in wei."""
        ...

    def get_block_number(self) -> int:
        """Number of the latest block."""
        ...


class Web3ChainClient:
    """ChainClient backed by a web3 HTTP provider.

    Calls in a batch are issued concurrently from a small thread pool; each
    is isolated so one revert only fails its own CallResult.
    """

    def __init__(self, rpc_url: str, max_workers: int = 8, timeout: int = 30):
        """Initialize the client.

        Args:
            rpc_url: HTTP RPC URL (e.g., "https://eth.llamarpc.com")
            max_workers: Concurrent eth_call requests per batch
            timeout: HTTP request timeout in seconds
        """
        self.rpc_url = rpc_url
        self.max_workers = max_workers
        self.w3 = Web3(HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))

    def _call(self, call: ContractCall, block_identifier: BlockIdentifier) -> CallResult:
        abi = FUNCTION_ABIS[call.function]
        try:
            contract = self.w3.eth.contract(
                address=Web3.to_checksum_address(call.address),
                abi=[abi],
            )
            function = contract.get_function_by_name(abi["name"])(*call.args)
            value = function.call(block_identifier=block_identifier)
            return CallResult(success=True, value=value)
        except Exception as e:
            logger.debug(
                "contract_call_failed",
                address=call.address,
                function=call.function,
                block=block_identifier,
                error=str(e),
            )
            return CallResult(success=False, error=str(e))

    def multicall(
        self, calls: list[ContractCall], block_identifier: BlockIdentifier = LATEST_BLOCK
    ) -> list[CallResult]:
        if not calls:
            return []
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(calls))) as pool:
            return list(pool.map(lambda call: self._call(call, block_identifier), calls))

    def get_gas_price(self) -> int:
        return int(self.w3.eth.gas_price)

    def get_block_number(self) -> int:
        return int(self.w3.eth.block_number)


class ChainClientProvider:
    """Caches one client per RPC URL."""

    def __init__(self, client_factory: Any = Web3ChainClient):
        self._client_factory = client_factory
        self._clients: dict[str, ChainClient] = {}

    def get_client(self, chain: ChainConfig) -> ChainClient:
        """Return the client for the chain's first RPC URL.

        Raises:
            InvalidRequestError: If the chain has no RPC URL configured
        """
        if not chain.rpc_urls:
            raise InvalidRequestError(f"No RPC URL configured for chain {chain.key}")
        url = chain.rpc_urls[0]
        client = self._clients.get(url)
        if client is None:
            logger.info("chain_client_created", chain=chain.key, rpc_url=url)
            client = self._client_factory(url)
            self._clients[url] = client
        return client


__all__ = [
    "BlockIdentifier",
    "LATEST_BLOCK",
    "ContractCall",
    "CallResult",
    "ChainClient",
    "Web3ChainClient",
    "ChainClientProvider",
]
