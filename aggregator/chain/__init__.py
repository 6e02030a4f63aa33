"""On-chain read access: ABI fragments and batched chain clients."""

from aggregator.chain.client import (
    CallResult,
    ChainClient,
    ChainClientProvider,
    ContractCall,
    Web3ChainClient,
)

__all__ = [
    "CallResult",
    "ChainClient",
    "ChainClientProvider",
    "ContractCall",
    "Web3ChainClient",
]
