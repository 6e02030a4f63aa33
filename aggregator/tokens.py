"""Token metadata cache.

Metadata is keyed by (chain id, lowercase address) and expires after five
minutes. The well-known intermediary tokens are seeded at construction so
2-hop discovery never spends a round trip on them.
"""

from __future__ import annotations

import time
from collections.abc import Callable

import structlog

from aggregator.cache import TTLCache
from aggregator.chain.client import ChainClient, ContractCall
from aggregator.chains import ChainConfig
from aggregator.constants import INTERMEDIATE_TOKENS, TOKEN_CACHE_TTL_SECONDS
from aggregator.errors import InvalidRequestError, TokenMetadataError
from aggregator.models.quote import TokenMetadata
from aggregator.models.types import checksum_address, normalize_address

logger = structlog.get_logger()

UNKNOWN_SYMBOL = "UNKNOWN"


def decode_token_string(value: object, fallback: str) -> str:
    """Decode a symbol()/name() return value.

    Handles ABI strings as well as the bytes32 values returned by legacy
    tokens (e.g. MKR), which are right-padded with NUL bytes.
    """
    if isinstance(value, str):
        text = value.replace("\x00", "").strip()
        return text or fallback
    if isinstance(value, bytes | bytearray):
        raw = bytes(value).rstrip(b"\x00")
        if not raw:
            return fallback
        text = raw.decode("utf-8", errors="ignore").replace("\x00", "").strip()
        return text or fallback
    return fallback


class TokenService:
    """Resolves and caches ERC-20 metadata."""

    def __init__(
        self,
        chain_configs: dict[str, ChainConfig],
        ttl_seconds: float = TOKEN_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._cache = TTLCache("token_metadata", ttl_seconds, clock=clock)
        self._seed_intermediates(chain_configs)

    def _seed_intermediates(self, chain_configs: dict[str, ChainConfig]) -> None:
        for chain_key, tokens in INTERMEDIATE_TOKENS.items():
            chain = chain_configs.get(chain_key)
            if chain is None:
                continue
            for address, symbol, name, decimals in tokens:
                self._store(
                    TokenMetadata(
                        chain_id=chain.chain_id,
                        address=checksum_address(address),
                        symbol=symbol,
                        name=name,
                        decimals=decimals,
                    )
                )

    def _store(self, token: TokenMetadata) -> None:
        self._cache.set((token.chain_id, normalize_address(token.address)), token)

    def get_cached(self, chain: ChainConfig, address: str) -> TokenMetadata | None:
        return self._cache.get((chain.chain_id, normalize_address(address)))

    def get_token_metadata(
        self, chain: ChainConfig, address: str, client: ChainClient
    ) -> TokenMetadata:
        """Return metadata for a token, fetching it on a cache miss.

        Args:
            chain: Chain the token lives on
            address: Token address in any casing
            client: Chain client used on a cache miss

        Returns:
            TokenMetadata with a checksummed address

        Raises:
            InvalidRequestError: If the address is malformed
            TokenMetadataError: If decimals() cannot be read
        """
        try:
            checksummed = checksum_address(address)
        except ValueError as e:
            raise InvalidRequestError(str(e)) from e

        cached = self.get_cached(chain, checksummed)
        if cached is not None:
            return cached

        results = client.multicall(
            [
                ContractCall(checksummed, "symbol"),
                ContractCall(checksummed, "name"),
                ContractCall(checksummed, "decimals"),
                ContractCall(checksummed, "totalSupply"),
            ]
        )
        symbol_result, name_result, decimals_result, supply_result = results

        if not decimals_result.success:
            raise TokenMetadataError(
                f"Failed to fetch decimals for token {checksummed} on chain {chain.name}"
            )

        symbol_value = symbol_result.value if symbol_result.success else None
        name_value = name_result.value if name_result.success else None
        # Legacy tokens return bytes32, which fails string decoding
        retry = [
            ContractCall(checksummed, function)
            for function, value in (("symbol_bytes32", symbol_value), ("name_bytes32", name_value))
            if value is None
        ]
        if retry:
            retried = iter(client.multicall(retry))
            if symbol_value is None:
                result = next(retried)
                symbol_value = result.value if result.success else None
            if name_value is None:
                result = next(retried)
                name_value = result.value if result.success else None

        symbol = decode_token_string(symbol_value, UNKNOWN_SYMBOL)
        token = TokenMetadata(
            chain_id=chain.chain_id,
            address=checksummed,
            symbol=symbol,
            name=decode_token_string(name_value, symbol),
            decimals=int(decimals_result.value),
            total_supply=int(supply_result.value) if supply_result.success else None,
        )
        self._store(token)
        logger.debug("token_metadata_fetched", chain=chain.key, token=checksummed, symbol=symbol)
        return token


__all__ = ["TokenService", "decode_token_string", "UNKNOWN_SYMBOL"]
