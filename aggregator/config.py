"""Application configuration loaded from environment variables.

Configuration is read once into a frozen AppConfig. Invalid values fall back
to defaults with a logged warning rather than failing startup.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

import structlog

from aggregator.constants import DEFAULT_INTERHOP_BUFFER_BPS, DEFAULT_QUOTE_TTL_SECONDS
from aggregator.models.types import checksum_address

logger = structlog.get_logger()

DEFAULT_UNISWAP_V2_FACTORY = "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f"
DEFAULT_UNISWAP_V2_ROUTER = "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D"
DEFAULT_EXECUTOR_BSC = "0x70aC53219E200B63dBf0218Cb0EC9567d091d26A"


def parse_url_list(value: str | None) -> tuple[str, ...]:
    """Split a comma-separated URL list, dropping blanks."""
    if not value:
        return ()
    return tuple(url.strip() for url in value.split(",") if url.strip())


def parse_address_or_none(value: str | None) -> str | None:
    """Parse a checksummed address, logging and returning None if invalid."""
    if not value:
        return None
    try:
        return checksum_address(value.strip())
    except ValueError as e:
        logger.warning("invalid_config_address", value=value, error=str(e))
        return None


def parse_int_with_default(value: str | None, default: int, minimum: int) -> int:
    """Parse an integer, falling back to default when missing, malformed or below minimum."""
    if value is None or value.strip() == "":
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        logger.warning("invalid_config_int", value=value, using_default=default)
        return default
    if parsed < minimum:
        logger.warning("config_int_below_minimum", value=parsed, minimum=minimum, using_default=default)
        return default
    return parsed


def parse_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class AppConfig:
    """Runtime configuration for the aggregator service.

    Attributes:
        host: HTTP bind host
        port: HTTP bind port
        debug: Enable auto-reload and debug logging
        log_level: structlog filtering level name
        log_json: Render logs as JSON instead of console output
        rpc_urls: Chain key -> RPC endpoint URLs (first one is used)
        executor_addresses: Chain key -> deployed executor, None when absent
        interhop_buffer_bps: Safety buffer subtracted from hops after the first
        quote_ttl_seconds: Validity window attached to returned swap plans
        uniswap_v2_factory: Ethereum Uniswap V2 factory override
        uniswap_v2_router: Ethereum Uniswap V2 router override
    """

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool = False
    rpc_urls: dict[str, tuple[str, ...]] = field(default_factory=dict)
    executor_addresses: dict[str, str | None] = field(default_factory=dict)
    interhop_buffer_bps: int = DEFAULT_INTERHOP_BUFFER_BPS
    quote_ttl_seconds: int = DEFAULT_QUOTE_TTL_SECONDS
    uniswap_v2_factory: str = DEFAULT_UNISWAP_V2_FACTORY
    uniswap_v2_router: str = DEFAULT_UNISWAP_V2_ROUTER


def load_config(environ: Mapping[str, str] | None = None) -> AppConfig:
    """Build an AppConfig from environment variables.

    Args:
        environ: Mapping to read from. Defaults to os.environ.

    Returns:
        Parsed configuration
    """
    env = os.environ if environ is None else environ

    return AppConfig(
        host=env.get("AGGREGATOR_HOST", "0.0.0.0"),
        port=parse_int_with_default(env.get("AGGREGATOR_PORT"), 8000, 1),
        debug=parse_bool(env.get("AGGREGATOR_DEBUG")),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
        log_json=parse_bool(env.get("LOG_JSON")),
        rpc_urls={
            "ethereum": parse_url_list(env.get("RPC_URL_ETH")),
            "bsc": parse_url_list(env.get("RPC_URL_BSC")),
        },
        executor_addresses={
            "ethereum": parse_address_or_none(env.get("EXECUTOR_ETH")),
            "bsc": parse_address_or_none(env.get("EXECUTOR_BSC")) or DEFAULT_EXECUTOR_BSC,
        },
        interhop_buffer_bps=parse_int_with_default(
            env.get("EXECUTOR_INTERHOP_BUFFER_BPS"), DEFAULT_INTERHOP_BUFFER_BPS, 0
        ),
        quote_ttl_seconds=parse_int_with_default(
            env.get("SWAP_QUOTE_TTL_SECONDS"), DEFAULT_QUOTE_TTL_SECONDS, 1
        ),
        uniswap_v2_factory=parse_address_or_none(env.get("UNISWAP_V2_FACTORY"))
        or DEFAULT_UNISWAP_V2_FACTORY,
        uniswap_v2_router=parse_address_or_none(env.get("UNISWAP_V2_ROUTER"))
        or DEFAULT_UNISWAP_V2_ROUTER,
    )


__all__ = [
    "AppConfig",
    "load_config",
    "parse_url_list",
    "parse_address_or_none",
    "parse_int_with_default",
    "parse_bool",
]
