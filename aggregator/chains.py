"""Static per-chain venue configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from aggregator.amm.uniswap_v3.constants import (
    V3_FEE_LOW,
    V3_FEE_LOWEST,
    V3_FEE_MEDIUM,
    V3_FEE_PANCAKE,
)
from aggregator.config import AppConfig, load_config
from aggregator.errors import InvalidRequestError
from aggregator.execution.offsets import CallShape
from aggregator.models.quote import HopVersion
from aggregator.models.types import same_address


@dataclass(frozen=True)
class DexConfig:
    """One venue deployment on a chain.

    Attributes:
        id: Venue identifier referenced by PriceSource.dex_id
        label: Display name
        protocol: Protocol family ("uniswap" or "pancakeswap")
        version: "v2" (constant product) or "v3" (concentrated liquidity)
        factory_address: Pair/pool lookup entry point
        router_address: Swap entry point, the approval spender
        quoter_address: Optional exact-input simulation entry point (v3 only)
        fee_tiers: Supported v3 fee tiers in millionths
        v2_fee_bps: Constant-product swap fee in basis points
        call_shape: ABI shape of the router's exact-input call
    """

    id: str
    label: str
    protocol: Literal["uniswap", "pancakeswap"]
    version: HopVersion
    factory_address: str
    router_address: str
    quoter_address: str | None = None
    fee_tiers: tuple[int, ...] = ()
    v2_fee_bps: int = 30
    call_shape: CallShape = CallShape.V2_SWAP_EXACT_TOKENS


@dataclass(frozen=True)
class ChainConfig:
    """Chain-level settings and the venues deployed on it."""

    key: str
    chain_id: int
    name: str
    native_symbol: str
    wrapped_native_address: str | None
    rpc_urls: tuple[str, ...] = ()
    dexes: tuple[DexConfig, ...] = field(default_factory=tuple)

    def find_dex(self, dex_id: str) -> DexConfig | None:
        for dex in self.dexes:
            if dex.id == dex_id:
                return dex
        return None

    def is_wrapped_native(self, address: str) -> bool:
        return self.wrapped_native_address is not None and same_address(
            self.wrapped_native_address, address
        )


_UNISWAP_V3_FEE_TIERS = (V3_FEE_LOWEST, V3_FEE_LOW, V3_FEE_MEDIUM)
_PANCAKE_V3_FEE_TIERS = (V3_FEE_LOWEST, V3_FEE_LOW, V3_FEE_PANCAKE)


def build_chain_configs(config: AppConfig) -> dict[str, ChainConfig]:
    """Build the supported chain configurations.

    Args:
        config: Application config providing RPC URLs and address overrides

    Returns:
        Mapping of chain key to ChainConfig
    """
    ethereum = ChainConfig(
        key="ethereum",
        chain_id=1,
        name="Ethereum",
        native_symbol="ETH",
        wrapped_native_address="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
        rpc_urls=config.rpc_urls.get("ethereum") or ("https://eth.llamarpc.com",),
        dexes=(
            DexConfig(
                id="uniswap-v2",
                label="Uniswap V2",
                protocol="uniswap",
                version="v2",
                factory_address=config.uniswap_v2_factory,
                router_address=config.uniswap_v2_router,
                v2_fee_bps=30,
            ),
            DexConfig(
                id="uniswap-v3",
                label="Uniswap V3",
                protocol="uniswap",
                version="v3",
                factory_address="0x1F98431c8aD98523631AE4a59f267346ea31F984",
                router_address="0x68b3465833fb72A70ecDF485E0e4C7bD8665Fc45",
                quoter_address="0x61fFE014bA17989E743c5F6cB21bF9697530B21e",
                fee_tiers=_UNISWAP_V3_FEE_TIERS,
                call_shape=CallShape.V3_EXACT_INPUT_SINGLE,
            ),
        ),
    )

    bsc = ChainConfig(
        key="bsc",
        chain_id=56,
        name="BNB Smart Chain",
        native_symbol="BNB",
        wrapped_native_address="0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c",
        rpc_urls=config.rpc_urls.get("bsc") or ("https://bsc.drpc.org",),
        dexes=(
            DexConfig(
                id="pancake-v2",
                label="PancakeSwap V2",
                protocol="pancakeswap",
                version="v2",
                factory_address="0xcA143Ce32Fe78f1f7019d7d551a6402fC5350c73",
                router_address="0x10ED43C718714eb63d5aA57B78B54704E256024E",
                v2_fee_bps=25,
            ),
            DexConfig(
                id="pancake-v3",
                label="PancakeSwap V3",
                protocol="pancakeswap",
                version="v3",
                factory_address="0x0BFbCF9fa4f9C56B0F40a671Ad40E0805A091865",
                router_address="0x1b81D678ffb9C0263b24A97847620C99d213eB14",
                quoter_address="0xB048Bbc1Ee6b733FFfCFb9e9CeF7375518e25997",
                fee_tiers=_PANCAKE_V3_FEE_TIERS,
                call_shape=CallShape.V3_EXACT_INPUT_SINGLE_DEADLINE,
            ),
            DexConfig(
                id="uniswap-v2",
                label="Uniswap V2",
                protocol="uniswap",
                version="v2",
                factory_address="0x8909Dc15e40173Ff4699343b6eB8132c65e18eC6",
                router_address="0x4752ba5DBc23f44D87826276BF6Fd6b1C372aD24",
                v2_fee_bps=30,
            ),
            DexConfig(
                id="uniswap-v3",
                label="Uniswap V3",
                protocol="uniswap",
                version="v3",
                factory_address="0xdB1d10011AD0Ff90774D0C6Bb92e5C5c8b4461F7",
                router_address="0xB971eF87ede563556b2ED4b1C0b0019111Dd85d2",
                quoter_address="0x78D78E420Da98ad378D7799bE8f4AF69033EB077",
                fee_tiers=_UNISWAP_V3_FEE_TIERS,
                call_shape=CallShape.V3_EXACT_INPUT_SINGLE,
            ),
        ),
    )

    return {ethereum.key: ethereum, bsc.key: bsc}


CHAIN_CONFIGS = build_chain_configs(load_config())

SUPPORTED_CHAINS = tuple(CHAIN_CONFIGS)


def get_chain_config(
    chain: str, chain_configs: dict[str, ChainConfig] | None = None
) -> ChainConfig:
    """Look up a chain by key (case-insensitive).

    Raises:
        InvalidRequestError: If the chain is not supported
    """
    configs = CHAIN_CONFIGS if chain_configs is None else chain_configs
    config = configs.get(chain.lower())
    if config is None:
        raise InvalidRequestError(
            f"Unsupported chain '{chain}'. Supported chains: {', '.join(configs)}"
        )
    return config


__all__ = [
    "DexConfig",
    "ChainConfig",
    "build_chain_configs",
    "CHAIN_CONFIGS",
    "SUPPORTED_CHAINS",
    "get_chain_config",
]
