"""Test helpers module for shared test utilities.

- constants: Token, venue and account addresses
- factories: Chain, token and quote factory functions
- fakes: In-memory chain client
"""

from tests.helpers.constants import (
    DAI,
    EXECUTOR,
    MKR,
    OWNER,
    POOL_1,
    POOL_2,
    POOL_3,
    RECIPIENT,
    STRANGER,
    USDC,
    USDT,
    USER,
    V2_FACTORY,
    V2_ROUTER,
    V3_DEADLINE_FACTORY,
    V3_DEADLINE_ROUTER,
    V3_FACTORY,
    V3_QUOTER,
    V3_ROUTER,
    WETH,
)
from tests.helpers.factories import (
    V2_DEX,
    V3_DEADLINE_DEX,
    V3_DEX,
    make_chain,
    make_quote,
    make_source,
    make_token,
)
from tests.helpers.fakes import FakeChainClient, FakeClientProvider

__all__ = [
    # Constants
    "WETH",
    "USDC",
    "USDT",
    "DAI",
    "MKR",
    "V2_FACTORY",
    "V2_ROUTER",
    "V3_FACTORY",
    "V3_ROUTER",
    "V3_DEADLINE_FACTORY",
    "V3_DEADLINE_ROUTER",
    "V3_QUOTER",
    "EXECUTOR",
    "OWNER",
    "USER",
    "RECIPIENT",
    "STRANGER",
    "POOL_1",
    "POOL_2",
    "POOL_3",
    # Factories
    "V2_DEX",
    "V3_DEX",
    "V3_DEADLINE_DEX",
    "make_chain",
    "make_token",
    "make_source",
    "make_quote",
    # Fakes
    "FakeChainClient",
    "FakeClientProvider",
]
