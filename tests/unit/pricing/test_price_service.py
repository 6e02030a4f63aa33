"""Tests for PriceService: token resolution, gas pricing and slippage bounds."""

import pytest

from aggregator.cache import TTLCache
from aggregator.errors import InvalidRequestError, TokenMetadataError
from aggregator.pricing.price_service import PriceService, resolve_allowed_versions
from aggregator.pricing.quote_math import apply_slippage
from tests.helpers import (
    DAI,
    MKR,
    POOL_1,
    POOL_2,
    POOL_3,
    USDC,
    V2_FACTORY,
    WETH,
    FakeClientProvider,
    make_token,
)

ONE = 10**18


@pytest.fixture
def gas_cache():
    return TTLCache("test_gas_price", 30)


@pytest.fixture
def service(token_service, client, discovery, gas_cache):
    return PriceService(token_service, FakeClientProvider(client), discovery, gas_cache=gas_cache)


@pytest.fixture
def markets(client):
    """DAI/USDC direct pair plus a slightly worse DAI -> WETH -> USDC route."""
    client.add_token(DAI, "DAI", "Dai Stablecoin", 18)
    client.add_v2_pair(V2_FACTORY, POOL_1, DAI, USDC, 10**24, 10**12)
    client.add_v2_pair(V2_FACTORY, POOL_2, DAI, WETH, 10**24, 10**21)
    client.add_v2_pair(V2_FACTORY, POOL_3, WETH, USDC, 10**21, 10**12)
    return client


class TestResolveAllowedVersions:
    def test_auto_allows_both(self):
        assert resolve_allowed_versions("auto") == ["v3", "v2"]

    @pytest.mark.parametrize("preference", ["v2", "v3"])
    def test_single_version(self, preference):
        assert resolve_allowed_versions(preference) == [preference]

    def test_unknown_preference(self):
        with pytest.raises(InvalidRequestError, match="route preference"):
            resolve_allowed_versions("v4")


class TestGetBestPrice:
    def test_direct_route_wins_with_offers(self, service, chain, markets):
        quote = service.get_best_price(chain, DAI, USDC, ONE)

        assert quote.pool_path == [POOL_1]
        assert [offer.pool_path for offer in quote.offers] == [[POOL_2, POOL_3]]
        assert quote.amount_out > quote.offers[0].amount_out

    def test_missing_amount_prices_one_whole_token(self, service, chain, markets):
        quote = service.get_best_price(chain, DAI, USDC)
        assert quote.amount_in == ONE

        quote = service.get_best_price(chain, USDC, DAI, 0)
        assert quote.amount_in == 10**6

    def test_no_route(self, service, chain, client):
        client.add_token(DAI, "DAI", "Dai Stablecoin", 18)
        assert service.get_best_price(chain, DAI, USDC, ONE) is None

    def test_v2_preference_excludes_v3_lookups(self, service, chain, markets):
        service.get_best_price(chain, DAI, USDC, ONE, preference="v2")
        assert markets.calls_to("getPool") == []

    def test_non_positive_amount_for_resolved_tokens(self, service, chain):
        assert service.get_best_quote_for_tokens(chain, make_token(DAI), make_token(USDC), 0) is None

    def test_unknown_token_decimals(self, service, chain):
        with pytest.raises(TokenMetadataError):
            service.get_best_price(chain, MKR, USDC, ONE)


class TestGasPrice:
    def test_gas_price_cached_per_chain(self, service, chain, markets):
        first = service.get_best_price(chain, DAI, USDC, ONE)
        service.get_best_price(chain, DAI, USDC, ONE)

        assert markets.gas_price_calls == 1
        assert first.gas_price_wei == markets.gas_price
        assert first.estimated_gas_cost_wei == first.estimated_gas_units * markets.gas_price

    def test_gas_price_failure_leaves_cost_unknown(self, service, chain, markets, monkeypatch):
        def broken():
            raise ConnectionError("rpc down")

        monkeypatch.setattr(markets, "get_gas_price", broken)

        quote = service.get_best_price(chain, DAI, USDC, ONE)

        assert quote is not None
        assert quote.gas_price_wei is None
        assert quote.estimated_gas_cost_wei is None
        assert quote.estimated_gas_units is not None


class TestBuildQuoteResult:
    def test_slippage_bound(self, service, chain, markets):
        result = service.build_quote_result(chain, DAI, USDC, "1", 50)

        assert result.token_in.symbol == "DAI"
        assert result.token_out.symbol == "USDC"
        assert result.quote.amount_in == ONE
        assert result.slippage_bps == 50
        assert result.amount_out_min == apply_slippage(result.quote.amount_out, 50)

    def test_fractional_amount(self, service, chain, markets):
        result = service.build_quote_result(chain, USDC, DAI, "2.5", 0)

        assert result.quote.amount_in == 2_500_000
        assert result.amount_out_min == result.quote.amount_out

    def test_slippage_clamped(self, service, chain, markets):
        result = service.build_quote_result(chain, DAI, USDC, "1", 90_000)
        assert result.slippage_bps == 5_000

    def test_same_token(self, service, chain, client):
        assert service.build_quote_result(chain, USDC, USDC.lower(), "1", 50) is None
        assert client.calls == []

    @pytest.mark.parametrize("amount", ["0", "0.0"])
    def test_zero_amount(self, service, chain, markets, amount):
        with pytest.raises(InvalidRequestError, match="greater than zero"):
            service.build_quote_result(chain, DAI, USDC, amount, 50)

    @pytest.mark.parametrize("amount", ["abc", "-1", "0.0000001"])
    def test_malformed_amount(self, service, chain, markets, amount):
        with pytest.raises(InvalidRequestError):
            service.build_quote_result(chain, USDC, DAI, amount, 50)

    def test_no_route(self, service, chain, client):
        client.add_token(DAI, "DAI", "Dai Stablecoin", 18)
        assert service.build_quote_result(chain, DAI, USDC, "1", 50) is None
