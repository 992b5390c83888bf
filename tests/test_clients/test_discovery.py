"""
Token discovery client tests against a mocked creator search endpoint.
"""

import httpx
import pytest

from claim_router.clients.discovery import (
    ICON_COLORS,
    PAGE_SIZE,
    TokenDiscoveryClient,
    icon_color,
    to_token,
)
from claim_router.engine.exceptions import UpstreamReadError
from claim_router.schemas.https import ClankerToken

WALLET = "0x00000000000000000000000000000000000000aa"


def record(index):
    return {
        "contract_address": f"0x{index + 1:040x}",
        "name": f"Token {index}",
        "symbol": f"T{index}",
        "deployed_at": "2025-03-01T12:00:00Z",
    }


class SearchEndpoint:
    """Serves ``total`` records in pages; records every request."""

    def __init__(self, total, status_code=200):
        self.records = [record(i) for i in range(total)]
        self.status_code = status_code
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        offset = int(request.url.params["offset"])
        limit = int(request.url.params["limit"])
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "unavailable"})
        return httpx.Response(200, json={"tokens": self.records[offset:offset + limit], "total": len(self.records)})


def discovery_client(handler):
    return TokenDiscoveryClient(base_url="https://discovery.test/api", transport=httpx.MockTransport(handler))


class TestFetchTokens:

    @pytest.mark.asyncio
    async def test_paginates_until_short_page(self):
        endpoint = SearchEndpoint(total=120)

        async with discovery_client(endpoint) as client:
            tokens = await client.fetch_tokens(WALLET)

        assert len(tokens) == 120
        # first page alone, then one parallel round of five
        assert len(endpoint.requests) == 6
        assert endpoint.requests[0].url.path == "/api/search-creator"
        assert endpoint.requests[0].url.params["q"] == WALLET
        assert endpoint.requests[0].url.params["sort"] == "desc"
        assert [token.symbol for token in tokens[:2]] == ["T0", "T1"]

    @pytest.mark.asyncio
    async def test_short_first_page_stops(self):
        endpoint = SearchEndpoint(total=PAGE_SIZE - 1)

        async with discovery_client(endpoint) as client:
            tokens = await client.fetch_tokens(WALLET)

        assert len(tokens) == PAGE_SIZE - 1
        assert len(endpoint.requests) == 1

    @pytest.mark.asyncio
    async def test_page_limit(self):
        endpoint = SearchEndpoint(total=PAGE_SIZE * 10)

        async with discovery_client(endpoint) as client:
            records = await client.fetch_all(WALLET, max_pages=3)

        assert len(records) == PAGE_SIZE * 3
        assert len(endpoint.requests) == 3

    @pytest.mark.asyncio
    async def test_error_status_reads_as_empty(self):
        async with discovery_client(SearchEndpoint(total=10, status_code=503)) as client:
            assert await client.fetch_tokens(WALLET) == []

    @pytest.mark.asyncio
    async def test_unreadable_page_reads_as_empty(self):
        async with discovery_client(lambda request: httpx.Response(200, text="<html>")) as client:
            assert await client.fetch_tokens(WALLET) == []

    @pytest.mark.asyncio
    async def test_transport_failure_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with discovery_client(handler) as client:
            with pytest.raises(UpstreamReadError, match="Token discovery request failed"):
                await client.fetch_tokens(WALLET)


class TestTokenMapping:

    def test_icon_color_is_stable(self):
        assert icon_color("a") == "#8b5cf6"
        assert icon_color("ab") == "#6366f1"
        assert icon_color(WALLET) == icon_color(WALLET)
        assert icon_color(WALLET) in ICON_COLORS

    def test_to_token(self):
        clanker = ClankerToken.model_validate({
            "contract_address": "0x00000000000000000000000000000000000000bb",
            "name": "Degen",
            "symbol": "DEGEN",
            "img_url": "",
            "created_at": "2025-01-02T00:00:00Z",
            "related": {"market": {"marketCap": 125000.5, "price": 0.0042}},
            "trustStatus": {"isTrustedClanker": True},
        })

        token = to_token(clanker)

        assert token.id == token.contract_address == "0x00000000000000000000000000000000000000bb"
        assert token.created_at == "2025-01-02T00:00:00Z"
        assert token.image_url is None
        assert token.market_cap == 125000.5
        assert token.price == 0.0042
        assert token.is_trusted is True
        assert token.icon_color == icon_color(token.contract_address)

    def test_to_token_without_market_or_trust(self):
        token = to_token(ClankerToken.model_validate(record(0)))

        assert token.created_at == "2025-03-01T12:00:00Z"
        assert token.market_cap is None
        assert token.is_trusted is False
