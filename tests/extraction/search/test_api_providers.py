# ABOUTME: Tests for the Brave and Serper API search backends
# ABOUTME: Checks request shape, result mapping, and 429 handling with httpx.MockTransport

import json

import httpx
import pytest

from mining_intel.extraction.base import RateLimitError, SearchError
from mining_intel.extraction.search import BraveSearchProvider, SerperSearchProvider


def mock_client(handler, headers=None) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), headers=headers)


class TestBraveSearchProvider:
    @pytest.mark.asyncio
    async def test_maps_web_results(self):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "web": {
                        "results": [
                            {"url": "https://vale.com/leadership", "title": "Leadership", "description": "Our team"},
                            {"title": "no url"},
                            {"url": "https://vale.com/about", "title": "About"},
                        ]
                    }
                },
            )

        provider = BraveSearchProvider("token", client=mock_client(handler))
        results = await provider.search("Vale leadership", 5)

        assert [result.url for result in results] == ["https://vale.com/leadership", "https://vale.com/about"]
        assert results[0].snippet == "Our team"
        assert seen[0].url.params["q"] == "Vale leadership"
        assert seen[0].url.params["count"] == "5"

    @pytest.mark.asyncio
    async def test_missing_web_section_is_empty(self):
        provider = BraveSearchProvider("token", client=mock_client(lambda request: httpx.Response(200, json={})))
        assert await provider.search("nothing", 5) == []

    @pytest.mark.asyncio
    async def test_429_carries_retry_after(self):
        provider = BraveSearchProvider(
            "token",
            client=mock_client(lambda request: httpx.Response(429, headers={"Retry-After": "12"})),
        )
        with pytest.raises(RateLimitError) as exc_info:
            await provider.search("Vale", 5)
        assert exc_info.value.retry_after == 12.0

    @pytest.mark.asyncio
    async def test_server_error(self):
        provider = BraveSearchProvider("token", client=mock_client(lambda request: httpx.Response(503)))
        with pytest.raises(SearchError, match="HTTP 503"):
            await provider.search("Vale", 5)

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            BraveSearchProvider("")


class TestSerperSearchProvider:
    @pytest.mark.asyncio
    async def test_posts_query_and_maps_organic_results(self):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "organic": [
                        {"link": "https://glencore.com/who-we-are", "title": "Who we are", "snippet": "Board"},
                        {"link": "https://glencore.com/operations", "title": "Operations"},
                    ]
                },
            )

        provider = SerperSearchProvider("key", client=mock_client(handler))
        results = await provider.search("Glencore operations", 1)

        assert [result.url for result in results] == ["https://glencore.com/who-we-are"]
        assert seen[0].method == "POST"
        assert json.loads(seen[0].content) == {"q": "Glencore operations", "num": 1}

    @pytest.mark.asyncio
    async def test_invalid_json_is_search_error(self):
        provider = SerperSearchProvider("key", client=mock_client(lambda request: httpx.Response(200, text="<html>")))
        with pytest.raises(SearchError, match="invalid JSON"):
            await provider.search("Glencore", 5)
