# ABOUTME: Tests for the Jina Reader crawl backend
# ABOUTME: Validates request URL and headers, JSON envelope mapping, and error translation

import httpx
import pytest

from mining_intel.extraction.base import CrawlError, RateLimitError
from mining_intel.extraction.crawl import JinaCrawlProvider


@pytest.mark.asyncio
async def test_crawl_returns_content_and_title():
    seen: list[httpx.Request] = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"code": 200, "data": {"title": "Our Board", "content": "# Board\nJane Doe"}})

    provider = JinaCrawlProvider(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    result = await provider.crawl("https://acme.com/board")

    assert result.markdown == "# Board\nJane Doe"
    assert result.title == "Our Board"
    assert str(seen[0].url).startswith("https://r.jina.ai/")
    assert str(seen[0].url).endswith("acme.com/board")
    await provider.close()


@pytest.mark.asyncio
async def test_missing_data_gives_empty_result():
    provider = JinaCrawlProvider(
        client=httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})))
    )
    result = await provider.crawl("https://acme.com")
    assert result.markdown == ""


@pytest.mark.asyncio
async def test_http_error_becomes_crawl_error():
    provider = JinaCrawlProvider(
        client=httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(451)))
    )
    with pytest.raises(CrawlError, match="HTTP 451"):
        await provider.crawl("https://acme.com")


@pytest.mark.asyncio
async def test_rate_limit_is_reported():
    provider = JinaCrawlProvider(
        client=httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(429)))
    )
    with pytest.raises(RateLimitError):
        await provider.crawl("https://acme.com")


@pytest.mark.asyncio
async def test_timeout_becomes_crawl_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    provider = JinaCrawlProvider(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(CrawlError, match="Jina request failed"):
        await provider.crawl("https://acme.com")


def test_api_key_sets_bearer_header():
    provider = JinaCrawlProvider(api_key="secret")
    assert provider.client.headers["Authorization"] == "Bearer secret"
    assert provider.client.headers["Accept"] == "application/json"
