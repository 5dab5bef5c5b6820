# ABOUTME: Serper.dev (Google results) backend for company page discovery
# ABOUTME: Posts the query with an API key header and maps organic hits to SearchResult

import httpx

from mining_intel.extraction.base import SearchError, SearchResult
from mining_intel.extraction.http import create_client, raise_for_provider_status
from mining_intel.utils.logging import get_logger, log_api_call

SERPER_SEARCH_URL = "https://google.serper.dev/search"


class SerperSearchProvider:
    """Search backend using the Serper.dev Google search API."""

    def __init__(self, api_key: str, timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        if not api_key:
            raise ValueError("Serper requires an API key")
        self.logger = get_logger(__name__)
        self.client = client or create_client(timeout, headers={"X-API-KEY": api_key})

    @log_api_call("serper_search")
    async def search(self, query: str, max_results: int) -> list[SearchResult]:
        try:
            response = await self.client.post(SERPER_SEARCH_URL, json={"q": query, "num": max_results})
        except httpx.HTTPError as e:
            raise SearchError(f"Serper request failed: {e}") from e

        raise_for_provider_status(response, SearchError, "Serper")

        try:
            payload = response.json()
        except ValueError as e:
            raise SearchError("Serper returned invalid JSON") from e

        results = [
            SearchResult(url=hit["link"], title=hit.get("title") or "", snippet=hit.get("snippet") or "")
            for hit in payload.get("organic") or []
            if hit.get("link")
        ][:max_results]

        self.logger.debug("Serper search complete", query=query, results=len(results))
        return results

    async def close(self) -> None:
        await self.client.aclose()
