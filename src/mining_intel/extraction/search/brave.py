# ABOUTME: Brave Search API backend for company page discovery
# ABOUTME: Calls the web search endpoint with a subscription token and maps web.results to SearchResult

import httpx

from mining_intel.extraction.base import SearchError, SearchResult
from mining_intel.extraction.http import create_client, raise_for_provider_status
from mining_intel.utils.logging import get_logger, log_api_call

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"


class BraveSearchProvider:
    """Search backend using the Brave Search API."""

    def __init__(self, api_key: str, timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        if not api_key:
            raise ValueError("Brave Search requires an API key")
        self.logger = get_logger(__name__)
        self.client = client or create_client(
            timeout, headers={"Accept": "application/json", "X-Subscription-Token": api_key}
        )

    @log_api_call("brave_search")
    async def search(self, query: str, max_results: int) -> list[SearchResult]:
        params = {"q": query, "count": max_results, "safesearch": "moderate"}
        try:
            response = await self.client.get(BRAVE_SEARCH_URL, params=params)
        except httpx.HTTPError as e:
            raise SearchError(f"Brave search request failed: {e}") from e

        raise_for_provider_status(response, SearchError, "Brave Search")

        try:
            payload = response.json()
        except ValueError as e:
            raise SearchError("Brave Search returned invalid JSON") from e

        hits = (payload.get("web") or {}).get("results") or []
        results = [
            SearchResult(url=hit["url"], title=hit.get("title") or "", snippet=hit.get("description") or "")
            for hit in hits
            if hit.get("url")
        ][:max_results]

        self.logger.debug("Brave search complete", query=query, results=len(results))
        return results

    async def close(self) -> None:
        await self.client.aclose()
