# ABOUTME: Jina Reader backend that fetches pages as markdown through r.jina.ai
# ABOUTME: Requests the JSON envelope and returns data.content and data.title as a CrawlResult

import httpx

from mining_intel.extraction.base import CrawlError, CrawlResult
from mining_intel.extraction.http import create_client, raise_for_provider_status
from mining_intel.utils.logging import get_logger, log_api_call

JINA_READER_URL = "https://r.jina.ai/"


class JinaCrawlProvider:
    """Crawl backend using the Jina Reader service."""

    def __init__(self, api_key: str = "", timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        self.logger = get_logger(__name__)
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self.client = client or create_client(timeout, headers=headers)

    @log_api_call("jina_reader")
    async def crawl(self, url: str) -> CrawlResult:
        try:
            response = await self.client.get(f"{JINA_READER_URL}{url}")
        except httpx.HTTPError as e:
            raise CrawlError(f"Jina request failed for {url}: {e}") from e

        raise_for_provider_status(response, CrawlError, "Jina Reader")

        try:
            payload = response.json()
        except ValueError as e:
            raise CrawlError(f"Jina returned invalid JSON for {url}") from e

        data = payload.get("data") or {}
        result = CrawlResult(markdown=data.get("content") or "", title=data.get("title") or "")
        self.logger.debug("Jina crawl complete", url=url, chars=len(result.markdown))
        return result

    async def close(self) -> None:
        await self.client.aclose()
