# ABOUTME: Protocol interfaces for the search, crawl, and extraction capabilities
# ABOUTME: Defines the ephemeral result models and the provider error taxonomy shared by all backends

from typing import Protocol

from pydantic import BaseModel, ConfigDict

from mining_intel.core.models import AssetRecord, ExtractionPayload, LeaderRecord


class ProviderError(Exception):
    """Base exception for search, crawl, and extraction backends."""

    pass


class SearchError(ProviderError):
    """Raised when a search backend fails to return results."""

    pass


class CrawlError(ProviderError):
    """Raised when a single URL cannot be crawled."""

    pass


class ExtractionError(ProviderError):
    """Raised when structured extraction from page text fails."""

    pass


class ResponseParseError(ExtractionError):
    """Raised when no records can be recovered from a model response."""

    def __init__(self, message: str, preview: str = ""):
        super().__init__(message)
        self.preview = preview


class RateLimitError(ProviderError):
    """Raised when a backend answers with HTTP 429 or an equivalent quota signal."""

    def __init__(self, message: str, retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class SearchResult(BaseModel):
    """One web search hit."""

    url: str
    title: str = ""
    snippet: str = ""


class CrawlResult(BaseModel):
    """Markdown rendering of a crawled page."""

    markdown: str = ""
    title: str = ""

    model_config = ConfigDict(frozen=True)


class SearchProvider(Protocol):
    """Protocol for web search backends."""

    async def search(self, query: str, max_results: int) -> list[SearchResult]:
        """Run a web search.

        Args:
            query: Free-text search query
            max_results: Maximum number of results to return

        Returns:
            Search hits in rank order

        Raises:
            SearchError: On transport or provider failure
        """
        ...


class CrawlProvider(Protocol):
    """Protocol for page crawling backends."""

    async def crawl(self, url: str) -> CrawlResult:
        """Fetch a page and convert it to markdown.

        Raises:
            CrawlError: If this URL cannot be crawled
        """
        ...


class Extractor(Protocol):
    """Protocol for language-model backed record extraction."""

    async def extract_leadership(
        self, text: str, company_name: str, *, return_raw: bool = False
    ) -> list[LeaderRecord] | ExtractionPayload[LeaderRecord]:
        """Extract executives and board members from page text.

        Raises:
            ExtractionError: If the response cannot be parsed
            RateLimitError: If the model provider is rate limiting
        """
        ...

    async def extract_assets(
        self, text: str, company_name: str, *, return_raw: bool = False
    ) -> list[AssetRecord] | ExtractionPayload[AssetRecord]:
        """Extract mines, projects, and operations from page text.

        Raises:
            ExtractionError: If the response cannot be parsed
            RateLimitError: If the model provider is rate limiting
        """
        ...
