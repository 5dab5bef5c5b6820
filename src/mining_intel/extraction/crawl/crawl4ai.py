# ABOUTME: Crawl4AI-based crawl backend rendering pages in a headless browser
# ABOUTME: Returns the page markdown without LLM extraction; structured extraction happens downstream

import asyncio

from crawl4ai import AsyncWebCrawler, BrowserConfig, CacheMode, CrawlerRunConfig

from mining_intel.extraction.base import CrawlError, CrawlResult
from mining_intel.utils.logging import get_logger, log_api_call


class Crawl4AICrawlProvider:
    """Crawl backend using crawl4ai's AsyncWebCrawler."""

    def __init__(self, timeout: float = 30.0, headless: bool = True):
        """Initialize the crawler settings.

        Args:
            timeout: Seconds allowed per page, including browser start-up
            headless: Whether to run browser in headless mode
        """
        self.logger = get_logger(__name__)
        self.timeout = timeout
        self.browser_config = BrowserConfig(headless=headless, verbose=False)
        self.run_config = CrawlerRunConfig(
            cache_mode=CacheMode.BYPASS, page_timeout=int(timeout * 1000), verbose=False
        )
        self.logger.info("Initialized Crawl4AI crawler", headless=headless, timeout=timeout)

    @log_api_call("crawl4ai")
    async def crawl(self, url: str) -> CrawlResult:
        try:
            async with asyncio.timeout(self.timeout):
                async with AsyncWebCrawler(config=self.browser_config) as crawler:
                    result = await crawler.arun(url=url, config=self.run_config)  # type: ignore[assignment]
        except TimeoutError as e:
            raise CrawlError(f"Crawling timed out after {self.timeout}s: {url}") from e
        except Exception as e:
            self.logger.error("Unexpected error during crawl", error=str(e), error_type=type(e).__name__, url=url)
            raise CrawlError(f"Unexpected error during crawl of {url}: {e}") from e

        if not result:
            raise CrawlError(f"Crawling failed: no result returned for {url}")
        if not result.success:  # type: ignore[attr-defined]
            raise CrawlError(f"Crawling failed: {result.error_message}")  # type: ignore[attr-defined]

        markdown = result.markdown  # type: ignore[attr-defined]
        # Newer crawl4ai returns a MarkdownGenerationResult that renders as its raw markdown
        text = str(getattr(markdown, "raw_markdown", markdown) or "")
        title = ((result.metadata or {}).get("title") or "") if hasattr(result, "metadata") else ""  # type: ignore[attr-defined]

        self.logger.debug("Crawl4AI crawl complete", url=url, chars=len(text))
        return CrawlResult(markdown=text, title=title)

    async def close(self) -> None:
        """Browsers are opened per crawl, so there is nothing to release."""
        return None
