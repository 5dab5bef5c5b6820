# ABOUTME: Page crawl backends converting company web pages into markdown
# ABOUTME: Jina Reader (HTTP) and crawl4ai (headless browser) implementations of CrawlProvider

from .crawl4ai import Crawl4AICrawlProvider
from .jina import JinaCrawlProvider

__all__ = [
    "Crawl4AICrawlProvider",
    "JinaCrawlProvider",
]
