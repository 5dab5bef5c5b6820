# ABOUTME: Builds the search, crawl, and extraction backends selected by configuration
# ABOUTME: Dispatches over closed provider kinds once at startup and fails fast on missing credentials

from dataclasses import dataclass

from mining_intel.config import Config, CrawlProviderKind, LLMProviderKind, SearchProviderKind
from mining_intel.extraction.base import CrawlProvider, Extractor, SearchProvider
from mining_intel.extraction.crawl import Crawl4AICrawlProvider, JinaCrawlProvider
from mining_intel.extraction.llm import LLMExtractor
from mining_intel.extraction.search import BraveSearchProvider, DuckDuckGoSearchProvider, SerperSearchProvider
from mining_intel.utils.logging import get_logger

logger = get_logger(__name__)


class ConfigurationError(Exception):
    """Raised when the configured providers cannot be constructed."""

    pass


@dataclass
class ProviderSet:
    """The concrete backends one process uses for every run."""

    search: SearchProvider
    crawl: CrawlProvider
    extractor: Extractor

    async def close(self) -> None:
        """Release HTTP clients held by the backends."""
        for provider in (self.search, self.crawl, self.extractor):
            close = getattr(provider, "close", None)
            if close is not None:
                await close()


def _require(value: str, variable: str, provider: str) -> str:
    if not value:
        raise ConfigurationError(f"{provider} requires an API key - set MINING_INTEL_{variable.upper()}")
    return value


def build_search_provider(config: Config) -> SearchProvider:
    timeout = config.request_timeout_seconds
    match config.search_provider:
        case SearchProviderKind.DUCKDUCKGO:
            return DuckDuckGoSearchProvider(timeout=timeout)
        case SearchProviderKind.BRAVE:
            return BraveSearchProvider(
                _require(config.brave_search_api_key, "brave_search_api_key", "Brave Search"), timeout=timeout
            )
        case SearchProviderKind.SERPER:
            return SerperSearchProvider(_require(config.serper_api_key, "serper_api_key", "Serper"), timeout=timeout)
    raise ConfigurationError(
        f"Unknown search provider {config.search_provider!r}; "
        f"available: {', '.join(kind.value for kind in SearchProviderKind)}"
    )


def build_crawl_provider(config: Config) -> CrawlProvider:
    timeout = config.request_timeout_seconds
    match config.crawl_provider:
        case CrawlProviderKind.JINA:
            return JinaCrawlProvider(api_key=config.jina_api_key, timeout=timeout)
        case CrawlProviderKind.CRAWL4AI:
            return Crawl4AICrawlProvider(timeout=timeout)
    raise ConfigurationError(
        f"Unknown crawl provider {config.crawl_provider!r}; "
        f"available: {', '.join(kind.value for kind in CrawlProviderKind)}"
    )


def build_extractor(config: Config) -> Extractor:
    match config.llm_provider:
        case LLMProviderKind.GEMINI:
            model = config.gemini_model
            api_key = _require(config.gemini_api_key, "gemini_api_key", "Gemini")
            max_tokens = config.gemini_max_output_tokens
        case LLMProviderKind.GROQ:
            model = config.groq_model
            api_key = _require(config.groq_api_key, "groq_api_key", "Groq")
            max_tokens = config.groq_max_output_tokens
        case _:
            raise ConfigurationError(
                f"Unknown LLM provider {config.llm_provider!r}; "
                f"available: {', '.join(kind.value for kind in LLMProviderKind)}"
            )

    return LLMExtractor(
        model,
        api_key,
        temperature=config.llm_temperature,
        max_tokens=max_tokens,
        timeout=config.request_timeout_seconds,
        max_input_chars=config.max_crawl_content_length,
    )


def build_providers(config: Config) -> ProviderSet:
    """Construct every backend up front so configuration mistakes surface before a run starts."""
    providers = ProviderSet(
        search=build_search_provider(config),
        crawl=build_crawl_provider(config),
        extractor=build_extractor(config),
    )
    logger.info(
        "Providers configured",
        search=config.search_provider.value,
        crawl=config.crawl_provider.value,
        llm=config.llm_provider.value,
    )
    return providers
