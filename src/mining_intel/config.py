# ABOUTME: Application configuration using Pydantic Settings for environment variables
# ABOUTME: Provides type-safe access to provider selection, API keys, pipeline limits, and logging config

from enum import StrEnum
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SearchProviderKind(StrEnum):
    """Supported web search backends."""

    DUCKDUCKGO = "duckduckgo"
    BRAVE = "brave"
    SERPER = "serper"


class CrawlProviderKind(StrEnum):
    """Supported page crawl backends."""

    JINA = "jina"
    CRAWL4AI = "crawl4ai"


class LLMProviderKind(StrEnum):
    """Supported language model backends."""

    GEMINI = "gemini"
    GROQ = "groq"


class Config(BaseSettings):
    """Application configuration with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="MINING_INTEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown environment variables
    )

    # Provider selection
    search_provider: SearchProviderKind = Field(
        default=SearchProviderKind.DUCKDUCKGO, description="Web search backend used to discover company pages"
    )
    crawl_provider: CrawlProviderKind = Field(
        default=CrawlProviderKind.JINA, description="Crawler used to turn pages into markdown"
    )
    llm_provider: LLMProviderKind = Field(
        default=LLMProviderKind.GEMINI, description="Language model used for structured extraction"
    )

    # API keys
    brave_search_api_key: str = Field(default="", description="Brave Search subscription token")
    serper_api_key: str = Field(default="", description="Serper.dev API key")
    jina_api_key: str = Field(default="", description="Optional Jina Reader API key for higher quotas")
    gemini_api_key: str = Field(default="", description="Google Gemini API key")
    groq_api_key: str = Field(default="", description="Groq API key")

    # Model settings
    gemini_model: str = Field(default="gemini/gemini-2.0-flash", description="LiteLLM model id for Gemini")
    groq_model: str = Field(default="groq/llama-3.3-70b-versatile", description="LiteLLM model id for Groq")
    llm_temperature: float = Field(default=0.1, ge=0.0, le=2.0, description="Sampling temperature for extraction")
    gemini_max_output_tokens: int = Field(default=8192, ge=1, description="Output token cap for Gemini")
    groq_max_output_tokens: int = Field(default=4096, ge=1, description="Output token cap for Groq")

    # Pipeline limits
    max_retries: int = Field(default=2, ge=0, description="Retries on rate-limited LLM calls (attempts = retries + 1)")
    request_timeout_seconds: float = Field(default=30.0, gt=0, description="Timeout for every outbound network call")
    max_crawl_content_length: int = Field(
        default=30000, ge=1, description="Character cap on merged crawl text per category"
    )
    max_crawl_content_length_per_url: int = Field(
        default=20000, ge=1, description="Character cap on each crawled page before merging"
    )
    min_crawl_content_length: int = Field(
        default=100, ge=0, description="Crawled pages shorter than this are treated as not found"
    )
    search_results_per_query: int = Field(default=5, ge=1, description="Search results requested per query")
    max_urls_to_crawl_per_topic: int = Field(default=3, ge=1, description="URLs crawled per category")
    concurrent_companies: int = Field(default=2, ge=1, description="Companies processed simultaneously in a run")
    llm_requests_per_minute: int = Field(default=4, ge=1, description="Process-wide LLM request rate")
    retry_on_429: bool = Field(default=True, description="Retry LLM calls that hit a rate limit")

    # Database Configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///./mining_intel.db", description="Database URL for async SQLAlchemy operations"
    )

    # Logging Configuration
    log_mode: Literal["interactive", "production"] = Field(default="interactive", description="Logging output mode")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging verbosity level"
    )

    log_file: Path | None = Field(default=None, description="Custom log file path (overrides default)")


# Global config instance - lazy loaded when first accessed
_config_instance: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance.

    Creates the config on first access, subsequent calls return the same instance.

    Returns:
        Config: The application configuration instance
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance


def reload_config() -> Config:
    """Reload configuration from environment variables.

    Useful for testing or when environment variables change at runtime.

    Returns:
        Config: A fresh configuration instance
    """
    global _config_instance
    _config_instance = Config()
    return _config_instance
