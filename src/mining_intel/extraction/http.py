# ABOUTME: Shared httpx helpers for the HTTP-based search and crawl backends
# ABOUTME: Maps 429 responses to RateLimitError (with Retry-After) and other failures to the caller's error type

from datetime import datetime
from email.utils import parsedate_to_datetime

import httpx

from mining_intel.extraction.base import ProviderError, RateLimitError

USER_AGENT = "Mozilla/5.0 (compatible; mining-intel/0.1; +https://github.com/mining-intel)"


def parse_retry_after(header_value: str | None) -> float | None:
    """Parse a Retry-After header given in seconds or as an HTTP date."""
    if not header_value:
        return None
    try:
        seconds = float(header_value.strip())
    except ValueError:
        try:
            moment = parsedate_to_datetime(header_value)
        except (TypeError, ValueError):
            return None
        return max(0.0, (moment - datetime.now(tz=moment.tzinfo)).total_seconds())
    return seconds if seconds >= 0 else None


def create_client(timeout: float, headers: dict[str, str] | None = None, **kwargs) -> httpx.AsyncClient:
    """Create an AsyncClient with the project's user agent and a per-request timeout."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        headers={"User-Agent": USER_AGENT, **(headers or {})},
        follow_redirects=True,
        **kwargs,
    )


def raise_for_provider_status(response: httpx.Response, error_type: type[ProviderError], provider: str) -> None:
    """Raise the taxonomy error matching a failed response; do nothing on success."""
    if response.status_code == 429:
        raise RateLimitError(
            f"{provider} rate limited (HTTP 429)",
            retry_after=parse_retry_after(response.headers.get("retry-after")),
        )
    if response.is_error:
        raise error_type(f"{provider} returned HTTP {response.status_code}")
