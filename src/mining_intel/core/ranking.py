# ABOUTME: URL relevance ranking by keyword hints found in the URL path
# ABOUTME: Biases crawling toward leadership or asset pages before generic results

from urllib.parse import urlsplit

LEADERSHIP_URL_HINTS = ["board", "management", "executive", "leadership", "about"]
ASSETS_URL_HINTS = ["operation", "project", "mine", "asset", "location", "portfolio"]


def score_url(url: str, hints: list[str]) -> int:
    """Count how many hints appear (case-insensitively) in the URL's path."""
    try:
        path = urlsplit(url).path.lower()
    except ValueError:
        return 0
    return sum(1 for hint in hints if hint.lower() in path)


def rank_urls(urls: list[str], hints: list[str]) -> list[str]:
    """Reorder URLs so those matching more hints come first.

    Python's sort is stable, so URLs with equal scores keep their search order.
    """
    return sorted(urls, key=lambda url: score_url(url, hints), reverse=True)
