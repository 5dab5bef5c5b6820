# ABOUTME: Web search backends used to discover leadership and asset pages
# ABOUTME: DuckDuckGo (keyless), Brave Search, and Serper implementations of SearchProvider

from .brave import BraveSearchProvider
from .duckduckgo import DuckDuckGoSearchProvider
from .serper import SerperSearchProvider

__all__ = [
    "BraveSearchProvider",
    "DuckDuckGoSearchProvider",
    "SerperSearchProvider",
]
