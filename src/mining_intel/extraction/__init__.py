# ABOUTME: Data extraction from external sources (search engines, web pages, language models)
# ABOUTME: Pipeline capabilities: search results, crawled markdown, and structured records

"""
Extraction Layer: Get raw and structured data from external sources

This layer handles:
- Web search for leadership and asset pages
- Crawling pages into markdown
- Language-model extraction of leader and asset records

Data Flow: External Sources → Search hits → Page markdown → Structured records → core/ processor
"""

# Protocols and errors live in extraction.base; concrete backends are chosen by extraction.factory
