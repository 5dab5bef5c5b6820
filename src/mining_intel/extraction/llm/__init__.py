# ABOUTME: Language-model extraction of leadership and asset records from crawled text
# ABOUTME: Prompt templates, the recovery parser for messy model output, and the DSPy-backed extractor

from .extractor import LLMExtractor, classify_llm_exception
from .parsing import parse_records, salvage_objects, strip_code_fence

__all__ = [
    "LLMExtractor",
    "classify_llm_exception",
    "parse_records",
    "salvage_objects",
    "strip_code_fence",
]
