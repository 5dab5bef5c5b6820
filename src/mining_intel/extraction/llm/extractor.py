# ABOUTME: Language-model extractor for leadership and asset records using DSPy's LM client
# ABOUTME: Renders prompts, classifies provider failures into the error taxonomy, and runs the recovery parser

import asyncio
from typing import TypeVar
from string import Template

import dspy
from pydantic import BaseModel

from mining_intel.core.models import AssetRecord, ExtractionPayload, LeaderRecord, validate_records
from mining_intel.extraction.base import ExtractionError, ProviderError, RateLimitError
from mining_intel.extraction.http import parse_retry_after
from mining_intel.extraction.llm.parsing import parse_records
from mining_intel.extraction.llm.prompts import ASSETS_PROMPT, LEADERSHIP_PROMPT, render_prompt
from mining_intel.utils.logging import get_logger

R = TypeVar("R", bound=BaseModel)

RATE_LIMIT_MARKERS = ("429", "resource_exhausted", "rate limit", "ratelimit")


def _retry_after_hint(error: Exception) -> float | None:
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    try:
        return parse_retry_after(headers.get("retry-after"))
    except AttributeError:
        return None


def classify_llm_exception(error: Exception) -> ProviderError:
    """Convert a model-client exception into RateLimitError or ExtractionError."""
    status = getattr(error, "status_code", None)
    if status is None:
        status = getattr(getattr(error, "response", None), "status_code", None)

    message = str(error).lower()
    if status == 429 or any(marker in message for marker in RATE_LIMIT_MARKERS):
        return RateLimitError(f"Rate limit exceeded: {error}", retry_after=_retry_after_hint(error))
    return ExtractionError(f"LLM API call failed: {error}")


class LLMExtractor:
    """Structured record extraction from crawled text with a single LM call per category.

    Retries and request spacing are owned by the caller, so the underlying client is
    built with library retries and caching disabled.
    """

    def __init__(
        self,
        model: str,
        api_key: str,
        *,
        temperature: float = 0.1,
        max_tokens: int = 8192,
        timeout: float = 30.0,
        max_input_chars: int = 30000,
        lm: dspy.LM | None = None,
    ):
        """Initialize the extractor.

        Args:
            model: LiteLLM model id, e.g. "gemini/gemini-2.0-flash"
            api_key: API key for the model provider
            temperature: Sampling temperature
            max_tokens: Output token cap; long asset lists may be cut off at this limit
            timeout: Seconds allowed per model call
            max_input_chars: Page text beyond this many characters is not sent
            lm: Pre-built LM client (tests)
        """
        if lm is None and not api_key:
            raise ExtractionError(f"API key required for model {model}")

        self.logger = get_logger(__name__)
        self.model = model
        self.timeout = timeout
        self.max_input_chars = max_input_chars
        self.lm = lm or dspy.LM(
            model,
            api_key=api_key,
            temperature=temperature,
            max_tokens=max_tokens,
            cache=False,
            num_retries=0,
        )
        self.logger.info("Initialized LLM extractor", model=model, max_tokens=max_tokens)

    async def extract_leadership(
        self, text: str, company_name: str, *, return_raw: bool = False
    ) -> list[LeaderRecord] | ExtractionPayload[LeaderRecord]:
        return await self._extract(LEADERSHIP_PROMPT, text, company_name, "leaders", LeaderRecord, return_raw)

    async def extract_assets(
        self, text: str, company_name: str, *, return_raw: bool = False
    ) -> list[AssetRecord] | ExtractionPayload[AssetRecord]:
        return await self._extract(ASSETS_PROMPT, text, company_name, "assets", AssetRecord, return_raw)

    async def _extract(
        self,
        template: Template,
        text: str,
        company_name: str,
        key: str,
        record_type: type[R],
        return_raw: bool,
    ) -> list[R] | ExtractionPayload[R]:
        prompt = render_prompt(template, company_name, text[: self.max_input_chars])
        raw = await self.complete(prompt)
        self.logger.debug("Model response received", company=company_name, key=key, chars=len(raw))

        records = validate_records(parse_records(raw, key), record_type)
        self.logger.info("Extracted records", company=company_name, key=key, count=len(records))

        if return_raw:
            return ExtractionPayload(parsed=records, raw=raw)
        return records

    async def complete(self, prompt: str) -> str:
        """Send one prompt and return the first completion's text.

        Raises:
            RateLimitError: If the provider signals a rate limit
            ExtractionError: On timeout or any other provider failure
        """
        try:
            async with asyncio.timeout(self.timeout):
                outputs = await self.lm.acall(prompt=prompt)
        except TimeoutError as e:
            raise ExtractionError(f"LLM request timed out after {self.timeout}s") from e
        except ProviderError:
            raise
        except Exception as e:
            raise classify_llm_exception(e) from e

        if not outputs:
            raise ExtractionError("LLM returned no completions")

        first = outputs[0]
        # Outputs are plain strings unless the LM was asked for logprobs or tool calls
        if isinstance(first, dict):
            first = first.get("text") or ""
        return str(first or "")
