# ABOUTME: Per-company pipeline: search, rank, crawl, extract through the shared rate limiter, and store
# ABOUTME: Contains every failure at the company boundary and offers a storage-free debug variant

import asyncio
from collections.abc import Awaitable, Callable
from typing import NamedTuple, TypeVar

from mining_intel.config import Config
from mining_intel.core.models import (
    AssetRecord,
    CompanyOutcome,
    CrawlDebug,
    DebugReport,
    ExtractionDebug,
    ExtractionPayload,
    LeaderRecord,
    PipelineStep,
    StepStatus,
)
from mining_intel.core.ranking import ASSETS_URL_HINTS, LEADERSHIP_URL_HINTS, rank_urls
from mining_intel.extraction.base import CrawlError, ProviderError, SearchError
from mining_intel.extraction.factory import ProviderSet
from mining_intel.persistence.manager import DatabaseManager
from mining_intel.utils.logging import get_logger, with_company_context
from mining_intel.utils.retry import RateLimitRetryPolicy, RequestRateLimiter

T = TypeVar("T")

CONTENT_SEPARATOR = "\n\n---\n\n"
NO_SEARCH_RESULTS = "No search results found for leadership or assets"
NO_CRAWL_CONTENT = "All crawl attempts returned empty or too-short content"


def leadership_query(company_name: str) -> str:
    return f"{company_name} mining company leadership board executives management team"


def assets_query(company_name: str) -> str:
    return f"{company_name} mining operations mines projects assets properties"


class MergedCrawl(NamedTuple):
    """Crawled text for one category."""

    text: str
    first_url: str | None
    raw_length: int


class SearchUrls(NamedTuple):
    leadership: list[str]
    assets: list[str]
    errors: list[str]


class CompanyProcessor:
    """Runs one company through search → rank → crawl → extract → store.

    Model calls from every processor share one RequestRateLimiter, so companies
    processed concurrently still respect the provider-wide request quota.
    """

    def __init__(
        self,
        database: DatabaseManager,
        providers: ProviderSet,
        limiter: RequestRateLimiter,
        retry_policy: RateLimitRetryPolicy,
        config: Config,
    ):
        self.database = database
        self.providers = providers
        self.limiter = limiter
        self.retry_policy = retry_policy
        self.config = config
        self.logger = get_logger(__name__)

    async def process(self, run_id: int, company_name: str) -> CompanyOutcome:
        """Process one company and return its terminal outcome. Never raises `Exception`."""
        step = PipelineStep.PENDING

        async def advance(next_step: PipelineStep) -> None:
            nonlocal step
            step = next_step
            await self.database.update_company_status(run_id, company_name, next_step, StepStatus.PROCESSING)

        with with_company_context(run_id, company_name) as log:
            try:
                log.info("Processing company")

                await advance(PipelineStep.SEARCHING)
                urls = await self.search(company_name)
                if not urls.leadership and not urls.assets:
                    raise SearchError(_search_failure_message(urls.errors))

                leadership_urls = rank_urls(urls.leadership, LEADERSHIP_URL_HINTS)
                asset_urls = rank_urls(urls.assets, ASSETS_URL_HINTS)
                log.debug("Ranked search results", leadership=leadership_urls, assets=asset_urls)

                await advance(PipelineStep.CRAWLING_LEADERSHIP)
                leadership = await self.crawl_category(leadership_urls)

                await advance(PipelineStep.CRAWLING_ASSETS)
                assets_crawl = await self.crawl_category(asset_urls)

                if not leadership.text and not assets_crawl.text:
                    raise CrawlError(NO_CRAWL_CONTENT)

                leaders: list[LeaderRecord] = []
                if leadership.text:
                    await advance(PipelineStep.EXTRACTING_LEADERSHIP)
                    leaders = await self._extract_or_empty(
                        lambda: self.providers.extractor.extract_leadership(leadership.text, company_name),
                        "leadership",
                    )

                assets: list[AssetRecord] = []
                if assets_crawl.text:
                    await advance(PipelineStep.EXTRACTING_ASSETS)
                    assets = await self._extract_or_empty(
                        lambda: self.providers.extractor.extract_assets(assets_crawl.text, company_name),
                        "assets",
                    )

                await advance(PipelineStep.STORING)
                raw_source = CONTENT_SEPARATOR.join(text for text in (leadership.text, assets_crawl.text) if text)
                company = await self.database.upsert_company(
                    company_name,
                    website_url=leadership.first_url or assets_crawl.first_url,
                    raw_source=raw_source,
                )
                await self.database.replace_leaders(company.id, leaders, leadership.first_url)
                await self.database.replace_assets(company.id, assets, assets_crawl.first_url)

                await self.database.update_company_status(
                    run_id, company_name, PipelineStep.COMPLETE, StepStatus.COMPLETE, company_id=company.id
                )
                log.info("Company complete", company_id=company.id, leaders=len(leaders), assets=len(assets))
                return CompanyOutcome(
                    company_name=company_name,
                    success=True,
                    step=PipelineStep.COMPLETE,
                    company_id=company.id,
                    leaders=leaders,
                    assets=assets,
                )

            except Exception as e:
                message = f"{step.value}: {e}"
                log.error("Company failed", step=step.value, error=str(e), error_type=type(e).__name__)
                await self._record_failure(run_id, company_name, message)
                return CompanyOutcome(
                    company_name=company_name,
                    success=False,
                    step=step,
                    error_message=message,
                )

    async def debug(self, company_name: str) -> DebugReport:
        """Run the same steps without storing anything and return every intermediate artifact."""
        report = DebugReport(company_name=company_name)

        with with_company_context(None, company_name) as log:
            log.info("Debug pipeline start")

            urls = await self.search(company_name)
            report.search_urls = {"leadership": urls.leadership, "assets": urls.assets}
            if urls.errors:
                report.search_error = "; ".join(urls.errors)
            if not urls.leadership and not urls.assets:
                report.search_error = _search_failure_message(urls.errors)
                log.warning("Debug pipeline stopped after search", error=report.search_error)
                return report

            leadership_urls = rank_urls(urls.leadership, LEADERSHIP_URL_HINTS)
            asset_urls = rank_urls(urls.assets, ASSETS_URL_HINTS)
            report.search_urls_reordered = {"leadership": leadership_urls, "assets": asset_urls}

            leadership = await self.crawl_category(leadership_urls)
            assets_crawl = await self.crawl_category(asset_urls)
            report.crawl = {
                "leadership": CrawlDebug(length=leadership.raw_length, first_url=leadership.first_url),
                "assets": CrawlDebug(length=assets_crawl.raw_length, first_url=assets_crawl.first_url),
            }

            if leadership.text:
                report.llm["leadership"] = await self._debug_extract(
                    lambda: self.providers.extractor.extract_leadership(
                        leadership.text, company_name, return_raw=True
                    ),
                    "leadership",
                )
            if assets_crawl.text:
                report.llm["assets"] = await self._debug_extract(
                    lambda: self.providers.extractor.extract_assets(assets_crawl.text, company_name, return_raw=True),
                    "assets",
                )

            log.info(
                "Debug pipeline end",
                leaders=len(report.llm["leadership"].parsed),
                assets=len(report.llm["assets"].parsed),
            )
        return report

    async def search(self, company_name: str) -> SearchUrls:
        """Run the leadership and assets queries concurrently.

        A failing query is logged and counts as empty; the caller decides whether
        two empty result sets fail the company.
        """
        limit = self.config.search_results_per_query
        results = await asyncio.gather(
            self.providers.search.search(leadership_query(company_name), limit),
            self.providers.search.search(assets_query(company_name), limit),
            return_exceptions=True,
        )

        url_lists: list[list[str]] = []
        errors: list[str] = []
        for topic, result in zip(("leadership", "assets"), results, strict=True):
            if isinstance(result, ProviderError):
                self.logger.warning("Search query failed", company=company_name, topic=topic, error=str(result))
                errors.append(f"Search failed: {result}")
                url_lists.append([])
            elif isinstance(result, BaseException):
                raise result
            else:
                url_lists.append([hit.url for hit in result])

        self.logger.info(
            "Search complete",
            company=company_name,
            leadership_urls=len(url_lists[0]),
            asset_urls=len(url_lists[1]),
        )
        return SearchUrls(leadership=url_lists[0], assets=url_lists[1], errors=errors)

    async def crawl_category(self, urls: list[str]) -> MergedCrawl:
        """Crawl the top ranked URLs and merge the usable pages.

        Stops after max_urls_to_crawl_per_topic attempts whether or not they succeeded.
        Pages shorter than min_crawl_content_length are discarded.
        """
        config = self.config
        chunks: list[str] = []
        first_url: str | None = None

        for url in urls[: config.max_urls_to_crawl_per_topic]:
            try:
                result = await self.providers.crawl.crawl(url)
            except Exception as e:
                self.logger.warning("Crawl failed, skipping url", url=url, error=str(e), error_type=type(e).__name__)
                continue

            markdown = result.markdown or ""
            if len(markdown) < config.min_crawl_content_length:
                self.logger.debug("Discarding short crawl result", url=url, chars=len(markdown))
                continue

            if first_url is None:
                first_url = url
            chunks.append(markdown[: config.max_crawl_content_length_per_url])
            self.logger.debug("Crawled url", url=url, chars=len(markdown))

        merged = CONTENT_SEPARATOR.join(chunks)
        return MergedCrawl(
            text=merged[: config.max_crawl_content_length],
            first_url=first_url,
            raw_length=len(merged),
        )

    async def _call_model(self, call: Callable[[], Awaitable[T]]) -> T:
        # Each retry re-enters the limiter queue, so backoff waits never hold the lock
        return await self.retry_policy.call(lambda: self.limiter.schedule(call))

    async def _extract_or_empty(self, call: Callable[[], Awaitable[list]], category: str) -> list:
        try:
            return await self._call_model(call)
        except ProviderError as e:
            self.logger.warning(
                "Extraction failed, continuing with no records",
                category=category,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

    async def _debug_extract(self, call: Callable[[], Awaitable[ExtractionPayload]], category: str) -> ExtractionDebug:
        try:
            payload = await self._call_model(call)
        except ProviderError as e:
            self.logger.warning("Debug extraction failed", category=category, error=str(e))
            return ExtractionDebug(error=str(e))
        return ExtractionDebug(
            raw=payload.raw,
            parsed=[record.model_dump(mode="json") for record in payload.parsed],
        )

    async def _record_failure(self, run_id: int, company_name: str, message: str) -> None:
        try:
            await self.database.update_company_status(
                run_id, company_name, PipelineStep.FAILED, StepStatus.FAILED, error_message=message
            )
        except Exception as e:
            self.logger.error(
                "Could not record company failure",
                run_id=run_id,
                company=company_name,
                error=str(e),
            )


def _search_failure_message(errors: list[str]) -> str:
    if len(errors) == 2:
        return errors[0]
    return NO_SEARCH_RESULTS
