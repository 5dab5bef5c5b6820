# ABOUTME: Tests for the per-company pipeline processor against fake providers and in-memory storage
# ABOUTME: Covers search/crawl failure rules, extraction degradation, crawl merging, storing, and debug runs

from __future__ import annotations

import pytest

from fakes import FakeCrawl, FakeExtractor, FakeSearch
from mining_intel.config import Config
from mining_intel.core.models import AssetRecord, LeaderRecord, PipelineStep, StepStatus
from mining_intel.core.processor import CONTENT_SEPARATOR, CompanyProcessor
from mining_intel.extraction.base import ExtractionError, RateLimitError, SearchError
from mining_intel.extraction.factory import ProviderSet
from mining_intel.utils.retry import RateLimitRetryPolicy, RequestRateLimiter

LEADERSHIP_PAGE = "# Board of Directors\n" + "Jane Doe is the Chief Executive Officer. " * 5
ASSET_PAGE = "# Operations\n" + "The Copper Hill mine produces copper in Chile. " * 5


async def _no_sleep(seconds: float) -> None:
    return None


def make_processor(db, search, crawl, extractor, **overrides) -> CompanyProcessor:
    settings = {
        "max_retries": 1,
        "min_crawl_content_length": 100,
        "max_urls_to_crawl_per_topic": 3,
        "search_results_per_query": 5,
        **overrides,
    }
    config = Config(_env_file=None, **settings)
    return CompanyProcessor(
        database=db,
        providers=ProviderSet(search=search, crawl=crawl, extractor=extractor),
        limiter=RequestRateLimiter(600, sleep=_no_sleep),
        retry_policy=RateLimitRetryPolicy(config.max_retries, config.retry_on_429, sleep=_no_sleep),
        config=config,
    )


async def _start_run(db, name: str) -> int:
    run = await db.create_run(name, [name])
    return run.id


@pytest.mark.asyncio
async def test_full_pipeline_stores_leaders_and_assets(temp_db):
    search = FakeSearch(
        leadership=["https://acme.com/news", "https://acme.com/about/board"],
        assets=["https://acme.com/operations"],
    )
    crawl = FakeCrawl(
        pages={
            "https://acme.com/about/board": LEADERSHIP_PAGE,
            "https://acme.com/news": "too short",
            "https://acme.com/operations": ASSET_PAGE,
        }
    )
    extractor = FakeExtractor(
        leaders=[LeaderRecord(name="Jane Doe", title="CEO")],
        assets=[AssetRecord(name="Copper Hill", commodities=["copper"], status="operating")],
    )
    processor = make_processor(temp_db, search, crawl, extractor)
    run_id = await _start_run(temp_db, "Acme Mining")

    outcome = await processor.process(run_id, "Acme Mining")

    assert outcome.success is True
    assert outcome.step is PipelineStep.COMPLETE
    # Ranked: the board page is crawled before the news page
    assert crawl.crawled[:2] == ["https://acme.com/about/board", "https://acme.com/news"]

    snapshot = await temp_db.get_run(run_id)
    row = snapshot.companies[0]
    assert row.step == PipelineStep.COMPLETE
    assert row.status == StepStatus.COMPLETE
    assert row.company_id == outcome.company_id

    profile = await temp_db.get_company(outcome.company_id)
    assert profile.company.website_url == "https://acme.com/about/board"
    assert profile.company.raw_source == LEADERSHIP_PAGE + CONTENT_SEPARATOR + ASSET_PAGE
    assert [leader.name for leader in profile.leaders] == ["Jane Doe"]
    assert profile.leaders[0].source_url == "https://acme.com/about/board"
    assert [asset.name for asset in profile.assets] == ["Copper Hill"]
    assert profile.assets[0].source_url == "https://acme.com/operations"


@pytest.mark.asyncio
async def test_missing_leadership_results_skip_that_category(temp_db):
    asset_urls = ["https://acme.com/projects", "https://acme.com/mines", "https://acme.com/assets"]
    search = FakeSearch(leadership=[], assets=asset_urls)
    crawl = FakeCrawl(pages={url: ASSET_PAGE for url in asset_urls})
    extractor = FakeExtractor(
        leaders=[LeaderRecord(name="Should Not Appear")],
        assets=[AssetRecord(name="Mine A"), AssetRecord(name="Mine B")],
    )
    processor = make_processor(temp_db, search, crawl, extractor)
    run_id = await _start_run(temp_db, "Acme Corp")

    outcome = await processor.process(run_id, "Acme Corp")

    assert outcome.success is True
    assert outcome.leaders == []
    assert [asset.name for asset in outcome.assets] == ["Mine A", "Mine B"]
    assert sorted(crawl.crawled) == sorted(asset_urls)
    assert [category for category, _ in extractor.calls] == ["assets"]

    profile = await temp_db.get_company(outcome.company_id)
    assert profile.leaders == []
    assert len(profile.assets) == 2
    assert profile.company.website_url == "https://acme.com/projects"


@pytest.mark.asyncio
async def test_no_search_results_fails_company(temp_db):
    processor = make_processor(temp_db, FakeSearch(), FakeCrawl(), FakeExtractor())
    run_id = await _start_run(temp_db, "Nobody Mining")

    outcome = await processor.process(run_id, "Nobody Mining")

    assert outcome.success is False
    assert outcome.step is PipelineStep.SEARCHING
    assert outcome.error_message == "searching: No search results found for leadership or assets"

    row = (await temp_db.get_run(run_id)).companies[0]
    assert row.step == PipelineStep.FAILED
    assert row.status == StepStatus.FAILED
    assert row.error_message == outcome.error_message


@pytest.mark.asyncio
async def test_search_provider_errors_fail_company_with_reason(temp_db):
    search = FakeSearch(fail=SearchError("HTTP 500"))
    processor = make_processor(temp_db, search, FakeCrawl(), FakeExtractor())
    run_id = await _start_run(temp_db, "Acme")

    outcome = await processor.process(run_id, "Acme")

    assert outcome.success is False
    assert outcome.error_message == "searching: Search failed: HTTP 500"
    assert len(search.queries) == 2


@pytest.mark.asyncio
async def test_all_crawls_unusable_fails_company(temp_db):
    search = FakeSearch(leadership=["https://a.com/board"], assets=["https://a.com/mines"])
    crawl = FakeCrawl(pages={"https://a.com/board": "short"})
    extractor = FakeExtractor()
    processor = make_processor(temp_db, search, crawl, extractor)
    run_id = await _start_run(temp_db, "Acme")

    outcome = await processor.process(run_id, "Acme")

    assert outcome.success is False
    assert outcome.step is PipelineStep.CRAWLING_ASSETS
    assert outcome.error_message == "crawling_assets: All crawl attempts returned empty or too-short content"
    assert extractor.calls == []


@pytest.mark.asyncio
async def test_exhausted_rate_limit_degrades_to_empty_category(temp_db):
    search = FakeSearch(leadership=["https://a.com/board"], assets=["https://a.com/mines"])
    crawl = FakeCrawl(pages={"https://a.com/board": LEADERSHIP_PAGE, "https://a.com/mines": ASSET_PAGE})
    extractor = FakeExtractor(
        assets=[AssetRecord(name="Mine A")],
        leadership_errors=[RateLimitError("429"), RateLimitError("429")],
    )
    processor = make_processor(temp_db, search, crawl, extractor, max_retries=1)
    run_id = await _start_run(temp_db, "Acme")

    outcome = await processor.process(run_id, "Acme")

    assert outcome.success is True
    assert outcome.leaders == []
    assert [asset.name for asset in outcome.assets] == ["Mine A"]
    assert [category for category, _ in extractor.calls] == ["leadership", "leadership", "assets"]


@pytest.mark.asyncio
async def test_parse_failure_is_not_retried(temp_db):
    search = FakeSearch(leadership=["https://a.com/board"], assets=[])
    crawl = FakeCrawl(pages={"https://a.com/board": LEADERSHIP_PAGE})
    extractor = FakeExtractor(leadership_errors=[ExtractionError("Failed to parse LLM response")])
    processor = make_processor(temp_db, search, crawl, extractor, max_retries=3)
    run_id = await _start_run(temp_db, "Acme")

    outcome = await processor.process(run_id, "Acme")

    assert outcome.success is True
    assert outcome.leaders == []
    assert len(extractor.calls) == 1


@pytest.mark.asyncio
async def test_unexpected_storage_error_is_contained(temp_db, monkeypatch):
    search = FakeSearch(leadership=["https://a.com/board"], assets=[])
    crawl = FakeCrawl(pages={"https://a.com/board": LEADERSHIP_PAGE})
    processor = make_processor(temp_db, search, crawl, FakeExtractor())
    run_id = await _start_run(temp_db, "Acme")

    async def broken_upsert(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(temp_db, "upsert_company", broken_upsert)

    outcome = await processor.process(run_id, "Acme")

    assert outcome.success is False
    assert outcome.step is PipelineStep.STORING
    assert outcome.error_message == "storing: disk full"
    row = (await temp_db.get_run(run_id)).companies[0]
    assert row.status == StepStatus.FAILED


@pytest.mark.asyncio
async def test_crawl_category_merges_and_truncates(temp_db):
    urls = ["https://a.com/1", "https://a.com/2", "https://a.com/3", "https://a.com/4", "https://a.com/5"]
    crawl = FakeCrawl(
        pages={
            "https://a.com/1": "x" * 50,
            "https://a.com/3": "a" * 300,
            "https://a.com/4": "b" * 300,
            "https://a.com/5": "c" * 300,
        }
    )
    processor = make_processor(
        temp_db,
        FakeSearch(),
        crawl,
        FakeExtractor(),
        min_crawl_content_length=100,
        max_urls_to_crawl_per_topic=4,
        max_crawl_content_length_per_url=200,
        max_crawl_content_length=300,
    )

    merged = await processor.crawl_category(urls)

    # Stops by attempt count, not by success
    assert crawl.crawled == urls[:4]
    assert merged.first_url == "https://a.com/3"
    assert merged.raw_length == 200 + len(CONTENT_SEPARATOR) + 200
    assert merged.text == ("a" * 200 + CONTENT_SEPARATOR + "b" * 200)[:300]


@pytest.mark.asyncio
async def test_debug_returns_artifacts_without_storing(temp_db):
    search = FakeSearch(
        leadership=["https://a.com/news", "https://a.com/leadership"],
        assets=["https://a.com/operations"],
    )
    crawl = FakeCrawl(pages={"https://a.com/leadership": LEADERSHIP_PAGE})
    extractor = FakeExtractor(leaders=[LeaderRecord(name="Jane Doe", title="CEO")])
    processor = make_processor(temp_db, search, crawl, extractor)

    report = await processor.debug("Acme")

    assert report.search_urls["leadership"] == ["https://a.com/news", "https://a.com/leadership"]
    assert report.search_urls_reordered["leadership"] == ["https://a.com/leadership", "https://a.com/news"]
    assert report.crawl["leadership"].first_url == "https://a.com/leadership"
    assert report.crawl["leadership"].length == len(LEADERSHIP_PAGE)
    assert report.crawl["assets"].length == 0
    assert report.llm["leadership"].raw == "[leaders]"
    assert report.llm["leadership"].parsed[0]["name"] == "Jane Doe"
    assert report.llm["assets"].raw is None
    assert report.search_error is None
    assert await temp_db.list_companies() == []


@pytest.mark.asyncio
async def test_debug_records_search_failure(temp_db):
    processor = make_processor(temp_db, FakeSearch(fail=SearchError("blocked")), FakeCrawl(), FakeExtractor())

    report = await processor.debug("Acme")

    assert report.search_error == "Search failed: blocked"
    assert report.crawl["leadership"].length == 0
