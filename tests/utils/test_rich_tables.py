# ABOUTME: Tests for the CLI table builders
# ABOUTME: Renders tables to a recording console and checks the visible content

from datetime import datetime
from types import SimpleNamespace

from rich.console import Console

from mining_intel.core.models import CrawlDebug, DebugReport, ExtractionDebug
from mining_intel.utils.rich_tables import (
    create_assets_table,
    create_debug_table,
    create_run_companies_table,
    create_run_summary_table,
)


def render(table) -> str:
    console = Console(record=True, width=160)
    console.print(table)
    return console.export_text()


def make_snapshot():
    run = SimpleNamespace(
        id=4,
        input_string="BHP, Vale",
        status="partial",
        total_companies=2,
        created_at=datetime(2026, 1, 5, 9, 30),
        completed_at=None,
        error_log="1/2 companies failed",
    )
    companies = [
        SimpleNamespace(company_name="BHP", step="complete", status="complete", company_id=1, error_message=None),
        SimpleNamespace(
            company_name="Vale", step="failed", status="failed", company_id=None, error_message="searching: boom"
        ),
    ]
    return SimpleNamespace(run=run, companies=companies, completed_count=1, failed_count=1)


def test_run_tables():
    snapshot = make_snapshot()

    summary = render(create_run_summary_table(snapshot))
    assert "1/2 companies failed" in summary
    assert "2026-01-05 09:30:00" in summary

    companies = render(create_run_companies_table(snapshot))
    assert "Done" in companies
    assert "searching: boom" in companies


def test_assets_table_formats_location_and_coordinates():
    asset = SimpleNamespace(
        name="Escondida",
        commodities=["copper"],
        status="operating",
        town="",
        state_province="Antofagasta",
        country="Chile",
        latitude=-24.27,
        longitude=-69.07,
    )

    output = render(create_assets_table([asset]))

    assert "Antofagasta, Chile" in output
    assert "-24.2700, -69.0700" in output


def test_debug_table_marks_skipped_extraction():
    report = DebugReport(
        company_name="Vale",
        search_urls={"leadership": ["https://vale.com/board"], "assets": []},
        search_urls_reordered={"leadership": ["https://vale.com/board"], "assets": []},
        crawl={"leadership": CrawlDebug(length=1200, first_url="https://vale.com/board"), "assets": CrawlDebug()},
        llm={"leadership": ExtractionDebug(raw="[]", parsed=[]), "assets": ExtractionDebug()},
    )

    output = render(create_debug_table(report))

    assert "1,200 chars from https://vale.com/board" in output
    assert "Skipped" in output
