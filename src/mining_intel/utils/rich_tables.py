# ABOUTME: Rich table builders for run progress, company profiles, and debug reports
# ABOUTME: Provides pre-configured table generators for the CLI's read-side views

from typing import Any

from rich.box import ROUNDED, SIMPLE
from rich.console import Console
from rich.table import Table

from mining_intel.utils.logging.progress import RUN_STATUS_STYLES, STATUS_STYLES, STEP_LABELS


def _truncate(text: str, length: int) -> str:
    return text[:length] + "..." if len(text) > length else text


def _timestamp(value: Any) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "-"


def create_key_value_table(
    title: str,
    data: dict[str, str],
    title_style: str = "bold cyan",
    key_style: str = "bold blue",
    value_style: str = "green",
    box_style=ROUNDED,
) -> Table:
    """Create a key-value table.

    Args:
        title: Table title with emoji/styling
        data: Dictionary of key-value pairs to display
        title_style: Style for the table title
        key_style: Style for the key column
        value_style: Style for the value column
        box_style: Border style for the table

    Returns:
        Formatted Rich table ready for printing
    """
    table = Table(
        title=f"[{title_style}]{title}[/{title_style}]",
        box=box_style,
        show_header=True,
        header_style="bold magenta",
        border_style="cyan",
        title_justify="left",
        expand=False,
    )

    table.add_column("Field", style=key_style, no_wrap=False)
    table.add_column("Value", style=value_style, no_wrap=False)

    for key, value in data.items():
        table.add_row(key, str(value))

    return table


def create_multi_column_table(
    title: str,
    columns: list[tuple[str, str]],
    rows: list[list[str]],
    title_style: str = "bold cyan",
    header_style: str = "bold magenta",
    alternate_row_styles: list[str] | None = None,
    box_style=ROUNDED,
) -> Table:
    """Create a multi-column table with zebra striping.

    Args:
        title: Table title with emoji/styling
        columns: List of (column_name, column_style) tuples
        rows: List of row data
        title_style: Style for the table title
        header_style: Style for column headers
        alternate_row_styles: Alternating row styles for zebra striping
        box_style: Border style for the table

    Returns:
        Formatted Rich table ready for printing
    """
    table = Table(
        title=f"[{title_style}]{title}[/{title_style}]",
        box=box_style,
        show_header=True,
        header_style=header_style,
        border_style="cyan",
        title_justify="left",
        row_styles=alternate_row_styles or ["", "dim"],
        expand=True,
    )

    for name, style in columns:
        table.add_column(name, style=style)

    for row in rows:
        table.add_row(*row)

    return table


def create_run_summary_table(snapshot: Any) -> Table:
    """Create a summary table for a pipeline run.

    Args:
        snapshot: RunSnapshot with the run and its company rows

    Returns:
        Run summary table with status color coding
    """
    run = snapshot.run
    style = RUN_STATUS_STYLES.get(run.status, "white")
    summary_data = {
        "🆔 Run": str(run.id),
        "📥 Input": _truncate(run.input_string, 80),
        "📊 Status": f"[{style}]{run.status}[/{style}]",
        "🏢 Companies": str(run.total_companies),
        "✅ Completed": str(snapshot.completed_count),
        "❌ Failed": str(snapshot.failed_count),
        "📅 Started": _timestamp(run.created_at),
        "🏁 Finished": _timestamp(run.completed_at),
    }
    if run.error_log:
        summary_data["⚠️ Summary"] = run.error_log

    return create_key_value_table(
        title="⛏️ Pipeline Run",
        data=summary_data,
        title_style="bold green",
        key_style="cyan",
        value_style="white",
        box_style=SIMPLE,
    )


def create_run_companies_table(snapshot: Any) -> Table:
    """Per-company step, status, and error for a run."""
    rows = []
    for row in snapshot.companies:
        status_text, style = STATUS_STYLES.get(row.status, (row.status, "white"))
        rows.append(
            [
                row.company_name,
                STEP_LABELS.get(row.step, row.step),
                f"[{style}]{status_text}[/{style}]",
                str(row.company_id) if row.company_id is not None else "-",
                _truncate(row.error_message or "", 80),
            ]
        )

    return create_multi_column_table(
        title=f"🏢 Companies in Run {snapshot.run.id}",
        columns=[
            ("Company", "bold white"),
            ("Step", "cyan"),
            ("Status", "white"),
            ("Company ID", "blue"),
            ("Error", "red"),
        ],
        rows=rows,
    )


def create_companies_table(summaries: list[Any]) -> Table:
    """Stored companies with leader and asset counts."""
    rows = [
        [
            str(summary.company.id),
            summary.company.name,
            summary.company.website_url or "-",
            str(summary.leader_count),
            str(summary.asset_count),
            _timestamp(summary.company.updated_at),
        ]
        for summary in summaries
    ]

    return create_multi_column_table(
        title="🏢 Companies",
        columns=[
            ("ID", "cyan"),
            ("Name", "bold white"),
            ("Website", "blue"),
            ("Leaders", "green"),
            ("Assets", "yellow"),
            ("Updated", "dim white"),
        ],
        rows=rows,
    )


def create_company_table(profile: Any) -> Table:
    company = profile.company
    data = {
        "🆔 ID": str(company.id),
        "📛 Name": company.name,
        "🌐 Website": company.website_url or "Not available",
        "📝 Description": _truncate(company.description or "", 150) or "Not available",
        "📄 Source Text": f"{len(company.raw_source):,} chars" if company.raw_source else "0 chars",
        "👥 Leaders": str(len(profile.leaders)),
        "⛏️ Assets": str(len(profile.assets)),
        "📅 Updated": _timestamp(company.updated_at),
    }
    return create_key_value_table(
        title=f"🏢 {company.name}",
        data=data,
        title_style="bold yellow",
        key_style="bold blue",
        value_style="white",
    )


def create_leaders_table(leaders: list[Any], title: str = "👥 Leadership") -> Table:
    rows = [
        [
            leader.name,
            leader.title or "-",
            ", ".join(leader.expertise_tags) or "-",
            _truncate("; ".join(leader.summary_bullets), 120) or "-",
        ]
        for leader in leaders
    ]
    return create_multi_column_table(
        title=title,
        columns=[("Name", "bold white"), ("Title", "cyan"), ("Expertise", "magenta"), ("Highlights", "dim white")],
        rows=rows,
    )


def create_assets_table(assets: list[Any], title: str = "⛏️ Assets") -> Table:
    rows = []
    for asset in assets:
        location = ", ".join(part for part in (asset.town, asset.state_province, asset.country) if part)
        coordinates = (
            f"{asset.latitude:.4f}, {asset.longitude:.4f}"
            if asset.latitude is not None and asset.longitude is not None
            else "-"
        )
        rows.append(
            [
                asset.name,
                ", ".join(asset.commodities) or "-",
                str(asset.status),
                location or "-",
                coordinates,
            ]
        )
    return create_multi_column_table(
        title=title,
        columns=[
            ("Name", "bold white"),
            ("Commodities", "yellow"),
            ("Status", "green"),
            ("Location", "cyan"),
            ("Coordinates", "dim white"),
        ],
        rows=rows,
    )


def create_debug_table(report: Any) -> Table:
    """Create a summary of a debug pipeline run.

    Args:
        report: DebugReport with search, crawl, and model artifacts

    Returns:
        Key-value table covering each category
    """
    data = {"🏢 Company": report.company_name}
    if report.search_error:
        data["⚠️ Search Error"] = report.search_error

    for category in ("leadership", "assets"):
        label = category.title()
        found = report.search_urls.get(category, [])
        ranked = report.search_urls_reordered.get(category, [])
        crawl = report.crawl[category]
        llm = report.llm[category]

        data[f"🔎 {label} URLs"] = "\n".join(ranked or found) or "None"
        data[f"🕷️ {label} Crawl"] = f"{crawl.length:,} chars from {crawl.first_url or 'no usable page'}"
        if llm.error:
            data[f"🤖 {label} Extraction"] = f"[red]{llm.error}[/red]"
        elif llm.raw is None:
            data[f"🤖 {label} Extraction"] = "[dim]Skipped[/dim]"
        else:
            data[f"🤖 {label} Extraction"] = f"{len(llm.parsed)} records from {len(llm.raw):,} chars"

    return create_key_value_table(
        title="🐞 Debug Pipeline",
        data=data,
        title_style="bold magenta",
        key_style="cyan",
        value_style="white",
    )


def create_logging_status_table(status: dict[str, Any]) -> Table:
    """Create a logging configuration status table.

    Args:
        status: Logging status dictionary

    Returns:
        Styled logging configuration table
    """
    logging_data = {
        "🔧 Mode": status["mode"].title(),
        "📁 Log Directory": status["log_directory"] or "N/A (production mode)",
        "🔇 Suppressed Libraries": ", ".join(status["third_party_suppressed"]),
    }

    if status["log_files"]["main"]:
        logging_data["📝 Main Log"] = status["log_files"]["main"]
    if status["log_files"]["json"]:
        logging_data["📊 JSON Log"] = status["log_files"]["json"]
    if status["log_files"]["errors"]:
        logging_data["🚨 Error Log"] = status["log_files"]["errors"]

    return create_key_value_table(
        title="🔍 Logging Configuration",
        data=logging_data,
        title_style="bold green",
        key_style="blue",
        value_style="white",
    )


def print_rich_table(console: Console, table: Table) -> None:
    """Print a rich table with consistent spacing.

    Args:
        console: Rich console instance
        table: Configured table to print
    """
    console.print()
    console.print(table)
    console.print()
