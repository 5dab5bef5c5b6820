# ABOUTME: Main CLI application entry point using asyncclick for native async support
# ABOUTME: Provides commands to ingest companies, debug one company, and browse stored runs and profiles

import json as jsonlib
from dataclasses import dataclass

import asyncclick as click
from rich.console import Console
from rich.panel import Panel

from mining_intel.config import Config, get_config
from mining_intel.core.coordinator import PipelineCoordinator, PipelineSupervisor, parse_company_names
from mining_intel.core.processor import CompanyProcessor
from mining_intel.extraction.factory import ConfigurationError, ProviderSet, build_providers
from mining_intel.persistence import DatabaseManager
from mining_intel.utils.logging import (
    LoggingMode,
    ProgressReporter,
    configure_logging,
    get_logging_status,
    with_pipeline_context,
)
from mining_intel.utils.retry import RateLimitRetryPolicy, RequestRateLimiter
from mining_intel.utils.rich_tables import (
    create_assets_table,
    create_companies_table,
    create_company_table,
    create_debug_table,
    create_leaders_table,
    create_logging_status_table,
    create_run_companies_table,
    create_run_summary_table,
    print_rich_table,
)

console = Console()


@dataclass
class PipelineServices:
    """Everything one CLI invocation needs to run the pipeline."""

    database: DatabaseManager
    providers: ProviderSet
    processor: CompanyProcessor
    coordinator: PipelineCoordinator
    supervisor: PipelineSupervisor

    async def close(self) -> None:
        await self.supervisor.shutdown()
        await self.providers.close()
        await self.database.close()


async def _open_database(config: Config) -> DatabaseManager:
    database = DatabaseManager(config.database_url)
    await database.create_tables()
    return database


async def _open_services(config: Config) -> PipelineServices:
    """Wire providers, limiter, and storage once for this process."""
    try:
        providers = build_providers(config)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    database = await _open_database(config)
    processor = CompanyProcessor(
        database=database,
        providers=providers,
        limiter=RequestRateLimiter(config.llm_requests_per_minute),
        retry_policy=RateLimitRetryPolicy(config.max_retries, config.retry_on_429),
        config=config,
    )
    coordinator = PipelineCoordinator(database, processor, config.concurrent_companies)
    return PipelineServices(
        database=database,
        providers=providers,
        processor=processor,
        coordinator=coordinator,
        supervisor=PipelineSupervisor(coordinator),
    )


def _print_json(data) -> None:
    click.echo(jsonlib.dumps(data, indent=2, default=str))


def _display_run(snapshot) -> None:
    print_rich_table(console, create_run_summary_table(snapshot))
    print_rich_table(console, create_run_companies_table(snapshot))


@click.command()
@click.argument("companies")
@click.pass_context
async def ingest(ctx, companies: str):
    """
    ⛏️ Run the pipeline for a comma-separated list of companies.

    Each company is searched, crawled, and analyzed for leadership and assets,
    then stored. Example: mining-intel ingest "BHP, Rio Tinto, Freeport-McMoRan"
    """
    json_output = ctx.obj["json_output"]
    names = parse_company_names(companies)
    if not names:
        raise click.UsageError("Provide at least one company name, separated by commas")

    config = get_config()
    services = await _open_services(config)

    with with_pipeline_context("ingest", companies=len(names)) as logger:
        try:
            run_id, names = await services.coordinator.submit(companies)
            logger.info("Run submitted", run_id=run_id)

            if json_output:
                services.supervisor.start(run_id, names)
                await services.supervisor.wait(run_id)
            else:
                console.print(
                    Panel.fit(
                        f"⛏️ [bold cyan]Mining Intel[/bold cyan]\nRun {run_id}: {', '.join(names)}",
                        border_style="magenta",
                    )
                )
                services.supervisor.start(run_id, names)
                reporter = ProgressReporter(console=console)
                await reporter.run_with_run_dashboard(
                    operation=services.supervisor.wait(run_id),
                    poll=lambda: services.database.get_run(run_id),
                    run_id=run_id,
                    company_names=names,
                )

            snapshot = await services.database.get_run(run_id)
            if json_output:
                _print_json(snapshot.model_dump())
            else:
                _display_run(snapshot)
        finally:
            await services.close()


@click.command()
@click.argument("company")
@click.option("--raw", is_flag=True, help="Show the raw model responses")
@click.pass_context
async def debug(ctx, company: str, raw: bool):
    """
    🐞 Run the pipeline for one company without storing anything.

    Prints search results, ranked URLs, crawl sizes, and model output per category.
    """
    json_output = ctx.obj["json_output"]
    services = await _open_services(get_config())

    try:
        if json_output:
            report = await services.processor.debug(company)
            _print_json(report.model_dump(mode="json"))
            return

        reporter = ProgressReporter(console=console)
        report = await reporter.run_with_status(
            operation=lambda: services.processor.debug(company),
            message=f"🐞 Debugging {company}",
            success_message="✅ Debug run finished",
        )

        print_rich_table(console, create_debug_table(report))
        for category in ("leadership", "assets"):
            llm = report.llm[category]
            if raw and llm.raw:
                console.print(Panel(llm.raw[:4000], title=f"🤖 Raw {category} response", border_style="blue"))
            if llm.parsed:
                console.print_json(data=llm.parsed)
    finally:
        await services.close()


@click.command(name="run-status")
@click.argument("run_id", type=int)
@click.pass_context
async def run_status(ctx, run_id: int):
    """
    📊 Show the status of a pipeline run and each of its companies.
    """
    database = await _open_database(get_config())
    try:
        snapshot = await database.get_run(run_id)
    finally:
        await database.close()

    if snapshot is None:
        raise click.ClickException(f"Run {run_id} not found")

    if ctx.obj["json_output"]:
        _print_json(snapshot.model_dump())
    else:
        _display_run(snapshot)


@click.command(name="companies")
@click.pass_context
async def list_companies(ctx):
    """
    🏢 List stored companies with leader and asset counts.
    """
    database = await _open_database(get_config())
    try:
        summaries = await database.list_companies()
    finally:
        await database.close()

    if ctx.obj["json_output"]:
        _print_json([summary.model_dump() for summary in summaries])
        return

    if not summaries:
        console.print("[yellow]No companies stored yet. Run 'mining-intel ingest' first.[/yellow]")
        return
    print_rich_table(console, create_companies_table(summaries))


@click.command(name="company")
@click.argument("company_id", type=int)
@click.pass_context
async def show_company(ctx, company_id: int):
    """
    👥 Show a stored company with its leadership and assets.
    """
    database = await _open_database(get_config())
    try:
        profile = await database.get_company(company_id)
    finally:
        await database.close()

    if profile is None:
        raise click.ClickException(f"Company {company_id} not found")

    if ctx.obj["json_output"]:
        _print_json(profile.model_dump())
        return

    print_rich_table(console, create_company_table(profile))
    if profile.leaders:
        print_rich_table(console, create_leaders_table(profile.leaders))
    if profile.assets:
        print_rich_table(console, create_assets_table(profile.assets))


def _initialize_logging(json_output: bool, log_level: str | None = None, log_file: str | None = None) -> None:
    """Initialize logging configuration."""
    try:
        config = get_config()
        mode = LoggingMode.PRODUCTION if json_output else LoggingMode.INTERACTIVE

        # Use config defaults when CLI parameters are not provided
        final_log_level = log_level or config.log_level
        final_log_file = log_file or (str(config.log_file) if config.log_file else None)

        configure_logging(mode=mode, log_level=final_log_level, log_file=final_log_file)
    except (FileNotFoundError, PermissionError, OSError):
        # Log directory may be unwritable; fall back to stdout logging
        final_log_level = log_level or "INFO"
        configure_logging(mode=LoggingMode.PRODUCTION, log_level=final_log_level, log_file=log_file)


@click.command(name="logging-status")
def logging_status():
    """
    📊 Show current logging configuration and status.
    """
    status = get_logging_status()
    logging_table = create_logging_status_table(status)
    print_rich_table(console, logging_table)


@click.group(invoke_without_command=True)
@click.option("--json", is_flag=True, help="Output JSON instead of the rich interface")
@click.option("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--log-file", help="Custom log file path")
@click.pass_context
def app(ctx, json: bool, log_level: str | None, log_file: str | None):
    """
    ⛏️ Mining Intel - Company Intelligence for Mining Companies

    Search the web for mining companies, crawl their leadership and operations
    pages, and extract executives and mine assets with a language model.
    """
    ctx.ensure_object(dict)
    ctx.obj["json_output"] = json

    # Initialize logging once here instead of in each command
    _initialize_logging(json, log_level, log_file)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


app.add_command(ingest)
app.add_command(debug)
app.add_command(run_status)
app.add_command(list_companies)
app.add_command(show_company)
app.add_command(logging_status)


if __name__ == "__main__":
    app()
