# ABOUTME: Rich-based progress reporting with a live per-company run dashboard
# ABOUTME: Polls stored run status while the pipeline task runs and renders it as a table

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, TypeVar

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

T = TypeVar("T")

STEP_LABELS = {
    "pending": "Waiting",
    "searching": "Searching",
    "crawling_leadership": "Crawling leadership",
    "crawling_assets": "Crawling assets",
    "extracting_leadership": "Extracting leadership",
    "extracting_assets": "Extracting assets",
    "storing": "Storing",
    "complete": "Complete",
    "failed": "Failed",
}

STATUS_STYLES = {
    "pending": ("⏳ Pending", "dim"),
    "processing": ("🔄 Running", "yellow"),
    "complete": ("✅ Done", "green"),
    "failed": ("❌ Failed", "red"),
}

RUN_STATUS_STYLES = {
    "processing": "yellow",
    "completed": "green",
    "partial": "dark_orange",
    "failed": "red",
}


class RunDashboard:
    """Live view of one pipeline run built from the latest stored snapshot."""

    def __init__(self, console: Console, run_id: int, company_names: list[str]):
        self.console = console
        self.run_id = run_id
        self.company_names = company_names
        self.started = datetime.now()
        self.snapshot: Any = None

    def update(self, snapshot: Any) -> None:
        self.snapshot = snapshot

    def create_renderable(self) -> Panel:
        """Create the panel shown by the live display."""
        elapsed = datetime.now() - self.started
        elapsed_str = f"{elapsed.seconds // 60:02d}:{elapsed.seconds % 60:02d}"

        run_status = self.snapshot.run.status if self.snapshot else "processing"
        style = RUN_STATUS_STYLES.get(run_status, "white")
        header = Text.from_markup(
            f"⛏️  [bold cyan]Run {self.run_id}[/bold cyan] | {len(self.company_names)} companies | "
            f"[{style}]{run_status}[/{style}] | ⏱️ [yellow]{elapsed_str}[/yellow]"
        )

        return Panel(
            Group(header, Text(""), self._create_company_table()),
            title="⛏️ Mining Intel Pipeline",
            border_style="magenta",
            padding=(1, 2),
        )

    def _create_company_table(self) -> Table:
        table = Table(box=ROUNDED, show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Company", style="bold")
        table.add_column("Step")
        table.add_column("Status", justify="center")
        table.add_column("Details", style="dim")

        rows = self.snapshot.companies if self.snapshot else []
        if not rows:
            for name in self.company_names:
                table.add_row(name, STEP_LABELS["pending"], "[dim]⏳ Pending[/dim]", "")
            return table

        for row in rows:
            status_text, status_style = STATUS_STYLES.get(row.status, (row.status, "white"))
            details = row.error_message or ""
            if row.company_id is not None and not details:
                details = f"company #{row.company_id}"
            table.add_row(
                row.company_name,
                STEP_LABELS.get(row.step, row.step),
                f"[{status_style}]{status_text}[/{status_style}]",
                details,
            )
        return table


class ProgressReporter:
    """Progress reporter for long-running CLI operations."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    async def run_with_run_dashboard(
        self,
        operation: Awaitable[T],
        poll: Callable[[], Awaitable[Any]],
        run_id: int,
        company_names: list[str],
        refresh_rate: float = 0.5,
    ) -> T:
        """Await an operation while a live dashboard polls stored run status.

        Args:
            operation: Awaitable that completes when the run is terminal
            poll: Async callable returning the latest run snapshot
            run_id: Run being displayed
            company_names: Companies in the run, shown before the first poll lands
            refresh_rate: Seconds between polls

        Returns:
            Result from the operation
        """
        dashboard = RunDashboard(console=self.console, run_id=run_id, company_names=company_names)

        with Live(
            dashboard.create_renderable(),
            console=self.console,
            refresh_per_second=max(1.0, 1 / refresh_rate),
            transient=False,
        ) as live:

            async def update_display():
                while True:
                    dashboard.update(await poll())
                    live.update(dashboard.create_renderable())
                    await asyncio.sleep(refresh_rate)

            update_task = asyncio.create_task(update_display())
            try:
                result = await operation
            finally:
                update_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await update_task

            dashboard.update(await poll())
            live.update(dashboard.create_renderable())
            return result

    async def run_with_status(
        self,
        operation: Callable[[], Awaitable[T]],
        message: str,
        success_message: str | None = None,
        spinner: str = "dots",
    ) -> T:
        """Run an async operation with a rich status indicator.

        Args:
            operation: Async operation to run
            message: Status message to display
            success_message: Message to show on success
            spinner: Spinner style

        Returns:
            Result from the operation
        """
        with self.console.status(message, spinner=spinner):
            result = await operation()

        if success_message:
            self.console.print(success_message)

        return result
