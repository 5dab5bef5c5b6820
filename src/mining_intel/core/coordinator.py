# ABOUTME: Run coordination: fans companies out to processors under a concurrency cap and aggregates run status
# ABOUTME: Includes the supervisor that owns background run tasks and records their unexpected failures

import asyncio
from collections.abc import Sequence

from mining_intel.core.models import CompanyOutcome, RunStatus
from mining_intel.core.processor import CompanyProcessor
from mining_intel.persistence.manager import DatabaseManager, normalize_company_name
from mining_intel.utils.logging import get_logger, with_pipeline_context

logger = get_logger(__name__)


def parse_company_names(raw_input: str) -> list[str]:
    """Split comma-separated input into trimmed, non-empty names.

    Repeats of the same name (ignoring case and spacing) are dropped, keeping the first.
    """
    names: list[str] = []
    seen: set[str] = set()
    for part in raw_input.split(","):
        name = part.strip()
        if not name:
            continue
        key = normalize_company_name(name)
        if key in seen:
            continue
        seen.add(key)
        names.append(name)
    return names


def aggregate_run_status(total: int, failed: int) -> tuple[RunStatus, str | None]:
    """Derive the run's terminal status and error summary from its failure count."""
    if total > 0 and failed >= total:
        status = RunStatus.FAILED
    elif failed > 0:
        status = RunStatus.PARTIAL
    else:
        status = RunStatus.COMPLETED
    summary = f"{failed}/{total} companies failed" if failed > 0 else None
    return status, summary


class PipelineCoordinator:
    """Creates runs and drives their companies through a shared CompanyProcessor."""

    def __init__(self, database: DatabaseManager, processor: CompanyProcessor, concurrent_companies: int = 2):
        if concurrent_companies < 1:
            raise ValueError("concurrent_companies must be at least 1")
        self.database = database
        self.processor = processor
        self.concurrent_companies = concurrent_companies

    async def submit(self, raw_input: str) -> tuple[int, list[str]]:
        """Parse input and create its run record.

        Raises:
            ValueError: If the input names no companies
        """
        names = parse_company_names(raw_input)
        if not names:
            raise ValueError("At least one company name is required")
        run = await self.database.create_run(raw_input, names)
        return run.id, names

    async def run_pipeline(self, run_id: int, company_names: Sequence[str]) -> RunStatus:
        """Process every company and store the run's terminal status.

        At most `concurrent_companies` companies are in flight at once; completion
        order may differ from submission order.
        """
        semaphore = asyncio.Semaphore(self.concurrent_companies)

        async def bounded(name: str) -> CompanyOutcome:
            async with semaphore:
                return await self.processor.process(run_id, name)

        with with_pipeline_context("company_intelligence", run_id=run_id) as log:
            log.info("Run started", companies=len(company_names), concurrency=self.concurrent_companies)
            outcomes = await asyncio.gather(*(bounded(name) for name in company_names))

            failed = sum(1 for outcome in outcomes if not outcome.success)
            status, summary = aggregate_run_status(len(outcomes), failed)
            await self.database.update_run_status(run_id, status, summary)

            log.info(
                "Run finished",
                status=status.value,
                completed=len(outcomes) - failed,
                failed=failed,
            )
        return status


class PipelineSupervisor:
    """Owns background run tasks so their failures are observed rather than lost."""

    def __init__(self, coordinator: PipelineCoordinator):
        self.coordinator = coordinator
        self._tasks: dict[int, asyncio.Task[RunStatus]] = {}
        self._followups: set[asyncio.Task[None]] = set()

    def start(self, run_id: int, company_names: Sequence[str]) -> asyncio.Task[RunStatus]:
        """Spawn the run as a task and return it; callers may await it or not."""
        task = asyncio.create_task(
            self.coordinator.run_pipeline(run_id, list(company_names)),
            name=f"pipeline-run-{run_id}",
        )
        self._tasks[run_id] = task
        task.add_done_callback(lambda finished: self._on_done(run_id, finished))
        return task

    async def wait(self, run_id: int) -> RunStatus | None:
        """Wait for a run to finish; a crashed run yields None once its failure is recorded."""
        task = self._tasks.get(run_id)
        if task is None:
            return None
        await asyncio.gather(task, return_exceptions=True)
        await self._drain_followups()
        if task.cancelled() or task.exception() is not None:
            return None
        return task.result()

    @property
    def active_runs(self) -> list[int]:
        return [run_id for run_id, task in self._tasks.items() if not task.done()]

    async def shutdown(self) -> None:
        """Wait for every run still in flight."""
        pending = [task for task in self._tasks.values() if not task.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        await self._drain_followups()

    async def _drain_followups(self) -> None:
        if self._followups:
            await asyncio.gather(*list(self._followups), return_exceptions=True)

    def _on_done(self, run_id: int, task: asyncio.Task[RunStatus]) -> None:
        if task.cancelled():
            logger.warning("Pipeline run task cancelled", run_id=run_id)
            return

        error = task.exception()
        if error is None:
            return

        logger.error("Pipeline run crashed", run_id=run_id, error=str(error), error_type=type(error).__name__)
        followup = asyncio.get_running_loop().create_task(self._mark_failed(run_id, error))
        self._followups.add(followup)
        followup.add_done_callback(self._followups.discard)

    async def _mark_failed(self, run_id: int, error: BaseException) -> None:
        try:
            await self.coordinator.database.update_run_status(run_id, RunStatus.FAILED, f"Run crashed: {error}")
        except Exception as e:
            logger.error("Could not record crashed run", run_id=run_id, error=str(e))
