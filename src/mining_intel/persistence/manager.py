# ABOUTME: Database manager for pipeline runs, per-company status, and extracted company data
# ABOUTME: Implements the storage operations the pipeline drives plus read models for the CLI

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from mining_intel.core.models import AssetRecord, LeaderRecord, PipelineStep, RunStatus, StepStatus
from mining_intel.persistence.models import Asset, Company, Leader, PipelineCompanyStatus, PipelineRun, utcnow
from mining_intel.utils.logging import get_logger


def normalize_company_name(name: str) -> str:
    """Key used to recognise the same company across runs."""
    return re.sub(r"\s+", " ", name.strip()).casefold()


def _present(value: str | None) -> str | None:
    if value is None:
        return None
    return value if value.strip() else None


@dataclass(slots=True)
class RunSnapshot:
    """A run together with its per-company status rows in submission order."""

    run: PipelineRun
    companies: list[PipelineCompanyStatus] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return sum(1 for row in self.companies if row.status == StepStatus.FAILED)

    @property
    def completed_count(self) -> int:
        return sum(1 for row in self.companies if row.status == StepStatus.COMPLETE)

    @property
    def is_terminal(self) -> bool:
        return RunStatus(self.run.status).is_terminal

    def model_dump(self) -> dict:
        """Plain dict representation for JSON output."""

        return {
            "run": self.run.model_dump(mode="json"),
            "companies": [row.model_dump(mode="json") for row in self.companies],
        }


@dataclass(slots=True)
class CompanySummary:
    """Company row with child record counts."""

    company: Company
    leader_count: int = 0
    asset_count: int = 0

    def model_dump(self) -> dict:
        return {
            **self.company.model_dump(mode="json", exclude={"raw_source"}),
            "leader_count": self.leader_count,
            "asset_count": self.asset_count,
        }


@dataclass(slots=True)
class CompanyProfile:
    """Company with its leaders and assets ordered by name."""

    company: Company
    leaders: list[Leader] = field(default_factory=list)
    assets: list[Asset] = field(default_factory=list)

    def model_dump(self) -> dict:
        return {
            "company": self.company.model_dump(mode="json", exclude={"raw_source"}),
            "leaders": [leader.model_dump(mode="json") for leader in self.leaders],
            "assets": [asset.model_dump(mode="json") for asset in self.assets],
        }


class DatabaseManager:
    """Manages async database operations for pipeline runs and company data."""

    def __init__(self, database_url: str = "sqlite+aiosqlite:///./mining_intel.db", **engine_kwargs):
        self.database_url = database_url
        self.logger = get_logger(__name__)
        self.engine = create_async_engine(database_url, echo=False, **engine_kwargs)
        self.async_session = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    # --- Runs ------------------------------------------------------------------------
    async def create_run(self, input_string: str, company_names: Sequence[str]) -> PipelineRun:
        """Insert a processing run and a pending status row per company."""
        async with self.async_session() as session:
            run = PipelineRun(
                input_string=input_string,
                company_names=list(company_names),
                total_companies=len(company_names),
                status=RunStatus.PROCESSING.value,
            )
            session.add(run)
            await session.flush()

            for name in company_names:
                session.add(
                    PipelineCompanyStatus(
                        run_id=run.id,
                        company_name=name,
                        step=PipelineStep.PENDING.value,
                        status=StepStatus.PENDING.value,
                    )
                )
            await session.commit()
            await session.refresh(run)

        self.logger.info("Created pipeline run", run_id=run.id, companies=len(company_names))
        return run

    async def update_run_status(
        self, run_id: int, status: RunStatus, error_summary: str | None = None
    ) -> PipelineRun | None:
        """Move a run to a new status; runs already in a terminal status are left unchanged."""
        async with self.async_session() as session:
            run = await session.get(PipelineRun, run_id)
            if run is None:
                self.logger.warning("Run not found for status update", run_id=run_id)
                return None

            if RunStatus(run.status).is_terminal:
                self.logger.warning(
                    "Ignoring status update for finished run",
                    run_id=run_id,
                    current=run.status,
                    requested=str(status),
                )
                return run

            run.status = RunStatus(status).value
            run.error_log = error_summary
            if run.status != RunStatus.PROCESSING:
                run.completed_at = utcnow()
            session.add(run)
            await session.commit()
            await session.refresh(run)
            return run

    async def update_company_status(
        self,
        run_id: int,
        company_name: str,
        step: PipelineStep,
        status: StepStatus,
        error_message: str | None = None,
        company_id: int | None = None,
    ) -> None:
        """Record a company's current step and status within a run.

        Steps never move backwards; a request for an earlier step keeps the stored one.
        """
        async with self.async_session() as session:
            result = await session.exec(
                select(PipelineCompanyStatus).where(
                    PipelineCompanyStatus.run_id == run_id,
                    PipelineCompanyStatus.company_name == company_name,
                )
            )
            rows = list(result.scalars().all())
            if not rows:
                self.logger.warning("Company status row not found", run_id=run_id, company=company_name)
                return

            requested = PipelineStep(step)
            for row in rows:
                current = PipelineStep(row.step)
                if requested.order < current.order:
                    self.logger.warning(
                        "Refusing to move company step backwards",
                        run_id=run_id,
                        company=company_name,
                        current=current.value,
                        requested=requested.value,
                    )
                else:
                    row.step = requested.value
                row.status = StepStatus(status).value
                row.error_message = error_message
                if company_id is not None:
                    row.company_id = company_id
                row.updated_at = utcnow()
                session.add(row)
            await session.commit()

    async def get_run(self, run_id: int) -> RunSnapshot | None:
        async with self.async_session() as session:
            run = await session.get(PipelineRun, run_id)
            if run is None:
                return None

            result = await session.exec(
                select(PipelineCompanyStatus)
                .where(PipelineCompanyStatus.run_id == run_id)
                .order_by(PipelineCompanyStatus.created_at.asc(), PipelineCompanyStatus.id.asc())
            )
            return RunSnapshot(run=run, companies=list(result.scalars().all()))

    # --- Companies -------------------------------------------------------------------
    async def upsert_company(
        self,
        name: str,
        website_url: str | None = None,
        description: str | None = None,
        raw_source: str | None = None,
    ) -> Company:
        """Create or merge a company keyed on its normalized name.

        Non-empty values replace stored ones; empty or missing values keep what is stored.
        """
        normalized = normalize_company_name(name)
        website_url, description, raw_source = _present(website_url), _present(description), _present(raw_source)

        for attempt in range(2):
            async with self.async_session() as session:
                result = await session.exec(select(Company).where(Company.name_normalized == normalized))
                company = result.scalars().first()
                if company:
                    company.name = name.strip()
                    company.website_url = website_url or company.website_url
                    company.description = description or company.description
                    company.raw_source = raw_source or company.raw_source
                    company.updated_at = utcnow()
                else:
                    company = Company(
                        name=name.strip(),
                        name_normalized=normalized,
                        website_url=website_url,
                        description=description,
                        raw_source=raw_source,
                    )
                session.add(company)
                try:
                    await session.commit()
                except IntegrityError:
                    # Another task inserted the same company between our select and insert
                    await session.rollback()
                    if attempt:
                        raise
                    continue
                await session.refresh(company)
                self.logger.debug("Upserted company", company_id=company.id, name=company.name)
                return company

        raise RuntimeError(f"Could not upsert company {name!r}")

    async def replace_leaders(
        self, company_id: int, leaders: Sequence[LeaderRecord], source_url: str | None = None
    ) -> list[Leader]:
        """Swap a company's leaders for this extraction's; an empty list keeps the stored ones."""
        if not leaders:
            return []

        async with self.async_session() as session:
            await session.exec(delete(Leader).where(Leader.company_id == company_id))
            rows = [
                Leader(
                    company_id=company_id,
                    name=leader.name,
                    title=leader.title,
                    expertise_tags=list(leader.expertise_tags),
                    summary_bullets=list(leader.summary_bullets),
                    source_url=source_url,
                )
                for leader in leaders
            ]
            session.add_all(rows)
            await session.commit()

        self.logger.info("Stored leaders", company_id=company_id, count=len(rows))
        return rows

    async def replace_assets(
        self, company_id: int, assets: Sequence[AssetRecord], source_url: str | None = None
    ) -> list[Asset]:
        """Swap a company's assets for this extraction's; an empty list keeps the stored ones."""
        if not assets:
            return []

        async with self.async_session() as session:
            await session.exec(delete(Asset).where(Asset.company_id == company_id))
            rows = [
                Asset(
                    company_id=company_id,
                    name=asset.name,
                    commodities=list(asset.commodities),
                    status=asset.status.value,
                    country=asset.country,
                    state_province=asset.state_province,
                    town=asset.town,
                    latitude=asset.latitude,
                    longitude=asset.longitude,
                    source_url=source_url,
                )
                for asset in assets
            ]
            session.add_all(rows)
            await session.commit()

        self.logger.info("Stored assets", company_id=company_id, count=len(rows))
        return rows

    async def list_companies(self) -> list[CompanySummary]:
        """All companies, newest first, with leader and asset counts."""
        leader_counts = (
            select(Leader.company_id, func.count(Leader.id).label("n")).group_by(Leader.company_id).subquery()
        )
        asset_counts = select(Asset.company_id, func.count(Asset.id).label("n")).group_by(Asset.company_id).subquery()

        async with self.async_session() as session:
            result = await session.exec(
                select(
                    Company,
                    func.coalesce(leader_counts.c.n, 0),
                    func.coalesce(asset_counts.c.n, 0),
                )
                .outerjoin(leader_counts, leader_counts.c.company_id == Company.id)
                .outerjoin(asset_counts, asset_counts.c.company_id == Company.id)
                .order_by(Company.created_at.desc(), Company.id.desc())
            )
            return [
                CompanySummary(company=company, leader_count=leaders, asset_count=assets)
                for company, leaders, assets in result.all()
            ]

    async def get_company(self, company_id: int) -> CompanyProfile | None:
        async with self.async_session() as session:
            company = await session.get(Company, company_id)
            if company is None:
                return None

            leaders = await session.exec(
                select(Leader).where(Leader.company_id == company_id).order_by(Leader.name.asc())
            )
            assets = await session.exec(select(Asset).where(Asset.company_id == company_id).order_by(Asset.name.asc()))
            return CompanyProfile(
                company=company,
                leaders=list(leaders.scalars().all()),
                assets=list(assets.scalars().all()),
            )

    # --- Maintenance -----------------------------------------------------------------
    async def clear(self) -> None:
        async with self.async_session() as session:
            await session.exec(delete(PipelineCompanyStatus))
            await session.exec(delete(PipelineRun))
            await session.exec(delete(Leader))
            await session.exec(delete(Asset))
            await session.exec(delete(Company))
            await session.commit()

    async def close(self) -> None:
        await self.engine.dispose()
