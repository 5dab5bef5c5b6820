# ABOUTME: Persistence models for pipeline runs and extracted company intelligence
# ABOUTME: Captures run/company status tracking plus companies with their leaders and assets

from __future__ import annotations

from datetime import UTC, datetime

from sqlmodel import JSON, Column, Field, SQLModel


def utcnow() -> datetime:
    """Returns the current UTC timestamp."""

    return datetime.now(UTC)


class PipelineRun(SQLModel, table=True):
    """One ingestion request covering one or more companies."""

    __tablename__ = "pipeline_run"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    input_string: str = Field(description="Raw comma-separated input as submitted")
    company_names: list[str] = Field(default_factory=list, sa_column=Column(JSON), description="Parsed company names")
    total_companies: int = Field(default=0, description="Number of companies in the run")
    status: str = Field(default="processing", description="processing, completed, partial, or failed")
    error_log: str | None = Field(default=None, description="Failure summary such as '2/5 companies failed'")
    created_at: datetime = Field(default_factory=utcnow, description="Submission timestamp")
    completed_at: datetime | None = Field(default=None, description="Set once the run reaches a terminal status")


class PipelineCompanyStatus(SQLModel, table=True):
    """Per-company step and status within a run."""

    __tablename__ = "pipeline_company_status"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    run_id: int = Field(foreign_key="pipeline_run.id", index=True)
    company_name: str
    step: str = Field(default="pending")
    status: str = Field(default="pending")
    error_message: str | None = Field(default=None)
    company_id: int | None = Field(default=None, foreign_key="company.id", description="Stored company once created")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Company(SQLModel, table=True):
    """Durable company aggregate, keyed on its normalized name."""

    __tablename__ = "company"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(description="Display name as last submitted")
    name_normalized: str = Field(unique=True, index=True, description="Case-folded, whitespace-collapsed name")
    website_url: str | None = Field(default=None, description="First page that yielded usable content")
    description: str | None = Field(default=None)
    raw_source: str | None = Field(default=None, description="Merged crawl text behind the latest extraction")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Leader(SQLModel, table=True):
    """Executive or board member of a company."""

    __tablename__ = "leader"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    company_id: int = Field(foreign_key="company.id", index=True)
    name: str
    title: str | None = Field(default=None)
    expertise_tags: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    summary_bullets: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    source_url: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)


class Asset(SQLModel, table=True):
    """Mine, project, or operation owned by a company."""

    __tablename__ = "asset"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    company_id: int = Field(foreign_key="company.id", index=True)
    name: str
    commodities: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    status: str = Field(default="unknown")
    country: str | None = Field(default=None)
    state_province: str | None = Field(default=None)
    town: str | None = Field(default=None)
    latitude: float | None = Field(default=None)
    longitude: float | None = Field(default=None)
    source_url: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
