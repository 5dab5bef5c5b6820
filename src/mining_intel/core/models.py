# ABOUTME: Core data models for the company intelligence pipeline
# ABOUTME: Extracted leader/asset records with normalization, pipeline enums, and per-company outcomes

import math
import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from mining_intel.utils.logging import get_logger

logger = get_logger(__name__)

R = TypeVar("R", bound=BaseModel)

_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


class PipelineStep(StrEnum):
    """Steps a company moves through, in order."""

    PENDING = "pending"
    SEARCHING = "searching"
    CRAWLING_LEADERSHIP = "crawling_leadership"
    CRAWLING_ASSETS = "crawling_assets"
    EXTRACTING_LEADERSHIP = "extracting_leadership"
    EXTRACTING_ASSETS = "extracting_assets"
    STORING = "storing"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def order(self) -> int:
        return list(PipelineStep).index(self)


class StepStatus(StrEnum):
    """Per-company processing status."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETE = "complete"
    FAILED = "failed"


class RunStatus(StrEnum):
    """Aggregate status of a pipeline run."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not RunStatus.PROCESSING


class AssetStatus(StrEnum):
    """Closed set of operating states for a mining asset."""

    OPERATING = "operating"
    DEVELOPING = "developing"
    EXPLORATION = "exploration"
    CLOSED = "closed"
    CARE_AND_MAINTENANCE = "care_and_maintenance"
    UNKNOWN = "unknown"


def normalize_asset_status(value: Any) -> AssetStatus:
    """Map free-text status from the model onto AssetStatus.

    Exact matches (after lowercasing and joining words with underscores) are kept;
    otherwise the first matching keyword stem wins, and anything else is unknown.
    """
    if not isinstance(value, str) or not value.strip():
        return AssetStatus.UNKNOWN

    lowered = re.sub(r"\s+", "_", value.strip().lower())
    try:
        return AssetStatus(lowered)
    except ValueError:
        pass

    if "operat" in lowered:
        return AssetStatus.OPERATING
    if "develop" in lowered or "construct" in lowered:
        return AssetStatus.DEVELOPING
    if "explor" in lowered:
        return AssetStatus.EXPLORATION
    if "clos" in lowered or "shut" in lowered:
        return AssetStatus.CLOSED
    if "care" in lowered or "maintenance" in lowered:
        return AssetStatus.CARE_AND_MAINTENANCE
    return AssetStatus.UNKNOWN


def parse_coordinate(value: Any, minimum: float, maximum: float) -> float | None:
    """Parse a coordinate leniently, returning None when absent, non-numeric, or out of range."""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value.strip())
        if not match:
            return None
        number = float(match.group(0))
    else:
        return None

    if not math.isfinite(number) or number < minimum or number > maximum:
        return None
    return number


def _string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list | tuple):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class LeaderRecord(BaseModel):
    """An executive or board member extracted from leadership pages."""

    name: str = Field(min_length=1, description="Full name")
    title: str | None = Field(default=None, description="Role at the company, e.g. 'Chief Executive Officer'")
    expertise_tags: list[str] = Field(default_factory=list, description="One to four expertise areas")
    summary_bullets: list[str] = Field(default_factory=list, description="Short career highlights")

    @field_validator("name", mode="before")
    @classmethod
    def _clean_name(cls, value: Any) -> Any:
        return str(value).strip() if value is not None else value

    @field_validator("title", mode="before")
    @classmethod
    def _clean_title(cls, value: Any) -> str | None:
        return _optional_text(value)

    @field_validator("expertise_tags", "summary_bullets", mode="before")
    @classmethod
    def _clean_lists(cls, value: Any) -> list[str]:
        return _string_list(value)


class AssetRecord(BaseModel):
    """A mine, project, or operation extracted from asset pages."""

    name: str = Field(min_length=1, description="Name of the mine or project")
    commodities: list[str] = Field(default_factory=list, description="Commodities produced, e.g. ['copper', 'gold']")
    status: AssetStatus = Field(default=AssetStatus.UNKNOWN, description="Operating state")
    country: str | None = Field(default=None, description="Country of the asset")
    state_province: str | None = Field(default=None, description="State or province, if known")
    town: str | None = Field(default=None, description="Nearest town or locality, if known")
    latitude: float | None = Field(default=None, ge=-90, le=90, description="Decimal latitude")
    longitude: float | None = Field(default=None, ge=-180, le=180, description="Decimal longitude")

    @field_validator("name", mode="before")
    @classmethod
    def _clean_name(cls, value: Any) -> Any:
        return str(value).strip() if value is not None else value

    @field_validator("commodities", mode="before")
    @classmethod
    def _clean_commodities(cls, value: Any) -> list[str]:
        return _string_list(value)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> AssetStatus:
        return normalize_asset_status(value)

    @field_validator("country", "state_province", "town", mode="before")
    @classmethod
    def _clean_location(cls, value: Any) -> str | None:
        return _optional_text(value)

    @field_validator("latitude", mode="before")
    @classmethod
    def _bound_latitude(cls, value: Any) -> float | None:
        return parse_coordinate(value, -90, 90)

    @field_validator("longitude", mode="before")
    @classmethod
    def _bound_longitude(cls, value: Any) -> float | None:
        return parse_coordinate(value, -180, 180)


def validate_records(items: list[dict[str, Any]], record_type: type[R]) -> list[R]:
    """Validate raw parsed items, dropping the ones that cannot form a record."""
    records: list[R] = []
    for index, item in enumerate(items):
        try:
            records.append(record_type.model_validate(item))
        except ValidationError as e:
            logger.warning(
                "Dropping invalid extracted record",
                record_type=record_type.__name__,
                item_index=index,
                errors=e.error_count(),
            )
    return records


@dataclass
class ExtractionPayload(Generic[R]):
    """Parsed records together with the raw model response they came from."""

    parsed: list[R] = field(default_factory=list)
    raw: str = ""


class CompanyOutcome(BaseModel):
    """Terminal result of processing one company in a run."""

    company_name: str
    success: bool
    step: PipelineStep
    error_message: str | None = None
    company_id: int | None = None
    leaders: list[LeaderRecord] = Field(default_factory=list)
    assets: list[AssetRecord] = Field(default_factory=list)


class CrawlDebug(BaseModel):
    """Merged crawl size and source for one category."""

    length: int = 0
    first_url: str | None = None


class ExtractionDebug(BaseModel):
    """Raw and parsed model output for one category."""

    raw: str | None = None
    parsed: list[dict[str, Any]] = Field(default_factory=list)
    error: str | None = None


class DebugReport(BaseModel):
    """Every intermediate artifact of a single-company dry run."""

    company_name: str
    search_urls: dict[str, list[str]] = Field(default_factory=lambda: {"leadership": [], "assets": []})
    search_urls_reordered: dict[str, list[str]] = Field(default_factory=lambda: {"leadership": [], "assets": []})
    crawl: dict[str, CrawlDebug] = Field(default_factory=lambda: {"leadership": CrawlDebug(), "assets": CrawlDebug()})
    llm: dict[str, ExtractionDebug] = Field(
        default_factory=lambda: {"leadership": ExtractionDebug(), "assets": ExtractionDebug()}
    )
    search_error: str | None = None
