# ABOUTME: Business logic and orchestration layer
# ABOUTME: Pipeline Stage 3: Search results and crawled text → Stored company intelligence

"""
Core Layer: Business logic and workflow orchestration

This layer handles:
- Domain models for extracted leaders and assets
- URL ranking ahead of crawling
- Per-company pipeline processing and its debug variant
- Run coordination under bounded concurrency

Data Flow: extraction/ providers → Processing → persistence/ storage
"""

from .models import (
    AssetRecord,
    AssetStatus,
    CompanyOutcome,
    DebugReport,
    LeaderRecord,
    PipelineStep,
    RunStatus,
    StepStatus,
)

# Import processor and coordinator on-demand to avoid circular imports
# Use: from mining_intel.core.coordinator import PipelineCoordinator

__all__ = [
    "AssetRecord",
    "AssetStatus",
    "CompanyOutcome",
    "DebugReport",
    "LeaderRecord",
    "PipelineStep",
    "RunStatus",
    "StepStatus",
]
