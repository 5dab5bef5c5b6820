# ABOUTME: Database operations and data persistence layer
# ABOUTME: Pipeline Stage 4: Extracted records and run progress → Database storage

"""
Persistence Layer: Save and retrieve pipeline state and company intelligence

This layer handles:
- SQLModel tables for runs, per-company status, companies, leaders, and assets
- Upserts keyed on normalized company names
- Read models for run progress and company profiles
- Database connection and transaction management

Data Flow: core/ processor outcomes → Database → CLI views
"""

from .manager import CompanyProfile, CompanySummary, DatabaseManager, RunSnapshot, normalize_company_name
from .models import Asset, Company, Leader, PipelineCompanyStatus, PipelineRun

__all__ = [
    "DatabaseManager",
    "RunSnapshot",
    "CompanySummary",
    "CompanyProfile",
    "normalize_company_name",
    "Asset",
    "Company",
    "Leader",
    "PipelineCompanyStatus",
    "PipelineRun",
]
