# ABOUTME: Logging configuration, progress tracking, and output formatting
# ABOUTME: Provides rich console output and structured logging for the pipeline

from .config import LoggingMode, configure_logging, get_logging_status
from .progress import ProgressReporter, RunDashboard
from .utils import get_logger, log_api_call, with_company_context, with_pipeline_context

__all__ = [
    # Configuration
    "LoggingMode",
    "configure_logging",
    "get_logging_status",
    # Progress Reporting
    "ProgressReporter",
    "RunDashboard",
    # Utilities
    "get_logger",
    "log_api_call",
    "with_company_context",
    "with_pipeline_context",
]
