"""Utility modules."""

from .exceptions import (
    ReconciliationError,
    ConfigurationError,
    LedgerLoadError,
    RateHistoryParseError,
    UpstreamGenerationError,
    NoResultCapturedError,
    RunSealedError,
    ExportError,
    ExportAuthError,
    ExportServiceError,
    InsightError,
    ReportGenerationError,
)
from .logging_config import setup_logging

__all__ = [
    "ReconciliationError",
    "ConfigurationError",
    "LedgerLoadError",
    "RateHistoryParseError",
    "UpstreamGenerationError",
    "NoResultCapturedError",
    "RunSealedError",
    "ExportError",
    "ExportAuthError",
    "ExportServiceError",
    "InsightError",
    "ReportGenerationError",
    "setup_logging",
]
