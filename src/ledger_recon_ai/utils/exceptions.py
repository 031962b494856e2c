"""Custom exceptions for the ledger reconciliation application."""


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class LedgerLoadError(ReconciliationError):
    """Error reading a ledger PDF."""

    pass


class RateHistoryParseError(ReconciliationError):
    """Error parsing a rate history CSV file."""

    pass


class UpstreamGenerationError(ReconciliationError):
    """The hosted model call failed or its stream broke."""

    pass


class NoResultCapturedError(ReconciliationError):
    """The stream ended normally without a valid reconciliation result."""

    pass


class RunSealedError(ReconciliationError):
    """A sealed reconciliation run was mutated."""

    pass


class ExportError(ReconciliationError):
    """Base error for spreadsheet export."""

    kind = "export_error"


class ExportAuthError(ExportError):
    """Access credential missing, expired or rejected."""

    kind = "auth"


class ExportServiceError(ExportError):
    """The spreadsheet service rejected the write."""

    kind = "service"


class InsightError(ReconciliationError):
    """Price estimation or trend summary could not be produced."""

    pass


class ReportGenerationError(ReconciliationError):
    """Error generating Excel report."""

    pass
