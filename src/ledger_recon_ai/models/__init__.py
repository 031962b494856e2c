"""Data models for ledger reconciliation."""

from .ledger import (
    LedgerDocument,
    Transaction,
    ReconciliationResult,
)
from .events import (
    ProgressEvent,
    ResultEvent,
    StreamEvent,
    RunOutcome,
    ReconciliationRun,
    ExportOutcome,
)
from .rates import RateRecord, final_rate

__all__ = [
    "LedgerDocument",
    "Transaction",
    "ReconciliationResult",
    "ProgressEvent",
    "ResultEvent",
    "StreamEvent",
    "RunOutcome",
    "ReconciliationRun",
    "ExportOutcome",
    "RateRecord",
    "final_rate",
]
