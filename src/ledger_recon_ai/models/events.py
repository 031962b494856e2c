"""Stream events, run state and export outcomes for the reconciliation pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from .ledger import ReconciliationResult
from ..utils.exceptions import RunSealedError


@dataclass(frozen=True)
class ProgressEvent:
    """A narration update surfaced while analysis is ongoing."""

    progress: str

    def to_wire(self) -> dict[str, Any]:
        return {"progress": self.progress}


@dataclass(frozen=True)
class ResultEvent:
    """Terminal event carrying the validated reconciliation result."""

    result: ReconciliationResult

    def to_wire(self) -> dict[str, Any]:
        return {"result": self.result.to_wire()}


StreamEvent = Union[ProgressEvent, ResultEvent]


class RunOutcome(Enum):
    """How a reconciliation run ended."""

    PENDING = "pending"
    RESULT = "result"
    NO_RESULT = "no_result"
    FAILED = "failed"


@dataclass
class ReconciliationRun:
    """
    Aggregate root for one reconciliation invocation.

    Holds the ordered progress messages and at most one result. Once sealed
    the run no longer accepts changes.
    """

    party_a_label: str = "Party A"
    party_b_label: str = "Party B"
    progress: list[str] = field(default_factory=list)
    result: Optional[ReconciliationResult] = None
    candidates_seen: int = 0
    error: Optional[BaseException] = None
    completed: bool = False
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    def record_progress(self, message: str) -> None:
        self._ensure_open()
        self.progress.append(message)

    def capture(self, result: ReconciliationResult, replace: bool = True) -> bool:
        """
        Buffer a validated result candidate.

        Args:
            result: Validated candidate
            replace: Overwrite an already captured candidate

        Returns:
            True if the candidate is now the buffered one
        """
        self._ensure_open()
        self.candidates_seen += 1
        if self.result is not None and not replace:
            return False
        self.result = result
        return True

    def seal(self, error: Optional[BaseException] = None) -> None:
        if self.completed:
            return
        if error is not None:
            # No partial result survives a failed generation
            self.error = error
            self.result = None
        self.completed = True
        self.finished_at = datetime.now()

    @property
    def outcome(self) -> RunOutcome:
        if not self.completed:
            return RunOutcome.PENDING
        if self.error is not None:
            return RunOutcome.FAILED
        if self.result is None:
            return RunOutcome.NO_RESULT
        return RunOutcome.RESULT

    @property
    def processing_time_seconds(self) -> float:
        end = self.finished_at or datetime.now()
        return (end - self.started_at).total_seconds()

    def _ensure_open(self) -> None:
        if self.completed:
            raise RunSealedError("Reconciliation run is already sealed")


@dataclass(frozen=True)
class ExportOutcome:
    """Result of one spreadsheet export call."""

    success: bool
    sheet_url: Optional[str] = None
    message: Optional[str] = None
    error_kind: Optional[str] = None

    @classmethod
    def ok(cls, sheet_url: str) -> "ExportOutcome":
        return cls(success=True, sheet_url=sheet_url)

    @classmethod
    def failed(cls, message: str, error_kind: str) -> "ExportOutcome":
        return cls(success=False, message=message, error_kind=error_kind)

    def to_wire(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "sheetUrl": self.sheet_url}
        return {"success": False, "message": self.message}
