"""
Base class for report exporters.
Turns export failures into ExportOutcome values instead of raising.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
import logging

from pydantic import ValidationError

from ..models.events import ExportOutcome
from ..models.ledger import ReconciliationResult
from ..utils.exceptions import ExportError, ExportServiceError

logger = logging.getLogger(__name__)


class ReportExporter(ABC):
    """
    Writes one reconciliation report per call.

    Calls are not idempotent: exporting the same result twice creates two
    reports. No retry is attempted; the caller decides.
    """

    async def export(
        self, result: Any, access_token: Optional[str] = None
    ) -> ExportOutcome:
        """
        Export a sealed reconciliation result.

        Args:
            result: ReconciliationResult (or its wire dict)
            access_token: Bearer credential for the destination service

        Returns:
            ExportOutcome with the report URL, or the failure message
        """
        try:
            checked = self._check_result(result)
            url = await self._write(checked, access_token)
        except ExportError as e:
            logger.error(f"Export failed ({e.kind}): {e}")
            return ExportOutcome.failed(str(e), e.kind)

        logger.info(f"Report exported: {url}")
        return ExportOutcome.ok(url)

    @abstractmethod
    async def _write(self, result: ReconciliationResult, access_token: Optional[str]) -> str:
        """
        Create the report and return its URL.

        Raises:
            ExportAuthError: If the credential is missing or rejected
            ExportServiceError: If the destination rejects the write
        """
        pass

    def _check_result(self, result: Any) -> ReconciliationResult:
        if isinstance(result, ReconciliationResult):
            return result
        if isinstance(result, dict):
            try:
                return ReconciliationResult.model_validate(result)
            except ValidationError as e:
                raise ExportServiceError(f"Reconciliation result is malformed: {e}") from e
        raise ExportServiceError(
            f"Reconciliation result is malformed: unexpected {type(result).__name__}"
        )
