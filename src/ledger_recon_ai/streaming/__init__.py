"""Streaming reconciliation pipeline: classification, validation and orchestration."""

from .classifier import Progress, ResultCandidate, classify_chunk
from .validator import Invalid, Valid, validate_result
from .orchestrator import ReconciliationPipeline

__all__ = [
    "Progress",
    "ResultCandidate",
    "classify_chunk",
    "Valid",
    "Invalid",
    "validate_result",
    "ReconciliationPipeline",
]
