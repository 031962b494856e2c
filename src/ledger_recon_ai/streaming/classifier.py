"""
Chunk classification for the reconciliation stream.
Decides whether a streamed chunk is narration or the final structured result.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Union
import json
import logging

from ..models.ledger import ReconciliationResult
from .validator import Invalid, validate_result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Progress:
    """Chunk to forward to the caller as narration."""

    text: str


@dataclass(frozen=True)
class ResultCandidate:
    """Chunk holding a schema-valid reconciliation result."""

    raw_text: str
    result: ReconciliationResult


Classification = Union[Progress, ResultCandidate]


def looks_like_json_object(chunk: str) -> bool:
    """True when the trimmed chunk is wrapped in a brace pair."""
    text = chunk.strip()
    return text.startswith("{") and text.endswith("}")


def classify_chunk(chunk: str) -> Classification:
    """
    Classify one raw chunk from the generation stream.

    Only brace-delimited chunks are parsed. A parse failure or a parsed
    object that fails schema validation degrades to Progress carrying the
    raw chunk; this function never raises.

    Args:
        chunk: Raw text as delivered by the backend

    Returns:
        Progress(text) or ResultCandidate(raw_text, result)
    """
    if not looks_like_json_object(chunk):
        return Progress(chunk)

    text = chunk.strip()
    try:
        parsed = json.loads(text, parse_float=Decimal)
    except (ValueError, RecursionError):
        logger.debug("Brace-wrapped chunk is not JSON; treating as progress")
        return Progress(chunk)

    outcome = validate_result(parsed)
    if isinstance(outcome, Invalid):
        logger.debug(f"JSON chunk rejected as result: {outcome.reason}")
        return Progress(chunk)

    return ResultCandidate(raw_text=text, result=outcome.result)
