"""
Schema validation for reconciliation result candidates.
Accepts a parsed JSON object graph only when it satisfies the full shape.
"""

from dataclasses import dataclass
from typing import Any, Union

from pydantic import ValidationError

from ..models.ledger import ReconciliationResult

_MAX_REASONS = 3


@dataclass(frozen=True)
class Valid:
    """The candidate conforms to the ReconciliationResult schema."""

    result: ReconciliationResult


@dataclass(frozen=True)
class Invalid:
    """The candidate was rejected; reason is a short human-readable summary."""

    reason: str


ValidationOutcome = Union[Valid, Invalid]


def validate_result(candidate: Any) -> ValidationOutcome:
    """
    Validate a parsed object against the ReconciliationResult schema.

    No partial acceptance and no coercion beyond the model's own (numeric
    amounts, string descriptions). Never raises.

    Args:
        candidate: Object graph produced by json.loads

    Returns:
        Valid with the typed result, or Invalid with the rejection reason
    """
    if not isinstance(candidate, dict):
        return Invalid(f"expected a JSON object, got {type(candidate).__name__}")

    try:
        return Valid(ReconciliationResult.model_validate(candidate))
    except ValidationError as e:
        return Invalid(_summarize_errors(e))
    except (TypeError, ValueError) as e:
        return Invalid(str(e))


def _summarize_errors(error: ValidationError) -> str:
    parts = []
    for err in error.errors()[:_MAX_REASONS]:
        location = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{location}: {err.get('msg', 'invalid')}")
    remaining = error.error_count() - len(parts)
    if remaining > 0:
        parts.append(f"... and {remaining} more")
    return "; ".join(parts)
