"""Data models for ledger documents, transactions and reconciliation results."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
import base64
import binascii
import json
import math
import re

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+/-]+)?(?:;[\w=-]+)*;base64,(?P<data>.*)$", re.S)


@dataclass(frozen=True)
class LedgerDocument:
    """
    One party's ledger as an opaque PDF blob.

    Created per request and never persisted.
    """

    label: str
    content: bytes
    filename: str = "ledger.pdf"
    mime_type: str = "application/pdf"

    @property
    def size(self) -> int:
        return len(self.content)

    def to_data_uri(self) -> str:
        """Render the document as a base64 data URI."""
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    @classmethod
    def from_data_uri(
        cls, label: str, data_uri: str, filename: str = "ledger.pdf"
    ) -> "LedgerDocument":
        """
        Build a document from a base64 data URI.

        Raises:
            ValueError: If the URI is not a base64 data URI
        """
        match = _DATA_URI_RE.match(data_uri.strip())
        if not match:
            raise ValueError("Expected a base64 data URI")
        try:
            content = base64.b64decode(match.group("data"), validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 payload: {e}") from e
        return cls(
            label=label,
            content=content,
            filename=filename,
            mime_type=match.group("mime") or "application/pdf",
        )


class Transaction(BaseModel):
    """A single ledger line as reported by the model."""

    model_config = ConfigDict(coerce_numbers_to_str=True, frozen=True)

    date: date
    description: str
    amount: Decimal = Field(allow_inf_nan=False)

    @field_validator("amount")
    @classmethod
    def _amount_fits_json(cls, amount: Decimal) -> Decimal:
        # Written back out as a JSON number, so it must survive float()
        if not math.isfinite(float(amount)):
            raise ValueError("amount is too large to represent")
        return amount

    @field_serializer("amount")
    def _amount_as_number(self, amount: Decimal) -> float:
        return float(amount)


class ReconciliationResult(BaseModel):
    """
    Structured outcome of one ledger reconciliation.

    Only the shape is enforced. Whether every match really appears in both
    ledgers is left to the model.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    summary: str
    matches: list[Transaction]
    party_a_discrepancies: list[Transaction] = Field(alias="partyADiscrepancies")
    party_b_discrepancies: list[Transaction] = Field(alias="partyBDiscrepancies")

    def to_wire(self) -> dict[str, Any]:
        """Return the camelCase wire representation."""
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self) -> str:
        return json.dumps(self.to_wire())

    @property
    def match_count(self) -> int:
        return len(self.matches)

    @property
    def discrepancy_count(self) -> int:
        return len(self.party_a_discrepancies) + len(self.party_b_discrepancies)

    @property
    def matched_total(self) -> Decimal:
        return sum((t.amount for t in self.matches), Decimal("0"))

    @property
    def party_a_only_total(self) -> Decimal:
        return sum((t.amount for t in self.party_a_discrepancies), Decimal("0"))

    @property
    def party_b_only_total(self) -> Decimal:
        return sum((t.amount for t in self.party_b_discrepancies), Decimal("0"))
