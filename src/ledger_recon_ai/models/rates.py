"""Data models for recorded product purchase rates."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional


def final_rate(rate: Decimal, gst: Decimal) -> Decimal:
    """Rate including GST, where gst is a percentage."""
    return rate + (rate * gst / Decimal("100"))


@dataclass(frozen=True)
class RateRecord:
    """One purchase rate recorded for a product on a bill."""

    product: str
    rate: Decimal
    gst: Decimal
    bill_date: date
    party: str = ""
    unit: str = ""
    page_no: Optional[int] = None

    @property
    def final_rate(self) -> Decimal:
        return final_rate(self.rate, self.gst)
