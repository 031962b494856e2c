"""
Rate history CSV parser.
Parses exported purchase-rate records into RateRecord models.
"""

from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional
import logging

import pandas as pd

from ..models.rates import RateRecord
from ..utils.exceptions import RateHistoryParseError

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("product", "rate", "bill_date")


class RateHistoryParser:
    """
    Parser for rate history CSV exports.

    Expected columns: product, party, unit, rate, gst, bill_date, page_no.
    Only product, rate and bill_date are required; gst defaults to 0.
    """

    def __init__(self, date_format: str = "%Y-%m-%d", encoding: str = "utf-8"):
        self.date_format = date_format
        self.encoding = encoding

    def parse_file(self, file_path: Path) -> list[RateRecord]:
        """
        Parse a rate history CSV file.

        Args:
            file_path: Path to the CSV file

        Returns:
            List of rate records in file order

        Raises:
            RateHistoryParseError: If the file cannot be read or lacks columns
        """
        logger.info(f"Parsing rate history file: {file_path}")

        try:
            df = pd.read_csv(file_path, encoding=self.encoding)
        except Exception as e:
            logger.error(f"Failed to read CSV file: {e}")
            raise RateHistoryParseError(f"Failed to read CSV file: {e}") from e

        return self.parse_dataframe(df)

    def parse_dataframe(self, df: pd.DataFrame) -> list[RateRecord]:
        df = df.rename(columns=lambda c: str(c).strip().lower().replace(" ", "_"))
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise RateHistoryParseError(f"Missing required column(s): {', '.join(missing)}")

        records: list[RateRecord] = []
        for idx, row in df.iterrows():
            record = self._normalize_row(row, int(idx))
            if record:
                records.append(record)

        logger.info(f"Extracted {len(records)} rate records")
        return records

    def _normalize_row(self, row: pd.Series, idx: int) -> Optional[RateRecord]:
        product = _text(row.get("product"))
        if not product:
            logger.warning(f"Row {idx}: Missing product name, skipping")
            return None

        bill_date = self._parse_date(row.get("bill_date"))
        if not bill_date:
            logger.warning(f"Row {idx}: Invalid bill date, skipping")
            return None

        rate = _parse_decimal(row.get("rate"))
        if rate is None:
            logger.warning(f"Row {idx}: Invalid rate, skipping")
            return None

        return RateRecord(
            product=product,
            rate=rate,
            gst=_parse_decimal(row.get("gst")) or Decimal("0"),
            bill_date=bill_date,
            party=_text(row.get("party")),
            unit=_text(row.get("unit")),
            page_no=self._parse_page(row.get("page_no"), idx),
        )

    def _parse_page(self, value, idx: int) -> Optional[int]:
        if value is None or pd.isna(value) or str(value).strip() == "":
            return None
        try:
            return int(float(str(value).strip()))
        except (ValueError, OverflowError):
            logger.warning(f"Row {idx}: Invalid page number {value!r}, ignoring")
            return None

    def _parse_date(self, date_value) -> Optional[date]:
        if date_value is None or pd.isna(date_value):
            return None

        if isinstance(date_value, datetime):
            return date_value.date()
        if isinstance(date_value, date):
            return date_value

        try:
            return datetime.strptime(str(date_value).strip(), self.date_format).date()
        except ValueError:
            # Try pandas parser as fallback
            try:
                parsed = pd.to_datetime(date_value)
            except Exception:
                return None
            return None if pd.isna(parsed) else parsed.date()


def group_by_product(records: list[RateRecord]) -> dict[str, list[RateRecord]]:
    """Group records by product name, most recent bill first."""
    grouped: dict[str, list[RateRecord]] = defaultdict(list)
    for record in records:
        grouped[record.product].append(record)
    return {
        name: sorted(items, key=lambda r: r.bill_date, reverse=True)
        for name, items in grouped.items()
    }


def write_rates_csv(records: list[RateRecord], output_path: Path) -> Path:
    """Write records in the column layout RateHistoryParser reads."""
    df = pd.DataFrame(
        [
            {
                "product": r.product,
                "party": r.party,
                "unit": r.unit,
                "rate": str(r.rate),
                "gst": str(r.gst),
                "bill_date": r.bill_date.isoformat(),
                "page_no": r.page_no,
            }
            for r in records
        ],
        columns=["product", "party", "unit", "rate", "gst", "bill_date", "page_no"],
    )
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False)
    logger.info(f"Wrote {len(df)} rate records to {output_path}")
    return output_path


def _text(value) -> str:
    if value is None or pd.isna(value):
        return ""
    return str(value).strip()


def _parse_decimal(value) -> Optional[Decimal]:
    if value is None or pd.isna(value) or value == "":
        return None
    try:
        if isinstance(value, str):
            value = value.replace(",", "").replace("%", "").strip()
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None
