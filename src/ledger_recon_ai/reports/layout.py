"""Row layout shared by every report sink."""

from datetime import date, timedelta
from typing import Any, Sequence

from ..models.ledger import ReconciliationResult, Transaction
from ..models.rates import RateRecord

TRANSACTION_HEADERS = ["Date", "Description", "Amount"]


def transaction_rows(transactions: Sequence[Transaction]) -> list[list[Any]]:
    """Header row followed by one row per transaction."""
    rows: list[list[Any]] = [list(TRANSACTION_HEADERS)]
    for txn in transactions:
        rows.append([txn.date.isoformat(), txn.description, float(txn.amount)])
    return rows


def summary_rows(
    result: ReconciliationResult, party_a: str = "Party A", party_b: str = "Party B"
) -> list[list[Any]]:
    """Label/value rows for the summary tab."""
    return [
        ["Ledger Reconciliation Summary", ""],
        ["Summary", result.summary],
        ["Matched Transactions", result.match_count],
        [f"{party_a} Only", len(result.party_a_discrepancies)],
        [f"{party_b} Only", len(result.party_b_discrepancies)],
        ["Matched Total", float(result.matched_total)],
        [f"{party_a} Only Total", float(result.party_a_only_total)],
        [f"{party_b} Only Total", float(result.party_b_only_total)],
    ]


RATE_HEADERS = [
    "Product Name",
    "Rate",
    "Unit",
    "GST %",
    "Final Rate",
    "Party Name",
    "Page No",
    "Bill Date",
]

# Day zero of spreadsheet date serial numbers
SERIAL_EPOCH = date(1899, 12, 30)


def date_to_serial(value: date) -> int:
    return (value - SERIAL_EPOCH).days


def serial_to_date(serial: float) -> date:
    return SERIAL_EPOCH + timedelta(days=int(serial))


def rate_rows(records: Sequence[RateRecord]) -> list[list[Any]]:
    """Header row followed by one row per rate, grouped by product, newest first."""
    ordered = sorted(records, key=lambda r: (r.product.lower(), -r.bill_date.toordinal()))
    rows: list[list[Any]] = [list(RATE_HEADERS)]
    for record in ordered:
        rows.append(
            [
                record.product,
                float(record.rate),
                record.unit,
                float(record.gst),
                float(record.final_rate),
                record.party,
                record.page_no if record.page_no is not None else "",
                date_to_serial(record.bill_date),
            ]
        )
    return rows
