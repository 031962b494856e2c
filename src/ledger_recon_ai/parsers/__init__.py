"""Parsers for ledger PDFs and rate history exports."""

from .ledger_pdf import LedgerPDFLoader
from .rate_history import RateHistoryParser, group_by_product, write_rates_csv

__all__ = ["LedgerPDFLoader", "RateHistoryParser", "group_by_product", "write_rates_csv"]
