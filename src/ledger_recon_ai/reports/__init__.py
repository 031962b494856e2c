"""Report sinks for reconciliation results and rate records."""

from .exporter import ReportExporter
from .excel_generator import ExcelExporter, ExcelReportGenerator
from .rate_sheet import RateSheetExporter, RateSheetImporter
from .sheets_exporter import GoogleSheetsExporter

__all__ = [
    "ReportExporter",
    "ExcelExporter",
    "ExcelReportGenerator",
    "GoogleSheetsExporter",
    "RateSheetExporter",
    "RateSheetImporter",
]
