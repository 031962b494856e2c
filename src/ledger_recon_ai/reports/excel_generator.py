"""
Excel report generator for reconciliation results.
Creates multi-sheet workbooks with formatted output.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Optional
import logging

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font, PatternFill, Border, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..config import ReconConfig
from ..models.events import ReconciliationRun
from ..models.ledger import ReconciliationResult, Transaction
from ..utils.exceptions import ExportServiceError, ReportGenerationError
from .exporter import ReportExporter
from .layout import TRANSACTION_HEADERS, summary_rows

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
MATCH_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
UNMATCHED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)
AMOUNT_FORMAT = "#,##0.00"


class ExcelReportGenerator:
    """Generates Excel reconciliation reports with multiple sheets."""

    def __init__(self, config: ReconConfig):
        """
        Initialize the report generator.

        Args:
            config: Application configuration
        """
        self.config = config
        self.sheet_names = config.export.sheet_names
        self.party_a = config.pipeline.party_a_label
        self.party_b = config.pipeline.party_b_label

    def generate_report(
        self,
        result: ReconciliationResult,
        output_path: Path,
        run: Optional[ReconciliationRun] = None,
    ) -> Path:
        """
        Generate the complete reconciliation report.

        Args:
            result: Validated reconciliation result
            output_path: Path for output file
            run: Optional run whose progress narration is logged in its own sheet

        Returns:
            Path to generated report

        Raises:
            ReportGenerationError: If the workbook cannot be written
        """
        logger.info(f"Generating Excel report: {output_path}")

        wb = Workbook()

        # Remove default sheet
        if wb.active:
            wb.remove(wb.active)

        self._create_summary_sheet(wb, result)
        self._create_transaction_sheet(wb, self.sheet_names.matches, result.matches, MATCH_FILL)
        self._create_transaction_sheet(
            wb, self.sheet_names.party_a, result.party_a_discrepancies, UNMATCHED_FILL
        )
        self._create_transaction_sheet(
            wb, self.sheet_names.party_b, result.party_b_discrepancies, UNMATCHED_FILL
        )
        if run is not None:
            self._create_progress_sheet(wb, run)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            raise ReportGenerationError(f"Failed to save report {output_path}: {e}") from e

        logger.info(f"Report saved: {output_path}")
        return output_path

    def _create_summary_sheet(self, wb: Workbook, result: ReconciliationResult) -> None:
        """Create the summary sheet with key metrics."""
        ws = wb.create_sheet(self.sheet_names.summary)

        rows = summary_rows(result, self.party_a, self.party_b)
        title, *metrics = rows

        ws["A1"] = title[0]
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")

        for i, (label, value) in enumerate(metrics, start=3):
            ws[f"A{i}"] = label
            ws[f"A{i}"].font = Font(bold=True)
            ws[f"B{i}"] = _cell_value(value)
            if isinstance(value, float):
                ws[f"B{i}"].number_format = AMOUNT_FORMAT

        ws["A12"] = "Generated At:"
        ws["B12"] = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        ws.column_dimensions["A"].width = 30
        ws.column_dimensions["B"].width = 60

    def _create_transaction_sheet(
        self,
        wb: Workbook,
        sheet_name: str,
        transactions: list[Transaction],
        fill: PatternFill,
    ) -> None:
        """Create one date/description/amount sheet."""
        ws = wb.create_sheet(sheet_name)
        self._write_headers(ws, TRANSACTION_HEADERS)

        for row_num, txn in enumerate(transactions, start=2):
            row_data: list[Any] = [txn.date, _cell_value(txn.description), float(txn.amount)]
            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                cell.fill = fill
            ws.cell(row=row_num, column=1).number_format = "yyyy-mm-dd"
            ws.cell(row=row_num, column=3).number_format = AMOUNT_FORMAT

        self._auto_fit_columns(ws)

    def _create_progress_sheet(self, wb: Workbook, run: ReconciliationRun) -> None:
        """Create the progress log sheet from the run's narration."""
        ws = wb.create_sheet(self.sheet_names.progress_log)
        self._write_headers(ws, ["#", "Progress"])

        for row_num, message in enumerate(run.progress, start=2):
            ws.cell(row=row_num, column=1, value=row_num - 1)
            ws.cell(row=row_num, column=2, value=_cell_value(message))

        self._auto_fit_columns(ws)

    def _write_headers(self, ws: Worksheet, headers: list[str]) -> None:
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            max_length = 0
            column = column_cells[0].column_letter

            for cell in column_cells:
                if cell.value is not None:
                    max_length = max(max_length, len(str(cell.value)))

            ws.column_dimensions[column].width = min(max_length + 2, 50)


class ExcelExporter(ReportExporter):
    """Offline export sink writing a new .xlsx file per call."""

    def __init__(self, config: ReconConfig, output_dir: Path = Path(".")):
        self.generator = ExcelReportGenerator(config)
        self.filename_template = config.output.filename_template
        self.output_dir = output_dir

    async def _write(self, result: ReconciliationResult, access_token: Optional[str]) -> str:
        path = self._next_path()
        try:
            self.generator.generate_report(result, path)
        except ReportGenerationError as e:
            raise ExportServiceError(str(e)) from e
        return path.resolve().as_uri()

    def _next_path(self) -> Path:
        now = datetime.now()
        name = self.filename_template.format(
            date=now.strftime("%Y%m%d"), time=now.strftime("%H%M%S")
        )
        path = self.output_dir / name
        counter = 1
        while path.exists():
            path = self.output_dir / f"{Path(name).stem}_{counter}{Path(name).suffix}"
            counter += 1
        return path


def _cell_value(value: Any) -> Any:
    """Drop control characters that worksheets cannot store."""
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return value
