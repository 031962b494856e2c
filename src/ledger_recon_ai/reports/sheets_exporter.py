"""
Google Sheets export for reconciliation results.
Creates one spreadsheet per call through the Sheets v4 REST API.
"""

from datetime import datetime
from typing import Any, Optional
import logging

from ..config import ReconContext
from ..models.ledger import ReconciliationResult
from ..utils.exceptions import ExportError
from .exporter import ReportExporter
from .layout import summary_rows, transaction_rows
from .sheets_client import a1_range, open_sheets_client

logger = logging.getLogger(__name__)


class GoogleSheetsExporter(ReportExporter):
    """
    Export Trigger backed by Google Sheets.

    The access token comes from a separate OAuth flow owned by the caller
    and needs the spreadsheets scope.
    """

    def __init__(self, context: ReconContext):
        self.context = context
        self.export_config = context.config.export
        self.pipeline_config = context.config.pipeline

    async def _write(self, result: ReconciliationResult, access_token: Optional[str]) -> str:
        names = self.export_config.sheet_names
        tabs = [names.summary, names.matches, names.party_a, names.party_b]
        party_a = self.pipeline_config.party_a_label
        party_b = self.pipeline_config.party_b_label
        data = [
            {"range": a1_range(names.summary, "A1"), "values": summary_rows(result, party_a, party_b)},
            {"range": a1_range(names.matches, "A1"), "values": transaction_rows(result.matches)},
            {
                "range": a1_range(names.party_a, "A1"),
                "values": transaction_rows(result.party_a_discrepancies),
            },
            {
                "range": a1_range(names.party_b, "A1"),
                "values": transaction_rows(result.party_b_discrepancies),
            },
        ]

        async with open_sheets_client(self.context, access_token) as sheets:
            spreadsheet = await sheets.create_spreadsheet(self._title(), tabs)
            try:
                await sheets.write_values(spreadsheet.spreadsheet_id, data)
            except ExportError as e:
                # The empty spreadsheet already exists; point the caller at it
                raise type(e)(f"{e} (partially created sheet: {spreadsheet.url})") from e

            await sheets.apply_formatting(
                spreadsheet.spreadsheet_id, _format_requests(spreadsheet.sheet_ids)
            )

        return spreadsheet.url

    def _title(self) -> str:
        now = datetime.now()
        return self.export_config.title_template.format(
            date=now.strftime("%Y-%m-%d"), time=now.strftime("%H:%M:%S")
        )


def _format_requests(sheet_ids: list[int]) -> list[dict[str, Any]]:
    requests: list[dict[str, Any]] = []
    for sheet_id in sheet_ids:
        requests.append(
            {
                "repeatCell": {
                    "range": {"sheetId": sheet_id, "startRowIndex": 0, "endRowIndex": 1},
                    "cell": {"userEnteredFormat": {"textFormat": {"bold": True}}},
                    "fields": "userEnteredFormat.textFormat.bold",
                }
            }
        )
        requests.append(
            {
                "autoResizeDimensions": {
                    "dimensions": {
                        "sheetId": sheet_id,
                        "dimension": "COLUMNS",
                        "startIndex": 0,
                        "endIndex": 3,
                    }
                }
            }
        )
    return requests
