"""
Google Sheets sync for recorded purchase rates.

RateSheetExporter pushes every rate record to a spreadsheet tab, either a
new spreadsheet or an existing one whose tab is cleared first.
RateSheetImporter reads such a tab back into RateRecord models.
"""

from typing import Any, Optional, Sequence
import logging
import numbers
import re

import pandas as pd

from ..config import ReconContext
from ..models.events import ExportOutcome
from ..models.rates import RateRecord
from ..parsers.rate_history import RateHistoryParser
from ..utils.exceptions import ExportError, ExportServiceError
from .layout import RATE_HEADERS, rate_rows, serial_to_date
from .sheets_client import Spreadsheet, a1_range, open_sheets_client

logger = logging.getLogger(__name__)

_SPREADSHEET_URL_RE = re.compile(r"/spreadsheets/d/([\w-]+)")

# Sheet headers mapped onto the rate history CSV columns
_IMPORT_COLUMNS = {
    "Product Name": "product",
    "Rate": "rate",
    "Unit": "unit",
    "GST %": "gst",
    "Party Name": "party",
    "Page No": "page_no",
    "Bill Date": "bill_date",
}


class RateSheetExporter:
    """Writes rate records to a Google Sheet, one row per recorded rate."""

    def __init__(self, context: ReconContext):
        self.context = context
        self.export_config = context.config.export
        self.tab = context.config.export.sheet_names.rates

    async def export(
        self,
        records: Sequence[RateRecord],
        access_token: Optional[str],
        spreadsheet_id: Optional[str] = None,
    ) -> ExportOutcome:
        """
        Sync rate records to a spreadsheet.

        Args:
            records: Rate records to write
            access_token: OAuth bearer token with the spreadsheets scope
            spreadsheet_id: Existing spreadsheet (id or URL) to overwrite;
                a new one is created when omitted

        Returns:
            ExportOutcome with the spreadsheet URL, or the failure message
        """
        try:
            url = await self._write(records, access_token, spreadsheet_id)
        except ExportError as e:
            logger.error(f"Rate sync failed ({e.kind}): {e}")
            return ExportOutcome.failed(str(e), e.kind)

        logger.info(f"Synced {len(records)} rate(s) to {url}")
        return ExportOutcome.ok(url)

    async def _write(
        self,
        records: Sequence[RateRecord],
        access_token: Optional[str],
        spreadsheet_id: Optional[str],
    ) -> str:
        values = rate_rows(records)

        async with open_sheets_client(self.context, access_token) as sheets:
            if spreadsheet_id:
                spreadsheet = await sheets.get_spreadsheet(parse_spreadsheet_id(spreadsheet_id))
                if self.tab not in spreadsheet.tab_ids:
                    raise ExportServiceError(
                        f"Spreadsheet {spreadsheet.spreadsheet_id} has no '{self.tab}' tab"
                    )
                await sheets.clear_values(spreadsheet.spreadsheet_id, a1_range(self.tab))
            else:
                spreadsheet = await sheets.create_spreadsheet(
                    self.export_config.rates_title, [self.tab]
                )

            await sheets.write_values(
                spreadsheet.spreadsheet_id,
                [{"range": a1_range(self.tab, "A1"), "values": values}],
            )
            await sheets.apply_formatting(
                spreadsheet.spreadsheet_id, self._format_requests(spreadsheet, len(values))
            )

        return spreadsheet.url

    def _format_requests(self, spreadsheet: Spreadsheet, row_count: int) -> list[dict[str, Any]]:
        sheet_id = spreadsheet.tab_ids.get(self.tab)
        if sheet_id is None:
            if not spreadsheet.sheet_ids:
                return []
            sheet_id = spreadsheet.sheet_ids[0]

        col_count = len(RATE_HEADERS)
        currency = {"type": "CURRENCY", "pattern": self.export_config.currency_pattern}
        requests: list[dict[str, Any]] = [
            {
                "repeatCell": {
                    "range": {"sheetId": sheet_id, "startRowIndex": 0, "endRowIndex": 1},
                    "cell": {"userEnteredFormat": {"textFormat": {"bold": True}}},
                    "fields": "userEnteredFormat.textFormat.bold",
                }
            },
            _column_format(sheet_id, RATE_HEADERS.index("Rate"), currency),
            _column_format(
                sheet_id, RATE_HEADERS.index("GST %"), {"type": "NUMBER", "pattern": '0.00"%"'}
            ),
            _column_format(sheet_id, RATE_HEADERS.index("Final Rate"), currency),
            _column_format(
                sheet_id, RATE_HEADERS.index("Bill Date"), {"type": "DATE", "pattern": "dd/mm/yyyy"}
            ),
            {
                "setBasicFilter": {
                    "filter": {
                        "range": {
                            "sheetId": sheet_id,
                            "startRowIndex": 0,
                            "endRowIndex": row_count,
                            "startColumnIndex": 0,
                            "endColumnIndex": col_count,
                        }
                    }
                }
            },
            {
                "autoResizeDimensions": {
                    "dimensions": {
                        "sheetId": sheet_id,
                        "dimension": "COLUMNS",
                        "startIndex": 0,
                        "endIndex": col_count,
                    }
                }
            },
        ]
        return requests


class RateSheetImporter:
    """Reads rate records back from a synced spreadsheet tab."""

    def __init__(self, context: ReconContext, parser: Optional[RateHistoryParser] = None):
        self.context = context
        self.tab = context.config.export.sheet_names.rates
        self.parser = parser or RateHistoryParser()

    async def import_rates(self, spreadsheet: str, access_token: Optional[str]) -> list[RateRecord]:
        """
        Read every rate row from the spreadsheet's rates tab.

        Args:
            spreadsheet: Spreadsheet id or URL
            access_token: OAuth bearer token with the spreadsheets scope

        Returns:
            Rate records in sheet order; rows that fail to parse are skipped

        Raises:
            ExportAuthError: If the credential is missing or rejected
            ExportServiceError: If the sheet cannot be read
            RateHistoryParseError: If required columns are missing
        """
        spreadsheet_id = parse_spreadsheet_id(spreadsheet)
        async with open_sheets_client(self.context, access_token) as sheets:
            rows = await sheets.read_values(
                spreadsheet_id, a1_range(self.tab, f"A:{chr(ord('A') + len(RATE_HEADERS) - 1)}")
            )

        if len(rows) < 2:
            logger.info(f"Spreadsheet {spreadsheet_id} has no rate rows to import")
            return []

        header = [str(cell).strip() for cell in rows[0]]
        width = len(header)
        data = [_pad(row, width) for row in rows[1:]]
        df = pd.DataFrame(data, columns=header).rename(columns=_IMPORT_COLUMNS)
        if "bill_date" in df.columns:
            df["bill_date"] = df["bill_date"].map(_cell_to_date)

        records = self.parser.parse_dataframe(df)
        logger.info(f"Imported {len(records)} rate(s) from spreadsheet {spreadsheet_id}")
        return records


def parse_spreadsheet_id(value: str) -> str:
    """Accept a bare spreadsheet id or a docs.google.com spreadsheet URL."""
    match = _SPREADSHEET_URL_RE.search(value)
    return match.group(1) if match else value.strip()


def _column_format(sheet_id: int, column: int, number_format: dict[str, str]) -> dict[str, Any]:
    return {
        "repeatCell": {
            "range": {
                "sheetId": sheet_id,
                "startRowIndex": 1,
                "startColumnIndex": column,
                "endColumnIndex": column + 1,
            },
            "cell": {"userEnteredFormat": {"numberFormat": number_format}},
            "fields": "userEnteredFormat.numberFormat",
        }
    }


def _pad(row: list[Any], width: int) -> list[Any]:
    cells = [None if cell == "" else cell for cell in row[:width]]
    return cells + [None] * (width - len(cells))


def _cell_to_date(value: Any) -> Any:
    # Dates come back as serial numbers; typed text is left to the parser
    if isinstance(value, numbers.Real) and not isinstance(value, bool) and pd.notna(value):
        return serial_to_date(value)
    return value
