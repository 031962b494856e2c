"""
Async client for the Google Sheets v4 REST API.
Maps HTTP and transport failures onto the export error hierarchy.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional
from urllib.parse import quote
import logging

import httpx

from ..config import ReconContext
from ..utils.exceptions import ExportAuthError, ExportError, ExportServiceError

logger = logging.getLogger(__name__)

REAUTH_MESSAGE = "Google authorization is missing or expired. Re-authenticate and retry."
API_DISABLED_MESSAGE = (
    "API Permission Error: The Google Sheets API is not enabled. "
    "Please enable it in your Google Cloud project and try again."
)


@dataclass(frozen=True)
class Spreadsheet:
    """Identity of a spreadsheet and the ids of its tabs."""

    spreadsheet_id: str
    url: str
    sheet_ids: list[int] = field(default_factory=list)
    tab_ids: dict[str, int] = field(default_factory=dict)


class SheetsClient:
    """
    Bearer-authenticated calls against one Sheets API base URL.

    Every method raises ExportAuthError when the credential is rejected and
    ExportServiceError for any other failure, including unreadable replies.
    """

    def __init__(self, http_client: httpx.AsyncClient, access_token: str, api_url: str):
        self.http_client = http_client
        self.api_url = api_url.rstrip("/")
        self.headers = {"Authorization": f"Bearer {access_token.strip()}"}

    async def create_spreadsheet(self, title: str, tabs: list[str]) -> Spreadsheet:
        created = await self._request(
            "POST",
            self.api_url,
            json={
                "properties": {"title": title},
                "sheets": [
                    {"properties": {"title": tab, "index": i}} for i, tab in enumerate(tabs)
                ],
            },
        )
        spreadsheet = _spreadsheet_from(created)
        if spreadsheet is None:
            raise ExportServiceError("Failed to create new Google Sheet.")
        logger.info(f"Created spreadsheet {spreadsheet.spreadsheet_id}")
        return spreadsheet

    async def get_spreadsheet(self, spreadsheet_id: str) -> Spreadsheet:
        body = await self._request(
            "GET",
            f"{self.api_url}/{spreadsheet_id}",
            params={"fields": "spreadsheetId,spreadsheetUrl,sheets.properties"},
        )
        spreadsheet = _spreadsheet_from(body)
        if spreadsheet is None:
            raise ExportServiceError(f"Google Sheet {spreadsheet_id} could not be opened.")
        return spreadsheet

    async def write_values(self, spreadsheet_id: str, data: list[dict[str, Any]]) -> None:
        # RAW keeps ledger text from being evaluated as formulas
        await self._request(
            "POST",
            f"{self.api_url}/{spreadsheet_id}/values:batchUpdate",
            json={"valueInputOption": "RAW", "data": data},
        )

    async def clear_values(self, spreadsheet_id: str, range_: str) -> None:
        await self._request(
            "POST", f"{self.api_url}/{spreadsheet_id}/values/{quote(range_, safe='')}:clear", json={}
        )

    async def read_values(self, spreadsheet_id: str, range_: str) -> list[list[Any]]:
        body = await self._request(
            "GET",
            f"{self.api_url}/{spreadsheet_id}/values/{quote(range_, safe='')}",
            params={
                "valueRenderOption": "UNFORMATTED_VALUE",
                "dateTimeRenderOption": "SERIAL_NUMBER",
            },
        )
        values = body.get("values") or []
        if not isinstance(values, list):
            raise ExportServiceError("Google Sheets returned an unreadable response")
        return [row if isinstance(row, list) else [row] for row in values]

    async def apply_formatting(self, spreadsheet_id: str, requests: list[dict[str, Any]]) -> bool:
        """
        Send cosmetic batchUpdate requests.

        Failures are logged and reported as False; the data is already written.
        """
        if not requests:
            return True
        try:
            await self._request(
                "POST", f"{self.api_url}/{spreadsheet_id}:batchUpdate", json={"requests": requests}
            )
        except ExportError as e:
            logger.warning(f"Formatting of spreadsheet {spreadsheet_id} skipped: {e}")
            return False
        return True

    async def _request(
        self,
        method: str,
        url: str,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        try:
            response = await self.http_client.request(
                method, url, json=json, params=params, headers=self.headers
            )
        except httpx.HTTPError as e:
            raise ExportServiceError(f"Could not reach Google Sheets: {e}") from e

        if response.status_code >= 400:
            _raise_for_status(response)
        try:
            body = response.json()
        except ValueError as e:
            raise ExportServiceError("Google Sheets returned an unreadable response") from e
        if not isinstance(body, dict):
            raise ExportServiceError("Google Sheets returned an unreadable response")
        return body


@asynccontextmanager
async def open_sheets_client(
    context: ReconContext, access_token: Optional[str]
) -> AsyncIterator[SheetsClient]:
    """
    Yield a SheetsClient on the context's shared HTTP client, or a fresh one.

    Raises:
        ExportAuthError: If no access token was given
    """
    if not access_token or not access_token.strip():
        raise ExportAuthError(REAUTH_MESSAGE)

    export_config = context.config.export
    if context.http_client is not None:
        yield SheetsClient(context.http_client, access_token, export_config.sheets_api_url)
        return

    async with httpx.AsyncClient(timeout=export_config.timeout_seconds) as client:
        yield SheetsClient(client, access_token, export_config.sheets_api_url)


def a1_range(tab: str, cells: str = "") -> str:
    """Quote a tab name for A1 notation, e.g. 'Party A'!A1."""
    quoted = "'{}'".format(tab.replace("'", "''"))
    return f"{quoted}!{cells}" if cells else quoted


def _spreadsheet_from(body: dict[str, Any]) -> Optional[Spreadsheet]:
    spreadsheet_id = body.get("spreadsheetId")
    url = body.get("spreadsheetUrl")
    if not spreadsheet_id or not url:
        return None

    sheet_ids: list[int] = []
    tab_ids: dict[str, int] = {}
    for sheet in body.get("sheets") or []:
        props = sheet.get("properties") if isinstance(sheet, dict) else None
        if not isinstance(props, dict) or props.get("sheetId") is None:
            continue
        sheet_ids.append(props["sheetId"])
        if props.get("title"):
            tab_ids[props["title"]] = props["sheetId"]
    return Spreadsheet(str(spreadsheet_id), str(url), sheet_ids, tab_ids)


def _raise_for_status(response: httpx.Response) -> None:
    message = _error_message(response)
    status = response.status_code

    if "has not been used" in message or "is disabled" in message:
        raise ExportServiceError(API_DISABLED_MESSAGE)
    if status in (401, 403):
        raise ExportAuthError(f"{REAUTH_MESSAGE} ({message})")
    raise ExportServiceError(f"Google Sheets rejected the request (HTTP {status}): {message}")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str):
        return error
    return response.reason_phrase
