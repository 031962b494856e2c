"""Tests for syncing recorded rates to and from Google Sheets."""

import asyncio
import json
from datetime import date
from decimal import Decimal

import httpx
import pytest

from ledger_recon_ai.config import ReconContext
from ledger_recon_ai.models.rates import RateRecord
from ledger_recon_ai.reports.layout import date_to_serial, rate_rows
from ledger_recon_ai.reports.rate_sheet import (
    RateSheetExporter,
    RateSheetImporter,
    parse_spreadsheet_id,
)
from ledger_recon_ai.utils.exceptions import ExportAuthError

SHEET_URL = "https://docs.google.com/spreadsheets/d/rates-1/edit"


class FakeRateSheetAPI:
    """Stand-in for the Sheets endpoints used by the rate sync."""

    def __init__(self, tabs=("Rates",), values=None, format_status=200):
        self.tabs = tabs
        self.values = values or []
        self.format_status = format_status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        sheets = [
            {"properties": {"sheetId": 100 + i, "title": tab}} for i, tab in enumerate(self.tabs)
        ]

        if request.method == "POST" and path == "/v4/spreadsheets":
            return httpx.Response(
                200,
                json={"spreadsheetId": "rates-1", "spreadsheetUrl": SHEET_URL, "sheets": sheets},
            )
        if request.method == "GET" and path == "/v4/spreadsheets/rates-1":
            return httpx.Response(
                200,
                json={"spreadsheetId": "rates-1", "spreadsheetUrl": SHEET_URL, "sheets": sheets},
            )
        if request.method == "GET" and "/values/" in path:
            return httpx.Response(200, json={"range": "Rates!A1:H9", "values": self.values})
        if path.endswith(":clear"):
            return httpx.Response(200, json={"clearedRange": "Rates!A1:Z1000"})
        if path.endswith("values:batchUpdate"):
            return httpx.Response(200, json={"totalUpdatedRows": 3})
        if self.format_status != 200:
            return httpx.Response(self.format_status, json={"error": {"message": "backend error"}})
        return httpx.Response(200, json={"replies": []})


def _with_client(recon_config, api, action):
    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
            return await action(ReconContext(config=recon_config, http_client=client))

    return asyncio.run(scenario())


@pytest.fixture
def records():
    return [
        RateRecord("Cement", Decimal("350"), Decimal("28"), date(2024, 1, 15), "Acme", "bag", 3),
        RateRecord("Cement", Decimal("365"), Decimal("28"), date(2024, 3, 1), "Acme", "bag"),
        RateRecord("Anchor Bolt", Decimal("12.5"), Decimal("18"), date(2024, 2, 2), "Iron Works", "pc", 7),
    ]


class TestRateRows:
    def test_rows_are_grouped_by_product_newest_first(self, records):
        rows = rate_rows(records)

        assert rows[0][:5] == ["Product Name", "Rate", "Unit", "GST %", "Final Rate"]
        assert [(r[0], r[7]) for r in rows[1:]] == [
            ("Anchor Bolt", date_to_serial(date(2024, 2, 2))),
            ("Cement", date_to_serial(date(2024, 3, 1))),
            ("Cement", date_to_serial(date(2024, 1, 15))),
        ]
        assert rows[2][4] == pytest.approx(467.2)
        assert rows[2][6] == ""

    def test_serial_epoch(self):
        assert date_to_serial(date(1900, 1, 1)) == 2


class TestRateSheetExporter:
    def test_new_spreadsheet(self, recon_config, records):
        api = FakeRateSheetAPI()

        outcome = _with_client(
            recon_config, api, lambda ctx: RateSheetExporter(ctx).export(records, "token")
        )

        assert outcome.success
        assert outcome.sheet_url == SHEET_URL
        create = json.loads(api.requests[0].content)
        assert create["properties"]["title"] == "Rate Record Live Data"
        write = json.loads(api.requests[1].content)
        assert write["valueInputOption"] == "RAW"
        assert write["data"][0]["range"] == "'Rates'!A1"
        assert len(write["data"][0]["values"]) == 4

        formatting = json.loads(api.requests[2].content)["requests"]
        formats = [
            r["repeatCell"]["cell"]["userEnteredFormat"]["numberFormat"]["type"]
            for r in formatting
            if "numberFormat" in r.get("repeatCell", {}).get("cell", {}).get("userEnteredFormat", {})
        ]
        assert formats == ["CURRENCY", "NUMBER", "CURRENCY", "DATE"]
        assert any("setBasicFilter" in r for r in formatting)
        assert all(
            r.get("repeatCell", {}).get("range", {}).get("sheetId", 100) == 100 for r in formatting
        )

    def test_existing_spreadsheet_is_cleared_then_written(self, recon_config, records):
        api = FakeRateSheetAPI(tabs=("Notes", "Rates"))

        outcome = _with_client(
            recon_config,
            api,
            lambda ctx: RateSheetExporter(ctx).export(records, "token", spreadsheet_id=SHEET_URL),
        )

        assert outcome.success
        assert [(r.method, r.url.path) for r in api.requests[:3]] == [
            ("GET", "/v4/spreadsheets/rates-1"),
            ("POST", "/v4/spreadsheets/rates-1/values/'Rates':clear"),
            ("POST", "/v4/spreadsheets/rates-1/values:batchUpdate"),
        ]

    def test_existing_spreadsheet_without_rates_tab(self, recon_config, records):
        api = FakeRateSheetAPI(tabs=("Sheet1",))

        outcome = _with_client(
            recon_config,
            api,
            lambda ctx: RateSheetExporter(ctx).export(records, "token", spreadsheet_id="rates-1"),
        )

        assert not outcome.success
        assert outcome.error_kind == "service"
        assert "'Rates'" in outcome.message
        assert len(api.requests) == 1

    def test_formatting_failure_keeps_sync(self, recon_config, records):
        outcome = _with_client(
            recon_config,
            FakeRateSheetAPI(format_status=500),
            lambda ctx: RateSheetExporter(ctx).export(records, "token"),
        )

        assert outcome.success

    def test_missing_token(self, recon_config, records):
        api = FakeRateSheetAPI()

        outcome = _with_client(
            recon_config, api, lambda ctx: RateSheetExporter(ctx).export(records, None)
        )

        assert outcome.error_kind == "auth"
        assert api.requests == []


class TestRateSheetImporter:
    def test_reads_rows_back(self, recon_config):
        serial = date_to_serial(date(2024, 3, 1))
        api = FakeRateSheetAPI(
            values=[
                ["Product Name", "Rate", "Unit", "GST %", "Final Rate", "Party Name", "Page No", "Bill Date"],
                ["Cement", 365, "bag", 28, 467.2, "Acme", 4, serial],
                ["Sand", 900, "ton", 5, 945, "River Co"],
                ["", 10, "bag", 0, 10, "", "", serial],
            ]
        )

        records = _with_client(
            recon_config, api, lambda ctx: RateSheetImporter(ctx).import_rates(SHEET_URL, "token")
        )

        assert [r.product for r in records] == ["Cement"]
        cement = records[0]
        assert cement.rate == Decimal("365")
        assert cement.gst == Decimal("28")
        assert cement.bill_date == date(2024, 3, 1)
        assert cement.party == "Acme"
        assert cement.page_no == 4
        read = api.requests[0]
        assert read.url.params["valueRenderOption"] == "UNFORMATTED_VALUE"
        assert read.url.params["dateTimeRenderOption"] == "SERIAL_NUMBER"

    def test_header_only_sheet_imports_nothing(self, recon_config):
        api = FakeRateSheetAPI(values=[["Product Name", "Rate", "Bill Date"]])

        records = _with_client(
            recon_config, api, lambda ctx: RateSheetImporter(ctx).import_rates("rates-1", "token")
        )

        assert records == []

    def test_missing_token_raises(self, recon_config):
        with pytest.raises(ExportAuthError):
            _with_client(
                recon_config,
                FakeRateSheetAPI(),
                lambda ctx: RateSheetImporter(ctx).import_rates("rates-1", ""),
            )


def test_parse_spreadsheet_id():
    assert parse_spreadsheet_id(SHEET_URL) == "rates-1"
    assert parse_spreadsheet_id("  abc_123 ") == "abc_123"
