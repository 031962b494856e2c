"""Tests for the Google Sheets export trigger."""

import asyncio
import json

import httpx
import pytest

from ledger_recon_ai.config import ReconContext
from ledger_recon_ai.reports.sheets_exporter import GoogleSheetsExporter

API = "https://sheets.googleapis.com/v4/spreadsheets"


class FakeSheetsAPI:
    """Minimal stand-in for the Sheets v4 endpoints used by the exporter."""

    def __init__(self, create_status=200, create_body=None, write_status=200, format_status=200):
        self.create_status = create_status
        self.create_body = create_body
        self.write_status = write_status
        self.format_status = format_status
        self.requests: list[httpx.Request] = []
        self.created = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/v4/spreadsheets":
            if self.create_status != 200 or self.create_body is not None:
                return httpx.Response(self.create_status, json=self.create_body)
            self.created += 1
            sid = f"sheet-{self.created}"
            return httpx.Response(
                200,
                json={
                    "spreadsheetId": sid,
                    "spreadsheetUrl": f"https://docs.google.com/spreadsheets/d/{sid}/edit",
                    "sheets": [{"properties": {"sheetId": i}} for i in range(4)],
                },
            )
        if path.endswith("values:batchUpdate"):
            if self.write_status != 200:
                return httpx.Response(
                    self.write_status, json={"error": {"message": "Quota exceeded"}}
                )
            return httpx.Response(200, json={"totalUpdatedCells": 12})
        if self.format_status != 200:
            return httpx.Response(self.format_status, json={"error": {"message": "backend error"}})
        return httpx.Response(200, json={"replies": []})


def _export(recon_config, api, result, token="ya29.token"):
    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
            context = ReconContext(config=recon_config, http_client=client)
            exporter = GoogleSheetsExporter(context)
            return await exporter.export(result, token)

    return asyncio.run(scenario())


class TestGoogleSheetsExporter:
    def test_successful_export_returns_sheet_url(self, recon_config, sample_result):
        api = FakeSheetsAPI()
        outcome = _export(recon_config, api, sample_result)

        assert outcome.success
        assert outcome.sheet_url == "https://docs.google.com/spreadsheets/d/sheet-1/edit"
        assert outcome.to_wire() == {"success": True, "sheetUrl": outcome.sheet_url}
        assert [r.url.path for r in api.requests] == [
            "/v4/spreadsheets",
            "/v4/spreadsheets/sheet-1/values:batchUpdate",
            "/v4/spreadsheets/sheet-1:batchUpdate",
        ]
        assert all(r.headers["Authorization"] == "Bearer ya29.token" for r in api.requests)

    def test_written_values(self, recon_config, sample_result):
        api = FakeSheetsAPI()
        _export(recon_config, api, sample_result)

        create = json.loads(api.requests[0].content)
        assert [s["properties"]["title"] for s in create["sheets"]] == [
            "Summary",
            "Matches",
            "Party A Discrepancies",
            "Party B Discrepancies",
        ]

        write = json.loads(api.requests[1].content)
        assert write["valueInputOption"] == "RAW"
        ranges = {d["range"]: d["values"] for d in write["data"]}
        assert ranges["'Matches'!A1"] == [
            ["Date", "Description", "Amount"],
            ["2024-01-01", "Invoice 1", 500.0],
        ]
        assert ranges["'Party A Discrepancies'!A1"][1] == ["2024-01-05", "Credit note 7", -120.5]
        assert ["Summary", "1 match, 2 discrepancies"] in ranges["'Summary'!A1"]

    def test_exporting_twice_creates_two_sheets(self, recon_config, sample_result):
        api = FakeSheetsAPI()
        first = _export(recon_config, api, sample_result)
        second = _export(recon_config, api, sample_result)

        assert first.success and second.success
        assert first.sheet_url != second.sheet_url
        assert api.created == 2

    def test_wire_dict_is_accepted(self, recon_config, result_payload):
        outcome = _export(recon_config, FakeSheetsAPI(), result_payload)
        assert outcome.success

    @pytest.mark.parametrize("token", [None, "", "   "])
    def test_missing_token_is_auth_error(self, recon_config, sample_result, token):
        api = FakeSheetsAPI()
        outcome = _export(recon_config, api, sample_result, token=token)

        assert not outcome.success
        assert outcome.error_kind == "auth"
        assert "Re-authenticate" in outcome.message
        assert api.requests == []

    def test_expired_token_is_auth_error(self, recon_config, sample_result):
        api = FakeSheetsAPI(
            create_status=401,
            create_body={"error": {"code": 401, "message": "Request had invalid authentication credentials."}},
        )
        outcome = _export(recon_config, api, sample_result)

        assert outcome.error_kind == "auth"
        assert "invalid authentication credentials" in outcome.message
        assert outcome.to_wire() == {"success": False, "message": outcome.message}

    def test_disabled_api_is_service_error(self, recon_config, sample_result):
        api = FakeSheetsAPI(
            create_status=403,
            create_body={
                "error": {
                    "message": "Google Sheets API has not been used in project 123 before or it is disabled."
                }
            },
        )
        outcome = _export(recon_config, api, sample_result)

        assert outcome.error_kind == "service"
        assert "not enabled" in outcome.message

    def test_rejected_write_surfaces_service_message(self, recon_config, sample_result):
        outcome = _export(recon_config, FakeSheetsAPI(write_status=429), sample_result)

        assert outcome.error_kind == "service"
        assert "Quota exceeded" in outcome.message
        assert "429" in outcome.message

    def test_transport_error_is_service_error(self, recon_config, sample_result):
        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        outcome = _export(recon_config, unreachable, sample_result)

        assert outcome.error_kind == "service"
        assert "Could not reach Google Sheets" in outcome.message

    def test_malformed_result_is_rejected_before_any_call(self, recon_config):
        api = FakeSheetsAPI()
        outcome = _export(recon_config, api, {"summary": "missing lists"})

        assert not outcome.success
        assert outcome.error_kind == "service"
        assert "malformed" in outcome.message
        assert api.requests == []

    def test_formatting_failure_still_returns_sheet(self, recon_config, sample_result):
        api = FakeSheetsAPI(format_status=500)
        outcome = _export(recon_config, api, sample_result)

        assert outcome.success
        assert outcome.sheet_url == "https://docs.google.com/spreadsheets/d/sheet-1/edit"
        assert api.created == 1

    def test_failed_write_names_the_created_sheet(self, recon_config, sample_result):
        outcome = _export(recon_config, FakeSheetsAPI(write_status=500), sample_result)

        assert not outcome.success
        assert "https://docs.google.com/spreadsheets/d/sheet-1/edit" in outcome.message

    @pytest.mark.parametrize("body", [["unexpected"], "ok", 42])
    def test_non_object_reply_is_service_error(self, recon_config, sample_result, body):
        api = FakeSheetsAPI(create_body=body)
        outcome = _export(recon_config, api, sample_result)

        assert not outcome.success
        assert outcome.error_kind == "service"
        assert "unreadable response" in outcome.message
