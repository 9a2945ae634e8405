"""
SPV Gateway - Middleware Tests
================================

What:  CORS headers and OPTIONS short-circuit, request ID propagation,
       access-log outcome lines and the 500 for unhandled exceptions.
"""

import logging

import pytest

from spv_gateway.middleware.logging import document_id_from_path, outcome_for_status
from spv_gateway.middleware.request_id import resolve_request_id

VALID_ID = "507f1f77bcf86cd799439011"

EXPECTED_CORS = {
    "access-control-allow-origin": "*",
    "access-control-allow-credentials": "true",
    "access-control-allow-methods": "POST, OPTIONS, GET, PUT",
    "access-control-allow-headers": (
        "Content-Type, Content-Length, Accept-Encoding, X-CSRF-Token, "
        "Authorization, accept, origin, Cache-Control, X-Requested-With"
    ),
}


class TestCORSHeaders:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/", "/spv", f"/spv/{VALID_ID}", "/unknown"])
    async def test_options_short_circuits_with_204(self, test_client, memory_collection, path):
        response = await test_client.options(path)
        assert response.status_code == 204
        assert response.content == b""
        for header, value in EXPECTED_CORS.items():
            assert response.headers[header] == value
        assert memory_collection.calls == []

    @pytest.mark.asyncio
    async def test_headers_on_success(self, test_client):
        response = await test_client.get("/")
        for header, value in EXPECTED_CORS.items():
            assert response.headers[header] == value

    @pytest.mark.asyncio
    async def test_headers_on_error(self, test_client):
        response = await test_client.get("/spv/bad")
        assert response.status_code == 400
        assert response.headers["access-control-allow-origin"] == "*"


class TestRequestID:

    @pytest.mark.asyncio
    async def test_generated_when_absent(self, test_client):
        response = await test_client.get("/")
        assert len(response.headers["x-request-id"]) == 8

    @pytest.mark.asyncio
    async def test_client_id_echoed_in_header_and_error_body(self, test_client):
        response = await test_client.get("/spv/bad", headers={"X-Request-ID": "trace-123"})
        assert response.headers["x-request-id"] == "trace-123"
        assert response.json()["request_id"] == "trace-123"

    @pytest.mark.asyncio
    async def test_present_on_options(self, test_client):
        response = await test_client.options("/spv", headers={"X-Request-ID": "pre-1"})
        assert response.status_code == 204
        assert response.headers["x-request-id"] == "pre-1"

    @pytest.mark.parametrize("supplied", [None, "", "a b", "x" * 65, "id\nforged"])
    def test_unusable_client_id_replaced(self, supplied):
        rid = resolve_request_id(supplied)
        assert rid != supplied
        assert len(rid) == 8

    def test_usable_client_id_kept(self):
        assert resolve_request_id("svc.a:42_b-c") == "svc.a:42_b-c"


class TestUnhandledException:

    @pytest.mark.asyncio
    async def test_500_keeps_cors_and_request_id(self, test_client, memory_collection):
        memory_collection.fail_with = RuntimeError("boom")

        response = await test_client.get("/spv", headers={"X-Request-ID": "trace-500"})

        assert response.status_code == 500
        assert response.json() == {
            "error": "internal_server_error",
            "message": "An unexpected error occurred.",
            "request_id": "trace-500",
        }
        assert response.headers["x-request-id"] == "trace-500"
        for header, value in EXPECTED_CORS.items():
            assert response.headers[header] == value
        assert "boom" not in response.text

    @pytest.mark.asyncio
    async def test_generated_request_id_in_body(self, test_client, memory_collection):
        memory_collection.fail_with = RuntimeError("boom")

        response = await test_client.get(f"/spv/{VALID_ID}")

        assert response.status_code == 500
        assert response.json()["request_id"] == response.headers["x-request-id"]
        assert len(response.headers["x-request-id"]) == 8


class TestAccessLog:

    @pytest.mark.parametrize(
        "path, expected",
        [
            (f"/spv/{VALID_ID}", VALID_ID),
            ("/spv/customer-42/", "customer-42"),
            ("/spv", None),
            ("/", None),
            ("/spv/a/b", None),
        ],
    )
    def test_document_id_from_path(self, path, expected):
        assert document_id_from_path(path) == expected

    @pytest.mark.parametrize(
        "status, expected",
        [(200, "ok"), (204, "ok"), (400, "rejected"), (404, "not_found"), (500, "failed")],
    )
    def test_outcome_for_status(self, status, expected):
        assert outcome_for_status(status) == expected

    @pytest.mark.asyncio
    async def test_line_names_document_and_outcome(self, test_client, caplog):
        with caplog.at_level(logging.INFO, logger="spv_gateway.access"):
            await test_client.get(f"/spv/{VALID_ID}", headers={"X-Request-ID": "trace-404"})

        records = [r for r in caplog.records if r.name == "spv_gateway.access"]
        assert len(records) == 1
        record = records[0]
        assert record.levelno == logging.WARNING
        assert record.outcome == "not_found"
        assert record.doc_id == VALID_ID
        message = record.getMessage()
        assert f"GET /spv/{VALID_ID} -> 404 not_found" in message
        assert "[trace-404]" in message
        assert message.endswith(f"doc={VALID_ID}")

    @pytest.mark.asyncio
    async def test_unhandled_exception_logged_as_failed(self, test_client, memory_collection, caplog):
        memory_collection.fail_with = RuntimeError("boom")

        with caplog.at_level(logging.INFO, logger="spv_gateway.access"):
            await test_client.get("/spv")

        outcomes = [getattr(r, "outcome", None) for r in caplog.records if r.name == "spv_gateway.access"]
        assert outcomes == [None, "failed"]

    @pytest.mark.asyncio
    async def test_health_not_logged(self, test_client, caplog):
        with caplog.at_level(logging.INFO, logger="spv_gateway.access"):
            await test_client.get("/health")

        assert [r for r in caplog.records if r.name == "spv_gateway.access"] == []
