"""
SPV Gateway - Access Log Middleware
=====================================

What:  One access line per document request, and the last line of defence
       for errors no exception handler claimed.
How:   Innermost middleware, so anything it returns still passes through
       the CORS and request-ID middleware on the way out.

Access line:
    PUT /spv/507f1f77bcf86cd799439011 -> 200 ok 3.2ms [1f0c9a2b] doc=507f1f77bcf86cd799439011

The outcome word classifies what happened to the request:
    ok         2xx/3xx
    rejected   400 (bad identifier, missing _id, malformed body)
    not_found  404
    failed     5xx (store error or unexpected exception)
"""

import logging
import re
import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from spv_gateway.middleware.request_id import request_id_var

logger = logging.getLogger("spv_gateway.access")

DOCUMENT_PATH = re.compile(r"^/spv/(?P<doc_id>[^/]+)/?$")


def document_id_from_path(path: str) -> Optional[str]:
    """Identifier segment of /spv/{id}, or None for any other path."""
    match = DOCUMENT_PATH.match(path)
    return match.group("doc_id") if match else None


def outcome_for_status(status: int) -> str:
    if status >= 500:
        return "failed"
    if status == 404:
        return "not_found"
    if status >= 400:
        return "rejected"
    return "ok"


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Logs each request's outcome and turns stray exceptions into a 500."""

    # Polled every few seconds by orchestrators
    SILENT_PATHS = {"/health"}

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        started = time.perf_counter()
        path = request.url.path

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "[%s] Unexpected error on %s %s: %s",
                request_id_var.get(""),
                request.method,
                path,
                str(exc),
                exc_info=True,
            )
            response = JSONResponse(
                status_code=500,
                content={
                    "error": "internal_server_error",
                    "message": "An unexpected error occurred.",
                    "request_id": request_id_var.get(""),
                },
            )

        if path in self.SILENT_PATHS:
            return response

        status = response.status_code
        outcome = outcome_for_status(status)
        level = {"failed": logging.ERROR, "ok": logging.INFO}.get(outcome, logging.WARNING)
        doc_id = document_id_from_path(path)

        logger.log(
            level,
            "%s %s -> %d %s %.1fms [%s]%s",
            request.method,
            path,
            status,
            outcome,
            (time.perf_counter() - started) * 1000,
            request_id_var.get(""),
            f" doc={doc_id}" if doc_id else "",
            extra={"outcome": outcome, "doc_id": doc_id},
        )
        return response
