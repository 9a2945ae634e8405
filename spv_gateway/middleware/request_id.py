"""
SPV Gateway - Request ID Middleware
=====================================

What:  Tags every response, including OPTIONS preflights, with X-Request-ID.
How:   Outermost middleware. A client-supplied X-Request-ID is reused when it
       is a plausible token; otherwise a fresh 8-hex-character ID is minted.
       The ID lives in a ContextVar so error handlers and the access log can
       quote it.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Keeps forged newlines and oversized values out of log lines
ACCEPTED_REQUEST_ID = re.compile(r"[A-Za-z0-9._:-]{1,64}")

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def resolve_request_id(supplied: str | None) -> str:
    if supplied and ACCEPTED_REQUEST_ID.fullmatch(supplied):
        return supplied
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        token = request_id_var.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
