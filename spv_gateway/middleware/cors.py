"""
SPV Gateway - CORS Middleware
===============================

What:  Adds a fixed set of permissive CORS headers to every response and
       answers every OPTIONS request with an empty 204.
How:   OPTIONS never reaches the router, whatever the path, so preflights
       succeed even for routes that do not declare OPTIONS.

Starlette's CORSMiddleware only answers preflights that carry
Access-Control-Request-Method, replies 200, and echoes the allowed header
list back per request. Clients of this service expect the exact fixed
headers and a 204 for any OPTIONS.
"""

import logging
from typing import Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """
    Stamps fixed CORS headers on every response.

    Headers:
        Access-Control-Allow-Origin       allow_origin
        Access-Control-Allow-Credentials  "true" when allow_credentials
        Access-Control-Allow-Headers      allow_headers
        Access-Control-Allow-Methods      allow_methods
    """

    def __init__(
        self,
        app: ASGIApp,
        allow_origin: str = "*",
        allow_credentials: bool = True,
        allow_methods: str = "POST, OPTIONS, GET, PUT",
        allow_headers: str = "Content-Type",
    ):
        super().__init__(app)
        self.cors_headers: Dict[str, str] = {
            "Access-Control-Allow-Origin": allow_origin,
            "Access-Control-Allow-Headers": allow_headers,
            "Access-Control-Allow-Methods": allow_methods,
        }
        if allow_credentials:
            self.cors_headers["Access-Control-Allow-Credentials"] = "true"

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method == "OPTIONS":
            logger.debug("Short-circuiting OPTIONS %s", request.url.path)
            return Response(status_code=204, headers=self.cors_headers)

        response = await call_next(request)
        response.headers.update(self.cors_headers)
        return response
