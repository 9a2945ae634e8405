"""
SPV Gateway - FastAPI Application Factory
===========================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   uvicorn (`uvicorn spv_gateway.main:app`) or the `spv-gateway` script.

Application Layout:
    Middleware:   Request ID → CORS → Access log
    Routes:       GET /, GET /health, POST|GET /spv, PUT|GET /spv/{id}
    Errors:       ValidationError→400 │ NotFoundError→404 │ StoreError→500

Lifecycle:
    Startup:
    1. Initialize logging
    2. Connect to MongoDB and ping the deployment (abort on failure)
    3. Publish the collection handle on app.state

    Shutdown:
    1. Close the MongoDB client
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from spv_gateway import __version__
from spv_gateway.config import settings
from spv_gateway.database import (
    close_client,
    create_client,
    get_document_collection,
    ping_collection,
)
from spv_gateway.exceptions import (
    GatewayError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from spv_gateway.middleware.cors import CORSHeadersMiddleware
from spv_gateway.middleware.logging import AccessLogMiddleware
from spv_gateway.middleware.request_id import RequestIDMiddleware, request_id_var
from spv_gateway.routes import documents, health

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Called once during startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-operation chatter from the server and the driver
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Connect to MongoDB on startup and disconnect on shutdown.

    An unreachable deployment raises StoreError out of the lifespan, which
    makes uvicorn abort startup and exit.
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("SPV Gateway %s starting up...", __version__)

    client = create_client(settings)
    collection = get_document_collection(client, settings)
    try:
        await ping_collection(collection)
    except PyMongoError as e:
        logger.critical("Could not reach MongoDB: %s", str(e))
        await client.close()
        raise StoreError(
            message="MongoDB is unreachable",
            context={"error_type": type(e).__name__},
        ) from e

    app.state.mongo_client = client
    app.state.collection = collection
    logger.info("Pinged your deployment. Connected to MongoDB.")
    logger.info("Using collection: %s.%s", settings.mongo_database, collection.name)
    logger.info("Server ready at http://%s:%d", settings.host, settings.port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("SPV Gateway shutting down...")
    await close_client(client)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and a single JSON error shape.

    Handler hierarchy:
        ValidationError         → 400 Bad Request
        RequestValidationError  → 400 Bad Request (malformed or non-object body)
        NotFoundError           → 404 Not Found
        StoreError              → 500 Internal Server Error
        GatewayError (base)     → 500 Internal Server Error
        Exception (fallback)    → 500 Internal Server Error

    Driver error text is logged server-side and never returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        """FastAPI rejected the body: bad JSON, not an object, or missing."""
        rid = request_id_var.get("")
        errors = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
            for error in exc.errors()
        ]
        logger.warning("[%s] Malformed request body: %s", rid, errors)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": "Malformed JSON body",
                "details": {"errors": errors},
                "request_id": rid,
            },
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=404,
            content={
                "error": "not_found",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(StoreError)
    async def handle_store_error(request: Request, exc: StoreError):
        rid = request_id_var.get("")
        logger.error("[%s] Store error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "store_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(GatewayError)
    async def handle_gateway_error(request: Request, exc: GatewayError):
        rid = request_id_var.get("")
        logger.error("[%s] Gateway error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Errors raised outside AccessLogMiddleware; stack trace logged only."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns a fresh instance each call; tests build their own and override
    the collection dependency.
    """
    app = FastAPI(
        title="SPV Gateway",
        description=(
            "JSON document gateway over a single MongoDB collection: "
            "upsert, field merge, list and fetch by ObjectId."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: Request ID → CORS → Access log.
    # Access log is innermost so its 500 for stray exceptions still gets
    # CORS headers and X-Request-ID; OPTIONS 204s get X-Request-ID too.
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(
        CORSHeadersMiddleware,
        allow_origin=settings.cors_allow_origin,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=", ".join(settings.cors_allow_methods_list),
        allow_headers=settings.cors_allow_headers,
    )
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(documents.router)

    return app


# uvicorn expects `spv_gateway.main:app` to be importable
app = create_app()


def run() -> None:
    """Console entry point: serve `app` on the configured host and PORT."""
    uvicorn.run(
        "spv_gateway.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
