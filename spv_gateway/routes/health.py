"""
SPV Gateway - Health Check Routes
===================================

What:  GET / (fixed greeting) and GET /health (readiness check).
Who:   Called by clients checking the service is up, and by load balancers
       or Docker health checks.

Status levels for /health:
    - healthy:   MongoDB answered a ping
    - unhealthy: MongoDB did not answer
"""

import logging
import time

from fastapi import APIRouter, Depends
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from spv_gateway import __version__
from spv_gateway.database import get_collection, ping_collection
from spv_gateway.schemas.document import GreetingResponse, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

GREETING = "Hello Mito!"

# Initialized once when the module loads
_start_time = time.time()


@router.get(
    "/",
    response_model=GreetingResponse,
    summary="Service greeting",
    description="Returns a fixed acknowledgement. Never touches MongoDB.",
)
async def greeting() -> GreetingResponse:
    return GreetingResponse(message=GREETING)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description=(
        "Pings MongoDB and reports whether the gateway can serve document "
        "requests. Always answers 200; the body carries the status."
    ),
)
async def health_check(
    collection: AsyncCollection = Depends(get_collection),
) -> HealthResponse:
    """
    Check the service and its single dependency.

    A `ping` command is the cheapest round trip that proves the
    deployment is reachable.
    """
    db_status = "connected"
    overall = "healthy"

    try:
        await ping_collection(collection)
    except PyMongoError as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: MongoDB unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
