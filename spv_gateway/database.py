"""
SPV Gateway - MongoDB Connection Management
=============================================

What:  Async MongoDB client, the shared collection handle, and the FastAPI
       dependency that hands it to route handlers.
How:   The lifespan (main.py) builds one AsyncMongoClient, pings the
       deployment, and stores the collection on `app.state`. Handlers receive
       it through `Depends(get_collection)`; nothing reads a module global.
When:  Client is created once at startup and closed at shutdown.

Example usage in a route:
    @router.get("/spv")
    async def list_documents(collection: AsyncCollection = Depends(get_collection)):
        return await document_service.list_documents(collection)
"""

import logging

from fastapi import Request
from pymongo import AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.server_api import ServerApi

from spv_gateway.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def create_client(config: Settings = default_settings) -> AsyncMongoClient:
    """
    Build the async client with the Stable API version pinned.

    The client connects lazily; `ping_collection` is what proves the
    deployment is reachable.
    """
    return AsyncMongoClient(
        config.mongo_url,
        server_api=ServerApi(config.mongo_server_api_version),
        serverSelectionTimeoutMS=config.mongo_server_selection_timeout_ms,
    )


def get_document_collection(
    client: AsyncMongoClient, config: Settings = default_settings
) -> AsyncCollection:
    """Resolve the configured database and collection on a client."""
    return client[config.mongo_database][config.mongo_collection]


async def ping_collection(collection: AsyncCollection) -> None:
    """
    Send a `ping` command to the collection's database.

    Raises:
        pymongo.errors.PyMongoError: the deployment could not be reached
    """
    await collection.database.command("ping")


# ── Dependency ────────────────────────────────────────────────────────────
def get_collection(request: Request) -> AsyncCollection:
    """
    FastAPI dependency returning the collection handle set up in the lifespan.

    Tests replace this with `app.dependency_overrides[get_collection]`.
    """
    return request.app.state.collection


async def close_client(client: AsyncMongoClient) -> None:
    """Close all pooled connections. Called during application shutdown."""
    await client.close()
    logger.info("MongoDB client closed")
