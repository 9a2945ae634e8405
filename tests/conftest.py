"""
SPV Gateway - Test Configuration (conftest.py)
================================================

What:  Shared pytest fixtures for the test suite.
How:   No MongoDB is needed. Service tests use AsyncMock collections; API
       tests run against create_app() with the collection dependency
       overridden by InMemoryCollection, which mimics the handful of
       AsyncCollection calls the gateway makes.

Fixtures:
    ├── memory_collection: fresh InMemoryCollection
    ├── mock_collection:   MagicMock with AsyncMock write/read methods
    └── test_client:       HTTPX AsyncClient bound to a fresh app
"""

import copy
import os
from types import SimpleNamespace
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import bson
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Override settings for testing BEFORE any app imports
os.environ["MONGO_URL"] = "mongodb://localhost:27017"
os.environ["LOG_LEVEL"] = "WARNING"


# ══════════════════════════════════════════════════════════════════════════
# In-Memory Collection
# ══════════════════════════════════════════════════════════════════════════

class InMemoryCursor:
    """Stands in for AsyncCursor: only `to_list()` is used."""

    def __init__(self, documents: List[Dict[str, Any]]):
        self._documents = documents

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        if length is None:
            return list(self._documents)
        return list(self._documents[:length])


class InMemoryDatabase:
    def __init__(self):
        self.reachable = True

    async def command(self, name: str) -> Dict[str, Any]:
        from pymongo.errors import ServerSelectionTimeoutError

        if not self.reachable:
            raise ServerSelectionTimeoutError("no servers available")
        return {"ok": 1.0}


class InMemoryCollection:
    """
    Dict-backed collection keyed on `_id`, supporting the gateway's calls:
    replace_one(upsert=True), update_one($set), find({}), find_one({_id}).

    Writes are BSON-encoded first, so payloads the driver would refuse
    (integers wider than 64 bits, a `$`-prefixed replacement key) fail here
    with the same exception types.

    Set `fail_with` to an exception instance to make every call raise it.
    """

    name = "spv1"

    def __init__(self):
        self.documents: Dict[Any, Dict[str, Any]] = {}
        self.database = InMemoryDatabase()
        self.fail_with: Optional[Exception] = None
        self.calls: List[str] = []

    def _record(self, call: str) -> None:
        self.calls.append(call)
        if self.fail_with is not None:
            raise self.fail_with

    async def replace_one(self, filter: Dict[str, Any], replacement: Dict[str, Any], upsert: bool = False):
        self._record("replace_one")
        if replacement and next(iter(replacement)).startswith("$"):
            raise ValueError("replacement can not include $ operators")
        bson.encode(replacement)
        key = filter["_id"]
        if key in self.documents:
            modified = 0 if self.documents[key] == replacement else 1
            self.documents[key] = copy.deepcopy(replacement)
            return SimpleNamespace(matched_count=1, modified_count=modified, upserted_id=None)
        if not upsert:
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)
        self.documents[key] = copy.deepcopy(replacement)
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=key)

    async def update_one(self, filter: Dict[str, Any], update: Dict[str, Any]):
        self._record("update_one")
        bson.encode(update)
        key = filter["_id"]
        if key not in self.documents:
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)
        before = copy.deepcopy(self.documents[key])
        self.documents[key].update(copy.deepcopy(update["$set"]))
        modified = 0 if before == self.documents[key] else 1
        return SimpleNamespace(matched_count=1, modified_count=modified, upserted_id=None)

    def find(self, filter: Dict[str, Any]) -> InMemoryCursor:
        self._record("find")
        return InMemoryCursor([copy.deepcopy(doc) for doc in self.documents.values()])

    async def find_one(self, filter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        self._record("find_one")
        document = self.documents.get(filter["_id"])
        return copy.deepcopy(document) if document is not None else None


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def memory_collection():
    """A fresh, empty InMemoryCollection."""
    return InMemoryCollection()


@pytest.fixture
def mock_collection():
    """
    Provides a mock AsyncCollection.

    Usage:
        mock_collection.find_one.return_value = {"_id": oid}
        result = await service.get_document(mock_collection, str(oid))
    """
    collection = MagicMock()
    collection.replace_one = AsyncMock()
    collection.update_one = AsyncMock()
    collection.find_one = AsyncMock()
    collection.find = MagicMock()
    return collection


@pytest_asyncio.fixture
async def test_client(memory_collection):
    """
    HTTPX AsyncClient talking to a fresh app backed by `memory_collection`.

    ASGITransport does not run the lifespan, so no MongoDB connection is made.
    """
    from spv_gateway.database import get_collection
    from spv_gateway.main import create_app

    app = create_app()
    app.dependency_overrides[get_collection] = lambda: memory_collection
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
