"""
SPV Gateway - Document Service
================================

What:  The four store operations behind /spv, plus identifier parsing and
       BSON-to-JSON encoding shared by the handlers.
How:   Each method performs exactly one call against the collection it is
       given and translates driver failures into StoreError.
Who:   Called by route handlers in routes/documents.py.

DocumentService is stateless. The collection is passed in on every call, so
tests can hand it an AsyncMock or an in-memory double.

Identifier rules:
    - Path identifiers must be 24 hex characters (a BSON ObjectId). Anything
      else is rejected with ValidationError before the store is touched.
    - On create, an `_id` that is a 24-hex string is stored as an ObjectId so
      the path-based endpoints can address it. Other `_id` values are stored
      as given.
"""

import logging
from typing import Any, Dict, List

from bson import Decimal128, ObjectId
from bson.errors import BSONError
from fastapi.encoders import jsonable_encoder
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from spv_gateway.exceptions import NotFoundError, StoreError, ValidationError
from spv_gateway.schemas.document import UpdateStatusResponse, WriteResultResponse

logger = logging.getLogger(__name__)

ID_FIELD = "_id"

# Raised by the driver for writes: server/network failures, plus client-side
# encoding of payloads BSON cannot hold (ints over 8 bytes, `$`-prefixed
# replacement keys, invalid documents).
WRITE_ERRORS = (PyMongoError, BSONError, OverflowError, ValueError)

# BSON types with no native JSON form
BSON_ENCODERS = {
    ObjectId: str,
    Decimal128: lambda value: str(value.to_decimal()),
}


def parse_object_id(raw_id: str) -> ObjectId:
    """
    Parse a path identifier into an ObjectId.

    Raises:
        ValidationError: `raw_id` is not a 24-character hex string
    """
    if not isinstance(raw_id, str) or not ObjectId.is_valid(raw_id):
        raise ValidationError(message="Invalid ID", field="id", context={"id": raw_id})
    return ObjectId(raw_id)


def normalize_identifier(value: Any) -> Any:
    """Store-native form of a client-supplied `_id`."""
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


def encode_document(document: Any) -> Any:
    """Convert a BSON document (or any nested value) into plain JSON data."""
    return jsonable_encoder(document, custom_encoder=BSON_ENCODERS)


class DocumentService:
    """
    Business logic layer for the document collection.

    Responsibilities:
        - create_or_replace(): upsert keyed on `_id`
        - update(): `$set` merge on a document addressed by ObjectId
        - list_documents(): every document, unordered
        - get_document(): single document with not-found handling
    """

    async def create_or_replace(
        self, collection: AsyncCollection, document: Dict[str, Any]
    ) -> WriteResultResponse:
        """
        Insert `document`, or replace the one sharing its `_id`.

        Raises:
            ValidationError: `_id` is missing (→ 400)
            StoreError: the write could not complete (→ 500)
        """
        if ID_FIELD not in document:
            raise ValidationError(message="Missing _id field for upsert", field=ID_FIELD)

        replacement = dict(document)
        replacement[ID_FIELD] = normalize_identifier(document[ID_FIELD])

        try:
            result = await collection.replace_one(
                {ID_FIELD: replacement[ID_FIELD]},
                replacement,
                upsert=True,
            )
        except WRITE_ERRORS as e:
            logger.error("Upsert of %r failed: %s", document[ID_FIELD], str(e))
            raise StoreError(
                message="Upsert failed",
                context={"id": str(document[ID_FIELD]), "error_type": type(e).__name__},
            ) from e

        upserted = result.upserted_id is not None
        logger.info(
            "Upserted document %r (matched=%d, modified=%d, inserted=%s)",
            document[ID_FIELD],
            result.matched_count,
            result.modified_count,
            upserted,
        )
        return WriteResultResponse(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
            upserted_count=1 if upserted else 0,
            upserted_id=encode_document(result.upserted_id),
        )

    async def update(
        self, collection: AsyncCollection, raw_id: str, fields: Dict[str, Any]
    ) -> UpdateStatusResponse:
        """
        Merge `fields` into the document addressed by `raw_id`.

        `_id` is dropped from `fields`; a document's identifier never changes
        after creation. An identifier that matches nothing still reports
        success.

        Raises:
            ValidationError: `raw_id` is malformed (→ 400)
            StoreError: the write could not complete (→ 500)
        """
        object_id = parse_object_id(raw_id)
        changes = {key: value for key, value in fields.items() if key != ID_FIELD}

        try:
            result = await collection.update_one({ID_FIELD: object_id}, {"$set": changes})
        except WRITE_ERRORS as e:
            logger.error("Update of %s failed: %s", raw_id, str(e))
            raise StoreError(
                message="Update failed",
                context={"id": raw_id, "error_type": type(e).__name__},
            ) from e

        if result.matched_count == 0:
            logger.warning("Update of %s matched no document; reporting success", raw_id)
        return UpdateStatusResponse(status="updated")

    async def list_documents(self, collection: AsyncCollection) -> List[Dict[str, Any]]:
        """
        Return every document in the collection.

        Raises:
            StoreError: the query failed ("Failed to fetch") or the result set
                could not be read/decoded ("Decoding failed") (→ 500)
        """
        try:
            cursor = collection.find({})
        except PyMongoError as e:
            logger.error("Listing documents failed: %s", str(e))
            raise StoreError(
                message="Failed to fetch",
                context={"error_type": type(e).__name__},
            ) from e

        try:
            documents = await cursor.to_list()
        except (PyMongoError, BSONError) as e:
            logger.error("Reading document cursor failed: %s", str(e), exc_info=True)
            raise StoreError(
                message="Decoding failed",
                context={"error_type": type(e).__name__},
            ) from e

        return [encode_document(document) for document in documents]

    async def get_document(self, collection: AsyncCollection, raw_id: str) -> Dict[str, Any]:
        """
        Return the document addressed by `raw_id`.

        Raises:
            ValidationError: `raw_id` is malformed (→ 400)
            NotFoundError: no document has that identifier (→ 404)
            StoreError: the query failed (→ 500)
        """
        object_id = parse_object_id(raw_id)

        try:
            document = await collection.find_one({ID_FIELD: object_id})
        except (PyMongoError, BSONError) as e:
            logger.error("Fetching document %s failed: %s", raw_id, str(e))
            raise StoreError(
                message="Failed to fetch",
                context={"id": raw_id, "error_type": type(e).__name__},
            ) from e

        if document is None:
            raise NotFoundError(resource="document", resource_id=raw_id)

        return encode_document(document)


# Stateless; one shared instance
document_service = DocumentService()
