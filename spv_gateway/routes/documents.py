"""
SPV Gateway - Document Route Handlers
=======================================

What:  POST/GET /spv and PUT/GET /spv/{id}.
How:   Each handler pulls the body or path identifier, hands it to
       DocumentService together with the injected collection, and returns
       the result. Failures surface as GatewayError subclasses and are
       rendered by the global handlers in main.py.

Bodies are typed as `Document`, so malformed JSON and non-object bodies are
rejected by FastAPI before the handler runs (mapped to 400 in main.py).
"""

import logging
from typing import List

from fastapi import APIRouter, Body, Depends
from pymongo.asynchronous.collection import AsyncCollection

from spv_gateway.database import get_collection
from spv_gateway.schemas.document import (
    Document,
    ErrorResponse,
    UpdateStatusResponse,
    WriteResultResponse,
)
from spv_gateway.services.document_service import document_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/spv", tags=["Documents"])


@router.post(
    "",
    response_model=WriteResultResponse,
    responses={
        400: {"description": "Missing _id or malformed JSON", "model": ErrorResponse},
        500: {"description": "Upsert failed", "model": ErrorResponse},
    },
    summary="Create or replace a document",
    description=(
        "Upserts the posted document keyed on its `_id`: an existing document "
        "with that identifier is replaced in full, otherwise a new one is inserted."
    ),
)
async def create_document(
    document: Document = Body(...),
    collection: AsyncCollection = Depends(get_collection),
) -> WriteResultResponse:
    return await document_service.create_or_replace(collection, document)


@router.put(
    "/{doc_id}",
    response_model=UpdateStatusResponse,
    responses={
        400: {"description": "Invalid ID or malformed JSON", "model": ErrorResponse},
        500: {"description": "Update failed", "model": ErrorResponse},
    },
    summary="Merge fields into a document",
    description=(
        "Sets every posted field on the document with this identifier. "
        "`_id` in the body is ignored. Reports success even if no document matched."
    ),
)
async def update_document(
    doc_id: str,
    fields: Document = Body(...),
    collection: AsyncCollection = Depends(get_collection),
) -> UpdateStatusResponse:
    return await document_service.update(collection, doc_id, fields)


@router.get(
    "",
    response_model=List[Document],
    responses={500: {"description": "Failed to fetch or decode", "model": ErrorResponse}},
    summary="List all documents",
    description="Returns every document in the collection. No pagination or ordering.",
)
async def list_documents(
    collection: AsyncCollection = Depends(get_collection),
) -> List[Document]:
    return await document_service.list_documents(collection)


@router.get(
    "/{doc_id}",
    response_model=Document,
    responses={
        400: {"description": "Invalid ID", "model": ErrorResponse},
        404: {"description": "Document not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Get a single document by ID",
)
async def get_document(
    doc_id: str,
    collection: AsyncCollection = Depends(get_collection),
) -> Document:
    """
    Get one document.

    Args:
        doc_id: 24-character hex ObjectId. Anything else returns 400
                without querying MongoDB.
    """
    return await document_service.get_document(collection, doc_id)
