"""
SPV Gateway - Pydantic Request/Response Schemas
=================================================

What:  Pydantic models and type aliases defining the API contract.
How:   FastAPI uses these to validate request bodies, serialize responses,
       and generate the OpenAPI documentation.

Documents are schema-less. A `Document` is an ordered mapping of string keys
to `JsonValue`, pydantic's recursive null/bool/number/string/array/object
variant, so any JSON object is accepted and round-trips unchanged.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field, JsonValue

# Ordered string-keyed mapping of arbitrary JSON values
Document = Dict[str, JsonValue]


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class GreetingResponse(BaseModel):
    """Fixed acknowledgement returned by GET /."""
    message: str = Field(description="Greeting text")


class WriteResultResponse(BaseModel):
    """
    What:  Outcome of a create-or-replace (upsert) write.
    Who:   Returned by POST /spv.

    Exactly one of these holds after a successful write:
        - matched_count == 1: an existing document was replaced
          (modified_count is 0 when the replacement was identical)
        - upserted_count == 1: a new document was inserted under upserted_id
    """
    matched_count: int = Field(description="Documents matching the _id filter")
    modified_count: int = Field(description="Documents actually changed")
    upserted_count: int = Field(description="1 when a new document was inserted, else 0")
    upserted_id: Optional[JsonValue] = Field(
        default=None,
        description="Identifier of the inserted document (null when replaced)",
    )


class UpdateStatusResponse(BaseModel):
    """
    Acknowledgement returned by PUT /spv/{id}.

    Also returned when the identifier matched no document.
    """
    status: str = Field(default="updated", description="Always 'updated'")


class HealthResponse(BaseModel):
    """Readiness report returned by GET /health."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="MongoDB connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")


# ══════════════════════════════════════════════════════════════════════════
# Error Response Model
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    What:  Standardized error body for every failed request.

    Example:
        {
            "error": "validation_error",
            "message": "Invalid ID",
            "details": {"field": "id", "id": "not-an-id"},
            "request_id": "1f0c9a2b"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Short human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")
