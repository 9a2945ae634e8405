"""
SPV Gateway - Custom Exception Hierarchy
==========================================

What:  Application-specific exceptions for the three ways a request can fail.
How:   Each exception carries a short client-facing message and an optional
       context dict. Global handlers (registered in main.py) turn them into
       structured JSON error responses with the matching HTTP status.
Who:   Raised by the document service and the identifier parser.

Exception Hierarchy:
    GatewayError (base)
    ├── ValidationError   → 400 Bad Request
    ├── NotFoundError     → 404 Not Found
    └── StoreError        → 500 Internal Server Error

None of these are retried. Each one ends its request.
"""

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """
    Base exception for all gateway errors.

    Attributes:
        message:  Short error description, returned in the API response
        context:  Additional debug info (logged, only returned for validation errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(GatewayError):
    """
    Raised when client input is unusable as sent.

    When:    Malformed identifier, missing `_id` on create, malformed JSON body.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(GatewayError):
    """
    Raised when no document matches a well-formed identifier.

    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "document",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        # Short and fixed; the identifier is carried in context
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class StoreError(GatewayError):
    """
    Raised when communicating with or executing against MongoDB fails.

    When:    Network failure, server selection timeout, write error, a cursor
             that cannot be read or decoded, or an unreachable store at startup.
    HTTP:    500 Internal Server Error

    The driver's error text goes into `context` and the server log only.
    """

    def __init__(
        self,
        message: str = "A database error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
