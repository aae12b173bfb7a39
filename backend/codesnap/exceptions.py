"""
CodeSnap Backend — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for each error outcome of the API.
How:   Each exception carries a user-facing message and an optional context
       dict. Global exception handlers (registered in main.py) turn them into
       structured JSON error responses with the right status code. Client
       errors return their context as `details`; server errors only log it.
Who:   Raised by services, the store and middleware; caught by global handlers.

Exception Hierarchy:
    CodeSnapError (base)             → 500
    ├── ValidationError              → 400 Bad Request (client can fix)
    ├── NotFoundError                → 404 Not Found (unknown or expired id)
    ├── AuthorizationError           → 403 Forbidden (admin credential mismatch)
    ├── PayloadTooLargeError         → 413 Payload Too Large
    ├── RateLimitExceededError       → 429 Too Many Requests
    └── PersistenceError             → 500 Internal Server Error
        └── PublicIdCollisionError   → 500 once retries are exhausted
"""

from typing import Any, Dict, Optional


class CodeSnapError(Exception):
    """
    Base exception for all CodeSnap application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(CodeSnapError):
    """
    Raised when client input fails a business rule.

    When:    Blank content, negative expiration, unsupported upload type,
             undecodable upload.
    HTTP:    400 Bad Request

    Request-schema errors (wrong JSON types) are still FastAPI's 422.

    Example response:
        {
            "error": "validation_error",
            "message": "content is required and must be non-empty",
            "details": {"field": "content"}
        }
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


class NotFoundError(CodeSnapError):
    """
    Raised when a requested paste does not exist or has expired.

    The store answers "absent" with None; the service converts that into
    this exception. Expired and never-existing pastes are indistinguishable.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class AuthorizationError(CodeSnapError):
    """
    Raised when an admin-gated operation is attempted without a valid
    admin password or capability token.

    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "Unauthorized: admin access required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PayloadTooLargeError(CodeSnapError):
    """
    Raised when an uploaded file exceeds `max_upload_size`.

    HTTP:    413 Payload Too Large
    """

    def __init__(
        self,
        max_size: int,
        actual_size: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        max_kb = max_size / 1024
        message = f"File is too large. Maximum size is {max_kb:.0f}KB. Please upload a smaller file."
        ctx = context or {}
        ctx["max_size"] = max_size
        if actual_size is not None:
            ctx["actual_size"] = actual_size
        super().__init__(message=message, context=ctx)


class PersistenceError(CodeSnapError):
    """
    Raised when a write against the database fails.

    When:    Insert returned no row, connection lost mid-write, constraint
             violation, etc. Reads do not raise this; they degrade to
             "not found" or an empty list.
    HTTP:    500 Internal Server Error

    The message returned to the client is always generic. SQL text and
    driver errors are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PublicIdCollisionError(PersistenceError):
    """
    Raised by the store when an insert hits the unique constraint on the
    public id. The service retries with a fresh id; if every attempt
    collides the error reaches the client as a 500.
    """

    def __init__(
        self,
        public_id: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["public_id"] = public_id
        super().__init__(
            message="Could not allocate a unique paste id. Please try again.",
            context=ctx,
        )
        self.public_id = public_id


class RateLimitExceededError(CodeSnapError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests, with a Retry-After header.
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
