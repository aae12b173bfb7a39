"""
CodeSnap Backend — Pydantic Request/Response Schemas
======================================================

What:  Pydantic models defining the JSON contract with the front-end.
How:   FastAPI validates request bodies against the *Request models and
       serializes responses through the *Response models (camelCase keys).
Who:   Route handlers and PasteService.

Projection:
    `PublicPaste` is the only shape a paste leaves the service in. It is
    built from the ORM row once, at the service boundary, and has no field
    for the internal integer key.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from codesnap.clock import as_utc


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class PasteCreateRequest(CamelModel):
    """
    Body of POST /api/pastes.

    `content` is optional at the schema level so that a missing value is
    reported by PasteService as a 400 validation error rather than a 422.
    """
    content: Optional[str] = Field(default=None, description="Snippet text (required, non-empty)")
    title: Optional[str] = Field(default=None, description="Defaults to 'Untitled'")
    language: Optional[str] = Field(default=None, description="Defaults to 'plaintext'")
    author_name: Optional[str] = Field(default=None, description="Defaults to 'Anonymous'")
    tags: Optional[List[str]] = Field(default=None, description="Ordered, not deduplicated")
    expiration_minutes: Optional[int] = Field(
        default=None,
        description="Minutes from now until the paste expires; null = never",
    )
    is_file: Optional[bool] = Field(default=None)
    file_name: Optional[str] = Field(default=None)
    file_type: Optional[str] = Field(default=None)


class PasteUpdateRequest(CamelModel):
    """Body of PUT /api/pastes/{pasteId}."""
    content: Optional[str] = Field(default=None, description="Replacement content (required)")
    admin_password: Optional[str] = Field(default=None, description="Admin secret")


class AdminCredentialRequest(CamelModel):
    """Body of DELETE /api/pastes/{pasteId}."""
    admin_password: Optional[str] = Field(default=None, description="Admin secret")


class AdminVerifyRequest(CamelModel):
    """Body of POST /api/admin/verify."""
    password: Optional[str] = Field(default=None)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class PublicPaste(CamelModel):
    """
    What:  Client-facing representation of a paste.
    Who:   Returned by read, list, related and update endpoints.
    """
    paste_id: str
    title: str
    content: str
    language: str
    author_name: str
    tags: List[str] = Field(default_factory=list)
    views: int
    created_at: datetime
    expires_at: Optional[datetime] = None
    is_file: bool = False
    file_name: Optional[str] = None
    file_type: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    @field_validator("tags", mode="before")
    @classmethod
    def _none_tags(cls, v):
        return [] if v is None else v

    @field_validator("is_file", mode="before")
    @classmethod
    def _none_is_file(cls, v):
        return bool(v)

    @field_validator("created_at", "expires_at")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class CreatePasteResponse(CamelModel):
    """Returned by POST /api/pastes (HTTP 201)."""
    paste_id: str = Field(description="Public id of the new paste")


class MessageResponse(BaseModel):
    message: str


class AdminVerifyResponse(CamelModel):
    """
    Result of POST /api/admin/verify.

    On success a short-lived capability token is issued; clients send it
    back in the X-Admin-Token header instead of the raw password.
    """
    success: bool
    message: str
    token: Optional[str] = None
    expires_at: Optional[datetime] = None


class LanguageOption(BaseModel):
    name: str
    value: str


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "paste with ID 'abc12345' was not found",
            "requestId": "1f2e3d4c"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, alias="requestId")


class HealthResponse(CamelModel):
    """Returned by GET /health."""
    status: str = Field(description="healthy or unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    uptime_seconds: float
