"""
CodeSnap Backend — Paste Service (Business Logic)
===================================================

What:  Everything between the HTTP routes and PasteStore: input validation,
       public id generation, expiration computation, the admin gate, and
       projection of rows into PublicPaste.
How:   Constructed per request with a PasteStore, the process-wide
       AdminAuthenticator, Settings and a clock (see routes/dependencies.py).
Who:   Called by routes/pastes.py and routes/admin.py.

Flows:
    create   validate → expiry → insert (retry on id collision) → pasteId
    get      lookup → 404 | increment views → projection
    related  lookup base → same language, excluding base, by views
    update   admin gate → validate content → lookup → replace → projection
    delete   admin gate → lookup → delete

Public ids:
    `public_id_length` characters from A-Za-z0-9_- (64 symbols) drawn with
    `secrets`. A collision is caught by the unique constraint and the
    insert is retried with a new id, up to `public_id_max_attempts` times.
"""

import logging
import re
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Sequence

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from codesnap.clock import Clock, utcnow
from codesnap.config import Settings
from codesnap.exceptions import (
    AuthorizationError,
    NotFoundError,
    PublicIdCollisionError,
    ValidationError,
)
from codesnap.languages import extension_for
from codesnap.models.paste import Paste
from codesnap.schemas.paste import PasteCreateRequest, PublicPaste
from codesnap.services.admin_auth import AdminAuthenticator
from codesnap.services.paste_store import PasteStore
from codesnap.services.upload_service import MEDIA_TYPES, UploadService

logger = logging.getLogger(__name__)

PUBLIC_ID_ALPHABET = string.ascii_letters + string.digits + "_-"


def generate_public_id(length: int = 8) -> str:
    """Random URL-safe identifier of `length` characters."""
    return "".join(secrets.choice(PUBLIC_ID_ALPHABET) for _ in range(length))


async def insert_with_fresh_id(store: PasteStore, settings: Settings, **fields) -> Paste:
    """Insert with a newly generated public id, retrying on id collisions."""
    retrying = AsyncRetrying(
        stop=stop_after_attempt(settings.public_id_max_attempts),
        retry=retry_if_exception_type(PublicIdCollisionError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            public_id = generate_public_id(settings.public_id_length)
            return await store.create(public_id=public_id, **fields)


@dataclass(frozen=True)
class DownloadPayload:
    filename: str
    media_type: str
    content: str


class PasteService:
    """
    Paste lifecycle orchestration.

    Error Handling:
        Absent pastes become NotFoundError, bad input ValidationError,
        failed admin checks AuthorizationError. PersistenceError from the
        store propagates unchanged.
    """

    def __init__(
        self,
        store: PasteStore,
        authenticator: AdminAuthenticator,
        settings: Settings,
        clock: Clock = utcnow,
    ):
        self._store = store
        self._auth = authenticator
        self._settings = settings
        self._clock = clock
        self._uploads = UploadService(settings.max_upload_size)

    # ── Create ────────────────────────────────────────────────────────────

    async def create(self, request: PasteCreateRequest) -> str:
        """
        Create a paste from a JSON submission.

        Returns:
            The new public id.
        Raises:
            ValidationError: content missing/blank or negative expiration
            PersistenceError: the insert failed
        """
        content = self._require_content(request.content)
        expires_at = self._compute_expiry(request.expiration_minutes)

        paste = await self._insert(
            content=content,
            title=request.title,
            language=request.language,
            author_name=request.author_name,
            tags=request.tags,
            expires_at=expires_at,
            is_file=bool(request.is_file),
            file_name=request.file_name,
            file_type=request.file_type,
        )
        return paste.paste_id

    async def create_from_upload(
        self,
        filename: str,
        data: bytes,
        content_length: Optional[int] = None,
        title: Optional[str] = None,
        author_name: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        expiration_minutes: Optional[int] = None,
    ) -> str:
        """
        Create a file paste from an uploaded CSV or XML file.

        Raises:
            ValidationError: bad extension, empty, not UTF-8, blank text
            PayloadTooLargeError: file exceeds max_upload_size
        """
        file_type, text = self._uploads.read_upload(filename, data, content_length)
        content = self._require_content(text)
        expires_at = self._compute_expiry(expiration_minutes)

        paste = await self._insert(
            content=content,
            title=title or Path(filename).stem or None,
            language="xml" if file_type == "xml" else "plaintext",
            author_name=author_name,
            tags=tags,
            expires_at=expires_at,
            is_file=True,
            file_name=Path(filename).name,
            file_type=file_type,
        )
        return paste.paste_id

    async def _insert(self, **fields) -> Paste:
        return await insert_with_fresh_id(self._store, self._settings, **fields)

    # ── Read ──────────────────────────────────────────────────────────────

    async def get(self, public_id: str) -> PublicPaste:
        """
        Read one paste and count the view.

        The returned `views` includes this read when the increment
        succeeded. A failed increment is logged by the store and does not
        affect the response.
        """
        paste = await self._resolve(public_id)
        # projected first: a failed increment rolls back and expires the row
        view = PublicPaste.model_validate(paste)

        if await self._store.increment_views(paste.id):
            view = view.model_copy(update={"views": view.views + 1})
        return view

    async def list_recent(
        self,
        limit: Optional[int] = None,
        language: Optional[str] = None,
    ) -> List[PublicPaste]:
        pastes = await self._store.list_recent(limit=limit, language=language)
        return [PublicPaste.model_validate(p) for p in pastes]

    async def list_related(
        self,
        public_id: str,
        limit: Optional[int] = None,
    ) -> List[PublicPaste]:
        """Same-language pastes ranked by views, excluding `public_id` itself."""
        base = await self._resolve(public_id)
        related = await self._store.list_related(
            language=base.language,
            exclude_internal_id=base.id,
            limit=limit or self._settings.related_limit,
        )
        return [PublicPaste.model_validate(p) for p in related]

    async def download(self, public_id: str) -> DownloadPayload:
        """
        Content plus a filename and media type for a download response.
        Does not count as a view.
        """
        paste = await self._resolve(public_id)

        if paste.is_file:
            file_type = (paste.file_type or "txt").lower()
            filename = paste.file_name or f"paste.{file_type}"
            media_type = MEDIA_TYPES.get(file_type, "text/plain")
        else:
            slug = re.sub(r"[^A-Za-z0-9]", "_", paste.title or "").lower() or "paste"
            filename = f"{slug}{extension_for(paste.language)}"
            media_type = "text/plain"

        return DownloadPayload(
            filename=_safe_filename(filename),
            media_type=media_type,
            content=paste.content,
        )

    # ── Admin-gated mutations ─────────────────────────────────────────────

    async def update(
        self,
        public_id: str,
        content: Optional[str],
        password: Optional[str] = None,
        token: Optional[str] = None,
    ) -> PublicPaste:
        """
        Replace a paste's content.

        Order: admin gate (403) → content check (400) → lookup (404).
        Only `content` changes; the re-read does not count as a view.
        """
        self._require_admin(password, token, "update", public_id)
        new_content = self._require_content(content)

        paste = await self._resolve(public_id)
        if not await self._store.update(paste.id, new_content):
            raise NotFoundError(resource="paste", resource_id=public_id)

        updated = await self._resolve(public_id)
        return PublicPaste.model_validate(updated)

    async def delete(
        self,
        public_id: str,
        password: Optional[str] = None,
        token: Optional[str] = None,
    ) -> str:
        """
        Delete a paste. The store is not touched unless the admin check passes.

        Returns:
            Confirmation message.
        """
        self._require_admin(password, token, "delete", public_id)
        paste = await self._resolve(public_id)
        await self._store.delete(paste.id)
        return "Paste deleted successfully"

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _resolve(self, public_id: str) -> Paste:
        paste = await self._store.get_by_public_id(public_id)
        if paste is None:
            raise NotFoundError(resource="paste", resource_id=public_id)
        return paste

    def _require_admin(
        self,
        password: Optional[str],
        token: Optional[str],
        operation: str,
        public_id: str,
    ) -> None:
        if not self._auth.authorize(password=password, token=token):
            logger.warning("Rejected %s of paste %s: bad admin credential", operation, public_id)
            raise AuthorizationError(context={"operation": operation, "paste_id": public_id})

    @staticmethod
    def _require_content(content: Optional[str]) -> str:
        if content is None or not content.strip():
            raise ValidationError(
                message="content is required and must be non-empty",
                field="content",
            )
        return content

    def _compute_expiry(self, minutes: Optional[int]) -> Optional[datetime]:
        """now + minutes, or None when no expiration was requested."""
        if minutes is None:
            return None
        if minutes < 0:
            raise ValidationError(
                message="expirationMinutes must be zero or a positive number of minutes",
                field="expirationMinutes",
                context={"value": minutes},
            )
        try:
            return self._clock() + timedelta(minutes=minutes)
        except OverflowError:
            raise ValidationError(
                message="expirationMinutes is too large",
                field="expirationMinutes",
                context={"value": minutes},
            )


def _safe_filename(name: str) -> str:
    """Header-safe basename: ASCII letters, digits, dot, dash, underscore."""
    base = Path(name).name
    cleaned = re.sub(r"[^A-Za-z0-9._-]", "_", base).strip("._")
    return cleaned or "paste.txt"
