"""
CodeSnap Backend — Paste Store (Persistence Layer)
====================================================

What:  Every query CodeSnap issues against the `pastes` table.
How:   Thin async wrapper over an AsyncSession. Each operation is a single
       statement and commits immediately; there are no multi-step
       transactions.
Who:   PasteService (per request) and the maintenance tasks.

Expiration:
    A row whose expires_at is set and not in the future is logically gone.
    Every read filters it out; get_by_public_id also deletes it when it
    finds one (lazy purge). The optional sweeper calls purge_expired().

Failure Semantics:
    Reads   → backend errors are logged and degrade to None / []
    Views   → best-effort; errors logged and swallowed
    Writes  → create/update/delete raise PersistenceError
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import delete, desc, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from codesnap.clock import Clock, as_utc, utcnow
from codesnap.exceptions import PersistenceError, PublicIdCollisionError
from codesnap.models.paste import (
    DEFAULT_AUTHOR,
    DEFAULT_LANGUAGE,
    DEFAULT_TITLE,
    PUBLIC_ID_CONSTRAINT,
    Paste,
)

logger = logging.getLogger(__name__)


class PasteStore:
    """
    Expiration-aware CRUD over the Paste table.

    Args:
        session: Async session owned by the caller (request or task)
        clock:   Source of "now" for expiration checks and created_at
    """

    def __init__(self, session: AsyncSession, clock: Clock = utcnow):
        self._session = session
        self._clock = clock

    # ── Helpers ───────────────────────────────────────────────────────────

    @staticmethod
    def _not_expired(now: datetime):
        return or_(Paste.expires_at.is_(None), Paste.expires_at > now)

    def _is_expired(self, paste: Paste) -> bool:
        expires_at = as_utc(paste.expires_at)
        return expires_at is not None and expires_at <= self._clock()

    async def _rollback_quietly(self) -> None:
        try:
            await self._session.rollback()
        except SQLAlchemyError as e:
            logger.error("Rollback failed: %s", str(e))

    # ── Writes ────────────────────────────────────────────────────────────

    async def create(
        self,
        public_id: str,
        content: str,
        title: Optional[str] = None,
        language: Optional[str] = None,
        author_name: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        expires_at: Optional[datetime] = None,
        is_file: bool = False,
        file_name: Optional[str] = None,
        file_type: Optional[str] = None,
    ) -> Paste:
        """
        Insert a new paste and return the persisted row.

        Absent or empty optional fields fall back to their defaults
        ("Untitled", "plaintext", "Anonymous", no tags).

        Raises:
            PublicIdCollisionError: public_id already taken (unique constraint)
            PersistenceError: any other backend failure, or no row produced
        """
        paste = Paste(
            paste_id=public_id,
            content=content,
            title=title or DEFAULT_TITLE,
            language=language or DEFAULT_LANGUAGE,
            author_name=author_name or DEFAULT_AUTHOR,
            tags=list(tags or []),
            created_at=self._clock(),
            expires_at=expires_at,
            is_file=bool(is_file),
            file_name=file_name or None,
            file_type=file_type or None,
        )

        try:
            self._session.add(paste)
            await self._session.flush()
            await self._session.commit()
        except IntegrityError as e:
            await self._rollback_quietly()
            if _violates_public_id(e):
                logger.warning("Public id collision on insert: %s", public_id)
                raise PublicIdCollisionError(
                    public_id,
                    context={"original_error": type(e.orig).__name__},
                )
            logger.error("Constraint violation creating paste %s: %s", public_id, str(e))
            raise PersistenceError(
                message="Could not save the paste. Please try again.",
                context={"operation": "create", "paste_id": public_id, "error_type": type(e).__name__},
            )
        except SQLAlchemyError as e:
            await self._rollback_quietly()
            logger.error("Database error creating paste %s: %s", public_id, str(e), exc_info=True)
            raise PersistenceError(
                message="Could not save the paste. Please try again.",
                context={"operation": "create", "paste_id": public_id, "error_type": type(e).__name__},
            )

        if paste.id is None:
            raise PersistenceError(
                message="Could not save the paste. Please try again.",
                context={"operation": "create", "paste_id": public_id, "reason": "no row returned"},
            )

        logger.info("Paste %s created (id=%d, language=%s)", public_id, paste.id, paste.language)
        return paste

    async def update(self, internal_id: int, new_content: str) -> bool:
        """
        Replace `content` of one paste; nothing else changes.

        Returns:
            True on success, False when the row does not exist.
        Raises:
            PersistenceError on backend failure.
        """
        try:
            paste = await self._session.get(Paste, internal_id)
            if paste is None:
                return False
            paste.content = new_content
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._rollback_quietly()
            logger.error("Database error updating paste id=%d: %s", internal_id, str(e))
            raise PersistenceError(
                message="Could not update the paste. Please try again.",
                context={"operation": "update", "internal_id": internal_id},
            )

        logger.info("Paste id=%d content replaced (%d chars)", internal_id, len(new_content))
        return True

    async def delete(self, internal_id: int) -> None:
        """
        Remove one paste. Deleting a missing id is not an error.

        Raises:
            PersistenceError on backend failure.
        """
        try:
            await self._session.execute(delete(Paste).where(Paste.id == internal_id))
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._rollback_quietly()
            logger.error("Database error deleting paste id=%d: %s", internal_id, str(e))
            raise PersistenceError(
                message="Could not delete the paste. Please try again.",
                context={"operation": "delete", "internal_id": internal_id},
            )
        logger.info("Paste id=%d deleted", internal_id)

    async def increment_views(self, internal_id: int) -> bool:
        """
        Atomically bump the view counter (`views = views + 1`). A row loaded
        in this session sees the new count.

        Best-effort: failures are logged and swallowed.

        Returns:
            True if the update was executed, False if it failed.
        """
        try:
            await self._session.execute(
                update(Paste)
                .where(Paste.id == internal_id)
                .values(views=Paste.views + 1)
            )
            await self._session.commit()
            return True
        except SQLAlchemyError as e:
            await self._rollback_quietly()
            logger.warning("Could not increment views for paste id=%d: %s", internal_id, str(e))
            return False

    async def purge_expired(self) -> int:
        """
        Delete every expired row. Used by the maintenance sweeper only.

        Returns:
            Number of rows removed.
        Raises:
            PersistenceError on backend failure.
        """
        now = self._clock()
        try:
            result = await self._session.execute(
                delete(Paste)
                .where(Paste.expires_at.is_not(None), Paste.expires_at <= now)
                .execution_options(synchronize_session=False)
            )
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._rollback_quietly()
            logger.error("Database error purging expired pastes: %s", str(e))
            raise PersistenceError(
                message="Could not purge expired pastes.",
                context={"operation": "purge_expired"},
            )
        removed = result.rowcount or 0
        if removed:
            logger.info("Purged %d expired paste(s)", removed)
        return removed

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_by_public_id(self, public_id: str) -> Optional[Paste]:
        """
        Fetch a live paste by public id.

        An expired row is deleted on the spot and reported as absent.
        Backend errors are logged and reported as absent.
        """
        try:
            result = await self._session.execute(
                select(Paste).where(Paste.paste_id == public_id)
            )
            paste = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            await self._rollback_quietly()
            logger.error("Database error fetching paste %s: %s", public_id, str(e))
            return None

        if paste is None:
            return None

        if self._is_expired(paste):
            logger.info("Paste %s expired at %s; purging", public_id, paste.expires_at)
            await self._purge_one(paste.id, public_id)
            return None

        return paste

    async def get_by_internal_id(self, internal_id: int) -> Optional[Paste]:
        """Fetch a live paste by internal key; expired or missing → None."""
        try:
            result = await self._session.execute(
                select(Paste).where(
                    Paste.id == internal_id,
                    self._not_expired(self._clock()),
                )
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            await self._rollback_quietly()
            logger.error("Database error fetching paste id=%d: %s", internal_id, str(e))
            return None

    async def list_recent(
        self,
        limit: Optional[int] = None,
        language: Optional[str] = None,
    ) -> List[Paste]:
        """
        Live pastes, newest first.

        Args:
            limit: Maximum rows; None returns all
            language: Restrict to one language when given
        """
        query = (
            select(Paste)
            .where(self._not_expired(self._clock()))
            .order_by(desc(Paste.created_at), desc(Paste.id))
        )
        if language:
            query = query.where(Paste.language == language)
        if limit is not None:
            query = query.limit(limit)

        try:
            result = await self._session.execute(query)
            pastes = list(result.scalars().all())
        except SQLAlchemyError as e:
            await self._rollback_quietly()
            logger.error("Database error listing recent pastes: %s", str(e))
            return []

        logger.debug("Fetched %d recent paste(s)", len(pastes))
        return pastes

    async def list_related(
        self,
        language: str,
        exclude_internal_id: Optional[int] = None,
        limit: int = 3,
    ) -> List[Paste]:
        """
        Live pastes in `language`, most viewed first.

        Rows with equal view counts come back in whatever order the
        database produces; that order is not stable.
        """
        query = select(Paste).where(
            Paste.language == language,
            self._not_expired(self._clock()),
        )
        if exclude_internal_id is not None:
            query = query.where(Paste.id != exclude_internal_id)
        query = query.order_by(desc(Paste.views)).limit(limit)

        try:
            result = await self._session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            await self._rollback_quietly()
            logger.error("Database error listing related pastes for %s: %s", language, str(e))
            return []

    async def count(self) -> int:
        """Total number of rows, expired ones included."""
        result = await self._session.execute(select(func.count(Paste.id)))
        return result.scalar() or 0

    # ── Internal ──────────────────────────────────────────────────────────

    async def _purge_one(self, internal_id: int, public_id: str) -> None:
        try:
            await self._session.execute(delete(Paste).where(Paste.id == internal_id))
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._rollback_quietly()
            logger.warning("Could not purge expired paste %s: %s", public_id, str(e))


def _violates_public_id(error: IntegrityError) -> bool:
    """True when the unique constraint on paste_id was the one violated."""
    # PostgreSQL names the constraint, SQLite the column (pastes.paste_id)
    return PUBLIC_ID_CONSTRAINT in str(error.orig) or "pastes.paste_id" in str(error.orig)
