"""
CodeSnap Backend — Paste SQLAlchemy Model
===========================================

What:  ORM model representing the `pastes` table.
How:   Inherits from the shared DeclarativeBase; Alembic migration 001 mirrors it.
Who:   Queried and written only by PasteStore.

Table Design:
    - id: integer autoincrement key, internal only (never serialized)
    - paste_id: short random public id, unique, immutable
    - content: TEXT, unbounded; holds raw CSV/XML for file pastes
    - tags: text[] on PostgreSQL, JSON on SQLite (tests)
    - views: bumped once per successful read-by-public-id
    - expires_at: NULL means the paste never expires

Indexes:
    uq paste_id                     → read/update/delete by public id
    idx_pastes_created_at DESC      → recent listing
    idx_pastes_language_views       → related listing (language, views DESC)
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Text, UniqueConstraint, text
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column

from codesnap.database import Base

DEFAULT_TITLE = "Untitled"
DEFAULT_LANGUAGE = "plaintext"
DEFAULT_AUTHOR = "Anonymous"

PUBLIC_ID_CONSTRAINT = "uq_pastes_paste_id"

# text[] in production, JSON list where arrays are unavailable
TagList = postgresql.ARRAY(Text()).with_variant(JSON(), "sqlite")


class Paste(Base):
    """
    A stored snippet or uploaded file, addressable by `paste_id`.

    Lifecycle:
        1. Created by PasteService.create (public id generated once)
        2. `views` incremented on every successful read by public id
        3. `content` replaced by admin-authenticated update
        4. Removed by admin delete, by a read that finds it expired,
           or by the optional expiry sweeper
    """

    __tablename__ = "pastes"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Internal key; never exposed by the API",
    )

    paste_id: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="Public short identifier",
    )

    title: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=DEFAULT_TITLE,
        server_default=text(f"'{DEFAULT_TITLE}'"),
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Snippet text, or raw CSV/XML for file pastes",
    )

    language: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=DEFAULT_LANGUAGE,
        server_default=text(f"'{DEFAULT_LANGUAGE}'"),
        comment="Syntax hint for display; not validated",
    )

    author_name: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=DEFAULT_AUTHOR,
        server_default=text(f"'{DEFAULT_AUTHOR}'"),
    )

    tags: Mapped[List[str]] = mapped_column(
        TagList,
        nullable=False,
        default=list,
    )

    views: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When this paste was created (UTC)",
    )

    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
        comment="Absolute expiry instant (UTC); NULL = never",
    )

    is_file: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    file_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # "csv" or "xml" for uploads; JSON submissions may send any string
    file_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("paste_id", name=PUBLIC_ID_CONSTRAINT),
        Index("idx_pastes_created_at", created_at.desc()),
        Index("idx_pastes_language_views", language, views.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<Paste(id={self.id}, paste_id='{self.paste_id}', "
            f"language='{self.language}', views={self.views})>"
        )
