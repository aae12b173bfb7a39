"""
CodeSnap Backend — Application Package Initializer
===================================================

What: The `codesnap` package: HTTP API and persistence layer of the CodeSnap
      pastebin (share snippets and small CSV/XML files by short id).
Who:  Imported by uvicorn (`codesnap.main:app`), Alembic, and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  PasteService / AdminAuthenticator  │  ← validation, ids, expiry, admin gate
    ├─────────────────────────────────────┤
    │            PasteStore               │  ← expiration-aware queries
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
