"""
CodeSnap Backend — Route Dependencies
=======================================

FastAPI dependencies that assemble the per-request service graph from
app.state. Tests swap pieces out through `app.dependency_overrides`
(most often `get_clock`).
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from codesnap.clock import Clock, utcnow
from codesnap.config import Settings
from codesnap.database import get_db_session
from codesnap.services.admin_auth import AdminAuthenticator
from codesnap.services.paste_service import PasteService
from codesnap.services.paste_store import PasteStore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_clock() -> Clock:
    return utcnow


def get_authenticator(request: Request) -> AdminAuthenticator:
    return request.app.state.authenticator


def get_paste_store(
    db: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> PasteStore:
    return PasteStore(db, clock=clock)


def get_paste_service(
    store: PasteStore = Depends(get_paste_store),
    authenticator: AdminAuthenticator = Depends(get_authenticator),
    settings: Settings = Depends(get_app_settings),
    clock: Clock = Depends(get_clock),
) -> PasteService:
    return PasteService(store, authenticator, settings, clock=clock)
