"""
CodeSnap Backend — Paste Route Handlers
=========================================

What:  /api/pastes: create, upload, read, list, related, download,
       update and delete.
How:   Pulls inputs out of the request (JSON body, multipart form, query,
       X-Admin-Token header) and hands them to PasteService. Errors raised
       by the service are formatted by the global handlers in main.py.
Who:   Called by the CodeSnap front-end.

Admin Credential:
    PUT and DELETE accept `adminPassword` in the JSON body or a capability
    token from POST /api/admin/verify in the X-Admin-Token header.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Header, Query, Response, UploadFile

from codesnap.config import Settings
from codesnap.routes.dependencies import get_app_settings, get_paste_service
from codesnap.schemas.paste import (
    AdminCredentialRequest,
    CreatePasteResponse,
    ErrorResponse,
    MessageResponse,
    PasteCreateRequest,
    PasteUpdateRequest,
    PublicPaste,
)
from codesnap.services.paste_service import PasteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Pastes"])


@router.post(
    "/pastes",
    status_code=201,
    response_model=CreatePasteResponse,
    responses={
        400: {"description": "Missing content or invalid fields", "model": ErrorResponse},
        500: {"description": "Paste could not be stored", "model": ErrorResponse},
    },
    summary="Create a paste",
)
async def create_paste(
    payload: PasteCreateRequest,
    service: PasteService = Depends(get_paste_service),
) -> CreatePasteResponse:
    paste_id = await service.create(payload)
    return CreatePasteResponse(paste_id=paste_id)


@router.post(
    "/pastes/upload",
    status_code=201,
    response_model=CreatePasteResponse,
    responses={
        400: {"description": "Unsupported type, empty file or bad encoding", "model": ErrorResponse},
        413: {"description": "File too large", "model": ErrorResponse},
    },
    summary="Create a paste from a CSV or XML file",
)
async def upload_paste(
    file: UploadFile = File(..., description="CSV or XML file (UTF-8)"),
    title: Optional[str] = Form(default=None),
    author_name: Optional[str] = Form(default=None, alias="authorName"),
    tags: Optional[str] = Form(default=None, description="Comma-separated tags"),
    expiration_minutes: Optional[int] = Form(default=None, alias="expirationMinutes"),
    service: PasteService = Depends(get_paste_service),
    settings: Settings = Depends(get_app_settings),
) -> CreatePasteResponse:
    """
    The file is read with a cap of max_upload_size + 1 bytes so an
    oversized upload is detected without buffering all of it.
    """
    try:
        data = await file.read(settings.max_upload_size + 1)
        logger.info(
            "Received upload: filename=%s, size=%d bytes",
            file.filename or "unknown",
            len(data),
        )
        paste_id = await service.create_from_upload(
            filename=file.filename or "",
            data=data,
            content_length=file.size,
            title=title,
            author_name=author_name,
            tags=_split_tags(tags),
            expiration_minutes=expiration_minutes,
        )
    finally:
        await file.close()

    return CreatePasteResponse(paste_id=paste_id)


@router.get(
    "/pastes",
    response_model=List[PublicPaste],
    summary="List recent pastes",
    description="Non-expired pastes, newest first. Optionally filtered by language.",
)
async def list_pastes(
    limit: Optional[int] = Query(default=None, ge=1, description="Maximum number of pastes"),
    language: Optional[str] = Query(default=None, description="Only pastes in this language"),
    service: PasteService = Depends(get_paste_service),
) -> List[PublicPaste]:
    return await service.list_recent(limit=limit, language=language)


@router.get(
    "/pastes/{paste_id}",
    response_model=PublicPaste,
    responses={404: {"description": "Unknown or expired paste", "model": ErrorResponse}},
    summary="Read a paste (counts as a view)",
)
async def get_paste(
    paste_id: str,
    response: Response,
    service: PasteService = Depends(get_paste_service),
) -> PublicPaste:
    paste = await service.get(paste_id)
    # every read changes `views`
    response.headers["Cache-Control"] = "no-store"
    return paste


@router.get(
    "/pastes/{paste_id}/related",
    response_model=List[PublicPaste],
    responses={404: {"description": "Unknown or expired paste", "model": ErrorResponse}},
    summary="Most viewed pastes in the same language",
)
async def get_related_pastes(
    paste_id: str,
    service: PasteService = Depends(get_paste_service),
) -> List[PublicPaste]:
    return await service.list_related(paste_id)


@router.get(
    "/pastes/{paste_id}/download",
    responses={
        200: {"description": "Raw paste content as an attachment"},
        404: {"description": "Unknown or expired paste", "model": ErrorResponse},
    },
    summary="Download a paste",
)
async def download_paste(
    paste_id: str,
    service: PasteService = Depends(get_paste_service),
) -> Response:
    payload = await service.download(paste_id)
    return Response(
        content=payload.content,
        media_type=payload.media_type,
        headers={"Content-Disposition": f'attachment; filename="{payload.filename}"'},
    )


@router.put(
    "/pastes/{paste_id}",
    response_model=PublicPaste,
    responses={
        400: {"description": "Missing content", "model": ErrorResponse},
        403: {"description": "Admin credential rejected", "model": ErrorResponse},
        404: {"description": "Unknown or expired paste", "model": ErrorResponse},
    },
    summary="Replace a paste's content (admin)",
)
async def update_paste(
    paste_id: str,
    payload: PasteUpdateRequest,
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
    service: PasteService = Depends(get_paste_service),
) -> PublicPaste:
    return await service.update(
        paste_id,
        payload.content,
        password=payload.admin_password,
        token=x_admin_token,
    )


@router.delete(
    "/pastes/{paste_id}",
    response_model=MessageResponse,
    responses={
        403: {"description": "Admin credential rejected", "model": ErrorResponse},
        404: {"description": "Unknown or expired paste", "model": ErrorResponse},
    },
    summary="Delete a paste (admin)",
)
async def delete_paste(
    paste_id: str,
    payload: Optional[AdminCredentialRequest] = None,
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
    service: PasteService = Depends(get_paste_service),
) -> MessageResponse:
    message = await service.delete(
        paste_id,
        password=payload.admin_password if payload else None,
        token=x_admin_token,
    )
    return MessageResponse(message=message)


def _split_tags(raw: Optional[str]) -> List[str]:
    """'a, b,,c' → ['a', 'b', 'c']"""
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]
