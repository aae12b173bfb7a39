"""
CodeSnap Backend — Admin Route
================================

What:  POST /api/admin/verify: checks the admin password and, on success,
       issues a short-lived capability token for X-Admin-Token.
How:   Always answers 200; `success` carries the verdict. The front-end
       uses it to show or hide the edit/delete controls, while every
       mutating request is verified again on the server.
"""

import logging

from fastapi import APIRouter, Depends

from codesnap.routes.dependencies import get_authenticator
from codesnap.schemas.paste import AdminVerifyRequest, AdminVerifyResponse
from codesnap.services.admin_auth import AdminAuthenticator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.post(
    "/verify",
    response_model=AdminVerifyResponse,
    response_model_exclude_none=True,
    summary="Verify the admin password",
)
async def verify_admin(
    payload: AdminVerifyRequest,
    authenticator: AdminAuthenticator = Depends(get_authenticator),
) -> AdminVerifyResponse:
    if not authenticator.verify(payload.password):
        logger.warning("Admin verification failed")
        return AdminVerifyResponse(success=False, message="Invalid admin password")

    issued = authenticator.issue_token()
    return AdminVerifyResponse(
        success=True,
        message="Admin verified",
        token=issued.token,
        expires_at=issued.expires_at,
    )
