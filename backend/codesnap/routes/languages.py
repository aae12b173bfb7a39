"""
CodeSnap Backend — Languages Route
====================================

GET /api/languages: the language options offered by the create form.
"""

from typing import List

from fastapi import APIRouter

from codesnap.languages import SUPPORTED_LANGUAGES
from codesnap.schemas.paste import LanguageOption

router = APIRouter(prefix="/api", tags=["Languages"])


@router.get(
    "/languages",
    response_model=List[LanguageOption],
    summary="Supported languages",
)
async def list_languages() -> List[LanguageOption]:
    return [LanguageOption(**option) for option in SUPPORTED_LANGUAGES]
