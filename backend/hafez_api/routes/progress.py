"""
Hafez Quraan Backend — Progress Routes
========================================

What:  POST /save-progress (replace the user's whole snapshot) and
       GET /load-progress/{email} (read it back, defaults for unknown users).
How:   Thin handlers; ProgressService owns validation and persistence.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hafez_api.database import get_db_session
from hafez_api.schemas.common import ErrorResponse, MessageResponse
from hafez_api.schemas.progress import LoadProgressResponse, SaveProgressRequest
from hafez_api.services.progress_service import progress_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Progress"])


@router.post(
    "/save-progress",
    response_model=MessageResponse,
    responses={
        400: {"description": "Missing email or duplicate entries", "model": ErrorResponse},
        500: {"description": "Storage failure; nothing was saved", "model": ErrorResponse},
    },
    summary="Replace a user's stored progress",
    description=(
        "The body is the client's complete state. Every verse flag, recited page and "
        "preference stored for the email is replaced; omitted preferences reset to defaults."
    ),
)
async def save_progress(
    body: SaveProgressRequest,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await progress_service.save_progress(db, body)
    return MessageResponse(message="Progress saved successfully")


@router.get(
    "/load-progress/{email}",
    response_model=LoadProgressResponse,
    responses={
        400: {"description": "Malformed email", "model": ErrorResponse},
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="Load a user's stored progress",
)
async def load_progress(
    email: str,
    db: AsyncSession = Depends(get_db_session),
) -> LoadProgressResponse:
    return await progress_service.load_progress(db, email)
