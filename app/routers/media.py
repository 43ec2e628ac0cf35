# =============================================================================
# app/routers/media.py - Media Endpoints
# =============================================================================
# Handles media uploads (multipart) and moderation.
#   POST   /media/upload   file + optional title/description/linked_person
#   PATCH  /media/{id}     approve/reject/edit
#   DELETE /media/{id}     owner or admin
# =============================================================================

import logging
from typing import Annotated

from fastapi import APIRouter, File, Form, Path, UploadFile

from app.auth import CurrentProfile
from app.dependencies import MediaServiceDep
from app.exceptions import InvalidInputError
from core.models import MediaUpdate, UploadResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/media/upload", response_model=UploadResponse)
async def upload_media(
    profile: CurrentProfile,
    service: MediaServiceDep,
    file: Annotated[UploadFile | None, File(description="Image (JPG/PNG/WebP/GIF) or PDF")] = None,
    title: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    linked_person: Annotated[str | None, Form()] = None,
):
    """
    Upload a photo or document.

    Members are limited to a number of pending+published files and their
    uploads wait for moderation; admin/editor uploads publish immediately.
    """
    if file is None:
        raise InvalidInputError("Không có file")

    content = await file.read()
    logger.info(f"Upload from {profile.id}: {file.filename} ({file.content_type}, {len(content)} bytes)")

    return service.upload(
        profile,
        file_name=file.filename or "file",
        content_type=file.content_type or "",
        content=content,
        title=title,
        description=description,
        linked_person=linked_person,
    )


@router.patch("/media/{media_id}")
async def update_media(
    media_id: Annotated[str, Path(description="Media id")],
    body: MediaUpdate,
    profile: CurrentProfile,
    service: MediaServiceDep,
):
    """
    Moderate or edit a media item.

    `state` and `linked_person` need admin/editor. `state: REJECTED`
    deletes the file and its record.
    """
    return service.update(profile, media_id, body)


@router.delete("/media/{media_id}")
async def delete_media(
    media_id: Annotated[str, Path(description="Media id")],
    profile: CurrentProfile,
    service: MediaServiceDep,
):
    service.delete(profile, media_id)
    return {"ok": True}
