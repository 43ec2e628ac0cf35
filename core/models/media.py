# =============================================================================
# core/models/media.py - Media Schemas
# =============================================================================

from enum import Enum

from pydantic import BaseModel, Field


class MediaState(str, Enum):
    """
    Moderation state of an uploaded file.

    Rejected uploads are deleted outright, so REJECTED is only ever a
    requested transition, never a stored state.
    """
    PENDING = "PENDING"
    PUBLISHED = "PUBLISHED"
    REJECTED = "REJECTED"


class MediaType(str, Enum):
    IMAGE = "IMAGE"
    DOCUMENT = "DOCUMENT"


IMAGE_MIME_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")
DOCUMENT_MIME_TYPES = ("application/pdf",)
ALLOWED_MIME_TYPES = IMAGE_MIME_TYPES + DOCUMENT_MIME_TYPES

# States that count toward a member's upload quota
QUOTA_STATES = (MediaState.PENDING.value, MediaState.PUBLISHED.value)


class MediaUpdate(BaseModel):
    """
    Body of PATCH /media/{id}.

    Only fields that are present are applied; `state` and `linked_person`
    require admin/editor.
    """

    state: MediaState | None = None
    title: str | None = Field(default=None, max_length=300)
    description: str | None = Field(default=None, max_length=5000)
    linked_person: str | None = None


class UploadQuota(BaseModel):
    used: int
    limit: int


class UploadResponse(BaseModel):
    """Response of POST /media/upload."""

    ok: bool = True
    id: str
    storage_url: str
    media_type: MediaType
    state: MediaState
    quota: UploadQuota
