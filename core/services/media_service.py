# =============================================================================
# core/services/media_service.py - Media Upload Gate
# =============================================================================
# Upload flow (store then record, no transactions):
#
#   1. quota:    members may hold at most N PENDING+PUBLISHED files
#   2. validate: MIME allowlist and per-type size limit
#   3. store:    object goes to the media bucket
#   4. record:   media row inserted; if this fails the object is removed
#   5. avatar:   a published image linked to a person without an avatar
#                becomes that person's avatar
#
# Admin/editor uploads skip the quota and are published immediately.
# =============================================================================

import logging
import re
import time
from typing import Any

from app.config import settings
from app.exceptions import (
    FileTooLargeError,
    ForbiddenError,
    InvalidFileTypeError,
    InvalidInputError,
    NotFoundError,
    QuotaExceededError,
    StorageUploadError,
    UpstreamError,
)
from core.models import (
    ALLOWED_MIME_TYPES,
    IMAGE_MIME_TYPES,
    MediaState,
    MediaType,
    MediaUpdate,
    Profile,
)
from core.models.media import QUOTA_STATES
from core.services.people_service import PeopleService
from lib.object_store import ObjectStore, ObjectStoreError
from lib.repository import Repository, RepositoryError

logger = logging.getLogger(__name__)

TABLE = "media"

# app_settings keys that override the configured limits
UPLOAD_LIMIT_KEY = "media_upload_limit"
MAX_IMAGE_SIZE_KEY = "media_max_image_size_mb"


def safe_file_name(name: str) -> str:
    """Replace anything outside [a-zA-Z0-9._-] with '_'."""
    return re.sub(r"[^a-zA-Z0-9._-]", "_", name or "file")


class MediaService:
    """
    Service for media uploads and moderation.

    Example:
        service = MediaService(repo, store)
        result = service.upload(profile, "photo.jpg", "image/jpeg", data)
        # {"ok": True, "id": "...", "state": "PENDING", "quota": {...}}
    """

    def __init__(self, repo: Repository, store: ObjectStore):
        self.repo = repo
        self.store = store
        self.people = PeopleService(repo)

    # -------------------------------------------------------------------------
    # Limits
    # -------------------------------------------------------------------------

    def get_limits(self) -> tuple[int, int]:
        """
        Return (upload_limit, max_image_size_mb).

        Values stored in app_settings win over config; unreadable or
        non-numeric values fall back to config.
        """
        upload_limit = settings.MEDIA_UPLOAD_LIMIT
        max_image_mb = settings.MEDIA_MAX_IMAGE_SIZE_MB
        try:
            rows = self.repo.find_many(
                "app_settings",
                columns="key, value",
                in_={"key": [UPLOAD_LIMIT_KEY, MAX_IMAGE_SIZE_KEY]},
            )
        except RepositoryError as e:
            logger.warning(f"Could not read media settings, using defaults: {e}")
            return upload_limit, max_image_mb

        values = {row["key"]: row.get("value") for row in rows}
        upload_limit = _int_setting(values.get(UPLOAD_LIMIT_KEY), upload_limit)
        max_image_mb = _int_setting(values.get(MAX_IMAGE_SIZE_KEY), max_image_mb)
        return upload_limit, max_image_mb

    def count_active_uploads(self, uploader_id: str) -> int:
        try:
            return self.repo.count(
                TABLE,
                eq={"uploader_id": uploader_id},
                in_={"state": list(QUOTA_STATES)},
            )
        except RepositoryError as e:
            raise UpstreamError("count media uploads", e)

    # -------------------------------------------------------------------------
    # Upload
    # -------------------------------------------------------------------------

    def upload(
        self,
        uploader: Profile,
        file_name: str,
        content_type: str,
        content: bytes,
        title: str | None = None,
        description: str | None = None,
        linked_person: str | None = None,
    ) -> dict[str, Any]:
        """
        Store a file and record it in `media`.

        Raises:
            QuotaExceededError: Member already at the upload limit
            InvalidFileTypeError: MIME type not allowed
            FileTooLargeError: Over the size limit for its type
            StorageUploadError: Object store rejected the file
            UpstreamError: Data store failure (object already cleaned up)
        """
        upload_limit, max_image_mb = self.get_limits()
        used = self.count_active_uploads(uploader.id)

        if not uploader.is_moderator and used >= upload_limit:
            logger.info(f"Upload quota reached for {uploader.id} ({used}/{upload_limit})")
            raise QuotaExceededError(used, upload_limit)

        media_type = self._validate_file(content_type, len(content), max_image_mb)

        storage_path = f"{uploader.id}/{int(time.time() * 1000)}_{safe_file_name(file_name)}"
        try:
            self.store.upload(storage_path, content, content_type)
            public_url = self.store.public_url(storage_path)
        except ObjectStoreError as e:
            raise StorageUploadError(str(e))

        state = MediaState.PUBLISHED if uploader.is_moderator else MediaState.PENDING
        row = {
            "file_name": file_name,
            "mime_type": content_type,
            "file_size": len(content),
            "state": state.value,
            "uploader_id": uploader.id,
            "storage_path": storage_path,
            "storage_url": public_url,
            "media_type": media_type.value,
            "title": title or None,
            "description": description or None,
            "linked_person": linked_person or None,
        }

        try:
            record = self.repo.insert(TABLE, row)
        except RepositoryError as e:
            self._remove_object(storage_path)
            raise UpstreamError("record media upload", e)

        logger.info(f"Media {record.get('id')} uploaded by {uploader.id} ({media_type.value}, {state.value})")

        if state == MediaState.PUBLISHED and linked_person and media_type == MediaType.IMAGE:
            self.people.set_first_avatar(linked_person, public_url)

        return {
            "ok": True,
            "id": record.get("id"),
            "storage_url": record.get("storage_url", public_url),
            "media_type": media_type.value,
            "state": state.value,
            "quota": {"used": used + 1, "limit": upload_limit},
        }

    def _validate_file(self, content_type: str, size: int, max_image_mb: int) -> MediaType:
        if content_type not in ALLOWED_MIME_TYPES:
            raise InvalidFileTypeError(content_type, list(ALLOWED_MIME_TYPES))

        if content_type in IMAGE_MIME_TYPES:
            media_type, max_mb = MediaType.IMAGE, max_image_mb
        else:
            media_type, max_mb = MediaType.DOCUMENT, settings.MEDIA_MAX_DOCUMENT_SIZE_MB

        if size > max_mb * 1024 * 1024:
            raise FileTooLargeError(size / (1024 * 1024), max_mb)
        return media_type

    def _remove_object(self, storage_path: str | None) -> None:
        if not storage_path:
            return
        try:
            self.store.remove([storage_path])
        except ObjectStoreError as e:
            logger.error(f"Failed to remove stored object {storage_path}: {e}")

    # -------------------------------------------------------------------------
    # Moderation
    # -------------------------------------------------------------------------

    def delete(self, actor: Profile, media_id: str) -> None:
        """Delete a media item (object + row). Owner or admin only."""
        media = self._load(media_id)
        if media.get("uploader_id") != actor.id and not actor.is_admin:
            raise ForbiddenError("Không có quyền xóa")
        self._delete_record(media)

    def update(self, actor: Profile, media_id: str, body: MediaUpdate) -> dict[str, Any]:
        """
        Apply a PATCH to a media item.

        Setting state REJECTED deletes the item and returns {"ok", "deleted"}.
        """
        fields = body.model_dump(exclude_unset=True)

        if ("state" in fields or "linked_person" in fields) and not actor.is_moderator:
            raise ForbiddenError("Không có quyền duyệt media")

        media = self._load(media_id)

        if fields.get("state") == MediaState.REJECTED:
            self._delete_record(media)
            logger.info(f"Media {media_id} rejected and deleted by {actor.id}")
            return {"ok": True, "deleted": True}

        if not actor.is_moderator and media.get("uploader_id") != actor.id:
            raise ForbiddenError("Không có quyền chỉnh sửa media này")

        updates = {
            key: value.value if isinstance(value, MediaState) else value
            for key, value in fields.items()
        }
        if not updates:
            raise InvalidInputError("Không có gì để cập nhật")

        try:
            rows = self.repo.update(TABLE, updates, eq={"id": media_id})
        except RepositoryError as e:
            raise UpstreamError("update media", e)
        updated = rows[0] if rows else {**media, **updates}

        if (
            updated.get("state") == MediaState.PUBLISHED.value
            and updated.get("linked_person")
            and updated.get("storage_url")
            and updated.get("media_type") == MediaType.IMAGE.value
        ):
            self.people.set_first_avatar(updated["linked_person"], updated["storage_url"])

        media_view = {
            key: updated.get(key)
            for key in ("id", "state", "title", "description", "linked_person", "storage_url")
        }
        return {"ok": True, "media": media_view}

    def _load(self, media_id: str) -> dict[str, Any]:
        try:
            media = self.repo.find_one(TABLE, eq={"id": media_id})
        except RepositoryError as e:
            raise UpstreamError("load media", e)
        if media is None:
            raise NotFoundError("Không tìm thấy file", entity="media", entity_id=media_id)
        return media

    def _delete_record(self, media: dict[str, Any]) -> None:
        self._remove_object(media.get("storage_path"))
        try:
            self.repo.delete(TABLE, eq={"id": media["id"]})
        except RepositoryError as e:
            raise UpstreamError("delete media", e)


def _int_setting(raw: Any, default: int) -> int:
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return default
