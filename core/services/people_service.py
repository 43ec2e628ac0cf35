# =============================================================================
# core/services/people_service.py - Person Avatar Management
# =============================================================================
# A media item may become a person's avatar only if it is a PUBLISHED image
# linked to that same person.
# =============================================================================

import logging

from app.exceptions import InvalidInputError, NotFoundError, UpstreamError
from core.models import MediaState, MediaType
from lib.repository import Repository, RepositoryError, utc_now_iso

logger = logging.getLogger(__name__)


class PeopleService:
    """Service for `people.avatar_url` updates."""

    def __init__(self, repo: Repository):
        self.repo = repo

    def set_avatar(self, handle: str, media_id: str | None = None, clear: bool = False) -> str | None:
        """
        Point a person's avatar at a media item, or clear it.

        Returns:
            The new avatar URL (None when cleared)

        Raises:
            InvalidInputError: Missing mediaId or media fails the avatar rule
            NotFoundError: Media or person doesn't exist
            UpstreamError: Data store failure
        """
        if clear:
            self._write_avatar(handle, None)
            logger.info(f"Cleared avatar for {handle}")
            return None

        if not media_id:
            raise InvalidInputError("Thiếu mediaId")

        try:
            media = self.repo.find_one(
                "media",
                columns="id, storage_url, state, media_type, linked_person",
                eq={"id": media_id},
            )
        except RepositoryError as e:
            raise UpstreamError("load media", e)

        if media is None:
            raise NotFoundError("Không tìm thấy ảnh", entity="media", entity_id=media_id)
        if media.get("state") != MediaState.PUBLISHED.value:
            raise InvalidInputError("Ảnh chưa được duyệt")
        if media.get("media_type") != MediaType.IMAGE.value:
            raise InvalidInputError("Chỉ hỗ trợ ảnh")
        if media.get("linked_person") != handle:
            raise InvalidInputError("Ảnh không liên kết với người này")

        self._write_avatar(handle, media["storage_url"])
        logger.info(f"Set avatar for {handle} from media {media_id}")
        return media["storage_url"]

    def set_first_avatar(self, handle: str, url: str) -> bool:
        """
        Use `url` as the avatar only if the person has none yet.

        Called after a media item becomes a published image; failures are
        logged since the media operation itself already succeeded.
        """
        try:
            person = self.repo.find_one("people", columns="handle, avatar_url", eq={"handle": handle})
            if person is None or person.get("avatar_url"):
                return False
            self.repo.update(
                "people",
                {"avatar_url": url, "updated_at": utc_now_iso()},
                eq={"handle": handle},
            )
            logger.info(f"Auto-set first avatar for {handle}")
            return True
        except RepositoryError as e:
            logger.warning(f"Could not auto-set avatar for {handle}: {e}")
            return False

    def _write_avatar(self, handle: str, url: str | None) -> None:
        try:
            updated = self.repo.update(
                "people",
                {"avatar_url": url, "updated_at": utc_now_iso()},
                eq={"handle": handle},
            )
        except RepositoryError as e:
            raise UpstreamError("update avatar", e)
        if not updated:
            raise NotFoundError("Không tìm thấy thành viên", entity="people", entity_id=handle)
