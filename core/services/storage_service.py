# =============================================================================
# core/services/storage_service.py - Supabase Storage Operations
# =============================================================================
# ObjectStore implementation backed by a Supabase Storage bucket.
# =============================================================================

import logging

from app.config import settings
from lib.object_store import ObjectStoreError
from lib.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


class StorageService:
    """
    Supabase Storage adapter for media uploads.

    Stored objects are public; the web client renders `public_url` directly.
    """

    def __init__(self, bucket: str | None = None):
        self.bucket = bucket or settings.MEDIA_BUCKET

    def _bucket(self):
        return SupabaseClient.get_client().storage.from_(self.bucket)

    def upload(self, path: str, content: bytes, content_type: str) -> None:
        """
        Upload raw bytes under `path`.

        Raises:
            ObjectStoreError: If upload fails
        """
        try:
            self._bucket().upload(
                path=path,
                file=content,
                file_options={"content-type": content_type, "upsert": "false"},
            )
            logger.info(f"Uploaded file to storage: {self.bucket}/{path}")
        except Exception as e:
            logger.error(f"Storage upload failed: {e}")
            raise ObjectStoreError(str(e), path=path)

    def public_url(self, path: str) -> str:
        return self._bucket().get_public_url(path)

    def remove(self, paths: list[str]) -> None:
        """
        Remove objects from the bucket.

        Raises:
            ObjectStoreError: If removal fails
        """
        try:
            self._bucket().remove(paths)
            logger.info(f"Removed {len(paths)} object(s) from {self.bucket}")
        except Exception as e:
            logger.error(f"Storage remove failed: {e}")
            raise ObjectStoreError(str(e), path=paths[0] if paths else None)
