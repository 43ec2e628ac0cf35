# =============================================================================
# lib/object_store.py - Object Storage Interface
# =============================================================================
# Binary uploads (media images / PDFs) go through an ObjectStore.
# - StorageService (core/services/storage_service.py): Supabase Storage
# - InMemoryObjectStore (this module): tests and local development
# =============================================================================

from __future__ import annotations

from typing import Protocol

from lib.utils import ApplicationError


class ObjectStoreError(ApplicationError):
    """Raised when an upload, URL lookup or removal fails."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(
            message,
            code="OBJECT_STORE_ERROR",
            details={"path": path} if path else None,
        )
        self.path = path


class ObjectStore(Protocol):
    """Interface for a bucket of binary objects addressed by path."""

    def upload(self, path: str, content: bytes, content_type: str) -> None:
        ...

    def public_url(self, path: str) -> str:
        ...

    def remove(self, paths: list[str]) -> None:
        ...


class InMemoryObjectStore:
    """Dict-backed object store for tests and local development."""

    def __init__(self, base_url: str = "https://storage.local/media"):
        self.base_url = base_url.rstrip("/")
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.fail_uploads = False
        self.fail_removes = False

    def upload(self, path: str, content: bytes, content_type: str) -> None:
        if self.fail_uploads:
            raise ObjectStoreError("simulated upload failure", path=path)
        self.objects[path] = (content, content_type)

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/{path}"

    def remove(self, paths: list[str]) -> None:
        if self.fail_removes:
            raise ObjectStoreError("simulated remove failure", path=paths[0] if paths else None)
        for path in paths:
            self.objects.pop(path, None)
