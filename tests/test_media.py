# =============================================================================
# tests/test_media.py - Media Upload Gate Tests
# =============================================================================
# Tests for the upload pipeline and moderation:
# - Member quota counts PENDING + PUBLISHED files
# - MIME allowlist and size limits
# - Object removed again when the media row can't be written
# - Rejecting deletes; publishing a linked image sets the first avatar
#
# Run with: pytest tests/test_media.py -v
# =============================================================================

import pytest

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
from core.models import MediaState, MediaUpdate
from core.services.media_service import MediaService, safe_file_name


JPEG = b"\xff\xd8\xff\xe0" + b"0" * 128


@pytest.fixture
def service(repo, store):
    return MediaService(repo, store)


def seed_uploads(repo, uploader_id: str, states: list[str]) -> None:
    for i, state in enumerate(states):
        repo.insert("media", {"uploader_id": uploader_id, "state": state, "file_name": f"{i}.jpg"})


# =============================================================================
# Helpers
# =============================================================================

class TestSafeFileName:
    def test_replaces_unsafe_characters(self):
        assert safe_file_name("ảnh gia đình (1).jpg") == "_nh_gia___nh__1_.jpg"

    def test_keeps_safe_characters(self):
        assert safe_file_name("photo-2024_01.v2.png") == "photo-2024_01.v2.png"


# =============================================================================
# Quota
# =============================================================================

class TestQuota:
    """Tests for the per-member upload limit."""

    def test_upload_under_limit(self, service, repo, store, member):
        """The fifth upload succeeds and reports quota 5/5."""
        # Arrange
        seed_uploads(repo, member.id, ["PENDING", "PUBLISHED", "PENDING", "PUBLISHED"])

        # Act
        result = service.upload(member, "ông nội.jpg", "image/jpeg", JPEG)

        # Assert
        assert result["ok"] is True
        assert result["state"] == "PENDING"
        assert result["media_type"] == "IMAGE"
        assert result["quota"] == {"used": 5, "limit": 5}
        assert len(store.objects) == 1

    def test_upload_at_limit_rejected(self, service, repo, store, member):
        """With five active files, the sixth is refused before storage."""
        seed_uploads(repo, member.id, ["PENDING"] * 3 + ["PUBLISHED"] * 2)

        with pytest.raises(QuotaExceededError) as exc_info:
            service.upload(member, "a.jpg", "image/jpeg", JPEG)

        assert exc_info.value.details == {"used": 5, "limit": 5}
        assert store.objects == {}

    def test_rejected_files_do_not_count(self, service, repo, member):
        """Only PENDING and PUBLISHED count toward the quota."""
        seed_uploads(repo, member.id, ["PENDING"] * 4 + ["REJECTED"] * 3)

        result = service.upload(member, "a.jpg", "image/jpeg", JPEG)

        assert result["quota"]["used"] == 5

    def test_limit_from_app_settings(self, service, repo, member):
        repo.insert("app_settings", {"key": "media_upload_limit", "value": "1"})
        seed_uploads(repo, member.id, ["PENDING"])

        with pytest.raises(QuotaExceededError):
            service.upload(member, "a.jpg", "image/jpeg", JPEG)

    def test_bad_setting_falls_back(self, service, repo):
        repo.insert("app_settings", {"key": "media_upload_limit", "value": "nhiều"})

        assert service.get_limits() == (5, 10)

    def test_moderator_bypasses_quota_and_publishes(self, service, repo, editor):
        """Editor uploads skip the quota and publish immediately."""
        seed_uploads(repo, editor.id, ["PUBLISHED"] * 8)

        result = service.upload(editor, "a.jpg", "image/jpeg", JPEG)

        assert result["state"] == "PUBLISHED"
        assert result["quota"]["used"] == 9


# =============================================================================
# Validation / Storage
# =============================================================================

class TestUploadValidation:
    def test_unsupported_type(self, service, store, member):
        with pytest.raises(InvalidFileTypeError):
            service.upload(member, "a.exe", "application/x-msdownload", b"MZ")

        assert store.objects == {}

    def test_image_too_large(self, service, member):
        """Images over the limit are rejected."""
        with pytest.raises(FileTooLargeError) as exc_info:
            service.upload(member, "a.png", "image/png", b"0" * (10 * 1024 * 1024 + 1))

        assert exc_info.value.details["max_mb"] == 10

    def test_pdf_uses_document_limit(self, service, member):
        """PDFs larger than the image limit are still accepted."""
        result = service.upload(member, "gia-pha.pdf", "application/pdf", b"%PDF" + b"0" * (11 * 1024 * 1024))

        assert result["media_type"] == "DOCUMENT"

    def test_storage_path_and_row(self, service, repo, member):
        result = service.upload(member, "ảnh.jpg", "image/jpeg", JPEG, title="Ông nội", linked_person="P001")

        row = repo.rows("media")[0]
        assert row["id"] == result["id"]
        assert row["storage_path"].startswith(f"{member.id}/")
        assert row["storage_path"].endswith("__nh.jpg")
        assert row["file_size"] == len(JPEG)
        assert row["title"] == "Ông nội"
        assert row["linked_person"] == "P001"

    def test_storage_failure(self, service, repo, store, member):
        store.fail_uploads = True

        with pytest.raises(StorageUploadError):
            service.upload(member, "a.jpg", "image/jpeg", JPEG)

        assert repo.rows("media") == []

    def test_row_failure_removes_object(self, service, repo, store, member):
        """If the media row can't be written, the stored object is deleted."""
        repo.inject_failure("media", "insert")

        with pytest.raises(UpstreamError):
            service.upload(member, "a.jpg", "image/jpeg", JPEG)

        assert store.objects == {}


# =============================================================================
# Auto-avatar
# =============================================================================

class TestAutoAvatar:
    def test_moderator_linked_image_sets_first_avatar(self, service, repo, editor):
        repo.insert("people", {"handle": "P001", "display_name": "Phạm Văn A", "avatar_url": None})

        result = service.upload(editor, "a.jpg", "image/jpeg", JPEG, linked_person="P001")

        assert repo.rows("people")[0]["avatar_url"] == result["storage_url"]

    def test_existing_avatar_kept(self, service, repo, editor):
        repo.insert("people", {"handle": "P001", "avatar_url": "https://old"})

        service.upload(editor, "a.jpg", "image/jpeg", JPEG, linked_person="P001")

        assert repo.rows("people")[0]["avatar_url"] == "https://old"

    def test_pending_upload_does_not_set_avatar(self, service, repo, member):
        repo.insert("people", {"handle": "P001", "avatar_url": None})

        service.upload(member, "a.jpg", "image/jpeg", JPEG, linked_person="P001")

        assert repo.rows("people")[0]["avatar_url"] is None


# =============================================================================
# Moderation
# =============================================================================

class TestModeration:
    """Tests for update and delete."""

    @pytest.fixture
    def pending(self, service, member):
        return service.upload(member, "a.jpg", "image/jpeg", JPEG, linked_person="P001")

    def test_publish_sets_avatar(self, service, repo, editor, pending):
        """Publishing a linked image makes it the person's first avatar."""
        repo.insert("people", {"handle": "P001", "avatar_url": None})

        result = service.update(editor, pending["id"], MediaUpdate(state=MediaState.PUBLISHED))

        assert result["media"]["state"] == "PUBLISHED"
        assert repo.rows("people")[0]["avatar_url"] == pending["storage_url"]

    def test_reject_deletes_row_and_object(self, service, repo, store, editor, pending):
        result = service.update(editor, pending["id"], MediaUpdate(state=MediaState.REJECTED))

        assert result == {"ok": True, "deleted": True}
        assert repo.rows("media") == []
        assert store.objects == {}

    def test_member_cannot_moderate(self, service, member, pending):
        with pytest.raises(ForbiddenError):
            service.update(member, pending["id"], MediaUpdate(state=MediaState.PUBLISHED))

    def test_owner_can_edit_title(self, service, member, pending):
        result = service.update(member, pending["id"], MediaUpdate(title="Ảnh cưới"))

        assert result["media"]["title"] == "Ảnh cưới"
        assert result["media"]["state"] == "PENDING"

    def test_other_member_cannot_edit(self, service, other_member, pending):
        with pytest.raises(ForbiddenError):
            service.update(other_member, pending["id"], MediaUpdate(title="x"))

    def test_empty_update(self, service, member, pending):
        with pytest.raises(InvalidInputError):
            service.update(member, pending["id"], MediaUpdate())

    def test_delete_by_owner(self, service, repo, member, pending):
        service.delete(member, pending["id"])

        assert repo.rows("media") == []

    def test_delete_by_editor_forbidden(self, service, editor, pending):
        """Only the owner or an admin may delete."""
        with pytest.raises(ForbiddenError):
            service.delete(editor, pending["id"])

    def test_delete_missing(self, service, admin):
        with pytest.raises(NotFoundError):
            service.delete(admin, "missing")


# =============================================================================
# API
# =============================================================================

class TestMediaApi:
    def test_upload_multipart(self, client, auth, member):
        auth.login(member)

        response = client.post(
            "/api/v1/media/upload",
            files={"file": ("anh.jpg", JPEG, "image/jpeg")},
            data={"title": "Ảnh họ"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["state"] == "PENDING"
        assert body["quota"] == {"used": 1, "limit": 5}

    def test_upload_without_file(self, client, auth, member):
        auth.login(member)

        response = client.post("/api/v1/media/upload", data={"title": "x"})

        assert response.status_code == 400
        assert response.json()["error"] == "Không có file"

    def test_quota_error_body(self, client, auth, repo, member):
        seed_uploads(repo, member.id, ["PENDING"] * 5)
        auth.login(member)

        response = client.post("/api/v1/media/upload", files={"file": ("a.jpg", JPEG, "image/jpeg")})

        assert response.status_code == 400
        assert response.json()["code"] == "QUOTA_EXCEEDED"

    def test_delete(self, client, auth, repo, member):
        stored = repo.insert("media", {"uploader_id": member.id, "state": "PENDING", "storage_path": "x/a.jpg"})
        auth.login(member)

        response = client.delete(f"/api/v1/media/{stored['id']}")

        assert response.status_code == 200
        assert response.json() == {"ok": True}
