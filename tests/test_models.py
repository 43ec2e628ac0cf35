# =============================================================================
# tests/test_models.py - Pydantic Model Tests
# =============================================================================
# Unit tests for the contribution payload models to ensure:
# - Valid payloads (JSON string or dict, camelCase) parse correctly
# - Invalid payloads raise PayloadError with a Vietnamese message
# - Defaults and derived values work as expected
#
# Run with: pytest tests/test_models.py -v
# =============================================================================

import json
from datetime import datetime

import pytest

from core.models import (
    AddEventPayload,
    AddPersonPayload,
    ContributionFieldName,
    DeletePersonPayload,
    EditPersonFieldPayload,
    PayloadError,
    Profile,
    Role,
    normalize_event_type,
    parse_payload,
)
from core.models.contribution import parse_field_name


# =============================================================================
# Field Name Tests
# =============================================================================

class TestParseFieldName:
    """Tests for the contribution kind enum."""

    def test_known_kind(self):
        """Known field names map onto the enum."""
        assert parse_field_name("add_event") is ContributionFieldName.ADD_EVENT

    def test_unknown_kind_rejected(self):
        """Anything outside the enum is a PayloadError naming the value."""
        with pytest.raises(PayloadError) as exc_info:
            parse_field_name("rename_clan")

        assert "rename_clan" in exc_info.value.message
        assert exc_info.value.field == "fieldName"


# =============================================================================
# add_person
# =============================================================================

class TestAddPersonPayload:
    """Tests for AddPersonPayload."""

    def test_parses_camel_case_json_string(self):
        """Stored JSON strings with camelCase keys are accepted."""
        # Arrange
        raw = json.dumps({"displayName": "  Phạm Văn Tổ ", "generation": 3, "birthYear": 1950})

        # Act
        payload = parse_payload("add_person", raw)

        # Assert
        assert isinstance(payload, AddPersonPayload)
        assert payload.display_name == "Phạm Văn Tổ"
        assert payload.generation == 3
        assert payload.birth_year == 1950
        assert payload.gender == 1

    def test_is_living_defaults_true(self):
        """No death year and no explicit flag means living."""
        payload = parse_payload("add_person", {"displayName": "A", "generation": 1})

        assert payload.resolved_is_living is True

    def test_death_year_implies_deceased(self):
        """A death year without an explicit flag means deceased."""
        payload = parse_payload("add_person", {"displayName": "A", "generation": 1, "deathYear": 1990})

        assert payload.resolved_is_living is False

    def test_explicit_is_living_wins(self):
        """An explicit isLiving overrides the death-year default."""
        payload = parse_payload(
            "add_person",
            {"displayName": "A", "generation": 1, "deathYear": 1990, "isLiving": True},
        )

        assert payload.resolved_is_living is True

    def test_missing_name_message(self):
        """A missing display name reports a Vietnamese message."""
        with pytest.raises(PayloadError) as exc_info:
            parse_payload("add_person", {"generation": 1})

        assert exc_info.value.message == "Thiếu họ tên thành viên"

    def test_invalid_gender_rejected(self):
        """Gender is 1 (male) or 2 (female) only."""
        with pytest.raises(PayloadError) as exc_info:
            parse_payload("add_person", {"displayName": "A", "generation": 1, "gender": 3})

        assert exc_info.value.message == "Giới tính không hợp lệ"


# =============================================================================
# edit_person_field
# =============================================================================

class TestEditPersonFieldPayload:
    """Tests for the column whitelist."""

    def test_whitelisted_column_accepted(self):
        """occupation is editable through contributions."""
        payload = parse_payload(
            "edit_person_field",
            {"dbColumn": "occupation", "label": "Nghề nghiệp", "value": "Giáo viên"},
        )

        assert isinstance(payload, EditPersonFieldPayload)
        assert payload.db_column == "occupation"
        assert payload.value == "Giáo viên"

    @pytest.mark.parametrize("column", ["handle", "avatar_url", "is_privacy_filtered", "families"])
    def test_disallowed_column_rejected(self, column):
        """Structural and privacy columns are never editable."""
        with pytest.raises(PayloadError) as exc_info:
            parse_payload("edit_person_field", {"dbColumn": column, "value": "x"})

        assert column in exc_info.value.message
        assert "không được phép" in exc_info.value.message


# =============================================================================
# add_event / delete_person / malformed input
# =============================================================================

class TestOtherPayloads:
    """Tests for the remaining kinds and malformed input."""

    def test_add_event_parses_datetime(self):
        """startAt is parsed into a datetime."""
        payload = parse_payload(
            "add_event",
            {"title": "Họp họ", "startAt": "2025-12-20T09:00:00+07:00", "type": "meeting"},
        )

        assert isinstance(payload, AddEventPayload)
        assert isinstance(payload.start_at, datetime)
        assert normalize_event_type(payload.type) == "MEETING"

    def test_add_event_missing_title(self):
        with pytest.raises(PayloadError) as exc_info:
            parse_payload("add_event", {"startAt": "2025-12-20T09:00:00Z"})

        assert exc_info.value.message == "Thiếu tên sự kiện"

    def test_unknown_event_type_becomes_other(self):
        """Unknown or missing event types normalize to OTHER."""
        assert normalize_event_type("picnic") == "OTHER"
        assert normalize_event_type(None) == "OTHER"

    def test_delete_person_accepts_empty_value(self):
        """delete_person carries no required data."""
        payload = parse_payload("delete_person", "")

        assert isinstance(payload, DeletePersonPayload)

    def test_add_post_too_long(self):
        """Post bodies over the limit are rejected."""
        with pytest.raises(PayloadError):
            parse_payload("add_post", {"body": "x" * 10001})

    def test_bad_json_rejected(self):
        """Unparseable JSON is a PayloadError, not a crash."""
        with pytest.raises(PayloadError) as exc_info:
            parse_payload("add_event", "{not json")

        assert "JSON" in exc_info.value.message

    def test_non_object_json_rejected(self):
        """A JSON array is not a payload."""
        with pytest.raises(PayloadError):
            parse_payload("add_quiz_question", "[1, 2]")


# =============================================================================
# Profile
# =============================================================================

class TestProfile:
    def test_roles(self):
        """Editors moderate but are not admins."""
        editor = Profile(id="x", role=Role.EDITOR)

        assert editor.is_moderator is True
        assert editor.is_admin is False

    def test_defaults_to_pending_member(self):
        profile = Profile(id="x")

        assert profile.role == Role.MEMBER
        assert profile.is_moderator is False
