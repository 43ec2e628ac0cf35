# =============================================================================
# core/models/contribution.py - Contribution Schemas
# =============================================================================
# A contribution is a member-proposed change to the shared family tree.
# Its `new_value` column holds a JSON string whose shape depends on
# `field_name`:
#
#   add_person         -> AddPersonPayload
#   edit_person_field  -> EditPersonFieldPayload
#   add_event          -> AddEventPayload
#   add_post           -> AddPostPayload
#   add_quiz_question  -> AddQuizQuestionPayload
#   delete_person      -> DeletePersonPayload
#
# parse_payload() turns (field_name, new_value) into the typed payload or
# raises PayloadError with a Vietnamese message the UI can show verbatim.
# JSON keys are camelCase (what the web client sends).
# =============================================================================

import json
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel


class ContributionStatus(str, Enum):
    """
    Review state of a contribution.

    Flow: pending -> approved | rejected (both terminal)
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ContributionFieldName(str, Enum):
    """Closed set of change kinds a member can propose."""
    ADD_PERSON = "add_person"
    EDIT_PERSON_FIELD = "edit_person_field"
    ADD_EVENT = "add_event"
    ADD_POST = "add_post"
    ADD_QUIZ_QUESTION = "add_quiz_question"
    DELETE_PERSON = "delete_person"


# Default labels shown in the admin review list when the client sends none
FIELD_LABELS: dict[ContributionFieldName, str] = {
    ContributionFieldName.ADD_PERSON: "Thêm thành viên",
    ContributionFieldName.EDIT_PERSON_FIELD: "Sửa thông tin thành viên",
    ContributionFieldName.ADD_EVENT: "Đề xuất sự kiện",
    ContributionFieldName.ADD_POST: "Đề xuất bài viết",
    ContributionFieldName.ADD_QUIZ_QUESTION: "Đề xuất câu hỏi xác minh",
    ContributionFieldName.DELETE_PERSON: "Đề nghị xóa thành viên",
}

# people columns an edit_person_field contribution may touch
ALLOWED_PERSON_COLUMNS = frozenset({
    "display_name", "surname", "first_name", "nick_name",
    "birth_year", "death_year", "is_living",
    "occupation", "company", "education",
    "phone", "email", "zalo", "facebook",
    "hometown", "current_address",
    "biography", "notes",
})

EVENT_TYPES = ("MEMORIAL", "MEETING", "FESTIVAL", "OTHER")

POST_BODY_MAX_LENGTH = 10000


def disallowed_column_message(column: str) -> str:
    return f'Trường "{column}" không được phép chỉnh sửa qua đóng góp'


def normalize_event_type(value: str | None) -> str:
    """Upper-case a known event type; anything else becomes OTHER."""
    if value and value.upper() in EVENT_TYPES:
        return value.upper()
    return "OTHER"


class PayloadError(ValueError):
    """A contribution's new_value does not match its field_name."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


# =============================================================================
# Payload Models
# =============================================================================

class _Payload(BaseModel):
    """Shared config: camelCase JSON, whitespace stripped, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    # field -> message used when that field fails validation
    error_messages: ClassVar[dict[str, str]] = {}


class AddPersonPayload(_Payload):
    """New person proposed for the tree. The handle is derived at apply time."""

    display_name: str = Field(..., min_length=1, max_length=200)
    gender: Literal[1, 2] = 1
    generation: int = Field(..., ge=1, le=100)
    birth_year: int | None = Field(default=None, ge=1, le=2200)
    death_year: int | None = Field(default=None, ge=1, le=2200)
    is_living: bool | None = None
    occupation: str | None = None
    current_address: str | None = None
    phone: str | None = None
    email: str | None = None
    relation_hint: str | None = None
    spouse_handle: str | None = None

    error_messages: ClassVar[dict[str, str]] = {
        "display_name": "Thiếu họ tên thành viên",
        "generation": "Thiếu hoặc sai đời (thế hệ) của thành viên",
        "gender": "Giới tính không hợp lệ",
        "birth_year": "Năm sinh không hợp lệ",
        "death_year": "Năm mất không hợp lệ",
    }

    @property
    def resolved_is_living(self) -> bool:
        """Explicit flag wins; otherwise a death year means deceased."""
        if self.is_living is not None:
            return self.is_living
        return self.death_year is None


class EditPersonFieldPayload(_Payload):
    """Change one whitelisted column on an existing person."""

    db_column: str = Field(..., min_length=1)
    label: str = ""
    value: str | int | float | bool | None = None

    error_messages: ClassVar[dict[str, str]] = {
        "db_column": "Thiếu trường cần chỉnh sửa",
    }

    @field_validator("db_column")
    @classmethod
    def column_must_be_whitelisted(cls, v: str) -> str:
        if v not in ALLOWED_PERSON_COLUMNS:
            raise ValueError(disallowed_column_message(v))
        return v


class AddEventPayload(_Payload):
    """Proposed clan event (giỗ, họp họ, lễ hội...)."""

    title: str = Field(..., min_length=1, max_length=300)
    start_at: datetime
    description: str | None = None
    location: str | None = None
    type: str | None = None

    error_messages: ClassVar[dict[str, str]] = {
        "title": "Thiếu tên sự kiện",
        "start_at": "Thời gian sự kiện không hợp lệ",
    }


class AddPostPayload(_Payload):
    """Proposed feed post, published under the contributor's name."""

    body: str = Field(..., min_length=1, max_length=POST_BODY_MAX_LENGTH)
    title: str | None = None

    error_messages: ClassVar[dict[str, str]] = {
        "body": f"Nội dung bài viết không được để trống và tối đa {POST_BODY_MAX_LENGTH} ký tự",
    }


class AddQuizQuestionPayload(_Payload):
    """Proposed registration-gate question."""

    question: str = Field(..., min_length=1, max_length=500)
    correct_answer: str = Field(..., min_length=1, max_length=200)
    hint: str | None = None

    error_messages: ClassVar[dict[str, str]] = {
        "question": "Thiếu nội dung câu hỏi",
        "correct_answer": "Thiếu đáp án đúng",
    }


class DeletePersonPayload(_Payload):
    """Request to remove the contribution's target person."""

    reason: str | None = None


ContributionPayload = (
    AddPersonPayload
    | EditPersonFieldPayload
    | AddEventPayload
    | AddPostPayload
    | AddQuizQuestionPayload
    | DeletePersonPayload
)

PAYLOAD_MODELS: dict[ContributionFieldName, type[_Payload]] = {
    ContributionFieldName.ADD_PERSON: AddPersonPayload,
    ContributionFieldName.EDIT_PERSON_FIELD: EditPersonFieldPayload,
    ContributionFieldName.ADD_EVENT: AddEventPayload,
    ContributionFieldName.ADD_POST: AddPostPayload,
    ContributionFieldName.ADD_QUIZ_QUESTION: AddQuizQuestionPayload,
    ContributionFieldName.DELETE_PERSON: DeletePersonPayload,
}


def parse_field_name(value: str) -> ContributionFieldName:
    try:
        return ContributionFieldName(value)
    except ValueError:
        raise PayloadError(f"Loại đóng góp không hợp lệ: {value}", field="fieldName")


def parse_payload(field_name: str | ContributionFieldName, new_value: Any) -> ContributionPayload:
    """
    Parse a contribution's new_value into the payload model for its field_name.

    new_value may be the raw JSON string stored in the table or an already
    decoded dict. delete_person tolerates an empty value.

    Raises:
        PayloadError: Unknown field_name, bad JSON or wrong shape
    """
    kind = parse_field_name(field_name) if isinstance(field_name, str) else field_name
    model = PAYLOAD_MODELS[kind]

    if new_value is None or (isinstance(new_value, str) and not new_value.strip()):
        data: Any = {} if kind is ContributionFieldName.DELETE_PERSON else None
    elif isinstance(new_value, str):
        try:
            data = json.loads(new_value)
        except json.JSONDecodeError:
            raise PayloadError("Dữ liệu đóng góp không hợp lệ (JSON parse error)", field="newValue")
    else:
        data = new_value

    if not isinstance(data, dict):
        raise PayloadError("Dữ liệu đóng góp không hợp lệ", field="newValue")

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise PayloadError(_friendly_message(model, e), field=_first_field(e))


def _first_field(error: ValidationError) -> str | None:
    errors = error.errors()
    if errors and errors[0].get("loc"):
        return str(errors[0]["loc"][0])
    return None


def _friendly_message(model: type[_Payload], error: ValidationError) -> str:
    first = error.errors()[0]
    loc = first.get("loc") or ("",)
    # loc holds the alias (camelCase) when input was given by alias
    field = next(
        (name for name, info in model.model_fields.items() if loc[0] in (name, info.alias)),
        str(loc[0]),
    )
    if first.get("type") == "value_error":
        return str(first.get("ctx", {}).get("error", first.get("msg")))
    return model.error_messages.get(field, f"Trường {loc[0]} không hợp lệ")


# =============================================================================
# Request Models
# =============================================================================

class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class ContributionCreate(_CamelModel):
    """
    Body of POST /contributions.

    Example:
        {
            "fieldName": "add_event",
            "newValue": "{\\"title\\": \\"Họp họ 2025\\", \\"startAt\\": \\"2025-12-20T09:00:00Z\\"}"
        }
    """

    field_name: str = Field(..., description="One of ContributionFieldName")
    field_label: str | None = Field(default=None, max_length=200)
    new_value: str | dict[str, Any] | None = Field(
        default=None,
        description="JSON payload for field_name (string or object)"
    )
    person_handle: str | None = None
    person_name: str | None = None
    old_value: str | None = None
    note: str | None = Field(default=None, max_length=2000)


class ContributionReview(_CamelModel):
    """Body of PATCH /contributions/{id}."""

    status: Literal["approved", "rejected"]
    admin_note: str | None = Field(default=None, max_length=2000)
