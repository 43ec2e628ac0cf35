# =============================================================================
# core/services/contribution_applier.py - Apply Approved Contributions
# =============================================================================
# Writes an approved contribution's payload into the canonical tables.
# Dispatch is a table keyed by ContributionFieldName, one handler per kind:
#
#   add_person        -> people (+ optional spouse family)
#   edit_person_field -> one whitelisted people column
#   add_event         -> events
#   add_post          -> posts
#   add_quiz_question -> family_questions
#   delete_person     -> people (only if unlinked from every family)
#
# Handlers raise ContributionApplyError for problems with the contribution
# itself (HTTP 400) and UpstreamError for data-store failures (HTTP 500).
# The caller (ContributionService) owns the approve/rollback saga.
# =============================================================================

import logging
import re
from typing import Any, Callable

from app.exceptions import ContributionApplyError, UpstreamError
from core.models import (
    ALLOWED_PERSON_COLUMNS,
    AddEventPayload,
    AddPersonPayload,
    AddPostPayload,
    AddQuizQuestionPayload,
    ContributionFieldName,
    DeletePersonPayload,
    EditPersonFieldPayload,
    PayloadError,
    normalize_event_type,
    parse_payload,
)
from core.models.contribution import disallowed_column_message
from lib.repository import DuplicateKeyError, Repository, RepositoryError, utc_now_iso
from lib.utils import generate_handle

logger = logging.getLogger(__name__)

# Attempts at deriving a unique person/family handle
HANDLE_ATTEMPTS = 2

YEAR_COLUMNS = ("birth_year", "death_year")


class ContributionApplier:
    """
    Applies one approved contribution.

    Example:
        applier = ContributionApplier(repo)
        result = applier.apply(contribution_row, reviewer_id="...")
        # {"table": "events", "id": "..."}
    """

    def __init__(self, repo: Repository):
        self.repo = repo
        self._handlers: dict[ContributionFieldName, Callable[[Any, dict[str, Any], str], dict[str, Any]]] = {
            ContributionFieldName.ADD_PERSON: self._apply_add_person,
            ContributionFieldName.EDIT_PERSON_FIELD: self._apply_edit_person_field,
            ContributionFieldName.ADD_EVENT: self._apply_add_event,
            ContributionFieldName.ADD_POST: self._apply_add_post,
            ContributionFieldName.ADD_QUIZ_QUESTION: self._apply_add_quiz_question,
            ContributionFieldName.DELETE_PERSON: self._apply_delete_person,
        }

    def apply(self, contribution: dict[str, Any], reviewer_id: str) -> dict[str, Any]:
        """
        Parse the stored payload and write it.

        Args:
            contribution: The contributions row (already approved)
            reviewer_id: Admin who approved it

        Returns:
            Dict describing what was written ({"table", "id"/"handle"})

        Raises:
            ContributionApplyError: Payload invalid or target state forbids it
            UpstreamError: Data store failure
        """
        contribution_id = contribution.get("id")
        try:
            kind = ContributionFieldName(contribution.get("field_name"))
            payload = parse_payload(kind, contribution.get("new_value"))
        except (ValueError, PayloadError) as e:
            message = e.message if isinstance(e, PayloadError) else "Loại đóng góp không hợp lệ"
            raise ContributionApplyError(message, contribution_id)

        try:
            result = self._handlers[kind](payload, contribution, reviewer_id)
        except RepositoryError as e:
            raise UpstreamError(f"apply {kind.value}", e)

        logger.info(f"Applied contribution {contribution_id} ({kind.value}): {result}")
        return result

    # -------------------------------------------------------------------------
    # People
    # -------------------------------------------------------------------------

    def _apply_add_person(
        self,
        payload: AddPersonPayload,
        contribution: dict[str, Any],
        reviewer_id: str,
    ) -> dict[str, Any]:
        row = {
            "display_name": payload.display_name,
            "gender": payload.gender,
            "generation": payload.generation,
            "birth_year": payload.birth_year,
            "death_year": payload.death_year,
            "is_living": payload.resolved_is_living,
            "is_patrilineal": payload.gender == 1,
            "is_privacy_filtered": False,
            "occupation": payload.occupation or None,
            "current_address": payload.current_address or None,
            "phone": payload.phone or None,
            "email": payload.email or None,
            "families": [],
            "parent_families": [],
        }

        person = None
        for attempt in range(1, HANDLE_ATTEMPTS + 1):
            handle = generate_handle(payload.display_name)
            try:
                person = self.repo.insert("people", {**row, "handle": handle})
                break
            except DuplicateKeyError:
                logger.warning(f"Handle collision on {handle} (attempt {attempt})")

        if person is None:
            raise ContributionApplyError(
                "Không tạo được mã định danh duy nhất cho thành viên, vui lòng duyệt lại",
                contribution.get("id"),
            )

        if payload.spouse_handle:
            self._link_spouse(person["handle"], payload.gender, payload.spouse_handle)

        return {"table": "people", "id": person.get("id"), "handle": person["handle"]}

    def _link_spouse(self, handle: str, gender: int, spouse_handle: str) -> None:
        """
        Create a family for the new person and their spouse.

        Best effort: the person already exists, so a failure here is logged
        and left for an editor to fix in the tree.
        """
        father, mother = (handle, spouse_handle) if gender == 1 else (spouse_handle, handle)
        try:
            family = None
            for _ in range(HANDLE_ATTEMPTS):
                try:
                    family = self.repo.insert("families", {
                        "handle": self._next_family_handle(),
                        "father_handle": father,
                        "mother_handle": mother,
                        "children": [],
                    })
                    break
                except DuplicateKeyError:
                    continue
            if family is None:
                logger.error(f"Could not allocate a family handle for {handle} + {spouse_handle}")
                return

            for member in (handle, spouse_handle):
                person = self.repo.find_one("people", columns="handle, families", eq={"handle": member})
                if person is None:
                    logger.warning(f"Spouse {member} not found while linking family {family['handle']}")
                    continue
                families = list(person.get("families") or [])
                if family["handle"] not in families:
                    self.repo.update(
                        "people",
                        {"families": families + [family["handle"]]},
                        eq={"handle": member},
                    )
            logger.info(f"Linked {father} + {mother} as family {family['handle']}")
        except RepositoryError as e:
            logger.error(f"Failed to create family with spouse {spouse_handle}: {e}")

    def _next_family_handle(self) -> str:
        """F001, F002, ... one past the highest numbered F-handle."""
        rows = self.repo.find_many("families", columns="handle")
        numbers = [
            int(digits)
            for digits in (re.sub(r"\D", "", r["handle"] or "") for r in rows if (r.get("handle") or "").startswith("F"))
            if digits
        ]
        return f"F{(max(numbers) if numbers else 0) + 1:03d}"

    def _apply_edit_person_field(
        self,
        payload: EditPersonFieldPayload,
        contribution: dict[str, Any],
        reviewer_id: str,
    ) -> dict[str, Any]:
        handle = (contribution.get("person_handle") or "").strip()
        if not handle:
            raise ContributionApplyError("Không tìm thấy handle của thành viên", contribution.get("id"))

        # Checked again here even though the payload model validates it: rows
        # written before the whitelist changed (or restored from backup) skip
        # submission-time validation.
        column = payload.db_column
        if column not in ALLOWED_PERSON_COLUMNS:
            raise ContributionApplyError(disallowed_column_message(column), contribution.get("id"))

        value = _cast_person_value(column, payload.value, contribution.get("id"))
        updated = self.repo.update(
            "people",
            {column: value, "updated_at": utc_now_iso()},
            eq={"handle": handle},
        )
        if not updated:
            raise ContributionApplyError(f"Không tìm thấy thành viên {handle}", contribution.get("id"))
        return {"table": "people", "handle": handle, "column": column}

    def _apply_delete_person(
        self,
        payload: DeletePersonPayload,
        contribution: dict[str, Any],
        reviewer_id: str,
    ) -> dict[str, Any]:
        handle = (contribution.get("person_handle") or "").strip()
        if not handle:
            raise ContributionApplyError(
                "Không tìm thấy handle của thành viên cần xóa", contribution.get("id")
            )

        links = (
            len(self.repo.find_many("families", columns="handle", eq={"father_handle": handle}))
            + len(self.repo.find_many("families", columns="handle", eq={"mother_handle": handle}))
            + len(self.repo.find_many("families", columns="handle", contains={"children": [handle]}))
        )
        if links:
            raise ContributionApplyError(
                f"Người này đang được liên kết trong gia đình ({links} mối liên kết). "
                "Hãy xóa liên kết trong cây gia phả trước.",
                contribution.get("id"),
            )

        deleted = self.repo.delete("people", eq={"handle": handle})
        if not deleted:
            raise ContributionApplyError(f"Không tìm thấy thành viên {handle}", contribution.get("id"))
        return {"table": "people", "handle": handle, "deleted": True}

    # -------------------------------------------------------------------------
    # Events / Posts / Questions
    # -------------------------------------------------------------------------

    def _apply_add_event(
        self,
        payload: AddEventPayload,
        contribution: dict[str, Any],
        reviewer_id: str,
    ) -> dict[str, Any]:
        event = self.repo.insert("events", {
            "title": payload.title,
            "description": payload.description or None,
            "start_at": payload.start_at.isoformat(),
            "location": payload.location or None,
            "type": normalize_event_type(payload.type),
            "creator_id": reviewer_id,
        })
        return {"table": "events", "id": event.get("id")}

    def _apply_add_post(
        self,
        payload: AddPostPayload,
        contribution: dict[str, Any],
        reviewer_id: str,
    ) -> dict[str, Any]:
        post = self.repo.insert("posts", {
            "author_id": contribution.get("author_id"),
            "title": payload.title or None,
            "body": payload.body,
            "type": "general",
            "status": "published",
        })
        return {"table": "posts", "id": post.get("id")}

    def _apply_add_quiz_question(
        self,
        payload: AddQuizQuestionPayload,
        contribution: dict[str, Any],
        reviewer_id: str,
    ) -> dict[str, Any]:
        question = self.repo.insert("family_questions", {
            "question": payload.question,
            "correct_answer": payload.correct_answer,
            "hint": payload.hint or None,
            "is_active": True,
        })
        return {"table": "family_questions", "id": question.get("id")}


def _cast_person_value(column: str, value: Any, contribution_id: str | None) -> Any:
    """Coerce the submitted string into the people column's type."""
    if column == "is_living":
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() == "true"

    if column in YEAR_COLUMNS:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        try:
            return int(str(value).strip())
        except ValueError:
            raise ContributionApplyError("Năm không hợp lệ", contribution_id)

    if isinstance(value, str):
        return value.strip() or None
    return value

