# =============================================================================
# core/models/bug_report.py - Bug Report Schemas
# =============================================================================

from enum import Enum

from pydantic import BaseModel, Field


class BugCategory(str, Enum):
    DISPLAY_ERROR = "display_error"
    FEATURE_NOT_WORKING = "feature_not_working"
    WRONG_INFORMATION = "wrong_information"
    LOADING_ERROR = "loading_error"
    SUGGESTION = "suggestion"
    OTHER = "other"


class BugStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


class BugReportCreate(BaseModel):
    """
    Body of POST /bug-reports.

    Category is validated in the service so the error message stays in
    Vietnamese instead of pydantic's enum error.
    """

    category: str = ""
    title: str = Field(default="", max_length=300)
    description: str = Field(default="", max_length=10000)
    steps_to_reproduce: str | None = Field(default=None, max_length=10000)


class BugReportUpdate(BaseModel):
    """Body of PATCH /bug-reports/{id} (admin only)."""

    status: str | None = None
    admin_note: str | None = None
