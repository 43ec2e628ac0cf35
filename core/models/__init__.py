# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - profile.py: Profile, Role, ProfileStatus
# - contribution.py: Contribution payload union + request bodies
# - registration.py: Verification quiz request/response
# - media.py: Media states, MIME allowlist, upload response
# - bug_report.py: Bug report categories and bodies
# - audit.py: Audit actions and restore results
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Profile Models
# -----------------------------------------------------------------------------
from .profile import Profile, ProfileStatus, Role

# -----------------------------------------------------------------------------
# Contribution Models - propose -> review -> apply
# -----------------------------------------------------------------------------
from .contribution import (
    ALLOWED_PERSON_COLUMNS,
    AddEventPayload,
    AddPersonPayload,
    AddPostPayload,
    AddQuizQuestionPayload,
    ContributionCreate,
    ContributionFieldName,
    ContributionPayload,
    ContributionReview,
    ContributionStatus,
    DeletePersonPayload,
    EditPersonFieldPayload,
    PayloadError,
    normalize_event_type,
    parse_payload,
)

# -----------------------------------------------------------------------------
# Registration Gate Models
# -----------------------------------------------------------------------------
from .registration import (
    PublicQuestion,
    QuestionsResponse,
    QuizAnswer,
    VerifyQuizRequest,
    VerifyQuizResponse,
)

# -----------------------------------------------------------------------------
# Media Models
# -----------------------------------------------------------------------------
from .media import (
    ALLOWED_MIME_TYPES,
    IMAGE_MIME_TYPES,
    MediaState,
    MediaType,
    MediaUpdate,
    UploadQuota,
    UploadResponse,
)

# -----------------------------------------------------------------------------
# Admin Models
# -----------------------------------------------------------------------------
from .bug_report import BugCategory, BugReportCreate, BugReportUpdate, BugStatus
from .audit import AuditAction, RestoreTableResult

__all__ = [
    # Profile
    "Profile",
    "ProfileStatus",
    "Role",
    # Contribution
    "ALLOWED_PERSON_COLUMNS",
    "AddEventPayload",
    "AddPersonPayload",
    "AddPostPayload",
    "AddQuizQuestionPayload",
    "ContributionCreate",
    "ContributionFieldName",
    "ContributionPayload",
    "ContributionReview",
    "ContributionStatus",
    "DeletePersonPayload",
    "EditPersonFieldPayload",
    "PayloadError",
    "normalize_event_type",
    "parse_payload",
    # Registration
    "PublicQuestion",
    "QuestionsResponse",
    "QuizAnswer",
    "VerifyQuizRequest",
    "VerifyQuizResponse",
    # Media
    "ALLOWED_MIME_TYPES",
    "IMAGE_MIME_TYPES",
    "MediaState",
    "MediaType",
    "MediaUpdate",
    "UploadQuota",
    "UploadResponse",
    # Admin
    "AuditAction",
    "BugCategory",
    "BugReportCreate",
    "BugReportUpdate",
    "BugStatus",
    "RestoreTableResult",
]
