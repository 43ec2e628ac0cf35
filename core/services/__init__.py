# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .profile_service import ProfileService
from .audit_service import AuditService
from .registration_service import RegistrationService
from .contribution_applier import ContributionApplier
from .contribution_service import ContributionService
from .people_service import PeopleService
from .media_service import MediaService
from .backup_service import BackupService
from .bug_report_service import BugReportService
from .notification_service import NotificationService
from .birthday_service import BirthdayService
from .storage_service import StorageService

__all__ = [
    "ProfileService",
    "AuditService",
    "RegistrationService",
    "ContributionApplier",
    "ContributionService",
    "PeopleService",
    "MediaService",
    "BackupService",
    "BugReportService",
    "NotificationService",
    "BirthdayService",
    "StorageService",
]
