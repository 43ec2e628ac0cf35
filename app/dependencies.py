# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
# These are injected into route handlers using Depends().
#
# The three backends (data store, object store, email) are process-wide
# singletons. With USE_IN_MEMORY_BACKENDS=true they are in-memory fakes,
# which is how tests and offline development run without Supabase/Resend.
# Tests can also replace any getter via app.dependency_overrides.
# =============================================================================

import logging
from typing import Annotated

from fastapi import Depends

from app.config import settings
from core.services import (
    AuditService,
    BackupService,
    BirthdayService,
    BugReportService,
    ContributionService,
    MediaService,
    PeopleService,
    ProfileService,
    RegistrationService,
    StorageService,
)
from lib.email_client import EmailSender, InMemoryEmailSender, ResendEmailSender
from lib.object_store import InMemoryObjectStore, ObjectStore
from lib.repository import InMemoryRepository, Repository
from lib.supabase_client import SupabaseRepository

logger = logging.getLogger(__name__)

_repository: Repository | None = None
_object_store: ObjectStore | None = None
_email_sender: EmailSender | None = None


# -----------------------------------------------------------------------------
# Backends
# -----------------------------------------------------------------------------

def get_repository() -> Repository:
    """Data store singleton (Supabase, or in-memory when configured)."""
    global _repository
    if _repository is None:
        if settings.USE_IN_MEMORY_BACKENDS:
            logger.info("Using in-memory repository")
            _repository = InMemoryRepository()
        else:
            _repository = SupabaseRepository()
    return _repository


def get_object_store() -> ObjectStore:
    """Media object store singleton."""
    global _object_store
    if _object_store is None:
        if settings.USE_IN_MEMORY_BACKENDS:
            _object_store = InMemoryObjectStore()
        else:
            _object_store = StorageService(settings.MEDIA_BUCKET)
    return _object_store


def get_email_sender() -> EmailSender:
    """Transactional email singleton."""
    global _email_sender
    if _email_sender is None:
        if settings.USE_IN_MEMORY_BACKENDS or not settings.email_enabled:
            if not settings.USE_IN_MEMORY_BACKENDS:
                logger.warning("RESEND_API_KEY not set; emails will be recorded, not sent")
            _email_sender = InMemoryEmailSender()
        else:
            _email_sender = ResendEmailSender(settings.RESEND_API_KEY, settings.EMAIL_FROM)
    return _email_sender


def reset_backends() -> None:
    """Drop the cached singletons (tests)."""
    global _repository, _object_store, _email_sender
    _repository = None
    _object_store = None
    _email_sender = None


# Type aliases for dependency injection
RepositoryDep = Annotated[Repository, Depends(get_repository)]
ObjectStoreDep = Annotated[ObjectStore, Depends(get_object_store)]
EmailSenderDep = Annotated[EmailSender, Depends(get_email_sender)]


# -----------------------------------------------------------------------------
# Services
# -----------------------------------------------------------------------------

def get_contribution_notifier():
    """
    Callable the contribution service uses after a submission.

    Returns None when notifications are switched off.
    """
    if not settings.NOTIFICATIONS_ENABLED:
        return None
    from workers.tasks import enqueue_contribution_notification
    return enqueue_contribution_notification


def get_profile_service(repo: RepositoryDep) -> ProfileService:
    return ProfileService(repo)


def get_registration_service(repo: RepositoryDep) -> RegistrationService:
    return RegistrationService(repo)


def get_contribution_service(
    repo: RepositoryDep,
    notifier=Depends(get_contribution_notifier),
) -> ContributionService:
    return ContributionService(repo, notifier=notifier)


def get_media_service(repo: RepositoryDep, store: ObjectStoreDep) -> MediaService:
    return MediaService(repo, store)


def get_people_service(repo: RepositoryDep) -> PeopleService:
    return PeopleService(repo)


def get_audit_service(repo: RepositoryDep) -> AuditService:
    return AuditService(repo)


def get_backup_service(repo: RepositoryDep) -> BackupService:
    return BackupService(repo)


def get_bug_report_service(repo: RepositoryDep) -> BugReportService:
    return BugReportService(repo)


def get_birthday_service(repo: RepositoryDep, sender: EmailSenderDep) -> BirthdayService:
    return BirthdayService(repo, sender)


ProfileServiceDep = Annotated[ProfileService, Depends(get_profile_service)]
RegistrationServiceDep = Annotated[RegistrationService, Depends(get_registration_service)]
ContributionServiceDep = Annotated[ContributionService, Depends(get_contribution_service)]
MediaServiceDep = Annotated[MediaService, Depends(get_media_service)]
PeopleServiceDep = Annotated[PeopleService, Depends(get_people_service)]
AuditServiceDep = Annotated[AuditService, Depends(get_audit_service)]
BackupServiceDep = Annotated[BackupService, Depends(get_backup_service)]
BugReportServiceDep = Annotated[BugReportService, Depends(get_bug_report_service)]
BirthdayServiceDep = Annotated[BirthdayService, Depends(get_birthday_service)]
