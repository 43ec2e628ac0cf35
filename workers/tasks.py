# =============================================================================
# workers/tasks.py - Celery Task Definitions
# =============================================================================
# Defines background tasks for email notifications.
#
# Tasks:
# - notify_new_contribution: email active admins about a new contribution
# - send_birthday_notifications: daily birthday emails (beat, 01:00 UTC)
# =============================================================================

import logging
from typing import Any

from celery import shared_task

from app.config import settings
from workers.celery_app import celery_app  # noqa: F401  sets the configured app as current

logger = logging.getLogger(__name__)


# =============================================================================
# Dispatch
# =============================================================================

def enqueue_contribution_notification(contribution: dict[str, Any]) -> None:
    """
    Queue the admin email for a newly submitted contribution.

    Publishing is not retried: with the broker down the submission still
    succeeds and the caller logs the failure.
    """
    if not settings.NOTIFICATIONS_ENABLED:
        return
    notify_new_contribution.apply_async(
        kwargs={"contribution": contribution},
        retry=False,
    )
    logger.debug(f"Queued notification for contribution {contribution.get('id')}")


# =============================================================================
# Contribution Notification Task
# =============================================================================

@shared_task(bind=True, name="workers.tasks.notify_new_contribution")
def notify_new_contribution(self, contribution: dict[str, Any]) -> dict[str, Any]:
    """
    Email every active admin that a contribution awaits review.

    Args:
        contribution: The stored contributions row

    Returns:
        Dict with:
        - sent: bool
        - recipients: number of admins emailed
    """
    from app.dependencies import get_email_sender, get_repository
    from core.services.notification_service import NotificationService
    from core.services.profile_service import ProfileService
    from lib.email_client import EmailSendError
    from lib.repository import RepositoryError

    contribution_id = contribution.get("id")
    try:
        admin_emails = ProfileService(get_repository()).active_admin_emails()
    except RepositoryError as e:
        logger.error(f"Could not load admin emails for contribution {contribution_id}: {e}")
        return {"sent": False, "recipients": 0}

    try:
        sent = NotificationService(get_email_sender()).new_contribution(contribution, admin_emails)
    except EmailSendError as e:
        logger.error(f"Contribution {contribution_id} notification failed: {e}")
        return {"sent": False, "recipients": len(admin_emails)}

    return {"sent": sent, "recipients": len(admin_emails) if sent else 0}


# =============================================================================
# Birthday Task
# =============================================================================

@shared_task(bind=True, name="workers.tasks.send_birthday_notifications")
def send_birthday_notifications(self) -> dict[str, Any]:
    """Run the daily birthday job (same work as GET /cron/birthday)."""
    from app.dependencies import get_email_sender, get_repository
    from core.services.birthday_service import BirthdayService

    result = BirthdayService(get_repository(), get_email_sender()).run()
    logger.info(
        f"Birthday task: {result['todayEmailsSent']} birthday email(s), "
        f"{result['tomorrowRemindersSent']} reminder(s)"
    )
    return result
