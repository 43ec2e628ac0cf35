# =============================================================================
# core/services/birthday_service.py - Daily Birthday Notifications
# =============================================================================
# Run once a day (cron endpoint or Celery beat):
#   1. living people born on today's month/day -> one email to every active
#      member not yet notified for (person, year)
#   2. living people born tomorrow -> one reminder to the first active admin,
#      keyed "<handle>_reminder"
#
# "Today" is the local calendar date (UTC+7 by default). Sent markers go into
# birthday_notifications only after a successful send, so running twice in
# one day sends nothing the second time and a failed send is retried on the
# next run.
# =============================================================================

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any

from app.config import settings
from app.exceptions import UpstreamError
from core.services.notification_service import NotificationService
from core.services.profile_service import ProfileService
from lib.email_client import EmailSender, EmailSendError
from lib.repository import Repository, RepositoryError

logger = logging.getLogger(__name__)

MARKERS_TABLE = "birthday_notifications"
MARKER_CONFLICT = "person_handle,sent_year,recipient_email"


def local_today(now: datetime | None = None, offset_hours: int | None = None) -> date:
    """Calendar date at the configured UTC offset."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    offset = settings.LOCAL_UTC_OFFSET_HOURS if offset_hours is None else offset_hours
    return (now.astimezone(timezone.utc) + timedelta(hours=offset)).date()


class BirthdayService:
    """Sends today's birthday emails and tomorrow's admin reminders."""

    def __init__(self, repo: Repository, sender: EmailSender):
        self.repo = repo
        self.notifications = NotificationService(sender)
        self.profiles = ProfileService(repo)

    def run(self, now: datetime | None = None) -> dict[str, Any]:
        today = local_today(now)
        tomorrow = today + timedelta(days=1)

        try:
            admin_emails = self.profiles.active_admin_emails()
            member_emails = self.profiles.active_member_emails()
            todays = self.people_born_on(today.month, today.day)
            tomorrows = self.people_born_on(tomorrow.month, tomorrow.day)
        except RepositoryError as e:
            raise UpstreamError("load birthday data", e)

        today_sent = 0
        for person in todays:
            if self._notify_members(person, member_emails, today):
                today_sent += 1

        reminders_sent = 0
        if admin_emails:
            for person in tomorrows:
                if self._remind_admin(person, admin_emails[0], today):
                    reminders_sent += 1
        elif tomorrows:
            logger.warning("No active admin to remind about tomorrow's birthdays")

        logger.info(
            f"Birthday run {today.isoformat()}: {len(todays)} today ({today_sent} sent), "
            f"{len(tomorrows)} tomorrow ({reminders_sent} reminders)"
        )
        return {
            "ok": True,
            "date": today.isoformat(),
            "todayBirthdays": [p["handle"] for p in todays],
            "todayEmailsSent": today_sent,
            "tomorrowBirthdays": [p["handle"] for p in tomorrows],
            "tomorrowRemindersSent": reminders_sent,
        }

    def people_born_on(self, month: int, day: int) -> list[dict[str, Any]]:
        """
        Living people whose birth_date has this month/day.

        PostgREST can't filter on EXTRACT(), so the month/day match is done
        here over all living people with a birth date.
        """
        rows = self.repo.find_many(
            "people",
            columns="handle, display_name, birth_date, generation",
            eq={"is_living": True},
            not_null=["birth_date"],
        )
        matched = []
        for row in rows:
            try:
                born = date.fromisoformat(str(row["birth_date"])[:10])
            except ValueError:
                logger.warning(f"Skipping {row.get('handle')}: unparseable birth_date {row['birth_date']!r}")
                continue
            if born.month == month and born.day == day:
                matched.append(row)
        return matched

    def _notify_members(self, person: dict[str, Any], member_emails: list[str], today: date) -> bool:
        handle = person["handle"]
        pending = [email for email in member_emails if not self._already_sent(handle, today.year, email)]
        if not pending:
            return False

        try:
            self.notifications.birthday_today(person, pending, today)
        except EmailSendError as e:
            logger.error(f"Birthday email for {handle} failed: {e}")
            return False

        self._mark_sent(handle, today.year, pending)
        return True

    def _remind_admin(self, person: dict[str, Any], admin_email: str, today: date) -> bool:
        key = f"{person['handle']}_reminder"
        if self._already_sent(key, today.year, admin_email):
            return False

        try:
            self.notifications.birthday_reminder(person, admin_email, today)
        except EmailSendError as e:
            logger.error(f"Birthday reminder for {person['handle']} failed: {e}")
            return False

        self._mark_sent(key, today.year, [admin_email])
        return True

    def _already_sent(self, key: str, year: int, email: str) -> bool:
        try:
            marker = self.repo.find_one(
                MARKERS_TABLE,
                columns="id",
                eq={"person_handle": key, "sent_year": year, "recipient_email": email},
            )
        except RepositoryError as e:
            raise UpstreamError("check birthday markers", e)
        return marker is not None

    def _mark_sent(self, key: str, year: int, emails: list[str]) -> None:
        rows = [{"person_handle": key, "sent_year": year, "recipient_email": email} for email in emails]
        try:
            self.repo.upsert_batch(MARKERS_TABLE, rows, on_conflict=MARKER_CONFLICT, ignore_duplicates=True)
        except RepositoryError as e:
            # The email is already out; a missing marker only risks a repeat
            logger.error(f"Could not record birthday markers for {key}: {e}")
