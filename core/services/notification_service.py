# =============================================================================
# core/services/notification_service.py - Email Templates
# =============================================================================
# Builds and sends the three transactional emails:
#   - new contribution  -> active admins
#   - birthday today    -> active members
#   - birthday tomorrow -> first active admin
#
# Send errors propagate as EmailSendError; callers decide whether that is
# fatal (it never is for the request that triggered it).
# =============================================================================

import html
import logging
from datetime import date
from typing import Any

from app.config import settings
from core.models.contribution import FIELD_LABELS, ContributionFieldName
from lib.email_client import EmailSender

logger = logging.getLogger(__name__)


def format_date(iso_date: str) -> str:
    """'1990-03-15' -> '15/03/1990'"""
    d = date.fromisoformat(iso_date[:10])
    return d.strftime("%d/%m/%Y")


def calc_age(iso_date: str, today: date | None = None) -> int:
    """Completed years between birth date and `today`."""
    birth = date.fromisoformat(iso_date[:10])
    today = today or date.today()
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age


def _person_link(handle: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}/people/{handle}"


class NotificationService:
    """Renders Vietnamese HTML emails and hands them to an EmailSender."""

    def __init__(self, sender: EmailSender):
        self.sender = sender

    def new_contribution(self, contribution: dict[str, Any], admin_emails: list[str]) -> bool:
        """
        Tell admins a contribution is waiting for review.

        Returns:
            False when there is nobody to notify
        """
        if not admin_emails:
            logger.info("No active admins to notify about new contribution")
            return False

        field_name = contribution.get("field_name") or ""
        try:
            label = contribution.get("field_label") or FIELD_LABELS[ContributionFieldName(field_name)]
        except ValueError:
            label = field_name

        author = html.escape(contribution.get("author_email") or "Một thành viên")
        person = contribution.get("person_name")
        target = f" cho <strong>{html.escape(person)}</strong>" if person else ""
        note = contribution.get("note")
        note_html = (
            f'<p style="color: #6b7280; margin: 4px 0;">📝 Ghi chú: {html.escape(note)}</p>' if note else ""
        )
        review_url = f"{settings.APP_URL.rstrip('/')}/admin/edits"

        self.sender.send(
            admin_emails,
            f"📬 Đóng góp mới: {label}",
            f"""
            <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 24px;">
                <h2 style="color: #1e40af;">📬 Có đóng góp mới cần duyệt</h2>
                <div style="background: #eff6ff; border: 1px solid #bfdbfe; border-radius: 8px; padding: 20px;">
                    <p style="font-size: 16px; color: #1f2937; margin: 0 0 8px 0;">
                        <strong>{author}</strong> đã gửi đề xuất <strong>{html.escape(label)}</strong>{target}.
                    </p>
                    {note_html}
                </div>
                <div style="margin-top: 20px;">
                    <a href="{review_url}"
                       style="background: #1e40af; color: white; padding: 10px 24px; border-radius: 6px; text-decoration: none; font-size: 14px;">
                        Xem và duyệt
                    </a>
                </div>
                <p style="margin-top: 32px; font-size: 11px; color: #9ca3af; text-align: center;">
                    Email tự động từ Gia Phả Điện Tử
                </p>
            </div>
            """,
        )
        return True

    def birthday_today(self, person: dict[str, Any], recipients: list[str], today: date) -> None:
        name = html.escape(person["display_name"])
        birth_date = person["birth_date"]
        self.sender.send(
            recipients,
            f"🎂 Hôm nay là sinh nhật của {person['display_name']}!",
            f"""
            <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 24px;">
                <div style="text-align: center; margin-bottom: 24px;">
                    <h1 style="color: #b45309; font-size: 24px; margin: 0;">🎂 Chúc Mừng Sinh Nhật!</h1>
                </div>
                <div style="background: #fffbeb; border: 1px solid #fde68a; border-radius: 8px; padding: 20px; margin-bottom: 20px;">
                    <p style="font-size: 18px; color: #1f2937; margin: 0 0 8px 0;">
                        Hôm nay là sinh nhật của <strong style="color: #b45309;">{name}</strong>
                    </p>
                    <p style="color: #6b7280; margin: 4px 0;">
                        📅 Ngày sinh: {format_date(birth_date)} &nbsp;|&nbsp; 🎈 Tròn {calc_age(birth_date, today)} tuổi
                    </p>
                    <p style="color: #6b7280; margin: 4px 0;">🌳 Đời thứ {person.get('generation') or '?'}</p>
                </div>
                <p style="color: #374151; line-height: 1.6;">
                    Hãy dành chút thời gian gửi lời chúc tốt đẹp đến thành viên của gia đình chúng ta nhé! 💝
                </p>
                <div style="margin-top: 24px; text-align: center;">
                    <a href="{_person_link(person['handle'])}"
                       style="background: #b45309; color: white; padding: 10px 24px; border-radius: 6px; text-decoration: none; font-size: 14px;">
                        Xem hồ sơ thành viên
                    </a>
                </div>
                <p style="margin-top: 32px; font-size: 11px; color: #9ca3af; text-align: center;">
                    Email này được gửi tự động từ hệ thống Gia Phả Điện Tử.
                </p>
            </div>
            """,
        )

    def birthday_reminder(self, person: dict[str, Any], admin_email: str, today: date) -> None:
        name = html.escape(person["display_name"])
        birth_date = person["birth_date"]
        # Turns this age tomorrow
        age = calc_age(birth_date, today) + 1
        self.sender.send(
            [admin_email],
            f"🔔 Nhắc nhở: Ngày mai là sinh nhật của {person['display_name']}",
            f"""
            <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 24px;">
                <h2 style="color: #1e40af;">🔔 Nhắc nhở sinh nhật: Ngày mai</h2>
                <div style="background: #eff6ff; border: 1px solid #bfdbfe; border-radius: 8px; padding: 20px;">
                    <p style="font-size: 16px; color: #1f2937; margin: 0 0 8px 0;">
                        <strong>{name}</strong> sẽ tròn <strong>{age} tuổi</strong> vào ngày mai.
                    </p>
                    <p style="color: #6b7280; margin: 4px 0;">📅 Ngày sinh: {format_date(birth_date)}</p>
                    <p style="color: #6b7280; margin: 4px 0;">
                        🌳 Đời thứ {person.get('generation') or '?'} &nbsp;|&nbsp; 🔑 Handle: <code>{html.escape(person['handle'])}</code>
                    </p>
                </div>
                <div style="margin-top: 20px;">
                    <a href="{_person_link(person['handle'])}"
                       style="background: #1e40af; color: white; padding: 10px 24px; border-radius: 6px; text-decoration: none; font-size: 14px;">
                        Xem hồ sơ
                    </a>
                </div>
                <p style="margin-top: 32px; font-size: 11px; color: #9ca3af; text-align: center;">
                    Email tự động từ Gia Phả Điện Tử
                </p>
            </div>
            """,
        )
