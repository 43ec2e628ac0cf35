# =============================================================================
# lib/email_client.py - Transactional Email Senders
# =============================================================================
# - ResendEmailSender: delivers through the Resend SDK
# - InMemoryEmailSender: records messages (tests / local development)
#
# Usage:
#   sender = ResendEmailSender(api_key="re_...", from_address="noreply@...")
#   sender.send(["a@example.com"], "Subject", "<p>Hello</p>")
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import resend
from resend.exceptions import ResendError

from lib.utils import ApplicationError

logger = logging.getLogger(__name__)


class EmailSendError(ApplicationError):
    """Raised when the provider rejects or cannot accept a message."""

    def __init__(self, message: str, recipients: list[str] | None = None):
        super().__init__(
            message,
            code="EMAIL_SEND_FAILED",
            suggestion="Check RESEND_API_KEY and that EMAIL_FROM's domain is verified",
            details={"recipients": recipients or []},
        )


class EmailSender(Protocol):
    """Interface for delivering one HTML email to one or more recipients."""

    def send(self, to: list[str], subject: str, html: str) -> None:
        ...


class ResendEmailSender:
    """Send email through Resend."""

    def __init__(self, api_key: str, from_address: str):
        self.api_key = api_key
        self.from_address = from_address

    def send(self, to: list[str], subject: str, html: str) -> None:
        """
        Deliver a message. Fails fast; retrying is the caller's decision.

        Raises:
            EmailSendError: On a missing key, a rejected message or a transport error
        """
        if not self.api_key:
            raise EmailSendError("RESEND_API_KEY is not set", recipients=to)

        resend.api_key = self.api_key
        params = {
            "from": self.from_address,
            "to": to,
            "subject": subject,
            "html": html,
        }
        try:
            sent = resend.Emails.send(params)
        except ResendError as e:
            raise EmailSendError(f"Resend rejected the message: {e}", recipients=to) from e
        except Exception as e:
            # The SDK lets its HTTP client's errors through unwrapped
            raise EmailSendError(f"Resend request failed: {e}", recipients=to) from e

        logger.info(f"Email {sent.get('id')} sent to {len(to)} recipient(s): {subject}")


@dataclass
class SentEmail:
    to: list[str]
    subject: str
    html: str


class InMemoryEmailSender:
    """Collects sent messages instead of delivering them."""

    def __init__(self):
        self.sent: list[SentEmail] = []
        self.fail = False

    def send(self, to: list[str], subject: str, html: str) -> None:
        if self.fail:
            raise EmailSendError("simulated send failure", recipients=to)
        self.sent.append(SentEmail(to=list(to), subject=subject, html=html))
