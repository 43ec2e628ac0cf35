# =============================================================================
# app/routers/cron.py - Scheduled Job Endpoints
# =============================================================================
# Called by an external scheduler with `Authorization: Bearer <CRON_SECRET>`.
# With CRON_SECRET unset every call is refused.
# =============================================================================

import hmac
import logging

from fastapi import APIRouter, Header
from fastapi.responses import JSONResponse

from app.config import settings
from app.dependencies import BirthdayServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()


def _authorized(authorization: str | None) -> bool:
    secret = settings.CRON_SECRET
    if not secret or not authorization:
        return False
    # compare_digest only accepts ASCII str; headers may carry any latin-1 byte
    return hmac.compare_digest(authorization.encode("utf-8"), f"Bearer {secret}".encode("utf-8"))


@router.get("/cron/birthday")
async def birthday_cron(
    service: BirthdayServiceDep,
    authorization: str | None = Header(default=None),
):
    """
    Send today's birthday emails and tomorrow's admin reminders.

    Safe to call more than once a day: already-notified recipients are
    skipped.
    """
    if not _authorized(authorization):
        logger.warning("Rejected birthday cron call with bad or missing secret")
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    return service.run()
