# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - registration.py: Verification quiz for sign-up
# - contributions.py: Submit / list / review contributions
# - media.py: Media upload and moderation
# - people.py: Person avatar management
# - admin.py: Audit log viewer, backup and restore
# - bug_reports.py: Bug reports
# - cron.py: Scheduled jobs (birthday notifications)
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import registration
from . import contributions
from . import media
from . import people
from . import admin
from . import bug_reports
from . import cron

__all__ = [
    "health",
    "registration",
    "contributions",
    "media",
    "people",
    "admin",
    "bug_reports",
    "cron",
]
