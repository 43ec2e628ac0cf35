# =============================================================================
# workers/ - Celery Background Task Workers
# =============================================================================
# This package contains the Celery configuration and task definitions for
# work that must not hold up an HTTP request.
#
# Components:
# - celery_app.py: Celery application configuration
# - tasks.py: Task definitions (contribution emails, birthday job)
# - config.py: Worker-specific settings, including the beat schedule
#
# Usage:
#   # Start worker with the daily birthday schedule
#   celery -A workers.celery_app worker --beat --loglevel=info
#
#   # Submit task (from API)
#   from workers.tasks import notify_new_contribution
#   notify_new_contribution.delay(contribution_row)
# =============================================================================

from .celery_app import celery_app
from . import tasks

__all__ = [
    "celery_app",
    "tasks",
]
