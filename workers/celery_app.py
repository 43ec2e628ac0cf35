# =============================================================================
# workers/celery_app.py - Notification Worker
# =============================================================================
# One Celery app for the contribution emails and the daily birthday job.
#
#   celery -A workers.celery_app worker --beat --loglevel=info
# =============================================================================

import logging

from celery import Celery
from celery.signals import task_failure, task_postrun, task_prerun
from dotenv import load_dotenv

from app.config import settings

load_dotenv()

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def _redacted(url: str) -> str:
    return url.split("@")[-1] if "@" in url else url


def create_celery_app() -> Celery:
    app = Celery(
        "giapha_worker",
        broker=settings.REDIS_URL,
        backend=settings.REDIS_URL,
        include=["workers.tasks"],
    )
    app.config_from_object("workers.config:CeleryConfig")
    logger.info(f"Notification worker using broker {_redacted(settings.REDIS_URL)}")
    return app


celery_app = create_celery_app()


@task_prerun.connect
def log_task_start(sender=None, task_id=None, task=None, **extra):
    logger.info(f"{task.name} [{task_id}] started")


@task_postrun.connect
def log_task_end(sender=None, task_id=None, task=None, state=None, **extra):
    logger.info(f"{task.name} [{task_id}] finished: {state}")


@task_failure.connect
def log_task_failure(sender=None, task_id=None, exception=None, **extra):
    """Emails are not retried, so this is the only trace of a lost message."""
    logger.error(f"{sender.name} [{task_id}] failed, not retried: {exception}")


if __name__ == "__main__":
    celery_app.start()
