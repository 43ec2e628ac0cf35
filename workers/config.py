# =============================================================================
# workers/config.py - Notification Worker Settings
# =============================================================================
# Loaded by celery_app via config_from_object("workers.config:CeleryConfig").
# =============================================================================

from celery.schedules import crontab

from app.config import settings

NOTIFICATION_TASKS = (
    "workers.tasks.notify_new_contribution",
    "workers.tasks.send_birthday_notifications",
)


class CeleryConfig:
    """Redis broker, JSON payloads, a notifications queue and the birthday beat."""

    broker_url = settings.REDIS_URL
    result_backend = settings.REDIS_URL
    result_expires = 3600

    task_serializer = "json"
    result_serializer = "json"
    accept_content = ["json"]

    task_acks_late = True
    worker_prefetch_multiplier = 1

    # The birthday job walks every living person; emails are single requests
    task_time_limit = 300
    task_soft_time_limit = 240

    task_default_queue = "default"
    task_queues = {
        name: {"exchange": name, "routing_key": name}
        for name in ("default", "notifications")
    }
    task_routes = {name: {"queue": "notifications"} for name in NOTIFICATION_TASKS}

    # A failed email is logged and dropped
    task_annotations = {"*": {"max_retries": 0}}

    timezone = "UTC"
    enable_utc = True

    # 08:00 in Vietnam
    beat_schedule = {
        "daily-birthday-notifications": {
            "task": "workers.tasks.send_birthday_notifications",
            "schedule": crontab(hour=1, minute=0),
        },
    }

    worker_send_task_events = True
    task_send_sent_event = True
