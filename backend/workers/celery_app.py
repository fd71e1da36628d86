"""
Celery Application Configuration
"""

from celery import Celery
from celery.schedules import crontab

from core.config import get_settings

settings = get_settings()


def _every_n_minutes(minutes: int) -> crontab:
    if 0 < minutes < 60:
        return crontab(minute=f"*/{minutes}")
    return crontab(minute=0)


celery_app = Celery(
    "flowlogic",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["workers.actions"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    worker_prefetch_multiplier=1,
    task_routes={
        "workers.actions.*": {"queue": "actions"},
    },
    # ── Celery Beat Schedule ─────────────────────────────────────────
    beat_schedule={
        "generate-action-recommendations": {
            "task": "workers.actions.generate_recommendations",
            "schedule": _every_n_minutes(settings.action_generation_schedule_minutes),
            "options": {"queue": "actions"},
        },
    },
)
