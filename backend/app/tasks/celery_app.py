"""Celery application configuration and beat schedule."""

from celery import Celery

from app.config import get_settings
from app.tasks.schedule import ScoutScheduler, default_triggers

settings = get_settings()

celery_app = Celery(
    "scout",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "app.tasks.scout_tasks",
        "app.tasks.maintenance_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.local_timezone,
    task_track_started=True,
    task_time_limit=600,
    task_soft_time_limit=540,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)

scheduler = ScoutScheduler(celery_app, default_triggers(settings.scout_full_scrape_hours))
scheduler.start()
