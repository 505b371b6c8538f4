"""Periodic triggers for Scout.

The scheduler owns its trigger set instead of relying on a module-level beat
dict, so it can be started/stopped explicitly and fired synchronously.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from celery import Celery
from celery.result import AsyncResult, EagerResult
from celery.schedules import crontab

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Trigger:
    name: str
    task: str
    schedule: Any
    kwargs: dict = field(default_factory=dict)


def default_triggers(full_scrape_hours: int = 6) -> list[Trigger]:
    return [
        Trigger(
            name="scout-full-scrape",
            task="app.tasks.scout_tasks.run_full_scrape",
            schedule=crontab(minute=0, hour=f"*/{full_scrape_hours}"),
        ),
        Trigger(
            name="retention-sweep",
            task="app.tasks.maintenance_tasks.sweep_expired_records",
            schedule=crontab(minute=0),
        ),
    ]


class ScoutScheduler:
    def __init__(self, celery_app: Celery, triggers: list[Trigger]):
        self.celery_app = celery_app
        self.triggers = {trigger.name: trigger for trigger in triggers}
        self.running = False

    def _trigger(self, name: str) -> Trigger:
        try:
            return self.triggers[name]
        except KeyError:
            raise KeyError(f"Unknown trigger: {name}") from None

    def start(self) -> None:
        """Install the triggers into celery beat's schedule."""
        schedule = dict(self.celery_app.conf.beat_schedule or {})
        for trigger in self.triggers.values():
            schedule[trigger.name] = {
                "task": trigger.task,
                "schedule": trigger.schedule,
                "kwargs": trigger.kwargs,
            }
        self.celery_app.conf.beat_schedule = schedule
        self.running = True

    def stop(self) -> None:
        schedule = dict(self.celery_app.conf.beat_schedule or {})
        for name in self.triggers:
            schedule.pop(name, None)
        self.celery_app.conf.beat_schedule = schedule
        self.running = False

    def fire(self, name: str) -> EagerResult:
        """Run a trigger's task in-process and wait for it."""
        trigger = self._trigger(name)
        self.celery_app.loader.import_default_modules()
        return self.celery_app.tasks[trigger.task].apply(kwargs=trigger.kwargs)

    def dispatch(self, name: str) -> AsyncResult:
        """Queue a trigger's task now without waiting for it."""
        trigger = self._trigger(name)
        logger.info(f"Manual trigger: {name}")
        return self.celery_app.send_task(trigger.task, kwargs=trigger.kwargs)
