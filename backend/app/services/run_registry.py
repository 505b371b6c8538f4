"""Run registry — persistent history of scout invocations.

Scraper processes report their own lifecycle here (through the
``/scout/runs`` endpoints); the supervisor never writes run status itself.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import RunTransitionError, StorageError
from app.models.scout_run import RunStatus, ScoutRun
from app.models.scout_target import ScoutTarget

logger = logging.getLogger(__name__)


class RunRegistry:
    """Data access for ``scout_runs`` over a sync SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, run_id: str) -> ScoutRun | None:
        try:
            return self.db.get(ScoutRun, run_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load run {run_id}: {e}") from e

    def upsert_run_start(self, run_id: str) -> ScoutRun:
        """Create a RUNNING record for ``run_id`` unless one already exists."""
        try:
            run = self.db.get(ScoutRun, run_id)
            if run is None:
                run = ScoutRun(
                    id=run_id,
                    status=RunStatus.RUNNING.value,
                    started_at=datetime.now(timezone.utc),
                )
                self.db.add(run)
                self.db.commit()
                logger.info(f"Run {run_id} started")
            return run
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to record start of run {run_id}: {e}") from e

    def report_run_update(
        self,
        run_id: str,
        status: RunStatus | str,
        events_found: int | None = None,
        log_summary: str | None = None,
        end_time: datetime | None = None,
    ) -> ScoutRun:
        """Apply a progress/completion report, creating the record on first contact.

        Raises:
            RunTransitionError: the run already finished with a different status.
            StorageError: the write failed.
        """
        status = RunStatus.parse(status)
        now = datetime.now(timezone.utc)

        try:
            run = self.db.get(ScoutRun, run_id)
            if run is None:
                run = ScoutRun(id=run_id, started_at=now)
                self.db.add(run)
            else:
                current = run.run_status
                if current.is_terminal and status != current:
                    raise RunTransitionError(run_id, current.value, status.value)

            run.status = status.value
            if events_found is not None:
                run.events_found = events_found
            if log_summary is not None:
                run.log_summary = log_summary
            if end_time is not None:
                run.finished_at = end_time
            elif status.is_terminal and run.finished_at is None:
                run.finished_at = now

            self.db.commit()
            logger.info(f"Run {run_id} -> {status.value} (events_found={events_found})")
            return run
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to update run {run_id}: {e}") from e

    def list_recent(self, limit: int = 50) -> list[ScoutRun]:
        """Newest runs first, by start time."""
        try:
            query = select(ScoutRun).order_by(ScoutRun.started_at.desc()).limit(limit)
            return list(self.db.execute(query).scalars().all())
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list runs: {e}") from e

    def record_target_result(self, target_id: str, events_found: int | None) -> ScoutTarget | None:
        """Refresh a target's last-run statistics. Unknown targets are ignored."""
        try:
            target = self.db.get(ScoutTarget, target_id)
            if target is None:
                logger.warning(f"Run report for unknown target {target_id}")
                return None
            target.last_scraped_at = datetime.now(timezone.utc)
            if events_found is not None:
                target.last_events_found = events_found
            self.db.commit()
            return target
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to update target {target_id}: {e}") from e
