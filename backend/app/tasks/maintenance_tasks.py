"""Maintenance tasks — retention cleanup of expired events."""

import logging

from app.tasks.celery_app import celery_app
from app.models.base import SyncSessionLocal
from app.services.retention import RetentionSweeper

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.maintenance_tasks.sweep_expired_records")
def sweep_expired_records():
    """Delete events past their retention window, along with their images."""
    db = SyncSessionLocal()
    try:
        result = RetentionSweeper.from_settings(db).sweep()
        if result.partial_failure:
            logger.warning(f"Retention sweep left {len(result.failed)} records behind: {result.failed}")
        return result.summary()
    except Exception as e:
        logger.exception(f"Retention sweep failed: {e}")
        return {"deleted": 0, "error": str(e)}
    finally:
        db.close()
