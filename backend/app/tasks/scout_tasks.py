"""Scout orchestration tasks."""

import logging

from app.tasks.celery_app import celery_app
from app.services.scout_supervisor import get_supervisor

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.scout_tasks.run_full_scrape")
def run_full_scrape(url: str | None = None):
    """Launch the scraper against every target (or one URL) without waiting for it."""
    try:
        handle = get_supervisor().launch(url=url)
    except Exception as e:
        logger.exception(f"Scheduled scrape failed to launch: {e}")
        return {"launched": False, "error": str(e)}

    if handle is None:
        return {"launched": False}
    logger.info(f"Launched scout run {handle.run_id}")
    return {"launched": True, "run_id": handle.run_id}
