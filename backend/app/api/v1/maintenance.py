"""Maintenance API endpoints."""

from fastapi import APIRouter, Depends

from app.dependencies.auth import require_admin
from app.schemas.scout_run import CleanupResponse

router = APIRouter(prefix="/maintenance", tags=["maintenance"], dependencies=[Depends(require_admin)])


@router.post("/cleanup", response_model=CleanupResponse, status_code=202)
async def trigger_cleanup():
    """Queue an immediate retention sweep."""
    from app.tasks.celery_app import scheduler

    task = scheduler.dispatch("retention-sweep")

    return CleanupResponse(
        message="Retention sweep queued",
        task_id=task.id,
    )
