"""Scout control API — test runs, full runs, run history and scraper self-reports."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.config import get_settings
from app.dependencies.auth import require_admin
from app.exceptions import RunTransitionError, SpawnError
from app.models.base import get_sync_db
from app.models.scout_run import RunStatus
from app.models.scout_target import ScoutTarget
from app.schemas.scout_run import (
    DryRunRequest,
    DryRunResponse,
    RunLaunchResponse,
    RunReport,
    RunRequest,
    ScoutRunRead,
)
from app.services.run_registry import RunRegistry
from app.services.scout_supervisor import ScoutSupervisor, get_supervisor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scout", tags=["scout"], dependencies=[Depends(require_admin)])

HISTORY_LIMIT = get_settings().history_limit


def _run_read(run, supervisor: ScoutSupervisor) -> ScoutRunRead:
    data = ScoutRunRead.model_validate(run)
    data.alive = supervisor.is_alive(run.id)
    return data


@router.post("/test", response_model=DryRunResponse, response_model_exclude_unset=True)
def dry_run(
    body: DryRunRequest,
    supervisor: ScoutSupervisor = Depends(get_supervisor),
):
    """Dry-run the scraper against one URL and return its preview (blocks up to the test timeout)."""
    try:
        result = supervisor.run_test(body.url)
    except SpawnError as e:
        logger.error(f"Test run for {body.url} could not start: {e}")
        return JSONResponse(status_code=500, content={"success": False, "error": str(e), "log": str(e)})
    return result.to_response()


@router.post("/run", response_model=RunLaunchResponse, status_code=202)
def run_scout(
    body: RunRequest | None = None,
    supervisor: ScoutSupervisor = Depends(get_supervisor),
):
    """Start a full scrape (all targets, or one override URL) and return immediately."""
    url = body.url if body else None
    handle = supervisor.launch(url=url)
    if handle is None:
        return RunLaunchResponse(message="Scout failed to start; check the server log")
    target = url or "all targets"
    return RunLaunchResponse(message=f"Scout started for {target}", run_id=handle.run_id)


@router.post("/targets/{target_id}/run", response_model=RunLaunchResponse, status_code=202)
def run_target(
    target_id: str,
    db: Session = Depends(get_sync_db),
    supervisor: ScoutSupervisor = Depends(get_supervisor),
):
    """Start a scrape of a single configured target."""
    target = db.get(ScoutTarget, target_id)
    if not target:
        raise HTTPException(status_code=404, detail="Target not found")

    handle = supervisor.launch(target=target)
    if handle is None:
        return RunLaunchResponse(message="Scout failed to start; check the server log")
    return RunLaunchResponse(message=f"Scout started for {target.name}", run_id=handle.run_id)


@router.get("/history", response_model=list[ScoutRunRead])
def list_history(
    limit: int = Query(HISTORY_LIMIT, ge=1, le=HISTORY_LIMIT),
    db: Session = Depends(get_sync_db),
    supervisor: ScoutSupervisor = Depends(get_supervisor),
):
    """List recent scout runs, newest first."""
    runs = RunRegistry(db).list_recent(limit)
    return [_run_read(run, supervisor) for run in runs]


@router.get("/runs/{run_id}", response_model=ScoutRunRead)
def get_run(
    run_id: str,
    db: Session = Depends(get_sync_db),
    supervisor: ScoutSupervisor = Depends(get_supervisor),
):
    """Get a single scout run."""
    run = RunRegistry(db).get(run_id)
    if not run:
        raise HTTPException(status_code=404, detail="Run not found")
    return _run_read(run, supervisor)


@router.post("/runs/{run_id}/start", response_model=ScoutRunRead)
def report_start(
    run_id: str,
    db: Session = Depends(get_sync_db),
    supervisor: ScoutSupervisor = Depends(get_supervisor),
):
    """Called by the scraper when it begins a run."""
    run = RunRegistry(db).upsert_run_start(run_id)
    return _run_read(run, supervisor)


@router.post("/runs/{run_id}", response_model=ScoutRunRead)
def report_update(
    run_id: str,
    report: RunReport,
    db: Session = Depends(get_sync_db),
    supervisor: ScoutSupervisor = Depends(get_supervisor),
):
    """Called by the scraper to report progress or completion."""
    try:
        status = RunStatus.parse(report.status)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    registry = RunRegistry(db)
    try:
        run = registry.report_run_update(
            run_id,
            status,
            events_found=report.events_found,
            log_summary=report.log_summary,
            end_time=report.end_time,
        )
    except RunTransitionError as e:
        logger.warning(str(e))
        raise HTTPException(status_code=409, detail=str(e))

    if report.target_id:
        registry.record_target_result(report.target_id, report.events_found)
    return _run_read(run, supervisor)
