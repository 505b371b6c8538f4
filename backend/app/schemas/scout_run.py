"""Pydantic schemas for Scout runs and the operator control surface."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.models.scout_run import RunStatus


class ScoutRunRead(BaseModel):
    """Run history entry."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    status: RunStatus
    started_at: datetime
    finished_at: datetime | None = None
    events_found: int | None = None
    log_summary: str | None = None
    alive: bool = False


class RunReport(BaseModel):
    """Progress/completion report sent by a scraper process."""

    status: str
    events_found: int | None = Field(None, ge=0)
    log_summary: str | None = None
    end_time: datetime | None = None
    target_id: str | None = None


class DryRunRequest(BaseModel):
    url: str = Field(..., min_length=1)


class DryRunResponse(BaseModel):
    success: bool
    preview: dict[str, Any] | None = None
    log: str | None = None
    timed_out: bool = False


class RunRequest(BaseModel):
    url: str | None = None


class RunLaunchResponse(BaseModel):
    message: str
    run_id: str | None = None


class CleanupResponse(BaseModel):
    message: str
    task_id: str
