"""Pydantic schemas package."""

from app.schemas.scout_run import (
    ScoutRunRead,
    RunReport,
    DryRunRequest,
    DryRunResponse,
    RunRequest,
    RunLaunchResponse,
    CleanupResponse,
)

__all__ = [
    "ScoutRunRead",
    "RunReport",
    "DryRunRequest",
    "DryRunResponse",
    "RunRequest",
    "RunLaunchResponse",
    "CleanupResponse",
]
