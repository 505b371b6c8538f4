"""Scout run model — audit log per scraper invocation."""

import enum

from sqlalchemy import Column, String, Integer, DateTime, Text, Index

from app.models.base import Base, StringIdMixin


class RunStatus(str, enum.Enum):
    STARTING = "STARTING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @classmethod
    def parse(cls, value: "str | RunStatus") -> "RunStatus":
        """Accept enum members, canonical names, and legacy scraper spellings."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().upper()
        normalized = _LEGACY_STATUSES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown run status: {value!r}") from None


TERMINAL_STATUSES = frozenset({RunStatus.SUCCEEDED, RunStatus.FAILED, RunStatus.TIMED_OUT})

# Older scout builds reported these
_LEGACY_STATUSES = {
    "SUCCESS": "SUCCEEDED",
    "ERROR": "FAILED",
    "TIMEOUT": "TIMED_OUT",
}


class ScoutRun(StringIdMixin, Base):
    __tablename__ = "scout_runs"

    status = Column(String(20), nullable=False, default=RunStatus.RUNNING.value)
    started_at = Column(DateTime(timezone=True), nullable=False)
    finished_at = Column(DateTime(timezone=True))
    events_found = Column(Integer)
    log_summary = Column(Text)

    __table_args__ = (
        Index("idx_scout_run_started", "started_at"),
    )

    @property
    def run_status(self) -> RunStatus:
        return RunStatus.parse(self.status)
