"""Retention sweep — deletes expired records and their stored images.

End times come in two shapes. UTC-qualified strings (``...Z``/``...+00:00``)
are absolute instants and expire ``retention_utc_days`` after they pass.
Naive strings were written in the venue's local wall-clock time with no
offset, so they get ``retention_local_days`` (one day more) to absorb any
offset we might be getting wrong; under-deleting is preferred.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, Union
from zoneinfo import ZoneInfo

from sqlalchemy import delete, func, not_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.exceptions import AssetDeleteError, StorageError
from app.models.event import Event
from app.services.asset_store import LocalAssetStore

logger = logging.getLogger(__name__)

UTC_SUFFIXES = ("Z", "z", "+00:00")

EXPIRABLE_MODELS = (Event,)


@dataclass(frozen=True)
class UtcTimestamp:
    instant: datetime

    policy = "utc"


@dataclass(frozen=True)
class LocalTimestamp:
    naive: datetime

    policy = "local"


EndOfLife = Union[UtcTimestamp, LocalTimestamp]


def is_utc_qualified(value: str) -> bool:
    return value.strip().endswith(UTC_SUFFIXES)


def parse_end_of_life(value: str) -> EndOfLife:
    """Tag an end-time string as a UTC instant or a naive local time.

    Raises:
        ValueError: the string is not ISO-8601-like.
    """
    text = value.strip()
    if is_utc_qualified(text):
        if text[-1] in "Zz":
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
        return UtcTimestamp(parsed.astimezone(timezone.utc))

    parsed = datetime.fromisoformat(text)
    # Non-UTC offsets are rare; judge them by their wall-clock value
    return LocalTimestamp(parsed.replace(tzinfo=None))


@dataclass
class SweepResult:
    """Outcome of one sweep. ``failed`` lists records that could not be deleted."""

    deleted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    asset_failures: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    deleted_by_policy: dict[str, int] = field(default_factory=lambda: {"utc": 0, "local": 0})

    @property
    def partial_failure(self) -> bool:
        return bool(self.failed)

    def summary(self) -> dict:
        return {
            "deleted": len(self.deleted),
            "deleted_utc": self.deleted_by_policy["utc"],
            "deleted_local": self.deleted_by_policy["local"],
            "failed": list(self.failed),
            "asset_failures": len(self.asset_failures),
            "skipped": len(self.skipped),
        }


class RetentionSweeper:
    def __init__(
        self,
        db: Session,
        assets: LocalAssetStore,
        local_tz: str = "UTC",
        utc_days: int = 7,
        local_days: int = 8,
        models: Iterable[type] = EXPIRABLE_MODELS,
    ):
        self.db = db
        self.assets = assets
        self.local_tz = ZoneInfo(local_tz)
        self.utc_window = timedelta(days=utc_days)
        self.local_window = timedelta(days=local_days)
        self.models = tuple(models)

    @classmethod
    def from_settings(cls, db: Session) -> "RetentionSweeper":
        settings = get_settings()
        return cls(
            db,
            LocalAssetStore(settings.uploads_dir),
            local_tz=settings.local_timezone,
            utc_days=settings.retention_utc_days,
            local_days=settings.retention_local_days,
        )

    def cutoffs(self, now: datetime | None = None) -> tuple[datetime, datetime]:
        """Return (UTC cutoff instant, naive local cutoff)."""
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            raise ValueError("now must be timezone-aware")
        utc_cutoff = now.astimezone(timezone.utc) - self.utc_window
        local_cutoff = now.astimezone(self.local_tz).replace(tzinfo=None) - self.local_window
        return utc_cutoff, local_cutoff

    def sweep(self, now: datetime | None = None) -> SweepResult:
        """Delete every expired record of every registered model.

        Raises:
            StorageError: a candidate query failed. Per-record failures do not raise.
        """
        utc_cutoff, local_cutoff = self.cutoffs(now)
        result = SweepResult()

        for model in self.models:
            for utc, cutoff in ((True, utc_cutoff), (False, local_cutoff)):
                for row in self._candidates(model, utc=utc, cutoff=cutoff):
                    try:
                        end_of_life = self._end_of_life(model, row, result)
                        if end_of_life is not None and self._is_expired(end_of_life, utc_cutoff, local_cutoff):
                            self._expire(model, row, end_of_life.policy, result)
                    except SQLAlchemyError as e:
                        self.db.rollback()
                        logger.error(f"Failed to expire {model.__tablename__}/{row.id}: {e}")
                        result.failed.append(row.id)

        logger.info(f"Retention sweep: {result.summary()}")
        return result

    def _candidates(self, model, utc: bool, cutoff: datetime) -> list:
        """Plain (id, end_time, image_path) rows, detached from the session."""
        end_time = func.trim(model.end_time)
        qualified = or_(*(end_time.like(f"%{suffix}") for suffix in UTC_SUFFIXES))
        # ISO strings order by their date prefix, so nothing dated after the cutoff day can qualify
        upper_bound = (cutoff.date() + timedelta(days=1)).isoformat()
        query = (
            select(model.id, model.end_time, model.image_path)
            .where(
                model.end_time.is_not(None),
                end_time < upper_bound,
                qualified if utc else not_(qualified),
            )
            .order_by(model.id)
        )
        try:
            return list(self.db.execute(query).all())
        except SQLAlchemyError as e:
            self.db.rollback()
            policy = "utc" if utc else "local"
            raise StorageError(f"Failed to query expired {model.__tablename__} ({policy}): {e}") from e

    @staticmethod
    def _end_of_life(model, row, result: SweepResult) -> EndOfLife | None:
        try:
            return parse_end_of_life(row.end_time)
        except ValueError:
            logger.warning(f"Unparseable end_time on {model.__tablename__}/{row.id}: {row.end_time!r}")
            result.skipped.append(row.id)
            return None

    @staticmethod
    def _is_expired(end_of_life: EndOfLife, utc_cutoff: datetime, local_cutoff: datetime) -> bool:
        if isinstance(end_of_life, UtcTimestamp):
            return end_of_life.instant < utc_cutoff
        return end_of_life.naive < local_cutoff

    def _expire(self, model, row, policy: str, result: SweepResult) -> None:
        if row.image_path:
            try:
                self.assets.delete(row.image_path)
            except AssetDeleteError as e:
                logger.warning(f"Asset cleanup failed for {row.id}: {e}")
                result.asset_failures.append(row.id)

        try:
            self._delete_record(model, row.id)
        except StorageError as e:
            logger.error(f"Failed to delete {row.id}: {e}")
            result.failed.append(row.id)
            return
        result.deleted.append(row.id)
        result.deleted_by_policy[policy] += 1

    def _delete_record(self, model, record_id: str) -> None:
        """Delete by primary key; a row already gone counts as deleted."""
        try:
            self.db.execute(delete(model).where(model.id == record_id))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(str(e)) from e
