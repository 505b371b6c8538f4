"""Restore scout targets from a JSON backup.

The backup is the list exported by the admin console: objects with ``name``
and ``url`` and optionally ``id``, ``city`` and ``selector``. Existing targets
are updated by id; entries without an id are matched on url.

Usage:
    docker compose exec backend python -m scripts.seed_targets targets.json
"""

import json
import logging
import sys

from app.models.base import SyncSessionLocal, new_id
from app.models.scout_target import ScoutTarget

logger = logging.getLogger(__name__)

# Page patterns the scraper knows; used when a backup entry has no selector
DEFAULT_SELECTORS = {
    "bilietai.lt": ".event_short",
    "kakava.lt": "a.event-card",
}
FALLBACK_SELECTOR = "a[href*='/e/']"


def default_selector(url: str) -> str:
    for domain, selector in DEFAULT_SELECTORS.items():
        if domain in url:
            return selector
    return FALLBACK_SELECTOR


def import_targets(db, entries: list[dict]) -> dict:
    created = 0
    updated = 0
    skipped = 0

    for entry in entries:
        name = (entry.get("name") or "").strip()
        url = (entry.get("url") or "").strip()
        if not name or not url:
            logger.warning(f"Skipping target without name/url: {entry}")
            skipped += 1
            continue

        target = None
        if entry.get("id"):
            target = db.get(ScoutTarget, str(entry["id"]))
        if target is None:
            target = db.query(ScoutTarget).filter(ScoutTarget.url == url).first()

        if target is None:
            target = ScoutTarget(id=str(entry.get("id") or new_id()))
            db.add(target)
            created += 1
        else:
            updated += 1

        target.name = name
        target.url = url
        target.city = entry.get("city") or None
        target.selector = entry.get("selector") or default_selector(url)

    db.commit()
    return {"created": created, "updated": updated, "skipped": skipped}


def main(path: str) -> None:
    with open(path, encoding="utf-8") as f:
        entries = json.load(f)
    if not isinstance(entries, list):
        raise SystemExit("Backup must be a JSON list of targets")

    db = SyncSessionLocal()
    try:
        stats = import_targets(db, entries)
    finally:
        db.close()

    print(f"Targets imported: {stats['created']} created, {stats['updated']} updated, {stats['skipped']} skipped")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        raise SystemExit("usage: python -m scripts.seed_targets <targets.json>")
    main(sys.argv[1])
