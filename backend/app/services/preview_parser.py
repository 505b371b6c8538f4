"""Preview extraction from scout dry-run output.

A dry run prints one line of the form ``PREVIEW_JSON:{...}`` somewhere in its
output. Everything else is free-form logging and is ignored here.
"""

import json
import logging
from typing import Any, Iterable

from app.exceptions import PreviewParseError

logger = logging.getLogger(__name__)

PREVIEW_MARKER = "PREVIEW_JSON:"


def decode_preview(line: str) -> dict[str, Any]:
    """Decode the JSON object following the marker on ``line``."""
    _, _, payload = line.partition(PREVIEW_MARKER)
    try:
        preview = json.loads(payload.strip())
    except ValueError as e:
        raise PreviewParseError(f"Malformed preview JSON: {e}") from e
    if not isinstance(preview, dict):
        raise PreviewParseError(f"Preview is {type(preview).__name__}, expected object")
    return preview


class PreviewScanner:
    """Incremental scanner; only the first marker line is considered."""

    def __init__(self):
        self.preview: dict[str, Any] | None = None
        self.seen_marker = False

    def feed(self, line: str) -> dict[str, Any] | None:
        if self.seen_marker or PREVIEW_MARKER not in line:
            return self.preview
        self.seen_marker = True
        try:
            self.preview = decode_preview(line)
        except PreviewParseError as e:
            logger.debug(f"Ignoring preview: {e}")
        return self.preview

    def feed_lines(self, lines: Iterable[str]) -> dict[str, Any] | None:
        for line in lines:
            self.feed(line)
            if self.seen_marker:
                break
        return self.preview


def extract_preview(output: str) -> dict[str, Any] | None:
    """Return the first preview payload in ``output``, or None."""
    return PreviewScanner().feed_lines(output.splitlines())
