"""Local storage for uploaded event images."""

import logging
import os
from urllib.parse import urlparse

from app.exceptions import AssetDeleteError

logger = logging.getLogger(__name__)

UPLOADS_URL_PREFIX = "uploads/"


class LocalAssetStore:
    def __init__(self, root: str):
        self.root = os.path.realpath(root)

    def resolve(self, reference: str) -> str:
        """Map a stored reference (``/uploads/x.jpg``, full URL, or bare name) to a path under root."""
        relative = urlparse(reference).path.lstrip("/")
        if relative.startswith(UPLOADS_URL_PREFIX):
            relative = relative[len(UPLOADS_URL_PREFIX):]
        if not relative:
            raise AssetDeleteError(f"Empty asset reference: {reference!r}")

        path = os.path.realpath(os.path.join(self.root, relative))
        if os.path.commonpath([self.root, path]) != self.root:
            raise AssetDeleteError(f"Asset reference escapes uploads dir: {reference!r}")
        return path

    def delete(self, reference: str) -> bool:
        """Remove the file behind ``reference``. Returns False if it was already gone."""
        path = self.resolve(reference)
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.debug(f"Asset already absent: {path}")
            return False
        except OSError as e:
            raise AssetDeleteError(f"Could not delete {path}: {e}") from e
        logger.info(f"Deleted asset {path}")
        return True
