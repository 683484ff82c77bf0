"""Local file storage for uploaded grocery images.

The database only keeps the reference returned by `save`; `delete` is the
compensating action when a later database write fails, and the cleanup
after a grocery is deleted.
"""

import os
import time
from pathlib import Path
from uuid import uuid4

from core import config
from core.exceptions import ValidationError
from core.logger import get_logger

logger = get_logger("services.storage")


class LocalStorage:
    def __init__(self, root: str = None):
        self.root = Path(root or config.MEDIA_ROOT)

    def _ensure_root(self):
        self.root.mkdir(parents=True, exist_ok=True)

    def validate_filename(self, filename: str) -> str:
        name = os.path.basename(filename or "")
        if not name.lower().endswith(config.ALLOWED_IMAGE_EXTENSIONS):
            raise ValidationError("Only image files are allowed", field="image")
        return name

    def save(self, filename: str, data: bytes) -> str:
        """Write `data` under a unique time-prefixed name and return its reference."""
        name = self.validate_filename(filename)
        self._ensure_root()
        reference = "%d_%s_%s" % (int(time.time()), uuid4().hex, name)
        path = self.root / reference
        with open(path, "xb") as f:
            f.write(data)
        logger.info("Saved %s bytes to %s", len(data), path)
        return reference

    def exists(self, reference: str) -> bool:
        return bool(reference) and (self.root / reference).exists()

    def delete(self, reference: str) -> bool:
        """Remove a stored file. Returns False instead of raising on failure."""
        if not reference or ".." in reference or "/" in reference:
            logger.warning("Refusing to delete storage reference %r", reference)
            return False
        path = self.root / reference
        try:
            if path.exists():
                path.unlink()
                logger.info("Deleted file %s", path)
            return True
        except OSError as e:
            logger.error("Failed to delete %s: %s", path, e)
            return False


# Singleton
storage = LocalStorage()
