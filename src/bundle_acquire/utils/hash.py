from __future__ import annotations

import hashlib
import logging
from pathlib import Path

logger = logging.getLogger("bundle_acquire.utils")

CHUNK_SIZE = 1024 * 1024


def sha256_file(path: Path) -> str | None:
    """Compute SHA-256 hash of a file. Returns None on error."""
    try:
        h = hashlib.sha256()
        with path.open("rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                h.update(chunk)
        return h.hexdigest()
    except OSError:
        logger.warning("Failed to compute SHA-256 hash for %s", path, exc_info=True)
        return None
