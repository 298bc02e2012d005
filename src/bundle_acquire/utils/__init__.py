"""Shared utility functions for bundle acquisition."""

from bundle_acquire.utils.hash import sha256_file
from bundle_acquire.utils.io import ensure_dir, write_json
from bundle_acquire.utils.logging import utc_now

__all__ = [
    "utc_now",
    "ensure_dir",
    "sha256_file",
    "write_json",
]
