"""
bundle_acquire/result.py

Result type for acquisition outcomes.

Error Handling Convention:
--------------------------
1. **Exceptions** are raised for configuration errors and for per-candidate
   failures inside the fallback chain (see bundle_acquire.exceptions). The
   chain catches the per-candidate ones itself.

2. **Result** (this module) is what Acquirer.acquire() hands back to the CLI:
   - Ok(report) when the bundle is in place, including the stale-cache case
   - Err("malformed_local_build" | "chain_exhausted" | "copy_failed", message)

3. At the CLI boundary a Result is serialized with to_dict():
   - {"status": "ok", "value": {...}, ...}
   - {"status": "error", "error": "chain_exhausted", "message": "..."}

Usage:
------
    result = Acquirer(...).acquire()
    if result.is_ok:
        print(result.value.source)
    else:
        print(f"Failed: {result.error}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    """
    Either success (Ok) or failure (Err).

    Attributes:
        status: "ok" for success, "error" for failure
        value: The success value (only meaningful when status="ok")
        error: Error code (only meaningful when status="error")
        message: Human-readable error message
        extras: Additional context merged into to_dict()
    """

    status: str
    value: T | None = None
    error: str | None = None
    message: str | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    @property
    def is_ok(self) -> bool:
        return self.status == "ok"

    @property
    def is_err(self) -> bool:
        return self.status == "error"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict for JSON output."""
        d: dict[str, Any] = {"status": self.status}
        if self.status == "ok":
            if self.value is not None:
                to_dict = getattr(self.value, "to_dict", None)
                d["value"] = to_dict() if callable(to_dict) else self.value
        else:
            if self.error:
                d["error"] = self.error
            if self.message:
                d["message"] = self.message
        d.update(self.extras)
        return d


def Ok(value: T = None, **extras: Any) -> Result[T]:  # noqa: N802 - intentional PascalCase
    """Create a successful result."""
    return Result(status="ok", value=value, extras=extras)


def Err(error: str, message: str | None = None, **extras: Any) -> Result[Any]:  # noqa: N802
    """Create a failure result."""
    return Result(status="error", error=error, message=message, extras=extras)


MALFORMED_LOCAL_BUILD = "malformed_local_build"
CHAIN_EXHAUSTED = "chain_exhausted"
COPY_FAILED = "copy_failed"
