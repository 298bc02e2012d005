"""Exception types for bundle acquisition.

Configuration problems raise exceptions that propagate to the CLI. Problems
with a single remote candidate raise the DownloadError / RefResolutionError
family; the acquirer catches those per candidate and moves on.
"""

from __future__ import annotations

from typing import Any


class BundleAcquireError(Exception):
    """Base error with a stable code and structured context."""

    code = "bundle_acquire_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        if code:
            self.code = code
        self.context: dict[str, Any] = dict(context or {})


class ConfigValidationError(BundleAcquireError):
    code = "config_validation_error"


class YamlParseError(BundleAcquireError):
    code = "yaml_parse_error"


class MalformedLocalBuildError(BundleAcquireError):
    """The local build has the script but neither payload variant."""

    code = "malformed_local_build"


class RefResolutionError(BundleAcquireError):
    """A version-control ref could not be turned into a hash and branch."""

    code = "ref_resolution_failed"

    def __init__(self, ref: str, message: str | None = None) -> None:
        super().__init__(
            message or f"Can't find the hash or branch of {ref}.",
            context={"ref": ref},
        )
        self.ref = ref


class DownloadError(BundleAcquireError):
    """A remote file could not be fetched.

    status_code is 0 for transport failures, mirroring how the store
    client reports unreachable hosts.
    """

    code = "download_error"

    def __init__(self, url: str, status_code: int, reason: str) -> None:
        super().__init__(
            f"{url}: {reason}",
            context={"url": url, "status_code": status_code, "reason": reason},
        )
        self.url = url
        self.status_code = status_code
        self.reason = reason


class NotYetBuiltError(DownloadError):
    code = "not_yet_built"


class UnreachableError(DownloadError):
    code = "unreachable"


class HttpStatusError(DownloadError):
    code = "http_error"


def classify_status(url: str, status_code: int, reason: str) -> DownloadError:
    """Return the DownloadError subclass matching an HTTP status code."""
    if status_code == 403:
        return NotYetBuiltError(url, status_code, reason)
    if status_code == 0:
        return UnreachableError(url, status_code, reason)
    return HttpStatusError(url, status_code, reason)


__all__ = [
    "BundleAcquireError",
    "ConfigValidationError",
    "YamlParseError",
    "MalformedLocalBuildError",
    "RefResolutionError",
    "DownloadError",
    "NotYetBuiltError",
    "UnreachableError",
    "HttpStatusError",
    "classify_status",
]
