"""HTTP downloads from the remote artifact store.

Files are streamed to ``<name>.part`` next to their final location and only
renamed into place once every file of a candidate has been fetched, so a
failed candidate never overwrites what a destination already holds.

Classes:
    StoreClient: Fetches a set of files from one base URL concurrently
    PairDownloader: Protocol the acquirer depends on

Functions:
    download_file: Stream one URL into a .part file, classifying failures
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Protocol

import requests

from bundle_acquire.__version__ import __version__ as VERSION
from bundle_acquire.exceptions import DownloadError, UnreachableError, classify_status
from bundle_acquire.utils.io import ensure_dir

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MB chunks for streaming
DEFAULT_CONNECT_TIMEOUT = 15.0
DEFAULT_READ_TIMEOUT = 300.0


def build_user_agent(name: str = "bundle-acquire", version: str = VERSION) -> str:
    """Build a default User-Agent string."""
    return f"{name}/{version}"


def part_path(out_path: Path) -> Path:
    return out_path.with_name(f"{out_path.name}.part")


def download_file(
    session: Any,
    url: str,
    out_path: Path,
    *,
    timeout: tuple[float, float] = (DEFAULT_CONNECT_TIMEOUT, DEFAULT_READ_TIMEOUT),
    headers: dict[str, str] | None = None,
) -> Path:
    """Stream ``url`` into the .part file for ``out_path``.

    Args:
        session: requests.Session (or anything with a compatible ``get``)
        url: URL to download from
        out_path: Final output path; the data lands in its .part sibling
        timeout: (connect, read) timeout in seconds
        headers: Optional request headers

    Returns:
        Path to the completed .part file

    Raises:
        NotYetBuiltError: The store answered 403
        UnreachableError: DNS, connection, timeout or stream failure
        HttpStatusError: Any other non-200 status
    """
    temp_path = part_path(out_path)
    try:
        with session.get(url, stream=True, timeout=timeout, headers=headers) as r:
            if r.status_code != 200:
                raise classify_status(url, r.status_code, r.reason or "")
            with temp_path.open("wb") as f:
                for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
    except requests.exceptions.RequestException as exc:
        temp_path.unlink(missing_ok=True)
        raise UnreachableError(url, 0, str(exc)) from exc
    return temp_path


class PairDownloader(Protocol):
    def fetch_all(self, base_url: str, targets: Mapping[str, Path]) -> list[Path]: ...

    def close(self) -> None: ...


class StoreClient:
    """Downloads the files of one candidate from the artifact store.

    ``targets`` maps a file name on the store to its local output path.
    All files are requested concurrently; the first failure observed
    decides which error is raised, after every request has settled.
    """

    def __init__(
        self,
        session: Any = None,
        *,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        user_agent: str | None = None,
    ) -> None:
        self.session = session if session is not None else requests.Session()
        self.timeout = (connect_timeout, read_timeout)
        self.headers = {"User-Agent": user_agent or build_user_agent()}

    def url_for(self, base_url: str, filename: str) -> str:
        return f"{base_url.rstrip('/')}/{filename}"

    def fetch_all(self, base_url: str, targets: Mapping[str, Path]) -> list[Path]:
        for out_path in targets.values():
            ensure_dir(out_path.parent)
        first_error: DownloadError | None = None
        promoted = False
        try:
            with ThreadPoolExecutor(max_workers=max(1, len(targets))) as ex:
                futures = {
                    ex.submit(
                        download_file,
                        self.session,
                        self.url_for(base_url, filename),
                        out_path,
                        timeout=self.timeout,
                        headers=self.headers,
                    ): filename
                    for filename, out_path in targets.items()
                }
                for fut in as_completed(futures):
                    try:
                        fut.result()
                    except DownloadError as exc:
                        logger.debug("Download of %s failed: %s", futures[fut], exc)
                        if first_error is None:
                            first_error = exc
            if first_error is not None:
                raise first_error
            for out_path in targets.values():
                part_path(out_path).replace(out_path)
            promoted = True
        finally:
            if not promoted:
                for out_path in targets.values():
                    part_path(out_path).unlink(missing_ok=True)
        return list(targets.values())

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> StoreClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


__all__ = [
    "CHUNK_SIZE",
    "DEFAULT_CONNECT_TIMEOUT",
    "DEFAULT_READ_TIMEOUT",
    "build_user_agent",
    "part_path",
    "download_file",
    "PairDownloader",
    "StoreClient",
]
