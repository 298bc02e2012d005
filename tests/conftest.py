"""
Shared pytest fixtures for bundle-acquire tests.

Provides:
- FakeShell: a LocalShell whose git commands are answered from a table
- FakeDownloader: a store that answers per base URL without touching the network
- Destination and local build layouts under tmp_path
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import pytest

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if SRC_ROOT.is_dir():
    sys.path.insert(0, str(SRC_ROOT))

from bundle_acquire import logging_config  # noqa: E402
from bundle_acquire.acquirer import Acquirer  # noqa: E402
from bundle_acquire.artifacts import (  # noqa: E402
    ArtifactLayout,
    Destination,
    DestinationSet,
    has_complete_pair,
)
from bundle_acquire.candidates import build_remote_chain  # noqa: E402
from bundle_acquire.exceptions import DownloadError  # noqa: E402
from bundle_acquire.shell import CommandResult, LocalShell  # noqa: E402

STORE_URL = "https://store.example.com/bundles"

DEFAULT_GIT_REFS: dict[str, tuple[str, str]] = {
    "HEAD": ("c0ffee0000000000000000000000000000000000", "main"),
    "HEAD~1": ("c0ffee1111111111111111111111111111111111", "main"),
    "HEAD~2": ("c0ffee2222222222222222222222222222222222", "main"),
    "HEAD~3": ("c0ffee3333333333333333333333333333333333", "main"),
}


def commit_url(ref: str, refs: Mapping[str, tuple[str, str]] = DEFAULT_GIT_REFS) -> str:
    commit, branch = refs[ref]
    return f"{STORE_URL}/{branch}/commit/{commit}"


LATEST_URL = f"{STORE_URL}/master/latest"


# =============================================================================
# Fakes
# =============================================================================


class FakeShell(LocalShell):
    """Real filesystem operations, git answered from ``git_refs``."""

    def __init__(self, git_refs: Mapping[str, tuple[str, str]] | None = None) -> None:
        super().__init__()
        self.git_refs = dict(DEFAULT_GIT_REFS if git_refs is None else git_refs)
        self.commands: list[list[str]] = []

    def run(self, cmd: list[str]) -> CommandResult:
        self.commands.append(list(cmd))
        if cmd[:2] != ["git", "rev-parse"]:
            return CommandResult(code=127, stdout="", stderr=f"unexpected command: {cmd}")
        ref = cmd[-1]
        if ref not in self.git_refs:
            return CommandResult(
                code=128,
                stdout=f"{ref}\n",
                stderr=f"fatal: ambiguous argument '{ref}': unknown revision\n",
            )
        commit, branch = self.git_refs[ref]
        if "--abbrev-ref" in cmd:
            return CommandResult(code=0, stdout=f"{branch}\n", stderr="")
        return CommandResult(code=0, stdout=f"{commit}\n", stderr="")


class FakeDownloader:
    """Serves files per base URL.

    ``outcomes`` maps a base URL to either an exception (raised) or a
    mapping of store file name -> bytes (written to the targets). Unknown
    base URLs raise whatever ``default_error`` builds.
    """

    def __init__(
        self,
        outcomes: Mapping[str, Any] | None = None,
        default_error: Callable[[str], DownloadError] | None = None,
    ) -> None:
        self.outcomes = dict(outcomes or {})
        self.default_error = default_error
        self.calls: list[tuple[str, dict[str, Path]]] = []
        self.closed = False

    def fetch_all(self, base_url: str, targets: Mapping[str, Path]) -> list[Path]:
        self.calls.append((base_url, dict(targets)))
        outcome = self.outcomes.get(base_url)
        if outcome is None:
            if self.default_error is None:
                raise AssertionError(f"unexpected download from {base_url}")
            raise self.default_error(base_url)
        if isinstance(outcome, Exception):
            raise outcome
        for filename, out_path in targets.items():
            out_path.parent.mkdir(parents=True, exist_ok=True)
            out_path.write_bytes(outcome[filename])
        return list(targets.values())

    def close(self) -> None:
        self.closed = True

    @property
    def base_urls(self) -> list[str]:
        return [base_url for base_url, _ in self.calls]


class StreamResponse:
    """Stand-in for a streamed requests.Response."""

    def __init__(self, content: bytes = b"", status_code: int = 200, reason: str = "OK") -> None:
        self._content = content
        self.status_code = status_code
        self.reason = reason
        self.headers: dict = {}

    def iter_content(self, chunk_size: int = 1024 * 1024):
        yield self._content

    def __enter__(self) -> StreamResponse:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        return False


class FakeSession:
    """Answers GETs from a URL -> response (or exception) table."""

    def __init__(self, answers: dict) -> None:
        self.answers = answers
        self.requests: list[dict] = []
        self._lock = threading.Lock()
        self.closed = False

    def get(self, url: str, **kwargs):
        with self._lock:
            self.requests.append({"url": url, **kwargs})
        answer = self.answers[url]
        if isinstance(answer, Exception):
            raise answer
        return answer

    def close(self) -> None:
        self.closed = True


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_log_context() -> None:
    logging_config.clear_log_context()


@pytest.fixture
def layout() -> ArtifactLayout:
    return ArtifactLayout()


@pytest.fixture
def destinations(tmp_path: Path) -> DestinationSet:
    return DestinationSet(
        public=Destination(path=tmp_path / "app" / "public"),
        tests=Destination(
            path=tmp_path / "app" / "node_modules" / "libGD.js-for-tests-only",
            script_name="index.js",
        ),
    )


@pytest.fixture
def local_build_dir(tmp_path: Path) -> Path:
    return tmp_path / "Binaries" / "embuild" / "GDevelop.js"


@pytest.fixture
def fake_shell() -> FakeShell:
    return FakeShell()


@pytest.fixture
def make_acquirer(
    fake_shell: FakeShell,
    layout: ArtifactLayout,
    destinations: DestinationSet,
    local_build_dir: Path,
) -> Callable[..., Acquirer]:
    def _make(
        downloader: FakeDownloader,
        *,
        shell: FakeShell | None = None,
        has_cached_pair: bool | None = None,
    ) -> Acquirer:
        shell = shell or fake_shell
        if has_cached_pair is None:
            has_cached_pair = has_complete_pair(shell, destinations, layout)
        return Acquirer(
            shell=shell,
            downloader=downloader,
            layout=layout,
            destinations=destinations,
            local_build_dir=local_build_dir,
            candidates=build_remote_chain(shell, store_url=STORE_URL),
            has_cached_pair=has_cached_pair,
        )

    return _make


def write_files(directory: Path, files: Mapping[str, bytes]) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    for name, content in files.items():
        (directory / name).write_bytes(content)
