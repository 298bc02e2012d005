"""Candidate sources and the ordered remote fallback chain.

The chain is plain data: a list of Candidate objects, each holding a
zero-argument callable that resolves to a RemoteSource when it is tried.
Commit refs are resolved lazily so a missing ancestor (shallow clone, first
commit) only costs that one candidate.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Sequence
from pathlib import Path

from bundle_acquire.shell import ShellRunner
from bundle_acquire.vcs import commit_base_url, latest_base_url, resolve_ref

LATEST_REF = "latest"
DEFAULT_REFS: tuple[str, ...] = ("HEAD", "HEAD~1", "HEAD~2", "HEAD~3")
DEFAULT_STORE_URL = "https://s3.amazonaws.com/gdevelop-gdevelop.js"
DEFAULT_LATEST_PATH = "master/latest"


@dataclasses.dataclass(frozen=True)
class LocalSource:
    directory: Path


@dataclasses.dataclass(frozen=True)
class RemoteSource:
    base_url: str
    ref: str
    commit: str | None = None
    branch: str | None = None


CandidateSource = LocalSource | RemoteSource


@dataclasses.dataclass(frozen=True)
class Candidate:
    ref: str
    resolve: Callable[[], RemoteSource]


def commit_candidate(shell: ShellRunner, store_url: str, ref: str) -> Candidate:
    def _resolve() -> RemoteSource:
        resolved = resolve_ref(shell, ref)
        return RemoteSource(
            base_url=commit_base_url(store_url, resolved),
            ref=ref,
            commit=resolved.commit,
            branch=resolved.branch,
        )

    return Candidate(ref=ref, resolve=_resolve)


def latest_candidate(store_url: str, latest_path: str = DEFAULT_LATEST_PATH) -> Candidate:
    base_url = latest_base_url(store_url, latest_path)
    return Candidate(ref=LATEST_REF, resolve=lambda: RemoteSource(base_url=base_url, ref=LATEST_REF))


def build_remote_chain(
    shell: ShellRunner,
    *,
    store_url: str = DEFAULT_STORE_URL,
    refs: Sequence[str] = DEFAULT_REFS,
    latest_path: str | None = DEFAULT_LATEST_PATH,
) -> list[Candidate]:
    """Build the candidates in the order they are tried.

    Commit refs come first, newest first, then the latest known-good build.
    Pass latest_path=None to leave the latest build out.
    """
    chain = [commit_candidate(shell, store_url, ref) for ref in refs]
    if latest_path:
        chain.append(latest_candidate(store_url, latest_path))
    return chain
