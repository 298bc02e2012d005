"""Resolve git refs to the commit hash and branch used in store URLs."""

from __future__ import annotations

import dataclasses
import logging

from bundle_acquire.exceptions import RefResolutionError
from bundle_acquire.shell import ShellRunner

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class ResolvedRef:
    ref: str
    commit: str
    branch: str


def resolve_ref(shell: ShellRunner, ref: str) -> ResolvedRef:
    """Resolve ``ref`` with ``git rev-parse``.

    Both the hash and the abbreviated branch lookups must succeed. A
    non-zero exit, any stderr output or an empty answer raises
    RefResolutionError, which the acquirer treats as a skip.
    """
    hash_result = shell.run(["git", "rev-parse", ref])
    branch_result = shell.run(["git", "rev-parse", "--abbrev-ref", ref])
    if not hash_result.ok or not branch_result.ok:
        detail = (hash_result.stderr or branch_result.stderr).strip()
        logger.debug("git rev-parse failed for %s: %s", ref, detail)
        raise RefResolutionError(ref)
    commit = hash_result.stdout.strip()
    branch = branch_result.stdout.strip()
    if not commit or not branch:
        raise RefResolutionError(ref)
    return ResolvedRef(ref=ref, commit=commit, branch=branch)


def commit_base_url(store_url: str, resolved: ResolvedRef) -> str:
    return f"{store_url.rstrip('/')}/{resolved.branch}/commit/{resolved.commit}"


def latest_base_url(store_url: str, latest_path: str) -> str:
    return f"{store_url.rstrip('/')}/{latest_path.strip('/')}"
