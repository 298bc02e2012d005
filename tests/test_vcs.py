"""Tests for git ref resolution and the remote candidate chain."""

from __future__ import annotations

import pytest
from conftest import DEFAULT_GIT_REFS, LATEST_URL, STORE_URL, FakeShell, commit_url

from bundle_acquire.candidates import (
    DEFAULT_REFS,
    LATEST_REF,
    LocalSource,
    RemoteSource,
    build_remote_chain,
    latest_candidate,
)
from bundle_acquire.exceptions import RefResolutionError
from bundle_acquire.shell import CommandResult
from bundle_acquire.vcs import ResolvedRef, commit_base_url, latest_base_url, resolve_ref


class ScriptedShell(FakeShell):
    """Answers every command with the same CommandResult."""

    def __init__(self, answer: CommandResult) -> None:
        super().__init__({})
        self.answer = answer

    def run(self, cmd: list[str]) -> CommandResult:
        self.commands.append(list(cmd))
        return self.answer


class TestResolveRef:
    def test_resolves_hash_and_branch(self) -> None:
        shell = FakeShell()

        resolved = resolve_ref(shell, "HEAD~1")

        assert resolved == ResolvedRef(
            ref="HEAD~1", commit=DEFAULT_GIT_REFS["HEAD~1"][0], branch="main"
        )
        assert shell.commands == [
            ["git", "rev-parse", "HEAD~1"],
            ["git", "rev-parse", "--abbrev-ref", "HEAD~1"],
        ]

    def test_unknown_ref_raises(self) -> None:
        with pytest.raises(RefResolutionError) as excinfo:
            resolve_ref(FakeShell({}), "HEAD~3")

        assert excinfo.value.ref == "HEAD~3"
        assert str(excinfo.value) == "Can't find the hash or branch of HEAD~3."
        assert excinfo.value.context == {"ref": "HEAD~3"}

    def test_stderr_output_counts_as_failure(self) -> None:
        shell = ScriptedShell(CommandResult(code=0, stdout="abc\n", stderr="warning: oops\n"))

        with pytest.raises(RefResolutionError):
            resolve_ref(shell, "HEAD")

    def test_empty_answer_counts_as_failure(self) -> None:
        shell = ScriptedShell(CommandResult(code=0, stdout="\n", stderr=""))

        with pytest.raises(RefResolutionError):
            resolve_ref(shell, "HEAD")

    def test_missing_git_executable_counts_as_failure(self) -> None:
        shell = ScriptedShell(CommandResult(code=127, stdout="", stderr="No such file"))

        with pytest.raises(RefResolutionError):
            resolve_ref(shell, "HEAD")


class TestUrls:
    def test_commit_url_layout(self) -> None:
        resolved = ResolvedRef(ref="HEAD", commit="abc123", branch="feature/x")
        assert (
            commit_base_url("https://store/bundles/", resolved)
            == "https://store/bundles/feature/x/commit/abc123"
        )

    def test_latest_url_layout(self) -> None:
        assert latest_base_url("https://store/bundles", "/master/latest/") == (
            "https://store/bundles/master/latest"
        )


class TestRemoteChain:
    def test_default_order(self) -> None:
        chain = build_remote_chain(FakeShell(), store_url=STORE_URL)

        assert [c.ref for c in chain] == [*DEFAULT_REFS, LATEST_REF]
        assert DEFAULT_REFS == ("HEAD", "HEAD~1", "HEAD~2", "HEAD~3")

    def test_candidates_resolve_lazily(self) -> None:
        shell = FakeShell()
        chain = build_remote_chain(shell, store_url=STORE_URL)
        assert shell.commands == []

        source = chain[2].resolve()

        assert source == RemoteSource(
            base_url=commit_url("HEAD~2"),
            ref="HEAD~2",
            commit=DEFAULT_GIT_REFS["HEAD~2"][0],
            branch="main",
        )
        assert len(shell.commands) == 2

    def test_latest_needs_no_git(self) -> None:
        shell = FakeShell({})
        source = build_remote_chain(shell, store_url=STORE_URL)[-1].resolve()

        assert source == RemoteSource(base_url=LATEST_URL, ref=LATEST_REF)
        assert shell.commands == []

    def test_latest_can_be_left_out(self) -> None:
        chain = build_remote_chain(FakeShell(), store_url=STORE_URL, refs=["HEAD"], latest_path=None)
        assert [c.ref for c in chain] == ["HEAD"]

    def test_latest_candidate_custom_path(self) -> None:
        candidate = latest_candidate(STORE_URL, "stable/latest")
        assert candidate.resolve().base_url == f"{STORE_URL}/stable/latest"

    def test_local_source_is_distinct_from_remote(self, tmp_path) -> None:
        assert LocalSource(tmp_path) != RemoteSource(base_url=str(tmp_path), ref=LATEST_REF)
