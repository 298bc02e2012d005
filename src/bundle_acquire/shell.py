"""Process and filesystem capability used by the acquirer.

All external commands and file operations go through a ShellRunner so the
fallback chain can be exercised against a fake in tests.
"""

from __future__ import annotations

import dataclasses
import shutil
import subprocess
from pathlib import Path
from typing import Protocol


@dataclasses.dataclass(frozen=True)
class CommandResult:
    code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        """A command succeeded when it exited 0 and wrote nothing to stderr."""
        return self.code == 0 and not self.stderr.strip()


class ShellRunner(Protocol):
    def run(self, cmd: list[str]) -> CommandResult: ...

    def copy(self, src: Path, dst: Path) -> None: ...

    def remove(self, path: Path) -> None: ...

    def exists(self, path: Path) -> bool: ...

    def makedirs(self, path: Path) -> None: ...


class LocalShell:
    """ShellRunner backed by subprocess and shutil."""

    def __init__(self, cwd: Path | None = None) -> None:
        self.cwd = cwd

    def run(self, cmd: list[str]) -> CommandResult:
        """Run a command and capture its output.

        Unlike subprocess.run(check=True), a failing command is reported
        through the returned CommandResult. A missing executable is
        reported the same way, with code 127.
        """
        try:
            p = subprocess.run(
                cmd,
                cwd=str(self.cwd) if self.cwd else None,
                check=False,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            return CommandResult(code=127, stdout="", stderr=str(exc))
        return CommandResult(
            code=p.returncode,
            stdout=p.stdout.decode("utf-8", errors="ignore"),
            stderr=p.stderr.decode("utf-8", errors="ignore"),
        )

    def copy(self, src: Path, dst: Path) -> None:
        shutil.copyfile(src, dst)

    def remove(self, path: Path) -> None:
        path.unlink(missing_ok=True)

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def makedirs(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)


__all__ = ["CommandResult", "ShellRunner", "LocalShell"]
