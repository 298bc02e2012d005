"""Artifact pair, file layout and destination types."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator
from pathlib import Path

from bundle_acquire.exceptions import MalformedLocalBuildError
from bundle_acquire.shell import ShellRunner

DEFAULT_SCRIPT_NAME = "libGD.js"
DEFAULT_WASM_NAME = "libGD.wasm"
DEFAULT_MEMORY_IMAGE_NAME = "libGD.js.mem"


@dataclasses.dataclass(frozen=True)
class ArtifactLayout:
    """File names making up a bundle.

    The wasm binary and the memory image are alternative payloads; a
    build produces one or the other. The remote store serves the memory
    image unless remote_payload says otherwise.
    """

    script: str = DEFAULT_SCRIPT_NAME
    wasm: str = DEFAULT_WASM_NAME
    memory_image: str = DEFAULT_MEMORY_IMAGE_NAME
    remote_payload: str | None = None

    @property
    def payload_names(self) -> tuple[str, str]:
        return (self.wasm, self.memory_image)

    @property
    def remote_payload_name(self) -> str:
        return self.remote_payload or self.memory_image


@dataclasses.dataclass(frozen=True)
class ArtifactPair:
    script: Path
    payload: Path


@dataclasses.dataclass(frozen=True)
class Destination:
    path: Path
    script_name: str | None = None

    def script_path(self, layout: ArtifactLayout) -> Path:
        return self.path / (self.script_name or layout.script)

    def payload_path(self, payload_name: str) -> Path:
        return self.path / payload_name


@dataclasses.dataclass(frozen=True)
class DestinationSet:
    """The public-serving directory and the test-harness directory."""

    public: Destination
    tests: Destination

    def __iter__(self) -> Iterator[Destination]:
        return iter((self.public, self.tests))


def probe_local_build(
    shell: ShellRunner, directory: Path, layout: ArtifactLayout
) -> ArtifactPair | None:
    """Return the local build's artifact pair, or None when there is no build.

    The wasm payload wins when both payloads are present. A script with no
    payload at all raises MalformedLocalBuildError: the build is broken and
    downloading would hide it.
    """
    script = directory / layout.script
    if not shell.exists(script):
        return None
    for name in (layout.wasm, layout.memory_image):
        payload = directory / name
        if shell.exists(payload):
            return ArtifactPair(script=script, payload=payload)
    raise MalformedLocalBuildError(
        f"At least {layout.memory_image} or {layout.wasm} should exist in {directory}.",
        context={"directory": str(directory)},
    )


def has_complete_pair(
    shell: ShellRunner, destinations: DestinationSet, layout: ArtifactLayout
) -> bool:
    """Check whether every destination already holds a script and the same payload."""
    if not all(shell.exists(destination.script_path(layout)) for destination in destinations):
        return False
    return any(
        all(shell.exists(destination.payload_path(name)) for destination in destinations)
        for name in layout.payload_names
    )
