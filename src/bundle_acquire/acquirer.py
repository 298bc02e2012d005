"""Acquire the engine bundle into both destinations.

Order of attempts:
- copy from the local build output directory when it holds a bundle
- otherwise walk the remote chain (HEAD, HEAD~1, HEAD~2, HEAD~3, latest),
  each candidate tried once
- when every candidate fails, keep a bundle the destinations already had

Usage:
    from bundle_acquire.acquirer import Acquirer

    acquirer = Acquirer(
        shell=shell,
        downloader=StoreClient(),
        layout=ArtifactLayout(),
        destinations=destinations,
        local_build_dir=Path("../Binaries/embuild/GDevelop.js"),
        candidates=build_remote_chain(shell),
        has_cached_pair=has_complete_pair(shell, destinations, layout),
    )
    result = acquirer.acquire()
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any

from bundle_acquire.artifacts import (
    ArtifactLayout,
    ArtifactPair,
    DestinationSet,
    has_complete_pair,
    probe_local_build,
)
from bundle_acquire.candidates import (
    Candidate,
    CandidateSource,
    LocalSource,
    RemoteSource,
    build_remote_chain,
)
from bundle_acquire.config import AcquireSettings
from bundle_acquire.download import PairDownloader, StoreClient
from bundle_acquire.exceptions import (
    DownloadError,
    MalformedLocalBuildError,
    NotYetBuiltError,
    RefResolutionError,
    UnreachableError,
)
from bundle_acquire.logging_config import LogContext
from bundle_acquire.result import (
    CHAIN_EXHAUSTED,
    COPY_FAILED,
    MALFORMED_LOCAL_BUILD,
    Err,
    Ok,
    Result,
)
from bundle_acquire.shell import LocalShell, ShellRunner
from bundle_acquire.utils.hash import sha256_file
from bundle_acquire.utils.logging import utc_now

logger = logging.getLogger(__name__)

IO_ERROR = "io_error"


@dataclasses.dataclass
class Attempt:
    ref: str
    status: str
    base_url: str | None = None
    status_code: int | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in dataclasses.asdict(self).items() if v is not None}


@dataclasses.dataclass
class AcquisitionReport:
    started_at_utc: str
    source: CandidateSource | None = None
    stale: bool = False
    attempts: list[Attempt] = dataclasses.field(default_factory=list)
    files: list[dict[str, Any]] = dataclasses.field(default_factory=list)
    finished_at_utc: str | None = None

    def to_dict(self) -> dict[str, Any]:
        source: dict[str, Any] | None = None
        if isinstance(self.source, LocalSource):
            source = {"kind": "local", "directory": str(self.source.directory)}
        elif isinstance(self.source, RemoteSource):
            source = {"kind": "remote", **dataclasses.asdict(self.source)}
        return {
            "started_at_utc": self.started_at_utc,
            "finished_at_utc": self.finished_at_utc,
            "source": source,
            "stale": self.stale,
            "attempts": [attempt.to_dict() for attempt in self.attempts],
            "files": list(self.files),
        }


class Acquirer:
    """Put a complete bundle into both destinations.

    has_cached_pair is computed by the caller before acquisition starts;
    it decides whether an exhausted chain is still a success.
    """

    def __init__(
        self,
        *,
        shell: ShellRunner,
        downloader: PairDownloader,
        layout: ArtifactLayout,
        destinations: DestinationSet,
        local_build_dir: Path,
        candidates: list[Candidate],
        has_cached_pair: bool = False,
    ) -> None:
        self.shell = shell
        self.downloader = downloader
        self.layout = layout
        self.destinations = destinations
        self.local_build_dir = local_build_dir
        self.candidates = list(candidates)
        self.has_cached_pair = has_cached_pair

    def close(self) -> None:
        self.downloader.close()

    def acquire(self) -> Result[AcquisitionReport]:
        report = AcquisitionReport(started_at_utc=utc_now())
        for destination in self.destinations:
            try:
                self.shell.makedirs(destination.path)
            except OSError as exc:
                logger.error("Error while creating %s: %s", destination.path, exc)

        try:
            pair = probe_local_build(self.shell, self.local_build_dir, self.layout)
        except MalformedLocalBuildError as exc:
            logger.error("%s", exc)
            return self._finish(report, Err(MALFORMED_LOCAL_BUILD, str(exc)))

        if pair is not None:
            return self._finish(report, self._install_local(pair, report))
        return self._finish(report, self._run_remote_chain(report))

    def _finish(
        self, report: AcquisitionReport, result: Result[AcquisitionReport]
    ) -> Result[AcquisitionReport]:
        report.finished_at_utc = utc_now()
        if result.is_err:
            result.extras.setdefault("attempts", [a.to_dict() for a in report.attempts])
        return result

    def _install_local(
        self, pair: ArtifactPair, report: AcquisitionReport
    ) -> Result[AcquisitionReport]:
        # A previous build may have left the other payload variant behind.
        for destination in self.destinations:
            for name in self.layout.payload_names:
                self.shell.remove(destination.payload_path(name))

        source_label = self.local_build_dir
        try:
            for destination in self.destinations:
                self.shell.copy(pair.payload, destination.payload_path(pair.payload.name))
            logger.info("Copied %s from %s to both destinations.", pair.payload.name, source_label)
            for destination in self.destinations:
                self.shell.copy(pair.script, destination.script_path(self.layout))
            logger.info("Copied %s from %s to both destinations.", pair.script.name, source_label)
        except OSError as exc:
            logger.error("Error while copying the local build from %s: %s", source_label, exc)
            return Err(COPY_FAILED, str(exc))

        report.source = LocalSource(self.local_build_dir)
        report.files = self._describe_files(pair.payload.name)
        return Ok(report)

    def _run_remote_chain(self, report: AcquisitionReport) -> Result[AcquisitionReport]:
        script = self.layout.script
        logger.info(
            "No local build in %s, downloading a pre-built %s (be patient)...",
            self.local_build_dir,
            script,
        )
        for candidate in self.candidates:
            with LogContext(ref=candidate.ref):
                source = self._try_candidate(candidate, report)
            if source is not None:
                return self._distribute_download(source, report)

        if self.has_cached_pair:
            logger.info(
                "Can't download any version of %s, assuming you can go ahead with the existing one.",
                script,
            )
            report.stale = True
            return Ok(report)
        logger.error(
            "Can't download any version of %s, please check your internet connection.", script
        )
        return Err(CHAIN_EXHAUSTED, f"All {len(self.candidates)} candidates failed.")

    def _try_candidate(
        self, candidate: Candidate, report: AcquisitionReport
    ) -> RemoteSource | None:
        script = self.layout.script
        logger.info("Trying to download %s for %s.", script, candidate.ref)
        try:
            source = candidate.resolve()
        except RefResolutionError as exc:
            logger.warning("%s Skipping %s.", exc, candidate.ref)
            report.attempts.append(
                Attempt(ref=candidate.ref, status="ref_resolution_failed", message=str(exc))
            )
            return None

        public = self.destinations.public
        targets = {
            script: public.script_path(self.layout),
            self.layout.remote_payload_name: public.payload_path(self.layout.remote_payload_name),
        }
        with LogContext(base_url=source.base_url):
            try:
                self.downloader.fetch_all(source.base_url, targets)
            except NotYetBuiltError as exc:
                logger.info(
                    "Maybe %s was not automatically built yet, try again in a few minutes.",
                    script,
                )
                self._record_failure(report, candidate, source, exc)
                return None
            except UnreachableError as exc:
                logger.warning(
                    "Can't download %s (error: %s) (baseUrl=%s), please check your internet connection.",
                    script,
                    exc.reason,
                    source.base_url,
                )
                self._record_failure(report, candidate, source, exc)
                return None
            except DownloadError as exc:
                logger.warning(
                    "Can't download %s (%s) (baseUrl=%s), try again later.",
                    script,
                    exc.reason or exc.status_code,
                    source.base_url,
                )
                self._record_failure(report, candidate, source, exc)
                return None
            except OSError as exc:
                logger.error("Error while writing %s to %s: %s", script, public.path, exc)
                report.attempts.append(
                    Attempt(
                        ref=candidate.ref,
                        status=IO_ERROR,
                        base_url=source.base_url,
                        message=str(exc),
                    )
                )
                return None

        report.attempts.append(Attempt(ref=candidate.ref, status="ok", base_url=source.base_url))
        logger.info("%s downloaded and stored in %s", script, public.path)
        return source

    @staticmethod
    def _record_failure(
        report: AcquisitionReport,
        candidate: Candidate,
        source: RemoteSource,
        exc: DownloadError,
    ) -> None:
        report.attempts.append(
            Attempt(
                ref=candidate.ref,
                status=exc.code,
                base_url=source.base_url,
                status_code=exc.status_code,
                message=exc.reason,
            )
        )

    def _distribute_download(
        self, source: RemoteSource, report: AcquisitionReport
    ) -> Result[AcquisitionReport]:
        public = self.destinations.public
        tests = self.destinations.tests
        payload = self.layout.remote_payload_name
        stale_payloads = [name for name in self.layout.payload_names if name != payload]
        try:
            self.shell.copy(public.script_path(self.layout), tests.script_path(self.layout))
            self.shell.copy(public.payload_path(payload), tests.payload_path(payload))
        except OSError as exc:
            logger.error("Error while copying %s to %s: %s", self.layout.script, tests.path, exc)
            return Err(COPY_FAILED, str(exc))
        for destination in self.destinations:
            for name in stale_payloads:
                self.shell.remove(destination.payload_path(name))
        logger.info("Copied %s to %s", self.layout.script, tests.path)

        report.source = source
        report.files = self._describe_files(payload)
        return Ok(report)

    def _describe_files(self, payload_name: str) -> list[dict[str, Any]]:
        files: list[dict[str, Any]] = []
        for destination in self.destinations:
            for path in (
                destination.script_path(self.layout),
                destination.payload_path(payload_name),
            ):
                files.append({"path": str(path), "sha256": sha256_file(path)})
        return files


def build_acquirer(
    settings: AcquireSettings,
    *,
    shell: ShellRunner | None = None,
    downloader: PairDownloader | None = None,
) -> Acquirer:
    """Wire an Acquirer from loaded settings.

    The cached-pair check runs here, once, before anything is copied or
    downloaded.
    """
    shell = shell or LocalShell(cwd=settings.repo_dir)
    if downloader is None:
        downloader = StoreClient(
            connect_timeout=settings.connect_timeout,
            read_timeout=settings.read_timeout,
        )
    return Acquirer(
        shell=shell,
        downloader=downloader,
        layout=settings.layout,
        destinations=settings.destinations,
        local_build_dir=settings.local_build_dir,
        candidates=build_remote_chain(
            shell,
            store_url=settings.store_url,
            refs=settings.refs,
            latest_path=settings.latest_path,
        ),
        has_cached_pair=has_complete_pair(shell, settings.destinations, settings.layout),
    )
