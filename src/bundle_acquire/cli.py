#!/usr/bin/env python3
"""Command-line entrypoint: make sure the engine bundle is in place."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from bundle_acquire.__version__ import __version__ as VERSION
from bundle_acquire.acquirer import build_acquirer
from bundle_acquire.config import load_settings
from bundle_acquire.exceptions import ConfigValidationError, YamlParseError
from bundle_acquire.logging_config import add_logging_args, configure_logging
from bundle_acquire.result import Result
from bundle_acquire.utils.io import write_json
from bundle_acquire.utils.logging import utc_now

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ACQUISITION_FAILED = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description=f"Bundle Acquire v{VERSION}")
    ap.add_argument("--config", default=None, help="YAML settings file")
    ap.add_argument("--local-build-dir", default=None, help="Override local build output dir")
    ap.add_argument("--store-url", default=None, help="Override artifact store base URL")
    ap.add_argument("--repo-dir", default=None, help="Git checkout used to resolve refs")
    ap.add_argument("--public-dir", default=None, help="Override public destination")
    ap.add_argument("--tests-dir", default=None, help="Override test-harness destination")
    ap.add_argument(
        "--tests-script-name",
        default=None,
        help="File name of the script inside the test-harness destination",
    )
    ap.add_argument(
        "--summary",
        default=None,
        help="Write a JSON summary of the acquisition to this path",
    )
    add_logging_args(ap)
    return ap


def write_summary(path: Path, result: Result) -> None:
    payload = result.to_dict()
    payload["written_at_utc"] = utc_now()
    payload["version"] = VERSION
    write_json(path, payload)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level, fmt=args.log_format)

    config_path = Path(args.config) if args.config else None
    try:
        settings = load_settings(config_path, args)
    except (ConfigValidationError, YamlParseError, OSError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return EXIT_CONFIG_ERROR

    acquirer = build_acquirer(settings)
    try:
        result = acquirer.acquire()
    finally:
        acquirer.close()

    if args.summary:
        summary_path = Path(args.summary).expanduser().resolve()
        try:
            write_summary(summary_path, result)
        except OSError as exc:
            logger.error("Error while writing summary %s: %s", summary_path, exc)
    if result.is_ok:
        return EXIT_OK
    return EXIT_ACQUISITION_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
