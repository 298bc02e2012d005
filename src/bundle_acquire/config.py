from __future__ import annotations

import dataclasses
import json
from functools import cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft7Validator, FormatChecker

from bundle_acquire.artifacts import (
    DEFAULT_MEMORY_IMAGE_NAME,
    DEFAULT_SCRIPT_NAME,
    DEFAULT_WASM_NAME,
    ArtifactLayout,
    Destination,
    DestinationSet,
)
from bundle_acquire.candidates import DEFAULT_LATEST_PATH, DEFAULT_REFS, DEFAULT_STORE_URL
from bundle_acquire.download import DEFAULT_CONNECT_TIMEOUT, DEFAULT_READ_TIMEOUT
from bundle_acquire.exceptions import ConfigValidationError, YamlParseError

SCHEMA_NAME = "acquire_config"

# Defaults match running from the app's scripts/ directory.
DEFAULT_LOCAL_BUILD_DIR = "../../../Binaries/embuild/GDevelop.js"
DEFAULT_PUBLIC_DIR = "../public"
DEFAULT_TESTS_DIR = "../node_modules/libGD.js-for-tests-only"
DEFAULT_TESTS_SCRIPT_NAME = "index.js"


@dataclasses.dataclass
class AcquireSettings:
    local_build_dir: Path
    destinations: DestinationSet
    layout: ArtifactLayout = dataclasses.field(default_factory=ArtifactLayout)
    store_url: str = DEFAULT_STORE_URL
    latest_path: str | None = DEFAULT_LATEST_PATH
    refs: tuple[str, ...] = DEFAULT_REFS
    repo_dir: Path | None = None
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT


@cache
def load_schema(schema_name: str) -> dict[str, Any]:
    schema_path = resources.files("bundle_acquire").joinpath(
        "schemas",
        f"{schema_name}.schema.json",
    )
    return json.loads(schema_path.read_text(encoding="utf-8"))


def validate_config(config: Any, schema_name: str, *, config_path: Path | None = None) -> None:
    schema = load_schema(schema_name)
    validator = Draft7Validator(schema, format_checker=FormatChecker())
    errors = sorted(validator.iter_errors(config), key=lambda exc: list(exc.path))
    if not errors:
        return
    location = str(config_path) if config_path else "<config>"
    lines = [f"Schema validation failed for {location} ({schema_name})."]
    error_details: list[dict[str, str]] = []
    for error in errors[:10]:
        path = ".".join(str(p) for p in error.path) if error.path else "<root>"
        lines.append(f"- {path}: {error.message}")
        error_details.append({"path": path, "message": error.message})
    if len(errors) > 10:
        lines.append(f"... and {len(errors) - 10} more errors.")
    raise ConfigValidationError(
        "\n".join(lines),
        context={
            "path": location,
            "schema": schema_name,
            "errors": error_details,
            "truncated": len(errors) > 10,
        },
    )


def read_yaml(path: Path, schema_name: str | None = SCHEMA_NAME) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise YamlParseError(
            f"YAML parse error in {path}: {exc}",
            context={"path": str(path), "error": str(exc)},
        ) from exc
    if data is None:
        data = {}
    if schema_name:
        validate_config(data, schema_name, config_path=path)
    return data


def _resolve(base_dir: Path, value: str | Path) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path.resolve()


def _destination(
    base_dir: Path,
    cfg: dict[str, Any] | None,
    default_path: str,
    default_script: str | None,
) -> Destination:
    cfg = cfg or {}
    script_name = cfg["script_name"] if "script_name" in cfg else default_script
    return Destination(
        path=_resolve(base_dir, cfg.get("path", default_path)),
        script_name=script_name,
    )


def build_settings(
    cfg: dict[str, Any],
    *,
    base_dir: Path,
    overrides: Any = None,
    cwd: Path | None = None,
) -> AcquireSettings:
    """Merge command-line overrides, config values and defaults.

    Paths from the config resolve against ``base_dir`` (the config file's
    directory); paths given on the command line resolve against ``cwd``.
    """
    cwd = cwd or Path.cwd()

    def override(name: str) -> Any:
        return getattr(overrides, name, None) if overrides is not None else None

    artifact = cfg.get("artifact", {}) or {}
    layout = ArtifactLayout(
        script=artifact.get("script", DEFAULT_SCRIPT_NAME),
        wasm=artifact.get("wasm", DEFAULT_WASM_NAME),
        memory_image=artifact.get("memory_image", DEFAULT_MEMORY_IMAGE_NAME),
        remote_payload=artifact.get("remote_payload"),
    )

    dest_cfg = cfg.get("destinations", {}) or {}
    public = _destination(base_dir, dest_cfg.get("public"), DEFAULT_PUBLIC_DIR, None)
    tests = _destination(
        base_dir, dest_cfg.get("tests"), DEFAULT_TESTS_DIR, DEFAULT_TESTS_SCRIPT_NAME
    )
    if override("public_dir"):
        public = dataclasses.replace(public, path=_resolve(cwd, override("public_dir")))
    if override("tests_dir"):
        tests = dataclasses.replace(tests, path=_resolve(cwd, override("tests_dir")))
    if override("tests_script_name"):
        tests = dataclasses.replace(tests, script_name=override("tests_script_name"))

    if override("local_build_dir"):
        local_build_dir = _resolve(cwd, override("local_build_dir"))
    else:
        local_build_dir = _resolve(base_dir, cfg.get("local_build_dir", DEFAULT_LOCAL_BUILD_DIR))

    repo_dir: Path | None = None
    if override("repo_dir"):
        repo_dir = _resolve(cwd, override("repo_dir"))
    elif cfg.get("repo_dir"):
        repo_dir = _resolve(base_dir, cfg["repo_dir"])

    timeouts = cfg.get("timeouts", {}) or {}
    return AcquireSettings(
        local_build_dir=local_build_dir,
        destinations=DestinationSet(public=public, tests=tests),
        layout=layout,
        store_url=override("store_url") or cfg.get("store_url", DEFAULT_STORE_URL),
        latest_path=cfg.get("latest_path", DEFAULT_LATEST_PATH),
        refs=tuple(cfg.get("refs", DEFAULT_REFS)),
        repo_dir=repo_dir,
        connect_timeout=float(timeouts.get("connect", DEFAULT_CONNECT_TIMEOUT)),
        read_timeout=float(timeouts.get("read", DEFAULT_READ_TIMEOUT)),
    )


def load_settings(config_path: Path | None, overrides: Any = None) -> AcquireSettings:
    """Load settings from an optional YAML file plus overrides."""
    if config_path is not None:
        config_path = config_path.expanduser().resolve()
        cfg = read_yaml(config_path)
        base_dir = config_path.parent
    else:
        cfg = {}
        base_dir = Path.cwd()
    return build_settings(cfg, base_dir=base_dir, overrides=overrides)
