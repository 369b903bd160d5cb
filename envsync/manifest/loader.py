"""Manifest I/O — read ``envsync.yaml`` into a ``DesiredState`` and write it back.

This is also the boundary where upstream format quirks are normalized, so
nothing downstream ever sees them.
"""

from __future__ import annotations

import json
from pathlib import Path

import yaml

from envsync.errors import ManifestError, PreconditionError
from envsync.manifest import MANIFEST_FILE, PROJECT_MANIFEST
from envsync.manifest.schema_validator import validate_schema
from envsync.models.manifest import (
    SUPPORTED_PROJECT_TYPES,
    DesiredState,
    LifecycleScripts,
    PackageManagerSpec,
    ProjectInfo,
)


def manifest_path(project_dir: str | Path) -> Path:
    return Path(project_dir) / MANIFEST_FILE


def load_manifest(project_dir: str | Path) -> DesiredState:
    """Load and validate the manifest in ``project_dir``.

    Raises:
        PreconditionError: The manifest does not exist.
        ManifestError: The manifest cannot be parsed or is invalid.
    """
    path = manifest_path(project_dir)
    if not path.exists():
        raise PreconditionError(f"{MANIFEST_FILE} not found!", hint="Run: envsync init")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ManifestError(f"Invalid YAML in {MANIFEST_FILE}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestError(f"{MANIFEST_FILE} must contain a mapping at the top level")

    return parse_manifest(data)


def parse_manifest(data: dict) -> DesiredState:
    """Build a ``DesiredState`` from an already-parsed manifest document."""
    # Empty sections (`extensions:` with nothing under it) read as None
    data = {k: v for k, v in data.items() if v is not None}

    project = data.get("project")
    project_type = project.get("type") if isinstance(project, dict) else None
    if project_type is not None and project_type not in SUPPORTED_PROJECT_TYPES:
        raise PreconditionError(
            f"Unsupported project type '{project_type}'",
            hint=f"Supported types: {', '.join(SUPPORTED_PROJECT_TYPES)}",
        )

    issues = validate_schema(data)
    if issues:
        raise ManifestError(f"{MANIFEST_FILE} failed validation", issues=issues)

    runtime = data["runtime"]
    scripts = data.get("scripts", {}) or {}
    extensions = data.get("extensions") or {}

    try:
        return DesiredState(
            project=ProjectInfo(
                name=project["name"],
                type=project["type"],
                angular_version=project.get("angularVersion"),
            ),
            runtime_version=runtime["node"],
            package_manager=PackageManagerSpec.parse(runtime["packageManager"]),
            global_tools=tuple(
                t.strip() for t in (data.get("dependencies", {}) or {}).get("global") or []
            ),
            editor_extensions=(
                tuple(extensions["vscode"]) if extensions.get("vscode") is not None else None
            ),
            scripts=LifecycleScripts(
                pre=tuple(normalize_command(c) for c in scripts.get("pre-sync") or []),
                post=tuple(normalize_command(c) for c in scripts.get("post-sync") or []),
            ),
        )
    except ValueError as e:
        raise ManifestError(str(e)) from e


def normalize_command(entry) -> str:
    """Turn one lifecycle-script entry into a command string.

    YAML parses an unquoted ``- echo Status: done`` as the mapping
    ``{"echo Status": "done"}``. A single-key mapping is rebuilt as
    ``"<key>: <value>"``, or just ``"<key>"`` when the value is empty,
    which restores the text the author wrote.
    """
    if isinstance(entry, str):
        command = entry.strip()
    elif isinstance(entry, dict) and len(entry) == 1:
        key, value = next(iter(entry.items()))
        command = f"{key}: {value}" if value not in (None, "") else str(key)
    else:
        raise ManifestError(f"Unsupported script entry: {entry!r}")

    if not command:
        raise ManifestError("Script entries must not be empty")
    return command


def write_manifest(project_dir: str | Path, data: dict) -> Path:
    """Write a manifest document to ``project_dir`` and return its path."""
    path = manifest_path(project_dir)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False, default_flow_style=False, width=10_000)
    return path


def read_project_manifest(project_dir: str | Path) -> dict | None:
    """Return the parsed ``package.json``, or None when missing or unreadable."""
    path = Path(project_dir) / PROJECT_MANIFEST
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None


def declared_dependencies(package_json: dict | None) -> set[str]:
    """Names in ``dependencies`` and ``devDependencies``."""
    if not package_json:
        return set()
    names: set[str] = set()
    for section in ("dependencies", "devDependencies"):
        names.update((package_json.get(section) or {}).keys())
    return names
