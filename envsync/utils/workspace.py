"""Workspace cleaner for ``envsync clean``."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path

from envsync.probes.executor import (
    INSTALL_TIMEOUT_SECONDS,
    CommandExecutor,
    CommandResult,
    ExecOptions,
)
from envsync.probes.system import DEPENDENCY_DIR

LOCKFILES = ("package-lock.json", "pnpm-lock.yaml", "yarn.lock")
BUILD_ARTIFACTS = (".angular", "dist")


@dataclass
class CleanResult:
    removed: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def clean_targets(project_dir: str | Path, include_build: bool = False) -> list[Path]:
    """Existing paths that a clean would remove, in removal order."""
    root = Path(project_dir)
    names = [DEPENDENCY_DIR, *LOCKFILES]
    if include_build:
        names.extend(BUILD_ARTIFACTS)
    return [root / name for name in names if (root / name).exists()]


def clean_workspace(project_dir: str | Path, include_build: bool = False) -> CleanResult:
    """Delete installed dependencies and lockfiles (and build output).

    A path that cannot be removed is recorded and the rest still go.
    """
    result = CleanResult()
    for path in clean_targets(project_dir, include_build=include_build):
        try:
            if path.is_dir():
                shutil.rmtree(path)
            else:
                path.unlink()
        except OSError as e:
            result.errors.append(f"{path.name}: {e}")
            continue
        result.removed.append(path.name)
    return result


def reinstall(executor: CommandExecutor, project_dir: str | Path, manager: str = "npm") -> CommandResult:
    return executor.run(
        manager,
        ["install"],
        ExecOptions(timeout=INSTALL_TIMEOUT_SECONDS, interactive=True, cwd=Path(project_dir)),
    )
