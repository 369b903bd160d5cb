"""Project detector — read an Angular workspace and derive manifest defaults.

Used by ``init`` (to seed the manifest) and ``update`` (as ground truth to
compare the manifest against).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from envsync.errors import PreconditionError
from envsync.manifest import FRAMEWORK_CONFIG, PROJECT_MANIFEST
from envsync.manifest.loader import declared_dependencies, read_project_manifest
from envsync.probes.executor import PROBE_TIMEOUT_SECONDS, CommandExecutor, ExecOptions

FRAMEWORK_PACKAGE = "@angular/core"
# Exact version with an optional caret or tilde; other ranges and dist-tags are rejected.
FRAMEWORK_VERSION_PATTERN = re.compile(r"^[\^~]?(\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?)$")
CLI_PACKAGE = "@angular/cli"
DEFAULT_NODE_VERSION = "20.11.1"

# Angular major -> Node version to pin (https://angular.dev/reference/versions)
NODE_FOR_ANGULAR: dict[int, str] = {
    18: "20.11.1",
    17: "20.11.1",
    16: "18.19.0",
    15: "18.13.0",
    14: "16.20.0",
    13: "16.20.0",
}

LOCKFILES: tuple[tuple[str, str], ...] = (
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
)

RECOMMENDED_EXTENSIONS = [
    "angular.ng-template",  # Angular Language Service
    "johnpapa.angular2",  # Angular Snippets
    "esbenp.prettier-vscode",
    "dbaeumer.vscode-eslint",
    "cyrilletuzi.angular-schematics",
]
NX_EXTENSION = "nrwl.angular-console"


@dataclass
class AngularProject:
    """What was detected about the project on disk."""

    version: str
    package_manager: str
    node_version: str
    has_nx: bool = False
    has_cli: bool = False
    has_husky: bool = False


class ProjectDetector:
    """Detects Angular projects and recommends environment settings."""

    def __init__(self, project_dir: str | Path, executor: CommandExecutor | None = None):
        self.project_dir = Path(project_dir)
        self.executor = executor

    def is_angular_project(self) -> bool:
        if (self.project_dir / FRAMEWORK_CONFIG).exists():
            return True
        return FRAMEWORK_PACKAGE in declared_dependencies(read_project_manifest(self.project_dir))

    def detect(self) -> AngularProject:
        """Detect the project.

        Raises:
            PreconditionError: Not an Angular project, or package.json is
                missing or does not declare @angular/core
                with a readable version.
        """
        if not self.is_angular_project():
            raise PreconditionError(
                "This is not an Angular project",
                hint="Run envsync inside an Angular workspace, or create one with: ng new my-app",
            )

        package_json = read_project_manifest(self.project_dir)
        if package_json is None:
            raise PreconditionError(f"{PROJECT_MANIFEST} not found")

        version = self.framework_version(package_json)
        deps = declared_dependencies(package_json)
        return AngularProject(
            version=version,
            package_manager=self.detect_package_manager(),
            node_version=recommended_node_version(version),
            has_nx="nx" in deps or (self.project_dir / "nx.json").exists(),
            has_cli=self._has_cli(),
            has_husky=(self.project_dir / ".husky").exists(),
        )

    @staticmethod
    def framework_version(package_json: dict) -> str:
        """The @angular/core version with range prefixes stripped (^17.1.0 -> 17.1.0)."""
        for section in ("dependencies", "devDependencies"):
            spec = (package_json.get(section) or {}).get(FRAMEWORK_PACKAGE)
            if spec:
                match = FRAMEWORK_VERSION_PATTERN.match(spec.strip())
                if not match:
                    raise PreconditionError(
                        f"Cannot read a version from {FRAMEWORK_PACKAGE} '{spec}'",
                        hint=f"Pin {FRAMEWORK_PACKAGE} to an exact, ^ or ~ version in {PROJECT_MANIFEST}",
                    )
                return match.group(1)
        raise PreconditionError(f"{FRAMEWORK_PACKAGE} not found in dependencies")

    def detect_package_manager(self) -> str:
        for lockfile, manager in LOCKFILES:
            if (self.project_dir / lockfile).exists():
                return manager
        return "npm"

    def _has_cli(self) -> bool:
        if self.executor is None:
            return False
        result = self.executor.run(
            "ng", ["version"], ExecOptions(timeout=PROBE_TIMEOUT_SECONDS, cwd=self.project_dir)
        )
        return result.ok


def recommended_node_version(angular_version: str) -> str:
    try:
        major = int(angular_version.split(".")[0])
    except ValueError:
        return DEFAULT_NODE_VERSION
    return NODE_FOR_ANGULAR.get(major, DEFAULT_NODE_VERSION)


def recommended_extensions(has_nx: bool = False) -> list[str]:
    extensions = list(RECOMMENDED_EXTENSIONS)
    if has_nx:
        extensions.append(NX_EXTENSION)
    return extensions


def cli_specifier(angular_version: str) -> str:
    return f"{CLI_PACKAGE}@{angular_version}"


def package_manager_specifier(manager: str) -> str:
    """npm is pinned by the runtime; other managers track latest."""
    return manager if manager == "npm" else f"{manager}@latest"
