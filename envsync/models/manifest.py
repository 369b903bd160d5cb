"""Desired-state model — the parsed ``envsync.yaml`` manifest.

The manifest loader (``envsync.manifest.loader``) builds one ``DesiredState``
per run. Everything downstream treats it as an immutable value.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from envsync.probes.specifier import parse_specifier

RUNTIME_VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")
SUPPORTED_PROJECT_TYPES = ("angular",)


@dataclass(frozen=True)
class ProjectInfo:
    """The ``project`` section."""

    name: str
    type: str = "angular"
    angular_version: str | None = None


@dataclass(frozen=True)
class PackageManagerSpec:
    """A package manager name plus optional version tag (``pnpm@latest``)."""

    name: str
    tag: str | None = None

    @classmethod
    def parse(cls, text: str) -> PackageManagerSpec:
        spec = parse_specifier(text)
        return cls(name=spec.base_name, tag=spec.version)

    @property
    def specifier(self) -> str:
        return f"{self.name}@{self.tag}" if self.tag else self.name


@dataclass(frozen=True)
class LifecycleScripts:
    """Commands run before (``pre-sync``) and after (``post-sync``) a sync."""

    pre: tuple[str, ...] = ()
    post: tuple[str, ...] = ()


@dataclass(frozen=True)
class DesiredState:
    """The declarative target environment for one project."""

    project: ProjectInfo
    runtime_version: str
    package_manager: PackageManagerSpec
    global_tools: tuple[str, ...] = ()
    editor_extensions: tuple[str, ...] | None = None  # None: section not declared
    scripts: LifecycleScripts = field(default_factory=LifecycleScripts)

    def __post_init__(self):
        if not RUNTIME_VERSION_PATTERN.match(self.runtime_version):
            raise ValueError(
                f"Runtime version must be X.Y.Z, got '{self.runtime_version}'"
            )
        seen: set[str] = set()
        for tool in self.global_tools:
            base = parse_specifier(tool).base_name
            if base in seen:
                raise ValueError(f"Global tool '{base}' is declared more than once")
            seen.add(base)

    @property
    def declares_extensions(self) -> bool:
        return bool(self.editor_extensions)

    def to_dict(self) -> dict:
        """Render back to the manifest's document shape."""
        project: dict = {"name": self.project.name, "type": self.project.type}
        if self.project.angular_version:
            project["angularVersion"] = self.project.angular_version

        data: dict = {
            "project": project,
            "runtime": {
                "node": self.runtime_version,
                "packageManager": self.package_manager.specifier,
            },
            "dependencies": {"global": list(self.global_tools)},
        }
        if self.editor_extensions is not None:
            data["extensions"] = {"vscode": list(self.editor_extensions)}
        if self.scripts.pre or self.scripts.post:
            data["scripts"] = {
                "pre-sync": list(self.scripts.pre),
                "post-sync": list(self.scripts.post),
            }
        return data
