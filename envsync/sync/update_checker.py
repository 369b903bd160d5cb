"""Update checker — compare the manifest against the project as it is now.

When the Angular version in ``package.json`` moves on, the manifest's pinned
framework version, Node version, package manager and CLI specifier may all
be stale. This module computes the field-level deltas and the updated
manifest; the command layer decides whether to write it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from envsync.analyzers.project_detector import (
    CLI_PACKAGE,
    AngularProject,
    cli_specifier,
    package_manager_specifier,
)
from envsync.models.manifest import DesiredState, PackageManagerSpec
from envsync.probes.specifier import parse_specifier


@dataclass
class FieldUpdate:
    """One manifest field whose value differs from the detected one."""

    field: str
    current: str
    latest: str


@dataclass
class UpdateCheckResult:
    detected: AngularProject
    updates: list[FieldUpdate] = field(default_factory=list)

    @property
    def has_updates(self) -> bool:
        return len(self.updates) > 0


def check_for_updates(desired: DesiredState, detected: AngularProject) -> UpdateCheckResult:
    """List the fields of ``desired`` that lag behind ``detected``."""
    result = UpdateCheckResult(detected=detected)

    if detected.version != desired.project.angular_version:
        result.updates.append(
            FieldUpdate("Angular version", desired.project.angular_version or "N/A", detected.version)
        )

    if detected.node_version != desired.runtime_version:
        result.updates.append(
            FieldUpdate("Node.js version", desired.runtime_version, detected.node_version)
        )

    if detected.package_manager != desired.package_manager.name:
        result.updates.append(
            FieldUpdate(
                "Package manager",
                desired.package_manager.specifier,
                package_manager_specifier(detected.package_manager),
            )
        )

    current_cli = _cli_entry(desired)
    latest_cli = cli_specifier(detected.version)
    if current_cli != latest_cli:
        result.updates.append(FieldUpdate("Angular CLI", current_cli or "Not specified", latest_cli))

    return result


def apply_updates(desired: DesiredState, detected: AngularProject) -> DesiredState:
    """Return ``desired`` with the detected values written in.

    The CLI entry is replaced in place (or prepended when missing); other
    global tools are kept.
    """
    latest_cli = cli_specifier(detected.version)
    tools = list(desired.global_tools)
    current_cli = _cli_entry(desired)
    if current_cli is None:
        tools.insert(0, latest_cli)
    else:
        tools[tools.index(current_cli)] = latest_cli

    manager = desired.package_manager
    if detected.package_manager != manager.name:
        manager = PackageManagerSpec.parse(package_manager_specifier(detected.package_manager))

    return replace(
        desired,
        project=replace(desired.project, angular_version=detected.version),
        runtime_version=detected.node_version,
        package_manager=manager,
        global_tools=tuple(tools),
    )


def _cli_entry(desired: DesiredState) -> str | None:
    for tool in desired.global_tools:
        if parse_specifier(tool).base_name == CLI_PACKAGE:
            return tool
    return None
