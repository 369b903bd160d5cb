"""Differ — compare probe results against the desired state.

The output order is fixed by the desired state, not by the order probes were
collected in:

1. runtime, version manager, pin file, package manager
2. each global tool, in manifest order
3. extension host, then each extension in manifest order
4. workspace artifacts (node_modules, package.json, angular.json)

Checks for sections the manifest does not declare are omitted; matches
produce no record.
"""

from __future__ import annotations

from typing import Iterable

from envsync.models.manifest import DesiredState
from envsync.models.results import (
    CheckKey,
    CheckKind,
    Classification,
    DiscrepancyRecord,
    ProbeResult,
    Severity,
)
from envsync.utils.context import RunContext

SEVERITY_POLICY: dict[CheckKind, Severity] = {
    CheckKind.RUNTIME: Severity.BLOCKING,
    CheckKind.VERSION_MANAGER: Severity.RECOMMENDED,
    CheckKind.PIN_FILE: Severity.RECOMMENDED,
    CheckKind.PACKAGE_MANAGER: Severity.BLOCKING,
    CheckKind.GLOBAL_TOOL: Severity.BLOCKING,
    CheckKind.EXTENSION_HOST: Severity.INFORMATIONAL,
    CheckKind.EXTENSION: Severity.RECOMMENDED,
    CheckKind.DEPENDENCIES_INSTALLED: Severity.RECOMMENDED,
    CheckKind.PROJECT_MANIFEST: Severity.BLOCKING,
    CheckKind.FRAMEWORK_CONFIG: Severity.BLOCKING,
}


def expected_checks(desired: DesiredState) -> list[CheckKey]:
    """Every check ``desired`` calls for, in diff order."""
    keys = [
        CheckKey(CheckKind.RUNTIME),
        CheckKey(CheckKind.VERSION_MANAGER),
        CheckKey(CheckKind.PIN_FILE),
        CheckKey(CheckKind.PACKAGE_MANAGER, desired.package_manager.name),
    ]
    keys.extend(CheckKey(CheckKind.GLOBAL_TOOL, tool) for tool in desired.global_tools)
    if desired.declares_extensions:
        keys.append(CheckKey(CheckKind.EXTENSION_HOST))
        keys.extend(CheckKey(CheckKind.EXTENSION, ext) for ext in desired.editor_extensions)
    keys.extend(
        CheckKey(kind)
        for kind in (
            CheckKind.DEPENDENCIES_INSTALLED,
            CheckKind.PROJECT_MANIFEST,
            CheckKind.FRAMEWORK_CONFIG,
        )
    )
    return keys


def diff(
    desired: DesiredState, probes: Iterable[ProbeResult], ctx: RunContext | None = None
) -> list[DiscrepancyRecord]:
    """Return one record per non-matching check, in diff order."""
    by_key = {p.key: p for p in probes}
    records: list[DiscrepancyRecord] = []

    for key in expected_checks(desired):
        probe = by_key.get(key)
        if probe is None:
            # Not probed in this run (e.g. a partial probe set); nothing to say.
            if ctx:
                ctx.debug(f"{key}: no probe result, skipped")
            continue
        if probe.classification == Classification.MATCH:
            continue
        records.append(
            DiscrepancyRecord(
                key=key,
                expected=probe.expected,
                observed=probe.observed,
                severity=SEVERITY_POLICY[key.kind],
                suggested_action=suggest_action(desired, probe),
            )
        )

    if ctx:
        ctx.debug(f"diff: {len(records)} discrepancy record(s)")
    return records


def suggest_action(desired: DesiredState, probe: ProbeResult) -> str:
    """Short human instruction for fixing one check."""
    kind, target = probe.key.kind, probe.key.target
    version = desired.runtime_version

    if kind == CheckKind.RUNTIME:
        if probe.classification == Classification.ABSENT:
            return "Install Node.js from https://nodejs.org/"
        return f"nvm install {version} && nvm use {version}"
    if kind == CheckKind.VERSION_MANAGER:
        return "Install nvm (https://github.com/nvm-sh/nvm) to manage Node versions"
    if kind == CheckKind.PIN_FILE:
        return "Run: envsync sync (writes .nvmrc)"
    if kind == CheckKind.PACKAGE_MANAGER:
        return f"npm install -g {desired.package_manager.specifier}"
    if kind == CheckKind.GLOBAL_TOOL:
        return f"npm install -g {target}"
    if kind == CheckKind.EXTENSION_HOST:
        return "In VSCode run 'Shell Command: Install code command in PATH'"
    if kind == CheckKind.EXTENSION:
        return f"code --install-extension {target}"
    if kind == CheckKind.DEPENDENCIES_INSTALLED:
        return f"{desired.package_manager.name} install"
    return f"Restore {probe.key.label}"
