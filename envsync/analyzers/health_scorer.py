"""Health scorer -- a weighted 0-100 score for the current environment.

Starts at 100 and deducts a fixed weight for each failing check. The weights
here are independent of the differ's severity table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from envsync.models.results import CheckKind, Classification, ProbeResult
from envsync.probes.system import ProbeSet
from envsync.utils.context import RunContext

RUNTIME_MISMATCH = 20
VERSION_MANAGER_ABSENT = 5
PIN_FILE_MISSING = 5
PACKAGE_MANAGER_ABSENT = 15
GLOBAL_TOOL_MISSING = 10
EXTENSION_MISSING = 3
DEPENDENCIES_NOT_INSTALLED = 10
PROJECT_MANIFEST_MISSING = 20
FRAMEWORK_CONFIG_MISSING = 15

EXCELLENT_THRESHOLD = 90
GOOD_THRESHOLD = 70


class HealthBand(Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    NEEDS_ATTENTION = "Needs Attention"

    @classmethod
    def for_score(cls, score: int) -> HealthBand:
        if score >= EXCELLENT_THRESHOLD:
            return cls.EXCELLENT
        if score >= GOOD_THRESHOLD:
            return cls.GOOD
        return cls.NEEDS_ATTENTION


@dataclass(frozen=True)
class StaticChecks:
    """File-level checks on the project workspace."""

    dependencies_installed: bool = True
    project_manifest: bool = True
    framework_config: bool = True

    @classmethod
    def collect(cls, probes: ProbeSet) -> StaticChecks:
        return cls(
            dependencies_installed=probes.has_dependencies_installed(),
            project_manifest=probes.has_project_manifest(),
            framework_config=probes.has_framework_config(),
        )


@dataclass
class HealthCheck:
    """One row of the health report."""

    name: str
    passed: bool
    details: str
    penalty: int = 0
    level: str = "fail"  # fail | warn | info | skip, used for rendering only


@dataclass
class HealthReport:
    score: int
    band: HealthBand
    checks: list[HealthCheck] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        """Good or better."""
        return self.band != HealthBand.NEEDS_ATTENTION


def score(
    probes: Iterable[ProbeResult],
    static_checks: StaticChecks,
    ctx: RunContext | None = None,
) -> HealthReport:
    """Score the environment from probe results and workspace checks."""
    by_kind: dict[CheckKind, list[ProbeResult]] = {}
    for probe in probes:
        by_kind.setdefault(probe.key.kind, []).append(probe)

    checks: list[HealthCheck] = []
    issues: list[str] = []

    _score_runtime(by_kind, checks, issues)
    _score_package_manager(by_kind, checks, issues)
    _score_global_tools(by_kind, checks, issues)
    _score_extensions(by_kind, checks, issues)
    _score_workspace(static_checks, checks, issues)

    total = max(0, 100 - sum(c.penalty for c in checks))
    if ctx:
        ctx.debug(f"health: {total}/100 from {len(checks)} checks")
    return HealthReport(score=total, band=HealthBand.for_score(total), checks=checks, issues=issues)


def _first(by_kind: dict, kind: CheckKind) -> ProbeResult | None:
    found = by_kind.get(kind)
    return found[0] if found else None


def _score_runtime(by_kind, checks: list[HealthCheck], issues: list[str]) -> None:
    runtime = _first(by_kind, CheckKind.RUNTIME)
    if runtime:
        if runtime.matched:
            checks.append(HealthCheck("Node.js version", True, runtime.observed or ""))
        else:
            checks.append(
                HealthCheck(
                    "Node.js version",
                    False,
                    f"{runtime.observed or 'N/A'} -> {runtime.expected}",
                    penalty=RUNTIME_MISMATCH,
                )
            )
            issues.append(f"Node.js: expected {runtime.expected}, got {runtime.observed or 'none'}")

    manager = _first(by_kind, CheckKind.VERSION_MANAGER)
    has_manager = bool(manager and manager.matched)
    if manager:
        checks.append(
            HealthCheck(
                "NVM (Node Version Manager)",
                has_manager,
                "Installed" if has_manager else "Not installed (recommended)",
                penalty=0 if has_manager else VERSION_MANAGER_ABSENT,
                level="warn",
            )
        )
        if not has_manager:
            issues.append("NVM not installed - recommended for managing Node versions")

    pin = _first(by_kind, CheckKind.PIN_FILE)
    if pin:
        missing = pin.classification == Classification.ABSENT
        # A missing .nvmrc only costs points when nvm could have used it.
        # A stale one is reported but not penalized.
        penalize = missing and has_manager
        if pin.matched:
            details = "Present"
        elif missing:
            details = "Missing"
        else:
            details = f"Stale ({pin.observed}, expected {pin.expected})"
        checks.append(
            HealthCheck(
                ".nvmrc file",
                pin.matched,
                details,
                penalty=PIN_FILE_MISSING if penalize else 0,
                level="warn",
            )
        )
        if penalize:
            issues.append('.nvmrc file missing - run "envsync sync" to write it')


def _score_package_manager(by_kind, checks: list[HealthCheck], issues: list[str]) -> None:
    pm = _first(by_kind, CheckKind.PACKAGE_MANAGER)
    if pm is None:
        return
    name = pm.key.target
    checks.append(
        HealthCheck(
            f"Package manager ({name})",
            pm.matched,
            "Installed" if pm.matched else "Not installed",
            penalty=0 if pm.matched else PACKAGE_MANAGER_ABSENT,
        )
    )
    if not pm.matched:
        issues.append(f"Package manager {name} not installed")


def _score_global_tools(by_kind, checks: list[HealthCheck], issues: list[str]) -> None:
    tools = by_kind.get(CheckKind.GLOBAL_TOOL, [])
    if not tools:
        return
    missing = [t for t in tools if not t.matched]
    for tool in missing:
        issues.append(f"Missing global dependency: {tool.key.target}")
    checks.append(
        HealthCheck(
            "Global dependencies",
            not missing,
            f"All {len(tools)} installed" if not missing else f"{len(missing)}/{len(tools)} missing",
            penalty=len(missing) * GLOBAL_TOOL_MISSING,
            level="warn",
        )
    )


def _score_extensions(by_kind, checks: list[HealthCheck], issues: list[str]) -> None:
    host = _first(by_kind, CheckKind.EXTENSION_HOST)
    extensions = by_kind.get(CheckKind.EXTENSION, [])
    if host is None:
        return

    checks.append(
        HealthCheck(
            "VSCode CLI",
            host.matched,
            "Available" if host.matched else "Not available",
            level="info",
        )
    )
    if not extensions:
        return

    # Without the CLI extensions cannot be listed, so they count as missing.
    missing = [e for e in extensions if not e.matched]
    for ext in missing:
        issues.append(f"Missing VSCode extension: {ext.key.target}")
    if host.matched:
        details = f"All {len(extensions)} installed" if not missing else f"{len(missing)}/{len(extensions)} missing"
    else:
        details = "Cannot check (VSCode CLI not available)"
    checks.append(
        HealthCheck(
            "VSCode extensions",
            not missing,
            details,
            penalty=len(missing) * EXTENSION_MISSING,
            level="warn" if host.matched else "skip",
        )
    )


def _score_workspace(static: StaticChecks, checks: list[HealthCheck], issues: list[str]) -> None:
    checks.append(
        HealthCheck(
            "Dependencies installed",
            static.dependencies_installed,
            "node_modules present" if static.dependencies_installed else "Run npm install",
            penalty=0 if static.dependencies_installed else DEPENDENCIES_NOT_INSTALLED,
            level="warn",
        )
    )
    if not static.dependencies_installed:
        issues.append('Dependencies not installed - run "npm install"')

    for name, present, penalty in (
        ("package.json", static.project_manifest, PROJECT_MANIFEST_MISSING),
        ("angular.json", static.framework_config, FRAMEWORK_CONFIG_MISSING),
    ):
        checks.append(
            HealthCheck(name, present, "Present" if present else "Missing", penalty=0 if present else penalty)
        )
        if not present:
            issues.append(f"{name} missing")
