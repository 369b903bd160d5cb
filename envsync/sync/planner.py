"""Planner — turn discrepancy records into an ordered remediation plan.

Step order is fixed by ``ACTION_RANK`` (pre-scripts, runtime, package
manager, global tools, extensions, post-scripts); within a rank, manifest
order is kept.
"""

from __future__ import annotations

from envsync.models.manifest import DesiredState
from envsync.models.results import (
    ACTION_RANK,
    ActionKind,
    CheckKey,
    CheckKind,
    DiscrepancyRecord,
    RemediationStep,
)

# Discrepancies a runtime step takes care of.
RUNTIME_CHECKS = {CheckKind.RUNTIME, CheckKind.PIN_FILE}


def build_plan(
    desired: DesiredState,
    discrepancies: list[DiscrepancyRecord],
    include_scripts: bool = False,
) -> list[RemediationStep]:
    """Plan the steps needed to close ``discrepancies``.

    Lifecycle scripts are only planned when there is something to fix
    (a remediation step, or dependencies not installed) or when
    ``include_scripts`` forces them. A machine that already matches gets an
    empty plan.
    """
    keys = {d.key for d in discrepancies}
    kinds = {k.kind for k in keys}
    steps: list[RemediationStep] = []

    def add(action: ActionKind, target: str) -> None:
        steps.append(
            RemediationStep(
                action=action,
                target=target,
                rank=ACTION_RANK[action],
                sequence=len(steps),
            )
        )

    if kinds & RUNTIME_CHECKS:
        add(ActionKind.RUNTIME, desired.runtime_version)

    if CheckKind.PACKAGE_MANAGER in kinds:
        add(ActionKind.PACKAGE_MANAGER, desired.package_manager.specifier)

    for tool in desired.global_tools:
        if CheckKey(CheckKind.GLOBAL_TOOL, tool) in keys:
            add(ActionKind.GLOBAL_TOOL, tool)

    for ext in desired.editor_extensions or ():
        if CheckKey(CheckKind.EXTENSION, ext) in keys:
            add(ActionKind.EXTENSION, ext)

    needs_scripts = bool(steps) or CheckKind.DEPENDENCIES_INSTALLED in kinds
    if needs_scripts or include_scripts:
        for command in desired.scripts.pre:
            add(ActionKind.PRE_SCRIPT, command)
        for command in desired.scripts.post:
            add(ActionKind.POST_SCRIPT, command)

    return sorted(steps, key=lambda s: s.sort_key)


def addressed_checks(step: RemediationStep) -> set[CheckKind]:
    """Check kinds a successful ``step`` resolves regardless of target."""
    if step.action == ActionKind.RUNTIME:
        return set(RUNTIME_CHECKS)
    if step.action == ActionKind.PACKAGE_MANAGER:
        return {CheckKind.PACKAGE_MANAGER}
    if step.action == ActionKind.POST_SCRIPT:
        return {CheckKind.DEPENDENCIES_INSTALLED}
    return set()


def addressed_key(step: RemediationStep) -> CheckKey | None:
    """The single per-item check a successful ``step`` resolves, if any."""
    if step.action == ActionKind.GLOBAL_TOOL:
        return CheckKey(CheckKind.GLOBAL_TOOL, step.target)
    if step.action == ActionKind.EXTENSION:
        return CheckKey(CheckKind.EXTENSION, step.target)
    return None
