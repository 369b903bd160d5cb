"""Run the probe set for a desired state and classify each observation."""

from __future__ import annotations

from envsync.models.manifest import DesiredState
from envsync.models.results import CheckKey, CheckKind, Classification, ProbeResult
from envsync.probes.system import ProbeSet
from envsync.utils.context import RunContext


def collect_probes(desired: DesiredState, probes: ProbeSet, ctx: RunContext) -> list[ProbeResult]:
    """Probe everything ``desired`` declares, one check at a time.

    Checks for sections the manifest does not declare are not run. When the
    extension host is missing, declared extensions are reported absent with
    no observation because they cannot be listed.
    """
    results: list[ProbeResult] = []

    def add(result: ProbeResult) -> None:
        ctx.debug(f"{result.key}: {result.classification.value} (observed {result.observed!r})")
        results.append(result)

    add(ProbeResult.version(CheckKey(CheckKind.RUNTIME), desired.runtime_version, probes.runtime_version()))
    add(ProbeResult.presence(CheckKey(CheckKind.VERSION_MANAGER), probes.has_version_manager()))

    pinned = probes.pin_file_version()
    add(
        ProbeResult(
            key=CheckKey(CheckKind.PIN_FILE),
            expected=desired.runtime_version,
            observed=pinned if pinned is not None else "Missing",
            classification=(
                Classification.ABSENT
                if pinned is None
                else Classification.MATCH
                if pinned == desired.runtime_version
                else Classification.MISMATCH
            ),
        )
    )

    pm = desired.package_manager.name
    add(ProbeResult.presence(CheckKey(CheckKind.PACKAGE_MANAGER, pm), probes.has_package_manager(pm)))

    for tool in desired.global_tools:
        add(ProbeResult.presence(CheckKey(CheckKind.GLOBAL_TOOL, tool), probes.has_global_tool(tool)))

    if desired.declares_extensions:
        host = probes.has_extension_host()
        add(
            ProbeResult.presence(
                CheckKey(CheckKind.EXTENSION_HOST), host, expected="Available", missing="Not available"
            )
        )
        installed = probes.installed_extensions() if host else set()
        for ext in desired.editor_extensions:
            key = CheckKey(CheckKind.EXTENSION, ext)
            if host:
                add(ProbeResult.presence(key, ext.lower() in installed))
            else:
                add(ProbeResult(key, "Installed", None, Classification.ABSENT))

    for kind, present in (
        (CheckKind.DEPENDENCIES_INSTALLED, probes.has_dependencies_installed()),
        (CheckKind.PROJECT_MANIFEST, probes.has_project_manifest()),
        (CheckKind.FRAMEWORK_CONFIG, probes.has_framework_config()),
    ):
        add(ProbeResult.presence(CheckKey(kind), present, expected="Present", missing="Missing"))

    return results
