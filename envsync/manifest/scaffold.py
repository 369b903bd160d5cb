"""Build a first manifest from a detected project (``envsync init``)."""

from __future__ import annotations

from envsync.analyzers.project_detector import (
    AngularProject,
    cli_specifier,
    package_manager_specifier,
    recommended_extensions,
)
from envsync.models.manifest import (
    DesiredState,
    LifecycleScripts,
    PackageManagerSpec,
    ProjectInfo,
)


def scaffold_manifest(
    project: AngularProject,
    name: str,
    node_version: str | None = None,
    package_manager: str | None = None,
    include_extensions: bool = True,
) -> DesiredState:
    """Seed a ``DesiredState`` from detection results plus the user's answers."""
    manager = package_manager or project.package_manager

    tools = [cli_specifier(project.version)]
    if project.has_nx:
        tools.append("nx@latest")

    post_sync = [f"{manager} install"]
    if project.has_husky:
        post_sync.append("npx husky install")

    return DesiredState(
        project=ProjectInfo(name=name, type="angular", angular_version=project.version),
        runtime_version=node_version or project.node_version,
        package_manager=PackageManagerSpec.parse(package_manager_specifier(manager)),
        global_tools=tuple(tools),
        editor_extensions=(
            tuple(recommended_extensions(project.has_nx)) if include_extensions else None
        ),
        scripts=LifecycleScripts(pre=(), post=tuple(post_sync)),
    )
