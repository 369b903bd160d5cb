"""Tests for project detection, manifest scaffolding and update checks."""

import pytest

from envsync.analyzers.project_detector import (
    AngularProject,
    ProjectDetector,
    cli_specifier,
    package_manager_specifier,
    recommended_extensions,
    recommended_node_version,
)
from envsync.errors import PreconditionError
from envsync.manifest.scaffold import scaffold_manifest
from envsync.sync.update_checker import apply_updates, check_for_updates

from fakes import FakeMachine, make_desired, make_workspace


def _angular(version="^17.1.0", dev=None):
    return {"dependencies": {"@angular/core": version}, "devDependencies": dev or {}}


# --- Detection ---


def test_detect_angular_project(tmp_path):
    make_workspace(tmp_path, package_json=_angular())
    project = ProjectDetector(tmp_path).detect()

    assert project.version == "17.1.0"
    assert project.node_version == "20.11.1"
    assert project.package_manager == "npm"
    assert not project.has_nx
    assert not project.has_cli


def test_detect_from_dependency_without_angular_json(tmp_path):
    make_workspace(tmp_path, package_json=_angular("~16.2.0"), angular_json=False)
    detector = ProjectDetector(tmp_path)
    assert detector.is_angular_project()
    assert detector.detect().node_version == "18.19.0"


def test_not_an_angular_project(tmp_path):
    make_workspace(tmp_path, package_json={"dependencies": {"react": "18.2.0"}}, angular_json=False)
    with pytest.raises(PreconditionError) as exc:
        ProjectDetector(tmp_path).detect()
    assert "ng new" in exc.value.hint


def test_angular_json_without_package_json(tmp_path):
    make_workspace(tmp_path)
    with pytest.raises(PreconditionError):
        ProjectDetector(tmp_path).detect()


def test_framework_version_prefixes():
    assert ProjectDetector.framework_version(_angular("17.1.0")) == "17.1.0"
    assert ProjectDetector.framework_version(_angular("~16.2.0")) == "16.2.0"
    assert ProjectDetector.framework_version(_angular("^18.0.0-rc.1")) == "18.0.0-rc.1"


@pytest.mark.parametrize("version", [">=17.0.0", "latest", "17.x", "^17.1.0 || ^18.0.0", "1^7.1.0"])
def test_framework_version_rejects_ranges_and_tags(tmp_path, version):
    make_workspace(tmp_path, package_json=_angular(version))
    with pytest.raises(PreconditionError) as exc:
        ProjectDetector(tmp_path).detect()
    assert version in str(exc.value)
    assert "package.json" in exc.value.hint


def test_package_manager_from_lockfile(tmp_path):
    make_workspace(tmp_path, package_json=_angular())
    detector = ProjectDetector(tmp_path)
    (tmp_path / "yarn.lock").touch()
    assert detector.detect_package_manager() == "yarn"
    (tmp_path / "pnpm-lock.yaml").touch()
    assert detector.detect_package_manager() == "pnpm"


def test_nx_husky_and_cli(tmp_path):
    make_workspace(tmp_path, package_json=_angular(dev={"nx": "17.0.0"}))
    (tmp_path / ".husky").mkdir()
    machine = FakeMachine(commands=set())

    project = ProjectDetector(tmp_path, machine).detect()
    assert project.has_nx
    assert project.has_husky
    assert project.has_cli
    assert machine.ran("ng version")


def test_recommended_node_versions():
    assert recommended_node_version("18.0.0") == "20.11.1"
    assert recommended_node_version("15.2.10") == "18.13.0"
    assert recommended_node_version("13.3.0") == "16.20.0"
    assert recommended_node_version("12.0.0") == "20.11.1"
    assert recommended_node_version("next") == "20.11.1"


def test_recommended_extensions_with_nx():
    assert "nrwl.angular-console" not in recommended_extensions()
    assert recommended_extensions(has_nx=True)[-1] == "nrwl.angular-console"


def test_specifier_helpers():
    assert cli_specifier("17.1.0") == "@angular/cli@17.1.0"
    assert package_manager_specifier("npm") == "npm"
    assert package_manager_specifier("pnpm") == "pnpm@latest"


# --- Scaffolding ---


def test_scaffold_manifest():
    project = AngularProject(
        version="17.1.0", package_manager="pnpm", node_version="20.11.1", has_nx=True, has_husky=True
    )
    desired = scaffold_manifest(project, name="shop")

    assert desired.runtime_version == "20.11.1"
    assert desired.package_manager.specifier == "pnpm@latest"
    assert desired.global_tools == ("@angular/cli@17.1.0", "nx@latest")
    assert "nrwl.angular-console" in desired.editor_extensions
    assert desired.scripts.post == ("pnpm install", "npx husky install")


def test_scaffold_manifest_answers_override_detection():
    project = AngularProject(version="16.2.0", package_manager="npm", node_version="18.19.0")
    desired = scaffold_manifest(
        project, name="shop", node_version="18.20.2", package_manager="yarn", include_extensions=False
    )

    assert desired.runtime_version == "18.20.2"
    assert desired.package_manager.name == "yarn"
    assert desired.editor_extensions is None
    assert desired.scripts.post == ("yarn install",)


# --- Update checks ---


def test_no_updates_when_in_step():
    desired = make_desired(tools=["@angular/cli@17.1.0"])
    detected = AngularProject(version="17.1.0", package_manager="npm", node_version="20.11.1")
    assert not check_for_updates(desired, detected).has_updates


def test_framework_upgrade_reports_each_field():
    desired = make_desired(tools=["@angular/cli@17.1.0", "nx@latest"])
    detected = AngularProject(version="18.0.1", package_manager="pnpm", node_version="20.11.1")

    result = check_for_updates(desired, detected)
    fields = {u.field: (u.current, u.latest) for u in result.updates}

    assert fields["Angular version"] == ("17.1.0", "18.0.1")
    assert fields["Package manager"] == ("npm", "pnpm@latest")
    assert fields["Angular CLI"] == ("@angular/cli@17.1.0", "@angular/cli@18.0.1")
    assert "Node.js version" not in fields


def test_apply_updates_keeps_other_tools():
    desired = make_desired(node="18.19.0", tools=["nx@latest", "@angular/cli@16.2.0"])
    detected = AngularProject(version="17.1.0", package_manager="npm", node_version="20.11.1")

    updated = apply_updates(desired, detected)

    assert updated.project.angular_version == "17.1.0"
    assert updated.runtime_version == "20.11.1"
    assert updated.global_tools == ("nx@latest", "@angular/cli@17.1.0")
    assert updated.package_manager == desired.package_manager
    assert not check_for_updates(updated, detected).has_updates


def test_apply_updates_adds_missing_cli():
    desired = make_desired(tools=["nx@latest"])
    detected = AngularProject(version="17.1.0", package_manager="npm", node_version="20.11.1")
    assert apply_updates(desired, detected).global_tools == ("@angular/cli@17.1.0", "nx@latest")
