"""Tests for the weighted health score."""

from envsync.analyzers.health_scorer import (
    HealthBand,
    StaticChecks,
    score,
)
from envsync.models.results import CheckKey, CheckKind, Classification, ProbeResult
from envsync.probes.system import ProbeSet

from fakes import FakeMachine, make_context, make_workspace

TOOLS = ["@angular/cli@17.1.0", "nx@latest", "typescript"]
EXTENSIONS = ["angular.ng-template", "esbenp.prettier-vscode"]


def _probes(
    runtime=True,
    nvm=True,
    pin=True,
    pm=True,
    missing_tools=0,
    host=True,
    missing_extensions=0,
):
    results = [
        ProbeResult.version(CheckKey(CheckKind.RUNTIME), "20.11.1", "20.11.1" if runtime else "18.19.0"),
        ProbeResult.presence(CheckKey(CheckKind.VERSION_MANAGER), nvm),
        ProbeResult.presence(CheckKey(CheckKind.PIN_FILE), pin, expected="20.11.1", missing="Missing"),
        ProbeResult.presence(CheckKey(CheckKind.PACKAGE_MANAGER, "npm"), pm),
    ]
    for i, tool in enumerate(TOOLS):
        results.append(ProbeResult.presence(CheckKey(CheckKind.GLOBAL_TOOL, tool), i >= missing_tools))
    results.append(ProbeResult.presence(CheckKey(CheckKind.EXTENSION_HOST), host))
    for i, ext in enumerate(EXTENSIONS):
        key = CheckKey(CheckKind.EXTENSION, ext)
        if host:
            results.append(ProbeResult.presence(key, i >= missing_extensions))
        else:
            results.append(ProbeResult(key, "Installed", None, Classification.ABSENT))
    return results


def test_perfect_environment():
    report = score(_probes(), StaticChecks())
    assert report.score == 100
    assert report.band == HealthBand.EXCELLENT
    assert report.issues == []
    assert report.healthy


def test_individual_weights():
    assert score(_probes(runtime=False), StaticChecks()).score == 80
    assert score(_probes(pm=False), StaticChecks()).score == 85
    assert score(_probes(missing_tools=2), StaticChecks()).score == 80
    assert score(_probes(missing_extensions=1), StaticChecks()).score == 97
    assert score(_probes(), StaticChecks(dependencies_installed=False)).score == 90
    assert score(_probes(), StaticChecks(project_manifest=False)).score == 80
    assert score(_probes(), StaticChecks(framework_config=False)).score == 85


def test_pin_file_only_counts_with_version_manager():
    assert score(_probes(pin=False), StaticChecks()).score == 95
    # nvm absent (-5); the missing .nvmrc adds nothing
    assert score(_probes(nvm=False, pin=False), StaticChecks()).score == 95


def test_stale_pin_file_is_not_penalized():
    results = _probes()
    results[2] = ProbeResult(CheckKey(CheckKind.PIN_FILE), "20.11.1", "18.19.0", Classification.MISMATCH)

    report = score(results, StaticChecks())

    assert report.score == 100
    assert report.issues == []
    row = next(c for c in report.checks if c.name == ".nvmrc file")
    assert not row.passed
    assert "Stale" in row.details


def test_uncheckable_extensions_count_as_missing():
    report = score(_probes(host=False), StaticChecks())
    assert report.score == 100 - 3 * len(EXTENSIONS)
    row = next(c for c in report.checks if c.name == "VSCode extensions")
    assert row.level == "skip"
    assert "Cannot check" in row.details


def test_clamped_at_zero():
    report = score(
        _probes(runtime=False, nvm=False, pin=False, pm=False, missing_tools=3, host=False),
        StaticChecks(False, False, False),
    )
    assert report.score == 0
    assert report.band == HealthBand.NEEDS_ATTENTION
    assert not report.healthy


def test_monotonic():
    failures = [
        {"runtime": False},
        {"pm": False},
        {"missing_tools": 1},
        {"missing_extensions": 1},
        {"missing_tools": 2},
        {"pin": False},
        {"missing_extensions": 2},
        {"nvm": False},
        {"missing_tools": 3},
    ]
    flags = {}
    previous = score(_probes(), StaticChecks()).score
    for failure in failures:
        flags.update(failure)
        current = score(_probes(**flags), StaticChecks()).score
        assert current <= previous, flags
        previous = current


def test_losing_the_extension_host_never_raises_the_score():
    with_host = score(_probes(missing_extensions=1), StaticChecks()).score
    without_host = score(_probes(host=False), StaticChecks()).score
    assert without_host <= with_host


def test_bands():
    assert HealthBand.for_score(100) == HealthBand.EXCELLENT
    assert HealthBand.for_score(90) == HealthBand.EXCELLENT
    assert HealthBand.for_score(89) == HealthBand.GOOD
    assert HealthBand.for_score(70) == HealthBand.GOOD
    assert HealthBand.for_score(69) == HealthBand.NEEDS_ATTENTION


def test_issues_name_the_missing_items():
    report = score(_probes(missing_tools=1), StaticChecks(dependencies_installed=False))
    assert "Missing global dependency: @angular/cli@17.1.0" in report.issues
    assert any("Dependencies not installed" in issue for issue in report.issues)


def test_static_checks_from_workspace(tmp_path):
    make_workspace(tmp_path, node_modules=False, package_json={"dependencies": {}}, angular_json=False)
    ctx = make_context(tmp_path)
    static = StaticChecks.collect(ProbeSet(FakeMachine(), ctx))
    assert static == StaticChecks(dependencies_installed=False, project_manifest=True, framework_config=False)
