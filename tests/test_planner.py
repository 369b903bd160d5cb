"""Tests for remediation planning."""

from envsync.models.results import (
    ActionKind,
    CheckKey,
    CheckKind,
    DiscrepancyRecord,
    Severity,
)
from envsync.sync.planner import addressed_checks, addressed_key, build_plan

from fakes import make_desired


def _record(kind, target="", severity=Severity.BLOCKING):
    return DiscrepancyRecord(
        key=CheckKey(kind, target),
        expected="x",
        observed=None,
        severity=severity,
        suggested_action="",
    )


def test_plan_order_is_fixed_by_rank():
    desired = make_desired(
        package_manager="pnpm@latest",
        tools=["nx@latest"],
        extensions=["x.one"],
        pre=["echo before"],
        post=["pnpm install"],
    )
    records = [
        _record(CheckKind.EXTENSION, "x.one"),
        _record(CheckKind.GLOBAL_TOOL, "nx@latest"),
        _record(CheckKind.PACKAGE_MANAGER, "pnpm"),
        _record(CheckKind.RUNTIME),
    ]

    plan = build_plan(desired, records)
    assert [s.action for s in plan] == [
        ActionKind.PRE_SCRIPT,
        ActionKind.RUNTIME,
        ActionKind.PACKAGE_MANAGER,
        ActionKind.GLOBAL_TOOL,
        ActionKind.EXTENSION,
        ActionKind.POST_SCRIPT,
    ]
    assert [s.rank for s in plan] == [0, 1, 2, 3, 4, 5]
    assert plan[2].target == "pnpm@latest"


def test_only_missing_tools_are_planned():
    desired = make_desired(tools=["toolA@1.0.0", "toolB", "toolC"])
    records = [
        _record(CheckKind.GLOBAL_TOOL, "toolC"),
        _record(CheckKind.GLOBAL_TOOL, "toolA@1.0.0"),
    ]
    plan = build_plan(desired, records)
    assert [s.target for s in plan] == ["toolA@1.0.0", "toolC"]


def test_pin_file_alone_plans_runtime_step():
    plan = build_plan(make_desired(), [_record(CheckKind.PIN_FILE, severity=Severity.RECOMMENDED)])
    assert len(plan) == 1
    assert plan[0].action == ActionKind.RUNTIME
    assert plan[0].target == "20.11.1"


def test_runtime_and_pin_file_share_one_step():
    records = [_record(CheckKind.RUNTIME), _record(CheckKind.PIN_FILE)]
    assert len(build_plan(make_desired(), records)) == 1


def test_unfixable_checks_plan_nothing():
    records = [
        _record(CheckKind.VERSION_MANAGER, severity=Severity.RECOMMENDED),
        _record(CheckKind.EXTENSION_HOST, severity=Severity.INFORMATIONAL),
        _record(CheckKind.FRAMEWORK_CONFIG),
    ]
    assert build_plan(make_desired(post=["npm install"]), records) == []


def test_scripts_run_when_dependencies_missing():
    desired = make_desired(post=["npm install"])
    plan = build_plan(desired, [_record(CheckKind.DEPENDENCIES_INSTALLED, severity=Severity.RECOMMENDED)])
    assert [s.target for s in plan] == ["npm install"]


def test_scripts_forced():
    desired = make_desired(pre=["echo hi"], post=["npm install", "npx husky install"])
    plan = build_plan(desired, [], include_scripts=True)
    assert [s.target for s in plan] == ["echo hi", "npm install", "npx husky install"]


def test_no_discrepancies_no_steps():
    desired = make_desired(tools=["nx"], pre=["echo hi"], post=["npm install"])
    assert build_plan(desired, []) == []


def test_addressed_checks():
    plan = build_plan(
        make_desired(tools=["nx"], post=["npm install"]),
        [_record(CheckKind.RUNTIME), _record(CheckKind.GLOBAL_TOOL, "nx")],
    )
    runtime, tool, post = plan
    assert addressed_checks(runtime) == {CheckKind.RUNTIME, CheckKind.PIN_FILE}
    assert addressed_key(runtime) is None
    assert addressed_key(tool) == CheckKey(CheckKind.GLOBAL_TOOL, "nx")
    assert addressed_checks(post) == {CheckKind.DEPENDENCIES_INSTALLED}
