"""Reconciler — execute a remediation plan one step at a time.

Steps run strictly in plan order. A failing step is recorded and the run
moves on. Nothing is rolled back; every step is safe to re-run. The run
only stops early when the user accepts the offer to install the version
manager (the shell must be restarted before nvm is usable) or cancels a
prompt.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from envsync.errors import StepFailure, UserCancellation
from envsync.manifest import PIN_FILE
from envsync.manifest.loader import declared_dependencies, read_project_manifest
from envsync.models.manifest import DesiredState
from envsync.models.results import (
    ActionKind,
    DiscrepancyRecord,
    RemediationStep,
    RunResult,
    RunStatus,
    Severity,
    StepOutcome,
    StepStatus,
)
from envsync.probes.executor import (
    INSTALL_TIMEOUT_SECONDS,
    CommandExecutor,
    CommandResult,
    ExecOptions,
)
from envsync.probes.system import (
    EXTENSION_HOST_BINARY,
    NVM_INSTALL_URL,
    NVM_WINDOWS_URL,
    RUNTIME_INSTALLER,
    ProbeSet,
    nvm_command,
)
from envsync.sync.planner import addressed_checks, addressed_key, build_plan
from envsync.utils.context import RunContext

# Maintenance commands whose failure should not fail the sync.
NON_FATAL_COMMANDS = ("audit fix",)

# Hook commands that only make sense when their package is a project
# dependency: (program, first argument) -> package name.
OPTIONAL_HOOKS: dict[tuple[str, str], str] = {
    ("npx", "husky"): "husky",
}

Confirm = Callable[[str], bool]


@dataclass
class _StepReport:
    status: StepStatus
    message: str
    detail: str = ""
    stop_run: bool = False
    stop_reason: str = ""


def install_version_manager(executor: CommandExecutor, ctx: RunContext) -> CommandResult:
    """Install nvm (macOS/Linux) or open the nvm-windows download page."""
    if ctx.windows:
        ctx.console.print("\n[blue]Installing nvm for Windows:[/]")
        ctx.console.print(f"  1. Download nvm-setup.exe from {NVM_WINDOWS_URL}")
        ctx.console.print("  2. Run the installer and follow the wizard")
        ctx.console.print("  3. Restart your terminal\n")
        return executor.run(
            "cmd", ["/c", "start", NVM_WINDOWS_URL], ExecOptions(timeout=INSTALL_TIMEOUT_SECONDS)
        )
    return executor.run(
        "bash",
        ["-c", f"curl -o- {NVM_INSTALL_URL} | bash"],
        ExecOptions(timeout=INSTALL_TIMEOUT_SECONDS, interactive=True),
    )


class Reconciler:
    """Plans and applies remediation steps for one run."""

    def __init__(
        self,
        executor: CommandExecutor,
        ctx: RunContext,
        confirm: Confirm | None = None,
        probes: ProbeSet | None = None,
    ):
        self.executor = executor
        self.ctx = ctx
        self.confirm = confirm
        self.probes = probes or ProbeSet(executor, ctx)
        self._extension_host: bool | None = None

    def plan(
        self,
        desired: DesiredState,
        discrepancies: list[DiscrepancyRecord],
        include_scripts: bool = False,
    ) -> list[RemediationStep]:
        return build_plan(desired, discrepancies, include_scripts=include_scripts)

    def run(
        self,
        desired: DesiredState,
        discrepancies: list[DiscrepancyRecord],
        include_scripts: bool = False,
        on_step: Callable[[StepOutcome], None] | None = None,
    ) -> RunResult:
        """Execute the plan for ``discrepancies`` and aggregate the outcomes.

        ``on_step`` is called after each step reaches a terminal state, so the
        caller can render progress.
        """
        steps = self.plan(desired, discrepancies, include_scripts=include_scripts)
        outcomes = [StepOutcome(step=s) for s in steps]
        stop_reason = ""

        for outcome in outcomes:
            if stop_reason:
                outcome.finish(StepStatus.SKIPPED, "Not run: sync stopped early")
            else:
                outcome.start()
                report = self._execute(outcome.step, desired)
                outcome.finish(report.status, report.message, report.detail)
                if report.stop_run:
                    stop_reason = report.stop_reason or report.message
            if on_step:
                on_step(outcome)

        return aggregate(outcomes, discrepancies, interruption_reason=stop_reason)

    # ------------------------------------------------------------------
    # Step boundary
    # ------------------------------------------------------------------

    def _execute(self, step: RemediationStep, desired: DesiredState) -> _StepReport:
        """Run one step; every fault inside becomes an outcome here."""
        self.ctx.debug(f"step {step.describe()} (rank {step.rank})")
        handler = {
            ActionKind.PRE_SCRIPT: self._run_script,
            ActionKind.RUNTIME: self._remediate_runtime,
            ActionKind.PACKAGE_MANAGER: self._install_package_manager,
            ActionKind.GLOBAL_TOOL: self._install_global_tool,
            ActionKind.EXTENSION: self._install_extension,
            ActionKind.POST_SCRIPT: self._run_script,
        }[step.action]
        try:
            return handler(step, desired)
        except StepFailure as e:
            return _StepReport(StepStatus.FAILED, e.message, e.detail)
        except UserCancellation as e:
            return _StepReport(
                StepStatus.SKIPPED,
                "Cancelled by user",
                str(e),
                stop_run=True,
                stop_reason="Cancelled by user",
            )
        except Exception as e:
            return _StepReport(StepStatus.FAILED, f"Unexpected error in {step.describe()}", repr(e))

    def _run(self, program: str, args: list[str], interactive: bool = True) -> CommandResult:
        return self.executor.run(
            program,
            args,
            ExecOptions(
                timeout=INSTALL_TIMEOUT_SECONDS,
                interactive=interactive,
                cwd=self.ctx.project_dir,
            ),
        )

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------

    def _remediate_runtime(self, step: RemediationStep, desired: DesiredState) -> _StepReport:
        version = step.target
        current = self.probes.runtime_version()

        if current == version:
            wrote = self._write_pin_file(version)
            return _StepReport(
                StepStatus.SUCCEEDED,
                f"Node.js {version} already active" + (", .nvmrc written" if wrote else ""),
            )

        if not self.probes.has_version_manager():
            return self._runtime_without_version_manager(version, current)

        if not self.probes.is_runtime_registered(version):
            program, args = nvm_command(["install", version], windows=self.ctx.windows)
            result = self._run(program, args)
            if not result.ok:
                raise StepFailure(
                    f"Failed to install Node.js {version}. Run manually: nvm install {version}",
                    result.cause,
                )

        program, args = nvm_command(["use", version], windows=self.ctx.windows)
        result = self._run(program, args)
        if not result.ok:
            raise StepFailure(
                f"Failed to switch to Node.js {version}. Run manually: nvm use {version}",
                result.cause,
            )

        self._write_pin_file(version)
        return _StepReport(StepStatus.SUCCEEDED, f"Node.js {version} activated, .nvmrc written")

    def _runtime_without_version_manager(self, version: str, current: str | None) -> _StepReport:
        directive = (
            f"Node.js version mismatch: using {current or 'none'}, expected {version}. "
            f"Install nvm, then run: nvm install {version} && nvm use {version}"
        )
        if self.confirm is None or not self.ctx.can_prompt:
            raise StepFailure(directive)

        if not self.confirm("Would you like to install nvm now?"):
            raise StepFailure(directive)

        result = install_version_manager(self.executor, self.ctx)
        if not result.ok:
            raise StepFailure(
                "Automatic nvm installation failed. Install manually: https://github.com/nvm-sh/nvm",
                result.cause,
            )
        return _StepReport(
            StepStatus.FAILED,
            directive,
            stop_run=True,
            stop_reason="nvm installed. Restart your terminal and run 'envsync sync' again",
        )

    def _write_pin_file(self, version: str) -> bool:
        """Write ``.nvmrc`` unless it already holds ``version``."""
        path: Path = self.ctx.path(PIN_FILE)
        if path.is_file() and path.read_text(encoding="utf-8").strip() == version:
            return False
        path.write_text(version, encoding="utf-8")
        return True

    # ------------------------------------------------------------------
    # Package manager, tools, extensions
    # ------------------------------------------------------------------

    def _install_package_manager(self, step: RemediationStep, desired: DesiredState) -> _StepReport:
        # Installed with whatever Node is active now, not the target runtime.
        name = desired.package_manager.name
        result = self._run(RUNTIME_INSTALLER, ["install", "-g", step.target])
        if not result.ok:
            raise StepFailure(f"Failed to install {name}", result.cause)
        return _StepReport(StepStatus.SUCCEEDED, f"{name} installed")

    def _install_global_tool(self, step: RemediationStep, desired: DesiredState) -> _StepReport:
        result = self._run(RUNTIME_INSTALLER, ["install", "-g", step.target])
        if not result.ok:
            raise StepFailure(f"Failed to install {step.target}", result.cause)
        return _StepReport(StepStatus.SUCCEEDED, f"{step.target} installed")

    def _install_extension(self, step: RemediationStep, desired: DesiredState) -> _StepReport:
        if self._extension_host is None:
            self._extension_host = self.probes.has_extension_host()
        if not self._extension_host:
            return _StepReport(
                StepStatus.SKIPPED,
                f"{step.target} skipped: VSCode CLI not found "
                "(VSCode > 'Shell Command: Install code command in PATH')",
            )
        result = self._run(
            EXTENSION_HOST_BINARY, ["--install-extension", step.target], interactive=False
        )
        if not result.ok:
            return _StepReport(StepStatus.WARNED, f"Could not install {step.target}", result.cause)
        return _StepReport(StepStatus.SUCCEEDED, f"{step.target} installed")

    # ------------------------------------------------------------------
    # Lifecycle scripts
    # ------------------------------------------------------------------

    def _run_script(self, step: RemediationStep, desired: DesiredState) -> _StepReport:
        command = step.target
        # Plain whitespace split: quoted arguments are not supported.
        program, *args = command.split()

        missing = self._missing_optional_dependency(program, args)
        if missing:
            return _StepReport(
                StepStatus.SKIPPED, f"{command} (skipped - {missing} not in package.json)"
            )

        result = self._run(program, args)
        if result.ok:
            return _StepReport(StepStatus.SUCCEEDED, command)
        if any(pattern in command for pattern in NON_FATAL_COMMANDS):
            return _StepReport(
                StepStatus.WARNED, f"{command} (had issues, but continuing)", result.cause
            )
        raise StepFailure(f"Failed: {command}", result.cause)

    def _missing_optional_dependency(self, program: str, args: list[str]) -> str | None:
        if not args:
            return None
        package = OPTIONAL_HOOKS.get((program, args[0]))
        if package is None:
            return None
        package_json = read_project_manifest(self.ctx.project_dir)
        if package_json is None:
            return None
        return None if package in declared_dependencies(package_json) else package


def aggregate(
    outcomes: list[StepOutcome],
    discrepancies: list[DiscrepancyRecord],
    interruption_reason: str = "",
) -> RunResult:
    """Fold step outcomes into an overall status.

    failed if any step failed; else warned if any step warned or a
    non-informational discrepancy was left unaddressed; else succeeded.
    An interrupted run is cancelled, which callers treat as neutral.
    """
    kinds_fixed = set()
    keys_fixed = set()
    for outcome in outcomes:
        if outcome.status != StepStatus.SUCCEEDED:
            continue
        kinds_fixed |= addressed_checks(outcome.step)
        key = addressed_key(outcome.step)
        if key is not None:
            keys_fixed.add(key)

    unaddressed = [
        d
        for d in discrepancies
        if d.severity != Severity.INFORMATIONAL
        and d.key.kind not in kinds_fixed
        and d.key not in keys_fixed
    ]

    if interruption_reason:
        status = RunStatus.CANCELLED
    elif any(o.status == StepStatus.FAILED for o in outcomes):
        status = RunStatus.FAILED
    elif any(o.status == StepStatus.WARNED for o in outcomes) or unaddressed:
        status = RunStatus.WARNED
    else:
        status = RunStatus.SUCCEEDED

    return RunResult(
        outcomes=outcomes,
        status=status,
        unaddressed=unaddressed,
        interrupted=bool(interruption_reason),
        interruption_reason=interruption_reason,
    )
