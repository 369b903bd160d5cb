"""envsync CLI — the main entry point for the environment synchronizer."""

from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from envsync import __version__
from envsync.errors import ManifestError, PreconditionError, UserCancellation
from envsync.utils.context import RunContext

# Alternate names for `try`.
ALIASES = {"check": "try", "doctor": "try", "status": "try"}

STEP_ICONS = {
    "succeeded": "[green]v[/]",
    "warned": "[yellow]![/]",
    "failed": "[red]x[/]",
    "skipped": "[dim]-[/]",
}


class AliasedGroup(click.Group):
    def get_command(self, ctx, cmd_name):
        return super().get_command(ctx, ALIASES.get(cmd_name, cmd_name))

    def resolve_command(self, ctx, args):
        # Report the canonical name so usage lines read "envsync try".
        _, cmd, args = super().resolve_command(ctx, args)
        return cmd.name if cmd else None, cmd, args


@click.group(cls=AliasedGroup)
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Print raw command output and diagnostics")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option(
    "--project-dir",
    "-C",
    default=".",
    type=click.Path(file_okay=False, path_type=Path),
    help="Project directory (default: current directory)",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, no_color: bool, project_dir: Path):
    """envsync — keep a developer workstation in line with envsync.yaml.

    Declare the Node.js version, package manager, global tools, VSCode
    extensions and setup scripts once; envsync checks the machine against
    them and fixes what it can.
    """
    ctx.obj = RunContext(
        project_dir=project_dir.resolve(),
        verbose=verbose,
        color=not no_color,
        interactive=sys.stdin.isatty(),
    )


def _fail(rc: RunContext, error: PreconditionError) -> None:
    rc.console.print(f"\n[red]x {escape(str(error))}[/]")
    if isinstance(error, ManifestError):
        for issue in error.issues:
            rc.console.print(f"  [red]-[/] {escape(issue)}")
    if error.hint:
        rc.console.print(f"[yellow]{error.hint}[/]")
    sys.exit(1)


def _confirm(message: str, default: bool = True) -> bool:
    """``click.confirm`` with Ctrl-C/EOF turned into ``UserCancellation``."""
    try:
        return click.confirm(message, default=default)
    except click.Abort as e:
        raise UserCancellation(message) from e


def _prompt(text: str, **kwargs):
    """``click.prompt`` with Ctrl-C/EOF turned into ``UserCancellation``."""
    try:
        return click.prompt(text, **kwargs)
    except click.Abort as e:
        raise UserCancellation(text) from e


def _banner(rc: RunContext, title: str) -> None:
    rc.console.print(f"\n[bold blue]envsync[/] — {title}\n")


def _inspect(rc: RunContext):
    """Load the manifest and probe the machine: (desired, probe set, results)."""
    from envsync.manifest.loader import load_manifest
    from envsync.probes.collector import collect_probes
    from envsync.probes.executor import SubprocessExecutor
    from envsync.probes.system import ProbeSet

    desired = load_manifest(rc.project_dir)
    rc.debug(f"manifest loaded for project {desired.project.name}")
    probes = ProbeSet(SubprocessExecutor(rc.project_dir), rc)
    return desired, probes, collect_probes(desired, probes, rc)


def _comparison_table(results) -> Table:
    table = Table(title="Environment Comparison")
    table.add_column("Component", style="cyan")
    table.add_column("Expected")
    table.add_column("Current")
    table.add_column("Status", justify="center")

    for probe in results:
        if probe.matched:
            status = "[green]OK[/]"
        elif probe.classification.value == "absent":
            status = "[red]MISSING[/]"
        else:
            status = "[red]MISMATCH[/]"
        table.add_row(probe.key.label, probe.expected, probe.observed or "-", status)
    return table


def _print_discrepancies(rc: RunContext, discrepancies) -> None:
    if not discrepancies:
        rc.console.print("[green]Environment matches envsync.yaml.[/]")
        return
    rc.console.print(f"[yellow]{len(discrepancies)} difference(s) found:[/]")
    for record in discrepancies:
        rc.console.print(
            f"  [yellow]![/] {record.key.label} ({record.severity.value}): {record.suggested_action}"
        )


# ── Init ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--force", is_flag=True, help="Overwrite an existing envsync.yaml")
@click.pass_obj
def init(rc: RunContext, force: bool):
    """Create envsync.yaml for the Angular project in this directory."""
    from envsync.analyzers.project_detector import ProjectDetector
    from envsync.manifest import MANIFEST_FILE
    from envsync.manifest.loader import manifest_path, write_manifest
    from envsync.manifest.scaffold import scaffold_manifest
    from envsync.models.manifest import RUNTIME_VERSION_PATTERN
    from envsync.probes.executor import SubprocessExecutor

    _banner(rc, "Initializing environment manifest")

    try:
        if manifest_path(rc.project_dir).exists() and not force:
            raise PreconditionError(
                f"{MANIFEST_FILE} already exists", hint="Use --force to overwrite it"
            )
        project = ProjectDetector(rc.project_dir, SubprocessExecutor(rc.project_dir)).detect()
    except PreconditionError as e:
        _fail(rc, e)

    rc.console.print(f"  [green]v[/] Angular {project.version} detected")
    rc.console.print(f"  [green]v[/] Package manager: {project.package_manager}")
    if project.has_nx:
        rc.console.print("  [green]v[/] Nx workspace")
    if not project.has_cli:
        rc.console.print("  [yellow]![/] Angular CLI not found on PATH")
    rc.console.print()

    def check_version(value: str) -> str:
        if not RUNTIME_VERSION_PATTERN.match(value):
            raise click.BadParameter("use X.Y.Z, e.g. 20.11.1")
        return value

    try:
        name = _prompt("Project name", default=rc.project_dir.name)
        node_version = _prompt(
            "Node.js version", default=project.node_version, value_proc=check_version
        )
        package_manager = _prompt(
            "Package manager",
            default=project.package_manager,
            type=click.Choice(["npm", "pnpm", "yarn"]),
        )
        include_extensions = _confirm("Include recommended VSCode extensions?")
    except UserCancellation:
        rc.console.print("\n[yellow]Init cancelled.[/]")
        return

    desired = scaffold_manifest(
        project,
        name=name,
        node_version=node_version,
        package_manager=package_manager,
        include_extensions=include_extensions,
    )
    path = write_manifest(rc.project_dir, desired.to_dict())

    rc.console.print(f"\n[green]Manifest written to:[/] {path}")
    rc.console.print(
        Panel(
            "1. Review and commit envsync.yaml\n"
            "2. Teammates run: envsync sync\n"
            "3. Check health any time with: envsync try",
            title="Next steps",
        )
    )


# ── Sync ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--yes", "-y", is_flag=True, help="Apply the plan without asking")
@click.option("--run-scripts", is_flag=True, help="Run pre/post-sync scripts even when nothing is missing")
@click.pass_obj
def sync(rc: RunContext, yes: bool, run_scripts: bool):
    """Bring this machine in line with envsync.yaml."""
    from envsync.models.results import RunStatus
    from envsync.sync.differ import diff
    from envsync.sync.reconciler import Reconciler

    rc.assume_yes = rc.assume_yes or yes
    _banner(rc, "Synchronizing environment")

    try:
        desired, probes, results = _inspect(rc)
    except PreconditionError as e:
        _fail(rc, e)

    discrepancies = diff(desired, results, rc)
    rc.console.print(_comparison_table(results))
    _print_discrepancies(rc, discrepancies)

    reconciler = Reconciler(probes.executor, rc, confirm=_confirm, probes=probes)
    steps = reconciler.plan(desired, discrepancies, include_scripts=run_scripts)
    if not steps:
        rc.console.print("\n[green]Nothing to do.[/]")
        return

    rc.console.print(f"\n[bold]Plan ({len(steps)} step(s)):[/]")
    for step in steps:
        rc.console.print(f"  - {step.describe()}")

    if rc.can_prompt:
        try:
            proceed = _confirm("\nApply these changes?")
        except UserCancellation:
            proceed = False
        if not proceed:
            rc.console.print("[yellow]Sync cancelled.[/]")
            return

    def show(outcome) -> None:
        icon = STEP_ICONS.get(outcome.status.value, " ")
        rc.console.print(f"  {icon} {outcome.message or outcome.step.describe()}")
        if rc.verbose and outcome.detail:
            rc.console.print(f"      [dim]{escape(outcome.detail)}[/]")

    rc.console.print()
    result = reconciler.run(desired, discrepancies, include_scripts=run_scripts, on_step=show)

    rc.console.print()
    rc.console.print(Panel(result.summary(), title="Sync Result"))
    for record in result.unaddressed:
        rc.console.print(f"  [yellow]![/] Still outstanding: {record.key.label} — {record.suggested_action}")
    if result.interrupted:
        rc.console.print(f"[yellow]{result.interruption_reason}[/]")

    if result.status == RunStatus.FAILED:
        sys.exit(1)


# ── Diff ─────────────────────────────────────────────────────────────


@main.command(name="diff")
@click.pass_obj
def show_diff(rc: RunContext):
    """Compare this machine against envsync.yaml without changing anything."""
    from envsync.sync.differ import diff

    _banner(rc, "Environment diff")

    try:
        desired, _, results = _inspect(rc)
    except PreconditionError as e:
        _fail(rc, e)

    rc.console.print(_comparison_table(results))
    _print_discrepancies(rc, diff(desired, results, rc))


# ── Try ──────────────────────────────────────────────────────────────


@main.command(name="try")
@click.pass_obj
def try_(rc: RunContext):
    """Score the health of this environment (aliases: check, doctor, status)."""
    from envsync.analyzers.health_scorer import HealthBand, StaticChecks, score

    _banner(rc, "Environment health check")

    try:
        _, probes, results = _inspect(rc)
    except PreconditionError as e:
        _fail(rc, e)

    report = score(results, StaticChecks.collect(probes), rc)

    table = Table(title="Health Checks")
    table.add_column("Check", style="cyan")
    table.add_column("Result", justify="center")
    table.add_column("Details")
    table.add_column("Penalty", justify="right", style="dim")
    for check in report.checks:
        if check.passed:
            mark = "[green]PASS[/]"
        elif check.level == "skip":
            mark = "[dim]SKIP[/]"
        elif check.level in ("warn", "info"):
            mark = "[yellow]WARN[/]"
        else:
            mark = "[red]FAIL[/]"
        table.add_row(check.name, mark, check.details, f"-{check.penalty}" if check.penalty else "")
    rc.console.print(table)

    color = {
        HealthBand.EXCELLENT: "green",
        HealthBand.GOOD: "yellow",
        HealthBand.NEEDS_ATTENTION: "red",
    }[report.band]
    rc.console.print(
        Panel(f"[bold {color}]{report.score}/100[/] — {report.band.value}", title="Health Score")
    )

    if report.issues:
        rc.console.print("\n[yellow]Issues:[/]")
        for issue in report.issues:
            rc.console.print(f"  - {issue}")
        rc.console.print('\nRun "envsync sync" to fix what can be fixed automatically.')

    if not report.healthy:
        sys.exit(1)


# ── Update ───────────────────────────────────────────────────────────


@main.command()
@click.option("--yes", "-y", is_flag=True, help="Rewrite the manifest without asking")
@click.pass_context
def update(ctx: click.Context, yes: bool):
    """Refresh envsync.yaml from the project's current Angular version."""
    from envsync.analyzers.project_detector import ProjectDetector
    from envsync.manifest.loader import load_manifest, write_manifest
    from envsync.probes.executor import SubprocessExecutor
    from envsync.sync.update_checker import apply_updates, check_for_updates

    rc: RunContext = ctx.obj
    _banner(rc, "Checking for updates")

    try:
        desired = load_manifest(rc.project_dir)
        detected = ProjectDetector(rc.project_dir, SubprocessExecutor(rc.project_dir)).detect()
    except PreconditionError as e:
        _fail(rc, e)

    check = check_for_updates(desired, detected)
    if not check.has_updates:
        rc.console.print("[green]envsync.yaml is up to date.[/]")
        return

    table = Table(title=f"Available Updates ({len(check.updates)})")
    table.add_column("Field", style="cyan")
    table.add_column("Current", style="dim")
    table.add_column("Detected", style="green")
    for field_update in check.updates:
        table.add_row(field_update.field, field_update.current, field_update.latest)
    rc.console.print(table)

    try:
        proceed = yes or _confirm("\nUpdate envsync.yaml?")
    except UserCancellation:
        proceed = False
    if not proceed:
        rc.console.print("[yellow]Update cancelled.[/]")
        return

    path = write_manifest(rc.project_dir, apply_updates(desired, detected).to_dict())
    rc.console.print(f"[green]Manifest updated:[/] {path}")

    try:
        run_now = yes or _confirm("Run sync now?")
    except UserCancellation:
        run_now = False
    if run_now:
        ctx.invoke(sync, yes=yes, run_scripts=False)


# ── Clean ────────────────────────────────────────────────────────────


@main.command()
@click.option("--yes", "-y", is_flag=True, help="Delete without asking")
@click.option("--all", "include_build", is_flag=True, help="Also remove .angular and dist")
@click.pass_obj
def clean(rc: RunContext, yes: bool, include_build: bool):
    """Remove node_modules and lockfiles, then optionally reinstall."""
    from envsync.analyzers.project_detector import ProjectDetector
    from envsync.manifest import PROJECT_MANIFEST
    from envsync.probes.executor import SubprocessExecutor
    from envsync.utils.workspace import clean_targets, clean_workspace, reinstall

    _banner(rc, "Cleaning workspace")

    if not (rc.project_dir / PROJECT_MANIFEST).exists():
        _fail(
            rc,
            PreconditionError(
                "This command must be run in a project directory",
                hint=f"{PROJECT_MANIFEST} not found in {rc.project_dir}",
            ),
        )

    targets = clean_targets(rc.project_dir, include_build=include_build)
    if not targets:
        rc.console.print("[green]Nothing to clean.[/]")
        return

    for path in targets:
        rc.console.print(f"  - {path.name}")
    try:
        proceed = yes or _confirm("\nDelete these?", default=False)
    except UserCancellation:
        proceed = False
    if not proceed:
        rc.console.print("[yellow]Clean cancelled.[/]")
        return

    # Read before the lockfiles are gone.
    manager = ProjectDetector(rc.project_dir).detect_package_manager()

    result = clean_workspace(rc.project_dir, include_build=include_build)
    for name in result.removed:
        rc.console.print(f"  [green]v[/] Removed {name}")
    for error in result.errors:
        rc.console.print(f"  [red]x[/] {error}")

    try:
        run_install = yes or _confirm(f"Reinstall dependencies with {manager}?")
    except UserCancellation:
        run_install = False
    if run_install:
        outcome = reinstall(SubprocessExecutor(rc.project_dir), rc.project_dir, manager)
        if not outcome.ok:
            rc.console.print(f"[red]{manager} install failed:[/] {escape(outcome.cause)}")
            sys.exit(1)
        rc.console.print("[green]Dependencies reinstalled.[/]")

    if not result.ok:
        sys.exit(1)


# ── Schema ───────────────────────────────────────────────────────────


@main.command(name="schema")
def dump_schema():
    """Print the JSON Schema for envsync.yaml."""
    import json

    from envsync.manifest.schema import get_schema

    click.echo(json.dumps(get_schema(), indent=2))


if __name__ == "__main__":
    main()
