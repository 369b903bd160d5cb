"""Test doubles: a simulated workstation behind the CommandExecutor seam."""

import io
import json
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console

from envsync.models.manifest import DesiredState, LifecycleScripts, PackageManagerSpec, ProjectInfo
from envsync.probes.executor import CommandResult, ExecOptions
from envsync.probes.specifier import parse_specifier
from envsync.probes.system import TOOL_COMMANDS
from envsync.utils.context import RunContext

OK = CommandResult(exit_code=0)
NOT_FOUND = CommandResult(exit_code=127, error="command not found")


@dataclass
class FakeMachine:
    """Answers probe and install commands from in-memory state.

    Installs mutate the state, so a second sync sees the result of the
    first. Any command containing one of ``failing`` exits 1.
    """

    node: str | None = None
    nvm: bool = False
    registered: set = field(default_factory=set)
    commands: set = field(default_factory=set)
    code: bool = False
    extensions: set = field(default_factory=set)
    failing: list = field(default_factory=list)
    calls: list = field(default_factory=list)

    def run(self, program, args=(), options=ExecOptions()):
        args = list(args)
        command = " ".join([program, *args])
        self.calls.append(command)

        for pattern in self.failing:
            if pattern in command:
                return CommandResult(exit_code=1, stderr=f"{pattern}: boom")

        if program == "bash" and "curl" in command:
            self.nvm = True
            return OK
        if program == "bash" and "nvm" in command:
            return self._nvm(command)
        if program == "node" and args == ["--version"]:
            return CommandResult(exit_code=0, stdout=f"v{self.node}\n") if self.node else NOT_FOUND
        if program == "npm" and args[:2] == ["install", "-g"]:
            base = parse_specifier(args[2]).base_name
            self.commands.add(TOOL_COMMANDS.get(base, base))
            return OK
        if program == "code":
            return self._code(args)
        if args == ["--version"]:
            return OK if program in self.commands else NOT_FOUND
        # lifecycle scripts and anything else succeed
        return OK

    def _nvm(self, command):
        if not self.nvm:
            return CommandResult(exit_code=127, stderr="nvm: not found")
        if "command -v nvm" in command:
            return OK
        words = command.split()
        version = words[-1]
        if "nvm ls" in command:
            return OK if version in self.registered else CommandResult(exit_code=3)
        if "nvm install" in command:
            self.registered.add(version)
            return OK
        if "nvm use" in command:
            if version not in self.registered:
                return CommandResult(exit_code=3, stderr=f"N/A: version {version} is not installed")
            self.node = version
            return OK
        return OK

    def _code(self, args):
        if not self.code:
            return NOT_FOUND
        if args == ["--list-extensions"]:
            return CommandResult(exit_code=0, stdout="\n".join(sorted(self.extensions)))
        if args[:1] == ["--install-extension"]:
            self.extensions.add(args[1])
        return OK

    def ran(self, fragment: str) -> bool:
        return any(fragment in call for call in self.calls)


def make_context(project_dir, **kwargs) -> RunContext:
    kwargs.setdefault("interactive", False)
    kwargs.setdefault("windows", False)
    return RunContext(
        project_dir=Path(project_dir),
        console=Console(file=io.StringIO(), no_color=True),
        **kwargs,
    )


def make_desired(
    node="20.11.1",
    package_manager="npm",
    tools=(),
    extensions=None,
    pre=(),
    post=(),
) -> DesiredState:
    return DesiredState(
        project=ProjectInfo(name="demo", type="angular", angular_version="17.1.0"),
        runtime_version=node,
        package_manager=PackageManagerSpec.parse(package_manager),
        global_tools=tuple(tools),
        editor_extensions=tuple(extensions) if extensions is not None else None,
        scripts=LifecycleScripts(pre=tuple(pre), post=tuple(post)),
    )


def make_workspace(root, node_modules=True, package_json=None, angular_json=True, nvmrc=None):
    """Lay out a minimal Angular workspace under ``root``."""
    root = Path(root)
    if node_modules:
        (root / "node_modules").mkdir(exist_ok=True)
    if package_json is not None:
        (root / "package.json").write_text(json.dumps(package_json), encoding="utf-8")
    if angular_json:
        (root / "angular.json").write_text("{}", encoding="utf-8")
    if nvmrc is not None:
        (root / ".nvmrc").write_text(nvmrc, encoding="utf-8")
    return root
