"""Probe set — read-only queries against the live machine.

Every probe answers "absent" (``None`` / ``False``) rather than raising when
the thing it looks for is missing. A probe that fails for another reason
(a hung binary, a transient error) is also reported as absent; the two cases
cannot currently be told apart.
"""

from __future__ import annotations

import shlex
from typing import Sequence

from envsync.manifest import FRAMEWORK_CONFIG, PIN_FILE, PROJECT_MANIFEST
from envsync.probes.executor import (
    PROBE_TIMEOUT_SECONDS,
    VERSION_TIMEOUT_SECONDS,
    CommandExecutor,
    ExecOptions,
)
from envsync.probes.specifier import parse_specifier
from envsync.utils.context import RunContext

NVM_SCRIPT = '"${NVM_DIR:-$HOME/.nvm}/nvm.sh"'
NVM_WINDOWS_URL = "https://github.com/coreybutler/nvm-windows/releases"
NVM_INSTALL_URL = "https://raw.githubusercontent.com/nvm-sh/nvm/v0.39.7/install.sh"
RUNTIME_BINARY = "node"
RUNTIME_INSTALLER = "npm"
EXTENSION_HOST_BINARY = "code"
DEPENDENCY_DIR = "node_modules"

# Packages whose executable differs from the package name.
TOOL_COMMANDS: dict[str, str] = {
    "@angular/cli": "ng",
    "nx": "nx",
    "@nestjs/cli": "nest",
    "@vue/cli": "vue",
    "typescript": "tsc",
    "ts-node": "ts-node",
}


def nvm_shell(script: str) -> tuple[str, list[str]]:
    """Run ``script`` in bash with nvm sourced.

    nvm is a shell function on macOS/Linux, so a plain exec cannot find it.
    """
    return "bash", ["-c", f". {NVM_SCRIPT} && {script}"]


def nvm_command(args: Sequence[str], windows: bool) -> tuple[str, list[str]]:
    if windows:
        return "nvm", list(args)
    return nvm_shell("nvm " + shlex.join(args))


class ProbeSet:
    """Side-effect-free queries used by diff, try and sync."""

    def __init__(self, executor: CommandExecutor, ctx: RunContext):
        self.executor = executor
        self.ctx = ctx

    def _quiet(self, program: str, args: Sequence[str], timeout=PROBE_TIMEOUT_SECONDS):
        result = self.executor.run(
            program, args, ExecOptions(timeout=timeout, cwd=self.ctx.project_dir)
        )
        if not result.ok:
            self.ctx.debug(f"probe '{program} {' '.join(args)}' -> {result.cause}")
        return result

    # --- Runtime ---

    def runtime_version(self) -> str | None:
        result = self._quiet(RUNTIME_BINARY, ["--version"], timeout=VERSION_TIMEOUT_SECONDS)
        if not result.ok:
            return None
        version = result.stdout.strip()
        return version[1:] if version.startswith("v") else version or None

    def has_version_manager(self) -> bool:
        if self.ctx.windows:
            program, args = "nvm", ["version"]
        else:
            program, args = nvm_shell("command -v nvm")
        return self._quiet(program, args).ok

    def is_runtime_registered(self, version: str) -> bool:
        """True when the version manager already has ``version`` installed."""
        if self.ctx.windows:
            result = self._quiet("nvm", ["list"], timeout=VERSION_TIMEOUT_SECONDS)
            return result.ok and version in result.stdout
        program, args = nvm_command(["ls", version], windows=False)
        return self._quiet(program, args, timeout=VERSION_TIMEOUT_SECONDS).ok

    def pin_file_version(self) -> str | None:
        path = self.ctx.path(PIN_FILE)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8").strip()

    # --- Package manager and tools ---

    def has_package_manager(self, name: str) -> bool:
        return self._quiet(name, ["--version"]).ok

    def has_global_tool(self, specifier: str) -> bool:
        """Check the tool's command, then fall back to a local install."""
        base = parse_specifier(specifier).base_name
        command = TOOL_COMMANDS.get(base, base)
        if self._quiet(command, ["--version"]).ok:
            return True
        return self.ctx.path(DEPENDENCY_DIR, *base.split("/")).exists()

    # --- Editor ---

    def has_extension_host(self) -> bool:
        return self._quiet(EXTENSION_HOST_BINARY, ["--version"]).ok

    def installed_extensions(self) -> set[str]:
        result = self._quiet(
            EXTENSION_HOST_BINARY, ["--list-extensions"], timeout=VERSION_TIMEOUT_SECONDS
        )
        if not result.ok:
            return set()
        return {line.strip().lower() for line in result.stdout.splitlines() if line.strip()}

    # --- Workspace ---

    def has_artifact(self, relative: str) -> bool:
        return self.ctx.path(relative).exists()

    def has_dependencies_installed(self) -> bool:
        return self.has_artifact(DEPENDENCY_DIR)

    def has_project_manifest(self) -> bool:
        return self.has_artifact(PROJECT_MANIFEST)

    def has_framework_config(self) -> bool:
        return self.has_artifact(FRAMEWORK_CONFIG)
