"""Command executor — the one seam through which envsync spawns processes.

Probes and remediation steps never call ``subprocess`` directly; they go
through a ``CommandExecutor`` so runs can be replayed against a fake in tests.
"""

from __future__ import annotations

import shutil
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

# Presence checks should answer in seconds; installs get no timeout.
PROBE_TIMEOUT_SECONDS = 5
VERSION_TIMEOUT_SECONDS = 10
INSTALL_TIMEOUT_SECONDS = None


@dataclass(frozen=True)
class ExecOptions:
    """How to run a command."""

    timeout: float | None = PROBE_TIMEOUT_SECONDS
    interactive: bool = False  # inherit the terminal instead of capturing output
    cwd: Path | None = None


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one command. Never raised, always returned."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""
    error: str = ""  # spawn failure or timeout
    duration_ms: int = 0
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.error

    @property
    def cause(self) -> str:
        """Best short explanation of a failure, for verbose output."""
        if self.error:
            return self.error
        if self.stderr.strip():
            return self.stderr.strip().splitlines()[-1]
        return f"exited with code {self.exit_code}"


class CommandExecutor(Protocol):
    def run(
        self, program: str, args: Sequence[str] = (), options: ExecOptions = ExecOptions()
    ) -> CommandResult: ...


class SubprocessExecutor:
    """Runs commands with ``subprocess.run`` and no shell."""

    def __init__(self, cwd: str | Path | None = None):
        self.cwd = Path(cwd) if cwd else None

    def run(
        self, program: str, args: Sequence[str] = (), options: ExecOptions = ExecOptions()
    ) -> CommandResult:
        # shutil.which resolves .cmd shims (npm, code) on Windows
        argv = [shutil.which(program) or program, *args]
        cwd = options.cwd or self.cwd
        start = time.monotonic()
        try:
            if options.interactive:
                proc = subprocess.run(argv, cwd=cwd, timeout=options.timeout)
                stdout, stderr = "", ""
            else:
                proc = subprocess.run(
                    argv,
                    cwd=cwd,
                    capture_output=True,
                    text=True,
                    timeout=options.timeout,
                )
                stdout, stderr = proc.stdout[:5000], proc.stderr[:5000]
            return CommandResult(
                exit_code=proc.returncode,
                stdout=stdout,
                stderr=stderr,
                duration_ms=int((time.monotonic() - start) * 1000),
            )
        except subprocess.TimeoutExpired:
            return CommandResult(
                exit_code=-1,
                error=f"{program} timed out after {options.timeout}s",
                duration_ms=int((time.monotonic() - start) * 1000),
                timed_out=True,
            )
        except FileNotFoundError:
            return CommandResult(exit_code=127, error=f"{program}: command not found")
        except OSError as e:
            return CommandResult(exit_code=126, error=f"{program}: {e}")
