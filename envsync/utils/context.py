"""Run context — the explicit per-invocation settings handed to every stage.

Probes, the differ, the reconciler and the scorer take a ``RunContext``
instead of reading module-level verbose/color flags.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.markup import escape


@dataclass
class RunContext:
    """Settings and output channel for one envsync invocation."""

    project_dir: Path = field(default_factory=Path.cwd)
    verbose: bool = False
    color: bool = True
    assume_yes: bool = False
    interactive: bool = True
    windows: bool = field(default_factory=lambda: sys.platform == "win32")
    console: Console | None = None

    def __post_init__(self):
        self.project_dir = Path(self.project_dir)
        if self.console is None:
            self.console = Console(no_color=not self.color, highlight=False)

    @property
    def can_prompt(self) -> bool:
        return self.interactive and not self.assume_yes

    def debug(self, message: str) -> None:
        """Print a dim ``[verbose]`` line when verbose mode is on."""
        if self.verbose:
            self.console.print(f"[dim]\\[verbose][/] {escape(message)}")

    def path(self, *parts: str) -> Path:
        return self.project_dir.joinpath(*parts)
