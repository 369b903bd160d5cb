"""Per-run result types: probe results, discrepancies, plan steps, outcomes.

None of these are persisted. They live for a single invocation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class CheckKind(Enum):
    """What a probe looks at. Declaration order is the diff order."""

    RUNTIME = "runtime"
    VERSION_MANAGER = "version_manager"
    PIN_FILE = "pin_file"
    PACKAGE_MANAGER = "package_manager"
    GLOBAL_TOOL = "global_tool"
    EXTENSION_HOST = "extension_host"
    EXTENSION = "extension"
    DEPENDENCIES_INSTALLED = "dependencies_installed"
    PROJECT_MANIFEST = "project_manifest"
    FRAMEWORK_CONFIG = "framework_config"


class Classification(Enum):
    MATCH = "match"
    MISMATCH = "mismatch"
    ABSENT = "absent"


class Severity(Enum):
    BLOCKING = "blocking"  # The environment is wrong
    RECOMMENDED = "recommended"  # Should be fixed, not fatal
    INFORMATIONAL = "informational"


_LABELS = {
    CheckKind.RUNTIME: "Node.js",
    CheckKind.VERSION_MANAGER: "NVM",
    CheckKind.PIN_FILE: ".nvmrc file",
    CheckKind.PACKAGE_MANAGER: "Package Manager ({})",
    CheckKind.GLOBAL_TOOL: "Global: {}",
    CheckKind.EXTENSION_HOST: "VSCode CLI",
    CheckKind.EXTENSION: "VSCode: {}",
    CheckKind.DEPENDENCIES_INSTALLED: "node_modules",
    CheckKind.PROJECT_MANIFEST: "package.json",
    CheckKind.FRAMEWORK_CONFIG: "angular.json",
}


@dataclass(frozen=True)
class CheckKey:
    """Identifies one check: a kind plus, for per-item checks, the item."""

    kind: CheckKind
    target: str = ""

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.target}" if self.target else self.kind.value

    @property
    def label(self) -> str:
        return _LABELS[self.kind].format(self.target)


@dataclass(frozen=True)
class ProbeResult:
    """What one probe expected and what it observed."""

    key: CheckKey
    expected: str
    observed: str | None
    classification: Classification

    @property
    def matched(self) -> bool:
        return self.classification == Classification.MATCH

    @classmethod
    def presence(
        cls,
        key: CheckKey,
        present: bool,
        expected: str = "Installed",
        missing: str = "Not installed",
    ) -> ProbeResult:
        """Build a result for a yes/no presence check."""
        return cls(
            key=key,
            expected=expected,
            observed=expected if present else missing,
            classification=Classification.MATCH if present else Classification.ABSENT,
        )

    @classmethod
    def version(cls, key: CheckKey, expected: str, observed: str | None) -> ProbeResult:
        """Build a result comparing an exact version string."""
        if observed is None:
            classification = Classification.ABSENT
        elif observed == expected:
            classification = Classification.MATCH
        else:
            classification = Classification.MISMATCH
        return cls(key=key, expected=expected, observed=observed, classification=classification)


@dataclass(frozen=True)
class DiscrepancyRecord:
    """One field where desired != observed."""

    key: CheckKey
    expected: str
    observed: str | None
    severity: Severity
    suggested_action: str


# --- Remediation plan ---


class ActionKind(Enum):
    PRE_SCRIPT = "pre_script"
    RUNTIME = "runtime"
    PACKAGE_MANAGER = "package_manager"
    GLOBAL_TOOL = "global_tool"
    EXTENSION = "extension"
    POST_SCRIPT = "post_script"


# Later steps may assume earlier ones succeeded (tool installs need the
# active runtime), so this order is fixed.
ACTION_RANK: dict[ActionKind, int] = {
    ActionKind.PRE_SCRIPT: 0,
    ActionKind.RUNTIME: 1,
    ActionKind.PACKAGE_MANAGER: 2,
    ActionKind.GLOBAL_TOOL: 3,
    ActionKind.EXTENSION: 4,
    ActionKind.POST_SCRIPT: 5,
}


@dataclass(frozen=True)
class RemediationStep:
    """One corrective action in the plan."""

    action: ActionKind
    target: str
    rank: int
    idempotent: bool = True
    sequence: int = 0  # position among steps of the same rank

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.rank, self.sequence)

    def describe(self) -> str:
        return f"{self.action.value}: {self.target}"


class StepStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"
    WARNED = "warned"  # non-fatal failure

    @property
    def is_terminal(self) -> bool:
        return self not in (StepStatus.PENDING, StepStatus.RUNNING)


@dataclass
class StepOutcome:
    """Lifecycle and result of one remediation step."""

    step: RemediationStep
    status: StepStatus = StepStatus.PENDING
    message: str = ""
    detail: str = ""

    def start(self) -> None:
        if self.status != StepStatus.PENDING:
            raise ValueError(f"Cannot start step in state {self.status.value}")
        self.status = StepStatus.RUNNING

    def finish(self, status: StepStatus, message: str = "", detail: str = "") -> None:
        if not status.is_terminal:
            raise ValueError(f"{status.value} is not a terminal state")
        # Skipping is allowed straight from pending (steps after an early stop).
        if self.status != StepStatus.RUNNING and not (
            status == StepStatus.SKIPPED and self.status == StepStatus.PENDING
        ):
            raise ValueError(f"Cannot finish step in state {self.status.value}")
        self.status = status
        self.message = message
        self.detail = detail


class RunStatus(Enum):
    SUCCEEDED = "succeeded"
    WARNED = "warned"
    FAILED = "failed"
    CANCELLED = "cancelled"  # neutral: user declined or must restart the shell


@dataclass
class RunResult:
    """Aggregated result of executing a remediation plan."""

    outcomes: list[StepOutcome] = field(default_factory=list)
    status: RunStatus = RunStatus.SUCCEEDED
    unaddressed: list[DiscrepancyRecord] = field(default_factory=list)
    interrupted: bool = False
    interruption_reason: str = ""

    @property
    def failed(self) -> list[StepOutcome]:
        return [o for o in self.outcomes if o.status == StepStatus.FAILED]

    def outcome_for(self, target: str) -> StepOutcome | None:
        for outcome in self.outcomes:
            if outcome.step.target == target:
                return outcome
        return None

    def summary(self) -> str:
        counts: dict[str, int] = {}
        for outcome in self.outcomes:
            counts[outcome.status.value] = counts.get(outcome.status.value, 0) + 1
        parts = ", ".join(f"{n} {s}" for s, n in sorted(counts.items()))
        return f"[{self.status.value.upper()}] {len(self.outcomes)} step(s){': ' + parts if parts else ''}"
