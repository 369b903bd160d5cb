"""Exceptions raised across envsync.

Only ``PreconditionError`` escapes to the command surface. ``StepFailure`` is
raised inside remediation handlers and converted to a failed outcome by the
reconciler before it can abort a run.
"""

from __future__ import annotations


class EnvSyncError(Exception):
    """Base class for envsync errors."""


class PreconditionError(EnvSyncError):
    """The run cannot start: manifest missing, invalid, or wrong project type."""

    def __init__(self, message: str, hint: str = ""):
        super().__init__(message)
        self.hint = hint


class ManifestError(PreconditionError):
    """The manifest exists but cannot be parsed or fails schema validation."""

    def __init__(self, message: str, issues: list[str] | None = None, hint: str = ""):
        super().__init__(message, hint=hint)
        self.issues = issues or []


class StepFailure(EnvSyncError):
    """A remediation action failed. ``detail`` carries the raw cause."""

    def __init__(self, message: str, detail: str = ""):
        super().__init__(message)
        self.message = message
        self.detail = detail


class UserCancellation(EnvSyncError):
    """The user declined or aborted an interactive prompt."""
