"""
Error taxonomy for the approval gate.

Every failure that ends a run derives from GateError so the CLI can report a
single human-readable reason. None of these are retried inside the core.
"""

from dataclasses import dataclass, field

from deploygate.lib.types import Actor


class GateError(Exception):
    """Base class for gate failures."""

    @property
    def reason(self) -> str:
        return str(self)


class ConfigurationError(GateError):
    """Missing or invalid inputs, or a run context without required identifiers."""


@dataclass
class BackendError(GateError):
    """A call to the remote API failed."""
    operation: str
    message: str
    details: dict = field(default_factory=dict)

    def __str__(self):
        return f"[{self.operation}] {self.message}"


class ArtifactCreationFailure(GateError):
    """The API accepted a create call but returned no comment id."""


class NoEligibleApprovalFound(GateError):
    """A single check found no accepted approval."""

    def __init__(self, commit_sha: str = ""):
        self.commit_sha = commit_sha
        target = f" for commit {commit_sha}" if commit_sha else ""
        super().__init__(
            f"No eligible approval found{target}. "
            "Reviews must be either APPROVED state or start with the deploy command "
            "and be from users with the required permissions."
        )


class RejectionError(GateError):
    """An authorized actor voted to reject."""

    def __init__(self, by: Actor):
        self.by = by
        super().__init__(f"Workflow rejected by {by}")


class ApprovalTimeoutError(GateError):
    """The wait loop passed its deadline without a decision."""

    def __init__(self, timeout_seconds: float, polls: int = 0):
        self.timeout_seconds = timeout_seconds
        self.polls = polls
        super().__init__(
            f"Timed out after {timeout_seconds:g}s waiting for approval ({polls} polls)"
        )
