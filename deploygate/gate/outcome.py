"""Terminal outcomes of a gate run."""

from dataclasses import dataclass, field
from typing import Union

from deploygate.lib.types import Actor, Review, Signal


@dataclass(frozen=True)
class Approved:
    by: Actor
    via: str  # "reaction", "review" or "comment"
    signal: Signal | None = None

    @property
    def review_id(self) -> int | None:
        return self.signal.id if isinstance(self.signal, Review) else None

    @property
    def review_type(self) -> str | None:
        """"approval" for an APPROVED review, "comment" for a deploy command."""
        if not isinstance(self.signal, Review):
            return None
        return "comment" if self.via == "comment" else "approval"


@dataclass(frozen=True)
class Rejected:
    by: Actor
    signal: Signal | None = None


@dataclass(frozen=True)
class TimedOut:
    polls: int = 0
    elapsed_seconds: float = 0.0


ApprovalOutcome = Union[Approved, Rejected, TimedOut]


@dataclass
class RunResult:
    """What a run reports back to its caller.

    error holds the failure reason for anything other than Approved.
    """
    outcome: ApprovalOutcome | None
    comment_id: int | None = None
    error: str | None = None
    outputs: dict = field(default_factory=dict)

    @property
    def approved(self) -> bool:
        return isinstance(self.outcome, Approved) and self.error is None
