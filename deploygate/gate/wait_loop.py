"""Polling loop that waits for an eligible approval or rejection.

Each tick:
1. stop with TimedOut if the deadline has passed (timeout > 0)
2. list the signals and keep the accepted ones
3. any rejection -> Rejected (checked before approvals)
4. any approval -> Approved
5. otherwise sleep poll_interval and go again

Within one kind the first accepted signal in the backend's order wins.
The deadline is measured on a monotonic clock from loop start and only
checked between polls; an API call in flight is never interrupted.
"""

import logging
import time
from typing import Callable

from deploygate.gate.backend import GateBackend
from deploygate.gate.eligibility import EligibilityDecision, EligibilityFilter
from deploygate.gate.fsm import WaitLoopFSM
from deploygate.gate.outcome import ApprovalOutcome, Approved, Rejected, TimedOut
from deploygate.lib.types import Artifact

logger = logging.getLogger(__name__)


def decide(decisions: list[EligibilityDecision]) -> ApprovalOutcome | None:
    """Pick the outcome from one poll's accepted decisions, rejection first."""
    for d in decisions:
        if d.is_rejection:
            return Rejected(by=d.actor, signal=d.signal)
    for d in decisions:
        if d.is_approval:
            return Approved(by=d.actor, via=d.via, signal=d.signal)
    return None


class ApprovalWaitLoop:
    """Polls one artifact until a decision or the deadline.

    Args:
        backend: GateBackend used to list signals
        eligibility: EligibilityFilter for this run
        artifact: The marker comment being watched
        poll_interval_seconds: Delay between polls (> 0)
        timeout_seconds: Deadline; 0 waits forever
        clock: Monotonic clock, injectable for tests
        sleep: Sleep function, injectable for tests
    """

    def __init__(
        self,
        backend: GateBackend,
        eligibility: EligibilityFilter,
        artifact: Artifact,
        poll_interval_seconds: float,
        timeout_seconds: float = 0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be > 0")
        if timeout_seconds < 0:
            raise ValueError("timeout_seconds must be >= 0")
        self.backend = backend
        self.eligibility = eligibility
        self.artifact = artifact
        self.poll_interval_seconds = poll_interval_seconds
        self.timeout_seconds = timeout_seconds
        self.clock = clock
        self.sleep = sleep
        self.fsm = WaitLoopFSM(name=f"comment {artifact.id}")
        self.polls = 0

    def check_once(self) -> ApprovalOutcome | None:
        """Run one poll without touching the state machine."""
        signals = self.backend.list_signals(self.artifact)
        accepted = self.eligibility.accepted(signals)
        self.polls += 1
        return decide(accepted)

    def _finish(self, outcome: ApprovalOutcome) -> ApprovalOutcome:
        if isinstance(outcome, Rejected):
            logger.info(f"Workflow rejected by {outcome.by}")
            self.fsm.reject()
        elif isinstance(outcome, Approved):
            logger.info(f"Workflow approved by {outcome.by} via {outcome.via}")
            self.fsm.approve()
        else:
            logger.info(f"No decision after {self.polls} polls ({outcome.elapsed_seconds:.0f}s)")
            self.fsm.time_out()
        return outcome

    def run(self) -> ApprovalOutcome:
        """Poll until Approved, Rejected or TimedOut.

        Backend errors propagate and leave the state machine in polling.
        """
        start = self.clock()

        while True:
            elapsed = self.clock() - start
            if self.timeout_seconds > 0 and elapsed >= self.timeout_seconds:
                return self._finish(TimedOut(polls=self.polls, elapsed_seconds=elapsed))

            outcome = self.check_once()
            if outcome is not None:
                return self._finish(outcome)

            logger.debug(f"Waiting for approval... (poll {self.polls})")
            self.sleep(self.poll_interval_seconds)
