"""End-to-end approval flow.

    resolve token identity
    -> reconcile the marker comment
    -> mark it :wait:
    -> wait loop (or a single check in reviews mode without wait)
    -> mark it :success: or :failed:

The terminal mark is attempted whatever happened in between. A failure while
setting it is logged as a warning and never replaces the run's own error.
"""

import logging
import time
from typing import Callable

from deploygate.gate.backend import GateBackend
from deploygate.gate.eligibility import EligibilityContext, EligibilityFilter
from deploygate.gate.outcome import Approved, ApprovalOutcome, Rejected, RunResult, TimedOut
from deploygate.gate.reactions import ReactionStateMachine
from deploygate.gate.reconcile import MATCH_EXACT, MATCH_UNIQUE_MARKER, ArtifactReconciler
from deploygate.gate.wait_loop import ApprovalWaitLoop
from deploygate.lib import constants as c
from deploygate.lib.config import GateConfig
from deploygate.lib.errors import (
    ApprovalTimeoutError,
    GateError,
    NoEligibleApprovalFound,
    RejectionError,
)
from deploygate.lib.types import Actor, Artifact, Location

logger = logging.getLogger(__name__)


def marker_body(config: GateConfig, run_url: str = "") -> str:
    """The marker comment text for the configured mode."""
    if config.mode == c.MODE_REVIEWS:
        return c.REVIEWS_MARKER_BODY.format(command=config.deploy_command, run_url=run_url)
    return c.REACTIONS_MARKER_BODY.format(approve=config.votes.approve, reject=config.votes.reject)


class ApprovalOrchestrator:
    """Runs one gate against one marker location.

    Args:
        backend: GateBackend
        config: GateConfig
        location: Where the marker comment lives
        body: Marker text; defaults to marker_body(config)
        commit_sha: Commit under review, used in failure messages
        clock/sleep: Passed to the wait loop
    """

    def __init__(
        self,
        backend: GateBackend,
        config: GateConfig,
        location: Location,
        body: str | None = None,
        commit_sha: str = "",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.backend = backend
        self.config = config
        self.location = location
        self.body = body if body is not None else marker_body(config)
        self.commit_sha = commit_sha
        self.clock = clock
        self.sleep = sleep
        self.outputs: dict[str, object] = {}
        self.artifact: Artifact | None = None
        self.identity: Actor | None = None
        self.state: ReactionStateMachine | None = None

    @property
    def uses_state_reactions(self) -> bool:
        return self.config.mode == c.MODE_REACTIONS

    def _eligibility(self, identity: Actor) -> EligibilityFilter:
        author_ids = frozenset() if self.config.authors_can_vote else frozenset(self.backend.get_authors())
        return EligibilityFilter(EligibilityContext(
            token_identity=identity,
            author_ids=author_ids,
            required_permissions=self.config.required_permissions,
            authors_can_vote=self.config.authors_can_vote,
            approve_vote=self.config.votes.approve,
            reject_vote=self.config.votes.reject,
            deploy_command=self.config.deploy_command,
            permission_lookup=self.backend.get_user_permission,
        ))

    def _reconciler(self, identity: Actor) -> ArtifactReconciler:
        if self.config.mode == c.MODE_REVIEWS:
            return ArtifactReconciler(
                self.backend, identity, MATCH_UNIQUE_MARKER, marker=c.REVIEWS_MARKER_PREFIX
            )
        return ArtifactReconciler(self.backend, identity, MATCH_EXACT)

    def _wait(self, artifact: Artifact, eligibility: EligibilityFilter) -> ApprovalOutcome:
        loop = ApprovalWaitLoop(
            self.backend,
            eligibility,
            artifact,
            poll_interval_seconds=self.config.poll_interval_seconds,
            timeout_seconds=self.config.timeout_seconds,
            clock=self.clock,
            sleep=self.sleep,
        )
        if self.config.wait:
            return loop.run()

        outcome = loop.check_once()
        if outcome is None:
            logger.info("No eligible approval reviews found")
            raise NoEligibleApprovalFound(self.commit_sha)
        return outcome

    def _record(self, outcome: ApprovalOutcome) -> None:
        if isinstance(outcome, Approved):
            self.outputs[c.OUTPUT_APPROVED_BY] = outcome.by.login
            if outcome.review_id is not None:
                self.outputs[c.OUTPUT_REVIEW_ID] = outcome.review_id
                self.outputs[c.OUTPUT_REVIEW_TYPE] = outcome.review_type
        elif isinstance(outcome, Rejected):
            self.outputs[c.OUTPUT_REJECTED_BY] = outcome.by.login

    def _mark_terminal(self, artifact: Artifact, approved: bool) -> None:
        if self.state is None:
            return
        content = self.config.votes.success if approved else self.config.votes.failed
        try:
            self.state.set_state(artifact.id, content)
        except Exception as e:
            logger.warning(f"Failed to set :{content}: on comment {artifact.id}: {e}")

    def run(self) -> Approved:
        """Run the gate.

        Returns:
            Approved outcome

        Raises:
            RejectionError: an eligible actor rejected
            ApprovalTimeoutError: the deadline passed
            NoEligibleApprovalFound: single check found nothing
            GateError: configuration, creation or backend failures
        """
        self.identity = self.backend.get_authenticated_identity()
        logger.debug(f"Token identity: {self.identity} ({self.identity.id})")

        artifact = self._reconciler(self.identity).ensure_artifact(self.location, self.body)
        self.artifact = artifact
        self.outputs[c.OUTPUT_COMMENT_ID] = artifact.id

        if self.uses_state_reactions:
            self.state = ReactionStateMachine(self.backend, self.identity.id)

        approved = False
        try:
            if self.state is not None:
                self.state.set_state(artifact.id, self.config.votes.wait)

            outcome = self._wait(artifact, self._eligibility(self.identity))
            self._record(outcome)

            if isinstance(outcome, Rejected):
                raise RejectionError(outcome.by)
            if isinstance(outcome, TimedOut):
                raise ApprovalTimeoutError(self.config.timeout_seconds, outcome.polls)

            approved = True
            return outcome
        finally:
            self._mark_terminal(artifact, approved)

    def execute(self) -> RunResult:
        """run(), with gate failures folded into a RunResult."""
        try:
            outcome = self.run()
            return RunResult(
                outcome=outcome,
                comment_id=self.artifact.id if self.artifact else None,
                outputs=dict(self.outputs),
            )
        except GateError as e:
            outcome = None
            if isinstance(e, RejectionError):
                outcome = Rejected(by=e.by)
            elif isinstance(e, ApprovalTimeoutError):
                outcome = TimedOut(polls=e.polls)
            return RunResult(
                outcome=outcome,
                comment_id=self.artifact.id if self.artifact else None,
                error=e.reason,
                outputs=dict(self.outputs),
            )
