"""Approval-resolution core.

The core depends only on the GateBackend capability set; deploygate.lib.github
provides the GitHub implementation.
"""

from deploygate.gate.backend import GateBackend
from deploygate.gate.eligibility import (
    EligibilityContext,
    EligibilityDecision,
    EligibilityFilter,
    EligibilityReason,
    is_deploy_command,
    resolve_author_ids,
)
from deploygate.gate.reactions import ReactionStateMachine
from deploygate.gate.reconcile import (
    MATCH_EXACT,
    MATCH_UNIQUE_MARKER,
    ArtifactReconciler,
    is_ours_and_unedited,
)
from deploygate.gate.outcome import Approved, ApprovalOutcome, Rejected, RunResult, TimedOut
from deploygate.gate.wait_loop import ApprovalWaitLoop
from deploygate.gate.engine import ApprovalOrchestrator, marker_body
from deploygate.gate.cleanup import delete_stale_markers
