"""Eligibility filter: which observed signals count as votes.

A signal is checked against a fixed sequence of exclusions and the first match
wins, so the reason reported for a signal is stable:

1. commit author/committer (unless authors may vote)
2. the gate's own token identity
3. no known user (deleted account): not actionable
4. collaborator permission not in the allow-set
5. content: reject reaction, approve reaction, APPROVED review,
   deploy command review; anything else is not actionable
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable

from deploygate.lib import constants as c
from deploygate.lib.types import Actor, Reaction, Review, Signal

logger = logging.getLogger(__name__)

VIA_REACTION = "reaction"
VIA_REVIEW = "review"
VIA_COMMENT = "comment"


class EligibilityReason(Enum):
    ACCEPTED_APPROVAL = "accepted_approval"
    ACCEPTED_REJECTION = "accepted_rejection"
    ACCEPTED_DEPLOY_COMMAND = "accepted_deploy_command"
    EXCLUDED_AUTHOR = "excluded_author"
    EXCLUDED_TOKEN_IDENTITY = "excluded_token_identity"
    EXCLUDED_PERMISSION = "excluded_permission"
    EXCLUDED_NOT_ACTIONABLE = "excluded_not_actionable"


ACCEPTED_REASONS = {
    EligibilityReason.ACCEPTED_APPROVAL,
    EligibilityReason.ACCEPTED_REJECTION,
    EligibilityReason.ACCEPTED_DEPLOY_COMMAND,
}

EXCLUSION_MESSAGES = {
    EligibilityReason.EXCLUDED_AUTHOR: "user is a commit author",
    EligibilityReason.EXCLUDED_TOKEN_IDENTITY: "user is the token user",
    EligibilityReason.EXCLUDED_PERMISSION: "user lacks required permissions",
    EligibilityReason.EXCLUDED_NOT_ACTIONABLE: "not an approval or rejection",
}


@dataclass(frozen=True)
class EligibilityDecision:
    signal: Signal
    reason: EligibilityReason

    @property
    def accepted(self) -> bool:
        return self.reason in ACCEPTED_REASONS

    @property
    def is_rejection(self) -> bool:
        return self.reason == EligibilityReason.ACCEPTED_REJECTION

    @property
    def is_approval(self) -> bool:
        return self.reason in (
            EligibilityReason.ACCEPTED_APPROVAL,
            EligibilityReason.ACCEPTED_DEPLOY_COMMAND,
        )

    @property
    def actor(self) -> Actor:
        return self.signal.actor

    @property
    def via(self) -> str:
        """How the vote was cast: reaction, review or comment (deploy command)."""
        if self.reason == EligibilityReason.ACCEPTED_DEPLOY_COMMAND:
            return VIA_COMMENT
        if isinstance(self.signal, Review):
            return VIA_REVIEW
        return VIA_REACTION


@dataclass
class EligibilityContext:
    """Everything classification depends on besides the signal itself."""
    token_identity: Actor
    author_ids: frozenset = frozenset()
    required_permissions: frozenset = frozenset(c.DEFAULT_REQUIRED_PERMISSIONS)
    authors_can_vote: bool = False
    approve_vote: str = c.REACTION_APPROVE
    reject_vote: str = c.REACTION_REJECT
    deploy_command: str = c.DEFAULT_DEPLOY_COMMAND
    permission_lookup: Callable[[str], str] = field(default=lambda login: "none", repr=False)


def resolve_author_ids(commits: Iterable[dict]) -> set[int]:
    """Union of author and committer ids over all commits.

    Either may be null when the commit email isn't linked to an account.
    """
    ids: set[int] = set()
    for commit in commits:
        for role in ("author", "committer"):
            user = commit.get(role)
            if user and user.get("id") is not None:
                ids.add(user["id"])
    return ids


def is_deploy_command(body: str | None, command: str = c.DEFAULT_DEPLOY_COMMAND) -> bool:
    """True when the trimmed body's first token is the command (case-insensitive).

    "/deploy", "/DEPLOY now", "  /deploy\\n" qualify; "please /deploy" does not.
    """
    if not body:
        return False
    stripped = body.strip()
    if not stripped:
        return False
    first_token = stripped.split(None, 1)[0]
    return first_token.lower() == command.lower()


def describe(signal: Signal) -> str:
    if isinstance(signal, Reaction):
        return f"reaction :{signal.content}: by {signal.actor}"
    return f"review {signal.id} ({signal.state}) by {signal.actor}"


class EligibilityFilter:
    """Classifies signals against an EligibilityContext."""

    def __init__(self, context: EligibilityContext):
        self.context = context

    def _classify_content(self, signal: Signal) -> EligibilityReason:
        ctx = self.context
        if isinstance(signal, Reaction):
            if signal.content == ctx.reject_vote:
                return EligibilityReason.ACCEPTED_REJECTION
            if signal.content == ctx.approve_vote:
                return EligibilityReason.ACCEPTED_APPROVAL
            return EligibilityReason.EXCLUDED_NOT_ACTIONABLE

        if signal.state == c.REVIEW_APPROVED:
            return EligibilityReason.ACCEPTED_APPROVAL
        if is_deploy_command(signal.body, ctx.deploy_command):
            return EligibilityReason.ACCEPTED_DEPLOY_COMMAND
        return EligibilityReason.EXCLUDED_NOT_ACTIONABLE

    def classify(
        self, signal: Signal, permissions: dict[str, str] | None = None
    ) -> EligibilityDecision:
        """Classify one signal.

        Args:
            signal: Reaction or Review
            permissions: Optional per-poll cache of login -> permission
        """
        ctx = self.context
        actor = signal.actor

        if not ctx.authors_can_vote and actor.id in ctx.author_ids:
            reason = EligibilityReason.EXCLUDED_AUTHOR
        elif actor == ctx.token_identity:
            reason = EligibilityReason.EXCLUDED_TOKEN_IDENTITY
        elif not actor.login:
            # deleted account; there is no collaborator to look up
            reason = EligibilityReason.EXCLUDED_NOT_ACTIONABLE
        else:
            if permissions is not None and actor.login in permissions:
                permission = permissions[actor.login]
            else:
                permission = ctx.permission_lookup(actor.login)
                if permissions is not None:
                    permissions[actor.login] = permission

            if permission not in ctx.required_permissions:
                reason = EligibilityReason.EXCLUDED_PERMISSION
            else:
                reason = self._classify_content(signal)

        decision = EligibilityDecision(signal=signal, reason=reason)
        if decision.accepted:
            logger.info(f"Found {describe(signal)}")
        else:
            logger.debug(f"Ignoring {describe(signal)} ({EXCLUSION_MESSAGES[reason]})")
        return decision

    def classify_all(self, signals: Iterable[Signal]) -> list[EligibilityDecision]:
        """Classify in order, looking each login's permission up once."""
        permissions: dict[str, str] = {}
        return [self.classify(s, permissions) for s in signals]

    def accepted(self, signals: Iterable[Signal]) -> list[EligibilityDecision]:
        return [d for d in self.classify_all(signals) if d.accepted]
