"""Single-active-reaction state for the gate's own identity.

The gate shows its state on the marker comment with one reaction
(eyes while waiting, rocket or confused at the end). set_state removes every
reaction the owning actor has on the comment, then adds the new one.
Not atomic against concurrent edits by other processes.
"""

import logging

from deploygate.gate.backend import GateBackend
from deploygate.lib.types import Reaction

logger = logging.getLogger(__name__)


class ReactionStateMachine:
    """Owns one actor's reaction on one or more comments.

    Remembers the last content set per comment so repeated set_state calls with
    the same content skip the API. The skip is an optimization only; a fresh
    instance always resets from scratch.
    """

    def __init__(self, backend: GateBackend, actor_id: int):
        self.backend = backend
        self.actor_id = actor_id
        self._last: dict[int, str] = {}

    def current(self, artifact_id: int) -> str | None:
        return self._last.get(artifact_id)

    def reactions_by_actor(self, artifact_id: int) -> list[Reaction]:
        return [
            r for r in self.backend.list_reactions(artifact_id)
            if r.actor.id == self.actor_id
        ]

    def clear(self, artifact_id: int) -> int:
        """Delete every reaction by the owning actor; returns how many."""
        removed = 0
        for reaction in self.reactions_by_actor(artifact_id):
            self.backend.delete_reaction(artifact_id, reaction.id)
            removed += 1
        self._last.pop(artifact_id, None)
        return removed

    def set_state(self, artifact_id: int, content: str) -> Reaction | None:
        """Make `content` the owning actor's only reaction on the comment.

        Returns the created reaction, or None when skipped as unchanged.
        """
        if self.current(artifact_id) == content:
            logger.debug(f"[STATE] comment {artifact_id}: already :{content}:, skipping")
            return None

        removed = self.clear(artifact_id)
        reaction = self.backend.create_reaction(artifact_id, content)
        self._last[artifact_id] = content
        logger.debug(
            f"[STATE] comment {artifact_id}: set :{content}: (removed {removed} previous)"
        )
        return reaction
