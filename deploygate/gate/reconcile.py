"""Idempotent find-or-create of the marker comment.

A comment is reused only if it is ours and unedited: written by the token
identity, created_at == updated_at, and its body matches. A human-edited or
foreign comment with the same text is never adopted, and a re-run of the job
finds the marker its previous attempt created instead of posting another.
"""

import logging

from deploygate.gate.backend import GateBackend
from deploygate.lib.types import Actor, Artifact, Location

logger = logging.getLogger(__name__)

MATCH_EXACT = "exact"
MATCH_UNIQUE_MARKER = "unique_marker"


def extract_unique_marker(body: str) -> str:
    """The first non-empty line of a body, used to recognise our comments
    when the rest of the body varies between runs (e.g. embeds a run URL)."""
    for line in body.splitlines():
        if line.strip():
            return line.strip()
    return body.strip()


def body_matches(artifact: Artifact, body: str, match: str = MATCH_EXACT, marker: str | None = None) -> bool:
    if match == MATCH_UNIQUE_MARKER:
        return (marker or extract_unique_marker(body)) in artifact.body
    return artifact.body == body


def is_ours_and_unedited(artifact: Artifact, identity: Actor) -> bool:
    return (
        artifact.author is not None
        and artifact.author == identity
        and not artifact.edited
    )


class ArtifactReconciler:
    """Finds or creates the marker comment for one identity.

    Args:
        backend: GateBackend
        identity: The token identity the marker must be authored by
        match: MATCH_EXACT or MATCH_UNIQUE_MARKER
        marker: Substring to look for in unique-marker mode; defaults to the
            first line of the body being ensured
    """

    def __init__(
        self,
        backend: GateBackend,
        identity: Actor,
        match: str = MATCH_EXACT,
        marker: str | None = None,
    ):
        if match not in (MATCH_EXACT, MATCH_UNIQUE_MARKER):
            raise ValueError(f"Unknown match mode: {match}")
        self.backend = backend
        self.identity = identity
        self.match = match
        self.marker = marker

    def is_reusable(self, artifact: Artifact, body: str) -> bool:
        return is_ours_and_unedited(artifact, self.identity) and body_matches(
            artifact, body, self.match, self.marker
        )

    def find(self, location: Location, body: str) -> Artifact | None:
        return self.backend.find_artifact(location, lambda a: self.is_reusable(a, body))

    def ensure_artifact(self, location: Location, body: str) -> Artifact:
        """Return the existing marker at `location`, creating it only if absent.

        Raises:
            ArtifactCreationFailure: creation returned no id (not retried)
        """
        existing = self.find(location, body)
        if existing is not None:
            logger.info(f"Found existing {location.kind} comment: {existing.url or existing.id}")
            return existing

        logger.debug(f"No matching {location.kind} comment found at {location}")
        return self.backend.create_artifact(location, body)
