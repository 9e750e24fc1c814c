"""Post-run cleanup of stale marker comments."""

import logging
from typing import Protocol

from deploygate.gate.reconcile import is_ours_and_unedited
from deploygate.lib.types import Actor, Artifact, Location

logger = logging.getLogger(__name__)


class CleanupBackend(Protocol):

    def get_authenticated_identity(self) -> Actor:
        ...

    def list_artifacts(self, location: Location) -> list[Artifact]:
        ...

    def delete_artifact(self, artifact_id: int) -> None:
        ...


def find_stale_markers(artifacts: list[Artifact], identity: Actor, prefix: str) -> list[Artifact]:
    return [
        a for a in artifacts
        if a.body.startswith(prefix) and is_ours_and_unedited(a, identity)
    ]


def delete_stale_markers(backend: CleanupBackend, location: Location, prefix: str) -> list[int]:
    """Delete our unedited comments at `location` whose body starts with `prefix`.

    Comments a human has edited are left alone. Returns the deleted ids.
    """
    identity = backend.get_authenticated_identity()
    stale = find_stale_markers(backend.list_artifacts(location), identity, prefix)

    deleted = []
    for artifact in stale:
        backend.delete_artifact(artifact.id)
        deleted.append(artifact.id)
        logger.info(f"Deleted stale marker comment {artifact.id}")

    if not deleted:
        logger.info("No stale marker comments to delete")
    return deleted
