"""The capability set the approval core needs from a remote API.

GitHubBackend (deploygate.lib.github) implements it; tests use an in-memory fake.
"""

from typing import Callable, Protocol

from deploygate.lib.types import Actor, Artifact, Location, Reaction, Signal


class GateBackend(Protocol):

    def get_authors(self) -> set[int]:
        """Ids of every author and committer on the change under review."""
        ...

    def get_authenticated_identity(self) -> Actor:
        ...

    def get_user_permission(self, login: str) -> str:
        ...

    def find_artifact(
        self, location: Location, predicate: Callable[[Artifact], bool]
    ) -> Artifact | None:
        ...

    def create_artifact(self, location: Location, body: str) -> Artifact:
        """Raises ArtifactCreationFailure when no id comes back."""
        ...

    def list_signals(self, artifact: Artifact) -> list[Signal]:
        """Signals in the API's natural order."""
        ...

    def list_reactions(self, artifact_id: int) -> list[Reaction]:
        ...

    def create_reaction(self, artifact_id: int, content: str) -> Reaction:
        ...

    def delete_reaction(self, artifact_id: int, reaction_id: int) -> None:
        ...
