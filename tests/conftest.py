"""Shared fixtures: an in-memory GateBackend and a fake clock."""

import itertools

import pytest

from deploygate.lib.types import Actor, Artifact, Location, Reaction, Review

BOT = Actor(id=41898282, login="github-actions[bot]")
AUTHOR = Actor(id=100, login="author")
MAINTAINER = Actor(id=200, login="maintainer")
ADMIN = Actor(id=300, login="admin")
READER = Actor(id=400, login="reader")

PR_LOCATION = Location("issue", "42")
HEAD_SHA = "abc123"


class FakeBackend:
    """In-memory GateBackend.

    signal_script, when set, is a list of signal lists; each list_signals call
    pops the next one (the last one repeats).
    """

    def __init__(self, identity=BOT, mode="reactions"):
        self.identity = identity
        self.mode = mode
        self.authors: set[int] = set()
        self.permissions: dict[str, str] = {}
        self.comments: dict[Location, list[Artifact]] = {}
        self.reactions: dict[int, list[Reaction]] = {}
        self.reviews: list[Review] = []
        self.signal_script: list[list] | None = None
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple] = []
        self._ids = itertools.count(1000)

    def _call(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.failures:
            raise self.failures[name]

    def count(self, name) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    # identities
    def get_authors(self):
        self._call("get_authors")
        return set(self.authors)

    def get_authenticated_identity(self):
        self._call("get_authenticated_identity")
        return self.identity

    def get_user_permission(self, login):
        self._call("get_user_permission", login)
        return self.permissions.get(login, "none")

    # comments
    def add_comment(self, location, body, author=None, edited=False) -> Artifact:
        created = "2024-01-01T00:00:00Z"
        artifact = Artifact(
            id=next(self._ids),
            body=body,
            author=author if author is not None else self.identity,
            created_at=created,
            updated_at="2024-01-02T00:00:00Z" if edited else created,
            url=f"https://github.com/o/r/pull/42#issuecomment-{len(self.comments)}",
        )
        self.comments.setdefault(location, []).append(artifact)
        return artifact

    def list_artifacts(self, location):
        self._call("list_artifacts", location)
        return list(self.comments.get(location, []))

    def find_artifact(self, location, predicate):
        self._call("find_artifact", location)
        for artifact in self.comments.get(location, []):
            if predicate(artifact):
                return artifact
        return None

    def create_artifact(self, location, body):
        self._call("create_artifact", location, body)
        return self.add_comment(location, body)

    def delete_artifact(self, artifact_id):
        self._call("delete_artifact", artifact_id)
        for location, items in self.comments.items():
            self.comments[location] = [a for a in items if a.id != artifact_id]

    # signals
    def add_reaction(self, artifact_id, content, actor) -> Reaction:
        reaction = Reaction(id=next(self._ids), content=content, actor=actor, parent_artifact_id=artifact_id)
        self.reactions.setdefault(artifact_id, []).append(reaction)
        return reaction

    def list_reactions(self, artifact_id):
        self._call("list_reactions", artifact_id)
        return list(self.reactions.get(artifact_id, []))

    def list_signals(self, artifact):
        self._call("list_signals", artifact.id)
        if self.signal_script is not None:
            if len(self.signal_script) > 1:
                return list(self.signal_script.pop(0))
            return list(self.signal_script[0]) if self.signal_script else []
        if self.mode == "reviews":
            return [r for r in self.reviews if r.commit_id == HEAD_SHA]
        return list(self.reactions.get(artifact.id, []))

    def create_reaction(self, artifact_id, content):
        self._call("create_reaction", artifact_id, content)
        return self.add_reaction(artifact_id, content, self.identity)

    def delete_reaction(self, artifact_id, reaction_id):
        self._call("delete_reaction", artifact_id, reaction_id)
        self.reactions[artifact_id] = [
            r for r in self.reactions.get(artifact_id, []) if r.id != reaction_id
        ]

    def own_reactions(self, artifact_id) -> list[str]:
        return [r.content for r in self.reactions.get(artifact_id, []) if r.actor == self.identity]


class FakeClock:
    """Monotonic clock that only moves when sleep() is called."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def backend():
    fake = FakeBackend()
    fake.permissions = {
        "author": "write",
        "maintainer": "write",
        "admin": "admin",
        "reader": "read",
    }
    fake.authors = {AUTHOR.id}
    return fake


@pytest.fixture
def clock():
    return FakeClock()
