"""
Shared data types for deploygate.

Plain dataclasses for the objects the gate observes on GitHub. Kept in one
module so the adapter (github.py) and the core (gate/) can share them without
circular imports.
"""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True, eq=False)
class Actor:
    """A GitHub account.

    Identity is the numeric id. Logins can be renamed and reused, so they are
    carried for display only and never compared.
    """
    id: int
    login: str = ""

    def __eq__(self, other) -> bool:
        if not isinstance(other, Actor):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return self.login or f"user#{self.id}"

    @classmethod
    def from_api(cls, data: dict | None) -> "Actor | None":
        """Build from a REST ``user`` object; returns None when absent."""
        if not data or data.get("id") is None:
            return None
        return cls(id=data["id"], login=data.get("login", ""))


@dataclass(frozen=True)
class Location:
    """Where a marker comment lives.

    kind is "issue" (pull request conversation, ref is the PR number) or
    "commit" (commit comments, ref is the SHA).
    """
    kind: str
    ref: str

    def __str__(self) -> str:
        return f"{self.kind}:{self.ref}"


@dataclass(frozen=True)
class Reaction:
    """An emoji reaction on a comment."""
    id: int
    content: str
    actor: Actor
    parent_artifact_id: int | None = None

    @classmethod
    def from_api(cls, data: dict, parent_artifact_id: int | None = None) -> "Reaction":
        return cls(
            id=data["id"],
            content=data.get("content", ""),
            actor=Actor.from_api(data.get("user")) or Actor(id=0),
            parent_artifact_id=parent_artifact_id,
        )


@dataclass(frozen=True)
class Review:
    """A pull request review."""
    id: int
    state: str  # "APPROVED", "CHANGES_REQUESTED", "COMMENTED", "DISMISSED", "PENDING"
    body: str | None
    commit_id: str | None
    actor: Actor

    @classmethod
    def from_api(cls, data: dict) -> "Review":
        return cls(
            id=data["id"],
            state=(data.get("state") or "").upper(),
            body=data.get("body"),
            commit_id=data.get("commit_id"),
            actor=Actor.from_api(data.get("user")) or Actor(id=0),
        )


Signal = Union[Reaction, Review]


@dataclass(frozen=True)
class Artifact:
    """The marker comment.

    Timestamps are kept as the API's ISO strings; equality of created_at and
    updated_at is how an unedited comment is recognised.
    """
    id: int
    body: str
    author: Actor | None
    created_at: str
    updated_at: str
    url: str = ""

    @property
    def edited(self) -> bool:
        return self.created_at != self.updated_at

    @classmethod
    def from_api(cls, data: dict) -> "Artifact":
        return cls(
            id=data["id"],
            body=data.get("body") or "",
            author=Actor.from_api(data.get("user")),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
            url=data.get("html_url") or data.get("url", ""),
        )
