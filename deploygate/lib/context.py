"""
GitHub Actions run context.

Reads the identifiers the gate needs (repository, run id, pull request) from
the runner environment and the event payload file. The payload is parsed with
pydantic models so that a malformed or non-pull-request event fails with a
ConfigurationError instead of a KeyError deep inside the gate.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel, ValidationError

from deploygate.lib.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "https://github.com"


class RepoOwner(BaseModel):
    login: str


class RepoRef(BaseModel):
    name: str
    owner: RepoOwner

    @property
    def full_name(self) -> str:
        return f"{self.owner.login}/{self.name}"


class BranchRef(BaseModel):
    sha: str
    repo: RepoRef | None = None


class PullRequestPayload(BaseModel):
    """The subset of the pull_request object the gate reads."""
    number: int
    head: BranchRef
    base: BranchRef


class EventPayload(BaseModel):
    pull_request: PullRequestPayload | None = None


@dataclass(frozen=True)
class ActionContext:
    """Identifiers for the current workflow run."""
    repository: str  # owner/name
    run_id: int | None
    server_url: str
    pull_number: int
    head_sha: str
    base_repository: str | None
    output_path: Path | None = None

    def require_run_id(self) -> int:
        if not self.run_id:
            raise ConfigurationError("No run ID found in context (GITHUB_RUN_ID)")
        return self.run_id

    def check_same_repository(self) -> None:
        """Refuse to act when the PR's base repo differs from the job's repo.

        This should never happen for pull_request events, but voting on
        another repository's comments must not be possible.
        """
        if self.base_repository and self.base_repository.lower() != self.repository.lower():
            logger.debug(f"Context repo: {self.repository}")
            logger.debug(f"Payload base repo: {self.base_repository}")
            raise ConfigurationError(
                "Context repo does not match payload pull request base repo "
                f"({self.repository} != {self.base_repository})"
            )


def load_event_payload(event_path: Path) -> EventPayload:
    """Parse the event JSON written by the runner."""
    try:
        data = json.loads(event_path.read_text())
    except FileNotFoundError:
        raise ConfigurationError(f"Event payload not found: {event_path}") from None
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in event payload {event_path}: {e}") from None

    try:
        return EventPayload.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Unexpected event payload: {e}") from None


def load_action_context(environ: Mapping[str, str]) -> ActionContext:
    """Build ActionContext from the runner environment.

    Raises:
        ConfigurationError: if repository, event payload or pull request is missing
    """
    repository = environ.get("GITHUB_REPOSITORY", "").strip()
    if "/" not in repository:
        raise ConfigurationError("GITHUB_REPOSITORY is not set (expected owner/name)")

    event_path = environ.get("GITHUB_EVENT_PATH", "").strip()
    if not event_path:
        raise ConfigurationError("GITHUB_EVENT_PATH is not set")

    payload = load_event_payload(Path(event_path))
    pr = payload.pull_request
    if pr is None:
        raise ConfigurationError("This action only works on pull requests.")

    run_id_raw = environ.get("GITHUB_RUN_ID", "").strip()
    try:
        run_id = int(run_id_raw) if run_id_raw else None
    except ValueError:
        raise ConfigurationError(f"GITHUB_RUN_ID is not a number: {run_id_raw!r}") from None

    output = environ.get("GITHUB_OUTPUT", "").strip()

    return ActionContext(
        repository=repository,
        run_id=run_id,
        server_url=environ.get("GITHUB_SERVER_URL", DEFAULT_SERVER_URL).rstrip("/"),
        pull_number=pr.number,
        head_sha=pr.head.sha,
        base_repository=pr.base.repo.full_name if pr.base.repo else None,
        output_path=Path(output) if output else None,
    )
