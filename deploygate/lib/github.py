"""
GitHub backend for the approval gate.

Implements the GateBackend capability set by shelling out to the gh CLI
(`gh api`), which handles auth, retries on secondary rate limits and
pagination. Every failure raises BackendError; the core never retries.
"""

import json
import logging
import os
import subprocess
from typing import Callable

from deploygate.lib import constants as c
from deploygate.lib.context import ActionContext
from deploygate.lib.errors import ArtifactCreationFailure, BackendError
from deploygate.lib.types import Actor, Artifact, Location, Reaction, Review, Signal

logger = logging.getLogger(__name__)


# Timeout for GitHub CLI operations (seconds)
GH_TIMEOUT_SECONDS = 30

VIEWER_QUERY = "query { viewer { databaseId login } }"


def check_gh_available() -> tuple[bool, str]:
    """Check gh CLI is installed.

    Auth is checked implicitly by the first API call; `gh auth status` fails
    for GH_TOKEN-only setups on some gh versions.

    Returns: (ok, error_message)
    """
    try:
        result = subprocess.run(
            ["gh", "--version"],
            capture_output=True,
            timeout=5,
        )
        if result.returncode != 0:
            return False, "GitHub CLI (gh) not installed\n  Install: https://cli.github.com/"
        return True, ""

    except FileNotFoundError:
        return False, "GitHub CLI (gh) not found\n  Install: https://cli.github.com/"
    except subprocess.TimeoutExpired:
        return False, "GitHub CLI timed out"


def parse_json_stream(text: str) -> list:
    """Parse one or more concatenated JSON documents.

    `gh api --paginate` prints one document per page with no separator, so
    list endpoints come back as `[...][...]`. Arrays are flattened.
    """
    decoder = json.JSONDecoder()
    items: list = []
    idx = 0
    text = text.strip()
    while idx < len(text):
        value, end = decoder.raw_decode(text, idx)
        if isinstance(value, list):
            items.extend(value)
        else:
            items.append(value)
        idx = end
        while idx < len(text) and text[idx].isspace():
            idx += 1
    return items


def with_user(items: list, operation: str) -> list:
    """Drop entries whose user is null (deleted accounts, "ghost")."""
    kept = [d for d in items if (d.get("user") or {}).get("id") is not None]
    if len(kept) != len(items):
        logger.debug(f"[GH] {operation}: skipped {len(items) - len(kept)} entries without a user")
    return kept


class GitHubBackend:
    """gh-CLI adapter bound to one repository and pull request.

    Args:
        ctx: Run identifiers (repository, PR number, head SHA)
        mode: "reactions" or "reviews"; decides what list_signals returns
        location: "issue" or "commit"; decides where marker comments live
        token: Token exported to gh as GH_TOKEN (falls back to the ambient env)
        cwd: Working directory for gh
    """

    def __init__(
        self,
        ctx: ActionContext,
        mode: str = c.MODE_REACTIONS,
        location: str = c.LOCATION_ISSUE,
        token: str | None = None,
        cwd: str | None = None,
    ):
        self.ctx = ctx
        self.mode = mode
        self.location_kind = location
        self.token = token
        self.cwd = cwd

    # ------------------------------------------------------------------
    # gh plumbing

    def _env(self) -> dict | None:
        if not self.token:
            return None
        env = dict(os.environ)
        env["GH_TOKEN"] = self.token
        return env

    def _gh(self, operation: str, args: list[str]) -> str:
        cmd = ["gh"] + args
        logger.debug(f"[GH] {operation}: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                cwd=self.cwd,
                env=self._env(),
                timeout=GH_TIMEOUT_SECONDS,
            )
        except subprocess.TimeoutExpired:
            raise BackendError(operation, "GitHub API timeout") from None
        except FileNotFoundError:
            raise BackendError(operation, "GitHub CLI (gh) not found") from None
        except subprocess.SubprocessError as e:
            raise BackendError(operation, f"GitHub operation failed: {e}") from None

        if result.returncode != 0:
            raise BackendError(
                operation,
                result.stderr.strip() or f"gh exited {result.returncode}",
                {"command": cmd, "returncode": result.returncode},
            )
        return result.stdout

    def _api(
        self,
        operation: str,
        path: str,
        method: str = "GET",
        fields: dict[str, str] | None = None,
    ):
        args = ["api", "-X", method, path, "-H", "Accept: application/vnd.github+json"]
        for key, value in (fields or {}).items():
            args += ["-f", f"{key}={value}"]
        out = self._gh(operation, args)
        if not out.strip():
            return None
        try:
            return json.loads(out)
        except json.JSONDecodeError:
            raise BackendError(operation, "Invalid JSON from gh") from None

    def _api_list(self, operation: str, path: str) -> list:
        out = self._gh(operation, ["api", "--paginate", path])
        try:
            return parse_json_stream(out)
        except json.JSONDecodeError:
            raise BackendError(operation, "Invalid JSON from gh") from None

    def _repo_path(self) -> str:
        return f"repos/{self.ctx.repository}"

    def _comment_path(self, comment_id: int) -> str:
        if self.location_kind == c.LOCATION_COMMIT:
            return f"{self._repo_path()}/comments/{comment_id}"
        return f"{self._repo_path()}/issues/comments/{comment_id}"

    def _comments_path(self, location: Location) -> str:
        if location.kind == c.LOCATION_COMMIT:
            return f"{self._repo_path()}/commits/{location.ref}/comments"
        return f"{self._repo_path()}/issues/{location.ref}/comments"

    # ------------------------------------------------------------------
    # Run metadata

    def default_location(self) -> Location:
        """Marker location for this run: the PR conversation or the head commit."""
        if self.location_kind == c.LOCATION_COMMIT:
            return Location(c.LOCATION_COMMIT, self.ctx.head_sha)
        return Location(c.LOCATION_ISSUE, str(self.ctx.pull_number))

    def get_workflow_run_url(self) -> str:
        run_id = self.ctx.require_run_id()
        data = self._api("get_workflow_run", f"{self._repo_path()}/actions/runs/{run_id}")
        url = (data or {}).get("html_url")
        if not url:
            url = f"{self.ctx.server_url}/{self.ctx.repository}/actions/runs/{run_id}"
        return url

    # ------------------------------------------------------------------
    # Identities

    def get_pull_request_commits(self) -> list[dict]:
        return self._api_list(
            "list_pull_commits", f"{self._repo_path()}/pulls/{self.ctx.pull_number}/commits"
        )

    def get_authors(self) -> set[int]:
        from deploygate.gate.eligibility import resolve_author_ids
        return resolve_author_ids(self.get_pull_request_commits())

    def get_authenticated_identity(self) -> Actor:
        out = self._gh("get_viewer", ["api", "graphql", "-f", f"query={VIEWER_QUERY}"])
        try:
            viewer = json.loads(out)["data"]["viewer"]
            return Actor(id=viewer["databaseId"], login=viewer["login"])
        except (json.JSONDecodeError, KeyError, TypeError):
            raise BackendError("get_viewer", "Unexpected response for viewer query") from None

    def get_user_permission(self, login: str) -> str:
        data = self._api(
            "get_permission", f"{self._repo_path()}/collaborators/{login}/permission"
        )
        return (data or {}).get("permission", "none")

    # ------------------------------------------------------------------
    # Marker comments

    def list_artifacts(self, location: Location) -> list[Artifact]:
        data = self._api_list("list_comments", self._comments_path(location))
        return [Artifact.from_api(d) for d in data]

    def find_artifact(
        self, location: Location, predicate: Callable[[Artifact], bool]
    ) -> Artifact | None:
        for artifact in self.list_artifacts(location):
            if predicate(artifact):
                return artifact
        return None

    def create_artifact(self, location: Location, body: str) -> Artifact:
        data = self._api(
            "create_comment", self._comments_path(location), method="POST", fields={"body": body}
        )
        if not data or not data.get("id"):
            raise ArtifactCreationFailure(f"Failed to create {location.kind} comment!")
        artifact = Artifact.from_api(data)
        logger.info(f"Created new {location.kind} comment: {artifact.url}")
        return artifact

    def delete_artifact(self, artifact_id: int) -> None:
        self._api("delete_comment", self._comment_path(artifact_id), method="DELETE")

    # ------------------------------------------------------------------
    # Signals

    def list_reactions(self, artifact_id: int) -> list[Reaction]:
        data = self._api_list("list_reactions", f"{self._comment_path(artifact_id)}/reactions")
        return [
            Reaction.from_api(d, parent_artifact_id=artifact_id)
            for d in with_user(data, "list_reactions")
        ]

    def list_reviews(self, commit_sha: str | None = None) -> list[Review]:
        data = self._api_list(
            "list_reviews", f"{self._repo_path()}/pulls/{self.ctx.pull_number}/reviews"
        )
        reviews = [Review.from_api(d) for d in with_user(data, "list_reviews")]
        if commit_sha:
            reviews = [r for r in reviews if r.commit_id == commit_sha]
        return reviews

    def list_signals(self, artifact: Artifact) -> list[Signal]:
        """Reactions on the marker, or reviews on the head commit in reviews mode."""
        if self.mode == c.MODE_REVIEWS:
            return list(self.list_reviews(self.ctx.head_sha))
        return list(self.list_reactions(artifact.id))

    def create_reaction(self, artifact_id: int, content: str) -> Reaction:
        data = self._api(
            "create_reaction",
            f"{self._comment_path(artifact_id)}/reactions",
            method="POST",
            fields={"content": content},
        )
        if not data or not data.get("id"):
            raise BackendError("create_reaction", f"Failed to create reaction with content: {content}")
        return Reaction.from_api(data, parent_artifact_id=artifact_id)

    def delete_reaction(self, artifact_id: int, reaction_id: int) -> None:
        self._api(
            "delete_reaction",
            f"{self._comment_path(artifact_id)}/reactions/{reaction_id}",
            method="DELETE",
        )
