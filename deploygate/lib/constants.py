"""Shared constants for deploygate."""

# Reaction vocabulary
# https://docs.github.com/en/rest/reactions/reactions#about-reactions
REACTION_APPROVE = "+1"
REACTION_REJECT = "-1"
REACTION_WAIT = "eyes"
REACTION_SUCCESS = "rocket"
REACTION_FAILED = "confused"

# Collaborator permission levels that may vote by default
DEFAULT_REQUIRED_PERMISSIONS = ("write", "admin")

# Review state that counts as an approval
REVIEW_APPROVED = "APPROVED"

DEFAULT_DEPLOY_COMMAND = "/deploy"

# Gate modes
MODE_REACTIONS = "reactions"
MODE_REVIEWS = "reviews"

# Where the marker comment lives in reactions mode
LOCATION_ISSUE = "issue"
LOCATION_COMMIT = "commit"

DEFAULT_POLL_INTERVAL_SECONDS = 10
DEFAULT_TIMEOUT_SECONDS = 0  # unbounded

# Marker bodies
REACTIONS_MARKER_BODY = (
    "A repository maintainer needs to approve this workflow.\n"
    "React with :{approve}: to approve or :{reject}: to reject."
)

REVIEWS_MARKER_PREFIX = "A repository maintainer needs to approve these workflow run(s)."

REVIEWS_MARKER_BODY = "\n\n".join([
    REVIEWS_MARKER_PREFIX,
    "To approve, maintainers can either:",
    "• **Submit an approval review** on this pull request, OR",
    "• **Submit a review comment** starting with `{command}`",
    "Then re-run the failed job(s) via the Checks tab above: {run_url}",
    "Reviews must be on the specific commit SHA of the workflow run to be considered.",
])

# Names of the outputs published to the workflow
OUTPUT_COMMENT_ID = "comment-id"
OUTPUT_APPROVED_BY = "approved-by"
OUTPUT_REJECTED_BY = "rejected-by"
OUTPUT_REVIEW_ID = "review-id"
OUTPUT_REVIEW_TYPE = "review-type"

# Process exit codes
EXIT_APPROVED = 0
EXIT_NOT_APPROVED = 1
EXIT_CONFIG_ERROR = 2
