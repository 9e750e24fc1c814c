"""Step outputs for GitHub Actions.

Outputs are appended to the file named by GITHUB_OUTPUT. Without that file
(local runs, tests) they are only logged.
"""

import logging
import secrets
from pathlib import Path

logger = logging.getLogger(__name__)


def format_output(name: str, value: str) -> str:
    """Render one output in the heredoc form, safe for multi-line values."""
    delimiter = f"ghadelimiter_{secrets.token_hex(8)}"
    while delimiter in value:
        delimiter = f"ghadelimiter_{secrets.token_hex(8)}"
    return f"{name}<<{delimiter}\n{value}\n{delimiter}\n"


def write_outputs(outputs: dict[str, object], output_path: Path | None) -> None:
    """Publish outputs; None values are skipped."""
    items = {k: str(v) for k, v in outputs.items() if v is not None}
    for name, value in items.items():
        logger.info(f"Output {name}={value}")

    if output_path is None or not items:
        return

    with open(output_path, "a", encoding="utf-8") as f:
        for name, value in items.items():
            f.write(format_output(name, value))
