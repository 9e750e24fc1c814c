"""Logging setup for runs inside GitHub Actions.

Records are rendered as workflow commands so the runner annotates warnings
and errors and hides debug lines unless step debug logging is enabled.
"""

import logging
import sys

LEVEL_COMMANDS = {
    logging.DEBUG: "debug",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}


def escape_data(message: str) -> str:
    """Escape a message for use inside a workflow command."""
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class WorkflowCommandFormatter(logging.Formatter):
    """INFO goes out as plain text; other levels as ::debug::/::warning::/::error::."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        command = LEVEL_COMMANDS.get(record.levelno)
        if command is None:
            return message
        return f"::{command}::{escape_data(message)}"


def configure_logging(verbose: bool = False, stream=None) -> logging.Handler:
    """Install a single workflow-command handler on the package logger."""
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(WorkflowCommandFormatter("%(message)s"))

    pkg_logger = logging.getLogger("deploygate")
    for existing in list(pkg_logger.handlers):
        pkg_logger.removeHandler(existing)
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return handler
