"""
Configuration loaders for deploygate.

Builds a GateConfig from, lowest to highest precedence:
built-in defaults, an optional YAML file, an optional KEY=value env file,
and the GitHub Actions inputs (INPUT_* variables).
"""

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import yaml

from . import constants as c
from . import envparse
from . import validate
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = ".github/deploy-gate.yml"
SCHEMA_NAME = "gate_config"

# Inputs that are not part of GateConfig
CREDENTIAL_INPUTS = {"github-token"}

DEFAULTS = {
    "mode": c.MODE_REACTIONS,
    "location": c.LOCATION_ISSUE,
    "allow-authors": False,
    "permissions": list(c.DEFAULT_REQUIRED_PERMISSIONS),
    "poll-interval": c.DEFAULT_POLL_INTERVAL_SECONDS,
    "timeout": c.DEFAULT_TIMEOUT_SECONDS,
    "wait": None,  # resolved per mode
    "deploy-command": c.DEFAULT_DEPLOY_COMMAND,
    "approve-reaction": c.REACTION_APPROVE,
    "reject-reaction": c.REACTION_REJECT,
    "wait-reaction": c.REACTION_WAIT,
    "success-reaction": c.REACTION_SUCCESS,
    "failed-reaction": c.REACTION_FAILED,
}

# Older spelling kept working
ALIASES = {
    "check-interval": "poll-interval",
    "authors-can-review": "allow-authors",
    "reviewer-permissions": "permissions",
}

BOOL_KEYS = {"allow-authors", "wait"}
NUMBER_KEYS = {"poll-interval", "timeout"}
LIST_KEYS = {"permissions"}


@dataclass(frozen=True)
class VoteVocabulary:
    """Reaction contents the gate reads (approve/reject) and writes (the rest)."""
    approve: str = c.REACTION_APPROVE
    reject: str = c.REACTION_REJECT
    wait: str = c.REACTION_WAIT
    success: str = c.REACTION_SUCCESS
    failed: str = c.REACTION_FAILED


@dataclass(frozen=True)
class GateConfig:
    """Everything a gate run needs to know, passed by value."""
    mode: str = c.MODE_REACTIONS
    location: str = c.LOCATION_ISSUE
    required_permissions: frozenset = frozenset(c.DEFAULT_REQUIRED_PERMISSIONS)
    authors_can_vote: bool = False
    poll_interval_seconds: float = c.DEFAULT_POLL_INTERVAL_SECONDS
    timeout_seconds: float = c.DEFAULT_TIMEOUT_SECONDS  # 0 = unbounded
    wait: bool = True
    deploy_command: str = c.DEFAULT_DEPLOY_COMMAND
    votes: VoteVocabulary = VoteVocabulary()

    def __post_init__(self):
        for name in ("poll_interval_seconds", "timeout_seconds"):
            if not math.isfinite(getattr(self, name)):
                raise ConfigurationError(f"{name} must be a finite number (got {getattr(self, name)})")
        if self.poll_interval_seconds <= 0:
            raise ConfigurationError(
                f"poll interval must be > 0 (got {self.poll_interval_seconds})"
            )
        if self.timeout_seconds < 0:
            raise ConfigurationError(f"timeout must be >= 0 (got {self.timeout_seconds})")
        if self.votes.approve == self.votes.reject:
            raise ConfigurationError(
                f"approve and reject reactions must differ (both '{self.votes.approve}')"
            )


def load_yaml_config(path: Path) -> dict:
    """Load a YAML config file into {input-name: value}.

    Returns {} when the file doesn't exist.
    """
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from None

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top level must be a mapping")

    logger.debug(f"Loaded config file {path}")
    return {str(k).replace("_", "-"): v for k, v in data.items()}


def load_env_file(path: Path) -> dict:
    """Load a KEY=value file into {input-name: value}."""
    try:
        env = envparse.load_env(str(path))
    except (FileNotFoundError, ValueError) as e:
        raise ConfigurationError(f"{path}: {e}") from None
    return {envparse.env_key_to_input_name(k): v for k, v in env.items()}


def _apply_aliases(raw: dict) -> dict:
    result = {}
    for key, value in raw.items():
        canonical = ALIASES.get(key, key)
        if canonical != key:
            logger.warning(f"Input '{key}' is deprecated, use '{canonical}'")
        result[canonical] = value
    return result


def _coerce(raw: dict) -> dict:
    """Convert string values from env/inputs to the types the schema expects."""
    typed = dict(raw)
    try:
        for key in BOOL_KEYS:
            if typed.get(key) is not None:
                typed[key] = envparse.parse_bool(typed[key], key)
        for key in NUMBER_KEYS:
            value = typed.get(key)
            if isinstance(value, str):
                typed[key] = float(value)
        for key in LIST_KEYS:
            if key in typed:
                typed[key] = [p.lower() for p in envparse.parse_list(typed[key])]
    except ValueError as e:
        raise ConfigurationError(str(e)) from None

    for key in ("mode", "location"):
        if isinstance(typed.get(key), str):
            typed[key] = typed[key].strip().lower()
    return typed


def merge_sources(*sources: Mapping) -> dict:
    """Merge raw config mappings; later sources win, None values are skipped."""
    merged = dict(DEFAULTS)
    for source in sources:
        for key, value in _apply_aliases(dict(source)).items():
            if key in CREDENTIAL_INPUTS or value is None:
                continue
            merged[key] = value
    return merged


def build_config(raw: dict) -> GateConfig:
    """Validate a merged raw mapping and build GateConfig.

    Raises:
        ConfigurationError: on unknown keys, bad types or out-of-range values
    """
    typed = _coerce(raw)

    # Reviews mode checks once unless told to wait; reactions mode always waits.
    if typed.get("wait") is None:
        typed["wait"] = typed.get("mode") != c.MODE_REVIEWS

    validate.validate(typed, SCHEMA_NAME)

    return GateConfig(
        mode=typed["mode"],
        location=typed["location"],
        required_permissions=frozenset(typed["permissions"]),
        authors_can_vote=typed["allow-authors"],
        poll_interval_seconds=float(typed["poll-interval"]),
        timeout_seconds=float(typed["timeout"]),
        wait=typed["wait"],
        deploy_command=typed["deploy-command"],
        votes=VoteVocabulary(
            approve=typed["approve-reaction"],
            reject=typed["reject-reaction"],
            wait=typed["wait-reaction"],
            success=typed["success-reaction"],
            failed=typed["failed-reaction"],
        ),
    )


def load_gate_config(
    environ: Mapping[str, str],
    config_file: Path | None = None,
    env_file: Path | None = None,
) -> GateConfig:
    """Load GateConfig from files and Actions inputs.

    Args:
        environ: Process environment (INPUT_* variables are read from it)
        config_file: YAML file; DEFAULT_CONFIG_FILE is tried when None
        env_file: Optional KEY=value file

    Raises:
        ConfigurationError: if any source is unreadable or the result is invalid
    """
    if config_file is None:
        yaml_raw = load_yaml_config(Path(DEFAULT_CONFIG_FILE))
    elif not config_file.exists():
        raise ConfigurationError(f"Config file not found: {config_file}")
    else:
        yaml_raw = load_yaml_config(config_file)

    env_raw = load_env_file(env_file) if env_file else {}
    inputs = envparse.read_action_inputs(environ)

    return build_config(merge_sources(yaml_raw, env_raw, inputs))
