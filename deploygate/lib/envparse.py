"""
Safe parsers for environment-style configuration.

Two sources:
- KEY=value files (optional gate.env), parsed without shell execution
- GitHub Actions inputs, exposed to the process as INPUT_<NAME> variables
"""

import re
from pathlib import Path
from typing import Mapping

FORBIDDEN_PATTERNS = [
    r'`',           # backticks
    r'\$\(',        # command substitution
    r'\$\{',        # variable expansion
    r';',           # command chaining
    r'&&',          # AND chaining
    r'\|\|',        # OR chaining
    r'\|',          # pipe
]

KEY_PATTERN = re.compile(r'^[A-Z][A-Z0-9_]*$')

INPUT_PREFIX = "INPUT_"

TRUE_VALUES = {"true", "yes", "1", "on"}
FALSE_VALUES = {"false", "no", "0", "off"}


def load_env(filepath: str) -> dict:
    """
    Parse env file safely, return dict.

    Raises:
        FileNotFoundError: if file doesn't exist
        ValueError: if syntax invalid or forbidden pattern found
    """
    result = {}
    path = Path(filepath)

    if not path.exists():
        raise FileNotFoundError(f"Env file not found: {filepath}")

    for lineno, line in enumerate(path.read_text().splitlines(), 1):
        line = line.strip()

        if not line or line.startswith('#'):
            continue

        if '=' not in line:
            raise ValueError(f"Line {lineno}: Invalid syntax (no '=')")

        key, _, value = line.partition('=')
        key = key.strip()
        value = value.strip()

        if not KEY_PATTERN.match(key):
            raise ValueError(f"Line {lineno}: Invalid key '{key}'")

        if len(value) >= 2:
            if (value.startswith('"') and value.endswith('"')) or \
               (value.startswith("'") and value.endswith("'")):
                value = value[1:-1]

        for pattern in FORBIDDEN_PATTERNS:
            if re.search(pattern, value):
                raise ValueError(f"Line {lineno}: Forbidden pattern in value")

        result[key] = value

    return result


def env_key_to_input_name(key: str) -> str:
    """POLL_INTERVAL -> poll-interval"""
    return key.lower().replace("_", "-")


def read_action_inputs(environ: Mapping[str, str]) -> dict[str, str]:
    """Collect non-empty INPUT_* variables as {input-name: value}.

    The Actions runner exports `with:` values as INPUT_<NAME>, keeping hyphens.
    Some runners (and act) convert hyphens to underscores, so both spellings
    map to the same hyphenated input name. Empty values count as unset.
    """
    inputs = {}
    for key, value in environ.items():
        if not key.startswith(INPUT_PREFIX):
            continue
        name = key[len(INPUT_PREFIX):].lower().replace("_", "-")
        value = value.strip()
        if name and value:
            inputs[name] = value
    return inputs


def parse_bool(value: str | bool, name: str = "value") -> bool:
    """Parse a YAML-1.2-core-ish boolean string.

    Raises:
        ValueError: if the string is not a recognised boolean
    """
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ValueError(f"Input '{name}' is not a boolean: {value!r}")


def parse_list(value: str | list) -> list[str]:
    """Split a comma/whitespace separated list, dropping empties."""
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    return [part for part in re.split(r'[,\s]+', value.strip()) if part]
