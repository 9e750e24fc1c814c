"""
JSON Schema checks for gate configuration.

The merged raw configuration (defaults, YAML file, env file, action inputs) is
checked against deploygate/schemas/<name>.schema.json before GateConfig is
built. Every violation is reported at once, so a workflow author can fix all
bad inputs in one edit instead of one failed run per input.
"""

import json
from functools import lru_cache
from pathlib import Path

from jsonschema import Draft202012Validator

from deploygate.lib.errors import ConfigurationError

SCHEMAS_DIR = Path(__file__).parent.parent / "schemas"


class ValidationError(ConfigurationError):
    """Configuration does not match its schema.

    path is the input name of the first violation ("(root)" for missing or
    unknown keys); problems holds "<input>: <message>" for every violation.
    """

    def __init__(self, schema_name: str, problems: list[str], path: str | None = None):
        self.schema_name = schema_name
        self.problems = problems
        self.path = path
        super().__init__(f"[{schema_name}] invalid inputs: " + "; ".join(problems))


@lru_cache(maxsize=None)
def get_validator(schema_name: str) -> Draft202012Validator:
    schema_path = SCHEMAS_DIR / f"{schema_name}.schema.json"
    if not schema_path.exists():
        raise ConfigurationError(f"Schema file not found: {schema_path}")
    schema = json.loads(schema_path.read_text())
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


def _input_name(error) -> str:
    return ".".join(str(p) for p in error.absolute_path) or "(root)"


def validate(data: dict, schema_name: str) -> None:
    """Check data against the named schema.

    Raises:
        ValidationError: listing every violation, ordered by input name
    """
    errors = sorted(get_validator(schema_name).iter_errors(data), key=_input_name)
    if not errors:
        return

    problems = [f"{_input_name(e)}: {e.message}" for e in errors]
    raise ValidationError(schema_name, problems, _input_name(errors[0]))
