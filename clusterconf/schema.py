"""Validation of configuration content against a JSON schema."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from pathlib import Path

import jsonschema
import yaml

from .types import Config, ConfigError

log = logging.getLogger(__name__)


class SchemaValidationError(ConfigError):
    """Raised when content does not satisfy a schema; ``errors`` lists each violation."""

    def __init__(self, errors):
        self.errors = tuple(errors)
        super().__init__("".join(f"- {error}\n" for error in self.errors))


def _json_type(value) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "integer" if value.is_integer() else "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def _field_name(path) -> str:
    return ".".join(str(part) for part in path) or "(root)"


def _describe(error) -> list[str]:
    field = _field_name(error.absolute_path)
    kind = error.validator
    value = error.validator_value
    instance = error.instance

    if kind == "type":
        expected = value if isinstance(value, str) else "[" + ",".join(value) + "]"
        return [f"{field}: Invalid type. Expected: {expected}, given: {_json_type(instance)}"]
    if kind == "required" and isinstance(instance, Mapping):
        missing = [name for name in value if name not in instance and repr(name) in error.message]
        if missing:
            return [f"{field}: {missing[0]} is required"]
    if kind == "additionalProperties" and isinstance(instance, Mapping) and isinstance(error.schema, Mapping):
        known = error.schema.get("properties", {})
        patterns = error.schema.get("patternProperties", {})
        extras = [
            key for key in instance
            if key not in known and not any(re.search(pattern, key) for pattern in patterns)
        ]
        if extras:
            return [f"{field}: Additional property {key} is not allowed" for key in extras]
    if kind == "enum":
        allowed = ", ".join(json.dumps(item) for item in value)
        return [f"{field}: {field} must be one of the following: {allowed}"]
    if kind == "minimum":
        return [f"{field}: Must be greater than or equal to {json.dumps(value)}"]
    if kind == "maximum":
        return [f"{field}: Must be less than or equal to {json.dumps(value)}"]
    if kind == "pattern":
        return [f"{field}: Does not match pattern '{value}'"]
    return [f"{field}: {error.message}"]


def _load_schema(schema):
    if isinstance(schema, Mapping):
        return dict(schema)
    if isinstance(schema, (bytes, bytearray)):
        schema = schema.decode("utf-8")
    if not isinstance(schema, str):
        raise TypeError(f"expected a schema as JSON text or mapping, got {type(schema).__name__}")
    try:
        loaded = json.loads(schema)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"failed to validate config: invalid schema: {exc}") from exc
    if not isinstance(loaded, (dict, bool)):
        raise ConfigError("failed to validate config: schema must be an object")
    return loaded


def validate_schema_json(content_json, schema_json):
    """Validate JSON text against a schema and return the decoded content."""
    if isinstance(content_json, (bytes, bytearray)):
        content_json = content_json.decode("utf-8")
    if content_json == "null":
        content_json = "{}"
    try:
        instance = json.loads(content_json)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"failed to validate config: {exc}") from exc

    schema = _load_schema(schema_json)
    validator_cls = jsonschema.validators.validator_for(schema, default=jsonschema.Draft7Validator)
    try:
        validator_cls.check_schema(schema)
    except jsonschema.SchemaError as exc:
        raise ConfigError(f"failed to validate config: {exc.message}") from exc

    errors = sorted(
        validator_cls(schema).iter_errors(instance),
        key=lambda error: [str(part) for part in error.absolute_path],
    )
    lines = [line for error in errors for line in _describe(error)]
    log.debug("JSON Schema Validation Result: %d error(s)", len(lines))
    if lines:
        raise SchemaValidationError(lines)
    return instance


def validate_schema(content, schema):
    """Validate a mapping or config document against a schema and return it as plain data."""
    if isinstance(content, Config):
        content = content.to_dict()
    try:
        content_json = json.dumps(content, default=str)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"failed to encode content: {exc}") from exc
    return validate_schema_json(content_json, schema)


def validate_schema_file(path, schema):
    """Read a YAML file and validate its content against a schema."""
    log.debug("Validating file %s against JSON schema...", path)
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise ConfigError(f"Failed to read file {path}: {exc}") from exc
    try:
        content = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to unmarshal the content of {path} to a map: {exc}") from exc
    if content is not None and not isinstance(content, Mapping):
        raise ConfigError(
            f"Failed to unmarshal the content of {path} to a map: got {type(content).__name__}"
        )
    return validate_schema(content, schema)