"""Reading configuration documents of any supported API version and migrating them."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

import yaml

from . import v1alpha2, v1alpha3
from .migrations import MIGRATIONS
from .schema import validate_schema
from .types import ConfigError, _decode_value, normalize_keys

log = logging.getLogger(__name__)

DEFAULT_CONFIG_API_VERSION = v1alpha3.API_VERSION

_KIND_LOOKUP = {
    v1alpha2.API_VERSION: v1alpha2.get_config_by_kind,
    v1alpha3.API_VERSION: v1alpha3.get_config_by_kind,
    "": v1alpha3.get_config_by_kind,
}


def _read(data, source: str):
    data = normalize_keys(data) if data is not None else {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"failed to read config '{source}': expected a mapping, got {type(data).__name__}")

    raw_version = _decode_value(str, data.get("apiversion"), "apiVersion")
    api_version = raw_version.lower()
    kind = _decode_value(str, data.get("kind"), "kind").lower()
    log.debug("Trying to read config apiVersion='%s', kind='%s'", api_version, kind)

    lookup = _KIND_LOOKUP.get(api_version)
    if lookup is None:
        raise ConfigError(f"cannot read config with apiversion '{raw_version}'")
    try:
        config_class = lookup(kind)
    except ConfigError as exc:
        raise ConfigError(f"failed to parse config '{source}': {exc}") from exc
    try:
        return config_class.from_dict(data)
    except ConfigError as exc:
        raise ConfigError(f"failed to unmarshal config file '{source}': {exc}") from exc


def from_mapping(data):
    """Build the config document described by a mapping, choosing the class by apiVersion and kind."""
    return _read(data, "")


def load_config_file(path):
    """Read a YAML or JSON config file into its config document."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"failed to read config file '{path}': {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse config file '{path}': {exc}") from exc
    return _read(data, str(path))


def get_migrations(version):
    """Return the migrations into *version*, keyed by the API version they start from."""
    if version == v1alpha3.API_VERSION:
        return dict(MIGRATIONS)
    return {}


def migrate(config, target_version, schema):
    """Migrate *config* to *target_version* and validate the result against *schema*."""
    migration = get_migrations(target_version).get(config.API_VERSION)
    if migration is None:
        raise ConfigError(f"no migration possible from '{config.API_VERSION}' to '{target_version}'")
    try:
        migrated = migration(config)
    except ConfigError as exc:
        raise ConfigError(f"error migrating config: {exc}") from exc
    try:
        validate_schema(migrated, schema)
    except ConfigError as exc:
        raise ConfigError(f"post-migrate schema validation failed: {exc}") from exc
    return migrated