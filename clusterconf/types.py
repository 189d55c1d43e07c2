"""Shared configuration primitives: errors, the config base class, durations and key handling."""

from __future__ import annotations

import copy
import dataclasses
import functools
import inspect
import re
import typing
from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import timedelta
from decimal import Decimal
from types import UnionType
from typing import Any, ClassVar

DEFAULT_TARGETS_NODEFILTERS_PORT_MAPPINGS = ("servers:*:proxy", "agents:*:proxy")


class ConfigError(ValueError):
    """Raised when a configuration document cannot be read or is invalid."""


class Config(ABC):
    """Base of every top-level configuration document."""

    KIND: ClassVar[str] = ""
    API_VERSION: ClassVar[str] = ""

    @classmethod
    @abstractmethod
    def from_dict(cls, data):
        """Build the document from a mapping as read from a config file."""

    @abstractmethod
    def to_dict(self):
        """Return the document as a plain mapping."""


# ---------------------------------------------------------------------------
# durations

_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_NUMBER = r"(?:\d+\.?\d*|\.\d+)"
_UNIT = r"(?:ns|us|µs|μs|ms|s|m|h)"
_DURATION = re.compile(rf"[-+]?(?:{_NUMBER}{_UNIT})+")
_COMPONENT = re.compile(rf"({_NUMBER})({_UNIT})")


def _from_nanoseconds(nanoseconds: int) -> timedelta:
    micro = abs(nanoseconds) // 1000
    return timedelta(microseconds=-micro if nanoseconds < 0 else micro)


def parse_duration(text) -> timedelta:
    """Parse a duration such as ``"1m30s"``; integers are taken as nanoseconds."""
    if isinstance(text, timedelta):
        return text
    if isinstance(text, bool) or not isinstance(text, (int, str)):
        raise ConfigError(f"invalid duration {text!r}")
    if isinstance(text, int):
        return _from_nanoseconds(text)

    signed = text[:1] in ("+", "-")
    negative = text.startswith("-")
    unsigned = text[1:] if signed else text
    if unsigned == "0":
        return timedelta(0)
    if not _DURATION.fullmatch(text):
        raise ConfigError(f"invalid duration {text!r}")

    total = 0
    for match in _COMPONENT.finditer(unsigned):
        number, unit = match.groups()
        whole, _, fraction = number.partition(".")
        scale = _UNITS[unit]
        total += int(whole or 0) * scale
        if fraction:
            total += int(fraction) * scale // 10 ** len(fraction)
    return _from_nanoseconds(-total if negative else total)


def _with_fraction(value: int, unit: int) -> str:
    whole, rest = divmod(value, unit)
    if not rest:
        return str(whole)
    digits = str(rest).rjust(len(str(unit)) - 1, "0").rstrip("0")
    return f"{whole}.{digits}"


def format_duration(value: timedelta) -> str:
    """Render a duration the way the config files write it, e.g. ``"1m30s"``."""
    if not isinstance(value, timedelta):
        raise TypeError(f"expected a timedelta, got {type(value).__name__}")
    nanoseconds = (value // timedelta(microseconds=1)) * 1000
    if nanoseconds == 0:
        return "0s"
    sign = "-" if nanoseconds < 0 else ""
    nanoseconds = abs(nanoseconds)

    if nanoseconds < 1_000:
        return f"{sign}{nanoseconds}ns"
    if nanoseconds < 1_000_000:
        return f"{sign}{_with_fraction(nanoseconds, 1_000)}µs"
    if nanoseconds < 1_000_000_000:
        return f"{sign}{_with_fraction(nanoseconds, 1_000_000)}ms"

    seconds_total, fraction = divmod(nanoseconds, 1_000_000_000)
    hours, rest = divmod(seconds_total, 3600)
    minutes, seconds = divmod(rest, 60)
    text = str(seconds)
    if fraction:
        text += "." + str(fraction).rjust(9, "0").rstrip("0")
    if hours:
        prefix = f"{hours}h{minutes}m"
    elif minutes:
        prefix = f"{minutes}m"
    else:
        prefix = ""
    return f"{sign}{prefix}{text}s"


# ---------------------------------------------------------------------------
# keys

def normalize_keys(data):
    """Return a copy of *data* with every mapping key lower-cased, recursively."""
    if isinstance(data, Mapping):
        return {str(key).lower(): normalize_keys(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [normalize_keys(item) for item in data]
    return data


# ---------------------------------------------------------------------------
# annotation resolution for dataclass fields

_KNOWN_TYPES = {
    "str": str,
    "int": int,
    "bool": bool,
    "float": float,
    "dict": dict,
    "list": list,
    "Any": Any,
    "typing.Any": Any,
    "timedelta": timedelta,
    "datetime.timedelta": timedelta,
    "None": type(None),
}


def _split_top(text: str, separator: str) -> list[str]:
    parts, depth, current = [], 0, []
    for char in text:
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
        if char == separator and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    parts.append("".join(current).strip())
    return parts


def _parse_annotation(text: str, module):
    text = text.strip()
    if text[:1] in ("'", '"') and text[-1:] == text[:1]:
        return _parse_annotation(text[1:-1], module)

    alternatives = _split_top(text, "|")
    if len(alternatives) > 1:
        return typing.Union[tuple(_parse_annotation(part, module) for part in alternatives)]

    if text.endswith("]") and "[" in text:
        head, inner = text[:-1].split("[", 1)
        head = head.strip()
        args = [_parse_annotation(part, module) for part in _split_top(inner, ",")]
        if head in ("Optional", "typing.Optional"):
            return typing.Optional[args[0]]
        if head in ("list", "List", "typing.List"):
            return list[args[0]]
        if head in ("dict", "Dict", "typing.Dict"):
            return dict[args[0], args[1]]
        if head in ("Union", "typing.Union"):
            return typing.Union[tuple(args)]
        raise TypeError(f"unsupported annotation {text!r}")

    if text in _KNOWN_TYPES:
        return _KNOWN_TYPES[text]
    found = getattr(module, text, None) if module is not None else None
    if found is None:
        raise TypeError(f"cannot resolve annotation {text!r}")
    return found


@functools.lru_cache(maxsize=None)
def _field_types(cls) -> dict:
    resolved = {}
    for spec in dataclasses.fields(cls):
        annotation = spec.type
        if isinstance(annotation, str):
            owner = next(
                (base for base in cls.__mro__ if spec.name in base.__dict__.get("__annotations__", {})),
                cls,
            )
            annotation = _parse_annotation(annotation, inspect.getmodule(owner))
        resolved[spec.name] = annotation
    return resolved


# ---------------------------------------------------------------------------
# dataclass codec shared by the versioned config modules

def _field(key, *, json_key=None, omitempty=False,
           default=dataclasses.MISSING, default_factory=dataclasses.MISSING):
    metadata = {"key": key, "json": json_key or key, "omitempty": omitempty}
    return dataclasses.field(default=default, default_factory=default_factory, metadata=metadata)


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def _weak_str(value, path):
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        text = format(Decimal(repr(value)), "f")
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        return text
    raise ConfigError(f"{path}: expected a string, got {type(value).__name__}")


def _weak_int(value, path):
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        if isinstance(value, float):
            return int(value)
        if isinstance(value, str):
            return int(value, 0) if value else 0
    except (ValueError, OverflowError) as exc:
        raise ConfigError(f"{path}: cannot parse {value!r} as an integer") from exc
    raise ConfigError(f"{path}: expected an integer, got {type(value).__name__}")


def _weak_bool(value, path):
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        if value == "" or value in _FALSE:
            return False
        if value in _TRUE:
            return True
        raise ConfigError(f"{path}: cannot parse {value!r} as a boolean")
    raise ConfigError(f"{path}: expected a boolean, got {type(value).__name__}")


def _as_list(value, path):
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, Mapping):
        if not value:
            return []
        raise ConfigError(f"{path}: expected a list, got a mapping")
    return [value]


def _decode_value(tp, value, path):
    origin = typing.get_origin(tp)
    if origin in (typing.Union, UnionType):
        if value is None:
            return None
        inner = next(arg for arg in typing.get_args(tp) if arg is not type(None))
        return _decode_value(inner, value, path)
    if tp is Any:
        return copy.deepcopy(value)
    if tp is str:
        return _weak_str(value, path)
    if tp is bool:
        return _weak_bool(value, path)
    if tp is int:
        return _weak_int(value, path)
    if tp is timedelta:
        if value is None:
            return timedelta(0)
        try:
            return parse_duration(value)
        except ConfigError as exc:
            raise ConfigError(f"{path}: {exc}") from exc
    if origin is list:
        (element,) = typing.get_args(tp)
        return [
            _decode_value(element, item, f"{path}[{position}]")
            for position, item in enumerate(_as_list(value, path))
        ]
    if origin is dict or tp is dict:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise ConfigError(f"{path}: expected a mapping, got {type(value).__name__}")
        return copy.deepcopy(dict(value))
    if dataclasses.is_dataclass(tp):
        return _decode_dataclass(tp, value, path)
    raise TypeError(f"unsupported field type {tp!r}")


def _decode_dataclass(cls, data, path=""):
    if data is None:
        return cls()
    if not isinstance(data, Mapping):
        raise ConfigError(f"{path or cls.__name__}: expected a mapping, got {type(data).__name__}")
    lowered = {str(key).lower(): value for key, value in data.items()}
    hints = _field_types(cls)
    kwargs = {}
    for spec in dataclasses.fields(cls):
        if not spec.init:
            continue
        key = spec.metadata.get("key", spec.name)
        if key.lower() in lowered:
            kwargs[spec.name] = _decode_value(hints[spec.name], lowered[key.lower()], _join(path, key))
    return cls(**kwargs)


def _is_empty(value) -> bool:
    return value is None or (not dataclasses.is_dataclass(value) and not value)


def _encode_value(value):
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _encode_dataclass(value)
    if isinstance(value, timedelta):
        return format_duration(value)
    if isinstance(value, (list, tuple)):
        return [_encode_value(item) for item in value]
    if isinstance(value, Mapping):
        return copy.deepcopy(dict(value))
    return value


def _encode_dataclass(obj) -> dict:
    out = {}
    for spec in dataclasses.fields(obj):
        value = getattr(obj, spec.name)
        if spec.metadata.get("omitempty") and _is_empty(value):
            continue
        out[spec.metadata.get("json", spec.name)] = _encode_value(value)
    return out