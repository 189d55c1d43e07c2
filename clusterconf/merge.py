"""Merging simple configs and sanitising them before use."""

from __future__ import annotations

import copy
import dataclasses
import logging
from collections.abc import Mapping

from .types import ConfigError

log = logging.getLogger(__name__)

DEFAULT_API_PORT = "6443"


def _is_zero(value) -> bool:
    if value is None:
        return True
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return all(_is_zero(getattr(value, spec.name)) for spec in dataclasses.fields(value))
    return not value


def _merge_value(dest, src):
    if src is None:
        return dest
    if dest is None:
        return copy.deepcopy(src)
    if dataclasses.is_dataclass(dest) and not isinstance(dest, type):
        if type(dest) is not type(src):
            raise ConfigError(
                f"failed to merge configs: cannot merge {type(src).__name__} into {type(dest).__name__}"
            )
        return _merge_dataclass(dest, src)
    if isinstance(dest, Mapping) and isinstance(src, Mapping):
        merged = copy.deepcopy(dict(dest))
        for key, value in src.items():
            if key not in merged:
                merged[key] = copy.deepcopy(value)
            else:
                merged[key] = _merge_value(merged[key], value)
        return merged
    if _is_zero(dest):
        return copy.deepcopy(src)
    return dest


def _merge_dataclass(dest, src):
    changes = {
        spec.name: _merge_value(getattr(dest, spec.name), getattr(src, spec.name))
        for spec in dataclasses.fields(dest)
        if spec.init
    }
    return dataclasses.replace(dest, **changes)


def merge_simple(dest, src):
    """Merge *src* into a copy of *dest*; values already set in *dest* take priority."""
    if type(dest) is not type(src) or not dataclasses.is_dataclass(dest):
        raise ConfigError(
            f"failed to merge configs: cannot merge {type(src).__name__} into {type(dest).__name__}"
        )
    log.debug("Merging %r into %r", src, dest)
    return _merge_dataclass(copy.deepcopy(dest), src)


def process_simple_config(simple_config):
    """Sanitise a simple config in place; host networking disables the load balancer."""
    if simple_config.network == "host":
        log.info(
            "[SimpleConfig] Hostnetwork selected - disabling injection of docker host into the "
            "cluster, server load balancer and setting the api port to the k3s default"
        )
        simple_config.options.k3d_options.disable_loadbalancer = True
        log.debug(
            "Host network was chosen, changing provided/random api port to k3s:%s", DEFAULT_API_PORT
        )
        simple_config.expose_api.host_port = DEFAULT_API_PORT
    return simple_config