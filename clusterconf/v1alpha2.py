"""Configuration documents of API version k3d.io/v1alpha2."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, ClassVar

from .types import (
    Config,
    ConfigError,
    _decode_dataclass,
    _decode_value,
    _encode_dataclass,
    _field,
    normalize_keys,
)

API_VERSION = "k3d.io/v1alpha2"

DEFAULT_CONFIG_TPL = """---
apiVersion: %s
kind: Simple
name: %s
servers: 1
agents: 0
image: %s
"""


@dataclass
class VolumeWithNodeFilters:
    """A volume mount and the nodes it applies to."""

    volume: str = _field("volume", omitempty=True, default="")
    node_filters: list[str] = _field("nodeFilters", omitempty=True, default_factory=list)


@dataclass
class PortWithNodeFilters:
    """A port mapping and the nodes it applies to."""

    port: str = _field("port", omitempty=True, default="")
    node_filters: list[str] = _field("nodeFilters", omitempty=True, default_factory=list)


@dataclass
class LabelWithNodeFilters:
    """A label and the nodes it applies to."""

    label: str = _field("label", omitempty=True, default="")
    node_filters: list[str] = _field("nodeFilters", omitempty=True, default_factory=list)


@dataclass
class EnvVarWithNodeFilters:
    """An environment variable and the nodes it applies to."""

    env_var: str = _field("envVar", omitempty=True, default="")
    node_filters: list[str] = _field("nodeFilters", omitempty=True, default_factory=list)


@dataclass
class SimpleExposureOpts:
    """Where the Kubernetes API is exposed on the host."""

    host: str = _field("host", omitempty=True, default="")
    host_ip: str = _field("hostIP", omitempty=True, default="")
    host_port: str = _field("hostPort", omitempty=True, default="")


@dataclass
class SimpleConfigOptionsKubeconfig:
    """Options about the kubeconfig during cluster creation."""

    update_default_kubeconfig: bool = _field("updateDefaultKubeconfig", omitempty=True, default=False)
    switch_current_context: bool = _field("switchCurrentContext", omitempty=True, default=False)


@dataclass
class SimpleConfigOptionsRuntime:
    """Options passed to the container runtime."""

    gpu_request: str = _field("gpuRequest", omitempty=True, default="")
    servers_memory: str = _field("serversMemory", omitempty=True, default="")
    agents_memory: str = _field("agentsMemory", omitempty=True, default="")


@dataclass
class SimpleConfigOptionsK3d:
    """Options about how the cluster is set up."""

    wait: bool = _field("wait", default=False)
    timeout: timedelta = _field("timeout", omitempty=True, default=timedelta(0))
    disable_loadbalancer: bool = _field("disableLoadbalancer", default=False)
    disable_image_volume: bool = _field("disableImageVolume", default=False)
    no_rollback: bool = _field("disableRollback", default=False)
    prep_disable_host_ip_injection: bool = _field("disableHostIPInjection", default=False)
    node_hook_actions: list[dict[str, Any]] = _field("nodeHookActions", omitempty=True, default_factory=list)


@dataclass
class SimpleConfigOptionsK3s:
    """Extra arguments for the server and agent processes."""

    extra_server_args: list[str] = _field("extraServerArgs", omitempty=True, default_factory=list)
    extra_agent_args: list[str] = _field("extraAgentArgs", omitempty=True, default_factory=list)


@dataclass
class SimpleConfigOptions:
    """All option groups of a simple config."""

    k3d_options: SimpleConfigOptionsK3d = _field("k3d", default_factory=SimpleConfigOptionsK3d)
    k3s_options: SimpleConfigOptionsK3s = _field("k3s", default_factory=SimpleConfigOptionsK3s)
    kubeconfig_options: SimpleConfigOptionsKubeconfig = _field(
        "kubeconfig", default_factory=SimpleConfigOptionsKubeconfig
    )
    runtime: SimpleConfigOptionsRuntime = _field("runtime", default_factory=SimpleConfigOptionsRuntime)


@dataclass
class SimpleConfigRegistries:
    """Registries to use, whether to create one, and the registries.yaml content."""

    use: list[str] = _field("use", omitempty=True, default_factory=list)
    create: bool = _field("create", omitempty=True, default=False)
    config: str = _field("config", omitempty=True, default="")


@dataclass
class SimpleConfig(Config):
    """The top-level simple configuration file."""

    KIND: ClassVar[str] = "Simple"
    API_VERSION: ClassVar[str] = API_VERSION

    kind: str = _field("kind", omitempty=True, default="")
    api_version: str = _field("apiVersion", omitempty=True, default="")
    name: str = _field("name", omitempty=True, default="")
    servers: int = _field("servers", omitempty=True, default=0)
    agents: int = _field("agents", omitempty=True, default=0)
    expose_api: SimpleExposureOpts = _field("kubeAPI", omitempty=True, default_factory=SimpleExposureOpts)
    image: str = _field("image", omitempty=True, default="")
    network: str = _field("network", omitempty=True, default="")
    subnet: str = _field("subnet", omitempty=True, default="")
    cluster_token: str = _field("token", json_key="clusterToken", omitempty=True, default="")
    volumes: list[VolumeWithNodeFilters] = _field("volumes", omitempty=True, default_factory=list)
    ports: list[PortWithNodeFilters] = _field("ports", omitempty=True, default_factory=list)
    labels: list[LabelWithNodeFilters] = _field("labels", omitempty=True, default_factory=list)
    options: SimpleConfigOptions = _field("options", omitempty=True, default_factory=SimpleConfigOptions)
    env: list[EnvVarWithNodeFilters] = _field("env", omitempty=True, default_factory=list)
    registries: SimpleConfigRegistries = _field(
        "registries", omitempty=True, default_factory=SimpleConfigRegistries
    )

    @classmethod
    def from_dict(cls, data):
        """Read a simple config from a mapping; keys match case-insensitively."""
        return _decode_dataclass(cls, normalize_keys(data))

    def to_dict(self):
        """Return the config as a mapping with its serialised key names."""
        return _encode_dataclass(self)


def _normalized_mapping(data, name):
    data = normalize_keys(data)
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"{name}: expected a mapping, got {type(data).__name__}")
    return data


def _encode_meta(config) -> dict:
    out = {}
    if config.kind:
        out["kind"] = config.kind
    if config.api_version:
        out["apiVersion"] = config.api_version
    return out


@dataclass
class ClusterConfig(Config):
    """A single, fully specified cluster."""

    KIND: ClassVar[str] = "Simple"
    API_VERSION: ClassVar[str] = API_VERSION

    kind: str = ""
    api_version: str = ""
    cluster: dict[str, Any] = _field("cluster", default_factory=dict)
    cluster_create_opts: dict[str, Any] = _field("options", default_factory=dict)
    kubeconfig_opts: SimpleConfigOptionsKubeconfig = _field(
        "kubeconfig", default_factory=SimpleConfigOptionsKubeconfig
    )

    _RESERVED: ClassVar[frozenset] = frozenset({"kind", "apiversion", "options", "kubeconfig"})

    @classmethod
    def from_dict(cls, data):
        """Read a cluster config; every key not otherwise known describes the cluster."""
        data = _normalized_mapping(data, cls.__name__)
        options = data.get("options")
        if options is not None and not isinstance(options, Mapping):
            raise ConfigError(f"options: expected a mapping, got {type(options).__name__}")
        return cls(
            kind=_decode_value(str, data.get("kind"), "kind"),
            api_version=_decode_value(str, data.get("apiversion"), "apiVersion"),
            cluster={key: value for key, value in data.items() if key not in cls._RESERVED},
            cluster_create_opts=dict(options or {}),
            kubeconfig_opts=_decode_dataclass(SimpleConfigOptionsKubeconfig, data.get("kubeconfig"), "kubeconfig"),
        )

    def to_dict(self):
        """Return the config with the cluster inlined at the top level."""
        out = _encode_meta(self)
        out.update(copy.deepcopy(self.cluster))
        out["options"] = copy.deepcopy(self.cluster_create_opts)
        out["kubeconfig"] = _encode_dataclass(self.kubeconfig_opts)
        return out


@dataclass
class ClusterListConfig(Config):
    """A list of clusters."""

    KIND: ClassVar[str] = "Simple"
    API_VERSION: ClassVar[str] = API_VERSION

    kind: str = ""
    api_version: str = ""
    clusters: list[dict[str, Any]] = _field("clusters", default_factory=list)

    @classmethod
    def from_dict(cls, data):
        """Read a cluster list config from a mapping."""
        data = _normalized_mapping(data, cls.__name__)
        return cls(
            kind=_decode_value(str, data.get("kind"), "kind"),
            api_version=_decode_value(str, data.get("apiversion"), "apiVersion"),
            clusters=_decode_value(list[dict[str, Any]], data.get("clusters"), "clusters"),
        )

    def to_dict(self):
        """Return the config as a mapping."""
        out = _encode_meta(self)
        out["clusters"] = copy.deepcopy(self.clusters)
        return out


_KINDS = {
    "simple": SimpleConfig,
    "cluster": ClusterConfig,
    "clusterlist": ClusterListConfig,
}


def get_config_by_kind(kind):
    """Return the config class for a (lower-case) kind name."""
    if kind == "":
        raise ConfigError("missing `kind` in config file")
    try:
        return _KINDS[kind]
    except KeyError:
        raise ConfigError(f"unknown `kind` '{kind}' in config file") from None