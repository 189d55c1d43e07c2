"""Migration of configuration documents from k3d.io/v1alpha2 to k3d.io/v1alpha3."""

from __future__ import annotations

import copy
import logging

from . import v1alpha2, v1alpha3
from .types import Config

log = logging.getLogger(__name__)

_OBJECT_NAME_PREFIX = "k3d"
_NODE_FILTER_TABLE = str.maketrans({"[": ":", "]": None})


def replace_node_filters(node_filters):
    """Rewrite ``group[index]`` node filters into the ``group:index`` form."""
    return [node_filter.translate(_NODE_FILTER_TABLE) for node_filter in node_filters]


def _migrate_simple(config: v1alpha2.SimpleConfig) -> v1alpha3.SimpleConfig:
    k3d_options = config.options.k3d_options
    runtime = config.options.runtime

    extra_args = [
        v1alpha3.K3sArgWithNodeFilters(arg=arg, node_filters=["server:*"])
        for arg in config.options.k3s_options.extra_server_args
    ]
    extra_args += [
        v1alpha3.K3sArgWithNodeFilters(arg=arg, node_filters=["agent:*"])
        for arg in config.options.k3s_options.extra_agent_args
    ]

    create = None
    if config.registries.create:
        create = v1alpha3.SimpleConfigRegistryCreateConfig(
            name=f"{_OBJECT_NAME_PREFIX}-{config.name}-registry",
            host="0.0.0.0",
            host_port="random",
        )

    # Node filters of volumes, ports and env are carried over as they are.
    return v1alpha3.SimpleConfig(
        kind=config.kind,
        api_version=v1alpha3.API_VERSION,
        name=config.name,
        servers=config.servers,
        agents=config.agents,
        expose_api=v1alpha3.SimpleExposureOpts(
            host=config.expose_api.host,
            host_ip=config.expose_api.host_ip,
            host_port=config.expose_api.host_port,
        ),
        image=config.image,
        network=config.network,
        subnet=config.subnet,
        cluster_token=config.cluster_token,
        volumes=[
            v1alpha3.VolumeWithNodeFilters(volume=item.volume, node_filters=list(item.node_filters))
            for item in config.volumes
        ],
        ports=[
            v1alpha3.PortWithNodeFilters(port=item.port, node_filters=list(item.node_filters))
            for item in config.ports
        ],
        env=[
            v1alpha3.EnvVarWithNodeFilters(env_var=item.env_var, node_filters=list(item.node_filters))
            for item in config.env
        ],
        options=v1alpha3.SimpleConfigOptions(
            k3d_options=v1alpha3.SimpleConfigOptionsK3d(
                wait=k3d_options.wait,
                timeout=k3d_options.timeout,
                disable_loadbalancer=k3d_options.disable_loadbalancer,
                disable_image_volume=k3d_options.disable_image_volume,
                no_rollback=k3d_options.no_rollback,
                node_hook_actions=copy.deepcopy(k3d_options.node_hook_actions),
            ),
            k3s_options=v1alpha3.SimpleConfigOptionsK3s(extra_args=extra_args),
            kubeconfig_options=v1alpha3.SimpleConfigOptionsKubeconfig(
                update_default_kubeconfig=config.options.kubeconfig_options.update_default_kubeconfig,
                switch_current_context=config.options.kubeconfig_options.switch_current_context,
            ),
            runtime=v1alpha3.SimpleConfigOptionsRuntime(
                gpu_request=runtime.gpu_request,
                servers_memory=runtime.servers_memory,
                agents_memory=runtime.agents_memory,
                labels=[
                    v1alpha3.LabelWithNodeFilters(
                        label=item.label, node_filters=replace_node_filters(item.node_filters)
                    )
                    for item in config.labels
                ],
            ),
        ),
        registries=v1alpha3.SimpleConfigRegistries(
            use=list(config.registries.use),
            create=create,
            config=config.registries.config,
        ),
    )


def migrate_v1alpha2(config):
    """Migrate a v1alpha2 document to v1alpha3; kinds without changes are returned as they are."""
    if not isinstance(config, Config):
        raise TypeError(f"expected a config document, got {type(config).__name__}")
    log.debug("Migrating v1alpha2 to v1alpha3")
    if isinstance(config, v1alpha2.SimpleConfig):
        migrated = _migrate_simple(config)
        log.debug("Migrated config: %r", migrated)
        return migrated
    log.debug(
        "No migration needed for %s#%s -> %s#%s",
        config.API_VERSION, config.KIND, v1alpha3.API_VERSION, config.KIND,
    )
    return config


MIGRATIONS = {v1alpha2.API_VERSION: migrate_v1alpha2}