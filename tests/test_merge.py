from datetime import timedelta

import pytest

from clusterconf import v1alpha2, v1alpha3
from clusterconf.merge import merge_simple, process_simple_config
from clusterconf.types import ConfigError


def _src():
    return v1alpha3.SimpleConfig.from_dict({
        "apiVersion": "k3d.io/v1alpha3",
        "kind": "Simple",
        "name": "test",
        "servers": 1,
        "agents": 2,
        "kubeAPI": {"hostIP": "0.0.0.0", "hostPort": "6443"},
        "image": "rancher/k3s:latest",
        "volumes": [{"volume": "/my/path:/some/path", "nodeFilters": ["all"]}],
        "options": {
            "k3d": {"wait": True, "timeout": "60s"},
            "kubeconfig": {"updateDefaultKubeconfig": True, "switchCurrentContext": True},
        },
    })


def _dest():
    return v1alpha3.SimpleConfig.from_dict({
        "apiVersion": "k3d.io/v1alpha3",
        "kind": "Simple",
        "name": "supertest",
        "agents": 8,
    })


def test_merge_simple_config_prefers_dest_and_fills_from_src():
    src, dest = _src(), _dest()
    merged = merge_simple(dest, src)
    assert merged.name == dest.name == "supertest"
    assert merged.agents == dest.agents == 8
    assert merged.servers == src.servers == 1
    assert merged.image == src.image == "rancher/k3s:latest"


def test_merge_fills_nested_values():
    merged = merge_simple(_dest(), _src())
    assert merged.options.k3d_options.wait is True
    assert merged.options.k3d_options.timeout == timedelta(seconds=60)
    assert merged.expose_api.host_port == "6443"
    assert merged.volumes[0].volume == "/my/path:/some/path"


def test_merge_keeps_non_empty_dest_list():
    dest = _dest()
    dest.volumes = [v1alpha3.VolumeWithNodeFilters(volume="/a:/b", node_filters=["server:0"])]
    merged = merge_simple(dest, _src())
    assert [v.volume for v in merged.volumes] == ["/a:/b"]


def test_merge_does_not_mutate_inputs():
    src, dest = _src(), _dest()
    merged = merge_simple(dest, src)
    merged.volumes[0].volume = "changed"
    assert dest.image == ""
    assert dest.volumes == []
    assert src.volumes[0].volume == "/my/path:/some/path"


def test_merge_registry_create_from_src():
    src = _src()
    src.registries.create = v1alpha3.SimpleConfigRegistryCreateConfig(
        name="registry.localhost", host="0.0.0.0", host_port="5001"
    )
    merged = merge_simple(_dest(), src)
    assert merged.registries.create == v1alpha3.SimpleConfigRegistryCreateConfig(
        name="registry.localhost", host="0.0.0.0", host_port="5001"
    )
    assert merged.registries.create is not src.registries.create


def test_merge_registry_create_fields_combined():
    dest = _dest()
    dest.registries.create = v1alpha3.SimpleConfigRegistryCreateConfig(name="mine")
    src = _src()
    src.registries.create = v1alpha3.SimpleConfigRegistryCreateConfig(
        name="other", host="0.0.0.0", host_port="5001"
    )
    merged = merge_simple(dest, src)
    assert merged.registries.create.name == "mine"
    assert merged.registries.create.host_port == "5001"


def test_merge_rejects_different_types():
    with pytest.raises(ConfigError):
        merge_simple(_dest(), v1alpha2.SimpleConfig(name="x"))


def test_process_simple_config_host_network():
    cfg = v1alpha3.SimpleConfig(network="host")
    cfg.expose_api.host_port = "1234"
    result = process_simple_config(cfg)
    assert result.options.k3d_options.disable_loadbalancer is True
    assert result.expose_api.host_port == "6443"
    assert cfg.expose_api.host_port == "6443"


def test_process_simple_config_other_network_unchanged():
    cfg = v1alpha3.SimpleConfig(network="mynet")
    cfg.expose_api.host_port = "1234"
    process_simple_config(cfg)
    assert cfg.options.k3d_options.disable_loadbalancer is False
    assert cfg.expose_api.host_port == "1234"