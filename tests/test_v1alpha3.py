from datetime import timedelta

import pytest

from clusterconf.types import ConfigError
from clusterconf.v1alpha3 import (
    API_VERSION,
    ClusterConfig,
    ClusterListConfig,
    EnvVarWithNodeFilters,
    K3sArgWithNodeFilters,
    LabelWithNodeFilters,
    PortWithNodeFilters,
    SimpleConfig,
    SimpleConfigOptions,
    SimpleConfigOptionsK3d,
    SimpleConfigOptionsK3s,
    SimpleConfigOptionsKubeconfig,
    SimpleConfigOptionsRuntime,
    SimpleConfigRegistries,
    SimpleConfigRegistryCreateConfig,
    SimpleExposureOpts,
    VolumeWithNodeFilters,
    get_config_by_kind,
)

SIMPLE_DOC = {
    "apiVersion": "k3d.io/v1alpha3",
    "kind": "Simple",
    "name": "test",
    "servers": 1,
    "agents": 2,
    "kubeAPI": {"hostIP": "0.0.0.0", "hostPort": "6443"},
    "image": "rancher/k3s:latest",
    "volumes": [{"volume": "/my/path:/some/path", "nodeFilters": ["all"]}],
    "ports": [
        {"port": "80:80", "nodeFilters": ["loadbalancer"]},
        {"port": "0.0.0.0:443:443", "nodeFilters": ["loadbalancer"]},
    ],
    "env": [{"envVar": "bar=baz", "nodeFilters": ["all"]}],
    "options": {
        "k3d": {
            "wait": True,
            "timeout": "60s",
            "disableLoadbalancer": False,
            "disableImageVolume": False,
        },
        "k3s": {
            "extraArgs": [{"arg": "--tls-san=127.0.0.1", "nodeFilters": ["server:*"]}],
            "nodeLabels": [{"label": "foo=bar", "nodeFilters": ["server:0", "loadbalancer"]}],
        },
        "kubeconfig": {"updateDefaultKubeconfig": True, "switchCurrentContext": True},
        "runtime": {
            "labels": [{"label": "foo=bar", "nodeFilters": ["server:0", "loadbalancer"]}],
        },
    },
}


def _expected_simple():
    return SimpleConfig(
        kind="Simple",
        api_version="k3d.io/v1alpha3",
        name="test",
        servers=1,
        agents=2,
        expose_api=SimpleExposureOpts(host_ip="0.0.0.0", host_port="6443"),
        image="rancher/k3s:latest",
        volumes=[VolumeWithNodeFilters(volume="/my/path:/some/path", node_filters=["all"])],
        ports=[
            PortWithNodeFilters(port="80:80", node_filters=["loadbalancer"]),
            PortWithNodeFilters(port="0.0.0.0:443:443", node_filters=["loadbalancer"]),
        ],
        env=[EnvVarWithNodeFilters(env_var="bar=baz", node_filters=["all"])],
        options=SimpleConfigOptions(
            k3d_options=SimpleConfigOptionsK3d(wait=True, timeout=timedelta(seconds=60)),
            k3s_options=SimpleConfigOptionsK3s(
                extra_args=[K3sArgWithNodeFilters(arg="--tls-san=127.0.0.1", node_filters=["server:*"])],
                node_labels=[LabelWithNodeFilters(label="foo=bar", node_filters=["server:0", "loadbalancer"])],
            ),
            kubeconfig_options=SimpleConfigOptionsKubeconfig(
                update_default_kubeconfig=True, switch_current_context=True
            ),
            runtime=SimpleConfigOptionsRuntime(
                labels=[LabelWithNodeFilters(label="foo=bar", node_filters=["server:0", "loadbalancer"])],
            ),
        ),
    )


def test_simple_config_from_dict_matches_expected():
    assert SimpleConfig.from_dict(SIMPLE_DOC) == _expected_simple()


def test_simple_config_keys_are_case_insensitive():
    lowered = {"apiversion": "k3d.io/v1alpha3", "KIND": "Simple", "NAME": "test", "kubeapi": {"HOSTPORT": "6443"}}
    cfg = SimpleConfig.from_dict(lowered)
    assert cfg.name == "test"
    assert cfg.kind == "Simple"
    assert cfg.expose_api.host_port == "6443"


def test_simple_config_registries_create():
    doc = {
        "apiVersion": "k3d.io/v1alpha3",
        "kind": "Simple",
        "name": "test",
        "servers": 1,
        "agents": 1,
        "registries": {"create": {"name": "registry.localhost", "host": "0.0.0.0", "hostPort": "5001"}},
    }
    expected = SimpleConfig(
        kind="Simple",
        api_version="k3d.io/v1alpha3",
        name="test",
        servers=1,
        agents=1,
        registries=SimpleConfigRegistries(
            create=SimpleConfigRegistryCreateConfig(name="registry.localhost", host="0.0.0.0", host_port="5001")
        ),
    )
    assert SimpleConfig.from_dict(doc) == expected


def test_registries_create_absent_is_none():
    cfg = SimpleConfig.from_dict({"registries": {"use": ["k3d-reg:5000"]}})
    assert cfg.registries.create is None
    assert cfg.registries.use == ["k3d-reg:5000"]


def test_simple_config_round_trip():
    cfg = _expected_simple()
    assert SimpleConfig.from_dict(cfg.to_dict()) == cfg


def test_to_dict_omits_empty_values():
    out = SimpleConfig().to_dict()
    assert "name" not in out
    assert "servers" not in out
    assert out["registries"] == {}
    assert "create" not in out["registries"]


def test_to_dict_writes_timeout_and_token_names():
    cfg = SimpleConfig.from_dict({"token": "token", "options": {"k3d": {"timeout": "60s"}}})
    out = cfg.to_dict()
    assert out["clusterToken"] == "token"
    assert out["options"]["k3d"]["timeout"] == "1m0s"
    assert out["options"]["k3d"]["loadbalancer"] == {}


def test_loadbalancer_overrides_parsed():
    cfg = SimpleConfig.from_dict(
        {"options": {"k3d": {"loadbalancer": {"configOverrides": ["settings.workerConnections=2048"]}}}}
    )
    assert cfg.options.k3d_options.loadbalancer.config_overrides == ["settings.workerConnections=2048"]


def test_invalid_timeout_raises():
    with pytest.raises(ConfigError):
        SimpleConfig.from_dict({"options": {"k3d": {"timeout": "soon"}}})


def test_invalid_servers_raises():
    with pytest.raises(ConfigError):
        SimpleConfig.from_dict({"servers": "many"})


def test_cluster_config_from_dict():
    doc = {
        "apiVersion": "k3d.io/v1alpha3",
        "kind": "Cluster",
        "name": "foo",
        "nodes": [{"name": "foo-node-0", "role": "server"}],
    }
    cfg = ClusterConfig.from_dict(doc)
    assert cfg.kind == "Cluster"
    assert cfg.api_version == "k3d.io/v1alpha3"
    assert cfg.cluster == {"name": "foo", "nodes": [{"name": "foo-node-0", "role": "server"}]}
    assert cfg.cluster_create_opts == {}


def test_cluster_config_round_trip():
    cfg = ClusterConfig.from_dict(
        {"kind": "Cluster", "name": "foo", "options": {"wait": True}, "kubeconfig": {"switchCurrentContext": True}}
    )
    again = ClusterConfig.from_dict(cfg.to_dict())
    assert again == cfg
    assert again.kubeconfig_opts.switch_current_context is True


def test_cluster_list_config_from_dict():
    clusters = [
        {"name": "foo", "nodes": [{"name": "foo-node-0", "role": "server"}]},
        {"name": "bar", "nodes": [{"name": "bar-node-0", "role": "server"}]},
    ]
    cfg = ClusterListConfig.from_dict({"apiVersion": API_VERSION, "kind": "ClusterList", "clusters": clusters})
    assert cfg.clusters == clusters
    assert ClusterListConfig.from_dict(cfg.to_dict()) == cfg


@pytest.mark.parametrize(
    "kind, expected",
    [
        ("simple", SimpleConfig),
        ("Simple", SimpleConfig),
        ("cluster", ClusterConfig),
        ("ClusterList", ClusterListConfig),
    ],
)
def test_get_config_by_kind(kind, expected):
    assert get_config_by_kind(kind) is expected


def test_get_config_by_kind_missing():
    with pytest.raises(ConfigError, match="missing `kind`"):
        get_config_by_kind("")


def test_get_config_by_kind_unknown():
    with pytest.raises(ConfigError, match="unknown `kind` 'Unknown'"):
        get_config_by_kind("Unknown")


def test_documents_report_version_and_kind():
    for cls in (SimpleConfig, ClusterConfig, ClusterListConfig):
        instance = cls()
        assert instance.API_VERSION == "k3d.io/v1alpha3"
        assert instance.KIND == "Simple"