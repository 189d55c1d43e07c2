# clusterconf

`clusterconf` reads, checks, migrates and merges the YAML configuration files
that describe lightweight Kubernetes clusters. It covers these file versions:

* `k3d.io/v1alpha2` (module `clusterconf.v1alpha2`)
* `k3d.io/v1alpha3` (module `clusterconf.v1alpha3`), the current default

## Installation

```
pip install clusterconf
```

To run the test suite, install the `test` extra:

```
pip install "clusterconf[test]"
pytest
```

## Loading a configuration

```python
from clusterconf.config import load_config_file

cfg = load_config_file("cluster.yaml")
print(cfg.KIND, cfg.API_VERSION, cfg.name)
```

`load_config_file` reads a YAML (or JSON) file. It looks at `apiVersion` and
`kind` in the document, with keys and values compared case-insensitively, and
returns the matching object: `SimpleConfig`, `ClusterConfig` or
`ClusterListConfig` from `clusterconf.v1alpha2` or `clusterconf.v1alpha3`.
A document without `apiVersion` is read as `k3d.io/v1alpha3`. If the version
or kind is unknown, the kind is missing, or a field has the wrong type, it
raises `clusterconf.types.ConfigError` (a `ValueError`). If the data is already
in a mapping, `from_mapping(data)` does the same job.

Every document class has `from_dict(data)` and `to_dict()`. `to_dict()` writes
the serialised key names (`kubeAPI`, `nodeFilters`, ...) and leaves out empty
optional fields. Durations such as `options.k3d.timeout` are held as
`datetime.timedelta`; `clusterconf.types.parse_duration("1m30s")` and
`format_duration(...)` convert between the two forms.

## Validating against a schema

```python
from clusterconf.schema import validate_schema_file, SchemaValidationError

try:
    validate_schema_file("cluster.yaml", schema)
except SchemaValidationError as err:
    print(err)          # one "- <field>: <message>" line per problem
    print(err.errors)   # the same messages as a tuple
```

`schema` is the JSON schema as text, bytes or an already loaded mapping; the
package does not ship one. `validate_schema(content, schema)` checks a mapping
or a config document, and `validate_schema_json(content_json, schema)` checks a
JSON document (`null` is treated as an empty object). On success each returns
the validated content as plain data. `SchemaValidationError` is a
`ConfigError`.

## Migrating older files

```python
from clusterconf.config import migrate
from clusterconf import v1alpha3

new_cfg = migrate(old_cfg, v1alpha3.API_VERSION, schema)
```

`get_migrations(version)` lists the migrations into a version; only migration
from `k3d.io/v1alpha2` to `k3d.io/v1alpha3` exists. For a v1alpha2
`SimpleConfig`, `clusterconf.migrations.migrate_v1alpha2`:

* moves `labels` under `options.runtime.labels`, rewriting their node filters
  from `group[index]` to `group:index` (`replace_node_filters`);
* turns `options.k3s.extraServerArgs` and `extraAgentArgs` into
  `options.k3s.extraArgs` with the node filters `server:*` and `agent:*`;
* turns the `registries.create` flag into a registry-create block named
  `k3d-<name>-registry` on `0.0.0.0` with host port `random`;
* carries volumes, ports and env over unchanged, and sets `apiVersion` to
  `k3d.io/v1alpha3`.

Other kinds are returned as they are. `migrate` then validates the result
against the schema you pass in and raises `ConfigError` if there is no
migration or validation fails.

## Merging and processing

```python
from clusterconf.merge import merge_simple, process_simple_config

merged = merge_simple(dest, src)
process_simple_config(merged)
```

`merge_simple` returns a new config of the same class. Every field set in
`dest` is kept; fields left empty in `dest` are filled from `src`. Merging
configs of different classes raises `ConfigError`.

`process_simple_config` changes the config in place (and returns it) when
`network` is `host`: it disables the load balancer and sets the API host port
to `6443`.

## Finding container images

`clusterconf.images` decides which requested image names refer to tarballs on
disk and which refer to images the container runtime already knows:

```python
from clusterconf.images import find_images, find_runtime_image

from_runtime, from_tar = find_images(runtime, ["busybox", "./images.tar"])
```

Pass any object with a `get_images()` method (the `ImageGetter` protocol) as
`runtime`. Names that are neither an existing file nor a known image are
logged and dropped. `find_runtime_image` returns the matching runtime image or
`None`. Matching follows the usual image-name rules:

* `busybox` matches `busybox:latest`.
* `registry:1234/one` matches `registry:1234/one:latest`.
* `docker.io/library/busybox:version` matches `busybox:version`.

## What the package does not do

`clusterconf` works on configuration data only. It has no command-line tool,
does not ship the JSON schemas, does not turn a simple config into a full
cluster description, and does not talk to a container runtime: it does not
create clusters, start nodes or import images into them.