# kourier

Configuration handling and Envoy resource builders for a Knative ingress
gateway. The package turns the `config-kourier` config map into a typed,
immutable configuration object, reads the external authorization settings
from the environment, and builds Envoy xDS resources (clusters, endpoints,
weighted clusters, routes, virtual hosts, route configurations and HTTP
connection managers) as plain Python dictionaries in the shape of Envoy's v3
JSON representation. It has no dependencies outside the standard library.

## Installation

```
pip install .
```

Tests need the `test` extra:

```
pip install ".[test]"
pytest
```

## Reading the gateway configuration

`kourier.config.new_config_from_map` parses config-map data into a frozen
`Kourier` dataclass; keys that are absent keep the values of
`default_config()` (access logging on, everything else off or empty).

```python
from kourier.config import new_config_from_map

cfg = new_config_from_map({
    "enable-service-access-logging": "false",
    "stream-idle-timeout": "200s",
    "cipher-suites": "foo, bar",
    "tracing-collector-full-endpoint": "jaeger.default.svc.cluster.local:9411/api/v2/spans",
})
print(cfg.idle_timeout)           # 0:03:20
print(cfg.cipher_suites)          # frozenset({'foo', 'bar'})
print(cfg.tracing.collector_port) # 9411
```

Recognised keys: `enable-service-access-logging`, `enable-proxy-protocol`,
`cluster-cert-secret`, `stream-idle-timeout`, `trusted-hops-count`,
`use-remote-address`, `cipher-suites`, `enable-cryptomb` and
`tracing-collector-full-endpoint`. Invalid values raise
`kourier.config.ConfigError`.

`new_config_from_configmap` accepts either a mapping with a `data` entry or
an object with a `data` attribute. `parse_duration` parses durations such as
`"1h30m"`, `"200s"` or `"1.5ms"` into a `timedelta`.

### Environment lookups

- `gateway_namespace()` returns `KOURIER_GATEWAY_NAMESPACE`, falling back to
  `SYSTEM_NAMESPACE`; if neither is set it raises `ConfigError`.
- `service_hostnames()` returns the external (`kourier`) and internal
  (`kourier-internal`) service hostnames in that namespace, such as
  `kourier.kourier-system.svc.cluster.local`. The cluster domain comes from
  `CLUSTER_DOMAIN`, else from the `search` line of `/etc/resolv.conf`, else
  `cluster.local`.
- `get_disable_http2(annotations)` returns the value of the
  `kourier.knative.dev/disable-http2` annotation, or an empty string.

## External authorization

`kourier.ext_authz` reads the `KOURIER_EXTAUTHZ_*` variables (`HOST`,
`PROTOCOL`, `TIMEOUT`, `MAXREQUESTBYTES`, `FAILUREMODEALLOW`,
`PACKASBYTES`, `PATHPREFIX`). When `KOURIER_EXTAUTHZ_HOST` is unset or
empty, the result is disabled.

```python
from kourier.ext_authz import load_external_authz

authz = load_external_authz({"KOURIER_EXTAUTHZ_HOST": "authz.example.com:50051"})
print(authz.enabled, authz.cluster["name"])  # True extAuthz
```

The protocol is one of `ExtAuthzProtocol` (`grpc`, `http`, `https`);
`ext_authz_cluster` and `external_authz_filter` build the cluster and HTTP
filter directly from an `ExtAuthzSettings`. Invalid settings (an unknown
protocol, a bad host or port, `PACKASBYTES` with an HTTP protocol) raise
`kourier.ext_authz.ExtAuthzError`. `external_authz()` reads `os.environ`
once and caches the result.

## Building Envoy resources

```python
from kourier.config import default_config
from kourier.envoy.cluster import DiscoveryType, new_cluster
from kourier.envoy.lb_endpoint import new_lb_endpoint
from kourier.envoy.route import new_route
from kourier.envoy.weighted_cluster import new_weighted_cluster
from kourier.envoy.virtual_host import new_virtual_host
from kourier.envoy.http_connection_manager import (
    new_http_connection_manager,
    new_route_config,
)
from kourier.ext_authz import ExternalAuthzConfig

cluster = new_cluster(
    "default/hello", 5.0, [new_lb_endpoint("10.0.0.1", 8080)],
    True, None, DiscoveryType.STATIC,
)
route = new_route(
    "hello", None, "/", [new_weighted_cluster("default/hello", 100, None)],
    30.0, {"K-Network-Hash": "abc"}, "",
)
vhost = new_virtual_host("hello", ["hello.example.com"], [route])
route_config = new_route_config("external_services", [vhost])
manager = new_http_connection_manager(
    "external_services", default_config(), ExternalAuthzConfig()
)
```

Other builders: `new_redirect_route` (redirect to HTTPS),
`new_route_ext_authz_disabled` (a route with the ext_authz filter switched
off) and `new_virtual_host_with_ext_authz` (passes context extensions to the
authorization check). Durations may be given as a `timedelta` or a number of
seconds; `kourier.envoy.headers.duration` renders them as Envoy JSON strings
such as `"1.500s"`.

When `new_http_connection_manager` is given `None` for its external
authorization argument, it uses `external_authz()`, that is, the process
environment.

## What this package does not do

It builds configuration only. It does not watch Kubernetes ingresses, run a
controller, serve the resources to Envoy over xDS/gRPC, or build listeners
and TLS filter chains, and it provides no command-line program.