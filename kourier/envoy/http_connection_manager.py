"""HTTP connection manager and route configuration."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from kourier.config import Kourier
from kourier.envoy.headers import duration, typed_any
from kourier.ext_authz import ExternalAuthzConfig, external_authz

ROUTER_FILTER = "envoy.filters.http.router"
ROUTER_TYPE = "envoy.extensions.filters.http.router.v3.Router"
FILE_ACCESS_LOG_TYPE = "envoy.extensions.access_loggers.file.v3.FileAccessLog"
ZIPKIN_TRACER = "envoy.tracers.zipkin"
ZIPKIN_CONFIG_TYPE = "envoy.config.trace.v3.ZipkinConfig"
TRACING_COLLECTOR_CLUSTER = "tracing-collector"


def new_http_connection_manager(
    route_config_name: str,
    kourier_config: Kourier,
    ext_authz: ExternalAuthzConfig | None = None,
) -> dict[str, Any]:
    """Create a connection manager that fetches ``route_config_name`` over ADS."""
    if ext_authz is None:
        ext_authz = external_authz()

    filters: list[Mapping[str, Any]] = []
    if ext_authz.enabled and ext_authz.http_filter is not None:
        filters.append(ext_authz.http_filter)
    filters.append({"name": ROUTER_FILTER, "typed_config": typed_any(ROUTER_TYPE, {})})

    manager: dict[str, Any] = {
        "codec_type": "AUTO",
        "stat_prefix": "ingress_http",
        "http_filters": filters,
        "rds": {
            "config_source": {
                "resource_api_version": "V3",
                "ads": {},
                "initial_fetch_timeout": duration(10),
            },
            "route_config_name": route_config_name,
        },
        "stream_idle_timeout": duration(kourier_config.idle_timeout),
        "xff_num_trusted_hops": kourier_config.trusted_hops_count,
        "use_remote_address": kourier_config.use_remote_address,
    }

    if kourier_config.enable_proxy_protocol:
        manager["use_remote_address"] = True

    if kourier_config.enable_service_access_logging:
        manager["access_log"] = [
            {
                "name": "envoy.file_access_log",
                "typed_config": typed_any(FILE_ACCESS_LOG_TYPE, {"path": "/dev/stdout"}),
            }
        ]

    tracing = kourier_config.tracing
    if tracing.enabled:
        manager["generate_request_id"] = True
        zipkin = typed_any(
            ZIPKIN_CONFIG_TYPE,
            {
                "collector_cluster": TRACING_COLLECTOR_CLUSTER,
                "collector_endpoint": tracing.collector_endpoint,
                "shared_span_context": False,
                "collector_endpoint_version": "HTTP_JSON",
            },
        )
        manager["tracing"] = {"provider": {"name": ZIPKIN_TRACER, "typed_config": zipkin}}

    return manager


def new_route_config(
    name: str, virtual_hosts: Iterable[Mapping[str, Any]]
) -> dict[str, Any]:
    """Create a route configuration that validates the clusters it references."""
    return {
        "name": name,
        "virtual_hosts": list(virtual_hosts),
        "validate_clusters": True,
    }