from datetime import timedelta

import pytest

from kourier.config import Kourier, Tracing
from kourier.envoy.http_connection_manager import (
    new_http_connection_manager,
    new_route_config,
)
from kourier.envoy.virtual_host import new_virtual_host
from kourier.ext_authz import ExtAuthzSettings, ExternalAuthzConfig, external_authz_filter

DISABLED = ExternalAuthzConfig(enabled=False)
ACCESS_LOG_TYPE = "type.googleapis.com/envoy.extensions.access_loggers.file.v3.FileAccessLog"


def _manager(config):
    return new_http_connection_manager("test", config, DISABLED)


def test_without_access_log_without_proxy_protocol():
    manager = _manager(Kourier(enable_service_access_logging=False, enable_proxy_protocol=False))
    assert len(manager.get("access_log", [])) == 0
    assert manager["use_remote_address"] is False


def test_with_access_log_without_proxy_protocol():
    manager = _manager(Kourier(enable_service_access_logging=True, enable_proxy_protocol=False))
    assert manager["use_remote_address"] is False
    typed = manager["access_log"][0]["typed_config"]
    assert typed["@type"] == ACCESS_LOG_TYPE
    assert typed["path"] == "/dev/stdout"


def test_without_access_log_with_proxy_protocol():
    manager = _manager(Kourier(enable_service_access_logging=False, enable_proxy_protocol=True))
    assert len(manager.get("access_log", [])) == 0
    assert manager["use_remote_address"] is True


def test_with_access_log_with_proxy_protocol():
    manager = _manager(Kourier(enable_service_access_logging=True, enable_proxy_protocol=True))
    assert manager["use_remote_address"] is True
    assert manager["access_log"][0]["typed_config"]["path"] == "/dev/stdout"


def test_new_route_config():
    vhost = new_virtual_host("test", ["foo", "bar"], [{"name": "baz"}])
    got = new_route_config("test", [vhost])
    assert got == {"name": "test", "virtual_hosts": [vhost], "validate_clusters": True}


@pytest.mark.parametrize("hops", [0, 1, 4294967295])
def test_trusted_hops(hops):
    manager = _manager(Kourier(trusted_hops_count=hops))
    assert manager["xff_num_trusted_hops"] == hops


def test_use_remote_address():
    manager = _manager(Kourier(enable_service_access_logging=False, use_remote_address=True))
    assert manager["use_remote_address"] is True


def test_rds_and_idle_timeout():
    manager = new_http_connection_manager(
        "routes", Kourier(idle_timeout=timedelta(seconds=200)), DISABLED
    )
    assert manager["stream_idle_timeout"] == "200s"
    assert manager["rds"]["route_config_name"] == "routes"
    assert manager["rds"]["config_source"]["initial_fetch_timeout"] == "10s"
    assert manager["codec_type"] == "AUTO"
    assert manager["stat_prefix"] == "ingress_http"


def test_only_router_filter_without_ext_authz():
    manager = _manager(Kourier())
    assert [f["name"] for f in manager["http_filters"]] == ["envoy.filters.http.router"]
    assert manager["http_filters"][0]["typed_config"] == {
        "@type": "type.googleapis.com/envoy.extensions.filters.http.router.v3.Router"
    }


def test_ext_authz_filter_comes_before_router():
    http_filter = external_authz_filter(ExtAuthzSettings(host="example.com:50051"))
    enabled = ExternalAuthzConfig(enabled=True, http_filter=http_filter)
    manager = new_http_connection_manager("test", Kourier(), enabled)
    names = [f["name"] for f in manager["http_filters"]]
    assert names == ["envoy.filters.http.ext_authz", "envoy.filters.http.router"]


def test_tracing():
    tracing = Tracing(
        enabled=True,
        collector_host="jaeger.default.svc.cluster.local",
        collector_port=9411,
        collector_endpoint="/api/v2/spans",
    )
    manager = _manager(Kourier(tracing=tracing))
    assert manager["generate_request_id"] is True
    provider = manager["tracing"]["provider"]
    assert provider["name"] == "envoy.tracers.zipkin"
    assert provider["typed_config"] == {
        "@type": "type.googleapis.com/envoy.config.trace.v3.ZipkinConfig",
        "collector_cluster": "tracing-collector",
        "collector_endpoint": "/api/v2/spans",
        "shared_span_context": False,
        "collector_endpoint_version": "HTTP_JSON",
    }


def test_no_tracing_by_default():
    manager = _manager(Kourier())
    assert "tracing" not in manager
    assert "generate_request_id" not in manager