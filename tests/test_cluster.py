from datetime import timedelta

import pytest

from kourier.envoy.cluster import DiscoveryType, new_cluster
from kourier.envoy.lb_endpoint import new_lb_endpoint

OPTIONS_KEY = "envoy.extensions.upstreams.http.v3.HttpProtocolOptions"
NAME = "myTestCluster_12345"


@pytest.fixture
def endpoints():
    return [new_lb_endpoint("127.0.0.1", 1234), new_lb_endpoint("127.0.0.2", 1234)]


def test_new_cluster_with_http2(endpoints):
    cluster = new_cluster(
        NAME, timedelta(seconds=5), endpoints, True, None, DiscoveryType.STATIC
    )
    assert cluster["connect_timeout"] == "5s"
    assert cluster["name"] == NAME
    assert cluster["load_assignment"]["endpoints"][0]["lb_endpoints"] == endpoints
    options = cluster["typed_extension_protocol_options"][OPTIONS_KEY]
    assert options == {
        "@type": "type.googleapis.com/" + OPTIONS_KEY,
        "explicit_http_config": {"http2_protocol_options": {}},
    }


def test_new_cluster_without_http2(endpoints):
    cluster = new_cluster(
        NAME, timedelta(seconds=5), endpoints, False, None, DiscoveryType.STATIC
    )
    assert OPTIONS_KEY not in cluster.get("typed_extension_protocol_options", {})


def test_new_cluster_fields(endpoints):
    socket = {"name": "envoy.transport_sockets.tls"}
    cluster = new_cluster(NAME, 1, endpoints, False, socket, "STRICT_DNS")
    assert cluster["type"] == "STRICT_DNS"
    assert cluster["transport_socket"] == socket
    assert cluster["load_assignment"]["cluster_name"] == NAME
    assert "transport_socket" not in new_cluster(
        NAME, 1, endpoints, False, None, DiscoveryType.EDS
    )


def test_new_cluster_rejects_unknown_discovery_type(endpoints):
    with pytest.raises(ValueError):
        new_cluster(NAME, 1, endpoints, False, None, "MAGIC")