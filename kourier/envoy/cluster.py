"""Envoy clusters."""

import enum
from datetime import timedelta
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from kourier.envoy.headers import duration, typed_any

HTTP_PROTOCOL_OPTIONS_EXTENSION = "envoy.extensions.upstreams.http.v3.HttpProtocolOptions"


class DiscoveryType(str, enum.Enum):
    """How a cluster discovers its members."""

    STATIC = "STATIC"
    STRICT_DNS = "STRICT_DNS"
    LOGICAL_DNS = "LOGICAL_DNS"
    EDS = "EDS"
    ORIGINAL_DST = "ORIGINAL_DST"


def new_cluster(
    name: str,
    connect_timeout: Union[timedelta, float],
    endpoints: Iterable[Mapping[str, Any]],
    is_http2: bool,
    transport_socket: Optional[Mapping[str, Any]],
    discovery_type: Union[DiscoveryType, str],
) -> Dict[str, Any]:
    """Create a cluster with the given endpoints, optionally speaking HTTP/2 upstream."""
    kind = DiscoveryType(discovery_type)
    cluster: Dict[str, Any] = {
        "name": name,
        "type": kind.value,
        "connect_timeout": duration(connect_timeout),
        "load_assignment": {
            "cluster_name": name,
            "endpoints": [{"lb_endpoints": list(endpoints)}],
        },
    }
    if transport_socket is not None:
        cluster["transport_socket"] = transport_socket

    if is_http2:
        options = typed_any(
            HTTP_PROTOCOL_OPTIONS_EXTENSION,
            {"explicit_http_config": {"http2_protocol_options": {}}},
        )
        cluster["typed_extension_protocol_options"] = {
            HTTP_PROTOCOL_OPTIONS_EXTENSION: options,
        }

    return cluster