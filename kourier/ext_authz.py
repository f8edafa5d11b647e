"""External authorization: settings from the environment, the Envoy cluster and HTTP filter."""

from __future__ import annotations

import copy
import enum
import functools
import os
from dataclasses import dataclass
from typing import Any, Mapping

EXT_AUTHZ_CLUSTER_NAME = "extAuthz"
UNIX_MAX_PORT = 65535
ENV_PREFIX = "KOURIER_EXTAUTHZ"
HOST_ENV = f"{ENV_PREFIX}_HOST"

HTTP_PROTOCOL_OPTIONS_EXTENSION = "envoy.extensions.upstreams.http.v3.HttpProtocolOptions"
HTTP_EXTERNAL_AUTHORIZATION_FILTER = "envoy.filters.http.ext_authz"
EXT_AUTHZ_TYPE = "envoy.extensions.filters.http.ext_authz.v3.ExtAuthz"

_TYPE_URL_PREFIX = "type.googleapis.com/"
_CONNECT_TIMEOUT_NANOS = 5 * 1_000_000_000

_UINT32_MAX = 0xFFFFFFFF
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class ExtAuthzError(ValueError):
    """Raised when the external authorization settings are invalid."""


class ExtAuthzProtocol(str, enum.Enum):
    """Protocol used to reach the external authorization service."""

    GRPC = "grpc"
    HTTP = "http"
    HTTPS = "https"


def is_valid_ext_authz_protocol(protocol: str) -> bool:
    """Tell whether ``protocol`` names a supported protocol."""
    try:
        ExtAuthzProtocol(protocol)
    except ValueError:
        return False
    return True


def _as_protocol(protocol: str) -> ExtAuthzProtocol:
    try:
        return ExtAuthzProtocol(protocol)
    except ValueError:
        valid = ", ".join(p.value for p in ExtAuthzProtocol)
        raise ExtAuthzError(
            f"protocol {protocol} is invalid, must be one of: {valid}"
        ) from None


@dataclass(frozen=True)
class ExtAuthzSettings:
    """Settings of the external authorization service."""

    host: str = ""
    failure_mode_allow: bool = False
    max_request_bytes: int = 8192
    timeout: int = 2000
    protocol: ExtAuthzProtocol = ExtAuthzProtocol.GRPC
    pack_as_bytes: bool = False
    path_prefix: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "protocol", _as_protocol(self.protocol))


@dataclass(frozen=True)
class ExternalAuthzConfig:
    """The resolved external authorization configuration."""

    enabled: bool = False
    cluster: dict[str, Any] | None = None
    http_filter: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Envoy representation helpers


def _typed_any(type_name: str, body: Mapping[str, Any]) -> dict[str, Any]:
    return {"@type": _TYPE_URL_PREFIX + type_name, **body}


def _duration(nanos: int) -> str:
    sign = "-" if nanos < 0 else ""
    seconds, rest = divmod(abs(nanos), 1_000_000_000)
    if rest == 0:
        return f"{sign}{seconds}s"
    if rest % 1_000_000 == 0:
        fraction = f"{rest // 1_000_000:03d}"
    elif rest % 1_000 == 0:
        fraction = f"{rest // 1_000:06d}"
    else:
        fraction = f"{rest:09d}"
    return f"{sign}{seconds}.{fraction}s"


def _client_headers() -> list[dict[str, str]]:
    return [{"key": "client", "value": "kourier"}]


def ext_authz_cluster(host: str, port: int, protocol: str) -> dict[str, Any]:
    """Build the Envoy cluster pointing at the external authorization service."""
    protocol = _as_protocol(protocol)
    if protocol is ExtAuthzProtocol.GRPC:
        explicit = {"http2_protocol_options": {}}
    else:
        explicit = {"http_protocol_options": {}}

    options = _typed_any(
        HTTP_PROTOCOL_OPTIONS_EXTENSION, {"explicit_http_config": explicit}
    )

    return {
        "name": EXT_AUTHZ_CLUSTER_NAME,
        "type": "STRICT_DNS",
        "typed_extension_protocol_options": {HTTP_PROTOCOL_OPTIONS_EXTENSION: options},
        "connect_timeout": _duration(_CONNECT_TIMEOUT_NANOS),
        "load_assignment": {
            "cluster_name": EXT_AUTHZ_CLUSTER_NAME,
            "endpoints": [
                {
                    "lb_endpoints": [
                        {
                            "endpoint": {
                                "address": {
                                    "socket_address": {
                                        "protocol": "TCP",
                                        "address": host,
                                        "port_value": port,
                                        "ipv4_compat": True,
                                    }
                                }
                            }
                        }
                    ]
                }
            ],
        },
    }


def external_authz_filter(settings: ExtAuthzSettings) -> dict[str, Any]:
    """Build the ext_authz HTTP filter for the given settings."""
    if settings.protocol is not ExtAuthzProtocol.GRPC and settings.pack_as_bytes:
        raise ExtAuthzError(
            "pack as bytes option cannot be set when using http protocol"
        )

    timeout = _duration(settings.timeout * 1_000_000)

    body: dict[str, Any] = {"allow_partial_message": True}
    if settings.max_request_bytes:
        body["max_request_bytes"] = settings.max_request_bytes
    if settings.pack_as_bytes:
        body["pack_as_bytes"] = True

    ext_authz: dict[str, Any] = {"transport_api_version": "V3"}
    if settings.failure_mode_allow:
        ext_authz["failure_mode_allow"] = True
    ext_authz["with_request_body"] = body

    if settings.protocol is ExtAuthzProtocol.GRPC:
        ext_authz["grpc_service"] = {
            "envoy_grpc": {"cluster_name": EXT_AUTHZ_CLUSTER_NAME},
            "timeout": timeout,
            "initial_metadata": _client_headers(),
        }
    else:
        service: dict[str, Any] = {
            "server_uri": {
                "uri": f"{settings.protocol.value}://{settings.host}",
                "cluster": EXT_AUTHZ_CLUSTER_NAME,
                "timeout": timeout,
            },
        }
        if settings.path_prefix:
            service["path_prefix"] = settings.path_prefix
        service["authorization_request"] = {"headers_to_add": _client_headers()}
        ext_authz["http_service"] = service

    return {
        "name": HTTP_EXTERNAL_AUTHORIZATION_FILTER,
        "typed_config": _typed_any(EXT_AUTHZ_TYPE, copy.deepcopy(ext_authz)),
    }


# ---------------------------------------------------------------------------
# Environment


def _parse_bool(name: str, raw: str) -> bool:
    if raw in _TRUE_WORDS:
        return True
    if raw in _FALSE_WORDS:
        return False
    raise ExtAuthzError(f"{name}: {raw!r} is not a boolean")


def _parse_int(name: str, raw: str, minimum: int, maximum: int) -> int:
    text = raw
    negative = False
    if text[:1] in ("+", "-"):
        negative = text[0] == "-"
        text = text[1:]
    try:
        if len(text) > 1 and text[0] == "0" and text[1] not in "xXoObB":
            value = int(text[1:].lstrip("_"), 8)
        else:
            value = int(text, 0)
    except ValueError:
        raise ExtAuthzError(f"{name}: {raw!r} is not a valid integer") from None
    if negative:
        value = -value
    if not minimum <= value <= maximum:
        raise ExtAuthzError(f"{name}: {raw!r} is out of range")
    return value


def settings_from_env(environ: Mapping[str, str]) -> ExtAuthzSettings:
    """Read the ``KOURIER_EXTAUTHZ_*`` variables into settings."""
    defaults = ExtAuthzSettings()
    values: dict[str, Any] = {}

    def lookup(suffix: str) -> str | None:
        return environ.get(f"{ENV_PREFIX}_{suffix}")

    if (raw := lookup("HOST")) is not None:
        values["host"] = raw
    if (raw := lookup("FAILUREMODEALLOW")) is not None:
        values["failure_mode_allow"] = _parse_bool(f"{ENV_PREFIX}_FAILUREMODEALLOW", raw)
    if (raw := lookup("MAXREQUESTBYTES")) is not None:
        values["max_request_bytes"] = _parse_int(
            f"{ENV_PREFIX}_MAXREQUESTBYTES", raw, 0, _UINT32_MAX
        )
    if (raw := lookup("TIMEOUT")) is not None:
        values["timeout"] = _parse_int(f"{ENV_PREFIX}_TIMEOUT", raw, _INT64_MIN, _INT64_MAX)
    if (raw := lookup("PROTOCOL")) is not None:
        values["protocol"] = raw
    if (raw := lookup("PACKASBYTES")) is not None:
        values["pack_as_bytes"] = _parse_bool(f"{ENV_PREFIX}_PACKASBYTES", raw)
    if (raw := lookup("PATHPREFIX")) is not None:
        values["path_prefix"] = raw

    values.setdefault("protocol", defaults.protocol)
    return ExtAuthzSettings(**values)


def _split_host_port(hostport: str) -> tuple[str, str]:
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise ExtAuthzError(f"address {hostport}: missing ']' in address")
        rest = hostport[end + 1:]
        if not rest:
            raise ExtAuthzError(f"address {hostport}: missing port in address")
        if not rest.startswith(":") or ":" in rest[1:]:
            raise ExtAuthzError(f"address {hostport}: unexpected text after host")
        return hostport[1:end], rest[1:]
    host, colon, port = hostport.rpartition(":")
    if not colon:
        raise ExtAuthzError(f"address {hostport}: missing port in address")
    if ":" in host:
        raise ExtAuthzError(f"address {hostport}: too many colons in address")
    if "[" in host or "]" in host or "[" in port or "]" in port:
        raise ExtAuthzError(f"address {hostport}: unexpected bracket in address")
    return host, port


def load_external_authz(environ: Mapping[str, str]) -> ExternalAuthzConfig:
    """Resolve the external authorization configuration from an environment."""
    if not environ.get(HOST_ENV, ""):
        return ExternalAuthzConfig(enabled=False)

    settings = settings_from_env(environ)
    host, port_text = _split_host_port(settings.host)

    try:
        port = int(port_text, 10)
    except ValueError:
        raise ExtAuthzError(f"invalid port {port_text!r}") from None
    if port > UNIX_MAX_PORT:
        raise ExtAuthzError(f"port {port} bigger than {UNIX_MAX_PORT}")
    if port < 0:
        raise ExtAuthzError(f"invalid port {port}")

    return ExternalAuthzConfig(
        enabled=True,
        cluster=ext_authz_cluster(host, port, settings.protocol),
        http_filter=external_authz_filter(settings),
    )


@functools.lru_cache(maxsize=None)
def external_authz() -> ExternalAuthzConfig:
    """Return the process-wide configuration, read once from the environment."""
    return load_external_authz(os.environ)