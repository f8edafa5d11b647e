"""Gateway settings: constants, the config-kourier map parser and environment lookups."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from fractions import Fraction
from typing import Any, Callable, Mapping
from urllib.parse import unquote, urlsplit

CONTROLLER_NAME = "net-kourier-controller"
INTERNAL_SERVICE_NAME = "kourier-internal"
EXTERNAL_SERVICE_NAME = "kourier"

HTTP_PORT_EXTERNAL = 8080
HTTP_PORT_LOCAL = 8081
HTTPS_PORT_LOCAL = 8444
HTTPS_PORT_EXTERNAL = 8443
HTTP_PORT_PROB = 8090
HTTPS_PORT_PROB = 9443

INTERNAL_KOURIER_DOMAIN = "internalkourier"
GATEWAY_NAMESPACE_ENV = "KOURIER_GATEWAY_NAMESPACE"
SYSTEM_NAMESPACE_ENV = "SYSTEM_NAMESPACE"
CLUSTER_DOMAIN_ENV = "CLUSTER_DOMAIN"
DEFAULT_CLUSTER_DOMAIN = "cluster.local"
KOURIER_INGRESS_CLASS_NAME = "kourier.ingress.networking.knative.dev"

CONFIG_NAME = "config-kourier"

DISABLE_HTTP2_ANNOTATION_KEY = "kourier.knative.dev/disable-http2"
ENABLE_SERVICE_ACCESS_LOGGING_KEY = "enable-service-access-logging"
ENABLE_PROXY_PROTOCOL_KEY = "enable-proxy-protocol"
CLUSTER_CERT_KEY = "cluster-cert-secret"
IDLE_TIMEOUT_KEY = "stream-idle-timeout"
TRUSTED_HOPS_COUNT_KEY = "trusted-hops-count"
USE_REMOTE_ADDRESS_KEY = "use-remote-address"
CIPHER_SUITES_KEY = "cipher-suites"
ENABLE_CRYPTOMB_KEY = "enable-cryptomb"
TRACING_COLLECTOR_FULL_ENDPOINT_KEY = "tracing-collector-full-endpoint"

_UINT16_MAX = 0xFFFF
_UINT32_MAX = 0xFFFFFFFF
_INT64_MAX = 2**63 - 1

_DISABLE_HTTP2_KEYS = (DISABLE_HTTP2_ANNOTATION_KEY,)


class ConfigError(ValueError):
    """Raised when a configuration value cannot be parsed."""


@dataclass(frozen=True)
class Tracing:
    """Gateway-level tracing settings derived from the collector endpoint."""

    enabled: bool = False
    collector_host: str = ""
    collector_port: int = 0
    collector_endpoint: str = ""


@dataclass(frozen=True)
class Kourier:
    """Configuration of the Kourier gateway."""

    enable_service_access_logging: bool = True
    enable_proxy_protocol: bool = False
    cluster_cert_secret: str = ""
    idle_timeout: timedelta = timedelta(0)
    trusted_hops_count: int = 0
    use_remote_address: bool = False
    enable_cryptomb: bool = False
    cipher_suites: frozenset[str] = field(default_factory=frozenset)
    tracing: Tracing = field(default_factory=Tracing)


def default_config() -> Kourier:
    """Return the configuration used when the config map sets nothing."""
    return Kourier()


# ---------------------------------------------------------------------------
# Durations

_UNITS_NS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_ELEMENT = re.compile(r"(\d*)(?:\.(\d*))?([^\d.]*)")


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as ``"1h30m"``, ``"200s"`` or ``"1.5ms"``."""
    text = value
    negative = False
    if text[:1] in ("-", "+"):
        negative = text[0] == "-"
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ConfigError(f"invalid duration {value!r}")

    total = 0
    pos = 0
    while pos < len(text):
        match = _ELEMENT.match(text, pos)
        whole, frac, unit = match.group(1), match.group(2), match.group(3)
        if not whole and not frac:
            raise ConfigError(f"invalid duration {value!r}")
        if not unit:
            raise ConfigError(f"missing unit in duration {value!r}")
        scale = _UNITS_NS.get(unit)
        if scale is None:
            raise ConfigError(f"unknown unit {unit!r} in duration {value!r}")
        amount = int(whole or "0") * scale
        if frac:
            amount += int(Fraction(int(frac), 10 ** len(frac)) * scale)
        total += amount
        limit = _INT64_MAX + 1 if negative else _INT64_MAX
        if total > limit:
            raise ConfigError(f"invalid duration {value!r}")
        pos = match.end()

    delta = timedelta(microseconds=total // 1000)
    return -delta if negative else delta


# ---------------------------------------------------------------------------
# Value parsers

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def _parse_bool(key: str, raw: str) -> bool:
    if raw in _TRUE_WORDS:
        return True
    if raw in _FALSE_WORDS:
        return False
    raise ConfigError(f"failed to parse {key!r}: {raw!r} is not a boolean")


def _parse_uint(raw: str, maximum: int) -> int:
    if not raw or not raw.isascii() or not raw.isdigit():
        raise ValueError(f"invalid syntax: {raw!r}")
    number = int(raw)
    if number > maximum:
        raise ValueError(f"value out of range: {raw!r}")
    return number


def _parse_uint32(key: str, raw: str) -> int:
    try:
        return _parse_uint(raw, _UINT32_MAX)
    except ValueError as exc:
        raise ConfigError(f"failed to parse {key!r}: {exc}") from exc


def _parse_string_set(_key: str, raw: str) -> frozenset[str]:
    return frozenset(item.strip() for item in raw.split(","))


def _parse_idle_timeout(key: str, raw: str) -> timedelta:
    try:
        return parse_duration(raw)
    except ConfigError as exc:
        raise ConfigError(f"failed to parse {key!r}: {exc}") from exc


def _split_host_port(netloc: str) -> tuple[str, str]:
    _, at, hostport = netloc.rpartition("@")
    if not at:
        hostport = netloc
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise ValueError("missing ']' in host")
        host = hostport[1:end]
        rest = hostport[end + 1:]
        return host, rest[1:] if rest.startswith(":") else ""
    if ":" in hostport:
        host, _, port = hostport.rpartition(":")
        return host, port
    return hostport, ""


def _parse_tracing(_key: str, raw: str) -> Tracing | None:
    if not raw:
        return None
    try:
        parts = urlsplit("scheme://" + raw, allow_fragments=False)
        host, port_text = _split_host_port(parts.netloc)
    except ValueError as exc:
        raise ConfigError(f"{raw!r} is not a valid URL: {exc}") from exc

    try:
        port = _parse_uint(port_text, _UINT32_MAX)
    except ValueError as exc:
        raise ConfigError(f"{port_text!r} is not a valid port: {exc}") from exc
    if port > _UINT16_MAX:
        raise ConfigError(f"port {port} must be a valid port")

    return Tracing(
        enabled=True,
        collector_host=host,
        collector_port=port,
        collector_endpoint=unquote(parts.path),
    )


_FIELD_PARSERS: tuple[tuple[str, str, Callable[[str, str], Any]], ...] = (
    (ENABLE_SERVICE_ACCESS_LOGGING_KEY, "enable_service_access_logging", _parse_bool),
    (ENABLE_PROXY_PROTOCOL_KEY, "enable_proxy_protocol", _parse_bool),
    (CLUSTER_CERT_KEY, "cluster_cert_secret", lambda _key, raw: raw),
    (IDLE_TIMEOUT_KEY, "idle_timeout", _parse_idle_timeout),
    (TRUSTED_HOPS_COUNT_KEY, "trusted_hops_count", _parse_uint32),
    (USE_REMOTE_ADDRESS_KEY, "use_remote_address", _parse_bool),
    (CIPHER_SUITES_KEY, "cipher_suites", _parse_string_set),
    (ENABLE_CRYPTOMB_KEY, "enable_cryptomb", _parse_bool),
    (TRACING_COLLECTOR_FULL_ENDPOINT_KEY, "tracing", _parse_tracing),
)


def new_config_from_map(data: Mapping[str, str] | None) -> Kourier:
    """Build a configuration from config-map data, raising ConfigError on bad values."""
    data = data or {}
    values: dict[str, Any] = {}
    for key, attribute, parser in _FIELD_PARSERS:
        if key not in data:
            continue
        parsed = parser(key, data[key])
        if parsed is not None:
            values[attribute] = parsed
    return Kourier(**values)


def new_config_from_configmap(configmap: Any) -> Kourier:
    """Build a configuration from a config map (a mapping with ``data`` or an object with ``.data``)."""
    if isinstance(configmap, Mapping):
        data = configmap.get("data")
    else:
        data = getattr(configmap, "data", None)
    return new_config_from_map(data)


# ---------------------------------------------------------------------------
# Environment


def gateway_namespace() -> str:
    """Return the namespace where the gateway is deployed."""
    namespace = os.environ.get(GATEWAY_NAMESPACE_ENV, "")
    if namespace:
        return namespace
    system_namespace = os.environ.get(SYSTEM_NAMESPACE_ENV, "")
    if not system_namespace:
        raise ConfigError(
            f"the environment variable {SYSTEM_NAMESPACE_ENV!r} is not set"
        )
    return system_namespace


def _cluster_domain_name(resolv_conf: str = "/etc/resolv.conf") -> str:
    domain = os.environ.get(CLUSTER_DOMAIN_ENV, "")
    if domain:
        return domain
    try:
        with open(resolv_conf, encoding="utf-8") as handle:
            for line in handle:
                elements = line.split()
                if not elements or elements[0] != "search":
                    continue
                for entry in elements[1:]:
                    if entry.startswith("svc."):
                        return entry[len("svc."):].rstrip(".")
    except OSError:
        pass
    return DEFAULT_CLUSTER_DOMAIN


def _service_hostname(name: str, namespace: str) -> str:
    return f"{name}.{namespace}.svc.{_cluster_domain_name()}"


def service_hostnames() -> tuple[str, str]:
    """Return the external and internal service hostnames."""
    namespace = gateway_namespace()
    return (
        _service_hostname(EXTERNAL_SERVICE_NAME, namespace),
        _service_hostname(INTERNAL_SERVICE_NAME, namespace),
    )


def get_disable_http2(annotations: Mapping[str, str] | None) -> str:
    """Return the value of the disable-http2 annotation, or an empty string."""
    if not annotations:
        return ""
    for key in _DISABLE_HTTP2_KEYS:
        if key in annotations:
            return annotations[key]
    return ""