"""Virtual hosts."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from kourier.envoy.headers import typed_any
from kourier.ext_authz import HTTP_EXTERNAL_AUTHORIZATION_FILTER

EXT_AUTHZ_PER_ROUTE_TYPE = "envoy.extensions.filters.http.ext_authz.v3.ExtAuthzPerRoute"


def new_virtual_host(
    name: str, domains: Iterable[str], routes: Iterable[Mapping[str, Any]]
) -> dict[str, Any]:
    """Create a virtual host serving ``domains`` with ``routes``."""
    return {"name": name, "domains": list(domains), "routes": list(routes)}


def new_virtual_host_with_ext_authz(
    name: str,
    context_extensions: Mapping[str, str] | None,
    domains: Iterable[str],
    routes: Iterable[Mapping[str, Any]],
) -> dict[str, Any]:
    """Create a virtual host that passes ``context_extensions`` to the ext_authz check."""
    check_settings: dict[str, Any] = {}
    if context_extensions:
        check_settings["context_extensions"] = dict(context_extensions)
    host = new_virtual_host(name, domains, routes)
    host["typed_per_filter_config"] = {
        HTTP_EXTERNAL_AUTHORIZATION_FILTER: typed_any(
            EXT_AUTHZ_PER_ROUTE_TYPE, {"check_settings": check_settings}
        )
    }
    return host