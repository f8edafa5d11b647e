"""Routes: weighted forwarding, HTTPS redirects and routes exempt from ext_authz."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Iterable, Mapping

from kourier.envoy.headers import duration, headers_to_add, typed_any
from kourier.ext_authz import HTTP_EXTERNAL_AUTHORIZATION_FILTER

EXT_AUTHZ_PER_ROUTE_TYPE = "envoy.extensions.filters.http.ext_authz.v3.ExtAuthzPerRoute"


def _match(path: str, headers_match: Iterable[Mapping[str, Any]] | None) -> dict[str, Any]:
    match: dict[str, Any] = {"prefix": path}
    matchers = list(headers_match or ())
    if matchers:
        match["headers"] = matchers
    return match


def new_route(
    name: str,
    headers_match: Iterable[Mapping[str, Any]] | None,
    path: str,
    weighted_clusters: Iterable[Mapping[str, Any]] | None,
    route_timeout: timedelta | float,
    headers: Mapping[str, str] | None,
    host_rewrite: str,
) -> dict[str, Any]:
    """Create a prefix route splitting traffic over weighted clusters, with websocket upgrades."""
    action: dict[str, Any] = {
        "weighted_clusters": {"clusters": list(weighted_clusters or ())},
        "timeout": duration(route_timeout),
        "upgrade_configs": [{"upgrade_type": "websocket", "enabled": True}],
    }
    if host_rewrite:
        action["host_rewrite_literal"] = host_rewrite

    route: dict[str, Any] = {
        "name": name,
        "match": _match(path, headers_match),
        "route": action,
    }
    options = headers_to_add(headers)
    if options:
        route["request_headers_to_add"] = options
    return route


def new_redirect_route(
    name: str, headers_match: Iterable[Mapping[str, Any]] | None, path: str
) -> dict[str, Any]:
    """Create a prefix route that redirects to HTTPS."""
    return {
        "name": name,
        "match": _match(path, headers_match),
        "redirect": {"https_redirect": True},
    }


def new_route_ext_authz_disabled(
    name: str,
    headers_match: Iterable[Mapping[str, Any]] | None,
    path: str,
    weighted_clusters: Iterable[Mapping[str, Any]] | None,
    route_timeout: timedelta | float,
    headers: Mapping[str, str] | None,
    host_rewrite: str,
) -> dict[str, Any]:
    """Create a route like :func:`new_route` with external authorization switched off."""
    route = new_route(
        name, headers_match, path, weighted_clusters, route_timeout, headers, host_rewrite
    )
    route["typed_per_filter_config"] = {
        HTTP_EXTERNAL_AUTHORIZATION_FILTER: typed_any(
            EXT_AUTHZ_PER_ROUTE_TYPE, {"disabled": True}
        )
    }
    return route