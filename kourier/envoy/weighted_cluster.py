"""Weighted clusters used for traffic splitting."""

from __future__ import annotations

from typing import Any, Mapping

from kourier.envoy.headers import headers_to_add

_UINT32_MAX = 0xFFFFFFFF


def new_weighted_cluster(
    name: str, traffic_percent: int, headers: Mapping[str, str] | None
) -> dict[str, Any]:
    """Create a cluster weight entry receiving ``traffic_percent`` of the traffic."""
    if not 0 <= traffic_percent <= _UINT32_MAX:
        raise ValueError(f"weight {traffic_percent} is out of range")
    weighted: dict[str, Any] = {"name": name, "weight": traffic_percent}
    options = headers_to_add(headers)
    if options:
        weighted["request_headers_to_add"] = options
    return weighted