"""Load-balancing endpoints."""

from __future__ import annotations

from typing import Any


def new_lb_endpoint(ip: str, port: int) -> dict[str, Any]:
    """Create a TCP load-balancing endpoint for ``ip:port``."""
    return {
        "endpoint": {
            "address": {
                "socket_address": {
                    "protocol": "TCP",
                    "address": ip,
                    "port_value": port,
                    "ipv4_compat": True,
                }
            }
        }
    }