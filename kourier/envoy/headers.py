"""Shared helpers for building Envoy resources: header options, typed configs, durations."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from fractions import Fraction
from numbers import Rational, Real
from typing import Any, Mapping

TYPE_URL_PREFIX = "type.googleapis.com/"
OVERWRITE_IF_EXISTS_OR_ADD = "OVERWRITE_IF_EXISTS_OR_ADD"

_NANOS_PER_SECOND = 1_000_000_000


def headers_to_add(headers: Mapping[str, str] | None) -> list[dict[str, Any]]:
    """Turn a header mapping into header value options that overwrite existing values."""
    if not headers:
        return []
    return [
        {
            "header": {"key": name, "value": value},
            "append_action": OVERWRITE_IF_EXISTS_OR_ADD,
        }
        for name, value in headers.items()
    ]


def typed_any(type_name: str, body: Mapping[str, Any]) -> dict[str, Any]:
    """Wrap a message body as a typed ``Any`` value of the given fully qualified type."""
    return {"@type": TYPE_URL_PREFIX + type_name, **body}


def _to_nanos(seconds: timedelta | Real | Decimal) -> int:
    if isinstance(seconds, timedelta):
        whole = seconds.days * 86_400 + seconds.seconds
        return whole * _NANOS_PER_SECOND + seconds.microseconds * 1_000
    if isinstance(seconds, bool):
        raise TypeError("a duration cannot be a boolean")
    if isinstance(seconds, int):
        return seconds * _NANOS_PER_SECOND
    if isinstance(seconds, Decimal):
        return int(seconds * _NANOS_PER_SECOND)
    if isinstance(seconds, Rational):
        return int(Fraction(seconds) * _NANOS_PER_SECOND)
    if isinstance(seconds, Real):
        return int(Decimal(str(float(seconds))) * _NANOS_PER_SECOND)
    raise TypeError(f"cannot express {seconds!r} as a duration")


def duration(seconds: timedelta | Real | Decimal) -> str:
    """Render a duration (a timedelta or a number of seconds) in Envoy's JSON form, e.g. ``"1.500s"``."""
    nanos = _to_nanos(seconds)
    sign = "-" if nanos < 0 else ""
    whole, rest = divmod(abs(nanos), _NANOS_PER_SECOND)
    if rest == 0:
        return f"{sign}{whole}s"
    if rest % 1_000_000 == 0:
        fraction = f"{rest // 1_000_000:03d}"
    elif rest % 1_000 == 0:
        fraction = f"{rest // 1_000:06d}"
    else:
        fraction = f"{rest:09d}"
    return f"{sign}{whole}.{fraction}s"