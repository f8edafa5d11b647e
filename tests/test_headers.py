from datetime import timedelta
from decimal import Decimal

import pytest

from kourier.envoy.headers import duration, headers_to_add, typed_any


def _by_key(options):
    return sorted(options, key=lambda option: option["header"]["key"])


def test_headers_to_add_none():
    assert headers_to_add(None) == []


def test_headers_to_add_empty():
    assert headers_to_add({}) == []


def test_headers_to_add_some():
    got = headers_to_add({"foo": "bar", "baz": "lol"})
    want = [
        {
            "header": {"key": "foo", "value": "bar"},
            "append_action": "OVERWRITE_IF_EXISTS_OR_ADD",
        },
        {
            "header": {"key": "baz", "value": "lol"},
            "append_action": "OVERWRITE_IF_EXISTS_OR_ADD",
        },
    ]
    assert _by_key(got) == _by_key(want)


def test_typed_any_adds_type_url():
    got = typed_any("envoy.config.trace.v3.ZipkinConfig", {"collector_cluster": "c"})
    assert got == {
        "@type": "type.googleapis.com/envoy.config.trace.v3.ZipkinConfig",
        "collector_cluster": "c",
    }


@pytest.mark.parametrize(
    "value, expected",
    [
        (timedelta(seconds=5), "5s"),
        (timedelta(0), "0s"),
        (timedelta(milliseconds=10), "0.010s"),
        (timedelta(microseconds=1), "0.000001s"),
        (timedelta(seconds=-2), "-2s"),
        (0, "0s"),
        (10, "10s"),
        (0.01, "0.010s"),
        (1.5, "1.500s"),
        (Decimal("0.000000001"), "0.000000001s"),
    ],
)
def test_duration(value, expected):
    assert duration(value) == expected


def test_duration_rejects_text():
    with pytest.raises(TypeError):
        duration("5s")