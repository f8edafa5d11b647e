from kourier.envoy.virtual_host import new_virtual_host, new_virtual_host_with_ext_authz

EXT_AUTHZ_FILTER = "envoy.filters.http.ext_authz"
PER_ROUTE_TYPE = "type.googleapis.com/envoy.extensions.filters.http.ext_authz.v3.ExtAuthzPerRoute"


def test_virtual_host():
    got = new_virtual_host("test", ["foo", "bar"], [{"name": "baz"}])
    assert got == {"name": "test", "domains": ["foo", "bar"], "routes": [{"name": "baz"}]}


def test_virtual_host_with_ext_authz():
    got = new_virtual_host_with_ext_authz("test", None, ["foo", "bar"], [{"name": "baz"}])
    assert got["name"] == "test"
    assert got["domains"] == ["foo", "bar"]
    assert got["routes"] == [{"name": "baz"}]
    assert got["typed_per_filter_config"][EXT_AUTHZ_FILTER] == {
        "@type": PER_ROUTE_TYPE,
        "check_settings": {},
    }


def test_virtual_host_with_ext_authz_context_extensions():
    got = new_virtual_host_with_ext_authz("test", {"client": "kourier"}, ["foo"], [])
    settings = got["typed_per_filter_config"][EXT_AUTHZ_FILTER]["check_settings"]
    assert settings == {"context_extensions": {"client": "kourier"}}