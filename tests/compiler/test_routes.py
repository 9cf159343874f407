"""Tests for route derivation."""

from __future__ import annotations

import pytest

from servicegen.compiler.routes import (
    RouteOverrideError,
    client_path,
    default_route,
    interface_stem,
    resolve_route,
    server_path,
)
from servicegen.declarations import Marker
from servicegen.diagnostics import DIAGNOSTIC_CODE, SourceLocation
from servicegen.markers import ROUTE_MARKER
from tests._fixtures.declarations import route


def test_default_route_strips_interface_prefix_and_lowercases() -> None:
    assert resolve_route("IHelloService", "SayHelloAsync") == "s/helloservice/sayhelloasync"
    # Same answer on every call.
    assert resolve_route("IHelloService", "SayHelloAsync") == default_route("IHelloService", "SayHelloAsync")


@pytest.mark.parametrize(
    "name, stem",
    [
        ("IHelloService", "HelloService"),
        ("IO", "IO"),
        ("Ix", "Ix"),
        ("Ixy", "Ixy"),
        ("IXy", "Xy"),
        ("HelloService", "HelloService"),
        ("I", "I"),
    ],
)
def test_interface_stem_rule(name: str, stem: str) -> None:
    assert interface_stem(name) == stem


def test_short_names_keep_their_prefix_in_routes() -> None:
    assert default_route("IO", "Read") == "s/io/read"
    assert default_route("Ix", "Run") == "s/ix/run"


def test_override_literal_is_lowercased() -> None:
    assert resolve_route("IHelloService", "SayHelloAsync", route("Custom/Echo")) == "custom/echo"


def test_override_without_literal_raises_with_location() -> None:
    with pytest.raises(RouteOverrideError) as excinfo:
        resolve_route("IHelloService", "SayHelloAsync", route("ROUTE_NAME", literal=False))

    diagnostic = excinfo.value.to_diagnostic()
    assert diagnostic.code == DIAGNOSTIC_CODE
    assert diagnostic.message == "Route parameter to exposed_service_route was not provided."
    assert diagnostic.location == SourceLocation("svc.py", 3)


def test_override_without_arguments_raises() -> None:
    with pytest.raises(RouteOverrideError):
        resolve_route("IHelloService", "SayHelloAsync", Marker(name=ROUTE_MARKER))


def test_client_and_server_paths_share_the_route() -> None:
    assert client_path("s/helloservice/ping") == "s/helloservice/ping"
    assert server_path("s/helloservice/ping") == "/s/helloservice/ping"
    assert client_path("/custom/echo") == "custom/echo"
    assert server_path("/custom/echo") == "/custom/echo"
