"""Wire route derivation for contract methods."""

from __future__ import annotations

from typing import Optional

from ..declarations import Marker
from ..diagnostics import Diagnostic, SourceLocation, error

ROUTE_PREFIX = "s"


class RouteOverrideError(ValueError):
    """Raised when a route override marker does not carry a string literal."""

    def __init__(self, message: str, location: Optional[SourceLocation] = None) -> None:
        super().__init__(message)
        self.location = location

    def to_diagnostic(self) -> Diagnostic:
        return error(str(self), self.location)


def interface_stem(interface_name: str) -> str:
    """Strip the conventional leading ``I`` from an interface name.

    Only names longer than two characters whose second character is
    uppercase lose the prefix: ``IHelloService`` becomes ``HelloService``
    while ``IO`` and ``Ix`` are left alone.
    """
    if (
        len(interface_name) > 2
        and interface_name.startswith("I")
        and interface_name[1].isupper()
    ):
        return interface_name[1:]
    return interface_name


def default_route(interface_name: str, method_name: str) -> str:
    return f"{ROUTE_PREFIX}/{interface_stem(interface_name)}/{method_name}".lower()


def resolve_route(
    interface_name: str, method_name: str, override: Optional[Marker] = None
) -> str:
    """Return the route for ``method_name`` on ``interface_name``.

    With an override marker the first argument must be a string literal; the
    route becomes that literal, lowercased.
    """
    if override is None:
        return default_route(interface_name, method_name)
    argument = override.arguments[0] if override.arguments else None
    if argument is None or argument.literal is None:
        raise RouteOverrideError(
            "Route parameter to exposed_service_route was not provided.",
            override.location,
        )
    return argument.literal.lower()


def client_path(route: str) -> str:
    """Route as requested by the client, relative to the transport base URL."""
    return route.lstrip("/")


def server_path(route: str) -> str:
    """Route as registered on the server, rooted at ``/``."""
    return "/" + route.lstrip("/")


__all__ = [
    "ROUTE_PREFIX",
    "RouteOverrideError",
    "client_path",
    "default_route",
    "interface_stem",
    "resolve_route",
    "server_path",
]
