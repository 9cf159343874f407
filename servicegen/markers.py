"""Marker decorators that designate service contracts for generation.

The decorators only tag the decorated object; generation works from source,
so the compiler recognises them by their fully-qualified names.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

T = TypeVar("T")

INTERFACE_MARKER = "servicegen.markers.exposed_service_interface"
SERVICE_MARKER = "servicegen.markers.exposed_service"
ROUTE_MARKER = "servicegen.markers.exposed_service_route"


def exposed_service_interface(cls: type[T]) -> type[T]:
    """Mark ``cls`` as a contract for which a transport client is generated."""
    cls.__exposed_service_interface__ = True  # type: ignore[attr-defined]
    return cls


def exposed_service(cls: type[T]) -> type[T]:
    """Mark ``cls`` as an implementation whose endpoints are generated."""
    cls.__exposed_service__ = True  # type: ignore[attr-defined]
    return cls


def exposed_service_route(route: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Override the wire route of a contract method.

    The argument must be a string literal in source for the generator to
    accept it.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        func.__exposed_service_route__ = route  # type: ignore[attr-defined]
        return func

    return decorator


__all__ = [
    "INTERFACE_MARKER",
    "ROUTE_MARKER",
    "SERVICE_MARKER",
    "exposed_service",
    "exposed_service_interface",
    "exposed_service_route",
]
