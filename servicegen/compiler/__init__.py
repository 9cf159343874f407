"""Contract compiler: shape validation, route resolution and contract assembly."""

from .contracts import (
    UnresolvedDeclarationError,
    build_implementation_contract,
    build_interface_contract,
    find_exposed_interface,
)
from .routes import RouteOverrideError, client_path, default_route, interface_stem, resolve_route, server_path
from .shapes import AWAITABLE_TYPE, CANCELLATION_TOKEN_TYPE, MethodShape, ShapeError, validate_method

__all__ = [
    "AWAITABLE_TYPE",
    "CANCELLATION_TOKEN_TYPE",
    "MethodShape",
    "RouteOverrideError",
    "ShapeError",
    "UnresolvedDeclarationError",
    "build_implementation_contract",
    "build_interface_contract",
    "client_path",
    "default_route",
    "find_exposed_interface",
    "interface_stem",
    "resolve_route",
    "server_path",
    "validate_method",
]
