"""Assembles validated methods into immutable contract snapshots."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from ..declarations import (
    InterfaceReference,
    Marker,
    MethodDeclaration,
    TypeDeclaration,
    find_marker,
    has_marker,
)
from ..diagnostics import DiagnosticSink
from ..logging import get_logger
from ..markers import INTERFACE_MARKER, ROUTE_MARKER
from ..models import IMPLEMENTATION_ROLE, INTERFACE_ROLE, ServiceContract, ServiceMethod
from .routes import RouteOverrideError, resolve_route
from .shapes import ShapeError, validate_method

logger = get_logger("compiler")


class UnresolvedDeclarationError(RuntimeError):
    """Raised when a declaration cannot be identified at all."""


def _require_identity(declaration: TypeDeclaration) -> None:
    if not declaration.name or declaration.namespace is None:
        raise UnresolvedDeclarationError(
            f"Could not resolve symbol for declaration {declaration!r}"
        )
    for method in declaration.methods:
        if not method.name:
            raise UnresolvedDeclarationError(
                f"Could not resolve method symbol in {declaration.qualified_name}"
            )


def _exposed_methods(methods: Iterable[MethodDeclaration]) -> Iterable[MethodDeclaration]:
    return (method for method in methods if not method.name.startswith("_"))


def collect_methods(
    interface_name: str,
    methods: Iterable[MethodDeclaration],
    sink: DiagnosticSink,
    overrides: Optional[Mapping[str, Optional[Marker]]] = None,
) -> Tuple[List[ServiceMethod], Set[str]]:
    """Fold ``methods`` into validated service methods, reporting failures to ``sink``.

    ``overrides`` maps method names to the route marker that applies to them;
    without it each method's own marker is used.
    """
    collected: List[ServiceMethod] = []
    modules: Set[str] = set()
    for method in methods:
        try:
            if overrides is None:
                override = find_marker(method, ROUTE_MARKER)
            else:
                override = overrides.get(method.name)
            route = resolve_route(interface_name, method.name, override)
            shape = validate_method(method)
        except (RouteOverrideError, ShapeError) as exc:
            logger.debug("Skipping %s.%s: %s", interface_name, method.name, exc)
            sink.report(exc.to_diagnostic())
            continue
        collected.append(
            ServiceMethod(
                name=method.name,
                route=route,
                cancellation_parameter_type=shape.cancellation_parameter_type,
                cancellation_parameter_name=shape.cancellation_parameter_name,
                request_payload_type=shape.data_parameter_type,
                request_parameter_name=shape.data_parameter_name,
                response_payload_type=shape.result_type,
            )
        )
        modules.update(shape.modules)
    return collected, modules


def build_interface_contract(declaration: TypeDeclaration) -> ServiceContract:
    """Build the client-side contract of an exposed interface."""
    _require_identity(declaration)
    sink = DiagnosticSink()
    methods, modules = collect_methods(declaration.name, _exposed_methods(declaration.methods), sink)
    modules.add(declaration.namespace)
    return ServiceContract(
        name=declaration.name,
        namespace=declaration.namespace,
        role=INTERFACE_ROLE,
        methods=tuple(methods),
        diagnostics=sink.snapshot(),
        imports=tuple(sorted(module for module in modules if module)),
    )


def find_exposed_interface(declaration: TypeDeclaration) -> Optional[InterfaceReference]:
    """Return the first base of ``declaration`` marked as an exposed interface."""
    for interface in declaration.interfaces:
        if has_marker(interface, INTERFACE_MARKER):
            return interface
    return None


def _override_key(marker: Optional[Marker]) -> Optional[str]:
    if marker is None:
        return None
    if not marker.arguments:
        return ""
    argument = marker.arguments[0]
    return argument.literal.lower() if argument.literal is not None else argument.text


def _bind_to_interface(
    declaration: TypeDeclaration, interface: InterfaceReference, sink: DiagnosticSink
) -> Tuple[List[MethodDeclaration], Dict[str, Optional[Marker]]]:
    """Pair each interface method with its implementation, in interface order.

    Route markers come from the interface. An implementation-side marker must
    agree with the interface's; methods the interface does not declare are not
    served.
    """
    own = {method.name: method for method in _exposed_methods(declaration.methods)}
    bound: List[MethodDeclaration] = []
    overrides: Dict[str, Optional[Marker]] = {}
    for declared in _exposed_methods(interface.methods or ()):
        override = find_marker(declared, ROUTE_MARKER)
        method = own.pop(declared.name, declared)
        local = find_marker(method, ROUTE_MARKER) if method is not declared else None
        if local is not None and _override_key(local) != _override_key(override):
            sink.error(
                f"Route override on {declaration.name}.{method.name} does not match "
                f"{interface.name}.{declared.name}.",
                local.location or method.location,
            )
            continue
        bound.append(method)
        overrides[method.name] = override
    for method in own.values():
        local = find_marker(method, ROUTE_MARKER)
        if local is not None:
            sink.error(
                f"Route override on {declaration.name}.{method.name} names a method "
                f"{interface.name} does not declare.",
                local.location or method.location,
            )
        else:
            logger.debug(
                "%s.%s is not part of %s; not served",
                declaration.name,
                method.name,
                interface.name,
            )
    return bound, overrides


def build_implementation_contract(declaration: TypeDeclaration) -> ServiceContract:
    """Build the server-side contract of an exposed implementation.

    Without an exposed interface the contract is still produced, carrying a
    diagnostic and no methods, so the host always sees an artifact.
    """
    _require_identity(declaration)
    sink = DiagnosticSink()
    interface = find_exposed_interface(declaration)
    if interface is None:
        sink.error(
            "Class must implement an interface marked with exposed_service_interface.",
            declaration.location,
        )
        return ServiceContract(
            name=declaration.name,
            namespace=declaration.namespace,
            role=IMPLEMENTATION_ROLE,
            diagnostics=sink.snapshot(),
            imports=(declaration.namespace,) if declaration.namespace else (),
        )

    if interface.methods is None:
        logger.debug(
            "Body of %s is unknown; routing %s by its own markers",
            interface.qualified_name,
            declaration.qualified_name,
        )
        methods, modules = collect_methods(
            interface.name, _exposed_methods(declaration.methods), sink
        )
    else:
        bound, overrides = _bind_to_interface(declaration, interface, sink)
        methods, modules = collect_methods(interface.name, bound, sink, overrides)
    modules.update({declaration.namespace, interface.namespace})
    return ServiceContract(
        name=declaration.name,
        namespace=declaration.namespace,
        role=IMPLEMENTATION_ROLE,
        methods=tuple(methods),
        diagnostics=sink.snapshot(),
        implements=interface,
        imports=tuple(sorted(module for module in modules if module)),
    )


__all__ = [
    "UnresolvedDeclarationError",
    "build_implementation_contract",
    "build_interface_contract",
    "collect_methods",
    "find_exposed_interface",
]
