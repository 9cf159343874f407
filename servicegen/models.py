"""Core data models shared across servicegen components."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .declarations import InterfaceReference
from .diagnostics import Diagnostic

GET = "GET"
POST = "POST"

INTERFACE_ROLE = "interface"
IMPLEMENTATION_ROLE = "implementation"

CLIENT_ARTIFACT = "client"
SERVER_ARTIFACT = "server"


@dataclass(frozen=True)
class ServiceMethod:
    """A validated contract method with its wire route."""

    name: str
    route: str
    cancellation_parameter_type: str
    cancellation_parameter_name: str
    request_payload_type: Optional[str] = None
    request_parameter_name: Optional[str] = None
    response_payload_type: Optional[str] = None

    @property
    def has_body(self) -> bool:
        return self.request_payload_type is not None

    @property
    def verb(self) -> str:
        return POST if self.has_body else GET


@dataclass(frozen=True)
class ServiceContract:
    """Immutable snapshot of one exposed interface or implementation."""

    name: str
    namespace: str
    role: str
    methods: Tuple[ServiceMethod, ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = ()
    implements: Optional[InterfaceReference] = None
    imports: Tuple[str, ...] = ()

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}.{self.name}" if self.namespace else self.name

    @property
    def hint_name(self) -> str:
        """File identity of the artifacts rendered from this contract."""
        return f"{self.namespace.replace('.', '_')}_{self.name}"


@dataclass(frozen=True)
class GeneratedArtifact:
    """A rendered source unit ready to be written by the host."""

    hint_name: str
    kind: str
    text: str

    @property
    def filename(self) -> str:
        return f"{self.hint_name}.py"


__all__ = [
    "CLIENT_ARTIFACT",
    "GET",
    "GeneratedArtifact",
    "IMPLEMENTATION_ROLE",
    "INTERFACE_ROLE",
    "POST",
    "SERVER_ARTIFACT",
    "ServiceContract",
    "ServiceMethod",
]
