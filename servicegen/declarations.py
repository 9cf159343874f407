"""Structural description of candidate service declarations.

Hosts (see :mod:`servicegen.sources`) translate their own symbol tables into
these records. The compiler only ever queries them; it never looks at raw
source text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol, Tuple, Union

from .diagnostics import SourceLocation

# TypeReference.form values
NAME_FORM = "name"
GENERIC_FORM = "generic"
OTHER_FORM = "other"


@dataclass(frozen=True)
class TypeReference:
    """An annotation as written, plus what the host resolved it to."""

    text: str
    qualified_name: Optional[str] = None
    form: str = NAME_FORM
    modules: Tuple[str, ...] = ()

    @property
    def resolved(self) -> bool:
        return self.qualified_name is not None

    def __str__(self) -> str:
        return self.qualified_name or self.text


@dataclass(frozen=True)
class MarkerArgument:
    """One argument passed to a marker; ``literal`` is set only for string literals."""

    text: str
    literal: Optional[str] = None


@dataclass(frozen=True)
class Marker:
    """A marker annotation attached to a class or method."""

    name: str
    arguments: Tuple[MarkerArgument, ...] = ()
    location: Optional[SourceLocation] = None


@dataclass(frozen=True)
class ParameterDeclaration:
    name: str
    type: Optional[TypeReference] = None
    location: Optional[SourceLocation] = None


@dataclass(frozen=True)
class MethodDeclaration:
    name: str
    parameters: Tuple[ParameterDeclaration, ...] = ()
    return_type: Optional[TypeReference] = None
    markers: Tuple[Marker, ...] = ()
    location: Optional[SourceLocation] = None


@dataclass(frozen=True)
class InterfaceReference:
    """A base declaration of a class, with the markers it carries.

    ``methods`` is None when the host could not see the base's body.
    """

    name: str
    namespace: str
    markers: Tuple[Marker, ...] = ()
    methods: Optional[Tuple[MethodDeclaration, ...]] = None

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}.{self.name}" if self.namespace else self.name


@dataclass(frozen=True)
class TypeDeclaration:
    """A candidate interface or implementation class."""

    name: str
    namespace: str
    markers: Tuple[Marker, ...] = ()
    methods: Tuple[MethodDeclaration, ...] = ()
    interfaces: Tuple[InterfaceReference, ...] = ()
    location: Optional[SourceLocation] = None

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}.{self.name}" if self.namespace else self.name


Annotated = Union[TypeDeclaration, MethodDeclaration, InterfaceReference]


def find_marker(declaration: Annotated, name: str) -> Optional[Marker]:
    """Return the first marker called ``name`` on ``declaration``, if any."""
    for marker in declaration.markers:
        if marker.name == name:
            return marker
    return None


def has_marker(declaration: Annotated, name: str) -> bool:
    return find_marker(declaration, name) is not None


class DeclarationSource(Protocol):
    """Anything able to enumerate candidate declarations."""

    def declarations(self) -> Iterable[TypeDeclaration]:
        ...


@dataclass
class StaticDeclarationSource:
    """Declaration source backed by an in-memory list."""

    items: list[TypeDeclaration] = field(default_factory=list)

    def declarations(self) -> Iterable[TypeDeclaration]:
        return list(self.items)


__all__ = [
    "DeclarationSource",
    "GENERIC_FORM",
    "InterfaceReference",
    "Marker",
    "MarkerArgument",
    "MethodDeclaration",
    "NAME_FORM",
    "OTHER_FORM",
    "ParameterDeclaration",
    "StaticDeclarationSource",
    "TypeDeclaration",
    "TypeReference",
    "find_marker",
    "has_marker",
]
