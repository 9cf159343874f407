"""Diagnostics reported to the build pipeline when declarations fail validation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Tuple

# Every validation failure shares one stable code.
DIAGNOSTIC_CODE = "IF000"


class Severity(str, Enum):
    """Diagnostic severity levels understood by the host pipeline."""

    ERROR = "error"


@dataclass(frozen=True)
class SourceLocation:
    """Position of a construct inside a source file (1-based line and column)."""

    path: str
    line: int
    column: int = 1

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.column}"


@dataclass(frozen=True)
class Diagnostic:
    """A structured validation failure."""

    code: str
    severity: Severity
    message: str
    location: Optional[SourceLocation] = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def format(self) -> str:
        """Render the diagnostic in the conventional ``path:line:col: level CODE: msg`` form."""
        prefix = f"{self.location}: " if self.location is not None else ""
        return f"{prefix}{self.severity.value} {self.code}: {self.message}"


def error(message: str, location: Optional[SourceLocation] = None) -> Diagnostic:
    """Build an error-level diagnostic carrying the shared validation code."""
    return Diagnostic(
        code=DIAGNOSTIC_CODE,
        severity=Severity.ERROR,
        message=message,
        location=location,
    )


class DiagnosticSink:
    """Append-only collector of diagnostics for one contract."""

    def __init__(self, initial: Iterable[Diagnostic] = ()) -> None:
        self._items: List[Diagnostic] = list(initial)

    def report(self, diagnostic: Diagnostic) -> None:
        self._items.append(diagnostic)

    def error(self, message: str, location: Optional[SourceLocation] = None) -> None:
        self.report(error(message, location))

    def snapshot(self) -> Tuple[Diagnostic, ...]:
        """Return an immutable view of everything reported so far."""
        return tuple(self._items)

    @property
    def has_errors(self) -> bool:
        return any(item.is_error for item in self._items)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(tuple(self._items))

    def __len__(self) -> int:
        return len(self._items)


__all__ = [
    "DIAGNOSTIC_CODE",
    "Diagnostic",
    "DiagnosticSink",
    "Severity",
    "SourceLocation",
    "error",
]
