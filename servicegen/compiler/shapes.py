"""Method-signature grammar for exposed service methods."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..declarations import GENERIC_FORM, NAME_FORM, MethodDeclaration, ParameterDeclaration
from ..diagnostics import Diagnostic, SourceLocation, error

AWAITABLE_TYPE = "typing.Awaitable"
CANCELLATION_TOKEN_TYPE = "servicegen.runtime.CancellationToken"

_AWAITABLE_PATTERN = re.compile(rf"^{re.escape(AWAITABLE_TYPE)}(?:\[(?P<result>.+)\])?$")
_NO_RESULT = {"None", "NoneType"}


class ShapeError(ValueError):
    """Raised when a method declaration violates the shape grammar."""

    def __init__(self, message: str, location: Optional[SourceLocation] = None) -> None:
        super().__init__(message)
        self.location = location

    def to_diagnostic(self) -> Diagnostic:
        return error(str(self), self.location)


@dataclass(frozen=True)
class MethodShape:
    """The validated pieces of a method signature."""

    result_type: Optional[str]
    cancellation_parameter_name: str
    cancellation_parameter_type: str
    data_parameter_name: Optional[str] = None
    data_parameter_type: Optional[str] = None
    modules: Tuple[str, ...] = ()


def split_type_arguments(text: str) -> List[str]:
    """Split ``A, B[C, D]`` on top-level commas only."""
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for char in text:
        if char in "[(":
            depth += 1
        elif char in "])":
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    parts.append("".join(current).strip())
    return parts


def extract_result_type(method: MethodDeclaration) -> Optional[str]:
    """Return the awaited result type, or None when the method yields nothing."""
    return_type = method.return_type
    written = return_type.text if return_type is not None else "nothing"
    qualified = return_type.qualified_name if return_type is not None else None
    match = _AWAITABLE_PATTERN.match(qualified or "")
    if match is None:
        raise ShapeError(
            "Return from an externally exposed method must be an awaitable, "
            f"optionally carrying one result type, it was {qualified or written}.",
            method.location,
        )
    result = match.group("result")
    if result is None:
        return None
    if len(split_type_arguments(result)) != 1:
        raise ShapeError(
            "Return from an externally exposed method must be an awaitable, "
            f"optionally carrying one result type, it was {qualified}.",
            method.location,
        )
    return None if result in _NO_RESULT else result


def _check_data_parameter(parameter: ParameterDeclaration) -> str:
    reference = parameter.type
    location = parameter.location
    if reference is None:
        raise ShapeError(
            f"Data parameter must be a simple type, it was unannotated ({parameter.name}).",
            location,
        )
    if reference.form not in (NAME_FORM, GENERIC_FORM):
        raise ShapeError(
            f"Data parameter must be a simple type, or generic, it was {reference.text}.",
            location,
        )
    if reference.qualified_name is None:
        raise ShapeError(
            f"Data parameter must be a simple type, it was {reference.text}.",
            location,
        )
    return reference.qualified_name


def _check_cancellation_parameter(parameter: ParameterDeclaration) -> str:
    reference = parameter.type
    location = parameter.location
    if reference is None or reference.form != NAME_FORM:
        written = reference.text if reference is not None else f"unannotated ({parameter.name})"
        raise ShapeError(
            f"Cancellation parameter must be a simple type, it was {written}.",
            location,
        )
    if reference.qualified_name is None:
        raise ShapeError(
            f"Cancellation parameter type could not be resolved, it was {reference.text}.",
            location,
        )
    if reference.qualified_name != CANCELLATION_TOKEN_TYPE:
        raise ShapeError(
            "Cancellation parameter must be a CancellationToken, "
            f"it was {reference.qualified_name}.",
            location,
        )
    return reference.qualified_name


def validate_method(method: MethodDeclaration) -> MethodShape:
    """Validate ``method`` against the shape grammar; first failure wins."""
    result_type = extract_result_type(method)

    count = len(method.parameters)
    if count < 1 or count > 2:
        raise ShapeError(
            f"Externally exposed method must have 1 or 2 parameters, it had {count}.",
            method.location,
        )

    modules: List[str] = []
    if method.return_type is not None:
        modules.extend(method.return_type.modules)

    data_name: Optional[str] = None
    data_type: Optional[str] = None
    if count == 2:
        data_parameter = method.parameters[0]
        data_type = _check_data_parameter(data_parameter)
        data_name = data_parameter.name
        if data_parameter.type is not None:
            modules.extend(data_parameter.type.modules)

    cancellation = method.parameters[-1]
    cancellation_type = _check_cancellation_parameter(cancellation)

    return MethodShape(
        result_type=result_type,
        cancellation_parameter_name=cancellation.name,
        cancellation_parameter_type=cancellation_type,
        data_parameter_name=data_name,
        data_parameter_type=data_type,
        modules=tuple(sorted(set(modules))),
    )


__all__ = [
    "AWAITABLE_TYPE",
    "CANCELLATION_TOKEN_TYPE",
    "MethodShape",
    "ShapeError",
    "extract_result_type",
    "split_type_arguments",
    "validate_method",
]
