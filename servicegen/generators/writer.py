"""Indentation-aware text builder used by the artifact generators."""

from __future__ import annotations

import re
from contextlib import contextmanager
from typing import Iterable, Iterator, List

AUTO_GENERATED_HEADER = "# <auto-generated />"

_INDENT = "    "
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


class SourceWriter:
    """Accumulates lines of Python source at the current indentation."""

    def __init__(self) -> None:
        self._lines: List[str] = []
        self._depth = 0

    def line(self, text: str = "") -> "SourceWriter":
        self._lines.append(f"{_INDENT * self._depth}{text}" if text else "")
        return self

    def lines(self, texts: Iterable[str]) -> "SourceWriter":
        for text in texts:
            self.line(text)
        return self

    @contextmanager
    def indented(self) -> Iterator["SourceWriter"]:
        self._depth += 1
        try:
            yield self
        finally:
            self._depth -= 1

    def getvalue(self) -> str:
        text = "\n".join(self._lines).rstrip("\n")
        return text + "\n"


def snake_case(name: str) -> str:
    """``HelloService`` -> ``hello_service``; ``HTTPService`` -> ``http_service``."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def import_lines(modules: Iterable[str]) -> List[str]:
    return [f"import {module}" for module in sorted(set(modules)) if module]


def write_header(writer: SourceWriter, origin: str) -> None:
    writer.line(AUTO_GENERATED_HEADER)
    writer.line(f"# Generated by servicegen from {origin}. Do not edit.")
    writer.line('"""Generated service layer module."""')


__all__ = [
    "AUTO_GENERATED_HEADER",
    "SourceWriter",
    "import_lines",
    "snake_case",
    "write_header",
]
