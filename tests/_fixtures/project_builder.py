"""Helper utilities for constructing temporary service projects in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Dict, Mapping

from servicegen.declarations import TypeDeclaration
from servicegen.sources import PythonDeclarationSource


def greeter_sources(package: str) -> Dict[str, str]:
    """A small greeter package: models, an exposed interface and its implementation."""
    return {
        f"{package}/__init__.py": "",
        f"{package}/models.py": """
            from pydantic import BaseModel


            class NameModel(BaseModel):
                name: str


            class Greeting(BaseModel):
                message: str
        """,
        f"{package}/contracts.py": """
            from typing import Protocol

            from servicegen.markers import exposed_service_interface, exposed_service_route
            from servicegen.runtime import CancellationToken

            from .models import Greeting, NameModel


            @exposed_service_interface
            class IHelloService(Protocol):
                async def say_hello(self, name: NameModel, ct: CancellationToken) -> Greeting:
                    ...

                async def ping(self, ct: CancellationToken) -> None:
                    ...

                @exposed_service_route("Custom/Echo")
                async def echo(self, text: str, ct: CancellationToken) -> str:
                    ...
        """,
        f"{package}/service.py": """
            from servicegen.markers import exposed_service
            from servicegen.runtime import CancellationToken

            from .contracts import IHelloService
            from .models import Greeting, NameModel


            @exposed_service
            class HelloService(IHelloService):
                async def say_hello(self, name: NameModel, ct: CancellationToken) -> Greeting:
                    return Greeting(message=f"Hello, {name.name}!")

                async def ping(self, ct: CancellationToken) -> None:
                    return None

                async def echo(self, text: str, ct: CancellationToken) -> str:
                    return text.upper()
        """,
    }


class ProjectBuilder:
    """Utility for writing modules into a throwaway project and parsing them."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "project"
        self.root.mkdir()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the project."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def path(self) -> Path:
        """Return the project root path."""
        return self.root


def parse_modules(modules: Mapping[str, str]) -> Dict[str, TypeDeclaration]:
    """Parse ``module -> source`` pairs and index the declarations by qualified name."""
    source = PythonDeclarationSource()
    for module, text in modules.items():
        source.add_module(module, textwrap.dedent(text).lstrip("\n"))
    return {item.qualified_name: item for item in source.declarations()}


__all__ = ["ProjectBuilder", "greeter_sources", "parse_modules"]
