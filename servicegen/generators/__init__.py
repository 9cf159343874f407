"""Artifact generators rendering Python source from contract snapshots."""

from .client import client_class_name, render_client
from .server import registration_function_name, render_server
from .writer import AUTO_GENERATED_HEADER, SourceWriter

__all__ = [
    "AUTO_GENERATED_HEADER",
    "SourceWriter",
    "client_class_name",
    "registration_function_name",
    "render_client",
    "render_server",
]
