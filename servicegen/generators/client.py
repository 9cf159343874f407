"""Renders the httpx transport client for an exposed interface."""

from __future__ import annotations

from ..compiler.routes import client_path, interface_stem
from ..models import CLIENT_ARTIFACT, GeneratedArtifact, ServiceContract, ServiceMethod
from .writer import SourceWriter, import_lines, write_header

_RUNTIME = "servicegen.runtime"
_BASE_IMPORTS = ("httpx", "pydantic", _RUNTIME)


def client_class_name(interface_name: str) -> str:
    return f"{interface_stem(interface_name)}Client"


def _signature(method: ServiceMethod) -> str:
    parameters = ["self"]
    if method.has_body:
        parameters.append(f"{method.request_parameter_name}: {method.request_payload_type}")
    parameters.append(f"{method.cancellation_parameter_name}: {method.cancellation_parameter_type}")
    result = method.response_payload_type or "None"
    return f"async def {method.name}({', '.join(parameters)}) -> {result}:"


def _render_method(writer: SourceWriter, method: ServiceMethod) -> None:
    path = repr(client_path(method.route))
    route = repr(method.route)
    token = method.cancellation_parameter_name
    writer.line(f"# Callout to route {method.route}.")
    writer.line(_signature(method))
    with writer.indented():
        if method.has_body:
            writer.line(f"response = await {token}.run(")
            with writer.indented():
                writer.line("self._client.post(")
                with writer.indented():
                    writer.line(f"{path},")
                    writer.line(
                        f"json=pydantic.TypeAdapter({method.request_payload_type})"
                        f'.dump_python({method.request_parameter_name}, mode="json"),'
                    )
                writer.line(")")
            writer.line(")")
        else:
            writer.line(f"response = await {token}.run(self._client.get({path}))")
        writer.line("if response.is_success:")
        with writer.indented():
            if method.response_payload_type is None:
                writer.line("return None")
            else:
                writer.line(
                    f"return pydantic.TypeAdapter({method.response_payload_type})"
                    ".validate_python(response.json())"
                )
        writer.line("if response.status_code == httpx.codes.NOT_FOUND:")
        with writer.indented():
            writer.line(f"raise {_RUNTIME}.MissingEndpointError({route})")
        writer.line(f"raise {_RUNTIME}.ServiceTransportError({route}, response.status_code)")


def render_client(contract: ServiceContract) -> GeneratedArtifact:
    """Render the client module for an interface contract."""
    class_name = client_class_name(contract.name)
    writer = SourceWriter()
    write_header(writer, contract.qualified_name)
    writer.line()
    writer.lines(import_lines((*_BASE_IMPORTS, *contract.imports)))
    writer.line()
    writer.line()
    writer.line(f"class {class_name}({contract.qualified_name}):")
    with writer.indented():
        writer.line(f'"""HTTP client for {contract.qualified_name}."""')
        writer.line()
        writer.line("def __init__(self, client: httpx.AsyncClient) -> None:")
        with writer.indented():
            writer.line("self._client = client")
        for method in contract.methods:
            writer.line()
            _render_method(writer, method)
    writer.line()
    writer.line()
    writer.line(f'__all__ = ["{class_name}"]')
    return GeneratedArtifact(
        hint_name=contract.hint_name,
        kind=CLIENT_ARTIFACT,
        text=writer.getvalue(),
    )


__all__ = ["client_class_name", "render_client"]
