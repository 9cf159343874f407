"""Renders the FastAPI route-table module for an exposed implementation."""

from __future__ import annotations

from ..compiler.routes import server_path
from ..models import POST, SERVER_ARTIFACT, GeneratedArtifact, ServiceContract, ServiceMethod
from .writer import SourceWriter, import_lines, snake_case, write_header

_RUNTIME = "servicegen.runtime"
_BASE_IMPORTS = ("fastapi", "typing", _RUNTIME)


def registration_function_name(class_name: str) -> str:
    return f"map_{snake_case(class_name)}_endpoints"


def _service_type(contract: ServiceContract) -> str:
    if contract.implements is not None:
        return contract.implements.qualified_name
    return contract.qualified_name


def _render_endpoint(
    writer: SourceWriter,
    contract: ServiceContract,
    index: int,
    method: ServiceMethod,
    service_type: str,
) -> None:
    decorator = "app.post" if method.verb == POST else "app.get"
    path = repr(server_path(method.route))
    token = method.cancellation_parameter_name
    writer.line(
        f'@{decorator}({path}, name="{contract.name}.{method.name}", response_model=None)'
    )
    # Contract method names never become locals of the registration function.
    writer.line(f"async def _endpoint_{index}(")
    arguments = [token]
    with writer.indented():
        if method.has_body:
            writer.line(
                f"{method.request_parameter_name}: "
                f"typing.Annotated[{method.request_payload_type}, fastapi.Body()],"
            )
            arguments.insert(0, method.request_parameter_name or "")
        writer.line(f"_service: typing.Annotated[{service_type}, fastapi.Depends(_provide)],")
        writer.line(
            f"{token}: typing.Annotated[{method.cancellation_parameter_type}, "
            f"fastapi.Depends({_RUNTIME}.request_cancellation)],"
        )
    writer.line(f") -> {method.response_payload_type or 'None'}:")
    with writer.indented():
        writer.line(f"return await _service.{method.name}({', '.join(arguments)})")


def render_server(contract: ServiceContract) -> GeneratedArtifact:
    """Render the endpoint registration module for an implementation contract."""
    service_type = _service_type(contract)
    function_name = registration_function_name(contract.name)
    writer = SourceWriter()
    write_header(writer, contract.qualified_name)
    writer.line()
    writer.lines(import_lines((*_BASE_IMPORTS, *contract.imports)))
    writer.line()
    writer.line()
    writer.line(f"def {function_name}(")
    with writer.indented():
        writer.line("app: fastapi.FastAPI,")
        writer.line(f"provider: typing.Optional[typing.Callable[[], {service_type}]] = None,")
    writer.line(") -> None:")
    with writer.indented():
        writer.line(f'"""Register the HTTP endpoints of {contract.qualified_name} on ``app``."""')
        writer.line(f"factory = provider or {contract.qualified_name}")
        writer.line()
        writer.line(f"def _provide() -> {service_type}:")
        with writer.indented():
            writer.line("return factory()")
        for index, method in enumerate(contract.methods):
            writer.line()
            _render_endpoint(writer, contract, index, method, service_type)
    writer.line()
    writer.line()
    writer.line(f'__all__ = ["{function_name}"]')
    return GeneratedArtifact(
        hint_name=contract.hint_name,
        kind=SERVER_ARTIFACT,
        text=writer.getvalue(),
    )


__all__ = ["registration_function_name", "render_server"]
