"""Tests for the generated FastAPI endpoint module."""

from __future__ import annotations

import re
from dataclasses import replace

from servicegen.compiler.contracts import build_implementation_contract, build_interface_contract
from servicegen.compiler.routes import client_path, server_path
from servicegen.generators.client import render_client
from servicegen.generators.server import registration_function_name, render_server
from servicegen.models import GET, POST, SERVER_ARTIFACT
from tests._fixtures.declarations import (
    awaitable,
    exposed,
    implementation,
    interface,
    method,
    param,
    ref,
    route,
    token,
)

NAME_MODEL = "app.models.NameModel"
_CLIENT_CALL = re.compile(r"self\._client\.(post|get)\(\s*'([^']*)'")
_SERVER_ROUTE = re.compile(r"@app\.(post|get)\('([^']*)'")


def _methods():
    return (
        method("SayHelloAsync", param("name", ref(NAME_MODEL)), token(), returns=awaitable(NAME_MODEL)),
        method("PingAsync", token()),
        method("Echo", param("text", ref("str")), token(), returns=awaitable("str"), markers=[route("Custom/Echo")]),
        method("Broken", param("name", ref("str")), param("ct", ref("str"))),
    )


def _implementation_methods():
    # Route markers live on the interface only.
    return tuple(replace(item, markers=()) for item in _methods())


def _implementation_contract():
    return build_implementation_contract(
        implementation(
            "HelloService",
            *_implementation_methods(),
            implements=[exposed("IHelloService", methods=_methods())],
        )
    )


def test_registration_function_name() -> None:
    assert registration_function_name("HelloService") == "map_hello_service_endpoints"
    assert registration_function_name("HTTPGateway") == "map_http_gateway_endpoints"


def test_scenario_a_server_module() -> None:
    artifact = render_server(_implementation_contract())
    text = artifact.text

    assert artifact.kind == SERVER_ARTIFACT
    assert artifact.filename == "app_services_HelloService.py"
    assert "def map_hello_service_endpoints(" in text
    assert "    provider: typing.Optional[typing.Callable[[], app.contracts.IHelloService]] = None," in text
    assert "    factory = provider or app.services.HelloService" in text
    assert (
        "    @app.post('/s/helloservice/sayhelloasync', "
        'name="HelloService.SayHelloAsync", response_model=None)'
    ) in text
    assert "        name: typing.Annotated[app.models.NameModel, fastapi.Body()]," in text
    assert "        _service: typing.Annotated[app.contracts.IHelloService, fastapi.Depends(_provide)]," in text
    assert (
        "        ct: typing.Annotated[servicegen.runtime.CancellationToken, "
        "fastapi.Depends(servicegen.runtime.request_cancellation)],"
    ) in text
    assert "    ) -> app.models.NameModel:" in text
    assert "        return await _service.SayHelloAsync(name, ct)" in text


def test_cancellation_only_endpoint_is_get_without_body() -> None:
    text = render_server(_implementation_contract()).text

    assert "@app.get('/s/helloservice/pingasync'" in text
    assert "        return await _service.PingAsync(ct)" in text


def test_server_module_has_no_postponed_annotations() -> None:
    text = render_server(_implementation_contract()).text

    assert "from __future__" not in text
    compile(text, "<server>", "exec")


def test_contract_without_interface_renders_empty_registration() -> None:
    contract = build_implementation_contract(implementation("Orphan", *_methods()))
    text = render_server(contract).text

    assert "def map_orphan_endpoints(" in text
    assert "@app." not in text
    compile(text, "<server>", "exec")


def test_client_and_server_agree_on_routes_and_verbs() -> None:
    client_contract = build_interface_contract(interface("IHelloService", *_methods()))
    server_contract = _implementation_contract()

    client_calls = [
        (verb.upper(), path) for verb, path in _CLIENT_CALL.findall(render_client(client_contract).text)
    ]
    server_routes = [
        (verb.upper(), path) for verb, path in _SERVER_ROUTE.findall(render_server(server_contract).text)
    ]

    assert client_calls == [(item.verb, client_path(item.route)) for item in client_contract.methods]
    assert server_routes == [(item.verb, server_path(item.route)) for item in server_contract.methods]
    assert [(verb, "/" + path) for verb, path in client_calls] == server_routes
    assert [verb for verb, _ in server_routes] == [POST, GET, POST]
    assert server_routes[2] == (POST, "/custom/echo")


def test_rendering_is_idempotent() -> None:
    assert render_server(_implementation_contract()).text == render_server(_implementation_contract()).text


def test_endpoint_functions_do_not_shadow_registration_locals() -> None:
    clashing = tuple(
        method(name, param("text", ref("str")), token(), returns=awaitable("str"))
        for name in ("factory", "app", "provider", "typing", "fastapi")
    )
    contract = build_implementation_contract(
        implementation(
            "HelloService",
            *clashing,
            implements=[exposed("IHelloService", methods=clashing)],
        )
    )
    text = render_server(contract).text

    for index, name in enumerate(("factory", "app", "provider", "typing", "fastapi")):
        assert f"    async def _endpoint_{index}(" in text
        assert f"        return await _service.{name}(text, ct)" in text
    assert "async def factory(" not in text
    assert "async def app(" not in text
    compile(text, "<server>", "exec")
