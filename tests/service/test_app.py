"""Tests for the FastAPI service mode."""

from __future__ import annotations

import textwrap

import pytest
from fastapi.testclient import TestClient

from servicegen.pipeline import Pipeline
from servicegen.service import create_app
from tests._fixtures.project_builder import greeter_sources


def _greeter_modules() -> dict[str, str]:
    modules = {}
    for path, text in greeter_sources("greeter").items():
        module = path[: -len(".py")].replace("/", ".")
        if module.endswith(".__init__"):
            module = module[: -len(".__init__")]
        modules[module] = textwrap.dedent(text).lstrip("\n")
    return modules


class _RecordingPipeline(Pipeline):
    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    def generate(self, declarations, *, clients=None, servers=None):
        self.calls += 1
        return super().generate(declarations, clients=clients, servers=servers)


@pytest.fixture
def pipeline() -> _RecordingPipeline:
    return _RecordingPipeline()


@pytest.fixture
def client(pipeline: _RecordingPipeline) -> TestClient:
    return TestClient(create_app(lambda: pipeline))


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_generate_endpoint_returns_artifacts(client: TestClient, pipeline: _RecordingPipeline) -> None:
    response = client.post(
        "/generate",
        json={"modules": _greeter_modules(), "packages": ["greeter"]},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["succeeded"] is True
    assert [(item["kind"], item["filename"]) for item in data["artifacts"]] == [
        ("client", "greeter_contracts_IHelloService.py"),
        ("server", "greeter_service_HelloService.py"),
    ]
    assert "class HelloServiceClient(greeter.contracts.IHelloService):" in data["artifacts"][0]["text"]
    assert data["diagnostics"] == []
    assert data["failures"] == []
    assert pipeline.calls == 1


def test_generate_endpoint_reports_diagnostics_and_failures(client: TestClient) -> None:
    modules = {
        "app.contracts": textwrap.dedent(
            """
            from servicegen.markers import exposed_service_interface
            from servicegen.runtime import CancellationToken


            @exposed_service_interface
            class IOrders:
                async def place(self, order: str, ct: str) -> None: ...
            """
        ),
        "app.broken": "def oops(:\n",
    }

    response = client.post("/generate", json={"modules": modules, "servers": False})

    assert response.status_code == 200
    data = response.json()
    assert data["succeeded"] is False
    (diagnostic,) = data["diagnostics"]
    assert diagnostic["code"] == "IF000"
    assert diagnostic["severity"] == "error"
    assert diagnostic["message"] == "Cancellation parameter must be a CancellationToken, it was str."
    assert diagnostic["path"] == "<app.contracts>"
    assert diagnostic["line"] == 8
    assert [item["subject"] for item in data["failures"]] == ["app.broken"]


def test_generate_endpoint_validates_payload(client: TestClient) -> None:
    response = client.post("/generate", json={"modules": "not a mapping"})
    assert response.status_code == 422
