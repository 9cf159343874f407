"""FastAPI application entrypoint for servicegen service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..diagnostics import Diagnostic
from ..logging import get_logger
from ..pipeline import GenerationFailure, GenerationResult, Pipeline
from ..sources.python_source import DeclarationSourceError, PythonDeclarationSource

logger = get_logger("service")


class GenerateRequest(BaseModel):
    modules: Dict[str, str]
    packages: List[str] = Field(default_factory=list)
    clients: bool = True
    servers: bool = True


class ArtifactModel(BaseModel):
    hint_name: str
    kind: str
    filename: str
    text: str


class DiagnosticModel(BaseModel):
    code: str
    severity: str
    message: str
    path: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None

    @classmethod
    def from_diagnostic(cls, diagnostic: Diagnostic) -> "DiagnosticModel":
        location = diagnostic.location
        return cls(
            code=diagnostic.code,
            severity=diagnostic.severity.value,
            message=diagnostic.message,
            path=location.path if location else None,
            line=location.line if location else None,
            column=location.column if location else None,
        )


class FailureModel(BaseModel):
    subject: str
    message: str


class GenerateResponse(BaseModel):
    succeeded: bool
    artifacts: List[ArtifactModel]
    diagnostics: List[DiagnosticModel]
    failures: List[FailureModel]


class HealthResponse(BaseModel):
    status: str


def _default_pipeline() -> Pipeline:
    return Pipeline()


def _generate(pipeline: Pipeline, payload: GenerateRequest) -> GenerationResult:
    source = PythonDeclarationSource()
    failures: List[GenerationFailure] = []
    packages = set(payload.packages)
    for module, text in sorted(payload.modules.items()):
        try:
            source.add_module(module, text, is_package=module in packages)
        except DeclarationSourceError as exc:
            logger.warning("Skipping module %s: %s", module, exc)
            failures.append(GenerationFailure(subject=module, message=str(exc)))
    result = pipeline.generate(
        source.declarations(), clients=payload.clients, servers=payload.servers
    )
    result.failures[:0] = failures
    return result


def create_app(
    pipeline_factory: Callable[[], Pipeline] = _default_pipeline,
) -> FastAPI:
    """Create the FastAPI application exposing servicegen operations."""

    app = FastAPI(title="servicegen", version="0.1.0")

    async def get_pipeline() -> Pipeline:
        return pipeline_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/generate", response_model=GenerateResponse)
    async def generate(
        payload: GenerateRequest,
        pipeline: Pipeline = Depends(get_pipeline),
    ) -> GenerateResponse:
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, _generate, pipeline, payload)
        return GenerateResponse(
            succeeded=result.succeeded,
            artifacts=[
                ArtifactModel(
                    hint_name=artifact.hint_name,
                    kind=artifact.kind,
                    filename=artifact.filename,
                    text=artifact.text,
                )
                for artifact in result.artifacts
            ],
            diagnostics=[DiagnosticModel.from_diagnostic(item) for item in result.diagnostics],
            failures=[
                FailureModel(subject=item.subject, message=item.message)
                for item in result.failures
            ],
        )

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(
        _: Any, exc: RuntimeError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "0.0.0.0", port: int = 8000
) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__ = ["create_app", "run_service"]
