"""Generation pipeline: declarations in, artifacts and diagnostics out."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from .compiler.contracts import (
    UnresolvedDeclarationError,
    build_implementation_contract,
    build_interface_contract,
)
from .config import ServiceGenConfig, load_config
from .declarations import TypeDeclaration, has_marker
from .diagnostics import Diagnostic
from .generators.client import render_client
from .generators.server import render_server
from .logging import get_logger
from .markers import INTERFACE_MARKER, SERVICE_MARKER
from .models import GeneratedArtifact
from .scanner import SourceFile, SourceScanner
from .sources.python_source import DeclarationSourceError, PythonDeclarationSource


@dataclass(frozen=True)
class GenerationFailure:
    """A declaration (or module) for which nothing could safely be emitted."""

    subject: str
    message: str


@dataclass
class GenerationResult:
    """Everything one generation pass produced."""

    artifacts: List[GeneratedArtifact] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    failures: List[GenerationFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failures and not any(item.is_error for item in self.diagnostics)

    def extend(self, other: "GenerationResult") -> None:
        self.artifacts.extend(other.artifacts)
        self.diagnostics.extend(other.diagnostics)
        self.failures.extend(other.failures)


@dataclass
class RunOutcome:
    """Result of generating a project and writing its artifacts."""

    result: GenerationResult
    output_dir: Path
    written: List[Path] = field(default_factory=list)
    unchanged: List[Path] = field(default_factory=list)
    dry_run: bool = False


class Pipeline:
    """Coordinates the contract compiler and the artifact generators."""

    def __init__(
        self,
        *,
        clients: bool = True,
        servers: bool = True,
        scanner: SourceScanner | None = None,
    ) -> None:
        self.clients = clients
        self.servers = servers
        self.scanner = scanner or SourceScanner()
        self.logger = get_logger("pipeline")

    def generate_declaration(
        self,
        declaration: TypeDeclaration,
        *,
        clients: Optional[bool] = None,
        servers: Optional[bool] = None,
    ) -> GenerationResult:
        """Generate the artifacts of one declaration.

        Raises UnresolvedDeclarationError when the declaration cannot be
        identified; callers isolate that failure to this declaration.
        """
        clients = self.clients if clients is None else clients
        servers = self.servers if servers is None else servers
        result = GenerationResult()
        if clients and has_marker(declaration, INTERFACE_MARKER):
            contract = build_interface_contract(declaration)
            result.artifacts.append(render_client(contract))
            result.diagnostics.extend(contract.diagnostics)
            self.logger.debug(
                "Client for %s: %d methods, %d diagnostics",
                contract.qualified_name,
                len(contract.methods),
                len(contract.diagnostics),
            )
        if servers and has_marker(declaration, SERVICE_MARKER):
            contract = build_implementation_contract(declaration)
            result.artifacts.append(render_server(contract))
            result.diagnostics.extend(contract.diagnostics)
            self.logger.debug(
                "Endpoints for %s: %d methods, %d diagnostics",
                contract.qualified_name,
                len(contract.methods),
                len(contract.diagnostics),
            )
        return result

    def generate(
        self,
        declarations: Iterable[TypeDeclaration],
        *,
        clients: Optional[bool] = None,
        servers: Optional[bool] = None,
    ) -> GenerationResult:
        """Generate every declaration; a fatal failure only affects its own declaration."""
        result = GenerationResult()
        for declaration in declarations:
            try:
                result.extend(
                    self.generate_declaration(declaration, clients=clients, servers=servers)
                )
            except UnresolvedDeclarationError as exc:
                self.logger.error("Generation failed for %s: %s", declaration.name or "<unknown>", exc)
                result.failures.append(
                    GenerationFailure(subject=declaration.name or "<unknown>", message=str(exc))
                )
        return result

    def load_sources(
        self, files: Iterable[SourceFile]
    ) -> tuple[PythonDeclarationSource, List[GenerationFailure]]:
        source = PythonDeclarationSource()
        failures: List[GenerationFailure] = []
        for file in files:
            try:
                source.add_file(file.path, file.module, is_package=file.is_package)
            except DeclarationSourceError as exc:
                self.logger.error("Skipping %s: %s", file.relative, exc)
                failures.append(GenerationFailure(subject=file.relative, message=str(exc)))
        return source, failures

    def run(
        self,
        path: str,
        *,
        output_dir: Optional[Path] = None,
        dry_run: bool = False,
        config: Optional[ServiceGenConfig] = None,
    ) -> RunOutcome:
        """Scan ``path``, generate every contract, and write changed artifacts."""
        root = Path(path).expanduser().resolve()
        config = config or load_config(root)
        if output_dir is not None:
            config.output_dir = output_dir
        self.logger.info("Generating service layer for %s", root)

        files = self.scanner.scan(str(root), config)
        source, failures = self.load_sources(files)
        result = self.generate(
            source.declarations(),
            clients=self.clients and config.clients,
            servers=self.servers and config.servers,
        )
        result.failures[:0] = failures

        outcome = RunOutcome(result=result, output_dir=config.output_path, dry_run=dry_run)
        claimed: set[str] = set()
        for artifact in result.artifacts:
            if artifact.filename in claimed:
                self.logger.error("Two artifacts share the file name %s", artifact.filename)
                result.failures.append(
                    GenerationFailure(
                        subject=artifact.hint_name,
                        message=f"{artifact.kind} artifact {artifact.filename} is already taken",
                    )
                )
                continue
            claimed.add(artifact.filename)
            target = outcome.output_dir / artifact.filename
            if _is_current(target, artifact.text):
                outcome.unchanged.append(target)
                continue
            outcome.written.append(target)
            if dry_run:
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(artifact.text, encoding="utf-8")
            self.logger.debug("Wrote %s", target)

        self.logger.info(
            "%d artifacts (%d changed), %d diagnostics, %d failures",
            len(result.artifacts),
            len(outcome.written),
            len(result.diagnostics),
            len(result.failures),
        )
        return outcome


def _is_current(target: Path, text: str) -> bool:
    try:
        return target.read_text(encoding="utf-8") == text
    except FileNotFoundError:
        return False


__all__ = ["GenerationFailure", "GenerationResult", "Pipeline", "RunOutcome"]
