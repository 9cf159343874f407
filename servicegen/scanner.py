"""Source tree scanning: finds the Python modules that may declare contracts."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Optional

from .config import ServiceGenConfig, load_config
from .logging import get_logger
from .sources.python_source import module_name_for

_SKIPPED_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        ".venv",
        "venv",
        ".tox",
        ".nox",
        "node_modules",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        ".ruff_cache",
        ".idea",
    }
)

logger = get_logger("scanner")


@dataclass(frozen=True)
class SourceFile:
    """A Python module found under a source root."""

    path: Path
    relative: str
    module: str
    is_package: bool


@dataclass(frozen=True)
class IgnoreRule:
    """One gitignore-style pattern, evaluated against project-relative paths."""

    pattern: str
    directory_only: bool = False
    anchored: bool = False
    negate: bool = False

    @classmethod
    def parse(cls, line: str) -> Optional["IgnoreRule"]:
        """Parse ``line``; blank lines and comments yield None."""
        text = line.strip()
        if not text or text.startswith("#"):
            return None
        negate = text.startswith("!")
        text = text.lstrip("!")
        directory_only = text.endswith("/")
        text = text.rstrip("/")
        # A slash anywhere but the end pins the pattern to the project root.
        anchored = "/" in text
        text = text.lstrip("/")
        if not text:
            return None
        return cls(pattern=text, directory_only=directory_only, anchored=anchored, negate=negate)

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if self.directory_only and not is_dir:
            return False
        if self.anchored:
            return fnmatchcase(rel_path, self.pattern)
        return fnmatchcase(rel_path.rpartition("/")[2], self.pattern)


@dataclass
class IgnoreRules:
    """Ordered ignore rules; the last matching rule decides."""

    rules: List[IgnoreRule] = field(default_factory=list)

    @classmethod
    def for_config(cls, config: ServiceGenConfig) -> "IgnoreRules":
        lines: List[str] = []
        gitignore = config.root / ".gitignore"
        if gitignore.is_file():
            lines.extend(gitignore.read_text(encoding="utf-8").splitlines())
        lines.extend(config.exclude_paths)
        try:
            output = config.output_path.resolve().relative_to(config.root)
        except ValueError:
            output = None
        if output is not None and output.parts:
            # Generated modules are never inputs.
            lines.append(f"/{output.as_posix()}/")
        parsed = (IgnoreRule.parse(line) for line in lines)
        return cls([rule for rule in parsed if rule is not None])

    def ignores(self, rel_path: str, is_dir: bool) -> bool:
        verdict = False
        for rule in self.rules:
            if rule.matches(rel_path, is_dir):
                verdict = not rule.negate
        return verdict


def _walk_modules(source_root: Path, project_root: Path, rules: IgnoreRules) -> Iterator[Path]:
    # Rules are written relative to the project root, even for nested source roots.
    base = project_root if source_root.is_relative_to(project_root) else source_root
    for dirpath, dirnames, filenames in os.walk(source_root):
        current = Path(dirpath)
        prefix = current.relative_to(base).as_posix()
        prefix = "" if prefix == "." else f"{prefix}/"
        dirnames[:] = [
            name
            for name in sorted(dirnames)
            if name not in _SKIPPED_DIRS and not rules.ignores(prefix + name, True)
        ]
        for name in sorted(filenames):
            if name.endswith(".py") and not rules.ignores(prefix + name, False):
                yield current / name


class SourceScanner:
    """Walks a project to list the Python modules under its source roots."""

    def scan(self, root: str, config: Optional[ServiceGenConfig] = None) -> List[SourceFile]:
        """Return the project's Python modules in a stable order."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Project path not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Project path is not a directory: {root}")

        config = config or load_config(root_path)
        rules = IgnoreRules.for_config(config)

        files: List[SourceFile] = []
        seen: set[Path] = set()
        for source_root in config.resolved_source_roots():
            source_root = source_root.resolve()
            if not source_root.is_dir():
                logger.warning("Source root %s does not exist; skipping", source_root)
                continue
            for path in _walk_modules(source_root, config.root, rules):
                module, is_package = module_name_for(path, source_root)
                if path in seen or not module:
                    continue
                seen.add(path)
                relative = path.relative_to(root_path) if path.is_relative_to(root_path) else path
                files.append(
                    SourceFile(
                        path=path,
                        relative=relative.as_posix(),
                        module=module,
                        is_package=is_package,
                    )
                )
        logger.debug("Found %d Python modules under %s", len(files), root_path)
        return files


__all__ = ["IgnoreRule", "IgnoreRules", "SourceFile", "SourceScanner"]
