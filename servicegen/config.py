"""Configuration loading for servicegen (.servicegen.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".servicegen.yml"
DEFAULT_OUTPUT_DIR = "generated"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ServiceGenConfig:
    """Represents the settings defined in .servicegen.yml."""

    root: Path
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    clients: bool = True
    servers: bool = True
    source_roots: List[str] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)

    @property
    def output_path(self) -> Path:
        return self.output_dir if self.output_dir.is_absolute() else self.root / self.output_dir

    def resolved_source_roots(self) -> List[Path]:
        """Directories whose contents map to importable module names."""
        if not self.source_roots:
            return [self.root]
        return [self.root / entry for entry in self.source_roots]


def load_config(config_path: Path) -> ServiceGenConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return ServiceGenConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    generate = _as_dict(data.get("generate"))
    output_dir = _as_str(generate.get("output_dir")) or DEFAULT_OUTPUT_DIR
    clients = _as_bool(generate.get("clients"))
    servers = _as_bool(generate.get("servers"))

    return ServiceGenConfig(
        root=root,
        output_dir=Path(output_dir),
        clients=True if clients is None else clients,
        servers=True if servers is None else servers,
        source_roots=_as_str_list(data.get("source_roots")),
        exclude_paths=_as_str_list(data.get("exclude_paths")),
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = ["CONFIG_FILENAME", "ConfigError", "ServiceGenConfig", "load_config"]
