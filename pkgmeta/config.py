"""Configuration loading for pkgmeta (.pkgmeta.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

CONFIG_FILENAME = ".pkgmeta.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class PkgMetaConfig:
    """Represents the settings defined in .pkgmeta.yml."""

    root: Path
    assembly_info_pattern: Optional[str] = None
    version_suffix: Optional[str] = None
    properties: Dict[str, str] = field(default_factory=dict)


def load_config(config_path: Path) -> PkgMetaConfig:
    """Load configuration from disk.

    ``config_path`` may be the configuration file itself, the directory that
    holds it, or a project file that sits beside it.
    """
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return PkgMetaConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    properties_data = data.get("properties")
    if properties_data is not None and not isinstance(properties_data, dict):
        raise ConfigError("'properties' must be a mapping of property names to values")

    properties: Dict[str, str] = {}
    for name, value in (properties_data or {}).items():
        as_text = _as_str(value)
        if as_text is None:
            raise ConfigError(f"Property '{name}' must be a scalar value")
        properties[str(name)] = as_text

    return PkgMetaConfig(
        root=root,
        assembly_info_pattern=_as_str(data.get("assembly_info_pattern")),
        version_suffix=_as_str(data.get("version_suffix")),
        properties=properties,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value) if isinstance(value, (str, int, float)) else None


__all__ = ["CONFIG_FILENAME", "ConfigError", "PkgMetaConfig", "load_config"]
