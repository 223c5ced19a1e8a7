"""Configuration loading for astschema (.astschema.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import AstSchemaError
from .introspect import EXT_TYPES, STD_TYPES

CONFIG_FILENAME = ".astschema.yml"


class ConfigError(AstSchemaError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class AstSchemaConfig:
    """Represents the settings defined in .astschema.yml, relative to ``root``."""

    root: Path
    crate_root: str = "src/lib.rs"
    token_file: str = "src/token.rs"
    manifest: str = "Cargo.toml"
    output: str = "syn.json"
    version: Optional[str] = None
    # Generated traversal modules that never declare nodes.
    ignored_modules: List[str] = field(default_factory=lambda: ["fold", "visit", "visit_mut"])
    # Plain structs captured even though they are not macro-declared.
    extra_types: List[str] = field(default_factory=lambda: ["Lifetime"])
    # Modules gated by one fixed feature regardless of their own attributes.
    # `derive` is built under either "full" or "derive" but only exported
    # under "derive".
    module_features: Dict[str, str] = field(default_factory=lambda: {"derive": "derive"})
    external_types: List[str] = field(default_factory=lambda: sorted(EXT_TYPES))
    std_types: List[str] = field(default_factory=lambda: sorted(STD_TYPES))

    @property
    def crate_root_path(self) -> Path:
        return self.root / self.crate_root

    @property
    def token_file_path(self) -> Path:
        return self.root / self.token_file

    @property
    def manifest_path(self) -> Path:
        return self.root / self.manifest

    @property
    def output_path(self) -> Path:
        return self.root / self.output


def load_config(config_path: Path) -> AstSchemaConfig:
    """Load configuration from disk; a missing file yields the defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return AstSchemaConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = AstSchemaConfig(root=root)
    paths = _as_dict(data.get("paths"))
    config.crate_root = _as_str(paths.get("crate_root")) or config.crate_root
    config.token_file = _as_str(paths.get("token_file")) or config.token_file
    config.manifest = _as_str(paths.get("manifest")) or config.manifest
    config.output = _as_str(paths.get("output")) or config.output
    config.version = _as_str(data.get("version"))

    crawl = _as_dict(data.get("crawl"))
    if "ignored_modules" in crawl:
        config.ignored_modules = _as_str_list(crawl.get("ignored_modules"))
    if "extra_types" in crawl:
        config.extra_types = _as_str_list(crawl.get("extra_types"))
    if "module_features" in crawl:
        overrides = crawl.get("module_features")
        if overrides is not None and not isinstance(overrides, dict):
            raise ConfigError("crawl.module_features must be a mapping of module -> feature")
        config.module_features = {
            str(name): str(feature) for name, feature in (overrides or {}).items()
        }

    types = _as_dict(data.get("types"))
    if "external" in types:
        config.external_types = _as_str_list(types.get("external"))
    if "std" in types:
        config.std_types = _as_str_list(types.get("std"))

    return config


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


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = ["AstSchemaConfig", "CONFIG_FILENAME", "ConfigError", "load_config"]
