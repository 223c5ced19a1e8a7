"""Crate version lookup from Cargo.toml."""

from __future__ import annotations

import tomllib
from pathlib import Path

from .errors import AstSchemaError


def crate_version(manifest: Path) -> str:
    """Return ``[package] version`` from a Cargo manifest."""
    try:
        data = tomllib.loads(manifest.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise AstSchemaError(f"Cargo manifest not found: {manifest}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise AstSchemaError(f"Failed to parse {manifest}: {exc}") from exc

    package = data.get("package")
    version = package.get("version") if isinstance(package, dict) else None
    if not isinstance(version, str):
        raise AstSchemaError(f"{manifest} does not declare [package] version")
    return version


__all__ = ["crate_version"]
