"""Configuration loading tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from astschema.config import CONFIG_FILENAME, ConfigError, load_config


def _write_config(root: Path, content: str) -> Path:
    config_file = root / CONFIG_FILENAME
    config_file.write_text(content, encoding="utf-8")
    return config_file


def test_missing_config_uses_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert config.root == tmp_path.resolve()
    assert config.crate_root_path == tmp_path.resolve() / "src/lib.rs"
    assert config.token_file == "src/token.rs"
    assert config.ignored_modules == ["fold", "visit", "visit_mut"]
    assert config.extra_types == ["Lifetime"]
    assert config.module_features == {"derive": "derive"}
    assert "TokenStream" in config.external_types
    assert config.version is None


def test_config_overrides(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
paths:
  crate_root: lib/root.rs
  output: out/syn.json
version: 9.9.9
crawl:
  ignored_modules: [gen]
  extra_types: []
  module_features:
    derive: derive
    printing: printing
types:
  external: [Symbol, Span]
  std: String
""",
    )

    config = load_config(tmp_path)

    assert config.crate_root == "lib/root.rs"
    assert config.output_path == tmp_path.resolve() / "out/syn.json"
    assert config.manifest == "Cargo.toml"
    assert config.version == "9.9.9"
    assert config.ignored_modules == ["gen"]
    assert config.extra_types == []
    assert config.module_features == {"derive": "derive", "printing": "printing"}
    assert config.external_types == ["Symbol", "Span"]
    assert config.std_types == ["String"]


def test_config_file_path_is_accepted(tmp_path: Path) -> None:
    config_file = _write_config(tmp_path, "version: '1.0'\n")

    assert load_config(config_file).version == "1.0"


def test_empty_config(tmp_path: Path) -> None:
    _write_config(tmp_path, "\n")

    assert load_config(tmp_path).output == "syn.json"


def test_invalid_yaml(tmp_path: Path) -> None:
    _write_config(tmp_path, "paths: [unclosed\n")

    with pytest.raises(ConfigError, match="Failed to parse"):
        load_config(tmp_path)


def test_root_must_be_mapping(tmp_path: Path) -> None:
    _write_config(tmp_path, "- a\n- b\n")

    with pytest.raises(ConfigError, match="mapping"):
        load_config(tmp_path)


def test_module_features_must_be_mapping(tmp_path: Path) -> None:
    _write_config(tmp_path, "crawl:\n  module_features: [derive]\n")

    with pytest.raises(ConfigError, match="module_features"):
        load_config(tmp_path)
