"""Pipeline that runs one complete schema extraction."""

from __future__ import annotations

from pathlib import Path
from typing import Dict

from .config import AstSchemaConfig, load_config
from .crawler import ModuleCrawler
from .errors import AstSchemaError
from .introspect import GROUP_TYPES, LeafTables
from .logging import get_logger
from .models import Definitions
from .schema import SchemaAssembler
from .tokens import load_token_table
from .version import crate_version


class Extractor:
    """Coordinates token loading, the module crawl and schema assembly."""

    def __init__(self, config: AstSchemaConfig) -> None:
        self.config = config
        self.logger = get_logger("extractor")

    @classmethod
    def for_crate(cls, path: Path | str) -> "Extractor":
        crate_dir = Path(path).expanduser().resolve()
        if not crate_dir.exists():
            raise AstSchemaError(f"Crate directory not found: {crate_dir}")
        return cls(load_config(crate_dir))

    def load_tokens(self) -> Dict[str, str]:
        return load_token_table(self.config.token_file_path, self.config.token_file)

    def run(self) -> Definitions:
        config = self.config
        self.logger.info("Extracting schema from %s", config.crate_root_path)
        tokens = self.load_tokens()

        crawler = ModuleCrawler(
            config.root,
            ignored_modules=config.ignored_modules,
            extra_types=config.extra_types,
            module_features=config.module_features,
        )
        lookup = crawler.crawl(config.crate_root)

        version = config.version or crate_version(config.manifest_path)
        assembler = SchemaAssembler(
            LeafTables(
                groups=GROUP_TYPES,
                ext=frozenset(config.external_types),
                std=frozenset(config.std_types),
            )
        )
        return assembler.assemble(lookup, tokens, version)


__all__ = ["Extractor"]
