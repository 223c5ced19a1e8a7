"""Recursive crawl of a crate's module tree collecting node declarations."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional

from .aliases import collect_aliases
from .declarations import DECLARATION_MACROS, Declaration, declare_struct, recognize
from .errors import AstSchemaError
from .features import FeatureContext
from .logging import get_logger
from .models import Features
from .syntax import Item, SourceFile, is_public, iter_items, path_attribute, read_source


@dataclass
class Lookup:
    """Tables collected by a crawl: declarations by name and rename aliases."""

    declarations: Dict[str, Declaration] = field(default_factory=dict)
    # "PatLit" -> "ExprLit"
    aliases: Dict[str, str] = field(default_factory=dict)


class ModuleCrawler:
    """Walks file-backed modules from the crate root, depth first."""

    def __init__(
        self,
        crate_dir: Path,
        *,
        ignored_modules: Iterable[str] = ("fold", "visit", "visit_mut"),
        extra_types: Iterable[str] = ("Lifetime",),
        module_features: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.crate_dir = Path(crate_dir)
        self.ignored_modules = frozenset(ignored_modules)
        self.extra_types = frozenset(extra_types)
        if module_features is None:
            module_features = {"derive": "derive"}
        self.module_features = dict(module_features)
        self.logger = get_logger("crawler")

    def crawl(self, crate_root: str = "src/lib.rs") -> Lookup:
        """Crawl from the crate root file; aliases are only read there."""
        lookup = Lookup()
        self.load_file(Path(crate_root), FeatureContext(), lookup, is_crate_root=True)
        self.logger.info(
            "Collected %d declarations and %d aliases",
            len(lookup.declarations),
            len(lookup.aliases),
        )
        return lookup

    def crawl_module(self, relative: Path | str, features: Features = Features()) -> Lookup:
        """Crawl a single module subtree under an inherited feature predicate."""
        lookup = Lookup()
        self.load_file(Path(relative), FeatureContext.of(features), lookup)
        return lookup

    def load_file(
        self,
        relative: Path,
        features: FeatureContext,
        lookup: Lookup,
        *,
        is_crate_root: bool = False,
    ) -> None:
        self.logger.debug("Loading %s", relative)
        try:
            source = read_source(self.crate_dir / relative, relative)
        except OSError as exc:
            raise AstSchemaError(f"{relative}: failed to read module file: {exc}") from exc

        for item in iter_items(source.root):
            kind = item.node.type
            if kind == "mod_item":
                self._visit_module(item, source, relative, features, lookup)
            elif kind == "macro_invocation":
                self._visit_macro(item, source, features, lookup)
            elif kind == "struct_item":
                self._visit_struct(item, source, features, lookup)
            elif kind == "use_declaration" and is_crate_root and is_public(item.node, source):
                argument = item.node.child_by_field_name("argument")
                if argument is not None:
                    lookup.aliases.update(collect_aliases(argument, source))

    def _visit_module(
        self,
        item: Item,
        source: SourceFile,
        relative: Path,
        features: FeatureContext,
        lookup: Lookup,
    ) -> None:
        # Inline modules are not grammar sources.
        if item.node.child_by_field_name("body") is not None:
            return
        name = source.text(item.node.child_by_field_name("name"))
        if name in self.ignored_modules:
            self.logger.debug("Skipping generated module %s", name)
            return

        forced = self.module_features.get(name)
        if forced is not None:
            module_features = FeatureContext.of(Features.of(forced))
        else:
            module_features = features.with_attrs(item.attrs, source)

        filename = path_attribute(item.attrs, source) or f"{name}.rs"
        self.load_file(relative.parent / filename, module_features, lookup)

    def _visit_macro(
        self, item: Item, source: SourceFile, features: FeatureContext, lookup: Lookup
    ) -> None:
        macro = item.node.child_by_field_name("macro")
        if macro is None or source.text(macro) not in DECLARATION_MACROS:
            return
        group = next((c for c in item.node.named_children if c.type == "token_tree"), None)
        if group is None:
            return
        declaration = recognize(source.text(macro), group, source)
        if declaration is None:
            return
        self._record(declaration, features.with_attrs(item.attrs, source), lookup)

    def _visit_struct(
        self, item: Item, source: SourceFile, features: FeatureContext, lookup: Lookup
    ) -> None:
        name = item.node.child_by_field_name("name")
        if name is None or source.text(name) not in self.extra_types:
            return
        self._record(declare_struct(item, source), features, lookup)

    def _record(
        self, declaration: Declaration, features: FeatureContext, lookup: Lookup
    ) -> None:
        declaration = declaration.gated(features.resolve())
        if declaration.ident in lookup.declarations:
            self.logger.debug("Redeclaration of %s replaces the earlier one", declaration.ident)
        lookup.declarations[declaration.ident] = declaration


__all__ = ["Lookup", "ModuleCrawler"]
