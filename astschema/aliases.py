"""Public re-export renames (``pub use path::Name as Alias``)."""

from __future__ import annotations

from typing import Collection, Dict, Mapping

from tree_sitter import Node

from .errors import InvariantViolation
from .syntax import SourceFile


def collect_aliases(use_tree: Node, source: SourceFile) -> Dict[str, str]:
    """Return ``alias -> original name`` for every rename inside a use tree."""
    aliases: Dict[str, str] = {}
    _walk(use_tree, source, aliases)
    return aliases


def _walk(node: Node, source: SourceFile, aliases: Dict[str, str]) -> None:
    if node.type == "use_as_clause":
        path = node.child_by_field_name("path")
        alias = node.child_by_field_name("alias")
        if path is None or alias is None:
            return
        name = source.text(alias)
        if name != "_":
            aliases[name] = source.text(path).split("::")[-1].strip()
    elif node.type == "scoped_use_list":
        inner = node.child_by_field_name("list")
        if inner is not None:
            _walk(inner, source, aliases)
    elif node.type == "use_list":
        for child in node.named_children:
            _walk(child, source, aliases)


def resolve_alias(name: str, aliases: Mapping[str, str], known: Collection[str]) -> str:
    """Follow the alias chain from ``name`` until it reaches a known node name."""
    seen = {name}
    resolved = name
    while resolved not in known:
        target = aliases.get(resolved)
        if target is None:
            raise InvariantViolation(f"unknown type: {name}")
        if target in seen:
            raise InvariantViolation(f"alias cycle while resolving {name}")
        seen.add(target)
        resolved = target
    return resolved


__all__ = ["collect_aliases", "resolve_alias"]
