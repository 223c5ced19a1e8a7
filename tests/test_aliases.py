"""Tests for re-export alias collection and resolution."""

from __future__ import annotations

import pytest

from astschema.aliases import collect_aliases, resolve_alias
from astschema.errors import InvariantViolation
from astschema.syntax import iter_items, parse_source


def _aliases(text: str) -> dict:
    source = parse_source(text, "src/lib.rs")
    item = next(iter_items(source.root))
    return collect_aliases(item.node.child_by_field_name("argument"), source)


def test_single_rename() -> None:
    assert _aliases("pub use crate::expr::ExprLit as PatLit;\n") == {"PatLit": "ExprLit"}


def test_renames_inside_nested_lists() -> None:
    aliases = _aliases(
        "pub use crate::expr::{Expr, ExprLit as PatLit, path::{ExprPath as PatPath, Member}};\n"
    )

    assert aliases == {"PatLit": "ExprLit", "PatPath": "ExprPath"}


def test_underscore_imports_are_not_aliases() -> None:
    assert _aliases("pub use crate::ext::IdentExt as _;\n") == {}


def test_resolve_follows_chain() -> None:
    aliases = {"A": "B", "B": "C"}

    assert resolve_alias("A", aliases, {"C"}) == "C"
    assert resolve_alias("C", aliases, {"C"}) == "C"


def test_resolve_stops_at_first_known_name() -> None:
    assert resolve_alias("A", {"A": "B", "B": "C"}, {"B", "C"}) == "B"


def test_resolve_unknown_name() -> None:
    with pytest.raises(InvariantViolation, match="unknown type: Missing"):
        resolve_alias("Missing", {"A": "B"}, {"B"})


def test_resolve_cycle() -> None:
    with pytest.raises(InvariantViolation, match="alias cycle"):
        resolve_alias("A", {"A": "B", "B": "A"}, {"C"})
