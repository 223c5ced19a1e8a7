"""Tests for Rust parsing helpers and type expressions."""

from __future__ import annotations

from pathlib import Path

import pytest

from astschema.errors import LoadFileError
from astschema.syntax import (
    GenericArgExpr,
    MacroTypeExpr,
    OtherTypeExpr,
    PathType,
    Snippet,
    TupleTypeExpr,
    is_path,
    iter_items,
    parse_source,
    parse_type,
    path_attribute,
)


def test_parse_error_reports_path_and_line() -> None:
    with pytest.raises(LoadFileError) as excinfo:
        parse_source("mod a;\nmod b c;\n", "src/lib.rs")

    error = excinfo.value
    assert error.path == Path("src/lib.rs")
    assert error.line == 2
    assert str(error).startswith("src/lib.rs:2:")


def test_iter_items_pairs_attributes_with_following_item() -> None:
    source = parse_source(
        '//! crate docs\n#![allow(dead_code)]\n\n#[cfg(feature = "full")]\n#[macro_use]\nmod a;\n\n/// docs\nmod b;\n',
        "src/lib.rs",
    )

    items = list(iter_items(source.root))

    assert [item.node.type for item in items] == ["mod_item", "mod_item"]
    assert [source.text(attr) for attr in items[0].attrs] == ['cfg(feature = "full")', "macro_use"]
    assert items[1].attrs == []


def test_path_attribute_reads_string_value() -> None:
    source = parse_source('#[path = "gen/clone.rs"]\nmod gen_clone;\n', "src/lib.rs")
    item = next(iter_items(source.root))

    assert path_attribute(item.attrs, source) == "gen/clone.rs"


def test_snippet_errors_map_back_to_origin_file() -> None:
    origin = parse_source("// header\nconst X: u8 = 0;\nconst Y: u8 = 1;\n", "src/expr.rs")
    start = origin.source.index(b"const Y")
    snippet = Snippet(origin, anchor=start).text("struct Broken { ").copy(start, start + 5)

    with pytest.raises(LoadFileError) as excinfo:
        snippet.parse()

    assert excinfo.value.path == Path("src/expr.rs")
    assert excinfo.value.line == 3


def test_parse_type_nested_generics() -> None:
    assert parse_type("Option<Box<Expr>>") == PathType(
        ("Option",), (PathType(("Box",), (PathType(("Expr",)),)),)
    )


def test_parse_type_token_macro_is_rendered_without_whitespace() -> None:
    assert parse_type("Token![::]") == MacroTypeExpr("Token", "::")
    assert parse_type("Punctuated<Pat, Token![,]>") == PathType(
        ("Punctuated",), (PathType(("Pat",)), MacroTypeExpr("Token", ","))
    )


def test_parse_type_scoped_and_tuple() -> None:
    assert parse_type("token::Paren") == PathType(("token", "Paren"))
    assert parse_type("(Token![if], Box<Expr>)") == TupleTypeExpr(
        (MacroTypeExpr("Token", "if"), PathType(("Box",), (PathType(("Expr",)),)))
    )


def test_parse_type_keeps_non_type_arguments_opaque() -> None:
    parsed = parse_type("Cow<'a, str>")

    assert isinstance(parsed, PathType)
    assert parsed.args[0] == GenericArgExpr("'a")
    assert isinstance(parse_type("&'a str"), OtherTypeExpr)


def test_is_path() -> None:
    assert is_path("crate::token::Comma")
    assert is_path("ExprLit")
    assert not is_path("Vec<Expr>")
    assert not is_path("")
