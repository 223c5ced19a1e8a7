"""Tests for the module crawler."""

from __future__ import annotations

from pathlib import Path

import pytest

from astschema.crawler import ModuleCrawler
from astschema.errors import AstSchemaError, InvariantViolation, LoadFileError
from astschema.models import Features
from tests._fixtures.crate_builder import CrateBuilder

LIB_RS = """
//! Parser for Rust source code.
#![allow(dead_code)]

#[macro_use]
mod macros;

#[cfg(any(feature = "full", feature = "derive"))]
mod expr;

#[cfg(feature = "full")]
mod item;

#[cfg(any(feature = "full", feature = "derive"))]
mod derive;

#[path = "gen/clone.rs"]
mod gen_clone;

#[cfg(feature = "fold")]
mod fold;

mod inline {
    ast_struct! {
        pub struct Inline {
            pub x: bool,
        }
    }
}

pub use crate::expr::{Expr, ExprLit as PatLit};
pub(crate) use crate::expr::ExprPath as Private;
pub use crate::expr::ExprPath as PatPath;

ast_struct! {
    pub struct Ident {
        pub sym: Symbol,
        pub span: Span,
    }
}

pub struct Lifetime {
    pub apostrophe: Span,
    pub ident: Ident,
}

pub struct Helper;
"""

EXPR_RS = """
pub use self::ExprLit as Shadow;

ast_enum_of_structs! {
    /// A Rust expression.
    #[non_exhaustive]
    pub enum Expr {
        Lit(ExprLit),
        Path(ExprPath),
    }
}

ast_struct! {
    pub struct ExprLit #full {
        pub attrs: Vec<Attribute>,
        pub lit: Lit,
    }
}

ast_struct! {
    pub struct ExprPath {
        pub path: Path,
    }
}
"""


@pytest.fixture
def crate(crate_builder: CrateBuilder) -> CrateBuilder:
    crate_builder.write(
        {
            "src/lib.rs": LIB_RS,
            "src/macros.rs": """
            macro_rules! ast_struct {
                ($($t:tt)*) => {};
            }
            """,
            "src/expr.rs": EXPR_RS,
            "src/item.rs": """
            ast_struct! {
                pub struct ItemMod {
                    pub ident: Ident,
                }
            }
            """,
            "src/derive.rs": """
            ast_struct! {
                pub struct DeriveInput {
                    pub ident: Ident,
                }
            }
            """,
            "src/gen/clone.rs": """
            ast_struct! {
                pub struct Cloned {
                    pub ident: Ident,
                }
            }
            """,
        }
    )
    return crate_builder


def test_crawl_collects_declarations(crate: CrateBuilder) -> None:
    lookup = ModuleCrawler(crate.path()).crawl()

    assert sorted(lookup.declarations) == [
        "Cloned",
        "DeriveInput",
        "Expr",
        "ExprLit",
        "ExprPath",
        "Ident",
        "ItemMod",
        "Lifetime",
    ]


def test_crawl_propagates_module_features(crate: CrateBuilder) -> None:
    declarations = ModuleCrawler(crate.path()).crawl().declarations

    assert declarations["Ident"].features == Features()
    assert declarations["Expr"].features == Features.of("full", "derive")
    assert declarations["ExprLit"].features == Features.of("full")
    assert declarations["ItemMod"].features == Features.of("full")
    assert declarations["Cloned"].features == Features()


def test_derive_module_is_forced_to_derive_feature(crate: CrateBuilder) -> None:
    declarations = ModuleCrawler(crate.path()).crawl().declarations

    assert declarations["DeriveInput"].features == Features.of("derive")


def test_module_feature_overrides_are_configurable(crate: CrateBuilder) -> None:
    crawler = ModuleCrawler(crate.path(), module_features={})

    assert crawler.crawl().declarations["DeriveInput"].features == Features.of("full", "derive")


def test_aliases_are_read_from_crate_root_only(crate: CrateBuilder) -> None:
    aliases = ModuleCrawler(crate.path()).crawl().aliases

    assert aliases == {"PatLit": "ExprLit", "PatPath": "ExprPath"}


def test_extra_types_are_configurable(crate: CrateBuilder) -> None:
    lookup = ModuleCrawler(crate.path(), extra_types=["Helper"]).crawl()

    assert "Helper" in lookup.declarations
    assert "Lifetime" not in lookup.declarations


def test_incompatible_gate_is_rejected(crate_builder: CrateBuilder) -> None:
    crate_builder.write(
        {
            "src/lib.rs": """
            #[cfg(feature = "full")]
            mod item;
            """,
            "src/item.rs": """
            #[cfg(feature = "derive")]
            ast_struct! {
                pub struct ItemFn {
                    pub ident: Ident,
                }
            }
            """,
        }
    )

    with pytest.raises(InvariantViolation, match="incompatible feature predicates"):
        ModuleCrawler(crate_builder.path()).crawl()


def test_later_declaration_replaces_earlier(crate_builder: CrateBuilder) -> None:
    crate_builder.write(
        {
            "src/lib.rs": """
            ast_struct! {
                pub struct Token {
                    pub a: bool,
                }
            }

            ast_struct! {
                pub struct Token {
                    pub b: bool,
                }
            }
            """,
        }
    )

    declaration = ModuleCrawler(crate_builder.path()).crawl().declarations["Token"]

    assert [field.name for field in declaration.fields] == ["b"]


def test_syntax_error_in_module_reports_module_path(crate_builder: CrateBuilder) -> None:
    crate_builder.write(
        {
            "src/lib.rs": "mod broken;\n",
            "src/broken.rs": "pub struct Ok;\npub fn (\n",
        }
    )

    with pytest.raises(LoadFileError) as excinfo:
        ModuleCrawler(crate_builder.path()).crawl()

    assert excinfo.value.path == Path("src/broken.rs")


def test_missing_module_file(crate_builder: CrateBuilder) -> None:
    crate_builder.write({"src/lib.rs": "mod absent;\n"})

    with pytest.raises(AstSchemaError, match="absent.rs"):
        ModuleCrawler(crate_builder.path()).crawl()


def test_crawl_module_applies_inherited_features(crate: CrateBuilder) -> None:
    lookup = ModuleCrawler(crate.path()).crawl_module("src/expr.rs", Features.of("full", "derive"))

    assert lookup.declarations["ExprPath"].features == Features.of("full", "derive")
    assert lookup.aliases == {}


def test_module_cfg_is_only_parsed_for_recorded_declarations(
    crate_builder: CrateBuilder,
) -> None:
    crate_builder.write(
        {
            "src/lib.rs": """
            #[cfg(all(any(feature = "full", feature = "derive"), feature = "printing"))]
            mod print;

            ast_struct! {
                pub struct Ident {
                    pub sym: Symbol,
                }
            }
            """,
            "src/print.rs": """
            impl ToTokens for Ident {}
            """,
        }
    )

    lookup = ModuleCrawler(crate_builder.path()).crawl()

    assert sorted(lookup.declarations) == ["Ident"]


def test_unsupported_module_cfg_fails_once_a_declaration_inherits_it(
    crate_builder: CrateBuilder,
) -> None:
    crate_builder.write(
        {
            "src/lib.rs": """
            #[cfg(all(feature = "full", feature = "printing"))]
            mod print;
            """,
            "src/print.rs": """
            ast_struct! {
                pub struct Printed {
                    pub x: bool,
                }
            }
            """,
        }
    )

    with pytest.raises(InvariantViolation, match="unsupported cfg predicate"):
        ModuleCrawler(crate_builder.path()).crawl()


def test_nested_module_gates_accumulate(crate_builder: CrateBuilder) -> None:
    crate_builder.write(
        {
            "src/lib.rs": """
            #[cfg(any(feature = "full", feature = "derive"))]
            mod ty;
            """,
            "src/ty.rs": """
            #[cfg(feature = "full")]
            #[path = "ty_full.rs"]
            mod full;

            ast_struct! {
                pub struct TypePath {
                    pub qself: bool,
                }
            }
            """,
            "src/ty_full.rs": """
            ast_struct! {
                pub struct TypeImplTrait {
                    pub impl_token: bool,
                }
            }
            """,
        }
    )

    declarations = ModuleCrawler(crate_builder.path()).crawl().declarations

    assert declarations["TypePath"].features == Features.of("full", "derive")
    assert declarations["TypeImplTrait"].features == Features.of("full")
