"""Recognizer for the three node-declaration macro forms."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from tree_sitter import Node

from .errors import InvariantViolation
from .features import merge_features
from .models import Features
from .syntax import (
    Item,
    Snippet,
    SourceFile,
    TokenCursor,
    TypeExpr,
    has_attribute,
    is_doc_hidden,
    is_path,
    is_public,
    iter_items,
    render_group_contents,
    type_expr,
)

STRUCT_MACRO = "ast_struct"
ENUM_MACRO = "ast_enum"
ENUM_OF_STRUCTS_MACRO = "ast_enum_of_structs"
DECLARATION_MACROS = (STRUCT_MACRO, ENUM_MACRO, ENUM_OF_STRUCTS_MACRO)

# `#full` after a struct name gates it behind the "full" feature.
FULL_MARKER = "full"
FULL_FEATURE = "full"
# `#no_visit` after an enum name removes it from the schema.
NO_VISIT_MARKER = "no_visit"


@dataclass(frozen=True)
class FieldDecl:
    name: str
    ty: TypeExpr
    public: bool


@dataclass(frozen=True)
class VariantDecl:
    name: str
    members: Tuple[TypeExpr, ...]
    hidden: bool


@dataclass(frozen=True)
class Declaration:
    """A node declaration as written in the crate, before type introspection."""

    ident: str
    kind: str
    fields: Tuple[FieldDecl, ...] = ()
    variants: Tuple[VariantDecl, ...] = ()
    non_exhaustive: bool = False
    features: Features = Features()

    @property
    def is_struct(self) -> bool:
        return self.kind == "struct"

    def gated(self, features: Features) -> "Declaration":
        return replace(self, features=merge_features(self.features, features))


def recognize(macro: str, group: Node, source: SourceFile) -> Optional[Declaration]:
    """Recognize one macro invocation; returns None for excluded or unrelated macros."""
    if macro == STRUCT_MACRO:
        return recognize_struct(group, source)
    if macro == ENUM_MACRO:
        return recognize_enum(group, source)
    if macro == ENUM_OF_STRUCTS_MACRO:
        return recognize_enum_of_structs(group, source)
    return None


def recognize_struct(group: Node, source: SourceFile) -> Declaration:
    """``ast_struct! { #[attrs] pub struct Name #full { fields } }``"""
    cursor = TokenCursor(group, source)
    # Outer attributes of the struct carry no schema information.
    cursor.skip_attributes()
    cursor.expect("pub")
    cursor.expect("struct")
    ident = cursor.expect_ident()
    features = Features.of(FULL_FEATURE) if cursor.eat_marker(FULL_MARKER) else Features()

    snippet = Snippet(source, anchor=cursor.offset).text(f"pub struct {ident} ")
    if not cursor.at_end():
        snippet.copy(cursor.offset, cursor.end)
    item, parsed = snippet.parse_item("struct_item")
    return replace(declare_struct(item, parsed), features=features)


def recognize_enum(group: Node, source: SourceFile) -> Optional[Declaration]:
    """``ast_enum! { #[attrs] pub enum Name #no_visit { variants } }``"""
    cursor = TokenCursor(group, source)
    attrs = cursor.skip_attributes()
    cursor.expect("pub")
    cursor.expect("enum")
    ident = cursor.expect_ident()
    if cursor.eat_marker(NO_VISIT_MARKER):
        return None

    snippet = Snippet(source, anchor=cursor.offset)
    if attrs is not None:
        snippet.copy(*attrs).text("\n")
    snippet.text(f"pub enum {ident} ")
    if not cursor.at_end():
        snippet.copy(cursor.offset, cursor.end)
    item, parsed = snippet.parse_item("enum_item")
    return declare_enum(item, parsed)


def recognize_enum_of_structs(group: Node, source: SourceFile) -> Declaration:
    """``ast_enum_of_structs! { pub enum Name { Variant(Member), Unit, } }``

    Rebuilt as an ordinary enum whose variants carry the wrapped node type.
    """
    cursor = TokenCursor(group, source)
    attrs = cursor.skip_attributes()
    cursor.expect("pub")
    cursor.expect("enum")
    ident = cursor.expect_ident()
    body = cursor.expect_group("{")
    cursor.expect_end()

    snippet = Snippet(source, anchor=body.start_byte)
    if attrs is not None:
        snippet.copy(*attrs).text("\n")
    snippet.text(f"pub enum {ident} {{\n")

    entries = TokenCursor(body, source)
    while not entries.at_end():
        variant_attrs = entries.skip_attributes()
        if variant_attrs is not None:
            snippet.copy(*variant_attrs).text(" ")
        anchor = entries.offset
        name = entries.expect_ident()
        snippet.copy(anchor, anchor + len(name.encode("utf-8")))
        member = entries.peek()
        if member is not None and member.type == "token_tree" and member.children[0].type == "(":
            if not is_path(render_group_contents(member, source)):
                raise source.error_at(member.start_byte, "expected path")
            snippet.copy_node(entries.next())
        entries.expect(",")
        snippet.text(",\n")
    snippet.text("}\n")

    item, parsed = snippet.parse_item("enum_item")
    return declare_enum(item, parsed)


def declare_struct(item: Item, source: SourceFile) -> Declaration:
    """Build a struct declaration from a parsed ``struct_item``."""
    node = item.node
    ident = source.text(node.child_by_field_name("name"))
    body = node.child_by_field_name("body")
    fields: List[FieldDecl] = []
    if body is not None:
        if body.type != "field_declaration_list":
            raise InvariantViolation(f"struct representation not supported: {ident}")
        for entry in iter_items(body):
            field_node = entry.node
            fields.append(
                FieldDecl(
                    name=source.text(field_node.child_by_field_name("name")),
                    ty=type_expr(field_node.child_by_field_name("type"), source),
                    public=is_public(field_node, source),
                )
            )
    return Declaration(ident=ident, kind="struct", fields=tuple(fields))


def declare_enum(item: Item, source: SourceFile) -> Declaration:
    """Build an enum declaration from a parsed ``enum_item`` and its attributes."""
    node = item.node
    ident = source.text(node.child_by_field_name("name"))
    body = node.child_by_field_name("body")
    variants: List[VariantDecl] = []
    for entry in iter_items(body):
        variant = entry.node
        name = source.text(variant.child_by_field_name("name"))
        payload = variant.child_by_field_name("body")
        members: Tuple[TypeExpr, ...] = ()
        if payload is not None:
            if payload.type != "ordered_field_declaration_list":
                raise InvariantViolation(f"enum representation not supported: {ident}::{name}")
            members = tuple(
                type_expr(ty, source) for ty in payload.children_by_field_name("type")
            )
        variants.append(
            VariantDecl(name=name, members=members, hidden=is_doc_hidden(entry.attrs, source))
        )
    return Declaration(
        ident=ident,
        kind="enum",
        variants=tuple(variants),
        non_exhaustive=has_attribute(item.attrs, "non_exhaustive", source),
    )


__all__ = [
    "DECLARATION_MACROS",
    "Declaration",
    "FieldDecl",
    "VariantDecl",
    "declare_enum",
    "declare_struct",
    "recognize",
]
