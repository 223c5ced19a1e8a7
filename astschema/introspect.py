"""Conversion of declared Rust types into the schema type algebra."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Collection, FrozenSet, Mapping

from .aliases import resolve_alias
from .declarations import Declaration
from .errors import InvariantViolation
from .models import (
    BoxType,
    EnumData,
    ExtType,
    GroupType,
    Node,
    OptionType,
    PrivateData,
    PunctuatedType,
    StdType,
    StructData,
    SynType,
    TokenType,
    TupleType,
    Type,
    VecType,
)
from .syntax import (
    GenericArgExpr,
    MacroTypeExpr,
    PathType,
    TupleTypeExpr,
    TypeExpr,
)
from .tokens import TOKEN_MACRO

GROUP_TYPES = frozenset({"Brace", "Bracket", "Paren", "Group"})
EXT_TYPES = frozenset({"TokenStream", "Literal", "Ident", "Span"})
STD_TYPES = frozenset({"String", "u32", "usize", "bool"})


@dataclass(frozen=True)
class LeafTables:
    """Names classified as leaves instead of node references."""

    groups: FrozenSet[str] = GROUP_TYPES
    ext: FrozenSet[str] = EXT_TYPES
    std: FrozenSet[str] = STD_TYPES


class TypeIntrospector:
    """Resolves type expressions against the collected node and alias tables."""

    def __init__(
        self,
        nodes: Collection[str],
        aliases: Mapping[str, str],
        tokens: Mapping[str, str],
        tables: LeafTables | None = None,
    ) -> None:
        self.nodes = nodes
        self.aliases = aliases
        # spelling -> symbol
        self.tokens = tokens
        self.tables = tables or LeafTables()

    def introspect(self, ty: TypeExpr) -> Type:
        if isinstance(ty, PathType):
            return self._introspect_path(ty)
        if isinstance(ty, TupleTypeExpr):
            return TupleType(tuple(self.introspect(element) for element in ty.elements))
        if isinstance(ty, MacroTypeExpr) and ty.name == TOKEN_MACRO:
            symbol = self.tokens.get(ty.tokens)
            if symbol is None:
                raise InvariantViolation(f"unknown token: {ty.tokens}")
            return TokenType(symbol)
        raise InvariantViolation(f"unsupported type: {_describe(ty)}")

    def _introspect_path(self, ty: PathType) -> Type:
        name = ty.name
        if name == "Option":
            return OptionType(self.introspect(_first_arg(ty)))
        if name == "Punctuated":
            element = self.introspect(_first_arg(ty))
            punct = self.introspect(_last_arg(ty))
            if not isinstance(punct, TokenType):
                raise InvariantViolation(
                    f"punctuated separator must be a token: {_describe(_last_arg(ty))}"
                )
            return PunctuatedType(element=element, punct=punct.name)
        if name == "Vec":
            return VecType(self.introspect(_first_arg(ty)))
        if name == "Box":
            return BoxType(self.introspect(_first_arg(ty)))
        if name in self.tables.groups:
            return GroupType(name)
        if name in self.tables.ext:
            return ExtType(name)
        if name in self.tables.std:
            return StdType(name)
        return SynType(resolve_alias(name, self.aliases, self.nodes))

    def introspect_declaration(self, declaration: Declaration) -> Node:
        """Produce the schema node for one collected declaration."""
        if declaration.is_struct:
            if all(field.public for field in declaration.fields):
                data = StructData(
                    tuple((field.name, self.introspect(field.ty)) for field in declaration.fields)
                )
            else:
                data = PrivateData()
            return Node(
                ident=declaration.ident,
                features=declaration.features,
                data=data,
                exhaustive=True,
            )

        variants = tuple(
            (variant.name, tuple(self.introspect(member) for member in variant.members))
            for variant in declaration.variants
            if not variant.hidden
        )
        hidden = any(variant.hidden for variant in declaration.variants)
        return Node(
            ident=declaration.ident,
            features=declaration.features,
            data=EnumData(variants),
            exhaustive=not (declaration.non_exhaustive or hidden),
        )


def _first_arg(ty: PathType) -> TypeExpr:
    if not ty.args or isinstance(ty.args[0], GenericArgExpr):
        raise InvariantViolation(f"expected a type argument: {_describe(ty)}")
    return ty.args[0]


def _last_arg(ty: PathType) -> TypeExpr:
    if not ty.args or isinstance(ty.args[-1], GenericArgExpr):
        raise InvariantViolation(f"expected a type argument: {_describe(ty)}")
    return ty.args[-1]


def _describe(ty: TypeExpr) -> str:
    if isinstance(ty, PathType):
        text = "::".join(ty.segments)
        if ty.args:
            text += "<" + ", ".join(_describe(arg) for arg in ty.args) + ">"
        return text
    if isinstance(ty, TupleTypeExpr):
        return "(" + ", ".join(_describe(element) for element in ty.elements) + ")"
    if isinstance(ty, MacroTypeExpr):
        return f"{ty.name}![{ty.tokens}]"
    return ty.text


__all__ = [
    "EXT_TYPES",
    "GROUP_TYPES",
    "LeafTables",
    "STD_TYPES",
    "TypeIntrospector",
]
