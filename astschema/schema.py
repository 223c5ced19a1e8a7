"""Schema assembly and its JSON representation."""

from __future__ import annotations

import json
from types import MappingProxyType
from typing import Any, Dict, List, Mapping

from .crawler import Lookup
from .errors import AstSchemaError
from .introspect import LeafTables, TypeIntrospector
from .logging import get_logger
from .models import (
    BoxType,
    Definitions,
    EnumData,
    ExtType,
    Features,
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
from .tokens import invert_token_table

_logger = get_logger("schema")


class SchemaFormatError(AstSchemaError):
    """Raised when a serialized schema does not have the expected shape."""


class SchemaAssembler:
    """Turns crawl results into the final, deterministically ordered schema."""

    def __init__(self, tables: LeafTables | None = None) -> None:
        self.tables = tables or LeafTables()

    def assemble(self, lookup: Lookup, tokens: Mapping[str, str], version: str) -> Definitions:
        """Introspect every declaration; ``tokens`` maps spelling to symbol."""
        introspector = TypeIntrospector(
            nodes=frozenset(lookup.declarations),
            aliases=MappingProxyType(dict(lookup.aliases)),
            tokens=MappingProxyType(dict(tokens)),
            tables=self.tables,
        )
        types = [
            introspector.introspect_declaration(lookup.declarations[ident])
            for ident in sorted(lookup.declarations)
        ]
        _logger.info("Assembled schema %s with %d types", version, len(types))
        return Definitions(version=version, types=types, tokens=invert_token_table(tokens))


# Serialization


_SIMPLE_TAGS = {
    SynType: "syn",
    StdType: "std",
    ExtType: "proc_macro2",
    TokenType: "token",
    GroupType: "group",
}
_WRAPPER_TAGS = {OptionType: "option", BoxType: "box", VecType: "vec"}


def type_to_dict(ty: Type) -> Dict[str, Any]:
    tag = _SIMPLE_TAGS.get(type(ty))
    if tag is not None:
        return {tag: ty.name}  # type: ignore[union-attr]
    tag = _WRAPPER_TAGS.get(type(ty))
    if tag is not None:
        return {tag: type_to_dict(ty.inner)}  # type: ignore[union-attr]
    if isinstance(ty, PunctuatedType):
        return {"punctuated": {"element": type_to_dict(ty.element), "punct": ty.punct}}
    if isinstance(ty, TupleType):
        return {"tuple": [type_to_dict(element) for element in ty.elements]}
    raise TypeError(f"not a schema type: {ty!r}")


def type_from_dict(payload: Any) -> Type:
    if not isinstance(payload, dict) or len(payload) != 1:
        raise SchemaFormatError(f"expected a single-key type object, got {payload!r}")
    tag, value = next(iter(payload.items()))
    for cls, simple_tag in _SIMPLE_TAGS.items():
        if tag == simple_tag:
            return cls(str(value))
    for cls, wrapper_tag in _WRAPPER_TAGS.items():
        if tag == wrapper_tag:
            return cls(type_from_dict(value))
    if tag == "punctuated" and isinstance(value, dict):
        return PunctuatedType(
            element=type_from_dict(value.get("element")), punct=str(value.get("punct"))
        )
    if tag == "tuple" and isinstance(value, list):
        return TupleType(tuple(type_from_dict(element) for element in value))
    raise SchemaFormatError(f"unknown type tag: {tag}")


def node_to_dict(node: Node) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"ident": node.ident, "features": features_to_dict(node.features)}
    if isinstance(node.data, StructData):
        payload["fields"] = {name: type_to_dict(ty) for name, ty in node.data.fields}
    elif isinstance(node.data, EnumData):
        payload["variants"] = {
            name: [type_to_dict(ty) for ty in members] for name, members in node.data.variants
        }
    if not node.exhaustive:
        payload["exhaustive"] = False
    return payload


def node_from_dict(payload: Any) -> Node:
    if not isinstance(payload, dict) or not isinstance(payload.get("ident"), str):
        raise SchemaFormatError(f"expected a node object, got {payload!r}")
    fields = payload.get("fields")
    variants = payload.get("variants")
    if isinstance(fields, dict):
        data: Any = StructData(tuple((name, type_from_dict(ty)) for name, ty in fields.items()))
    elif isinstance(variants, dict):
        data = EnumData(
            tuple(
                (name, tuple(type_from_dict(ty) for ty in members))
                for name, members in variants.items()
            )
        )
    else:
        data = PrivateData()
    features = payload.get("features")
    if not isinstance(features, dict):
        features = {}
    return Node(
        ident=payload["ident"],
        features=Features(frozenset(features.get("any", []))),
        data=data,
        exhaustive=bool(payload.get("exhaustive", True)),
    )


def features_to_dict(features: Features) -> Dict[str, List[str]]:
    return {"any": sorted(features.any)} if features else {}


def definitions_to_dict(definitions: Definitions) -> Dict[str, Any]:
    return {
        "version": definitions.version,
        "types": [node_to_dict(node) for node in definitions.types],
        "tokens": dict(sorted(definitions.tokens.items())),
    }


def definitions_from_dict(payload: Any) -> Definitions:
    if not isinstance(payload, dict):
        raise SchemaFormatError("schema must be a JSON object")
    types = payload.get("types")
    tokens = payload.get("tokens")
    if not isinstance(types, list) or not isinstance(tokens, dict):
        raise SchemaFormatError("schema requires `types` list and `tokens` object")
    return Definitions(
        version=str(payload.get("version", "")),
        types=[node_from_dict(node) for node in types],
        tokens={str(symbol): str(spelling) for symbol, spelling in tokens.items()},
    )


def dumps(definitions: Definitions) -> str:
    return json.dumps(definitions_to_dict(definitions), indent=2) + "\n"


def loads(text: str) -> Definitions:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaFormatError(f"invalid schema JSON: {exc}") from exc
    return definitions_from_dict(payload)


__all__ = [
    "SchemaAssembler",
    "SchemaFormatError",
    "definitions_from_dict",
    "definitions_to_dict",
    "dumps",
    "loads",
    "node_from_dict",
    "node_to_dict",
    "type_from_dict",
    "type_to_dict",
]
