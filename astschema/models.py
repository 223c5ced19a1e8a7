"""Core data models for the extracted node schema."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Tuple, Union


@dataclass(frozen=True)
class Features:
    """Feature predicate: the node exists when any listed feature is enabled.

    An empty set means the node is unconditional.
    """

    any: FrozenSet[str] = frozenset()

    @classmethod
    def of(cls, *names: str) -> "Features":
        return cls(frozenset(names))

    def __bool__(self) -> bool:
        return bool(self.any)


# Type algebra. Every variant is frozen and compared structurally.


@dataclass(frozen=True)
class SynType:
    """Reference to another node by name."""

    name: str


@dataclass(frozen=True)
class StdType:
    """Primitive leaf type such as ``String`` or ``bool``."""

    name: str


@dataclass(frozen=True)
class ExtType:
    """Opaque leaf type supplied by the tokenizer layer."""

    name: str


@dataclass(frozen=True)
class TokenType:
    """Symbolic token kind, e.g. ``Comma``."""

    name: str


@dataclass(frozen=True)
class GroupType:
    """Delimiter-group marker (``Brace``, ``Bracket``, ``Paren``, ``Group``)."""

    name: str


@dataclass(frozen=True)
class PunctuatedType:
    element: "Type"
    punct: str


@dataclass(frozen=True)
class OptionType:
    inner: "Type"


@dataclass(frozen=True)
class BoxType:
    inner: "Type"


@dataclass(frozen=True)
class VecType:
    inner: "Type"


@dataclass(frozen=True)
class TupleType:
    elements: Tuple["Type", ...]


Type = Union[
    SynType,
    StdType,
    ExtType,
    TokenType,
    GroupType,
    PunctuatedType,
    OptionType,
    BoxType,
    VecType,
    TupleType,
]


@dataclass(frozen=True)
class StructData:
    """Named fields of a struct whose fields are all public, in declaration order."""

    fields: Tuple[Tuple[str, Type], ...] = ()

    def as_dict(self) -> Dict[str, Type]:
        return dict(self.fields)


@dataclass(frozen=True)
class EnumData:
    """Variants of an enum and their positional payload types."""

    variants: Tuple[Tuple[str, Tuple[Type, ...]], ...] = ()

    def as_dict(self) -> Dict[str, Tuple[Type, ...]]:
        return dict(self.variants)


@dataclass(frozen=True)
class PrivateData:
    """Struct with at least one non-public field; recorded as opaque."""


Data = Union[StructData, EnumData, PrivateData]


@dataclass(frozen=True)
class Node:
    """One grammar entity in the extracted schema."""

    ident: str
    features: Features
    data: Data
    exhaustive: bool = True


@dataclass
class Definitions:
    """The terminal artifact of an extraction run."""

    version: str
    types: List[Node] = field(default_factory=list)
    # Symbolic kind -> spelling, e.g. "Comma" -> ",".
    tokens: Dict[str, str] = field(default_factory=dict)

    def node(self, ident: str) -> Node:
        for node in self.types:
            if node.ident == ident:
                return node
        raise KeyError(ident)


__all__ = [
    "BoxType",
    "Data",
    "Definitions",
    "EnumData",
    "ExtType",
    "Features",
    "GroupType",
    "Node",
    "OptionType",
    "PrivateData",
    "PunctuatedType",
    "StdType",
    "StructData",
    "SynType",
    "TokenType",
    "TupleType",
    "Type",
    "VecType",
]
