"""Feature predicates collected from ``#[cfg(...)]`` attributes."""

from __future__ import annotations

from functools import reduce
from typing import Iterable, List, Tuple, Union

from tree_sitter import Node

from .errors import InvariantViolation
from .models import Features
from .syntax import SourceFile, attribute_name, group_opener, render_tokens, string_value, token_children


def merge_features(current: Features, other: Features) -> Features:
    """Merge two predicates attached to one declaration.

    The empty predicate is absorbed by any other. Two non-empty predicates must
    be nested; the narrower one wins.
    """
    if not current:
        return other
    if not other:
        return current
    if current.any <= other.any:
        return current
    if other.any <= current.any:
        return other
    raise InvariantViolation(
        "incompatible feature predicates: "
        f"any({', '.join(sorted(current.any))}) and any({', '.join(sorted(other.any))})"
    )


def combine_features(predicates: Iterable[Features]) -> Features:
    return reduce(merge_features, predicates, Features())


def parse_cfg(attr: Node, source: SourceFile) -> Features:
    """Parse ``cfg(feature = "x")`` or ``cfg(any(feature = "x", ...))``."""
    arguments = attr.child_by_field_name("arguments")
    if group_opener(arguments) != "(":
        raise InvariantViolation(f"unsupported cfg attribute: {source.text(attr)}")
    tokens = token_children(arguments)
    rendered = render_tokens(arguments, source)

    if tokens and source.text(tokens[0]) == "any":
        if len(tokens) != 2 or group_opener(tokens[1]) != "(":
            raise InvariantViolation(f"unsupported cfg predicate: {rendered}")
        names: List[str] = []
        inner = token_children(tokens[1])
        index = 0
        while index < len(inner):
            names.append(_parse_feature(inner[index : index + 3], source, rendered))
            index += 3
            if index < len(inner):
                if source.text(inner[index]) != ",":
                    raise InvariantViolation(f"unsupported cfg predicate: {rendered}")
                index += 1
        return Features(frozenset(names))

    if tokens and source.text(tokens[0]) == "feature":
        if len(tokens) != 3:
            raise InvariantViolation(f"unsupported cfg predicate: {rendered}")
        return Features.of(_parse_feature(tokens, source, rendered))

    raise InvariantViolation(f"unsupported cfg predicate: {rendered}")


def _parse_feature(tokens: List[Node], source: SourceFile, rendered: str) -> str:
    if (
        len(tokens) != 3
        or source.text(tokens[0]) != "feature"
        or source.text(tokens[1]) != "="
        or tokens[2].type != "string_literal"
    ):
        raise InvariantViolation(f"unsupported cfg predicate: {rendered}")
    return string_value(tokens[2], source)


def features_from_attrs(attrs: Iterable[Node], source: SourceFile) -> Features:
    """Merge every ``cfg`` attribute in ``attrs``; other attributes are ignored."""
    return combine_features(
        parse_cfg(attr, source) for attr in attrs if attribute_name(attr, source) == "cfg"
    )


# Either a resolved predicate or cfg attributes still to be parsed.
_Gate = Union[Features, Tuple[Tuple[Node, ...], SourceFile]]


class FeatureContext:
    """Feature gates inherited through the module tree, parsed on demand.

    Module ``cfg`` attributes are kept as written and only parsed when a
    declaration under them is recorded, so a module without declarations may
    carry ``cfg`` forms that nodes cannot (``all(...)``, ``not(...)``).
    """

    def __init__(self, gates: Tuple[_Gate, ...] = ()) -> None:
        self._gates = gates

    @classmethod
    def of(cls, features: Features) -> "FeatureContext":
        return cls((features,) if features else ())

    def with_attrs(self, attrs: Iterable[Node], source: SourceFile) -> "FeatureContext":
        cfgs = tuple(attr for attr in attrs if attribute_name(attr, source) == "cfg")
        if not cfgs:
            return self
        return FeatureContext(self._gates + ((cfgs, source),))

    def resolve(self) -> Features:
        return combine_features(
            gate if isinstance(gate, Features) else features_from_attrs(*gate)
            for gate in self._gates
        )


__all__ = [
    "FeatureContext",
    "combine_features",
    "features_from_attrs",
    "merge_features",
    "parse_cfg",
]
