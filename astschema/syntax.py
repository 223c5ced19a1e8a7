"""Tree-sitter powered access to Rust source files."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

import tree_sitter_rust
from tree_sitter import Language, Node, Parser, Tree

from .errors import LoadFileError

RUST_LANGUAGE = Language(tree_sitter_rust.language())

_COMMENT_TYPES = {"line_comment", "block_comment"}
_OPENERS = {"(": ")", "[": "]", "{": "}"}
_NON_TYPE_ARGS = {"lifetime", "type_binding", "block", "trait_bounds"}
_PATH_RE = re.compile(r"^(?:::)?[A-Za-z_]\w*(?:::[A-Za-z_]\w*)*$")


@lru_cache(maxsize=1)
def _parser() -> Parser:
    return Parser(RUST_LANGUAGE)


@dataclass
class SourceFile:
    """A parsed Rust file (or re-assembled snippet) and its raw bytes."""

    path: Path
    source: bytes
    tree: Tree

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def text(self, node: Node) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def position(self, offset: int) -> Tuple[int, int]:
        """Return the 1-based line and character column of a byte offset."""
        line = self.source.count(b"\n", 0, offset) + 1
        line_start = self.source.rfind(b"\n", 0, offset) + 1
        column = len(self.source[line_start:offset].decode("utf-8", errors="replace")) + 1
        return line, column

    def error_at(self, offset: int, message: str) -> LoadFileError:
        line, column = self.position(offset)
        return LoadFileError(self.path, line, column, message)


def parse_source(source: Union[str, bytes], path: Path | str) -> SourceFile:
    """Parse Rust text, raising LoadFileError at the first syntax error."""
    data = source.encode("utf-8") if isinstance(source, str) else source
    parsed = SourceFile(path=Path(path), source=data, tree=_parser().parse(data))
    error = first_error(parsed.root)
    if error is not None:
        raise parsed.error_at(error.start_byte, describe_error(error, parsed))
    return parsed


def read_source(path: Path, display_path: Path | str | None = None) -> SourceFile:
    """Read and parse a file; errors are reported against ``display_path``."""
    return parse_source(path.read_bytes(), display_path if display_path is not None else path)


def first_error(node: Node) -> Optional[Node]:
    if node.type == "ERROR" or node.is_missing:
        return node
    if not node.has_error:
        return None
    for child in node.children:
        found = first_error(child)
        if found is not None:
            return found
    return node


def describe_error(node: Node, source: SourceFile) -> str:
    if node.is_missing:
        return f"expected `{node.type}`"
    leaf = node
    while leaf.child_count:
        leaf = leaf.children[0]
    text = source.text(leaf).strip()
    return f"unexpected token `{text}`" if text else "unexpected end of input"


class Snippet:
    """Rust text assembled from verbatim slices of a file plus synthesized glue.

    Parse errors inside the snippet are reported at the matching position of
    the originating file; synthesized text maps to the end of the preceding
    verbatim slice, or to ``anchor`` when nothing precedes it.
    """

    def __init__(self, origin: SourceFile, anchor: int) -> None:
        self.origin = origin
        self.anchor = anchor
        self._chunks: List[bytes] = []
        self._length = 0
        # (snippet offset, origin offset, length)
        self._segments: List[Tuple[int, int, int]] = []

    def text(self, value: str) -> "Snippet":
        data = value.encode("utf-8")
        self._chunks.append(data)
        self._length += len(data)
        return self

    def copy(self, start: int, end: int) -> "Snippet":
        data = self.origin.source[start:end]
        self._segments.append((self._length, start, len(data)))
        self._chunks.append(data)
        self._length += len(data)
        return self

    def copy_node(self, node: Node) -> "Snippet":
        return self.copy(node.start_byte, node.end_byte)

    @property
    def source(self) -> bytes:
        return b"".join(self._chunks)

    def origin_offset(self, offset: int) -> int:
        best = self.anchor
        for snippet_start, origin_start, length in self._segments:
            if snippet_start <= offset < snippet_start + length:
                return origin_start + (offset - snippet_start)
            if snippet_start + length <= offset:
                best = origin_start + length
        return best

    def parse(self) -> SourceFile:
        data = self.source
        parsed = SourceFile(path=self.origin.path, source=data, tree=_parser().parse(data))
        error = first_error(parsed.root)
        if error is not None:
            raise self.origin.error_at(
                self.origin_offset(error.start_byte), describe_error(error, parsed)
            )
        return parsed

    def parse_item(self, kind: str) -> Tuple["Item", SourceFile]:
        """Parse the snippet, which must hold exactly one item of node type ``kind``."""
        parsed = self.parse()
        items = list(iter_items(parsed.root))
        problem = _single_item_problem(items, kind, len(parsed.source))
        if problem is not None:
            offset, message = problem
            raise self.origin.error_at(self.origin_offset(offset), message)
        return items[0], parsed


@dataclass
class Item:
    """A syntax node together with the outer attributes written before it."""

    node: Node
    attrs: List[Node] = field(default_factory=list)


def iter_items(container: Node) -> Iterator[Item]:
    """Yield the items of a file or list node, pairing each with its attributes."""
    pending: List[Node] = []
    for child in container.named_children:
        if child.type in _COMMENT_TYPES or child.type == "inner_attribute_item":
            continue
        if child.type == "attribute_item":
            pending.extend(c for c in child.named_children if c.type == "attribute")
            continue
        if child.type == "expression_statement" and child.named_child_count:
            inner = child.named_children[0]
            if inner.type == "macro_invocation":
                child = inner
        yield Item(child, pending)
        pending = []


def single_item(source: SourceFile, kind: str) -> Item:
    """Return the only item of a parsed text, which must be of node type ``kind``."""
    items = list(iter_items(source.root))
    problem = _single_item_problem(items, kind, len(source.source))
    if problem is not None:
        raise source.error_at(*problem)
    return items[0]


def _single_item_problem(items: List[Item], kind: str, length: int) -> Optional[Tuple[int, str]]:
    if not items or items[0].node.type != kind:
        offset = items[0].node.start_byte if items else length
        return offset, f"expected {kind.replace('_item', '')} declaration"
    if len(items) > 1:
        return items[1].node.start_byte, "unexpected token after declaration"
    return None


# Attributes


def attribute_name(attr: Node, source: SourceFile) -> str:
    return source.text(attr.named_children[0]) if attr.named_child_count else ""


def has_attribute(attrs: List[Node], name: str, source: SourceFile) -> bool:
    return any(attribute_name(attr, source) == name for attr in attrs)


def is_doc_hidden(attrs: List[Node], source: SourceFile) -> bool:
    for attr in attrs:
        if attribute_name(attr, source) != "doc":
            continue
        arguments = attr.child_by_field_name("arguments")
        if arguments is None or arguments.children[0].type != "(":
            continue
        tokens = token_children(arguments)
        if tokens and source.text(tokens[0]) == "hidden":
            return True
    return False


def path_attribute(attrs: List[Node], source: SourceFile) -> Optional[str]:
    """Return the file named by a ``#[path = "..."]`` attribute, if present."""
    for attr in attrs:
        if attribute_name(attr, source) != "path":
            continue
        value = attr.child_by_field_name("value")
        if value is None or value.type != "string_literal":
            raise source.error_at(attr.start_byte, "expected `path = \"...\"`")
        return string_value(value, source)
    return None


def string_value(node: Node, source: SourceFile) -> str:
    """Return the contents of a plain string literal node (escapes are kept as written)."""
    text = source.text(node)
    if node.type != "string_literal" or '"' not in text:
        raise source.error_at(node.start_byte, "expected string literal")
    return text[text.index('"') + 1 : text.rindex('"')]


def is_public(node: Node, source: SourceFile) -> bool:
    """True for a plain ``pub`` visibility; restricted forms do not count."""
    for child in node.named_children:
        if child.type == "visibility_modifier":
            return source.text(child).strip() == "pub"
    return False


# Token trees


def token_children(group: Node) -> List[Node]:
    """Return the tokens inside a token tree, without delimiters or comments."""
    children = group.children
    if children and children[0].type in _OPENERS:
        children = children[1:-1]
    return [child for child in children if child.type not in _COMMENT_TYPES]


def render_tokens(node: Node, source: SourceFile) -> str:
    """Render tokens back to text with all whitespace between tokens removed."""
    if node.type in _COMMENT_TYPES:
        return ""
    if node.child_count == 0 or node.type == "string_literal":
        return source.text(node)
    return "".join(render_tokens(child, source) for child in node.children)


def render_group_contents(group: Node, source: SourceFile) -> str:
    return "".join(render_tokens(child, source) for child in token_children(group))


def group_opener(node: Optional[Node]) -> Optional[str]:
    if node is None or node.type != "token_tree" or not node.child_count:
        return None
    return node.children[0].type


class TokenCursor:
    """Sequential reader over the tokens of one token tree."""

    def __init__(self, group: Node, source: SourceFile) -> None:
        self.group = group
        self.source = source
        self.tokens = token_children(group)
        self.index = 0

    def peek(self, ahead: int = 0) -> Optional[Node]:
        position = self.index + ahead
        return self.tokens[position] if position < len(self.tokens) else None

    def peek_text(self, text: str, ahead: int = 0) -> bool:
        node = self.peek(ahead)
        return node is not None and self.source.text(node) == text

    def at_end(self) -> bool:
        return self.index >= len(self.tokens)

    @property
    def offset(self) -> int:
        """Byte offset of the next token, or of the closing delimiter."""
        node = self.peek()
        if node is not None:
            return node.start_byte
        return self.group.end_byte - 1

    @property
    def end(self) -> int:
        return self.group.end_byte - 1

    def next(self) -> Node:
        node = self.peek()
        if node is None:
            raise self.source.error_at(self.offset, "unexpected end of input")
        self.index += 1
        return node

    def eat(self, text: str) -> bool:
        if self.peek_text(text):
            self.index += 1
            return True
        return False

    def expect(self, text: str) -> Node:
        if not self.peek_text(text):
            raise self.source.error_at(self.offset, f"expected `{text}`")
        return self.next()

    def expect_ident(self) -> str:
        node = self.peek()
        if node is None or node.type != "identifier":
            raise self.source.error_at(self.offset, "expected identifier")
        self.index += 1
        return self.source.text(node)

    def expect_group(self, opener: str) -> Node:
        node = self.peek()
        if group_opener(node) != opener:
            raise self.source.error_at(self.offset, f"expected `{opener}`")
        self.index += 1
        return node  # type: ignore[return-value]

    def expect_end(self) -> None:
        if not self.at_end():
            raise self.source.error_at(self.offset, "unexpected token")

    def skip_attributes(self) -> Optional[Tuple[int, int]]:
        """Consume ``#[...]`` attributes, returning the byte range they covered."""
        start: Optional[int] = None
        end = 0
        while self.peek_text("#") and group_opener(self.peek(1)) == "[":
            hash_token = self.next()
            if start is None:
                start = hash_token.start_byte
            end = self.next().end_byte
        return (start, end) if start is not None else None

    def eat_marker(self, name: str) -> bool:
        """Consume a ``#name`` marker such as ``#full``."""
        marker = self.peek(1)
        if self.peek_text("#") and marker is not None and marker.type == "identifier":
            if self.source.text(marker) == name:
                self.index += 2
                return True
        return False


def is_path(text: str) -> bool:
    return bool(_PATH_RE.match(text))


# Type expressions


@dataclass(frozen=True)
class PathType:
    """A path type; ``args`` are the generic arguments of the last segment."""

    segments: Tuple[str, ...]
    args: Tuple["TypeExpr", ...] = ()

    @property
    def name(self) -> str:
        return self.segments[-1]


@dataclass(frozen=True)
class TupleTypeExpr:
    elements: Tuple["TypeExpr", ...]


@dataclass(frozen=True)
class MacroTypeExpr:
    """A macro in type position, e.g. ``Token![,]``; ``tokens`` has no whitespace."""

    name: str
    tokens: str


@dataclass(frozen=True)
class GenericArgExpr:
    """A generic argument that is not a type (lifetime, binding, const)."""

    text: str


@dataclass(frozen=True)
class OtherTypeExpr:
    text: str


TypeExpr = Union[PathType, TupleTypeExpr, MacroTypeExpr, GenericArgExpr, OtherTypeExpr]


def _segments(text: str) -> Tuple[str, ...]:
    return tuple(part for part in re.sub(r"\s+", "", text).split("::") if part)


def type_expr(node: Node, source: SourceFile) -> TypeExpr:
    """Convert a tree-sitter type node into a TypeExpr."""
    kind = node.type
    if kind in {"type_identifier", "primitive_type", "scoped_type_identifier"}:
        return PathType(_segments(source.text(node)))
    if kind == "generic_type":
        base = node.child_by_field_name("type")
        arguments = node.child_by_field_name("type_arguments")
        args: List[TypeExpr] = []
        if arguments is not None:
            for child in arguments.named_children:
                if child.type in _COMMENT_TYPES:
                    continue
                if child.type in _NON_TYPE_ARGS or child.type.endswith("_literal"):
                    args.append(GenericArgExpr(source.text(child)))
                else:
                    args.append(type_expr(child, source))
        return PathType(_segments(source.text(base)) if base is not None else (), tuple(args))
    if kind == "tuple_type":
        return TupleTypeExpr(
            tuple(
                type_expr(child, source)
                for child in node.named_children
                if child.type not in _COMMENT_TYPES
            )
        )
    if kind == "unit_type":
        return TupleTypeExpr(())
    if kind == "macro_invocation":
        name = node.child_by_field_name("macro")
        group = next((c for c in node.named_children if c.type == "token_tree"), None)
        return MacroTypeExpr(
            name=_segments(source.text(name))[-1] if name is not None else "",
            tokens=render_group_contents(group, source) if group is not None else "",
        )
    return OtherTypeExpr(source.text(node))


def parse_type(text: str) -> TypeExpr:
    """Parse a standalone Rust type such as ``Option<Box<Expr>>``."""
    parsed = parse_source(f"type __Parsed = {text};", "<type>")
    item = single_item(parsed, "type_item")
    return type_expr(item.node.child_by_field_name("type"), parsed)


__all__ = [
    "GenericArgExpr",
    "Item",
    "MacroTypeExpr",
    "OtherTypeExpr",
    "PathType",
    "RUST_LANGUAGE",
    "Snippet",
    "SourceFile",
    "TokenCursor",
    "TupleTypeExpr",
    "TypeExpr",
    "has_attribute",
    "is_doc_hidden",
    "is_path",
    "is_public",
    "iter_items",
    "parse_source",
    "parse_type",
    "path_attribute",
    "read_source",
    "render_group_contents",
    "render_tokens",
    "single_item",
    "string_value",
    "token_children",
    "type_expr",
]
