"""Loader for the ``macro_rules! Token`` spelling table.

The token file is read with its own small lexer instead of the tree-sitter
grammar: rules such as ``[$] => { $crate::token::Dollar };`` are valid Rust
but are not accepted by tree-sitter-rust.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from .errors import AstSchemaError, InvariantViolation, LoadFileError
from .logging import get_logger
from .syntax import is_path

TOKEN_MACRO = "Token"

_LEXEME_RE = re.compile(
    r"""
    (?P<space>\s+)
    | (?P<comment>//[^\n]*|/\*.*?\*/)
    | (?P<string>b?"(?:\\.|[^"\\])*")
    | (?P<char>b?'(?:\\.|[^'\\])')
    | (?P<lifetime>'[A-Za-z_]\w*)
    | (?P<ident>(?:r\#)?[A-Za-z_]\w*)
    | (?P<number>[0-9]\w*)
    | (?P<punct>\S)
    """,
    re.VERBOSE | re.DOTALL,
)
_CLOSERS = {"(": ")", "[": "]", "{": "}"}

_logger = get_logger("tokens")


@dataclass(frozen=True)
class Lexeme:
    kind: str
    text: str
    offset: int


class TokenFile:
    """Lexed token file with position reporting for error messages."""

    def __init__(self, text: str, path: Path | str) -> None:
        self.text = text
        self.path = Path(path)
        self.lexemes: List[Lexeme] = [
            Lexeme(match.lastgroup or "punct", match.group(), match.start())
            for match in _LEXEME_RE.finditer(text)
            if match.lastgroup not in {"space", "comment"}
        ]

    def error_at(self, index: int, message: str) -> LoadFileError:
        offset = self.lexemes[index].offset if index < len(self.lexemes) else len(self.text)
        line = self.text.count("\n", 0, offset) + 1
        column = offset - (self.text.rfind("\n", 0, offset) + 1) + 1
        return LoadFileError(self.path, line, column, message)

    def is_text(self, index: int, text: str) -> bool:
        return index < len(self.lexemes) and self.lexemes[index].text == text

    def group_end(self, start: int) -> int:
        """Index of the delimiter closing the group opened at ``start``."""
        stack = [_CLOSERS[self.lexemes[start].text]]
        index = start + 1
        while index < len(self.lexemes):
            text = self.lexemes[index].text
            if self.lexemes[index].kind == "punct":
                if text in _CLOSERS:
                    stack.append(_CLOSERS[text])
                elif text in _CLOSERS.values():
                    if text != stack.pop():
                        raise self.error_at(index, f"unexpected `{text}`")
                    if not stack:
                        return index
            index += 1
        raise self.error_at(start, "unclosed delimiter")

    def render(self, start: int, end: int) -> str:
        return "".join(lexeme.text for lexeme in self.lexemes[start:end])


def load_token_table(path: Path, display_path: Path | str | None = None) -> Dict[str, str]:
    """Return the ``spelling -> symbol`` table declared by the Token macro.

    Each rule has the shape ``[<spelling>] => { $<path> };`` and the symbol is
    the last segment of the path, e.g. ``"+=" -> "PlusEq"``.
    """
    shown = display_path if display_path is not None else path
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise AstSchemaError(f"failed to read token file {shown}: {exc}") from exc

    source = TokenFile(text, shown)
    body = find_token_macro(source)
    if body is None:
        raise InvariantViolation(
            f"{source.path}: no `macro_rules! {TOKEN_MACRO}` definition found"
        )
    tokens = parse_token_rules(source, *body)
    _logger.debug("Loaded %d token spellings from %s", len(tokens), source.path)
    return tokens


def find_token_macro(source: TokenFile) -> Optional[Tuple[int, int]]:
    """Locate the body of a top-level ``macro_rules! Token``, as a lexeme range."""
    lexemes = source.lexemes
    index = 0
    while index < len(lexemes):
        if (
            lexemes[index].text == "macro_rules"
            and source.is_text(index + 1, "!")
            and source.is_text(index + 2, TOKEN_MACRO)
            and index + 3 < len(lexemes)
            and lexemes[index + 3].text in _CLOSERS
        ):
            return index + 4, source.group_end(index + 3)
        if lexemes[index].kind == "punct" and lexemes[index].text in _CLOSERS:
            index = source.group_end(index)
        index += 1
    return None


def parse_token_rules(source: TokenFile, start: int, end: int) -> Dict[str, str]:
    tokens: Dict[str, str] = {}
    index = start
    while index < end:
        if not source.is_text(index, "["):
            raise source.error_at(index, "expected `[`")
        pattern_end = source.group_end(index)
        spelling = source.render(index + 1, pattern_end)
        index = pattern_end + 1

        if not (source.is_text(index, "=") and source.is_text(index + 1, ">")):
            raise source.error_at(index, "expected `=>`")
        index += 2

        if not source.is_text(index, "{"):
            raise source.error_at(index, "expected `{`")
        expansion_end = source.group_end(index)
        target = source.render(index + 1, expansion_end)
        if not target.startswith("$") or not is_path(target[1:]):
            raise source.error_at(index, "expected `$` followed by a path")
        index = expansion_end + 1

        # The separator may be omitted after the last rule.
        if index < end:
            if not source.is_text(index, ";"):
                raise source.error_at(index, "expected `;`")
            index += 1
        tokens[spelling] = target[1:].split("::")[-1]
    return tokens


def invert_token_table(tokens: Mapping[str, str]) -> Dict[str, str]:
    """Turn ``spelling -> symbol`` into ``symbol -> spelling``, sorted by symbol.

    A symbol reachable from two spellings has no canonical spelling and is
    rejected.
    """
    inverted: Dict[str, str] = {}
    for spelling, symbol in tokens.items():
        existing = inverted.get(symbol)
        if existing is not None and existing != spelling:
            raise InvariantViolation(
                f"token {symbol} has two spellings: `{existing}` and `{spelling}`"
            )
        inverted[symbol] = spelling
    return dict(sorted(inverted.items()))


__all__ = [
    "TOKEN_MACRO",
    "TokenFile",
    "find_token_macro",
    "invert_token_table",
    "load_token_table",
    "parse_token_rules",
]
