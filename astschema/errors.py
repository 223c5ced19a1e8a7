"""Exception types raised by the extraction engine."""

from __future__ import annotations

from pathlib import Path


class AstSchemaError(RuntimeError):
    """Base class for failures that abort an extraction run."""


class LoadFileError(AstSchemaError):
    """A source file could not be parsed as valid Rust syntax."""

    def __init__(self, path: Path | str, line: int, column: int, message: str) -> None:
        self.path = Path(path)
        self.line = line
        self.column = column
        self.message = message
        super().__init__(f"{self.path}:{line}:{column}: {message}")


class InvariantViolation(AstSchemaError):
    """The crate contains a construct the recognizer does not understand.

    This signals that the modeled library no longer matches the assumptions
    baked into the extractor, not a user mistake. It is never recovered from.
    """


__all__ = ["AstSchemaError", "InvariantViolation", "LoadFileError"]
