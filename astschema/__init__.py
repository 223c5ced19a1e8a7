"""Schema extraction for syntax-tree crates built from declaration macros."""

from .errors import AstSchemaError, InvariantViolation, LoadFileError
from .extractor import Extractor
from .models import Definitions, Features, Node

__all__ = [
    "AstSchemaError",
    "Definitions",
    "Extractor",
    "Features",
    "InvariantViolation",
    "LoadFileError",
    "Node",
]
