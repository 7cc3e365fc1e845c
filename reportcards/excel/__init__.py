"""Mark-sheet input: file reading, grid normalization and header resolution."""

from .grid import CanonicalRow, CanonicalTable, Orientation, StructuralError, normalize
from .headers import build_header_index, find_missing_headers

__all__ = [
    "CanonicalRow",
    "CanonicalTable",
    "Orientation",
    "StructuralError",
    "build_header_index",
    "find_missing_headers",
    "normalize",
]
