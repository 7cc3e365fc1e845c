from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

"""Field resolver: case-insensitive header -> column index lookup.

Duplicate headers resolve to the LAST occurrence. Blank header cells are not
indexed. Matching is exact after trimming and lower-casing; there is no fuzzy
matching.
"""

__all__ = [
    "build_header_index",
    "find_missing_headers",
    "header_key",
]


def header_key(header: str) -> str:
    return header.strip().lower()


def build_header_index(headers: Sequence[str]) -> dict[str, int]:
    index: dict[str, int] = {}
    for i, header in enumerate(headers):
        key = header_key(header)
        if not key:
            continue
        index[key] = i  # later duplicates overwrite earlier ones
    return index


def find_missing_headers(index: Mapping[str, int], declared: Iterable[str]) -> list[str]:
    """Declared headers (original spelling, declaration order) absent from index."""
    return [h for h in declared if header_key(h) not in index]
