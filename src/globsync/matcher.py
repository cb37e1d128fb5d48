"""Glob matching over normalized paths."""

import fnmatch
from functools import lru_cache
from typing import List, Sequence, Tuple

from .paths import has_magic


def expand_braces(pattern: str) -> List[str]:
    """
    Expand ``{a,b}`` alternatives into separate patterns.

    Groups without a top-level comma are kept literally.
    """
    depth = 0
    start = -1
    for index, ch in enumerate(pattern):
        if ch == "{":
            if depth == 0:
                start = index
            depth += 1
        elif ch == "}" and depth:
            depth -= 1
            if depth:
                continue
            options = _split_alternatives(pattern[start + 1:index])
            if len(options) < 2:
                continue
            prefix, suffix = pattern[:start], pattern[index + 1:]
            expanded = []
            for option in options:
                expanded.extend(expand_braces(prefix + option + suffix))
            return expanded
    return [pattern]


def _split_alternatives(body: str) -> List[str]:
    options = []
    depth = 0
    current = []
    for ch in body:
        if ch == "," and depth == 0:
            options.append("".join(current))
            current = []
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        current.append(ch)
    options.append("".join(current))
    return options


def _match_segment(pattern: str, segment: str) -> bool:
    if not has_magic(pattern):
        return pattern == segment
    # Wildcards never match hidden entries.
    if segment.startswith(".") and not pattern.startswith("."):
        return False
    return fnmatch.fnmatchcase(segment, pattern)


def _match_parts(pattern: Sequence[str], parts: Sequence[str]) -> bool:
    if not pattern:
        return not parts

    head = pattern[0]
    if head == "**":
        rest = pattern[1:]
        for skip in range(len(parts) + 1):
            if skip and parts[skip - 1].startswith("."):
                return False
            if _match_parts(rest, parts[skip:]):
                return True
        return False

    if not parts or not _match_segment(head, parts[0]):
        return False
    return _match_parts(pattern[1:], parts[1:])


class PathMatcher:
    """
    Answers whether a normalized path matches one glob pattern.

    Supports ``*``, ``?`` and ``[...]`` inside a segment, ``**`` as a whole
    segment spanning any number of directories, and ``{a,b}`` alternatives.
    """

    def __init__(self, pattern: str):
        """
        Initialize the matcher.

        Args:
            pattern: Normalized glob pattern (see ``paths.normalize_path``)
        """
        self.pattern = pattern
        self._alternatives: Tuple[Tuple[str, ...], ...] = tuple(
            tuple(alternative.split("/")) for alternative in expand_braces(pattern)
        )
        self._matches = lru_cache(maxsize=4096)(self._match)

    def _match(self, path: str) -> bool:
        parts = path.split("/")
        return any(_match_parts(alternative, parts) for alternative in self._alternatives)

    def matches(self, path: str) -> bool:
        """
        Check whether a normalized path matches the pattern.

        Args:
            path: Normalized path

        Returns:
            True if the path matches
        """
        return self._matches(path)

    def __repr__(self) -> str:
        return f"PathMatcher({self.pattern!r})"
