"""
Path normalization and glob-to-destination translation.

Every path that reaches the matcher, a snapshot or the queue goes through
``normalize_path`` first, otherwise glob matches silently fail.
"""

import os
import posixpath
from typing import Callable, Optional

MAGIC_CHARS = frozenset("*?[{")


def normalize_path(path) -> Optional[str]:
    """
    Normalize a path to the form used for matching.

    The result is relative to the current working directory, uses forward
    slashes, has no trailing slash and is ``"."`` for the cwd itself.

    Args:
        path: A str or os.PathLike, absolute or relative

    Returns:
        The normalized path, or None if path is None
    """
    if path is None:
        return None

    absolute = os.path.abspath(os.fspath(path))
    normalized = os.path.relpath(absolute, os.getcwd()).replace("\\", "/")
    if normalized.endswith("/"):
        normalized = normalized[:-1]
    return normalized or "."


def join_path(directory: str, name: str) -> str:
    """Join a normalized directory and an entry name without re-normalizing."""
    if directory == ".":
        return name
    return f"{directory}/{name}"


def parent_path(path: str) -> str:
    """Return the normalized parent directory of a normalized path."""
    parent = posixpath.dirname(path)
    return parent or "."


def has_magic(segment: str) -> bool:
    """Check whether a glob segment contains wildcard syntax."""
    return any(ch in MAGIC_CHARS for ch in segment)


def glob_base(pattern: str) -> str:
    """
    Return the longest non-wildcard directory prefix of a normalized glob.

    A pattern without any wildcard names a single file; its base is the
    file's parent directory.
    """
    segments = pattern.split("/")
    base = []
    for segment in segments:
        if has_magic(segment):
            break
        base.append(segment)
    else:
        base.pop()

    return "/".join(base) if base else "."


def make_translator(base_dir: str, out_dir: str) -> Callable[[str], str]:
    """
    Build the source -> destination translation function.

    Paths under ``base_dir`` are re-rooted at ``out_dir``. A path outside
    ``base_dir`` is returned unchanged, which callers treat as "out of scope".

    Args:
        base_dir: Normalized base directory of the source glob
        out_dir: Destination directory (normalized here)

    Returns:
        A function mapping a normalized source path to a normalized
        destination path
    """
    output = normalize_path(out_dir)

    if base_dir == ".":
        def translate(source_path: str) -> str:
            return normalize_path(posixpath.join(output, source_path))
        return translate

    prefix = base_dir.rstrip("/") + "/"

    def translate(source_path: str) -> str:
        if source_path == base_dir:
            return output
        if not source_path.startswith(prefix):
            return source_path
        return normalize_path(posixpath.join(output, source_path[len(prefix):]))

    return translate
