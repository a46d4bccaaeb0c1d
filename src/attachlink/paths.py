"""Filename and path-segment helpers shared by conversion and rename tracking."""

from __future__ import annotations

import re
from os import PathLike

_ILLEGAL_CHARACTERS = re.compile(r'[\\/:*?"<>|]')
_PATH_SPLIT = re.compile(r"[\\/]")
_EXTENSION = re.compile(r"\.[^/.]+$")


def sanitize_name(name: str) -> str:
    """Return ``name`` without characters that are illegal in Windows or POSIX paths."""
    return _ILLEGAL_CHARACTERS.sub("", name)


def filename_from_path(path: str | PathLike[str]) -> str:
    """Return the last segment of ``path`` splitting on both separator styles."""
    return _PATH_SPLIT.split(str(path))[-1]


def split_extension(filename: str) -> tuple[str, str]:
    """Split ``filename`` at its final dot.

    Returns:
        tuple[str, str]: Base name and extension (without the dot). A name
            without a dot yields the whole name and an empty extension.
    """
    if "." not in filename:
        return filename, ""
    base, _, extension = filename.rpartition(".")
    return base, extension


def strip_extension(filename: str) -> str:
    """Drop a trailing ``.ext`` from ``filename`` when present."""
    return _EXTENSION.sub("", filename)


__all__ = ["sanitize_name", "filename_from_path", "split_extension", "strip_extension"]
