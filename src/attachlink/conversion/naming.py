"""Collision-free filename selection inside a target directory."""

from __future__ import annotations

from os import PathLike
from pathlib import Path

from attachlink.paths import split_extension


def uniquify_filename(directory: str | PathLike[str], filename: str) -> str:
    """Return a name under ``directory`` that no existing file occupies.

    The unmodified ``filename`` is returned when it is free; otherwise
    ``"{base} ({n}).{extension}"`` is tried with ``n`` counting up from 1.
    Existence is re-checked on every attempt because the directory may be
    written to while a batch is running.
    """
    target = Path(directory)
    candidate = filename
    counter = 1
    while (target / candidate).exists():
        base, extension = split_extension(filename)
        suffix = f".{extension}" if extension else ""
        candidate = f"{base} ({counter}){suffix}"
        counter += 1
    return candidate


__all__ = ["uniquify_filename"]
