"""Errors raised while reading or validating attachlink settings."""

from __future__ import annotations

from attachlink.errors import AttachlinkError


class ConfigError(AttachlinkError):
    """Raised when a settings source holds an unknown key or an unusable value.

    Attributes:
        key: Dotted ``section.field`` key at fault, when a single key is to blame.
    """

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key
