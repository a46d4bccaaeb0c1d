"""Configuration models describing attachlink settings."""

from __future__ import annotations

import os
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class AttachlinkBaseModel(BaseModel):
    """Shared configuration for attachlink Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class AttachmentSettings(AttachlinkBaseModel):
    """Options governing linked-file conversion and title synchronization.

    Attributes:
        base_attachment_path: Root directory that receives linked files.
        sync_filename_and_title: Whether attachment titles follow their filenames.
        path_separator: Separator used when composing destination paths.
    """

    base_attachment_path: Optional[str] = None
    sync_filename_and_title: bool = True
    path_separator: Literal["auto", "/", "\\"] = "auto"

    def resolved_separator(self) -> str:
        """Return the concrete separator, resolving ``auto`` for the running platform."""
        if self.path_separator == "auto":
            return "\\" if os.name == "nt" else "/"
        return self.path_separator


class RenameMemorySettings(AttachlinkBaseModel):
    """Bounds for the rename correlation table.

    Attributes:
        max_entries: Maximum number of pending rename records kept at once.
        ttl_seconds: Age after which an unconsumed record is discarded.
    """

    max_entries: int = Field(default=256, ge=1)
    ttl_seconds: float = Field(default=300.0, gt=0)


class LoggingSettings(AttachlinkBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    max_size_mb: int = 10
    backup_count: int = 3


class CLIOptions(AttachlinkBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class AttachlinkConfig(AttachlinkBaseModel):
    """Top-level configuration struct for attachlink.

    Attributes:
        attachments: Conversion and title-sync preferences.
        rename_memory: Rename correlation table bounds.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    attachments: AttachmentSettings = Field(default_factory=AttachmentSettings)
    rename_memory: RenameMemorySettings = Field(default_factory=RenameMemorySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "AttachlinkBaseModel",
    "AttachmentSettings",
    "RenameMemorySettings",
    "LoggingSettings",
    "CLIOptions",
    "AttachlinkConfig",
]
