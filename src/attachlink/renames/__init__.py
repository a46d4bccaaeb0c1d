"""Rename observation and filename-to-title synchronization."""

from .interception import (
    AttachmentRenameAdapter,
    AutoTitleAdapter,
    FileRenameAdapter,
    HostAdapter,
    RenameInterceptionLayer,
)
from .memory import RenameMemory, RenameObserver, RenameRecord
from .title_sync import TitleSyncPolicy

__all__ = [
    "AttachmentRenameAdapter",
    "AutoTitleAdapter",
    "FileRenameAdapter",
    "HostAdapter",
    "RenameInterceptionLayer",
    "RenameMemory",
    "RenameObserver",
    "RenameRecord",
    "TitleSyncPolicy",
]
