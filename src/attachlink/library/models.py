"""Data models for items and collections stored in a reference library."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from attachlink.paths import filename_from_path

ItemType = Literal["regular", "attachment", "note"]
LinkMode = Literal["imported_file", "linked_file"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Item(BaseModel):
    """A library item: either a regular (container) item, an attachment or a note.

    Attributes:
        id: Library-wide numeric identifier.
        key: Stable eight-character key, also the storage directory name.
        library_id: Identifier of the owning library.
        item_type: Kind of item.
        title: Display title.
        parent_item_id: Owning regular item for child attachments.
        link_mode: Whether an attachment's file is managed or linked.
        path: Storage filename for imported files, absolute path for linked files.
        content_type: MIME type of the attachment file when known.
        collections: Keys of collections the item belongs to.
        date_added: Creation timestamp.
        date_modified: Timestamp of the last saved change.
    """

    id: int
    key: str
    library_id: int = 1
    item_type: ItemType = "regular"
    title: str = ""
    parent_item_id: Optional[int] = None
    link_mode: Optional[LinkMode] = None
    path: Optional[str] = None
    content_type: Optional[str] = None
    collections: List[str] = Field(default_factory=list)
    date_added: datetime = Field(default_factory=_utcnow)
    date_modified: datetime = Field(default_factory=_utcnow)

    def is_attachment(self) -> bool:
        return self.item_type == "attachment"

    def is_regular_item(self) -> bool:
        return self.item_type == "regular"

    @property
    def attachment_filename(self) -> Optional[str]:
        """Filename of the backing file, if the item is an attachment with a path."""
        if not self.is_attachment() or not self.path:
            return None
        return filename_from_path(self.path)


class Collection(BaseModel):
    """A named grouping node; collections form a per-library forest."""

    key: str
    name: str
    library_id: int = 1
    parent_key: Optional[str] = None


class LibraryState(BaseModel):
    """Persisted contents of a reference library."""

    library_id: int = 1
    items: Dict[int, Item] = Field(default_factory=dict)
    collections: Dict[str, Collection] = Field(default_factory=dict)
    next_item_id: int = 1
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


__all__ = ["Item", "ItemType", "LinkMode", "Collection", "LibraryState"]
