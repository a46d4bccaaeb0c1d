"""Result models for linked-file conversion."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


class RelocationStatus(str, Enum):
    """Outcome of relocating a single attachment."""

    CONVERTED = "converted"
    SKIPPED = "skipped"
    FAILED = "failed"


class RelocationResult(BaseModel):
    """Represents the relocation of one attachment.

    Attributes:
        item_id: Id of the original managed attachment.
        status: Whether the attachment was converted, skipped or failed.
        source: Backing file path before the move, when known.
        destination: Linked file path after the move.
        linked_item_id: Id of the newly created linked attachment.
        conflict_applied: Whether a disambiguator was added to the filename.
        message: Skip reason or error description.
    """

    item_id: int
    status: RelocationStatus
    source: Optional[Path] = None
    destination: Optional[Path] = None
    linked_item_id: Optional[int] = None
    conflict_applied: bool = False
    message: Optional[str] = None


class ConversionReport(BaseModel):
    """Aggregated outcome of a conversion batch."""

    base_dir: str
    collection_path: str = ""
    results: List[RelocationResult] = Field(default_factory=list)

    def _count(self, status: RelocationStatus) -> int:
        return sum(1 for result in self.results if result.status is status)

    @property
    def converted(self) -> int:
        return self._count(RelocationStatus.CONVERTED)

    @property
    def skipped(self) -> int:
        return self._count(RelocationStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(RelocationStatus.FAILED)

    def counts(self) -> dict[str, int]:
        return {
            "attachments": len(self.results),
            "converted": self.converted,
            "skipped": self.skipped,
            "failed": self.failed,
            "conflicts": sum(1 for result in self.results if result.conflict_applied),
        }


__all__ = ["RelocationStatus", "RelocationResult", "ConversionReport"]
