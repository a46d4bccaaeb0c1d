"""Move a managed attachment's file out of storage and replace it with a linked file."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from attachlink.library import ReferenceLibrary
from attachlink.library.models import Item

from .models import RelocationResult, RelocationStatus
from .naming import uniquify_filename

LOGGER = logging.getLogger(__name__)

DIRECTORY_MODE = 0o755


def target_directory(base_dir: str, collection_path: str, separator: str) -> Path:
    """Compose the destination directory for a batch.

    ``collection_path`` is split on ``separator`` and each collection name becomes
    one directory level, so a separator other than the platform's still nests.

    Args:
        base_dir: Root directory for linked files, usually ending with ``separator``.
        collection_path: Sanitized collection names joined with ``separator``.
        separator: Separator used in ``base_dir`` and ``collection_path``.

    Returns:
        Path: ``base_dir`` followed by one directory per collection name.
    """
    root = base_dir
    if separator not in (os.sep, os.altsep) and root.endswith(separator):
        root = root[: -len(separator)]
    names = [name for name in collection_path.split(separator) if name]
    return Path(root).joinpath(*names)


class AttachmentRelocator:
    """Relocate attachments of one library into linked-file directories."""

    def __init__(self, library: ReferenceLibrary) -> None:
        self._library = library

    def relocate(
        self,
        item: Item,
        base_dir: str,
        collection_path: str,
        separator: str,
    ) -> RelocationResult:
        """Move ``item``'s file under ``base_dir``/``collection_path`` and relink it.

        Args:
            item: Attachment to convert.
            base_dir: Root directory for linked files, ending with ``separator``.
            collection_path: Relative directory derived from the collection chain.
            separator: Path separator used to join the components.

        Returns:
            RelocationResult: ``skipped`` when there is no file to move,
                ``failed`` when any step raised, ``converted`` otherwise.
        """
        try:
            return self._relocate(item, base_dir, collection_path, separator)
        except Exception as exc:
            LOGGER.exception("Error converting attachment %s", item.id)
            return RelocationResult(
                item_id=item.id,
                status=RelocationStatus.FAILED,
                source=self._library.get_file_path(item),
                message=str(exc),
            )

    def _relocate(
        self,
        item: Item,
        base_dir: str,
        collection_path: str,
        separator: str,
    ) -> RelocationResult:
        if not self._library.file_exists(item):
            LOGGER.debug("File for item %s does not exist, skipping", item.id)
            return RelocationResult(
                item_id=item.id,
                status=RelocationStatus.SKIPPED,
                message="Attachment file does not exist.",
            )

        source = self._library.get_file_path(item)
        if source is None:
            LOGGER.debug("No file path found for item %s", item.id)
            return RelocationResult(
                item_id=item.id,
                status=RelocationStatus.SKIPPED,
                message="Attachment has no file path.",
            )

        directory = target_directory(base_dir, collection_path, separator)
        filename = source.name
        unique_name = uniquify_filename(directory, filename)
        destination = directory / unique_name
        LOGGER.debug("Constructed linked file path %s for item %s", destination, item.id)

        directory.mkdir(mode=DIRECTORY_MODE, parents=True, exist_ok=True)
        shutil.move(str(source), str(destination))
        LOGGER.info("Moved %s to %s", source, destination)

        linked = self._library.link_from_file(
            destination,
            parent_item_id=item.parent_item_id,
            library_id=item.library_id,
        )
        LOGGER.debug("Linked file %s as item %s", destination, linked.id)

        self._library.erase_item(item)
        LOGGER.debug("Erased managed attachment %s", item.id)

        return RelocationResult(
            item_id=item.id,
            status=RelocationStatus.CONVERTED,
            source=source,
            destination=destination,
            linked_item_id=linked.id,
            conflict_applied=unique_name != filename,
        )


__all__ = ["AttachmentRelocator", "DIRECTORY_MODE", "target_directory"]
