"""Batch conversion of managed attachments into linked files."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from attachlink.config.models import AttachmentSettings
from attachlink.errors import BaseDirectoryNotSetError
from attachlink.library import ReferenceLibrary
from attachlink.library.models import Collection, Item

from .collections import CollectionTree, resolve_collection_path
from .models import ConversionReport, RelocationResult, RelocationStatus
from .naming import uniquify_filename
from .relocator import AttachmentRelocator
from .walker import expand_attachments

LOGGER = logging.getLogger(__name__)


class LinkedFileConverter:
    """Convert a selection of items into linked files under the configured base directory."""

    def __init__(self, library: ReferenceLibrary, settings: AttachmentSettings) -> None:
        self._library = library
        self._settings = settings
        self._relocator = AttachmentRelocator(library)

    def convert(
        self,
        selection: Iterable[Item],
        collection: Optional[Collection] = None,
        *,
        base_dir: Optional[str] = None,
    ) -> ConversionReport:
        """Relocate every attachment reachable from ``selection``.

        Args:
            selection: Selected regular items and attachments.
            collection: Selected collection whose chain names the target directory.
            base_dir: Override for the configured base attachment path.

        Returns:
            ConversionReport: Per-attachment outcomes.

        Raises:
            BaseDirectoryNotSetError: If no base directory is configured.
            CollectionCycleError: If the collection's ancestor chain loops.
        """
        selected = list(selection)
        LOGGER.info("Selected items: %s", [item.id for item in selected])

        root = base_dir or self._settings.base_attachment_path
        if not root:
            LOGGER.error("Linked attachment base directory is not set.")
            raise BaseDirectoryNotSetError("Linked attachment base directory is not set.")

        separator = self._settings.resolved_separator()
        if not root.endswith(separator):
            root += separator
        LOGGER.info("Base directory: %s", root)

        try:
            collection_path = resolve_collection_path(self._library, collection, separator)
        except Exception:
            LOGGER.exception("Error resolving the collection path")
            raise
        LOGGER.info("Collection path: %r", collection_path)

        report = ConversionReport(base_dir=root, collection_path=collection_path)
        for attachment in expand_attachments(self._library, selected):
            result = self._relocator.relocate(attachment, root, collection_path, separator)
            report.results.append(result)

        LOGGER.info(
            "Conversion finished: converted=%d skipped=%d failed=%d",
            report.converted,
            report.skipped,
            report.failed,
        )
        return report


__all__ = [
    "LinkedFileConverter",
    "AttachmentRelocator",
    "CollectionTree",
    "ConversionReport",
    "RelocationResult",
    "RelocationStatus",
    "expand_attachments",
    "resolve_collection_path",
    "uniquify_filename",
]
