"""Keep attachment titles in step with their filenames on item notifications."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from attachlink.config.models import AttachmentSettings
from attachlink.library import ItemNotFoundError, ReferenceLibrary
from attachlink.library.models import Item
from attachlink.paths import filename_from_path, strip_extension

from .memory import RenameMemory

LOGGER = logging.getLogger(__name__)

WATCHED_EVENTS = ("modify", "refresh")


class TitleSyncPolicy:
    """Notifier observer that retitles attachments after their filename changes."""

    def __init__(
        self,
        library: ReferenceLibrary,
        memory: RenameMemory,
        settings: AttachmentSettings,
    ) -> None:
        self._library = library
        self._memory = memory
        self._settings = settings
        self._observer_id: Optional[str] = None
        self._in_progress: set[int] = set()

    @property
    def registered(self) -> bool:
        """Whether the policy is listening for item notifications."""
        return self._observer_id is not None

    def register(self) -> None:
        """Listen for item ``modify`` and ``refresh`` events; repeat calls do nothing."""
        if self._observer_id is None:
            self._observer_id = self._library.notifier.register_observer(
                self.notify, ["item"], WATCHED_EVENTS
            )
            LOGGER.debug("Notifier registered for item modifications")

    def unregister(self) -> None:
        """Stop listening for item notifications."""
        if self._observer_id is not None:
            self._library.notifier.unregister_observer(self._observer_id)
            self._observer_id = None

    def notify(
        self,
        event: str,
        type_: str,
        ids: Sequence[int],
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Retitle each attachment in ``ids`` whose filename no longer matches its title.

        Events other than item ``modify`` and ``refresh`` are ignored, as are
        ids already being handled further up the stack.
        """
        if type_ != "item" or event not in WATCHED_EVENTS:
            LOGGER.debug("Ignoring %s/%s notification", type_, event)
            return

        for item_id in ids:
            if item_id in self._in_progress:
                continue
            try:
                item = self._library.get_item(item_id)
            except ItemNotFoundError:
                LOGGER.debug("Item %s vanished before notification handling", item_id)
                continue
            if not item.is_attachment():
                continue
            self._in_progress.add(item_id)
            try:
                self._check_item(item)
            finally:
                self._in_progress.discard(item_id)

    def _check_item(self, item: Item) -> None:
        current_path = self._library.get_file_path(item)
        if current_path is None:
            LOGGER.debug("Attachment %s has no file path", item.id)
            return

        filename = filename_from_path(current_path)
        renamed = self._memory.consume(item.id, str(current_path)) is not None
        # Broad on purpose: any title that does not mirror the filename counts.
        if renamed or filename != item.title:
            self.handle_filename_change(item, filename)

    def handle_filename_change(self, item: Item, filename: str) -> bool:
        """Set ``item``'s title to ``filename`` without its extension.

        Returns:
            bool: Whether the title was written.
        """
        if not self._settings.sync_filename_and_title:
            return False

        title = strip_extension(filename)
        if item.title == title:
            return False
        item.title = title
        self._library.save_item(item)
        LOGGER.info("Title of item %s updated to match filename: %s", item.id, title)
        return True


__all__ = ["TitleSyncPolicy", "WATCHED_EVENTS"]
