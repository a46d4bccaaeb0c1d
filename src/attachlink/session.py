"""Lifecycle wiring of rename tracking and conversion for one library."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Iterable, Optional

from attachlink.config.models import AttachlinkConfig
from attachlink.conversion import ConversionReport, LinkedFileConverter
from attachlink.library import ReferenceLibrary
from attachlink.library.models import Collection, Item
from attachlink.renames import RenameInterceptionLayer, RenameMemory, TitleSyncPolicy

LOGGER = logging.getLogger(__name__)


class AttachlinkSession:
    """Own the rename memory, interception layer and title-sync observer of a library.

    ``start`` installs the rename adapters and registers the notifier observer;
    ``shutdown`` reverses both. The session may be used as a context manager.
    """

    def __init__(self, library: ReferenceLibrary, config: AttachlinkConfig) -> None:
        self.library = library
        self.config = config
        self.memory = RenameMemory(
            max_entries=config.rename_memory.max_entries,
            ttl_seconds=config.rename_memory.ttl_seconds,
        )
        self.interception = RenameInterceptionLayer(library, self.memory, config.attachments)
        self.title_sync = TitleSyncPolicy(library, self.memory, config.attachments)
        self.converter = LinkedFileConverter(library, config.attachments)
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> None:
        if self._started:
            return
        LOGGER.info("Starting")
        self.interception.install()
        self.title_sync.register()
        self._started = True
        LOGGER.info("Initialized")

    def shutdown(self) -> None:
        if not self._started:
            return
        LOGGER.info("Shutting down")
        self.title_sync.unregister()
        self.interception.uninstall()
        self.memory.clear()
        self._started = False

    def convert(
        self,
        selection: Iterable[Item],
        collection: Optional[Collection] = None,
        *,
        base_dir: Optional[str] = None,
    ) -> ConversionReport:
        """Convert the selection to linked files ("Convert to Linked File")."""
        return self.converter.convert(selection, collection, base_dir=base_dir)

    def refresh(self, item_ids: Iterable[int]) -> None:
        """Emit ``refresh`` for ``item_ids`` so the title-sync observer re-checks them."""
        ids = list(item_ids)
        if ids:
            self.library.notifier.trigger("refresh", "item", ids)

    def __enter__(self) -> "AttachlinkSession":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.shutdown()


__all__ = ["AttachlinkSession"]
