"""Expand a selection of library items into the attachments it contains."""

from __future__ import annotations

import logging
from typing import Iterable, Protocol, Sequence

from attachlink.library.models import Item

LOGGER = logging.getLogger(__name__)


class ItemSource(Protocol):
    """Library operations needed to descend from regular items into attachments."""

    def get_child_items(self, item: Item) -> Sequence[int]: ...

    def get_items(self, item_ids: Iterable[int]) -> list[Item]: ...


def expand_attachments(source: ItemSource, items: Iterable[Item]) -> list[Item]:
    """Flatten ``items`` into attachment leaves, depth-first in host order.

    Regular items are replaced by their children, which are expanded in turn.
    Every item is visited at most once; a repeat (for example an attachment
    selected alongside its parent) is logged and skipped.
    """
    attachments: list[Item] = []
    visited: set[int] = set()

    def _visit(item: Item) -> None:
        if item.id in visited:
            LOGGER.warning("Item %s reached more than once; skipping repeat visit", item.id)
            return
        visited.add(item.id)

        if item.is_attachment():
            LOGGER.debug("Collected attachment %s", item.id)
            attachments.append(item)
        elif item.is_regular_item():
            children = source.get_items(source.get_child_items(item))
            LOGGER.debug("Found %d child items for parent item %s", len(children), item.id)
            for child in children:
                _visit(child)
        else:
            LOGGER.debug("Skipping non-regular, non-attachment item %s", item.id)

    for item in items:
        _visit(item)
    return attachments


__all__ = ["ItemSource", "expand_attachments"]
