"""Resolve a collection's ancestor chain into a relative directory path."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence

from attachlink.errors import CollectionCycleError
from attachlink.library.models import Collection
from attachlink.paths import sanitize_name

LOGGER = logging.getLogger(__name__)


class CollectionSource(Protocol):
    """Library operations needed to materialize a collection tree."""

    def root_collections(self, library_id: int) -> Sequence[Collection]: ...

    def child_collections(self, key: str) -> Sequence[Collection]: ...


@dataclass(slots=True)
class CollectionTree:
    """Snapshot of a library's collections keyed by collection key.

    Attributes:
        collections: Mapping of collection key to collection.
        children: Mapping of parent key to ordered child keys; ``None`` is the root.
    """

    collections: dict[str, Collection] = field(default_factory=dict)
    children: dict[Optional[str], list[str]] = field(default_factory=dict)

    @classmethod
    def build(cls, source: CollectionSource, library_id: int) -> "CollectionTree":
        """Walk every root collection of ``library_id`` and all of its descendants."""
        tree = cls()
        roots = list(source.root_collections(library_id))
        LOGGER.debug("Mapping %d root collections for library %s", len(roots), library_id)
        for root in roots:
            tree._map(source, root, None)
        return tree

    def _map(
        self, source: CollectionSource, start: Collection, start_parent: Optional[str]
    ) -> None:
        stack: list[tuple[Collection, Optional[str]]] = [(start, start_parent)]
        while stack:
            collection, parent_key = stack.pop()
            siblings = self.children.setdefault(parent_key, [])
            if collection.key not in siblings:
                siblings.append(collection.key)
            if collection.key in self.collections:
                # Listed under more than one parent; expand it only once.
                continue
            self.collections[collection.key] = collection
            children = list(source.child_collections(collection.key))
            stack.extend((child, collection.key) for child in reversed(children))

    def parent_of(self, key: str) -> tuple[bool, Optional[str]]:
        """Return whether ``key`` is listed anywhere and, if so, its first parent key."""
        for parent_key, child_keys in self.children.items():
            if key in child_keys:
                return True, parent_key
        return False, None

    def ancestor_names(self, key: str) -> list[str]:
        """Return sanitized names from the root down to ``key``.

        Raises:
            CollectionCycleError: If the ascent reaches a key it already visited.
        """
        names: list[str] = []
        visited: list[str] = []
        current: Optional[str] = key
        while current is not None:
            collection = self.collections.get(current)
            if collection is None:
                LOGGER.debug("Collection %s is not in the tree; stopping ascent", current)
                break
            if current in visited:
                raise CollectionCycleError(current, list(reversed(visited)))
            visited.append(current)
            names.insert(0, sanitize_name(collection.name))
            listed, parent_key = self.parent_of(current)
            if not listed:
                break
            current = parent_key
        return names


def resolve_collection_path(
    source: CollectionSource,
    collection: Optional[Collection],
    separator: str,
) -> str:
    """Return the sanitized ``separator``-joined path from the root to ``collection``.

    Args:
        source: Library providing root and child collection listings.
        collection: Target collection, or ``None`` for the library root.
        separator: Path separator placed between collection names.

    Returns:
        str: Relative directory path; empty for the library root.
    """
    if collection is None:
        return ""
    tree = CollectionTree.build(source, collection.library_id)
    path = separator.join(tree.ancestor_names(collection.key))
    LOGGER.debug("Resolved collection %s to path %r", collection.key, path)
    return path


__all__ = ["CollectionSource", "CollectionTree", "resolve_collection_path"]
