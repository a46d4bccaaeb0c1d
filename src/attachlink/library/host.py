"""Host operations for a local, JSON-backed reference library."""

from __future__ import annotations

import logging
import mimetypes
import secrets
import shutil
from datetime import datetime, timezone
from os import PathLike
from pathlib import Path
from typing import Iterable, Optional, Union

from attachlink.paths import split_extension

from .errors import CollectionNotFoundError, ItemNotFoundError, LibraryError
from .models import Collection, Item, LibraryState
from .notifier import Notifier
from .repository import STORAGE_DIRNAME, LibraryRepository

LOGGER = logging.getLogger(__name__)

_KEY_ALPHABET = "23456789ABCDEFGHIJKLMNPQRSTUVWXYZ"
_TYPE_LABELS = {
    "application/pdf": "PDF",
    "application/epub+zip": "EPUB",
    "text/html": "Snapshot",
}

StrPath = Union[str, PathLike[str]]


def _generate_key() -> str:
    return "".join(secrets.choice(_KEY_ALPHABET) for _ in range(8))


class ReferenceLibrary:
    """Item/collection store, filesystem primitives and notifier for one library.

    Items handed out by :meth:`get_item` are copies; changes become visible to
    other readers only after :meth:`save_item`.
    """

    def __init__(
        self,
        root: Path,
        state: LibraryState,
        *,
        repository: LibraryRepository | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.root = root
        self._state = state
        self._repository = repository or LibraryRepository()
        self.notifier = notifier or Notifier()

    @classmethod
    def create(cls, root: Path, *, library_id: int = 1) -> "ReferenceLibrary":
        """Initialize an empty library at ``root`` and persist it."""
        repository = LibraryRepository()
        if repository.exists(root):
            raise LibraryError(f"A library already exists at {root}")
        library = cls(root, LibraryState(library_id=library_id), repository=repository)
        library.commit()
        return library

    @classmethod
    def open(cls, root: Path) -> "ReferenceLibrary":
        """Load the library stored at ``root``."""
        repository = LibraryRepository()
        return cls(root, repository.load(root), repository=repository)

    @property
    def library_id(self) -> int:
        """Return the identifier shared by every item and collection of this library."""
        return self._state.library_id

    @property
    def storage_root(self) -> Path:
        """Return the directory holding one storage folder per imported attachment."""
        return self.root / STORAGE_DIRNAME

    def commit(self) -> None:
        """Write the current state to disk."""
        self._repository.save(self.root, self._state)

    # ------------------------------------------------------------------ #
    # Items                                                              #
    # ------------------------------------------------------------------ #

    def get_item(self, item_id: int) -> Item:
        """Return a copy of the item with id ``item_id``.

        Args:
            item_id: Library-wide item identifier.

        Returns:
            Item: Detached copy; persist changes with :meth:`save_item`.

        Raises:
            ItemNotFoundError: If no such item exists.
        """
        try:
            return self._state.items[item_id].model_copy(deep=True)
        except KeyError:
            raise ItemNotFoundError(f"Item {item_id} does not exist") from None

    def get_items(self, item_ids: Iterable[int]) -> list[Item]:
        """Return copies of ``item_ids`` in the given order; raises like :meth:`get_item`."""
        return [self.get_item(item_id) for item_id in item_ids]

    def exists(self, item_id: int) -> bool:
        """Return whether an item with id ``item_id`` is stored."""
        return item_id in self._state.items

    def all_items(self) -> list[Item]:
        """Return copies of every item in insertion order."""
        return [item.model_copy(deep=True) for item in self._state.items.values()]

    def get_child_items(self, item: Item) -> list[int]:
        """Return ids of the non-note children of ``item`` in host order."""
        return sorted(
            child.id
            for child in self._state.items.values()
            if child.parent_item_id == item.id and child.item_type != "note"
        )

    def items_in_collection(self, key: str) -> list[Item]:
        """Return top-level items filed in collection ``key``."""
        self.get_collection(key)
        return [
            item.model_copy(deep=True)
            for item in self._state.items.values()
            if key in item.collections and item.parent_item_id is None
        ]

    def add_regular_item(
        self,
        title: str,
        *,
        parent_item_id: Optional[int] = None,
        collections: Iterable[str] = (),
    ) -> Item:
        """Create and save a regular (container) item.

        Args:
            title: Display title.
            parent_item_id: Optional owning regular item.
            collections: Keys of collections to file the item into.

        Returns:
            Item: The stored item.

        Raises:
            ItemNotFoundError: If ``parent_item_id`` does not exist.
            CollectionNotFoundError: If a collection key is unknown.
        """
        self._require_parent(parent_item_id)
        item = self._new_item(
            item_type="regular",
            title=title,
            parent_item_id=parent_item_id,
            collections=list(collections),
        )
        self.save_item(item)
        return item

    def save_item(self, item: Item, *, notify_unchanged: bool = False) -> bool:
        """Persist ``item`` and emit ``add`` or ``modify``.

        Args:
            item: Item carrying the changes to store.
            notify_unchanged: Emit ``modify`` even when no field changed.

        Returns:
            bool: Whether anything was written.
        """
        for key in item.collections:
            self.get_collection(key)
        current = self._state.items.get(item.id)
        if current is None:
            self._state.items[item.id] = item.model_copy(deep=True)
            self.commit()
            self.notifier.trigger("add", "item", [item.id])
            return True

        unchanged = current.model_dump(exclude={"date_modified"}) == item.model_dump(
            exclude={"date_modified"}
        )
        if unchanged:
            if notify_unchanged:
                self.notifier.trigger("modify", "item", [item.id])
            return False

        item.date_modified = datetime.now(timezone.utc)
        self._state.items[item.id] = item.model_copy(deep=True)
        self.commit()
        self.notifier.trigger("modify", "item", [item.id])
        return True

    def erase_item(self, item: Item) -> None:
        """Delete ``item``, its children, and the managed storage of attachments.

        Linked files are left on disk. One ``delete`` notification lists every
        erased id.

        Args:
            item: Item to remove; an id no longer stored is ignored.
        """
        erased: list[int] = []
        self._erase(item.id, erased)
        self.commit()
        self.notifier.trigger("delete", "item", erased)

    def _erase(self, item_id: int, erased: list[int]) -> None:
        stored = self._state.items.pop(item_id, None)
        if stored is None:
            return
        erased.append(item_id)
        for child_id in [
            child.id for child in self._state.items.values() if child.parent_item_id == item_id
        ]:
            self._erase(child_id, erased)
        storage = self.storage_root / stored.key
        if stored.link_mode == "imported_file" and storage.is_dir():
            shutil.rmtree(storage)

    # ------------------------------------------------------------------ #
    # Attachments                                                        #
    # ------------------------------------------------------------------ #

    def import_file(
        self,
        source: StrPath,
        *,
        parent_item_id: Optional[int] = None,
        collections: Iterable[str] = (),
    ) -> Item:
        """Copy ``source`` into managed storage as a new imported attachment.

        Args:
            source: File to copy; the original is left in place.
            parent_item_id: Regular item that owns the attachment.
            collections: Collection keys, used only for top-level attachments.

        Returns:
            Item: The stored attachment, titled by :meth:`set_auto_attachment_title`.

        Raises:
            LibraryError: If ``source`` is missing or the parent cannot own attachments.
        """
        source_path = Path(source)
        if not source_path.is_file():
            raise LibraryError(f"Cannot import missing file {source_path}")
        parent = self._require_parent(parent_item_id)
        item = self._new_item(
            item_type="attachment",
            parent_item_id=parent_item_id,
            link_mode="imported_file",
            path=source_path.name,
            content_type=mimetypes.guess_type(source_path.name)[0],
            collections=[] if parent is not None else list(collections),
        )
        storage = self.storage_root / item.key
        storage.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source_path, storage / source_path.name)
        self.set_auto_attachment_title(item)
        self.save_item(item)
        return self.get_item(item.id)

    def link_from_file(
        self,
        file: StrPath,
        *,
        parent_item_id: Optional[int] = None,
        library_id: Optional[int] = None,
    ) -> Item:
        """Create a linked-file attachment pointing at ``file``.

        Args:
            file: Existing file, stored as an absolute path.
            parent_item_id: Regular item that owns the attachment.
            library_id: Library the attachment must belong to.

        Returns:
            Item: The stored attachment.

        Raises:
            LibraryError: If ``file`` is missing or ``library_id`` is not this library.
        """
        file_path = Path(file).absolute()
        if not file_path.is_file():
            raise LibraryError(f"Cannot link missing file {file_path}")
        if library_id is not None and library_id != self.library_id:
            raise LibraryError(f"Library {library_id} is not available")
        self._require_parent(parent_item_id)
        item = self._new_item(
            item_type="attachment",
            parent_item_id=parent_item_id,
            link_mode="linked_file",
            path=str(file_path),
            content_type=mimetypes.guess_type(file_path.name)[0],
        )
        self.set_auto_attachment_title(item)
        self.save_item(item)
        return self.get_item(item.id)

    def get_file_path(self, item: Item) -> Optional[Path]:
        """Return the backing file path of an attachment, or ``None``."""
        if not item.is_attachment() or not item.path:
            return None
        if item.link_mode == "linked_file":
            return Path(item.path)
        return self.storage_root / item.key / item.path

    def file_exists(self, item: Item) -> bool:
        """Return whether ``item`` is an attachment whose backing file is present."""
        path = self.get_file_path(item)
        return path is not None and path.is_file()

    def relink_attachment_file(self, item: Item, path: StrPath) -> bool:
        """Point ``item`` at ``path`` and save it.

        Files inside the item's own storage folder are stored by name; any other
        path is stored absolute.

        Returns:
            bool: Whether the stored path changed.
        """
        new_path = Path(path)
        if item.link_mode == "imported_file" and new_path.parent == self.storage_root / item.key:
            item.path = new_path.name
        else:
            item.path = str(new_path.absolute())
        return self.save_item(item)

    def rename_file(
        self,
        path: StrPath,
        new_name: str,
        *,
        overwrite: bool = False,
        unique: bool = False,
    ) -> Optional[str]:
        """Rename a file within its directory.

        Returns:
            Optional[str]: The final filename, or ``None`` when the destination
                exists (and neither ``overwrite`` nor ``unique`` was given) or the
                rename failed.
        """
        source = Path(path)
        if new_name == source.name:
            return new_name
        destination = source.parent / new_name
        if destination.exists():
            if overwrite:
                destination.unlink()
            elif unique:
                base, extension = split_extension(new_name)
                counter = 1
                while destination.exists():
                    suffix = f".{extension}" if extension else ""
                    destination = source.parent / f"{base} {counter}{suffix}"
                    counter += 1
            else:
                LOGGER.debug("Cannot rename %s: %s already exists", source, destination)
                return None
        try:
            source.rename(destination)
        except OSError as exc:
            LOGGER.warning("Failed to rename %s to %s: %s", source, destination.name, exc)
            return None
        return destination.name

    def rename_attachment_file(
        self,
        item: Item,
        new_name: str,
        *,
        overwrite: bool = False,
        unique: bool = False,
    ) -> Union[bool, int]:
        """Rename an attachment's backing file and relink the item.

        Returns:
            Union[bool, int]: ``True`` on success, ``-1`` when the destination
                exists, ``False`` on any other failure.
        """
        original = self.get_file_path(item)
        if original is None or not original.is_file():
            LOGGER.debug("Attachment file not found for item %s", item.id)
            return False
        if new_name == original.name:
            return True
        result = self.rename_file(original, new_name, overwrite=overwrite, unique=unique)
        if result is None:
            if (original.parent / new_name).exists():
                return -1
            return False
        self.relink_attachment_file(item, original.parent / result)
        return True

    def set_auto_attachment_title(
        self, item: Item, *, ignore_auto_rename_prefs: bool = False
    ) -> None:
        """Derive a default title without saving the item.

        Child attachments get a label for their content type (``PDF``, ``EPUB``,
        ``Snapshot``, ``Image``); other attachments get their filename.

        Args:
            item: Attachment whose title is set in place.
            ignore_auto_rename_prefs: Accepted for host compatibility; unused.
        """
        filename = item.attachment_filename
        if not filename:
            return
        label = None
        if item.parent_item_id is not None:
            content_type = item.content_type or ""
            label = _TYPE_LABELS.get(content_type)
            if label is None and content_type.startswith("image/"):
                label = "Image"
        item.title = label or filename

    # ------------------------------------------------------------------ #
    # Collections                                                        #
    # ------------------------------------------------------------------ #

    def add_collection(self, name: str, *, parent_key: Optional[str] = None) -> Collection:
        """Create a collection with a fresh eight-character key.

        Args:
            name: Display name; sanitized only when used in paths.
            parent_key: Key of the parent collection, or ``None`` for a root collection.

        Returns:
            Collection: The stored collection.

        Raises:
            CollectionNotFoundError: If ``parent_key`` is unknown.
        """
        if parent_key is not None:
            self.get_collection(parent_key)
        key = _generate_key()
        while key in self._state.collections:
            key = _generate_key()
        collection = Collection(
            key=key, name=name, library_id=self.library_id, parent_key=parent_key
        )
        self._state.collections[key] = collection
        self.commit()
        self.notifier.trigger("add", "collection", [])
        return collection.model_copy()

    def get_collection(self, key: str) -> Collection:
        """Return the collection stored under ``key``.

        Raises:
            CollectionNotFoundError: If no such collection exists.
        """
        try:
            return self._state.collections[key].model_copy()
        except KeyError:
            raise CollectionNotFoundError(f"Collection {key} does not exist") from None

    def root_collections(self, library_id: int) -> list[Collection]:
        """Return the top-level collections of ``library_id`` in creation order."""
        return [
            collection.model_copy()
            for collection in self._state.collections.values()
            if collection.library_id == library_id and collection.parent_key is None
        ]

    def child_collections(self, key: str) -> list[Collection]:
        """Return the direct children of collection ``key`` in creation order."""
        return [
            collection.model_copy()
            for collection in self._state.collections.values()
            if collection.parent_key == key
        ]

    def all_collections(self) -> list[Collection]:
        """Return every collection of the library."""
        return [collection.model_copy() for collection in self._state.collections.values()]

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _new_item(self, **fields: object) -> Item:
        item_id = self._state.next_item_id
        self._state.next_item_id += 1
        key = _generate_key()
        taken = {item.key for item in self._state.items.values()}
        while key in taken:
            key = _generate_key()
        return Item(id=item_id, key=key, library_id=self.library_id, **fields)

    def _require_parent(self, parent_item_id: Optional[int]) -> Optional[Item]:
        if parent_item_id is None:
            return None
        parent = self.get_item(parent_item_id)
        if not parent.is_regular_item():
            raise LibraryError(f"Item {parent_item_id} cannot own attachments")
        return parent


__all__ = ["ReferenceLibrary"]
