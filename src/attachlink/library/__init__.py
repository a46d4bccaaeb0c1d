"""Local reference library: persistence, host operations and notifications."""

from .errors import CollectionNotFoundError, ItemNotFoundError, LibraryError, MissingLibraryError
from .host import ReferenceLibrary
from .models import Collection, Item, LibraryState
from .notifier import Notifier
from .repository import LIBRARY_FILENAME, LOG_FILENAME, STORAGE_DIRNAME, LibraryRepository

__all__ = [
    "LibraryRepository",
    "ReferenceLibrary",
    "Notifier",
    "LIBRARY_FILENAME",
    "STORAGE_DIRNAME",
    "LOG_FILENAME",
    "Collection",
    "Item",
    "LibraryState",
    "LibraryError",
    "MissingLibraryError",
    "ItemNotFoundError",
    "CollectionNotFoundError",
]
