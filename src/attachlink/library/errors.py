"""Reference library errors."""


class LibraryError(Exception):
    """Base exception for reference library operations."""


class MissingLibraryError(LibraryError):
    """Raised when no library data exists at the requested root."""


class ItemNotFoundError(LibraryError):
    """Raised when an item id does not exist in the library."""


class CollectionNotFoundError(LibraryError):
    """Raised when a collection key does not exist in the library."""
