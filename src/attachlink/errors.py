"""Errors raised by attachlink conversion workflows."""


class AttachlinkError(Exception):
    """Base exception for attachlink operations."""


class ConversionError(AttachlinkError):
    """Raised when a linked-file conversion batch cannot proceed."""


class BaseDirectoryNotSetError(ConversionError):
    """Raised when no base attachment directory is configured."""


class CollectionCycleError(ConversionError):
    """Raised when a collection's ancestor chain loops back on itself."""

    def __init__(self, key: str, chain: list[str]) -> None:
        self.key = key
        self.chain = list(chain)
        joined = " > ".join([*self.chain, key])
        super().__init__(f"Collection hierarchy contains a cycle: {joined}")
