"""JSON persistence for local reference libraries."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from .errors import LibraryError, MissingLibraryError
from .models import LibraryState

LIBRARY_FILENAME = "library.json"
STORAGE_DIRNAME = "storage"
LOG_FILENAME = "attachlink.log"


class LibraryRepository:
    """Manage the persistence of library metadata."""

    def __init__(self, filename: str = LIBRARY_FILENAME) -> None:
        """Initialize the repository.

        Args:
            filename: Name of the JSON document holding library state.
        """
        self._filename = filename

    @property
    def filename(self) -> str:
        """Return the name of the library state document."""
        return self._filename

    def exists(self, root: Path) -> bool:
        return (root / self._filename).exists()

    def load(self, root: Path) -> LibraryState:
        """Load library state stored under ``root``.

        Args:
            root: Library root directory.

        Returns:
            LibraryState: Deserialized state model.

        Raises:
            MissingLibraryError: If no state document is present.
            LibraryError: If stored data cannot be parsed.
        """
        state_path = root / self._filename
        if not state_path.exists():
            raise MissingLibraryError(f"No library found at {state_path}")

        try:
            data = json.loads(state_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise LibraryError(f"Invalid library data: {exc}") from exc

        return LibraryState.model_validate(data)

    def save(self, root: Path, state: LibraryState) -> None:
        """Persist library state under ``root``.

        Args:
            root: Library root directory.
            state: State model to serialize.
        """
        self.initialize(root)
        state.updated_at = datetime.now(timezone.utc)
        payload = state.model_dump(mode="json")
        state_path = root / self._filename
        tmp_path = state_path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        tmp_path.replace(state_path)

    def initialize(self, root: Path) -> Path:
        """Prepare the directory layout of a library.

        Args:
            root: Library root directory.

        Returns:
            Path: Directory holding managed attachment files.
        """
        storage = root / STORAGE_DIRNAME
        storage.mkdir(parents=True, exist_ok=True)
        return storage


__all__ = ["LibraryRepository", "LIBRARY_FILENAME", "STORAGE_DIRNAME", "LOG_FILENAME"]
