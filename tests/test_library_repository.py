"""Library repository tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from attachlink.library import (
    LIBRARY_FILENAME,
    STORAGE_DIRNAME,
    LibraryError,
    LibraryRepository,
    MissingLibraryError,
    ReferenceLibrary,
)
from attachlink.library.models import Collection, Item, LibraryState


def _state() -> LibraryState:
    """Return a sample library state configured for tests.

    Returns:
        LibraryState: State holding one collection and one filed item.
    """
    collection = Collection(key="ABCD2345", name="Papers")
    item = Item(id=1, key="WXYZ6789", title="A paper", collections=[collection.key])
    return LibraryState(
        items={item.id: item},
        collections={collection.key: collection},
        next_item_id=2,
    )


def test_initialize_creates_expected_structure(tmp_path: Path) -> None:
    """Ensure initialize prepares the managed storage directory.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    repo = LibraryRepository()

    directory = repo.initialize(tmp_path)

    assert directory == tmp_path / STORAGE_DIRNAME
    assert directory.is_dir()


def test_save_and_load_round_trip(tmp_path: Path) -> None:
    """Ensure save followed by load returns the same library state.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    repo = LibraryRepository()
    state = _state()

    repo.save(tmp_path, state)
    loaded = repo.load(tmp_path)

    assert loaded.items.keys() == {1}
    assert loaded.items[1].collections == ["ABCD2345"]
    assert loaded.collections["ABCD2345"].name == "Papers"
    assert loaded.next_item_id == 2
    assert loaded.updated_at >= loaded.created_at
    assert not (tmp_path / f"{LIBRARY_FILENAME}.tmp").exists()


def test_load_missing_library_raises(tmp_path: Path) -> None:
    """Verify loading without a library document raises MissingLibraryError.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    repo = LibraryRepository()

    assert not repo.exists(tmp_path)
    with pytest.raises(MissingLibraryError):
        repo.load(tmp_path)


def test_load_invalid_library_raises(tmp_path: Path) -> None:
    """Ensure an invalid JSON payload raises LibraryError on load.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    repo = LibraryRepository()
    (tmp_path / LIBRARY_FILENAME).write_text("not json", encoding="utf-8")

    with pytest.raises(LibraryError):
        repo.load(tmp_path)


def test_reopened_library_keeps_items_and_storage(tmp_path: Path) -> None:
    """Confirm a library reopened from disk sees imported attachments.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    source = tmp_path / "paper.pdf"
    source.write_text("pdf", encoding="utf-8")
    library = ReferenceLibrary.create(tmp_path / "lib")
    parent = library.add_regular_item("Parent")
    attachment = library.import_file(source, parent_item_id=parent.id)

    reopened = ReferenceLibrary.open(tmp_path / "lib")
    stored = reopened.get_item(attachment.id)

    assert reopened.file_exists(stored)
    assert reopened.get_child_items(reopened.get_item(parent.id)) == [attachment.id]
    payload = json.loads((tmp_path / "lib" / LIBRARY_FILENAME).read_text(encoding="utf-8"))
    assert payload["next_item_id"] == 3


def test_create_refuses_existing_library(tmp_path: Path) -> None:
    """Ensure a second create on the same root fails.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    ReferenceLibrary.create(tmp_path)

    with pytest.raises(LibraryError):
        ReferenceLibrary.create(tmp_path)
