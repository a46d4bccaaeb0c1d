"""Tests for attachment relocation and batch conversion."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from attachlink.config.models import AttachmentSettings
from attachlink.conversion import LinkedFileConverter, RelocationStatus
from attachlink.conversion.relocator import AttachmentRelocator, target_directory
from attachlink.errors import BaseDirectoryNotSetError
from attachlink.library import ReferenceLibrary
from attachlink.library.models import Collection, Item


def _source_file(tmp_path: Path, name: str, content: str = "content") -> Path:
    incoming = tmp_path / "incoming"
    incoming.mkdir(exist_ok=True)
    path = incoming / name
    path.write_text(content, encoding="utf-8")
    return path


def _library(tmp_path: Path) -> tuple[ReferenceLibrary, Collection, Item]:
    library = ReferenceLibrary.create(tmp_path / "library")
    papers = library.add_collection("Papers")
    year = library.add_collection("2024", parent_key=papers.key)
    library.add_collection("2023", parent_key=papers.key)
    parent = library.add_regular_item("A paper", collections=[year.key])
    return library, year, parent


def _base_dir(tmp_path: Path) -> str:
    return f"{tmp_path / 'lib'}/"


def test_target_directory_joins_components() -> None:
    assert target_directory("/lib/", "Papers/2024", "/") == Path("/lib/Papers/2024")
    assert target_directory("/lib/", "", "/") == Path("/lib")


def test_target_directory_nests_with_backslash_separator() -> None:
    assert target_directory("/lib\\", "Papers\\2024", "\\") == Path("/lib", "Papers", "2024")
    assert target_directory("/lib\\", "", "\\") == Path("/lib")


def test_relocate_moves_file_and_replaces_record(tmp_path: Path) -> None:
    library, _, parent = _library(tmp_path)
    attachment = library.import_file(_source_file(tmp_path, "paper.pdf"), parent_item_id=parent.id)
    storage_file = library.get_file_path(attachment)

    result = AttachmentRelocator(library).relocate(
        attachment, _base_dir(tmp_path), "Papers/2024", "/"
    )

    destination = tmp_path / "lib" / "Papers" / "2024" / "paper.pdf"
    assert result.status is RelocationStatus.CONVERTED
    assert result.destination == destination
    assert destination.read_text(encoding="utf-8") == "content"
    assert storage_file is not None and not storage_file.exists()
    assert not library.exists(attachment.id)

    linked = library.get_item(result.linked_item_id)
    assert linked.link_mode == "linked_file"
    assert linked.parent_item_id == parent.id
    assert linked.library_id == attachment.library_id
    assert library.get_file_path(linked) == destination
    assert library.get_child_items(parent) == [linked.id]


def test_relocate_skips_missing_file_without_mutation(tmp_path: Path) -> None:
    library, _, parent = _library(tmp_path)
    attachment = library.import_file(_source_file(tmp_path, "paper.pdf"), parent_item_id=parent.id)
    storage_file = library.get_file_path(attachment)
    assert storage_file is not None
    storage_file.unlink()

    result = AttachmentRelocator(library).relocate(
        attachment, _base_dir(tmp_path), "Papers/2024", "/"
    )

    assert result.status is RelocationStatus.SKIPPED
    assert library.exists(attachment.id)
    assert not (tmp_path / "lib").exists()


def test_relocate_disambiguates_existing_destination(tmp_path: Path) -> None:
    library, _, parent = _library(tmp_path)
    attachment = library.import_file(_source_file(tmp_path, "paper.pdf"), parent_item_id=parent.id)
    existing_dir = tmp_path / "lib" / "Papers" / "2024"
    existing_dir.mkdir(parents=True)
    (existing_dir / "paper.pdf").write_text("older", encoding="utf-8")

    result = AttachmentRelocator(library).relocate(
        attachment, _base_dir(tmp_path), "Papers/2024", "/"
    )

    assert result.status is RelocationStatus.CONVERTED
    assert result.conflict_applied
    assert result.destination == existing_dir / "paper (1).pdf"
    assert (existing_dir / "paper.pdf").read_text(encoding="utf-8") == "older"


def test_converter_requires_base_directory(tmp_path: Path) -> None:
    library, year, parent = _library(tmp_path)
    attachment = library.import_file(_source_file(tmp_path, "paper.pdf"), parent_item_id=parent.id)
    converter = LinkedFileConverter(library, AttachmentSettings(path_separator="/"))

    with pytest.raises(BaseDirectoryNotSetError):
        converter.convert([parent], year)

    assert library.exists(attachment.id)
    assert library.file_exists(attachment)


def test_converter_processes_collection_selection(tmp_path: Path) -> None:
    library, year, parent = _library(tmp_path)
    library.import_file(_source_file(tmp_path, "paper.pdf"), parent_item_id=parent.id)
    library.import_file(_source_file(tmp_path, "supplement.pdf"), parent_item_id=parent.id)
    settings = AttachmentSettings(
        base_attachment_path=str(tmp_path / "lib"),
        path_separator="/",
    )

    report = LinkedFileConverter(library, settings).convert(
        library.items_in_collection(year.key), year
    )

    assert report.collection_path == "Papers/2024"
    assert report.base_dir.endswith("/")
    assert report.counts() == {
        "attachments": 2,
        "converted": 2,
        "skipped": 0,
        "failed": 0,
        "conflicts": 0,
    }
    target = tmp_path / "lib" / "Papers" / "2024"
    assert sorted(path.name for path in target.iterdir()) == ["paper.pdf", "supplement.pdf"]


def test_converter_continues_after_item_failure(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    library, year, parent = _library(tmp_path)
    bad = library.import_file(_source_file(tmp_path, "bad.pdf"), parent_item_id=parent.id)
    good = library.import_file(_source_file(tmp_path, "good.pdf"), parent_item_id=parent.id)

    original_link = library.link_from_file

    def _flaky_link(file, **kwargs):
        if Path(file).name == "bad.pdf":
            raise RuntimeError("link failed")
        return original_link(file, **kwargs)

    monkeypatch.setattr(library, "link_from_file", _flaky_link)
    settings = AttachmentSettings(base_attachment_path=str(tmp_path / "lib"), path_separator="/")

    report = LinkedFileConverter(library, settings).convert([parent], year)

    statuses = {result.item_id: result.status for result in report.results}
    assert statuses == {bad.id: RelocationStatus.FAILED, good.id: RelocationStatus.CONVERTED}
    # The failed item keeps its record even though its file has already moved.
    assert library.exists(bad.id)
    assert (tmp_path / "lib" / "Papers" / "2024" / "bad.pdf").exists()
    assert not library.exists(good.id)


def test_converter_without_collection_uses_base_directory(tmp_path: Path) -> None:
    library, _, parent = _library(tmp_path)
    library.import_file(_source_file(tmp_path, "paper.pdf"), parent_item_id=parent.id)
    settings = AttachmentSettings(path_separator="/")

    report = LinkedFileConverter(library, settings).convert(
        [parent], None, base_dir=str(tmp_path / "lib")
    )

    assert report.converted == 1
    assert (tmp_path / "lib" / "paper.pdf").exists()


def test_converter_with_backslash_separator_creates_nested_directories(tmp_path: Path) -> None:
    library, year, parent = _library(tmp_path)
    library.import_file(_source_file(tmp_path, "paper.pdf"), parent_item_id=parent.id)
    settings = AttachmentSettings(
        base_attachment_path=str(tmp_path / "lib"),
        path_separator="\\",
    )

    report = LinkedFileConverter(library, settings).convert([parent], year)

    assert report.collection_path == "Papers\\2024"
    destination = tmp_path / "lib" / "Papers" / "2024" / "paper.pdf"
    assert report.results[0].destination == destination
    assert destination.read_text(encoding="utf-8") == "content"
    assert sorted(path.name for path in tmp_path.iterdir()) == ["incoming", "lib", "library"]


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_relocate_creates_directories_with_directory_mode(tmp_path: Path) -> None:
    library, _, parent = _library(tmp_path)
    attachment = library.import_file(_source_file(tmp_path, "paper.pdf"), parent_item_id=parent.id)

    previous = os.umask(0o022)
    try:
        result = AttachmentRelocator(library).relocate(
            attachment, _base_dir(tmp_path), "Papers/2024", "/"
        )
    finally:
        os.umask(previous)

    assert result.status is RelocationStatus.CONVERTED
    for directory in (tmp_path / "lib" / "Papers", tmp_path / "lib" / "Papers" / "2024"):
        assert stat.S_IMODE(directory.stat().st_mode) == 0o755
