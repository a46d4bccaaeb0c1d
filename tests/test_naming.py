"""Tests for collision-free filename selection."""

from pathlib import Path

from attachlink.conversion.naming import uniquify_filename


def test_returns_candidate_when_free(tmp_path: Path) -> None:
    assert uniquify_filename(tmp_path, "a.txt") == "a.txt"


def test_returns_candidate_when_directory_missing(tmp_path: Path) -> None:
    assert uniquify_filename(tmp_path / "missing", "a.txt") == "a.txt"


def test_repeated_collisions_count_up_from_one(tmp_path: Path) -> None:
    (tmp_path / "a.txt").write_text("0", encoding="utf-8")

    first = uniquify_filename(tmp_path, "a.txt")
    assert first == "a (1).txt"
    (tmp_path / first).write_text("1", encoding="utf-8")

    second = uniquify_filename(tmp_path, "a.txt")
    assert second == "a (2).txt"


def test_never_returns_an_existing_name(tmp_path: Path) -> None:
    taken = ["doc.pdf", "doc (1).pdf", "doc (2).pdf", "doc (4).pdf"]
    for name in taken:
        (tmp_path / name).write_text("x", encoding="utf-8")

    result = uniquify_filename(tmp_path, "doc.pdf")

    assert result == "doc (3).pdf"
    assert not (tmp_path / result).exists()


def test_name_without_extension(tmp_path: Path) -> None:
    (tmp_path / "notes").write_text("x", encoding="utf-8")

    assert uniquify_filename(tmp_path, "notes") == "notes (1)"


def test_only_final_dot_separates_extension(tmp_path: Path) -> None:
    (tmp_path / "data.tar.gz").write_text("x", encoding="utf-8")

    assert uniquify_filename(tmp_path, "data.tar.gz") == "data.tar (1).gz"
