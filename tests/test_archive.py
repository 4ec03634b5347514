import os
import zipfile
from pathlib import Path

import pytest

from aahbuild.archive import ZIP_EPOCH, archive_entries, create_zip_archive
from aahbuild.errors import ArchiveError


def _tree(root: Path) -> Path:
    (root / "bin").mkdir(parents=True)
    binary = root / "bin" / "myapp"
    binary.write_bytes(b"binary")
    binary.chmod(0o755)
    (root / "config").mkdir()
    conf = root / "config" / "app.conf"
    conf.write_text("name = myapp\n", encoding="utf-8")
    conf.chmod(0o644)
    return root


def test_directory_entries_are_relative_and_keep_modes(tmp_path: Path) -> None:
    root = _tree(tmp_path / "stage")

    archive = create_zip_archive(root, tmp_path / "out.zip")

    assert archive_entries(archive) == [("bin/myapp", 0o755), ("config/app.conf", 0o644)]
    with zipfile.ZipFile(archive) as handle:
        assert handle.read("bin/myapp") == b"binary"
        assert {info.date_time for info in handle.infolist()} == {ZIP_EPOCH}


def test_archives_of_identical_trees_are_byte_identical(tmp_path: Path) -> None:
    root = _tree(tmp_path / "stage")

    first = create_zip_archive(root, tmp_path / "first.zip").read_bytes()
    second = create_zip_archive(root, tmp_path / "second.zip").read_bytes()

    assert first == second


def test_existing_destination_is_replaced(tmp_path: Path) -> None:
    root = _tree(tmp_path / "stage")
    destination = tmp_path / "out.zip"
    destination.write_bytes(b"stale, not even a zip")

    create_zip_archive(root, destination)

    assert zipfile.is_zipfile(destination)
    assert len(archive_entries(destination)) == 2


def test_single_file_source_becomes_root_entry(tmp_path: Path) -> None:
    binary = tmp_path / "myapp"
    binary.write_bytes(b"single")
    binary.chmod(0o755)

    archive = create_zip_archive(binary, tmp_path / "dist" / "nested" / "myapp.zip")

    assert archive.parent.is_dir()
    assert archive_entries(archive) == [("myapp", 0o755)]


def test_missing_source_raises_archive_error(tmp_path: Path) -> None:
    with pytest.raises(ArchiveError) as exc_info:
        create_zip_archive(tmp_path / "missing", tmp_path / "out.zip")

    assert exc_info.value.context["source"] == str(tmp_path / "missing")
    assert not (tmp_path / "out.zip").exists()


def test_unwritable_destination_raises_archive_error(tmp_path: Path) -> None:
    root = _tree(tmp_path / "stage")
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")

    with pytest.raises(ArchiveError):
        create_zip_archive(root, blocker / "out.zip")


def test_listing_failure_is_archive_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    root = _tree(tmp_path / "stage")

    def denied(path):  # type: ignore[no-untyped-def]
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(os, "scandir", denied)

    with pytest.raises(ArchiveError) as exc_info:
        create_zip_archive(root, tmp_path / "out.zip")

    assert exc_info.value.context["source"] == str(root)
    assert exc_info.value.context["error"] == "Permission denied"
    assert not (tmp_path / "out.zip").exists()
