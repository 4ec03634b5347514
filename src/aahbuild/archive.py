"""Zip archive creation for deployment artifacts."""

from __future__ import annotations

import shutil
import stat
import zipfile
from pathlib import Path

from aahbuild.errors import ArchiveError, BuildIOError
from aahbuild.excludes import ExcludeSet
from aahbuild.observability import StructuredLogger
from aahbuild.walk import files_path

ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)
_UNIX_SYSTEM = 3


def create_zip_archive(
    source: str | Path,
    destination: str | Path,
    *,
    logger: StructuredLogger | None = None,
) -> Path:
    """Write *source* (a directory tree or a single file) to a fresh zip.

    Entry names are relative POSIX paths in walk order, timestamps are pinned
    and permission bits are kept in the entry attributes.
    """
    source_path = Path(source)
    destination_path = Path(destination)
    if not source_path.exists():
        raise ArchiveError(
            "Archive source does not exist.",
            context={"source": str(source_path)},
        )

    try:
        destination_path.unlink(missing_ok=True)
        destination_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ArchiveError(
            "Unable to prepare archive destination.",
            context={"path": str(destination_path), "error": exc.strerror or str(exc)},
        ) from exc

    try:
        members = _members(source_path)
        with zipfile.ZipFile(destination_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for path, arcname in members:
                _write_member(archive, path, arcname)
    except BuildIOError as exc:
        raise ArchiveError(
            "Unable to collect archive members.",
            context={
                "path": str(destination_path),
                "source": exc.context.get("path", ""),
                "error": exc.context.get("error", ""),
            },
        ) from exc
    except (OSError, zipfile.BadZipFile) as exc:
        raise ArchiveError(
            "Unable to write archive.",
            context={"path": str(destination_path), "error": str(exc)},
        ) from exc

    if logger is not None:
        logger.info(
            "create_archive",
            f"Archive written with {len(members)} entries.",
            stage="archiving",
            path=str(destination_path),
        )
    return destination_path


def archive_entries(path: str | Path) -> list[tuple[str, int]]:
    """Return ``(name, permission bits)`` for every entry in a zip."""
    with zipfile.ZipFile(path) as archive:
        return [(info.filename, (info.external_attr >> 16) & 0o777) for info in archive.infolist()]


def _members(source: Path) -> list[tuple[Path, str]]:
    if not source.is_dir():
        return [(source, source.name)]
    return [
        (path, path.relative_to(source).as_posix())
        for path in files_path(source, ExcludeSet())
    ]


def _write_member(archive: zipfile.ZipFile, path: Path, arcname: str) -> None:
    mode = stat.S_IMODE(path.stat().st_mode)
    info = zipfile.ZipInfo(arcname, date_time=ZIP_EPOCH)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.create_system = _UNIX_SYSTEM
    info.external_attr = (stat.S_IFREG | mode) << 16
    with path.open("rb") as reader, archive.open(info, "w") as writer:
        shutil.copyfileobj(reader, writer)
