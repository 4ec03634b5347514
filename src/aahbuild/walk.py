"""Directory and file enumeration with exclude pruning."""

from __future__ import annotations

import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from aahbuild.errors import BuildIOError
from aahbuild.excludes import ExcludeSet


@dataclass(frozen=True, slots=True)
class TreeEntry:
    path: Path
    relative: str
    is_dir: bool


def dirs_path(
    root: str | Path,
    excludes: ExcludeSet,
    *,
    base: str | Path | None = None,
) -> Iterator[Path]:
    """Yield the non-excluded direct subdirectories of *root* in name order."""
    root_path = Path(root)
    base_path = Path(base) if base is not None else root_path
    for entry in _scan(root_path):
        if entry.is_symlink() or not entry.is_dir(follow_symlinks=False):
            continue
        path = Path(entry.path)
        if excludes.matches(_relative(path, base_path)):
            continue
        yield path


def files_path(
    root: str | Path,
    excludes: ExcludeSet,
    *,
    base: str | Path | None = None,
) -> Iterator[Path]:
    """Yield every non-excluded file below *root*, pruning excluded directories."""
    for entry in walk_tree(root, excludes, base=base):
        if not entry.is_dir:
            yield entry.path


def walk_tree(
    root: str | Path,
    excludes: ExcludeSet,
    *,
    base: str | Path | None = None,
) -> Iterator[TreeEntry]:
    """Pre-order walk of *root*.

    Entries are yielded in name order, directories before their children.
    An excluded directory is never scanned. Symlinks are skipped.
    """
    root_path = Path(root)
    base_path = Path(base) if base is not None else root_path
    for entry in _scan(root_path):
        if entry.is_symlink():
            continue
        path = Path(entry.path)
        relative = _relative(path, base_path)
        if excludes.matches(relative):
            continue
        if entry.is_dir(follow_symlinks=False):
            yield TreeEntry(path=path, relative=relative, is_dir=True)
            yield from walk_tree(path, excludes, base=base_path)
        elif entry.is_file(follow_symlinks=False):
            yield TreeEntry(path=path, relative=relative, is_dir=False)


def _scan(directory: Path) -> list[os.DirEntry[str]]:
    try:
        with os.scandir(directory) as iterator:
            return sorted(iterator, key=lambda item: item.name)
    except OSError as exc:
        raise BuildIOError(
            "Unable to list directory.",
            context={"path": str(directory), "error": exc.strerror or str(exc)},
        ) from exc


def _relative(path: Path, base: Path) -> str:
    try:
        return path.relative_to(base).as_posix()
    except ValueError:
        return path.as_posix()
