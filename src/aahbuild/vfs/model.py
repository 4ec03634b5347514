"""Typed records for virtual filesystem mounts and embedded files."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from aahbuild.errors import MountPathError
from aahbuild.excludes import ExcludeSet

DEFAULT_MOUNT_PATH = "/app"


@dataclass(frozen=True, slots=True)
class MountSpec:
    virtual_path: str
    physical_path: Path
    excludes: ExcludeSet = field(default_factory=ExcludeSet)
    no_gzip: ExcludeSet = field(default_factory=ExcludeSet)

    def __post_init__(self) -> None:
        if not self.virtual_path.startswith("/"):
            raise MountPathError(
                "VFS mount path must start with '/'.",
                context={"mount_path": self.virtual_path},
            )
        if not self.physical_path.is_absolute():
            raise MountPathError(
                "VFS physical path is not an absolute path.",
                hint="Use an absolute physical_path for every vfs.mount entry.",
                context={
                    "mount_path": self.virtual_path,
                    "physical_path": str(self.physical_path),
                },
            )

    def virtual_path_for(self, relative: str) -> str:
        prefix = self.virtual_path.rstrip("/")
        return f"{prefix}/{relative}" if relative else prefix or "/"


@dataclass(frozen=True, slots=True)
class FileEntry:
    virtual_path: str
    physical_path: Path
    size: int
    compressed: bool
    payload: bytes


@dataclass(slots=True)
class VfsImage:
    mounts: list[MountSpec] = field(default_factory=list)
    files: list[FileEntry] = field(default_factory=list)

    def sorted_files(self) -> list[FileEntry]:
        return sorted(self.files, key=lambda item: item.virtual_path)

    def file(self, virtual_path: str) -> FileEntry | None:
        for entry in self.files:
            if entry.virtual_path == virtual_path:
                return entry
        return None
