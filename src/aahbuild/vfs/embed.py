"""Collect mount contents into an embeddable virtual filesystem image."""

from __future__ import annotations

import gzip
from dataclasses import dataclass, field
from pathlib import Path

from aahbuild.config import ProjectConfig
from aahbuild.errors import BuildIOError, ErrorCode, MountPathError
from aahbuild.excludes import ExcludeSet
from aahbuild.observability import StructuredLogger
from aahbuild.vfs.model import DEFAULT_MOUNT_PATH, FileEntry, MountSpec, VfsImage
from aahbuild.walk import files_path

STAGE = "embed"


@dataclass(slots=True)
class VfsEmbedder:
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    image: VfsImage = field(default_factory=VfsImage)

    def process_mount(
        self,
        app_base_dir: str | Path,
        virtual_path: str,
        physical_path: str | Path,
        excludes: ExcludeSet,
        no_gzip: ExcludeSet,
    ) -> list[FileEntry]:
        """Embed every non-excluded file below *physical_path* under *virtual_path*.

        Raises ``MountPathError`` when the physical path is relative or does not
        exist, and ``BuildIOError`` when any file cannot be read.
        """
        mount = MountSpec(
            virtual_path=virtual_path,
            physical_path=Path(physical_path),
            excludes=excludes,
            no_gzip=no_gzip,
        )
        if not mount.physical_path.is_dir():
            raise MountPathError(
                "VFS physical path does not exist.",
                context={
                    "mount_path": mount.virtual_path,
                    "physical_path": str(mount.physical_path),
                },
            )

        added: list[FileEntry] = []
        for path in files_path(mount.physical_path, excludes):
            relative = path.relative_to(mount.physical_path).as_posix()
            added.append(self._embed_file(mount, path, relative))

        self.image.mounts.append(mount)
        self.image.files.extend(added)
        self.logger.info(
            "process_mount",
            f"Processed mount '{mount.virtual_path}' <== '{_display(mount.physical_path, app_base_dir)}'",
            stage=STAGE,
            files=len(added),
        )
        return added

    def _embed_file(self, mount: MountSpec, path: Path, relative: str) -> FileEntry:
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise BuildIOError(
                "Unable to read file for embedding.",
                hint="Fix file permissions; a partial VFS is never embedded.",
                context={"path": str(path), "error": exc.strerror or str(exc)},
            ) from exc
        compressed = not mount.no_gzip.matches(path.name)
        payload = gzip.compress(raw, mtime=0) if compressed else raw
        return FileEntry(
            virtual_path=mount.virtual_path_for(relative),
            physical_path=path,
            size=len(raw),
            compressed=compressed,
            payload=payload,
        )


def embed_project_assets(
    app_base_dir: str | Path,
    config: ProjectConfig,
    *,
    logger: StructuredLogger,
) -> VfsImage:
    """Process the default ``/app`` mount plus every ``vfs.mount.*`` entry.

    A failure on the default mount is fatal. Custom mounts with a relative or
    missing physical path are logged and skipped.
    """
    base = Path(app_base_dir).resolve()
    excludes = ExcludeSet.of(config.string_list("build.excludes")[0])
    no_gzip = ExcludeSet.of(config.string_list("vfs.no_gzip")[0])
    embedder = VfsEmbedder(logger=logger)

    embedder.process_mount(base, DEFAULT_MOUNT_PATH, base, excludes, no_gzip)

    for key in config.keys_by_path("vfs.mount"):
        vroot = config.string_default(f"vfs.mount.{key}.mount_path", "")
        proot = config.string_default(f"vfs.mount.{key}.physical_path", "")
        if not proot:
            logger.error(
                "process_mount",
                f"vfs mount '{key}': physical_path is not absolute path, skip mount: {vroot}",
                stage=STAGE,
                code=ErrorCode.MOUNT_PATH.value,
            )
            continue
        if not vroot:
            continue
        logger.info("process_mount", f"|--- Processing mount: '{vroot}' <== '{proot}'", stage=STAGE)
        try:
            embedder.process_mount(base, vroot, proot, excludes, no_gzip)
        except MountPathError as exc:
            logger.error(
                "process_mount",
                f"vfs {proot}: skip mount {vroot}: {exc.summary}",
                stage=STAGE,
                code=exc.code,
            )
    return embedder.image


def _display(path: Path, app_base_dir: str | Path) -> str:
    try:
        relative = path.relative_to(app_base_dir).as_posix()
    except ValueError:
        return str(path)
    return relative if relative != "." else "<app base dir>"
