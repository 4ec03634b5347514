"""Assemble the deployable directory tree for multi-file builds.

The staging root mirrors the final archive layout::

    <root>/bin/<binary>
    <root>/<app subdirectories except the Go package tree>
    <root>/aah.sh
    <root>/aah.cmd
"""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from aahbuild.config import APP_PACKAGE_DIR
from aahbuild.errors import BuildIOError
from aahbuild.excludes import ExcludeSet
from aahbuild.naming import strip_ext
from aahbuild.observability import StructuredLogger
from aahbuild.templates import STARTUP_TEMPLATES, render_template
from aahbuild.walk import dirs_path, walk_tree

STAGE = "staging"
PERM_RWXRXRX = 0o755
BIN_DIR = "bin"


@dataclass(slots=True)
class StagingLayout:
    temp_dir: Path
    build_root: Path
    bin_dir: Path
    binary_path: Path
    copied_subtrees: list[tuple[Path, Path]] = field(default_factory=list)
    scripts: list[Path] = field(default_factory=list)


@dataclass(slots=True)
class StagingAssembler:
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    temp_parent: Path | None = None

    def assemble(
        self,
        app_base_dir: str | Path,
        binary_path: str | Path,
        excludes: ExcludeSet,
        profile: str,
    ) -> StagingLayout:
        base = Path(app_base_dir)
        binary = Path(binary_path)
        binary_name = binary.name

        temp_parent = self.temp_parent or Path(tempfile.gettempdir())
        with _fs_errors("create temporary directory", temp_parent):
            temp_dir = Path(tempfile.mkdtemp(prefix=f"{binary_name}-", dir=str(temp_parent)))
        try:
            layout = self._assemble_into(temp_dir, base, binary, excludes, profile)
        except BaseException:
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise
        self.logger.info(
            "assemble",
            "Staging tree assembled.",
            stage=STAGE,
            build_root=str(layout.build_root),
            subtrees=len(layout.copied_subtrees),
        )
        return layout

    @contextmanager
    def staging(
        self,
        app_base_dir: str | Path,
        binary_path: str | Path,
        excludes: ExcludeSet,
        profile: str,
    ) -> Iterator[StagingLayout]:
        """Assemble a staging tree and discard it when the block exits."""
        layout = self.assemble(app_base_dir, binary_path, excludes, profile)
        try:
            yield layout
        finally:
            shutil.rmtree(layout.temp_dir, ignore_errors=True)

    def _assemble_into(
        self,
        temp_dir: Path,
        base: Path,
        binary: Path,
        excludes: ExcludeSet,
        profile: str,
    ) -> StagingLayout:
        build_root = temp_dir / strip_ext(binary.name)
        with _fs_errors("reset build root", build_root):
            if build_root.exists():
                shutil.rmtree(build_root)
            build_root.mkdir(mode=PERM_RWXRXRX, parents=True)

        bin_dir = build_root / BIN_DIR
        staged_binary = bin_dir / binary.name
        with _fs_errors("copy application binary", binary):
            bin_dir.mkdir(mode=PERM_RWXRXRX)
            shutil.copyfile(binary, staged_binary)
            staged_binary.chmod(PERM_RWXRXRX)

        layout = StagingLayout(
            temp_dir=temp_dir,
            build_root=build_root,
            bin_dir=bin_dir,
            binary_path=staged_binary,
        )

        subtree_excludes = excludes.with_patterns(APP_PACKAGE_DIR)
        for source_dir in dirs_path(base, excludes):
            if source_dir.name == APP_PACKAGE_DIR:
                continue
            destination = copy_tree(source_dir, build_root, subtree_excludes, base=base)
            layout.copied_subtrees.append((source_dir, destination))
            self.logger.info(
                "copy_subtree",
                f"Copied '{source_dir.name}' into staging root.",
                stage=STAGE,
            )

        variables = {"AppName": strip_ext(binary.name), "AppProfile": profile}
        for script_name, template in STARTUP_TEMPLATES.items():
            script_path = build_root / script_name
            rendered = render_template(script_name, template, variables)
            with _fs_errors("write startup script", script_path):
                script_path.write_text(rendered, encoding="utf-8")
                script_path.chmod(PERM_RWXRXRX)
            layout.scripts.append(script_path)
        return layout


def copy_tree(
    source: Path,
    destination_parent: Path,
    excludes: ExcludeSet,
    *,
    base: Path | None = None,
) -> Path:
    """Copy *source* to ``destination_parent/<source.name>``, pruning excluded paths."""
    destination = destination_parent / source.name
    with _fs_errors("create directory", destination):
        destination.mkdir(parents=True, exist_ok=True)
    for entry in walk_tree(source, excludes, base=base if base is not None else source.parent):
        target = destination / entry.path.relative_to(source)
        with _fs_errors("copy", entry.path):
            if entry.is_dir:
                target.mkdir(exist_ok=True)
            else:
                shutil.copyfile(entry.path, target)
                shutil.copymode(entry.path, target)
    return destination


@contextmanager
def _fs_errors(action: str, path: Path) -> Iterator[None]:
    try:
        yield
    except OSError as exc:
        raise BuildIOError(
            f"Unable to {action}.",
            hint="Fix the filesystem problem and rerun the build.",
            context={"path": str(path), "error": exc.strerror or str(exc)},
        ) from exc
