"""Generated Go source carrying the encoded VFS image.

The image is serialized as canonical CBOR so identical inputs always produce
an identical generated file, then written as a byte-string literal into the
application package tree for the duration of one compile step.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import cbor2

from aahbuild.config import APP_PACKAGE_DIR
from aahbuild.errors import BuildIOError
from aahbuild.observability import StructuredLogger
from aahbuild.vfs.model import VfsImage

GENERATED_SOURCE_NAME = "aah_app_vfs.go"
GENERATED_SOURCE_GLOB = "aah*_vfs.go"
DEFAULT_GO_PACKAGE = "app"
IMAGE_FORMAT_VERSION = 1

_BYTES_PER_LINE = 48


def encode_image(image: VfsImage) -> bytes:
    payload = {
        "version": IMAGE_FORMAT_VERSION,
        "mounts": [mount.virtual_path for mount in image.mounts],
        "files": [
            {
                "path": entry.virtual_path,
                "size": entry.size,
                "gzip": entry.compressed,
                "data": entry.payload,
            }
            for entry in image.sorted_files()
        ],
    }
    return cbor2.dumps(payload, canonical=True)


def decode_image(blob: bytes) -> dict[str, object]:
    decoded = cbor2.loads(blob)
    if not isinstance(decoded, dict):
        raise ValueError("VFS image payload must decode to a mapping.")
    return decoded


def render_go_source(blob: bytes, *, package: str = DEFAULT_GO_PACKAGE) -> str:
    lines = [
        "// Code generated by aahbuild. DO NOT EDIT.",
        "",
        f"package {package}",
        "",
        "// AahVFSImageVersion is the encoding version of AahVFSImage.",
        f"const AahVFSImageVersion = {IMAGE_FORMAT_VERSION}",
        "",
        "// AahVFSImage holds the CBOR encoded virtual filesystem.",
    ]
    if not blob:
        lines.append("var AahVFSImage = []byte{}")
    else:
        chunks = [
            '"' + "".join(f"\\x{byte:02x}" for byte in blob[i : i + _BYTES_PER_LINE]) + '"'
            for i in range(0, len(blob), _BYTES_PER_LINE)
        ]
        lines.append("var AahVFSImage = []byte(" + chunks[0] + (" +" if len(chunks) > 1 else ")"))
        for index, chunk in enumerate(chunks[1:], start=2):
            suffix = " +" if index < len(chunks) else ")"
            lines.append(f"\t{chunk}{suffix}")
    return "\n".join(lines) + "\n"


def generated_source_path(app_base_dir: str | Path) -> Path:
    return Path(app_base_dir) / APP_PACKAGE_DIR / GENERATED_SOURCE_NAME


def write_generated_source(
    app_base_dir: str | Path,
    image: VfsImage,
    *,
    package: str = DEFAULT_GO_PACKAGE,
) -> Path:
    target = generated_source_path(app_base_dir)
    source = render_go_source(encode_image(image), package=package)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(source, encoding="utf-8")
    except OSError as exc:
        raise BuildIOError(
            "Unable to write generated VFS source.",
            context={"path": str(target), "error": exc.strerror or str(exc)},
        ) from exc
    return target


def cleanup_generated_sources(app_base_dir: str | Path) -> list[Path]:
    """Remove generated VFS sources left behind in the application package."""
    removed: list[Path] = []
    package_dir = Path(app_base_dir) / APP_PACKAGE_DIR
    if not package_dir.is_dir():
        return removed
    for path in sorted(package_dir.glob(GENERATED_SOURCE_GLOB)):
        path.unlink(missing_ok=True)
        removed.append(path)
    return removed


@contextmanager
def generated_source(
    app_base_dir: str | Path,
    image: VfsImage,
    *,
    package: str = DEFAULT_GO_PACKAGE,
    logger: StructuredLogger | None = None,
) -> Iterator[Path]:
    """Write the generated source and remove it on every exit path."""
    path = write_generated_source(app_base_dir, image, package=package)
    if logger is not None:
        logger.info(
            "emit_vfs",
            f"Generated VFS source with {len(image.files)} files.",
            stage="embed",
            path=str(path),
        )
    try:
        yield path
    finally:
        cleanup_generated_sources(app_base_dir)
