"""Virtual filesystem embedding for single-binary builds."""

from .embed import VfsEmbedder, embed_project_assets
from .emit import (
    GENERATED_SOURCE_NAME,
    cleanup_generated_sources,
    decode_image,
    encode_image,
    generated_source,
    render_go_source,
)
from .model import DEFAULT_MOUNT_PATH, FileEntry, MountSpec, VfsImage

__all__ = [
    "DEFAULT_MOUNT_PATH",
    "FileEntry",
    "GENERATED_SOURCE_NAME",
    "MountSpec",
    "VfsEmbedder",
    "VfsImage",
    "cleanup_generated_sources",
    "decode_image",
    "embed_project_assets",
    "encode_image",
    "generated_source",
    "render_go_source",
]
