"""Public package entrypoint for the aah build and packaging pipeline."""

from .archive import create_zip_archive
from .compiler import CompileOptions, Compiler, GoCompiler
from .config import ProjectConfig
from .errors import (
    AahBuildError,
    ArchiveError,
    BuildIOError,
    CompileError,
    ConfigError,
    ErrorCode,
    InvalidPatternError,
    MigrateError,
    MountPathError,
    TemplateError,
)
from .excludes import ExcludeSet
from .naming import ArchiveTarget, archive_destination
from .observability import StructuredLogger
from .orchestrator import BuildOrchestrator, BuildRequest, BuildResult, BuildState
from .staging import StagingAssembler, StagingLayout

__all__ = [
    "AahBuildError",
    "ArchiveError",
    "ArchiveTarget",
    "BuildIOError",
    "BuildOrchestrator",
    "BuildRequest",
    "BuildResult",
    "BuildState",
    "CompileError",
    "CompileOptions",
    "Compiler",
    "ConfigError",
    "ErrorCode",
    "ExcludeSet",
    "GoCompiler",
    "InvalidPatternError",
    "MigrateError",
    "MountPathError",
    "ProjectConfig",
    "StagingAssembler",
    "StagingLayout",
    "StructuredLogger",
    "TemplateError",
    "archive_destination",
    "create_zip_archive",
]
