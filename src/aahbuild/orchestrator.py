"""Build orchestration for multi-file and single-binary deployments.

Multi-file:     INIT -> COMPILING -> STAGING -> NAMING -> ARCHIVING -> DONE
Single-binary:  INIT -> EMBEDDING_ASSETS -> COMPILING -> NAMING -> ARCHIVING -> DONE

Any ``AahBuildError`` moves the orchestrator to FAILED and is re-raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from aahbuild.archive import create_zip_archive
from aahbuild.compiler import CompileOptions, Compiler, GoCompiler
from aahbuild.config import ProjectConfig
from aahbuild.errors import AahBuildError
from aahbuild.excludes import ExcludeSet
from aahbuild.naming import ArchiveTarget, archive_destination, resolve_target, resolve_version
from aahbuild.observability import StructuredLogger
from aahbuild.staging import StagingAssembler
from aahbuild.vfs import cleanup_generated_sources, embed_project_assets, generated_source
from aahbuild.vfs.emit import DEFAULT_GO_PACKAGE

DEFAULT_PROFILE = "prod"


class BuildState(StrEnum):
    INIT = "init"
    COMPILING = "compiling"
    EMBEDDING_ASSETS = "embedding_assets"
    STAGING = "staging"
    NAMING = "naming"
    ARCHIVING = "archiving"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class BuildRequest:
    app_base_dir: Path
    profile: str = DEFAULT_PROFILE
    output: str | None = None
    single: bool = False
    goos: str | None = None
    goarch: str | None = None


@dataclass(frozen=True, slots=True)
class BuildResult:
    archive_path: Path
    binary_path: Path
    target: ArchiveTarget
    states: tuple[BuildState, ...]


def app_name(config: ProjectConfig, app_base_dir: Path) -> str:
    return config.string_default("name", app_base_dir.resolve().name)


@dataclass(slots=True)
class BuildOrchestrator:
    config: ProjectConfig
    compiler: Compiler | None = None
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    state: BuildState = BuildState.INIT
    history: list[BuildState] = field(default_factory=lambda: [BuildState.INIT])

    def build(self, request: BuildRequest) -> BuildResult:
        base = Path(request.app_base_dir).resolve()
        name = app_name(self.config, base)
        mode = "single binary" if request.single else "multi-file"
        self.logger.info("build", f"Build starts for '{name}' ({mode})", stage=self.state)
        try:
            if request.single:
                result = self._build_single(base, request)
            else:
                result = self._build_multi(base, request)
        except AahBuildError as exc:
            self._transition(BuildState.FAILED)
            self.logger.error("build", str(exc), stage=self.state, code=exc.code)
            raise
        except BaseException:
            self._transition(BuildState.FAILED)
            raise
        self.logger.info("build", f"Build successful for '{name}'", stage=self.state)
        self.logger.info(
            "build",
            f"Application artifact is here: {result.archive_path}",
            stage=self.state,
        )
        return result

    def _build_multi(self, base: Path, request: BuildRequest) -> BuildResult:
        excludes = ExcludeSet.of(self.config.string_list("build.excludes")[0])
        cleanup_generated_sources(base)
        version, goos, goarch = self._platform(base, request)

        self._transition(BuildState.COMPILING)
        compiler = self._compiler(base, version, goos, goarch)
        binary = compiler.compile(base, CompileOptions(pack=True))

        self._transition(BuildState.STAGING)
        assembler = StagingAssembler(logger=self.logger)
        with assembler.staging(base, binary, excludes, request.profile) as layout:
            target, destination = self._name(base, binary, version, goos, goarch, request)
            self._transition(BuildState.ARCHIVING)
            create_zip_archive(layout.build_root, destination, logger=self.logger)

        self._transition(BuildState.DONE)
        return BuildResult(
            archive_path=destination,
            binary_path=binary,
            target=target,
            states=tuple(self.history),
        )

    def _build_single(self, base: Path, request: BuildRequest) -> BuildResult:
        version, goos, goarch = self._platform(base, request)

        self._transition(BuildState.EMBEDDING_ASSETS)
        cleanup_generated_sources(base)
        image = embed_project_assets(base, self.config, logger=self.logger)
        package = self.config.string_default("build.vfs_package", DEFAULT_GO_PACKAGE)
        self.logger.info("embed", "Embed successful.", stage=self.state, files=len(image.files))

        with generated_source(base, image, package=package, logger=self.logger):
            self._transition(BuildState.COMPILING)
            compiler = self._compiler(base, version, goos, goarch)
            binary = compiler.compile(base, CompileOptions(pack=True, embed=True))

        target, destination = self._name(base, binary, version, goos, goarch, request)
        self._transition(BuildState.ARCHIVING)
        create_zip_archive(binary, destination, logger=self.logger)

        self._transition(BuildState.DONE)
        return BuildResult(
            archive_path=destination,
            binary_path=binary,
            target=target,
            states=tuple(self.history),
        )

    def _platform(self, base: Path, request: BuildRequest) -> tuple[str, str, str]:
        version = resolve_version(base, self.config)
        goos, goarch = resolve_target(request.goos, request.goarch)
        return version, goos, goarch

    def _compiler(self, base: Path, version: str, goos: str, goarch: str) -> Compiler:
        if self.compiler is not None:
            return self.compiler
        return GoCompiler(
            binary_name=self.config.string_default("build.binary_name", app_name(self.config, base)),
            version=version,
            goos=goos,
            goarch=goarch,
            flags=tuple(self.config.string_list("build.flags")[0]),
            logger=self.logger,
        )

    def _name(
        self,
        base: Path,
        binary: Path,
        version: str,
        goos: str,
        goarch: str,
        request: BuildRequest,
    ) -> tuple[ArchiveTarget, Path]:
        self._transition(BuildState.NAMING)
        target = ArchiveTarget(binary_name=binary.name, version=version, goos=goos, goarch=goarch)
        return target, archive_destination(target, base, request.output)

    def _transition(self, state: BuildState) -> None:
        self.state = state
        self.history.append(state)
        self.logger.log(
            operation="transition",
            stage=state,
            message=f"Entered {state.value} state.",
            level="debug",
        )
