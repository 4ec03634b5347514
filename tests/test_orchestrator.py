from pathlib import Path

import pytest

from aahbuild.archive import archive_entries
from aahbuild.config import ProjectConfig
from aahbuild.errors import CompileError, InvalidPatternError
from aahbuild.observability import StructuredLogger
from aahbuild.orchestrator import BuildOrchestrator, BuildRequest, BuildState, app_name
from aahbuild.vfs.emit import generated_source_path


def _orchestrator(sample_app: Path, compiler, logger: StructuredLogger) -> BuildOrchestrator:
    return BuildOrchestrator(
        config=ProjectConfig.load(sample_app), compiler=compiler, logger=logger
    )


def test_multi_file_build_produces_canonical_archive(
    sample_app: Path, fake_compiler, logger: StructuredLogger
) -> None:
    orchestrator = _orchestrator(sample_app, fake_compiler, logger)

    result = orchestrator.build(
        BuildRequest(app_base_dir=sample_app, profile="qa", goos="linux", goarch="amd64")
    )

    assert result.archive_path == sample_app / "build" / "myapp-1.0.0-abcdef-linux-amd64.zip"
    assert result.states == (
        BuildState.INIT,
        BuildState.COMPILING,
        BuildState.STAGING,
        BuildState.NAMING,
        BuildState.ARCHIVING,
        BuildState.DONE,
    )
    names = [name for name, _ in archive_entries(result.archive_path)]
    assert names == [
        "aah.cmd",
        "aah.sh",
        "bin/myapp",
        "config/app.conf",
        "static/css/site.css",
        "static/img/logo.png",
    ]
    assert fake_compiler.calls[0].pack is True
    assert fake_compiler.calls[0].embed is False
    assert orchestrator.state is BuildState.DONE


def test_multi_file_build_removes_staging_directory(
    sample_app: Path, fake_compiler, logger: StructuredLogger
) -> None:
    orchestrator = _orchestrator(sample_app, fake_compiler, logger)

    orchestrator.build(BuildRequest(app_base_dir=sample_app, goos="linux", goarch="amd64"))

    staged_roots = [
        record["extra"]["build_root"]
        for record in logger.records
        if record["operation"] == "assemble"
    ]
    assert len(staged_roots) == 1
    assert not Path(staged_roots[0]).exists()


def test_single_binary_build_embeds_and_archives_binary(
    sample_app: Path, fake_compiler, logger: StructuredLogger, tmp_path: Path
) -> None:
    orchestrator = _orchestrator(sample_app, fake_compiler, logger)

    result = orchestrator.build(
        BuildRequest(
            app_base_dir=sample_app,
            single=True,
            output=str(tmp_path / "dist"),
            goos="darwin",
            goarch="arm64",
        )
    )

    assert result.archive_path == tmp_path / "dist" / "myapp-1.0.0-abcdef-darwin-arm64.zip"
    assert result.states == (
        BuildState.INIT,
        BuildState.EMBEDDING_ASSETS,
        BuildState.COMPILING,
        BuildState.NAMING,
        BuildState.ARCHIVING,
        BuildState.DONE,
    )
    assert [name for name, _ in archive_entries(result.archive_path)] == ["myapp"]
    assert fake_compiler.saw_generated_source == [True]
    assert fake_compiler.calls[0].embed is True
    assert not generated_source_path(sample_app).exists()


def test_single_binary_cleans_up_generated_source_on_compile_failure(
    sample_app: Path, fake_compiler, logger: StructuredLogger
) -> None:
    fake_compiler.fail = True
    orchestrator = _orchestrator(sample_app, fake_compiler, logger)

    with pytest.raises(CompileError):
        orchestrator.build(
            BuildRequest(app_base_dir=sample_app, single=True, goos="linux", goarch="amd64")
        )

    assert fake_compiler.saw_generated_source == [True]
    assert not generated_source_path(sample_app).exists()
    assert orchestrator.state is BuildState.FAILED
    assert orchestrator.history[-2:] == [BuildState.COMPILING, BuildState.FAILED]
    errors = logger.records_at_level("error")
    assert errors[-1]["extra"]["code"] == "E_COMPILE"


def test_invalid_exclude_pattern_fails_before_compiling(
    sample_app: Path, fake_compiler, logger: StructuredLogger
) -> None:
    config = ProjectConfig(data={"name": "myapp", "build": {"excludes": ["[oops"]}})
    orchestrator = BuildOrchestrator(config=config, compiler=fake_compiler, logger=logger)

    with pytest.raises(InvalidPatternError):
        orchestrator.build(BuildRequest(app_base_dir=sample_app))

    assert fake_compiler.calls == []
    assert orchestrator.history == [BuildState.INIT, BuildState.FAILED]


def test_stale_generated_source_is_removed_before_multi_build(
    sample_app: Path, fake_compiler, logger: StructuredLogger
) -> None:
    stale = generated_source_path(sample_app)
    stale.write_text("package app\n", encoding="utf-8")
    orchestrator = _orchestrator(sample_app, fake_compiler, logger)

    orchestrator.build(BuildRequest(app_base_dir=sample_app, goos="linux", goarch="amd64"))

    assert fake_compiler.saw_generated_source == [False]
    assert not stale.exists()


def test_app_name_defaults_to_directory_name(tmp_path: Path) -> None:
    assert app_name(ProjectConfig(data={"name": "shop"}), tmp_path) == "shop"
    assert app_name(ProjectConfig(), tmp_path / "billing") == "billing"
