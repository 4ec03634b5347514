import subprocess
from pathlib import Path

import pytest

from aahbuild.compiler import CompileOptions, GoCompiler
from aahbuild.errors import CompileError


def test_command_carries_version_and_mode_flags(tmp_path: Path) -> None:
    compiler = GoCompiler(binary_name="myapp", version="1.0.0", flags=("-v",))

    command = compiler.command(tmp_path / "myapp", CompileOptions(pack=True, embed=True))

    assert command[:4] == ("go", "build", "-o", str(tmp_path / "myapp"))
    assert "-v" in command
    assert "-trimpath" in command
    ldflags = command[command.index("-ldflags") + 1]
    assert ldflags == (
        "-X main.AppVersion=1.0.0 -X main.AppPackaged=true -X main.AppEmbedded=true"
    )
    assert command[-1] == "."


def test_windows_binary_gets_exe_suffix(tmp_path: Path) -> None:
    compiler = GoCompiler(binary_name="myapp", goos="windows", goarch="amd64")
    assert compiler.output_path(tmp_path) == tmp_path / "build" / "bin" / "myapp.exe"


def test_compile_runs_toolchain_with_target_env(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    seen: dict[str, object] = {}

    def fake_run(argv, **kwargs):  # type: ignore[no-untyped-def]
        seen["argv"] = argv
        seen["env"] = kwargs["env"]
        seen["cwd"] = kwargs["cwd"]
        Path(argv[3]).write_bytes(b"binary")
        return subprocess.CompletedProcess(argv, 0, stdout="", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)
    compiler = GoCompiler(binary_name="myapp", version="1.0.0", goos="linux", goarch="arm64")

    output = compiler.compile(tmp_path, CompileOptions(pack=True))

    assert output == tmp_path / "build" / "bin" / "myapp"
    env = seen["env"]
    assert isinstance(env, dict)
    assert env["GOOS"] == "linux"
    assert env["GOARCH"] == "arm64"
    assert env["SOURCE_DATE_EPOCH"] == "0"
    assert seen["cwd"] == str(tmp_path)


def test_missing_toolchain_is_compile_error(tmp_path: Path) -> None:
    compiler = GoCompiler(binary_name="myapp", tool="definitely-not-a-go-toolchain")

    with pytest.raises(CompileError) as exc_info:
        compiler.compile(tmp_path, CompileOptions())

    assert exc_info.value.context["tool"] == "definitely-not-a-go-toolchain"


def test_failed_compile_carries_stderr(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        subprocess,
        "run",
        lambda argv, **kwargs: subprocess.CompletedProcess(
            argv, 1, stdout="", stderr="app/init.go:3: undefined: aah"
        ),
    )

    with pytest.raises(CompileError) as exc_info:
        GoCompiler(binary_name="myapp").compile(tmp_path, CompileOptions())

    assert exc_info.value.context["returncode"] == "1"
    assert "undefined: aah" in exc_info.value.context["stderr"]


def test_missing_output_is_compile_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        subprocess,
        "run",
        lambda argv, **kwargs: subprocess.CompletedProcess(argv, 0, stdout="", stderr=""),
    )

    with pytest.raises(CompileError) as exc_info:
        GoCompiler(binary_name="myapp").compile(tmp_path, CompileOptions())

    assert exc_info.value.context["output"] == str(tmp_path / "build" / "bin" / "myapp")
