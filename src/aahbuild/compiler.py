"""Toolchain collaborator that compiles the application into a binary."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from aahbuild.errors import CompileError
from aahbuild.observability import StructuredLogger

BUILD_BIN_DIR = Path("build") / "bin"


@dataclass(frozen=True, slots=True)
class CompileOptions:
    pack: bool = False
    embed: bool = False


class Compiler(Protocol):
    def compile(self, source_root: Path, options: CompileOptions) -> Path:
        """Compile the application below *source_root* and return the binary path."""


@dataclass(slots=True)
class GoCompiler:
    binary_name: str
    version: str = ""
    goos: str | None = None
    goarch: str | None = None
    tool: str = "go"
    reproducible: bool = True
    flags: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)
    logger: StructuredLogger = field(default_factory=StructuredLogger)

    def output_path(self, source_root: Path) -> Path:
        name = self.binary_name
        if self.goos == "windows" and not name.endswith(".exe"):
            name += ".exe"
        return source_root / BUILD_BIN_DIR / name

    def command(self, output: Path, options: CompileOptions) -> tuple[str, ...]:
        flags = list(self.flags)
        if self.reproducible and "-trimpath" not in flags:
            flags.append("-trimpath")
        ldflags = []
        if self.version:
            ldflags.append(f"-X main.AppVersion={self.version}")
        if options.pack:
            ldflags.append("-X main.AppPackaged=true")
        if options.embed:
            ldflags.append("-X main.AppEmbedded=true")
        if ldflags:
            flags.extend(["-ldflags", " ".join(ldflags)])
        return (self.tool, "build", "-o", str(output), *flags, ".")

    def compile(self, source_root: Path, options: CompileOptions) -> Path:
        output = self.output_path(source_root)
        output.parent.mkdir(parents=True, exist_ok=True)
        command = self.command(output, options)

        env = dict(os.environ)
        env.update(self.env)
        if self.goos:
            env["GOOS"] = self.goos
        if self.goarch:
            env["GOARCH"] = self.goarch
        if self.reproducible:
            env["SOURCE_DATE_EPOCH"] = "0"

        self.logger.info(
            "compile",
            f"Compiling '{self.binary_name}'.",
            stage="compiling",
            command=" ".join(command),
        )
        try:
            result = subprocess.run(
                list(command),
                cwd=str(source_root),
                env=env,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise CompileError(
                f"Unable to find `{self.tool}` executable.",
                hint="Install the Go toolchain and ensure it is available in PATH.",
                context={"tool": self.tool},
            ) from exc
        if result.returncode != 0:
            raise CompileError(
                "Application compile failed.",
                hint="Check compiler output and build configuration.",
                context={
                    "command": " ".join(command),
                    "returncode": str(result.returncode),
                    "stderr": result.stderr[:2000] if result.stderr else "",
                },
            )
        if not output.is_file():
            raise CompileError(
                "Compiler did not produce the expected binary.",
                context={"command": " ".join(command), "output": str(output)},
            )
        return output
