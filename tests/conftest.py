"""Shared test fixtures."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from aahbuild.compiler import CompileOptions
from aahbuild.errors import CompileError
from aahbuild.observability import StructuredLogger
from aahbuild.vfs.emit import generated_source_path

FAKE_BINARY = b"\x7fELF fake aah binary\n"


@dataclass
class FakeCompiler:
    """Compiler stand-in that writes a stub binary under ``build/bin``."""

    binary_name: str = "myapp"
    fail: bool = False
    calls: list[CompileOptions] = field(default_factory=list)
    saw_generated_source: list[bool] = field(default_factory=list)

    def compile(self, source_root: Path, options: CompileOptions) -> Path:
        self.calls.append(options)
        self.saw_generated_source.append(generated_source_path(source_root).exists())
        if self.fail:
            raise CompileError("Application compile failed.", context={"stderr": "boom"})
        output = source_root / "build" / "bin" / self.binary_name
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(FAKE_BINARY)
        return output


@pytest.fixture
def logger() -> StructuredLogger:
    return StructuredLogger()


@pytest.fixture
def fake_compiler() -> FakeCompiler:
    return FakeCompiler()


@pytest.fixture
def sample_app(tmp_path: Path) -> Path:
    """Minimal aah application tree."""
    base = tmp_path / "myapp"
    (base / "app" / "controllers").mkdir(parents=True)
    (base / "app" / "controllers" / "app.go").write_text("package controllers\n", encoding="utf-8")
    (base / "config").mkdir()
    (base / "config" / "app.conf").write_text("name = \"myapp\"\n", encoding="utf-8")
    (base / "static" / "img").mkdir(parents=True)
    (base / "static" / "css").mkdir()
    (base / "static" / "css" / "site.css").write_text("body { margin: 0; }\n", encoding="utf-8")
    (base / "static" / "img" / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\nfake")
    (base / "aah.project").write_text(
        "name: myapp\n"
        "build:\n"
        "  version: 1.0.0-abcdef\n"
        "  excludes: ['*.go', '.*', 'build']\n"
        "vfs:\n"
        "  no_gzip: ['*.png']\n",
        encoding="utf-8",
    )
    return base
