"""Archive naming, application version and target platform resolution."""

from __future__ import annotations

import os
import platform
import subprocess
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from aahbuild.config import ProjectConfig

ARCHIVE_EXT = ".zip"
FALLBACK_VERSION = "0.0.0"

_GOOS_BY_PLATFORM = {
    "linux": "linux",
    "darwin": "darwin",
    "win32": "windows",
    "cygwin": "windows",
}

_GOARCH_BY_MACHINE = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv7l": "arm",
    "armv6l": "arm",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
}


def strip_ext(name: str) -> str:
    return os.path.splitext(os.path.basename(name))[0]


@dataclass(frozen=True, slots=True)
class ArchiveTarget:
    binary_name: str
    version: str
    goos: str
    goarch: str

    @property
    def canonical_name(self) -> str:
        """``<binary>-<version>-<goos>-<goarch>``, binary extension stripped."""
        return f"{strip_ext(self.binary_name)}-{self.version}-{self.goos}-{self.goarch}"


def archive_destination(
    target: ArchiveTarget,
    app_base_dir: str | Path,
    explicit_output: str | os.PathLike[str] | None = None,
) -> Path:
    """Resolve where the deployment archive is written.

    Rules, in order: no output means ``<app>/build/<canonical>.zip``; an output
    ending in ``.zip`` is the literal destination; any other output is a
    directory that receives ``<canonical>.zip``. The filesystem is never
    consulted.
    """
    output = os.fspath(explicit_output) if explicit_output else ""
    if not output:
        destination = os.path.join(
            os.path.abspath(os.fspath(app_base_dir)), "build", target.canonical_name
        )
    else:
        destination = os.path.abspath(output)
        if not destination.endswith(ARCHIVE_EXT):
            destination = os.path.join(destination, target.canonical_name)

    if not destination.endswith(ARCHIVE_EXT):
        destination += ARCHIVE_EXT
    return Path(destination)


def resolve_version(app_base_dir: str | Path, config: ProjectConfig) -> str:
    configured = config.string_default("build.version", "")
    if configured:
        return configured
    described = _git_describe(Path(app_base_dir))
    return described or FALLBACK_VERSION


def resolve_target(
    goos: str | None = None,
    goarch: str | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> tuple[str, str]:
    environ = os.environ if env is None else env
    resolved_os = goos or environ.get("GOOS") or _host_goos()
    resolved_arch = goarch or environ.get("GOARCH") or _host_goarch()
    return resolved_os, resolved_arch


def _host_goos() -> str:
    for prefix, goos in _GOOS_BY_PLATFORM.items():
        if sys.platform.startswith(prefix):
            return goos
    return sys.platform.rstrip("0123456789")


def _host_goarch() -> str:
    machine = platform.machine().lower()
    return _GOARCH_BY_MACHINE.get(machine, machine)


def _git_describe(cwd: Path) -> str:
    try:
        completed = subprocess.run(
            ["git", "describe", "--always"],
            cwd=cwd,
            check=False,
            text=True,
            capture_output=True,
        )
    except OSError:
        return ""
    if completed.returncode != 0:
        return ""
    return completed.stdout.strip()
