"""Typed build error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across the CLI and API surfaces."""

    INVALID_PATTERN = "E_INVALID_PATTERN"
    MOUNT_PATH = "E_MOUNT_PATH"
    IO = "E_IO"
    COMPILE = "E_COMPILE"
    ARCHIVE = "E_ARCHIVE"
    CONFIG = "E_CONFIG"
    TEMPLATE = "E_TEMPLATE"
    MIGRATE = "E_MIGRATE"


class AahBuildError(Exception):
    """Root of every aahbuild failure; carries a stable code for callers."""

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    @property
    def summary(self) -> str:
        return self.args[0] if self.args else ""

    def __str__(self) -> str:
        lines = [self.summary]
        if self.hint:
            lines.append(f"Hint: {self.hint}")
        lines.extend(f"  {key}: {value}" for key, value in self.context.items() if value)
        return "\n".join(lines)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"code": self.code, "message": str(self)}
        payload["context"] = dict(self.context)
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class _CodedError(AahBuildError):
    _code: ErrorCode

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=self._code, hint=hint, context=context)


class InvalidPatternError(_CodedError):
    """An exclude or no-gzip pattern is empty or malformed."""

    _code = ErrorCode.INVALID_PATTERN


class MountPathError(_CodedError):
    """A VFS mount physical path is missing or not absolute."""

    _code = ErrorCode.MOUNT_PATH


class BuildIOError(_CodedError):
    """Read, write, copy or permission failure while building."""

    _code = ErrorCode.IO


class CompileError(_CodedError):
    """The toolchain failed to produce an application binary."""

    _code = ErrorCode.COMPILE


class ArchiveError(_CodedError):
    """Zip creation or archive directory creation failed."""

    _code = ErrorCode.ARCHIVE


class ConfigError(_CodedError):
    """The project file is missing or cannot be interpreted."""

    _code = ErrorCode.CONFIG


class TemplateError(_CodedError):
    """A startup script template references an unknown variable."""

    _code = ErrorCode.TEMPLATE


class MigrateError(_CodedError):
    """The migration grammar is unusable."""

    _code = ErrorCode.MIGRATE


__all__ = [
    "AahBuildError",
    "ArchiveError",
    "BuildIOError",
    "CompileError",
    "ConfigError",
    "ErrorCode",
    "InvalidPatternError",
    "MigrateError",
    "MountPathError",
    "TemplateError",
]
