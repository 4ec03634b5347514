"""Project configuration loader (``aah.project`` and migrate grammar files).

Both files are YAML documents. Keys are addressed with dotted paths such as
``build.excludes`` or ``vfs.mount.static.physical_path``; nested mappings are
walked one segment at a time.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from aahbuild.errors import ConfigError

PROJECT_FILE = "aah.project"

# The application Go package tree; compiled into the binary, never copied as data.
APP_PACKAGE_DIR = "app"

_MISSING = object()


@dataclass(frozen=True)
class ProjectConfig:
    data: Mapping[str, Any] = field(default_factory=dict)
    path: Path | None = None

    @classmethod
    def load(cls, app_base_dir: str | Path) -> "ProjectConfig":
        project_file = Path(app_base_dir) / PROJECT_FILE
        if not project_file.is_file():
            raise ConfigError(
                "aah project file not found.",
                hint=f"Run the command from an aah application directory containing '{PROJECT_FILE}'.",
                context={"path": str(project_file)},
            )
        return cls.load_file(project_file)

    @classmethod
    def load_file(cls, path: str | Path) -> "ProjectConfig":
        config_path = Path(path)
        try:
            data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigError(
                "Unable to read configuration file.",
                context={"path": str(config_path), "error": str(exc)},
            ) from exc
        except yaml.YAMLError as exc:
            raise ConfigError(
                "Configuration file is not valid YAML.",
                hint=str(exc),
                context={"path": str(config_path)},
            ) from exc
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(
                "Configuration file must contain a mapping at the top level.",
                context={"path": str(config_path)},
            )
        return cls(data=data, path=config_path)

    def get(self, key: str) -> Any:
        node: Any = self.data
        for segment in key.split("."):
            if not isinstance(node, Mapping) or segment not in node:
                return _MISSING
            node = node[segment]
        return node

    def string_list(self, key: str) -> tuple[list[str], bool]:
        value = self.get(key)
        if value is _MISSING or value is None:
            return [], False
        if not isinstance(value, list):
            raise ConfigError(
                f"Config '{key}' must be a list of strings.",
                context={"key": key, "path": str(self.path or "")},
            )
        return [str(item) for item in value], True

    def string_default(self, key: str, fallback: str) -> str:
        value = self.get(key)
        if value is _MISSING or value is None or isinstance(value, (Mapping, list)):
            return fallback
        return str(value)

    def bool_default(self, key: str, fallback: bool) -> bool:
        value = self.get(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return fallback

    def keys_by_path(self, prefix: str) -> list[str]:
        value = self.get(prefix)
        if not isinstance(value, Mapping):
            return []
        return [str(key) for key in value]
