"""Grammar driven text migration of application Go sources and views.

A grammar file lists flat ``[old, new, old, new, ...]`` pairs under
``file.go.upgrade_replacer`` and ``file.view.upgrade_replacer``. Files are
rewritten in place; no backup is taken.
"""

from __future__ import annotations

import os
import re
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from urllib.request import urlopen

from aahbuild.config import APP_PACKAGE_DIR, ProjectConfig
from aahbuild.errors import ConfigError, MigrateError
from aahbuild.excludes import ExcludeSet
from aahbuild.observability import StructuredLogger
from aahbuild.walk import files_path

GRAMMAR_FILE = "migrate.conf"
GRAMMAR_FETCH_URL = "https://cdn.aahframework.org/" + GRAMMAR_FILE
GO_GRAMMAR_KEY = "file.go.upgrade_replacer"
VIEW_GRAMMAR_KEY = "file.view.upgrade_replacer"
VIEWS_DIR = "views"
DEFAULT_VIEW_EXT = ".html"

STAGE = "migrate"


@dataclass(frozen=True, slots=True)
class Replacer:
    """Leftmost, non-overlapping replacer; at one position the first pair wins."""

    pairs: tuple[tuple[str, str], ...]
    _pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)
    _lookup: dict[str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        lookup: dict[str, str] = {}
        for old, new in self.pairs:
            if not old:
                raise MigrateError(
                    "Migrate grammar contains an empty search string.",
                    context={"replacement": new},
                )
            lookup.setdefault(old, new)
        alternation = "|".join(re.escape(old) for old in lookup) or r"(?!x)x"
        object.__setattr__(self, "_lookup", lookup)
        object.__setattr__(self, "_pattern", re.compile(alternation))

    @classmethod
    def from_flat(cls, values: Sequence[str], *, key: str = "") -> "Replacer":
        if len(values) % 2 != 0:
            raise MigrateError(
                "Migrate grammar must contain old/new pairs.",
                hint="Every search string needs a matching replacement.",
                context={"key": key, "entries": str(len(values))},
            )
        pairs = tuple((values[i], values[i + 1]) for i in range(0, len(values), 2))
        return cls(pairs)

    def replace(self, text: str) -> str:
        if not self.pairs:
            return text
        return self._pattern.sub(lambda match: self._lookup[match.group(0)], text)


@dataclass(frozen=True, slots=True)
class MigrateReport:
    go_files: tuple[Path, ...] = ()
    view_files: tuple[Path, ...] = ()

    @property
    def total(self) -> int:
        return len(self.go_files) + len(self.view_files)


def migrate_code(
    app_base_dir: str | Path,
    project_config: ProjectConfig,
    grammar_config: ProjectConfig,
    *,
    logger: StructuredLogger,
) -> MigrateReport:
    base = Path(app_base_dir)

    logger.info("migrate", "Go source code migrate starts ...", stage=STAGE)
    go_files = _migrate_go_sources(base, project_config, grammar_config, logger)
    if not go_files:
        logger.info("migrate", "   It seems application Go source code are up-to-date", stage=STAGE)
    logger.info("migrate", "Go source code migrate successful", stage=STAGE)

    view_files: list[Path] = []
    if (base / VIEWS_DIR).is_dir():
        logger.info("migrate", "View file migrate starts ...", stage=STAGE)
        view_files = _migrate_views(base, project_config, grammar_config, logger)
        if not view_files:
            logger.info("migrate", "   It seems application view files are up-to-date", stage=STAGE)
        logger.info("migrate", "View file migrate successful", stage=STAGE)

    return MigrateReport(go_files=tuple(go_files), view_files=tuple(view_files))


def _migrate_go_sources(
    base: Path,
    project_config: ProjectConfig,
    grammar_config: ProjectConfig,
    logger: StructuredLogger,
) -> list[Path]:
    grammar, found = grammar_config.string_list(GO_GRAMMAR_KEY)
    if not found:
        logger.info("migrate", f"Config '{GO_GRAMMAR_KEY}' not found in the grammar file", stage=STAGE)
        return []
    replacer = Replacer.from_flat(grammar, key=GO_GRAMMAR_KEY)
    excludes = ExcludeSet.of(project_config.string_list("build.ast_excludes")[0])
    package_dir = base / APP_PACKAGE_DIR
    if not package_dir.is_dir():
        return []
    migrated: list[Path] = []
    for path in files_path(package_dir, excludes):
        if path.suffix != ".go":
            continue
        if migrate_file(path, replacer, base=base, logger=logger, go_format=True):
            migrated.append(path)
    return migrated


def _migrate_views(
    base: Path,
    project_config: ProjectConfig,
    grammar_config: ProjectConfig,
    logger: StructuredLogger,
) -> list[Path]:
    grammar, found = grammar_config.string_list(VIEW_GRAMMAR_KEY)
    if not found:
        logger.info(
            "migrate", f"Config '{VIEW_GRAMMAR_KEY}' not found in the grammar file", stage=STAGE
        )
        return []
    replacer = Replacer.from_flat(grammar, key=VIEW_GRAMMAR_KEY)
    view_ext = project_config.string_default("view.ext", DEFAULT_VIEW_EXT)
    migrated: list[Path] = []
    for path in files_path(base / VIEWS_DIR, ExcludeSet()):
        if path.suffix != view_ext:
            continue
        if migrate_file(path, replacer, base=base, logger=logger, go_format=False):
            migrated.append(path)
    return migrated


def migrate_file(
    path: Path,
    replacer: Replacer,
    *,
    base: Path,
    logger: StructuredLogger,
    go_format: bool,
) -> bool:
    """Rewrite *path* in place; return True when its content changed."""
    display = _display(path, base)
    try:
        original = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("migrate_file", str(exc), stage=STAGE, path=display)
        logger.info("migrate_file", f"  |-- skipped: {display}", stage=STAGE)
        return False

    updated = replacer.replace(original)
    if updated == original:
        return False

    if go_format:
        formatted = gofmt(updated)
        if formatted is None:
            logger.error("migrate_file", "While formatting: gofmt rejected the source", stage=STAGE)
            logger.info("migrate_file", f"  |-- skipped: {display}", stage=STAGE)
            return False
        updated = formatted

    try:
        path.write_text(updated, encoding="utf-8")
    except OSError as exc:
        logger.error("migrate_file", str(exc), stage=STAGE, path=display)
        logger.info("migrate_file", f"  |-- [ERROR] processed: {display}", stage=STAGE)
    else:
        logger.info("migrate_file", f"  |-- processed: {display}", stage=STAGE)
    return True


def gofmt(source: str, *, tool: str = "gofmt") -> str | None:
    """Format Go *source*; unchanged when gofmt is unavailable, None on syntax errors."""
    if shutil.which(tool) is None:
        return source
    result = subprocess.run(
        [tool],
        input=source,
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        return None
    return result.stdout


def _display(path: Path, base: Path) -> str:
    try:
        return path.relative_to(base).as_posix()
    except ValueError:
        return str(path)


def fetch_grammar(destination: str | Path, *, url: str = GRAMMAR_FETCH_URL) -> Path:
    """Download the migrate grammar to *destination*, replacing it atomically."""
    target = Path(destination)
    try:
        with urlopen(url) as response:  # noqa: S310 - fixed https location
            payload = response.read()
        target.parent.mkdir(parents=True, exist_ok=True)
        temp_path = target.with_suffix(".tmp")
        temp_path.write_bytes(payload)
        os.replace(temp_path, target)
    except OSError as exc:
        raise ConfigError(
            "Unable to fetch migrate grammar file.",
            hint=f"Download {url} manually and pass --grammar.",
            context={"url": url, "path": str(target), "error": str(exc)},
        ) from exc
    return target
