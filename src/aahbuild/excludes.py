"""Glob-style exclude patterns applied to every tree walk."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import PurePath

from aahbuild.errors import InvalidPatternError


@dataclass(frozen=True, slots=True)
class ExcludeSet:
    """Ordered set of exclusion patterns.

    A pattern without ``/`` is matched against the base name of a path. A
    pattern containing ``/`` is matched against the trailing components of the
    path, one component at a time, so ``config/*.secret`` excludes
    ``app/config/db.secret`` but not ``config/nested/db.secret``. Matching is
    case-sensitive and any single matching pattern excludes the path.

    Patterns follow the Go glob dialect: ``[^a-z]`` negates a class and a
    backslash escapes the next character. Only paths have ``\\`` treated as a
    separator.
    """

    patterns: tuple[str, ...] = ()
    _globs: tuple[tuple[str, ...], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        deduplicated = tuple(dict.fromkeys(self.patterns))
        object.__setattr__(self, "patterns", deduplicated)
        self.validate()
        globs = tuple(
            tuple(_to_fnmatch(part) for part in _pattern_parts(pattern))
            for pattern in deduplicated
        )
        object.__setattr__(self, "_globs", globs)

    @classmethod
    def of(cls, patterns: Iterable[str] | None) -> "ExcludeSet":
        return cls(tuple(patterns or ()))

    def with_patterns(self, *extra: str) -> "ExcludeSet":
        """Return a superset of this set with *extra* appended."""
        return ExcludeSet((*self.patterns, *extra))

    def validate(self) -> None:
        for pattern in self.patterns:
            problem = _pattern_problem(pattern)
            if problem is not None:
                raise InvalidPatternError(
                    f"Invalid exclude pattern: {problem}.",
                    hint="Fix the pattern in the project file before building.",
                    context={"pattern": pattern},
                )

    def matches(self, path: str | PurePath) -> bool:
        path_parts = _split(str(path))
        if not path_parts:
            return False
        for globs in self._globs:
            if len(globs) > len(path_parts):
                continue
            tail = path_parts[-len(globs):]
            if all(fnmatchcase(part, glob) for part, glob in zip(tail, globs)):
                return True
        return False

    def __iter__(self) -> Iterator[str]:
        return iter(self.patterns)

    def __len__(self) -> int:
        return len(self.patterns)


def _split(value: str) -> list[str]:
    normalized = value.replace("\\", "/")
    return [part for part in normalized.split("/") if part and part != "."]


def _pattern_parts(pattern: str) -> list[str]:
    return [part for part in pattern.split("/") if part and part != "."]


def _class_end(pattern: str, start: int) -> int:
    """Index of the ``]`` closing the class opened at *start*, or -1."""
    end = start + 1
    if end < len(pattern) and pattern[end] in "!^":
        end += 1
    if end < len(pattern) and pattern[end] == "]":
        end += 1
    return pattern.find("]", end)


def _to_fnmatch(component: str) -> str:
    """Rewrite one glob component (``\\`` escapes, ``[^...]``) for fnmatch."""
    out: list[str] = []
    index = 0
    while index < len(component):
        char = component[index]
        if char == "\\" and index + 1 < len(component):
            escaped = component[index + 1]
            out.append(f"[{escaped}]" if escaped in "*?[" else escaped)
            index += 2
            continue
        if char == "[":
            close = _class_end(component, index)
            body = component[index + 1 : close]
            if body.startswith("^"):
                body = "!" + body[1:]
            out.append(f"[{body}]")
            index = close + 1
            continue
        out.append(char)
        index += 1
    return "".join(out)


def _pattern_problem(pattern: str) -> str | None:
    if not pattern or not pattern.strip():
        return "pattern is empty"
    if not _pattern_parts(pattern):
        return "pattern has no name component"
    index = 0
    while index < len(pattern):
        char = pattern[index]
        if char == "\\":
            if index + 1 == len(pattern):
                return "trailing escape character"
            index += 2
            continue
        if char == "[":
            close = _class_end(pattern, index)
            if close == -1 or "/" in pattern[index:close]:
                return "unterminated character class"
            index = close + 1
            continue
        index += 1
    return None
