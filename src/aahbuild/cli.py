"""Command line entry point.

Usage:
    aahbuild build [-i IMPORTPATH] [-e PROFILE] [-o OUTPUT] [-s]
    aahbuild migrate code [-i IMPORTPATH] [-y] [--grammar FILE]
"""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, TextIO

from aahbuild.config import PROJECT_FILE, ProjectConfig
from aahbuild.errors import AahBuildError, ConfigError
from aahbuild.migrate import GRAMMAR_FETCH_URL, GRAMMAR_FILE, fetch_grammar, migrate_code
from aahbuild.observability import Echo, StructuredLogger
from aahbuild.orchestrator import DEFAULT_PROFILE, BuildOrchestrator, BuildRequest

BUILD_EPILOG = """\
Artifact naming convention: <appbinaryname>-<appversion>-<goos>-<goarch>.zip
For e.g.: aahwebsite-381eaa8-darwin-amd64.zip

Examples:
  aahbuild build
  aahbuild build --single
  aahbuild build -e dev
  aahbuild build -i github.com/user/appname -o /Users/jeeva -e qa
  aahbuild build -i github.com/user/appname -o /Users/jeeva/aahwebsite.zip
"""


def resolve_app_base_dir(
    import_path: str | None,
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Path:
    """Map an import path (or the working directory) to the application base dir."""
    working_dir = cwd or Path.cwd()
    if not import_path:
        return working_dir.resolve()
    candidate = Path(import_path)
    if not candidate.is_absolute():
        candidate = working_dir / candidate
    if (candidate / PROJECT_FILE).is_file():
        return candidate.resolve()
    environ = os.environ if env is None else env
    gopath = environ.get("GOPATH") or str(Path.home() / "go")
    for entry in gopath.split(os.pathsep):
        if not entry:
            continue
        source_dir = Path(entry) / "src" / import_path
        if source_dir.is_dir():
            return source_dir.resolve()
    raise ConfigError(
        "Unable to find the aah application for the given import path.",
        hint="Pass an application directory or an import path under GOPATH/src.",
        context={"importpath": import_path, "gopath": gopath},
    )


def make_echo(stream: TextIO, *, verbose: bool = False) -> Echo:
    def echo(record: dict[str, Any]) -> None:
        level = str(record.get("level", "info"))
        if level == "debug" and not verbose:
            return
        print(f"{level.upper():<5} {record.get('message', '')}", file=stream)

    return echo


def cmd_build(args: argparse.Namespace, logger: StructuredLogger) -> int:
    base = resolve_app_base_dir(args.importpath)
    config = ProjectConfig.load(base)
    logger.info("cli", f"Loaded aah project file: {base / PROJECT_FILE}")
    orchestrator = BuildOrchestrator(config=config, logger=logger)
    orchestrator.build(
        BuildRequest(
            app_base_dir=base,
            profile=args.envprofile or DEFAULT_PROFILE,
            output=args.output,
            single=args.single,
        )
    )
    return 0


def cmd_migrate_code(args: argparse.Namespace, logger: StructuredLogger) -> int:
    base = resolve_app_base_dir(args.importpath)
    config = ProjectConfig.load(base)

    logger.warning(
        "cli",
        "Migrate command does not take file backup. It assumes application use version control.",
    )
    if not args.yes and not _confirm("Would you like to continue? [y/N]: "):
        logger.info("cli", "Okay, I respect your choice. Bye.")
        return 0

    grammar_path = Path(args.grammar) if args.grammar else Path.home() / ".aah" / GRAMMAR_FILE
    if not grammar_path.is_file():
        if not args.fetch:
            raise ConfigError(
                "Migrate grammar file not found.",
                hint=f"Download {GRAMMAR_FETCH_URL} and pass --grammar, or rerun with --fetch.",
                context={"path": str(grammar_path)},
            )
        logger.info("cli", f"Fetch migrate configuration from {GRAMMAR_FETCH_URL}")
        fetch_grammar(grammar_path)
    grammar = ProjectConfig.load_file(grammar_path)
    logger.info("cli", f"Loaded migrate configuration: {grammar_path}")
    logger.info("cli", f"Loaded aah project file: {base / PROJECT_FILE}")

    report = migrate_code(base, config, grammar, logger=logger)
    logger.info("cli", f"Migrate successful, {report.total} file(s) updated.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="aahbuild", description="aah application build tool")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug records")
    sub = parser.add_subparsers(dest="command", required=True)

    build_p = sub.add_parser(
        "build",
        aliases=["b"],
        help="Build aah application for deployment (single or non-single)",
        epilog=BUILD_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    build_p.add_argument("-i", "--importpath", help="Import path of aah application")
    build_p.add_argument(
        "-e",
        "--envprofile",
        default=DEFAULT_PROFILE,
        help="Environment profile name to activate (e.g: dev, qa, prod)",
    )
    build_p.add_argument(
        "-o",
        "--output",
        help=(
            "Output of build artifact; the default is "
            "'<appbasedir>/build/<appbinaryname>-<appversion>-<goos>-<goarch>.zip'"
        ),
    )
    build_p.add_argument(
        "-s", "--single", action="store_true", help="Create aah single application binary"
    )
    build_p.set_defaults(handler=cmd_build)

    migrate_p = sub.add_parser("migrate", aliases=["m"], help="Migrate application codebase")
    migrate_sub = migrate_p.add_subparsers(dest="migrate_command", required=True)
    code_p = migrate_sub.add_parser(
        "code", aliases=["c"], help="Migrate Go sources and views to the current aah version"
    )
    code_p.add_argument("-i", "--importpath", help="Import path of aah application")
    code_p.add_argument("-y", "--yes", action="store_true", help="Answer yes to the prompt")
    code_p.add_argument("--grammar", help="Path to the migrate grammar file")
    code_p.add_argument(
        "--fetch",
        action="store_true",
        help="Download the grammar file when it does not exist yet",
    )
    code_p.set_defaults(handler=cmd_migrate_code)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logger = StructuredLogger(echo=make_echo(sys.stderr, verbose=args.verbose))
    try:
        return args.handler(args, logger)
    except AahBuildError as exc:
        print(f"FATAL {exc}", file=sys.stderr)
        return 1


def _confirm(prompt: str) -> bool:
    try:
        answer = input(prompt)
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


if __name__ == "__main__":
    sys.exit(main())
