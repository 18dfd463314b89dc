"""CLI entrypoints for autotest commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError, FRAMEWORK_CHOICES, PROVIDER_CHOICES
from .errors import AutotestError
from .index import ProjectIndexer
from .logging import configure_logging
from .models import RunReport
from .orchestrator import Orchestrator, RunOptions


def _add_logging_options(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    kwargs["default"] = argparse.SUPPRESS if suppress_default else False
    parser.add_argument("-v", "--verbose", **kwargs)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=argparse.SUPPRESS if suppress_default else None,
        help="Also write a debug-level log to this file.",
    )


def _add_root_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def _percentage(value: str) -> float:
    number = float(value)
    if not 0 <= number <= 100:
        raise argparse.ArgumentTypeError("must be between 0 and 100")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autotest",
        description="Scaffold Jest/Vitest unit tests for TypeScript files that lack them.",
    )
    _add_logging_options(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate test files for untested TypeScript sources.",
    )
    _add_logging_options(generate_parser, suppress_default=True)
    _add_root_argument(generate_parser)
    generate_parser.add_argument(
        "--framework",
        choices=FRAMEWORK_CHOICES,
        default=None,
        help="Test framework to target (default: auto-detect from package.json).",
    )
    generate_parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Write tests under this directory instead of beside each source file.",
    )
    generate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the generation plan without writing files or running tests.",
    )
    generate_parser.add_argument(
        "--changed-only",
        action="store_true",
        help="Only consider files changed against the upstream branch.",
    )
    generate_parser.add_argument(
        "--diff-base",
        default=None,
        help="Ref to diff against with --changed-only (default: origin/main, then origin/master).",
    )
    generate_parser.add_argument(
        "--max-workers",
        type=_positive_int,
        default=None,
        help="Maximum number of files processed concurrently (default: CPU count).",
    )
    generate_parser.add_argument(
        "--min-coverage",
        type=_percentage,
        default=None,
        help="Fail when measured coverage falls below this percentage (0-100).",
    )
    generate_parser.add_argument(
        "--allow-dirty",
        action="store_true",
        help="Run even when the git working tree has uncommitted changes.",
    )
    generate_parser.add_argument(
        "--context",
        action="store_true",
        default=None,
        help="Index the project and use cross-file context while generating.",
    )
    generate_parser.add_argument(
        "--provider",
        choices=PROVIDER_CHOICES,
        default=None,
        help="Enhanced generator to try before local synthesis.",
    )
    generate_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds allowed per file for the enhanced generator.",
    )

    index_parser = subparsers.add_parser(
        "index",
        help="Index the project and print a summary.",
    )
    _add_logging_options(index_parser, suppress_default=True)
    _add_root_argument(index_parser)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_logging_options(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for autotest commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "generate":
        options = RunOptions(
            framework=args.framework,
            out_dir=args.out,
            dry_run=bool(args.dry_run),
            changed_only=bool(args.changed_only),
            diff_base=args.diff_base,
            max_workers=args.max_workers,
            min_coverage=args.min_coverage,
            allow_dirty=bool(args.allow_dirty),
            use_context=args.context,
            provider=args.provider,
            unit_timeout=args.timeout,
        )
        try:
            report = Orchestrator().run(args.root, options)
        except (FileNotFoundError, NotADirectoryError, ConfigError) as exc:
            parser.exit(1, f"{exc}\n")
        except AutotestError as exc:
            parser.exit(1, f"autotest generate failed: {exc}\n")
        _print_report(report)
    elif args.command == "index":
        indexer = ProjectIndexer(args.root)
        try:
            indexer.build()
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        _print_index_summary(indexer)
    elif args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _print_report(report: RunReport) -> None:
    if report.dry_run:
        for result in report.generated:
            lines = (result.code or "").count("\n")
            print(f"Source: {_relativize(result.source_path)}")
            print(f"Test:   {_relativize(result.test_path)}")
            print(f"Lines:  {lines}")
            print()
    for result in report.failed:
        print(f"Failed: {_relativize(result.source_path)}: {result.error}")
    summary = f"Generated {len(report.generated)} test file(s), {len(report.failed)} failed"
    if report.dry_run:
        summary += " (dry-run)"
    print(summary)
    if report.coverage is not None:
        print(f"Coverage: {report.coverage:.1f}%")


def _print_index_summary(indexer: ProjectIndexer) -> None:
    stats = indexer.stats()
    print("Project Index Summary")
    print("=====================")
    print(f"Files indexed: {stats['files_indexed']}")
    print(f"Total exports: {stats['total_exports']}")
    print(f"Total dependencies: {stats['total_dependencies']}")
    print(f"Avg exports per file: {stats['avg_exports_per_file']:.2f}")


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
