"""CLI entrypoints for servicegen commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError
from .logging import configure_logging
from .pipeline import GenerationResult, Pipeline


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="servicegen",
        description="Generate HTTP clients and FastAPI endpoints from exposed service contracts.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate client and endpoint modules for every exposed service.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_path_argument(generate_parser)
    generate_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Directory for generated modules (defaults to generate.output_dir).",
    )
    generate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report which modules would change without writing them.",
    )
    generate_parser.add_argument(
        "--no-clients",
        action="store_true",
        help="Skip client generation for exposed interfaces.",
    )
    generate_parser.add_argument(
        "--no-servers",
        action="store_true",
        help="Skip endpoint generation for exposed implementations.",
    )

    check_parser = subparsers.add_parser(
        "check",
        help="Report contract diagnostics without writing anything.",
    )
    _add_verbose_option(check_parser, suppress_default=True)
    _add_path_argument(check_parser)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for servicegen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    if args.command == "generate":
        pipeline = Pipeline(
            clients=not bool(getattr(args, "no_clients", False)),
            servers=not bool(getattr(args, "no_servers", False)),
        )
        dry_run = bool(getattr(args, "dry_run", False))
        try:
            outcome = pipeline.run(args.path, output_dir=args.output, dry_run=dry_run)
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        except ConfigError as exc:
            parser.exit(1, f"servicegen generate failed: {exc}\n")
        _report(outcome.result)
        suffix = " (dry-run)" if dry_run else ""
        if outcome.written:
            label = "Would write" if dry_run else "Wrote"
            for path in outcome.written:
                print(f"{label} {_relativize(path)}")
        else:
            print(f"Generated modules already up to date{suffix}")
        if not outcome.result.succeeded:
            parser.exit(1, "servicegen generate finished with errors.\n")
    elif args.command == "check":
        try:
            outcome = Pipeline().run(args.path, dry_run=True)
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        except ConfigError as exc:
            parser.exit(1, f"servicegen check failed: {exc}\n")
        _report(outcome.result)
        if not outcome.result.succeeded:
            parser.exit(1, "servicegen check found errors.\n")
        print(f"{len(outcome.result.artifacts)} modules checked, no errors")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _report(result: GenerationResult) -> None:
    for diagnostic in result.diagnostics:
        print(diagnostic.format(), file=sys.stderr)
    for failure in result.failures:
        print(f"{failure.subject}: {failure.message}", file=sys.stderr)


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
