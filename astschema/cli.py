"""CLI entrypoints for astschema commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .errors import AstSchemaError
from .extractor import Extractor
from .logging import configure_logging
from .schema import dumps


def _add_verbose_option(parser: argparse.ArgumentParser, *, subcommand: bool = False) -> None:
    # On subcommands the flag must not reset a `-v` given before the command.
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if subcommand else False,
        help="Log every module file loaded during the crawl.",
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the crate directory (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="astschema",
        description="Extract a machine-readable schema of a syntax-tree crate's node types.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Also write log records to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract_parser = subparsers.add_parser(
        "extract",
        help="Crawl the crate and write the node schema as JSON.",
    )
    _add_verbose_option(extract_parser, subcommand=True)
    _add_path_argument(extract_parser)
    extract_parser.add_argument(
        "-o",
        "--output",
        help="Output file, relative to the crate (defaults to the configured output). "
        "Use '-' for stdout.",
    )
    extract_parser.add_argument(
        "--check",
        action="store_true",
        help="Do not write; exit with status 1 when the existing output is out of date.",
    )

    tokens_parser = subparsers.add_parser(
        "tokens",
        help="Print the token spelling table of the crate.",
    )
    _add_verbose_option(tokens_parser, subcommand=True)
    _add_path_argument(tokens_parser)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for astschema commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    try:
        extractor = Extractor.for_crate(args.path)
        if args.command == "extract":
            _run_extract(parser, extractor, args)
        elif args.command == "tokens":
            for spelling, symbol in sorted(extractor.load_tokens().items(), key=lambda kv: kv[1]):
                print(f"{symbol} {spelling}")
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except AstSchemaError as exc:
        parser.exit(1, f"astschema: {exc}\n")


def _run_extract(
    parser: argparse.ArgumentParser, extractor: Extractor, args: argparse.Namespace
) -> None:
    rendered = dumps(extractor.run())
    if args.output == "-":
        sys.stdout.write(rendered)
        return

    output = extractor.config.root / (args.output or extractor.config.output)
    if args.check:
        current = output.read_text(encoding="utf-8") if output.exists() else None
        if current != rendered:
            parser.exit(1, f"{_relativize(output)} is out of date\n")
        print(f"{_relativize(output)} is up to date")
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(rendered, encoding="utf-8")
    print(f"Schema written to {_relativize(output)}")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
