"""Command-line interface for html2draft."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from .version import __version__


def _get_usage() -> str:
    return (
        f"html2draft {__version__}\n"
        "Usage:\n"
        "  html2draft [--help] [--version|--ver]\n"
        "  html2draft --input PATH|- [--output PATH] [options]\n"
        "  html2draft --from-dir FROM_DIR --to-dir TO_DIR [options]\n"
        "  html2draft --from-csv PATH --column NAME --to-csv PATH [options]\n\n"
        "Options:\n"
        "  --base-url URL               Base URL for relative thread links\n"
        "  --decode-entities            Emit text with character references decoded\n"
        "  --verbose                    Verbose progress logs\n"
        "  --debug                      Debug logs"
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--help", action="store_true")
    parser.add_argument("--version", action="store_true")
    parser.add_argument("--ver", action="store_true")
    parser.add_argument("--input", help="Fragment file to convert ('-' reads stdin)")
    parser.add_argument("--output", help="Destination file (default: stdout)")
    parser.add_argument("--from-dir", help="Directory of *.html, *.htm, *.txt fragments")
    parser.add_argument("--to-dir", help="Output directory for converted fragments")
    parser.add_argument("--from-csv", help="CSV export containing legacy bodies")
    parser.add_argument("--to-csv", help="Destination CSV")
    parser.add_argument("--column", help="CSV column holding the HTML body")
    parser.add_argument(
        "--base-url",
        default=None,
        help="Base URL replacing '..' in relative links (fallback: HTML2DRAFT_BASE_URL env var)",
    )
    parser.add_argument("--decode-entities", action="store_true", help="Emit text with character references decoded")
    parser.add_argument("--verbose", action="store_true", help="Verbose progress logs")
    parser.add_argument("--debug", action="store_true", help="Debug logs")
    return parser


def _selected_modes(args: argparse.Namespace) -> list[str]:
    modes = []
    if args.input:
        modes.append("input")
    if args.from_dir or args.to_dir:
        modes.append("dir")
    if args.from_csv or args.to_csv or args.column:
        modes.append("csv")
    return modes


def _read_input(value: str) -> str:
    if value == "-":
        return sys.stdin.read()
    return Path(value).expanduser().resolve().read_text(encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = _build_parser()
    args, unknown = parser.parse_known_args(argv)
    if unknown:
        print(_get_usage())
        return 2

    if not argv or args.help:
        print(_get_usage())
        return 0

    if args.version or args.ver:
        print(__version__)
        return 0

    modes = _selected_modes(args)
    if len(modes) != 1:
        print(_get_usage())
        print("Exactly one of --input, --from-dir/--to-dir or --from-csv/--column/--to-csv is required", file=sys.stderr)
        return 6

    try:
        from html2draft import core
    except Exception as exc:
        print(f"Unable to import html2draft core: {exc}", file=sys.stderr)
        return 6

    core.setup_logging(args.verbose, args.debug)

    base_url = args.base_url or os.environ.get(core.BASE_URL_ENV) or core.THREAD_BASE_URL
    config = core.ConversionConfig(
        base_url=base_url,
        parser=core.ParserConfig(decode_entities=bool(args.decode_entities)),
    )

    mode = modes[0]

    if mode == "input":
        try:
            raw = _read_input(args.input)
        except (OSError, UnicodeDecodeError) as exc:
            print(f"Unable to read input {args.input}: {exc}", file=sys.stderr)
            return 6
        converted = core.convert(raw, config)
        if not args.output:
            print(converted)
            return 0
        output_path = Path(args.output).expanduser().resolve()
        if output_path.is_dir():
            print(f"Output path is a directory: {output_path}", file=sys.stderr)
            return 7
        core.safe_write_text(output_path, converted + "\n")
        return 0

    if mode == "dir":
        if not args.from_dir or not args.to_dir:
            print("Options --from-dir and --to-dir must be used together", file=sys.stderr)
            return 6
        from_dir = Path(args.from_dir).expanduser().resolve()
        to_dir = Path(args.to_dir).expanduser().resolve()
        if not from_dir.exists() or not from_dir.is_dir():
            print(f"Source directory not found: {from_dir}", file=sys.stderr)
            return 6
        if to_dir.exists():
            if not to_dir.is_dir():
                print(f"Output path is not a directory: {to_dir}", file=sys.stderr)
                return 7
            if any(to_dir.iterdir()):
                print(f"Output directory must be empty: {to_dir}", file=sys.stderr)
                return 7
        try:
            core.convert_directory(from_dir=from_dir, to_dir=to_dir, config=config, verbose=bool(args.verbose))
        except RuntimeError as exc:
            print(str(exc), file=sys.stderr)
            return 6
        return 0

    if not args.from_csv or not args.to_csv or not args.column:
        print("Options --from-csv, --column and --to-csv must be used together", file=sys.stderr)
        return 6
    source_csv = Path(args.from_csv).expanduser().resolve()
    target_csv = Path(args.to_csv).expanduser().resolve()
    if not source_csv.exists() or not source_csv.is_file():
        print(f"CSV file not found: {source_csv}", file=sys.stderr)
        return 6
    if target_csv.is_dir():
        print(f"Output path is a directory: {target_csv}", file=sys.stderr)
        return 7
    try:
        core.convert_csv(
            source_path=source_csv,
            target_path=target_csv,
            column=args.column,
            config=config,
            verbose=bool(args.verbose),
        )
    except (RuntimeError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 6
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
