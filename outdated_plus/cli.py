"""
Command-line interface for outdated-plus.
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from rich.console import Console

from .constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_SORT_KEY,
    MAX_CONCURRENCY,
    MIN_CONCURRENCY,
    SKIP_FILE_NAME,
    SORT_ALIASES,
    SORT_KEYS,
)
from .errors import OutdatedPlusError, format_error
from .interfaces import MetadataSource, OutdatedDetector
from .processing import build_rows, sort_rows
from .reporting import (
    EXPORT_SUFFIXES,
    ProgressReporter,
    RenderOptions,
    export_rows,
    render_markdown,
    render_plain,
    render_tsv,
)
from .resolvers import MetadataFetcher, NpmCli, NpmRegistryClient, fetch_all
from .skip import add_skip_entries, cleanup_and_save_skip_file, load_skip_file


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="outdated-plus",
        description="Show outdated npm packages with the publication date and age of each upgrade",
    )

    parser.add_argument(
        "--older-than",
        type=int,
        default=0,
        help="Only show packages whose wanted or latest release is at least N days old. Default: 0"
    )

    parser.add_argument(
        "--show-all",
        action="store_true",
        help="Show every outdated package regardless of age"
    )

    parser.add_argument(
        "--wanted",
        action="store_true",
        help="Only show the Wanted columns"
    )

    parser.add_argument(
        "--quiet",
        action="store_true",
        help="No progress bar and no message when nothing is outdated"
    )

    parser.add_argument(
        "--check-all",
        action="store_true",
        help="Include transitive dependencies (npm outdated --all)"
    )

    parser.add_argument(
        "--iso",
        action="store_true",
        help="Print publication times as ISO 8601 UTC"
    )

    parser.add_argument(
        "--concurrency",
        type=int,
        default=DEFAULT_CONCURRENCY,
        help=f"Maximum parallel registry requests ({MIN_CONCURRENCY}-{MAX_CONCURRENCY}). "
             f"Default: {DEFAULT_CONCURRENCY}"
    )

    parser.add_argument(
        "--sort-by",
        default=DEFAULT_SORT_KEY,
        help=f"Sort key: {', '.join(SORT_KEYS)} (aliases: age, published). Default: {DEFAULT_SORT_KEY}"
    )

    parser.add_argument(
        "--order",
        choices=["asc", "desc"],
        default="desc",
        help="Sort order. Default: desc"
    )

    parser.add_argument(
        "--format",
        choices=["plain", "tsv", "md"],
        default="plain",
        help="Output format. Default: plain"
    )

    parser.add_argument(
        "--skip",
        default=None,
        help="Comma-separated packages to skip, optionally pinned: react,lodash@4.17.21"
    )

    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable coloured output"
    )

    parser.add_argument(
        "--export",
        default=None,
        help="Also write the report to a .csv, .json or .xlsx file"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging on stderr"
    )

    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def normalize_sort_key(value: str) -> str:
    value = SORT_ALIASES.get(value, value)
    if value not in SORT_KEYS:
        logger.warning("Unknown sort key %r, using %s", value, DEFAULT_SORT_KEY)
        return DEFAULT_SORT_KEY
    return value


def parse_skip_option(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def resolve_color(no_color: bool, stream: Optional[TextIO] = None, environ=None) -> bool:
    """Decide once whether output is coloured."""
    stream = stream or sys.stdout
    environ = os.environ if environ is None else environ
    if no_color or environ.get("NO_COLOR"):
        return False
    if environ.get("FORCE_COLOR"):
        return True
    return stream.isatty()


def run(
    args: argparse.Namespace,
    detector: Optional[OutdatedDetector] = None,
    fetcher: Optional[MetadataSource] = None,
    project_dir: Optional[Path] = None,
    console: Optional[Console] = None,
) -> int:
    """Detect, enrich, filter and print outdated packages."""
    project_dir = Path(project_dir or Path.cwd())
    options = RenderOptions(color=resolve_color(args.no_color), show_wanted_only=args.wanted)
    if console is None:
        console = Console(
            highlight=False,
            no_color=not options.color,
            force_terminal=True if options.color else None,
            width=None if sys.stdout.isatty() else 1000,
        )

    skip_path = project_dir / SKIP_FILE_NAME
    skip_config = load_skip_file(skip_path)
    cli_skips = parse_skip_option(args.skip)
    skip_entries = list(dict.fromkeys(cli_skips + (skip_config.packages if skip_config else [])))
    if cli_skips:
        skip_config = add_skip_entries(skip_config, skip_path, cli_skips)

    npm = NpmCli()
    detector = detector or npm
    outdated = detector.outdated(check_all=args.check_all)
    if not outdated:
        if not args.quiet:
            console.print("All packages are up to date.")
        return 0

    cleanup_and_save_skip_file(skip_config, skip_path, outdated)

    fetcher = fetcher or MetadataFetcher(NpmRegistryClient(), npm)
    concurrency = min(MAX_CONCURRENCY, max(MIN_CONCURRENCY, args.concurrency))
    progress_enabled = False if args.quiet else None
    with ProgressReporter(len(outdated), enabled=progress_enabled) as progress:
        metas = asyncio.run(fetch_all(list(outdated), fetcher, concurrency, progress.advance))
    logger.info("Fetched metadata for %d packages", len(metas))

    rows = build_rows(
        outdated,
        metas,
        show_all=args.show_all,
        cutoff_days=max(0, args.older_than),
        skip_entries=skip_entries,
        use_iso=args.iso,
    )
    if not rows:
        if not args.quiet:
            console.print("No outdated packages match the current filters.")
        return 0

    rows = sort_rows(rows, normalize_sort_key(args.sort_by), args.order)

    if args.format == "tsv":
        print(render_tsv(rows, options), file=console.file)
    elif args.format == "md":
        print(render_markdown(rows, options), file=console.file)
    else:
        render_plain(rows, options, console)

    if args.export:
        export_file = export_rows(rows, Path(args.export), options)
        if not args.quiet:
            print(f"Report saved to: {export_file}", file=sys.stderr)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.export and Path(args.export).suffix.lower() not in EXPORT_SUFFIXES:
        parser.error("--export must end in .csv, .json or .xlsx")

    configure_logging(args.verbose)

    try:
        return run(args)
    except OutdatedPlusError as e:
        print(format_error(e), file=sys.stderr)
        return 1
    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        print(f"Error: {format_error(e)}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
