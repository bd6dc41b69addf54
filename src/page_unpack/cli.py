from __future__ import annotations

"""Command-line interface for page-unpack.

Reconstructs a page's original source tree from the sourcemaps of its
scripts, including lazily loaded webpack chunks.
"""

import argparse
import logging
import sys
from pathlib import Path

from .errors import FormatExhaustedError, PageUnpackError
from .pipeline import ReconstructOptions, reconstruct_sync, write_output

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    return argparse.ArgumentParser(
        prog="page-unpack",
        description="Reconstruct original source files from a web page's sourcemaps",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    page-unpack https://example.com/              # Extract to out/
    page-unpack https://example.com/ -o src/      # Extract to src/
    page-unpack https://example.com/ -n           # Dry run - list files
    page-unpack https://example.com/ --no-format  # Keep sources as shipped
        """,
    )


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    parser.add_argument("url", help="URL of the page to reconstruct")
    parser.add_argument("-o", "--output", dest="output_dir", default="out", help="Output directory (default: out)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log each request and file")
    parser.add_argument("-n", "--dry-run", action="store_true", help="List files without writing them")
    parser.add_argument("--no-format", action="store_true", help="Write sources without reformatting")
    parser.add_argument("--no-chunks", action="store_true", help="Don't look for lazily loaded chunks")
    parser.add_argument(
        "--formatter",
        choices=("auto", "prettier", "beautify"),
        default="auto",
        help="Formatting backend (default: prettier if installed, else jsbeautifier)",
    )
    parser.add_argument("--timeout", type=float, default=30.0, help="HTTP timeout in seconds")

    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    options = ReconstructOptions(
        discover_chunks=not args.no_chunks,
        format_sources=not args.no_format,
        formatter=args.formatter,
        timeout=args.timeout,
    )
    output_dir = Path(args.output_dir)

    try:
        result = reconstruct_sync(args.url, options)
    except FormatExhaustedError as e:
        LOGGER.error("Formatting failed for %s; raw text follows:\n%s", e.path, e.text)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except PageUnpackError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.dry_run:
        print(f"Would extract {len(result.files)} source files to {output_dir}/")
        for f in result.files:
            print(f"  {f.relative_path} ({len(f.content)} chars)")
        return 0

    try:
        count = write_output(result, output_dir)
    except PageUnpackError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Extracted {count} source files from {result.map_count} sourcemaps to {output_dir}/")
    if result.chunk_urls:
        print(f"Included {len(result.chunk_urls)} lazily loaded chunks")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
