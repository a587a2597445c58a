# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Command-line interface for jpgdatesetter

Sets the date-taken on a directory of JPEG files, writing the stamped
copies to another directory.

Copyright 2025 DNAi inc.
"""

import argparse
import sys
from pathlib import Path
from typing import Dict, List, Optional

from jpgdatesetter import __version__
from jpgdatesetter.date_formatter import parse_duration, parse_start
from jpgdatesetter.exceptions import IOFailureError, InvalidPatternError, InvalidTimestampError
from jpgdatesetter.metadata_utils import (
    FileReport,
    batch_stamp,
    ensure_directory,
    find_images,
    glob_to_regex,
)

EXIT_OK = 0
EXIT_IO_FAILURE = 1
EXIT_BAD_TIMESTAMP = 2
EXIT_BAD_PATTERN = 2


def format_tags(tags: Dict[str, Optional[str]]) -> str:
    """
    Format date tags one per line, 'Not Found.' for missing ones.

    Args:
        tags: Tag name to value

    Returns:
        Formatted output string
    """
    lines = []
    for name, value in tags.items():
        lines.append(f"{name}: {value if value is not None else 'Not Found.'}")
    return "\n".join(lines)


def print_report(report: FileReport) -> None:
    """Print what happened to one file."""
    print(f"SOURCE: {report.source}")
    if report.before:
        print(format_tags(report.before))
    if report.after is not None:
        print(f"DEST: {report.destination} ({report.timestamp})")
        print(format_tags(report.after))


def print_skip(path: Path, error: Exception) -> None:
    print(f"Skipping {path}: {error}", file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='jpgdatesetter',
        description="Sets the date-taken on a directory of jpg files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Stamp every file, 10 minutes apart, starting at 17:00 UTC
  jpgdatesetter photos/ stamped/ 2021-01-20T17:00:00Z PT10M

  # Only .jpg/.jpeg files in any subdirectory, starting at 17:00 EST, one per second
  jpgdatesetter -p '**.{jpg,jpeg}' photos/ stamped/ 2021-01-20T17:00:00-05:00 PT1S

  # Show the current dates without writing anything
  jpgdatesetter -d photos/ stamped/ 2021-01-20T17:00:00Z PT10M
        """
    )
    parser.add_argument('-p', '--pattern', default='*',
                        help="Glob pattern used to select image files, relative to <from dir>. "
                             "'*' stays in one directory, '**' crosses directories. EX: *.{jpg,jpeg}")
    parser.add_argument('-d', '--debug', action='store_true',
                        help="Only read the files, do not write them with the updated date")
    parser.add_argument('-j', '--jobs', type=int, default=1,
                        help="Number of files to process in parallel (default: 1)")
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('from_dir', metavar='<from dir>', type=Path,
                        help="The directory that contains the jpg files")
    parser.add_argument('to_dir', metavar='<to dir>', type=Path,
                        help="The directory to write the jpg files to with the new date")
    parser.add_argument('start', metavar='<start date/time>',
                        help="The date time to start from in ISO 8601 format. "
                             "EX: 2021-01-20T17:00:01Z or for EST 2021-01-20T17:00:01-05:00")
    parser.add_argument('increment', metavar='<increment by>',
                        help="An ISO 8601 duration to increment the date on each successive jpg file. "
                             "EX: PT10M (to increment by 10 minutes)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    print(f"Parameters - FROM: {args.from_dir}, TO: {args.to_dir}, START-DATE: {args.start}, "
          f"BY: {args.increment}, pattern: {args.pattern}")

    try:
        start = parse_start(args.start)
        increment = parse_duration(args.increment)
    except InvalidTimestampError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_BAD_TIMESTAMP

    try:
        glob_to_regex(args.pattern)
    except InvalidPatternError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_BAD_PATTERN

    if not args.debug:
        try:
            ensure_directory(args.to_dir)
        except IOFailureError as e:
            print(str(e), file=sys.stderr)
            return EXIT_IO_FAILURE

    try:
        images = find_images(args.from_dir, args.pattern)
    except IOFailureError as e:
        print(str(e), file=sys.stderr)
        return EXIT_IO_FAILURE

    result = batch_stamp(
        images,
        args.to_dir,
        start,
        increment,
        debug=args.debug,
        jobs=args.jobs,
        error_handler=print_skip,
        reporter=print_report,
    )

    print(f"Processed {len(result.processed)} file(s), skipped {len(result.skipped)}.")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
