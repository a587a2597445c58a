# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Batch utilities

Selects the source images, plans their destinations, and runs the
per-file stamp pipeline (read, scan, decode, set dates, encode, write)
over the batch. Each file's timestamp comes from its index in sorted
order, so files may be processed in parallel.

Copyright 2025 DNAi inc.
"""

import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, List, Optional, Pattern, Tuple, Union

from jpgdatesetter.date_formatter import format_exif_datetime, timestamp_for_index
from jpgdatesetter.exceptions import (
    DestinationCollisionError,
    IOFailureError,
    InvalidPatternError,
    JpgDateSetterError,
    UnsupportedMetadataError,
)
from jpgdatesetter.exif_tags import (
    DATE_TIME,
    DATE_TIME_DIGITIZED,
    DATE_TIME_ORIGINAL,
    DirectoryKind,
    tag_name,
)
from jpgdatesetter.exif_writer import EXIFWriter, write_file_atomic
from jpgdatesetter.jpeg_modifier import JPEGModifier, is_jpeg
from jpgdatesetter.output_set import OutputSet

# Tags shown before and after stamping
REPORTED_TAGS = [
    (DirectoryKind.IFD0, DATE_TIME),
    (DirectoryKind.EXIF, DATE_TIME_ORIGINAL),
    (DirectoryKind.EXIF, DATE_TIME_DIGITIZED),
]


@dataclass
class FileReport:
    """Outcome of one file in a batch."""
    index: int
    source: Path
    destination: Path
    timestamp: str
    before: Dict[str, Optional[str]] = field(default_factory=dict)
    after: Optional[Dict[str, Optional[str]]] = None
    error: Optional[Exception] = None


@dataclass
class BatchResult:
    """Files written (or, in debug mode, inspected) and files skipped."""
    processed: List[Path] = field(default_factory=list)
    skipped: Dict[Path, Exception] = field(default_factory=dict)


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Create a directory and its parents if needed.

    Raises:
        IOFailureError: If the directory cannot be created
    """
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IOFailureError(f"Failed to make directory: {path} ({e})")
    return path


def glob_to_regex(pattern: str) -> Pattern:
    """
    Translate a path glob into a compiled regular expression.

    Syntax:
        *       any run of characters within one path component
        **      any run of characters, crossing '/'
        ?       one character other than '/'
        [abc]   one character from the set; [!abc] negates, a-z ranges
        {a,b}   either alternative (groups do not nest)
        \\x      the character x literally

    Raises:
        InvalidPatternError: If a bracket or group is left open, groups
                             are nested, or the pattern ends in an escape
    """
    out = []
    in_group = False
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if c == '*':
            if pattern.startswith('**', i):
                out.append('.*')
                i += 2
            else:
                out.append('[^/]*')
                i += 1
            continue

        if c == '?':
            out.append('[^/]')
        elif c == '\\':
            if i + 1 >= n:
                raise InvalidPatternError(f"Invalid pattern {pattern!r}: trailing escape")
            i += 1
            out.append(re.escape(pattern[i]))
        elif c == '[':
            end = pattern.find(']', i + 1)
            if end < 0:
                raise InvalidPatternError(f"Invalid pattern {pattern!r}: unclosed '[' at {i}")
            body = pattern[i + 1:end]
            negate = body.startswith('!')
            if negate:
                body = body[1:]
            if not body:
                raise InvalidPatternError(f"Invalid pattern {pattern!r}: empty bracket at {i}")
            body = ''.join('\\' + ch if ch in '\\^[]' else ch for ch in body)
            if negate:
                out.append(f'[^/{body}]')
            else:
                out.append(f'(?!/)[{body}]')
            i = end
        elif c == '{':
            if in_group:
                raise InvalidPatternError(f"Invalid pattern {pattern!r}: nested '{{' at {i}")
            in_group = True
            out.append('(?:')
        elif c == ',' and in_group:
            out.append('|')
        elif c == '}' and in_group:
            in_group = False
            out.append(')')
        else:
            out.append(re.escape(c))
        i += 1

    if in_group:
        raise InvalidPatternError(f"Invalid pattern {pattern!r}: unclosed '{{'")
    return re.compile(''.join(out), re.DOTALL)


def find_images(from_dir: Union[str, Path], pattern: str = '*') -> List[Path]:
    """
    Recursively walk from_dir for regular files whose path relative to
    from_dir matches a glob (see glob_to_regex). Matching is case
    sensitive. '*' stays within one directory level, so '*.jpg' selects
    the .jpg files directly in from_dir and '**.jpg' those at any depth.

    Returns:
        Matching paths in lexical order

    Raises:
        InvalidPatternError: If the pattern is malformed
        IOFailureError: If from_dir is not a readable directory
    """
    matcher = glob_to_regex(pattern)
    root = Path(from_dir)
    if not root.is_dir():
        raise IOFailureError(f"Source directory not found: {root}")

    images = []
    for path in root.rglob('*'):
        if not path.is_file():
            continue
        if matcher.fullmatch(path.relative_to(root).as_posix()):
            images.append(path)
    return sorted(images, key=str)


def plan_destinations(
    images: List[Path],
    to_dir: Union[str, Path]
) -> List[Tuple[Path, Path, Optional[DestinationCollisionError]]]:
    """
    Map each source onto to_dir/<file name>.

    The first source claiming a name keeps it; later sources with the
    same name get a DestinationCollisionError instead of overwriting it.

    Returns:
        (source, destination, collision error or None) per source, in
        the order given
    """
    to_dir = Path(to_dir)
    claimed: Dict[Path, Path] = {}
    plan = []
    for source in images:
        destination = to_dir / source.name
        collision = None
        if destination in claimed:
            collision = DestinationCollisionError(
                f"Destination {destination} is already taken by {claimed[destination]}"
            )
        else:
            claimed[destination] = source
        plan.append((source, destination, collision))
    return plan


def read_file(path: Union[str, Path]) -> bytes:
    """
    Read a whole file.

    Raises:
        IOFailureError: If the file cannot be read
    """
    try:
        with open(path, 'rb') as f:
            return f.read()
    except OSError as e:
        raise IOFailureError(f"Failed to read {path}: {e}")


def read_date_tags(data: bytes) -> Dict[str, Optional[str]]:
    """
    Read DateTime, DateTimeOriginal and DateTimeDigitized from JPEG bytes.

    Returns:
        Tag name to value, None for tags that are not set

    Raises:
        UnsupportedMetadataError: If the data is not a JPEG
        MalformedJpegError: If the marker structure is invalid
        MalformedTiffError: If the EXIF block is invalid
    """
    if not is_jpeg(data):
        raise UnsupportedMetadataError("Not a JPEG image")
    output_set = OutputSet.from_source_exif(JPEGModifier(data).exif_payload())
    return {
        tag_name(tag_id, kind): output_set.get_value(kind, tag_id)
        for kind, tag_id in REPORTED_TAGS
    }


def stamp_file(
    source: Union[str, Path],
    destination: Union[str, Path],
    timestamp: str,
    data: Optional[bytes] = None
) -> Path:
    """
    Write a copy of source to destination with both capture dates set.

    Pass data when the source bytes have already been read.

    The destination is replaced atomically; if anything fails it is left
    as it was.

    Raises:
        UnsupportedMetadataError, MalformedJpegError, MalformedTiffError,
        IOFailureError
    """
    if data is None:
        data = read_file(source)
    write_file_atomic(destination, EXIFWriter().stamp(data, timestamp))
    return Path(destination)


def _process(
    index: int,
    source: Path,
    destination: Path,
    collision: Optional[Exception],
    start: datetime,
    increment: timedelta,
    debug: bool
) -> FileReport:
    report = FileReport(index=index, source=source, destination=destination, timestamp='')
    try:
        timestamp = format_exif_datetime(timestamp_for_index(start, increment, index))
        report.timestamp = timestamp
        data = read_file(source)
        report.before = read_date_tags(data)
        if not debug:
            # Nothing is written in debug mode, so a collision only matters here
            if collision is not None:
                raise collision
            stamp_file(source, destination, timestamp, data=data)
            report.after = read_date_tags(read_file(destination))
    except JpgDateSetterError as e:
        report.error = e
    return report


def batch_stamp(
    images: List[Path],
    to_dir: Union[str, Path],
    start: datetime,
    increment: timedelta,
    debug: bool = False,
    jobs: int = 1,
    error_handler: Optional[Callable[[Path, Exception], None]] = None,
    reporter: Optional[Callable[[FileReport], None]] = None
) -> BatchResult:
    """
    Stamp a sorted list of images into to_dir.

    File i gets start + i * increment. Per-file failures are passed to
    error_handler and the file is skipped; the rest of the batch goes on.

    Args:
        images: Source files, already in the order that assigns timestamps
        to_dir: Destination directory (must exist)
        start: Timestamp of the first file
        increment: Step between successive files
        debug: If True, only read and report, write nothing
        jobs: Number of worker threads
        error_handler: Optional callback for per-file failures (path, exception)
        reporter: Optional callback receiving each FileReport, in index order

    Returns:
        BatchResult with processed and skipped files
    """
    plan = plan_destinations(images, to_dir)
    result = BatchResult()

    with ThreadPoolExecutor(max_workers=max(1, jobs)) as executor:
        futures = []
        for index, (source, destination, collision) in enumerate(plan):
            futures.append(executor.submit(
                _process, index, source, destination, collision, start, increment, debug
            ))

        for future in futures:
            report = future.result()
            if reporter:
                reporter(report)
            if report.error is not None:
                result.skipped[report.source] = report.error
                if error_handler:
                    error_handler(report.source, report.error)
            else:
                result.processed.append(report.source)

    return result
