# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Date formatting utilities

Parses the ISO-8601 start instant and increment duration given on the
command line, computes each file's timestamp from its index, and renders
it in the EXIF date format.

Copyright 2025 DNAi inc.
"""

import re
from datetime import datetime, timedelta, timezone

from jpgdatesetter.exceptions import InvalidTimestampError

EXIF_DATETIME_FORMAT = '%Y:%m:%d %H:%M:%S'

_EXIF_DATETIME_RE = re.compile(r'^\d{4}:\d{2}:\d{2} \d{2}:\d{2}:\d{2}$')

# Extended-format ISO 8601 date-time; the zone is Z, +HH, +HHMM, +HH:MM or +HH:MM:SS
_INSTANT_RE = re.compile(
    r'^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})'
    r'T(?P<hour>\d{2}):(?P<minute>\d{2})'
    r'(?::(?P<second>\d{2})(?:[.,](?P<fraction>\d+))?)?'
    r'(?P<zone>Z|[-+]\d{2}(?::?\d{2}(?::?\d{2})?)?)?$',
    re.IGNORECASE
)

_NUMBER = r'\d+(?:[.,]\d+)?'
_DURATION_RE = re.compile(
    r'^(?P<sign>[-+])?P'
    rf'(?:(?P<weeks>{_NUMBER})W)?'
    rf'(?:(?P<days>{_NUMBER})D)?'
    r'(?:T'
    rf'(?:(?P<hours>{_NUMBER})H)?'
    rf'(?:(?P<minutes>{_NUMBER})M)?'
    rf'(?:(?P<seconds>{_NUMBER})S)?'
    r')?$',
    re.IGNORECASE
)
_CALENDAR_DURATION_RE = re.compile(r'^[-+]?P[^T]*\d(?:Y|M)', re.IGNORECASE)
_DURATION_UNITS = ('weeks', 'days', 'hours', 'minutes', 'seconds')


def parse_start(text: str) -> datetime:
    """
    Parse an ISO-8601 instant with a zone offset.

    Args:
        text: e.g. '2021-01-20T17:00:01Z' or '2021-01-20T17:00:01-05:00'

    Returns:
        Timezone-aware datetime

    Raises:
        InvalidTimestampError: If the text is not an ISO-8601 date-time or
                               carries no zone offset
    """
    match = _INSTANT_RE.match(text.strip())
    if match is None:
        raise InvalidTimestampError(f"Invalid start date/time {text!r}: expected ISO 8601, e.g. 2021-01-20T17:00:01Z")
    zone = match.group('zone')
    if zone is None:
        raise InvalidTimestampError(f"Invalid start date/time {text!r}: a zone offset (Z or +HH:MM) is required")

    # Fractions beyond microseconds are truncated
    fraction = (match.group('fraction') or '')[:6].ljust(6, '0')
    try:
        if zone.upper() == 'Z':
            tz = timezone.utc
        else:
            digits = zone[1:].replace(':', '')
            offset = timedelta(
                hours=int(digits[0:2]),
                minutes=int(digits[2:4] or 0),
                seconds=int(digits[4:6] or 0),
            )
            tz = timezone(-offset if zone[0] == '-' else offset)
        return datetime(
            int(match.group('year')),
            int(match.group('month')),
            int(match.group('day')),
            int(match.group('hour')),
            int(match.group('minute')),
            int(match.group('second') or 0),
            int(fraction),
            tzinfo=tz,
        )
    except ValueError as e:
        raise InvalidTimestampError(f"Invalid start date/time {text!r}: {e}")


def parse_duration(text: str) -> timedelta:
    """
    Parse an ISO-8601 duration of fixed length.

    Supports weeks, days, hours, minutes and (fractional) seconds,
    e.g. 'PT10M', 'P1DT2H', 'PT0.5S', '-PT1H'. Years and months are
    rejected since they have no fixed length.

    Raises:
        InvalidTimestampError: If the text is not a supported duration
    """
    candidate = text.strip()
    match = _DURATION_RE.match(candidate)
    if match is None or candidate.upper().endswith('T') or \
            not any(match.group(unit) for unit in _DURATION_UNITS):
        if _CALENDAR_DURATION_RE.match(candidate):
            raise InvalidTimestampError(
                f"Invalid increment {text!r}: years and months are not fixed-length, use days or smaller units"
            )
        raise InvalidTimestampError(f"Invalid increment {text!r}: expected an ISO 8601 duration, e.g. PT10M")

    parts = {}
    for unit in _DURATION_UNITS:
        raw = match.group(unit)
        if raw is not None:
            parts[unit] = float(raw.replace(',', '.'))

    duration = timedelta(**parts)
    if match.group('sign') == '-':
        duration = -duration
    return duration


def timestamp_for_index(start: datetime, increment: timedelta, index: int) -> datetime:
    """
    Timestamp of the file at the given position in sorted order.

    Computed from the index alone, so files can be processed in any order.

    Raises:
        InvalidTimestampError: If the result falls outside the datetime range
    """
    try:
        return start + increment * index
    except OverflowError:
        raise InvalidTimestampError(f"Timestamp for file #{index} is out of range")


def format_exif_datetime(value: datetime) -> str:
    """
    Render a datetime as 'YYYY:MM:DD HH:MM:SS'.

    The wall-clock time of the value's own offset is used; no zone is
    written.
    """
    return (
        f"{value.year:04d}:{value.month:02d}:{value.day:02d} "
        f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )


def parse_exif_datetime(text: str) -> datetime:
    """Parse 'YYYY:MM:DD HH:MM:SS' into a naive datetime."""
    return datetime.strptime(text, EXIF_DATETIME_FORMAT)


def is_exif_datetime(text: str) -> bool:
    """Check the fixed-width EXIF date format, including calendar validity."""
    if not _EXIF_DATETIME_RE.match(text):
        return False
    try:
        parse_exif_datetime(text)
    except ValueError:
        return False
    return True
