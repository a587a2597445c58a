# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
JPEG segment scanner

This module walks a JPEG byte stream as a sequence of marker segments
up to the start-of-scan marker, finds the EXIF APP1 segment, and splices
a replacement EXIF segment into the stream. Bytes outside the replaced
segment are never reinterpreted: the scan data from SOS to the end of
the file is one opaque span.

Copyright 2025 DNAi inc.
"""

import struct
from dataclasses import dataclass
from typing import Iterator, List, Optional

from jpgdatesetter.exceptions import MalformedJpegError

# JPEG markers
SOI = 0xFFD8  # Start of Image
EOI = 0xFFD9  # End of Image
SOS = 0xFFDA  # Start of Scan
TEM = 0xFF01
APP0 = 0xFFE0  # APP0 (JFIF)
APP1 = 0xFFE1  # APP1 (EXIF)

EXIF_SIGNATURE = b'Exif\x00\x00'

# Markers that stand alone, without a length field
_STANDALONE = {TEM} | set(range(0xFFD0, 0xFFD8))


@dataclass(frozen=True)
class JpegSegment:
    """
    A marker segment located in the file.

    ``offset`` is the position of the 0xFF marker byte and ``length`` the
    declared segment length (which counts the two length bytes but not
    the marker). The scan-data tail is reported with marker SOS and
    ``length`` None: it runs from ``offset`` to the end of the file.
    """
    marker: int
    offset: int
    length: Optional[int]

    @property
    def end(self) -> Optional[int]:
        if self.length is None:
            return None
        return self.offset + 2 + self.length

    @property
    def payload_offset(self) -> int:
        return self.offset + 4


def is_jpeg(data: bytes) -> bool:
    """Signature check: SOI followed by the first marker's 0xFF."""
    return data[:3] == b'\xff\xd8\xff'


def scan_segments(data: bytes) -> Iterator[JpegSegment]:
    """
    Lazily walk the marker segments of a JPEG stream.

    Yields every length-prefixed segment before the start of scan, then a
    final SOS segment with length None covering the scan data tail.

    Raises:
        MalformedJpegError: If the stream does not start with SOI, a
                            segment's length runs past the buffer, or the
                            stream ends before a start-of-scan marker
    """
    if len(data) < 2 or struct.unpack('>H', data[0:2])[0] != SOI:
        raise MalformedJpegError("Invalid JPEG file: missing SOI marker")

    i = 2
    while True:
        if i >= len(data):
            raise MalformedJpegError("Invalid JPEG file: no start-of-scan marker before end of file")
        if data[i] != 0xFF:
            raise MalformedJpegError(f"Invalid JPEG file: expected marker at offset {i}, found 0x{data[i]:02X}")

        # Skip fill bytes (runs of 0xFF before a marker)
        if i + 1 < len(data) and data[i + 1] == 0xFF:
            i += 1
            continue
        if i + 1 >= len(data):
            raise MalformedJpegError(f"Invalid JPEG file: truncated marker at offset {i}")

        marker = struct.unpack('>H', data[i:i + 2])[0]

        if marker == SOS:
            yield JpegSegment(marker=SOS, offset=i, length=None)
            return
        if marker == EOI:
            raise MalformedJpegError(f"Invalid JPEG file: end of image at offset {i} before any scan data")
        if marker in _STANDALONE:
            i += 2
            continue

        if i + 4 > len(data):
            raise MalformedJpegError(f"Invalid JPEG file: segment 0x{marker:04X} at offset {i} has no length field")
        length = struct.unpack('>H', data[i + 2:i + 4])[0]
        if length < 2:
            raise MalformedJpegError(f"Invalid JPEG file: segment 0x{marker:04X} at offset {i} has length {length}")
        if i + 2 + length > len(data):
            raise MalformedJpegError(
                f"Invalid JPEG file: segment 0x{marker:04X} at offset {i} declares {length} bytes, "
                f"only {len(data) - i - 2} remain"
            )

        yield JpegSegment(marker=marker, offset=i, length=length)
        i += 2 + length


def is_exif_segment(data: bytes, segment: JpegSegment) -> bool:
    """Check whether a segment is an APP1 carrying the Exif signature."""
    if segment.marker != APP1 or segment.length is None:
        return False
    start = segment.payload_offset
    return segment.length >= 2 + len(EXIF_SIGNATURE) and \
        data[start:start + len(EXIF_SIGNATURE)] == EXIF_SIGNATURE


class JPEGModifier:
    """
    Locates and replaces the EXIF segment of a JPEG file.

    Only the EXIF APP1 segment is ever replaced. Every other byte,
    including other APP segments, quantization and Huffman tables and the
    compressed scan data, is copied through unchanged.
    """

    def __init__(self, file_data: bytes):
        """
        Initialize JPEG modifier.

        Args:
            file_data: Original JPEG file data

        Raises:
            MalformedJpegError: If the marker structure is invalid
        """
        self.file_data = file_data
        self.segments: List[JpegSegment] = list(scan_segments(file_data))

    @property
    def scan_data(self) -> bytes:
        """The opaque tail from the SOS marker to the end of the file."""
        return self.file_data[self.segments[-1].offset:]

    def find_exif_segment(self) -> Optional[JpegSegment]:
        """Return the first EXIF APP1 segment, or None if the image has none."""
        for segment in self.segments:
            if is_exif_segment(self.file_data, segment):
                return segment
        return None

    def exif_payload(self) -> Optional[bytes]:
        """Return the TIFF block of the EXIF segment, or None."""
        segment = self.find_exif_segment()
        if segment is None:
            return None
        return self.file_data[segment.payload_offset + len(EXIF_SIGNATURE):segment.end]

    def replace_exif_segment(self, new_segment: bytes) -> bytes:
        """
        Replace the EXIF APP1 segment with new data.

        If the image has no EXIF segment, the new one is inserted directly
        after the SOI marker.

        Args:
            new_segment: Complete APP1 segment (marker, length, payload)

        Returns:
            Modified JPEG file data
        """
        segment = self.find_exif_segment()
        if segment is None:
            start = end = 2
        else:
            start, end = segment.offset, segment.end
        return self.file_data[:start] + new_segment + self.file_data[end:]
