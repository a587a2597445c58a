# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
EXIF metadata writer

This module rebuilds the EXIF APP1 segment from an output set and
splices it into the original JPEG bytes. Only the EXIF segment changes;
every other byte of the file, scan data included, is copied through.

Copyright 2025 DNAi inc.
"""

import os
import stat
import struct
import tempfile
import threading
from pathlib import Path
from typing import Union

from jpgdatesetter.exceptions import IOFailureError, UnsupportedMetadataError
from jpgdatesetter.jpeg_modifier import APP1, EXIF_SIGNATURE, JPEGModifier, is_jpeg
from jpgdatesetter.output_set import OutputSet
from jpgdatesetter.tiff_writer import TIFFWriter

# The segment length field is 16 bits and counts itself
MAX_SEGMENT_LENGTH = 0xFFFF

_UMASK_LOCK = threading.Lock()


class EXIFWriter:
    """
    Writes an output set back into a JPEG image losslessly.
    """

    def build_exif_segment(self, output_set: OutputSet) -> bytes:
        """
        Build a complete EXIF APP1 segment.

        Args:
            output_set: Directories to encode, in the set's byte order

        Returns:
            APP1 marker, length, Exif signature and TIFF block

        Raises:
            UnsupportedMetadataError: If the block does not fit in one segment
        """
        tiff_data = TIFFWriter(endian=output_set.endian).write(output_set.directories)
        return self._build_app1_segment(tiff_data)

    def _build_app1_segment(self, tiff_data: bytes) -> bytes:
        payload = EXIF_SIGNATURE + tiff_data
        length = len(payload) + 2
        if length > MAX_SEGMENT_LENGTH:
            raise UnsupportedMetadataError(
                f"EXIF block of {len(tiff_data)} bytes does not fit in a single APP1 segment"
            )
        return struct.pack('>HH', APP1, length) + payload

    def rewrite(self, original_data: bytes, output_set: OutputSet) -> bytes:
        """
        Compose a new JPEG stream with the output set as its EXIF segment.

        The existing EXIF segment is replaced in place. An image without
        one gets the new segment right after SOI.

        Raises:
            MalformedJpegError: If the original marker structure is invalid
            UnsupportedMetadataError: If the EXIF block is too large
        """
        modifier = JPEGModifier(original_data)
        segment = self.build_exif_segment(output_set)
        return modifier.replace_exif_segment(segment)

    def stamp(self, original_data: bytes, timestamp: str) -> bytes:
        """
        Set DateTimeOriginal and DateTimeDigitized in a JPEG image.

        Args:
            original_data: Source file bytes
            timestamp: 'YYYY:MM:DD HH:MM:SS'

        Returns:
            The new file bytes

        Raises:
            UnsupportedMetadataError: If the data is not a JPEG
            MalformedJpegError: If the marker structure is invalid
            MalformedTiffError: If the source EXIF block is invalid
        """
        if not is_jpeg(original_data):
            raise UnsupportedMetadataError("Not a JPEG image")
        modifier = JPEGModifier(original_data)
        output_set = OutputSet.from_source_exif(modifier.exif_payload())
        output_set.set_date_taken(timestamp)
        return modifier.replace_exif_segment(self.build_exif_segment(output_set))


def rewrite(original_data: bytes, output_set: OutputSet) -> bytes:
    """Splice the output set into the JPEG stream as its EXIF segment."""
    return EXIFWriter().rewrite(original_data, output_set)


def _default_file_mode() -> int:
    """Permission bits a plain open() would give a new file under the current umask."""
    # os.umask can only be read by setting it
    with _UMASK_LOCK:
        umask = os.umask(0)
        os.umask(umask)
    return 0o666 & ~umask


def write_file_atomic(path: Union[str, Path], data: bytes) -> None:
    """
    Write data to path so that the file is either complete or absent.

    The bytes go to a temporary file in the destination directory, which
    is flushed, synced and renamed over the destination. On any failure
    the temporary file is removed and the destination is left untouched.

    A replaced file keeps its permission bits; a new file gets the usual
    0666 masked by the umask.

    Raises:
        IOFailureError: If writing or renaming fails
    """
    path = Path(path)
    temp_name = None
    try:
        try:
            mode = stat.S_IMODE(os.stat(path).st_mode)
        except FileNotFoundError:
            mode = _default_file_mode()

        with tempfile.NamedTemporaryFile(
            dir=path.parent, prefix=f'.{path.name}.', suffix='.tmp', delete=False
        ) as temp_file:
            temp_name = temp_file.name
            temp_file.write(data)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        os.chmod(temp_name, mode)
        os.replace(temp_name, path)
    except OSError as e:
        if temp_name is not None and os.path.exists(temp_name):
            os.unlink(temp_name)
        raise IOFailureError(f"Failed to write {path}: {e}")
