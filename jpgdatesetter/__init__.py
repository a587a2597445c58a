# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
jpgdatesetter - Batch capture-date stamping for JPEG images

Rewrites DateTimeOriginal and DateTimeDigitized in the EXIF block of a
directory of JPEG files, one increment apart, without touching the
compressed image data. Pure Python: the JPEG marker structure and the
TIFF directories are read and written directly.

Copyright 2025 DNAi inc.
"""

__version__ = "0.1.0"
__author__ = "DNAi inc."

from jpgdatesetter.exceptions import (
    JpgDateSetterError,
    MalformedJpegError,
    MalformedTiffError,
    UnsupportedMetadataError,
    IOFailureError,
    DestinationCollisionError,
    InvalidTagError,
    InvalidTimestampError,
    InvalidPatternError,
)
from jpgdatesetter.exif_tags import DirectoryKind, ExifTagType, TagInfo, lookup
from jpgdatesetter.tiff_structure import IfdDirectory, IfdEntry, TiffHeader, decode
from jpgdatesetter.tiff_writer import encode
from jpgdatesetter.jpeg_modifier import JPEGModifier, JpegSegment, scan_segments
from jpgdatesetter.output_set import OutputSet
from jpgdatesetter.exif_writer import EXIFWriter, rewrite
from jpgdatesetter.metadata_utils import batch_stamp, find_images, stamp_file

__all__ = [
    'JpgDateSetterError',
    'MalformedJpegError',
    'MalformedTiffError',
    'UnsupportedMetadataError',
    'IOFailureError',
    'DestinationCollisionError',
    'InvalidTagError',
    'InvalidTimestampError',
    'InvalidPatternError',
    'DirectoryKind',
    'ExifTagType',
    'TagInfo',
    'lookup',
    'IfdDirectory',
    'IfdEntry',
    'TiffHeader',
    'decode',
    'encode',
    'JPEGModifier',
    'JpegSegment',
    'scan_segments',
    'OutputSet',
    'EXIFWriter',
    'rewrite',
    'batch_stamp',
    'find_images',
    'stamp_file',
]
