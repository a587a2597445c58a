# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Exception classes for jpgdatesetter

This module defines the error taxonomy used by the JPEG/EXIF rewrite
engine and the batch driver.

Copyright 2025 DNAi inc.
"""


class JpgDateSetterError(Exception):
    """
    Base exception for all jpgdatesetter errors.

    All jpgdatesetter exceptions inherit from this class, allowing
    catch-all error handling in the batch driver.
    """
    def __init__(self, message: str = ""):
        """
        Initialize the exception with an optional error message.

        Args:
            message: Descriptive error message explaining what went wrong
        """
        self.message = message
        super().__init__(message)


class MalformedJpegError(JpgDateSetterError):
    """
    Raised when the JPEG marker structure cannot be walked.

    This exception is raised when:
    - The stream does not begin with the SOI marker
    - A segment's declared length runs past the end of the buffer
    - The stream ends before the start-of-scan marker
    """
    pass


class MalformedTiffError(JpgDateSetterError):
    """
    Raised when the TIFF block inside the EXIF segment is invalid.

    This exception is raised when:
    - The byte-order marker is neither II nor MM
    - An IFD entry table or a value offset points outside the block
    - An entry uses an unknown field type
    - IFD pointers form a loop
    """
    pass


class UnsupportedMetadataError(JpgDateSetterError):
    """
    Raised when a file is not a JPEG and cannot carry EXIF the way we write it.

    Not fatal: the batch driver reports the file and skips it.
    """
    pass


class IOFailureError(JpgDateSetterError):
    """
    Raised when reading, writing or creating a file or directory fails.
    """
    pass


class DestinationCollisionError(IOFailureError):
    """
    Raised when a source file maps onto a destination name already
    claimed by an earlier source in the same run.
    """
    pass


class InvalidTagError(JpgDateSetterError):
    """
    Raised when a field cannot be set.

    This exception is raised when:
    - The tag is not in the tag registry
    - The tag is written to a directory that does not own it
    - The value type or length is incompatible with the tag definition
    """
    pass


class InvalidTimestampError(JpgDateSetterError):
    """
    Raised when the start instant or increment duration cannot be parsed.
    """
    pass


class InvalidPatternError(JpgDateSetterError):
    """
    Raised when the file selection glob is malformed, e.g. an unclosed
    '[' or '{', a nested '{' group or a trailing escape.
    """
    pass
