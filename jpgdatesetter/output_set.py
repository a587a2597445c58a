# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
EXIF output set

The mutable staging area for the directories that will be written back
into an image. It starts as a working copy of the source EXIF (or
empty), takes field edits checked against the tag registry, and is
handed once to the EXIF writer.

Copyright 2025 DNAi inc.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from jpgdatesetter.date_formatter import is_exif_datetime
from jpgdatesetter.exceptions import InvalidTagError
from jpgdatesetter.exif_tags import (
    DATE_TIME_DIGITIZED,
    DATE_TIME_ORIGINAL,
    DATETIME_TAGS,
    DirectoryKind,
    lookup,
)
from jpgdatesetter.tiff_structure import (
    BIG_ENDIAN,
    SUB_IFD_POINTERS,
    IfdDirectory,
    IfdEntry,
    decode,
)
from jpgdatesetter.tiff_writer import encode_value

_POINTER_TAGS = {tag for pointers in SUB_IFD_POINTERS.values() for tag in pointers}


@dataclass
class OutputSet:
    """
    Directories to be written, keyed by kind.

    Directories are created lazily on first write, and only the ones
    present here are emitted.
    """
    endian: str = BIG_ENDIAN
    directories: Dict[DirectoryKind, IfdDirectory] = field(default_factory=dict)

    @classmethod
    def from_source_exif(cls, tiff_bytes: Optional[bytes]) -> 'OutputSet':
        """
        Build an output set from a source TIFF block.

        Args:
            tiff_bytes: The source EXIF TIFF block, or None if the image
                        carries no EXIF

        Returns:
            A working copy of every directory and entry, decoupled from the
            source buffer, in the source byte order. Empty and big-endian
            when there is no source EXIF.

        Raises:
            MalformedTiffError: If the source block cannot be decoded
        """
        if tiff_bytes is None:
            return cls()

        block = decode(tiff_bytes)
        directories = {}
        for kind, directory in block.by_kind().items():
            directories[kind] = IfdDirectory(
                kind=kind,
                entries=[replace(entry) for entry in directory.entries],
                next_ifd_offset=directory.next_ifd_offset,
                thumbnail=directory.thumbnail,
            )
        return cls(endian=block.header.endian, directories=directories)

    def get_directory(self, kind: DirectoryKind) -> Optional[IfdDirectory]:
        return self.directories.get(kind)

    def get_or_create_directory(self, kind: DirectoryKind) -> IfdDirectory:
        """Return the directory of this kind, registering an empty one if needed."""
        directory = self.directories.get(kind)
        if directory is None:
            directory = IfdDirectory(kind=kind)
            self.directories[kind] = directory
        return directory

    def set_field(self, directory: IfdDirectory, tag_id: int, value: Any) -> IfdEntry:
        """
        Set a field, replacing any existing entry for the tag.

        Replacement is destructive: the old entry is removed and a new one
        appended, nothing of the old value is kept.

        Args:
            directory: Directory handle from get_or_create_directory
            tag_id: Registered tag id owned by that directory
            value: Value compatible with the registered field type

        Returns:
            The new entry

        Raises:
            InvalidTagError: If the tag is unknown, belongs to another
                             directory, is structural, or the value does
                             not match the registered type and count
        """
        info = lookup(tag_id, directory.kind)
        if info is None:
            owner = lookup(tag_id)
            if owner is not None:
                raise InvalidTagError(
                    f"Tag {owner.name} belongs to {owner.directory.value}, not {directory.kind.value}"
                )
            raise InvalidTagError(f"Unknown tag 0x{tag_id:04X} for {directory.kind.value}")
        if tag_id in _POINTER_TAGS:
            raise InvalidTagError(f"Tag {info.name} is a directory pointer and is managed by the writer")

        if tag_id in DATETIME_TAGS and not (isinstance(value, str) and is_exif_datetime(value)):
            raise InvalidTagError(f"{info.name} must be formatted YYYY:MM:DD HH:MM:SS, got {value!r}")

        data, count = encode_value(info.type, value, self.endian)
        if info.count is not None and count != info.count:
            raise InvalidTagError(f"{info.name} takes {info.count} value(s), got {count}")

        entry = IfdEntry(tag_id=tag_id, type=info.type, count=count, data=data)
        directory.remove(tag_id)
        directory.add(entry)
        return entry

    def remove_field(self, directory: IfdDirectory, tag_id: int) -> None:
        """Remove a field. Absent fields are ignored."""
        directory.remove(tag_id)

    def get_value(self, kind: DirectoryKind, tag_id: int) -> Any:
        """Return the decoded value of a field, or None if it is not set."""
        directory = self.directories.get(kind)
        if directory is None:
            return None
        entry = directory.find(tag_id)
        if entry is None:
            return None
        return entry.value(self.endian)

    def set_date_taken(self, timestamp: str) -> None:
        """
        Stamp the capture time: DateTimeOriginal and DateTimeDigitized in
        the Exif IFD both get the timestamp. IFD0 DateTime is left alone.
        """
        exif_directory = self.get_or_create_directory(DirectoryKind.EXIF)
        self.set_field(exif_directory, DATE_TIME_ORIGINAL, timestamp)
        self.set_field(exif_directory, DATE_TIME_DIGITIZED, timestamp)

