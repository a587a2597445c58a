# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
TIFF block structure and decoder

This module provides the directory-entry data model for the TIFF block
carried in a JPEG EXIF segment, and the decoder that turns the raw
block into that model. It does no I/O.

Copyright 2025 DNAi inc.
"""

import struct
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from jpgdatesetter.exceptions import MalformedTiffError
from jpgdatesetter.exif_tags import (
    DirectoryKind,
    ExifTagType,
    TAG_SIZES,
    EXIF_IFD_POINTER,
    GPS_IFD_POINTER,
    INTEROP_IFD_POINTER,
    JPEG_INTERCHANGE_FORMAT,
    JPEG_INTERCHANGE_FORMAT_LENGTH,
)

BIG_ENDIAN = '>'
LITTLE_ENDIAN = '<'

BYTE_ORDER_MARKS = {
    b'II': LITTLE_ENDIAN,
    b'MM': BIG_ENDIAN,
}

TIFF_MAGIC = 42
TIFF_HEADER_SIZE = 8
IFD_ENTRY_SIZE = 12

# Pointer tags that link one directory to another, by owning directory
SUB_IFD_POINTERS = {
    DirectoryKind.IFD0: {
        EXIF_IFD_POINTER: DirectoryKind.EXIF,
        GPS_IFD_POINTER: DirectoryKind.GPS,
    },
    DirectoryKind.EXIF: {
        INTEROP_IFD_POINTER: DirectoryKind.INTEROP,
    },
}

# struct codes for the scalar field types
_STRUCT_CODES = {
    ExifTagType.BYTE: 'B',
    ExifTagType.SBYTE: 'b',
    ExifTagType.SHORT: 'H',
    ExifTagType.SSHORT: 'h',
    ExifTagType.LONG: 'I',
    ExifTagType.SLONG: 'i',
    ExifTagType.FLOAT: 'f',
    ExifTagType.DOUBLE: 'd',
    ExifTagType.IFD: 'I',
}


def decode_value(tag_type: ExifTagType, count: int, data: bytes, endian: str) -> Any:
    """
    Decode raw value bytes into a Python value.

    Args:
        tag_type: Field type of the entry
        count: Number of values
        data: Value bytes, exactly TAG_SIZES[tag_type] * count long
        endian: Byte order the bytes were written in

    Returns:
        str for ASCII, bytes for UNDEFINED, (numerator, denominator)
        tuples for rationals, numbers otherwise. Single values are
        returned bare, multiple values as a list.
    """
    if tag_type == ExifTagType.ASCII:
        null_pos = data.find(b'\x00')
        if null_pos >= 0:
            data = data[:null_pos]
        return data.decode('utf-8', errors='replace')

    if tag_type == ExifTagType.UNDEFINED:
        return bytes(data)

    if tag_type in (ExifTagType.RATIONAL, ExifTagType.SRATIONAL):
        code = 'I' if tag_type == ExifTagType.RATIONAL else 'i'
        flat = struct.unpack(f'{endian}{count * 2}{code}', data)
        values = [(flat[i], flat[i + 1]) for i in range(0, len(flat), 2)]
    else:
        values = list(struct.unpack(f'{endian}{count}{_STRUCT_CODES[tag_type]}', data))

    if count == 1:
        return values[0]
    return values


@dataclass
class TiffHeader:
    """Byte order and first directory offset of a TIFF block."""
    endian: str
    first_ifd_offset: int = TIFF_HEADER_SIZE

    @property
    def byte_order_mark(self) -> bytes:
        return b'II' if self.endian == LITTLE_ENDIAN else b'MM'


@dataclass
class IfdEntry:
    """
    One directory entry.

    The value is held resolved: ``data`` is the full value bytes in the
    block's byte order, whether the source stored it inline or behind an
    offset. The encoder decides inline versus offset storage again from
    the length of ``data``.
    """
    tag_id: int
    type: ExifTagType
    count: int
    data: bytes

    @property
    def is_inline(self) -> bool:
        return len(self.data) <= 4

    def value(self, endian: str) -> Any:
        return decode_value(self.type, self.count, self.data, endian)


@dataclass
class IfdDirectory:
    """
    A TIFF directory: entries unique by tag id plus the next-IFD link.

    For the thumbnail directory, ``thumbnail`` holds the embedded JPEG
    thumbnail bytes that JPEGInterchangeFormat points at.
    """
    kind: DirectoryKind
    entries: List[IfdEntry] = field(default_factory=list)
    next_ifd_offset: Optional[int] = None
    thumbnail: Optional[bytes] = None

    def find(self, tag_id: int) -> Optional[IfdEntry]:
        for entry in self.entries:
            if entry.tag_id == tag_id:
                return entry
        return None

    def add(self, entry: IfdEntry) -> None:
        """Append an entry; the tag must not already be present."""
        if self.find(entry.tag_id) is not None:
            raise ValueError(f"Tag 0x{entry.tag_id:04X} already present in {self.kind.value}")
        self.entries.append(entry)

    def remove(self, tag_id: int) -> bool:
        """Remove an entry by tag id. Returns True if one was removed."""
        before = len(self.entries)
        self.entries = [entry for entry in self.entries if entry.tag_id != tag_id]
        return len(self.entries) != before

    def sorted_entries(self) -> List[IfdEntry]:
        return sorted(self.entries, key=lambda entry: entry.tag_id)


@dataclass
class TiffBlock:
    """Decoded TIFF block: header plus directories keyed by their offset."""
    header: TiffHeader
    directories: Dict[int, IfdDirectory]

    def by_kind(self) -> Dict[DirectoryKind, IfdDirectory]:
        return {directory.kind: directory for directory in self.directories.values()}


class TIFFStructure:
    """
    TIFF block decoder.

    Walks IFD0, the Exif, GPS and Interop directories reachable from it
    through their pointer tags, and the thumbnail IFD chained after IFD0.
    Pointer tags are structural: they are consumed here and regenerated
    by the writer, so they never appear among a directory's entries.
    """

    def __init__(self, data: bytes):
        """
        Initialize TIFF structure parser.

        Args:
            data: The TIFF block (EXIF payload after the Exif\\0\\0 signature)
        """
        self.data = data
        self.endian: Optional[str] = None
        self._visited: Set[int] = set()

    def parse(self) -> TiffBlock:
        """
        Decode the block.

        Returns:
            TiffBlock with every reachable directory

        Raises:
            MalformedTiffError: If the block is structurally invalid
        """
        if len(self.data) < TIFF_HEADER_SIZE:
            raise MalformedTiffError("Invalid TIFF block: too short for header")

        self.endian = BYTE_ORDER_MARKS.get(bytes(self.data[:2]))
        if self.endian is None:
            raise MalformedTiffError(f"Invalid TIFF block: bad byte order marker {bytes(self.data[:2])!r}")

        magic, first_ifd_offset = struct.unpack(f'{self.endian}HI', self.data[2:8])
        if magic != TIFF_MAGIC:
            raise MalformedTiffError(f"Invalid TIFF block: bad magic number {magic}")

        header = TiffHeader(endian=self.endian, first_ifd_offset=first_ifd_offset)
        directories: Dict[int, IfdDirectory] = {}
        self._visited = set()

        ifd0 = self._read_tree(first_ifd_offset, DirectoryKind.IFD0, directories)

        # IFD0 may chain to the thumbnail directory. Anything past IFD1 is dropped.
        if ifd0.next_ifd_offset:
            ifd1 = self._read_directory(ifd0.next_ifd_offset, DirectoryKind.IFD1)
            directories[ifd0.next_ifd_offset] = ifd1
            self._load_thumbnail(ifd1)

        self._adopt_misplaced_interop(directories)

        return TiffBlock(header=header, directories=directories)

    def _adopt_misplaced_interop(self, directories: Dict[int, IfdDirectory]) -> None:
        """
        Consume an InteropIFDPointer found in IFD0 or IFD1.

        Some cameras write it there instead of the Exif IFD. A pointer in
        the Exif IFD takes precedence; a stray one is then dropped.
        """
        have_interop = any(d.kind == DirectoryKind.INTEROP for d in directories.values())
        for directory in list(directories.values()):
            if directory.kind not in (DirectoryKind.IFD0, DirectoryKind.IFD1):
                continue
            entry = directory.find(INTEROP_IFD_POINTER)
            if entry is None:
                continue
            directory.remove(INTEROP_IFD_POINTER)
            if have_interop:
                continue
            if entry.count != 1 or entry.type not in (ExifTagType.LONG, ExifTagType.IFD):
                raise MalformedTiffError(
                    f"Invalid {DirectoryKind.INTEROP.value} pointer in {directory.kind.value}: "
                    f"type {int(entry.type)}, count {entry.count}"
                )
            offset = entry.value(self.endian)
            if offset:
                directories[offset] = self._read_directory(offset, DirectoryKind.INTEROP)
                have_interop = True

    def _read_tree(
        self,
        offset: int,
        kind: DirectoryKind,
        directories: Dict[int, IfdDirectory]
    ) -> IfdDirectory:
        """Read a directory and, recursively, the sub-directories it points at."""
        directory = self._read_directory(offset, kind)
        directories[offset] = directory

        for pointer_tag, child_kind in SUB_IFD_POINTERS.get(kind, {}).items():
            entry = directory.find(pointer_tag)
            if entry is None:
                continue
            directory.remove(pointer_tag)
            if entry.count != 1 or entry.type not in (ExifTagType.LONG, ExifTagType.IFD):
                raise MalformedTiffError(
                    f"Invalid {child_kind.value} pointer in {kind.value}: "
                    f"type {int(entry.type)}, count {entry.count}"
                )
            child_offset = entry.value(self.endian)
            if child_offset == 0:
                continue
            self._read_tree(child_offset, child_kind, directories)

        return directory

    def _read_directory(self, offset: int, kind: DirectoryKind) -> IfdDirectory:
        """
        Read one IFD at the given offset.

        Raises:
            MalformedTiffError: If the entry table or a value lies outside the block
        """
        if offset in self._visited:
            raise MalformedTiffError(f"IFD loop detected at offset {offset}")
        self._visited.add(offset)

        if offset < TIFF_HEADER_SIZE or offset + 2 > len(self.data):
            raise MalformedTiffError(f"{kind.value} offset {offset} is outside the TIFF block")

        num_entries = struct.unpack(f'{self.endian}H', self.data[offset:offset + 2])[0]
        entries_end = offset + 2 + num_entries * IFD_ENTRY_SIZE
        if entries_end > len(self.data):
            raise MalformedTiffError(
                f"{kind.value} at offset {offset} declares {num_entries} entries, "
                f"which runs past the end of the TIFF block ({len(self.data)} bytes)"
            )

        directory = IfdDirectory(kind=kind)
        entry_offset = offset + 2
        for _ in range(num_entries):
            entry = self._read_entry(entry_offset)
            entry_offset += IFD_ENTRY_SIZE
            # Duplicate tags in a source directory: the first one wins
            if directory.find(entry.tag_id) is None:
                directory.entries.append(entry)

        if entries_end + 4 <= len(self.data):
            directory.next_ifd_offset = struct.unpack(
                f'{self.endian}I', self.data[entries_end:entries_end + 4]
            )[0]
        else:
            directory.next_ifd_offset = 0

        return directory

    def _read_entry(self, entry_offset: int) -> IfdEntry:
        tag_id, raw_type, count, value_field = struct.unpack(
            f'{self.endian}HHI4s',
            self.data[entry_offset:entry_offset + IFD_ENTRY_SIZE]
        )

        try:
            tag_type = ExifTagType(raw_type)
        except ValueError:
            raise MalformedTiffError(f"Tag 0x{tag_id:04X} has unknown field type {raw_type}")

        total_size = TAG_SIZES[tag_type] * count
        if total_size <= 4:
            data = value_field[:total_size]
        else:
            value_offset = struct.unpack(f'{self.endian}I', value_field)[0]
            if value_offset + total_size > len(self.data):
                raise MalformedTiffError(
                    f"Tag 0x{tag_id:04X} value at offset {value_offset} "
                    f"({total_size} bytes) is outside the TIFF block"
                )
            data = bytes(self.data[value_offset:value_offset + total_size])

        return IfdEntry(tag_id=tag_id, type=tag_type, count=count, data=data)

    def _load_thumbnail(self, ifd1: IfdDirectory) -> None:
        """Copy the JPEG thumbnail bytes IFD1 points at into the directory."""
        offset_entry = ifd1.find(JPEG_INTERCHANGE_FORMAT)
        length_entry = ifd1.find(JPEG_INTERCHANGE_FORMAT_LENGTH)
        if offset_entry is None or length_entry is None:
            return

        thumb_offset = offset_entry.value(self.endian)
        thumb_length = length_entry.value(self.endian)
        if not isinstance(thumb_offset, int) or not isinstance(thumb_length, int):
            raise MalformedTiffError("Invalid thumbnail location in IFD1")
        if thumb_offset + thumb_length > len(self.data):
            raise MalformedTiffError(
                f"Thumbnail at offset {thumb_offset} ({thumb_length} bytes) "
                "is outside the TIFF block"
            )
        ifd1.thumbnail = bytes(self.data[thumb_offset:thumb_offset + thumb_length])


def decode(data: bytes) -> TiffBlock:
    """
    Decode a TIFF block.

    Raises:
        MalformedTiffError: If the block is structurally invalid
    """
    return TIFFStructure(data).parse()
