# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
TIFF block writer

This module lays out a set of directories as a TIFF block: header,
IFD0, the linked IFDs, then every value that does not fit inline, then
the thumbnail. The output depends only on the directories passed in, so
encoding the same logical content twice yields the same bytes.

Copyright 2025 DNAi inc.
"""

import struct
from typing import Any, Dict, List, Tuple

from jpgdatesetter.exceptions import InvalidTagError
from jpgdatesetter.exif_tags import (
    DirectoryKind,
    ExifTagType,
    TAG_SIZES,
    JPEG_INTERCHANGE_FORMAT,
    JPEG_INTERCHANGE_FORMAT_LENGTH,
)
from jpgdatesetter.tiff_structure import (
    BIG_ENDIAN,
    IFD_ENTRY_SIZE,
    SUB_IFD_POINTERS,
    TIFF_HEADER_SIZE,
    TIFF_MAGIC,
    IfdDirectory,
    IfdEntry,
    TiffHeader,
)

# Order directories are laid out in
DIRECTORY_ORDER = [
    DirectoryKind.IFD0,
    DirectoryKind.EXIF,
    DirectoryKind.INTEROP,
    DirectoryKind.GPS,
    DirectoryKind.IFD1,
]

_INT_CODES = {
    ExifTagType.BYTE: 'B',
    ExifTagType.SBYTE: 'b',
    ExifTagType.UNDEFINED: 'B',
    ExifTagType.SHORT: 'H',
    ExifTagType.SSHORT: 'h',
    ExifTagType.LONG: 'I',
    ExifTagType.SLONG: 'i',
    ExifTagType.IFD: 'I',
}

_FLOAT_CODES = {
    ExifTagType.FLOAT: 'f',
    ExifTagType.DOUBLE: 'd',
}


def encode_value(tag_type: ExifTagType, value: Any, endian: str) -> Tuple[bytes, int]:
    """
    Encode a Python value as raw field bytes.

    Args:
        tag_type: Field type to encode as
        value: str for ASCII; bytes or ints for BYTE/UNDEFINED; int or
               list of ints for integer types; (num, den) or a list of
               them for rationals; float or list of floats for FLOAT/DOUBLE
        endian: Byte order ('<' or '>')

    Returns:
        Tuple of (value bytes, count)

    Raises:
        InvalidTagError: If the value cannot be encoded as tag_type
    """
    if tag_type == ExifTagType.ASCII:
        if not isinstance(value, str):
            raise InvalidTagError(f"ASCII field needs a str, got {type(value).__name__}")
        try:
            encoded = value.encode('ascii')
        except UnicodeEncodeError:
            raise InvalidTagError(f"Value {value!r} is not plain ASCII")
        if not encoded.endswith(b'\x00'):
            encoded += b'\x00'
        return encoded, len(encoded)

    if tag_type in (ExifTagType.BYTE, ExifTagType.UNDEFINED) and isinstance(value, (bytes, bytearray)):
        return bytes(value), len(value)

    if tag_type in (ExifTagType.RATIONAL, ExifTagType.SRATIONAL):
        if isinstance(value, tuple):
            pairs = [value]
        elif isinstance(value, list):
            pairs = value
        else:
            raise InvalidTagError(f"Rational field needs (numerator, denominator) pairs, got {value!r}")
        code = 'I' if tag_type == ExifTagType.RATIONAL else 'i'
        flat = []
        for pair in pairs:
            if not isinstance(pair, tuple) or len(pair) != 2:
                raise InvalidTagError(f"Rational field needs (numerator, denominator) pairs, got {pair!r}")
            flat.extend(pair)
        try:
            return struct.pack(f'{endian}{len(flat)}{code}', *flat), len(pairs)
        except struct.error as e:
            raise InvalidTagError(f"Value {value!r} does not fit {tag_type.name}: {e}")

    if isinstance(value, (list, tuple)):
        values = list(value)
    else:
        values = [value]

    code = _INT_CODES.get(tag_type) or _FLOAT_CODES.get(tag_type)
    if code is None:
        raise InvalidTagError(f"Cannot encode values of type {tag_type.name}")
    try:
        return struct.pack(f'{endian}{len(values)}{code}', *values), len(values)
    except struct.error as e:
        raise InvalidTagError(f"Value {value!r} does not fit {tag_type.name}: {e}")


class TIFFWriter:
    """
    Serializes directories into a TIFF block.

    Pointer entries (ExifIFDPointer, GPSInfo, InteropIFDPointer) and the
    thumbnail offset are computed here; any stale copies in the input
    directories are ignored.
    """

    def __init__(self, endian: str = BIG_ENDIAN):
        """
        Initialize TIFF writer.

        Args:
            endian: Byte order ('<' for little-endian, '>' for big-endian)
        """
        self.endian = endian

    def write(self, directories: Dict[DirectoryKind, IfdDirectory]) -> bytes:
        """
        Lay out and serialize the directories.

        Args:
            directories: Directories to emit, keyed by kind. IFD0 is always
                         emitted; the Exif IFD is emitted if Interop needs it.

        Returns:
            The TIFF block bytes
        """
        kinds = self._kinds_to_emit(directories)

        # Entry lists per directory, pointer placeholders included
        layout: Dict[DirectoryKind, List[IfdEntry]] = {}
        for kind in kinds:
            directory = directories.get(kind) or IfdDirectory(kind=kind)
            pointers = SUB_IFD_POINTERS.get(kind, {})
            entries = [entry for entry in directory.entries if entry.tag_id not in pointers]
            for pointer_tag, child_kind in pointers.items():
                if child_kind in kinds:
                    entries.append(IfdEntry(pointer_tag, ExifTagType.LONG, 1, b'\x00' * 4))
            layout[kind] = sorted(entries, key=lambda entry: entry.tag_id)

        # Directory offsets
        ifd_offsets: Dict[DirectoryKind, int] = {}
        cursor = TIFF_HEADER_SIZE
        for kind in kinds:
            ifd_offsets[kind] = cursor
            cursor += 2 + len(layout[kind]) * IFD_ENTRY_SIZE + 4

        # Out-of-line value offsets, word aligned
        value_offsets: Dict[Tuple[DirectoryKind, int], int] = {}
        for kind in kinds:
            for entry in layout[kind]:
                if not entry.is_inline:
                    value_offsets[(kind, entry.tag_id)] = cursor
                    cursor += len(entry.data) + (len(entry.data) & 1)

        thumbnail = None
        if DirectoryKind.IFD1 in kinds:
            thumbnail = directories[DirectoryKind.IFD1].thumbnail
        thumbnail_offset = cursor

        # Fill in pointer and thumbnail values now that offsets are known
        for kind in kinds:
            pointers = SUB_IFD_POINTERS.get(kind, {})
            patched = []
            for entry in layout[kind]:
                if entry.tag_id in pointers:
                    entry = self._long_entry(entry.tag_id, ifd_offsets[pointers[entry.tag_id]])
                elif kind == DirectoryKind.IFD1 and thumbnail is not None:
                    if entry.tag_id == JPEG_INTERCHANGE_FORMAT:
                        entry = self._long_entry(entry.tag_id, thumbnail_offset)
                    elif entry.tag_id == JPEG_INTERCHANGE_FORMAT_LENGTH:
                        entry = self._long_entry(entry.tag_id, len(thumbnail))
                patched.append(entry)
            layout[kind] = patched

        out = bytearray()
        out.extend(self._build_tiff_header())
        for kind in kinds:
            if kind == DirectoryKind.IFD0 and DirectoryKind.IFD1 in kinds:
                next_ifd = ifd_offsets[DirectoryKind.IFD1]
            else:
                next_ifd = 0
            out.extend(self._write_ifd(kind, layout[kind], value_offsets, next_ifd))

        for kind in kinds:
            for entry in layout[kind]:
                if not entry.is_inline:
                    out.extend(entry.data)
                    if len(entry.data) & 1:
                        out.append(0)

        if thumbnail is not None:
            out.extend(thumbnail)

        return bytes(out)

    def _kinds_to_emit(self, directories: Dict[DirectoryKind, IfdDirectory]) -> List[DirectoryKind]:
        wanted = set(directories)
        wanted.add(DirectoryKind.IFD0)
        if DirectoryKind.INTEROP in wanted:
            wanted.add(DirectoryKind.EXIF)
        return [kind for kind in DIRECTORY_ORDER if kind in wanted]

    def _long_entry(self, tag_id: int, value: int) -> IfdEntry:
        return IfdEntry(tag_id, ExifTagType.LONG, 1, struct.pack(f'{self.endian}I', value))

    def _build_tiff_header(self) -> bytes:
        """
        Build TIFF header.

        Returns:
            TIFF header bytes
        """
        header = TiffHeader(endian=self.endian)
        return header.byte_order_mark + struct.pack(
            f'{self.endian}HI', TIFF_MAGIC, header.first_ifd_offset
        )

    def _write_ifd(
        self,
        kind: DirectoryKind,
        entries: List[IfdEntry],
        value_offsets: Dict[Tuple[DirectoryKind, int], int],
        next_ifd: int
    ) -> bytes:
        """
        Write an IFD structure.

        Args:
            kind: Directory being written
            entries: Entries in ascending tag order
            value_offsets: Offsets of out-of-line values
            next_ifd: Offset of the next IFD, 0 for none

        Returns:
            IFD bytes
        """
        ifd = bytearray()

        # Number of entries
        ifd.extend(struct.pack(f'{self.endian}H', len(entries)))

        for entry in entries:
            expected = TAG_SIZES[entry.type] * entry.count
            if len(entry.data) != expected:
                raise InvalidTagError(
                    f"Tag 0x{entry.tag_id:04X} in {kind.value} has {len(entry.data)} value bytes, "
                    f"expected {expected}"
                )
            ifd.extend(struct.pack(f'{self.endian}HHI', entry.tag_id, int(entry.type), entry.count))
            if entry.is_inline:
                # Pad to 4 bytes for inline storage
                ifd.extend(entry.data.ljust(4, b'\x00'))
            else:
                ifd.extend(struct.pack(f'{self.endian}I', value_offsets[(kind, entry.tag_id)]))

        # Offset to next IFD (0 = no more IFDs)
        ifd.extend(struct.pack(f'{self.endian}I', next_ifd))

        return bytes(ifd)


def encode(directories: Dict[DirectoryKind, IfdDirectory], endian: str = BIG_ENDIAN) -> bytes:
    """Serialize directories into a TIFF block."""
    return TIFFWriter(endian=endian).write(directories)
