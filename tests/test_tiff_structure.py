import struct

import pytest

from jpgdatesetter.exceptions import MalformedTiffError
from jpgdatesetter.exif_tags import DirectoryKind, ExifTagType
from jpgdatesetter.tiff_structure import BIG_ENDIAN, LITTLE_ENDIAN, decode, decode_value
from jpgdatesetter.tiff_writer import encode

from conftest import SOURCE_DATE, THUMBNAIL


@pytest.mark.parametrize("fixture_name, endian", [("tiff_le", LITTLE_ENDIAN), ("tiff_be", BIG_ENDIAN)])
def test_decode_camera_block(request, fixture_name, endian):
    block = decode(request.getfixturevalue(fixture_name))

    assert block.header.endian == endian
    assert block.header.first_ifd_offset == 8
    assert sorted(block.directories) == [8, 62, 92]

    dirs = block.by_kind()
    assert set(dirs) == {DirectoryKind.IFD0, DirectoryKind.EXIF, DirectoryKind.IFD1}

    ifd0 = dirs[DirectoryKind.IFD0]
    assert [entry.tag_id for entry in ifd0.entries] == [0x010F, 0x0112, 0x0132]
    assert ifd0.find(0x010F).value(endian) == "Canon"
    assert ifd0.find(0x0112).value(endian) == 1
    assert ifd0.find(0x0132).value(endian) == SOURCE_DATE
    assert ifd0.next_ifd_offset == 92

    exif = dirs[DirectoryKind.EXIF]
    assert exif.find(0x829A).value(endian) == (1, 125)
    assert exif.find(0x9003).value(endian) == SOURCE_DATE


def test_pointer_tags_are_consumed(tiff_le):
    ifd0 = decode(tiff_le).by_kind()[DirectoryKind.IFD0]
    assert ifd0.find(0x8769) is None


def test_inline_and_offset_values_resolve_to_full_bytes(tiff_le):
    ifd0 = decode(tiff_le).by_kind()[DirectoryKind.IFD0]
    orientation = ifd0.find(0x0112)
    assert orientation.is_inline
    assert orientation.data == b'\x01\x00'
    make = ifd0.find(0x010F)
    assert not make.is_inline
    assert make.data == b'Canon\x00'


def test_thumbnail_bytes_are_captured(tiff_le):
    ifd1 = decode(tiff_le).by_kind()[DirectoryKind.IFD1]
    assert ifd1.thumbnail == THUMBNAIL


def test_bad_byte_order_marker():
    with pytest.raises(MalformedTiffError, match="byte order"):
        decode(b'XX\x00\x2a\x00\x00\x00\x08\x00\x00')


def test_bad_magic_number():
    with pytest.raises(MalformedTiffError, match="magic"):
        decode(b'MM\x00\x2b\x00\x00\x00\x08\x00\x00')


def test_too_short():
    with pytest.raises(MalformedTiffError):
        decode(b'MM\x00')


def test_entry_count_past_end_of_block():
    # IFD0 claims 200 entries, the block holds none
    data = b'MM\x00\x2a\x00\x00\x00\x08' + struct.pack('>H', 200) + b'\x00' * 10
    with pytest.raises(MalformedTiffError, match="runs past the end"):
        decode(data)


def test_first_ifd_offset_outside_block():
    with pytest.raises(MalformedTiffError, match="outside"):
        decode(b'MM\x00\x2a\x00\x00\x10\x00')


def test_value_offset_outside_block():
    entry = struct.pack('>HHII', 0x010F, 2, 32, 0x1000)
    data = b'MM\x00\x2a\x00\x00\x00\x08' + struct.pack('>H', 1) + entry + b'\x00' * 4
    with pytest.raises(MalformedTiffError, match="outside the TIFF block"):
        decode(data)


def test_unknown_field_type():
    entry = struct.pack('>HHII', 0x010F, 99, 1, 0)
    data = b'MM\x00\x2a\x00\x00\x00\x08' + struct.pack('>H', 1) + entry + b'\x00' * 4
    with pytest.raises(MalformedTiffError, match="unknown field type"):
        decode(data)


def test_ifd_loop_is_detected():
    # IFD0 chains to itself
    data = b'MM\x00\x2a\x00\x00\x00\x08' + struct.pack('>H', 0) + struct.pack('>I', 8)
    with pytest.raises(MalformedTiffError, match="loop"):
        decode(data)


def test_duplicate_tags_keep_the_first():
    first = struct.pack('>HHI', 0x0112, 3, 1) + struct.pack('>H', 1) + b'\x00\x00'
    second = struct.pack('>HHI', 0x0112, 3, 1) + struct.pack('>H', 6) + b'\x00\x00'
    data = b'MM\x00\x2a\x00\x00\x00\x08' + struct.pack('>H', 2) + first + second + b'\x00' * 4
    ifd0 = decode(data).by_kind()[DirectoryKind.IFD0]
    assert len(ifd0.entries) == 1
    assert ifd0.find(0x0112).value(BIG_ENDIAN) == 1


def test_decode_value_types():
    assert decode_value(ExifTagType.SHORT, 3, struct.pack('<3H', 8, 8, 8), '<') == [8, 8, 8]
    assert decode_value(ExifTagType.SRATIONAL, 1, struct.pack('>ii', -1, 3), '>') == (-1, 3)
    assert decode_value(ExifTagType.UNDEFINED, 4, b'0230', '<') == b'0230'
    assert decode_value(ExifTagType.ASCII, 4, b'abc\x00', '<') == "abc"


def _interop_in_ifd0():
    # IFD0 at 8 holds InteropIFDPointer -> 26; Interop IFD at 26 holds "R98"
    ifd0 = struct.pack('>H', 1) + struct.pack('>HHII', 0xA005, 4, 1, 26) + struct.pack('>I', 0)
    interop = struct.pack('>H', 1) + struct.pack('>HHI', 0x0001, 2, 4) + b'R98\x00' + struct.pack('>I', 0)
    return b'MM\x00\x2a\x00\x00\x00\x08' + ifd0 + interop


def test_interop_pointer_in_ifd0_is_consumed():
    dirs = decode(_interop_in_ifd0()).by_kind()
    assert dirs[DirectoryKind.IFD0].find(0xA005) is None
    assert dirs[DirectoryKind.INTEROP].find(0x0001).value(BIG_ENDIAN) == "R98"


def test_misplaced_interop_is_rewritten_under_the_exif_ifd():
    again = decode(encode(decode(_interop_in_ifd0()).by_kind(), BIG_ENDIAN))
    dirs = again.by_kind()
    assert set(dirs) == {DirectoryKind.IFD0, DirectoryKind.EXIF, DirectoryKind.INTEROP}
    assert dirs[DirectoryKind.IFD0].entries == []
    assert dirs[DirectoryKind.INTEROP].find(0x0001).value(BIG_ENDIAN) == "R98"


def test_misplaced_interop_pointer_with_bad_type():
    data = bytearray(_interop_in_ifd0())
    data[12:14] = struct.pack('>H', 3)  # SHORT instead of LONG
    with pytest.raises(MalformedTiffError, match="pointer"):
        decode(bytes(data))
