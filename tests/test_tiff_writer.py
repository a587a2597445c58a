import struct

import pytest

from jpgdatesetter.exceptions import InvalidTagError
from jpgdatesetter.exif_tags import DirectoryKind, ExifTagType
from jpgdatesetter.tiff_structure import BIG_ENDIAN, LITTLE_ENDIAN, IfdDirectory, IfdEntry, decode
from jpgdatesetter.tiff_writer import encode, encode_value

from conftest import THUMBNAIL


def _ascii(tag_id, text):
    data = text.encode('ascii') + b'\x00'
    return IfdEntry(tag_id, ExifTagType.ASCII, len(data), data)


def _raw_entry_order(data, offset, endian):
    count = struct.unpack(f'{endian}H', data[offset:offset + 2])[0]
    return [
        struct.unpack(f'{endian}H', data[offset + 2 + i * 12:offset + 4 + i * 12])[0]
        for i in range(count)
    ]


def test_entries_are_written_in_ascending_tag_order():
    ifd0 = IfdDirectory(kind=DirectoryKind.IFD0, entries=[
        _ascii(0x0131, "Software 1.0"),
        _ascii(0x010F, "Canon"),
        IfdEntry(0x0112, ExifTagType.SHORT, 1, struct.pack('>H', 6)),
    ])
    data = encode({DirectoryKind.IFD0: ifd0}, BIG_ENDIAN)

    assert _raw_entry_order(data, 8, BIG_ENDIAN) == [0x010F, 0x0112, 0x0131]

    decoded = decode(data).by_kind()[DirectoryKind.IFD0]
    assert decoded.sorted_entries() == ifd0.sorted_entries()


def test_empty_set_encodes_header_and_empty_ifd0():
    data = encode({}, BIG_ENDIAN)
    assert data == b'MM\x00\x2a\x00\x00\x00\x08' + b'\x00\x00' + b'\x00\x00\x00\x00'


def test_round_trip_preserves_every_entry(tiff_le):
    source = decode(tiff_le).by_kind()
    again = decode(encode(source, LITTLE_ENDIAN)).by_kind()

    assert set(again) == set(source)
    for kind in source:
        if kind is DirectoryKind.IFD1:
            continue
        assert again[kind].sorted_entries() == source[kind].sorted_entries()
    assert again[DirectoryKind.IFD1].thumbnail == THUMBNAIL


def test_encoding_is_deterministic(tiff_be):
    directories = decode(tiff_be).by_kind()
    assert encode(directories, BIG_ENDIAN) == encode(directories, BIG_ENDIAN)


def test_exif_pointer_is_regenerated():
    exif = IfdDirectory(kind=DirectoryKind.EXIF, entries=[_ascii(0x9003, "2021:01:20 17:00:00")])
    data = encode({DirectoryKind.EXIF: exif}, BIG_ENDIAN)

    # IFD0 is created to hold the pointer
    assert _raw_entry_order(data, 8, BIG_ENDIAN) == [0x8769]
    pointer = struct.unpack('>I', data[8 + 2 + 8:8 + 2 + 12])[0]
    assert pointer == 8 + 2 + 12 + 4
    assert _raw_entry_order(data, pointer, BIG_ENDIAN) == [0x9003]


def test_interop_forces_exif_directory():
    interop = IfdDirectory(kind=DirectoryKind.INTEROP, entries=[_ascii(0x0001, "R98")])
    block = decode(encode({DirectoryKind.INTEROP: interop}, LITTLE_ENDIAN))
    kinds = block.by_kind()
    assert set(kinds) == {DirectoryKind.IFD0, DirectoryKind.EXIF, DirectoryKind.INTEROP}
    assert kinds[DirectoryKind.INTEROP].find(0x0001).value(LITTLE_ENDIAN) == "R98"


def test_out_of_line_values_are_word_aligned():
    ifd0 = IfdDirectory(kind=DirectoryKind.IFD0, entries=[
        _ascii(0x010F, "Nikon"),      # 6 bytes
        _ascii(0x0110, "D850 X"),     # 7 bytes, padded
        _ascii(0x0131, "firmware"),   # 9 bytes, padded
    ])
    data = encode({DirectoryKind.IFD0: ifd0}, BIG_ENDIAN)
    offsets = []
    for i in range(3):
        start = 8 + 2 + i * 12
        offsets.append(struct.unpack('>I', data[start + 8:start + 12])[0])
    assert all(offset % 2 == 0 for offset in offsets)
    assert decode(data).by_kind()[DirectoryKind.IFD0].find(0x0131).value(BIG_ENDIAN) == "firmware"


def test_thumbnail_is_relocated_after_values(tiff_le):
    directories = decode(tiff_le).by_kind()
    data = encode(directories, LITTLE_ENDIAN)
    ifd1 = decode(data).by_kind()[DirectoryKind.IFD1]
    offset = ifd1.find(0x0201).value(LITTLE_ENDIAN)
    assert data[offset:offset + len(THUMBNAIL)] == THUMBNAIL
    assert offset + len(THUMBNAIL) == len(data)


def test_wrong_value_length_is_rejected():
    bad = IfdEntry(0x0112, ExifTagType.SHORT, 2, b'\x00\x01')
    with pytest.raises(InvalidTagError):
        encode({DirectoryKind.IFD0: IfdDirectory(kind=DirectoryKind.IFD0, entries=[bad])})


def test_encode_value():
    assert encode_value(ExifTagType.ASCII, "abc", '>') == (b'abc\x00', 4)
    assert encode_value(ExifTagType.SHORT, [1, 2], '<') == (b'\x01\x00\x02\x00', 2)
    assert encode_value(ExifTagType.RATIONAL, (1, 125), '>') == (struct.pack('>II', 1, 125), 1)
    assert encode_value(ExifTagType.UNDEFINED, b'0230', '<') == (b'0230', 4)


@pytest.mark.parametrize("tag_type, value", [
    (ExifTagType.ASCII, 12),
    (ExifTagType.ASCII, "café"),
    (ExifTagType.SHORT, 70000),
    (ExifTagType.RATIONAL, 5),
])
def test_encode_value_rejects_incompatible_values(tag_type, value):
    with pytest.raises(InvalidTagError):
        encode_value(tag_type, value, '>')
