"""
Shared fixtures: synthetic JPEG, TIFF and PNG byte streams.
"""

import struct
import zlib

import pytest

SCAN_DATA = b'\xff\xda\x00\x08\x01\x01\x00\x00\x3f\x00' + b'\x12\x34\xff\x00\x56\x78\x9a\xbc' + b'\xff\xd9'

APP0_JFIF = b'\xff\xe0\x00\x10' + b'JFIF\x00' + b'\x01\x01\x00\x00\x01\x00\x01\x00\x00'
DQT = b'\xff\xdb\x00\x43\x00' + bytes(range(1, 65))
SOF0 = b'\xff\xc0\x00\x0b\x08\x00\x01\x00\x01\x01\x01\x11\x00'
DHT = b'\xff\xc4\x00\x14\x00' + b'\x01' + b'\x00' * 15 + b'\x00'

SOURCE_DATE = '2019:05:04 10:11:12'
THUMBNAIL = b'\xff\xd8\xff\xd9\x00\x00'


def _entry(e, tag, tag_type, count, value_field):
    return struct.pack(f'{e}HHI', tag, tag_type, count) + value_field.ljust(4, b'\x00')


def camera_tiff(endian='<'):
    """
    A small camera-style TIFF block.

    IFD0: Make, Orientation, DateTime, Exif pointer; chained to IFD1.
    Exif IFD: ExposureTime, DateTimeOriginal.
    IFD1: JPEG thumbnail location.
    """
    e = endian
    date = SOURCE_DATE.encode('ascii') + b'\x00'
    ifd0, exif_ifd, ifd1 = 8, 62, 92
    make_off, dt_off, exp_off, dto_off, thumb_off = 122, 128, 148, 156, 176

    out = (b'II' if e == '<' else b'MM') + struct.pack(f'{e}HI', 42, ifd0)
    out += struct.pack(f'{e}H', 4)
    out += _entry(e, 0x010F, 2, 6, struct.pack(f'{e}I', make_off))
    out += _entry(e, 0x0112, 3, 1, struct.pack(f'{e}H', 1))
    out += _entry(e, 0x0132, 2, 20, struct.pack(f'{e}I', dt_off))
    out += _entry(e, 0x8769, 4, 1, struct.pack(f'{e}I', exif_ifd))
    out += struct.pack(f'{e}I', ifd1)
    assert len(out) == exif_ifd

    out += struct.pack(f'{e}H', 2)
    out += _entry(e, 0x829A, 5, 1, struct.pack(f'{e}I', exp_off))
    out += _entry(e, 0x9003, 2, 20, struct.pack(f'{e}I', dto_off))
    out += struct.pack(f'{e}I', 0)
    assert len(out) == ifd1

    out += struct.pack(f'{e}H', 2)
    out += _entry(e, 0x0201, 4, 1, struct.pack(f'{e}I', thumb_off))
    out += _entry(e, 0x0202, 4, 1, struct.pack(f'{e}I', len(THUMBNAIL)))
    out += struct.pack(f'{e}I', 0)
    assert len(out) == make_off

    out += b'Canon\x00'
    out += date
    out += struct.pack(f'{e}II', 1, 125)
    out += date
    assert len(out) == thumb_off
    out += THUMBNAIL
    return out


def exif_segment(tiff):
    payload = b'Exif\x00\x00' + tiff
    return struct.pack('>HH', 0xFFE1, len(payload) + 2) + payload


def build_jpeg(tiff=None, jfif=True):
    """SOI, optional APP0, optional EXIF APP1, tables, frame, scan data."""
    out = b'\xff\xd8'
    if jfif:
        out += APP0_JFIF
    if tiff is not None:
        out += exif_segment(tiff)
    return out + DQT + SOF0 + DHT + SCAN_DATA


def build_png():
    def chunk(kind, data):
        return struct.pack('>I', len(data)) + kind + data + struct.pack('>I', zlib.crc32(kind + data) & 0xFFFFFFFF)

    ihdr = struct.pack('>IIBBBBB', 1, 1, 8, 0, 0, 0, 0)
    return (
        b'\x89PNG\r\n\x1a\n'
        + chunk(b'IHDR', ihdr)
        + chunk(b'IDAT', zlib.compress(b'\x00\x00'))
        + chunk(b'IEND', b'')
    )


@pytest.fixture
def tiff_le():
    return camera_tiff('<')


@pytest.fixture
def tiff_be():
    return camera_tiff('>')


@pytest.fixture
def jpeg_with_exif():
    return build_jpeg(camera_tiff('<'))


@pytest.fixture
def jpeg_without_exif():
    return build_jpeg()


@pytest.fixture
def png_bytes():
    return build_png()
