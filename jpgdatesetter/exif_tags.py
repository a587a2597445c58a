# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
EXIF tag registry

Static table of the TIFF/EXIF tags this package knows about: their
field type, the directory (IFD) that owns them and, where the standard
fixes it, their count. Based on the EXIF 2.32 specification.

Copyright 2025 DNAi inc.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, Optional


class ExifTagType(IntEnum):
    """TIFF field types"""
    BYTE = 1
    ASCII = 2
    SHORT = 3
    LONG = 4
    RATIONAL = 5
    SBYTE = 6
    UNDEFINED = 7
    SSHORT = 8
    SLONG = 9
    SRATIONAL = 10
    FLOAT = 11
    DOUBLE = 12
    IFD = 13


# Field type sizes in bytes
TAG_SIZES = {
    ExifTagType.BYTE: 1,
    ExifTagType.ASCII: 1,
    ExifTagType.SHORT: 2,
    ExifTagType.LONG: 4,
    ExifTagType.RATIONAL: 8,
    ExifTagType.SBYTE: 1,
    ExifTagType.UNDEFINED: 1,
    ExifTagType.SSHORT: 2,
    ExifTagType.SLONG: 4,
    ExifTagType.SRATIONAL: 8,
    ExifTagType.FLOAT: 4,
    ExifTagType.DOUBLE: 8,
    ExifTagType.IFD: 4,
}


class DirectoryKind(Enum):
    """The directories an EXIF block can hold."""
    IFD0 = "IFD0"
    EXIF = "ExifIFD"
    GPS = "GPS"
    INTEROP = "InteropIFD"
    IFD1 = "IFD1"  # thumbnail, chained from IFD0


@dataclass(frozen=True)
class TagInfo:
    """Registry record for one tag."""
    tag_id: int
    name: str
    type: ExifTagType
    directory: DirectoryKind
    count: Optional[int] = None  # None means any count


# Structural pointer tags. The codec consumes and regenerates these.
EXIF_IFD_POINTER = 0x8769
GPS_IFD_POINTER = 0x8825
INTEROP_IFD_POINTER = 0xA005

# Thumbnail location in IFD1
JPEG_INTERCHANGE_FORMAT = 0x0201
JPEG_INTERCHANGE_FORMAT_LENGTH = 0x0202

# Tags this package writes
DATE_TIME = 0x0132
DATE_TIME_ORIGINAL = 0x9003
DATE_TIME_DIGITIZED = 0x9004

# ASCII date fields: 19 characters plus the NUL terminator
DATETIME_COUNT = 20
DATETIME_TAGS = {DATE_TIME, DATE_TIME_ORIGINAL, DATE_TIME_DIGITIZED}


_A = ExifTagType.ASCII
_B = ExifTagType.BYTE
_S = ExifTagType.SHORT
_L = ExifTagType.LONG
_R = ExifTagType.RATIONAL
_SR = ExifTagType.SRATIONAL
_U = ExifTagType.UNDEFINED

_IFD0 = DirectoryKind.IFD0
_EXIF = DirectoryKind.EXIF
_GPS = DirectoryKind.GPS
_INTEROP = DirectoryKind.INTEROP
_IFD1 = DirectoryKind.IFD1

_TAGS = [
    # ============================================================
    # IFD0 (primary image) tags
    # ============================================================
    TagInfo(0x0100, "ImageWidth", _L, _IFD0, 1),
    TagInfo(0x0101, "ImageLength", _L, _IFD0, 1),
    TagInfo(0x0102, "BitsPerSample", _S, _IFD0, 3),
    TagInfo(0x0103, "Compression", _S, _IFD0, 1),
    TagInfo(0x0106, "PhotometricInterpretation", _S, _IFD0, 1),
    TagInfo(0x010E, "ImageDescription", _A, _IFD0),
    TagInfo(0x010F, "Make", _A, _IFD0),
    TagInfo(0x0110, "Model", _A, _IFD0),
    TagInfo(0x0112, "Orientation", _S, _IFD0, 1),
    TagInfo(0x0115, "SamplesPerPixel", _S, _IFD0, 1),
    TagInfo(0x011A, "XResolution", _R, _IFD0, 1),
    TagInfo(0x011B, "YResolution", _R, _IFD0, 1),
    TagInfo(0x011C, "PlanarConfiguration", _S, _IFD0, 1),
    TagInfo(0x0128, "ResolutionUnit", _S, _IFD0, 1),
    TagInfo(0x012D, "TransferFunction", _S, _IFD0, 768),
    TagInfo(0x0131, "Software", _A, _IFD0),
    TagInfo(DATE_TIME, "DateTime", _A, _IFD0, DATETIME_COUNT),
    TagInfo(0x013B, "Artist", _A, _IFD0),
    TagInfo(0x013E, "WhitePoint", _R, _IFD0, 2),
    TagInfo(0x013F, "PrimaryChromaticities", _R, _IFD0, 6),
    TagInfo(0x0211, "YCbCrCoefficients", _R, _IFD0, 3),
    TagInfo(0x0212, "YCbCrSubSampling", _S, _IFD0, 2),
    TagInfo(0x0213, "YCbCrPositioning", _S, _IFD0, 1),
    TagInfo(0x0214, "ReferenceBlackWhite", _R, _IFD0, 6),
    TagInfo(0x8298, "Copyright", _A, _IFD0),
    TagInfo(EXIF_IFD_POINTER, "ExifIFDPointer", _L, _IFD0, 1),
    TagInfo(GPS_IFD_POINTER, "GPSInfo", _L, _IFD0, 1),

    # ============================================================
    # IFD1 (thumbnail) tags
    # ============================================================
    TagInfo(JPEG_INTERCHANGE_FORMAT, "JPEGInterchangeFormat", _L, _IFD1, 1),
    TagInfo(JPEG_INTERCHANGE_FORMAT_LENGTH, "JPEGInterchangeFormatLength", _L, _IFD1, 1),

    # ============================================================
    # Exif IFD tags
    # ============================================================
    TagInfo(0x829A, "ExposureTime", _R, _EXIF, 1),
    TagInfo(0x829D, "FNumber", _R, _EXIF, 1),
    TagInfo(0x8822, "ExposureProgram", _S, _EXIF, 1),
    TagInfo(0x8824, "SpectralSensitivity", _A, _EXIF),
    TagInfo(0x8827, "ISOSpeedRatings", _S, _EXIF),
    TagInfo(0x8830, "SensitivityType", _S, _EXIF, 1),
    TagInfo(0x9000, "ExifVersion", _U, _EXIF, 4),
    TagInfo(DATE_TIME_ORIGINAL, "DateTimeOriginal", _A, _EXIF, DATETIME_COUNT),
    TagInfo(DATE_TIME_DIGITIZED, "DateTimeDigitized", _A, _EXIF, DATETIME_COUNT),
    TagInfo(0x9010, "OffsetTime", _A, _EXIF, 7),
    TagInfo(0x9011, "OffsetTimeOriginal", _A, _EXIF, 7),
    TagInfo(0x9012, "OffsetTimeDigitized", _A, _EXIF, 7),
    TagInfo(0x9101, "ComponentsConfiguration", _U, _EXIF, 4),
    TagInfo(0x9102, "CompressedBitsPerPixel", _R, _EXIF, 1),
    TagInfo(0x9201, "ShutterSpeedValue", _SR, _EXIF, 1),
    TagInfo(0x9202, "ApertureValue", _R, _EXIF, 1),
    TagInfo(0x9203, "BrightnessValue", _SR, _EXIF, 1),
    TagInfo(0x9204, "ExposureBiasValue", _SR, _EXIF, 1),
    TagInfo(0x9205, "MaxApertureValue", _R, _EXIF, 1),
    TagInfo(0x9206, "SubjectDistance", _R, _EXIF, 1),
    TagInfo(0x9207, "MeteringMode", _S, _EXIF, 1),
    TagInfo(0x9208, "LightSource", _S, _EXIF, 1),
    TagInfo(0x9209, "Flash", _S, _EXIF, 1),
    TagInfo(0x920A, "FocalLength", _R, _EXIF, 1),
    TagInfo(0x9214, "SubjectArea", _S, _EXIF),
    TagInfo(0x927C, "MakerNote", _U, _EXIF),
    TagInfo(0x9286, "UserComment", _U, _EXIF),
    TagInfo(0x9290, "SubSecTime", _A, _EXIF),
    TagInfo(0x9291, "SubSecTimeOriginal", _A, _EXIF),
    TagInfo(0x9292, "SubSecTimeDigitized", _A, _EXIF),
    TagInfo(0xA000, "FlashpixVersion", _U, _EXIF, 4),
    TagInfo(0xA001, "ColorSpace", _S, _EXIF, 1),
    TagInfo(0xA002, "PixelXDimension", _L, _EXIF, 1),
    TagInfo(0xA003, "PixelYDimension", _L, _EXIF, 1),
    TagInfo(0xA004, "RelatedSoundFile", _A, _EXIF, 13),
    TagInfo(INTEROP_IFD_POINTER, "InteropIFDPointer", _L, _EXIF, 1),
    TagInfo(0xA20E, "FocalPlaneXResolution", _R, _EXIF, 1),
    TagInfo(0xA20F, "FocalPlaneYResolution", _R, _EXIF, 1),
    TagInfo(0xA210, "FocalPlaneResolutionUnit", _S, _EXIF, 1),
    TagInfo(0xA217, "SensingMethod", _S, _EXIF, 1),
    TagInfo(0xA300, "FileSource", _U, _EXIF, 1),
    TagInfo(0xA301, "SceneType", _U, _EXIF, 1),
    TagInfo(0xA401, "CustomRendered", _S, _EXIF, 1),
    TagInfo(0xA402, "ExposureMode", _S, _EXIF, 1),
    TagInfo(0xA403, "WhiteBalance", _S, _EXIF, 1),
    TagInfo(0xA404, "DigitalZoomRatio", _R, _EXIF, 1),
    TagInfo(0xA405, "FocalLengthIn35mmFilm", _S, _EXIF, 1),
    TagInfo(0xA406, "SceneCaptureType", _S, _EXIF, 1),
    TagInfo(0xA408, "Contrast", _S, _EXIF, 1),
    TagInfo(0xA409, "Saturation", _S, _EXIF, 1),
    TagInfo(0xA40A, "Sharpness", _S, _EXIF, 1),
    TagInfo(0xA40C, "SubjectDistanceRange", _S, _EXIF, 1),
    TagInfo(0xA420, "ImageUniqueID", _A, _EXIF, 33),
    TagInfo(0xA430, "CameraOwnerName", _A, _EXIF),
    TagInfo(0xA431, "BodySerialNumber", _A, _EXIF),
    TagInfo(0xA432, "LensSpecification", _R, _EXIF, 4),
    TagInfo(0xA433, "LensMake", _A, _EXIF),
    TagInfo(0xA434, "LensModel", _A, _EXIF),

    # ============================================================
    # GPS IFD tags
    # ============================================================
    TagInfo(0x0000, "GPSVersionID", _B, _GPS, 4),
    TagInfo(0x0001, "GPSLatitudeRef", _A, _GPS, 2),
    TagInfo(0x0002, "GPSLatitude", _R, _GPS, 3),
    TagInfo(0x0003, "GPSLongitudeRef", _A, _GPS, 2),
    TagInfo(0x0004, "GPSLongitude", _R, _GPS, 3),
    TagInfo(0x0005, "GPSAltitudeRef", _B, _GPS, 1),
    TagInfo(0x0006, "GPSAltitude", _R, _GPS, 1),
    TagInfo(0x0007, "GPSTimeStamp", _R, _GPS, 3),
    TagInfo(0x0012, "GPSMapDatum", _A, _GPS),
    TagInfo(0x001D, "GPSDateStamp", _A, _GPS, 11),

    # ============================================================
    # Interoperability IFD tags
    # ============================================================
    TagInfo(0x0001, "InteroperabilityIndex", _A, _INTEROP, 4),
    TagInfo(0x0002, "InteroperabilityVersion", _U, _INTEROP, 4),
]

# GPS and Interop tag ids overlap each other, so the table is keyed by
# (directory, tag id).
TAG_REGISTRY: Dict[tuple, TagInfo] = {(info.directory, info.tag_id): info for info in _TAGS}

# Directory each tag id belongs to, for tags whose id is not reused
# across directories.
_OWNERS: Dict[int, list] = {}
for _info in _TAGS:
    _OWNERS.setdefault(_info.tag_id, []).append(_info)


def lookup(tag_id: int, directory: Optional[DirectoryKind] = None) -> Optional[TagInfo]:
    """
    Look up a tag in the registry.

    Args:
        tag_id: Numeric tag identifier
        directory: Directory to look in. When omitted, the tag is resolved
                   only if exactly one directory owns that id.

    Returns:
        The TagInfo, or None when the tag is unknown
    """
    if directory is not None:
        return TAG_REGISTRY.get((directory, tag_id))
    owners = _OWNERS.get(tag_id, [])
    if len(owners) == 1:
        return owners[0]
    return None


def tag_name(tag_id: int, directory: Optional[DirectoryKind] = None) -> str:
    """Return the registered name of a tag, or its hex id."""
    info = lookup(tag_id, directory)
    if info is None and directory is DirectoryKind.IFD1:
        # Thumbnail IFDs reuse the primary image tags
        info = lookup(tag_id, DirectoryKind.IFD0)
    if info is None:
        return f"0x{tag_id:04X}"
    return info.name
