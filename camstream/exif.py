"""EXIF tag storage, parsing of textual tag specifications and serialisation."""

from __future__ import annotations

import logging
import re
import struct
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, List, Optional, Sequence, Tuple

log = logging.getLogger(__name__)


class ExifFormat(IntEnum):
    """EXIF/TIFF value formats, numbered as in the file format."""

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


class Ifd(Enum):
    """The image file directories an EXIF block may hold."""

    IFD0 = "IFD0"
    IFD1 = "IFD1"
    EXIF = "EXIF"
    GPS = "GPS"
    INTEROPERABILITY = "EINT"


_CODES = {
    ExifFormat.BYTE: "B", ExifFormat.ASCII: "B", ExifFormat.SHORT: "H", ExifFormat.LONG: "I",
    ExifFormat.RATIONAL: "II", ExifFormat.SBYTE: "b", ExifFormat.UNDEFINED: "B",
    ExifFormat.SSHORT: "h", ExifFormat.SLONG: "i", ExifFormat.SRATIONAL: "ii",
    ExifFormat.FLOAT: "f", ExifFormat.DOUBLE: "d",
}
_SIGNED = {ExifFormat.SBYTE, ExifFormat.SSHORT, ExifFormat.SLONG, ExifFormat.SRATIONAL}
_RATIONALS = {ExifFormat.RATIONAL, ExifFormat.SRATIONAL}
_FLOATS = {ExifFormat.FLOAT, ExifFormat.DOUBLE}


def format_size(fmt: ExifFormat) -> int:
    return struct.calcsize("<" + _CODES[fmt])


F = ExifFormat
# name -> (tag id, format, components); components 0 means variable.
_TAGS: Dict[str, Tuple[int, Optional[ExifFormat], int]] = {
    "ImageWidth": (0x0100, F.LONG, 1),
    "ImageLength": (0x0101, F.LONG, 1),
    "Compression": (0x0103, F.SHORT, 1),
    "ImageDescription": (0x010E, F.ASCII, 0),
    "Make": (0x010F, F.ASCII, 0),
    "Model": (0x0110, F.ASCII, 0),
    "Orientation": (0x0112, F.SHORT, 1),
    "XResolution": (0x011A, F.RATIONAL, 1),
    "YResolution": (0x011B, F.RATIONAL, 1),
    "ResolutionUnit": (0x0128, F.SHORT, 1),
    "Software": (0x0131, F.ASCII, 0),
    "DateTime": (0x0132, F.ASCII, 20),
    "Artist": (0x013B, F.ASCII, 0),
    "JPEGInterchangeFormat": (0x0201, F.LONG, 1),
    "JPEGInterchangeFormatLength": (0x0202, F.LONG, 1),
    "YCbCrCoefficients": (0x0211, F.UNDEFINED, 0),
    "YCbCrPositioning": (0x0213, F.SHORT, 1),
    "Copyright": (0x8298, F.ASCII, 0),
    "ExposureTime": (0x829A, F.RATIONAL, 1),
    "FNumber": (0x829D, F.RATIONAL, 1),
    "ExposureProgram": (0x8822, F.SHORT, 1),
    "ISOSpeedRatings": (0x8827, F.SHORT, 1),
    "DateTimeOriginal": (0x9003, F.ASCII, 20),
    "DateTimeDigitized": (0x9004, F.ASCII, 20),
    "ShutterSpeedValue": (0x9201, F.SRATIONAL, 1),
    "ApertureValue": (0x9202, F.RATIONAL, 1),
    "BrightnessValue": (0x9203, F.SRATIONAL, 1),
    "ExposureBiasValue": (0x9204, F.SRATIONAL, 1),
    "MaxApertureValue": (0x9205, F.RATIONAL, 1),
    "SubjectDistance": (0x9206, F.RATIONAL, 1),
    "MeteringMode": (0x9207, F.SHORT, 1),
    "LightSource": (0x9208, F.SHORT, 1),
    "Flash": (0x9209, F.SHORT, 1),
    "FocalLength": (0x920A, F.RATIONAL, 1),
    "UserComment": (0x9286, F.UNDEFINED, 0),
    "ColorSpace": (0xA001, F.SHORT, 1),
    "PixelXDimension": (0xA002, F.LONG, 1),
    "PixelYDimension": (0xA003, F.LONG, 1),
    "ExposureMode": (0xA402, F.SHORT, 1),
    "WhiteBalance": (0xA403, F.SHORT, 1),
    "DigitalZoomRatio": (0xA404, F.RATIONAL, 1),
    "FocalLengthIn35mmFilm": (0xA405, F.SHORT, 1),
    "SceneCaptureType": (0xA406, F.SHORT, 1),
    "GPSLatitudeRef": (0x0001, F.ASCII, 2),
    "GPSLatitude": (0x0002, F.RATIONAL, 3),
    "GPSLongitudeRef": (0x0003, F.ASCII, 2),
    "GPSLongitude": (0x0004, F.RATIONAL, 3),
    "GPSAltitudeRef": (0x0005, F.BYTE, 1),
    "GPSAltitude": (0x0006, F.RATIONAL, 1),
}
_TAGS_BY_ID: Dict[int, Tuple[Optional[ExifFormat], int]] = {}
for _tag_id, _fmt, _count in _TAGS.values():
    _TAGS_BY_ID.setdefault(_tag_id, (_fmt, _count))

_EXCEPTIONS = {0x0211: (ExifFormat.RATIONAL, 3)}
_IFD_NAMES = {ifd.value: ifd for ifd in Ifd}


def _wrap(fmt: ExifFormat, value, bits: int):
    if fmt in _FLOATS:
        return float(value)
    mask = (1 << bits) - 1
    value = int(value) & mask
    if fmt in _SIGNED and value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def _pack(fmt: ExifFormat, values: Sequence) -> bytes:
    code = "<" + _CODES[fmt]
    bits = 8 * struct.calcsize("<" + _CODES[fmt][0])
    out = bytearray()
    for value in values:
        parts = value if fmt in _RATIONALS else (value,)
        out += struct.pack(code, *(_wrap(fmt, p, bits) for p in parts))
    return bytes(out)


@dataclass
class ExifEntry:
    """One tag with its format, component count and encoded data."""

    tag: int
    format: Optional[ExifFormat]
    components: int
    data: bytes = b""

    @property
    def values(self) -> List:
        if self.format is None:
            return []
        if self.format is ExifFormat.ASCII:
            return [self.data.decode("latin-1")]
        items = list(struct.iter_unpack("<" + _CODES[self.format], self.data))
        if self.format in _RATIONALS:
            return items
        return [item[0] for item in items]


_INT_RE = re.compile(r"\s*([+-]?\d+)")
_RATIONAL_RE = re.compile(r"\s*([+-]?\d+)/\s*([+-]?\d+)")


def parse_values(fmt: ExifFormat, text: str, components: int) -> List:
    """Read ``components`` comma separated values of format ``fmt`` from ``text``."""
    if fmt not in (F.SHORT, F.LONG, F.RATIONAL, F.SSHORT, F.SLONG, F.SRATIONAL):
        raise ValueError(f"cannot read EXIF values of format {fmt.name}")
    values: List = []
    pos = 0
    for _ in range(components):
        if pos >= len(text):
            raise ValueError("too few parameters for EXIF tag")
        if fmt in _RATIONALS:
            match = _RATIONAL_RE.match(text, pos)
            if not match:
                raise ValueError("failed to read EXIF rational")
            values.append((int(match.group(1)), int(match.group(2))))
        else:
            match = _INT_RE.match(text, pos)
            if not match:
                raise ValueError("failed to read EXIF integer")
            values.append(int(match.group(1)))
        pos = match.end() + 1  # allow a comma
    return values


def _ifd_size(entries: Sequence[ExifEntry]) -> int:
    extra = sum((len(e.data) + 1) & ~1 for e in entries if len(e.data) > 4)
    return 2 + 12 * len(entries) + 4 + extra


def _serialize_ifd(entries: Sequence[ExifEntry], offset: int, next_offset: int = 0) -> bytes:
    ordered = sorted(entries, key=lambda e: e.tag)
    head = bytearray(struct.pack("<H", len(ordered)))
    overflow = bytearray()
    data_start = offset + 2 + 12 * len(ordered) + 4
    for entry in ordered:
        head += struct.pack("<HHI", entry.tag, int(entry.format), entry.components)
        if len(entry.data) <= 4:
            head += entry.data.ljust(4, b"\0")
        else:
            head += struct.pack("<I", data_start + len(overflow))
            overflow += entry.data
            if len(overflow) & 1:
                overflow += b"\0"
    head += struct.pack("<I", next_offset)
    return bytes(head + overflow)


def _pointer(tag: int, offset: int) -> ExifEntry:
    return ExifEntry(tag, ExifFormat.LONG, 1, struct.pack("<I", offset))


@dataclass
class ExifData:
    """A collection of EXIF entries grouped by IFD."""

    ifds: Dict[Ifd, Dict[int, ExifEntry]] = field(init=False)

    def __init__(self) -> None:
        self.ifds = {ifd: {} for ifd in Ifd}

    def entry(self, ifd: Ifd, tag: int) -> ExifEntry:
        """Return the entry for ``tag`` in ``ifd``, creating it if needed."""
        content = self.ifds[ifd]
        if tag in content:
            return content[tag]
        fmt, components = _TAGS_BY_ID.get(tag, (None, 0))
        data = b""
        if fmt is not None and fmt not in (F.ASCII, F.UNDEFINED) and components:
            data = bytes(format_size(fmt) * components)
        created = ExifEntry(tag, fmt, components, data)
        content[tag] = created
        return created

    def set_ascii(self, ifd: Ifd, tag: int, text: str) -> ExifEntry:
        entry = self.entry(ifd, tag)
        entry.data = text.encode("latin-1", "replace")
        entry.components = len(entry.data)
        entry.format = ExifFormat.ASCII
        return entry

    def set_values(self, ifd: Ifd, tag: int, fmt: ExifFormat, values: Sequence) -> ExifEntry:
        entry = self.entry(ifd, tag)
        entry.format = fmt
        entry.components = len(values)
        entry.data = _pack(fmt, values)
        return entry

    def read_tag(self, spec: str) -> Optional[ExifEntry]:
        """Apply a ``IFD.Tag=value`` specification; return the entry or None if ignored."""
        match = re.match(r"([^.]{1,4})\.([^=]{1,127})=", spec)
        if not match:
            raise ValueError("failed to read EXIF IFD and tag")
        ifd_name, tag_name = match.group(1), match.group(2)
        if ifd_name not in _IFD_NAMES:
            raise ValueError(f"bad IFD name {ifd_name}")
        ifd = _IFD_NAMES[ifd_name]
        if tag_name not in _TAGS:
            log.warning("no EXIF tag %s found - ignoring", tag_name)
            return None
        tag_id = _TAGS[tag_name][0]
        entry = self.entry(ifd, tag_id)
        if entry.format is None:
            log.warning("format for EXIF tag %s unknown - ignoring", tag_name)
            return None
        if entry.format is ExifFormat.UNDEFINED:
            if tag_id in _EXCEPTIONS:
                entry.format, entry.components = _EXCEPTIONS[tag_id]
                entry.data = b""
            else:
                log.warning("format for tag %s undefined - treating as ASCII", tag_name)
                entry.format = ExifFormat.ASCII
        text = spec[match.end():]
        if entry.format is ExifFormat.ASCII:
            return self.set_ascii(ifd, tag_id, text)
        if entry.components == 0 or not entry.data:
            if entry.components == 0:
                entry.components = text.count(",") + 1
        try:
            values = parse_values(entry.format, text, entry.components)
        except ValueError as exc:
            raise ValueError(f"{exc} ({tag_name})") from None
        entry.data = _pack(entry.format, values)
        return entry

    def to_bytes(self) -> bytes:
        """Serialise as an APP1 payload: ``Exif\\0\\0`` followed by a TIFF structure."""
        ifd0 = list(self.ifds[Ifd.IFD0].values())
        exif = list(self.ifds[Ifd.EXIF].values())
        gps = list(self.ifds[Ifd.GPS].values())
        interop = list(self.ifds[Ifd.INTEROPERABILITY].values())
        ifd1 = list(self.ifds[Ifd.IFD1].values())

        def build(offsets: Dict[str, int]):
            e = exif + ([_pointer(0xA005, offsets["interop"])] if interop else [])
            z = ifd0 + ([_pointer(0x8769, offsets["exif"])] if e else [])
            z += [_pointer(0x8825, offsets["gps"])] if gps else []
            return z, e

        zero = {"exif": 0, "interop": 0, "gps": 0}
        z, e = build(zero)
        offsets = {"ifd0": 8}
        offsets["exif"] = offsets["ifd0"] + _ifd_size(z)
        offsets["interop"] = offsets["exif"] + (_ifd_size(e) if e else 0)
        offsets["gps"] = offsets["interop"] + (_ifd_size(interop) if interop else 0)
        offsets["ifd1"] = offsets["gps"] + (_ifd_size(gps) if gps else 0)
        z, e = build(offsets)

        out = bytearray(b"II*\0" + struct.pack("<I", 8))
        out += _serialize_ifd(z, offsets["ifd0"], offsets["ifd1"] if ifd1 else 0)
        if e:
            out += _serialize_ifd(e, offsets["exif"])
        if interop:
            out += _serialize_ifd(interop, offsets["interop"])
        if gps:
            out += _serialize_ifd(gps, offsets["gps"])
        if ifd1:
            out += _serialize_ifd(ifd1, offsets["ifd1"])
        return b"Exif\0\0" + bytes(out)