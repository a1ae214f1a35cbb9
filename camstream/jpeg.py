"""Encode YUV images as JPEG files carrying EXIF data and a thumbnail."""

from __future__ import annotations

import io
import logging
import time
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Tuple

from PIL import Image

from .exif import ExifData, ExifFormat, Ifd
from .stream_info import PixelFormat, StreamInfo, open_output

log = logging.getLogger(__name__)

MAKE_STRING = "Raspberry Pi"
SOFTWARE_STRING = "rpicam-apps"

_EXIF_HEADER = b"\xff\xd8\xff\xe1"
_MAX_THUMB_SIZE = 60000  # the whole EXIF block must stay below 64K

_TAG_IMAGE_WIDTH = 0x0100
_TAG_IMAGE_LENGTH = 0x0101
_TAG_COMPRESSION = 0x0103
_TAG_MAKE = 0x010F
_TAG_MODEL = 0x0110
_TAG_SOFTWARE = 0x0131
_TAG_DATE_TIME = 0x0132
_TAG_THUMB_OFFSET = 0x0201
_TAG_THUMB_LENGTH = 0x0202
_TAG_EXPOSURE_TIME = 0x829A
_TAG_ISO_SPEED = 0x8827
_TAG_DATE_TIME_ORIGINAL = 0x9003
_TAG_DATE_TIME_DIGITIZED = 0x9004
_TAG_SUBJECT_DISTANCE = 0x9206


@dataclass
class JpegOptions:
    """Settings for still JPEG output."""

    quality: int = 93
    restart: int = 0
    thumb_width: int = 320
    thumb_height: int = 240
    thumb_quality: int = 70
    exif: List[str] = field(default_factory=list)


def _plane(data: bytes, size: Tuple[int, int]) -> Image.Image:
    return Image.frombytes("L", size, bytes(data))


def _compress(planes: List[Image.Image], quality: int, restart: int) -> bytes:
    image = Image.merge("YCbCr", planes)
    params = {"quality": max(1, min(100, int(quality))), "subsampling": 2}
    if restart:
        params["restart_marker_blocks"] = restart
    out = io.BytesIO()
    image.save(out, format="JPEG", **params)
    return out.getvalue()


def _rows(data: bytes, offset: int, stride: int, width: int, count: int) -> bytes:
    rows = [data[offset + j * stride:offset + j * stride + width] for j in range(count)]
    if any(len(row) < width for row in rows):
        raise ValueError("image buffer too small")
    return b"".join(rows)


def _yuv420_planes(data: bytes, info: StreamInfo, width: int, height: int) -> List[Image.Image]:
    stride2 = info.stride // 2
    u_off = info.stride * info.height
    v_off = u_off + stride2 * (info.height // 2)

    if (width, height) == (info.width, info.height) and not (width & 1 or height & 1):
        half = (width // 2, height // 2)
        y_plane = _plane(_rows(data, 0, info.stride, width, height), (width, height))
        chroma = [
            _plane(_rows(data, off, stride2, half[0], half[1]), half).resize((width, height), Image.NEAREST)
            for off in (u_off, v_off)
        ]
        return [y_plane, *chroma]

    h_idx = [(i * info.width) // width for i in range(width)]
    c_idx = [o // 2 for o in h_idx]
    y, u, v = bytearray(), bytearray(), bytearray()
    try:
        for row in range(height):
            y_base = ((row * info.height) // height) * info.stride
            c_base = (((row // 2) * info.height) // height) * stride2
            y += bytes(data[y_base + o] for o in h_idx)
            u += bytes(data[u_off + c_base + o] for o in c_idx)
            v += bytes(data[v_off + c_base + o] for o in c_idx)
    except IndexError:
        raise ValueError("image buffer too small") from None
    return [_plane(p, (width, height)) for p in (y, u, v)]


def _yuyv_planes(data: bytes, info: StreamInfo, width: int, height: int) -> List[Image.Image]:
    y_idx = [(i * info.width) // width * 2 for i in range(width)]
    u_idx = [(o & ~3) + 1 for o in y_idx]
    v_idx = [(o & ~3) + 3 for o in y_idx]
    y, u, v = bytearray(), bytearray(), bytearray()
    try:
        for row in range(height):
            base = ((row * info.height) // height) * info.stride
            y += bytes(data[base + o] for o in y_idx)
            u += bytes(data[base + o] for o in u_idx)
            v += bytes(data[base + o] for o in v_idx)
    except IndexError:
        raise ValueError("image buffer too small") from None
    return [_plane(p, (width, height)) for p in (y, u, v)]


def _yuv_to_jpeg(mem, info: StreamInfo, width: int, height: int, quality: int, restart: int) -> bytes:
    if width <= 0 or height <= 0:
        raise ValueError("output dimensions must be positive")
    data = bytes(mem)
    if info.pixel_format is PixelFormat.YUYV:
        planes = _yuyv_planes(data, info, width, height)
    elif info.pixel_format is PixelFormat.YUV420:
        planes = _yuv420_planes(data, info, width, height)
    else:
        raise ValueError("unsupported YUV format in JPEG encode")
    return _compress(planes, quality, restart)


def yuv_to_jpeg(mem, info: StreamInfo, width: int, height: int, quality: int) -> bytes:
    """Compress a YUYV or YUV420 buffer to a JPEG of the given size."""
    return _yuv_to_jpeg(mem, info, width, height, quality, 0)


def create_exif_data(
    mem, info: StreamInfo, metadata: Mapping[str, Any], cam_model: str, options: JpegOptions
) -> Tuple[bytes, bytes]:
    """Build the EXIF APP1 payload and the thumbnail JPEG (empty if none)."""
    exif = ExifData()
    exif.set_ascii(Ifd.EXIF, _TAG_MAKE, MAKE_STRING)
    exif.set_ascii(Ifd.EXIF, _TAG_MODEL, cam_model)
    exif.set_ascii(Ifd.EXIF, _TAG_SOFTWARE, SOFTWARE_STRING)
    now = time.strftime("%Y:%m:%d %H:%M:%S", time.localtime())
    for tag in (_TAG_DATE_TIME, _TAG_DATE_TIME_ORIGINAL, _TAG_DATE_TIME_DIGITIZED):
        exif.set_ascii(Ifd.EXIF, tag, now)

    exposure = metadata.get("ExposureTime")
    if exposure is not None:
        log.debug("Exposure time: %s", exposure)
        exif.set_values(Ifd.EXIF, _TAG_EXPOSURE_TIME, ExifFormat.RATIONAL, [(int(exposure), 1000000)])
    analogue = metadata.get("AnalogueGain")
    if analogue is not None:
        digital = metadata.get("DigitalGain")
        gain = analogue * (digital if digital is not None else 1.0)
        log.debug("Ag %s Dg %s Total %s", analogue, digital, gain)
        exif.set_values(Ifd.EXIF, _TAG_ISO_SPEED, ExifFormat.SHORT, [int(100 * gain)])
    lens = metadata.get("LensPosition")
    if lens is not None:
        exif.set_values(Ifd.EXIF, _TAG_SUBJECT_DISTANCE, ExifFormat.RATIONAL, [(1000, int(1000.0 * lens))])

    for spec in options.exif:
        log.debug("Processing EXIF item: %s", spec)
        exif.read_tag(spec)

    thumb = b""
    if options.thumb_quality:
        log.debug("Thumbnail dimensions are %d x %d", options.thumb_width, options.thumb_height)
        exif.set_values(Ifd.IFD1, _TAG_IMAGE_WIDTH, ExifFormat.LONG, [options.thumb_width])
        exif.set_values(Ifd.IFD1, _TAG_IMAGE_LENGTH, ExifFormat.LONG, [options.thumb_height])
        exif.set_values(Ifd.IFD1, _TAG_COMPRESSION, ExifFormat.SHORT, [6])
        # Placeholders occupy the right amount of space; they are filled in below.
        exif.set_values(Ifd.IFD1, _TAG_THUMB_OFFSET, ExifFormat.LONG, [0])
        exif.set_values(Ifd.IFD1, _TAG_THUMB_LENGTH, ExifFormat.LONG, [0])
        exif_len = len(exif.to_bytes())

        for quality in range(options.thumb_quality, 0, -5):
            thumb = yuv_to_jpeg(mem, info, options.thumb_width, options.thumb_height, quality)
            if len(thumb) < _MAX_THUMB_SIZE:
                break
        else:
            raise ValueError("failed to make acceptable thumbnail")
        log.debug("Thumbnail size %d", len(thumb))

        # The thumbnail follows the EXIF data; offsets count from the TIFF header.
        exif.set_values(Ifd.IFD1, _TAG_THUMB_OFFSET, ExifFormat.LONG, [exif_len - 6])
        exif.set_values(Ifd.IFD1, _TAG_THUMB_LENGTH, ExifFormat.LONG, [len(thumb)])

    return exif.to_bytes(), thumb


def _image_body(jpeg: bytes) -> bytes:
    """Strip the start-of-image marker and any JFIF APP0 segment."""
    if jpeg[:2] != b"\xff\xd8":
        raise ValueError("encoder produced invalid JPEG data")
    pos = 2
    if jpeg[2:4] == b"\xff\xe0":
        pos = 4 + int.from_bytes(jpeg[4:6], "big")
    return jpeg[pos:]


def encode_jpeg(mem, info: StreamInfo, metadata: Mapping[str, Any], cam_model: str, options: JpegOptions) -> bytes:
    """Return the complete JPEG file, with EXIF data and optional thumbnail."""
    if info.width & 1 or info.height & 1:
        raise ValueError("both width and height must be even")
    exif, thumb = create_exif_data(mem, info, metadata, cam_model, options)
    jpeg = _yuv_to_jpeg(mem, info, info.width, info.height, options.quality, options.restart)
    log.debug("JPEG size is %d", len(jpeg))
    log.debug("EXIF data len %d", len(exif))
    segment_len = len(exif) + len(thumb) + 2
    if segment_len > 0xFFFF:
        raise ValueError("EXIF data too large")
    return b"".join((_EXIF_HEADER, segment_len.to_bytes(2, "big"), exif, thumb, _image_body(jpeg)))


def jpeg_save(
    mem, info: StreamInfo, metadata: Mapping[str, Any], filename: str, cam_model: str, options: JpegOptions
) -> None:
    """Encode ``mem`` as JPEG and write it to ``filename`` (``"-"`` for stdout)."""
    data = encode_jpeg(mem, info, metadata, cam_model, options)
    with open_output(filename) as fp:
        fp.write(data)