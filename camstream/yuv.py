"""Save uncompressed YUV420 or RGB image data."""

from __future__ import annotations

from typing import Iterator

from .stream_info import PixelFormat, StreamInfo, open_output

_RGB_FORMATS = frozenset(
    {PixelFormat.BGR888, PixelFormat.RGB888, PixelFormat.BGR161616, PixelFormat.RGB161616}
)


def _rows(data: bytes, offset: int, stride: int, width: int, count: int) -> Iterator[bytes]:
    for j in range(count):
        start = offset + j * stride
        row = data[start:start + width]
        if len(row) < width:
            raise ValueError("image buffer too small")
        yield row


def _check_even(info: StreamInfo) -> None:
    if info.width & 1 or info.height & 1:
        raise ValueError("both width and height must be even")


def _yuv420(data: bytes, info: StreamInfo, encoding: str) -> bytes:
    if encoding != "yuv420":
        raise ValueError(f"output format {encoding} not supported")
    _check_even(info)
    w, h, stride = info.width, info.height, info.stride
    u_offset = stride * h
    w2, h2, stride2 = w // 2, h // 2, stride // 2
    v_offset = u_offset + stride2 * h2
    return b"".join(
        [
            *_rows(data, 0, stride, w, h),
            *_rows(data, u_offset, stride2, w2, h2),
            *_rows(data, v_offset, stride2, w2, h2),
        ]
    )


def _yuyv(data: bytes, info: StreamInfo, encoding: str) -> bytes:
    if encoding != "yuv420":
        raise ValueError(f"output format {encoding} not supported")
    _check_even(info)
    rows = list(_rows(data, 0, info.stride, 2 * info.width, info.height))
    y_plane = b"".join(row[0::2] for row in rows)
    u_plane = b"".join(row[1::4] for row in rows[0::2])
    v_plane = b"".join(row[3::4] for row in rows[0::2])
    return y_plane + u_plane + v_plane


def _rgb(data: bytes, info: StreamInfo, encoding: str) -> bytes:
    if encoding not in ("rgb24", "rgb48"):
        raise ValueError("encoding should be set to rgb")
    row_bytes = 3 * info.width * (2 if encoding == "rgb48" else 1)
    return b"".join(_rows(data, 0, info.stride, row_bytes, info.height))


def encode_yuv(mem, info: StreamInfo, encoding: str) -> bytes:
    """Return the tightly packed image data for the requested ``encoding``."""
    data = bytes(mem)
    if info.pixel_format is PixelFormat.YUYV:
        return _yuyv(data, info, encoding)
    if info.pixel_format is PixelFormat.YUV420:
        return _yuv420(data, info, encoding)
    if info.pixel_format in _RGB_FORMATS:
        return _rgb(data, info, encoding)
    raise ValueError("unrecognised YUV/RGB save format")


def yuv_save(mem, info: StreamInfo, filename: str, encoding: str) -> None:
    """Write the uncompressed image to ``filename`` (``"-"`` for stdout)."""
    data = encode_yuv(mem, info, encoding)
    with open_output(filename) as fp:
        fp.write(data)