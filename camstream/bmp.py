"""Write RGB images as uncompressed 24-bit BMP files."""

from __future__ import annotations

import logging
import struct

from .stream_info import PixelFormat, StreamInfo, open_output

log = logging.getLogger(__name__)

_FILE_HEADER = struct.Struct("<2sIHHI")
_IMAGE_HEADER = struct.Struct("<IIiHHIIIIII")
_HEADERS_SIZE = _FILE_HEADER.size + _IMAGE_HEADER.size


def encode_bmp(mem, info: StreamInfo) -> bytes:
    """Return the BMP file contents for an RGB888 buffer."""
    if info.pixel_format is not PixelFormat.RGB888:
        raise ValueError("pixel format for bmp should be RGB")

    line = info.width * 3
    pitch = (line + 3) & ~3  # rows are padded to multiples of 4 bytes
    padding = bytes(pitch - line)
    filesize = _HEADERS_SIZE + info.height * pitch
    view = memoryview(mem).cast("B")

    parts = [
        _FILE_HEADER.pack(b"BM", filesize, 0, 0, _HEADERS_SIZE),
        # Negative height makes the image come out the right way up.
        _IMAGE_HEADER.pack(_IMAGE_HEADER.size, info.width, -info.height, 1, 24, 0, 0, 100000, 100000, 0, 0),
    ]
    for row in range(info.height):
        start = row * info.stride
        chunk = view[start:start + line]
        if len(chunk) < line:
            raise ValueError(f"failed to write BMP file, row {row}")
        parts.append(bytes(chunk))
        parts.append(padding)
    return b"".join(parts)


def bmp_save(mem, info: StreamInfo, filename: str) -> None:
    """Encode ``mem`` as BMP and write it to ``filename`` (``"-"`` for stdout)."""
    data = encode_bmp(mem, info)
    with open_output(filename) as fp:
        fp.write(data)
    log.debug("Wrote %d bytes to BMP file", len(data))