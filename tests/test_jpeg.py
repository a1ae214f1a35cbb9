import io
import random
import struct

import pytest
from PIL import Image

from camstream.jpeg import JpegOptions, create_exif_data, encode_jpeg, jpeg_save, yuv_to_jpeg
from camstream.stream_info import PixelFormat, StreamInfo


def yuv420(width, height, y=None, u=128, v=128):
    if y is None:
        y_plane = bytes((x * 7 + r * 3) & 0xFF for r in range(height) for x in range(width))
    else:
        y_plane = bytes([y]) * (width * height)
    chroma = (width // 2) * (height // 2)
    return y_plane + bytes([u]) * chroma + bytes([v]) * chroma


def info420(width, height):
    return StreamInfo(width, height, width, PixelFormat.YUV420)


def app1(data):
    assert data[:4] == b"\xff\xd8\xff\xe1"
    length = int.from_bytes(data[4:6], "big")
    return data[6:6 + length - 2]


def ifd(tiff, offset):
    count = struct.unpack_from("<H", tiff, offset)[0]
    entries = {}
    for n in range(count):
        tag, fmt, comps, value = struct.unpack_from("<HHII", tiff, offset + 2 + 12 * n)
        entries[tag] = (fmt, comps, value)
    next_off = struct.unpack_from("<I", tiff, offset + 2 + 12 * count)[0]
    return entries, next_off


def test_same_size_jpeg_decodes():
    data = yuv_to_jpeg(yuv420(32, 16), info420(32, 16), 32, 16, 90)
    assert data[:2] == b"\xff\xd8"
    assert Image.open(io.BytesIO(data)).size == (32, 16)


def test_scaled_jpeg_has_requested_size():
    data = yuv_to_jpeg(yuv420(32, 16), info420(32, 16), 12, 10, 90)
    assert Image.open(io.BytesIO(data)).size == (12, 10)


def test_uniform_yuv420_decodes_to_grey():
    data = yuv_to_jpeg(yuv420(16, 16, y=100), info420(16, 16), 16, 16, 95)
    image = Image.open(io.BytesIO(data)).convert("RGB")
    for channel in image.getpixel((8, 8)):
        assert abs(channel - 100) <= 3


def test_uniform_yuyv_decodes_to_grey():
    width, height = 16, 8
    row = bytes([100, 128]) * width
    info = StreamInfo(width, height, 2 * width, PixelFormat.YUYV)
    data = yuv_to_jpeg(row * height, info, width, height, 95)
    image = Image.open(io.BytesIO(data)).convert("RGB")
    assert image.size == (width, height)
    for channel in image.getpixel((4, 4)):
        assert abs(channel - 100) <= 3


def test_unsupported_format_rejected():
    info = StreamInfo(4, 4, 12, PixelFormat.RGB888)
    with pytest.raises(ValueError):
        yuv_to_jpeg(bytes(48), info, 4, 4, 90)


def test_short_buffer_rejected():
    with pytest.raises(ValueError):
        yuv_to_jpeg(bytes(10), info420(16, 16), 8, 8, 90)


def test_higher_quality_gives_larger_file():
    rng = random.Random(1)
    width = height = 32
    mem = bytes(rng.randrange(256) for _ in range(width * height * 3 // 2))
    low = yuv_to_jpeg(mem, info420(width, height), width, height, 10)
    high = yuv_to_jpeg(mem, info420(width, height), width, height, 95)
    assert len(high) > len(low)


def test_odd_dimensions_rejected():
    info = StreamInfo(15, 16, 15, PixelFormat.YUV420)
    with pytest.raises(ValueError):
        encode_jpeg(bytes(400), info, {}, "cam", JpegOptions(thumb_quality=0))


def test_encoded_file_structure_and_exif():
    options = JpegOptions(thumb_quality=0)
    data = encode_jpeg(yuv420(32, 16), info420(32, 16), {"ExposureTime": 10000}, "cam", options)
    assert Image.open(io.BytesIO(data)).size == (32, 16)
    payload = app1(data)
    assert payload[:6] == b"Exif\0\0"
    tiff = payload[6:]
    ifd0, next_off = ifd(tiff, struct.unpack_from("<I", tiff, 4)[0])
    assert next_off == 0
    exif, _ = ifd(tiff, ifd0[0x8769][2])
    fmt, comps, off = exif[0x010F]
    assert tiff[off:off + comps] == b"Raspberry Pi"
    assert struct.unpack_from("<II", tiff, exif[0x829A][2]) == (10000, 1000000)


def test_iso_from_gains():
    options = JpegOptions(thumb_quality=0)
    data = encode_jpeg(yuv420(16, 16), info420(16, 16), {"AnalogueGain": 2.0}, "cam", options)
    tiff = app1(data)[6:]
    ifd0, _ = ifd(tiff, struct.unpack_from("<I", tiff, 4)[0])
    exif, _ = ifd(tiff, ifd0[0x8769][2])
    assert exif[0x8827][2] & 0xFFFF == 200


def test_thumbnail_offset_points_at_thumbnail():
    options = JpegOptions(thumb_width=8, thumb_height=6, thumb_quality=70)
    data = encode_jpeg(yuv420(32, 16), info420(32, 16), {}, "cam", options)
    tiff = app1(data)[6:]
    _, ifd1_off = ifd(tiff, struct.unpack_from("<I", tiff, 4)[0])
    assert ifd1_off != 0
    ifd1, _ = ifd(tiff, ifd1_off)
    offset = ifd1[0x0201][2]
    length = ifd1[0x0202][2]
    thumb = tiff[offset:offset + length]
    assert thumb[:2] == b"\xff\xd8"
    assert Image.open(io.BytesIO(thumb)).size == (8, 6)


def test_create_exif_data_without_thumbnail():
    exif, thumb = create_exif_data(yuv420(16, 16), info420(16, 16), {}, "cam", JpegOptions(thumb_quality=0))
    assert thumb == b""
    assert exif[:6] == b"Exif\0\0"


def test_user_exif_tags_applied():
    options = JpegOptions(thumb_quality=0, exif=["EXIF.Artist=someone"])
    data = encode_jpeg(yuv420(16, 16), info420(16, 16), {}, "cam", options)
    assert b"someone" in app1(data)


def test_bad_user_ifd_rejected():
    options = JpegOptions(thumb_quality=0, exif=["XXX.Artist=someone"])
    with pytest.raises(ValueError):
        encode_jpeg(yuv420(16, 16), info420(16, 16), {}, "cam", options)


def test_jpeg_save_writes_file(tmp_path):
    path = tmp_path / "out.jpg"
    jpeg_save(yuv420(16, 16), info420(16, 16), {}, str(path), "cam", JpegOptions(thumb_quality=0))
    data = path.read_bytes()
    assert data[:4] == b"\xff\xd8\xff\xe1"
    assert Image.open(io.BytesIO(data)).size == (16, 16)