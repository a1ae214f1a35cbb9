import pytest

from camstream.stream_info import PixelFormat, StreamInfo
from camstream.yuv import encode_yuv, yuv_save


def test_yuv420_tight_is_unchanged():
    data = bytes(range(12))
    info = StreamInfo(4, 2, 4, PixelFormat.YUV420)
    assert encode_yuv(data, info, "yuv420") == data


def test_yuv420_strips_padding():
    y0, y1 = b"\x01\x02\x03\x04", b"\x05\x06\x07\x08"
    u, v = b"\x10\x11", b"\x20\x21"
    pad = b"\xff\xff"
    data = y0 + pad + y1 + pad + u + b"\xff" + v + b"\xff"
    info = StreamInfo(4, 2, 6, PixelFormat.YUV420)
    assert encode_yuv(data, info, "yuv420") == y0 + y1 + u + v


def test_yuyv_to_planar():
    data = bytes([10, 20, 11, 30, 12, 21, 13, 31])
    info = StreamInfo(2, 2, 4, PixelFormat.YUYV)
    assert encode_yuv(data, info, "yuv420") == bytes([10, 11, 12, 13, 20, 30])


def test_rgb24_and_rgb48_rows():
    rows = [bytes(range(r * 16, r * 16 + 12)) + b"\xee" * 4 for r in range(2)]
    data = b"".join(rows)
    info24 = StreamInfo(2, 2, 16, PixelFormat.RGB888)
    assert encode_yuv(data, info24, "rgb24") == rows[0][:6] + rows[1][:6]
    info48 = StreamInfo(2, 2, 16, PixelFormat.RGB161616)
    assert encode_yuv(data, info48, "rgb48") == rows[0][:12] + rows[1][:12]


def test_odd_dimensions_rejected():
    with pytest.raises(ValueError, match="even"):
        encode_yuv(bytes(64), StreamInfo(3, 2, 4, PixelFormat.YUV420), "yuv420")


def test_bad_encoding_rejected():
    with pytest.raises(ValueError, match="not supported"):
        encode_yuv(bytes(64), StreamInfo(4, 2, 4, PixelFormat.YUV420), "rgb24")
    with pytest.raises(ValueError, match="rgb"):
        encode_yuv(bytes(64), StreamInfo(2, 2, 6, PixelFormat.BGR888), "yuv420")


def test_unrecognised_format_rejected():
    with pytest.raises(ValueError, match="unrecognised"):
        encode_yuv(bytes(64), StreamInfo(4, 2, 8, PixelFormat.SRGGB16), "yuv420")


def test_save_matches_encode(tmp_path):
    data = bytes(range(12))
    info = StreamInfo(4, 2, 4, PixelFormat.YUV420)
    path = tmp_path / "img.yuv"
    yuv_save(data, info, str(path), "yuv420")
    assert path.read_bytes() == data