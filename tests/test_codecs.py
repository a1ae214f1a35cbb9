import pytest

from camstream.codecs import create_encoder
from camstream.mjpeg_encoder import MjpegEncoder
from camstream.null_encoder import NullEncoder
from camstream.stream_info import PixelFormat, StreamInfo


def test_yuv420_passes_frames_through():
    outputs = []
    encoder = create_encoder("YUV420", output_ready=lambda d, t, k: outputs.append((d, t, k)))
    with encoder:
        encoder.encode_buffer(b"abc", StreamInfo(2, 2, 2, PixelFormat.YUV420), 10)
    assert isinstance(encoder, NullEncoder)
    assert outputs == [(b"abc", 10, True)]


def test_mjpeg_produces_jpeg_frames():
    outputs = []
    info = StreamInfo(16, 16, 16, PixelFormat.YUV420)
    encoder = create_encoder("MJPEG", output_ready=lambda d, t, k: outputs.append((d, t, k)), quality=50)
    with encoder:
        encoder.encode_buffer(bytes(16 * 16 * 3 // 2), info, 7)
    assert isinstance(encoder, MjpegEncoder)
    assert encoder.quality == 50
    assert len(outputs) == 1
    assert outputs[0][0][:2] == b"\xff\xd8"
    assert outputs[0][1:] == (7, True)


def test_h264_without_hardware_fails():
    with pytest.raises(RuntimeError, match="H.264"):
        create_encoder("h264")


@pytest.mark.parametrize("codec", ["libav", "vp9", ""])
def test_unrecognised_codec(codec):
    with pytest.raises(ValueError, match="Unrecognised codec"):
        create_encoder(codec)