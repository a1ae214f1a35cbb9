"""Choose a video encoder by codec name."""

from __future__ import annotations

from typing import Optional

from .encoder import Encoder, InputDone, OutputReady
from .mjpeg_encoder import MjpegEncoder
from .null_encoder import NullEncoder


def create_encoder(
    codec: str,
    input_done: Optional[InputDone] = None,
    output_ready: Optional[OutputReady] = None,
    quality: int = 93,
) -> Encoder:
    """Create the encoder for ``codec`` (compared without regard to case)."""
    name = codec.lower()
    if name == "yuv420":
        return NullEncoder(input_done, output_ready)
    if name == "h264":
        # No hardware H.264 encoder and no software fallback are available.
        raise RuntimeError("Unable to find an appropriate H.264 codec")
    if name == "mjpeg":
        return MjpegEncoder(input_done, output_ready, quality)
    raise ValueError(f"Unrecognised codec {codec}")