"""Still image writers (BMP, YUV, JPEG with EXIF), frame encoders and video stream outputs."""

__version__ = "0.1.0"