# camstream

Building blocks for camera capture pipelines: still image writers, frame
encoders and outputs for encoded video streams.

## Installation

```
pip install camstream
```

To run the test suite:

```
pip install "camstream[test]"
pytest
```

## Still images

Every writer takes the frame as one bytes-like buffer (`mem`) together with a
`StreamInfo` from `camstream.stream_info`. A `StreamInfo` gives the width,
height, stride (bytes per row) and `PixelFormat`. `open_output` opens the
target file for binary writing; the name `-` stands for standard output.

- `camstream.bmp`: `encode_bmp` returns, and `bmp_save` writes, an RGB888
  frame as a 24-bit BMP file.
- `camstream.yuv`: `encode_yuv` and `yuv_save` write uncompressed planar
  YUV420 from YUV420 or YUYV input when the encoding is `yuv420`. For
  RGB888, BGR888, RGB161616 and BGR161616 input they write packed rows with
  the encoding `rgb24` or `rgb48`. Width and height must be even for the YUV
  formats.
- `camstream.jpeg`: `encode_jpeg` and `jpeg_save` write YUV420 or YUYV frames
  as JPEG files. Each file carries an EXIF block (make, model, software,
  dates, and exposure time, ISO and subject distance taken from the metadata
  keys `ExposureTime`, `AnalogueGain`, `DigitalGain` and `LensPosition`).
  An optional thumbnail is also included. These are set through `JpegOptions`
  (`quality`, `restart`, `thumb_width`, `thumb_height`, `thumb_quality`,
  `exif`). `yuv_to_jpeg` compresses a frame to a JPEG of any size.
- `camstream.exif`: `ExifData` holds EXIF entries by `Ifd` and serialises
  them with `to_bytes`. `ExifData.read_tag` applies extra tags given as
  strings such as `IFD0.Artist=someone` or `EXIF.ExposureTime=1/100`. The IFD
  names are `IFD0`, `IFD1`, `EXIF`, `GPS` and `EINT`.
- `camstream.colour_matrix`: `Matrix`, a 3x3 matrix with transpose,
  cofactors, adjugate, determinant, inverse and multiplication.

```python
from camstream.stream_info import PixelFormat, StreamInfo
from camstream.bmp import bmp_save

info = StreamInfo(width=4, height=2, stride=12, pixel_format=PixelFormat.RGB888)
bmp_save(bytes(24), info, "frame.bmp")
```

## Encoders

An encoder takes two callbacks. `input_done()` is called when the encoder has
finished with an input buffer. `output_ready(data, timestamp_us, keyframe)` is
called for each encoded frame. Frames are passed in with
`encode_buffer(mem, info, timestamp_us)`. Encoders are context managers.
`close` waits for queued frames to be delivered, then re-raises the first
error that a callback or worker raised.

- `NullEncoder` passes frames through unchanged, each as a keyframe.
- `MjpegEncoder` encodes frames as JPEG on four worker threads and hands the
  results back in their original order.
- `camstream.codecs.create_encoder` picks an encoder from a codec name:
  `yuv420` or `mjpeg`, case ignored. The name `h264` raises `RuntimeError`
  and any other name raises `ValueError`.

## Outputs

`Output` objects in `camstream.output` take encoded frames through
`output_ready(mem, timestamp_us, keyframe)`. They pause and resume on
`signal`. After a restart they wait for a keyframe, and they keep timestamps
continuous across pauses. They can also write a timestamp file (`save_pts`)
and per-frame metadata, queued with `metadata_ready`, in `txt` or `json`
format. All of this is configured with `OutputOptions`. The base `Output`
writes no video.

- `FileOutput` writes to `options.output`, which may contain a `%d` style
  counter. With `segment` (milliseconds) it starts a new file at the next
  keyframe once a segment is full. With `split` it starts one whenever
  recording restarts. `wrap` limits the counter.
- `CircularOutput` keeps the most recent frames in a `CircularBuffer` of
  `options.circular` megabytes. On close it writes them out, starting from
  the first keyframe.

## What the package does not do

It has no PNG writer and no raw Bayer or DNG output. It has no H.264 encoder
and no network output. Nothing chooses an output class from a set of options;
create `FileOutput`, `CircularOutput` or `Output` directly. It does not talk
to a camera: frames must be supplied by the caller.