"""Keep recent frames in a circular buffer and write them out on close."""

from __future__ import annotations

import logging
import struct
import sys
from typing import Optional

from .output import Flag, Output, OutputOptions

log = logging.getLogger(__name__)

ALIGN = 16  # frames are aligned to this many bytes within the buffer
_HEADER = struct.Struct("<I?3xq")  # length, keyframe, timestamp: 16 bytes


def _aligned(n: int) -> int:
    return (n + ALIGN - 1) & ~(ALIGN - 1)


class CircularBuffer:
    """A fixed-size byte ring with separate read and write positions."""

    def __init__(self, size: int) -> None:
        if size < 2:
            raise ValueError("circular buffer size must be at least 2 bytes")
        self.size = size
        self._buf = bytearray(size)
        self._rptr = 0
        self._wptr = 0

    def is_empty(self) -> bool:
        return self._rptr == self._wptr

    def available(self) -> int:
        """Number of bytes that can be written without overwriting unread data."""
        if self._wptr == self._rptr:
            return self.size - 1
        return (self.size - self._wptr + self._rptr) % self.size - 1

    def skip(self, n: int) -> None:
        self._rptr = (self._rptr + n) % self.size

    def read(self, n: int) -> bytes:
        parts = []
        if self._rptr + n >= self.size:
            first = self.size - self._rptr
            parts.append(bytes(self._buf[self._rptr:]))
            n -= first
            self._rptr = 0
        parts.append(bytes(self._buf[self._rptr:self._rptr + n]))
        self._rptr += n
        return b"".join(parts)

    def pad(self, n: int) -> None:
        self._wptr = (self._wptr + n) % self.size

    def write(self, data) -> None:
        view = memoryview(data).cast("B")
        if self._wptr + len(view) >= self.size:
            first = self.size - self._wptr
            self._buf[self._wptr:] = view[:first]
            view = view[first:]
            self._wptr = 0
        self._buf[self._wptr:self._wptr + len(view)] = view
        self._wptr += len(view)


class CircularOutput(Output):
    """Hold frames in a buffer of ``options.circular`` megabytes; save them on close.

    Saving starts at the first keyframe still in the buffer.
    """

    def __init__(self, options: Optional[OutputOptions] = None) -> None:
        opts = options or OutputOptions()
        self._cb = CircularBuffer(opts.circular << 20)
        super().__init__(opts)
        try:
            if opts.output == "-":
                self._fp = sys.stdout.buffer
            elif opts.output:
                self._fp = open(opts.output, "wb")
            else:
                raise ValueError("could not open output file")
        except BaseException:
            super().close()
            raise

    def output_buffer(self, mem, timestamp_us: int, flags: Flag) -> None:
        data = memoryview(mem).cast("B")
        size = len(data)
        pad = (ALIGN - size) & (ALIGN - 1)
        while size + pad + _HEADER.size > self._cb.available():
            if self._cb.is_empty():
                raise ValueError("circular buffer too small")
            length, _, _ = _HEADER.unpack(self._cb.read(_HEADER.size))
            self._cb.skip(_aligned(length))
        self._cb.write(_HEADER.pack(size, bool(flags & Flag.KEYFRAME), timestamp_us))
        self._cb.write(data)
        self._cb.pad(pad)

    def timestamp_ready(self, timestamp: int) -> None:
        """Timestamps are written only when the buffer is saved."""

    def close(self) -> None:
        if self.closed:
            return
        total = frames = 0
        seen_keyframe = False
        while not self._cb.is_empty():
            length, keyframe, timestamp = _HEADER.unpack(self._cb.read(_HEADER.size))
            seen_keyframe |= keyframe
            if seen_keyframe:
                self._fp.write(self._cb.read(length))
                self._cb.skip((ALIGN - length) & (ALIGN - 1))
                total += length
                if self._timestamps_file is not None:
                    Output.timestamp_ready(self, timestamp)
                frames += 1
            else:
                self._cb.skip(_aligned(length))
        if self._fp is sys.stdout.buffer:
            self._fp.flush()
        else:
            self._fp.close()
        log.info("Wrote %d bytes (%d frames)", total, frames)
        super().close()