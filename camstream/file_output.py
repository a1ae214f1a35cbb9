"""Write encoded video to files, optionally split into segments."""

from __future__ import annotations

import logging
import sys
from typing import BinaryIO, Optional

from .output import Flag, Output, OutputOptions

log = logging.getLogger(__name__)

_MAX_FILENAME = 255


def _filename(pattern: str, count: int) -> str:
    try:
        name = pattern % count
    except TypeError:
        try:
            name = pattern % ()
        except (TypeError, ValueError):
            raise ValueError("failed to generate filename") from None
    except ValueError:
        raise ValueError("failed to generate filename") from None
    return name[:_MAX_FILENAME]


class FileOutput(Output):
    """Write buffers to a file; the name may hold a ``%d`` style counter."""

    def __init__(self, options: Optional[OutputOptions] = None) -> None:
        super().__init__(options)
        self._fp: Optional[BinaryIO] = None
        self._count = 0
        self._file_start_time_ms = 0

    def output_buffer(self, mem, timestamp_us: int, flags: Flag) -> None:
        opts = self.options
        # A new file starts when a full segment reaches a keyframe, or when
        # recording restarts in split mode.
        if (
            self._fp is None
            or (opts.segment and flags & Flag.KEYFRAME
                and timestamp_us // 1000 - self._file_start_time_ms > opts.segment)
            or (opts.split and flags & Flag.RESTART)
        ):
            self._close_file()
            self._open_file(timestamp_us)

        data = bytes(mem)
        log.debug("FileOutput: output buffer size %d", len(data))
        if self._fp is not None and data:
            self._fp.write(data)
            if opts.flush:
                self._fp.flush()

    def _open_file(self, timestamp_us: int) -> None:
        opts = self.options
        if opts.output == "-":
            self._fp = sys.stdout.buffer
        elif opts.output:
            name = _filename(opts.output, self._count)
            self._count += 1
            if opts.wrap:
                self._count %= opts.wrap
            self._fp = open(name, "wb")
            log.debug("FileOutput: opened output file %s", name)
            self._file_start_time_ms = timestamp_us // 1000

    def _close_file(self) -> None:
        if self._fp is None:
            return
        if self._fp is sys.stdout.buffer:
            self._fp.flush()
        else:
            self._fp.close()
        self._fp = None

    def close(self) -> None:
        if self.closed:
            return
        self._close_file()
        super().close()