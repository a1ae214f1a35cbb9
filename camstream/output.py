"""Video stream output: keyframe gating, timestamps and metadata files."""

from __future__ import annotations

import sys
from collections import deque
from dataclasses import dataclass
from enum import Enum, IntFlag
from typing import Any, Deque, Mapping, Optional, TextIO


class Flag(IntFlag):
    """Per-buffer flags passed to :meth:`Output.output_buffer`."""

    NONE = 0
    KEYFRAME = 1
    RESTART = 2


class _State(Enum):
    DISABLED = 0
    WAITING_KEYFRAME = 1
    RUNNING = 2


@dataclass
class OutputOptions:
    """Settings that control where and how encoded video is written."""

    output: str = ""
    codec: str = "h264"
    hardware_h264: bool = False
    save_pts: str = ""
    metadata: str = ""
    metadata_format: str = "json"
    pause: bool = False
    flush: bool = False
    circular: int = 0
    segment: int = 0
    split: bool = False
    wrap: int = 0
    listen: bool = False


def _value_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "[ " + ", ".join(_value_string(v) for v in value) + " ]"
    return str(value)


def start_metadata_output(stream: TextIO, fmt: str) -> None:
    """Write whatever opens a metadata file of format ``fmt``."""
    if fmt == "json":
        stream.write("[\n")


def write_metadata(stream: TextIO, fmt: str, metadata: Mapping[str, Any], first_write: bool) -> None:
    """Write one frame's metadata as ``txt`` lines or a JSON object."""
    if fmt == "txt":
        for name, value in metadata.items():
            stream.write(f"{name}={_value_string(value)}\n")
        stream.write("\n")
        return
    if not first_write:
        stream.write(",\n")
    stream.write("{")
    first_done = False
    for name, value in metadata.items():
        text = _value_string(value)
        quote = '"' if "/" in text else ""
        stream.write(("," if first_done else "") + "\n" + f'    "{name}": {quote}{text}{quote}')
        first_done = True
    stream.write("\n}")


def stop_metadata_output(stream: TextIO, fmt: str) -> None:
    """Write whatever closes a metadata file of format ``fmt``."""
    if fmt == "json":
        stream.write("\n]\n")


def _trunc_divmod(value: int, divisor: int):
    q, r = divmod(abs(value), divisor)
    return (-q, -r) if value < 0 else (q, r)


class Output:
    """Accepts encoded buffers and passes them on once a keyframe has been seen.

    The base class writes no video; subclasses override :meth:`output_buffer`.
    """

    def __init__(self, options: Optional[OutputOptions] = None) -> None:
        self.options = options or OutputOptions()
        self._closed = False
        self._state = _State.WAITING_KEYFRAME
        self._enable = not self.options.pause
        self._time_offset = 0
        self._last_timestamp = 0
        self._metadata_started = False
        self._metadata_queue: Deque[Mapping[str, Any]] = deque()
        self._timestamps_file: Optional[TextIO] = None
        self._metadata_file: Optional[TextIO] = None
        self._metadata_stream: TextIO = sys.stdout

        if self.options.save_pts:
            self._timestamps_file = open(self.options.save_pts, "w")
            self._timestamps_file.write("# timecode format v2\n")
        if self.options.metadata and self.options.metadata != "-":
            self._metadata_file = open(self.options.metadata, "w")
            self._metadata_stream = self._metadata_file
            start_metadata_output(self._metadata_stream, self.options.metadata_format)

    @property
    def closed(self) -> bool:
        return self._closed

    def signal(self) -> None:
        """Toggle between paused and recording."""
        self._enable = not self._enable

    def output_ready(self, mem, timestamp_us: int, keyframe: bool) -> None:
        """Accept one encoded buffer from the encoder."""
        flags = Flag.KEYFRAME if keyframe else Flag.NONE
        if not self._enable:
            self._state = _State.DISABLED
        elif self._state is _State.DISABLED:
            self._state = _State.WAITING_KEYFRAME
        if self._state is _State.WAITING_KEYFRAME and keyframe:
            self._state = _State.RUNNING
            flags |= Flag.RESTART
        if self._state is not _State.RUNNING:
            return

        # Keep timestamps continuous across a pause.
        if flags & Flag.RESTART:
            self._time_offset = timestamp_us - self._last_timestamp
        self._last_timestamp = timestamp_us - self._time_offset

        self.output_buffer(mem, self._last_timestamp, flags)

        if self._timestamps_file is not None:
            self.timestamp_ready(self._last_timestamp)

        if self.options.metadata:
            if not self._metadata_queue:
                raise RuntimeError("no metadata queued for output frame")
            metadata = self._metadata_queue.popleft()
            write_metadata(self._metadata_stream, self.options.metadata_format, metadata,
                           not self._metadata_started)
            self._metadata_started = True

    def metadata_ready(self, metadata: Mapping[str, Any]) -> None:
        """Queue metadata for the next output frame, if metadata is being saved."""
        if not self.options.metadata:
            return
        self._metadata_queue.append(metadata)

    def output_buffer(self, mem, timestamp_us: int, flags: Flag) -> None:
        """Write one buffer; the base class discards it."""

    def timestamp_ready(self, timestamp: int) -> None:
        """Record a frame timestamp (microseconds) as milliseconds in the pts file."""
        if self._timestamps_file is None:
            return
        ms, us = _trunc_divmod(timestamp, 1000)
        self._timestamps_file.write(f"{ms}.{us:03d}\n")
        if self.options.flush:
            self._timestamps_file.flush()

    def close(self) -> None:
        """Finish and close any timestamp and metadata files."""
        if self._closed:
            return
        self._closed = True
        if self._timestamps_file is not None:
            self._timestamps_file.close()
        if self.options.metadata:
            stop_metadata_output(self._metadata_stream, self.options.metadata_format)
            if self._metadata_file is not None:
                self._metadata_file.close()
            else:
                self._metadata_stream.flush()

    def __enter__(self) -> "Output":
        return self

    def __exit__(self, *args) -> None:
        self.close()