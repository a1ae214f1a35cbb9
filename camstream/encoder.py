"""Base class for video encoders."""

from __future__ import annotations

import abc
import threading
from typing import Callable, Optional

from .stream_info import StreamInfo

InputDone = Callable[[], None]
OutputReady = Callable[[bytes, int, bool], None]


def _ignore(*_args) -> None:
    return None


class Encoder(abc.ABC):
    """An encoder takes frames and reports encoded output through callbacks.

    ``input_done()`` is called once the encoder has finished with an input
    buffer. ``output_ready(data, timestamp_us, keyframe)`` is called for each
    encoded buffer; the data must not be relied on after the call returns.
    """

    def __init__(self, input_done: Optional[InputDone] = None, output_ready: Optional[OutputReady] = None) -> None:
        self.input_done: InputDone = input_done or _ignore
        self.output_ready: OutputReady = output_ready or _ignore
        self._closed = False
        self._error: Optional[BaseException] = None
        self._error_lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    @abc.abstractmethod
    def encode_buffer(self, mem, info: StreamInfo, timestamp_us: int) -> None:
        """Queue one frame for encoding."""

    def close(self) -> None:
        """Stop the encoder; re-raise any error a callback or worker hit."""
        self._closed = True
        self._raise_pending()

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("encoder is closed")

    def _record_error(self, exc: BaseException) -> None:
        with self._error_lock:
            if self._error is None:
                self._error = exc

    def _raise_pending(self) -> None:
        with self._error_lock:
            exc, self._error = self._error, None
        if exc is not None:
            raise exc

    def __enter__(self) -> "Encoder":
        return self

    def __exit__(self, *args) -> None:
        self.close()