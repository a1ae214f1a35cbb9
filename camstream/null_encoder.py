"""An encoder that passes frames through unchanged."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Optional

from .encoder import Encoder, InputDone, OutputReady
from .stream_info import StreamInfo

log = logging.getLogger(__name__)

_STOP = object()


class NullEncoder(Encoder):
    """Return each input buffer as its own "encoded" output, on a separate thread."""

    def __init__(self, input_done: Optional[InputDone] = None, output_ready: Optional[OutputReady] = None) -> None:
        super().__init__(input_done, output_ready)
        self._queue: "queue.Queue" = queue.Queue()
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._output_loop, name="null-encoder-output", daemon=True)
        self._thread.start()
        log.debug("Opened NullEncoder")

    def encode_buffer(self, mem, info: StreamInfo, timestamp_us: int) -> None:
        with self._lock:
            self._check_open()
            self._queue.put((bytes(mem), timestamp_us))

    def _output_loop(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            mem, timestamp_us = item
            try:
                # Input-done must come first: metadata is queued there and consumed on output.
                self.input_done()
                self.output_ready(mem, timestamp_us, True)
            except Exception as exc:
                self._record_error(exc)

    def close(self) -> None:
        with self._lock:
            if self.closed:
                return
            self._closed = True
            self._queue.put(_STOP)
        self._thread.join()
        log.debug("NullEncoder closed")
        super().close()