"""Motion-JPEG encoder using a pool of worker threads."""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

from .encoder import Encoder, InputDone, OutputReady
from .jpeg import yuv_to_jpeg
from .stream_info import StreamInfo

log = logging.getLogger(__name__)

NUM_ENC_THREADS = 4
_STOP = object()


@dataclass(frozen=True)
class _Job:
    mem: bytes
    info: StreamInfo
    timestamp_us: int
    index: int


class MjpegEncoder(Encoder):
    """Encode every frame as a JPEG; outputs are delivered in input order."""

    def __init__(
        self,
        input_done: Optional[InputDone] = None,
        output_ready: Optional[OutputReady] = None,
        quality: int = 93,
    ) -> None:
        super().__init__(input_done, output_ready)
        self.quality = quality
        self._jobs: "queue.Queue" = queue.Queue()
        self._lock = threading.Lock()
        self._next_index = 0
        self._results: Dict[int, Tuple[Union[bytes, BaseException], int]] = {}
        self._cond = threading.Condition()
        self._encoders_done = False
        self._output_thread = threading.Thread(target=self._output_loop, name="mjpeg-output", daemon=True)
        self._workers = [
            threading.Thread(target=self._encode_loop, args=(n,), name=f"mjpeg-encode-{n}", daemon=True)
            for n in range(NUM_ENC_THREADS)
        ]
        self._output_thread.start()
        for worker in self._workers:
            worker.start()
        log.debug("Opened MjpegEncoder")

    def encode_buffer(self, mem, info: StreamInfo, timestamp_us: int) -> None:
        with self._lock:
            self._check_open()
            index = self._next_index
            self._next_index += 1
            self._jobs.put(_Job(bytes(mem), info, timestamp_us, index))

    def _encode_loop(self, num: int) -> None:
        frames = 0
        total = 0.0
        while True:
            job = self._jobs.get()
            if job is _STOP:
                break
            start = time.perf_counter()
            try:
                result: Union[bytes, BaseException] = yuv_to_jpeg(
                    job.mem, job.info, job.info.width, job.info.height, self.quality
                )
            except Exception as exc:
                result = exc
            total += time.perf_counter() - start
            frames += 1
            with self._cond:
                self._results[job.index] = (result, job.timestamp_us)
                self._cond.notify_all()
        if frames:
            log.debug("Encode %d frames, average time %.3fms (thread %d)", frames, total * 1000 / frames, num)

    def _output_loop(self) -> None:
        index = 0
        while True:
            with self._cond:
                self._cond.wait_for(lambda: index in self._results or self._encoders_done)
                if index not in self._results:
                    return
                result, timestamp_us = self._results.pop(index)
            index += 1
            try:
                self.input_done()
                if isinstance(result, BaseException):
                    raise result
                self.output_ready(result, timestamp_us, True)
            except Exception as exc:
                self._record_error(exc)

    def close(self) -> None:
        with self._lock:
            if self.closed:
                return
            self._closed = True
        for _ in self._workers:
            self._jobs.put(_STOP)
        for worker in self._workers:
            worker.join()
        with self._cond:
            self._encoders_done = True
            self._cond.notify_all()
        self._output_thread.join()
        log.debug("MjpegEncoder closed")
        super().close()