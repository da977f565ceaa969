"""
Threaded inference worker.

One worker thread owns every infer() call on a runtime, so buffer reuse
stays serialized. Producers submit frames through a bounded queue and
consumers collect InferenceResults from a second queue.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Optional

from ..inference.errors import InferenceError
from ..inference.runtime import InferenceResult, InferenceRuntime
from ..models.frame import Frame


_STOP = object()


class InferenceWorker:
    """
    Producer/consumer wrapper around an InferenceRuntime.

    Example:
        worker = InferenceWorker(runtime)
        worker.start()
        worker.submit(frame)
        result = worker.get_result(timeout=1.0)
        worker.stop()
    """

    def __init__(
        self,
        runtime: InferenceRuntime,
        max_pending: int = 2,
        drop_when_full: bool = True,
    ):
        self.runtime = runtime
        self.drop_when_full = drop_when_full
        self._frames: "queue.Queue[object]" = queue.Queue(maxsize=max_pending)
        self._results: "queue.Queue[InferenceResult]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self.dropped_frames = 0
        self.error: Optional[Exception] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._thread = threading.Thread(target=self._run, name="inference-worker", daemon=True)
        self._thread.start()
        logging.info("Inference worker started")

    def submit(self, frame: Frame, timeout: Optional[float] = None) -> bool:
        """
        Queue a frame for inference.

        When the queue is full and drop_when_full is set, the oldest pending
        frame is discarded. Otherwise blocks up to timeout.

        Returns:
            True if the frame was queued.
        """
        if self.drop_when_full:
            while True:
                try:
                    self._frames.put_nowait(frame)
                    return True
                except queue.Full:
                    try:
                        self._frames.get_nowait()
                        self.dropped_frames += 1
                    except queue.Empty:
                        pass
        try:
            self._frames.put(frame, timeout=timeout)
            return True
        except queue.Full:
            return False

    def get_result(self, timeout: Optional[float] = None) -> Optional[InferenceResult]:
        """
        Next finished result, or None on timeout.

        If the worker stopped on an error, the last result carries that
        error and the worker's error attribute is set.
        """
        try:
            return self._results.get(timeout=timeout)
        except queue.Empty:
            return None

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Finish the frame in flight, then end the thread."""
        if self._thread is None:
            return
        # make room for the sentinel, pending frames are dropped
        while True:
            try:
                self._frames.put_nowait(_STOP)
                break
            except queue.Full:
                try:
                    self._frames.get_nowait()
                    self.dropped_frames += 1
                except queue.Empty:
                    pass
        self._thread.join(timeout)
        self._thread = None
        logging.info("Inference worker stopped")

    def _run(self) -> None:
        while True:
            item = self._frames.get()
            if item is _STOP:
                break
            try:
                result = self.runtime.infer_frame(item)
            except Exception as e:
                logging.error(f"Inference worker stopping: {e}")
                self.error = e
                frame_index = getattr(item, "frame_index", None)
                self._results.put(InferenceResult(
                    error=InferenceError(f"Inference worker stopped: {e}", frame_index),
                    frame_index=frame_index,
                ))
                break
            self._results.put(result)
