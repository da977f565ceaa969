"""
Pipeline engine for the inference session.

Drives a FrameSource through an InferenceRuntime one frame at a time:
read -> infer -> callbacks -> stats. The runtime is owned by the caller;
the engine only opens and closes the source.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, List, Optional

from ..inference.runtime import InferenceResult, InferenceRuntime
from ..models.config import PipelineConfig
from ..models.frame import Frame
from ..observation.base import FrameSource


class PipelineAbortedError(RuntimeError):
    """Too many consecutive inference failures."""


@dataclass
class PipelineStats:
    """Runtime statistics for the pipeline."""
    frame_count: int = 0
    detection_count: int = 0
    failure_count: int = 0
    last_detection_count: int = 0
    latency_window: int = 30
    latencies_ms: Deque[float] = field(default_factory=deque)
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        self.latencies_ms = deque(self.latencies_ms, maxlen=self.latency_window)

    def record(self, result: InferenceResult) -> None:
        self.frame_count += 1
        self.latencies_ms.append(result.latency_ms)
        if result.ok:
            self.last_detection_count = len(result.detections)
            self.detection_count += self.last_detection_count
        else:
            self.failure_count += 1
            self.last_detection_count = 0

    @property
    def avg_latency_ms(self) -> float:
        if not self.latencies_ms:
            return 0.0
        return sum(self.latencies_ms) / len(self.latencies_ms)

    @property
    def fps(self) -> float:
        avg = self.avg_latency_ms
        return 1000.0 / avg if avg > 0 else 0.0


FrameCallback = Callable[[Frame, InferenceResult], None]


class PipelineEngine:
    """
    Main processing loop over a FrameSource.

    Example:
        source = VideoFileSource("test/test_det.mp4")
        with InferenceRuntime(backend, observer=observer) as runtime:
            runtime.load("model.engine")
            engine = PipelineEngine(source, runtime, PipelineConfig(max_frames=100))
            stats = engine.run()
    """

    def __init__(
        self,
        source: FrameSource,
        runtime: InferenceRuntime,
        config: Optional[PipelineConfig] = None,
        loop: bool = False,
    ):
        self.source = source
        self.runtime = runtime
        self.config = config or PipelineConfig()
        self.loop = loop
        self.stats = PipelineStats(latency_window=self.config.latency_window)
        self._running = False
        self._callbacks: List[FrameCallback] = []

    def add_callback(self, callback: FrameCallback) -> None:
        """
        Add a callback to be called after each frame is processed.

        The frame is only valid for the duration of the call.

        Args:
            callback: Function taking (frame, result) as arguments.
        """
        self._callbacks.append(callback)

    @property
    def is_running(self) -> bool:
        return self._running

    def run(self) -> PipelineStats:
        """
        Run the processing loop until the source is exhausted, max_frames
        is reached or stop() is called.

        Raises:
            PipelineAbortedError: If max_consecutive_failures is exceeded.
            RuntimeNotLoadedError: If the runtime was not loaded.
        """
        self._running = True
        self.stats = PipelineStats(latency_window=self.config.latency_window)
        frames_since_reset = 0

        try:
            self.source.open()
            logging.info(f"Pipeline started: source={self.source.source_id}")

            while self._running:
                if self.config.max_frames is not None and self.stats.frame_count >= self.config.max_frames:
                    break

                frame = self.source.read()
                if frame is None:
                    if self.loop and frames_since_reset > 0:
                        logging.info("End of source reached, restarting")
                        self.source.reset()
                        frames_since_reset = 0
                        continue
                    break
                frames_since_reset += 1

                result = self.runtime.infer_frame(frame)
                self.stats.record(result)
                self._check_failures(result)

                for callback in self._callbacks:
                    try:
                        callback(frame, result)
                    except Exception as e:
                        logging.warning(f"Callback error: {e}")

                self._handle_periodic_tasks()

        except KeyboardInterrupt:
            logging.info("Pipeline interrupted by user")
        finally:
            self._cleanup()

        return self.stats

    def stop(self) -> None:
        """Signal the pipeline to stop after the current frame."""
        self._running = False

    def _check_failures(self, result: InferenceResult) -> None:
        limit = self.config.max_consecutive_failures
        if result.ok or limit <= 0:
            return
        failures = self.runtime.consecutive_failures
        if failures >= limit:
            logging.error(f"Too many consecutive inference failures ({failures}), stopping")
            raise PipelineAbortedError(
                f"{failures} consecutive inference failures, last: {result.error}"
            )
        logging.warning(f"Inference failed ({failures}/{limit}): {result.error}")

    def _handle_periodic_tasks(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            logging.info(
                f"Pipeline stats: frames={self.stats.frame_count}, "
                f"fps={self.stats.fps:.1f}, latency={self.stats.avg_latency_ms:.1f} ms, "
                f"detections={self.stats.last_detection_count}, failures={self.stats.failure_count}"
            )
            self.stats.last_stats_log_time = now

    def _cleanup(self) -> None:
        self._running = False
        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")
        logging.info(
            f"Pipeline stopped: frames={self.stats.frame_count}, "
            f"detections={self.stats.detection_count}, failures={self.stats.failure_count}"
        )
