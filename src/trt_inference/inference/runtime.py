"""
Inference runtime.

Owns the loaded engine and its input/output buffers and runs the per-frame
cycle: preprocess -> host-to-device copy -> execute -> device-to-host copy
-> decode -> suppress.

Lifecycle:
    UNLOADED --load()--> LOADED --destroy()--> DESTROYED

The runtime does no internal locking. infer() calls on one instance must
not overlap because both buffers are overwritten on every call.
"""

from __future__ import annotations

import time
from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union

import numpy as np

from ..algorithms.decode import BOX_PARAMS, decode_detections
from ..algorithms.nms import non_max_suppression
from ..models.config import OUTPUT_LAYOUTS, EngineConfig, PostprocessConfig
from ..models.detection import Detection
from ..models.frame import Frame
from ..preprocessing.resize import INPUT_CHANNELS, preprocess_frame
from .backend import EngineBackend, LoadedEngine
from .buffers import BufferPair
from .errors import EngineLoadError, InferenceError, RuntimeNotLoadedError
from .observer import LoggingObserver, RuntimeObserver, Severity


class RuntimeState(Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"
    DESTROYED = "destroyed"


@dataclass
class InferenceResult:
    """
    Outcome of one infer call.

    On failure detections is empty and error holds the InferenceError.
    """
    detections: List[Detection] = field(default_factory=list)
    error: Optional[InferenceError] = None
    latency_ms: float = 0.0
    frame_index: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class InferenceRuntime:
    """
    Single-session inference runtime.

    Example:
        observer = LoggingObserver()
        runtime = InferenceRuntime(create_backend("tensorrt", observer), observer=observer)
        with runtime:
            runtime.load("model.engine")
            for frame in source:
                detections = runtime.infer(frame)
    """

    def __init__(
        self,
        backend: EngineBackend,
        engine_config: Optional[EngineConfig] = None,
        postprocess_config: Optional[PostprocessConfig] = None,
        observer: Optional[RuntimeObserver] = None,
    ):
        self._backend = backend
        self.engine_config = engine_config or EngineConfig()
        self.postprocess_config = postprocess_config or PostprocessConfig()
        self._observer = observer or LoggingObserver()

        self._state = RuntimeState.UNLOADED
        self._engine: Optional[LoadedEngine] = None
        self._buffers: Optional[BufferPair] = None
        self._input_shape: Tuple[int, ...] = ()
        self._output_shape: Tuple[int, ...] = ()
        self._input_resolution: Optional[int] = None
        self._num_classes: Optional[int] = None
        self.consecutive_failures = 0

    @property
    def state(self) -> RuntimeState:
        return self._state

    @property
    def is_loaded(self) -> bool:
        return self._state is RuntimeState.LOADED

    @property
    def input_shape(self) -> Tuple[int, ...]:
        return self._input_shape

    @property
    def output_shape(self) -> Tuple[int, ...]:
        return self._output_shape

    @property
    def input_resolution(self) -> Optional[int]:
        return self._input_resolution

    @property
    def num_classes(self) -> Optional[int]:
        return self._num_classes

    @property
    def buffers(self) -> Optional[BufferPair]:
        return self._buffers

    def load(self, engine_path: Optional[str] = None) -> None:
        """
        Deserialize an engine file, resolve its tensors and allocate buffers.

        Args:
            engine_path: Serialized engine file. Defaults to engine_config.engine_path.

        Raises:
            EngineLoadError: File unreadable, blob rejected, required tensors
                missing, or shapes unusable. Nothing is left allocated.
        """
        if self._state is RuntimeState.LOADED:
            raise EngineLoadError("Engine already loaded", engine_path)
        if self._state is RuntimeState.DESTROYED:
            raise EngineLoadError("Runtime has been destroyed", engine_path)

        path = engine_path or self.engine_config.engine_path
        if not path:
            raise EngineLoadError("No engine path given")

        try:
            with open(path, "rb") as f:
                blob = f.read()
        except OSError as e:
            raise EngineLoadError(f"Cannot open engine file: {path} ({e})", path) from e
        if not blob:
            raise EngineLoadError(f"Engine file is empty: {path}", path)

        try:
            engine = self._backend.deserialize(blob)
        except Exception as e:
            raise EngineLoadError(f"Failed to deserialize engine: {e}", path) from e
        if engine is None:
            raise EngineLoadError("Failed to deserialize engine", path)

        with ExitStack() as stack:
            stack.callback(engine.close)

            input_name = self.engine_config.input_tensor
            output_name = self.engine_config.output_tensor
            names = engine.tensor_names
            missing = [n for n in (input_name, output_name) if n not in names]
            if missing:
                raise EngineLoadError(
                    f"Failed to find input/output tensors {missing} (engine has {names})", path
                )

            input_shape = engine.tensor_shape(input_name)
            output_shape = engine.tensor_shape(output_name)
            resolution = self._resolve_resolution(input_shape, path)
            num_classes = self._resolve_num_classes(output_shape, path)

            try:
                buffers = BufferPair.allocate(engine, input_name, output_name)
            except Exception as e:
                raise EngineLoadError(f"Failed to allocate device buffers: {e}", path) from e
            stack.callback(buffers.release)

            stack.pop_all()

        self._engine = engine
        self._buffers = buffers
        self._input_shape = input_shape
        self._output_shape = output_shape
        self._input_resolution = resolution
        self._num_classes = num_classes
        self.consecutive_failures = 0
        self._state = RuntimeState.LOADED

        self._observer.log(Severity.INFO, f"Engine loaded successfully: {path}")
        self._observer.log(
            Severity.INFO,
            f"Input shape: {'x'.join(map(str, input_shape))}, "
            f"output shape: {'x'.join(map(str, output_shape))}, "
            f"resolution={resolution}, classes={num_classes}",
        )

    def _resolve_resolution(self, input_shape: Tuple[int, ...], path: str) -> int:
        if any(d < 0 for d in input_shape) or len(input_shape) < 2:
            raise EngineLoadError(f"Unsupported input shape {input_shape}", path)

        resolution = self.engine_config.input_resolution
        if resolution is None:
            h, w = input_shape[-2], input_shape[-1]
            if h != w:
                raise EngineLoadError(f"Input tensor is not square: {input_shape}", path)
            resolution = int(h)

        elements = int(np.prod(input_shape, dtype=np.int64))
        if elements != INPUT_CHANNELS * resolution * resolution:
            raise EngineLoadError(
                f"Input tensor {input_shape} does not hold a 3x{resolution}x{resolution} image", path
            )
        return resolution

    def _resolve_num_classes(self, output_shape: Tuple[int, ...], path: str) -> int:
        if any(d < 0 for d in output_shape) or not output_shape:
            raise EngineLoadError(f"Unsupported output shape {output_shape}", path)
        layout = self.engine_config.output_layout
        if layout not in OUTPUT_LAYOUTS:
            raise EngineLoadError(f"Unknown output layout: {layout}", path)

        num_classes = self.engine_config.num_classes
        if num_classes is None:
            if layout == "channel_major":
                stride = output_shape[-2] if len(output_shape) >= 2 else 0
            else:
                stride = output_shape[-1]
            num_classes = int(stride) - BOX_PARAMS

        elements = int(np.prod(output_shape, dtype=np.int64))
        if num_classes < 1 or elements % (BOX_PARAMS + num_classes) != 0:
            raise EngineLoadError(
                f"Output tensor {output_shape} does not match 4 + {num_classes} values per anchor", path
            )
        return num_classes

    def _require_loaded(self) -> None:
        if self._state is not RuntimeState.LOADED:
            raise RuntimeNotLoadedError(f"Runtime is not loaded (state={self._state.value})")

    def infer_frame(self, frame: Union[Frame, np.ndarray]) -> InferenceResult:
        """
        Run one frame through the full pipeline.

        Device, transfer or post-processing failures do not raise: they are
        logged to the observer and returned as result.error with no
        detections.

        Raises:
            RuntimeNotLoadedError: If called before load() or after destroy().
        """
        self._require_loaded()
        frame_index = frame.frame_index if isinstance(frame, Frame) else None
        start = time.perf_counter()

        try:
            tensor = preprocess_frame(frame, self._input_resolution)
            self._buffers.input.copy_from_host(tensor)
            self._engine.execute({
                self.engine_config.input_tensor: self._buffers.input,
                self.engine_config.output_tensor: self._buffers.output,
            })
            raw = self._buffers.output.copy_to_host()
        except Exception as e:
            return self._failed(f"Failed to run inference: {e}", frame_index, start)

        try:
            detections = self._postprocess(raw)
        except Exception as e:
            return self._failed(f"Failed to decode engine output: {e}", frame_index, start)
        self.consecutive_failures = 0

        return InferenceResult(
            detections=detections,
            latency_ms=(time.perf_counter() - start) * 1000,
            frame_index=frame_index,
        )

    def _postprocess(self, raw: np.ndarray) -> List[Detection]:
        pp = self.postprocess_config
        candidates = decode_detections(
            raw,
            self._num_classes,
            conf_threshold=pp.conf_threshold,
            layout=self.engine_config.output_layout,
            class_thresholds=pp.class_thresholds,
            class_names=pp.class_names,
        )
        return non_max_suppression(
            candidates,
            iou_threshold=pp.iou_threshold,
            sort_by_confidence=pp.sort_by_confidence,
            max_detections=pp.max_detections,
        )

    def _failed(self, message: str, frame_index: Optional[int], start: float) -> InferenceResult:
        self.consecutive_failures += 1
        error = InferenceError(message, frame_index)
        self._observer.log(Severity.ERROR, str(error))
        return InferenceResult(
            detections=[],
            error=error,
            latency_ms=(time.perf_counter() - start) * 1000,
            frame_index=frame_index,
        )

    def infer(self, frame: Union[Frame, np.ndarray]) -> List[Detection]:
        """Detections for one frame; empty if the frame failed."""
        return self.infer_frame(frame).detections

    def destroy(self) -> None:
        """Release buffers and the engine. Safe to call multiple times."""
        if self._state is RuntimeState.DESTROYED:
            return
        buffers, engine = self._buffers, self._engine
        self._buffers = None
        self._engine = None
        self._state = RuntimeState.DESTROYED
        try:
            if buffers is not None:
                buffers.release()
        finally:
            if engine is not None:
                engine.close()
        self._observer.log(Severity.INFO, "Runtime destroyed")

    def __enter__(self) -> "InferenceRuntime":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.destroy()
