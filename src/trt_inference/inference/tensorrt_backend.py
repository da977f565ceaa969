"""
TensorRT inference backend (deployment path).

Uses the TensorRT Python API for deserialization and execution and PyCUDA
for device memory and the CUDA stream. Both are imported lazily so the rest
of the package stays importable on machines without a GPU.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from .backend import LoadedEngine
from .buffers import DeviceBuffer
from .observer import RuntimeObserver, Severity


def _import_tensorrt() -> Tuple[Any, Any]:
    try:
        import tensorrt as trt  # type: ignore
        import pycuda.driver as cuda  # type: ignore
        import pycuda.autoinit  # type: ignore  # noqa: F401
    except ImportError as e:
        raise ImportError(
            "TensorRT and PyCUDA are required for the 'tensorrt' backend. "
            "Install with `pip install trt-inference[tensorrt]`."
        ) from e
    return trt, cuda


class CudaBuffer(DeviceBuffer):
    """Device allocation with a page-locked host staging array."""

    def __init__(self, cuda: Any, stream: Any, name: str, shape: Tuple[int, ...], dtype: np.dtype):
        super().__init__(name, shape, dtype)
        self._cuda = cuda
        self._stream = stream
        self._host = cuda.pagelocked_empty(self.shape, self.dtype)
        self._allocation = cuda.mem_alloc(self.nbytes)

    @property
    def device_ptr(self) -> int:
        self._check_live()
        return int(self._allocation)

    def copy_from_host(self, array: np.ndarray) -> None:
        self._check_live()
        np.copyto(self._host, self._as_buffer_array(array))
        self._cuda.memcpy_htod_async(self._allocation, self._host, self._stream)

    def copy_to_host(self) -> np.ndarray:
        self._check_live()
        self._cuda.memcpy_dtoh_async(self._host, self._allocation, self._stream)
        self._stream.synchronize()
        return np.array(self._host, copy=True)

    def _release(self) -> None:
        self._allocation.free()
        self._allocation = None
        self._host = None


class TensorRTEngine(LoadedEngine):
    """A deserialized ICudaEngine with its execution context and stream."""

    def __init__(self, trt: Any, cuda: Any, engine: Any, observer: RuntimeObserver):
        self._trt = trt
        self._cuda = cuda
        self._engine = engine
        self._observer = observer
        self._context = engine.create_execution_context()
        if self._context is None:
            raise RuntimeError("Failed to create execution context")
        self._stream = cuda.Stream()

    @property
    def tensor_names(self) -> List[str]:
        return [self._engine.get_tensor_name(i) for i in range(self._engine.num_io_tensors)]

    def tensor_shape(self, name: str) -> Tuple[int, ...]:
        return tuple(int(d) for d in self._engine.get_tensor_shape(name))

    def tensor_dtype(self, name: str) -> np.dtype:
        return np.dtype(self._trt.nptype(self._engine.get_tensor_dtype(name)))

    def allocate(self, name: str) -> DeviceBuffer:
        shape = self.tensor_shape(name)
        if any(d < 0 for d in shape):
            raise ValueError(f"Tensor '{name}' has unresolved dynamic shape {shape}")
        return CudaBuffer(self._cuda, self._stream, name, shape, self.tensor_dtype(name))

    def execute(self, bindings: Dict[str, DeviceBuffer]) -> None:
        for name, buf in bindings.items():
            self._context.set_tensor_address(name, buf.device_ptr)
        if not self._context.execute_async_v3(self._stream.handle):
            raise RuntimeError("TensorRT enqueue failed")
        self._stream.synchronize()

    def close(self) -> None:
        # context must go before the engine that created it
        self._context = None
        self._engine = None
        self._stream = None


class TensorRTBackend:
    """
    Deserialize TensorRT engine blobs.

    TensorRT's own log messages are forwarded to the session observer.
    """

    def __init__(self, observer: RuntimeObserver):
        self._trt, self._cuda = _import_tensorrt()
        self._observer = observer
        self._logger = _make_logger(self._trt, observer)
        self._runtime = self._trt.Runtime(self._logger)

    def deserialize(self, blob: bytes) -> Optional[LoadedEngine]:
        engine = self._runtime.deserialize_cuda_engine(blob)
        if engine is None:
            return None
        return TensorRTEngine(self._trt, self._cuda, engine, self._observer)


def _make_logger(trt: Any, observer: RuntimeObserver) -> Any:
    class ObserverLogger(trt.ILogger):
        def __init__(self):
            trt.ILogger.__init__(self)

        def log(self, severity, msg):
            observer.log(Severity(int(severity)), msg)

    return ObserverLogger()
