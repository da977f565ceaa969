"""
Inference runtime, engine backends and device buffers.
"""

from .errors import EngineLoadError, InferenceError, InferenceRuntimeError, RuntimeNotLoadedError
from .observer import LoggingObserver, RecordingObserver, RuntimeObserver, Severity
from .buffers import BufferPair, DeviceBuffer, HostBuffer
from .backend import EngineBackend, LoadedEngine, create_backend
from .runtime import InferenceResult, InferenceRuntime, RuntimeState

__all__ = [
    "EngineLoadError",
    "InferenceError",
    "InferenceRuntimeError",
    "RuntimeNotLoadedError",
    "LoggingObserver",
    "RecordingObserver",
    "RuntimeObserver",
    "Severity",
    "BufferPair",
    "DeviceBuffer",
    "HostBuffer",
    "EngineBackend",
    "LoadedEngine",
    "create_backend",
    "InferenceResult",
    "InferenceRuntime",
    "RuntimeState",
]
