"""
Real-time object-detection inference on precompiled TensorRT engines.

Frames flow one way: FrameSource -> preprocess -> engine -> decode -> NMS.
"""

from .models import Config, Detection, Frame
from .inference import (
    EngineLoadError,
    InferenceError,
    InferenceResult,
    InferenceRuntime,
    LoggingObserver,
    RuntimeNotLoadedError,
    create_backend,
)

__version__ = "1.0.0"

__all__ = [
    "Config",
    "Detection",
    "Frame",
    "EngineLoadError",
    "InferenceError",
    "InferenceResult",
    "InferenceRuntime",
    "LoggingObserver",
    "RuntimeNotLoadedError",
    "create_backend",
]
