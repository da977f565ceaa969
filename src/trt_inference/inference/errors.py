"""
Error taxonomy for the inference runtime.

EngineLoadError is fatal to a session. InferenceError is per-frame and
recoverable: the frame yields no detections and the session continues.
"""

from __future__ import annotations

from typing import Optional


class InferenceRuntimeError(Exception):
    """Base class for runtime errors."""


class EngineLoadError(InferenceRuntimeError):
    """Engine file missing or unreadable, blob corrupt, or required tensors absent."""

    def __init__(self, message: str, engine_path: Optional[str] = None):
        super().__init__(message)
        self.engine_path = engine_path


class RuntimeNotLoadedError(EngineLoadError):
    """Raised when inference is requested before load() or after destroy()."""


class InferenceError(InferenceRuntimeError):
    """Device execution or transfer failure for a single frame."""

    def __init__(self, message: str, frame_index: Optional[int] = None):
        super().__init__(message)
        self.frame_index = frame_index
