"""
Inference backend interface.

A backend turns an opaque serialized engine blob into a LoadedEngine. The
runtime never interprets the blob itself.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Protocol, Tuple

import numpy as np

from .buffers import DeviceBuffer
from .observer import RuntimeObserver


class LoadedEngine(ABC):
    """A deserialized engine with named, fixed-shape I/O tensors."""

    @property
    @abstractmethod
    def tensor_names(self) -> List[str]:
        """Names of all input and output tensors."""

    @abstractmethod
    def tensor_shape(self, name: str) -> Tuple[int, ...]:
        ...

    @abstractmethod
    def tensor_dtype(self, name: str) -> np.dtype:
        ...

    @abstractmethod
    def allocate(self, name: str) -> DeviceBuffer:
        """Allocate a buffer sized for the named tensor."""

    @abstractmethod
    def execute(self, bindings: Dict[str, DeviceBuffer]) -> None:
        """
        Run the engine on the bound buffers and block until it completes.

        Raises:
            Exception: Any device or enqueue failure.
        """

    def close(self) -> None:
        """Release the engine and its execution context."""


class EngineBackend(Protocol):
    def deserialize(self, blob: bytes) -> Optional[LoadedEngine]:
        ...


def create_backend(name: str, observer: RuntimeObserver) -> EngineBackend:
    """
    Factory for engine backends by configuration name.

    Args:
        name: Backend name ("tensorrt").
        observer: Session observer receiving backend log messages.
    """
    if name == "tensorrt":
        from .tensorrt_backend import TensorRTBackend
        return TensorRTBackend(observer)
    raise ValueError(f"Unknown inference backend: {name}")
