"""
Fixed-size tensor buffers owned by the inference runtime.

A buffer's byte size is fixed when it is allocated from the engine's
declared tensor shape and never changes afterwards.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Tuple

import numpy as np

if TYPE_CHECKING:
    from .backend import LoadedEngine


class DeviceBuffer(ABC):
    """A fixed-size memory region bound to one named engine tensor."""

    def __init__(self, name: str, shape: Tuple[int, ...], dtype: np.dtype):
        self.name = name
        self.shape = tuple(int(d) for d in shape)
        self.dtype = np.dtype(dtype)
        self.nbytes = int(np.prod(self.shape, dtype=np.int64)) * self.dtype.itemsize
        self._freed = False

    @property
    def is_freed(self) -> bool:
        return self._freed

    def _check_live(self) -> None:
        if self._freed:
            raise RuntimeError(f"Buffer '{self.name}' has been freed")

    def _as_buffer_array(self, array: np.ndarray) -> np.ndarray:
        arr = np.ascontiguousarray(array, dtype=self.dtype)
        if arr.nbytes != self.nbytes:
            raise ValueError(
                f"Buffer '{self.name}' holds {self.nbytes} bytes, got {arr.nbytes} "
                f"(shape {array.shape}, expected {self.shape})"
            )
        return arr.reshape(self.shape)

    @abstractmethod
    def copy_from_host(self, array: np.ndarray) -> None:
        """Overwrite the buffer with a host array of exactly nbytes."""

    @abstractmethod
    def copy_to_host(self) -> np.ndarray:
        """Return a host copy of the buffer contents with the declared shape."""

    @abstractmethod
    def _release(self) -> None:
        """Release the underlying memory. Called at most once."""

    def free(self) -> None:
        """Release the memory. Safe to call multiple times."""
        if self._freed:
            return
        self._freed = True
        self._release()


class HostBuffer(DeviceBuffer):
    """Buffer backed by a numpy array, for host-side engines."""

    def __init__(self, name: str, shape: Tuple[int, ...], dtype: np.dtype = np.float32):
        super().__init__(name, shape, dtype)
        self._array = np.zeros(self.shape, dtype=self.dtype)

    @property
    def array(self) -> np.ndarray:
        """Direct view of the buffer, for engines writing results in place."""
        self._check_live()
        return self._array

    def copy_from_host(self, array: np.ndarray) -> None:
        self._check_live()
        np.copyto(self._array, self._as_buffer_array(array))

    def copy_to_host(self) -> np.ndarray:
        self._check_live()
        return self._array.copy()

    def _release(self) -> None:
        self._array = None


class BufferPair:
    """
    The runtime's input/output buffers, acquired and released together.

    Example:
        pair = BufferPair.allocate(engine, "images", "output0")
        try:
            ...
        finally:
            pair.release()
    """

    def __init__(self, input: DeviceBuffer, output: DeviceBuffer):
        self.input = input
        self.output = output

    @classmethod
    def allocate(cls, engine: "LoadedEngine", input_name: str, output_name: str) -> "BufferPair":
        """Allocate both buffers; the input is freed again if the output allocation fails."""
        input_buf = engine.allocate(input_name)
        try:
            output_buf = engine.allocate(output_name)
        except Exception:
            input_buf.free()
            raise
        return cls(input_buf, output_buf)

    @property
    def is_released(self) -> bool:
        return self.input.is_freed and self.output.is_freed

    @property
    def nbytes(self) -> int:
        return self.input.nbytes + self.output.nbytes

    def release(self) -> None:
        """Free both buffers. Safe to call multiple times."""
        try:
            self.input.free()
        finally:
            self.output.free()

    def __enter__(self) -> "BufferPair":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
