"""
Frame model for raw pixel buffers handed to the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass
class Frame:
    """
    A rectangular 8-bit pixel buffer, row-major with interleaved channels.

    The frame source owns the pixel data; the pipeline only reads it and
    never keeps a reference once inference for the frame has returned.

    Attributes:
        pixels: uint8 array of shape (height, width, channels), RGB or RGBA order.
        width: Frame width in pixels.
        height: Frame height in pixels.
        channels: Channel count (3 or 4 expected; fewer are zero-filled downstream).
        frame_index: Sequential frame number within the source.
        timestamp: Unix timestamp when the frame was produced.
        source: Identifier of the producing source.
    """
    pixels: np.ndarray
    width: int
    height: int
    channels: int
    frame_index: int = 0
    timestamp: Optional[float] = None
    source: Optional[str] = None

    def __post_init__(self) -> None:
        if self.pixels.ndim == 2:
            self.pixels = self.pixels[:, :, np.newaxis]
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Frame pixels must be uint8, got {self.pixels.dtype}")
        if not 1 <= self.channels <= 4:
            raise ValueError(f"Frame channel count must be 1-4, got {self.channels}")
        if self.pixels.shape != (self.height, self.width, self.channels):
            raise ValueError(
                f"Pixel buffer shape {self.pixels.shape} does not match "
                f"(height={self.height}, width={self.width}, channels={self.channels})"
            )

    @classmethod
    def from_numpy(
        cls,
        pixels: np.ndarray,
        frame_index: int = 0,
        timestamp: Optional[float] = None,
        source: Optional[str] = None,
    ) -> "Frame":
        """Create a Frame from an HxW or HxWxC uint8 array."""
        h, w = pixels.shape[:2]
        channels = 1 if pixels.ndim == 2 else pixels.shape[2]
        return cls(
            pixels=pixels,
            width=w,
            height=h,
            channels=channels,
            frame_index=frame_index,
            timestamp=timestamp,
            source=source,
        )

    @classmethod
    def from_bytes(
        cls,
        buffer: bytes,
        width: int,
        height: int,
        channels: int,
        frame_index: int = 0,
        timestamp: Optional[float] = None,
        source: Optional[str] = None,
    ) -> "Frame":
        """Create a Frame from a raw (width, height, channels) byte buffer."""
        expected = width * height * channels
        if len(buffer) != expected:
            raise ValueError(f"Expected {expected} bytes for {width}x{height}x{channels}, got {len(buffer)}")
        pixels = np.frombuffer(buffer, dtype=np.uint8).reshape(height, width, channels)
        return cls(
            pixels=pixels,
            width=width,
            height=height,
            channels=channels,
            frame_index=frame_index,
            timestamp=timestamp,
            source=source,
        )

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Return (height, width, channels)."""
        return self.pixels.shape

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)
