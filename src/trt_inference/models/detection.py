"""
Detection model for decoded and suppressed detector output.

Boxes are center-form (cx, cy, w, h) in the network's native input units.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class Detection:
    """
    A single detection produced by the decoder.

    Attributes:
        cx: Box center x in network input units.
        cy: Box center y in network input units.
        w: Box width in network input units.
        h: Box height in network input units.
        confidence: Winning class score (0-1).
        class_id: Index of the winning class.
        class_name: Optional human-readable class name.
    """
    cx: float
    cy: float
    w: float
    h: float
    confidence: float
    class_id: int
    class_name: Optional[str] = None

    @property
    def x1(self) -> float:
        return self.cx - self.w / 2

    @property
    def y1(self) -> float:
        return self.cy - self.h / 2

    @property
    def x2(self) -> float:
        return self.cx + self.w / 2

    @property
    def y2(self) -> float:
        return self.cy + self.h / 2

    @property
    def area(self) -> float:
        return self.w * self.h

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        """Return corner-form (x1, y1, x2, y2) tuple."""
        return (self.x1, self.y1, self.x2, self.y2)

    def to_pixels(self, width: int, height: int, input_size: int) -> Tuple[int, int, int, int]:
        """
        Map the box onto a source frame of the given size.

        The preprocessor stretches the frame to a square input, so x and y
        scale independently.

        Args:
            width: Source frame width in pixels.
            height: Source frame height in pixels.
            input_size: Network input side length the box is expressed in.
        """
        sx = width / input_size
        sy = height / input_size
        return (
            int(self.x1 * sx),
            int(self.y1 * sy),
            int(self.x2 * sx),
            int(self.y2 * sy),
        )

    @classmethod
    def from_numpy_row(cls, row: np.ndarray) -> "Detection":
        """
        Adapter: Convert from numpy row [cx, cy, w, h, confidence, class_id].
        """
        return cls(
            cx=float(row[0]),
            cy=float(row[1]),
            w=float(row[2]),
            h=float(row[3]),
            confidence=float(row[4]),
            class_id=int(row[5]),
        )

    def to_numpy(self) -> np.ndarray:
        """Convert to numpy array [cx, cy, w, h, confidence, class_id]."""
        return np.array([
            self.cx, self.cy, self.w, self.h,
            self.confidence,
            self.class_id,
        ], dtype=np.float64)


def detections_from_numpy(arr: np.ndarray) -> List[Detection]:
    """
    Adapter: Convert numpy array of detections to list of Detection objects.

    Args:
        arr: Array of shape (N, 6) where each row is [cx, cy, w, h, conf, class_id].
    """
    if arr is None or len(arr) == 0:
        return []
    return [Detection.from_numpy_row(row) for row in arr]


def detections_to_numpy(detections: List[Detection]) -> np.ndarray:
    """
    Adapter: Convert list of Detection objects to numpy array.

    Returns:
        Array of shape (N, 6) with [cx, cy, w, h, confidence, class_id].
    """
    if not detections:
        return np.zeros((0, 6), dtype=np.float64)
    return np.array([d.to_numpy() for d in detections])
