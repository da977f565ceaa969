"""
Box geometry helpers.

All boxes are center-form (cx, cy, w, h). Degenerate boxes are handled
numerically through the epsilon in the IoU denominator, never raised.
"""

from __future__ import annotations

from typing import Protocol, Tuple

import numpy as np


IOU_EPSILON = 1e-6


class CenterBox(Protocol):
    cx: float
    cy: float
    w: float
    h: float


def center_to_corners(cx: float, cy: float, w: float, h: float) -> Tuple[float, float, float, float]:
    """Convert (cx, cy, w, h) to corner-form (x1, y1, x2, y2)."""
    return (cx - w / 2, cy - h / 2, cx + w / 2, cy + h / 2)


def intersection_over_union(a: CenterBox, b: CenterBox, eps: float = IOU_EPSILON) -> float:
    """
    Intersection-over-union of two center-form boxes.

    Args:
        a: First box (anything with cx, cy, w, h).
        b: Second box.
        eps: Added to the union so two zero-area boxes yield 0.0.

    Returns:
        intersection / (area_a + area_b - intersection + eps)
    """
    ax1, ay1, ax2, ay2 = center_to_corners(a.cx, a.cy, a.w, a.h)
    bx1, by1, bx2, by2 = center_to_corners(b.cx, b.cy, b.w, b.h)

    ix1 = max(ax1, bx1)
    iy1 = max(ay1, by1)
    ix2 = min(ax2, bx2)
    iy2 = min(ay2, by2)

    intersection = max(0.0, ix2 - ix1) * max(0.0, iy2 - iy1)
    area_a = a.w * a.h
    area_b = b.w * b.h
    union = area_a + area_b - intersection

    return intersection / (union + eps)


def iou_matrix(boxes_a: np.ndarray, boxes_b: np.ndarray, eps: float = IOU_EPSILON) -> np.ndarray:
    """
    Pairwise IoU between two sets of center-form boxes.

    Args:
        boxes_a: Array of shape (N, 4) with [cx, cy, w, h] rows.
        boxes_b: Array of shape (M, 4) with [cx, cy, w, h] rows.

    Returns:
        Array of shape (N, M).
    """
    a = np.asarray(boxes_a, dtype=np.float64).reshape(-1, 4)
    b = np.asarray(boxes_b, dtype=np.float64).reshape(-1, 4)

    a_x1 = a[:, 0] - a[:, 2] / 2
    a_y1 = a[:, 1] - a[:, 3] / 2
    a_x2 = a[:, 0] + a[:, 2] / 2
    a_y2 = a[:, 1] + a[:, 3] / 2
    b_x1 = b[:, 0] - b[:, 2] / 2
    b_y1 = b[:, 1] - b[:, 3] / 2
    b_x2 = b[:, 0] + b[:, 2] / 2
    b_y2 = b[:, 1] + b[:, 3] / 2

    iw = np.clip(np.minimum(a_x2[:, None], b_x2[None, :]) - np.maximum(a_x1[:, None], b_x1[None, :]), 0.0, None)
    ih = np.clip(np.minimum(a_y2[:, None], b_y2[None, :]) - np.maximum(a_y1[:, None], b_y1[None, :]), 0.0, None)
    intersection = iw * ih

    area_a = (a[:, 2] * a[:, 3])[:, None]
    area_b = (b[:, 2] * b[:, 3])[None, :]
    return intersection / (area_a + area_b - intersection + eps)
