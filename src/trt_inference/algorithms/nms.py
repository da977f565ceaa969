"""
Class-aware greedy non-maximum suppression.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from ..models.detection import Detection
from .geometry import intersection_over_union


def non_max_suppression(
    candidates: Sequence[Detection],
    iou_threshold: float = 0.45,
    sort_by_confidence: bool = True,
    max_detections: Optional[int] = None,
) -> List[Detection]:
    """
    Remove overlapping same-class detections.

    Each surviving candidate suppresses every later candidate of the same
    class whose IoU with it is strictly greater than iou_threshold.
    Candidates of different classes never suppress each other.

    Args:
        candidates: Decoded candidates, in anchor order.
        iou_threshold: Overlap above which a later box is suppressed.
        sort_by_confidence: Stable-sort by descending confidence before the
            sweep so the strongest box of a cluster survives. False keeps the
            input order (legacy behaviour).
        max_detections: Optional cap on the number of kept detections.

    Returns:
        Kept detections, in sweep order.
    """
    if sort_by_confidence:
        ordered = sorted(candidates, key=lambda d: d.confidence, reverse=True)
    else:
        ordered = list(candidates)

    kept: List[Detection] = []
    suppressed = [False] * len(ordered)

    for i, current in enumerate(ordered):
        if suppressed[i]:
            continue
        kept.append(current)
        if max_detections is not None and len(kept) >= max_detections:
            break

        for j in range(i + 1, len(ordered)):
            if suppressed[j]:
                continue
            other = ordered[j]
            if current.class_id != other.class_id:
                continue
            if intersection_over_union(current, other) > iou_threshold:
                suppressed[j] = True

    return kept
