"""
Detection decoder.

Turns the flat per-anchor score tensor emitted by a fixed-shape detector
head into candidate detections via class argmax and confidence thresholding.
"""

from __future__ import annotations

from typing import Dict, List, Optional

import numpy as np

from ..models.detection import Detection


BOX_PARAMS = 4


def anchor_rows(output: np.ndarray, num_classes: int, layout: str = "anchor_major") -> np.ndarray:
    """
    Reshape a raw output tensor into (num_anchors, 4 + num_classes) rows.

    Args:
        output: Raw output values, any shape.
        num_classes: Number of class scores per anchor.
        layout: "anchor_major" when each anchor's values are contiguous,
            "channel_major" for (4 + num_classes, num_anchors) tensors.
    """
    if num_classes < 1:
        raise ValueError(f"num_classes must be positive, got {num_classes}")

    stride = BOX_PARAMS + num_classes
    flat = np.asarray(output, dtype=np.float32).reshape(-1)
    if flat.size % stride != 0:
        raise ValueError(
            f"Output size {flat.size} is not a multiple of 4 + num_classes ({stride})"
        )
    num_anchors = flat.size // stride

    if layout == "anchor_major":
        return flat.reshape(num_anchors, stride)
    if layout == "channel_major":
        return flat.reshape(stride, num_anchors).T
    raise ValueError(f"Unknown output layout: {layout}")


def decode_detections(
    output: np.ndarray,
    num_classes: int,
    conf_threshold: float = 0.25,
    layout: str = "anchor_major",
    class_thresholds: Optional[Dict[int, float]] = None,
    class_names: Optional[Dict[int, str]] = None,
) -> List[Detection]:
    """
    Decode raw detector output into candidate detections.

    For every anchor the highest class score wins (the lowest class index on
    ties). The anchor is kept only if that score is strictly greater than the
    threshold. Output order follows anchor order; nothing is sorted here.

    Args:
        output: Raw output tensor of num_anchors * (4 + num_classes) floats.
        num_classes: Number of class scores per anchor.
        conf_threshold: Default confidence threshold.
        layout: Memory layout of the output, see anchor_rows().
        class_thresholds: Optional per-class overrides of conf_threshold.
        class_names: Optional class id to name lookup.

    Returns:
        Candidate detections in ascending anchor order.
    """
    rows = anchor_rows(output, num_classes, layout)
    if rows.shape[0] == 0:
        return []

    scores = rows[:, BOX_PARAMS:]
    # argmax returns the first maximum, which is the tie-break we want
    class_ids = np.argmax(scores, axis=1)
    confidences = scores[np.arange(scores.shape[0]), class_ids]

    thresholds = np.full(scores.shape[0], conf_threshold, dtype=np.float64)
    if class_thresholds:
        for class_id, threshold in class_thresholds.items():
            thresholds[class_ids == class_id] = threshold

    keep = np.nonzero(confidences > thresholds)[0]

    names = class_names or {}
    detections: List[Detection] = []
    for idx in keep:
        cx, cy, w, h = rows[idx, :BOX_PARAMS]
        class_id = int(class_ids[idx])
        detections.append(
            Detection(
                cx=float(cx),
                cy=float(cy),
                w=float(w),
                h=float(h),
                confidence=float(confidences[idx]),
                class_id=class_id,
                class_name=names.get(class_id),
            )
        )
    return detections
