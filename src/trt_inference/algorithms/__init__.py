"""
Post-processing algorithms for detector output.

- geometry: center/corner conversion and intersection-over-union
- decode: raw per-anchor scores to candidate detections
- nms: class-aware greedy non-maximum suppression
"""

from .geometry import center_to_corners, intersection_over_union, iou_matrix
from .decode import anchor_rows, decode_detections
from .nms import non_max_suppression

__all__ = [
    "center_to_corners",
    "intersection_over_union",
    "iou_matrix",
    "anchor_rows",
    "decode_detections",
    "non_max_suppression",
]
