"""
Preprocessing from raw frames to network input tensors.
"""

from .resize import add_batch_dim, preprocess_frame, source_indices

__all__ = [
    "add_batch_dim",
    "preprocess_frame",
    "source_indices",
]
