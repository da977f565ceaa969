"""
Frame preprocessing into the fixed network input tensor.

The resize is a nearest-neighbour stretch: aspect ratio is not preserved,
callers that need letterboxing must pad the frame first.
"""

from __future__ import annotations

from typing import Union

import numpy as np

from ..models.frame import Frame


INPUT_CHANNELS = 3


def source_indices(src_size: int, dst_size: int) -> np.ndarray:
    """Nearest source index floor(i * src / dst) for each destination index, clamped."""
    idx = (np.arange(dst_size, dtype=np.int64) * src_size) // dst_size
    return np.minimum(idx, src_size - 1)


def preprocess_frame(frame: Union[Frame, np.ndarray], resolution: int) -> np.ndarray:
    """
    Resize and normalise a frame into a (3, R, R) float32 tensor.

    Args:
        frame: Frame or HxW[xC] uint8 array, RGB(A) channel order.
        resolution: Network input side length R.

    Returns:
        Channel-planar RGB tensor with values in [0, 1]. Missing channels
        are zero; channels past the third are ignored.
    """
    if resolution < 1:
        raise ValueError(f"resolution must be positive, got {resolution}")

    pixels = frame.pixels if isinstance(frame, Frame) else np.asarray(frame)
    if pixels.ndim == 2:
        pixels = pixels[:, :, np.newaxis]
    height, width, channels = pixels.shape
    if height == 0 or width == 0:
        raise ValueError("Cannot preprocess an empty frame")

    rows = source_indices(height, resolution)
    cols = source_indices(width, resolution)
    sampled = pixels[rows[:, None], cols[None, :], :min(channels, INPUT_CHANNELS)]

    tensor = np.zeros((INPUT_CHANNELS, resolution, resolution), dtype=np.float32)
    tensor[:sampled.shape[2]] = np.transpose(sampled, (2, 0, 1)).astype(np.float32) / 255.0
    return tensor


def add_batch_dim(tensor: np.ndarray) -> np.ndarray:
    """Return a contiguous (1, C, H, W) view for NCHW engine inputs."""
    return np.ascontiguousarray(tensor[np.newaxis, ...])
