"""
Observation layer for pluggable frame sources.

This layer hides where frames come from (video file, extracted image
sequence) from the inference pipeline. Each source implements the
FrameSource interface and returns Frame objects.
"""

from ..models.config import SourceConfig
from .base import FrameSource
from .video_source import VideoFileSource
from .image_sequence import ImageSequenceSource


def create_source(config: SourceConfig) -> FrameSource:
    """Factory: build a FrameSource from its configuration."""
    if config.kind == "video":
        return VideoFileSource(config.path, source_id=config.source_id)
    if config.kind == "images":
        return ImageSequenceSource(config.path, pattern=config.pattern, source_id=config.source_id)
    raise ValueError(f"Unknown source kind: {config.kind}")


__all__ = [
    "FrameSource",
    "VideoFileSource",
    "ImageSequenceSource",
    "create_source",
]
