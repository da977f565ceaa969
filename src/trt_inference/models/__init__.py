"""
Typed models for the inference pipeline.
"""

from .frame import Frame
from .detection import Detection, detections_from_numpy, detections_to_numpy
from .config import (
    Config,
    EngineConfig,
    PostprocessConfig,
    SourceConfig,
    PipelineConfig,
)

__all__ = [
    # Frame
    "Frame",
    # Detection
    "Detection",
    "detections_from_numpy",
    "detections_to_numpy",
    # Config
    "Config",
    "EngineConfig",
    "PostprocessConfig",
    "SourceConfig",
    "PipelineConfig",
]
