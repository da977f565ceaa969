"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


NMS_MODES = ("sorted", "legacy")
OUTPUT_LAYOUTS = ("anchor_major", "channel_major")
SOURCE_KINDS = ("video", "images")


@dataclass
class EngineConfig:
    """Serialized engine and tensor binding configuration."""
    engine_path: str = ""
    backend: str = "tensorrt"
    input_tensor: str = "images"
    output_tensor: str = "output0"
    input_resolution: Optional[int] = None
    num_classes: Optional[int] = None
    output_layout: str = "anchor_major"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "EngineConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            engine_path=d.get("engine_path", ""),
            backend=d.get("backend", "tensorrt"),
            input_tensor=d.get("input_tensor", "images"),
            output_tensor=d.get("output_tensor", "output0"),
            input_resolution=d.get("input_resolution"),
            num_classes=d.get("num_classes"),
            output_layout=d.get("output_layout", "anchor_major"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "engine_path": self.engine_path,
            "backend": self.backend,
            "input_tensor": self.input_tensor,
            "output_tensor": self.output_tensor,
            "output_layout": self.output_layout,
        }
        if self.input_resolution is not None:
            d["input_resolution"] = self.input_resolution
        if self.num_classes is not None:
            d["num_classes"] = self.num_classes
        return d


@dataclass
class PostprocessConfig:
    """Decoder and suppression thresholds."""
    conf_threshold: float = 0.25
    iou_threshold: float = 0.45
    nms_mode: str = "sorted"
    max_detections: Optional[int] = None
    class_thresholds: Optional[Dict[int, float]] = None
    class_names: Optional[Dict[int, str]] = None

    @property
    def sort_by_confidence(self) -> bool:
        return self.nms_mode != "legacy"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PostprocessConfig":
        class_thresholds = d.get("class_thresholds")
        if class_thresholds is not None:
            class_thresholds = {int(k): float(v) for k, v in class_thresholds.items()}
        class_names = d.get("class_names")
        if isinstance(class_names, list):
            class_names = dict(enumerate(class_names))
        elif class_names is not None:
            class_names = {int(k): str(v) for k, v in class_names.items()}
        return cls(
            conf_threshold=d.get("conf_threshold", 0.25),
            iou_threshold=d.get("iou_threshold", 0.45),
            nms_mode=d.get("nms_mode", "sorted"),
            max_detections=d.get("max_detections"),
            class_thresholds=class_thresholds,
            class_names=class_names,
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "conf_threshold": self.conf_threshold,
            "iou_threshold": self.iou_threshold,
            "nms_mode": self.nms_mode,
        }
        if self.max_detections is not None:
            d["max_detections"] = self.max_detections
        if self.class_thresholds is not None:
            d["class_thresholds"] = self.class_thresholds
        if self.class_names is not None:
            d["class_names"] = self.class_names
        return d


@dataclass
class SourceConfig:
    """Frame source configuration."""
    kind: str = "video"
    path: str = ""
    pattern: str = "*.jpg"
    loop: bool = False
    source_id: str = "main"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SourceConfig":
        return cls(
            kind=d.get("kind", "video"),
            path=d.get("path", ""),
            pattern=d.get("pattern", "*.jpg"),
            loop=d.get("loop", False),
            source_id=d.get("source_id", "main"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "path": self.path,
            "pattern": self.pattern,
            "loop": self.loop,
            "source_id": self.source_id,
        }


@dataclass
class PipelineConfig:
    """
    Configuration for the pipeline session loop.

    Attributes:
        max_frames: Stop after this many frames. None = until the source is exhausted.
        max_consecutive_failures: Abort after this many consecutive inference
            failures. 0 disables escalation.
        stats_log_interval: Seconds between status log messages.
        latency_window: Number of recent frames averaged for latency/FPS.
    """
    max_frames: Optional[int] = None
    max_consecutive_failures: int = 0
    stats_log_interval: float = 5.0
    latency_window: int = 30

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PipelineConfig":
        return cls(
            max_frames=d.get("max_frames"),
            max_consecutive_failures=d.get("max_consecutive_failures", 0),
            stats_log_interval=d.get("stats_log_interval", 5.0),
            latency_window=d.get("latency_window", 30),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "max_consecutive_failures": self.max_consecutive_failures,
            "stats_log_interval": self.stats_log_interval,
            "latency_window": self.latency_window,
        }
        if self.max_frames is not None:
            d["max_frames"] = self.max_frames
        return d


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    engine: EngineConfig = field(default_factory=EngineConfig)
    postprocess: PostprocessConfig = field(default_factory=PostprocessConfig)
    source: SourceConfig = field(default_factory=SourceConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    log_path: str = "logs/trt_inference.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            engine=EngineConfig.from_dict(d.get("engine", {}) or {}),
            postprocess=PostprocessConfig.from_dict(d.get("postprocess", {}) or {}),
            source=SourceConfig.from_dict(d.get("source", {}) or {}),
            pipeline=PipelineConfig.from_dict(d.get("pipeline", {}) or {}),
            log_path=d.get("log_path", "logs/trt_inference.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or logging)."""
        return {
            "engine": self.engine.to_dict(),
            "postprocess": self.postprocess.to_dict(),
            "source": self.source.to_dict(),
            "pipeline": self.pipeline.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
