"""
Command-line runner for the inference pipeline.

Loads a serialized engine, streams frames from a video file or a directory
of extracted frames through it, and logs per-frame detections and session
statistics.

Usage:
    trt-inference --config config/config.yaml
    trt-inference --engine model.engine --source test/test_det.mp4 --max-frames 300

Arguments:
    --config: Path to configuration file
    --engine: Engine file (overrides engine.engine_path)
    --source: Video file or frame directory (overrides source.path)
    --max-frames: Stop after this many frames
    --loop: Restart the source when it is exhausted
    --legacy-nms: Suppress in anchor order instead of by confidence
"""

import argparse
import logging
import os
import sys
from typing import Any, Dict, Optional, Tuple

import yaml

from trt_inference.inference import (
    EngineLoadError,
    InferenceResult,
    InferenceRuntime,
    LoggingObserver,
    create_backend,
)
from trt_inference.models.config import NMS_MODES, OUTPUT_LAYOUTS, SOURCE_KINDS, Config
from trt_inference.models.frame import Frame
from trt_inference.observation import create_source
from trt_inference.ops.logging import observer_severity, setup_logging
from trt_inference.pipeline import PipelineAbortedError, PipelineEngine


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def _read_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering, later layers winning:
    - `default.yaml` next to config_path (checked in)
    - `config.yaml` next to config_path (local overrides)
    - config_path itself, when it is some other file (e.g. a benchmark profile)

    Exits the process if any layer cannot be parsed.
    """
    config_dir = os.path.dirname(config_path)
    local_path = os.path.join(config_dir, "config.yaml")
    layers = [os.path.join(config_dir, "default.yaml"), local_path]
    if os.path.abspath(config_path) != os.path.abspath(local_path):
        layers.append(config_path)

    merged: Dict[str, Any] = {}
    for path in layers:
        if not os.path.exists(path):
            continue
        try:
            merged = _deep_merge(merged, _read_yaml(path))
        except (OSError, yaml.YAMLError) as e:
            logging.error(f"Failed to load configuration {path}: {e}")
            sys.exit(1)
    return merged


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['engine', 'source', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Engine
    engine = config.get('engine') or {}
    if not engine.get('engine_path'):
        return False, "Missing engine.engine_path"
    for key in ('input_tensor', 'output_tensor'):
        if key in engine and (not isinstance(engine[key], str) or not engine[key]):
            return False, f"engine.{key} must be a non-empty string"
    resolution = engine.get('input_resolution')
    if resolution is not None and (not isinstance(resolution, int) or resolution <= 0):
        return False, "engine.input_resolution must be a positive integer"
    num_classes = engine.get('num_classes')
    if num_classes is not None and (not isinstance(num_classes, int) or num_classes <= 0):
        return False, "engine.num_classes must be a positive integer"
    if engine.get('output_layout', 'anchor_major') not in OUTPUT_LAYOUTS:
        return False, f"engine.output_layout must be one of: {', '.join(OUTPUT_LAYOUTS)}"

    # Postprocess
    post = config.get('postprocess') or {}
    for key in ('conf_threshold', 'iou_threshold'):
        if key in post:
            value = post[key]
            if not _is_number(value) or not (0 <= value <= 1):
                return False, f"postprocess.{key} must be between 0 and 1"
    if post.get('nms_mode', 'sorted') not in NMS_MODES:
        return False, f"postprocess.nms_mode must be one of: {', '.join(NMS_MODES)}"
    max_det = post.get('max_detections')
    if max_det is not None and (not isinstance(max_det, int) or max_det <= 0):
        return False, "postprocess.max_detections must be a positive integer"

    # Source
    source = config.get('source') or {}
    if source.get('kind', 'video') not in SOURCE_KINDS:
        return False, f"source.kind must be one of: {', '.join(SOURCE_KINDS)}"
    if not source.get('path'):
        return False, "Missing source.path"

    # Pipeline
    pipeline = config.get('pipeline') or {}
    max_frames = pipeline.get('max_frames')
    if max_frames is not None and (not isinstance(max_frames, int) or max_frames <= 0):
        return False, "pipeline.max_frames must be a positive integer"
    failures = pipeline.get('max_consecutive_failures', 0)
    if not isinstance(failures, int) or failures < 0:
        return False, "pipeline.max_consecutive_failures must be a non-negative integer"

    # Log settings
    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


def apply_overrides(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Fold command-line overrides into the config dict."""
    if args.engine:
        config.setdefault('engine', {})['engine_path'] = args.engine
    if args.source:
        source = config.setdefault('source', {})
        source['path'] = args.source
        source['kind'] = 'images' if os.path.isdir(args.source) else 'video'
    if args.max_frames is not None:
        config.setdefault('pipeline', {})['max_frames'] = args.max_frames
    if args.loop:
        config.setdefault('source', {})['loop'] = True
    if args.legacy_nms:
        config.setdefault('postprocess', {})['nms_mode'] = 'legacy'
    return config


def log_frame_result(frame: Frame, result: InferenceResult) -> None:
    if not result.ok:
        return
    logging.debug(
        f"frame={result.frame_index} detections={len(result.detections)} "
        f"latency={result.latency_ms:.1f} ms"
    )
    for det in result.detections:
        label = det.class_name or f"Class {det.class_id}"
        logging.debug(
            f"  {label}: {det.confidence * 100:.0f}% "
            f"cx={det.cx:.1f} cy={det.cy:.1f} w={det.w:.1f} h={det.h:.1f}"
        )


def run(config: Config) -> int:
    """Run one inference session. Returns the process exit code."""
    observer = LoggingObserver(min_severity=observer_severity(config.log_level))
    try:
        backend = create_backend(config.engine.backend, observer)
    except ImportError as e:
        logging.error(str(e))
        return 1

    with InferenceRuntime(backend, config.engine, config.postprocess, observer) as runtime:
        try:
            runtime.load(config.engine.engine_path)
        except EngineLoadError as e:
            logging.error(f"Failed to load engine: {e}")
            return 1

        source = create_source(config.source)
        engine = PipelineEngine(source, runtime, config.pipeline, loop=config.source.loop)
        engine.add_callback(log_frame_result)
        try:
            stats = engine.run()
        except PipelineAbortedError as e:
            logging.error(f"Session aborted: {e}")
            return 1
        except RuntimeError as e:
            logging.error(f"Failed to open source: {e}")
            return 1

    logging.info(
        f"Test completed: frames={stats.frame_count}, detections={stats.detection_count}, "
        f"failures={stats.failure_count}, avg latency={stats.avg_latency_ms:.1f} ms, "
        f"fps={stats.fps:.1f}"
    )
    return 0


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='TensorRT detection engine tester')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--engine', type=str, default=None,
                        help='Serialized engine file')
    parser.add_argument('--source', type=str, default=None,
                        help='Video file or directory of frame images')
    parser.add_argument('--max-frames', type=int, default=None,
                        help='Stop after this many frames')
    parser.add_argument('--loop', action='store_true',
                        help='Restart the source when exhausted')
    parser.add_argument('--legacy-nms', action='store_true',
                        help='Suppress in anchor order instead of by confidence')
    args = parser.parse_args()

    config = apply_overrides(load_config(args.config), args)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])
    logging.info("Starting TensorRT engine test")

    sys.exit(run(Config.from_dict(config)))


if __name__ == "__main__":
    main()
