"""
Pytest configuration and shared fixtures.
"""

import os
import sys
from typing import Dict, List, Optional, Tuple

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from trt_inference.inference.backend import LoadedEngine
from trt_inference.inference.buffers import DeviceBuffer, HostBuffer
from trt_inference.inference.observer import RecordingObserver
from trt_inference.models.config import PipelineConfig
from trt_inference.models.frame import Frame
from trt_inference.observation.base import FrameSource


RESOLUTION = 8
NUM_CLASSES = 2


def make_output(rows: List[List[float]], num_classes: int = NUM_CLASSES) -> np.ndarray:
    """Build an anchor-major (1, A, 4 + C) output tensor from per-anchor rows."""
    arr = np.asarray(rows, dtype=np.float32).reshape(1, -1, 4 + num_classes)
    return arr


# Two overlapping class-0 boxes and one class-1 box.
DEFAULT_ROWS = [
    [10.0, 10.0, 20.0, 20.0, 0.6, 0.1],
    [11.0, 11.0, 20.0, 20.0, 0.9, 0.1],
    [50.0, 50.0, 10.0, 10.0, 0.1, 0.8],
    [90.0, 90.0, 10.0, 10.0, 0.1, 0.2],
]


class StubEngine(LoadedEngine):
    """Host-memory engine that writes a fixed output on every execute()."""

    def __init__(
        self,
        output: np.ndarray,
        input_shape: Tuple[int, ...] = (1, 3, RESOLUTION, RESOLUTION),
        input_name: str = "images",
        output_name: str = "output0",
    ):
        self.output = np.asarray(output, dtype=np.float32)
        self.shapes = {input_name: tuple(input_shape), output_name: tuple(self.output.shape)}
        self.fail_execute = False
        self.fail_allocate: Optional[str] = None
        self.execute_calls = 0
        self.last_input: Optional[np.ndarray] = None
        self.allocated: List[DeviceBuffer] = []
        self.closed = False

    @property
    def tensor_names(self) -> List[str]:
        return list(self.shapes)

    def tensor_shape(self, name: str) -> Tuple[int, ...]:
        return self.shapes[name]

    def tensor_dtype(self, name: str) -> np.dtype:
        return np.dtype(np.float32)

    def allocate(self, name: str) -> DeviceBuffer:
        if name == self.fail_allocate:
            raise MemoryError(f"out of device memory for {name}")
        buf = HostBuffer(name, self.shapes[name])
        self.allocated.append(buf)
        return buf

    def execute(self, bindings: Dict[str, DeviceBuffer]) -> None:
        self.execute_calls += 1
        if self.fail_execute:
            raise RuntimeError("enqueue failed")
        inputs = [b for n, b in bindings.items() if n != "output0"]
        self.last_input = inputs[0].copy_to_host() if inputs else None
        bindings["output0"].copy_from_host(self.output)

    def close(self) -> None:
        self.closed = True


class StubBackend:
    """Backend handing out a prepared StubEngine for any non-corrupt blob."""

    def __init__(self, engine: Optional[StubEngine] = None):
        self.engine = engine or StubEngine(make_output(DEFAULT_ROWS))
        self.blobs: List[bytes] = []

    def deserialize(self, blob: bytes) -> Optional[LoadedEngine]:
        self.blobs.append(blob)
        if blob.startswith(b"CORRUPT"):
            return None
        return self.engine


class ListSource(FrameSource):
    """In-memory frame source for pipeline tests."""

    def __init__(self, frames: List[np.ndarray], source_id: str = "list"):
        super().__init__(source_id)
        self._frames = frames
        self._pos = 0
        self.open_calls = 0
        self.reset_calls = 0
        self.close_calls = 0

    def open(self) -> None:
        self.open_calls += 1
        self._is_open = True
        self._pos = 0
        self._frame_index = 0

    def read(self) -> Optional[Frame]:
        if not self._is_open or self._pos >= len(self._frames):
            return None
        pixels = self._frames[self._pos]
        self._pos += 1
        self._frame_index += 1
        return Frame.from_numpy(pixels, frame_index=self._frame_index, source=self.source_id)

    def reset(self) -> None:
        self.reset_calls += 1
        self._pos = 0
        self._frame_index = 0

    def close(self) -> None:
        self.close_calls += 1
        self._is_open = False


@pytest.fixture
def engine_file(tmp_path):
    """A non-empty engine file on disk."""
    path = tmp_path / "model.engine"
    path.write_bytes(b"serialized-engine")
    return str(path)


@pytest.fixture
def stub_backend():
    return StubBackend()


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def rgb_frame():
    """A 6x10 RGB frame with a horizontal gradient."""
    pixels = np.zeros((6, 10, 3), dtype=np.uint8)
    pixels[:, :, 0] = np.arange(10, dtype=np.uint8) * 25
    pixels[:, :, 1] = 128
    pixels[:, :, 2] = 255
    return Frame.from_numpy(pixels, frame_index=1)


@pytest.fixture
def list_source():
    frames = [np.full((4, 4, 3), i * 10, dtype=np.uint8) for i in range(5)]
    return ListSource(frames)


@pytest.fixture
def pipeline_config():
    return PipelineConfig(stats_log_interval=3600.0)


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
engine:
  engine_path: "models/default.engine"
  input_tensor: "images"
  output_tensor: "output0"

postprocess:
  conf_threshold: 0.25
  iou_threshold: 0.45
  nms_mode: "sorted"

source:
  kind: "video"
  path: "test/test_det.mp4"

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "engine": {
            "engine_path": "models/test.engine",
            "backend": "tensorrt",
            "input_tensor": "images",
            "output_tensor": "output0",
            "output_layout": "anchor_major",
        },
        "postprocess": {
            "conf_threshold": 0.25,
            "iou_threshold": 0.45,
            "nms_mode": "sorted",
        },
        "source": {
            "kind": "video",
            "path": "test/test_det.mp4",
        },
        "pipeline": {
            "max_consecutive_failures": 0,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
