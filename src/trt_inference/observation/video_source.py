"""
OpenCV-based video file source.

Frames are converted from OpenCV's BGR order to the RGB order the
preprocessor expects.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional

import cv2

from ..models.frame import Frame
from .base import FrameSource


class VideoFileSource(FrameSource):
    """
    Video file source wrapping cv2.VideoCapture.

    Example:
        with VideoFileSource("test/test_det.mp4") as source:
            for frame in source:
                runtime.infer(frame)
    """

    def __init__(self, path: str, source_id: str = "video"):
        super().__init__(source_id)
        self.path = path
        self._cap: Optional[cv2.VideoCapture] = None

    def open(self) -> None:
        """Open the video file."""
        if self._is_open:
            return

        if not os.path.exists(self.path):
            raise RuntimeError(f"Video file not found: {self.path}")

        self._cap = cv2.VideoCapture(self.path)
        if not self._cap.isOpened():
            self._cap.release()
            self._cap = None
            raise RuntimeError(f"Failed to open video file: {self.path}")

        self._is_open = True
        self._frame_index = 0
        logging.info(f"VideoFileSource opened: source_id={self.source_id}, path={self.path}")

    def read(self) -> Optional[Frame]:
        """Read and decode the next frame."""
        if not self._is_open or self._cap is None:
            return None

        ret, bgr = self._cap.read()
        if not ret or bgr is None:
            logging.info("End of video file reached")
            return None

        rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
        self._frame_index += 1
        return Frame.from_numpy(
            rgb,
            frame_index=self._frame_index,
            timestamp=time.time(),
            source=self.source_id,
        )

    def reset(self) -> None:
        """Seek back to the first frame."""
        if self._cap is not None:
            self._cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
        self._frame_index = 0

    def close(self) -> None:
        """Release the capture handle."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        if self._is_open:
            logging.info(f"VideoFileSource closed: source_id={self.source_id}")
        self._is_open = False

    @property
    def frame_count(self) -> Optional[int]:
        if self._cap is None:
            return None
        return int(self._cap.get(cv2.CAP_PROP_FRAME_COUNT))

    def get_video_info(self) -> Dict[str, Any]:
        """Get information about the open video file."""
        if self._cap is None or not self._cap.isOpened():
            return {}

        return {
            "width": int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            "height": int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            "fps": self._cap.get(cv2.CAP_PROP_FPS),
            "frame_count": self.frame_count,
        }
