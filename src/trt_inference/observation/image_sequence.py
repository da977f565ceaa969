"""
Image-sequence source for directories of extracted frames
(e.g. frame_0001.jpg, frame_0002.jpg, ... written by ffmpeg).
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import List, Optional

import cv2

from ..models.frame import Frame
from .base import FrameSource


class ImageSequenceSource(FrameSource):
    """
    Reads image files from a directory in file-name order.

    Files are listed on open() and decoded lazily, one per read().
    """

    def __init__(self, directory: str, pattern: str = "*.jpg", source_id: str = "images"):
        super().__init__(source_id)
        self.directory = Path(directory)
        self.pattern = pattern
        self._files: List[Path] = []
        self._pos = 0

    @property
    def frame_count(self) -> int:
        return len(self._files)

    def open(self) -> None:
        if self._is_open:
            return
        if not self.directory.is_dir():
            raise RuntimeError(f"Frame directory not found: {self.directory}")

        self._files = sorted(p for p in self.directory.glob(self.pattern) if p.is_file())
        self._pos = 0
        self._frame_index = 0
        self._is_open = True
        logging.info(
            f"ImageSequenceSource opened: source_id={self.source_id}, "
            f"directory={self.directory}, frames={len(self._files)}"
        )

    def read(self) -> Optional[Frame]:
        while self._is_open and self._pos < len(self._files):
            path = self._files[self._pos]
            self._pos += 1

            image = cv2.imread(str(path), cv2.IMREAD_COLOR)
            if image is None:
                logging.warning(f"Skipping unreadable frame image: {path}")
                continue

            image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

            self._frame_index += 1
            return Frame.from_numpy(
                image,
                frame_index=self._frame_index,
                timestamp=time.time(),
                source=self.source_id,
            )
        return None

    def reset(self) -> None:
        self._pos = 0
        self._frame_index = 0

    def close(self) -> None:
        self._is_open = False
        self._files = []
        self._pos = 0
