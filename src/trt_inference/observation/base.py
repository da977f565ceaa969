"""
FrameSource interface for pluggable frame producers.

The pipeline only needs a lazy, finite, restartable sequence of Frames:
- video files
- directories of extracted frame images
- test doubles

How the frames are decoded stays inside each source.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator, Optional

from ..models.frame import Frame


class FrameSource(ABC):
    """
    Abstract base class for frame sources.

    Lifecycle:
        1. Create instance
        2. Call open() to initialize the source
        3. Call read() repeatedly to get frames, reset() to start over
        4. Call close() to release resources

    Can also be used as a context manager:
        with VideoFileSource("clip.mp4") as source:
            for frame in source:
                process(frame)
    """

    def __init__(self, source_id: str = "default"):
        self._source_id = source_id
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        """Unique identifier for this source."""
        return self._source_id

    @property
    def is_open(self) -> bool:
        """Whether the source is currently open and ready to read."""
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Number of frames read since open() or the last reset()."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Open/initialize the source.

        Raises:
            RuntimeError: If the source cannot be opened.
        """

    @abstractmethod
    def read(self) -> Optional[Frame]:
        """
        Read the next frame.

        Returns:
            The next Frame, or None when the sequence is exhausted.
        """

    @abstractmethod
    def reset(self) -> None:
        """Rewind to the first frame."""

    @abstractmethod
    def close(self) -> None:
        """
        Release the source.

        Safe to call multiple times.
        """

    def __enter__(self) -> "FrameSource":
        """Context manager entry - opens the source."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - closes the source."""
        self.close()

    def __iter__(self) -> Iterator[Frame]:
        """
        Iterate over frames until the source is exhausted.

        The source must be open before iterating.
        """
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")

        while True:
            frame = self.read()
            if frame is None:
                break
            yield frame
