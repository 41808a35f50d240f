from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional

import cv2

from LC_Phase.checks.frame_data import Frame
from LC_Phase.utils.exceptions import FrameAcquisitionError
from LC_Phase.utils.log_setup import logger


class FrameSource(ABC):
    """
    Forward-only, restartable sequence of sampled frames.

    Subclasses implement read_frame(), returning the next Frame or None at
    end of stream. Timestamps increase monotonically. The source decides which
    underlying video frames are surfaced (sampling stride).
    """

    estimated_total: int = 0

    def open(self) -> None:
        """Acquire the underlying resource. Raises FrameAcquisitionError on failure."""

    @abstractmethod
    def read_frame(self) -> Optional[Frame]:
        raise NotImplementedError

    def restart(self) -> None:
        """Rewind to the first frame."""
        self.close()
        self.open()

    def close(self) -> None:
        """Release the underlying resource."""

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class InMemoryFrameSource(FrameSource):
    """Frames that are already decoded, surfaced every sampling_stride-th."""

    def __init__(self, frames: Iterable[Frame], sampling_stride: int = 1):
        if sampling_stride < 1:
            raise ValueError(f"sampling_stride must be >= 1 (got {sampling_stride})")
        self._frames: List[Frame] = list(frames)[::sampling_stride]
        self._position = 0
        self.estimated_total = len(self._frames)

    def read_frame(self) -> Optional[Frame]:
        if self._position >= len(self._frames):
            return None
        frame = self._frames[self._position]
        self._position += 1
        return frame

    def open(self) -> None:
        self._position = 0


class VideoFileFrameSource(FrameSource):
    """
    Decodes a video file with OpenCV, surfacing every sampling_stride-th frame
    as an RGB Frame. Skipped frames are grabbed but not decoded.
    """

    def __init__(self, video_path, sampling_stride: int = 30):
        if sampling_stride < 1:
            raise ValueError(f"sampling_stride must be >= 1 (got {sampling_stride})")
        self.video_path = Path(video_path)
        self.sampling_stride = sampling_stride
        self.cap = None
        self.fps = 0.0
        self.total_frames = 0
        self.width = 0
        self.height = 0
        self._next_index = 0

    @property
    def duration(self) -> float:
        return self.total_frames / self.fps if self.fps > 0 else 0.0

    def open(self) -> None:
        if self.cap is not None:
            return

        cap = cv2.VideoCapture(str(self.video_path))
        if not cap.isOpened():
            cap.release()
            raise FrameAcquisitionError(f"Cannot open video file: {self.video_path}")

        self.cap = cap
        self.fps = cap.get(cv2.CAP_PROP_FPS) or 0.0
        self.total_frames = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
        self.width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.estimated_total = (
            (self.total_frames + self.sampling_stride - 1) // self.sampling_stride
            if self.total_frames > 0 else 0
        )
        self._next_index = 0

        logger.info(f"Video loaded: {self.video_path.name} {self.width}x{self.height}, "
                    f"{self.fps:.2f}fps, {self.duration:.1f}s, "
                    f"~{self.estimated_total} frames at stride {self.sampling_stride}")

    def close(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None

    def _timestamp(self, index: int) -> float:
        if self.fps > 0:
            return index / self.fps
        # Containers without a frame rate still report a position
        return (self.cap.get(cv2.CAP_PROP_POS_MSEC) or 0.0) / 1000.0

    def read_frame(self) -> Optional[Frame]:
        if self.cap is None:
            self.open()

        index = self._next_index
        ok, bgr = self.cap.read()
        if not ok or bgr is None:
            return None
        timestamp = self._timestamp(index)

        # Advance past the frames between samples without decoding them
        for _ in range(self.sampling_stride - 1):
            if not self.cap.grab():
                break
        self._next_index = index + self.sampling_stride

        if bgr.ndim == 2:
            rgb = cv2.cvtColor(bgr, cv2.COLOR_GRAY2RGB)
        else:
            rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
        return Frame(pixels=rgb, timestamp=timestamp, index=index)
