#!/usr/bin/env python3
"""
Data model shared by the per-frame checks: captured frames, phase labels and
the per-frame result record.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union

import cv2
import numpy as np

from LC_Phase.utils.exceptions import FrameProcessingError


class Phase(Enum):
    CHOLESTERIC = "CHOLESTERIC"
    ISOTROPIC = "ISOTROPIC"
    ERROR = "ERROR"


# Column order of the tabular export
RESULT_COLUMNS = (
    'frame_number',
    'timestamp_seconds',
    'timestamp_minutes',
    'num_contours',
    'phase_contour',
    'variance',
    'std_dev',
    'phase_variance',
)


@dataclass(frozen=True)
class Frame:
    """A decoded video frame: RGB or RGBA uint8 pixels of shape (height, width, channels)"""
    pixels: np.ndarray
    timestamp: float
    index: int

    def __post_init__(self):
        pixels = self.pixels
        if not isinstance(pixels, np.ndarray) or pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
            shape = getattr(pixels, 'shape', None)
            raise FrameProcessingError(
                f"Frame {self.index}: expected (height, width, 3|4) pixel array, got shape {shape}",
                frame_index=self.index
            )
        if pixels.dtype != np.uint8:
            raise FrameProcessingError(
                f"Frame {self.index}: expected uint8 pixels, got {pixels.dtype}",
                frame_index=self.index
            )
        # Frames are immutable once captured
        pixels = np.array(pixels, copy=True)
        pixels.setflags(write=False)
        object.__setattr__(self, 'pixels', pixels)

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def channels(self) -> int:
        return self.pixels.shape[2]

    @classmethod
    def from_buffer(cls, buffer: Union[bytes, bytearray, memoryview, np.ndarray],
                    width: int, height: int, timestamp: float, index: int,
                    channels: Optional[int] = None) -> 'Frame':
        """
        Build a frame from an interleaved R,G,B[,A] byte buffer.

        Args:
            buffer: Raw pixel bytes, row-major
            width: Declared frame width
            height: Declared frame height
            timestamp: Seconds from the start of the video
            index: Sequence index of the frame
            channels: 3 or 4; inferred from the buffer size when omitted

        Raises:
            FrameProcessingError: if the buffer size does not match width x height
        """
        data = np.frombuffer(buffer, dtype=np.uint8) if not isinstance(buffer, np.ndarray) else buffer.reshape(-1)
        pixel_total = width * height
        if width <= 0 or height <= 0:
            raise FrameProcessingError(f"Frame {index}: invalid dimensions {width}x{height}", frame_index=index)

        if channels is None:
            if data.size == pixel_total * 4:
                channels = 4
            elif data.size == pixel_total * 3:
                channels = 3
            else:
                raise FrameProcessingError(
                    f"Frame {index}: buffer of {data.size} bytes does not match {width}x{height} RGB or RGBA",
                    frame_index=index
                )
        elif data.size != pixel_total * channels:
            raise FrameProcessingError(
                f"Frame {index}: buffer of {data.size} bytes does not match "
                f"{width}x{height}x{channels} ({pixel_total * channels} bytes)",
                frame_index=index
            )

        return cls(pixels=data.reshape(height, width, channels), timestamp=float(timestamp), index=index)


def to_grayscale(frame: Frame) -> np.ndarray:
    """Luminance 0.299R + 0.587G + 0.114B as a uint8 image."""
    code = cv2.COLOR_RGBA2GRAY if frame.channels == 4 else cv2.COLOR_RGB2GRAY
    return cv2.cvtColor(frame.pixels, code)


@dataclass(frozen=True)
class FrameResult:
    """Measurements and phase labels of one analyzed frame"""
    frame_index: int
    timestamp_seconds: float
    num_contours: int
    phase_by_contour: Phase
    variance: float
    std_dev: float
    phase_by_variance: Phase
    lc_pixel_count: int
    mean_intensity: float = 0.0
    texture_score: int = 0
    edge_count: int = 0
    error: Optional[str] = None

    def __post_init__(self):
        if self.num_contours < 0:
            raise ValueError(f"num_contours must be >= 0 (got {self.num_contours})")
        if self.lc_pixel_count < 0:
            raise ValueError(f"lc_pixel_count must be >= 0 (got {self.lc_pixel_count})")
        if not math.isclose(self.std_dev, math.sqrt(self.variance), rel_tol=1e-6, abs_tol=1e-9):
            raise ValueError(f"std_dev {self.std_dev} is not sqrt(variance {self.variance})")

    @classmethod
    def error_result(cls, frame_index: int, timestamp_seconds: float, message: str) -> 'FrameResult':
        """ERROR-labelled record for a frame that failed processing"""
        return cls(
            frame_index=frame_index,
            timestamp_seconds=timestamp_seconds,
            num_contours=0,
            phase_by_contour=Phase.ERROR,
            variance=0.0,
            std_dev=0.0,
            phase_by_variance=Phase.ERROR,
            lc_pixel_count=0,
            error=message,
        )

    @property
    def is_error(self) -> bool:
        return self.phase_by_contour is Phase.ERROR

    @property
    def timestamp_minutes(self) -> float:
        return self.timestamp_seconds / 60.0

    def to_row(self) -> Dict[str, Union[int, float, str]]:
        return {
            'frame_number': self.frame_index,
            'timestamp_seconds': self.timestamp_seconds,
            'timestamp_minutes': self.timestamp_minutes,
            'num_contours': self.num_contours,
            'phase_contour': self.phase_by_contour.value,
            'variance': self.variance,
            'std_dev': self.std_dev,
            'phase_variance': self.phase_by_variance.value,
        }
