"""Shared pytest fixtures for the phase analysis test suite."""

import sys
from pathlib import Path

import cv2
import numpy as np
import pytest

# Ensure the src directory is importable without installing the package
SRC_ROOT = Path(__file__).parent.parent / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from LC_Phase.checks.frame_data import Frame, FrameResult, Phase
from LC_Phase.utils.config_setup import AnalysisConfig


FRAME_SIZE = 200


def textured_pixels(size=FRAME_SIZE, background=200, spot=60, radius=4, spacing=20):
    """RGB image of dark round domains on a bright field, like a cholesteric texture"""
    gray = np.full((size, size), background, dtype=np.uint8)
    for cy in range(spacing // 2, size, spacing):
        for cx in range(spacing // 2, size, spacing):
            cv2.circle(gray, (cx, cy), radius, int(spot), thickness=-1)
    return np.dstack([gray, gray, gray])


def uniform_pixels(size=FRAME_SIZE, value=120):
    return np.full((size, size, 3), value, dtype=np.uint8)


def make_result(index, seconds, phase_by_contour, phase_by_variance=None, num_contours=None, variance=None):
    """FrameResult with plausible measurements for the given labels"""
    if phase_by_contour is Phase.ERROR:
        return FrameResult.error_result(index, seconds, "synthetic failure")
    phase_by_variance = phase_by_variance or phase_by_contour
    if num_contours is None:
        num_contours = 40 if phase_by_contour is Phase.CHOLESTERIC else 3
    if variance is None:
        variance = 50.0 if phase_by_variance is Phase.CHOLESTERIC else 150.0
    return FrameResult(
        frame_index=index,
        timestamp_seconds=seconds,
        num_contours=num_contours,
        phase_by_contour=phase_by_contour,
        variance=variance,
        std_dev=float(np.sqrt(variance)),
        phase_by_variance=phase_by_variance,
        lc_pixel_count=FRAME_SIZE * FRAME_SIZE,
    )


@pytest.fixture
def fast_config() -> AnalysisConfig:
    """Default thresholds without denoising or the threaded reader"""
    config = AnalysisConfig()
    config.preprocess.denoise = False
    config.session.frame_timeout_seconds = None
    return config


@pytest.fixture
def textured_frame() -> Frame:
    return Frame(pixels=textured_pixels(), timestamp=0.0, index=0)


@pytest.fixture
def uniform_frame() -> Frame:
    return Frame(pixels=uniform_pixels(), timestamp=0.0, index=0)


@pytest.fixture
def white_frame() -> Frame:
    return Frame(pixels=uniform_pixels(value=255), timestamp=0.0, index=0)


@pytest.fixture
def corner_electrode_frame() -> Frame:
    """Dim noisy field with an 80x80 saturated electrode in the top-left corner"""
    rng = np.random.default_rng(7)
    gray = rng.integers(0, 151, size=(FRAME_SIZE, FRAME_SIZE), dtype=np.uint8)
    gray[0:80, 0:80] = 255
    return Frame(pixels=np.dstack([gray, gray, gray]), timestamp=0.0, index=0)


@pytest.fixture
def video_frames():
    """Six textured frames followed by four homogeneous ones, one per 10 seconds"""
    frames = []
    for i in range(10):
        pixels = textured_pixels() if i < 6 else uniform_pixels()
        frames.append(Frame(pixels=pixels, timestamp=i * 10.0, index=i))
    return frames


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """ConfigManager pointed at a throwaway user config directory"""
    import appdirs
    from LC_Phase.utils.config_manager import ConfigManager

    user_dir = tmp_path / "user_config"
    monkeypatch.setattr(appdirs, "user_config_dir", lambda appname=None, appauthor=None: str(user_dir))
    monkeypatch.setattr(ConfigManager, "_instance", None)
    monkeypatch.setattr(ConfigManager, "_configs", {})
    return ConfigManager()
