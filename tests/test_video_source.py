import json

import cv2
import numpy as np
import pytest

from conftest import textured_pixels, uniform_pixels

from LC_Phase.lc_phase_the_file import build_config_updates, main, parse_arguments
from LC_Phase.processing.analysis_session import AnalysisSession, SessionState, analyze_video
from LC_Phase.processing.frame_source import InMemoryFrameSource, VideoFileFrameSource
from LC_Phase.utils.exceptions import ConfigurationError, FrameAcquisitionError

FPS = 10
FRAME_COUNT = 10


@pytest.fixture
def sample_video(tmp_path):
    """Ten frame MJPG video: six textured frames then four homogeneous ones"""
    path = tmp_path / "sample.avi"
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), FPS, (200, 200))
    if not writer.isOpened():
        pytest.skip("OpenCV build cannot write MJPG video")
    for i in range(FRAME_COUNT):
        # Background kept well below the electrode threshold despite JPEG ringing
        rgb = textured_pixels(background=170) if i < 6 else uniform_pixels()
        writer.write(cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR))
    writer.release()
    return path


def test_video_source_applies_stride(sample_video):
    source = VideoFileFrameSource(sample_video, sampling_stride=3)
    with source:
        assert source.estimated_total == 4
        frames = []
        while True:
            frame = source.read_frame()
            if frame is None:
                break
            frames.append(frame)

    assert [f.index for f in frames] == [0, 3, 6, 9]
    assert [round(f.timestamp, 3) for f in frames] == [0.0, 0.3, 0.6, 0.9]
    assert frames[0].pixels.shape == (200, 200, 3)
    assert source.cap is None


def test_video_source_restart(sample_video):
    source = VideoFileFrameSource(sample_video, sampling_stride=5)
    source.open()
    source.read_frame()
    source.read_frame()
    source.restart()
    assert source.read_frame().index == 0
    source.close()


def test_missing_video_cannot_open(tmp_path):
    with pytest.raises(FrameAcquisitionError):
        VideoFileFrameSource(tmp_path / "missing.avi").open()


def test_invalid_stride():
    with pytest.raises(ValueError):
        InMemoryFrameSource([], sampling_stride=0)


def test_analyze_video(sample_video, fast_config):
    fast_config.thresholds.sampling_stride = 2
    session = analyze_video(sample_video, config=fast_config)
    assert session.state is SessionState.COMPLETED
    phases = [r.phase_by_contour.value for r in session.results]
    assert phases == ["CHOLESTERIC"] * 3 + ["ISOTROPIC"] * 2


def test_analyze_missing_video_fails(tmp_path, fast_config):
    session = analyze_video(tmp_path / "missing.avi", config=fast_config)
    assert session.state is SessionState.FAILED
    assert session.failure_reason.startswith("frame acquisition failed")


def test_cli_overrides():
    args = parse_arguments(["clip.avi", "--stride", "5", "--method", "edge", "--no-denoise"])
    assert build_config_updates(args) == {
        "thresholds": {"sampling_stride": 5},
        "texture": {"method": "edge"},
        "preprocess": {"denoise": False},
    }
    assert build_config_updates(parse_arguments(["clip.avi"])) == {}


def test_cli_writes_report(sample_video, tmp_path, isolated_config):
    output_dir = tmp_path / "report"
    main([str(sample_video), "--output-dir", str(output_dir), "--stride", "2", "--no-denoise"])

    assert (output_dir / "sample_phase_analysis.csv").exists()
    assert (output_dir / "sample_phase_timeline.png").exists()
    assert (output_dir / "sample_phase_analysis.log").exists()
    summary = json.loads((output_dir / "sample_phase_summary.json").read_text())
    assert summary["session_state"] == "completed"
    assert summary["statistics"]["total_frames"] == 5
    assert summary["thresholds"]["sampling_stride"] == 2
    # One-off overrides are not remembered
    assert isolated_config.get_analysis_config().thresholds.sampling_stride == 30


def test_cli_exits_on_missing_video(tmp_path, isolated_config):
    with pytest.raises(SystemExit) as excinfo:
        main([str(tmp_path / "missing.avi")])
    assert excinfo.value.code == 1


def test_analyze_video_rejects_invalid_stride(sample_video, fast_config):
    fast_config.thresholds.sampling_stride = 0
    with pytest.raises(ConfigurationError):
        analyze_video(sample_video, config=fast_config)


def test_cli_rejects_invalid_stride(sample_video, tmp_path, isolated_config):
    output_dir = tmp_path / "report"
    with pytest.raises(SystemExit) as excinfo:
        main([str(sample_video), "--output-dir", str(output_dir), "--stride", "0", "--save-config"])

    assert excinfo.value.code == 2
    assert not output_dir.exists()
    # Rejected overrides are not remembered either
    isolated_config.refresh_configs()
    assert isolated_config.get_analysis_config().thresholds.sampling_stride == 30
