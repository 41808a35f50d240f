import cv2
import numpy as np

from LC_Phase.checks import phase_classifier, preprocess, texture, variance
from LC_Phase.checks.frame_data import Frame, FrameResult, to_grayscale
from LC_Phase.utils.config_setup import AnalysisConfig
from LC_Phase.utils.exceptions import FrameProcessingError


def analyze_frame(frame: Frame, mask: np.ndarray, config: AnalysisConfig) -> FrameResult:
    """
    Run the per-frame checks against the session mask.

    Intermediate images are locals of this call and are released when it
    returns.

    Args:
        frame: Frame to analyze
        mask: Session electrode mask, fixed for the whole video
        config: Snapshot of the session configuration

    Returns:
        FrameResult: measurements and both phase labels

    Raises:
        FrameProcessingError: for anything that prevents analyzing this frame
    """
    try:
        binary = preprocess.preprocess(frame, mask, config.preprocess)
        gray = to_grayscale(frame)

        structures = texture.count_structures(binary, mask, config.texture)
        score, edge_count = texture.texture_score(gray, mask, config.texture)
        mean, var, std_dev, pixel_count = variance.compute(gray, mask)
    except FrameProcessingError as e:
        if e.frame_index is None:
            e.frame_index = frame.index
        raise
    except (cv2.error, ValueError) as e:
        raise FrameProcessingError(f"Frame {frame.index}: {e}", frame_index=frame.index) from e

    num_contours = score if config.texture.method == "edge" else structures
    phase_by_contour, phase_by_variance = phase_classifier.classify(num_contours, var, config.thresholds)

    return FrameResult(
        frame_index=frame.index,
        timestamp_seconds=frame.timestamp,
        num_contours=num_contours,
        phase_by_contour=phase_by_contour,
        variance=var,
        std_dev=std_dev,
        phase_by_variance=phase_by_variance,
        lc_pixel_count=pixel_count,
        mean_intensity=mean,
        texture_score=score,
        edge_count=edge_count,
    )
