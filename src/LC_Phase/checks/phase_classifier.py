#!/usr/bin/env python3

from typing import Tuple

from LC_Phase.checks.frame_data import Phase
from LC_Phase.utils.config_setup import ThresholdConfig


def classify_by_contours(num_contours: int, contour_threshold: int) -> Phase:
    # Textured cholesteric material shows many small bounded regions
    return Phase.ISOTROPIC if num_contours < contour_threshold else Phase.CHOLESTERIC


def classify_by_variance(variance: float, variance_threshold: float) -> Phase:
    return Phase.ISOTROPIC if variance >= variance_threshold else Phase.CHOLESTERIC


def classify(num_contours: int, variance: float, config: ThresholdConfig = None) -> Tuple[Phase, Phase]:
    """
    Label a frame from its own measurements.

    The two labels are independent and may disagree; nothing is carried over
    from previous frames.

    Returns:
        tuple: (phase_by_contour, phase_by_variance)
    """
    config = config or ThresholdConfig()
    return (
        classify_by_contours(num_contours, config.contour_threshold),
        classify_by_variance(variance, config.variance_threshold),
    )
