#!/usr/bin/env python3

import math
from typing import Tuple

import numpy as np

from LC_Phase.checks.preprocess import check_mask_shape


def compute(grayscale: np.ndarray, mask: np.ndarray) -> Tuple[float, float, float, int]:
    """
    Intensity statistics of the liquid-crystal pixels.

    Population statistics (divided by the pixel count, not count - 1) so the
    values stay comparable with the tuned variance threshold.

    Args:
        grayscale: uint8 grayscale image
        mask: Session electrode mask (1 = liquid-crystal pixel)

    Returns:
        tuple: (mean, variance, std_dev, pixel_count), all zero when no pixel is kept
    """
    check_mask_shape(grayscale, mask)

    values = grayscale[mask > 0].astype(np.float64)
    pixel_count = int(values.size)
    if pixel_count == 0:
        return 0.0, 0.0, 0.0, 0

    mean = float(values.mean())
    variance = float(np.mean((values - mean) ** 2))
    return mean, variance, math.sqrt(variance), pixel_count
