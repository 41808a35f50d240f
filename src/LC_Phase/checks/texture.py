#!/usr/bin/env python3
"""
Texture Extraction

Two structural complexity measures over the liquid-crystal area:

* count_structures: bounded regions of the binarized image whose area falls
  in a plausible texture-cell range (primary signal)
* texture_score: local variance and Sobel edge density of the grayscale
  image, a coarser substitute that needs no binarization
"""

from typing import Tuple

import cv2
import numpy as np
from scipy import ndimage

from LC_Phase.checks.preprocess import check_mask_shape
from LC_Phase.utils.config_setup import TextureConfig


def count_structures(binary_image: np.ndarray, mask: np.ndarray, config: TextureConfig = None) -> int:
    """
    Count texture cells in a binary image.

    A connected foreground component inside the mask is valid when
    min_contour_area < area < max_contour_area (pixel area, strict bounds).

    Args:
        binary_image: uint8 image, foreground > 0
        mask: Session electrode mask (1 = liquid-crystal pixel)
        config: Area bounds and connectivity

    Returns:
        int: number of valid components, 0 for an empty mask
    """
    config = config or TextureConfig()
    check_mask_shape(binary_image, mask)

    foreground = ((binary_image > 0) & (mask > 0)).astype(np.uint8)
    if not foreground.any():
        return 0

    num_labels, _, stats, _ = cv2.connectedComponentsWithStats(foreground, connectivity=config.connectivity)

    # Label 0 is the background
    areas = stats[1:num_labels, cv2.CC_STAT_AREA]
    valid = (areas > config.min_contour_area) & (areas < config.max_contour_area)
    return int(np.count_nonzero(valid))


def texture_score(grayscale: np.ndarray, mask: np.ndarray, config: TextureConfig = None) -> Tuple[int, int]:
    """
    Edge-density texture score.

    For interior liquid-crystal pixels: the summed 3x3 local variance and the
    number of pixels whose Sobel gradient magnitude exceeds
    config.gradient_threshold, each scaled by its divisor and added.

    Args:
        grayscale: uint8 grayscale image
        mask: Session electrode mask (1 = liquid-crystal pixel)
        config: Gradient threshold and scale divisors

    Returns:
        tuple: (texture_score, edge_count), (0, 0) for an empty mask
    """
    config = config or TextureConfig()
    check_mask_shape(grayscale, mask)

    h, w = grayscale.shape
    if h < 3 or w < 3:
        return 0, 0

    region = mask > 0
    # Border pixels lack a full 3x3 neighbourhood
    region[0, :] = False
    region[-1, :] = False
    region[:, 0] = False
    region[:, -1] = False
    if not region.any():
        return 0, 0

    gray = grayscale.astype(np.float64)
    local_mean = ndimage.uniform_filter(gray, size=3)
    local_sq_mean = ndimage.uniform_filter(gray * gray, size=3)
    local_variance = np.clip(local_sq_mean - local_mean * local_mean, 0.0, None)

    gx = cv2.Sobel(gray, cv2.CV_64F, 1, 0, ksize=3)
    gy = cv2.Sobel(gray, cv2.CV_64F, 0, 1, ksize=3)
    magnitude = np.hypot(gx, gy)

    total_local_variance = float(local_variance[region].sum())
    edge_count = int(np.count_nonzero(magnitude[region] > config.gradient_threshold))

    score = int(round(total_local_variance / config.local_variance_divisor
                      + edge_count / config.edge_count_divisor))
    return score, edge_count
