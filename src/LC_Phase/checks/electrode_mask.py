#!/usr/bin/env python3
"""
Electrode Masking

Electrodes and other fixed apparatus show up as large, uniformly over-bright
regions of the microscope field. They are located once per video on a
reference frame and excluded from every later measurement so the statistics
only describe the liquid-crystal material.
"""

from typing import List, Tuple

import cv2
import numpy as np

from LC_Phase.checks.frame_data import Frame, to_grayscale
from LC_Phase.utils.config_setup import MaskConfig
from LC_Phase.utils.exceptions import FrameProcessingError, MaskConstructionError
from LC_Phase.utils.log_setup import logger


def find_electrode_regions(gray: np.ndarray, config: MaskConfig) -> List[Tuple[int, int, int, int]]:
    """
    Locate electrode-sized bright regions in a grayscale image.

    Args:
        gray: uint8 grayscale image
        config: Masking constants

    Returns:
        list: (x, y, width, height) bounding boxes of regions larger than
              config.min_electrode_area, unpadded
    """
    h, w = gray.shape

    _, bright = cv2.threshold(gray, config.bright_threshold, 255, cv2.THRESH_BINARY)

    # Merge nearby bright blobs into solid regions
    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (config.close_kernel_size, config.close_kernel_size))
    closed = cv2.morphologyEx(bright, cv2.MORPH_CLOSE, kernel, iterations=config.close_iterations)

    if cv2.countNonZero(closed) == h * w:
        # Uniformly over-bright field: nothing to tell apart from the sample
        logger.debug(f"Whole {w}x{h} frame is above the bright threshold, no electrode regions")
        return []

    contours, _ = cv2.findContours(closed, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    regions = []
    for contour in contours:
        area = cv2.contourArea(contour)
        if area <= config.min_electrode_area:
            continue
        regions.append(cv2.boundingRect(contour))

    return regions


def build_mask(frame: Frame, config: MaskConfig = None) -> np.ndarray:
    """
    Build the electrode exclusion mask for a video from its reference frame.

    Every electrode region's bounding box, grown by config.padding pixels on
    each side and clipped to the frame, is set to 0; everything else is 1.

    Args:
        frame: Reference frame (normally the first sampled frame)
        config: Masking constants, defaults when omitted

    Returns:
        np.ndarray: uint8 mask of shape (height, width), 1 = liquid-crystal pixel

    Raises:
        MaskConstructionError: if the reference frame cannot be used
    """
    config = config or MaskConfig()

    if frame is None:
        raise MaskConstructionError("No reference frame available to build the electrode mask")

    try:
        gray = to_grayscale(frame)
    except (cv2.error, FrameProcessingError) as e:
        raise MaskConstructionError(f"Cannot convert reference frame {frame.index} to grayscale: {e}") from e

    h, w = gray.shape
    mask = np.ones((h, w), dtype=np.uint8)

    regions = find_electrode_regions(gray, config)
    pad = config.padding
    for x, y, bw, bh in regions:
        x0 = max(0, x - pad)
        y0 = max(0, y - pad)
        x1 = min(w, x + bw + pad)
        y1 = min(h, y + bh + pad)
        mask[y0:y1, x0:x1] = 0

    lc_pixels = int(np.count_nonzero(mask))
    if regions:
        logger.info(f"Electrode mask: {len(regions)} region(s) excluded, "
                    f"{lc_pixels:,} of {h * w:,} pixels kept for analysis")
    else:
        logger.info(f"Electrode mask: no electrode regions found, analyzing all {h * w:,} pixels")

    return mask
