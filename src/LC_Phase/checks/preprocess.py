#!/usr/bin/env python3
"""
Frame Preprocessing

Turns a frame into a binary texture image: cholesteric texture becomes many
small bounded foreground regions, homogeneous isotropic material becomes
mostly background.
"""

import cv2
import numpy as np

from LC_Phase.checks.frame_data import Frame, to_grayscale
from LC_Phase.utils.config_setup import PreprocessConfig
from LC_Phase.utils.exceptions import FrameProcessingError


def check_mask_shape(image: np.ndarray, mask: np.ndarray, frame_index: int = None) -> None:
    if mask is None or mask.shape != image.shape[:2]:
        mask_shape = None if mask is None else mask.shape
        raise FrameProcessingError(
            f"Mask shape {mask_shape} does not match frame shape {image.shape[:2]}",
            frame_index=frame_index
        )


def apply_mask(gray: np.ndarray, mask: np.ndarray, fill: int) -> np.ndarray:
    """Copy of gray with every excluded (mask == 0) pixel set to fill"""
    masked = gray.copy()
    masked[mask == 0] = fill
    return masked


def enhance_contrast(gray: np.ndarray, config: PreprocessConfig) -> np.ndarray:
    if config.use_clahe:
        tiles = config.clahe_tile_grid_size
        clahe = cv2.createCLAHE(clipLimit=config.clahe_clip_limit, tileGridSize=(tiles, tiles))
        return clahe.apply(gray)
    return cv2.equalizeHist(gray)


def preprocess(frame: Frame, mask: np.ndarray, config: PreprocessConfig = None) -> np.ndarray:
    """
    Binarize a frame for structure counting.

    Args:
        frame: Frame to process
        mask: Session electrode mask (1 = liquid-crystal pixel)
        config: Preprocessing constants, defaults when omitted

    Returns:
        np.ndarray: uint8 image, 255 = texture foreground, 0 = background,
                    excluded pixels always 0

    Raises:
        FrameProcessingError: if the mask does not match the frame
    """
    config = config or PreprocessConfig()

    gray = to_grayscale(frame)
    check_mask_shape(gray, mask, frame.index)

    # Excluded pixels at full brightness can't register as dark structure
    masked = apply_mask(gray, mask, 255)

    k = config.blur_kernel_size
    blurred = cv2.GaussianBlur(masked, (k, k), 0)

    enhanced = enhance_contrast(blurred, config)

    if config.denoise:
        enhanced = cv2.fastNlMeansDenoising(
            enhanced, None,
            h=config.denoise_strength,
            templateWindowSize=config.denoise_template_window,
            searchWindowSize=config.denoise_search_window
        )

    # Darker than the local mean -> foreground
    binary = cv2.adaptiveThreshold(
        enhanced, 255,
        cv2.ADAPTIVE_THRESH_MEAN_C, cv2.THRESH_BINARY_INV,
        config.adaptive_block_size, config.adaptive_c
    )

    open_kernel = np.ones((config.open_kernel_size, config.open_kernel_size), np.uint8)
    close_kernel = np.ones((config.close_kernel_size, config.close_kernel_size), np.uint8)
    binary = cv2.morphologyEx(binary, cv2.MORPH_OPEN, open_kernel, iterations=config.open_iterations)
    binary = cv2.morphologyEx(binary, cv2.MORPH_CLOSE, close_kernel, iterations=config.close_iterations)

    # Drop residue along the mask boundary
    return apply_mask(binary, mask, 0)
