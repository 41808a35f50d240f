import numpy as np

from LC_Phase.checks import texture
from LC_Phase.checks.frame_data import to_grayscale
from LC_Phase.checks.preprocess import preprocess
from LC_Phase.utils.config_setup import PreprocessConfig, TextureConfig


def _binary_with_blobs():
    binary = np.zeros((100, 100), dtype=np.uint8)
    # five 6x6 cells (area 36)
    for x in (5, 20, 35, 50, 65):
        binary[5:11, x:x + 6] = 255
    # too small (area 9)
    binary[30:33, 5:8] = 255
    # too large (area 2500)
    binary[45:95, 45:95] = 255
    return binary


def test_count_structures_applies_area_bounds():
    binary = _binary_with_blobs()
    mask = np.ones_like(binary)
    assert texture.count_structures(binary, mask) == 5


def test_count_structures_ignores_masked_pixels():
    binary = _binary_with_blobs()
    mask = np.ones_like(binary)
    mask[0:20, 0:30] = 0
    assert texture.count_structures(binary, mask) == 3


def test_count_structures_area_bounds_are_strict():
    binary = np.zeros((50, 50), dtype=np.uint8)
    binary[10:14, 10:15] = 255  # area 20
    mask = np.ones_like(binary)
    assert texture.count_structures(binary, mask, TextureConfig(min_contour_area=20)) == 0
    assert texture.count_structures(binary, mask, TextureConfig(min_contour_area=19)) == 1


def test_count_structures_empty_mask():
    binary = _binary_with_blobs()
    assert texture.count_structures(binary, np.zeros_like(binary)) == 0


def test_preprocess_finds_texture_domains(textured_frame):
    mask = np.ones((200, 200), dtype=np.uint8)
    binary = preprocess(textured_frame, mask, PreprocessConfig(denoise=False))
    assert binary.shape == (200, 200)
    assert set(np.unique(binary)).issubset({0, 255})
    assert texture.count_structures(binary, mask) >= 50


def test_preprocess_homogeneous_frame_is_background(uniform_frame):
    mask = np.ones((200, 200), dtype=np.uint8)
    binary = preprocess(uniform_frame, mask, PreprocessConfig(denoise=False))
    assert texture.count_structures(binary, mask) == 0


def test_preprocess_clears_excluded_pixels(textured_frame):
    mask = np.ones((200, 200), dtype=np.uint8)
    mask[:, :100] = 0
    binary = preprocess(textured_frame, mask, PreprocessConfig(denoise=False))
    assert binary[:, :100].max() == 0


def test_texture_score_uniform_is_zero(uniform_frame):
    mask = np.ones((200, 200), dtype=np.uint8)
    assert texture.texture_score(to_grayscale(uniform_frame), mask) == (0, 0)


def test_texture_score_counts_edges(textured_frame):
    mask = np.ones((200, 200), dtype=np.uint8)
    score, edges = texture.texture_score(to_grayscale(textured_frame), mask)
    assert edges > 0
    assert score > 0


def test_texture_score_empty_mask(textured_frame):
    gray = to_grayscale(textured_frame)
    assert texture.texture_score(gray, np.zeros_like(gray)) == (0, 0)


def test_stock_preprocessing_with_denoising(textured_frame, uniform_frame):
    mask = np.ones((200, 200), dtype=np.uint8)
    config = PreprocessConfig()
    assert config.denoise

    textured = texture.count_structures(preprocess(textured_frame, mask, config), mask)
    homogeneous = texture.count_structures(preprocess(uniform_frame, mask, config), mask)

    assert textured >= 15
    assert homogeneous == 0
