from dataclasses import dataclass, field
from typing import Optional

from ..utils.exceptions import ConfigurationError


@dataclass
class ThresholdConfig:
    contour_threshold: int = 15
    variance_threshold: float = 96.0
    # Analyze every Nth source frame
    sampling_stride: int = 30

@dataclass
class MaskConfig:
    bright_threshold: int = 200
    close_kernel_size: int = 15
    close_iterations: int = 2
    min_electrode_area: int = 5000
    padding: int = 10

@dataclass
class PreprocessConfig:
    blur_kernel_size: int = 3
    use_clahe: bool = True
    clahe_clip_limit: float = 2.0
    clahe_tile_grid_size: int = 8
    denoise: bool = True
    denoise_strength: float = 10.0
    denoise_template_window: int = 7
    denoise_search_window: int = 21
    adaptive_block_size: int = 15
    adaptive_c: float = 3.0
    open_kernel_size: int = 2
    open_iterations: int = 1
    close_kernel_size: int = 2
    close_iterations: int = 2

@dataclass
class TextureConfig:
    # "contour" counts bounded regions, "edge" uses the edge-density score
    method: str = "contour"
    min_contour_area: int = 20
    max_contour_area: int = 2000
    connectivity: int = 8
    gradient_threshold: float = 25.0
    local_variance_divisor: float = 10000.0
    edge_count_divisor: float = 100.0

@dataclass
class SessionConfig:
    # None waits for the frame source indefinitely
    frame_timeout_seconds: Optional[float] = 30.0
    log_every_n_frames: int = 10
    # Consecutive timed-out reads before the source is considered dead
    max_consecutive_timeouts: int = 5

@dataclass
class AnalysisConfig:
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    mask: MaskConfig = field(default_factory=MaskConfig)
    preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)
    texture: TextureConfig = field(default_factory=TextureConfig)
    session: SessionConfig = field(default_factory=SessionConfig)


def validate_config(config: AnalysisConfig) -> None:
    """
    Reject configurations the pipeline cannot run with.

    Raises:
        ConfigurationError: describing every problem found
    """
    problems = []

    thresholds = config.thresholds
    if thresholds.sampling_stride < 1:
        problems.append(f"sampling_stride must be >= 1 (got {thresholds.sampling_stride})")
    if thresholds.contour_threshold < 0:
        problems.append(f"contour_threshold must be >= 0 (got {thresholds.contour_threshold})")
    if thresholds.variance_threshold < 0:
        problems.append(f"variance_threshold must be >= 0 (got {thresholds.variance_threshold})")

    mask = config.mask
    if not 0 <= mask.bright_threshold <= 255:
        problems.append(f"mask.bright_threshold must be within 0-255 (got {mask.bright_threshold})")
    if mask.close_kernel_size < 1 or mask.close_iterations < 0:
        problems.append("mask closing kernel must be >= 1 and iterations >= 0")
    if mask.min_electrode_area < 0 or mask.padding < 0:
        problems.append("mask.min_electrode_area and mask.padding must be >= 0")

    pre = config.preprocess
    if pre.blur_kernel_size < 1 or pre.blur_kernel_size % 2 == 0:
        problems.append(f"preprocess.blur_kernel_size must be odd and positive (got {pre.blur_kernel_size})")
    if pre.adaptive_block_size < 3 or pre.adaptive_block_size % 2 == 0:
        problems.append(f"preprocess.adaptive_block_size must be odd and >= 3 (got {pre.adaptive_block_size})")
    if pre.clahe_tile_grid_size < 1 or pre.clahe_clip_limit <= 0:
        problems.append("CLAHE tile grid size must be >= 1 and clip limit > 0")
    if pre.open_kernel_size < 1 or pre.close_kernel_size < 1:
        problems.append("morphology kernel sizes must be >= 1")

    texture = config.texture
    if texture.method not in ("contour", "edge"):
        problems.append(f"texture.method must be 'contour' or 'edge' (got {texture.method!r})")
    if texture.min_contour_area < 0 or texture.min_contour_area >= texture.max_contour_area:
        problems.append(
            f"contour area bounds must satisfy 0 <= min < max "
            f"(got {texture.min_contour_area}, {texture.max_contour_area})"
        )
    if texture.connectivity not in (4, 8):
        problems.append(f"texture.connectivity must be 4 or 8 (got {texture.connectivity})")
    if texture.local_variance_divisor <= 0 or texture.edge_count_divisor <= 0:
        problems.append("edge-density divisors must be > 0")

    timeout = config.session.frame_timeout_seconds
    if timeout is not None and timeout <= 0:
        problems.append(f"session.frame_timeout_seconds must be > 0 or null (got {timeout})")
    if config.session.log_every_n_frames < 1:
        problems.append("session.log_every_n_frames must be >= 1")
    if config.session.max_consecutive_timeouts < 1:
        problems.append("session.max_consecutive_timeouts must be >= 1")

    if problems:
        raise ConfigurationError("Invalid analysis configuration: " + "; ".join(problems))
