#!/usr/bin/env python3
"""
Aggregate statistics over a per-frame result series.

Everything here is a pure function of the series and can be recomputed at any
time, including on the partial series of a cancelled session.
"""

from dataclasses import dataclass, asdict
from typing import Dict, List, Optional, Sequence

from LC_Phase.checks.frame_data import FrameResult, Phase


@dataclass(frozen=True)
class Statistics:
    total_frames: int = 0
    cholesteric_frames: int = 0
    isotropic_frames: int = 0
    error_frames: int = 0
    cholesteric_fraction: float = 0.0
    isotropic_fraction: float = 0.0
    cholesteric_duration_minutes: float = 0.0
    isotropic_duration_minutes: float = 0.0
    total_duration_minutes: float = 0.0
    first_transition_minute: Optional[float] = None
    # Share of non-error frames where the contour and variance labels agree
    signal_agreement_fraction: float = 0.0

    def as_dict(self) -> Dict:
        return asdict(self)


def find_first_transition(series: Sequence[FrameResult]) -> Optional[float]:
    """Minute of the first CHOLESTERIC -> ISOTROPIC step in the contour labels, or None"""
    for i in range(1, len(series)):
        if (series[i - 1].phase_by_contour is Phase.CHOLESTERIC
                and series[i].phase_by_contour is Phase.ISOTROPIC):
            return series[i].timestamp_minutes
    return None


def total_duration_minutes(series: Sequence[FrameResult]) -> float:
    if not series:
        return 0.0
    if len(series) == 1:
        return 1.0
    return series[-1].timestamp_minutes


def summarize(series: Sequence[FrameResult]) -> Statistics:
    """
    Reduce a result series to phase fractions, durations and the first transition.

    Fractions are over all frames, ERROR frames included, so failed frames
    are never hidden in the percentages. Durations are the phase fraction of
    the total duration, taken from the last frame's timestamp (1 minute for a
    single-frame series).

    Args:
        series: Results in temporal order

    Returns:
        Statistics: all zero with no transition for an empty series
    """
    total = len(series)
    if total == 0:
        return Statistics()

    cholesteric = sum(1 for r in series if r.phase_by_contour is Phase.CHOLESTERIC)
    isotropic = sum(1 for r in series if r.phase_by_contour is Phase.ISOTROPIC)
    errors = sum(1 for r in series if r.is_error)

    valid = [r for r in series if not r.is_error]
    agreeing = sum(1 for r in valid if r.phase_by_contour is r.phase_by_variance)

    cholesteric_fraction = cholesteric / total
    isotropic_fraction = isotropic / total
    duration = total_duration_minutes(series)

    return Statistics(
        total_frames=total,
        cholesteric_frames=cholesteric,
        isotropic_frames=isotropic,
        error_frames=errors,
        cholesteric_fraction=cholesteric_fraction,
        isotropic_fraction=isotropic_fraction,
        cholesteric_duration_minutes=cholesteric_fraction * duration,
        isotropic_duration_minutes=isotropic_fraction * duration,
        total_duration_minutes=duration,
        first_transition_minute=find_first_transition(series),
        signal_agreement_fraction=agreeing / len(valid) if valid else 0.0,
    )


def merge_series(*series: Sequence[FrameResult]) -> List[FrameResult]:
    """Merge independently processed frame ranges back into temporal order"""
    merged = [result for part in series for result in part]
    merged.sort(key=lambda r: r.frame_index)
    return merged
