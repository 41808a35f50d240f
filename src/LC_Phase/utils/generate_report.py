#!/usr/bin/env python
# -*- coding: utf-8 -*-

import json
from datetime import datetime
from pathlib import Path
from typing import Dict, Sequence

import numpy as np
import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend
import matplotlib.pyplot as plt

from LC_Phase import __version__
from LC_Phase.checks.frame_data import FrameResult, Phase
from LC_Phase.processing.statistics import Statistics, summarize
from LC_Phase.utils.config_setup import AnalysisConfig, ThresholdConfig
from LC_Phase.utils.export_results import write_results_csv
from LC_Phase.utils.log_setup import logger

PHASE_COLORS = {
    Phase.CHOLESTERIC: '#fa709a',
    Phase.ISOTROPIC: '#4facfe',
    Phase.ERROR: '#7f7f7f',
}


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy scalars and arrays"""
    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, Phase):
            return obj.value
        return super().default(obj)


def write_summary_json(statistics: Statistics, json_path, video_id: str = None,
                       thresholds: ThresholdConfig = None, extra: Dict = None) -> Path:
    """
    Save aggregate statistics (plus the thresholds used) as JSON.

    Returns:
        Path: the written file
    """
    json_path = Path(json_path)
    json_path.parent.mkdir(parents=True, exist_ok=True)

    summary = {
        'video_id': video_id,
        'generated': datetime.now().isoformat(timespec='seconds'),
        'lc_phase_version': __version__,
        'statistics': statistics.as_dict(),
    }
    if thresholds is not None:
        summary['thresholds'] = {
            'contour_threshold': thresholds.contour_threshold,
            'variance_threshold': thresholds.variance_threshold,
            'sampling_stride': thresholds.sampling_stride,
        }
    if extra:
        summary.update(extra)

    with open(json_path, 'w') as f:
        json.dump(summary, f, indent=2, cls=NumpyEncoder)

    logger.info(f"Summary saved to: {json_path}")
    return json_path


def plot_phase_timeline(series: Sequence[FrameResult], output_path,
                        thresholds: ThresholdConfig = None, title: str = None) -> Path:
    """
    Plot contour count and variance over time, each point coloured by its phase label.

    Args:
        series: Results in temporal order
        output_path: PNG destination
        thresholds: Drawn as horizontal reference lines when given
        title: Figure title

    Returns:
        Path: the written image
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    minutes = [r.timestamp_minutes for r in series]
    contours = [r.num_contours for r in series]
    variances = [r.variance for r in series]

    fig, (ax_contours, ax_variance) = plt.subplots(2, 1, figsize=(12, 8), sharex=True)
    try:
        ax_contours.plot(minutes, contours, color='#667eea', linewidth=1, alpha=0.6)
        ax_contours.scatter(minutes, contours, s=12,
                            c=[PHASE_COLORS[r.phase_by_contour] for r in series], zorder=3)
        ax_contours.set_ylabel('Contours')
        ax_contours.set_title('Phase by contour count')

        ax_variance.plot(minutes, variances, color='#667eea', linewidth=1, alpha=0.6)
        ax_variance.scatter(minutes, variances, s=12,
                            c=[PHASE_COLORS[r.phase_by_variance] for r in series], zorder=3)
        ax_variance.set_ylabel('Intensity variance')
        ax_variance.set_xlabel('Time (minutes)')
        ax_variance.set_title('Phase by variance')

        if thresholds is not None:
            ax_contours.axhline(thresholds.contour_threshold, color='black', linestyle='--', linewidth=1,
                                label=f'Contour threshold ({thresholds.contour_threshold})')
            ax_variance.axhline(thresholds.variance_threshold, color='black', linestyle='--', linewidth=1,
                                label=f'Variance threshold ({thresholds.variance_threshold:g})')

        transition = summarize(series).first_transition_minute
        if transition is not None:
            for ax in (ax_contours, ax_variance):
                ax.axvline(transition, color='#bf971b', linewidth=1.5,
                           label=f'First transition ({transition:.2f} min)')

        for phase in (Phase.CHOLESTERIC, Phase.ISOTROPIC, Phase.ERROR):
            ax_contours.scatter([], [], s=12, color=PHASE_COLORS[phase], label=phase.value.title())
        ax_contours.legend(loc='upper right', fontsize=8)
        ax_variance.legend(loc='upper right', fontsize=8)

        for ax in (ax_contours, ax_variance):
            ax.grid(True, alpha=0.3)

        if title:
            fig.suptitle(title, fontweight='bold')
        fig.tight_layout()
        fig.savefig(output_path, dpi=120)
    finally:
        plt.close(fig)

    logger.info(f"Phase timeline saved to: {output_path}")
    return output_path


def generate_final_report(series: Sequence[FrameResult], output_dir, video_id: str,
                          config: AnalysisConfig = None, extra: Dict = None) -> Dict[str, Path]:
    """
    Write the per-frame CSV, the summary JSON and the timeline chart for one video.

    Returns:
        dict: 'csv', 'summary' and 'chart' output paths
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    thresholds = config.thresholds if config else None

    statistics = summarize(series)
    outputs = {
        'csv': write_results_csv(series, output_dir / f"{video_id}_phase_analysis.csv"),
        'summary': write_summary_json(statistics, output_dir / f"{video_id}_phase_summary.json",
                                      video_id=video_id, thresholds=thresholds, extra=extra),
    }
    if series:
        outputs['chart'] = plot_phase_timeline(series, output_dir / f"{video_id}_phase_timeline.png",
                                               thresholds=thresholds, title=video_id)
    else:
        logger.warning(f"No results for {video_id}, skipping timeline chart")

    return outputs
