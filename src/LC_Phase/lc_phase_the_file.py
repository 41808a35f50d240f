#!/usr/bin/env python
# -*- coding: utf-8 -*-

import argparse
import sys
import time
from pathlib import Path

from art import text2art

from LC_Phase import __version__
from LC_Phase.processing.analysis_session import AnalysisSession, ProgressSink, SessionState
from LC_Phase.processing.frame_source import VideoFileFrameSource
from LC_Phase.utils.config_manager import ANALYSIS_CONFIG, ConfigManager
from LC_Phase.utils.config_setup import AnalysisConfig, validate_config
from LC_Phase.utils.exceptions import ConfigurationError
from LC_Phase.utils.generate_report import generate_final_report
from LC_Phase.utils.log_setup import logger, start_file_log, stop_file_log


def print_lc_phase_logo():
    lc_phase_icon = text2art("LC Phase", font='small')
    print(f'{lc_phase_icon}\n')


class ConsoleProgress(ProgressSink):
    """Prints a one-line progress update to the terminal"""

    def __init__(self):
        self.processed = 0

    def on_progress(self, frame_index, estimated_total, latest_result):
        self.processed += 1
        total = max(estimated_total, self.processed)
        percent = self.processed / total * 100 if total else 0.0
        sys.stdout.write(f"\r  {self.processed}/{total} ({percent:5.1f}%)  frame {frame_index}  "
                         f"{latest_result.phase_by_contour.value:<11}  "
                         f"contours {latest_result.num_contours:<5}")
        sys.stdout.flush()


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(
        prog='lc-phase',
        description="Frame-by-frame liquid-crystal phase classification (cholesteric vs isotropic) "
                    "from microscopy video."
    )
    parser.add_argument('video', help="Path to the microscopy video")
    parser.add_argument('-o', '--output-dir', help="Output directory (default: <video dir>/<video>_phase_analysis)")
    parser.add_argument('--stride', type=int, help="Analyze every Nth video frame")
    parser.add_argument('--contour-threshold', type=int, help="Contours below this count are ISOTROPIC")
    parser.add_argument('--variance-threshold', type=float, help="Variance at or above this is ISOTROPIC")
    parser.add_argument('--method', choices=['contour', 'edge'], help="Structure measure used for the contour phase")
    parser.add_argument('--no-denoise', action='store_true', help="Skip non-local-means denoising (faster)")
    parser.add_argument('--save-config', action='store_true',
                        help="Remember these settings as the last used configuration")
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser.parse_args(argv)


def build_config_updates(args) -> dict:
    updates = {}
    thresholds = {}
    if args.stride is not None:
        thresholds['sampling_stride'] = args.stride
    if args.contour_threshold is not None:
        thresholds['contour_threshold'] = args.contour_threshold
    if args.variance_threshold is not None:
        thresholds['variance_threshold'] = args.variance_threshold
    if thresholds:
        updates['thresholds'] = thresholds
    if args.method:
        updates['texture'] = {'method': args.method}
    if args.no_denoise:
        updates['preprocess'] = {'denoise': False}
    return updates


def resolve_config(args) -> AnalysisConfig:
    """
    Stored configuration with the command line overrides applied.

    Overrides are only remembered with --save-config, and only once they validate.

    Raises:
        ConfigurationError: if the resulting configuration is invalid
    """
    config_mgr = ConfigManager()
    config = config_mgr.get_analysis_config()
    updates = build_config_updates(args)
    if updates:
        config = config_mgr.with_overrides(config, updates)

    validate_config(config)

    if updates and args.save_config:
        config_mgr.update_config(ANALYSIS_CONFIG, updates)
    return config


def main(argv=None):
    args = parse_arguments(argv)
    print_lc_phase_logo()

    video_path = Path(args.video)
    if not video_path.is_file():
        logger.critical(f"Video file not found: {video_path}")
        sys.exit(1)

    video_id = video_path.stem
    output_dir = Path(args.output_dir) if args.output_dir else video_path.parent / f"{video_id}_phase_analysis"

    try:
        config = resolve_config(args)
    except ConfigurationError as e:
        logger.critical(str(e))
        sys.exit(2)

    start_file_log(str(output_dir), video_id)
    start_time = time.time()
    try:
        session = AnalysisSession(config=config, progress_sink=ConsoleProgress())
        source = VideoFileFrameSource(video_path, sampling_stride=config.thresholds.sampling_stride)
        state = session.run(source)
        print()

        if state is SessionState.FAILED:
            logger.critical(f"Analysis of {video_id} failed: {session.failure_reason}")
            sys.exit(1)

        extra = {
            'session_state': state.value,
            'skipped_frames': session.skipped_frames,
            'lc_pixel_count': int(session.mask.sum()) if session.mask is not None else 0,
        }
        outputs = generate_final_report(session.results, output_dir, video_id, config=config, extra=extra)

        stats = session.statistics()
        logger.warning(f"Phase analysis complete: {video_id}")
        logger.info(f"  Cholesteric: {stats.cholesteric_fraction * 100:.1f}% "
                    f"({stats.cholesteric_duration_minutes:.2f} min)")
        logger.info(f"  Isotropic:   {stats.isotropic_fraction * 100:.1f}% "
                    f"({stats.isotropic_duration_minutes:.2f} min)")
        if stats.first_transition_minute is not None:
            logger.info(f"  First cholesteric -> isotropic transition at {stats.first_transition_minute:.2f} min")
        else:
            logger.info("  No cholesteric -> isotropic transition detected")
        for name, path in outputs.items():
            logger.info(f"  {name}: {path}")

        elapsed = time.strftime("%H:%M:%S", time.gmtime(time.time() - start_time))
        logger.info(f"Processing time: {elapsed}\n")
    finally:
        stop_file_log()


if __name__ == "__main__":
    main()
