#!/usr/bin/env python
# -*- coding: utf-8 -*-

import logging
import os
import sys
import colorlog
from datetime import datetime
from pathlib import Path

FILE_FORMAT = '%(asctime)s - %(levelname)s: %(message)s'
CONSOLE_FORMAT = '%(log_color)s%(message)s'
CONSOLE_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'bold_red',
}


def get_log_directory():
    """Dated log folder: ~/.lc_phase/logs for a frozen build, <repo>/logs from source"""
    if getattr(sys, 'frozen', False):
        base_dir = os.path.join(str(Path.home()), '.lc_phase', 'logs')
    else:
        package_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        base_dir = os.path.join(os.path.dirname(os.path.dirname(package_dir)), 'logs')

    log_dir = os.path.join(base_dir, datetime.now().strftime('%Y-%m-%d'))
    os.makedirs(log_dir, exist_ok=True)
    return log_dir


def setup_logger():
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    run_log = os.path.join(get_log_directory(),
                           f"{datetime.now().strftime('%Y-%m-%d_%H-%M-%S')}_LCPhase.log")
    file_handler = logging.FileHandler(run_log)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    file_handler.setLevel(logging.DEBUG)
    root.addHandler(file_handler)

    console_handler = colorlog.StreamHandler()
    console_handler.setFormatter(colorlog.ColoredFormatter(CONSOLE_FORMAT, log_colors=CONSOLE_COLORS))
    # Per-frame debug lines only go to the file
    console_handler.setLevel(logging.INFO)
    root.addHandler(console_handler)

    return root


logger = setup_logger()

_video_log_handler = None


def start_file_log(output_directory, video_id, log_level=logging.DEBUG):
    """
    Also write log records to <output_directory>/<video_id>_phase_analysis.log.

    The run log and the console keep receiving everything. Starting a new
    video log closes the previous one.

    Args:
        output_directory (str): Directory receiving the analysis outputs
        video_id (str): Video identifier used in the file name
        log_level (int): Minimum level written to the video log

    Returns:
        str: Path of the video log
    """
    global _video_log_handler

    stop_file_log()

    os.makedirs(output_directory, exist_ok=True)
    log_path = os.path.join(output_directory, f"{video_id}_phase_analysis.log")

    handler = logging.FileHandler(log_path, mode='w', encoding='utf-8')
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    handler.setLevel(log_level)
    handler._lc_phase_video_log = True

    logger.addHandler(handler)
    _video_log_handler = handler

    logger.info(f"=== Phase analysis log for: {video_id} ===")
    logger.info(f"Analysis started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    return log_path


def stop_file_log():
    """Close the video log, if one is open."""
    global _video_log_handler

    if _video_log_handler is not None:
        logger.info(f"Analysis finished at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        logger.info("=== End of phase analysis log ===")

    for handler in logger.handlers[:]:
        if handler is _video_log_handler or getattr(handler, '_lc_phase_video_log', False):
            logger.removeHandler(handler)
            handler.close()
    _video_log_handler = None
