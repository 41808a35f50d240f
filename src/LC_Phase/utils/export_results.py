#!/usr/bin/env python
# -*- coding: utf-8 -*-

import csv
from pathlib import Path
from typing import Dict, List, Sequence, Union

from LC_Phase.checks.frame_data import RESULT_COLUMNS, FrameResult, Phase
from LC_Phase.utils.log_setup import logger

_INT_COLUMNS = {'frame_number', 'num_contours'}
_FLOAT_COLUMNS = {'timestamp_seconds', 'timestamp_minutes', 'variance', 'std_dev'}
_PHASE_COLUMNS = {'phase_contour', 'phase_variance'}


def write_results_csv(series: Sequence[FrameResult], csv_path) -> Path:
    """
    Write one row per FrameResult with the standard phase analysis columns.

    Floats are written at full precision so the file parses back to the same values.

    Args:
        series: Results in temporal order
        csv_path: Destination file

    Returns:
        Path: the written file
    """
    csv_path = Path(csv_path)
    csv_path.parent.mkdir(parents=True, exist_ok=True)

    with open(csv_path, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=RESULT_COLUMNS)
        writer.writeheader()
        for result in series:
            writer.writerow(result.to_row())

    errors = sum(1 for r in series if r.is_error)
    logger.info(f"Wrote {len(series)} rows to {csv_path}"
                + (f" ({errors} ERROR frames)" if errors else ""))
    return csv_path


def _parse_value(column: str, value: str) -> Union[int, float, str]:
    if column in _INT_COLUMNS:
        return int(value)
    if column in _FLOAT_COLUMNS:
        return float(value)
    if column in _PHASE_COLUMNS:
        # Rejects labels the analysis never produces
        return Phase(value).value
    return value


def read_results_csv(csv_path) -> List[Dict[str, Union[int, float, str]]]:
    """
    Parse a phase analysis CSV back into typed rows (same shape as FrameResult.to_row()).

    Raises:
        ValueError: if the header is not the standard column set or a value does not parse
    """
    with open(csv_path, 'r', newline='') as f:
        reader = csv.DictReader(f)
        if tuple(reader.fieldnames or ()) != RESULT_COLUMNS:
            raise ValueError(f"Unexpected columns in {csv_path}: {reader.fieldnames}")

        rows = []
        for line_num, row in enumerate(reader, start=2):
            try:
                rows.append({column: _parse_value(column, row[column]) for column in RESULT_COLUMNS})
            except (TypeError, ValueError) as e:
                raise ValueError(f"{csv_path} line {line_num}: {e}") from e

    return rows
