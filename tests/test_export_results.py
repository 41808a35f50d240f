import pytest

from conftest import make_result

from LC_Phase.checks.frame_data import RESULT_COLUMNS, Phase
from LC_Phase.utils.export_results import read_results_csv, write_results_csv


def _series():
    return [
        make_result(0, 0.0, Phase.CHOLESTERIC, variance=42.25),
        make_result(30, 1.0010010010010011, Phase.CHOLESTERIC, Phase.ISOTROPIC, variance=101.3),
        make_result(60, 2.002002002002002, Phase.ERROR),
        make_result(90, 3.003003003003003, Phase.ISOTROPIC, num_contours=0, variance=0.0),
    ]


def test_csv_header_and_rows(tmp_path):
    path = write_results_csv(_series(), tmp_path / "out" / "video_phase_analysis.csv")
    lines = path.read_text().splitlines()
    assert lines[0] == ",".join(RESULT_COLUMNS)
    assert len(lines) == 5
    assert lines[3].split(",")[4] == "ERROR"


def test_csv_reads_back_the_same_values(tmp_path):
    series = _series()
    path = write_results_csv(series, tmp_path / "results.csv")
    rows = read_results_csv(path)
    assert rows == [r.to_row() for r in series]


def test_empty_series_writes_header_only(tmp_path):
    path = write_results_csv([], tmp_path / "empty.csv")
    assert read_results_csv(path) == []


def test_unexpected_header_is_rejected(tmp_path):
    path = tmp_path / "other.csv"
    path.write_text("frame,phase\n0,CHOLESTERIC\n")
    with pytest.raises(ValueError):
        read_results_csv(path)


def test_unknown_phase_label_is_rejected(tmp_path):
    path = write_results_csv(_series()[:1], tmp_path / "results.csv")
    path.write_text(path.read_text().replace("CHOLESTERIC", "NEMATIC"))
    with pytest.raises(ValueError):
        read_results_csv(path)
