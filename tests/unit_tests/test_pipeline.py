"""End-to-end tests: peak picking of raw files through to processed tables."""

import logging

import numpy as np
import pytest

from alphafeature.alignment import JoinAligner
from alphafeature.config import (
    CentroidPickerParams,
    ChromatogramBuilderParams,
    JoinAlignerParams,
    SavitzkyGolayParams,
)
from alphafeature.exceptions import EmptyInputWarning, TaskCancelled
from alphafeature.peakpicking import (
    peaks_to_peak_list,
    pick_peaks_centroid,
    pick_peaks_three_step,
)
from alphafeature.processing import DuplicateRowFilter, LinearNormalizer
from alphafeature.task import CancellationToken, ProgressTracker, TaskStatus, run_task

from conftest import gaussian, make_peak, make_raw_file


@pytest.fixture
def two_compound_file():
    """120 scans with two co-eluting compounds at m/z 300 and 450."""
    n_scans = 120
    x = np.arange(n_scans)
    return make_raw_file(
        "mix",
        {
            300.0: gaussian(x, 40, 4.0, 2e6) + 100.0,
            450.0: gaussian(x, 80, 4.0, 8e5) + 100.0,
        },
        n_scans,
    )


class TestPeakListConversion:
    """Test conversion of detector output to peak lists."""

    def test_row_ids_from_one(self, raw_file):
        """Test one row per peak with increasing IDs."""
        peaks = [make_peak(raw_file, 500.0, 1.0, 10.0), make_peak(raw_file, 600.0, 2.0, 20.0)]

        peak_list = peaks_to_peak_list("sample peaks", raw_file, peaks)

        assert [row.row_id for row in peak_list] == [1, 2]
        assert peak_list.get_row(1).get_peak(raw_file) is peaks[1]
        assert peak_list.data_files == [raw_file]


class TestThreeStepPicking:
    """Test chromatogram building followed by Savitzky-Golay detection."""

    def test_two_compounds(self, two_compound_file):
        """Test that both compounds are found at their apex."""
        peak_list = pick_peaks_three_step(
            two_compound_file,
            ChromatogramBuilderParams(mz_tolerance=0.01, min_duration=0.5, intensity_threshold_quantile=0.0),
            SavitzkyGolayParams(min_peak_height=1e4),
        )

        assert peak_list.name == "mix chromatogram peaks"
        by_mz = {round(row.average_mz): row for row in peak_list}
        assert set(by_mz) == {300, 450}
        assert by_mz[300].average_rt == pytest.approx(4.0)
        assert by_mz[450].average_rt == pytest.approx(8.0)
        assert by_mz[300].average_height == pytest.approx(2e6 + 100.0)

    def test_truncated_peak(self):
        """Test one peak at the apex of a trace cut below 14% of its maximum."""
        trace = gaussian(np.arange(200), 100, 5.0, 1e6)
        trace[trace < 0.14 * 1e6] = 0.0
        raw = make_raw_file("truncated", {500.0: trace}, 200)

        peak_list = pick_peaks_three_step(raw, ChromatogramBuilderParams(min_duration=0.5))

        assert len(peak_list) == 1
        row = peak_list.get_row(0)
        assert row.average_rt == pytest.approx(10.0)
        assert row.average_mz == pytest.approx(500.0)
        assert row.average_height == pytest.approx(1e6)

    def test_builder_logs(self, two_compound_file, caplog):
        """Test that chromatogram building reports its start and result."""
        with caplog.at_level(logging.INFO):
            pick_peaks_three_step(two_compound_file)

        assert "Building chromatograms for mix" in caplog.text
        assert "✓ Built" in caplog.text

    def test_progress_monotonic(self, two_compound_file):
        """Test that progress covers building and detection."""
        progress = ProgressTracker()

        pick_peaks_three_step(two_compound_file, progress=progress)

        assert progress.total == 2 * len(two_compound_file)
        assert progress.processed == progress.total

    def test_cancelled(self, two_compound_file):
        """Test that cancellation stops the pipeline."""
        token = CancellationToken()
        token.cancel()

        with pytest.raises(TaskCancelled):
            pick_peaks_three_step(two_compound_file, token=token)

    def test_empty_file(self, empty_raw_file):
        """Test that a file without scans gives an empty list."""
        with pytest.warns(EmptyInputWarning):
            peak_list = pick_peaks_three_step(empty_raw_file)

        assert len(peak_list) == 0
        assert peak_list.data_files == [empty_raw_file]


class TestCentroidPicking:
    """Test the centroid peak picking pipeline."""

    def test_gaussian(self, gaussian_raw_file):
        """Test that the Gaussian trace becomes one row."""
        peak_list = pick_peaks_centroid(
            gaussian_raw_file, CentroidPickerParams(noise_level=1e4, min_peak_duration=0.5)
        )

        assert peak_list.name == "gaussian centroid peaks"
        assert len(peak_list) == 1
        assert peak_list.get_row(0).average_height == pytest.approx(1e6)


class TestFullWorkflow:
    """Test picking, aligning, filtering and normalizing two runs."""

    def test_two_runs(self):
        """Test that matching compounds of two runs end up in shared rows."""
        n_scans = 100
        x = np.arange(n_scans)
        run_a = make_raw_file("run_a", {
            300.0: gaussian(x, 40, 4.0, 1e6),
            500.0: gaussian(x, 60, 4.0, 4e5),
        }, n_scans)
        run_b = make_raw_file("run_b", {
            300.001: gaussian(x, 41, 4.0, 2e6),
            500.001: gaussian(x, 61, 4.0, 8e5),
        }, n_scans)
        params = CentroidPickerParams(noise_level=1e4, min_peak_duration=0.5)

        lists = [pick_peaks_centroid(run, params) for run in (run_a, run_b)]
        published = []
        result = run_task(
            "Join alignment",
            JoinAligner(JoinAlignerParams(mz_tolerance=0.01, rt_tolerance=0.5)).align,
            lists,
            sink=published.append,
        )

        assert result.status is TaskStatus.FINISHED
        aligned = published[0]
        assert len(aligned) == 2
        assert all(len(row.peaks) == 2 for row in aligned)

        filtered = DuplicateRowFilter().filter(aligned)
        normalized = LinearNormalizer().normalize(filtered)

        assert len(normalized) == 2
        assert normalized.name == "Aligned peak list filtered normalized"
        heights = {
            round(row.average_mz): [p.height for p in row.peaks] for row in normalized
        }
        # run_b is run_a scaled by 2, so normalized heights agree across runs
        for values in heights.values():
            assert values[0] == pytest.approx(values[1], rel=1e-6)
