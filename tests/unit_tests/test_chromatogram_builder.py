"""Tests for chromatogram construction.

Tests scan-by-scan tracking, exclusion of distant m/z values, gap handling,
the finishing quantile filter and the chromatogram data structure itself.
"""

import numpy as np
import pytest

from alphafeature.config import ChromatogramBuilderParams
from alphafeature.data import RawDataFile, Scan
from alphafeature.exceptions import EmptyInputWarning, TaskCancelled
from alphafeature.task import CancellationToken, ProgressTracker
from alphafeature.xic import Chromatogram, ChromatogramBuilder, window_pairs

from conftest import gaussian, make_raw_file


class TestWindowPairs:
    """Test tolerance window enumeration."""

    def test_pairs_center_major(self):
        """Test that pairs are enumerated per center, values ascending."""
        centers = np.array([100.0, 200.0])
        values = np.array([99.995, 100.004, 150.0, 200.0])

        left, right = window_pairs(centers, values, 0.01)

        assert left.tolist() == [0, 0, 1]
        assert right.tolist() == [0, 1, 3]

    def test_no_pairs(self):
        """Test that distant values give no pairs."""
        left, right = window_pairs(np.array([100.0]), np.array([300.0]), 0.01)

        assert len(left) == 0
        assert len(right) == 0


class TestChromatogramBuilder:
    """Test building chromatograms from scans."""

    def test_constant_mz_single_chromatogram(self):
        """Test that one data point per scan at constant m/z gives one chromatogram."""
        n_scans = 20
        raw = RawDataFile("run")
        for i in range(n_scans):
            mz = 500.0 + 0.001 * ((i % 3) - 1)
            raw.add_scan(Scan(i + 1, 1, i * 0.1, [mz], [1000.0]))

        chromatograms = ChromatogramBuilder(ChromatogramBuilderParams(mz_tolerance=0.01)).build(raw)

        assert len(chromatograms) == 1
        chromatogram = chromatograms[0]
        assert len(chromatogram) == n_scans
        assert [p.scan_number for p in chromatogram.points] == list(range(1, n_scans + 1))
        assert chromatogram.mz == pytest.approx(500.0, abs=0.001)

    def test_distant_mz_starts_new_chromatogram(self):
        """Test that a data point outside the tolerance never extends a chromatogram."""
        n_scans = 20
        first = np.full(n_scans, 1000.0)
        second = np.zeros(n_scans)
        second[10:] = 1000.0
        raw = make_raw_file("run", {500.0: first, 500.05: second}, n_scans)

        chromatograms = ChromatogramBuilder(ChromatogramBuilderParams(mz_tolerance=0.01)).build(raw)

        assert len(chromatograms) == 2
        by_mz = sorted(chromatograms, key=lambda c: c.mz)
        assert by_mz[0].mz == pytest.approx(500.0)
        assert len(by_mz[0]) == n_scans
        assert by_mz[1].mz == pytest.approx(500.05)
        assert len(by_mz[1]) == 10
        assert by_mz[1].points[0].scan_number == 11

    def test_closest_chromatogram_wins(self):
        """Test that a data point in range of two tracks joins the closer one."""
        n_scans = 10
        raw = RawDataFile("run")
        for i in range(n_scans):
            mzs = [500.0, 500.015] if i < 5 else [500.0, 500.009]
            raw.add_scan(Scan(i + 1, 1, i * 0.1, mzs, [1000.0, 1000.0]))

        chromatograms = ChromatogramBuilder(
            ChromatogramBuilderParams(mz_tolerance=0.01, intensity_threshold_quantile=0.0)
        ).build(raw)

        lower = min(chromatograms, key=lambda c: c.mz)
        upper = max(chromatograms, key=lambda c: c.mz)
        assert len(chromatograms) == 2
        assert len(lower) == n_scans
        assert all(p.mz == 500.0 for p in lower.points)
        assert [p.mz for p in upper.points[5:]] == [500.009] * 5

    def test_short_chromatogram_dropped(self):
        """Test that a single-scan blip does not survive."""
        n_scans = 20
        trace = np.full(n_scans, 1000.0)
        blip = np.zeros(n_scans)
        blip[5] = 5000.0
        raw = make_raw_file("run", {500.0: trace, 700.0: blip}, n_scans)

        chromatograms = ChromatogramBuilder(ChromatogramBuilderParams(min_duration=0.3)).build(raw)

        assert [round(c.mz) for c in chromatograms] == [500]

    def test_gap_marked_with_zero_point(self):
        """Test that a missing scan after a long segment leaves a zero point."""
        n_scans = 20
        trace = np.full(n_scans, 1000.0)
        trace[10] = 0.0
        raw = make_raw_file("run", {500.0: trace}, n_scans)

        chromatograms = ChromatogramBuilder(
            ChromatogramBuilderParams(min_duration=0.3, intensity_threshold_quantile=0.0)
        ).build(raw)

        assert len(chromatograms) == 1
        point = chromatograms[0].get_point(11)
        assert point is not None
        assert point.intensity == 0.0
        assert len(chromatograms[0]) == n_scans

    def test_quantile_removes_low_points(self):
        """Test that points below the chromatogram's own quantile are removed."""
        n_scans = 20
        trace = np.full(n_scans, 1000.0)
        trace[:4] = 10.0
        raw = make_raw_file("run", {500.0: trace}, n_scans)

        chromatograms = ChromatogramBuilder(
            ChromatogramBuilderParams(intensity_threshold_quantile=0.5)
        ).build(raw)

        assert len(chromatograms) == 1
        assert min(p.intensity for p in chromatograms[0].points) == 1000.0
        assert len(chromatograms[0]) == 16

    def test_empty_file_warns(self, empty_raw_file):
        """Test that a file without scans gives no chromatograms and a warning."""
        with pytest.warns(EmptyInputWarning):
            chromatograms = ChromatogramBuilder().build(empty_raw_file)

        assert chromatograms == []

    def test_progress_and_cancellation(self, gaussian_raw_file):
        """Test per-scan progress and cooperative cancellation."""
        progress = ProgressTracker()
        ChromatogramBuilder().build(gaussian_raw_file, progress=progress)
        assert progress.fraction == 1.0
        assert progress.total == len(gaussian_raw_file)

        token = CancellationToken()
        token.cancel()
        with pytest.raises(TaskCancelled):
            ChromatogramBuilder().build(gaussian_raw_file, token=token)


class TestChromatogram:
    """Test the chromatogram data structure."""

    def test_from_arrays(self, raw_file):
        """Test building a complete chromatogram from arrays."""
        chromatogram = Chromatogram.from_arrays(
            raw_file, [1, 2, 3], [0.0, 0.1, 0.2], [500.0, 500.0, 500.0], [1.0, 3.0, 1.0]
        )

        assert len(chromatogram) == 3
        assert not chromatogram.growing
        assert chromatogram.intensity_trace().tolist() == [1.0, 3.0, 1.0]
        assert chromatogram.rt_range == (0.0, 0.2)

    def test_weighted_mz(self, raw_file):
        """Test that the m/z is the intensity-weighted mean of non-zero points."""
        chromatogram = Chromatogram.from_arrays(
            raw_file, [1, 2, 3], [0.0, 0.1, 0.2], [500.0, 501.0, 999.0], [1.0, 3.0, 0.0]
        )

        assert chromatogram.mz == pytest.approx(500.75)

    def test_segments(self, raw_file):
        """Test last segment span, earlier segments and trimming."""
        chromatogram = Chromatogram.from_arrays(
            raw_file,
            np.arange(1, 8),
            np.arange(7) * 0.1,
            np.full(7, 500.0),
            [5.0, 5.0, 5.0, 0.0, 7.0, 7.0, 0.0],
        )

        assert chromatogram.last_segment_rt_span() == pytest.approx(0.1)
        assert chromatogram.has_previous_segments()

        chromatogram.remove_last_segment()

        assert [p.intensity for p in chromatogram.points] == [5.0, 5.0, 5.0, 0.0, 0.0]
        assert chromatogram.mz == pytest.approx(500.0)
        assert not chromatogram.has_previous_segments()

    def test_points_must_advance(self, raw_file):
        """Test that points are appended in grid order."""
        chromatogram = Chromatogram.from_arrays(raw_file, [1, 2], [0.0, 0.1], [1.0, 1.0], [1.0, 1.0])

        with pytest.raises(ValueError):
            chromatogram.add_point(0, 1.0, 1.0)

    def test_last_segment_ends_with_signal(self, raw_file):
        """Test segment queries when the last point is not a gap marker."""
        chromatogram = Chromatogram.from_arrays(
            raw_file,
            np.arange(1, 6),
            np.arange(5) * 0.1,
            np.full(5, 500.0),
            [5.0, 0.0, 7.0, 8.0, 9.0],
        )

        assert chromatogram.last_segment_rt_span() == pytest.approx(0.2)
        assert chromatogram.has_previous_segments()

        chromatogram.remove_last_segment()

        assert [p.intensity for p in chromatogram.points] == [5.0, 0.0]

    def test_single_point_segment(self, raw_file):
        """Test a chromatogram holding one non-zero point."""
        chromatogram = Chromatogram.from_arrays(raw_file, [1], [0.0], [500.0], [3.0])

        assert chromatogram.last_segment_rt_span() == 0.0
        assert not chromatogram.has_previous_segments()

        chromatogram.remove_last_segment()

        assert len(chromatogram) == 0
        assert not chromatogram.has_signal


class TestBuilderOnTruncatedTrace:
    """Test building from a trace that starts and ends inside the run."""

    @pytest.fixture
    def truncated_raw_file(self):
        """200 scans; Gaussian at scan index 100 cut below 14% of its maximum."""
        trace = gaussian(np.arange(200), 100, 5.0, 1e6)
        trace[trace < 0.14 * 1e6] = 0.0
        return make_raw_file("truncated", {500.0: trace}, 200)

    def test_single_chromatogram(self, truncated_raw_file):
        """Test one chromatogram closed by a gap marker after its last point."""
        chromatograms = ChromatogramBuilder(
            ChromatogramBuilderParams(min_duration=0.5)
        ).build(truncated_raw_file)

        assert len(chromatograms) == 1
        points = chromatograms[0].points
        assert [p.scan_number for p in points] == list(range(92, 112))
        assert points[-1].intensity == 0.0
        assert chromatograms[0].last_segment_rt_span() == pytest.approx(1.8)

    def test_scan_hook(self, truncated_raw_file):
        """Test that the per-scan hook is called once per scan."""
        calls = []

        ChromatogramBuilder().build(truncated_raw_file, on_scan=lambda: calls.append(1))

        assert len(calls) == 200
