"""Extracted ion chromatogram (XIC) under construction and after finishing.

A chromatogram is a sparse track over the scan grid of one run: each scan of
the grid contributes at most one point (m/z, intensity). Points with zero
intensity are synthetic gap markers inserted when the track did not grow in
a scan. A *segment* is a maximal run of non-zero points on consecutive grid
scans.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

import numpy as np

from ..data.scan import RawDataFile


class ScanGrid(NamedTuple):
    """Ordered scans (numbers and retention times) a chromatogram lives on."""
    scan_numbers: np.ndarray
    rts: np.ndarray


class ChromatogramPoint(NamedTuple):
    index: int  # position in the scan grid
    scan_number: int
    mz: float
    intensity: float
    rt: float


class Chromatogram:
    """Intensity of one m/z trace across the scans of one raw data file.

    Parameters
    ----------
    data_file : RawDataFile
        Run the chromatogram was built from
    grid : ScanGrid
        Scans of the run in processing order

    Notes
    -----
    The representative m/z is the intensity-weighted mean of the non-zero
    points. ``growing`` is set by :meth:`add_point` and must be reset by
    the builder once per scan round.
    """

    def __init__(self, data_file: RawDataFile, grid: ScanGrid):
        self.data_file = data_file
        self.grid = grid
        self.growing = False
        self._points: list[ChromatogramPoint] = []
        self._sum_intensity = 0.0
        self._sum_mz_intensity = 0.0
        self._last_mz = 0.0

    @classmethod
    def from_arrays(
        cls,
        data_file: RawDataFile,
        scan_numbers: np.ndarray,
        rts: np.ndarray,
        mzs: np.ndarray,
        intensities: np.ndarray,
    ) -> "Chromatogram":
        """Chromatogram with one point per given scan, on a grid of those scans."""
        grid = ScanGrid(
            np.asarray(scan_numbers, dtype=np.int64),
            np.asarray(rts, dtype=np.float64),
        )
        chromatogram = cls(data_file, grid)
        for i in range(len(grid.scan_numbers)):
            chromatogram.add_point(i, float(mzs[i]), float(intensities[i]))
        chromatogram.growing = False
        return chromatogram

    def __len__(self):
        return len(self._points)

    def __repr__(self):
        return f"Chromatogram({self.data_file}, mz={self.mz:.4f}, n={len(self._points)})"

    # -- point access ------------------------------------------------------

    @property
    def mz(self) -> float:
        if self._sum_intensity > 0:
            return self._sum_mz_intensity / self._sum_intensity
        return self._last_mz

    @property
    def points(self) -> list[ChromatogramPoint]:
        return list(self._points)

    def get_point(self, scan_number: int) -> Optional[ChromatogramPoint]:
        for point in self._points:
            if point.scan_number == scan_number:
                return point
        return None

    @property
    def has_signal(self) -> bool:
        return self._sum_intensity > 0

    @property
    def index_range(self) -> tuple[int, int]:
        """First and last grid index holding a point."""
        return self._points[0].index, self._points[-1].index

    @property
    def rt_range(self) -> tuple[float, float]:
        return self._points[0].rt, self._points[-1].rt

    def intensity_trace(self) -> np.ndarray:
        """Intensities over the whole scan grid, 0 where there is no point."""
        trace = np.zeros(len(self.grid.scan_numbers), dtype=np.float64)
        for point in self._points:
            trace[point.index] = point.intensity
        return trace

    # -- construction ------------------------------------------------------

    def add_point(self, index: int, mz: float, intensity: float) -> None:
        """Connect a data point of grid scan ``index`` and mark the track growing."""
        if self._points and index <= self._points[-1].index:
            raise ValueError(
                f"Grid index {index} is not after {self._points[-1].index}"
            )
        point = ChromatogramPoint(
            index,
            int(self.grid.scan_numbers[index]),
            mz,
            intensity,
            float(self.grid.rts[index]),
        )
        self._points.append(point)
        self._sum_intensity += intensity
        self._sum_mz_intensity += mz * intensity
        self._last_mz = mz
        self.growing = True

    def add_zero_point(self, index: int) -> None:
        """Mark a gap at grid scan ``index``; does not set ``growing``."""
        self._points.append(
            ChromatogramPoint(
                index,
                int(self.grid.scan_numbers[index]),
                self.mz,
                0.0,
                float(self.grid.rts[index]),
            )
        )

    def is_last_point_zero(self) -> bool:
        return bool(self._points) and self._points[-1].intensity == 0.0

    def _last_segment_bounds(self) -> tuple[int, int]:
        """Half-open list positions of the last segment, ignoring trailing zeros."""
        end = len(self._points)
        while end > 0 and self._points[end - 1].intensity == 0.0:
            end -= 1
        if end == 0:
            return end, end
        start = end - 1
        while start > 0:
            previous = self._points[start - 1]
            if previous.intensity == 0.0 or previous.index != self._points[start].index - 1:
                break
            start -= 1
        return start, end

    def last_segment_rt_span(self) -> float:
        start, end = self._last_segment_bounds()
        if start == end:
            return 0.0
        return self._points[end - 1].rt - self._points[start].rt

    def has_previous_segments(self) -> bool:
        start, _ = self._last_segment_bounds()
        return any(p.intensity > 0 for p in self._points[:start])

    def remove_last_segment(self) -> None:
        start, end = self._last_segment_bounds()
        for point in self._points[start:end]:
            self._forget(point)
        del self._points[start:end]

    def remove_points_below(self, threshold: float) -> int:
        """Drop points (including gap markers) with intensity below ``threshold``."""
        kept = []
        for point in self._points:
            if point.intensity < threshold:
                self._forget(point)
            else:
                kept.append(point)
        removed = len(self._points) - len(kept)
        self._points = kept
        return removed

    def _forget(self, point: ChromatogramPoint) -> None:
        self._sum_intensity -= point.intensity
        self._sum_mz_intensity -= point.mz * point.intensity
        if self._sum_intensity <= 0:
            self._sum_intensity = 0.0
            self._sum_mz_intensity = 0.0
