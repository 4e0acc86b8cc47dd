"""Chromatogram construction by recursive scan-to-track matching.

Scans are consumed in retention time order. In each scan, every data point
is scored against every chromatogram under construction by absolute m/z
distance, and the best pairs are connected with greedy exclusive matching.
Chromatograms that did not grow either lose their latest short segment or
get a zero-intensity gap marker; unconnected data points start new
chromatograms. A finishing pass removes points below a per-chromatogram
intensity quantile and drops chromatograms that are too short.

Examples
--------
>>> builder = ChromatogramBuilder(ChromatogramBuilderParams(mz_tolerance=0.005))
>>> chromatograms = builder.build(raw_file)
"""

import logging
import warnings
from typing import Callable, Optional, Sequence

import numpy as np

from ..config import ChromatogramBuilderParams
from ..data.scan import RawDataFile, Scan
from ..exceptions import EmptyInputWarning
from ..matching import ScoreMatcher
from ..numeric import calc_quantile
from ..task import CancellationToken, ProgressTracker, advance, check_cancelled
from .chromatogram import Chromatogram, ScanGrid

logger = logging.getLogger(__name__)


def window_pairs(
    centers: np.ndarray,
    sorted_values: np.ndarray,
    tolerance: float
) -> tuple[np.ndarray, np.ndarray]:
    """All (center, value) index pairs with ``|value - center| <= tolerance``.

    Pairs are enumerated center-major, values ascending.

    Parameters
    ----------
    centers : np.ndarray
        Query positions
    sorted_values : np.ndarray
        Ascending candidate positions
    tolerance : float
        Inclusive half-width of the window

    Returns
    -------
    center_idx, value_idx : np.ndarray
        Matching index pairs
    """
    lo = np.searchsorted(sorted_values, centers - tolerance, side="left")
    hi = np.searchsorted(sorted_values, centers + tolerance, side="right")
    counts = np.maximum(hi - lo, 0)
    total = int(np.sum(counts))

    center_idx = np.repeat(np.arange(len(centers), dtype=np.int64), counts)
    offsets = np.arange(total, dtype=np.int64) - np.repeat(np.cumsum(counts) - counts, counts)
    value_idx = np.repeat(lo, counts).astype(np.int64) + offsets
    return center_idx, value_idx


class ChromatogramBuilder:
    """Build chromatograms from the scans of one raw data file.

    A builder holds the state of one run between :meth:`start`,
    :meth:`add_scan` and :meth:`finish_chromatograms`; use one builder per
    unit of work. :meth:`build` runs all three steps.
    """

    def __init__(self, params: Optional[ChromatogramBuilderParams] = None):
        self.params = params if params is not None else ChromatogramBuilderParams()
        self.params.validate()
        self._data_file: Optional[RawDataFile] = None
        self._grid: Optional[ScanGrid] = None
        self._chromatograms: list[Chromatogram] = []

    def start(self, data_file: RawDataFile, scans: Sequence[Scan]) -> None:
        """Reset the builder for a new run over ``scans``."""
        self._data_file = data_file
        self._grid = ScanGrid(
            np.array([s.scan_number for s in scans], dtype=np.int64),
            np.array([s.retention_time for s in scans], dtype=np.float64),
        )
        self._chromatograms = []

    def add_scan(self, index: int, scan: Scan) -> None:
        """Connect the data points of grid scan ``index`` to the growing tracks."""
        mz_values, intensities = scan.get_arrays()
        signal = intensities > 0
        mz_values = mz_values[signal]
        intensities = intensities[signal]

        chromatograms = self._chromatograms
        matcher = ScoreMatcher(chromatograms, range(len(mz_values)))
        if chromatograms and len(mz_values):
            centers = np.array([c.mz for c in chromatograms], dtype=np.float64)
            left, right = window_pairs(centers, mz_values, self.params.mz_tolerance)
            matcher.add_scores(left, right, np.abs(mz_values[right] - centers[left]))
        result = matcher.match()

        for chromatogram, k in result.pairs:
            chromatogram.add_point(index, float(mz_values[k]), float(intensities[k]))

        min_duration = self.params.min_duration
        retained = []
        for chromatogram in chromatograms:
            if chromatogram.growing:
                chromatogram.growing = False
            elif not chromatogram.is_last_point_zero():
                if chromatogram.last_segment_rt_span() < min_duration:
                    if not chromatogram.has_previous_segments():
                        continue
                    chromatogram.remove_last_segment()
                else:
                    chromatogram.add_zero_point(index)
            retained.append(chromatogram)

        for k in result.unmatched_right:
            chromatogram = Chromatogram(self._data_file, self._grid)
            chromatogram.add_point(index, float(mz_values[k]), float(intensities[k]))
            chromatogram.growing = False
            retained.append(chromatogram)

        self._chromatograms = retained

    def finish_chromatograms(self) -> list[Chromatogram]:
        """Apply the per-chromatogram intensity quantile and the duration filter."""
        quantile = self.params.intensity_threshold_quantile
        min_duration = self.params.min_duration

        finished = []
        for chromatogram in self._chromatograms:
            threshold = calc_quantile(chromatogram.intensity_trace(), quantile)
            chromatogram.remove_points_below(threshold)
            if not chromatogram.has_signal:
                continue
            if (chromatogram.last_segment_rt_span() < min_duration
                    and not chromatogram.has_previous_segments()):
                continue
            finished.append(chromatogram)

        self._chromatograms = []
        return finished

    def build(
        self,
        data_file: RawDataFile,
        scans: Optional[Sequence[Scan]] = None,
        token: Optional[CancellationToken] = None,
        progress: Optional[ProgressTracker] = None,
        on_scan: Optional[Callable[[], None]] = None,
    ) -> list[Chromatogram]:
        """Build all chromatograms of one run.

        Parameters
        ----------
        data_file : RawDataFile
            Run the scans belong to
        scans : Sequence[Scan], optional
            Scans in retention time order; defaults to all scans of
            ``params.ms_level`` in ``data_file``
        token : CancellationToken, optional
            Polled once per scan
        progress : ProgressTracker, optional
            Advanced once per scan
        on_scan : callable, optional
            Called once per scan, after the scan was added

        Returns
        -------
        chromatograms : list[Chromatogram]
            Finished chromatograms, in creation order
        """
        if scans is None:
            scans = list(data_file.iter_scans(self.params.ms_level))
        if progress is not None:
            progress.start(len(scans))

        if len(scans) == 0:
            logger.warning(f"{data_file}: no MS{self.params.ms_level} scans to build chromatograms from")
            warnings.warn(f"{data_file} has no scans", EmptyInputWarning)
            return []

        logger.info(
            f"Building chromatograms for {data_file} from {len(scans):,} scans "
            f"(m/z tolerance {self.params.mz_tolerance})"
        )
        self.start(data_file, scans)
        for index, scan in enumerate(scans):
            check_cancelled(token)
            self.add_scan(index, scan)
            advance(progress)
            if on_scan is not None:
                on_scan()

        chromatograms = self.finish_chromatograms()
        logger.info(f"✓ Built {len(chromatograms):,} chromatograms for {data_file}")
        return chromatograms
