"""Centroid growth peak detection.

Two-pass detector working directly on the MS1 centroids of one run:

1. Bin every scan into fixed-width m/z bins, keep the maximum intensity per
   bin, and take a quantile of each bin's trace over all scans as a
   spatially varying noise floor
2. Walk the scans; centroids above both the absolute noise level and their
   bin's floor are matched to growing peaks by m/z distance and relative
   intensity change. Peaks that do not grow in a scan are finalized and
   kept if they are long and high enough.

Performance
-----------
Candidate windows use binary search on the m/z-sorted centroids, the binning
pass runs in Numba.
"""

import logging
import warnings
from typing import Optional

import numpy as np

from ..config import CentroidPickerParams
from ..constants import MAX_SCORE
from ..data.peak import Peak, PeakBuilder, PeakStatus
from ..data.scan import RawDataFile
from ..exceptions import EmptyInputWarning
from ..matching import ScoreMatcher
from ..numeric import bin_indices, bin_max_intensities, bin_quantile_thresholds
from ..task import CancellationToken, ProgressTracker, advance, check_cancelled
from ..xic.builder import window_pairs

logger = logging.getLogger(__name__)


def normalized_distance(distance: np.ndarray, tolerance: float) -> np.ndarray:
    """``distance / tolerance``, MAX_SCORE where the tolerance is exceeded.

    A zero tolerance only accepts zero distance.
    """
    distance = np.asarray(distance, dtype=np.float64)
    if tolerance > 0:
        scaled = distance / tolerance
    else:
        scaled = np.zeros_like(distance)
    return np.where(distance > tolerance, MAX_SCORE, scaled)


def centroid_match_scores(
    peak_mzs: np.ndarray,
    peak_intensities: np.ndarray,
    candidate_mzs: np.ndarray,
    candidate_intensities: np.ndarray,
    mz_tolerance: float,
    intensity_tolerance: float,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Score growing peaks against the centroids of the next scan.

    The score is the m/z distance over its tolerance plus the relative
    intensity change ``|a - b| / max(a, b)`` over its tolerance.

    Returns
    -------
    peak_idx, candidate_idx, scores : np.ndarray
        Candidate pairs (peak-major) and their scores, MAX_SCORE if excluded
    """
    peak_idx, candidate_idx = window_pairs(peak_mzs, candidate_mzs, mz_tolerance)
    mz_term = normalized_distance(
        np.abs(candidate_mzs[candidate_idx] - peak_mzs[peak_idx]), mz_tolerance
    )

    last = peak_intensities[peak_idx]
    current = candidate_intensities[candidate_idx]
    larger = np.maximum(last, current)
    relative = np.divide(
        np.abs(current - last), larger,
        out=np.zeros_like(larger), where=larger > 0,
    )
    intensity_term = normalized_distance(relative, intensity_tolerance)
    return peak_idx, candidate_idx, mz_term + intensity_term


class CentroidPeakDetector:
    """Detect peaks by growing tracks of centroids across consecutive scans.

    Parameters
    ----------
    params : CentroidPickerParams, optional
        Detector settings; validated on construction

    Examples
    --------
    >>> detector = CentroidPeakDetector(CentroidPickerParams(noise_level=1e4))
    >>> peaks = detector.detect(raw_file)
    """

    def __init__(self, params: Optional[CentroidPickerParams] = None):
        self.params = params if params is not None else CentroidPickerParams()
        self.params.validate()

    def chromatographic_thresholds(
        self,
        data_file: RawDataFile,
        scan_numbers: np.ndarray,
        start_mz: float,
        n_bins: int,
        token: Optional[CancellationToken] = None,
        progress: Optional[ProgressTracker] = None,
    ) -> np.ndarray:
        """Per-bin quantile of the bin maximum over all scans (pass 1)."""
        quantile = self.params.chromatographic_threshold_quantile
        if quantile <= 0:
            advance(progress, len(scan_numbers))
            return np.zeros(n_bins, dtype=np.float64)

        bin_traces = np.zeros((n_bins, len(scan_numbers)), dtype=np.float64)
        for i, scan_number in enumerate(scan_numbers):
            check_cancelled(token)
            mz_values, intensities = data_file.get_scan(int(scan_number)).get_arrays()
            bin_traces[:, i] = bin_max_intensities(
                mz_values, intensities, start_mz, self.params.bin_size, n_bins
            )
            advance(progress)
        return bin_quantile_thresholds(bin_traces, quantile)

    def _keep(self, builder: PeakBuilder) -> bool:
        return (builder.duration >= self.params.min_peak_duration
                and builder.height >= self.params.min_peak_height)

    def detect(
        self,
        data_file: RawDataFile,
        token: Optional[CancellationToken] = None,
        progress: Optional[ProgressTracker] = None,
    ) -> list[Peak]:
        """Detect peaks in all MS1 scans of ``data_file``.

        Parameters
        ----------
        data_file : RawDataFile
            Run to process
        token : CancellationToken, optional
            Polled once per scan in both passes
        progress : ProgressTracker, optional
            Advanced once per scan in each pass (2 x scans in total)

        Returns
        -------
        peaks : list[Peak]
            Finalized peaks in the order they stopped growing
        """
        p = self.params
        scan_numbers = data_file.get_scan_numbers(ms_level=1)
        if progress is not None:
            progress.start(2 * len(scan_numbers))

        if len(scan_numbers) == 0:
            logger.warning(f"{data_file}: no MS1 scans for centroid peak detection")
            warnings.warn(f"{data_file} has no MS1 scans", EmptyInputWarning)
            return []

        start_mz, end_mz = data_file.get_data_mz_range(ms_level=1)
        n_bins = max(1, int(np.ceil((end_mz - start_mz) / p.bin_size)))
        logger.info(
            f"Centroid peak detection on {data_file}: {len(scan_numbers):,} scans, "
            f"{n_bins:,} m/z bins"
        )

        thresholds = self.chromatographic_thresholds(
            data_file, scan_numbers, start_mz, n_bins, token, progress
        )

        peaks: list[Peak] = []
        growing: list[PeakBuilder] = []

        for scan_number in scan_numbers:
            check_cancelled(token)
            scan = data_file.get_scan(int(scan_number))
            mz_values, intensities = scan.get_arrays()

            above_noise = intensities >= p.noise_level
            bins = bin_indices(mz_values, start_mz, p.bin_size, n_bins)
            above_floor = intensities >= thresholds[bins]
            candidates = above_noise & above_floor
            cand_mzs = mz_values[candidates]
            cand_intensities = intensities[candidates]

            matcher = ScoreMatcher(growing, range(len(cand_mzs)))
            if growing and len(cand_mzs):
                peak_idx, cand_idx, scores = centroid_match_scores(
                    np.array([b.last_mz for b in growing], dtype=np.float64),
                    np.array([b.last_intensity for b in growing], dtype=np.float64),
                    cand_mzs, cand_intensities,
                    p.mz_tolerance, p.intensity_tolerance,
                )
                matcher.add_scores(peak_idx, cand_idx, scores)
            result = matcher.match()

            for builder, k in result.pairs:
                builder.add_datapoint(
                    int(scan_number), float(cand_mzs[k]),
                    scan.retention_time, float(cand_intensities[k]),
                )
                builder.growing = True

            still_growing = []
            for builder in growing:
                if builder.growing:
                    builder.growing = False
                    still_growing.append(builder)
                elif self._keep(builder):
                    peaks.append(builder.finalize(PeakStatus.DETECTED))

            for k in result.unmatched_right:
                builder = PeakBuilder(data_file)
                builder.add_datapoint(
                    int(scan_number), float(cand_mzs[k]),
                    scan.retention_time, float(cand_intensities[k]),
                )
                still_growing.append(builder)

            growing = still_growing
            advance(progress)

        for builder in growing:
            if self._keep(builder):
                peaks.append(builder.finalize(PeakStatus.DETECTED))

        logger.info(f"✓ Detected {len(peaks):,} centroid peaks in {data_file}")
        return peaks
