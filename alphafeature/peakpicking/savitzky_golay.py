"""Peak detection in chromatograms by Savitzky-Golay second derivative.

Each chromatogram is converted into an evenly sampled intensity trace over
every scan of its run (0 where it has no point), differentiated twice with a quadratic Savitzky-Golay filter,
and scanned for the sign pattern of a chromatographic peak:

    leading edge (d > 0)  ->  body (d < 0)  ->  tail (d > 0)  ->  baseline

A region starts when the derivative rises above the noise threshold (a
quantile of ``|d|``). It becomes a confirmed peak once the body exceeds the
threshold, and ends when the tail has exceeded and then fallen back below
the threshold. If a new body starts while still in the tail, the trace holds
overlapping peaks: the region is split at the lowest-intensity sample of the
tail, and the part after the valley seeds the next region. A scan without a
chromatogram point ends the current region.

Chromatograms whose mean intensity over the run exceeds half their maximum
are treated as background and produce no peaks.
"""

import logging
from typing import Optional, Sequence

import numpy as np
from numba import njit

from ..config import SavitzkyGolayParams
from ..constants import BACKGROUND_MEAN_RATIO, SG_MAX_HALF_WINDOW
from ..data.peak import Peak, PeakStatus
from ..numeric import SG_SECOND_DERIVATIVE_TABLE, calc_quantile, sg_second_derivative
from ..task import CancellationToken, ProgressTracker, advance, check_cancelled
from ..xic.chromatogram import Chromatogram
from .filling import get_peak_filling_model

logger = logging.getLogger(__name__)

_IDLE, _LEADING, _BODY, _TAIL = 0, 1, 2, 3


@njit
def find_peak_regions(
    derivative: np.ndarray,
    intensities: np.ndarray,
    present: np.ndarray,
    threshold: float
) -> tuple:
    """Find peak regions in a second derivative trace.

    Parameters
    ----------
    derivative : np.ndarray
        Smoothed second derivative
    intensities : np.ndarray
        Intensity trace (used to locate valleys between overlapping peaks)
    present : np.ndarray
        False where the chromatogram has no point (gap)
    threshold : float
        Noise threshold on ``|derivative|``

    Returns
    -------
    starts, ends, apexes : np.ndarray
        Half-open index ranges of the regions and, per region, the index
        of the most negative derivative in its body
    """
    n = len(derivative)
    starts = np.empty(n, dtype=np.int64)
    ends = np.empty(n, dtype=np.int64)
    apexes = np.empty(n, dtype=np.int64)
    count = 0

    state = _IDLE
    start = 0
    overlap_start = 0
    apex = 0
    apex_value = 0.0
    body_passed = False
    tail_passed = False

    for k in range(n):
        d = derivative[k]

        if not present[k]:
            if state == _TAIL or (state == _BODY and body_passed):
                starts[count] = start
                ends[count] = k
                apexes[count] = apex
                count += 1
            state = _IDLE
            continue

        if state == _IDLE:
            if d > threshold:
                state = _LEADING
                start = k
            continue

        prev = derivative[k - 1]

        if state == _LEADING:
            if prev >= 0.0 and d < 0.0:
                state = _BODY
                body_passed = -d > threshold
                apex = k
                apex_value = d

        elif state == _BODY:
            if d < apex_value:
                apex = k
                apex_value = d
            if -d > threshold:
                body_passed = True
            if prev < 0.0 and d >= 0.0:
                if body_passed:
                    state = _TAIL
                    overlap_start = k
                    tail_passed = d > threshold
                else:
                    state = _IDLE

        elif state == _TAIL:
            if d > threshold:
                tail_passed = True
            if prev >= 0.0 and d < 0.0:
                # next body starts before the tail decayed: split at the valley
                valley = overlap_start
                for i in range(overlap_start, k + 1):
                    if intensities[i] < intensities[valley]:
                        valley = i
                if valley > start:
                    starts[count] = start
                    ends[count] = valley
                    apexes[count] = apex
                    count += 1
                start = valley
                state = _BODY
                body_passed = -d > threshold
                apex = k
                apex_value = d
            elif tail_passed and abs(d) <= threshold:
                starts[count] = start
                ends[count] = k + 1
                apexes[count] = apex
                count += 1
                state = _IDLE

    if state == _TAIL or (state == _BODY and body_passed):
        starts[count] = start
        ends[count] = n
        apexes[count] = apex
        count += 1

    return starts[:count], ends[:count], apexes[:count]


class SavitzkyGolayPeakDetector:
    """Split chromatograms into peaks by second derivative analysis.

    Examples
    --------
    >>> detector = SavitzkyGolayPeakDetector(SavitzkyGolayParams(min_peak_height=1e4))
    >>> peaks = detector.detect(chromatogram)
    """

    def __init__(self, params: Optional[SavitzkyGolayParams] = None):
        self.params = params if params is not None else SavitzkyGolayParams()
        self.params.validate()
        self._filling_model = (
            get_peak_filling_model(self.params.filling_model)
            if self.params.filling_enabled else None
        )

    def detect(self, chromatogram: Chromatogram) -> list[Peak]:
        """Detect the peaks of one chromatogram.

        Parameters
        ----------
        chromatogram : Chromatogram
            Finished chromatogram

        Returns
        -------
        peaks : list[Peak]
            Peaks in retention time order, DETECTED or (with filling)
            ESTIMATED
        """
        points = chromatogram.points
        if not points:
            return []

        # trace over every scan of the run, 0 where the chromatogram has no point
        trace = chromatogram.intensity_trace()
        max_intensity = trace.max()
        if max_intensity <= 0 or trace.mean() > BACKGROUND_MEAN_RATIO * max_intensity:
            return []

        mzs = np.zeros(len(trace), dtype=np.float64)
        present = np.zeros(len(trace), dtype=np.bool_)
        for pt in points:
            if pt.intensity > 0:
                mzs[pt.index] = pt.mz
                present[pt.index] = True
        scan_numbers = chromatogram.grid.scan_numbers
        rts = chromatogram.grid.rts

        derivative = sg_second_derivative(trace, SG_SECOND_DERIVATIVE_TABLE, SG_MAX_HALF_WINDOW)
        threshold = calc_quantile(np.abs(derivative), self.params.derivative_threshold_quantile)
        starts, ends, apexes = find_peak_regions(derivative, trace, present, threshold)

        peaks = []
        for start, end, apex in zip(starts, ends, apexes):
            region = np.arange(start, end)
            region = region[present[region]]
            if len(region) == 0:
                continue

            peak = Peak(
                chromatogram.data_file,
                scan_numbers[region],
                mzs[region],
                rts[region],
                trace[region],
                PeakStatus.DETECTED,
            )
            if peak.height < self.params.min_peak_height:
                continue
            if peak.duration < self.params.min_peak_duration:
                continue

            if self._filling_model is not None:
                apex_position = int(np.argmin(np.abs(region - apex)))
                peak = self._filling_model(peak, apex=apex_position)
            peaks.append(peak)

        return peaks

    def detect_all(
        self,
        chromatograms: Sequence[Chromatogram],
        token: Optional[CancellationToken] = None,
        progress: Optional[ProgressTracker] = None,
    ) -> list[Peak]:
        """Detect peaks in every chromatogram, in chromatogram order."""
        if progress is not None:
            progress.start(len(chromatograms))

        peaks = []
        for chromatogram in chromatograms:
            check_cancelled(token)
            peaks.extend(self.detect(chromatogram))
            advance(progress)

        logger.info(
            f"✓ Detected {len(peaks):,} peaks in {len(chromatograms):,} chromatograms"
        )
        return peaks
