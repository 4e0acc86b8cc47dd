"""Per-file peak picking pipelines producing single-file peak lists."""

import logging
import warnings
from typing import Optional, Sequence

from ..config import CentroidPickerParams, ChromatogramBuilderParams, SavitzkyGolayParams
from ..data.peak import Peak
from ..data.peaklist import PeakList, PeakListRow
from ..data.scan import RawDataFile
from ..exceptions import EmptyInputWarning
from ..task import CancellationToken, ProgressTracker, advance, check_cancelled
from ..xic.builder import ChromatogramBuilder
from .centroid import CentroidPeakDetector
from .savitzky_golay import SavitzkyGolayPeakDetector

logger = logging.getLogger(__name__)


def peaks_to_peak_list(name: str, data_file: RawDataFile, peaks: Sequence[Peak]) -> PeakList:
    """One row per peak, row IDs from 1 in peak order."""
    peak_list = PeakList(name, [data_file])
    for row_id, peak in enumerate(peaks, start=1):
        row = PeakListRow(row_id)
        row.add_peak(data_file, peak)
        peak_list.add_row(row)
    return peak_list


def pick_peaks_centroid(
    data_file: RawDataFile,
    params: Optional[CentroidPickerParams] = None,
    suffix: str = "centroid peaks",
    token: Optional[CancellationToken] = None,
    progress: Optional[ProgressTracker] = None,
) -> PeakList:
    """Centroid growth peak picking of one run.

    Returns
    -------
    peak_list : PeakList
        Named ``"<file> <suffix>"``
    """
    peaks = CentroidPeakDetector(params).detect(data_file, token=token, progress=progress)
    return peaks_to_peak_list(f"{data_file} {suffix}", data_file, peaks)


def pick_peaks_three_step(
    data_file: RawDataFile,
    builder_params: Optional[ChromatogramBuilderParams] = None,
    detector_params: Optional[SavitzkyGolayParams] = None,
    suffix: str = "chromatogram peaks",
    token: Optional[CancellationToken] = None,
    progress: Optional[ProgressTracker] = None,
) -> PeakList:
    """Chromatogram building followed by Savitzky-Golay peak detection.

    Progress counts two units per scan: one while building chromatograms,
    one spread evenly over the chromatograms during detection.
    """
    builder = ChromatogramBuilder(builder_params)
    detector = SavitzkyGolayPeakDetector(detector_params)

    scans = list(data_file.iter_scans(builder.params.ms_level))
    n_scans = len(scans)
    if progress is not None:
        progress.start(2 * n_scans)
    if n_scans == 0:
        logger.warning(f"{data_file}: no MS{builder.params.ms_level} scans for peak picking")
        warnings.warn(f"{data_file} has no scans", EmptyInputWarning)
        return PeakList(f"{data_file} {suffix}", [data_file])

    chromatograms = builder.build(
        data_file, scans, token=token, on_scan=lambda: advance(progress)
    )

    peaks = []
    done = 0
    for i, chromatogram in enumerate(chromatograms, start=1):
        check_cancelled(token)
        peaks.extend(detector.detect(chromatogram))
        target = (i * n_scans) // len(chromatograms)
        advance(progress, target - done)
        done = target
    advance(progress, n_scans - done)

    peak_list = peaks_to_peak_list(f"{data_file} {suffix}", data_file, peaks)
    logger.info(
        f"✓ Picked {len(peak_list):,} peaks from {len(chromatograms):,} "
        f"chromatograms in {data_file}"
    )
    return peak_list
