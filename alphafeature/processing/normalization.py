"""Linear normalization of peak intensities per raw data file.

Each raw data file gets one normalization factor ``f`` (average, average
squared or maximum peak height/area, or the summed TIC of its MS1 scans).
Peak heights and areas are divided by ``f`` and the whole table is then
rescaled so that the largest normalized height equals
``NORMALIZATION_CEILING``:

    normalized = value / f * (CEILING / max(height / f))

All peaks of one file are therefore scaled by the same factor.
"""

import logging
from dataclasses import replace
from typing import Optional

import numpy as np

from ..config import LinearNormalizerParams, NormalizationType, PeakMeasurementType
from ..constants import NORMALIZATION_CEILING
from ..data.peaklist import PeakList, PeakListRow
from ..data.scan import RawDataFile
from ..task import CancellationToken, ProgressTracker, advance, check_cancelled

logger = logging.getLogger(__name__)


class LinearNormalizer:
    """Rescale peak heights and areas by one factor per raw data file."""

    def __init__(self, params: Optional[LinearNormalizerParams] = None):
        self.params = params if params is not None else LinearNormalizerParams()
        self.params.validate()

    def normalization_factor(self, peak_list: PeakList, data_file: RawDataFile) -> float:
        """Factor of one file; 1.0 (with a warning) if it would be zero.

        Parameters
        ----------
        peak_list : PeakList
            Table the peaks are taken from
        data_file : RawDataFile
            File to compute the factor for

        Returns
        -------
        factor : float
            Positive normalization factor
        """
        p = self.params
        if p.normalization_type == NormalizationType.TOTAL_RAW_SIGNAL:
            factor = sum(scan.tic for scan in data_file.iter_scans(ms_level=1))
        else:
            attribute = "height" if p.peak_measurement_type == PeakMeasurementType.HEIGHT else "area"
            values = np.array(
                [getattr(peak, attribute) for peak in peak_list.get_peaks(data_file)],
                dtype=np.float64,
            )
            if len(values) == 0:
                factor = 0.0
            elif p.normalization_type == NormalizationType.AVERAGE_INTENSITY:
                factor = float(np.mean(values))
            elif p.normalization_type == NormalizationType.AVERAGE_SQUARED_INTENSITY:
                factor = float(np.mean(values ** 2))
            else:
                factor = float(np.max(values))

        if not factor > 0:
            logger.warning(
                f"Normalization factor of {data_file} is {factor}, using 1.0"
            )
            return 1.0
        return float(factor)

    def normalize(
        self,
        peak_list: PeakList,
        token: Optional[CancellationToken] = None,
        progress: Optional[ProgressTracker] = None,
    ) -> PeakList:
        """Return a normalized copy ``"<name> <suffix>"`` of ``peak_list``.

        Rows keep their ID, comment and identities; peaks are new objects.
        Progress advances once per raw data file.
        """
        data_files = peak_list.data_files
        if progress is not None:
            progress.start(len(data_files))

        factors = {}
        for data_file in data_files:
            check_cancelled(token)
            factors[data_file] = self.normalization_factor(peak_list, data_file)

        max_normalized_height = max(
            (peak.height / factors[data_file]
             for data_file in data_files
             for peak in peak_list.get_peaks(data_file)),
            default=0.0,
        )
        scale = NORMALIZATION_CEILING / max_normalized_height if max_normalized_height > 0 else 1.0

        new_rows = {}
        for row in peak_list:
            new_row = PeakListRow(row.row_id, row.comment)
            for identity in row.identities:
                new_row.add_identity(identity)
            new_row.preferred_identity = row.preferred_identity
            new_rows[id(row)] = new_row

        for data_file in data_files:
            check_cancelled(token)
            multiplier = scale / factors[data_file]
            for row in peak_list:
                peak = row.get_peak(data_file)
                if peak is not None:
                    new_rows[id(row)].add_peak(
                        data_file, replace(peak, intensities=peak.intensities * multiplier)
                    )
            advance(progress)

        normalized = PeakList(
            f"{peak_list.name} {self.params.suffix}",
            data_files,
            [new_rows[id(row)] for row in peak_list],
        )
        logger.info(
            f"✓ Normalized {peak_list.name} ({self.params.normalization_type.value}, "
            f"{len(data_files)} files)"
        )
        return normalized
