"""Chromatographic peak detection.

Two interchangeable detectors:

- :class:`CentroidPeakDetector` grows peaks directly from MS1 centroids
  above a per-m/z-bin noise floor
- :class:`SavitzkyGolayPeakDetector` splits finished chromatograms into
  peaks by second derivative sign analysis, optionally reshaping them with
  a named peak-filling model

Examples
--------
>>> from alphafeature.peakpicking import pick_peaks_three_step
>>> peak_list = pick_peaks_three_step(raw_file)
>>> df = peak_list.to_dataframe()
"""

from .centroid import (
    CentroidPeakDetector,
    centroid_match_scores,
    normalized_distance,
)

from .filling import (
    PEAK_FILLING_MODELS,
    fill_gaussian,
    fill_triangle,
    get_peak_filling_model,
)

from .pipeline import (
    peaks_to_peak_list,
    pick_peaks_centroid,
    pick_peaks_three_step,
)

from .savitzky_golay import (
    SavitzkyGolayPeakDetector,
    find_peak_regions,
)

__all__ = [
    # Centroid detection
    "CentroidPeakDetector",
    "centroid_match_scores",
    "normalized_distance",
    # Peak filling
    "PEAK_FILLING_MODELS",
    "fill_gaussian",
    "fill_triangle",
    "get_peak_filling_model",
    # Pipelines
    "peaks_to_peak_list",
    "pick_peaks_centroid",
    "pick_peaks_three_step",
    # Savitzky-Golay detection
    "SavitzkyGolayPeakDetector",
    "find_peak_regions",
]
