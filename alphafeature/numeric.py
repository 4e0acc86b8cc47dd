"""Numba kernels shared by chromatogram building and peak detection.

High-performance implementations of:
- Interpolated quantile used for all noise thresholds
- Per-scan m/z binning (max intensity per bin)
- Savitzky-Golay second derivative with boundary-shrinking windows
- FWHM (Full Width at Half Maximum) with linear interpolation

All kernels take float64 numpy arrays and never modify their inputs.
"""

import numpy as np
from numba import njit

from .constants import SG_MAX_HALF_WINDOW


@njit
def calc_quantile(values: np.ndarray, quantile: float) -> float:
    """Quantile as the mean of the two nearest order statistics.

    Parameters
    ----------
    values : np.ndarray
        Input values (any order)
    quantile : float
        Quantile in [0, 1]

    Returns
    -------
    value : float
        ``(v[floor((n-1)q)] + v[ceil((n-1)q)]) / 2`` of the sorted values,
        0.0 for an empty array

    Examples
    --------
    >>> calc_quantile(np.array([4.0, 1.0, 3.0, 2.0]), 0.5)
    2.5
    """
    n = len(values)
    if n == 0:
        return 0.0

    sorted_values = np.sort(values)
    position = (n - 1) * quantile
    ind1 = int(np.floor(position))
    ind2 = int(np.ceil(position))
    return (sorted_values[ind1] + sorted_values[ind2]) / 2.0


@njit
def mz_to_bin(mz: float, start_mz: float, bin_size: float, n_bins: int) -> int:
    """Bin index of an m/z value, clamped to ``[0, n_bins - 1]``."""
    idx = int(np.floor((mz - start_mz) / bin_size))
    if idx < 0:
        return 0
    if idx >= n_bins:
        return n_bins - 1
    return idx


@njit
def bin_indices(
    mz_values: np.ndarray,
    start_mz: float,
    bin_size: float,
    n_bins: int
) -> np.ndarray:
    """Clamped bin index of every m/z value."""
    result = np.empty(len(mz_values), dtype=np.int64)
    for i in range(len(mz_values)):
        result[i] = mz_to_bin(mz_values[i], start_mz, bin_size, n_bins)
    return result


@njit
def bin_max_intensities(
    mz_values: np.ndarray,
    intensities: np.ndarray,
    start_mz: float,
    bin_size: float,
    n_bins: int
) -> np.ndarray:
    """Maximum intensity per m/z bin for one scan.

    Bins without data points are 0.
    """
    result = np.zeros(n_bins, dtype=np.float64)
    for i in range(len(mz_values)):
        idx = mz_to_bin(mz_values[i], start_mz, bin_size, n_bins)
        if intensities[i] > result[idx]:
            result[idx] = intensities[i]
    return result


@njit
def bin_quantile_thresholds(bin_traces: np.ndarray, quantile: float) -> np.ndarray:
    """Per-bin quantile over a (n_bins, n_scans) matrix of bin maxima."""
    n_bins = bin_traces.shape[0]
    thresholds = np.zeros(n_bins, dtype=np.float64)
    if quantile <= 0.0:
        return thresholds
    for b in range(n_bins):
        thresholds[b] = calc_quantile(bin_traces[b], quantile)
    return thresholds


def build_sg_second_derivative_table(max_half_window: int = SG_MAX_HALF_WINDOW) -> np.ndarray:
    """Quadratic Savitzky-Golay coefficients for every half-window size.

    Row ``m`` holds the weights of samples at offsets ``0..m`` from the
    centre for a window of ``2m + 1`` points (weights are symmetric). The
    weights give the quadratic term of the least-squares parabola, i.e.
    half of the second derivative. Row 0 is all zero.

    Returns
    -------
    table : np.ndarray
        Shape ``(max_half_window + 1, max_half_window + 1)``

    Examples
    --------
    >>> table = build_sg_second_derivative_table()
    >>> table[1, :2]
    array([-1. ,  0.5])
    """
    table = np.zeros((max_half_window + 1, max_half_window + 1), dtype=np.float64)
    for m in range(1, max_half_window + 1):
        offsets = np.arange(-m, m + 1, dtype=np.float64)
        design = np.vander(offsets, 3, increasing=True)
        quadratic = np.linalg.pinv(design)[2]
        table[m, :m + 1] = quadratic[m:]
    return table


SG_SECOND_DERIVATIVE_TABLE = build_sg_second_derivative_table()


@njit
def sg_second_derivative(
    intensities: np.ndarray,
    table: np.ndarray,
    max_half_window: int
) -> np.ndarray:
    """Smoothed second derivative of an evenly sampled trace.

    The half-window shrinks symmetrically near both ends of the trace, so
    the first and last samples always get 0.
    """
    n = len(intensities)
    derivative = np.zeros(n, dtype=np.float64)
    for k in range(n):
        m = min(min(k, max_half_window), n - 1 - k)
        if m <= 0:
            continue
        acc = intensities[k] * table[m, 0]
        for i in range(1, m + 1):
            acc += (intensities[k - i] + intensities[k + i]) * table[m, i]
        derivative[k] = acc
    return derivative


@njit
def _half_max_crossing(rts, intensities, apex, half_max, step):
    i = apex + step
    while i >= 0 and i < len(intensities):
        if intensities[i] <= half_max:
            inner = i - step
            rise = intensities[inner] - intensities[i]
            frac = (intensities[inner] - half_max) / rise if rise > 0 else 1.0
            return rts[inner] + frac * (rts[i] - rts[inner])
        i += step
    return np.nan


@njit
def half_max_width(rts: np.ndarray, intensities: np.ndarray, apex: int) -> float:
    """Width at half of the ``apex`` intensity, interpolated linearly.

    A peak cut off on one side is mirrored from the other. Returns -1.0 for
    fewer than 3 samples or when neither side falls to half maximum.
    """
    if len(rts) < 3:
        return -1.0
    half_max = intensities[apex] / 2.0
    left = _half_max_crossing(rts, intensities, apex, half_max, -1)
    right = _half_max_crossing(rts, intensities, apex, half_max, 1)
    if np.isnan(left) and np.isnan(right):
        return -1.0
    if np.isnan(left):
        return 2.0 * (right - rts[apex])
    if np.isnan(right):
        return 2.0 * (rts[apex] - left)
    return right - left
