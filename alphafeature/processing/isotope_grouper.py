"""Isotope pattern grouping (deisotoping) of single-file peak lists.

Rows are visited by descending height. Each unassigned row is treated as a
monoisotopic candidate M0; for every charge state z the grouper follows the
13C ladder M0 + k * 1.0033548 / z (k = 1, 2, ...) through co-eluting rows
within m/z and RT tolerance. The charge explaining the most isotope rows
wins (ties go to the lower charge), its isotope rows are removed from the
list and the charge is recorded in the retained row's comment.

Uses binary search on the m/z-sorted rows for O(log n) candidate lookup.
"""

import logging
from typing import Optional

import numpy as np
from numba import njit

from ..config import IsotopeGrouperParams
from ..constants import C13_MASS_DIFF
from ..data.peaklist import PeakList, PeakListRow
from ..exceptions import ConfigurationError
from ..task import CancellationToken, ProgressTracker, advance, check_cancelled

logger = logging.getLogger(__name__)


@njit
def find_isotope_candidate(
    expected_mz: float,
    reference_rt: float,
    max_height: float,
    all_mz: np.ndarray,
    all_rt: np.ndarray,
    all_height: np.ndarray,
    available: np.ndarray,
    mz_tol: float,
    rt_tol: float,
    monotonic: bool
) -> int:
    """Find the best available isotope row near ``expected_mz``.

    Args:
        expected_mz: m/z where the isotope is expected
        reference_rt: RT of the previous isotope
        max_height: Upper height limit when ``monotonic`` is set
        all_mz: Row m/z values (MUST BE SORTED)
        all_rt: Row RT values
        all_height: Row heights
        available: False for rows already assigned to a pattern
        mz_tol: Absolute m/z tolerance
        rt_tol: Absolute RT tolerance
        monotonic: Require heights to decrease along the pattern

    Returns:
        Index of the candidate with the smallest m/z error, -1 if none
    """
    n_rows = len(all_mz)
    mz_min = expected_mz - mz_tol
    mz_max = expected_mz + mz_tol

    left = 0
    right = n_rows
    while left < right:
        mid = (left + right) // 2
        if all_mz[mid] < mz_min:
            left = mid + 1
        else:
            right = mid
    start_idx = left

    best_idx = -1
    best_error = np.inf
    for i in range(start_idx, n_rows):
        if all_mz[i] > mz_max:
            break
        if not available[i]:
            continue
        if abs(all_rt[i] - reference_rt) > rt_tol:
            continue
        if monotonic and all_height[i] > max_height:
            continue
        error = abs(all_mz[i] - expected_mz)
        if error < best_error:
            best_idx = i
            best_error = error

    return best_idx


@njit
def follow_isotope_ladder(
    m0_idx: int,
    charge: int,
    all_mz: np.ndarray,
    all_rt: np.ndarray,
    all_height: np.ndarray,
    available: np.ndarray,
    mz_tol: float,
    rt_tol: float,
    monotonic: bool
) -> np.ndarray:
    """Indices of the isotope rows M1, M2, ... of ``m0_idx`` for one charge."""
    spacing = C13_MASS_DIFF / charge
    found = np.empty(len(all_mz), dtype=np.int64)
    n_found = 0
    previous = m0_idx

    taken = available.copy()
    taken[m0_idx] = False
    while True:
        idx = find_isotope_candidate(
            all_mz[previous] + spacing, all_rt[previous], all_height[previous],
            all_mz, all_rt, all_height, taken, mz_tol, rt_tol, monotonic
        )
        if idx < 0:
            break
        found[n_found] = idx
        n_found += 1
        taken[idx] = False
        previous = idx

    return found[:n_found]


class IsotopeGrouper:
    """Collapse 13C isotope patterns onto their monoisotopic row."""

    def __init__(self, params: Optional[IsotopeGrouperParams] = None):
        self.params = params if params is not None else IsotopeGrouperParams()
        self.params.validate()

    def group(
        self,
        peak_list: PeakList,
        token: Optional[CancellationToken] = None,
        progress: Optional[ProgressTracker] = None,
    ) -> PeakList:
        """Return a deisotoped copy ``"<name> <suffix>"`` of ``peak_list``.

        Raises
        ------
        ConfigurationError
            If the list contains more than one raw data file
        """
        p = self.params
        if len(peak_list.data_files) > 1:
            raise ConfigurationError(
                f"Peak list {peak_list.name} cannot be deisotoped, "
                f"because it contains more than one data file"
            )

        rows = peak_list.rows
        if progress is not None:
            progress.start(len(rows))

        mz = np.array([r.average_mz for r in rows], dtype=np.float64)
        order = np.argsort(mz, kind="stable")
        mz_sorted = mz[order]
        rt_sorted = np.array([rows[i].average_rt for i in order], dtype=np.float64)
        height_sorted = np.array([rows[i].average_height for i in order], dtype=np.float64)
        available = np.ones(len(rows), dtype=np.bool_)
        position = np.empty(len(rows), dtype=np.int64)
        position[order] = np.arange(len(rows))

        charges = {}
        isotope_rows = set()
        by_height = sorted(range(len(rows)), key=lambda i: rows[i].average_height, reverse=True)
        for row_idx in by_height:
            check_cancelled(token)
            advance(progress)
            m0 = position[row_idx]
            if not available[m0]:
                continue

            best_charge = 0
            best_isotopes = np.empty(0, dtype=np.int64)
            for charge in range(1, p.max_charge + 1):
                isotopes = follow_isotope_ladder(
                    m0, charge, mz_sorted, rt_sorted, height_sorted, available,
                    p.mz_tolerance, p.rt_tolerance, p.monotonic_shape,
                )
                if len(isotopes) > len(best_isotopes):
                    best_charge = charge
                    best_isotopes = isotopes

            # rows without a pattern stay claimable by lower rows
            if best_charge > 0:
                available[m0] = False
                available[best_isotopes] = False
                charges[row_idx] = best_charge
                isotope_rows.update(int(order[i]) for i in best_isotopes)

        deisotoped = PeakList(f"{peak_list.name} {p.suffix}", peak_list.data_files)
        n_removed = 0
        for row_idx, row in enumerate(rows):
            if row_idx in isotope_rows:
                n_removed += 1
                continue
            deisotoped.add_row(self._copy_row(row, charges.get(row_idx)))

        logger.info(
            f"✓ Deisotoped {peak_list.name}: removed {n_removed:,} isotope rows, "
            f"{len(charges):,} patterns found"
        )
        return deisotoped

    @staticmethod
    def _copy_row(row: PeakListRow, charge: Optional[int]) -> PeakListRow:
        comment = row.comment
        if charge is not None:
            comment = f"{comment}; charge {charge}" if comment else f"charge {charge}"
        new_row = PeakListRow(row.row_id, comment)
        for data_file in row.raw_data_files:
            new_row.add_peak(data_file, row.get_peak(data_file))
        for identity in row.identities:
            new_row.add_identity(identity)
        new_row.preferred_identity = row.preferred_identity
        return new_row
