"""Join alignment: merge per-run peak lists into one feature table.

Peak lists are processed one after the other. For every row of the current
list, already-aligned rows inside its m/z and RT window are scored

    score = mz_weight * |dmz| / mz_tol
          + rt_weight * |drt| / rt_tol
          + identity_weight * (0 if an identity name is shared else 1)

and the best pairs are committed with greedy exclusive matching. Rows
without a partner start new aligned rows. Every raw data file may appear in
only one input list.

Examples
--------
>>> aligner = JoinAligner(JoinAlignerParams(mz_tolerance=0.01, rt_tolerance=0.5))
>>> aligned = aligner.align([peak_list_a, peak_list_b])
>>> len(aligned.data_files)
2
"""

import logging
import warnings
from typing import Optional, Sequence

from ..config import JoinAlignerParams, RTToleranceType
from ..data.identity import share_identity
from ..data.peaklist import PeakList, PeakListRow
from ..exceptions import ConfigurationError, EmptyInputWarning
from ..matching import ScoreMatcher
from ..task import CancellationToken, ProgressTracker, advance, check_cancelled

logger = logging.getLogger(__name__)


def _scaled(distance: float, tolerance: float) -> float:
    return distance / tolerance if tolerance > 0 else 0.0


def identities_compatible(row: PeakListRow, candidate: PeakListRow) -> bool:
    """Rows are compatible unless both carry identities and share no name."""
    if not row.identities or not candidate.identities:
        return True
    return share_identity(row.identities, candidate.identities)


class JoinAligner:
    """Score-based greedy aligner of peak lists from different runs."""

    def __init__(self, params: Optional[JoinAlignerParams] = None):
        self.params = params if params is not None else JoinAlignerParams()
        self.params.validate()

    def rt_tolerance_for(self, rt: float) -> float:
        """Absolute RT tolerance around a row at retention time ``rt``."""
        if self.params.rt_tolerance_type == RTToleranceType.PERCENT:
            return abs(rt) * self.params.rt_tolerance
        return self.params.rt_tolerance

    def row_score(
        self,
        row: PeakListRow,
        candidate: PeakListRow,
        rt_tolerance: float,
    ) -> float:
        """Weighted distance of ``row`` to an aligned ``candidate`` (lower is better)."""
        p = self.params
        mz_term = _scaled(abs(row.average_mz - candidate.average_mz), p.mz_tolerance)
        rt_term = _scaled(abs(row.average_rt - candidate.average_rt), rt_tolerance)
        identity_term = 0.0 if share_identity(row.identities, candidate.identities) else 1.0
        return p.mz_weight * mz_term + p.rt_weight * rt_term + p.identity_weight * identity_term

    def _check_data_files(self, peak_lists: Sequence[PeakList]) -> list:
        all_files = []
        for peak_list in peak_lists:
            for data_file in peak_list.data_files:
                if data_file in all_files:
                    raise ConfigurationError(
                        f"Cannot run alignment, because file {data_file} "
                        f"is present in multiple peak lists"
                    )
                all_files.append(data_file)
        return all_files

    def align(
        self,
        peak_lists: Sequence[PeakList],
        token: Optional[CancellationToken] = None,
        progress: Optional[ProgressTracker] = None,
    ) -> PeakList:
        """Align ``peak_lists`` into a new peak list.

        Parameters
        ----------
        peak_lists : Sequence[PeakList]
            Input lists; no raw data file may occur in two of them
        token : CancellationToken, optional
            Polled once per row
        progress : ProgressTracker, optional
            Advanced twice per row (scoring and merging)

        Returns
        -------
        aligned : PeakList
            New list spanning the files of all inputs, row IDs from 1

        Raises
        ------
        ConfigurationError
            If a raw data file is present in more than one input list
        """
        p = self.params
        all_files = self._check_data_files(peak_lists)
        if progress is not None:
            progress.start(2 * sum(len(pl) for pl in peak_lists))

        aligned = PeakList(p.name, all_files)
        if not any(len(pl) for pl in peak_lists):
            logger.warning("No rows to align")
            warnings.warn("Join alignment received no rows", EmptyInputWarning)
            return aligned

        logger.info(
            f"Aligning {len(peak_lists)} peak lists "
            f"(m/z tolerance {p.mz_tolerance}, RT tolerance {p.rt_tolerance} "
            f"{p.rt_tolerance_type.value})"
        )

        aligned_rows: list[PeakListRow] = []
        next_row_id = 1

        for peak_list in peak_lists:
            rows = peak_list.rows
            targets = list(aligned_rows)
            target_index = {id(row): j for j, row in enumerate(targets)}
            matcher = ScoreMatcher(rows, targets)

            for i, row in enumerate(rows):
                check_cancelled(token)
                mz, rt = row.average_mz, row.average_rt
                rt_tolerance = self.rt_tolerance_for(rt)
                candidates = aligned.get_rows_inside(
                    (rt - rt_tolerance, rt + rt_tolerance),
                    (mz - p.mz_tolerance, mz + p.mz_tolerance),
                )
                for candidate in candidates:
                    if p.require_same_identity and not identities_compatible(row, candidate):
                        continue
                    matcher.add_score(
                        i, target_index[id(candidate)],
                        self.row_score(row, candidate, rt_tolerance),
                    )
                advance(progress)

            mapping = {id(source): target for source, target in matcher.match().pairs}

            for row in rows:
                check_cancelled(token)
                target = mapping.get(id(row))
                if target is None:
                    target = PeakListRow(next_row_id)
                    next_row_id += 1
                    aligned.add_row(target)
                    aligned_rows.append(target)

                for data_file in row.raw_data_files:
                    target.add_peak(data_file, row.get_peak(data_file))
                for identity in row.identities:
                    target.add_identity(identity)
                # last merged row wins
                target.preferred_identity = row.preferred_identity
                advance(progress)

        logger.info(
            f"✓ Aligned {sum(len(pl) for pl in peak_lists):,} rows "
            f"into {len(aligned):,} rows"
        )
        return aligned
