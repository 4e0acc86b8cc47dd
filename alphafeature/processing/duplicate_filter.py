"""Removal of duplicate rows from a peak list.

Rows are visited by descending average peak area. Every later (smaller)
row that lies within the m/z and RT limits of a retained row, and passes
the optional identity check, is dropped, so each duplicate cluster keeps
its highest-area representative.
"""

import logging
from typing import Optional

from ..config import DuplicateFilterParams
from ..data.identity import share_identity
from ..data.peaklist import PeakList, PeakListRow
from ..task import CancellationToken, ProgressTracker, advance, check_cancelled

logger = logging.getLogger(__name__)


class DuplicateRowFilter:
    """Keep only the largest row of every group of near-identical rows."""

    def __init__(self, params: Optional[DuplicateFilterParams] = None):
        self.params = params if params is not None else DuplicateFilterParams()
        self.params.validate()

    def same_identity(self, first: PeakListRow, second: PeakListRow) -> bool:
        if not self.params.require_same_identity:
            return True
        if not first.identities and not second.identities:
            return True
        return share_identity(first.identities, second.identities)

    def is_duplicate(self, first: PeakListRow, second: PeakListRow) -> bool:
        p = self.params
        return (
            abs(first.average_mz - second.average_mz) < p.mz_difference_max
            and abs(first.average_rt - second.average_rt) < p.rt_difference_max
            and self.same_identity(first, second)
        )

    def filter(
        self,
        peak_list: PeakList,
        token: Optional[CancellationToken] = None,
        progress: Optional[ProgressTracker] = None,
    ) -> PeakList:
        """Return a new list ``"<name> <suffix>"`` holding the retained rows.

        Rows are shared with the input list and appear in descending area
        order.
        """
        rows: list = sorted(peak_list.rows, key=lambda r: r.average_area, reverse=True)
        if progress is not None:
            progress.start(len(rows))

        for i, first in enumerate(rows):
            check_cancelled(token)
            if first is not None:
                for j in range(i + 1, len(rows)):
                    second = rows[j]
                    if second is not None and self.is_duplicate(first, second):
                        rows[j] = None
            advance(progress)

        filtered = PeakList(
            f"{peak_list.name} {self.params.suffix}",
            peak_list.data_files,
            [row for row in rows if row is not None],
        )
        logger.info(
            f"✓ Duplicate filter on {peak_list.name}: kept {len(filtered):,} "
            f"of {len(peak_list):,} rows"
        )
        return filtered
