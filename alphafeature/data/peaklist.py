"""Feature tables: peak list rows and peak lists.

A :class:`PeakListRow` is one chemical feature holding at most one peak per
raw data file; a :class:`PeakList` is an ordered table of rows over a fixed
set of raw data files.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Optional, Sequence

import numpy as np

from .identity import CompoundIdentity, identity_names
from .peak import Peak
from .scan import RawDataFile


class PeakListRow:
    """One feature, potentially represented by one peak per raw data file.

    Averages (m/z, RT, height, area) are taken over the peaks the row holds
    and are 0.0 for an empty row. They are cached until the next
    :meth:`add_peak`.
    """

    def __init__(self, row_id: int, comment: str = ""):
        self.row_id = row_id
        self.comment = comment
        self.preferred_identity: Optional[CompoundIdentity] = None
        self._peaks: dict[RawDataFile, Peak] = {}
        self._identities: list[CompoundIdentity] = []
        self._averages: dict[str, float] = {}

    def __repr__(self):
        return (
            f"PeakListRow(#{self.row_id}, mz={self.average_mz:.4f}, "
            f"rt={self.average_rt:.3f}, n_peaks={len(self._peaks)})"
        )

    # -- peaks -------------------------------------------------------------

    def add_peak(self, data_file: RawDataFile, peak: Peak) -> None:
        """Set the peak of ``data_file``, replacing any previous one."""
        self._peaks[data_file] = peak
        self._averages.clear()

    def get_peak(self, data_file: RawDataFile) -> Optional[Peak]:
        return self._peaks.get(data_file)

    def has_peak(self, data_file: RawDataFile) -> bool:
        return data_file in self._peaks

    @property
    def peaks(self) -> list[Peak]:
        return list(self._peaks.values())

    @property
    def raw_data_files(self) -> list[RawDataFile]:
        return list(self._peaks)

    def _average(self, attribute: str) -> float:
        if not self._peaks:
            return 0.0
        if attribute not in self._averages:
            self._averages[attribute] = float(
                np.mean([getattr(p, attribute) for p in self._peaks.values()])
            )
        return self._averages[attribute]

    @property
    def average_mz(self) -> float:
        return self._average("mz")

    @property
    def average_rt(self) -> float:
        return self._average("rt")

    @property
    def average_height(self) -> float:
        return self._average("height")

    @property
    def average_area(self) -> float:
        return self._average("area")

    # -- identities --------------------------------------------------------

    @property
    def identities(self) -> tuple[CompoundIdentity, ...]:
        return tuple(self._identities)

    def add_identity(self, identity: CompoundIdentity, preferred: bool = False) -> bool:
        """Add an identity unless one with the same name is present.

        Returns
        -------
        added : bool
            False if an identity with that name was already attached
        """
        added = identity.name not in identity_names(self._identities)
        if added:
            self._identities.append(identity)
        if preferred:
            self.preferred_identity = identity
        return added

    def remove_identity(self, identity: CompoundIdentity) -> None:
        self._identities = [i for i in self._identities if i.name != identity.name]
        if self.preferred_identity is not None and self.preferred_identity.name == identity.name:
            self.preferred_identity = None


class PeakList:
    """Ordered table of feature rows spanning a set of raw data files.

    Parameters
    ----------
    name : str
        Display name of the list
    data_files : Sequence[RawDataFile]
        Raw data files the rows may hold peaks for
    rows : Iterable[PeakListRow], optional
        Initial rows
    """

    def __init__(
        self,
        name: str,
        data_files: Sequence[RawDataFile],
        rows: Iterable[PeakListRow] = (),
    ):
        self.name = name
        self._data_files = list(dict.fromkeys(data_files))
        self._rows: list[PeakListRow] = []
        for row in rows:
            self.add_row(row)

    def __repr__(self):
        return self.name

    def __len__(self):
        return len(self._rows)

    def __iter__(self) -> Iterator[PeakListRow]:
        return iter(self._rows)

    @property
    def data_files(self) -> list[RawDataFile]:
        return list(self._data_files)

    @property
    def rows(self) -> list[PeakListRow]:
        return list(self._rows)

    def has_data_file(self, data_file: RawDataFile) -> bool:
        return data_file in self._data_files

    def add_row(self, row: PeakListRow) -> None:
        """Append a row; every peak it holds must belong to one of the list's files."""
        for data_file in row.raw_data_files:
            if data_file not in self._data_files:
                raise ValueError(
                    f"Row {row.row_id} holds a peak for {data_file}, "
                    f"which is not part of peak list {self.name}"
                )
        self._rows.append(row)

    def get_row(self, index: int) -> PeakListRow:
        return self._rows[index]

    def get_peaks(self, data_file: RawDataFile) -> list[Peak]:
        """All peaks of one raw data file, in row order."""
        return [row.get_peak(data_file) for row in self._rows if row.has_peak(data_file)]

    def get_rows_inside(
        self,
        rt_range: tuple[float, float],
        mz_range: tuple[float, float],
    ) -> list[PeakListRow]:
        """Rows whose average RT and m/z fall inside both closed ranges."""
        rt_min, rt_max = rt_range
        mz_min, mz_max = mz_range
        return [
            row for row in self._rows
            if rt_min <= row.average_rt <= rt_max and mz_min <= row.average_mz <= mz_max
        ]

    def to_dataframe(self):
        """Export the table as a pandas DataFrame.

        Returns
        -------
        df : pd.DataFrame
            One line per row with columns ``row_id``, ``mz``, ``rt``,
            ``identity``, ``comment`` and, for every raw data file,
            ``height_<file>`` and ``area_<file>`` (NaN where the row has no
            peak for that file)
        """
        import pandas as pd

        records = []
        for row in self._rows:
            record = {
                "row_id": row.row_id,
                "mz": row.average_mz,
                "rt": row.average_rt,
                "identity": row.preferred_identity.name if row.preferred_identity else "",
                "comment": row.comment,
            }
            for data_file in self._data_files:
                peak = row.get_peak(data_file)
                record[f"height_{data_file.name}"] = peak.height if peak else np.nan
                record[f"area_{data_file.name}"] = peak.area if peak else np.nan
            records.append(record)

        columns = ["row_id", "mz", "rt", "identity", "comment"]
        for data_file in self._data_files:
            columns += [f"height_{data_file.name}", f"area_{data_file.name}"]
        return pd.DataFrame.from_records(records, columns=columns)
