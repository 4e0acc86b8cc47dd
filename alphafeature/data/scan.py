"""Mass spectra and the raw data files that own them.

A :class:`Scan` holds its data points as two m/z-sorted float64 arrays and
caches the base peak, m/z range and total ion current whenever the data
points are replaced. A :class:`RawDataFile` is the scan source consumed by
chromatogram building and peak picking: it enumerates scans ordered by scan
number (and therefore by retention time) for a given MS level.
"""

from __future__ import annotations

from typing import Iterator, NamedTuple, Optional, Sequence

import numpy as np


class DataPoint(NamedTuple):
    """One centroid: an (m/z, intensity) pair."""
    mz: float
    intensity: float


def _sorted_arrays(mz_values, intensity_values) -> tuple[np.ndarray, np.ndarray]:
    mz = np.asarray(mz_values if mz_values is not None else [], dtype=np.float64)
    intensity = np.asarray(
        intensity_values if intensity_values is not None else [], dtype=np.float64
    )
    if mz.shape != intensity.shape or mz.ndim != 1:
        raise ValueError(
            f"m/z and intensity arrays must be 1D with equal length, "
            f"got {mz.shape} and {intensity.shape}"
        )
    if len(mz) > 1 and np.any(np.diff(mz) < 0):
        order = np.argsort(mz, kind="stable")
        mz = mz[order]
        intensity = intensity[order]
    return mz, intensity


class Scan:
    """One mass spectrum.

    Parameters
    ----------
    scan_number : int
        Unique, increasing within a raw data file
    ms_level : int
        1 for survey scans, >1 for fragment scans
    retention_time : float
        Non-decreasing across a raw data file
    mz_values, intensity_values : array-like, optional
        Data points; sorted by m/z on assignment
    parent_scan_number : int
        Scan number of the precursor scan, 0 for MS1
    precursor_mz : float
        Precursor m/z for fragment scans
    precursor_charge : int
        Precursor charge, 0 if unknown
    fragment_scan_numbers : Sequence[int]
        Scan numbers of fragment scans taken from this scan
    centroided : bool
        Whether data points are centroids

    Raises
    ------
    ValueError
        If a fragment scan has no parent scan number

    Examples
    --------
    >>> scan = Scan(1, 1, 0.5, [200.0, 100.0], [10.0, 30.0])
    >>> scan.base_peak
    DataPoint(mz=100.0, intensity=30.0)
    >>> scan.mz_range, scan.tic
    ((100.0, 200.0), 40.0)
    """

    def __init__(
        self,
        scan_number: int,
        ms_level: int,
        retention_time: float,
        mz_values=None,
        intensity_values=None,
        parent_scan_number: int = 0,
        precursor_mz: float = 0.0,
        precursor_charge: int = 0,
        fragment_scan_numbers: Sequence[int] = (),
        centroided: bool = True,
    ):
        if ms_level != 1 and parent_scan_number <= 0:
            raise ValueError(
                f"Scan {scan_number}: MS{ms_level} scan requires a parent scan number"
            )

        self.scan_number = scan_number
        self.ms_level = ms_level
        self.retention_time = float(retention_time)
        self.parent_scan_number = parent_scan_number
        self.precursor_mz = float(precursor_mz)
        self.precursor_charge = precursor_charge
        self.fragment_scan_numbers = tuple(fragment_scan_numbers)
        self.centroided = centroided

        self._mz = np.empty(0, dtype=np.float64)
        self._intensity = np.empty(0, dtype=np.float64)
        self.set_data_points(mz_values, intensity_values)

    def __repr__(self):
        return (
            f"Scan(#{self.scan_number}, MS{self.ms_level}, "
            f"rt={self.retention_time:.3f}, n={self.n_data_points})"
        )

    # -- data points -------------------------------------------------------

    def _write_arrays(self, mz: np.ndarray, intensity: np.ndarray) -> None:
        self._mz = mz
        self._intensity = intensity

    def get_arrays(self) -> tuple[np.ndarray, np.ndarray]:
        """Return (m/z, intensity) arrays sorted by m/z."""
        return self._mz, self._intensity

    def set_data_points(self, mz_values, intensity_values) -> None:
        """Replace the data points and recompute the cached summary values."""
        mz, intensity = _sorted_arrays(mz_values, intensity_values)
        self._write_arrays(mz, intensity)

        self.n_data_points = len(mz)
        if len(mz) > 0:
            top = int(np.argmax(intensity))
            self.base_peak: Optional[DataPoint] = DataPoint(float(mz[top]), float(intensity[top]))
            self.mz_range = (float(mz[0]), float(mz[-1]))
            self.tic = float(np.sum(intensity))
        else:
            self.base_peak = None
            self.mz_range = (0.0, 0.0)
            self.tic = 0.0

    @property
    def mz_values(self) -> np.ndarray:
        return self.get_arrays()[0]

    @property
    def intensity_values(self) -> np.ndarray:
        return self.get_arrays()[1]

    @property
    def data_points(self) -> tuple[DataPoint, ...]:
        mz, intensity = self.get_arrays()
        return tuple(DataPoint(float(m), float(i)) for m, i in zip(mz, intensity))

    def get_data_points_in_range(
        self, min_mz: float, max_mz: float
    ) -> tuple[np.ndarray, np.ndarray]:
        """Data points with ``min_mz <= m/z <= max_mz`` (binary search)."""
        mz, intensity = self.get_arrays()
        start = np.searchsorted(mz, min_mz, side="left")
        end = np.searchsorted(mz, max_mz, side="right")
        return mz[start:end], intensity[start:end]


class RawDataFile:
    """Named collection of scans from one LC/GC-MS run.

    Raw data files compare by identity, so two runs with the same name are
    still different files.
    """

    def __init__(self, name: str, scans: Sequence[Scan] = ()):
        self.name = name
        self._scans: dict[int, Scan] = {}
        for scan in scans:
            self.add_scan(scan)

    def __repr__(self):
        return self.name

    def __len__(self):
        return len(self._scans)

    def add_scan(self, scan: Scan) -> None:
        if scan.scan_number in self._scans:
            raise ValueError(f"{self.name}: duplicate scan number {scan.scan_number}")
        self._scans[scan.scan_number] = scan

    def get_scan(self, scan_number: int) -> Scan:
        return self._scans[scan_number]

    def get_scan_numbers(self, ms_level: Optional[int] = None) -> np.ndarray:
        """Scan numbers in ascending order, optionally for one MS level."""
        numbers = [
            n for n, scan in self._scans.items()
            if ms_level is None or scan.ms_level == ms_level
        ]
        return np.array(sorted(numbers), dtype=np.int64)

    def iter_scans(self, ms_level: Optional[int] = None) -> Iterator[Scan]:
        for n in self.get_scan_numbers(ms_level):
            yield self._scans[int(n)]

    def get_data_mz_range(self, ms_level: Optional[int] = None) -> tuple[float, float]:
        """Union of the m/z ranges of all non-empty scans, (0, 0) if none."""
        ranges = [
            scan.mz_range for scan in self.iter_scans(ms_level)
            if scan.n_data_points > 0
        ]
        if not ranges:
            return 0.0, 0.0
        return min(r[0] for r in ranges), max(r[1] for r in ranges)

    def get_data_rt_range(self, ms_level: Optional[int] = None) -> tuple[float, float]:
        rts = [scan.retention_time for scan in self.iter_scans(ms_level)]
        if not rts:
            return 0.0, 0.0
        return min(rts), max(rts)
