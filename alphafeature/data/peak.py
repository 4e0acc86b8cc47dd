"""Chromatographic peaks and their under-construction builders.

A peak is an ordered run of (scan number, m/z, retention time, intensity)
samples from one raw data file. Detectors grow a mutable :class:`PeakBuilder`
scan by scan and call :meth:`PeakBuilder.finalize` once the track stops
growing; the resulting :class:`Peak` is immutable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from .scan import RawDataFile


class PeakStatus(Enum):
    """How a peak was obtained."""
    DETECTED = "detected"    # found by a detector
    ESTIMATED = "estimated"  # reshaped by a peak-filling model
    FILLED = "filled"        # gap filled from raw data


def trapezoid_area(rts: np.ndarray, intensities: np.ndarray) -> float:
    """Area under the samples by the trapezoidal rule (0 for < 2 samples)."""
    if len(rts) < 2:
        return 0.0
    return float(np.sum(np.diff(rts) * (intensities[1:] + intensities[:-1]) / 2.0))


@dataclass(frozen=True, eq=False)
class Peak:
    """Finalized chromatographic peak.

    Height is the maximum sample intensity, ``rt`` the retention time of
    that sample and ``mz`` the intensity-weighted mean m/z of all samples.
    Peaks compare by identity.
    """

    data_file: RawDataFile
    scan_numbers: np.ndarray
    mzs: np.ndarray
    rts: np.ndarray
    intensities: np.ndarray
    status: PeakStatus = PeakStatus.DETECTED

    height: float = field(init=False)
    area: float = field(init=False)
    mz: float = field(init=False)
    rt: float = field(init=False)

    def __post_init__(self):
        scan_numbers = np.array(self.scan_numbers, dtype=np.int64)
        mzs = np.array(self.mzs, dtype=np.float64)
        rts = np.array(self.rts, dtype=np.float64)
        intensities = np.array(self.intensities, dtype=np.float64)
        if len(scan_numbers) == 0:
            raise ValueError("A peak needs at least one sample")
        if not len(scan_numbers) == len(mzs) == len(rts) == len(intensities):
            raise ValueError("Peak sample arrays must have equal length")

        for name, value in (
            ("scan_numbers", scan_numbers), ("mzs", mzs),
            ("rts", rts), ("intensities", intensities),
        ):
            value.setflags(write=False)
            object.__setattr__(self, name, value)

        apex = int(np.argmax(intensities))
        total = float(np.sum(intensities))
        mz = float(np.sum(mzs * intensities) / total) if total > 0 else float(np.mean(mzs))
        object.__setattr__(self, "height", float(intensities[apex]))
        object.__setattr__(self, "area", trapezoid_area(rts, intensities))
        object.__setattr__(self, "mz", mz)
        object.__setattr__(self, "rt", float(rts[apex]))

    def __repr__(self):
        return (
            f"Peak({self.data_file}, mz={self.mz:.4f}, rt={self.rt:.3f}, "
            f"height={self.height:.1f}, {self.status.value})"
        )

    @property
    def n_samples(self) -> int:
        return len(self.scan_numbers)

    @property
    def rt_range(self) -> tuple[float, float]:
        return float(self.rts[0]), float(self.rts[-1])

    @property
    def mz_range(self) -> tuple[float, float]:
        return float(np.min(self.mzs)), float(np.max(self.mzs))

    @property
    def duration(self) -> float:
        return float(self.rts[-1] - self.rts[0])

    @property
    def apex_scan_number(self) -> int:
        return int(self.scan_numbers[int(np.argmax(self.intensities))])


class PeakBuilder:
    """Mutable peak under construction.

    ``growing`` is set when the builder received a sample in the current
    scan round and reset by the detector before the next round.
    """

    def __init__(self, data_file: RawDataFile):
        self.data_file = data_file
        self.growing = False
        self._scan_numbers: list[int] = []
        self._mzs: list[float] = []
        self._rts: list[float] = []
        self._intensities: list[float] = []

    def __len__(self):
        return len(self._scan_numbers)

    def add_datapoint(self, scan_number: int, mz: float, rt: float, intensity: float) -> None:
        if self._scan_numbers and scan_number <= self._scan_numbers[-1]:
            raise ValueError(
                f"Scan {scan_number} is not after scan {self._scan_numbers[-1]}"
            )
        self._scan_numbers.append(scan_number)
        self._mzs.append(mz)
        self._rts.append(rt)
        self._intensities.append(intensity)

    @property
    def last_mz(self) -> float:
        return self._mzs[-1]

    @property
    def last_intensity(self) -> float:
        return self._intensities[-1]

    @property
    def height(self) -> float:
        return max(self._intensities) if self._intensities else 0.0

    @property
    def duration(self) -> float:
        if not self._rts:
            return 0.0
        return self._rts[-1] - self._rts[0]

    def finalize(self, status: PeakStatus = PeakStatus.DETECTED) -> Peak:
        return Peak(
            self.data_file,
            np.array(self._scan_numbers, dtype=np.int64),
            np.array(self._mzs, dtype=np.float64),
            np.array(self._rts, dtype=np.float64),
            np.array(self._intensities, dtype=np.float64),
            status,
        )
