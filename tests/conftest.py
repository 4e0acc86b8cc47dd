"""Pytest configuration for AlphaFeature tests.

This module provides common fixtures and configuration for all tests:
synthetic raw data files with Gaussian elution profiles and small helpers
to build peaks, rows and peak lists without running a detector.
"""

import numpy as np
import pytest

from alphafeature.data import (
    CompoundIdentity,
    Peak,
    PeakList,
    PeakListRow,
    RawDataFile,
    Scan,
)


def gaussian(x, center, sigma, height):
    """Gaussian profile evaluated at ``x``."""
    return height * np.exp(-0.5 * ((np.asarray(x, dtype=np.float64) - center) / sigma) ** 2)


def make_raw_file(name, traces, n_scans, rt_step=0.1):
    """Raw data file with one MS1 scan per RT step.

    ``traces`` maps an m/z value to an intensity array of length
    ``n_scans``; zero intensities are left out of the scan.
    """
    raw = RawDataFile(name)
    for i in range(n_scans):
        mzs = []
        intensities = []
        for mz, trace in traces.items():
            if trace[i] > 0:
                mzs.append(mz)
                intensities.append(trace[i])
        raw.add_scan(Scan(i + 1, 1, i * rt_step, mzs, intensities))
    return raw


def make_peak(data_file, mz, rt, height, half_width=1.0):
    """Triangular 3-sample peak: apex at ``rt``, area ``height * half_width``."""
    return Peak(
        data_file,
        np.array([1, 2, 3]),
        np.full(3, mz),
        np.array([rt - half_width, rt, rt + half_width]),
        np.array([0.0, height, 0.0]),
    )


def make_row(row_id, data_file, mz, rt, height, half_width=1.0, identities=(), preferred=None):
    row = PeakListRow(row_id)
    row.add_peak(data_file, make_peak(data_file, mz, rt, height, half_width))
    for name in identities:
        row.add_identity(CompoundIdentity(name=name))
    if preferred is not None:
        row.preferred_identity = CompoundIdentity(name=preferred)
    return row


def make_peak_list(name, data_file, specs):
    """Single-file peak list from ``(mz, rt, height)`` tuples."""
    rows = [
        make_row(row_id, data_file, mz, rt, height)
        for row_id, (mz, rt, height) in enumerate(specs, start=1)
    ]
    return PeakList(name, [data_file], rows)


@pytest.fixture
def raw_file():
    """Empty raw data file for peaks built by hand."""
    return RawDataFile("sample_a")


@pytest.fixture
def other_raw_file():
    """Second empty raw data file."""
    return RawDataFile("sample_b")


@pytest.fixture
def gaussian_raw_file():
    """80 MS1 scans (RT step 0.1) with one Gaussian trace at m/z 500.0.

    Apex at scan index 40 with height 1e6 and sigma of 5 scans.
    """
    n_scans = 80
    trace = gaussian(np.arange(n_scans), 40, 5.0, 1e6)
    return make_raw_file("gaussian", {500.0: trace}, n_scans)


@pytest.fixture
def empty_raw_file():
    """Raw data file without any scans."""
    return RawDataFile("empty")


# Random seed for reproducibility
@pytest.fixture(autouse=True, scope="session")
def set_random_seed():
    """Set random seed for reproducible tests."""
    np.random.seed(42)
