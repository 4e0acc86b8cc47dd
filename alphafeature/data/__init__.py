"""Data model: scans, raw data files, peaks and peak lists.

Examples
--------
>>> from alphafeature.data import RawDataFile, Scan
>>>
>>> raw = RawDataFile("sample_01")
>>> raw.add_scan(Scan(1, 1, 0.01, mz_values, intensity_values))
>>> raw.get_scan_numbers(ms_level=1)
array([1])
"""

from .identity import (
    CompoundIdentity,
    UNKNOWN_IDENTITY,
    identity_names,
    share_identity,
)

from .peak import (
    Peak,
    PeakBuilder,
    PeakStatus,
    trapezoid_area,
)

from .peaklist import (
    PeakList,
    PeakListRow,
)

from .scan import (
    DataPoint,
    RawDataFile,
    Scan,
)

from .storage import (
    ScanDataStore,
    StorableScan,
)

__all__ = [
    # Identities
    "CompoundIdentity",
    "UNKNOWN_IDENTITY",
    "identity_names",
    "share_identity",
    # Peaks
    "Peak",
    "PeakBuilder",
    "PeakStatus",
    "trapezoid_area",
    # Peak lists
    "PeakList",
    "PeakListRow",
    # Scans
    "DataPoint",
    "RawDataFile",
    "Scan",
    # Storage
    "ScanDataStore",
    "StorableScan",
]
