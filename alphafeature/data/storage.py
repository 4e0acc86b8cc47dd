"""Temporary HDF5 storage for scan data points.

Large runs do not fit in memory as numpy arrays, so scan data points can be
kept in a temporary HDF5 file and read back on demand. One
:class:`ScanDataStore` serves one raw data file; every read and write goes
through the store's lock, so a store can be shared by scans processed in
different threads while independent stores never block each other.

Examples
--------
>>> with ScanDataStore() as store:
...     scan = StorableScan(store, 1, 1, 0.5, mz_array, intensity_array)
...     mz, intensity = scan.get_arrays()   # read back from disk
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional

import h5py
import numpy as np

from ..exceptions import DataAccessError
from .scan import Scan

logger = logging.getLogger(__name__)


class ScanDataStore:
    """HDF5-backed store of (m/z, intensity) arrays keyed by scan number.

    Parameters
    ----------
    path : Path or str, optional
        HDF5 file to create. A temporary file is created (and deleted on
        close) when omitted.
    """

    def __init__(self, path: Optional[Path | str] = None):
        self._lock = threading.Lock()
        self._owns_file = path is None
        if path is None:
            fd, tmp_name = tempfile.mkstemp(suffix=".hdf", prefix="alphafeature_scans_")
            os.close(fd)
            path = tmp_name
        self.path = Path(path)

        try:
            self._hdf_handle = h5py.File(self.path, "w")
        except OSError as e:
            raise DataAccessError(f"Cannot create scan store {self.path}") from e
        logger.debug(f"Opened scan store {self.path}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def is_open(self) -> bool:
        return self._hdf_handle is not None

    def write(self, scan_number: int, mz: np.ndarray, intensity: np.ndarray) -> None:
        """Store (replace) the data points of one scan."""
        data = np.column_stack((mz, intensity)).astype(np.float64)
        key = str(scan_number)
        with self._lock:
            hdf = self._handle()
            try:
                if key in hdf:
                    del hdf[key]
                hdf.create_dataset(key, data=data)
            except (OSError, ValueError) as e:
                raise DataAccessError(
                    f"Cannot write scan {scan_number} to {self.path}"
                ) from e

    def read(self, scan_number: int) -> tuple[np.ndarray, np.ndarray]:
        """Load the (m/z, intensity) arrays of one scan."""
        with self._lock:
            hdf = self._handle()
            try:
                data = hdf[str(scan_number)][:]
            except (OSError, KeyError) as e:
                raise DataAccessError(
                    f"Cannot read scan {scan_number} from {self.path}"
                ) from e
        data = data.reshape(-1, 2)
        return np.ascontiguousarray(data[:, 0]), np.ascontiguousarray(data[:, 1])

    def close(self) -> None:
        with self._lock:
            if self._hdf_handle is None:
                return
            self._hdf_handle.close()
            self._hdf_handle = None
            if self._owns_file:
                self.path.unlink(missing_ok=True)
        logger.debug(f"Closed scan store {self.path}")

    def _handle(self) -> h5py.File:
        if self._hdf_handle is None:
            raise DataAccessError(f"Scan store {self.path} is closed")
        return self._hdf_handle


class StorableScan(Scan):
    """Scan whose data points live in a :class:`ScanDataStore`.

    Metadata and the cached base peak, m/z range and TIC stay in memory;
    data points are read back from the store on every access.
    """

    def __init__(self, store: ScanDataStore, scan_number: int, ms_level: int,
                 retention_time: float, mz_values=None, intensity_values=None,
                 **kwargs):
        self._store = store
        super().__init__(scan_number, ms_level, retention_time,
                         mz_values, intensity_values, **kwargs)

    def _write_arrays(self, mz: np.ndarray, intensity: np.ndarray) -> None:
        self._store.write(self.scan_number, mz, intensity)

    def get_arrays(self) -> tuple[np.ndarray, np.ndarray]:
        return self._store.read(self.scan_number)
