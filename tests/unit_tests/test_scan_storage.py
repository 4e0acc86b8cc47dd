"""Tests for scans, raw data files and the HDF5 scan-data store."""

import threading

import numpy as np
import pytest

from alphafeature.data import DataPoint, RawDataFile, Scan, ScanDataStore, StorableScan
from alphafeature.exceptions import DataAccessError


class TestScan:
    """Test in-memory scans."""

    def test_sorted_and_summarized(self):
        """Test that data points are sorted by m/z and summary values cached."""
        scan = Scan(1, 1, 0.5, [300.0, 100.0, 200.0], [1.0, 30.0, 5.0])

        assert scan.mz_values.tolist() == [100.0, 200.0, 300.0]
        assert scan.intensity_values.tolist() == [30.0, 5.0, 1.0]
        assert scan.base_peak == DataPoint(100.0, 30.0)
        assert scan.mz_range == (100.0, 300.0)
        assert scan.tic == pytest.approx(36.0)
        assert scan.n_data_points == 3

    def test_empty_scan(self):
        """Test that a scan without data points is valid."""
        scan = Scan(1, 1, 0.0)

        assert scan.n_data_points == 0
        assert scan.base_peak is None
        assert scan.mz_range == (0.0, 0.0)
        assert scan.tic == 0.0
        assert scan.data_points == ()

    def test_fragment_scan_requires_parent(self):
        """Test that an MS2 scan needs a parent scan number."""
        with pytest.raises(ValueError):
            Scan(2, 2, 0.1, [100.0], [1.0])

        scan = Scan(2, 2, 0.1, [100.0], [1.0], parent_scan_number=1, precursor_mz=450.2)
        assert scan.parent_scan_number == 1

    def test_mismatched_arrays(self):
        """Test that m/z and intensity arrays must have the same length."""
        with pytest.raises(ValueError):
            Scan(1, 1, 0.0, [100.0, 200.0], [1.0])

    def test_data_points_in_range(self):
        """Test inclusive range lookup."""
        scan = Scan(1, 1, 0.0, [100.0, 200.0, 300.0, 400.0], [1.0, 2.0, 3.0, 4.0])

        mz, intensity = scan.get_data_points_in_range(200.0, 300.0)

        assert mz.tolist() == [200.0, 300.0]
        assert intensity.tolist() == [2.0, 3.0]


class TestRawDataFile:
    """Test scan enumeration of raw data files."""

    def test_scan_numbers_by_level(self):
        """Test ascending scan numbers filtered by MS level."""
        raw = RawDataFile("run")
        raw.add_scan(Scan(3, 1, 0.2, [150.0], [1.0]))
        raw.add_scan(Scan(1, 1, 0.0, [100.0], [1.0]))
        raw.add_scan(Scan(2, 2, 0.1, [120.0], [1.0], parent_scan_number=1))

        assert raw.get_scan_numbers().tolist() == [1, 2, 3]
        assert raw.get_scan_numbers(ms_level=1).tolist() == [1, 3]
        assert [s.scan_number for s in raw.iter_scans(ms_level=1)] == [1, 3]
        assert raw.get_data_mz_range(ms_level=1) == (100.0, 150.0)
        assert raw.get_data_rt_range() == (0.0, 0.2)

    def test_duplicate_scan_number(self):
        """Test that scan numbers are unique."""
        raw = RawDataFile("run", [Scan(1, 1, 0.0)])

        with pytest.raises(ValueError):
            raw.add_scan(Scan(1, 1, 0.1))

    def test_identity_equality(self):
        """Test that files with the same name are different files."""
        assert RawDataFile("run") != RawDataFile("run")


class TestScanDataStore:
    """Test HDF5-backed scan storage."""

    def test_storable_scan_round_trip(self, tmp_path):
        """Test that data points are read back from disk."""
        with ScanDataStore(tmp_path / "scans.hdf") as store:
            scan = StorableScan(store, 7, 1, 1.5, [250.0, 150.0], [2.0, 8.0])

            mz, intensity = scan.get_arrays()

            assert mz.tolist() == [150.0, 250.0]
            assert intensity.tolist() == [8.0, 2.0]
            assert scan.base_peak == DataPoint(150.0, 8.0)
            assert scan.tic == pytest.approx(10.0)

    def test_replace_data_points(self):
        """Test that writing a scan again replaces its data points."""
        with ScanDataStore() as store:
            scan = StorableScan(store, 1, 1, 0.0, [100.0], [1.0])
            scan.set_data_points([300.0, 200.0], [5.0, 6.0])

            assert scan.mz_values.tolist() == [200.0, 300.0]
            assert scan.n_data_points == 2

    def test_empty_storable_scan(self):
        """Test storing a scan without data points."""
        with ScanDataStore() as store:
            scan = StorableScan(store, 1, 1, 0.0)

            assert len(scan.mz_values) == 0
            assert scan.data_points == ()

    def test_temporary_file_removed(self):
        """Test that an owned temporary file is deleted on close."""
        store = ScanDataStore()
        path = store.path
        assert path.exists()

        store.close()

        assert not store.is_open
        assert not path.exists()

    def test_closed_store_raises(self):
        """Test that reading from a closed store is a DataAccessError."""
        store = ScanDataStore()
        scan = StorableScan(store, 1, 1, 0.0, [100.0], [1.0])
        store.close()

        with pytest.raises(DataAccessError):
            scan.get_arrays()

    def test_missing_scan_raises(self):
        """Test that an unknown scan number is a DataAccessError."""
        with ScanDataStore() as store:
            with pytest.raises(DataAccessError):
                store.read(42)

    def test_concurrent_writes(self):
        """Test that threads sharing one store do not corrupt each other."""
        with ScanDataStore() as store:
            def write_range(offset):
                for i in range(offset, offset + 20):
                    store.write(i, np.array([float(i)]), np.array([float(i) * 2]))

            threads = [threading.Thread(target=write_range, args=(k * 20,)) for k in range(4)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

            for i in range(80):
                mz, intensity = store.read(i)
                assert mz.tolist() == [float(i)]
                assert intensity.tolist() == [float(i) * 2]
