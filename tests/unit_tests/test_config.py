"""Tests for parameter records: mapping construction, enum coercion, validation."""

import pytest

from alphafeature.config import (
    CentroidPickerParams,
    ChromatogramBuilderParams,
    IsotopeGrouperParams,
    JoinAlignerParams,
    LinearNormalizerParams,
    NormalizationType,
    PeakMeasurementType,
    RTToleranceType,
    SavitzkyGolayParams,
)
from alphafeature.exceptions import ConfigurationError


class TestFromDict:
    """Test building parameter records from plain mappings."""

    def test_enum_by_value(self):
        """Test enum coercion from the enum value."""
        params = JoinAlignerParams.from_dict({"rt_tolerance_type": "percent"})

        assert params.rt_tolerance_type is RTToleranceType.PERCENT

    def test_enum_by_name(self):
        """Test enum coercion from the member name, any case."""
        params = LinearNormalizerParams.from_dict({
            "normalization_type": "maximum_peak",
            "peak_measurement_type": "Area",
        })

        assert params.normalization_type is NormalizationType.MAXIMUM_PEAK
        assert params.peak_measurement_type is PeakMeasurementType.AREA

    def test_defaults_kept(self):
        """Test that unspecified fields keep their defaults."""
        params = ChromatogramBuilderParams.from_dict({"mz_tolerance": 0.005})

        assert params.mz_tolerance == 0.005
        assert params.min_duration == 0.1
        assert params.intensity_threshold_quantile == 0.5

    def test_empty_mapping(self):
        """Test that an empty parameter set is rejected."""
        with pytest.raises(ConfigurationError):
            JoinAlignerParams.from_dict({})

    def test_unknown_key(self):
        """Test that misspelled parameters are rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            JoinAlignerParams.from_dict({"mz_tolerence": 0.01})

        assert "mz_tolerence" in str(exc_info.value)
        assert exc_info.value.error_code == "CONFIGURATION_ERROR"

    def test_unknown_enum_value(self):
        """Test that an invalid enum value lists the valid choices."""
        with pytest.raises(ConfigurationError) as exc_info:
            JoinAlignerParams.from_dict({"rt_tolerance_type": "relative"})

        assert "absolute" in exc_info.value.detail_msg


class TestValidate:
    """Test range validation of parameter records."""

    def test_negative_tolerance(self):
        """Test that negative tolerances are rejected."""
        with pytest.raises(ConfigurationError):
            JoinAlignerParams.from_dict({"mz_tolerance": -0.01})

    def test_quantile_out_of_range(self):
        """Test that quantiles must lie in [0, 1]."""
        with pytest.raises(ConfigurationError):
            ChromatogramBuilderParams(intensity_threshold_quantile=1.5).validate()

    def test_bin_size_positive(self):
        """Test that the centroid bin size must be positive."""
        with pytest.raises(ConfigurationError):
            CentroidPickerParams(bin_size=0.0).validate()

    def test_unknown_filling_model(self):
        """Test that an unknown filling model is only an error when filling is enabled."""
        SavitzkyGolayParams(filling_model="lorentz").validate()

        with pytest.raises(ConfigurationError):
            SavitzkyGolayParams(filling_enabled=True, filling_model="lorentz").validate()

    def test_max_charge(self):
        """Test that at least charge 1 is searched."""
        with pytest.raises(ConfigurationError):
            IsotopeGrouperParams(max_charge=0).validate()
