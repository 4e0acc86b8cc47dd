"""Parameter records for every feature detection and table operation.

Each operation receives one flat ``@dataclass`` record. Records can be built
directly, from a preset, or from a plain mapping (e.g. parsed from a YAML or
JSON workflow file) with :meth:`ParamsBase.from_dict`, which coerces enum
values given by name and rejects unknown keys.

Examples
--------
>>> params = JoinAlignerParams.from_dict({
...     "mz_tolerance": 0.01,
...     "rt_tolerance": 0.5,
...     "rt_tolerance_type": "absolute",
... })
>>> params.rt_tolerance_type
<RTToleranceType.ABSOLUTE: 'absolute'>
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Mapping

from .exceptions import ConfigurationError


class RTToleranceType(Enum):
    """How a retention time tolerance is applied."""
    ABSOLUTE = "absolute"  # RT +/- tolerance
    PERCENT = "percent"    # RT +/- RT * tolerance


class NormalizationType(Enum):
    """Per-file normalization factor used by the linear normalizer."""
    AVERAGE_INTENSITY = "average_intensity"
    AVERAGE_SQUARED_INTENSITY = "average_squared_intensity"
    MAXIMUM_PEAK = "maximum_peak"
    TOTAL_RAW_SIGNAL = "total_raw_signal"


class PeakMeasurementType(Enum):
    """Peak quantity a normalization factor is computed from."""
    HEIGHT = "height"
    AREA = "area"


def _coerce_enum(enum_cls, value, name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        pass
    if isinstance(value, str) and value.upper() in enum_cls.__members__:
        return enum_cls[value.upper()]
    choices = ", ".join(member.value for member in enum_cls)
    raise ConfigurationError(
        f"Unknown value '{value}' for {name}", f"Valid choices: {choices}"
    )


def _check_non_negative(params, *names: str):
    for name in names:
        value = getattr(params, name)
        if value < 0:
            raise ConfigurationError(
                f"{type(params).__name__}.{name} must be >= 0, got {value}"
            )


def _check_quantile(params, *names: str):
    for name in names:
        value = getattr(params, name)
        if not 0.0 <= value <= 1.0:
            raise ConfigurationError(
                f"{type(params).__name__}.{name} must be in [0, 1], got {value}"
            )


class ParamsBase:
    """Mixin giving parameter dataclasses mapping construction and validation."""

    @classmethod
    def from_dict(cls, mapping: Mapping[str, Any]):
        """Build a validated parameter record from a flat mapping.

        Parameters
        ----------
        mapping : Mapping[str, Any]
            Field name to value. Enum fields accept members, values or names.

        Returns
        -------
        params
            Validated instance of ``cls``

        Raises
        ------
        ConfigurationError
            If the mapping is empty, names unknown fields or holds invalid values
        """
        if not mapping:
            raise ConfigurationError(f"Empty parameter set for {cls.__name__}")

        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(mapping) - set(known))
        if unknown:
            raise ConfigurationError(
                f"Unknown parameters for {cls.__name__}: {', '.join(unknown)}",
                f"Valid parameters: {', '.join(known)}",
            )

        values = {}
        for name, value in mapping.items():
            field_type = known[name].type
            if isinstance(field_type, type) and issubclass(field_type, Enum):
                value = _coerce_enum(field_type, value, name)
            values[name] = value

        params = cls(**values)
        params.validate()
        return params

    def validate(self) -> None:
        """Raise ConfigurationError for out-of-range values."""


@dataclass
class ChromatogramBuilderParams(ParamsBase):
    """Parameters for extracted-ion chromatogram construction.

    Tolerances are absolute (m/z in Th, durations in retention time units).
    """

    ms_level: int = 1
    mz_tolerance: float = 0.01
    min_duration: float = 0.1
    intensity_threshold_quantile: float = 0.5

    def validate(self) -> None:
        if self.ms_level < 1:
            raise ConfigurationError(f"ms_level must be >= 1, got {self.ms_level}")
        _check_non_negative(self, "mz_tolerance", "min_duration")
        _check_quantile(self, "intensity_threshold_quantile")


@dataclass
class CentroidPickerParams(ParamsBase):
    """Parameters for the centroid growth peak detector."""

    bin_size: float = 0.25
    chromatographic_threshold_quantile: float = 0.0
    noise_level: float = 0.0
    min_peak_height: float = 0.0
    min_peak_duration: float = 0.0
    mz_tolerance: float = 0.01
    intensity_tolerance: float = 0.5  # max relative intensity change per scan

    def validate(self) -> None:
        if self.bin_size <= 0:
            raise ConfigurationError(f"bin_size must be > 0, got {self.bin_size}")
        _check_non_negative(
            self, "noise_level", "min_peak_height", "min_peak_duration",
            "mz_tolerance", "intensity_tolerance",
        )
        _check_quantile(self, "chromatographic_threshold_quantile")


@dataclass
class SavitzkyGolayParams(ParamsBase):
    """Parameters for the Savitzky-Golay second derivative peak detector."""

    min_peak_height: float = 0.0
    min_peak_duration: float = 0.0
    derivative_threshold_quantile: float = 0.5
    filling_enabled: bool = False
    filling_model: str = "gaussian"

    def validate(self) -> None:
        _check_non_negative(self, "min_peak_height", "min_peak_duration")
        _check_quantile(self, "derivative_threshold_quantile")
        if self.filling_enabled:
            from .peakpicking.filling import get_peak_filling_model
            get_peak_filling_model(self.filling_model)


@dataclass
class JoinAlignerParams(ParamsBase):
    """Parameters for score-based join alignment of peak lists."""

    name: str = "Aligned peak list"
    mz_tolerance: float = 0.01
    mz_weight: float = 1.0
    rt_tolerance: float = 1.0
    rt_tolerance_type: RTToleranceType = RTToleranceType.ABSOLUTE
    rt_weight: float = 1.0
    require_same_identity: bool = False
    identity_weight: float = 0.0

    def validate(self) -> None:
        _check_non_negative(
            self, "mz_tolerance", "mz_weight", "rt_tolerance", "rt_weight",
            "identity_weight",
        )


@dataclass
class DuplicateFilterParams(ParamsBase):
    """Parameters for removing duplicate rows from a peak list."""

    suffix: str = "filtered"
    mz_difference_max: float = 0.001
    rt_difference_max: float = 0.1
    require_same_identity: bool = False

    def validate(self) -> None:
        _check_non_negative(self, "mz_difference_max", "rt_difference_max")


@dataclass
class LinearNormalizerParams(ParamsBase):
    """Parameters for per-file linear normalization."""

    suffix: str = "normalized"
    normalization_type: NormalizationType = NormalizationType.AVERAGE_INTENSITY
    peak_measurement_type: PeakMeasurementType = PeakMeasurementType.HEIGHT


@dataclass
class IsotopeGrouperParams(ParamsBase):
    """Parameters for grouping isotope rows of a single-file peak list."""

    suffix: str = "deisotoped"
    mz_tolerance: float = 0.005
    rt_tolerance: float = 0.1
    max_charge: int = 3
    monotonic_shape: bool = True  # isotope heights must decrease

    def validate(self) -> None:
        _check_non_negative(self, "mz_tolerance", "rt_tolerance")
        if self.max_charge < 1:
            raise ConfigurationError(f"max_charge must be >= 1, got {self.max_charge}")
