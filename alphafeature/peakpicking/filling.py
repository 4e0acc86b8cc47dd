"""Peak-filling models: reshape a detected peak to an ideal profile.

Models are resolved by name from a fixed registry. Each model keeps the
peak's samples (scan numbers, m/z, retention times) and its apex, replaces
the intensities by the model profile, and marks the result ESTIMATED.
"""

from dataclasses import replace
from typing import Callable, Optional

import numpy as np

from ..constants import FWHM_TO_SIGMA
from ..data.peak import Peak, PeakStatus
from ..exceptions import ConfigurationError
from ..numeric import half_max_width

PeakFillingModel = Callable[..., Peak]


def _apex(peak: Peak, apex: Optional[int]) -> int:
    return int(np.argmax(peak.intensities)) if apex is None else apex


def fill_gaussian(peak: Peak, apex: Optional[int] = None) -> Peak:
    """Gaussian through the apex with sigma from the sample FWHM.

    ``apex`` is the sample position of the apex, the most intense sample by
    default. Peaks whose FWHM cannot be measured (fewer than 3 samples, flat top)
    are returned unchanged.
    """
    i = _apex(peak, apex)
    fwhm = half_max_width(peak.rts, peak.intensities, i)
    if fwhm <= 0:
        return peak
    sigma = fwhm / FWHM_TO_SIGMA
    height = peak.intensities[i]
    profile = height * np.exp(-0.5 * ((peak.rts - peak.rts[i]) / sigma) ** 2)
    return replace(peak, intensities=profile, status=PeakStatus.ESTIMATED)


def fill_triangle(peak: Peak, apex: Optional[int] = None) -> Peak:
    """Linear rise from the first sample to the apex and fall to the last."""
    rts = peak.rts
    i = _apex(peak, apex)
    first, last, apex_rt = rts[0], rts[-1], rts[i]
    height = peak.intensities[i]

    rise = np.ones_like(rts) if apex_rt <= first else (rts - first) / (apex_rt - first)
    fall = np.ones_like(rts) if last <= apex_rt else (last - rts) / (last - apex_rt)
    profile = height * np.clip(np.where(rts <= apex_rt, rise, fall), 0.0, 1.0)
    return replace(peak, intensities=profile, status=PeakStatus.ESTIMATED)


PEAK_FILLING_MODELS: dict[str, PeakFillingModel] = {
    "gaussian": fill_gaussian,
    "triangle": fill_triangle,
}


def get_peak_filling_model(name: str) -> PeakFillingModel:
    """Look up a filling model by (case-insensitive) name.

    Raises
    ------
    ConfigurationError
        If no model has that name
    """
    try:
        return PEAK_FILLING_MODELS[name.lower()]
    except (KeyError, AttributeError):
        raise ConfigurationError(
            f"Unknown peak filling model: {name}",
            f"Available models: {', '.join(PEAK_FILLING_MODELS)}",
        ) from None
