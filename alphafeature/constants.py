"""Numerical constants shared by the feature detection and alignment modules.

Constants are plain Python floats/ints so they can be captured as globals by
Numba JIT-compiled kernels.

Key Features
------------
- MAX_SCORE sentinel marking incompatible match candidates
- Savitzky-Golay half-window limit used by the derivative tables
- Fixed ceiling for linear normalization
- 13C isotope spacing for deisotoping
"""

# =============================================================================
# Matching
# =============================================================================

# Any score >= MAX_SCORE excludes a candidate pair from matching
MAX_SCORE = float("inf")

# =============================================================================
# Peak detection
# =============================================================================

# Largest symmetric half-window of the Savitzky-Golay derivative filter
SG_MAX_HALF_WINDOW = 12

# Chromatograms whose mean exceeds this fraction of the max are background
BACKGROUND_MEAN_RATIO = 0.5

# FWHM = 2 * sqrt(2 * ln 2) * sigma
FWHM_TO_SIGMA = 2.3548200450309493

# =============================================================================
# Post-processing
# =============================================================================

# Largest peak height after linear normalization
NORMALIZATION_CEILING = 100000.0

# 13C - 12C mass difference (Da)
C13_MASS_DIFF = 1.0033548
