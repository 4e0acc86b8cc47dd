"""AlphaFeature - Numba-accelerated LC/GC-MS feature detection core.

Turns raw scan data into aligned feature tables: extracted ion chromatogram
building, centroid and Savitzky-Golay peak picking, join alignment of runs,
duplicate filtering, linear normalization and isotope grouping.

Every operation is an independent unit of work that accepts an optional
cancellation token and progress tracker (see :mod:`alphafeature.task`).
"""

__version__ = "0.1.0"

# Import main submodules for convenient access
from alphafeature import data
from alphafeature import matching
from alphafeature import xic
from alphafeature import peakpicking
from alphafeature import alignment
from alphafeature import processing
from alphafeature import config
from alphafeature import task

__all__ = [
    "data",
    "matching",
    "xic",
    "peakpicking",
    "alignment",
    "processing",
    "config",
    "task",
]
