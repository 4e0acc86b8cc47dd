"""Extracted ion chromatogram (XIC) construction.

Key Features
------------
- Recursive scan-by-scan tracking of m/z traces with greedy matching
- Gap markers and segment trimming for interrupted traces
- Per-chromatogram intensity quantile noise removal

Examples
--------
>>> from alphafeature.xic import ChromatogramBuilder
>>> from alphafeature.config import ChromatogramBuilderParams
>>>
>>> builder = ChromatogramBuilder(ChromatogramBuilderParams(mz_tolerance=0.005))
>>> chromatograms = builder.build(raw_file)
>>> trace = chromatograms[0].intensity_trace()
"""

from .builder import (
    ChromatogramBuilder,
    window_pairs,
)

from .chromatogram import (
    Chromatogram,
    ChromatogramPoint,
    ScanGrid,
)

__all__ = [
    # Construction
    "ChromatogramBuilder",
    "window_pairs",
    # Chromatograms
    "Chromatogram",
    "ChromatogramPoint",
    "ScanGrid",
]
