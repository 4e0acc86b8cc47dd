"""Feature table processing: duplicate removal, normalization, deisotoping.

Every operation takes a :class:`~alphafeature.data.PeakList` and returns a
new list named ``"<input name> <suffix>"``; the input is never modified.
"""

from .duplicate_filter import DuplicateRowFilter

from .isotope_grouper import (
    IsotopeGrouper,
    find_isotope_candidate,
    follow_isotope_ladder,
)

from .normalization import LinearNormalizer

__all__ = [
    # Duplicates
    "DuplicateRowFilter",
    # Isotopes
    "IsotopeGrouper",
    "find_isotope_candidate",
    "follow_isotope_ladder",
    # Normalization
    "LinearNormalizer",
]
