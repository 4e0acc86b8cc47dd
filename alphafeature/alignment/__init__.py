"""Alignment of peak lists from different runs into one feature table."""

from .join_aligner import (
    JoinAligner,
    identities_compatible,
)

__all__ = [
    "JoinAligner",
    "identities_compatible",
]
