"""Compound identities attached to peak list rows."""

from __future__ import annotations

from dataclasses import dataclass
from functools import total_ordering
from typing import Iterable


@total_ordering
@dataclass(frozen=True)
class CompoundIdentity:
    """Candidate chemical compound for a feature.

    Identities sort by compound name; :data:`UNKNOWN_IDENTITY` always sorts
    last.
    """

    compound_id: str = ""
    name: str = ""
    alternate_names: tuple[str, ...] = ()
    formula: str = ""
    database_url: str = ""
    identification_method: str = ""

    def __str__(self):
        return self.name

    def _sort_key(self):
        return (self is UNKNOWN_IDENTITY, self.name)

    def __lt__(self, other):
        if not isinstance(other, CompoundIdentity):
            return NotImplemented
        return self._sort_key() < other._sort_key()


UNKNOWN_IDENTITY = CompoundIdentity(name="Unknown")


def identity_names(identities: Iterable[CompoundIdentity]) -> set[str]:
    return {identity.name for identity in identities}


def share_identity(
    first: Iterable[CompoundIdentity],
    second: Iterable[CompoundIdentity],
) -> bool:
    """True if the two collections have at least one compound name in common."""
    return bool(identity_names(first) & identity_names(second))

