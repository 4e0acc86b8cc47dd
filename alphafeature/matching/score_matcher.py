"""Greedy exclusive matching of two entity sets by ascending score.

Used wherever growing entities have to be connected to candidates:
chromatograms to scan data points, under-construction peaks to centroids,
and already-aligned rows to the rows of the next peak list.

Algorithm
---------
1. The caller adds a score for every compatible (left, right) pair;
   lower is better and scores >= MAX_SCORE are dropped
2. Scores are ordered ascending with a stable sort, so ties keep the order
   in which they were added
3. Pairs are committed in that order; a pair is skipped if either side was
   already used

Results are therefore reproducible for identical input order. Callers that
enumerate pairs left-major resolve ties in favour of the earliest-created
left entity.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, NamedTuple, Sequence, TypeVar

import numba as nb
import numpy as np

from ..constants import MAX_SCORE

L = TypeVar("L")
R = TypeVar("R")


class MatchScore(NamedTuple):
    """Score of one candidate pair; ``order`` is the insertion index."""
    score: float
    order: int
    left: int
    right: int


@dataclass
class MatchResult(Generic[L, R]):
    """Committed pairs (in commit order) and the entities left unmatched."""
    pairs: list[tuple[L, R]] = field(default_factory=list)
    unmatched_left: list[L] = field(default_factory=list)
    unmatched_right: list[R] = field(default_factory=list)


@nb.njit
def greedy_assign(
    left_idx: np.ndarray,
    right_idx: np.ndarray,
    n_left: int,
    n_right: int
) -> np.ndarray:
    """Select pairs greedily from score-sorted index arrays.

    Parameters
    ----------
    left_idx, right_idx : np.ndarray
        Pair indices, already sorted by ascending score
    n_left, n_right : int
        Sizes of the two entity sets

    Returns
    -------
    selected : np.ndarray
        Boolean mask over the sorted pairs
    """
    used_left = np.zeros(n_left, dtype=np.bool_)
    used_right = np.zeros(n_right, dtype=np.bool_)
    selected = np.zeros(len(left_idx), dtype=np.bool_)

    for k in range(len(left_idx)):
        li = left_idx[k]
        ri = right_idx[k]
        if used_left[li] or used_right[ri]:
            continue
        used_left[li] = True
        used_right[ri] = True
        selected[k] = True

    return selected


class ScoreMatcher(Generic[L, R]):
    """Greedy exclusive matcher between ``lefts`` and ``rights``.

    Examples
    --------
    >>> matcher = ScoreMatcher(["a", "b"], ["x", "y"])
    >>> matcher.add_score(0, 0, 0.5)
    >>> matcher.add_score(1, 0, 0.1)
    >>> matcher.add_score(1, 1, 0.2)
    >>> result = matcher.match()
    >>> result.pairs
    [('b', 'x')]
    >>> result.unmatched_left, result.unmatched_right
    (['a'], ['y'])
    """

    def __init__(self, lefts: Sequence[L], rights: Sequence[R]):
        self.lefts = list(lefts)
        self.rights = list(rights)
        self._left: list[int] = []
        self._right: list[int] = []
        self._score: list[float] = []

    def __len__(self):
        return len(self._score)

    def add_score(self, left: int, right: int, score: float) -> None:
        """Register a candidate pair by index; excluded if ``score >= MAX_SCORE``."""
        if not score < MAX_SCORE:
            return
        self._left.append(left)
        self._right.append(right)
        self._score.append(score)

    def add_scores(self, left: Any, right: Any, scores: Any) -> None:
        """Vectorized :meth:`add_score`; pairs are added in array order."""
        left = np.asarray(left, dtype=np.int64)
        right = np.asarray(right, dtype=np.int64)
        scores = np.asarray(scores, dtype=np.float64)
        keep = scores < MAX_SCORE
        self._left.extend(left[keep].tolist())
        self._right.extend(right[keep].tolist())
        self._score.extend(scores[keep].tolist())

    def sorted_scores(self) -> list[MatchScore]:
        """Candidate scores in processing order."""
        order = np.argsort(np.asarray(self._score, dtype=np.float64), kind="stable")
        return [
            MatchScore(self._score[k], int(k), self._left[k], self._right[k])
            for k in order
        ]

    def match(self) -> MatchResult[L, R]:
        result: MatchResult[L, R] = MatchResult()
        n_left, n_right = len(self.lefts), len(self.rights)

        matched_left = np.zeros(n_left, dtype=np.bool_)
        matched_right = np.zeros(n_right, dtype=np.bool_)

        if self._score:
            order = np.argsort(np.asarray(self._score, dtype=np.float64), kind="stable")
            left_idx = np.asarray(self._left, dtype=np.int64)[order]
            right_idx = np.asarray(self._right, dtype=np.int64)[order]
            selected = greedy_assign(left_idx, right_idx, n_left, n_right)

            for li, ri in zip(left_idx[selected], right_idx[selected]):
                result.pairs.append((self.lefts[li], self.rights[ri]))
            matched_left[left_idx[selected]] = True
            matched_right[right_idx[selected]] = True

        result.unmatched_left = [e for e, m in zip(self.lefts, matched_left) if not m]
        result.unmatched_right = [e for e, m in zip(self.rights, matched_right) if not m]
        return result
