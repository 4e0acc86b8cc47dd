"""Greedy exclusive score matching shared by all tracking stages."""

from .score_matcher import (
    MatchResult,
    MatchScore,
    ScoreMatcher,
    greedy_assign,
)

__all__ = [
    "MatchResult",
    "MatchScore",
    "ScoreMatcher",
    "greedy_assign",
]
