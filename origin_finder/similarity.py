"""
Prefix similarity between a baseline body and a probe body
"""

from dataclasses import dataclass

from rapidfuzz.distance import Levenshtein

# Fewer common bytes than this says nothing about the origin
MIN_COMPARABLE_LENGTH = 5


@dataclass(frozen=True)
class Score:
    distance: int
    percentage: int


def comparable_length(limit: int, baseline: bytes, probe: bytes) -> int:
    """Size of the window both bodies can be compared over"""
    return min(limit, len(baseline), len(probe))


def _text(buf: bytes) -> str:
    return buf.decode('utf-8', errors='replace')


def score(baseline: bytes, probe: bytes, length: int) -> Score:
    """
    Character-level Levenshtein distance over the first `length` bytes of
    each body, turned into a percentage of `length`.

    Decoding never yields more characters than bytes, so the distance stays
    within `length` and the percentage within 0..100.
    """
    if length <= 0:
        raise ValueError(f"comparable length must be positive, got {length}")
    distance = Levenshtein.distance(_text(baseline[:length]), _text(probe[:length]))
    percentage = 100 - round(distance / length * 100)
    return Score(distance=distance, percentage=percentage)
