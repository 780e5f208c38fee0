# jaro_winkler.py

"""
filepath: jaro_winkler.py

Jaro and Jaro-Winkler string similarity, the only fuzzy primitive used by the
region search (district / subdistrict / city / province lookups).

Public API:
    jaro_similarity(a, b) -> float
    jaro_winkler_similarity(a, b) -> float

Both are pure, case-sensitive and return a score in [0, 1]; callers normalize
case before comparing.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Tuple

# Winkler's scaling factor and the cap on the rewarded common prefix.
PREFIX_SCALE = 0.1
MAX_PREFIX = 4


def _ordered(a: str, b: str) -> Tuple[str, str]:
    # Greedy matching depends on which side scans; fix the order so sim(a, b) == sim(b, a).
    if (len(a), a) <= (len(b), b):
        return a, b
    return b, a


@lru_cache(maxsize=65536)
def jaro_similarity(a: str, b: str) -> float:
    """Jaro similarity of two strings.

    Characters match when equal and no further apart than
    ``max(len(a), len(b)) // 2 - 1`` positions; each character of ``b`` is
    consumed at most once, scanning ``a`` left to right. Half the number of
    matched pairs that appear in a different order counts as transpositions.

    Args:
        a: First string.
        b: Second string.

    Returns:
        1.0 for identical strings (including two empty strings), 0.0 when
        nothing matches, otherwise ``(m/|a| + m/|b| + (m - t)/m) / 3``.
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    a, b = _ordered(a, b)
    len_a, len_b = len(a), len(b)
    window = max(max(len_a, len_b) // 2 - 1, 0)

    taken = [False] * len_b
    a_matched: List[str] = []
    for i, ch in enumerate(a):
        lo = max(0, i - window)
        hi = min(len_b, i + window + 1)
        for j in range(lo, hi):
            if not taken[j] and b[j] == ch:
                taken[j] = True
                a_matched.append(ch)
                break

    m = len(a_matched)
    if m == 0:
        return 0.0

    b_matched = [b[j] for j in range(len_b) if taken[j]]
    transpositions = sum(1 for x, y in zip(a_matched, b_matched) if x != y) / 2
    return (m / len_a + m / len_b + (m - transpositions) / m) / 3


def _common_prefix(a: str, b: str) -> int:
    n = 0
    for x, y in zip(a, b):
        if x != y or n == MAX_PREFIX:
            break
        n += 1
    return n


@lru_cache(maxsize=65536)
def jaro_winkler_similarity(a: str, b: str) -> float:
    """Jaro similarity boosted by the shared prefix (at most 4 chars, p = 0.1).

    Examples:
        >>> round(jaro_winkler_similarity("MARTHA", "MARHTA"), 4)
        0.9611
        >>> jaro_winkler_similarity("", "")
        1.0
        >>> jaro_winkler_similarity("", "abc")
        0.0
    """
    jaro = jaro_similarity(a, b)
    if jaro in (0.0, 1.0):
        return jaro
    return jaro + _common_prefix(a, b) * PREFIX_SCALE * (1.0 - jaro)
