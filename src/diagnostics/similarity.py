"""
Name normalization and fuzzy matching
"""

from typing import Sequence


def normalize_name(name: str) -> str:
    """Lowercase and drop spaces, hyphens and underscores"""
    return name.lower().replace(" ", "").replace("-", "").replace("_", "")


def levenshtein_distance(s1: Sequence, s2: Sequence) -> int:
    """Unit-cost insert/delete/substitute edit distance"""
    n = len(s1)
    m = len(s2)
    if n == 0:
        return m
    if m == 0:
        return n

    previous = list(range(m + 1))
    for i in range(1, n + 1):
        current = [i] + [0] * m
        for j in range(1, m + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            current[j] = min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost   # substitution
            )
        previous = current
    return previous[m]


def string_similarity(s1: str, s2: str) -> float:
    """1 - distance / longer length, case-insensitive, in [0, 1]"""
    str1 = s1.lower()
    str2 = s2.lower()

    if str1 == str2:
        return 1.0
    if not str1 or not str2:
        return 0.0

    distance = levenshtein_distance(str1, str2)
    return 1.0 - distance / max(len(str1), len(str2))
