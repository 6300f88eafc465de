"""
Edit distance used to rank phonetic candidates.

Bucket membership is decided by the phonetic code alone; the distance only
orders the words that share a code (or that several encoders returned).
"""

from typing import Iterable, List, Tuple


def levenshtein_distance(a: str, b: str) -> int:
    """
    Edit distance (Levenshtein) between two strings.
    Unit cost for insertion, deletion and substitution.
    """
    if len(a) < len(b):
        a, b = b, a
    n, m = len(a), len(b)
    prev = list(range(m + 1))
    for i in range(1, n + 1):
        curr = [i]
        for j in range(1, m + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            curr.append(min(prev[j] + 1, curr[j - 1] + 1, prev[j - 1] + cost))
        prev = curr
    return prev[m]


def score_words(query: str, words: Iterable[str]) -> List[Tuple[str, int]]:
    """(word, distance) pairs against an already-normalized query, in input order."""
    return [(w, levenshtein_distance(query, w.lower())) for w in words]


def rank_by_distance(query: str, words: Iterable[str], limit: int) -> List[str]:
    """
    Order words by ascending edit distance to query and keep the first limit.
    The sort is stable: equal distances keep the order the words came in.
    """
    if limit <= 0:
        return []
    scored = score_words(query, words)
    scored.sort(key=lambda x: x[1])
    return [w for w, _ in scored[:limit]]
