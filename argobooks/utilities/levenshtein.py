from __future__ import annotations
from typing import Optional

from .. import config

# Match tiers, highest first
EXACT_SCORE = 1.0
PREFIX_SCORE = 0.95
WORD_PREFIX_SCORE = 0.9
SUBSTRING_SCORE = 0.8
FUZZY_WEIGHT = 0.7
NO_MATCH = -1.0


def distance(a: Optional[str], b: Optional[str]) -> int:
    """Edit distance between two strings (insert, delete, substitute all cost 1)."""
    a = a or ""
    b = b or ""
    if not a:
        return len(b)
    if not b:
        return len(a)

    prev = list(range(len(b) + 1))
    curr = [0] * (len(b) + 1)
    for i, ca in enumerate(a, start=1):
        curr[0] = i
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            curr[j] = min(prev[j] + 1, curr[j - 1] + 1, prev[j - 1] + cost)
        prev, curr = curr, prev
    return prev[len(b)]


def normalized_similarity(a: Optional[str], b: Optional[str]) -> float:
    """Case-insensitive similarity in [0, 1]; 1.0 means identical."""
    a = a or ""
    b = b or ""
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    a = a.lower()
    b = b.lower()
    max_len = max(len(a), len(b))
    return 1.0 - distance(a, b) / max_len


def contains_substring(term: Optional[str], target: Optional[str]) -> bool:
    if not term:
        return True
    if not target:
        return False
    return term.lower() in target.lower()


def search_score(term: Optional[str], target: Optional[str], fuzzy_threshold: float = config.FUZZY_SEARCH_THRESHOLD) -> float:
    """
    Score how well `target` matches the search `term`.

    Tiers: exact 1.0, prefix 0.95, word prefix 0.9, substring 0.8, then
    best fuzzy similarity against the whole text or any word scaled by 0.7.
    Returns -1 when nothing clears `fuzzy_threshold`; any score >= 0 is a match.
    """
    if not term:
        return EXACT_SCORE
    if not target:
        return NO_MATCH

    t = term.lower().strip()
    s = target.lower()
    if s == t:
        return EXACT_SCORE
    if s.startswith(t):
        return PREFIX_SCORE

    words = s.split()
    if any(w.startswith(t) for w in words):
        return WORD_PREFIX_SCORE
    if t in s:
        return SUBSTRING_SCORE

    best = normalized_similarity(t, s)
    for w in words:
        best = max(best, normalized_similarity(t, w))
    if best >= fuzzy_threshold:
        return best * FUZZY_WEIGHT
    return NO_MATCH
