"""Content hashing and string similarity for cache lookups."""

import hashlib
import math
from typing import Optional


def content_hash(text: str) -> str:
    """SHA-256 hex digest of the raw, unnormalized text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def normalize(text: str) -> str:
    """Normalization applied before similarity comparison."""
    return text.strip().lower()


def edit_distance(s1: str, s2: str, max_distance: Optional[int] = None) -> int:
    """Levenshtein distance between two strings.

    Uses the two-row dynamic programming formulation. When ``max_distance``
    is given the computation stops as soon as every cell of a row exceeds
    it, and ``max_distance + 1`` is returned.

    Args:
        s1: First string
        s2: Second string
        max_distance: Optional cutoff

    Returns:
        Edit distance, or ``max_distance + 1`` if the cutoff was exceeded
    """
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    if max_distance is not None and len(s1) - len(s2) > max_distance:
        return max_distance + 1

    if not s2:
        return len(s1)

    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        if max_distance is not None and min(current_row) > max_distance:
            return max_distance + 1
        previous_row = current_row

    return previous_row[-1]


def similarity(s1: str, s2: str, threshold: Optional[float] = None) -> float:
    """Normalized edit-distance similarity in [0, 1].

    Both strings are lowercased and trimmed first. 1.0 means identical after
    normalization; two empty strings are identical, one empty string against
    a non-empty one scores 0.0.

    Passing ``threshold`` lets the distance computation bail out early; any
    result below the threshold is then reported as 0.0.
    """
    s1 = normalize(s1)
    s2 = normalize(s2)

    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0

    max_len = max(len(s1), len(s2))
    max_distance = None
    if threshold is not None:
        max_distance = math.ceil((1.0 - threshold) * max_len)

    distance = edit_distance(s1, s2, max_distance)
    if max_distance is not None and distance > max_distance:
        return 0.0
    return 1.0 - (distance / max_len)
