"""Similarity - Edit-distance scoring between source lines.

Used by the location validator only when fingerprint and substring
matching fail. Inputs are single source lines, so the quadratic
dynamic-programming table stays small.
"""

from __future__ import annotations

import re

_WHITESPACE_RE = re.compile(r"\s+")


def levenshtein_distance(a: str, b: str) -> int:
    """Return the minimum number of single-character edits turning a into b.

    Insertions, deletions and substitutions each cost 1.
    """
    rows = len(a) + 1
    cols = len(b) + 1
    matrix = [[0] * cols for _ in range(rows)]

    for i in range(rows):
        matrix[i][0] = i
    for j in range(cols):
        matrix[0][j] = j

    for i in range(1, rows):
        for j in range(1, cols):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            matrix[i][j] = min(
                matrix[i - 1][j] + 1,  # deletion
                matrix[i][j - 1] + 1,  # insertion
                matrix[i - 1][j - 1] + cost,  # substitution
            )

    return matrix[rows - 1][cols - 1]


def similarity(a: str, b: str) -> float:
    """Score how alike two strings are, from 0.0 to 1.0.

    Comparison is case-insensitive and ignores surrounding whitespace.
    Identical normalized strings (including two empty strings) score 1.0.

    Args:
        a: First string.
        b: Second string.

    Returns:
        ``1 - distance / max(len(a), len(b))`` over the normalized strings.
    """
    left = a.strip().lower()
    right = b.strip().lower()

    if left == right:
        return 1.0

    max_length = max(len(left), len(right))
    if max_length == 0:
        return 1.0

    return 1.0 - levenshtein_distance(left, right) / max_length


def normalize_for_comparison(text: str | None) -> str:
    """Remove all whitespace and lowercase, for whitespace-insensitive search."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub("", text).lower()
