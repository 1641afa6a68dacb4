"""
Similarity scoring for recitation attempts.
"""

from typing import Dict, Sequence

from .alignment import DiffEntry, DiffType


def levenshtein_distance(s1: str, s2: str) -> int:
    """
    Character-level edit distance (insert, delete, substitute), case-sensitive.

    Only two rows sized to the shorter string are kept in memory.
    """
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    # s1 is longer
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
        previous_row = current_row

    return previous_row[-1]


def calculate_similarity(s1: str, s2: str) -> float:
    """
    Similarity percentage between two strings.

    Returns:
        100.0 for identical strings (including two empty strings), down to 0.0
    """
    longer_length = max(len(s1), len(s2))
    if longer_length == 0:
        return 100.0
    distance = levenshtein_distance(s1, s2)
    similarity = (1.0 - distance / longer_length) * 100.0
    return min(100.0, max(0.0, similarity))


def summarize_diff(diff: Sequence[DiffEntry]) -> Dict[str, float]:
    """
    Count word classifications of an alignment result.

    Returns:
        Dictionary with 'correct', 'incorrect', 'extra', 'total_reference_words'
        and 'accuracy' (percent of reference words recited correctly)
    """
    correct = incorrect = extra = 0
    for entry in diff:
        if entry.type == DiffType.CORRECT:
            correct += 1
        elif entry.type == DiffType.INCORRECT:
            incorrect += 1
        elif entry.type == DiffType.EXTRA:
            extra += 1
        else:
            raise ValueError(f"Unknown diff type: {entry.type!r}")

    total = correct + incorrect
    accuracy = (correct / total) * 100.0 if total > 0 else 100.0

    return {
        'correct': correct,
        'incorrect': incorrect,
        'extra': extra,
        'total_reference_words': total,
        'accuracy': accuracy,
    }
