"""
Word-level alignment between a reference text and a transcription.

The alignment is a longest-common-subsequence walk over case-insensitive
tokens that classifies every token as correct, incorrect (reference word
missing or misread) or extra (transcribed word not in the reference).
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Union

from .text_processing import tokenize_words

WordsInput = Union[str, Sequence[str]]


class DiffType(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    EXTRA = "extra"


@dataclass(frozen=True)
class DiffEntry:
    """One classified word of an alignment result."""
    text: str
    type: DiffType


def _tokens(words: WordsInput) -> List[str]:
    if isinstance(words, str):
        return tokenize_words(words)
    tokens: List[str] = []
    for word in words:
        tokens.extend(tokenize_words(word))
    return tokens


def _lcs_table(hypothesis: List[str], reference: List[str]) -> List[List[int]]:
    """Suffix LCS lengths: table[i][j] = LCS(hypothesis[i:], reference[j:])."""
    rows = len(hypothesis)
    cols = len(reference)
    table = [[0] * (cols + 1) for _ in range(rows + 1)]

    for i in range(rows - 1, -1, -1):
        for j in range(cols - 1, -1, -1):
            if hypothesis[i] == reference[j]:
                table[i][j] = 1 + table[i + 1][j + 1]
            else:
                table[i][j] = max(table[i + 1][j], table[i][j + 1])

    return table


def align_words(reference: WordsInput, hypothesis: WordsInput) -> List[DiffEntry]:
    """
    Align transcribed words against reference words.

    Args:
        reference: Reference text or words (what should have been said)
        hypothesis: Transcribed text or words (what was recognized)

    Returns:
        Ordered list of DiffEntry. Correct and incorrect entries carry the
        reference casing, extra entries carry the transcription casing.
    """
    reference_words = _tokens(reference)
    hypothesis_words = _tokens(hypothesis)

    reference_keys = [word.lower() for word in reference_words]
    hypothesis_keys = [word.lower() for word in hypothesis_words]
    lcs = _lcs_table(hypothesis_keys, reference_keys)

    result: List[DiffEntry] = []
    i = j = 0
    while i < len(hypothesis_words) and j < len(reference_words):
        if hypothesis_keys[i] == reference_keys[j]:
            result.append(DiffEntry(reference_words[j], DiffType.CORRECT))
            i += 1
            j += 1
        elif lcs[i + 1][j] >= lcs[i][j + 1]:
            # Ties skip the transcribed word first
            result.append(DiffEntry(hypothesis_words[i], DiffType.EXTRA))
            i += 1
        else:
            result.append(DiffEntry(reference_words[j], DiffType.INCORRECT))
            j += 1

    for word in hypothesis_words[i:]:
        result.append(DiffEntry(word, DiffType.EXTRA))
    for word in reference_words[j:]:
        result.append(DiffEntry(word, DiffType.INCORRECT))

    return result


def diff_words(original: str, transcribed: str) -> List[DiffEntry]:
    """Convenience wrapper aligning two raw strings."""
    return align_words(original, transcribed)


def reference_words(diff: Sequence[DiffEntry]) -> List[str]:
    """Rebuild the reference word sequence from an alignment result."""
    words = []
    for entry in diff:
        if entry.type in (DiffType.CORRECT, DiffType.INCORRECT):
            words.append(entry.text)
        elif entry.type != DiffType.EXTRA:
            raise ValueError(f"Unknown diff type: {entry.type!r}")
    return words
