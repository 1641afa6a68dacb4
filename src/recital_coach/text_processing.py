"""
Text utilities for splitting reference paragraphs into sentences and words.
"""

import re
from typing import List, Optional

# A run of non-terminators closed by one terminator, or a final unterminated fragment.
# Abbreviations such as "Dr." are not special-cased.
SENTENCE_PATTERN = re.compile(r'[^.!?]+[.!?]\s*|\s*[^.!?]+$')


def split_paragraph_into_sentences(text: Optional[str]) -> List[str]:
    """
    Split a paragraph into sentences.

    Args:
        text: The input paragraph

    Returns:
        List of trimmed, non-empty sentences in reading order
    """
    if not text or not text.strip():
        return []

    sentences = [match.strip() for match in SENTENCE_PATTERN.findall(text)]
    return [sentence for sentence in sentences if sentence]


def tokenize_words(text: Optional[str]) -> List[str]:
    """Split text on runs of whitespace."""
    if not text:
        return []
    return text.split()
