"""
Token Overlap Similarity

Coarse bag-of-words similarity between two code blocks. Both blocks are
split into word tokens; the score is the number of tokens of the first
block that also occur in the second, divided by the longer token count,
expressed as a rounded percentage. There is no structural (AST shape)
comparison: two blocks using the same vocabulary in a different order
score as highly similar.
"""

from __future__ import annotations

import math
import re
from typing import List

_TOKEN_RE = re.compile(r'\b\w+\b')


def tokenize(source_code: str) -> List[str]:
    """Word-boundary tokens of the raw source, in order, repeats kept."""
    return _TOKEN_RE.findall(source_code)


def calculate_token_similarity(code1: str, code2: str) -> int:
    """
    Similarity of two code strings as an integer percentage in [0, 100].

    Args:
        code1: Raw source of the first block
        code2: Raw source of the second block

    Returns:
        100 * common / max(len(tokens1), len(tokens2)), halves rounded up
    """
    tokens1 = tokenize(code1)
    tokens2 = tokenize(code2)
    longest = max(len(tokens1), len(tokens2))
    if longest == 0:
        return 100 if code1.strip() == code2.strip() else 0

    vocabulary2 = set(tokens2)
    common = sum(1 for token in tokens1 if token in vocabulary2)
    return math.floor(common * 100 / longest + 0.5)


def pair_key(key1: str, key2: str) -> str:
    """Order-independent identity of a pair of blocks."""
    first, second = sorted((key1, key2))
    return f"{first}|{second}"
